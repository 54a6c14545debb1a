from shopsearch.domain.models.product import SearchFilters
from shopsearch.domain.models.query import SCORE, BoolQuery, RangeClause, SortField, TermClause, TermsClause, TextClause
from shopsearch.domain.services.constants import SEARCH_FIELDS
from shopsearch.domain.services.query_builder import build_query, build_sort


def test_empty_query_only_filters_active():
    q = build_query("", SearchFilters())
    assert q.must == ()
    assert q.filter == (TermClause(field="status", value="active"),)


def test_text_query_is_fuzzy_multi_field():
    q = build_query("  red sneakers ", SearchFilters(), fuzzy_max_edits=1)

    (text_group,) = q.must
    assert isinstance(text_group, BoolQuery)
    text = text_group.should[0]
    assert isinstance(text, TextClause)
    assert text.query == "red sneakers"
    assert text.fuzzy_max_edits == 1
    assert text.fields == SEARCH_FIELDS
    # name carries the highest weight
    assert max(SEARCH_FIELDS, key=lambda f: f[1])[0] == "name"


def test_every_filter_maps_to_a_constraint():
    filters = SearchFilters(
        category_ids=frozenset({"c2", "c1"}),
        vendor_ids=frozenset({"v1"}),
        price_min=10,
        price_max=99.5,
        rating_min=4,
        statuses=frozenset({"draft"}),
        is_featured=True,
        tags=frozenset({"red"}),
        in_stock=True,
    )
    q = build_query("", filters)

    assert q.filter == (
        TermsClause(field="category_id", values=("c1", "c2")),
        TermsClause(field="vendor_id", values=("v1",)),
        RangeClause(field="price", gte=10, lte=99.5),
        RangeClause(field="average_rating", gte=4),
        TermsClause(field="status", values=("draft",)),
        TermClause(field="is_featured", value=True),
        TermsClause(field="tags", values=("red",)),
        RangeClause(field="stock_quantity", gt=0),
        TermClause(field="status", value="active"),
    )


def test_active_constraint_always_last_and_present():
    for filters in (SearchFilters(), SearchFilters(statuses=frozenset({"archived"})), SearchFilters(is_featured=False)):
        assert build_query("x", filters).filter[-1] == TermClause(field="status", value="active")


def test_open_price_range_and_in_stock_false():
    q = build_query("", SearchFilters(price_max=50, in_stock=False))
    assert RangeClause(field="price", lte=50) in q.filter
    assert all(getattr(c, "field", None) != "stock_quantity" for c in q.filter)


def test_sort_precedence():
    assert build_sort("price_asc") == [SortField(field="price", order="asc"), SortField(field=SCORE)]
    assert build_sort("price_desc") == [SortField(field="price"), SortField(field=SCORE)]
    assert build_sort("rating_desc") == [SortField(field="average_rating"), SortField(field=SCORE)]
    assert build_sort("newest") == [SortField(field="created_at"), SortField(field=SCORE)]
    assert build_sort("popular") == [
        SortField(field="total_wishlisted"), SortField(field="total_sold"), SortField(field=SCORE),
    ]
    assert build_sort("relevance") == [SortField(field=SCORE), SortField(field="created_at")]
