from typing import List

from shopsearch.domain.models.product import SearchFilters, SortKey
from shopsearch.domain.models.query import (
    SCORE,
    AutocompleteClause,
    BoolQuery,
    RangeClause,
    SortField,
    TermClause,
    TermsClause,
    TextClause,
    sorted_values,
)
from shopsearch.domain.services.constants import ACTIVE_STATUS, NAME_AUTOCOMPLETE_BOOST, SEARCH_FIELDS


def active_only() -> TermClause:
    return TermClause(field="status", value=ACTIVE_STATUS)


def build_query(query: str, filters: SearchFilters, *, fuzzy_max_edits: int = 1) -> BoolQuery:
    """
    Translate a free-text query plus structured filters into a BoolQuery.

    - Non-empty text becomes one scoring clause over the weighted SEARCH_FIELDS
      plus the name autocomplete field; any matching term contributes score.
    - Every filter maps to a non-scoring constraint.
    - `status == active` is always appended; caller filters cannot lift it.
    Values are not re-validated here, only shaped.
    """
    must = []
    text = (query or "").strip()
    if text:
        must.append(
            BoolQuery(
                should=(
                    TextClause(query=text, fields=SEARCH_FIELDS, fuzzy_max_edits=fuzzy_max_edits),
                    AutocompleteClause(query=text, field="name", boost=NAME_AUTOCOMPLETE_BOOST),
                ),
                minimum_should_match=1,
            )
        )

    flt = []
    if filters.category_ids:
        flt.append(TermsClause(field="category_id", values=sorted_values(filters.category_ids)))
    if filters.vendor_ids:
        flt.append(TermsClause(field="vendor_id", values=sorted_values(filters.vendor_ids)))
    if filters.price_min is not None or filters.price_max is not None:
        flt.append(RangeClause(field="price", gte=filters.price_min, lte=filters.price_max))
    if filters.rating_min is not None:
        flt.append(RangeClause(field="average_rating", gte=filters.rating_min))
    if filters.statuses:
        flt.append(TermsClause(field="status", values=sorted_values(filters.statuses)))
    if filters.is_featured is not None:
        flt.append(TermClause(field="is_featured", value=filters.is_featured))
    if filters.tags:
        flt.append(TermsClause(field="tags", values=sorted_values(filters.tags)))
    if filters.in_stock:
        flt.append(RangeClause(field="stock_quantity", gt=0))

    # Always filter for active products
    flt.append(active_only())

    return BoolQuery(must=tuple(must), filter=tuple(flt))


def build_sort(sort: SortKey) -> List[SortField]:
    if sort == "price_asc":
        return [SortField(field="price", order="asc"), SortField(field=SCORE)]
    if sort == "price_desc":
        return [SortField(field="price"), SortField(field=SCORE)]
    if sort == "rating_desc":
        return [SortField(field="average_rating"), SortField(field=SCORE)]
    if sort == "newest":
        return [SortField(field="created_at"), SortField(field=SCORE)]
    if sort == "popular":
        return [SortField(field="total_wishlisted"), SortField(field="total_sold"), SortField(field=SCORE)]
    # relevance: created_at keeps ties stable
    return [SortField(field=SCORE), SortField(field="created_at")]
