# shopsearch/domain/repositories/atlas_query.py
"""
Serializer from the typed query representation to MongoDB Atlas Search syntax.

Rules carried over from production incidents:
  - never emit an empty clause array (`filter: []` is rejected by Atlas);
  - a compound with a single `should` needs an explicit minimumShouldMatch,
    otherwise non-matching documents are returned with score 0.
"""
from __future__ import annotations
from typing import Any, Dict, List, Sequence, Tuple

from shopsearch.domain.models.query import (
    SCORE,
    AutocompleteClause,
    BoolQuery,
    MoreLikeThisClause,
    RangeAggregation,
    RangeClause,
    SortField,
    TermClause,
    TermsAggregation,
    TermsClause,
    TextClause,
)

DEFAULT_BUCKET = "__default__"


def _with_boost(op: Dict[str, Any], boost) -> Dict[str, Any]:
    if boost is not None and boost != 1:
        op["score"] = {"boost": {"value": boost}}
    return op


def to_operator(clause) -> Dict[str, Any]:
    """Convert one clause into an Atlas Search operator document."""
    if isinstance(clause, TermClause):
        return {"equals": _with_boost({"path": clause.field, "value": clause.value}, clause.boost)}

    if isinstance(clause, TermsClause):
        return {"in": _with_boost({"path": clause.field, "value": list(clause.values)}, clause.boost)}

    if isinstance(clause, RangeClause):
        body: Dict[str, Any] = {"path": clause.field}
        for op in ("gt", "gte", "lt", "lte"):
            v = getattr(clause, op)
            if v is not None:
                body[op] = v
        return {"range": _with_boost(body, clause.boost)}

    if isinstance(clause, TextClause):
        # One text operator per field so each field keeps its own weight
        should = []
        for path, weight in clause.fields:
            text: Dict[str, Any] = {"query": clause.query, "path": path}
            if clause.fuzzy_max_edits:
                text["fuzzy"] = {"maxEdits": clause.fuzzy_max_edits}
            should.append({"text": _with_boost(text, weight)})
        if len(should) == 1:
            return should[0]
        return {"compound": _with_boost({"should": should, "minimumShouldMatch": 1}, clause.boost)}

    if isinstance(clause, AutocompleteClause):
        return {
            "autocomplete": _with_boost(
                {"query": clause.query, "path": clause.field, "tokenOrder": "sequential"},
                clause.boost,
            )
        }

    if isinstance(clause, MoreLikeThisClause):
        like = {f: clause.like[f] for f in clause.fields if clause.like.get(f)}
        return {"moreLikeThis": _with_boost({"like": [like]}, clause.boost)}

    if isinstance(clause, BoolQuery):
        return {"compound": to_compound(clause)}

    raise TypeError(f"Unsupported clause: {type(clause).__name__}")


def to_compound(query: BoolQuery) -> Dict[str, Any]:
    """BoolQuery -> Atlas `compound` body, dropping every empty section."""
    compound: Dict[str, Any] = {}
    for section, atlas_key in (("must", "must"), ("should", "should"), ("filter", "filter"), ("must_not", "mustNot")):
        clauses = getattr(query, section)
        if clauses:
            compound[atlas_key] = [to_operator(c) for c in clauses]
    if query.should:
        compound["minimumShouldMatch"] = query.minimum_should_match or 1
    if query.boost is not None and query.boost != 1:
        compound["score"] = {"boost": {"value": query.boost}}
    return compound


def to_sort(sort: Sequence[SortField]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for s in sort:
        direction = 1 if s.order == "asc" else -1
        if s.field == SCORE:
            out["score"] = {"$meta": "searchScore", "order": direction}
        else:
            out[s.field] = direction
    return out


def search_stage(index: str, query: BoolQuery, sort: Sequence[SortField] | None = None, count: bool = False) -> Dict[str, Any]:
    body: Dict[str, Any] = {"index": index, "compound": to_compound(query)}
    if sort:
        body["sort"] = to_sort(sort)
    if count:
        body["count"] = {"type": "total"}
    return {"$search": body}


def range_boundaries(agg: RangeAggregation) -> List[float]:
    """
    Atlas numeric facets take ascending boundaries [b0, b1, ..., bn) and put
    everything else in a default bucket. The open-ended last bucket maps to
    that default; an open lower bound on the first bucket maps to 0.
    """
    bounds: List[float] = [b.lower if b.lower is not None else 0 for b in agg.buckets]
    last = agg.buckets[-1]
    if last.upper is not None:
        bounds.append(last.upper)
    if len(bounds) < 2:
        raise ValueError(f"Range aggregation {agg.name} needs at least two boundaries")
    return bounds


def to_facet(agg) -> Dict[str, Any]:
    if isinstance(agg, TermsAggregation):
        return {"type": "string", "path": agg.field, "numBuckets": agg.size}
    if isinstance(agg, RangeAggregation):
        facet: Dict[str, Any] = {"type": "number", "path": agg.field, "boundaries": range_boundaries(agg)}
        if agg.buckets[-1].upper is None:
            facet["default"] = DEFAULT_BUCKET
        return facet
    raise TypeError(f"Unsupported aggregation: {type(agg).__name__}")


def search_meta_stage(index: str, query: BoolQuery, aggregations: Sequence) -> Dict[str, Any]:
    return {
        "$searchMeta": {
            "index": index,
            "facet": {
                "operator": {"compound": to_compound(query)},
                "facets": {a.name: to_facet(a) for a in aggregations},
            },
        }
    }


def parse_facet_buckets(agg, raw_buckets: List[Dict[str, Any]]) -> List[Tuple[str, int]]:
    """Turn Atlas facet buckets back into (key, count) pairs in the aggregation's own order."""
    if isinstance(agg, TermsAggregation):
        return [(str(b["_id"]), int(b.get("count", 0))) for b in raw_buckets]

    counts: Dict[Any, int] = {}
    for b in raw_buckets:
        bid = b.get("_id")
        key = bid if bid == DEFAULT_BUCKET else float(bid)
        counts[key] = int(b.get("count", 0))

    bounds = range_boundaries(agg)
    open_ended = agg.buckets[-1].upper is None
    out = []
    for i, bucket in enumerate(agg.buckets):
        if open_ended and i == len(agg.buckets) - 1:
            n = counts.get(DEFAULT_BUCKET, 0)
        else:
            n = counts.get(float(bounds[i]), 0)
        out.append((bucket.key, n))
    return out
