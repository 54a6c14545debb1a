# shopsearch/domain/models/query.py
"""
Backend-neutral query representation.

The query builder, facet aggregator and similarity strategies only ever produce
these objects; `repositories.atlas_query` is the single place that turns them
into the search backend's wire format.
"""
from __future__ import annotations
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Tuple, Union
from pydantic import BaseModel, Field

Scalar = Union[str, int, float, bool]


class _Clause(BaseModel):
    boost: Optional[float] = None
    model_config = {"frozen": True}


class TextClause(_Clause):
    """Full-text match over several weighted fields; any term may match."""
    kind: Literal["text"] = "text"
    query: str
    fields: Tuple[Tuple[str, float], ...]  # (path, weight)
    fuzzy_max_edits: int = 0


class AutocompleteClause(_Clause):
    """Phrase-prefix match against a field indexed for autocomplete."""
    kind: Literal["autocomplete"] = "autocomplete"
    query: str
    field: str


class MoreLikeThisClause(_Clause):
    kind: Literal["more_like_this"] = "more_like_this"
    like: Dict[str, Any]  # field -> value taken from the source document
    fields: Tuple[str, ...]


class TermClause(_Clause):
    kind: Literal["term"] = "term"
    field: str
    value: Scalar


class TermsClause(_Clause):
    kind: Literal["terms"] = "terms"
    field: str
    values: Tuple[Scalar, ...]


class RangeClause(_Clause):
    kind: Literal["range"] = "range"
    field: str
    gt: Optional[float] = None
    gte: Optional[float] = None
    lt: Optional[float] = None
    lte: Optional[float] = None


class BoolQuery(_Clause):
    kind: Literal["bool"] = "bool"
    must: Tuple["Clause", ...] = ()
    should: Tuple["Clause", ...] = ()
    filter: Tuple["Clause", ...] = ()
    must_not: Tuple["Clause", ...] = ()
    minimum_should_match: Optional[int] = None

    def with_filter(self, *clauses: "Clause") -> "BoolQuery":
        return self.model_copy(update={"filter": self.filter + tuple(clauses)})

    def with_must_not(self, *clauses: "Clause") -> "BoolQuery":
        return self.model_copy(update={"must_not": self.must_not + tuple(clauses)})


Clause = Annotated[
    Union[TextClause, AutocompleteClause, MoreLikeThisClause, TermClause, TermsClause, RangeClause, BoolQuery],
    Field(discriminator="kind"),
]

BoolQuery.model_rebuild()


SCORE = "_score"

class SortField(BaseModel):
    field: str  # SCORE for relevance
    order: Literal["asc", "desc"] = "desc"
    model_config = {"frozen": True}


class TermsAggregation(BaseModel):
    kind: Literal["terms"] = "terms"
    name: str
    field: str
    size: int
    model_config = {"frozen": True}


class RangeBucket(BaseModel):
    key: str
    lower: Optional[float] = None  # inclusive
    upper: Optional[float] = None  # exclusive
    model_config = {"frozen": True}


class RangeAggregation(BaseModel):
    """Contiguous, ascending buckets; only the first may lack a lower bound and only the last an upper one."""
    kind: Literal["range"] = "range"
    name: str
    field: str
    buckets: Tuple[RangeBucket, ...]
    model_config = {"frozen": True}


Aggregation = Annotated[Union[TermsAggregation, RangeAggregation], Field(discriminator="kind")]


class SearchHits(BaseModel):
    documents: List[Dict[str, Any]]
    total: int


def sorted_values(values: Sequence[Scalar]) -> Tuple[Scalar, ...]:
    return tuple(sorted(values, key=str))
