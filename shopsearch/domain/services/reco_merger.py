import logging
from typing import Dict, Iterable, List, Sequence

from shopsearch.domain.models.product import RecommendationResult, SimilarityCandidate

logger = logging.getLogger(__name__)


def _rank_key(c: SimilarityCandidate):
    # score desc, then position inside its strategy, then id: independent of list arrival order
    return (-c.score, c.rank, c.product_id)


def merge_candidates(candidate_lists: Iterable[Sequence[SimilarityCandidate]], limit: int) -> List[SimilarityCandidate]:
    """
    Dedup by product_id keeping the highest-scoring entry (its reason included),
    then sort by score desc and truncate. Scores are never summed.
    """
    best: Dict[str, SimilarityCandidate] = {}
    for candidates in candidate_lists:
        for c in candidates:
            current = best.get(c.product_id)
            if current is None or _rank_key(c) < _rank_key(current):
                best[c.product_id] = c
    return sorted(best.values(), key=_rank_key)[:limit]


async def merge(
    candidate_lists: Iterable[Sequence[SimilarityCandidate]],
    limit: int,
    product_repo,
) -> List[RecommendationResult]:
    """
    Merge strategy outputs and hydrate the survivors in one batch fetch.
    Candidates the catalog no longer returns (deleted, deactivated) are dropped.
    """
    top = merge_candidates(candidate_lists, limit)
    if not top:
        return []

    products = await product_repo.get_active_by_ids([c.product_id for c in top])

    results: List[RecommendationResult] = []
    for c in top:
        product = products.get(c.product_id)
        if product is None:
            logger.debug("merge drop product_id=%s (not active anymore)", c.product_id)
            continue
        results.append(
            RecommendationResult(
                **product.model_dump(),
                recommendation_reason=c.reason,
                similarity_score=c.score,
            )
        )
    return results
