"""Maximal Marginal Relevance selection."""

from uuid import UUID

from photo_intelligence.services.scoring import ScoredPhoto, similarity

DEFAULT_LAMBDA = 0.7
MAX_POOL = 500


def mmr_select(
    scored: list[ScoredPhoto],
    limit: int,
    lambda_: float = DEFAULT_LAMBDA,
    max_pool: int = MAX_POOL,
) -> list[ScoredPhoto]:
    """Greedily pick up to ``limit`` items trading relevance for variety.

    Each step takes the unchosen candidate among the top ``max_pool`` that
    maximizes ``lambda_ * total - (1 - lambda_) * max_similarity``, where the
    similarity is against items already selected.
    """
    ranked = sorted(scored, key=lambda item: item.total, reverse=True)[:max_pool]
    selected: list[ScoredPhoto] = []
    chosen: set[UUID] = set()
    selected_vectors: list[list[float]] = []

    while len(selected) < limit:
        best: ScoredPhoto | None = None
        best_value = float("-inf")
        for candidate in ranked:
            if candidate.photo.id in chosen:
                continue
            penalty = 0.0
            if selected_vectors and candidate.photo.embedding:
                penalty = max(
                    similarity(candidate.photo.embedding, vector)
                    for vector in selected_vectors
                )
            value = lambda_ * candidate.total - (1 - lambda_) * penalty
            if value > best_value:
                best_value = value
                best = candidate
        if best is None:
            break
        selected.append(best)
        chosen.add(best.photo.id)
        if best.photo.embedding:
            selected_vectors.append(best.photo.embedding)
    return selected
