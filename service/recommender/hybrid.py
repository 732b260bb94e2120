"""
Hybrid Ranker.

Blends the collaborative prediction with the content score:

    hybrid = clamp(cw * collaborative + (1 - cw) * content, 1.0, 5.0)

where cw is the collaborative weight (default 0.7). Collaborative failures,
including NaN or infinite predictions, propagate from predict/rank/
rank_detailed as CollaborativePredictionError; try_rank_detailed tags them
instead so callers can branch on the outcome.

Example:
    >>> from service.recommender.hybrid import HybridRanker
    >>> ranker = HybridRanker(predictor, content_scorer, collaborative_weight=0.7)
    >>> ranker.rank(user_id=12, candidate_ids=[1, 2, 3, 4], top_n=2, exclude={3})
    [(4, 4.41), (1, 3.97)]
    >>> outcome = ranker.try_rank_detailed(user_id=12, candidate_ids=[1, 2], top_n=2)
    >>> outcome.ok
    True
"""

from typing import Iterable, List, Optional, Set, Tuple, TYPE_CHECKING
from dataclasses import dataclass, field
import logging

from antiscam.cf.predictor import CollaborativePredictor, CollaborativePredictionError, try_predict
from .content import ContentScorer
from .models import ScoredCandidate, clamp_rating

if TYPE_CHECKING:
    from .config import RankerConfig

logger = logging.getLogger(__name__)


DEFAULT_COLLABORATIVE_WEIGHT = 0.7


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class RankingOutcome:
    """Tagged result of a detailed ranking."""
    ok: bool
    candidates: List[ScoredCandidate] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def success(cls, candidates: List[ScoredCandidate]) -> 'RankingOutcome':
        return cls(ok=True, candidates=candidates)

    @classmethod
    def failure(cls, error: str) -> 'RankingOutcome':
        return cls(ok=False, error=error)


# ============================================================================
# HybridRanker
# ============================================================================

class HybridRanker:
    """
    Weighted blend of a collaborative predictor and the content scorer.

    Ranking is a full pass over the candidates followed by a stable
    descending sort, so equal scores keep candidate input order.
    """

    def __init__(
        self,
        collaborative: CollaborativePredictor,
        content: ContentScorer,
        collaborative_weight: float = DEFAULT_COLLABORATIVE_WEIGHT
    ):
        """
        Initialize HybridRanker.

        Args:
            collaborative: Object exposing predict(user_id, module_id)
            content: ContentScorer for the same catalogs
            collaborative_weight: Share of the collaborative score,
                clamped to [0, 1]
        """
        self.collaborative = collaborative
        self.content = content

        weight = float(collaborative_weight)
        if not 0.0 <= weight <= 1.0:
            clamped = max(0.0, min(1.0, weight))
            logger.warning(f"collaborative_weight {weight} outside [0, 1], clamped to {clamped}")
            weight = clamped

        self.collaborative_weight = weight
        self.content_weight = 1.0 - weight

        logger.info(
            f"HybridRanker initialized: collaborative={self.collaborative_weight:.2f}, "
            f"content={self.content_weight:.2f}"
        )

    @classmethod
    def from_config(
        cls,
        collaborative: CollaborativePredictor,
        content: ContentScorer,
        config: 'RankerConfig'
    ) -> 'HybridRanker':
        return cls(collaborative, content, collaborative_weight=config.collaborative_weight)

    def _collaborative_score(self, user_id: int, module_id: int) -> float:
        outcome = try_predict(self.collaborative, user_id, module_id)
        if not outcome.ok:
            raise CollaborativePredictionError(
                user_id, module_id, cause=outcome.cause
            ) from outcome.cause
        return outcome.score

    def _score(self, user_id: int, module_id: int) -> ScoredCandidate:
        collab = self._collaborative_score(user_id, module_id)
        content = self.content.predict(user_id, module_id)
        hybrid = clamp_rating(
            self.collaborative_weight * collab + self.content_weight * content
        )
        return ScoredCandidate(
            module_id=module_id,
            hybrid_score=hybrid,
            collaborative_score=clamp_rating(collab),
            content_score=content
        )

    def predict(self, user_id: int, module_id: int) -> float:
        """
        Hybrid score for one pair.

        Raises:
            CollaborativePredictionError: If the collaborative predictor fails
        """
        return self._score(user_id, module_id).hybrid_score

    def rank_detailed(
        self,
        user_id: int,
        candidate_ids: Iterable[int],
        top_n: int,
        exclude: Optional[Set[int]] = None
    ) -> List[ScoredCandidate]:
        """
        Score every candidate and keep the best top_n with score breakdown.

        Raises:
            CollaborativePredictionError: If the collaborative predictor fails
        """
        excluded = exclude or set()
        scored = [
            self._score(user_id, module_id)
            for module_id in candidate_ids
            if module_id not in excluded
        ]
        scored.sort(key=lambda c: c.hybrid_score, reverse=True)
        return scored[:max(top_n, 0)]

    def rank(
        self,
        user_id: int,
        candidate_ids: Iterable[int],
        top_n: int,
        exclude: Optional[Set[int]] = None
    ) -> List[Tuple[int, float]]:
        """
        Rank candidates by hybrid score.

        Args:
            user_id: User ID
            candidate_ids: Module IDs to consider
            top_n: Maximum number of results
            exclude: Module IDs to skip

        Returns:
            (module_id, hybrid_score) pairs, best first
        """
        return [
            (c.module_id, c.hybrid_score)
            for c in self.rank_detailed(user_id, candidate_ids, top_n, exclude)
        ]

    def try_rank_detailed(
        self,
        user_id: int,
        candidate_ids: Iterable[int],
        top_n: int,
        exclude: Optional[Set[int]] = None
    ) -> RankingOutcome:
        """rank_detailed, returning a failure outcome instead of raising."""
        try:
            return RankingOutcome.success(
                self.rank_detailed(user_id, candidate_ids, top_n, exclude)
            )
        except CollaborativePredictionError as e:
            return RankingOutcome.failure(str(e))
