"""
Recommendation Orchestrator.

Decides per request whether to rank with the hybrid blend or the content
scorer alone, and owns the in-memory user directory.

Routing:
- user has rating history  -> hybrid ranking over the full catalog
- user has no ratings      -> content-only ranking (collaborative_score = 0)
- hybrid ranking fails     -> logged as degraded mode, retried content-only

Example:
    >>> from service.recommender.loader import build_service
    >>> service = build_service(load_config())
    >>> result = service.recommend(user_id=12, top_n=5)
    >>> result.mode, result.is_fallback
    ('hybrid', False)
    >>> user = service.register_user('25-34', 2.0, 'phishing')
    >>> service.recommend(user.user_id).mode
    'content_only'
"""

from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING
from dataclasses import dataclass
import threading
import logging
import time

from .content import ContentScorer
from .errors import InvalidRatingError, TrainingModuleNotFoundError, UserNotFoundError
from .hybrid import HybridRanker, RankingOutcome
from .models import (
    MAX_RATING,
    MIN_RATING,
    RISK_PROFILES,
    Module,
    Rating,
    ScoredCandidate,
    User,
)
from .stores import CsvRatingStore, CsvUserStore, RatingIndex, UserDirectory

if TYPE_CHECKING:
    from antiscam.cf.logging_utils import ServiceMetricsDB

logger = logging.getLogger(__name__)


MODE_HYBRID = "hybrid"
MODE_CONTENT_ONLY = "content_only"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class RecommendationResult:
    """Result of a recommendation request."""
    user_id: int
    candidates: List[ScoredCandidate]
    mode: str
    is_fallback: bool
    latency_ms: float
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.candidates)


def derive_risk_profile(digital_literacy: float) -> str:
    """Lower literacy means higher scam exposure."""
    if digital_literacy <= 2:
        return 'high'
    if digital_literacy <= 3:
        return 'medium'
    return 'low'


def derive_user_cluster(digital_literacy: float) -> int:
    return int(digital_literacy % 5) + 1


# ============================================================================
# RecommendationService
# ============================================================================

class RecommendationService:
    """
    Policy layer between callers and the rankers.

    Scoring failures never escape get_recommendations/recommend; they
    degrade to content-only. Lookup and validation errors on
    registration and rating submission do propagate.
    """

    def __init__(
        self,
        ranker: HybridRanker,
        content: ContentScorer,
        modules: Iterable[Module],
        users: UserDirectory,
        ratings: RatingIndex,
        user_store: Optional[CsvUserStore] = None,
        rating_store: Optional[CsvRatingStore] = None,
        metrics_db: Optional['ServiceMetricsDB'] = None,
        default_top_n: int = 5
    ):
        """
        Initialize RecommendationService.

        Args:
            ranker: HybridRanker
            content: ContentScorer sharing the module catalog
            modules: Module catalog, in ranking tie-break order
            users: Shared user directory
            ratings: Index of users with rating history
            user_store: Durable user storage (write-through), optional
            rating_store: Durable rating storage, optional
            metrics_db: Request log, optional
            default_top_n: top_n used when a request gives none
        """
        self.ranker = ranker
        self.content = content
        self.modules: Dict[int, Module] = {m.module_id: m for m in modules}
        self.users = users
        self.ratings = ratings
        self.user_store = user_store
        self.rating_store = rating_store
        self.metrics_db = metrics_db
        self.default_top_n = default_top_n

        self._stats_lock = threading.Lock()
        self._stats = {MODE_HYBRID: 0, MODE_CONTENT_ONLY: 0, 'fallbacks': 0}

        logger.info(
            f"RecommendationService initialized: modules={len(self.modules)}, "
            f"users={len(self.users)}, ratings={self.ratings.count}"
        )

    # ========================================================================
    # Ranking
    # ========================================================================

    def _content_only(self, user_id: int, top_n: int) -> List[ScoredCandidate]:
        user = self.users.get(user_id)
        scored = []
        for module in self.modules.values():
            score = self.content.score(user, module)
            scored.append(ScoredCandidate(
                module_id=module.module_id,
                hybrid_score=score,
                collaborative_score=0.0,
                content_score=score
            ))
        scored.sort(key=lambda c: c.hybrid_score, reverse=True)
        return scored[:max(top_n, 0)]

    def _hybrid(self, user_id: int, top_n: int) -> RankingOutcome:
        try:
            return self.ranker.try_rank_detailed(user_id, list(self.modules), top_n)
        except Exception as e:
            return RankingOutcome.failure(f"{type(e).__name__}: {e}")

    def _rank(self, user_id: int, top_n: int, content_only: bool):
        if content_only:
            return self._content_only(user_id, top_n), False, None

        outcome = self._hybrid(user_id, top_n)
        if outcome.ok:
            return outcome.candidates, False, None

        logger.warning(
            f"Degraded mode for user {user_id}: hybrid ranking failed "
            f"({outcome.error}), falling back to content-only"
        )
        return self._content_only(user_id, top_n), True, outcome.error

    def get_recommendations(
        self,
        user_id: int,
        top_n: int,
        content_only: bool
    ) -> List[ScoredCandidate]:
        """
        Rank the full catalog for a user.

        Args:
            user_id: User ID
            top_n: Maximum number of results
            content_only: Skip the collaborative predictor entirely

        Returns:
            ScoredCandidates, best first
        """
        candidates, _, _ = self._rank(user_id, top_n, content_only)
        return candidates

    def recommend(self, user_id: int, top_n: Optional[int] = None) -> RecommendationResult:
        """
        Full request flow: look up the user, pick the mode, rank.

        Raises:
            UserNotFoundError: If the user is not in the directory
        """
        start_time = time.perf_counter()

        if user_id not in self.users:
            raise UserNotFoundError(user_id)

        top_n = self.default_top_n if top_n is None else top_n
        content_only = not self.ratings.has_ratings(user_id)

        candidates, is_fallback, error = self._rank(user_id, top_n, content_only)
        mode = MODE_CONTENT_ONLY if content_only or is_fallback else MODE_HYBRID
        latency_ms = (time.perf_counter() - start_time) * 1000

        with self._stats_lock:
            self._stats[mode] += 1
            if is_fallback:
                self._stats['fallbacks'] += 1

        logger.debug(
            f"user_id={user_id}, mode={mode}, fallback={is_fallback}, "
            f"count={len(candidates)}, latency={latency_ms:.1f}ms"
        )

        if self.metrics_db is not None:
            try:
                self.metrics_db.log_request(
                    user_id=user_id,
                    mode=mode,
                    is_fallback=is_fallback,
                    num_recommendations=len(candidates),
                    latency_ms=latency_ms,
                    error=error
                )
            except Exception as e:
                logger.warning(f"Failed to log request metrics: {e}")

        return RecommendationResult(
            user_id=user_id,
            candidates=candidates,
            mode=mode,
            is_fallback=is_fallback,
            latency_ms=latency_ms,
            error=error
        )

    # ========================================================================
    # Users & Ratings
    # ========================================================================

    def add_user(self, user: User) -> None:
        """
        Write-through insert: store, then directory, then content scorer.

        All three happen under the directory lock so concurrent
        registrations cannot interleave.
        """
        with self.users.lock:
            if self.user_store is not None:
                self.user_store.append(user)
            self.users.put(user)
            self.content.update_users(self.users.all())

        logger.info(f"Added user {user.user_id} (topic={user.preferred_topic})")

    def register_user(
        self,
        age_group: str,
        digital_literacy: float,
        preferred_topic: str,
        risk_profile: Optional[str] = None
    ) -> User:
        """
        Create a user with the next free ID.

        Risk profile is derived from literacy when not given.

        Raises:
            ValueError: Literacy outside [1, 5] or unknown risk profile
        """
        digital_literacy = float(digital_literacy)
        if not 1.0 <= digital_literacy <= 5.0:
            raise ValueError(f"digital_literacy must be in [1, 5], got {digital_literacy}")
        if risk_profile is not None and risk_profile not in RISK_PROFILES:
            raise ValueError(f"risk_profile must be one of {RISK_PROFILES}, got {risk_profile!r}")

        with self.users.lock:
            user_id = self.users.next_id()
            if self.user_store is not None:
                user_id = max(user_id, self.user_store.next_id())
            user = User(
                user_id=user_id,
                digital_literacy=digital_literacy,
                age_group=age_group,
                risk_profile=risk_profile or derive_risk_profile(digital_literacy),
                preferred_topic=preferred_topic,
                user_cluster=derive_user_cluster(digital_literacy)
            )
            self.add_user(user)

        return user

    def submit_rating(self, user_id: int, module_id: int, rating: float) -> Rating:
        """
        Record a rating. The collaborative model is not retrained.

        Raises:
            InvalidRatingError: Rating outside [1, 5]
            UserNotFoundError: Unknown user
            TrainingModuleNotFoundError: Unknown module
        """
        rating = float(rating)
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRatingError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
        if user_id not in self.users:
            raise UserNotFoundError(user_id)
        if module_id not in self.modules:
            raise TrainingModuleNotFoundError(module_id)

        record = Rating(user_id=user_id, module_id=module_id, rating=rating)
        if self.rating_store is not None:
            self.rating_store.append(record)
        self.ratings.add(record)

        logger.info(f"Rating recorded: user={user_id}, module={module_id}, rating={rating}")
        return record

    # ========================================================================
    # Lookups & Status
    # ========================================================================

    def get_user(self, user_id: int) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def get_module(self, module_id: int) -> Module:
        module = self.modules.get(module_id)
        if module is None:
            raise TrainingModuleNotFoundError(module_id)
        return module

    def list_modules(self) -> List[Module]:
        return list(self.modules.values())

    def health(self) -> Dict[str, Any]:
        collaborative = self.ranker.collaborative
        return {
            'status': 'healthy',
            'users': len(self.users),
            'modules': len(self.modules),
            'ratings': self.ratings.count,
            'model_type': getattr(collaborative, 'model_type', type(collaborative).__name__),
            'collaborative_weight': self.ranker.collaborative_weight,
        }

    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return dict(self._stats)
