"""
Content-Based Scorer.

Scores a (user, module) pair from static attributes only, so it works for
users with no rating history (cold start).

Sub-scores (each in [0, 1]) and weights:
- topic (0.4): preferred_topic == scam_type, case-insensitive
- literacy (0.3): 1 - |literacy - target_literacy| / 5
- difficulty (0.2): mild penalty when the module is too easy,
  steep penalty when it is too hard
- duration (0.1): 1.0 for modules of at most 7 minutes, else 0.7

The weighted sum is mapped to the rating scale as 1 + raw * 4.

Example:
    >>> from service.recommender.content import ContentScorer
    >>> scorer = ContentScorer(modules, users)
    >>> scorer.predict(user_id=1, module_id=4)
    4.952
    >>> scorer.top_n(user, modules, n=3)
    [(4, 4.952), (9, 4.31), (2, 3.88)]
"""

from typing import Dict, Iterable, List, Optional, Tuple
import logging

from .models import User, Module, clamp_rating

logger = logging.getLogger(__name__)


TOPIC_WEIGHT = 0.4
LITERACY_WEIGHT = 0.3
DIFFICULTY_WEIGHT = 0.2
DURATION_WEIGHT = 0.1

NEUTRAL_SCORE = 2.5

LITERACY_SCALE = 5.0
TOO_EASY_PENALTY = 0.3
TOO_HARD_PENALTY = 1.5
SHORT_MODULE_MINUTES = 7
LONG_MODULE_SCORE = 0.7


# ============================================================================
# Sub-scores
# ============================================================================

def topic_match(user: User, module: Module) -> float:
    return 1.0 if user.preferred_topic.lower() == module.scam_type.lower() else 0.0


def literacy_match(user: User, module: Module) -> float:
    return max(0.0, 1.0 - abs(user.digital_literacy - module.target_literacy) / LITERACY_SCALE)


def difficulty_fit(user: User, module: Module) -> float:
    gap = (module.difficulty - user.digital_literacy) / LITERACY_SCALE
    if gap <= 0:
        # at or below the user's level
        return 1.0 - (-gap) * TOO_EASY_PENALTY
    return max(0.0, 1.0 - gap * TOO_HARD_PENALTY)


def duration_preference(module: Module) -> float:
    return 1.0 if module.duration_min <= SHORT_MODULE_MINUTES else LONG_MODULE_SCORE


# ============================================================================
# ContentScorer
# ============================================================================

class ContentScorer:
    """
    Deterministic rule-based affinity between users and modules.

    Holds the module catalog and the user list keyed by id, in the order
    they were given. Unknown ids score NEUTRAL_SCORE instead of raising.
    """

    def __init__(self, modules: Iterable[Module], users: Iterable[User] = ()):
        self._modules: Dict[int, Module] = {m.module_id: m for m in modules}
        self._users: Dict[int, User] = {u.user_id: u for u in users}

        logger.info(
            f"ContentScorer initialized: modules={len(self._modules)}, users={len(self._users)}"
        )

    @property
    def modules(self) -> List[Module]:
        return list(self._modules.values())

    def update_users(self, users: Iterable[User]) -> None:
        """Replace the user list (e.g. after a registration)."""
        self._users = {u.user_id: u for u in users}
        logger.debug(f"ContentScorer users refreshed: {len(self._users)}")

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_module(self, module_id: int) -> Optional[Module]:
        return self._modules.get(module_id)

    def breakdown(self, user: Optional[User], module: Optional[Module]) -> Optional[Dict[str, float]]:
        """
        Return the four sub-scores and the raw weighted sum.

        Returns None when either side is unknown.
        """
        if user is None or module is None:
            return None

        topic = topic_match(user, module)
        literacy = literacy_match(user, module)
        difficulty = difficulty_fit(user, module)
        duration = duration_preference(module)

        raw = (
            TOPIC_WEIGHT * topic
            + LITERACY_WEIGHT * literacy
            + DIFFICULTY_WEIGHT * difficulty
            + DURATION_WEIGHT * duration
        )
        return {
            'topic': topic,
            'literacy': literacy,
            'difficulty': difficulty,
            'duration': duration,
            'raw': raw,
        }

    def score(self, user: Optional[User], module: Optional[Module]) -> float:
        """Affinity on the [1.0, 5.0] rating scale; NEUTRAL_SCORE if either is missing."""
        parts = self.breakdown(user, module)
        if parts is None:
            return NEUTRAL_SCORE
        return clamp_rating(1.0 + parts['raw'] * 4.0)

    def predict(self, user_id: int, module_id: int) -> float:
        """Score by id against the scorer's own catalogs."""
        return self.score(self._users.get(user_id), self._modules.get(module_id))

    def top_n(
        self,
        user: Optional[User],
        all_modules: Optional[Iterable[Module]] = None,
        n: int = 5
    ) -> List[Tuple[int, float]]:
        """
        Rank modules for a user by content score.

        Args:
            user: User to score for
            all_modules: Modules to rank (scorer's catalog if None)
            n: Number of results

        Returns:
            (module_id, score) pairs, best first; ties keep catalog order
        """
        modules = self.modules if all_modules is None else list(all_modules)
        scored = [(m.module_id, self.score(user, m)) for m in modules]
        scored.sort(key=lambda x: x[1], reverse=True)
        return scored[:max(n, 0)]
