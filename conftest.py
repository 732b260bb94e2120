"""
Shared pytest fixtures and collaborative predictor test doubles.
"""

from typing import Dict, List, Optional, Tuple

import pytest

from antiscam.cf.predictor import CollaborativePredictor, UnknownEntityError
from service.recommender.content import ContentScorer
from service.recommender.hybrid import HybridRanker
from service.recommender.models import Module, Rating, User
from service.recommender.orchestrator import RecommendationService
from service.recommender.stores import RatingIndex, UserDirectory


# ============================================================================
# Test Doubles
# ============================================================================

class ConstantPredictor(CollaborativePredictor):
    """Returns a fixed score and counts calls."""

    def __init__(self, score: float = 4.0):
        self.score = score
        self.calls: List[Tuple[int, int]] = []

    def predict(self, user_id: int, module_id: int) -> float:
        self.calls.append((user_id, module_id))
        return self.score


class TablePredictor(CollaborativePredictor):
    """Looks scores up in a table; unknown pairs raise like a real model."""

    def __init__(self, table: Dict[Tuple[int, int], float]):
        self.table = table
        self.calls: List[Tuple[int, int]] = []

    def predict(self, user_id: int, module_id: int) -> float:
        self.calls.append((user_id, module_id))
        if (user_id, module_id) not in self.table:
            raise UnknownEntityError(f"({user_id}, {module_id}) not in model")
        return self.table[(user_id, module_id)]


class RaisingPredictor(CollaborativePredictor):
    """Always fails, optionally only for some users."""

    def __init__(self, fail_users: Optional[set] = None, score: float = 4.0):
        self.fail_users = fail_users
        self.score = score
        self.calls = 0

    def predict(self, user_id: int, module_id: int) -> float:
        self.calls += 1
        if self.fail_users is None or user_id in self.fail_users:
            raise RuntimeError(f"model has no factors for user {user_id}")
        return self.score


# ============================================================================
# Catalog Fixtures
# ============================================================================

@pytest.fixture
def modules() -> List[Module]:
    return [
        Module(module_id=1, scam_type='phishing', difficulty=2, target_literacy=3, duration_min=5),
        Module(module_id=2, scam_type='romance', difficulty=4, target_literacy=4, duration_min=10),
        Module(module_id=3, scam_type='investment', difficulty=1, target_literacy=2, duration_min=6),
        Module(module_id=4, scam_type='Phishing', difficulty=5, target_literacy=5, duration_min=12),
        Module(module_id=5, scam_type='impersonation', difficulty=3, target_literacy=3, duration_min=7),
    ]


@pytest.fixture
def users() -> List[User]:
    return [
        User(user_id=1, digital_literacy=3.0, age_group='25-34', risk_profile='medium',
             preferred_topic='phishing', user_cluster=4),
        User(user_id=2, digital_literacy=4.5, age_group='35-44', risk_profile='low',
             preferred_topic='romance', user_cluster=5),
        User(user_id=3, digital_literacy=1.5, age_group='65+', risk_profile='high',
             preferred_topic='investment', user_cluster=2),
    ]


@pytest.fixture
def ratings() -> List[Rating]:
    # user 3 has no history
    return [
        Rating(user_id=1, module_id=2, rating=4.0),
        Rating(user_id=1, module_id=3, rating=2.0),
        Rating(user_id=2, module_id=1, rating=3.5),
    ]


@pytest.fixture
def content_scorer(modules, users) -> ContentScorer:
    return ContentScorer(modules, users)


@pytest.fixture
def constant_predictor() -> ConstantPredictor:
    return ConstantPredictor(score=4.0)


@pytest.fixture
def make_service(modules, users, ratings):
    """Factory: build a RecommendationService around any predictor."""

    def _make(predictor: CollaborativePredictor, collaborative_weight: float = 0.7,
              **kwargs) -> RecommendationService:
        content = ContentScorer(modules, users)
        ranker = HybridRanker(predictor, content, collaborative_weight=collaborative_weight)
        return RecommendationService(
            ranker=ranker,
            content=content,
            modules=modules,
            users=UserDirectory(users),
            ratings=RatingIndex.from_ratings(ratings),
            **kwargs
        )

    return _make
