"""
Domain Records for the Recommendation Service.

Users, modules and ratings are loaded from the data stores at startup;
ScoredCandidate is produced per ranking request and never persisted.

Example:
    >>> from service.recommender.models import User, Module
    >>> user = User(user_id=1, digital_literacy=3.0, age_group='25-34',
    ...             risk_profile='medium', preferred_topic='phishing')
    >>> Module(module_id=4, scam_type='phishing', difficulty=2,
    ...        target_literacy=3, duration_min=5).title
    'phishing Training Module'
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any

RISK_PROFILES = ('low', 'medium', 'high')

MIN_RATING = 1.0
MAX_RATING = 5.0


@dataclass(frozen=True)
class User:
    """Learner profile. digital_literacy is a continuous value in [1, 5]."""
    user_id: int
    digital_literacy: float
    age_group: str
    risk_profile: str
    preferred_topic: str
    user_cluster: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Module:
    """Static educational module attributes."""
    module_id: int
    scam_type: str
    difficulty: float
    target_literacy: float
    duration_min: float

    @property
    def title(self) -> str:
        return f"{self.scam_type} Training Module"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['title'] = self.title
        return data


@dataclass(frozen=True)
class Rating:
    user_id: int
    module_id: int
    rating: float


@dataclass(frozen=True)
class ScoredCandidate:
    """
    One ranked module with its score breakdown.

    collaborative_score is 0.0 when the candidate was scored content-only.
    """
    module_id: int
    hybrid_score: float
    collaborative_score: float
    content_score: float


def clamp_rating(value: float) -> float:
    """Clamp a score to the [1.0, 5.0] rating scale."""
    return max(MIN_RATING, min(MAX_RATING, float(value)))
