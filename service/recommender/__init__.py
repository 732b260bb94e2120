"""
Recommender Service Package.

This package provides the core recommendation engine for anti-scam
training modules.

Main components:
- ContentScorer: Deterministic attribute-based scoring (cold-start capable)
- HybridRanker: Weighted collaborative/content blend and top-N ranking
- RecommendationService: Per-request mode routing and content-only fallback
- UserDirectory / RatingIndex: Shared in-memory state
- Csv*Store: Durable user, module and rating storage
- build_service: Startup loader

Example:
    >>> from service.recommender import build_service
    >>> service = build_service()
    >>> result = service.recommend(user_id=12, top_n=5)
"""

from .models import User, Module, Rating, ScoredCandidate
from .errors import (
    RecommenderError,
    UserNotFoundError,
    TrainingModuleNotFoundError,
    InvalidRatingError,
    StartupError
)
from .config import RankerConfig, ServingConfig, load_config
from .content import ContentScorer
from .hybrid import HybridRanker, RankingOutcome
from .stores import (
    UserDirectory,
    RatingIndex,
    CsvUserStore,
    CsvModuleStore,
    CsvRatingStore
)
from .orchestrator import RecommendationService, RecommendationResult
from .loader import build_service

__all__ = [
    # Records
    'User',
    'Module',
    'Rating',
    'ScoredCandidate',

    # Errors
    'RecommenderError',
    'UserNotFoundError',
    'TrainingModuleNotFoundError',
    'InvalidRatingError',
    'StartupError',

    # Config
    'RankerConfig',
    'ServingConfig',
    'load_config',

    # Scoring & Ranking
    'ContentScorer',
    'HybridRanker',
    'RankingOutcome',

    # State & Storage
    'UserDirectory',
    'RatingIndex',
    'CsvUserStore',
    'CsvModuleStore',
    'CsvRatingStore',

    # Orchestration
    'RecommendationService',
    'RecommendationResult',
    'build_service',
]
