"""
Anti-Scam Recommendation Service Package.

This package provides the serving layer for module recommendations.

Components:
- recommender: Core recommendation engine
    - ContentScorer: Rule-based profile/module affinity
    - HybridRanker: Collaborative + content blend
    - RecommendationService: Hybrid vs content-only routing with fallback
    - build_service: Startup wiring from configuration
- schemas: Pydantic response/request models for the scoring contract

Usage:
    from service.recommender import build_service, load_config

    service = build_service(load_config('config/serving_config.yaml'))
    result = service.recommend(user_id=12, top_n=5)
"""

from service.recommender import (
    ContentScorer,
    HybridRanker,
    RecommendationService,
    RecommendationResult,
    build_service,
    load_config,
)

__all__ = [
    'ContentScorer',
    'HybridRanker',
    'RecommendationService',
    'RecommendationResult',
    'build_service',
    'load_config',
]

__version__ = "1.0.0"
