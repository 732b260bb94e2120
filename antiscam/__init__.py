"""
Anti-Scam Recommendation Package.

This package contains the modelling side of the anti-scam module recommender:
- Collaborative filtering predictor served from trained factorization artifacts
- Baseline predictors (most popular, random) for comparison
- Rating-prediction evaluation (MAE, RMSE, R², Precision@K)

Submodules:
    cf: Collaborative filtering predictor, baselines, evaluation, logging
"""

__all__ = ['cf']
