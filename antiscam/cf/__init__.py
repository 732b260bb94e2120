"""
CF (Collaborative Filtering) Module.

This module provides everything the serving layer needs from the
collaborative side of the recommender:
- Predictor contract and explicit prediction outcomes
- Matrix factorization predictor loaded from serialized artifacts
- Baseline predictors
- Evaluation metrics for rating prediction
- Service logging and request metrics

Submodules:
    predictor: CollaborativePredictor, MatrixFactorizationPredictor, try_predict
    baselines: MostPopularBaseline, RandomBaseline
    evaluation: mae, rmse, r_squared, precision_at_k, evaluate_predictor
    logging_utils: setup_service_logger, ServiceMetricsDB

Example:
    >>> from antiscam.cf.predictor import MatrixFactorizationPredictor, try_predict
    >>> predictor = MatrixFactorizationPredictor.load('artifacts/cf/mf')
    >>> outcome = try_predict(predictor, user_id=12, module_id=3)
    >>> outcome.ok, outcome.score
"""

# Note: submodules are imported explicitly by callers:
#   from antiscam.cf.predictor import MatrixFactorizationPredictor
#   from antiscam.cf.baselines import MostPopularBaseline
#   from antiscam.cf.evaluation import evaluate_predictor
#   from antiscam.cf.logging_utils import setup_service_logger

__all__ = [
    'predictor',
    'baselines',
    'evaluation',
    'logging_utils',
]
