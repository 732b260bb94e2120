"""
Rating Prediction Evaluation.

This module provides offline metrics for rating predictors:
- MAE / RMSE: pointwise rating error
- R²: coefficient of determination (0.0 when actual ratings have no variance)
- Precision@K: share of each user's top-K test modules that are relevant

Relevance for Precision@K is `rating >= threshold`, where the threshold
defaults to the median of all test ratings.

Example:
    >>> from antiscam.cf.evaluation import evaluate_predictor, metrics_to_frame
    >>> mf = evaluate_predictor('Matrix Factorization', predictor, test_ratings,
    ...                         with_precision=True)
    >>> popular = evaluate_predictor('Most Popular Baseline', baseline, test_ratings)
    >>> print(metrics_to_frame([mf, popular]))
"""

from typing import Dict, Iterable, List, Optional, Sequence, Union, Any
from dataclasses import dataclass, asdict
import numpy as np
import pandas as pd
import logging

from .baselines import as_ratings_frame
from .logging_utils import format_metrics

logger = logging.getLogger(__name__)


# ============================================================================
# Pointwise Metrics
# ============================================================================

def _as_pair(actual: Sequence[float], predicted: Sequence[float]):
    a = np.asarray(actual, dtype=np.float64)
    p = np.asarray(predicted, dtype=np.float64)
    if a.shape != p.shape:
        raise ValueError(
            f"actual and predicted must have equal length, got {a.shape[0]} and {p.shape[0]}"
        )
    if a.size == 0:
        raise ValueError("Cannot compute metric on empty inputs")
    return a, p


def mae(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """Mean Absolute Error."""
    a, p = _as_pair(actual, predicted)
    return float(np.mean(np.abs(a - p)))


def rmse(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """Root Mean Squared Error."""
    a, p = _as_pair(actual, predicted)
    return float(np.sqrt(np.mean((a - p) ** 2)))


def r_squared(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """
    Coefficient of determination.

    Formula:
        R² = 1 - SS_res / SS_tot

    Returns 0.0 when SS_tot is 0 (constant actual ratings).
    """
    a, p = _as_pair(actual, predicted)
    ss_total = float(np.sum((a - a.mean()) ** 2))
    if ss_total == 0:
        return 0.0
    ss_residual = float(np.sum((a - p) ** 2))
    return 1.0 - ss_residual / ss_total


# ============================================================================
# Ranking Metric
# ============================================================================

def precision_at_k(
    predictor: Any,
    test_ratings: Union[pd.DataFrame, Iterable[Any]],
    k: int = 5,
    relevance_threshold: Optional[float] = None
) -> float:
    """
    Precision@K over the modules present in the test set.

    For each test user, every test-set module is scored with the predictor,
    the top K form the recommendation list, and precision is
    |top-K ∩ relevant| / K. Users with no relevant test ratings are skipped.

    Args:
        predictor: Object exposing predict(user_id, module_id)
        test_ratings: Held-out ratings
        k: Cutoff
        relevance_threshold: Minimum rating to count as relevant
            (median of test ratings when None)

    Returns:
        Mean precision over users with at least one relevant item (0.0 if none)
    """
    if k <= 0:
        raise ValueError(f"k must be positive, got {k}")

    df = as_ratings_frame(test_ratings)
    if df.empty:
        return 0.0

    if relevance_threshold is None:
        relevance_threshold = float(df['rating'].median())

    all_modules = list(dict.fromkeys(df['module_id'].tolist()))
    scores: List[float] = []

    for user_id, group in df.groupby('user_id', sort=False):
        relevant = set(group.loc[group['rating'] >= relevance_threshold, 'module_id'])
        if not relevant:
            continue

        predictions = [(m, predictor.predict(user_id, m)) for m in all_modules]
        predictions.sort(key=lambda x: x[1], reverse=True)
        top_k = {m for m, _ in predictions[:k]}

        scores.append(len(top_k & relevant) / k)

    return float(np.mean(scores)) if scores else 0.0


# ============================================================================
# Model Comparison
# ============================================================================

@dataclass
class ModelMetrics:
    """Evaluation result for a single predictor."""
    model_name: str
    mae: float
    rmse: float
    r_squared: float
    precision_at_5: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def evaluate_predictor(
    name: str,
    predictor: Any,
    test_ratings: Union[pd.DataFrame, Iterable[Any]],
    with_precision: bool = False
) -> ModelMetrics:
    """
    Evaluate a predictor on held-out ratings.

    Args:
        name: Display name
        predictor: Object exposing predict(user_id, module_id)
        test_ratings: Held-out ratings
        with_precision: Also compute Precision@5

    Returns:
        ModelMetrics
    """
    df = as_ratings_frame(test_ratings)
    actual = df['rating'].to_numpy(dtype=np.float64)
    predicted = [
        predictor.predict(u, m)
        for u, m in zip(df['user_id'].tolist(), df['module_id'].tolist())
    ]

    result = ModelMetrics(
        model_name=name,
        mae=mae(actual, predicted),
        rmse=rmse(actual, predicted),
        r_squared=r_squared(actual, predicted),
        precision_at_5=precision_at_k(predictor, df, k=5) if with_precision else None
    )

    logger.info(
        f"{name}: " + format_metrics({
            'mae': result.mae,
            'rmse': result.rmse,
            'r2': result.r_squared,
            'p@5': result.precision_at_5,
        })
    )
    return result


def metrics_to_frame(metrics: List[ModelMetrics]) -> pd.DataFrame:
    """Tabulate ModelMetrics, one row per model."""
    columns = ['model_name', 'mae', 'rmse', 'r_squared', 'precision_at_5']
    return pd.DataFrame([m.to_dict() for m in metrics], columns=columns)
