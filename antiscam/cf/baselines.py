"""
Baseline Predictors for Rating Prediction.

This module provides baseline predictors for comparison with the
collaborative model:
- MostPopularBaseline: per-module mean rating, global mean for unseen modules
- RandomBaseline: uniform random rating within the observed range

Both satisfy the CollaborativePredictor contract, so they can also be
plugged into the hybrid ranker.

Example:
    >>> from antiscam.cf.baselines import MostPopularBaseline, RandomBaseline
    >>> popular = MostPopularBaseline(train_ratings)
    >>> popular.predict(user_id=1, module_id=4)
    3.6
    >>> RandomBaseline(1.0, 5.0).predict_many([(1, 4), (2, 7)])
"""

from typing import Iterable, List, Tuple, Union, Any
import numpy as np
import pandas as pd
import logging

from .predictor import CollaborativePredictor

logger = logging.getLogger(__name__)


RATING_COLUMNS = ['user_id', 'module_id', 'rating']


def as_ratings_frame(ratings: Union[pd.DataFrame, Iterable[Any]]) -> pd.DataFrame:
    """
    Normalize ratings into a DataFrame with user_id, module_id, rating columns.

    Accepts a DataFrame with those columns, or any iterable of records
    exposing user_id / module_id / rating attributes.
    """
    if isinstance(ratings, pd.DataFrame):
        missing = [c for c in RATING_COLUMNS if c not in ratings.columns]
        if missing:
            raise ValueError(f"Ratings frame missing columns: {missing}")
        return ratings[RATING_COLUMNS].copy()

    rows = [(r.user_id, r.module_id, float(r.rating)) for r in ratings]
    return pd.DataFrame(rows, columns=RATING_COLUMNS)


# ============================================================================
# Most Popular
# ============================================================================

class MostPopularBaseline(CollaborativePredictor):
    """
    Predict a module's mean training rating, ignoring the user.

    Modules without training ratings get the global mean.
    """

    name = "Most Popular Baseline"

    def __init__(self, ratings: Union[pd.DataFrame, Iterable[Any]]):
        """
        Initialize MostPopularBaseline.

        Args:
            ratings: Training ratings (DataFrame or Rating records)

        Raises:
            ValueError: If there are no training ratings
        """
        df = as_ratings_frame(ratings)
        if df.empty:
            raise ValueError("MostPopularBaseline needs at least one training rating")

        self.module_means = df.groupby('module_id')['rating'].mean().to_dict()
        self.global_mean = float(df['rating'].mean())

        logger.info(
            f"{self.name}: {len(self.module_means)} modules, "
            f"global mean={self.global_mean:.4f}"
        )

    @property
    def known_modules(self) -> int:
        return len(self.module_means)

    def predict(self, user_id: int, module_id: int) -> float:
        return float(self.module_means.get(module_id, self.global_mean))

    def predict_many(self, pairs: Iterable[Tuple[int, int]]) -> List[float]:
        return [self.predict(u, m) for u, m in pairs]


# ============================================================================
# Random
# ============================================================================

class RandomBaseline(CollaborativePredictor):
    """
    Predict a uniform random rating in [min_rating, max_rating].

    Seeded, so a fresh instance replays the same sequence.
    """

    name = "Random Baseline"

    def __init__(self, min_rating: float = 1.0, max_rating: float = 5.0, seed: int = 42):
        if min_rating > max_rating:
            raise ValueError(f"min_rating {min_rating} > max_rating {max_rating}")

        self.min_rating = float(min_rating)
        self.max_rating = float(max_rating)
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    @classmethod
    def from_ratings(cls, ratings: Union[pd.DataFrame, Iterable[Any]], seed: int = 42) -> 'RandomBaseline':
        """Build with the rating range observed in `ratings`."""
        df = as_ratings_frame(ratings)
        if df.empty:
            raise ValueError("RandomBaseline.from_ratings needs at least one rating")
        return cls(float(df['rating'].min()), float(df['rating'].max()), seed=seed)

    def predict(self, user_id: int, module_id: int) -> float:
        return float(self._rng.uniform(self.min_rating, self.max_rating))

    def predict_many(self, pairs: Iterable[Tuple[int, int]]) -> List[float]:
        return [self.predict(u, m) for u, m in pairs]
