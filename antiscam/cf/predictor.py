"""
Collaborative Predictor for the Serving Layer.

This module defines the contract the hybrid ranker consumes from the
collaborative side, an explicit outcome type for predictions, and the
matrix factorization predictor served from trained artifacts.

Artifact layout (one directory per trained model):
    model.json              {"model_type", "global_bias", "user_ids", "module_ids"}
    <model_type>_U.npy      user factors, shape (num_users, factors)
    <model_type>_V.npy      module factors, shape (num_modules, factors)
    <model_type>_user_bias.npy   optional, shape (num_users,)
    <model_type>_item_bias.npy   optional, shape (num_modules,)

Example:
    >>> from antiscam.cf.predictor import MatrixFactorizationPredictor, try_predict
    >>> predictor = MatrixFactorizationPredictor.load('artifacts/cf/mf')
    >>> predictor.predict(user_id=12, module_id=3)
    3.87
    >>> try_predict(predictor, user_id=99999, module_id=3).ok
    False
"""

from typing import Dict, List, Optional, Any
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
import numpy as np
import json
import math
import logging

logger = logging.getLogger(__name__)


MODEL_META_FILE = "model.json"


# ============================================================================
# Exceptions
# ============================================================================

class CollaborativePredictionError(RuntimeError):
    """Raised when the collaborative predictor cannot score a (user, module) pair."""

    def __init__(self, user_id: int, module_id: int, cause: Optional[BaseException] = None):
        self.user_id = user_id
        self.module_id = module_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Collaborative prediction failed for user {user_id}, module {module_id}{detail}"
        )


class UnknownEntityError(KeyError):
    """User or module was not seen when the model was trained."""


class ModelArtifactError(RuntimeError):
    """Serialized model artifact is missing or malformed."""


# ============================================================================
# Contract
# ============================================================================

class CollaborativePredictor(ABC):
    """
    Opaque collaborative predictor.

    Implementations return a rating-scale score for a (user, module) pair
    and may raise for users or modules they have never seen.
    """

    @abstractmethod
    def predict(self, user_id: int, module_id: int) -> float:
        """Predict the rating `user_id` would give `module_id`."""
        pass


@dataclass(frozen=True)
class PredictionOutcome:
    """Tagged result of a collaborative prediction."""
    ok: bool
    score: Optional[float] = None
    error: Optional[str] = None
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @classmethod
    def success(cls, score: float) -> 'PredictionOutcome':
        return cls(ok=True, score=float(score))

    @classmethod
    def failure(cls, error: str, cause: Optional[BaseException] = None) -> 'PredictionOutcome':
        return cls(ok=False, error=error, cause=cause)


def try_predict(predictor: CollaborativePredictor, user_id: int, module_id: int) -> PredictionOutcome:
    """
    Run a collaborative prediction and tag the result instead of raising.

    NaN or infinite scores (corrupt factors) count as failures.

    Args:
        predictor: Any object exposing predict(user_id, module_id)
        user_id: User ID
        module_id: Module ID

    Returns:
        PredictionOutcome.success(score) or PredictionOutcome.failure(message, cause)
    """
    try:
        score = float(predictor.predict(user_id, module_id))
        if not math.isfinite(score):
            raise ValueError(f"non-finite score {score}")
    except Exception as e:
        logger.debug(f"Collaborative prediction failed for user {user_id}, module {module_id}: {e}")
        return PredictionOutcome.failure(f"{type(e).__name__}: {e}", cause=e)
    return PredictionOutcome.success(score)


# ============================================================================
# MatrixFactorizationPredictor
# ============================================================================

class MatrixFactorizationPredictor(CollaborativePredictor):
    """
    Serve a trained matrix factorization model.

    Score formula:
        global_bias + user_bias[u] + item_bias[i] + U[u] · V[i]

    Scores are not clamped here; the hybrid ranker owns clamping.

    Example:
        >>> predictor = MatrixFactorizationPredictor.load('artifacts/cf/mf')
        >>> predictor.num_users, predictor.num_modules
        (1000, 30)
    """

    def __init__(
        self,
        U: np.ndarray,
        V: np.ndarray,
        user_ids: List[int],
        module_ids: List[int],
        global_bias: float = 0.0,
        user_bias: Optional[np.ndarray] = None,
        item_bias: Optional[np.ndarray] = None,
        model_type: str = "mf"
    ):
        """
        Initialize MatrixFactorizationPredictor.

        Args:
            U: User factor matrix (num_users, factors)
            V: Module factor matrix (num_modules, factors)
            user_ids: User IDs, row order of U
            module_ids: Module IDs, row order of V
            global_bias: Global rating offset
            user_bias: Optional per-user offsets
            item_bias: Optional per-module offsets
            model_type: Artifact prefix / model family name

        Raises:
            ModelArtifactError: If shapes are inconsistent or IDs repeat
        """
        U = np.asarray(U, dtype=np.float64)
        V = np.asarray(V, dtype=np.float64)

        user_ids = self._check_ids(user_ids, "user_ids")
        module_ids = self._check_ids(module_ids, "module_ids")

        if U.ndim != 2 or V.ndim != 2:
            raise ModelArtifactError(f"Factor matrices must be 2-D, got U{U.shape} V{V.shape}")
        if U.shape[1] != V.shape[1]:
            raise ModelArtifactError(
                f"Factor dimension mismatch: U has {U.shape[1]}, V has {V.shape[1]}"
            )
        if len(user_ids) != U.shape[0]:
            raise ModelArtifactError(
                f"user_ids has {len(user_ids)} entries but U has {U.shape[0]} rows"
            )
        if len(module_ids) != V.shape[0]:
            raise ModelArtifactError(
                f"module_ids has {len(module_ids)} entries but V has {V.shape[0]} rows"
            )

        self.U = U
        self.V = V
        self.model_type = model_type
        self.global_bias = float(global_bias)
        self.user_bias = self._check_bias(user_bias, U.shape[0], "user_bias")
        self.item_bias = self._check_bias(item_bias, V.shape[0], "item_bias")

        self.user_to_idx: Dict[int, int] = {uid: i for i, uid in enumerate(user_ids)}
        self.module_to_idx: Dict[int, int] = {mid: i for i, mid in enumerate(module_ids)}

    @staticmethod
    def _check_ids(ids: List[int], name: str) -> List[int]:
        if not isinstance(ids, (list, tuple, np.ndarray)):
            raise ModelArtifactError(f"{name} must be a list, got {type(ids).__name__}")
        try:
            ids = [int(x) for x in ids]
        except (TypeError, ValueError) as e:
            raise ModelArtifactError(f"{name} contains a non-integer ID: {e}") from e
        if len(set(ids)) != len(ids):
            duplicates = sorted({x for x in ids if ids.count(x) > 1})
            raise ModelArtifactError(f"{name} has duplicate IDs: {duplicates}")
        return ids

    @staticmethod
    def _check_bias(bias: Optional[np.ndarray], size: int, name: str) -> np.ndarray:
        if bias is None:
            return np.zeros(size)
        bias = np.asarray(bias, dtype=np.float64).reshape(-1)
        if bias.shape[0] != size:
            raise ModelArtifactError(f"{name} has {bias.shape[0]} entries, expected {size}")
        return bias

    @property
    def num_users(self) -> int:
        return self.U.shape[0]

    @property
    def num_modules(self) -> int:
        return self.V.shape[0]

    @property
    def factors(self) -> int:
        return self.U.shape[1]

    def knows_user(self, user_id: int) -> bool:
        return int(user_id) in self.user_to_idx

    def predict(self, user_id: int, module_id: int) -> float:
        """
        Predict rating for (user, module).

        Raises:
            UnknownEntityError: User or module not in the trained model
        """
        u_idx = self.user_to_idx.get(int(user_id))
        if u_idx is None:
            raise UnknownEntityError(f"User {user_id} not in collaborative model")

        i_idx = self.module_to_idx.get(int(module_id))
        if i_idx is None:
            raise UnknownEntityError(f"Module {module_id} not in collaborative model")

        score = (
            self.global_bias
            + self.user_bias[u_idx]
            + self.item_bias[i_idx]
            + float(self.U[u_idx] @ self.V[i_idx])
        )
        return float(score)

    # ========================================================================
    # Serialization
    # ========================================================================

    @classmethod
    def load(cls, model_dir: str) -> 'MatrixFactorizationPredictor':
        """
        Load a predictor from an artifact directory.

        Args:
            model_dir: Directory containing model.json and factor arrays

        Returns:
            MatrixFactorizationPredictor

        Raises:
            ModelArtifactError: Missing files, bad JSON, or inconsistent shapes
        """
        model_path = Path(model_dir)
        meta_path = model_path / MODEL_META_FILE

        if not meta_path.exists():
            raise ModelArtifactError(f"Model metadata not found: {meta_path}")

        try:
            with open(meta_path, 'r', encoding='utf-8') as f:
                meta = json.load(f)
        except json.JSONDecodeError as e:
            raise ModelArtifactError(f"Invalid model metadata {meta_path}: {e}") from e

        if not isinstance(meta, dict):
            raise ModelArtifactError(f"Model metadata {meta_path} must be a JSON object")

        missing = [key for key in ('user_ids', 'module_ids') if key not in meta]
        if missing:
            raise ModelArtifactError(f"Model metadata missing keys: {missing}")

        model_type = meta.get('model_type', 'mf')

        def _load_array(suffix: str, required: bool = True) -> Optional[np.ndarray]:
            path = model_path / f"{model_type}_{suffix}.npy"
            if not path.exists():
                if required:
                    raise ModelArtifactError(f"Model artifact not found: {path}")
                return None
            try:
                return np.load(path, allow_pickle=False)
            except (ValueError, OSError, EOFError) as e:
                raise ModelArtifactError(f"Could not read {path}: {e}") from e

        predictor = cls(
            U=_load_array('U'),
            V=_load_array('V'),
            user_ids=meta['user_ids'],
            module_ids=meta['module_ids'],
            global_bias=meta.get('global_bias', 0.0),
            user_bias=_load_array('user_bias', required=False),
            item_bias=_load_array('item_bias', required=False),
            model_type=model_type
        )

        logger.info(
            f"Loaded {model_type} model from {model_path}: "
            f"users={predictor.num_users}, modules={predictor.num_modules}, "
            f"factors={predictor.factors}"
        )
        return predictor

    def save(self, model_dir: str) -> Path:
        """Write the predictor to an artifact directory (inverse of load)."""
        model_path = Path(model_dir)
        model_path.mkdir(parents=True, exist_ok=True)

        idx_to_user = sorted(self.user_to_idx, key=self.user_to_idx.get)
        idx_to_module = sorted(self.module_to_idx, key=self.module_to_idx.get)

        np.save(model_path / f"{self.model_type}_U.npy", self.U)
        np.save(model_path / f"{self.model_type}_V.npy", self.V)
        np.save(model_path / f"{self.model_type}_user_bias.npy", self.user_bias)
        np.save(model_path / f"{self.model_type}_item_bias.npy", self.item_bias)

        with open(model_path / MODEL_META_FILE, 'w', encoding='utf-8') as f:
            json.dump({
                'model_type': self.model_type,
                'global_bias': self.global_bias,
                'user_ids': idx_to_user,
                'module_ids': idx_to_module,
            }, f, indent=2)

        return model_path

    def get_model_info(self) -> Dict[str, Any]:
        """Get info about the loaded model."""
        return {
            'model_type': self.model_type,
            'num_users': self.num_users,
            'num_modules': self.num_modules,
            'factors': self.factors,
            'global_bias': self.global_bias,
        }
