"""
Serving Configuration.

Defaults live in the dataclasses below. load_config() overlays the
`recommender:` section of a YAML file, then environment variables:

    ANTISCAM_DATA_DIR       directory holding users.csv, modules.csv, ratings.csv
    ANTISCAM_MODEL_DIR      collaborative model artifact directory
    ANTISCAM_COLLAB_WEIGHT  collaborative weight of the hybrid blend
    ANTISCAM_LOG_DIR        directory for service log files

Example:
    >>> from service.recommender.config import load_config
    >>> config = load_config('config/serving_config.yaml')
    >>> config.ranker.collaborative_weight
    0.7
"""

from typing import Dict, Optional, Any
from dataclasses import dataclass, field
from pathlib import Path
import logging
import os

import yaml

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config/serving_config.yaml"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class RankerConfig:
    """Configuration for HybridRanker."""
    collaborative_weight: float = 0.7  # content weight is 1 - this


@dataclass
class ServingConfig:
    """Configuration for the recommendation service."""
    data_dir: str = "data"
    users_file: str = "users.csv"
    modules_file: str = "modules.csv"
    ratings_file: str = "ratings.csv"

    model_dir: str = "artifacts/cf/mf"

    default_top_n: int = 5
    ranker: RankerConfig = field(default_factory=RankerConfig)

    # Optional SQLite request log (disabled when None)
    metrics_db_path: Optional[str] = None

    # Service log files via setup_service_logger (disabled when None)
    log_dir: Optional[str] = None

    @property
    def users_path(self) -> Path:
        return Path(self.data_dir) / self.users_file

    @property
    def modules_path(self) -> Path:
        return Path(self.data_dir) / self.modules_file

    @property
    def ratings_path(self) -> Path:
        return Path(self.data_dir) / self.ratings_file


# ============================================================================
# Loading
# ============================================================================

def _from_dict(data: Dict[str, Any]) -> ServingConfig:
    defaults = ServingConfig()
    ranker_cfg = data.get('ranker', {}) or {}

    return ServingConfig(
        data_dir=str(data.get('data_dir', defaults.data_dir)),
        users_file=data.get('users_file', defaults.users_file),
        modules_file=data.get('modules_file', defaults.modules_file),
        ratings_file=data.get('ratings_file', defaults.ratings_file),
        model_dir=str(data.get('model_dir', defaults.model_dir)),
        default_top_n=int(data.get('default_top_n', defaults.default_top_n)),
        ranker=RankerConfig(
            collaborative_weight=float(
                ranker_cfg.get('collaborative_weight', defaults.ranker.collaborative_weight)
            )
        ),
        metrics_db_path=data.get('metrics_db_path', defaults.metrics_db_path),
        log_dir=data.get('log_dir', defaults.log_dir),
    )


def _apply_env_overrides(config: ServingConfig) -> ServingConfig:
    data_dir = os.getenv("ANTISCAM_DATA_DIR")
    if data_dir:
        config.data_dir = data_dir

    model_dir = os.getenv("ANTISCAM_MODEL_DIR")
    if model_dir:
        config.model_dir = model_dir

    log_dir = os.getenv("ANTISCAM_LOG_DIR")
    if log_dir:
        config.log_dir = log_dir

    weight = os.getenv("ANTISCAM_COLLAB_WEIGHT")
    if weight:
        try:
            config.ranker.collaborative_weight = float(weight)
        except ValueError:
            logger.warning(f"Ignoring invalid ANTISCAM_COLLAB_WEIGHT={weight!r}")

    return config


def load_config(path: Optional[str] = None) -> ServingConfig:
    """
    Load serving configuration.

    Args:
        path: YAML file (DEFAULT_CONFIG_PATH if None)

    Returns:
        ServingConfig; defaults if the file is missing or unreadable
    """
    config_path = Path(path or DEFAULT_CONFIG_PATH)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        config = _from_dict(data.get('recommender', {}) or {})
        logger.info(f"Loaded serving config from {config_path}")
    except (OSError, yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        config = ServingConfig()

    return _apply_env_overrides(config)
