"""
Service Startup Loader.

Loads users, modules, ratings and the collaborative model, then wires the
content scorer, hybrid ranker and orchestrator together. Any failure here
is fatal: the service must not start on missing or malformed data.

Example:
    >>> from service.recommender.config import load_config
    >>> from service.recommender.loader import build_service
    >>> service = build_service(load_config())
    >>> service.health()['modules']
    30
"""

from typing import Optional
import logging

from antiscam.cf.logging_utils import ServiceMetricsDB, format_params, setup_service_logger
from antiscam.cf.predictor import CollaborativePredictor, MatrixFactorizationPredictor
from .config import ServingConfig, load_config
from .content import ContentScorer
from .errors import StartupError
from .hybrid import HybridRanker
from .orchestrator import RecommendationService
from .stores import CsvModuleStore, CsvRatingStore, CsvUserStore, RatingIndex, UserDirectory

logger = logging.getLogger(__name__)


def build_service(
    config: Optional[ServingConfig] = None,
    predictor: Optional[CollaborativePredictor] = None
) -> RecommendationService:
    """
    Build a ready-to-serve RecommendationService.

    When config.log_dir is set, service log files are attached first so
    startup errors and degraded-mode warnings reach them.

    Args:
        config: Serving configuration (load_config() if None)
        predictor: Collaborative predictor to use instead of loading
            config.model_dir

    Returns:
        RecommendationService

    Raises:
        StartupError: Data files or model artifact missing or malformed,
            or the module catalog is empty
    """
    config = config or load_config()

    try:
        if config.log_dir:
            # handlers on the service.recommender parent catch every submodule logger
            setup_service_logger('recommender', log_dir=config.log_dir)

        user_store = CsvUserStore(str(config.users_path))
        module_store = CsvModuleStore(str(config.modules_path))
        rating_store = CsvRatingStore(str(config.ratings_path))

        users = user_store.load_all()
        modules = module_store.load_all()
        ratings = rating_store.load_all()

        if not modules:
            raise ValueError(f"Module catalog {config.modules_path} is empty")

        if predictor is None:
            predictor = MatrixFactorizationPredictor.load(config.model_dir)

        metrics_db = ServiceMetricsDB(config.metrics_db_path) if config.metrics_db_path else None
    except Exception as e:
        logger.error(f"Service startup failed: {e}")
        raise StartupError(f"Service startup failed: {e}") from e

    content = ContentScorer(modules, users)
    ranker = HybridRanker.from_config(predictor, content, config.ranker)

    service = RecommendationService(
        ranker=ranker,
        content=content,
        modules=modules,
        users=UserDirectory(users),
        ratings=RatingIndex.from_ratings(ratings),
        user_store=user_store,
        rating_store=rating_store,
        metrics_db=metrics_db,
        default_top_n=config.default_top_n
    )

    logger.info("Service ready: " + format_params({
        'users': len(users),
        'modules': len(modules),
        'ratings': len(ratings),
        'model_dir': config.model_dir,
        'collaborative_weight': ranker.collaborative_weight,
    }))
    return service
