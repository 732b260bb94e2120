"""
Logging Utilities for the Recommendation Service.

This module provides:
- Service logger setup (file, error file and console handlers)
- Format helpers for parameters and metrics
- A SQLite request log for recommendation calls

Example:
    >>> from antiscam.cf.logging_utils import setup_service_logger, ServiceMetricsDB
    >>> logger = setup_service_logger('recommender', log_dir='logs/service')
    >>> db = ServiceMetricsDB('logs/service_metrics.db')
    >>> db.log_request(user_id=12, mode='hybrid', is_fallback=False,
    ...                num_recommendations=5, latency_ms=1.8)
"""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Any
from contextlib import contextmanager
import threading

# ============================================================================
# Constants
# ============================================================================

SERVICE_LOG_DIR = "logs/service"
SERVICE_DB_PATH = "logs/service_metrics.db"

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


# ============================================================================
# Service Logger Setup
# ============================================================================

def setup_service_logger(
    name: str = 'recommender',
    log_dir: str = SERVICE_LOG_DIR,
    console: bool = True
) -> logging.Logger:
    """
    Setup logger for the recommendation service.

    Args:
        name: Logger name, attached under the 'service' namespace
        log_dir: Directory for log files (created if missing)
        console: Whether to also log to console

    Returns:
        Configured logger

    Example:
        >>> logger = setup_service_logger('recommender', log_dir='logs/service')
        >>> logger.info("Service started | modules=30, users=1000")
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(f'service.{name}')
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    # File handler
    fh = logging.FileHandler(Path(log_dir) / f'{name}.log', encoding='utf-8')
    fh.setLevel(logging.INFO)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    # Error file handler
    eh = logging.FileHandler(Path(log_dir) / 'error.log', encoding='utf-8')
    eh.setLevel(logging.ERROR)
    eh.setFormatter(formatter)
    logger.addHandler(eh)

    if console:
        ch = logging.StreamHandler()
        ch.setLevel(logging.INFO)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

    return logger


# ============================================================================
# Format Helpers
# ============================================================================

def format_params(params: Dict[str, Any]) -> str:
    """Format parameters for logging."""
    items = []
    for k, v in params.items():
        if isinstance(v, float):
            items.append(f"{k}={v:.4g}")
        else:
            items.append(f"{k}={v}")
    return ", ".join(items)


def format_metrics(metrics: Dict[str, Optional[float]]) -> str:
    """Format metrics for logging, skipping missing values."""
    return ", ".join(f"{k}={v:.4f}" for k, v in metrics.items() if v is not None)


# ============================================================================
# Service Metrics Database
# ============================================================================

class ServiceMetricsDB:
    """
    SQLite request log for the recommendation service.

    One row per recommend() call: mode (hybrid / content_only), whether the
    hybrid path degraded to content-only, result size, latency and error.

    Example:
        >>> db = ServiceMetricsDB('logs/service_metrics.db')
        >>> db.log_request(user_id=7, mode='content_only', is_fallback=False,
        ...                num_recommendations=5, latency_ms=0.9)
        >>> db.get_request_stats()['total_requests']
        1
    """

    def __init__(self, db_path: str = SERVICE_DB_PATH):
        self.db_path = str(db_path)
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._create_tables()

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _create_tables(self):
        """Create database tables if they don't exist."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS requests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TIMESTAMP,
                    user_id INTEGER,
                    mode TEXT,
                    is_fallback BOOLEAN,
                    num_recommendations INT,
                    latency_ms REAL,
                    error TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_requests_user
                ON requests(user_id)
            """)
            conn.commit()

    def log_request(
        self,
        user_id: int,
        mode: str,
        is_fallback: bool,
        num_recommendations: int,
        latency_ms: float,
        error: Optional[str] = None
    ):
        """
        Log a recommendation request.

        Args:
            user_id: User ID
            mode: 'hybrid' or 'content_only'
            is_fallback: Whether the hybrid path degraded to content-only
            num_recommendations: Number of items returned
            latency_ms: Request latency in milliseconds
            error: Error message of the failed hybrid attempt (if any)
        """
        with self._lock, self._get_connection() as conn:
            conn.execute("""
                INSERT INTO requests
                (timestamp, user_id, mode, is_fallback, num_recommendations,
                 latency_ms, error)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                datetime.now().isoformat(),
                user_id,
                mode,
                is_fallback,
                num_recommendations,
                latency_ms,
                error
            ))
            conn.commit()

    def get_request_stats(self, user_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Get request statistics over all logged requests.

        Returns:
            Dict with total_requests, fallback_count, fallback_rate,
            avg_latency_ms, p95_latency_ms and a per-mode count dict
        """
        where_clause = "WHERE user_id = ?" if user_id is not None else ""
        params = (user_id,) if user_id is not None else ()

        with self._get_connection() as conn:
            stats = conn.execute(f"""
                SELECT
                    COUNT(*) as total_requests,
                    AVG(latency_ms) as avg_latency_ms,
                    SUM(CASE WHEN is_fallback = 1 THEN 1 ELSE 0 END) as fallback_count
                FROM requests
                {where_clause}
            """, params).fetchone()

            latencies = [
                row[0] for row in conn.execute(f"""
                    SELECT latency_ms FROM requests
                    {where_clause}
                    ORDER BY latency_ms
                """, params).fetchall()
            ]

            modes = conn.execute(f"""
                SELECT mode, COUNT(*) as n FROM requests
                {where_clause}
                GROUP BY mode
            """, params).fetchall()

        total = stats['total_requests'] or 0
        fallback_count = stats['fallback_count'] or 0
        p95 = latencies[min(int(len(latencies) * 0.95), len(latencies) - 1)] if latencies else 0.0

        return {
            'total_requests': total,
            'fallback_count': fallback_count,
            'fallback_rate': fallback_count / total if total else 0.0,
            'avg_latency_ms': stats['avg_latency_ms'] or 0.0,
            'p95_latency_ms': p95,
            'by_mode': {row['mode']: row['n'] for row in modes},
        }
