"""
Exception types raised by the recommendation service.

Per-request scoring failures never surface here; they are absorbed by the
orchestrator's content-only fallback. These cover lookups, input validation
and startup.
"""


class RecommenderError(Exception):
    """Base class for recommendation service errors."""


class UserNotFoundError(RecommenderError, KeyError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class TrainingModuleNotFoundError(RecommenderError, KeyError):
    def __init__(self, module_id: int):
        self.module_id = module_id
        super().__init__(f"Module {module_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class InvalidRatingError(RecommenderError, ValueError):
    """Rating outside the [1.0, 5.0] scale."""


class StartupError(RecommenderError):
    """Data or model could not be loaded; the service must not start."""
