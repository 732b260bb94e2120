"""
Response and Request Schemas.

Pydantic models for the scoring contract exposed to clients. Every
recommendation item carries moduleId, hybridScore, collaborativeScore and
contentScore so clients can audit the ranking.

Fields are snake_case in Python and camelCase on the wire.

Example:
    >>> from service.schemas import build_recommendation_response
    >>> result = service.recommend(user_id=12)
    >>> response = build_recommendation_response(result, service.get_user(12), service.modules)
    >>> response.model_dump(by_alias=True)['recommendations'][0]['hybridScore']
    4.41
"""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from service.recommender.models import Module, User
from service.recommender.orchestrator import RecommendationResult


class APIBaseModel(BaseModel):
    """Base model with camelCase aliases; accepts either name on input."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# Responses
# ============================================================================

class UserProfile(APIBaseModel):
    digital_literacy: float
    preferred_topic: str
    age_group: str
    risk_profile: str

    @classmethod
    def from_user(cls, user: User) -> 'UserProfile':
        return cls(
            digital_literacy=user.digital_literacy,
            preferred_topic=user.preferred_topic,
            age_group=user.age_group,
            risk_profile=user.risk_profile,
        )


class RecommendationItem(APIBaseModel):
    """One ranked module with its score breakdown."""
    module_id: int
    title: str
    hybrid_score: float
    collaborative_score: float = Field(description="0.0 when ranked content-only")
    content_score: float
    difficulty: float
    scam_type: str
    target_literacy: float
    duration_min: float


class RecommendationResponse(APIBaseModel):
    user_id: int
    user_profile: UserProfile
    recommendations: List[RecommendationItem]
    mode: str
    is_fallback: bool


class ModuleDetail(APIBaseModel):
    module_id: int
    title: str
    scam_type: str
    difficulty: float
    target_literacy: float
    duration_min: float

    @classmethod
    def from_module(cls, module: Module) -> 'ModuleDetail':
        return cls(**module.to_dict())


class HealthStatus(APIBaseModel):
    status: str
    users: int
    modules: int
    ratings: int
    model_type: Optional[str] = None
    collaborative_weight: Optional[float] = None


# ============================================================================
# Requests
# ============================================================================

class UserRegistrationRequest(APIBaseModel):
    age_group: str = Field(..., min_length=1)
    digital_literacy: float = Field(..., ge=1.0, le=5.0)
    preferred_topic: str = Field(..., min_length=1)
    risk_profile: Optional[str] = Field(default=None, pattern=r'^(low|medium|high)$')


class RatingSubmissionRequest(APIBaseModel):
    user_id: int = Field(..., ge=1)
    module_id: int = Field(..., ge=1)
    rating: float = Field(..., ge=1.0, le=5.0)


# ============================================================================
# Builders
# ============================================================================

def build_recommendation_response(
    result: RecommendationResult,
    user: User,
    modules: Mapping[int, Module]
) -> RecommendationResponse:
    """
    Join ranked candidates with module attributes.

    Candidates whose module is missing from `modules` are skipped.
    """
    items: List[RecommendationItem] = []
    for candidate in result.candidates:
        module = modules.get(candidate.module_id)
        if module is None:
            continue
        items.append(RecommendationItem(
            module_id=module.module_id,
            title=module.title,
            hybrid_score=candidate.hybrid_score,
            collaborative_score=candidate.collaborative_score,
            content_score=candidate.content_score,
            difficulty=module.difficulty,
            scam_type=module.scam_type,
            target_literacy=module.target_literacy,
            duration_min=module.duration_min,
        ))

    return RecommendationResponse(
        user_id=result.user_id,
        user_profile=UserProfile.from_user(user),
        recommendations=items,
        mode=result.mode,
        is_fallback=result.is_fallback,
    )


def build_health_status(health: Dict[str, Any]) -> HealthStatus:
    return HealthStatus(**health)
