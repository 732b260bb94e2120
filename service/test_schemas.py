"""
Tests for the response/request schemas.

Usage:
    pytest service/test_schemas.py
"""

import pydantic
import pytest

from conftest import ConstantPredictor
from service.schemas import (
    ModuleDetail,
    RatingSubmissionRequest,
    UserRegistrationRequest,
    build_health_status,
    build_recommendation_response,
)


def test_recommendation_response_carries_scoring_contract(make_service):
    service = make_service(ConstantPredictor(4.0))
    result = service.recommend(1, top_n=3)

    response = build_recommendation_response(result, service.get_user(1), service.modules)
    payload = response.model_dump(by_alias=True)

    assert payload['userId'] == 1
    assert payload['mode'] == 'hybrid'
    assert payload['isFallback'] is False
    assert payload['userProfile'] == {
        'digitalLiteracy': 3.0,
        'preferredTopic': 'phishing',
        'ageGroup': '25-34',
        'riskProfile': 'medium',
    }
    assert len(payload['recommendations']) == 3

    first = payload['recommendations'][0]
    for key in ('moduleId', 'hybridScore', 'collaborativeScore', 'contentScore'):
        assert key in first
    assert first['moduleId'] == result.candidates[0].module_id
    assert first['hybridScore'] == result.candidates[0].hybrid_score
    assert first['title'].endswith('Training Module')


def test_content_only_items_report_zero_collaborative_score(make_service):
    service = make_service(ConstantPredictor(4.0))
    result = service.recommend(3)

    response = build_recommendation_response(result, service.get_user(3), service.modules)

    assert all(item.collaborative_score == 0.0 for item in response.recommendations)


def test_module_detail(modules):
    detail = ModuleDetail.from_module(modules[0]).model_dump(by_alias=True)
    assert detail['title'] == 'phishing Training Module'
    assert detail['durationMin'] == 5


def test_health_status(make_service):
    status = build_health_status(make_service(ConstantPredictor()).health())
    assert status.modules == 5


def test_registration_request_validation():
    request = UserRegistrationRequest.model_validate(
        {'ageGroup': '25-34', 'digitalLiteracy': 2.5, 'preferredTopic': 'phishing'}
    )
    assert request.risk_profile is None

    with pytest.raises(pydantic.ValidationError):
        UserRegistrationRequest(age_group='25-34', digital_literacy=6, preferred_topic='phishing')
    with pytest.raises(pydantic.ValidationError):
        UserRegistrationRequest(age_group='25-34', digital_literacy=3, preferred_topic='phishing',
                                risk_profile='extreme')


def test_rating_request_validation():
    assert RatingSubmissionRequest(user_id=1, module_id=2, rating=4.5).rating == 4.5
    with pytest.raises(pydantic.ValidationError):
        RatingSubmissionRequest(user_id=1, module_id=2, rating=0.5)
