"""
Tests for the recommendation orchestrator: mode routing, content-only
fallback, registration and rating submission.

Usage:
    pytest service/recommender/test_orchestrator.py
"""

import threading

import pytest

from antiscam.cf.logging_utils import ServiceMetricsDB
from conftest import ConstantPredictor, RaisingPredictor, TablePredictor
from service.recommender.errors import (
    InvalidRatingError,
    TrainingModuleNotFoundError,
    UserNotFoundError,
)
from service.recommender.orchestrator import (
    MODE_CONTENT_ONLY,
    MODE_HYBRID,
    derive_risk_profile,
    derive_user_cluster,
)
from service.recommender.stores import CsvRatingStore, CsvUserStore


# ============================================================================
# Ranking modes
# ============================================================================

def test_content_only_never_calls_predictor(make_service, modules):
    predictor = ConstantPredictor(4.0)
    service = make_service(predictor)

    recs = service.get_recommendations(user_id=3, top_n=5, content_only=True)

    assert predictor.calls == []
    assert len(recs) == len(modules)
    for candidate in recs:
        assert candidate.collaborative_score == 0.0
        assert candidate.hybrid_score == candidate.content_score
    scores = [c.hybrid_score for c in recs]
    assert scores == sorted(scores, reverse=True)


def test_user_without_ratings_is_routed_content_only(make_service):
    predictor = ConstantPredictor(4.0)
    service = make_service(predictor)

    result = service.recommend(user_id=3, top_n=3)

    assert result.mode == MODE_CONTENT_ONLY
    assert not result.is_fallback
    assert result.count == 3
    assert predictor.calls == []
    assert all(c.collaborative_score == 0.0 for c in result.candidates)


def test_user_with_ratings_is_routed_hybrid(make_service, modules):
    predictor = ConstantPredictor(4.0)
    service = make_service(predictor)

    result = service.recommend(user_id=1, top_n=3)

    assert result.mode == MODE_HYBRID
    assert not result.is_fallback
    assert len(predictor.calls) == len(modules)
    assert all(c.collaborative_score == 4.0 for c in result.candidates)
    assert result.latency_ms >= 0


def test_hybrid_failure_falls_back_to_content_only(make_service):
    predictor = RaisingPredictor(fail_users={1})
    service = make_service(predictor)

    recs = service.get_recommendations(user_id=1, top_n=5, content_only=False)

    assert predictor.calls > 0
    assert len(recs) > 0
    assert all(c.collaborative_score == 0.0 for c in recs)


def test_recommend_reports_fallback(make_service):
    service = make_service(RaisingPredictor(fail_users={1}))

    result = service.recommend(user_id=1)

    assert result.is_fallback
    assert result.mode == MODE_CONTENT_ONLY
    assert result.count == 5
    assert 'user 1' in result.error
    assert service.stats() == {MODE_HYBRID: 0, MODE_CONTENT_ONLY: 1, 'fallbacks': 1}


def test_nan_predictions_fall_back_to_content_only(make_service, users, modules):
    service = make_service(ConstantPredictor(float('nan')))

    result = service.recommend(user_id=1, top_n=5)

    assert result.is_fallback
    assert result.mode == MODE_CONTENT_ONLY
    assert 'non-finite' in result.error
    assert [(c.module_id, c.content_score) for c in result.candidates] == \
        service.content.top_n(users[0], modules, n=5)
    assert all(c.collaborative_score == 0.0 for c in result.candidates)


def test_model_missing_one_module_still_degrades(make_service, modules):
    # model knows every module but the last one
    table = {(1, m.module_id): 3.0 for m in modules[:-1]}
    service = make_service(TablePredictor(table))

    result = service.recommend(user_id=1, top_n=2)

    assert result.is_fallback
    assert len(result.candidates) == 2


def test_fallback_matches_content_ranking(make_service, users, modules):
    service = make_service(RaisingPredictor())

    fallback = service.get_recommendations(user_id=1, top_n=5, content_only=False)
    direct = service.content.top_n(users[0], modules, n=5)

    assert [(c.module_id, c.content_score) for c in fallback] == direct


def test_unknown_user_raises(make_service):
    service = make_service(ConstantPredictor())

    with pytest.raises(UserNotFoundError):
        service.recommend(user_id=999)
    with pytest.raises(KeyError):
        service.get_user(999)


def test_default_top_n(make_service):
    service = make_service(ConstantPredictor(), default_top_n=2)
    assert service.recommend(user_id=1).count == 2


# ============================================================================
# Registration
# ============================================================================

@pytest.mark.parametrize("literacy, expected", [
    (1.0, 'high'), (2.0, 'high'), (2.5, 'medium'), (3.0, 'medium'), (3.5, 'low'), (5.0, 'low'),
])
def test_derive_risk_profile(literacy, expected):
    assert derive_risk_profile(literacy) == expected


def test_derive_user_cluster():
    assert derive_user_cluster(1.0) == 2
    assert derive_user_cluster(4.5) == 5
    assert derive_user_cluster(5.0) == 1


def test_register_user_allocates_next_id(make_service):
    service = make_service(ConstantPredictor())

    user = service.register_user('18-24', 2.0, 'romance')

    assert user.user_id == 4
    assert user.risk_profile == 'high'
    assert user.user_cluster == 3
    assert service.get_user(4) == user


def test_registered_user_scores_immediately(make_service):
    predictor = ConstantPredictor()
    service = make_service(predictor)

    user = service.register_user('18-24', 4.0, 'romance', risk_profile='low')
    result = service.recommend(user.user_id, top_n=1)

    assert user.risk_profile == 'low'
    assert result.mode == MODE_CONTENT_ONLY
    assert result.candidates[0].module_id == 2
    assert service.ranker.content.predict(user.user_id, 2) != 2.5
    assert predictor.calls == []


def test_register_user_validates_input(make_service):
    service = make_service(ConstantPredictor())

    with pytest.raises(ValueError):
        service.register_user('18-24', 0.5, 'romance')
    with pytest.raises(ValueError):
        service.register_user('18-24', 3.0, 'romance', risk_profile='extreme')


def test_add_user_writes_through_to_store(make_service, tmp_path):
    store = CsvUserStore(str(tmp_path / 'users.csv'))
    service = make_service(ConstantPredictor(), user_store=store)

    user = service.register_user('45-54', 3.5, 'investment')

    assert user.user_id == 4
    assert [u.user_id for u in store.load_all()] == [4]
    assert store.next_id() == 5


def test_concurrent_registrations_get_unique_ids(make_service):
    service = make_service(ConstantPredictor())
    registered = []
    lock = threading.Lock()

    def register():
        for _ in range(10):
            user = service.register_user('25-34', 3.0, 'phishing')
            with lock:
                registered.append(user.user_id)

    threads = [threading.Thread(target=register) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(registered)) == 40
    assert len(service.users) == 43


# ============================================================================
# Ratings
# ============================================================================

@pytest.mark.parametrize("value", [0.0, 0.99, 5.01, 10])
def test_submit_rating_rejects_out_of_range(make_service, value):
    service = make_service(ConstantPredictor())

    with pytest.raises(InvalidRatingError):
        service.submit_rating(1, 1, value)


def test_submit_rating_checks_user_and_module(make_service):
    service = make_service(ConstantPredictor())

    with pytest.raises(UserNotFoundError):
        service.submit_rating(999, 1, 4.0)
    with pytest.raises(TrainingModuleNotFoundError):
        service.submit_rating(1, 999, 4.0)


def test_first_rating_switches_user_to_hybrid(make_service, tmp_path):
    store = CsvRatingStore(str(tmp_path / 'ratings.csv'))
    service = make_service(ConstantPredictor(), rating_store=store)
    assert service.recommend(3).mode == MODE_CONTENT_ONLY

    record = service.submit_rating(3, 3, 5.0)

    assert record.rating == 5.0
    assert service.recommend(3).mode == MODE_HYBRID
    assert store.load_all() == [record]
    assert service.health()['ratings'] == 4


# ============================================================================
# Lookups & Status
# ============================================================================

def test_catalog_lookups(make_service, modules):
    service = make_service(ConstantPredictor())

    assert service.list_modules() == modules
    assert service.get_module(2).title == 'romance Training Module'
    with pytest.raises(TrainingModuleNotFoundError):
        service.get_module(999)


def test_health(make_service):
    health = make_service(ConstantPredictor()).health()

    assert health['status'] == 'healthy'
    assert health['users'] == 3
    assert health['modules'] == 5
    assert health['ratings'] == 3
    assert health['model_type'] == 'ConstantPredictor'


def test_requests_are_logged_to_metrics_db(make_service, tmp_path):
    db = ServiceMetricsDB(str(tmp_path / 'service_metrics.db'))
    service = make_service(RaisingPredictor(fail_users={1}), metrics_db=db)

    service.recommend(1)
    service.recommend(3)

    stats = db.get_request_stats()
    assert stats['total_requests'] == 2
    assert stats['fallback_count'] == 1
    assert stats['by_mode'] == {MODE_CONTENT_ONLY: 2}
