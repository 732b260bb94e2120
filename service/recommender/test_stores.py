"""
Tests for the user directory, rating index and CSV stores.

Usage:
    pytest service/recommender/test_stores.py
"""

import pytest

from service.recommender.models import Module, Rating, User
from service.recommender.stores import (
    CsvModuleStore,
    CsvRatingStore,
    CsvUserStore,
    RatingIndex,
    UserDirectory,
)


def _write(path, text):
    path.write_text(text, encoding='utf-8')
    return str(path)


# ============================================================================
# UserDirectory / RatingIndex
# ============================================================================

def test_directory_put_get(users):
    directory = UserDirectory(users)

    assert len(directory) == 3
    assert 2 in directory
    assert directory.get(99) is None
    assert directory.next_id() == 4

    replacement = User(user_id=2, digital_literacy=1.0, age_group='65+',
                       risk_profile='high', preferred_topic='phishing')
    directory.put(replacement)
    assert directory.get(2) == replacement
    assert len(directory) == 3


def test_empty_directory_starts_ids_at_one():
    assert UserDirectory().next_id() == 1


def test_directory_all_is_a_copy(users):
    directory = UserDirectory(users)
    snapshot = directory.all()
    snapshot.clear()
    assert len(directory) == 3


def test_rating_index(ratings):
    index = RatingIndex.from_ratings(ratings)

    assert index.has_ratings(1)
    assert index.has_ratings(2)
    assert not index.has_ratings(3)
    assert index.count == 3
    assert index.num_rated_users == 2

    index.add(Rating(user_id=3, module_id=1, rating=1.0))
    index.add(Rating(user_id=3, module_id=1, rating=2.0))  # duplicates allowed
    assert index.has_ratings(3)
    assert index.count == 5


# ============================================================================
# CSV Stores
# ============================================================================

def test_user_store_reads_layout(tmp_path):
    path = _write(tmp_path / 'users.csv', (
        "user_id,user_cluster,digital_literacy,age_group,risk_profile,preferred_topic\n"
        "1,3,2.0,65+,high,phishing\n"
        "7,5,4.5,25-34,low,investment\n"
    ))
    store = CsvUserStore(path)

    users = store.load_all()

    assert users[0] == User(user_id=1, digital_literacy=2.0, age_group='65+',
                            risk_profile='high', preferred_topic='phishing', user_cluster=3)
    assert users[1].digital_literacy == 4.5
    assert store.next_id() == 8


def test_user_store_without_cluster_column(tmp_path):
    path = _write(tmp_path / 'users.csv', (
        "user_id,digital_literacy,age_group,risk_profile,preferred_topic\n"
        "1,3,25-34,medium,romance\n"
    ))
    assert CsvUserStore(path).load_all()[0].user_cluster == 0


def test_user_store_append_then_load(tmp_path, users):
    store = CsvUserStore(str(tmp_path / 'new' / 'users.csv'))
    assert store.next_id() == 1

    for user in users:
        store.append(user)

    assert store.load_all() == users
    assert store.next_id() == 4
    header = (tmp_path / 'new' / 'users.csv').read_text(encoding='utf-8').splitlines()[0]
    assert header == "user_id,user_cluster,digital_literacy,age_group,risk_profile,preferred_topic"


def test_module_store(tmp_path):
    path = _write(tmp_path / 'modules.csv', (
        "module_id,scam_type,difficulty,target_literacy,duration_min\n"
        "1,phishing,2,3,5\n"
        "2,romance,4,4,12.5\n"
    ))

    modules = CsvModuleStore(path).load_all()

    assert modules == [
        Module(module_id=1, scam_type='phishing', difficulty=2.0, target_literacy=3.0, duration_min=5.0),
        Module(module_id=2, scam_type='romance', difficulty=4.0, target_literacy=4.0, duration_min=12.5),
    ]


def test_rating_store_append_then_load(tmp_path, ratings):
    store = CsvRatingStore(str(tmp_path / 'ratings.csv'))
    for rating in ratings:
        store.append(rating)
    store.append(ratings[0])

    loaded = store.load_all()
    assert loaded[:3] == ratings
    assert loaded[3] == ratings[0]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        CsvModuleStore(str(tmp_path / 'absent.csv')).load_all()


def test_missing_columns_raise(tmp_path):
    path = _write(tmp_path / 'ratings.csv', "user_id,module_id\n1,2\n")
    with pytest.raises(ValueError, match="rating"):
        CsvRatingStore(path).load_all()
