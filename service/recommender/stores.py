"""
User Directory, Rating Index and CSV Stores.

- UserDirectory: in-memory user map shared by request threads
- RatingIndex: which users have rated anything, maintained on write
- CsvUserStore / CsvModuleStore / CsvRatingStore: durable storage

CSV layouts:
    users.csv    user_id,user_cluster,digital_literacy,age_group,risk_profile,preferred_topic
    modules.csv  module_id,scam_type,difficulty,target_literacy,duration_min
    ratings.csv  user_id,module_id,rating

Example:
    >>> from service.recommender.stores import CsvUserStore, UserDirectory
    >>> store = CsvUserStore('data/users.csv')
    >>> directory = UserDirectory(store.load_all())
    >>> directory.next_id()
    1001
"""

from typing import Dict, Iterable, List, Optional, Set
from pathlib import Path
import threading
import logging

import pandas as pd

from .models import User, Module, Rating

logger = logging.getLogger(__name__)


USER_COLUMNS = ['user_id', 'user_cluster', 'digital_literacy', 'age_group', 'risk_profile', 'preferred_topic']
MODULE_COLUMNS = ['module_id', 'scam_type', 'difficulty', 'target_literacy', 'duration_min']
RATING_COLUMNS = ['user_id', 'module_id', 'rating']

# user_cluster is informational and may be absent
REQUIRED_USER_COLUMNS = [c for c in USER_COLUMNS if c != 'user_cluster']


# ============================================================================
# UserDirectory
# ============================================================================

class UserDirectory:
    """
    Thread-safe in-memory map of user_id -> User.

    Reads copy under the lock; writes are serialized. The lock is
    re-entrant so callers can hold it across a multi-step write.
    """

    def __init__(self, users: Iterable[User] = ()):
        self._users: Dict[int, User] = {u.user_id: u for u in users}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def get(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def put(self, user: User) -> None:
        with self._lock:
            self._users[user.user_id] = user

    def all(self) -> List[User]:
        with self._lock:
            return list(self._users.values())

    def next_id(self) -> int:
        with self._lock:
            return max(self._users, default=0) + 1

    def __contains__(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._users

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)


# ============================================================================
# RatingIndex
# ============================================================================

class RatingIndex:
    """Set of users with at least one rating, plus the total rating count."""

    def __init__(self):
        self._rated_users: Set[int] = set()
        self._count = 0
        self._lock = threading.Lock()

    @classmethod
    def from_ratings(cls, ratings: Iterable[Rating]) -> 'RatingIndex':
        index = cls()
        for rating in ratings:
            index.add(rating)
        return index

    def add(self, rating: Rating) -> None:
        with self._lock:
            self._rated_users.add(rating.user_id)
            self._count += 1

    def has_ratings(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._rated_users

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def num_rated_users(self) -> int:
        with self._lock:
            return len(self._rated_users)


# ============================================================================
# CSV Stores
# ============================================================================

class _CsvStore:
    """Shared CSV read/append plumbing."""

    columns: List[str] = []
    required_columns: List[str] = []
    kind = "records"

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> pd.DataFrame:
        if not self.path.exists():
            raise FileNotFoundError(f"{self.kind} file not found: {self.path}")

        df = pd.read_csv(self.path, encoding='utf-8')

        missing = [c for c in self.required_columns if c not in df.columns]
        if missing:
            raise ValueError(f"{self.path} missing required columns: {missing}")

        logger.info(f"Loaded {len(df)} {self.kind} from {self.path}")
        return df

    def _append_row(self, row: Dict) -> None:
        with self._lock:
            write_header = not self.path.exists() or self.path.stat().st_size == 0
            self.path.parent.mkdir(parents=True, exist_ok=True)
            pd.DataFrame([row], columns=self.columns).to_csv(
                self.path, mode='a', header=write_header, index=False, encoding='utf-8'
            )


class CsvUserStore(_CsvStore):
    columns = USER_COLUMNS
    required_columns = REQUIRED_USER_COLUMNS
    kind = "users"

    def load_all(self) -> List[User]:
        df = self._read()
        has_cluster = 'user_cluster' in df.columns
        return [
            User(
                user_id=int(row.user_id),
                digital_literacy=float(row.digital_literacy),
                age_group=str(row.age_group),
                risk_profile=str(row.risk_profile),
                preferred_topic=str(row.preferred_topic),
                user_cluster=int(row.user_cluster) if has_cluster else 0
            )
            for row in df.itertuples(index=False)
        ]

    def append(self, user: User) -> None:
        self._append_row({
            'user_id': user.user_id,
            'user_cluster': user.user_cluster,
            'digital_literacy': user.digital_literacy,
            'age_group': user.age_group,
            'risk_profile': user.risk_profile,
            'preferred_topic': user.preferred_topic,
        })
        logger.debug(f"Appended user {user.user_id} to {self.path}")

    def next_id(self) -> int:
        """max(user_id) + 1, or 1 for a missing or empty file."""
        with self._lock:
            if not self.path.exists() or self.path.stat().st_size == 0:
                return 1
            ids = pd.read_csv(self.path, usecols=['user_id'], encoding='utf-8')['user_id']
            return int(ids.max()) + 1 if not ids.empty else 1


class CsvModuleStore(_CsvStore):
    columns = MODULE_COLUMNS
    required_columns = MODULE_COLUMNS
    kind = "modules"

    def load_all(self) -> List[Module]:
        df = self._read()
        return [
            Module(
                module_id=int(row.module_id),
                scam_type=str(row.scam_type),
                difficulty=float(row.difficulty),
                target_literacy=float(row.target_literacy),
                duration_min=float(row.duration_min)
            )
            for row in df.itertuples(index=False)
        ]


class CsvRatingStore(_CsvStore):
    columns = RATING_COLUMNS
    required_columns = RATING_COLUMNS
    kind = "ratings"

    def load_all(self) -> List[Rating]:
        df = self._read()
        return [
            Rating(user_id=int(row.user_id), module_id=int(row.module_id), rating=float(row.rating))
            for row in df.itertuples(index=False)
        ]

    def append(self, rating: Rating) -> None:
        self._append_row({
            'user_id': rating.user_id,
            'module_id': rating.module_id,
            'rating': rating.rating,
        })
