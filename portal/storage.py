"""
Gold Bottom Ent. Portal — Key-value store adapter.

``SqlPersistentStore`` is the origin-scoped string store (get/set/remove of
raw strings, size-bounded). ``KeyValueStore`` wraps any such backend with
JSON encode/decode and never lets a storage failure escape to the caller.
"""

import json
import logging
from typing import Any, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from portal.models.stored_value import StoredValue

logger = logging.getLogger(__name__)


class StorageQuotaExceeded(Exception):
    """A write would push the store past its configured quota."""


class PersistentStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class SqlPersistentStore:
    """String store backed by the ``stored_values`` table."""

    def __init__(self, session_factory: sessionmaker, quota_bytes: int = 0):
        self._session_factory = session_factory
        self._quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            row = session.get(StoredValue, key)
            return row.value if row is not None else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as session:
            row = session.get(StoredValue, key)
            if self._quota_bytes:
                used = session.execute(
                    select(func.coalesce(func.sum(func.length(StoredValue.value)), 0))
                ).scalar_one()
                current = len(row.value) if row is not None else 0
                if used - current + len(value) > self._quota_bytes:
                    raise StorageQuotaExceeded(
                        f"writing {len(value)} chars to '{key}' exceeds quota of {self._quota_bytes}"
                    )
            if row is None:
                session.add(StoredValue(key=key, value=value))
            else:
                row.value = value
            session.commit()

    def remove(self, key: str) -> None:
        with self._session_factory() as session:
            row = session.get(StoredValue, key)
            if row is not None:
                session.delete(row)
                session.commit()

    def keys(self) -> list[str]:
        with self._session_factory() as session:
            return list(session.execute(select(StoredValue.key)).scalars())


class KeyValueStore:
    """JSON adapter over a persistent string store. Never raises."""

    def __init__(self, backend: PersistentStore):
        self._backend = backend

    def get(self, key: str, fallback: Any = None) -> Any:
        try:
            raw = self._backend.get(key)
            if raw is None:
                return fallback
            return json.loads(raw)
        except Exception as e:
            logger.warning(f"Failed to read '{key}': {e}")
            return fallback

    def set(self, key: str, value: Any) -> None:
        try:
            self._backend.set(key, json.dumps(value))
        except Exception as e:
            logger.warning(f"Failed to write '{key}': {e}")

    def remove(self, key: str) -> None:
        try:
            self._backend.remove(key)
        except Exception as e:
            logger.warning(f"Failed to remove '{key}': {e}")

    def has(self, key: str) -> bool:
        """True when the key holds a readable, non-null value. An empty list counts."""
        return self.get(key) is not None
