from __future__ import annotations

from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

from models.storage import StorageEntry


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class SqlKeyValueStorage:
    """Synchronous key/value storage on the storage_entries table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get_item(self, key: str) -> str | None:
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None

    def set_item(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry:
                entry.value = value
            else:
                entry = StorageEntry(key=key, value=value)
            db.add(entry)
            db.commit()

    def remove_item(self, key: str) -> None:
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry:
                db.delete(entry)
                db.commit()
