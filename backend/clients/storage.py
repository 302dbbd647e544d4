# backend/clients/storage.py
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from models.storage_entry import StorageEntry
from utils.errors import OperationError


class SqlKeyValueStore:
    """String key-value storage kept in a single SQL table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        db = self._session_factory()
        try:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None
        except SQLAlchemyError as e:
            raise OperationError(f"Local storage read failed: {e}") from e
        finally:
            db.close()

    def set_item(self, key: str, value: str) -> None:
        db = self._session_factory()
        try:
            entry = db.get(StorageEntry, key)
            if entry:
                entry.value = value
            else:
                db.add(StorageEntry(key=key, value=value))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise OperationError(f"Local storage write failed: {e}") from e
        finally:
            db.close()

    def remove_item(self, key: str) -> None:
        db = self._session_factory()
        try:
            db.query(StorageEntry).filter(StorageEntry.key == key).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise OperationError(f"Local storage delete failed: {e}") from e
        finally:
            db.close()
