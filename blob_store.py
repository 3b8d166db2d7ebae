"""
Key-value blob store used to persist the expense collection and settings.

The rest of the application only sees the BlobStore interface (get/set/remove
of string values). Concrete stores:

- InMemoryBlobStore: dictionary backed, used by tests and throwaway sessions
- SQLBlobStore: SQLAlchemy table, SQLite by default
- EncryptedBlobStore: wraps another store and encrypts values with Fernet
"""

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Dict, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from encryption_utils import EncryptionManager, get_encryption_manager, is_ciphertext
from exceptions import DecryptionError, StorageError

logger = logging.getLogger(__name__)

# Keys shared by every component that reads or writes the store.
EXPENSES_KEY = "expenseslist"
MONTHLY_BUDGET_KEY = "user_budget"
CATEGORY_LIMITS_KEY = "category_limits"
ALERT_STATE_KEY = "alert_history"
BASE_CURRENCY_KEY = "baseCurrency"


def utc_now() -> datetime:
    """Return the current UTC datetime with timezone awareness."""
    return datetime.now(UTC)


class BlobStore(ABC):
    """
    Abstract interface for string blob storage.

    Any storage implementation (SQLite, a device key-value store, etc.)
    must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Retrieve the value stored under key.

        Returns:
            The stored string, or None when the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store value under key, replacing any previous value.

        Raises:
            StorageError: If the backend cannot be written
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """
        Delete key. Removing a missing key is not an error.

        Raises:
            StorageError: If the backend cannot be written
        """


class InMemoryBlobStore(BlobStore):
    """Dictionary-backed store; contents vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)


Base = declarative_base()


class Blob(Base):
    """
    SQLAlchemy model for a single stored value.

    Attributes:
        key: Primary key (e.g. 'expenseslist')
        value: Stored string payload (JSON or plain text)
        updated_at: Timestamp of the last write, UTC
    """

    __tablename__ = "blobs"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<Blob(key='{self.key}', size={len(self.value or '')})>"


class SQLBlobStore(BlobStore):
    """
    Blob store backed by a single SQL table.

    Each operation opens and closes its own session so the store can be used
    from the write-queue worker thread as well as the caller's thread.
    """

    def __init__(self, connection_string: str):
        """
        Initialize the store and create the table if needed.

        Args:
            connection_string: SQLAlchemy connection string (e.g. 'sqlite:///data/expenses.db')

        Raises:
            StorageError: If the database cannot be initialized
        """
        engine_kwargs = {"echo": False}
        if connection_string.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in connection_string or connection_string.rstrip("/") == "sqlite:":
                engine_kwargs["poolclass"] = StaticPool
        try:
            self.engine = create_engine(connection_string, **engine_kwargs)
            self.SessionLocal = sessionmaker(bind=self.engine)
            Base.metadata.create_all(self.engine)
            logger.info(f"Blob store initialized with connection: {connection_string}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize blob store: {e}")
            raise StorageError(
                "Failed to initialize blob store",
                details={"connection_string": connection_string},
                original_error=e
            ) from e

    def get_session(self) -> Session:
        """
        Get a new database session.

        Note:
            Caller is responsible for closing the session.
        """
        return self.SessionLocal()

    def get(self, key: str) -> Optional[str]:
        session = self.get_session()
        try:
            blob = session.get(Blob, key)
            return blob.value if blob is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read blob '{key}': {e}")
            raise StorageError("Failed to read blob", details={"key": key}, original_error=e) from e
        finally:
            session.close()

    def set(self, key: str, value: str) -> None:
        session = self.get_session()
        try:
            blob = session.get(Blob, key)
            if blob is None:
                session.add(Blob(key=key, value=value))
            else:
                blob.value = value
            session.commit()
            logger.debug(f"Stored blob '{key}' ({len(value)} chars)")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to write blob '{key}': {e}")
            raise StorageError("Failed to write blob", details={"key": key}, original_error=e) from e
        finally:
            session.close()

    def remove(self, key: str) -> None:
        session = self.get_session()
        try:
            blob = session.get(Blob, key)
            if blob is not None:
                session.delete(blob)
                session.commit()
                logger.debug(f"Removed blob '{key}'")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to remove blob '{key}': {e}")
            raise StorageError("Failed to remove blob", details={"key": key}, original_error=e) from e
        finally:
            session.close()

    def close(self) -> None:
        """Close the database engine connection."""
        if hasattr(self, 'engine'):
            self.engine.dispose()
            logger.info("Blob store connection closed")


class EncryptedBlobStore(BlobStore):
    """
    Wraps another store and encrypts every value with Fernet.

    Values written before encryption was enabled are returned as plaintext so
    existing data stays readable; they are encrypted on their next write.
    """

    def __init__(self, inner: BlobStore, manager: Optional[EncryptionManager] = None):
        self.inner = inner
        self.manager = manager or get_encryption_manager()

    def get(self, key: str) -> Optional[str]:
        value = self.inner.get(key)
        if value is None or not is_ciphertext(value):
            return value
        try:
            return self.manager.decrypt_text(value)
        except DecryptionError as e:
            raise StorageError(
                "Stored value could not be decrypted",
                details={"key": key},
                original_error=e
            ) from e

    def set(self, key: str, value: str) -> None:
        self.inner.set(key, self.manager.encrypt_text(value))

    def remove(self, key: str) -> None:
        self.inner.remove(key)

    def close(self) -> None:
        close = getattr(self.inner, "close", None)
        if callable(close):
            close()
