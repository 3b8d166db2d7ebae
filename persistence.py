"""
Serialized, coalescing write queue in front of a blob store.

Callers submit "set" or "remove" operations and return immediately. A single
worker thread performs at most one write at a time; operations submitted while
a write is in flight replace each other so only the most recent one is
written next (last write wins, no interleaving).
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional

from blob_store import BlobStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingWrite:
    """A queued write: value None means remove the key."""
    key: str
    value: Optional[str]


class WriteQueue:
    """
    Fire-and-forget writer with one in-flight write per queue.

    Failed writes are logged and dropped, never retried. The in-memory state
    of the caller remains authoritative for the running session.
    """

    def __init__(self, store: BlobStore, name: str = "blob-writer"):
        """
        Initialize the queue.

        Args:
            store: Blob store that receives the writes
            name: Thread name prefix for the worker
        """
        self.store = store
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._pending: Dict[str, PendingWrite] = {}
        self._draining = False
        self._closed = False
        self.failed_writes = 0
        self.completed_writes = 0

    def submit_set(self, key: str, value: str) -> None:
        """Schedule value to be written under key."""
        self._submit(PendingWrite(key=key, value=value))

    def submit_remove(self, key: str) -> None:
        """Schedule key to be removed."""
        self._submit(PendingWrite(key=key, value=None))

    def _submit(self, write: PendingWrite) -> None:
        with self._lock:
            if self._closed:
                logger.warning(f"Write queue closed; dropping write for '{write.key}'")
                return
            if write.key in self._pending:
                logger.debug(f"Coalescing pending write for '{write.key}'")
            self._pending[write.key] = write
            self._idle.clear()
            if self._draining:
                return
            self._draining = True
        self._executor.submit(self._drain)

    def _drain(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._draining = False
                    self._idle.set()
                    return
                key = next(iter(self._pending))
                write = self._pending.pop(key)
            self._apply(write)

    def _apply(self, write: PendingWrite) -> None:
        try:
            if write.value is None:
                self.store.remove(write.key)
            else:
                self.store.set(write.key, write.value)
            self.completed_writes += 1
        except Exception as e:
            self.failed_writes += 1
            logger.error(
                f"Failed to persist '{write.key}'; changes from this session may be lost on restart: {e}",
                exc_info=True
            )

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every submitted write has been attempted.

        Args:
            timeout: Optional number of seconds to wait

        Returns:
            True if the queue drained, False on timeout
        """
        return self._idle.wait(timeout)

    def close(self) -> None:
        """Flush outstanding writes and stop the worker."""
        self.flush()
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)
        logger.debug("Write queue closed")
