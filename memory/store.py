"""Two-tier memory store: in-process cache in front of a durable backend."""

import copy
import logging
import threading
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set, Tuple

from .backend import KeyValueBackend
from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


class Namespace(str, Enum):
    """Independent per-conversation keys. No transactions span namespaces."""
    HISTORY = "history"
    CATEGORY_SUMMARIES = "category-summaries"
    CLINICAL_NOTES = "clinical-notes"
    DIARY = "diary"
    DIARY_MARKER = "diary-marker"
    OVERALL_SUMMARY = "overall-summary"
    SUMMARY_MARKER = "summary-marker"


Slot = Tuple[str, Namespace]

_UNAVAILABLE = object()


class DurableMemoryStore:
    """
    Key/value store addressed by (conversation id, namespace).

    Reads hit the in-process tier first and fall through to the durable
    backend on a miss. Writes always land in the in-process tier and are then
    attempted on the backend; a failed durable write is logged and the key is
    remembered as unsynced so that later refreshes never replace the newer
    in-process value with a stale durable one.

    Backend I/O never runs under the shared cache lock: writes to one key are
    serialized by a per-key lock, so a slow write only delays that key.

    Constructed once per process and passed to every component.
    """

    def __init__(
        self,
        backend: Optional[KeyValueBackend] = None,
        key_prefix: str = "chat"
    ):
        """
        Initialize the store.

        Args:
            backend: Durable backend, or None for in-process only operation
            key_prefix: Prefix for durable keys ("{prefix}:{conversation}:{namespace}")
        """
        self.backend = backend
        self.key_prefix = key_prefix
        self._cache: Dict[Slot, Any] = {}
        self._versions: Dict[Slot, int] = defaultdict(int)
        self._unsynced: Set[Slot] = set()
        self._slot_locks: Dict[Slot, threading.RLock] = {}
        self._lock = threading.Lock()

        if backend is None:
            logger.warning(
                "No durable memory backend configured; memory lives in-process "
                "only and will not survive a restart"
            )
        else:
            logger.info(f"Memory store backed by {backend.describe()}")

    @property
    def is_durable(self) -> bool:
        return self.backend is not None

    def durable_key(self, conversation_id: str, namespace: Namespace) -> str:
        return f"{self.key_prefix}:{conversation_id}:{namespace.value}"

    def get(
        self,
        conversation_id: str,
        namespace: Namespace,
        refresh: bool = False
    ) -> Optional[Any]:
        """
        Read a value.

        Args:
            conversation_id: Conversation ID
            namespace: Tier namespace
            refresh: Re-read the durable backend even when cached, to pick up
                writes made by other processes

        Returns:
            A copy of the stored value, or None when absent everywhere
        """
        slot = (conversation_id, namespace)
        with self._lock:
            if slot in self._unsynced or (slot in self._cache and not refresh):
                return copy.deepcopy(self._cache.get(slot))
            version = self._versions[slot]

        value = self._read_durable(slot)

        with self._lock:
            # A local write landed while the backend was being read
            stale = version != self._versions[slot] or slot in self._unsynced
            if value is _UNAVAILABLE or value is None or stale:
                return copy.deepcopy(self._cache.get(slot))
            self._cache[slot] = value
            return copy.deepcopy(value)

    def hydrate(
        self,
        conversation_id: str,
        namespace: Namespace,
        overwrite_local: bool = False
    ) -> bool:
        """
        Load the durable value into the in-process tier.

        Args:
            overwrite_local: Replace the in-process value even when it was
                never persisted

        Returns:
            False when the durable backend could not be read
        """
        if self.backend is None:
            return True
        slot = (conversation_id, namespace)
        with self._slot_lock(slot):
            value = self._read_durable(slot)
            if value is _UNAVAILABLE:
                return False
            if value is None and not overwrite_local:
                return True
            with self._lock:
                if slot in self._unsynced and not overwrite_local:
                    return True
                if value is None:
                    self._cache.pop(slot, None)
                else:
                    self._cache[slot] = value
                self._versions[slot] += 1
                self._unsynced.discard(slot)
            return True

    def set(
        self,
        conversation_id: str,
        namespace: Namespace,
        value: Any,
        durable: bool = True
    ) -> bool:
        """
        Write a value.

        Args:
            durable: Also write to the durable backend; when False the value
                stays in-process only and is lost on restart

        Returns:
            True when the value reached the durable backend (or there is
            none), False when only the in-process tier holds it
        """
        slot = (conversation_id, namespace)
        with self._slot_lock(slot):
            with self._lock:
                self._cache[slot] = copy.deepcopy(value)
                self._versions[slot] += 1
                if not durable and self.backend is not None:
                    self._unsynced.add(slot)
            if not durable:
                return self.backend is None
            return self._write_durable(slot, value)

    def update(
        self,
        conversation_id: str,
        namespace: Namespace,
        mutate: Callable[[Optional[Any]], Optional[Any]],
        refresh: bool = True,
        durable: bool = True
    ) -> bool:
        """
        Read-modify-write, atomic within this process for the given key.

        Args:
            conversation_id: Conversation ID
            namespace: Tier namespace
            mutate: Receives a copy of the current value and returns the new
                value, or None to leave the key untouched
            refresh: Hydrate from the durable backend before mutating
            durable: Write the new value to the durable backend as well

        Returns:
            True when a new value was written
        """
        with self._slot_lock((conversation_id, namespace)):
            current = self.get(conversation_id, namespace, refresh=refresh)
            new_value = mutate(current)
            if new_value is None:
                return False
            self.set(conversation_id, namespace, new_value, durable=durable)
            return True

    def is_synced(self, conversation_id: str, namespace: Namespace) -> bool:
        """True when the durable backend holds the latest value of the key."""
        with self._lock:
            return (conversation_id, namespace) not in self._unsynced

    def clear_local(self):
        """Drop the in-process tier, as a process restart would."""
        with self._lock:
            self._cache.clear()
            self._unsynced.clear()
            self._versions.clear()

    def _slot_lock(self, slot: Slot) -> threading.RLock:
        with self._lock:
            lock = self._slot_locks.get(slot)
            if lock is None:
                lock = self._slot_locks[slot] = threading.RLock()
            return lock

    def _read_durable(self, slot: Slot) -> Any:
        if self.backend is None:
            return _UNAVAILABLE
        key = self.durable_key(*slot)
        try:
            return self.backend.get(key)
        except PersistenceFailure as e:
            logger.warning(f"Durable read failed, serving cached value: {e}")
            return _UNAVAILABLE

    def _write_durable(self, slot: Slot, value: Any) -> bool:
        if self.backend is None:
            return True
        key = self.durable_key(*slot)
        try:
            self.backend.set(key, value)
        except PersistenceFailure as e:
            with self._lock:
                self._unsynced.add(slot)
            logger.warning(f"Durable write failed, keeping in-process copy: {e}")
            return False
        with self._lock:
            self._unsynced.discard(slot)
        return True
