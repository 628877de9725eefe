"""Rolling history manager: bounded recent-turn buffer per conversation."""

import logging
import threading
from typing import Dict, List, Set

from .models import Turn, HistoryState
from .store import DurableMemoryStore, Namespace

logger = logging.getLogger(__name__)


class RollingHistoryManager:
    """
    Keeps the H most recent turns plus a monotonically increasing turn counter.

    Until the durable history has been read once, new turns are kept
    in-process only, so an unreadable backend never gets its history replaced
    by a fresh buffer. They are replayed on top of the durable history as
    soon as it can be loaded.
    """

    def __init__(self, store: DurableMemoryStore, capacity: int = 50):
        """
        Initialize history manager.

        Args:
            store: Shared memory store
            capacity: Maximum number of buffered turns (H)
        """
        self.store = store
        self.capacity = capacity
        self._hydrated: Set[str] = set()
        self._offline: Dict[str, List[Turn]] = {}
        self._lock = threading.Lock()

    def load(self, conversation_id: str) -> bool:
        """
        Hydrate from the durable backend once per process lifetime.

        Returns:
            True once the durable history has been read
        """
        with self._lock:
            if conversation_id in self._hydrated:
                return True

        if not self.store.hydrate(conversation_id, Namespace.HISTORY, overwrite_local=True):
            logger.warning(
                f"History for {conversation_id} could not be loaded; "
                "new turns stay in-process until it can"
            )
            return False

        with self._lock:
            self._hydrated.add(conversation_id)
            offline = self._offline.pop(conversation_id, [])

        if offline:
            self._push(conversation_id, offline, durable=True)
            logger.info(f"Replayed {len(offline)} offline turns for {conversation_id}")
        return True

    def state(self, conversation_id: str) -> HistoryState:
        raw = self.store.get(conversation_id, Namespace.HISTORY)
        if not raw:
            return HistoryState()
        return HistoryState.model_validate(raw)

    def current(self, conversation_id: str) -> List[Turn]:
        """Buffered turns, oldest first (possibly empty)."""
        return self.state(conversation_id).turns

    def turn_count(self, conversation_id: str) -> int:
        return self.state(conversation_id).turn_count

    def append(self, conversation_id: str, turn: Turn) -> HistoryState:
        """
        Append a turn, evicting the oldest beyond capacity, and persist.

        Returns:
            The resulting history state
        """
        online = self.load(conversation_id)
        if not online:
            with self._lock:
                self._offline.setdefault(conversation_id, []).append(turn)

        state = self._push(conversation_id, [turn], durable=online)
        logger.debug(
            f"Conversation {conversation_id}: turn {state.turn_count} appended "
            f"({len(state.turns)}/{self.capacity} buffered)"
        )
        return state

    def _push(self, conversation_id: str, turns: List[Turn], durable: bool) -> HistoryState:
        result = {}

        def push(raw):
            state = HistoryState.model_validate(raw) if raw else HistoryState()
            state.turns.extend(turns)
            if len(state.turns) > self.capacity:
                state.turns = state.turns[-self.capacity:]
            state.turn_count += len(turns)
            result["state"] = state
            return state.model_dump(mode="json")

        self.store.update(conversation_id, Namespace.HISTORY, push, refresh=False, durable=durable)
        return result["state"]
