"""
app/repositories/wizard_session_repository.py

Process-local storage for in-progress import wizard sessions.

Sessions hold the whole uploaded file, so the store is bounded: entries idle
longer than the TTL expire, and creating a session past capacity evicts the
least recently used one.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable
from functools import lru_cache

from app.config import get_import_settings
from app.services.wizard_state import WizardState

logger = logging.getLogger(__name__)


class WizardSessionNotFoundError(KeyError):
    """
    Raised when a wizard session id is unknown or expired.
    """


class WizardSessionRepository:
    """
    Thread-safe map of session id to the latest immutable wizard state.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 60 * 60,
        max_sessions: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1.")
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self._max_sessions = max_sessions
        self._clock = clock
        # Ordered oldest-touched first.
        self._sessions: OrderedDict[str, tuple[float, WizardState]] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired(self._clock())
            return len(self._sessions)

    def create(self, state: WizardState) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            while len(self._sessions) >= self._max_sessions:
                evicted_id, _ = self._sessions.popitem(last=False)
                logger.info("Evicted wizard session at capacity session=%s", evicted_id)
            self._sessions[session_id] = (now, state)
        return session_id

    def get(self, session_id: str) -> WizardState:
        with self._lock:
            return self._touch(session_id, self._clock())

    def update(
        self,
        session_id: str,
        transition: Callable[[WizardState], WizardState],
    ) -> WizardState:
        """
        Apply a transition atomically; the stored state is untouched if it raises.
        """

        with self._lock:
            now = self._clock()
            current = self._touch(session_id, now)
            updated = transition(current)
            self._sessions[session_id] = (now, updated)
        return updated

    def _touch(self, session_id: str, now: float) -> WizardState:
        entry = self._sessions.get(session_id)
        if entry is None:
            raise WizardSessionNotFoundError(session_id)
        touched_at, state = entry
        if now - touched_at > self._ttl_seconds:
            del self._sessions[session_id]
            logger.info("Expired wizard session session=%s", session_id)
            raise WizardSessionNotFoundError(session_id)
        self._sessions[session_id] = (now, state)
        self._sessions.move_to_end(session_id)
        return state

    def _evict_expired(self, now: float) -> None:
        while self._sessions:
            session_id, (touched_at, _) = next(iter(self._sessions.items()))
            if now - touched_at <= self._ttl_seconds:
                break
            del self._sessions[session_id]
            logger.info("Expired wizard session session=%s", session_id)


@lru_cache(maxsize=1)
def get_wizard_session_repository() -> WizardSessionRepository:
    settings = get_import_settings()
    return WizardSessionRepository(
        ttl_seconds=settings.session_ttl_seconds,
        max_sessions=settings.max_sessions,
    )
