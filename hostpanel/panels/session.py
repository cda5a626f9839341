"""
Session state for panels that authenticate with a login call.

State machine::

    NO_SESSION --(login ok)--> HAS_SESSION --(session expired)--> NO_SESSION

Login is lazy (first business call) and single-flight: concurrent first
calls share one login round trip.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TypeVar

from hostpanel.panels.errors import PanelSessionExpiredError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(StrEnum):
    NO_SESSION = "no_session"
    HAS_SESSION = "has_session"


class SessionManager:
    """Caches one session id and serializes the login transition.

    Args:
        login: Coroutine performing the vendor login and returning the
            session id. It raises on failure; the state then stays
            ``NO_SESSION``.
    """

    def __init__(self, login: Callable[[], Awaitable[str]]) -> None:
        self._login = login
        self._session_id: str | None = None
        self._lock = asyncio.Lock()
        self.login_count = 0

    @property
    def state(self) -> SessionState:
        return SessionState.HAS_SESSION if self._session_id else SessionState.NO_SESSION

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def get(self) -> str:
        """Return the cached session id, logging in first if there is none."""
        if self._session_id:
            return self._session_id
        async with self._lock:
            # Another caller may have logged in while we waited
            if not self._session_id:
                self.login_count += 1
                self._session_id = await self._login()
                logger.debug("Panel session established")
            return self._session_id

    def invalidate(self, session_id: str | None = None) -> None:
        """Drop the cached session (only if it is still ``session_id``, when given)."""
        if session_id is None or self._session_id == session_id:
            self._session_id = None

    async def run(self, call: Callable[[str], Awaitable[T]]) -> T:
        """Run ``call(session_id)``; on expiry, log in again and retry once."""
        session_id = await self.get()
        try:
            return await call(session_id)
        except PanelSessionExpiredError:
            logger.info("Panel session expired, logging in again")
            self.invalidate(session_id)
            return await call(await self.get())
