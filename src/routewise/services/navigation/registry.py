"""Process-wide registry of live navigation sessions."""

from __future__ import annotations

import logging
import uuid
from typing import Callable

from .session import NavigationSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], NavigationSession]


class SessionRegistry:
    def __init__(self, factory: SessionFactory) -> None:
        self._factory = factory
        self._sessions: dict[str, NavigationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> tuple[str, NavigationSession]:
        session_id = uuid.uuid4().hex
        session = self._factory()
        self._sessions[session_id] = session
        logger.info("Created navigation session %s", session_id)
        return session_id, session

    def get(self, session_id: str) -> NavigationSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise KeyError(f"Unknown navigation session '{session_id}'.") from None

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise KeyError(f"Unknown navigation session '{session_id}'.")
        await session.close()
        logger.info("Closed navigation session %s", session_id)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)
