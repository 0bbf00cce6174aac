"""Panel login sessions.

Tokens are 32 random bytes, hex encoded. A session lasts 24 hours from
creation regardless of activity. An expired token is removed on the first
lookup that notices it and is otherwise indistinguishable from an unknown one.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
import secrets
import time
from typing import Callable, Dict, Iterable, List, Optional

from .config import SESSION_TTL_SECONDS
from .kv import KeyValueBackend
from .models import Role, Session

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

SESSION_KEY_PREFIX = "session:"


def now_ms() -> int:
    return int(time.time() * 1000)


def new_token() -> str:
    return secrets.token_bytes(32).hex()


class SessionStore(ABC):
    ttl_ms = SESSION_TTL_SECONDS * 1000

    def __init__(self, clock: Clock = now_ms) -> None:
        self.clock = clock

    def _build(self, username: str, role: Role, allowed_studios: Iterable[str]) -> Session:
        return Session(
            token=new_token(),
            username=username,
            role=role,
            allowed_studios=list(allowed_studios),
            expires=self.clock() + self.ttl_ms,
        )

    def _expired(self, session: Session) -> bool:
        return self.clock() > session.expires

    @staticmethod
    def _retarget(session: Session, old: str, new: str) -> bool:
        if old not in session.allowed_studios:
            return False
        session.allowed_studios = [new if name == old else name for name in session.allowed_studios]
        return True

    @abstractmethod
    async def create(self, username: str, role: Role, allowed_studios: Iterable[str]) -> str:
        ...

    @abstractmethod
    async def validate(self, token: Optional[str]) -> Optional[Session]:
        ...

    @abstractmethod
    async def destroy(self, token: Optional[str]) -> None:
        ...

    @abstractmethod
    async def rename_studio(self, old: str, new: str) -> int:
        """Replace ``old`` with ``new`` in every live session's grants; return how many changed."""


class MemorySessionStore(SessionStore):
    """Process-local sessions; a restart logs every panel user out."""

    def __init__(self, clock: Clock = now_ms) -> None:
        super().__init__(clock)
        self._sessions: Dict[str, Session] = {}

    async def create(self, username: str, role: Role, allowed_studios: Iterable[str]) -> str:
        session = self._build(username, role, allowed_studios)
        self._sessions[session.token] = session
        return session.token

    async def validate(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        if self._expired(session):
            del self._sessions[token]
            logger.debug("Evicted expired session for '%s'", session.username)
            return None
        return session

    async def destroy(self, token: Optional[str]) -> None:
        if token:
            self._sessions.pop(token, None)

    async def rename_studio(self, old: str, new: str) -> int:
        return sum(self._retarget(session, old, new) for session in self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)


class KVSessionStore(SessionStore):
    """Sessions kept as ``session:<token>`` keys so several instances share them."""

    def __init__(self, backend: KeyValueBackend, clock: Clock = now_ms) -> None:
        super().__init__(clock)
        self.backend = backend

    async def create(self, username: str, role: Role, allowed_studios: Iterable[str]) -> str:
        session = self._build(username, role, allowed_studios)
        await self.backend.put(
            SESSION_KEY_PREFIX + session.token, session.model_dump_json(by_alias=True)
        )
        return session.token

    async def validate(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        raw = await self.backend.get(SESSION_KEY_PREFIX + token)
        if raw is None:
            return None
        session = Session.model_validate_json(raw)
        if self._expired(session):
            await self.backend.delete(SESSION_KEY_PREFIX + token)
            logger.debug("Evicted expired session for '%s'", session.username)
            return None
        return session

    async def destroy(self, token: Optional[str]) -> None:
        if token:
            await self.backend.delete(SESSION_KEY_PREFIX + token)

    async def rename_studio(self, old: str, new: str) -> int:
        changed = 0
        keys: List[str] = await self.backend.keys(SESSION_KEY_PREFIX)
        for key in keys:
            raw = await self.backend.get(key)
            if raw is None:
                continue
            session = Session.model_validate_json(raw)
            if self._retarget(session, old, new):
                await self.backend.put(key, session.model_dump_json(by_alias=True))
                changed += 1
        return changed
