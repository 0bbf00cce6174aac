"""Whole-collection JSON persistence over a key-value backend.

Each collection lives under a single key and is always read and written in
full. There is no version check on save: when two requests load the same
collection, mutate it, and save, the later save replaces the earlier one and
its change is lost. Callers accept that last-writer-wins behaviour.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from . import defaults
from .catalog import migrate_games
from .kv import KeyValueBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACTIVITY_LIMIT = 100

UserSeed = Callable[[], List[Dict[str, Any]]]


class DocumentStore:
    """``seed_users`` is only called when the users collection has to be created."""

    def __init__(self, backend: KeyValueBackend, seed_users: UserSeed) -> None:
        self.backend = backend
        self._seed_users = seed_users

    async def _seed(self, key: str, value: T) -> T:
        logger.info("Seeding empty collection '%s'", key)
        await self.save_collection(key, value)
        return value

    async def load_collection(self, key: str, default: T) -> T:
        """Return the value under ``key``, writing ``default`` there first if it is absent."""
        raw = await self.backend.get(key)
        if raw is None:
            return await self._seed(key, copy.deepcopy(default))
        return json.loads(raw)

    async def save_collection(self, key: str, value: Any) -> None:
        await self.backend.put(key, json.dumps(value))

    async def load_games(self) -> List[Dict[str, Any]]:
        games = await self.load_collection(defaults.GAMES_KEY, defaults.DEFAULT_GAMES)
        return migrate_games(games)

    async def save_games(self, games: List[Dict[str, Any]]) -> None:
        await self.save_collection(defaults.GAMES_KEY, games)

    async def load_studios(self) -> List[Dict[str, Any]]:
        return await self.load_collection(defaults.STUDIOS_KEY, defaults.DEFAULT_STUDIOS)

    async def save_studios(self, studios: List[Dict[str, Any]]) -> None:
        await self.save_collection(defaults.STUDIOS_KEY, studios)

    async def load_notifications(self) -> List[Dict[str, Any]]:
        return await self.load_collection(
            defaults.NOTIFICATIONS_KEY, defaults.DEFAULT_NOTIFICATIONS
        )

    async def save_notifications(self, notifications: List[Dict[str, Any]]) -> None:
        await self.save_collection(defaults.NOTIFICATIONS_KEY, notifications)

    async def load_users(self) -> List[Dict[str, Any]]:
        raw = await self.backend.get(defaults.USERS_KEY)
        if raw is None:
            return await self._seed(defaults.USERS_KEY, self._seed_users())
        return json.loads(raw)

    async def save_users(self, users: List[Dict[str, Any]]) -> None:
        await self.save_collection(defaults.USERS_KEY, users)

    async def load_config(self) -> Optional[Dict[str, Any]]:
        # No seed: an absent config means no special countdown.
        raw = await self.backend.get(defaults.CONFIG_KEY)
        if raw is None:
            return None
        return json.loads(raw)

    async def save_config(self, config: Dict[str, Any]) -> None:
        await self.save_collection(defaults.CONFIG_KEY, config)

    async def load_activity(self) -> List[Dict[str, Any]]:
        raw = await self.backend.get(defaults.ACTIVITY_KEY)
        if raw is None:
            return []
        return json.loads(raw)

    async def append_activity(self, entry: Dict[str, Any]) -> None:
        entries = await self.load_activity()
        entries.insert(0, entry)
        await self.save_collection(defaults.ACTIVITY_KEY, entries[:ACTIVITY_LIMIT])

    async def get_raw(self, key: str) -> Optional[str]:
        return await self.backend.get(key)


def find_index(records: List[Dict[str, Any]], field: str, value: Any) -> Optional[int]:
    for idx, record in enumerate(records):
        if record.get(field) == value:
            return idx
    return None
