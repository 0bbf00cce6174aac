"""Read-side shaping of stored records: legacy migration and public filters."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .models import parse_timestamp

logger = logging.getLogger(__name__)


def split_genres(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def migrate_genres(record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``record`` with the legacy ``genre`` string folded into ``genres``.

    Running it again on its own output is a no-op.
    """
    migrated = dict(record)
    legacy = migrated.pop("genre", None)
    genres = migrated.get("genres")
    if not isinstance(genres, list):
        genres = []
    if not genres and isinstance(legacy, str):
        genres = split_genres(legacy)
    migrated["genres"] = genres
    return migrated


def migrate_games(games: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    return [migrate_genres(game) for game in games]


def _priority(event: dict[str, Any]) -> int:
    value = event.get("priority")
    return value if isinstance(value, int) else 0


def sort_events(game: dict[str, Any]) -> dict[str, Any]:
    events = game.get("events")
    if not events:
        return game
    shaped = dict(game)
    shaped["events"] = sorted(events, key=_priority, reverse=True)
    return shaped


def public_games(games: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Visible games in display order, highest priority events first."""
    visible = [game for game in migrate_games(games) if game.get("visible") is not False]
    ordered = [game for game in visible if isinstance(game.get("order"), int)]
    unordered = [game for game in visible if not isinstance(game.get("order"), int)]
    ordered.sort(key=lambda game: game["order"])
    return [sort_events(game) for game in ordered + unordered]


def is_announcement_live(
    notification: dict[str, Any], now: Optional[datetime] = None
) -> bool:
    if notification.get("active") is not True:
        return False
    countdown_to = notification.get("countdownTo")
    if not countdown_to:
        return True
    now = now or datetime.now(timezone.utc)
    try:
        return parse_timestamp(str(countdown_to)) > now
    except ValueError:
        logger.debug(
            "Hiding announcement %s with unreadable countdownTo=%r",
            notification.get("id"),
            countdown_to,
        )
        return False


def live_announcements(
    notifications: Iterable[dict[str, Any]], now: Optional[datetime] = None
) -> list[dict[str, Any]]:
    now = now or datetime.now(timezone.utc)
    return [item for item in notifications if is_announcement_live(item, now)]
