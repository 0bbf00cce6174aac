"""Panel CRUD for games, announcements and studios."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from .catalog import migrate_genres
from .deps import (
    bad_request,
    current_session,
    ensure_can_act,
    generated_id,
    get_sessions,
    get_store,
    not_found,
    record_activity,
    require_admin,
    studio_names,
    validate_record,
)
from .models import Game, Notification, Session, Studio
from .sessions import SessionStore
from .store import DocumentStore, find_index

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _check_studio_exists(studios: List[Dict[str, Any]], name: str) -> None:
    if name not in studio_names(studios):
        raise bad_request(f"Unknown studio '{name}'")


def _game_owner(games: List[Dict[str, Any]], game_id: str) -> Optional[str]:
    idx = find_index(games, "id", game_id)
    return None if idx is None else games[idx].get("ownedBy")


@router.get("/games")
async def list_games(
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    return JSONResponse(await store.load_games())


@router.post("/games", status_code=status.HTTP_201_CREATED)
async def create_game(
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    record = migrate_genres(payload)
    if not record.get("id"):
        record["id"] = generated_id("game")
    game = validate_record(Game, record)
    ensure_can_act(session, game.owned_by)

    _check_studio_exists(await store.load_studios(), game.owned_by)
    games = await store.load_games()
    if find_index(games, "id", game.id) is not None:
        raise bad_request(f"Game '{game.id}' already exists")

    stored = game.to_json()
    games.append(stored)
    await store.save_games(games)
    await record_activity(store, session, "create", "game", game.name)
    logger.info("'%s' created game %s", session.username, game.id)
    return JSONResponse(stored, status_code=status.HTTP_201_CREATED)


@router.put("/games/{game_id}")
async def update_game(
    game_id: str,
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    games = await store.load_games()
    idx = find_index(games, "id", game_id)
    if idx is None:
        raise not_found("Game", game_id)
    current = games[idx]
    ensure_can_act(session, current.get("ownedBy"))

    merged = {**current, **payload, "id": current["id"]}
    if "genre" in payload and "genres" not in payload:
        # A legacy genre string replaces the stored list.
        merged.pop("genres", None)
    merged = migrate_genres(merged)
    game = validate_record(Game, merged)
    if game.owned_by != current.get("ownedBy"):
        ensure_can_act(session, game.owned_by)
        _check_studio_exists(await store.load_studios(), game.owned_by)

    stored = game.to_json()
    games[idx] = stored
    await store.save_games(games)
    await record_activity(store, session, "update", "game", game.name)
    return JSONResponse(stored)


@router.delete("/games/{game_id}")
async def delete_game(
    game_id: str,
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    games = await store.load_games()
    idx = find_index(games, "id", game_id)
    if idx is None:
        raise not_found("Game", game_id)
    ensure_can_act(session, games[idx].get("ownedBy"))

    removed = games.pop(idx)
    await store.save_games(games)
    await record_activity(store, session, "delete", "game", str(removed.get("name", game_id)))
    logger.info("'%s' deleted game %s", session.username, game_id)
    return JSONResponse({"deleted": True})


@router.get("/announcements")
async def list_announcements(
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    return JSONResponse(await store.load_notifications())


@router.post("/announcements", status_code=status.HTTP_201_CREATED)
async def create_announcement(
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    record = dict(payload)
    if not record.get("id"):
        record["id"] = generated_id("announcement")
    notification = validate_record(Notification, record)

    games = await store.load_games()
    if find_index(games, "id", notification.game_id) is None:
        raise bad_request(f"Unknown game '{notification.game_id}'")
    ensure_can_act(session, _game_owner(games, notification.game_id))

    notifications = await store.load_notifications()
    if find_index(notifications, "id", notification.id) is not None:
        raise bad_request(f"Announcement '{notification.id}' already exists")

    stored = notification.to_json()
    notifications.append(stored)
    await store.save_notifications(notifications)
    await record_activity(store, session, "create", "announcement", notification.title)
    return JSONResponse(stored, status_code=status.HTTP_201_CREATED)


@router.put("/announcements/{notification_id}")
async def update_announcement(
    notification_id: str,
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    notifications = await store.load_notifications()
    idx = find_index(notifications, "id", notification_id)
    if idx is None:
        raise not_found("Announcement", notification_id)
    current = notifications[idx]
    games = await store.load_games()
    ensure_can_act(session, _game_owner(games, str(current.get("gameId"))))

    notification = validate_record(
        Notification, {**current, **payload, "id": current["id"]}
    )
    if notification.game_id != current.get("gameId"):
        if find_index(games, "id", notification.game_id) is None:
            raise bad_request(f"Unknown game '{notification.game_id}'")
        ensure_can_act(session, _game_owner(games, notification.game_id))

    stored = notification.to_json()
    notifications[idx] = stored
    await store.save_notifications(notifications)
    await record_activity(store, session, "update", "announcement", notification.title)
    return JSONResponse(stored)


@router.delete("/announcements/{notification_id}")
async def delete_announcement(
    notification_id: str,
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    notifications = await store.load_notifications()
    idx = find_index(notifications, "id", notification_id)
    if idx is None:
        raise not_found("Announcement", notification_id)
    games = await store.load_games()
    ensure_can_act(session, _game_owner(games, str(notifications[idx].get("gameId"))))

    removed = notifications.pop(idx)
    await store.save_notifications(notifications)
    await record_activity(
        store, session, "delete", "announcement", str(removed.get("title", notification_id))
    )
    return JSONResponse({"deleted": True})


@router.get("/studios")
async def list_studios(
    session: Session = Depends(current_session),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    return JSONResponse(await store.load_studios())


@router.post("/studios", status_code=status.HTTP_201_CREATED)
async def create_studio(
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    record = dict(payload)
    if not record.get("id"):
        record["id"] = generated_id("studio")
    studio = validate_record(Studio, record)

    studios = await store.load_studios()
    if studio.name in studio_names(studios):
        raise bad_request(f"Studio '{studio.name}' already exists")
    if find_index(studios, "id", studio.id) is not None:
        raise bad_request(f"Studio '{studio.id}' already exists")

    stored = studio.to_json()
    studios.append(stored)
    await store.save_studios(studios)
    await record_activity(store, session, "create", "studio", studio.name)
    return JSONResponse(stored, status_code=status.HTTP_201_CREATED)


async def _rename_studio(
    store: DocumentStore, sessions: SessionStore, old: str, new: str
) -> None:
    """Move the studio join key on games, user grants and live sessions from ``old`` to ``new``."""
    games = await store.load_games()
    for game in games:
        if game.get("ownedBy") == old:
            game["ownedBy"] = new
    await store.save_games(games)

    users = await store.load_users()
    for user in users:
        allowed = user.get("allowedStudios") or []
        user["allowedStudios"] = [new if name == old else name for name in allowed]
    await store.save_users(users)
    retargeted = await sessions.rename_studio(old, new)
    logger.info("Renamed studio '%s' to '%s' (%d live sessions)", old, new, retargeted)


@router.put("/studios/{studio_id}")
async def update_studio(
    studio_id: str,
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
    sessions: SessionStore = Depends(get_sessions),
) -> JSONResponse:
    studios = await store.load_studios()
    idx = find_index(studios, "id", studio_id)
    if idx is None:
        raise not_found("Studio", studio_id)
    current = studios[idx]

    studio = validate_record(Studio, {**current, **payload, "id": current["id"]})
    renamed = studio.name != current.get("name")
    if renamed and studio.name in studio_names(studios):
        raise bad_request(f"Studio '{studio.name}' already exists")

    stored = studio.to_json()
    studios[idx] = stored
    await store.save_studios(studios)
    if renamed:
        await _rename_studio(store, sessions, str(current.get("name")), studio.name)
    await record_activity(store, session, "update", "studio", studio.name)
    return JSONResponse(stored)


@router.delete("/studios/{studio_id}")
async def delete_studio(
    studio_id: str,
    session: Session = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    studios = await store.load_studios()
    idx = find_index(studios, "id", studio_id)
    if idx is None:
        raise not_found("Studio", studio_id)
    name = studios[idx].get("name")
    owned = [game["id"] for game in await store.load_games() if game.get("ownedBy") == name]
    if owned:
        raise bad_request(f"Studio '{name}' still owns {len(owned)} game(s)")

    studios.pop(idx)
    await store.save_studios(studios)
    await record_activity(store, session, "delete", "studio", str(name))
    return JSONResponse({"deleted": True})
