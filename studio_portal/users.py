"""Admin-only management of panel accounts."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from .auth import hash_password
from .deps import bad_request, get_store, not_found, record_activity, require_admin, validate_record
from .models import Session, User
from .store import DocumentStore, find_index

logger = logging.getLogger(__name__)

# Mounted under both /api/users and /api/team.
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("")
async def list_users(store: DocumentStore = Depends(get_store)) -> JSONResponse:
    users = await store.load_users()
    return JSONResponse([User.model_validate(user).public_json() for user in users])


@router.get("/{username}")
async def get_user(username: str, store: DocumentStore = Depends(get_store)) -> JSONResponse:
    users = await store.load_users()
    idx = find_index(users, "username", username)
    if idx is None:
        raise not_found("User", username)
    return JSONResponse(User.model_validate(users[idx]).public_json())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        raise bad_request("Password is required")
    user = validate_record(User, payload)

    users = await store.load_users()
    if find_index(users, "username", user.username) is not None:
        raise bad_request(f"User '{user.username}' already exists")

    user.password = hash_password(password)
    users.append(user.to_json())
    await store.save_users(users)
    await record_activity(store, session, "create", "user", user.username)
    logger.info("'%s' created user '%s' (%s)", session.username, user.username, user.role)
    return JSONResponse(user.public_json(), status_code=status.HTTP_201_CREATED)


@router.put("/{username}")
async def update_user(
    username: str,
    payload: Dict[str, Any] = Body(...),
    session: Session = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    users = await store.load_users()
    idx = find_index(users, "username", username)
    if idx is None:
        raise not_found("User", username)
    if payload.get("username", username) != username:
        raise bad_request("Username cannot be changed")

    changes = dict(payload)
    new_password = changes.pop("password", None)
    user = validate_record(User, {**users[idx], **changes, "username": username})
    if isinstance(new_password, str) and new_password:
        user.password = hash_password(new_password)

    users[idx] = user.to_json()
    await store.save_users(users)
    await record_activity(store, session, "update", "user", username)
    return JSONResponse(user.public_json())


@router.delete("/{username}")
async def delete_user(
    username: str,
    session: Session = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    if username == session.username:
        raise bad_request("You cannot delete your own account")
    users = await store.load_users()
    idx = find_index(users, "username", username)
    if idx is None:
        raise not_found("User", username)

    users.pop(idx)
    await store.save_users(users)
    await record_activity(store, session, "delete", "user", username)
    logger.info("'%s' deleted user '%s'", session.username, username)
    return JSONResponse({"deleted": True})
