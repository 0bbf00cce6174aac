"""Request dependencies and checks shared by the panel routers."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from fastapi import Depends, HTTPException, Request, status
from pydantic import ValidationError

from .auth import can_act
from .models import ActivityEntry, Record, Session
from .sessions import SessionStore, now_ms
from .store import DocumentStore

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def current_session(request: Request) -> Session:
    session: Optional[Session] = getattr(request.state, "session", None)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return session


def require_admin(session: Session = Depends(current_session)) -> Session:
    if not session.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return session


def ensure_can_act(session: Session, owner_studio: Optional[str]) -> None:
    if not can_act(session, owner_studio):
        logger.info(
            "Denied '%s' access to studio %r", session.username, owner_studio
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"No permission for studio '{owner_studio}'",
        )


def describe_errors(errors: Sequence[Any]) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def validate_record(model: Type[R], data: Dict[str, Any]) -> R:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=describe_errors(exc.errors())
        ) from exc


def not_found(kind: str, key: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{kind} '{key}' not found")


def bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def generated_id(prefix: str) -> str:
    return f"{prefix}-{now_ms()}"


def studio_names(studios: List[Dict[str, Any]]) -> set[str]:
    return {str(studio.get("name")) for studio in studios}


async def record_activity(
    store: DocumentStore,
    session: Session,
    action: str,
    entity_type: str,
    entity_name: str,
    details: Optional[str] = None,
) -> None:
    entry = ActivityEntry(
        id=uuid.uuid4().hex[:12],
        type=action,  # type: ignore[arg-type]
        entity_type=entity_type,  # type: ignore[arg-type]
        entity_name=entity_name,
        user=session.username,
        timestamp=datetime.now(timezone.utc).isoformat(),
        details=details,
    )
    await store.append_activity(entry.to_json())
