"""Password handling, login credential checks and the studio permission rule."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from abc import ABC, abstractmethod
import secrets
from typing import Any, Dict, Optional, Sequence

from .models import WILDCARD_STUDIO, Session
from .store import DocumentStore, find_index

logger = logging.getLogger(__name__)

HASH_SCHEME = "pbkdf2_sha256"
HASH_ITERATIONS = 200_000
LEGACY_KEY_PREFIX = "user:"


def hash_password(password: str, iterations: int = HASH_ITERATIONS) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return "$".join(
        [
            HASH_SCHEME,
            str(iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(digest).decode("ascii"),
        ]
    )


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a stored hash, or a plaintext value from older records."""
    if not stored.startswith(HASH_SCHEME + "$"):
        return secrets.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))
    try:
        _, iterations, salt_b64, digest_b64 = stored.split("$")
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(digest_b64)
        rounds = int(iterations)
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    except ValueError:
        logger.warning("Stored password hash is malformed.")
        return False
    return secrets.compare_digest(digest, expected)


def can_act(session: Session, owner_studio: Optional[str]) -> bool:
    if session.is_admin:
        return True
    if WILDCARD_STUDIO in session.allowed_studios:
        return True
    if owner_studio is None:
        return False
    return owner_studio in session.allowed_studios


class CredentialCheck(ABC):
    """One way of verifying a password. ``None`` means the check does not apply."""

    @abstractmethod
    async def check(
        self, store: DocumentStore, user: Dict[str, Any], password: str
    ) -> Optional[bool]:
        ...


class InlinePasswordCheck(CredentialCheck):
    async def check(
        self, store: DocumentStore, user: Dict[str, Any], password: str
    ) -> Optional[bool]:
        stored = user.get("password")
        if not stored:
            return None
        return verify_password(password, str(stored))


class LegacyKeyCheck(CredentialCheck):
    """Accounts created before passwords moved into the users collection."""

    async def check(
        self, store: DocumentStore, user: Dict[str, Any], password: str
    ) -> Optional[bool]:
        raw = await store.get_raw(LEGACY_KEY_PREFIX + str(user.get("username")))
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            payload = raw
        stored = payload.get("password") if isinstance(payload, dict) else payload
        if not isinstance(stored, str) or not stored:
            return None
        logger.debug("Verifying '%s' against legacy credential key", user.get("username"))
        return verify_password(password, stored)


DEFAULT_CHECKS: Sequence[CredentialCheck] = (InlinePasswordCheck(), LegacyKeyCheck())


async def authenticate(
    store: DocumentStore,
    username: str,
    password: str,
    checks: Sequence[CredentialCheck] = DEFAULT_CHECKS,
) -> Optional[Dict[str, Any]]:
    """Return the matching user record, or ``None`` when the credentials are wrong."""
    if not username or not password:
        return None
    users = await store.load_users()
    idx = find_index(users, "username", username)
    if idx is None:
        return None
    user = users[idx]
    for strategy in checks:
        verdict = await strategy.check(store, user, password)
        if verdict is not None:
            return user if verdict else None
    return None
