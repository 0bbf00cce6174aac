"""Pydantic models for every record kept in the document store."""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

GameStatus = Literal["coming-soon", "playable", "beta", "in-development"]
EventType = Literal["countdown", "event", "announcement"]
Role = Literal["admin", "user"]

WILDCARD_STUDIO = "*"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO date string; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Record(BaseModel):
    """Base for stored JSON records: camelCase on the wire, unknown keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SpotifyAlbum(Record):
    name: str
    spotify_id: str


class GameEvent(Record):
    id: str
    type: EventType
    title: str
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    color: str
    icon: Optional[str] = None
    show_on_card: Optional[bool] = None
    show_on_hero: Optional[bool] = None
    show_countdown: Optional[bool] = None
    active: bool
    priority: Optional[int] = None


class Game(Record):
    id: str
    name: str
    logo: str = ""
    description: str = ""
    owned_by: str
    status: GameStatus
    genres: list[str] = Field(default_factory=list)
    youtube_video_id: Optional[str] = None
    thumbnails: Optional[list[str]] = None
    spotify_albums: Optional[list[SpotifyAlbum]] = None
    link: Optional[str] = None
    order: Optional[int] = None
    visible: Optional[bool] = None
    events: Optional[list[GameEvent]] = None


class Studio(Record):
    id: str
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    thumbnail: Optional[str] = None
    hero: Optional[bool] = None
    media: Optional[list[str]] = None
    discord: Optional[str] = None
    roblox: Optional[str] = None
    youtube: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Studio name is required")
        return value


class Notification(Record):
    id: str
    game_id: str
    title: str
    description: str = ""
    countdown_to: Optional[str] = None
    youtube_video_id: Optional[str] = None
    link: Optional[str] = None
    active: bool = False

    @field_validator("countdown_to")
    @classmethod
    def _valid_countdown(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        parse_timestamp(value)
        return value


class User(Record):
    username: str
    password: Optional[str] = None
    role: Role = "user"
    allowed_studios: list[str] = Field(default_factory=list)

    @field_validator("username")
    @classmethod
    def _username_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Username is required")
        return value

    def public_json(self) -> dict[str, Any]:
        payload = self.to_json()
        payload.pop("password", None)
        return payload


class SpecialCountdown(Record):
    enabled: bool = False
    title: str = ""
    description: str = ""
    target_date: str = ""
    logo: Optional[str] = None
    background_image: Optional[str] = None
    youtube_video_id: Optional[str] = None
    youtube_reveal_date: Optional[str] = None


class SiteConfig(Record):
    special_countdown: Optional[SpecialCountdown] = None


class Session(Record):
    token: str
    username: str
    role: Role
    allowed_studios: list[str] = Field(default_factory=list)
    expires: int

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class ActivityEntry(Record):
    id: str
    type: Literal["create", "update", "delete"]
    entity_type: Literal["game", "studio", "announcement", "user", "config"]
    entity_name: str
    user: str
    timestamp: str
    details: Optional[str] = None
