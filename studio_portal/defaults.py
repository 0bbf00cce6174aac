"""Built-in records written to an empty store the first time a collection is read."""

from typing import Any, Dict, List

GAMES_KEY = "games"
STUDIOS_KEY = "studios"
NOTIFICATIONS_KEY = "notifications"
USERS_KEY = "users"
CONFIG_KEY = "config"
ACTIVITY_KEY = "activity"

# The seed games predate the ``genres`` list and still carry the legacy ``genre`` string.
DEFAULT_GAMES: List[Dict[str, Any]] = [
    {
        "id": "ashmoor-casefiles",
        "name": "Ashmoor Casefiles",
        "logo": "/ashmoor.png",
        "description": (
            "Dive into the dark mysteries of Ashmoor. Investigate supernatural cases, "
            "uncover hidden secrets, and solve puzzles in this atmospheric detective experience."
        ),
        "ownedBy": "Interworks Inc",
        "status": "coming-soon",
        "genre": "Horror, Mystery",
        "order": 0,
    },
    {
        "id": "unseen-floors",
        "name": "Unseen Floors",
        "logo": "/LogoUnseen.png",
        "description": "Every floor hides something new. Keep climbing.",
        "ownedBy": "Astral Core",
        "status": "coming-soon",
        "genre": "Horror",
        "youtubeVideoId": "23Mq7j-O88E",
        "link": "https://www.roblox.com/games/113322775247353/SPOOKY-FLOORS",
        "order": 1,
    },
]

DEFAULT_STUDIOS: List[Dict[str, Any]] = [
    {
        "id": "interworks-inc",
        "name": "Interworks Inc",
        "description": "The team behind the portal.",
        "hero": True,
        "thumbnail": "/interworks_hero_background.png",
        "discord": "https://discord.gg/C2wGG8KHRr",
        "roblox": "https://www.roblox.com/communities/34862200/Interworks-Inc#!/",
    },
    {
        "id": "astral-core",
        "name": "Astral Core",
        "logo": "/studios/astral_Core.png",
        "thumbnail": "/astral_hero_background.png",
        "hero": True,
    },
]

DEFAULT_NOTIFICATIONS: List[Dict[str, Any]] = []

ADMIN_USERNAME = "admin"

MEDIA_PATHS: List[str] = [
    "/ashmoor.png",
    "/LogoUnseen.png",
    "/studios/astral_Core.png",
    "/interworks_hero_background.png",
    "/astral_hero_background.png",
]


def default_users(admin_password_hash: str) -> List[Dict[str, Any]]:
    return [
        {
            "username": ADMIN_USERNAME,
            "password": admin_password_hash,
            "role": "admin",
            "allowedStudios": ["*"],
        }
    ]
