"""Environment-driven settings for the portal."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

SESSION_COOKIE = "panel_session"
SESSION_TTL_SECONDS = 24 * 60 * 60


@dataclass
class Settings:
    panel_host_prefix: str = "panel."
    kv_backend: str = "file"
    session_backend: str = "memory"
    data_dir: Path = field(default_factory=lambda: BASE_DIR / "data")
    public_dir: Path = field(default_factory=lambda: BASE_DIR / "dist")
    panel_dir: Path = field(default_factory=lambda: BASE_DIR / "dist" / "panel")
    admin_password: Optional[str] = None
    cloudflare_account_id: Optional[str] = None
    cloudflare_namespace_id: Optional[str] = None
    cloudflare_api_token: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        public_dir = Path(os.getenv("PORTAL_PUBLIC_DIR", str(BASE_DIR / "dist"))).expanduser()
        return cls(
            panel_host_prefix=os.getenv("PORTAL_PANEL_HOST_PREFIX", "panel.").lower(),
            kv_backend=os.getenv("PORTAL_KV_BACKEND", "file").lower(),
            session_backend=os.getenv("PORTAL_SESSION_BACKEND", "memory").lower(),
            data_dir=Path(os.getenv("PORTAL_DATA_DIR", str(BASE_DIR / "data"))).expanduser(),
            public_dir=public_dir,
            panel_dir=Path(os.getenv("PORTAL_PANEL_DIR", str(public_dir / "panel"))).expanduser(),
            admin_password=os.getenv("PORTAL_ADMIN_PASSWORD") or None,
            cloudflare_account_id=os.getenv("CLOUDFLARE_ACCOUNT_ID"),
            cloudflare_namespace_id=os.getenv("CLOUDFLARE_KV_NAMESPACE_ID"),
            cloudflare_api_token=os.getenv("CLOUDFLARE_API_TOKEN"),
        )
