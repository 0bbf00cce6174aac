"""Key-value backends the document store and session store sit on."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

import httpx

from .config import Settings

logger = logging.getLogger(__name__)


class KeyValueBackend(ABC):
    """String values addressed by string keys. Missing keys read as ``None``."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        """Every stored key starting with ``prefix``."""

    async def aclose(self) -> None:
        return None


class MemoryKV(KeyValueBackend):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})
        self.writes: list[str] = []

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def put(self, key: str, value: str) -> None:
        self.writes.append(key)
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        return [key for key in self.data if key.startswith(prefix)]


class FileKV(KeyValueBackend):
    """One file per key inside ``directory``. Disk access runs off the event loop."""

    SUFFIX = ".json"

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{self.SUFFIX}"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        path = self._path(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def _list(self, prefix: str) -> List[str]:
        if not self.directory.is_dir():
            return []
        names = (
            unquote(path.name[: -len(self.SUFFIX)])
            for path in self.directory.glob(f"*{self.SUFFIX}")
        )
        return sorted(name for name in names if name.startswith(prefix))

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)

    async def keys(self, prefix: str = "") -> List[str]:
        return await asyncio.to_thread(self._list, prefix)


class CloudflareKV(KeyValueBackend):
    """Workers KV namespace reached through the Cloudflare REST API."""

    API_BASE = "https://api.cloudflare.com/client/v4"

    def __init__(
        self,
        account_id: str,
        namespace_id: str,
        api_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.account_id = account_id
        self.namespace_id = namespace_id
        self._http = httpx.AsyncClient(
            base_url=(
                f"{self.API_BASE}/accounts/{account_id}"
                f"/storage/kv/namespaces/{namespace_id}"
            ),
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _value_path(key: str) -> str:
        return f"/values/{quote(key, safe='')}"

    async def get(self, key: str) -> Optional[str]:
        response = await self._http.get(self._value_path(key))
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        return response.text

    async def put(self, key: str, value: str) -> None:
        response = await self._http.put(
            self._value_path(key),
            content=value.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        response.raise_for_status()
        logger.debug("Wrote KV key '%s' (%d bytes)", key, len(value))

    async def delete(self, key: str) -> None:
        response = await self._http.delete(self._value_path(key))
        if response.status_code == httpx.codes.NOT_FOUND:
            return
        response.raise_for_status()

    async def keys(self, prefix: str = "") -> List[str]:
        names: List[str] = []
        params: Dict[str, str] = {"prefix": prefix}
        while True:
            response = await self._http.get("/keys", params=params)
            response.raise_for_status()
            body = response.json()
            names.extend(item["name"] for item in body.get("result") or [])
            cursor = (body.get("result_info") or {}).get("cursor")
            if not cursor:
                return names
            params["cursor"] = cursor

    async def aclose(self) -> None:
        await self._http.aclose()


def create_backend(settings: Settings) -> KeyValueBackend:
    kind = settings.kv_backend
    if kind == "memory":
        logger.warning("Using in-memory KV backend; data is lost on restart.")
        return MemoryKV()
    if kind == "cloudflare":
        missing = [
            name
            for name, value in (
                ("CLOUDFLARE_ACCOUNT_ID", settings.cloudflare_account_id),
                ("CLOUDFLARE_KV_NAMESPACE_ID", settings.cloudflare_namespace_id),
                ("CLOUDFLARE_API_TOKEN", settings.cloudflare_api_token),
            )
            if not value
        ]
        if missing:
            raise RuntimeError(
                f"Cloudflare KV backend selected but {', '.join(missing)} not set."
            )
        logger.info("Using Cloudflare KV namespace %s.", settings.cloudflare_namespace_id)
        return CloudflareKV(
            settings.cloudflare_account_id,  # type: ignore[arg-type]
            settings.cloudflare_namespace_id,  # type: ignore[arg-type]
            settings.cloudflare_api_token,  # type: ignore[arg-type]
        )
    if kind == "file":
        logger.info("Using file KV backend at %s.", settings.data_dir)
        return FileKV(settings.data_dir)
    raise RuntimeError(f"Unknown KV backend '{kind}'.")
