"""
Minimal client for the Pterodactyl client file API.

Why:
    The game server's whitelist lives on a hosted server. The panel exposes the
    file as plain text: ``GET .../files/contents`` returns it and
    ``POST .../files/write`` overwrites it completely.

Security:
    The API key travels only in the ``Authorization`` header and is never
    logged. Calls are bounded by a timeout (default 10 seconds); timeouts map to
    ``SourceTimeoutError`` and every other transport or HTTP failure to
    ``SourceUnavailableError``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
import logging

import httpx

from backend.whitelist.config import PANEL_TIMEOUT_DEFAULT, PANEL_WHITELIST_PATH_DEFAULT, Settings
from backend.whitelist.errors import SourceTimeoutError, SourceUnavailableError


logger = logging.getLogger("apex.panel")


@dataclass(frozen=True)
class PanelConfig:
    panel_url: str
    api_key: str
    server_id: str
    whitelist_path: str = PANEL_WHITELIST_PATH_DEFAULT
    timeout: float = PANEL_TIMEOUT_DEFAULT

    @property
    def enabled(self) -> bool:
        return bool(self.panel_url and self.api_key and self.server_id)

    @property
    def server_base(self) -> str:
        return f"{self.panel_url.rstrip('/')}/api/client/servers/{self.server_id}"

    @classmethod
    def from_settings(cls, settings: Settings) -> "PanelConfig":
        return cls(
            panel_url=settings.panel_url,
            api_key=settings.panel_api_key,
            server_id=settings.panel_server_id,
            whitelist_path=settings.panel_whitelist_path,
            timeout=settings.panel_timeout,
        )


def backup_path_for(path: str, now: datetime) -> str:
    """``whitelist.sqf`` -> ``whitelist_backup_2024-05-01T10-00-00-000Z.sqf``."""
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    if ".sqf" in path:
        return path.replace(".sqf", f"_backup_{stamp}.sqf", 1)
    return f"{path}_backup_{stamp}"


class PanelClient:
    def __init__(
        self,
        config: PanelConfig,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.config = config
        self._transport = transport
        self._clock = clock

    def _request(self, method: str, endpoint: str, *, params: dict, content: Optional[str] = None) -> httpx.Response:
        if not self.config.enabled:
            raise SourceUnavailableError("Panel integration is not configured")
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Accept": "application/json",
        }
        if content is not None:
            headers["Content-Type"] = "text/plain"
        url = f"{self.config.server_base}{endpoint}"
        try:
            with httpx.Client(timeout=self.config.timeout, transport=self._transport) as client:
                resp = client.request(method, url, params=params, headers=headers, content=content)
        except httpx.TimeoutException as exc:
            logger.warning("Panel request timed out: %s %s", method, endpoint)
            raise SourceTimeoutError(f"Panel request timed out ({exc.__class__.__name__})") from exc
        except httpx.HTTPError as exc:
            logger.warning("Panel request failed: %s %s err=%s", method, endpoint, exc.__class__.__name__)
            raise SourceUnavailableError(f"Panel unreachable ({exc.__class__.__name__})") from exc
        if resp.status_code >= 400:
            logger.warning("Panel API error: %s %s status=%s", method, endpoint, resp.status_code)
            raise SourceUnavailableError(f"Panel API error ({resp.status_code}): {resp.text[:200]}")
        return resp

    def read_file(self, path: Optional[str] = None) -> str:
        resp = self._request("GET", "/files/contents", params={"file": path or self.config.whitelist_path})
        return resp.text

    def write_file(self, content: str, path: Optional[str] = None) -> None:
        self._request("POST", "/files/write", params={"file": path or self.config.whitelist_path}, content=content)

    def backup_file(self) -> str:
        """Copy the whitelist to a timestamped sibling; returns the backup path."""
        content = self.read_file()
        target = backup_path_for(self.config.whitelist_path, self._clock())
        self.write_file(content, target)
        logger.info("Panel whitelist backup written path=%s", target)
        return target


__all__ = ["PanelClient", "PanelConfig", "backup_path_for"]
