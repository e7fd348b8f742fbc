"""
Wire the whitelist backends from ``Settings``.

Why:
    The CLI, the web app and the command surface must agree on where the
    whitelist lives. When the panel is configured the remote bridge wins over
    the local file; a database URL additionally enables the database service,
    which falls back to the text backend.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Union

from .cache import ExpiringCache
from .config import Settings
from .repo_db import DBWhitelistRepo
from .service import WhitelistService
from .sources import LocalFileSource
from .store import WhitelistStore

if TYPE_CHECKING:
    from backend.panel.bridge import RemoteFileBridge


logger = logging.getLogger("apex.whitelist")


def build_text_backend(settings: Settings) -> Union[WhitelistStore, RemoteFileBridge]:
    """Return the panel bridge when configured, else the local file store."""
    if settings.panel_enabled:
        from backend.panel.bridge import RemoteFileBridge
        from backend.panel.client import PanelClient, PanelConfig

        logger.info("Whitelist backend: panel server=%s", settings.panel_server_id)
        return RemoteFileBridge(
            PanelClient(PanelConfig.from_settings(settings)),
            registry=settings.registry,
            uid_length=settings.uid_length,
        )
    logger.info("Whitelist backend: local file")
    return WhitelistStore(
        LocalFileSource(settings.whitelist_file_path),
        registry=settings.registry,
        uid_length=settings.uid_length,
    )


def build_service(settings: Settings, text_backend=None) -> Optional[WhitelistService]:
    """Database service with file fallback, or None without a database URL."""
    if not settings.database_url:
        return None
    try:
        repo = DBWhitelistRepo(
            settings.database_url,
            registry=settings.registry,
            uid_length=settings.uid_length,
        )
    except RuntimeError as exc:
        logger.warning("Whitelist database disabled: %s", exc)
        return None
    return WhitelistService(
        repo,
        file_store=text_backend if text_backend is not None else build_text_backend(settings),
        cache=ExpiringCache(ttl_seconds=settings.cache_ttl_seconds),
        registry=settings.registry,
    )


__all__ = ["build_service", "build_text_backend"]
