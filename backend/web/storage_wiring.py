"""
Shared holder for the whitelist backend used by the web routes.

Why:
    Both the admin API and the Steam login callback must talk to the same
    backend (database service, panel bridge or local file). This module wires
    it lazily from the environment on first use, so importing the app never
    touches the database or the panel, and lets tests inject a fake.

Security:
    Only server-side objects are wired; no secrets are exposed to clients.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from backend.whitelist.config import Settings, load_settings
from backend.whitelist.wiring import build_service, build_text_backend


logger = logging.getLogger("apex.web")

_BACKEND: Optional[Any] = None


def wire_whitelist_backend(settings: Optional[Settings] = None) -> Any:
    """Build the backend from ``settings`` (env by default) and remember it.

    Behavior:
        - A database URL enables the database service with file fallback.
        - Otherwise the panel bridge or the local file store is used.
    """
    global _BACKEND
    settings = settings or load_settings()
    text_backend = build_text_backend(settings)
    service = build_service(settings, text_backend)
    _BACKEND = service if service is not None else text_backend
    logger.info("Whitelist backend wired: %s", _BACKEND.__class__.__name__)
    return _BACKEND


def get_backend() -> Any:
    if _BACKEND is None:
        return wire_whitelist_backend()
    return _BACKEND


def set_backend(backend: Any) -> None:
    """Allow tests to swap the whitelist backend (None re-enables lazy wiring)."""
    global _BACKEND
    _BACKEND = backend


__all__ = ["get_backend", "set_backend", "wire_whitelist_backend"]
