"""
Centralized whitelist configuration.

Intent:
    One place that turns environment variables into a frozen ``Settings``
    object, shared by the CLI, the web app and the command surface. Prevents
    drift between entry points and keeps tests simple (pass a dict as env).

Behavior:
    - Invalid or non-positive integers fall back to their defaults.
    - ``WHITELIST_ROLES`` (``CODE:description,...``) replaces the built-in role
      set when present.
    - The panel bridge counts as configured only when URL, API key and server
      id are all set.

Permissions:
    Pure configuration; no external calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional
import os

from .cache import DEFAULT_TTL_SECONDS
from .domain import DEFAULT_REGISTRY, DEFAULT_UID_LENGTH, RoleRegistry


WHITELIST_FILE_PATH_DEFAULT = "../@Apex_cfg/whitelist.sqf"
PANEL_WHITELIST_PATH_DEFAULT = "@Apex_cfg/whitelist.sqf"
PANEL_TIMEOUT_DEFAULT = 10
APP_BASE_URL_DEFAULT = "http://localhost:8000"
STEAM_AUTH_TYPES_DEFAULT = ("S3", "CAS")
STEAM_AUTH_ADDED_BY_DEFAULT = "Steam OAuth"


def _str(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _str(env, name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _csv(raw: str) -> tuple[str, ...]:
    return tuple(p.strip().upper() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    whitelist_file_path: str = WHITELIST_FILE_PATH_DEFAULT
    uid_length: int = DEFAULT_UID_LENGTH
    registry: RoleRegistry = field(default=DEFAULT_REGISTRY)
    panel_url: str = ""
    panel_api_key: str = ""
    panel_server_id: str = ""
    panel_whitelist_path: str = PANEL_WHITELIST_PATH_DEFAULT
    panel_timeout: int = PANEL_TIMEOUT_DEFAULT
    database_url: Optional[str] = None
    cache_ttl_seconds: int = DEFAULT_TTL_SECONDS
    steam_api_key: str = ""
    app_base_url: str = APP_BASE_URL_DEFAULT
    steam_auth_types: tuple[str, ...] = STEAM_AUTH_TYPES_DEFAULT
    steam_auth_added_by: str = STEAM_AUTH_ADDED_BY_DEFAULT
    steam_auth_success_redirect: str = ""
    steam_auth_error_redirect: str = ""
    admin_token: str = ""
    discord_admin_role_id: str = ""
    env: str = "dev"

    @property
    def panel_enabled(self) -> bool:
        return bool(self.panel_url and self.panel_api_key and self.panel_server_id)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build ``Settings`` from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env
    roles_raw = _str(env, "WHITELIST_ROLES")
    registry = RoleRegistry.parse(roles_raw) if roles_raw else DEFAULT_REGISTRY
    database_url = _str(env, "WHITELIST_DATABASE_URL") or _str(env, "DATABASE_URL") or None
    return Settings(
        whitelist_file_path=_str(env, "WHITELIST_FILE_PATH", WHITELIST_FILE_PATH_DEFAULT),
        uid_length=_parse_int(env, "WHITELIST_UID_LENGTH", DEFAULT_UID_LENGTH),
        registry=registry,
        panel_url=_str(env, "PTERODACTYL_PANEL_URL").rstrip("/"),
        panel_api_key=_str(env, "PTERODACTYL_API_KEY"),
        panel_server_id=_str(env, "PTERODACTYL_SERVER_ID"),
        panel_whitelist_path=_str(env, "PTERODACTYL_WHITELIST_PATH", PANEL_WHITELIST_PATH_DEFAULT),
        panel_timeout=_parse_int(env, "PANEL_TIMEOUT_SECONDS", PANEL_TIMEOUT_DEFAULT),
        database_url=database_url,
        cache_ttl_seconds=_parse_int(env, "WHITELIST_CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS),
        steam_api_key=_str(env, "STEAM_API_KEY"),
        app_base_url=_str(env, "APP_BASE_URL", APP_BASE_URL_DEFAULT).rstrip("/"),
        steam_auth_types=_csv(_str(env, "STEAM_AUTH_WHITELIST_TYPES")) or STEAM_AUTH_TYPES_DEFAULT,
        steam_auth_added_by=_str(env, "STEAM_AUTH_ADDED_BY", STEAM_AUTH_ADDED_BY_DEFAULT),
        steam_auth_success_redirect=_str(env, "STEAM_AUTH_SUCCESS_REDIRECT"),
        steam_auth_error_redirect=_str(env, "STEAM_AUTH_ERROR_REDIRECT"),
        admin_token=_str(env, "WHITELIST_ADMIN_TOKEN"),
        discord_admin_role_id=_str(env, "DISCORD_ADMIN_ROLE_ID"),
        env=_str(env, "APEX_ENV", "dev").lower(),
    )


__all__ = [
    "APP_BASE_URL_DEFAULT",
    "PANEL_TIMEOUT_DEFAULT",
    "PANEL_WHITELIST_PATH_DEFAULT",
    "STEAM_AUTH_ADDED_BY_DEFAULT",
    "STEAM_AUTH_TYPES_DEFAULT",
    "Settings",
    "WHITELIST_FILE_PATH_DEFAULT",
    "load_settings",
]
