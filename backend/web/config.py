"""
Configuration and startup security checks for the whitelist web app.

Why: The admin API can grant in-game privileges. This module provides a single
guard that enforces minimal production safety constraints without burdening
local development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os

MIN_ADMIN_TOKEN_LENGTH = 24


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - WHITELIST_ADMIN_TOKEN must be set, long enough and not a placeholder.
    - The database DSN must not explicitly disable TLS.
    - Panel and public base URLs must use HTTPS.
    """

    env = os.getenv("APEX_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    # 1) Admin API token
    token = (os.getenv("WHITELIST_ADMIN_TOKEN", "") or "").strip()
    if not token or token.upper().startswith("CHANGE_ME"):
        raise SystemExit(
            "Refusing to start: WHITELIST_ADMIN_TOKEN is unset or a placeholder in production."
        )
    if len(token) < MIN_ADMIN_TOKEN_LENGTH:
        raise SystemExit(
            f"Refusing to start: WHITELIST_ADMIN_TOKEN must be at least {MIN_ADMIN_TOKEN_LENGTH} characters in production."
        )

    # 2) Postgres TLS: basic guard to avoid explicit disable
    for key in ("WHITELIST_DATABASE_URL", "DATABASE_URL"):
        if "sslmode=disable" in (os.getenv(key, "") or ""):
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )

    # 3) Remote endpoints must use HTTPS in production-like environments
    def _must_be_https(url_value: str, var_name: str) -> None:
        if url_value and url_value.strip().lower().startswith("http://"):
            raise SystemExit(
                f"Refusing to start: {var_name} must use https in production (got http)."
            )

    _must_be_https(os.getenv("PTERODACTYL_PANEL_URL", ""), "PTERODACTYL_PANEL_URL")
    _must_be_https(os.getenv("APP_BASE_URL", ""), "APP_BASE_URL")
