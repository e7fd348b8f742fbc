"""
Steam login routes (router-only module).

Why:
    Players sign in with Steam once and are added to the automatic whitelist
    roles (``STEAM_AUTH_WHITELIST_TYPES``, default S3 and CAS). Only the Steam id
    proven by the OpenID callback is ever written.

Notes:
    - The OpenID signature check is delegated to ``VERIFIER`` so tests can swap
      it via ``set_verifier``; production uses Steam's check_authentication.
    - Player names are looked up best effort and never block the callback.
    - The OpenID check and the name lookup are blocking HTTP calls, so they run
      in a worker thread.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse
import logging

from backend.identity_access.directory import SteamDirectory
from backend.identity_access.openid import SteamOpenID, Verifier, check_authentication_with_steam
from backend.web import storage_wiring
from backend.whitelist.config import Settings, load_settings
from backend.whitelist.errors import ALREADY_WHITELISTED, SourceUnavailableError
from backend.whitelist.service import WhitelistService


auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("apex.web.auth")

CALLBACK_PATH = "/auth/steam/callback"

VERIFIER: Verifier = check_authentication_with_steam


def set_verifier(verifier: Verifier) -> None:
    """Allow tests to replace the OpenID signature check."""
    global VERIFIER
    VERIFIER = verifier


def _private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}


def _openid(settings: Settings) -> SteamOpenID:
    return SteamOpenID(f"{settings.app_base_url}{CALLBACK_PATH}", uid_length=settings.uid_length)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302, headers=_private_no_store())


@auth_router.get("/auth/steam/login")
async def steam_login():
    """Redirect the browser to the Steam OpenID login page."""
    return RedirectResponse(url=_openid(load_settings()).login_url(), status_code=302)


@auth_router.get(CALLBACK_PATH)
async def steam_callback(request: Request):
    """Validate the Steam response and add the player to the automatic roles.

    Responses:
        - 200 with per-role results; roles the player already holds count as
          success.
        - 400 when the OpenID response cannot be verified.
        - 503 when the whitelist backend is unreachable.
        - 302 instead, when ``STEAM_AUTH_SUCCESS_REDIRECT`` (all roles
          succeeded) or ``STEAM_AUTH_ERROR_REDIRECT`` (400/503 cases) is set.
    """
    settings = load_settings()
    steam_id = await asyncio.to_thread(
        _openid(settings).extract_steam_id, dict(request.query_params), VERIFIER
    )
    if not steam_id:
        logger.info("Steam login rejected")
        if settings.steam_auth_error_redirect:
            return _redirect(settings.steam_auth_error_redirect)
        return JSONResponse(
            {"error": "steam_login_failed", "detail": "Steam authentication failed. Please try again."},
            status_code=400,
            headers=_private_no_store(),
        )

    player_name = await asyncio.to_thread(SteamDirectory(settings.steam_api_key).player_name, steam_id)
    backend = storage_wiring.get_backend()
    results = []
    try:
        for role in settings.steam_auth_types:
            if isinstance(backend, WhitelistService):
                outcome = backend.add(
                    steam_id,
                    role,
                    added_by=settings.steam_auth_added_by,
                    player_name=player_name,
                    notes="Auto-added via Steam login",
                )
            else:
                outcome = backend.add_uid(role, steam_id)
            results.append(
                {
                    "role": outcome.role or role,
                    "success": outcome.success or outcome.code == ALREADY_WHITELISTED,
                    "message": outcome.message,
                }
            )
    except SourceUnavailableError as exc:
        logger.warning("Steam login whitelist update failed: %s", exc.code)
        if settings.steam_auth_error_redirect:
            return _redirect(settings.steam_auth_error_redirect)
        return JSONResponse(
            {"error": exc.code, "detail": "Whitelist backend unavailable."},
            status_code=503,
            headers=_private_no_store(),
        )
    logger.info("Steam login processed uid_tail=%s roles=%s", steam_id[-6:], ",".join(settings.steam_auth_types))
    if settings.steam_auth_success_redirect and all(r["success"] for r in results):
        return _redirect(settings.steam_auth_success_redirect)
    return JSONResponse(
        {"steam_id": steam_id, "player_name": player_name, "results": results},
        headers=_private_no_store(),
    )
