"""
Whitelist admin API routes (JSON only).

Why:
    Operators and tooling manage role membership over HTTP without shell
    access to the game server. The backend (database service, panel bridge or
    local file) is resolved through ``storage_wiring`` so tests can inject one.

Security:
    Every endpoint requires ``Authorization: Bearer <WHITELIST_ADMIN_TOKEN>``.
    Without a configured token the API is disabled (403). Responses are
    ``private, no-store``.
"""
from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend.web import storage_wiring
from backend.whitelist.config import load_settings
from backend.whitelist.domain import staff_without_umbrella
from backend.whitelist.service import WhitelistService
from backend.whitelist.errors import (
    ALREADY_WHITELISTED,
    INVALID_IDENTIFIER_FORMAT,
    INVALID_ROLE,
    NOT_WHITELISTED,
    ROLE_BLOCK_MISSING,
    InvalidRoleError,
    OperationResult,
    SourceTimeoutError,
    SourceUnavailableError,
)


whitelist_router = APIRouter(tags=["Whitelist"])
logger = logging.getLogger("apex.web.whitelist")

API_PERFORMER = "admin-api"

_STATUS_BY_CODE = {
    INVALID_ROLE: 400,
    INVALID_IDENTIFIER_FORMAT: 400,
    ALREADY_WHITELISTED: 409,
    NOT_WHITELISTED: 404,
    ROLE_BLOCK_MISSING: 422,
}


class WhitelistEntryIn(BaseModel):
    uid: str = Field(..., min_length=1, max_length=32)


def _private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}


def _json(payload, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers=_private_no_store())


def _error(error: str, detail: str, *, status_code: int) -> JSONResponse:
    return _json({"error": error, "detail": detail}, status_code=status_code)


def _require_admin(request: Request) -> JSONResponse | None:
    expected = load_settings().admin_token
    if not expected:
        return _error("forbidden", "admin_api_disabled", status_code=403)
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return _error("unauthenticated", "missing_bearer_token", status_code=401)
    if not hmac.compare_digest(expected, token.strip()):
        return _error("unauthenticated", "invalid_token", status_code=401)
    return None


def _source_error(exc: SourceUnavailableError) -> JSONResponse:
    logger.warning("Whitelist source failure: %s", exc.code)
    status = 504 if isinstance(exc, SourceTimeoutError) else 503
    return _error(exc.code, str(exc), status_code=status)


def _result_response(result: OperationResult, *, ok_status: int) -> JSONResponse:
    if result.success:
        return _json(result.as_dict(), status_code=ok_status)
    code = result.code or "bad_request"
    if code in _STATUS_BY_CODE:
        status = _STATUS_BY_CODE[code]
    elif code == "timeout":
        status = 504
    else:
        status = 503
    return _error(code, result.message, status_code=status)


@whitelist_router.get("/api/whitelist/roles")
async def list_roles(request: Request):
    """Configured roles with descriptions."""
    denied = _require_admin(request)
    if denied:
        return denied
    registry = load_settings().registry
    return _json([{"code": r.code, "description": r.description} for r in registry.roles()])


@whitelist_router.get("/api/whitelist")
async def list_all(request: Request):
    """Every role with its identifiers plus staff ids missing from ALL."""
    denied = _require_admin(request)
    if denied:
        return denied
    try:
        doc = storage_wiring.get_backend().list_all()
    except SourceUnavailableError as exc:
        return _source_error(exc)
    return _json({"whitelists": doc, "staff_without_all": staff_without_umbrella(doc)})


@whitelist_router.get("/api/whitelist/{role}")
async def list_role(request: Request, role: str):
    denied = _require_admin(request)
    if denied:
        return denied
    try:
        uids = storage_wiring.get_backend().list_uids(role)
    except InvalidRoleError as exc:
        return _error(exc.code, str(exc), status_code=400)
    except SourceUnavailableError as exc:
        return _source_error(exc)
    return _json({"role": role.strip().upper(), "uids": uids, "count": len(uids)})


@whitelist_router.post("/api/whitelist/{role}")
async def add_uid(request: Request, role: str, payload: WhitelistEntryIn):
    """Add one identifier; 201 on success, 409 when already listed."""
    denied = _require_admin(request)
    if denied:
        return denied
    backend = storage_wiring.get_backend()
    try:
        if isinstance(backend, WhitelistService):
            result = backend.add_uid(role, payload.uid, performed_by=API_PERFORMER)
        else:
            result = backend.add_uid(role, payload.uid)
    except SourceUnavailableError as exc:
        return _source_error(exc)
    return _result_response(result, ok_status=201)


@whitelist_router.delete("/api/whitelist/{role}/{uid}")
async def remove_uid(request: Request, role: str, uid: str):
    denied = _require_admin(request)
    if denied:
        return denied
    backend = storage_wiring.get_backend()
    try:
        if isinstance(backend, WhitelistService):
            result = backend.remove_uid(role, uid, performed_by=API_PERFORMER)
        else:
            result = backend.remove_uid(role, uid)
    except SourceUnavailableError as exc:
        return _source_error(exc)
    return _result_response(result, ok_status=200)
