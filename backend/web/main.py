"Apex whitelist web app"
from __future__ import annotations

import logging
import os
import sys

from fastapi import FastAPI
from fastapi.responses import JSONResponse


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out/opt-in via APEX_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("APEX_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


from dotenv import load_dotenv

if _should_load_dotenv():
    load_dotenv()

from backend.web import config as _cfg

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

from backend.web.routes.auth import auth_router
from backend.web.routes.whitelist import whitelist_router


logger = logging.getLogger("apex.web")

app = FastAPI(title="Apex whitelist", description="Role-based Steam id whitelist administration", version="0.1.0")

app.include_router(auth_router)
app.include_router(whitelist_router)


@app.get("/health")
async def health():
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "no-store"})
