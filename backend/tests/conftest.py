"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and keep
whitelist-related environment variables from leaking into tests.
"""
import sys
from pathlib import Path
import pytest

# Ensure the repo root (for `backend.*` imports) and the tests dir are importable
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


SAMPLE_WHITELIST = """/*
    Apex Framework whitelist.
    Staff UIDs must also be listed under ALL.
*/
params ["_type"];
private _return = [];

if (_type isEqualTo 'S3') then {
\t_return = [
\t\t'76561198000000001',
\t\t'76561198000000002'
\t];
};

if (_type isEqualTo 'CAS') then {
\t_return = [];
};

if (_type isEqualTo 'ALL') then {
\t_return = [
\t\t'76561198000000010'
\t];
};

if (_type isEqualTo 'ADMIN') then {
\t_return = [
\t\t'76561198000000010', // head admin
\t\t'76561198000000011'
\t];
};

_return
"""


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_WHITELIST


@pytest.fixture
def whitelist_file(tmp_path: Path) -> Path:
    path = tmp_path / "whitelist.sqf"
    path.write_text(SAMPLE_WHITELIST, encoding="utf-8", newline="")
    return path


@pytest.fixture(autouse=True)
def _clear_whitelist_env(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles so a developer shell never leaks into tests."""
    for var in (
        "APEX_ENV",
        "WHITELIST_FILE_PATH",
        "WHITELIST_UID_LENGTH",
        "WHITELIST_ROLES",
        "WHITELIST_DATABASE_URL",
        "DATABASE_URL",
        "WHITELIST_CACHE_TTL_SECONDS",
        "WHITELIST_ADMIN_TOKEN",
        "PTERODACTYL_PANEL_URL",
        "PTERODACTYL_API_KEY",
        "PTERODACTYL_SERVER_ID",
        "PTERODACTYL_WHITELIST_PATH",
        "PANEL_TIMEOUT_SECONDS",
        "STEAM_API_KEY",
        "STEAM_AUTH_WHITELIST_TYPES",
        "STEAM_AUTH_ADDED_BY",
        "STEAM_AUTH_SUCCESS_REDIRECT",
        "STEAM_AUTH_ERROR_REDIRECT",
        "APP_BASE_URL",
        "DISCORD_ADMIN_ROLE_ID",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_web_backend():
    """Reset the web layer's backend holder between tests."""
    try:
        from backend.web import storage_wiring
    except Exception:
        yield
        return
    storage_wiring.set_backend(None)
    yield
    storage_wiring.set_backend(None)
