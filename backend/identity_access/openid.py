"""
Minimal Steam OpenID 2.0 helper.

Why: Players prove ownership of a Steam account before they are added to the
automatic whitelist roles. Keep the web adapter thin: this module builds the
login URL and turns the callback parameters into a verified Steam id.

Security: The signature check (``check_authentication``) is delegated to an
injected ``verifier`` callable. ``SteamOpenID`` itself never talks to the
network; the web layer passes ``check_authentication_with_steam`` in
production and tests pass a fake.
"""

from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional
import logging
import re
from urllib.parse import urlencode, urlparse

# Small indirection to ease monkeypatching in tests
import requests as http


STEAM_OPENID_URL = "https://steamcommunity.com/openid/login"
OPENID_NS = "http://specs.openid.net/auth/2.0"
IDENTIFIER_SELECT = "http://specs.openid.net/auth/2.0/identifier_select"
REQUIRED_PARAMS = ("assoc_handle", "signed", "sig", "claimed_id")

Verifier = Callable[[Dict[str, str]], bool]

logger = logging.getLogger("apex.identity.openid")


def http_post(url: str, data: Dict[str, str], headers: Dict[str, str], timeout: float):
    return http.post(url, data=data, headers=headers, timeout=timeout)


def check_authentication_with_steam(params: Dict[str, str], *, timeout: float = 30.0) -> bool:
    """Ask Steam to confirm a positive assertion (``is_valid:true``)."""
    headers = {"Content-Type": "application/x-www-form-urlencoded"}
    try:
        resp = http_post(STEAM_OPENID_URL, data=params, headers=headers, timeout=timeout)
    except Exception as exc:
        logger.warning("Steam OpenID verification failed: %s", exc.__class__.__name__)
        return False
    if resp.status_code != 200:
        return False
    return "is_valid:true" in (resp.text or "")


class SteamOpenID:
    def __init__(self, return_url: str, *, uid_length: int = 17):
        self.return_url = return_url
        self._claimed_re = re.compile(
            rf"^https://steamcommunity\.com/openid/id/([0-9]{{{uid_length}}})$"
        )

    @property
    def realm(self) -> str:
        parsed = urlparse(self.return_url)
        return f"{parsed.scheme or 'https'}://{parsed.hostname or 'localhost'}"

    def login_url(self) -> str:
        params = {
            "openid.ns": OPENID_NS,
            "openid.mode": "checkid_setup",
            "openid.return_to": self.return_url,
            "openid.realm": self.realm,
            "openid.identity": IDENTIFIER_SELECT,
            "openid.claimed_id": IDENTIFIER_SELECT,
        }
        return f"{STEAM_OPENID_URL}?{urlencode(params)}"

    @staticmethod
    def _normalize(params: Mapping[str, str]) -> Dict[str, str]:
        """Accept both ``openid.mode`` and ``openid_mode`` (PHP-style) keys."""
        out: Dict[str, str] = {}
        for key, value in params.items():
            if key.startswith("openid.") or key.startswith("openid_"):
                out[key[len("openid."):]] = str(value)
        return out

    def extract_steam_id(self, params: Mapping[str, str], verifier: Verifier) -> Optional[str]:
        """Return the verified Steam id from callback parameters, else None.

        Returns None when the response is not a positive assertion, a required
        parameter is missing, the verifier rejects it or the claimed id is not
        a Steam community id.
        """
        fields = self._normalize(params)
        if fields.get("mode") != "id_res":
            return None
        if any(name not in fields for name in REQUIRED_PARAMS):
            return None
        verify_params = {f"openid.{name}": value for name, value in fields.items()}
        verify_params["openid.mode"] = "check_authentication"
        if not verifier(verify_params):
            return None
        m = self._claimed_re.match(fields["claimed_id"])
        return m.group(1) if m else None
