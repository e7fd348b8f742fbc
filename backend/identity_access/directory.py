"""
Directory adapter for player lookup (Steam Web API).

Why:
    Whitelist rows carry a player name for operators. This adapter wraps the
    single Steam Web API call we need (``GetPlayerSummaries/v0002``) behind
    simple functions that return the summary dict or just the display name.

Security:
    - The API key is sent as a query parameter as Steam requires; never log it.
    - Lookups are best effort: any failure returns None and never blocks a
      whitelist operation.
"""
from __future__ import annotations

from typing import Any, Dict, Optional
import logging

import requests


API_BASE_URL = "https://api.steampowered.com"
DEFAULT_TIMEOUT = 10

logger = logging.getLogger("apex.identity.directory")


def http_get(url: str, params: Dict[str, str], timeout: float):
    return requests.get(url, params=params, headers={"Accept": "application/json"}, timeout=timeout)


class SteamDirectory:
    def __init__(self, api_key: str, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.api_key = api_key
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def player_summary(self, steam_uid: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        url = f"{API_BASE_URL}/ISteamUser/GetPlayerSummaries/v0002/"
        try:
            r = http_get(url, {"key": self.api_key, "steamids": steam_uid}, self.timeout)
            r.raise_for_status()
            data = r.json()
        except Exception as exc:
            logger.warning("Steam player lookup failed: %s", exc.__class__.__name__)
            return None
        if not isinstance(data, dict):
            return None
        players = (data.get("response") or {}).get("players") or []
        return players[0] if players else None

    def player_name(self, steam_uid: str) -> Optional[str]:
        player = self.player_summary(steam_uid)
        name = (player or {}).get("personaname")
        return str(name) if name else None


__all__ = ["SteamDirectory", "http_get"]
