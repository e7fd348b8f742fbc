"""
Whitelist domain constants and simple helpers.

Why:
- Centralize the closed set of whitelist roles so the codec, the stores, the
  command surface and the web layer never drift apart.
- Keep identifier validation (Steam64 ids) in one place.

Roles are configuration, not data: a role that does not appear here is invalid
even if a guard for it exists in a whitelist file.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping
import re


@dataclass(frozen=True)
class RoleInfo:
    code: str
    description: str


DEFAULT_ROLES: tuple[RoleInfo, ...] = (
    RoleInfo("S3", "Whitelisted Roles + Skins Access"),
    RoleInfo("CAS", "Fixed-wing Jets Access"),
    RoleInfo("S1", "Commander Role Access"),
    RoleInfo("OPFOR", "OPFOR Slots Access"),
    RoleInfo("ALL", "All Staff UIDs (required for all staff)"),
    RoleInfo("ADMIN", "Admin Tools Access"),
    RoleInfo("MODERATOR", "Moderator Access"),
    RoleInfo("TRUSTED", "Trusted Non-Staff Access"),
    RoleInfo("MEDIA", "Media/Camera Access"),
    RoleInfo("CURATOR", "Zeus/Mission Curation Access"),
    RoleInfo("DEVELOPER", "Developer/Debug Console Access"),
)


# Staff sub-roles whose members are expected to also be listed under ALL.
UMBRELLA_ROLE = "ALL"
STAFF_ROLES = frozenset({"ADMIN", "MODERATOR", "DEVELOPER"})

DEFAULT_UID_LENGTH = 17


class RoleRegistry:
    """Closed, ordered set of whitelist roles.

    Lookup is case-insensitive; every accessor returns the canonical upper-case
    code.
    """

    def __init__(self, roles: Iterable[RoleInfo] = DEFAULT_ROLES) -> None:
        self._roles: dict[str, RoleInfo] = {}
        for info in roles:
            code = info.code.strip().upper()
            if not code:
                raise ValueError("empty_role_code")
            self._roles[code] = RoleInfo(code, info.description)
        if not self._roles:
            raise ValueError("empty_role_registry")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "RoleRegistry":
        return cls(RoleInfo(code, desc) for code, desc in mapping.items())

    @classmethod
    def parse(cls, raw: str) -> "RoleRegistry":
        """Build a registry from ``CODE:description,CODE2:description``.

        Entries without a description fall back to the code itself. Used for
        the WHITELIST_ROLES environment override.
        """
        roles = []
        for part in (raw or "").split(","):
            part = part.strip()
            if not part:
                continue
            code, _, desc = part.partition(":")
            code = code.strip()
            if code:
                roles.append(RoleInfo(code, desc.strip() or code.upper()))
        return cls(roles)

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(self._roles)

    def roles(self) -> list[RoleInfo]:
        return list(self._roles.values())

    def normalize(self, role: str | None) -> str | None:
        """Return the canonical code for ``role`` or None when it is unknown."""
        if not isinstance(role, str):
            return None
        code = role.strip().upper()
        return code if code in self._roles else None

    def is_valid(self, role: str | None) -> bool:
        return self.normalize(role) is not None

    def describe(self, role: str) -> str | None:
        code = self.normalize(role)
        return self._roles[code].description if code else None

    def __contains__(self, role: object) -> bool:
        return isinstance(role, str) and self.is_valid(role)

    def __len__(self) -> int:
        return len(self._roles)


DEFAULT_REGISTRY = RoleRegistry()


def uid_pattern(length: int = DEFAULT_UID_LENGTH) -> re.Pattern[str]:
    if length <= 0:
        raise ValueError("invalid_uid_length")
    return re.compile(rf"^[0-9]{{{length}}}$")


def is_valid_uid(uid: str | None, length: int = DEFAULT_UID_LENGTH) -> bool:
    """True when ``uid`` is exactly ``length`` ASCII digits (no normalization)."""
    if not isinstance(uid, str):
        return False
    return uid_pattern(length).fullmatch(uid) is not None


def staff_without_umbrella(document: Mapping[str, Iterable[str]]) -> dict[str, list[str]]:
    """Staff ids (ADMIN/MODERATOR/DEVELOPER) that are missing from ALL.

    Report only; membership in ALL is an operator responsibility.
    """
    umbrella = set(document.get(UMBRELLA_ROLE, ()))
    report: dict[str, list[str]] = {}
    for role, uids in document.items():
        if role not in STAFF_ROLES:
            continue
        missing = [uid for uid in uids if uid not in umbrella]
        if missing:
            report[role] = missing
    return report


__all__ = [
    "DEFAULT_REGISTRY",
    "DEFAULT_ROLES",
    "DEFAULT_UID_LENGTH",
    "RoleInfo",
    "RoleRegistry",
    "STAFF_ROLES",
    "UMBRELLA_ROLE",
    "is_valid_uid",
    "staff_without_umbrella",
    "uid_pattern",
]
