"""
Error taxonomy and result types for whitelist operations.

Every error carries a stable string ``code`` so the chat and web surfaces can
map it to a reply or an HTTP status without parsing messages.

Validation failures (unknown role, malformed id, duplicate, missing entry) are
reported to callers as ``OperationResult(success=False)``; they never mutate
anything. Source failures (missing file, unreachable DB or panel, timeouts)
are raised and decide whether a caller degrades to another source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar


INVALID_ROLE = "invalid_role"
INVALID_IDENTIFIER_FORMAT = "invalid_identifier_format"
ALREADY_WHITELISTED = "already_whitelisted"
NOT_WHITELISTED = "not_whitelisted"
SOURCE_UNAVAILABLE = "source_unavailable"
TIMEOUT = "timeout"
ROLE_BLOCK_MISSING = "role_block_missing"


class WhitelistError(Exception):
    """Base class; ``code`` is stable, the message is human readable."""

    code = "whitelist_error"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or self.code)

    @property
    def message(self) -> str:
        return str(self)


class InvalidRoleError(WhitelistError):
    code = INVALID_ROLE


class InvalidIdentifierFormatError(WhitelistError):
    code = INVALID_IDENTIFIER_FORMAT


class AlreadyWhitelistedError(WhitelistError):
    code = ALREADY_WHITELISTED


class NotWhitelistedError(WhitelistError):
    code = NOT_WHITELISTED


class RoleBlockMissingError(WhitelistError):
    """The role is valid but the whitelist text has no editable block for it."""

    code = ROLE_BLOCK_MISSING


class SourceUnavailableError(WhitelistError):
    """File missing, database unreachable or remote API error."""

    code = SOURCE_UNAVAILABLE


class SourceTimeoutError(SourceUnavailableError):
    """A bounded call to the database or the panel timed out (transient)."""

    code = TIMEOUT


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a mutating whitelist operation."""

    success: bool
    message: str
    code: Optional[str] = None
    role: Optional[str] = None
    uid: Optional[str] = None

    @classmethod
    def ok(cls, message: str, *, role: str | None = None, uid: str | None = None) -> "OperationResult":
        return cls(success=True, message=message, role=role, uid=uid)

    @classmethod
    def fail(cls, error: WhitelistError, *, role: str | None = None, uid: str | None = None) -> "OperationResult":
        return cls(success=False, message=error.message, code=error.code, role=role, uid=uid)

    def with_suffix(self, suffix: str) -> "OperationResult":
        return OperationResult(
            success=self.success,
            message=f"{self.message} {suffix}".strip(),
            code=self.code,
            role=self.role,
            uid=self.uid,
        )

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "code": self.code,
            "role": self.role,
            "uid": self.uid,
        }


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Value-or-error carrier used by the database fallback chain."""

    value: Optional[T] = None
    error: Optional[WhitelistError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: WhitelistError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


__all__ = [
    "ALREADY_WHITELISTED",
    "INVALID_IDENTIFIER_FORMAT",
    "INVALID_ROLE",
    "NOT_WHITELISTED",
    "ROLE_BLOCK_MISSING",
    "SOURCE_UNAVAILABLE",
    "TIMEOUT",
    "AlreadyWhitelistedError",
    "InvalidIdentifierFormatError",
    "InvalidRoleError",
    "NotWhitelistedError",
    "OperationResult",
    "Result",
    "RoleBlockMissingError",
    "SourceTimeoutError",
    "SourceUnavailableError",
    "WhitelistError",
]
