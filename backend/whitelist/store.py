"""
Text-file backed whitelist store.

Every call is a self-contained read-modify-write of the whole file: read the
source, parse, validate and mutate in memory, serialize only the touched role
and write the full text back. There is no locking; concurrent writers on the
same file can lose an update (last writer wins).
"""
from __future__ import annotations

import logging
from typing import Iterable

from .codec import WhitelistDocument, WhitelistTextCodec
from .domain import (
    DEFAULT_REGISTRY,
    DEFAULT_UID_LENGTH,
    RoleRegistry,
    is_valid_uid,
    staff_without_umbrella,
)
from .errors import (
    AlreadyWhitelistedError,
    InvalidIdentifierFormatError,
    InvalidRoleError,
    NotWhitelistedError,
    OperationResult,
    RoleBlockMissingError,
)
from .sources import WhitelistSource


logger = logging.getLogger("apex.whitelist.store")


def _uid_tail(uid: str) -> str:
    return uid[-6:] if isinstance(uid, str) else "?"


class WhitelistStore:
    """list/add/remove over a whitelist text source."""

    def __init__(
        self,
        source: WhitelistSource,
        *,
        registry: RoleRegistry = DEFAULT_REGISTRY,
        uid_length: int = DEFAULT_UID_LENGTH,
    ) -> None:
        self.source = source
        self.registry = registry
        self.uid_length = uid_length
        self.codec = WhitelistTextCodec(registry)

    # --- Validation -------------------------------------------------------------

    def _role(self, role: str) -> str:
        code = self.registry.normalize(role)
        if code is None:
            raise InvalidRoleError(
                f"Invalid role: {role}. Valid roles: {', '.join(self.registry.codes)}"
            )
        return code

    def _check_uid(self, uid: str) -> None:
        if not is_valid_uid(uid, self.uid_length):
            raise InvalidIdentifierFormatError(
                f"Invalid Steam UID format: {uid}. Must be a {self.uid_length}-digit number."
            )

    # --- Queries ----------------------------------------------------------------

    def list_all(self) -> WhitelistDocument:
        return self.codec.parse(self.source.read())

    def list_uids(self, role: str) -> list[str]:
        """Return the identifiers of ``role`` in file order.

        Raises InvalidRoleError for roles outside the registry.
        """
        code = self._role(role)
        return self.list_all().get(code, [])

    def contains(self, role: str, uid: str) -> bool:
        return uid in self.list_uids(role)

    def staff_without_umbrella(self, document: WhitelistDocument | None = None) -> dict[str, list[str]]:
        """Staff ids (ADMIN/MODERATOR/DEVELOPER) that are missing from ALL.

        Report only; membership in ALL is an operator responsibility.
        """
        return staff_without_umbrella(document if document is not None else self.list_all())

    # --- Mutations --------------------------------------------------------------

    def add_uid(self, role: str, uid: str) -> OperationResult:
        """Append ``uid`` to ``role`` unless it is already listed."""
        try:
            code = self._role(role)
            self._check_uid(uid)
        except (InvalidRoleError, InvalidIdentifierFormatError) as exc:
            return OperationResult.fail(exc, role=role, uid=uid)

        text = self.source.read()
        current = self.codec.parse(text).get(code, [])
        if uid in current:
            return OperationResult.fail(
                AlreadyWhitelistedError(f"UID {uid} is already in the {code} whitelist."),
                role=code,
                uid=uid,
            )
        return self._write(text, code, uid, [*current, uid], f"Successfully added {uid} to the {code} whitelist.")

    def remove_uid(self, role: str, uid: str) -> OperationResult:
        """Remove ``uid`` from ``role`` keeping the order of the other entries."""
        try:
            code = self._role(role)
        except InvalidRoleError as exc:
            return OperationResult.fail(exc, role=role, uid=uid)

        text = self.source.read()
        current = self.codec.parse(text).get(code, [])
        if uid not in current:
            return OperationResult.fail(
                NotWhitelistedError(f"UID {uid} is not in the {code} whitelist."),
                role=code,
                uid=uid,
            )
        remaining = [u for u in current if u != uid]
        return self._write(text, code, uid, remaining, f"Successfully removed {uid} from the {code} whitelist.")

    def _write(self, text: str, code: str, uid: str, uids: Iterable[str], message: str) -> OperationResult:
        try:
            updated = self.codec.serialize(text, code, list(uids))
        except RoleBlockMissingError as exc:
            logger.warning("Whitelist block missing for role=%s; nothing written", code)
            return OperationResult.fail(exc, role=code, uid=uid)
        self.source.write(updated)
        logger.info("Whitelist %s updated uid_tail=%s", code, _uid_tail(uid))
        return OperationResult.ok(message, role=code, uid=uid)


__all__ = ["WhitelistStore"]
