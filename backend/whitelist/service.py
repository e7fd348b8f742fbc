"""
Database-first whitelist service with a text-file fallback.

Behavior:
- Every database call is wrapped into a ``Result``. A ``SourceUnavailableError``
  (timeouts included) becomes a failed result instead of an exception, and the
  caller decides whether the file store can answer instead.
- Reads also fall back when the database answers with zero rows, so a freshly
  provisioned database does not lock everyone out while the file still holds
  the list.
- The degradation is logged once; the next successful database call logs the
  recovery and re-arms the warning.
- Reads answered by the database are memoized per role in an
  ``ExpiringCache``. Mutations and ``force_refresh`` drop the role's entry.
  Fallback answers are not cached so a recovered database is used right away.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from .cache import ExpiringCache
from .domain import DEFAULT_REGISTRY, RoleRegistry, staff_without_umbrella
from .errors import InvalidRoleError, OperationResult, Result, SourceUnavailableError
from .store import WhitelistStore


logger = logging.getLogger("apex.whitelist.service")


class WhitelistService:
    def __init__(
        self,
        repo: Any,
        *,
        file_store: Optional[WhitelistStore] = None,
        cache: Optional[ExpiringCache] = None,
        registry: RoleRegistry = DEFAULT_REGISTRY,
        performer: str = "system",
    ) -> None:
        self.repo = repo
        self.file_store = file_store
        self.cache: ExpiringCache = cache if cache is not None else ExpiringCache()
        self.registry = registry
        self.performer = performer
        self._degraded = False

    @property
    def degraded(self) -> bool:
        return self._degraded

    # --- Result chain -----------------------------------------------------------

    def _attempt(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Result:
        try:
            value = fn(*args, **kwargs)
        except SourceUnavailableError as exc:
            if not self._degraded:
                logger.warning("Whitelist database unavailable (%s); using file fallback", exc.code)
                self._degraded = True
            return Result.failure(exc)
        if self._degraded:
            logger.info("Whitelist database reachable again")
            self._degraded = False
        return Result.success(value)

    def _role(self, role: str) -> str:
        code = self.registry.normalize(role)
        if code is None:
            raise InvalidRoleError(
                f"Invalid role: {role}. Valid roles: {', '.join(self.registry.codes)}"
            )
        return code

    # --- Reads ------------------------------------------------------------------

    def list_uids(self, role: str, *, force_refresh: bool = False) -> List[str]:
        """Active identifiers of ``role``.

        Raises InvalidRoleError for unknown roles and the database error when
        neither the database nor a file store can answer.
        """
        code = self._role(role)
        key = ("uids", code)
        if force_refresh:
            self.cache.invalidate(key)
        else:
            cached = self.cache.get(key)
            if cached is not None:
                return list(cached)

        result = self._attempt(self.repo.list_uids, code)
        if result.ok and result.value:
            self.cache.put(key, list(result.value))
            return list(result.value)
        if self.file_store is None:
            return list(result.unwrap() or [])
        if result.ok:
            logger.info("No database rows for role=%s; reading whitelist file", code)
        return self.file_store.list_uids(code)

    def is_whitelisted(self, steam_uid: str, role: str, *, force_refresh: bool = False) -> bool:
        """Membership via the repository's count query.

        A database "no" falls back to the file like an empty read does; only
        database answers are cached.
        """
        code = self._role(role)
        key = ("member", code, steam_uid)
        if force_refresh:
            self.cache.invalidate(key)
        else:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        result = self._attempt(self.repo.is_whitelisted, steam_uid, code)
        if result.ok and (result.value or self.file_store is None):
            self.cache.put(key, bool(result.value))
            return bool(result.value)
        if self.file_store is None:
            return bool(result.unwrap())
        return self.file_store.contains(code, steam_uid)

    def list_all(self) -> Dict[str, List[str]]:
        result = self._attempt(self.repo.list_all)
        if result.ok and any(result.value.values()):
            return result.value
        if self.file_store is None:
            return result.unwrap()
        return self.file_store.list_all()

    def list_types(self) -> List[dict]:
        result = self._attempt(self.repo.list_types)
        if result.ok and result.value:
            return result.value
        return [{"type_code": r.code, "description": r.description} for r in self.registry.roles()]

    def player_whitelists(self, steam_uid: str) -> List[dict]:
        """Roles held by one player; the file fallback has no names or notes."""
        result = self._attempt(self.repo.player_whitelists, steam_uid)
        if result.ok:
            return result.value
        if self.file_store is None:
            return result.unwrap()
        doc = self.file_store.list_all()
        return [
            {
                "whitelist_type": code,
                "description": self.registry.describe(code),
                "player_name": None,
                "added_by": None,
                "notes": None,
            }
            for code, uids in doc.items()
            if steam_uid in uids
        ]

    # --- Mutations --------------------------------------------------------------

    def add(
        self,
        steam_uid: str,
        role: str,
        *,
        added_by: str,
        player_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OperationResult:
        result = self._attempt(
            self.repo.add,
            steam_uid=steam_uid,
            role=role,
            added_by=added_by,
            player_name=player_name,
            notes=notes,
        )
        outcome = result.value if result.ok else self._fallback_mutation("add", steam_uid, role, result.error)
        self._invalidate(outcome)
        return outcome

    def remove(self, steam_uid: str, role: str, *, removed_by: str) -> OperationResult:
        result = self._attempt(self.repo.remove, steam_uid=steam_uid, role=role, removed_by=removed_by)
        outcome = result.value if result.ok else self._fallback_mutation("remove", steam_uid, role, result.error)
        self._invalidate(outcome)
        return outcome

    # Store-compatible surface used by the chat commands, the CLI and the web API.

    def add_uid(self, role: str, uid: str, *, performed_by: Optional[str] = None) -> OperationResult:
        return self.add(uid, role, added_by=performed_by or self.performer)

    def remove_uid(self, role: str, uid: str, *, performed_by: Optional[str] = None) -> OperationResult:
        return self.remove(uid, role, removed_by=performed_by or self.performer)

    def staff_without_umbrella(self, document: Optional[Dict[str, List[str]]] = None) -> Dict[str, List[str]]:
        return staff_without_umbrella(document if document is not None else self.list_all())

    def backup(self) -> str:
        backup = getattr(self.file_store, "backup", None)
        if backup is None:
            raise SourceUnavailableError("Backups need the panel-hosted whitelist file")
        return backup()

    def _fallback_mutation(self, action: str, steam_uid: str, role: str, error: Any) -> OperationResult:
        if self.file_store is None:
            return OperationResult.fail(error, role=role, uid=steam_uid)
        logger.warning("Applying %s to whitelist file only role=%s", action, role)
        try:
            if action == "add":
                return self.file_store.add_uid(role, steam_uid)
            return self.file_store.remove_uid(role, steam_uid)
        except SourceUnavailableError as exc:
            return OperationResult.fail(exc, role=role, uid=steam_uid)

    def _invalidate(self, outcome: OperationResult) -> None:
        if outcome.success and outcome.role:
            self.cache.invalidate(("uids", outcome.role))
            self.cache.invalidate(("member", outcome.role, outcome.uid))


__all__ = ["WhitelistService"]
