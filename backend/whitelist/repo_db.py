"""
Postgres-backed whitelist repository (psycopg3).

Schema (owned by the deployment, created by ``ensure_schema`` for dev/CI):
- ``whitelist_types(type_code, description)`` is the reference table, seeded from
  the role registry.
- ``player_whitelist(steam_uid, player_name, whitelist_type, added_by, notes,
  is_active, created_at, updated_at)`` is unique on (steam_uid, whitelist_type).
- ``whitelist_audit_log(steam_uid, whitelist_type, action, performed_by,
  old_values, new_values, created_at)``.

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection with a
  bounded connect timeout and a matching server-side statement timeout.
- Adding upserts on the natural key and reactivates soft-deleted rows; removing
  only flips ``is_active`` so the audit history keeps its references.
- Driver failures surface as ``SourceUnavailableError`` (``SourceTimeoutError``
  for timeouts) so the service layer can degrade to the text file.
- Audit rows are written on a separate connection after the mutation commits;
  a failing audit write is logged and never undoes or fails the mutation.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
import logging
import os

try:
    import psycopg
    from psycopg.types.json import Json
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    Json = None  # type: ignore
    HAVE_PSYCOPG = False

from .domain import DEFAULT_REGISTRY, DEFAULT_UID_LENGTH, RoleRegistry, is_valid_uid
from .errors import (
    AlreadyWhitelistedError,
    InvalidIdentifierFormatError,
    InvalidRoleError,
    NotWhitelistedError,
    OperationResult,
    SourceTimeoutError,
    SourceUnavailableError,
)


logger = logging.getLogger("apex.whitelist.db")

DEFAULT_CONNECT_TIMEOUT = 10

SCHEMA_STATEMENTS = (
    """
    create table if not exists public.whitelist_types (
        type_code varchar(20) primary key,
        description varchar(255) not null,
        created_at timestamptz not null default now()
    )
    """,
    """
    create table if not exists public.player_whitelist (
        id bigserial primary key,
        steam_uid varchar(20) not null,
        player_name varchar(64),
        whitelist_type varchar(20) not null
            references public.whitelist_types(type_code) on delete cascade on update cascade,
        added_by varchar(64),
        notes text,
        is_active boolean not null default true,
        created_at timestamptz not null default now(),
        updated_at timestamptz not null default now(),
        constraint unique_player_whitelist unique (steam_uid, whitelist_type)
    )
    """,
    "create index if not exists idx_player_whitelist_type on public.player_whitelist (whitelist_type, is_active)",
    """
    create table if not exists public.whitelist_audit_log (
        id bigserial primary key,
        steam_uid varchar(20) not null,
        whitelist_type varchar(20) not null,
        action varchar(10) not null check (action in ('ADD', 'REMOVE', 'MODIFY')),
        performed_by varchar(64),
        old_values jsonb,
        new_values jsonb,
        created_at timestamptz not null default now()
    )
    """,
    "create index if not exists idx_whitelist_audit_uid on public.whitelist_audit_log (steam_uid)",
)


def _dsn() -> str:
    for dsn in (os.getenv("WHITELIST_DATABASE_URL"), os.getenv("DATABASE_URL")):
        if dsn:
            return dsn
    raise RuntimeError("Database DSN unavailable for DBWhitelistRepo")


def _classify(exc: BaseException) -> SourceUnavailableError:
    name = exc.__class__.__name__
    text = str(exc).lower()
    if "timeout" in name.lower() or name == "QueryCanceled" or "timeout" in text or "timed out" in text:
        return SourceTimeoutError(f"Database timed out ({name})")
    return SourceUnavailableError(f"Database unavailable ({name})")


class DBWhitelistRepo:
    """Whitelist membership stored in Postgres."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        *,
        registry: RoleRegistry = DEFAULT_REGISTRY,
        uid_length: int = DEFAULT_UID_LENGTH,
        connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBWhitelistRepo")
        self._dsn = dsn or _dsn()
        self.registry = registry
        self.uid_length = uid_length
        self.connect_timeout = connect_timeout

    def _connect(self):
        # statement_timeout bounds queries stuck on locks or a hung server.
        return psycopg.connect(
            self._dsn,
            connect_timeout=self.connect_timeout,
            options=f"-c statement_timeout={self.connect_timeout * 1000}",
        )

    @contextmanager
    def _cursor(self) -> Iterator[tuple[Any, Any]]:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    yield conn, cur
        except psycopg.Error as exc:
            raise _classify(exc) from exc

    def _role(self, role: str) -> str:
        code = self.registry.normalize(role)
        if code is None:
            raise InvalidRoleError(f"Invalid whitelist type: {role}")
        return code

    # --- Schema -----------------------------------------------------------------

    def ensure_schema(self) -> None:
        """Create tables if missing and upsert the registry's role descriptions."""
        with self._cursor() as (conn, cur):
            for stmt in SCHEMA_STATEMENTS:
                cur.execute(stmt)
            for info in self.registry.roles():
                cur.execute(
                    """
                    insert into public.whitelist_types (type_code, description)
                    values (%s, %s)
                    on conflict (type_code) do update set description = excluded.description
                    """,
                    (info.code, info.description),
                )
            conn.commit()

    # --- Queries ----------------------------------------------------------------

    def is_whitelisted(self, steam_uid: str, role: str) -> bool:
        code = self._role(role)
        with self._cursor() as (_conn, cur):
            cur.execute(
                "select count(*) from public.player_whitelist "
                "where steam_uid = %s and whitelist_type = %s and is_active",
                (steam_uid, code),
            )
            row = cur.fetchone()
        return bool(row and int(row[0]) > 0)

    def list_uids(self, role: str) -> List[str]:
        code = self._role(role)
        with self._cursor() as (_conn, cur):
            cur.execute(
                "select steam_uid from public.player_whitelist "
                "where whitelist_type = %s and is_active order by created_at, id",
                (code,),
            )
            rows = cur.fetchall()
        return [str(r[0]) for r in rows]

    def list_all(self) -> Dict[str, List[str]]:
        doc: Dict[str, List[str]] = {code: [] for code in self.registry.codes}
        with self._cursor() as (_conn, cur):
            cur.execute(
                "select whitelist_type, steam_uid from public.player_whitelist "
                "where is_active order by created_at, id"
            )
            rows = cur.fetchall()
        for role, uid in rows:
            if role in doc:
                doc[role].append(str(uid))
        return doc

    def list_types(self) -> List[dict]:
        with self._cursor() as (_conn, cur):
            cur.execute("select type_code, description from public.whitelist_types order by type_code")
            rows = cur.fetchall()
        return [{"type_code": r[0], "description": r[1]} for r in rows]

    def player_whitelists(self, steam_uid: str) -> List[dict]:
        """Active entries of one player with the type descriptions."""
        with self._cursor() as (_conn, cur):
            cur.execute(
                "select pw.whitelist_type, wt.description, pw.player_name, pw.added_by, pw.notes "
                "from public.player_whitelist pw "
                "join public.whitelist_types wt on pw.whitelist_type = wt.type_code "
                "where pw.steam_uid = %s and pw.is_active order by pw.whitelist_type",
                (steam_uid,),
            )
            rows = cur.fetchall()
        return [
            {
                "whitelist_type": r[0],
                "description": r[1],
                "player_name": r[2],
                "added_by": r[3],
                "notes": r[4],
            }
            for r in rows
        ]

    # --- Mutations --------------------------------------------------------------

    def add(
        self,
        *,
        steam_uid: str,
        role: str,
        added_by: str,
        player_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OperationResult:
        """Activate ``steam_uid`` for ``role`` (insert or reactivate)."""
        try:
            code = self._role(role)
            if not is_valid_uid(steam_uid, self.uid_length):
                raise InvalidIdentifierFormatError(
                    f"Invalid Steam UID format: {steam_uid}. Must be a {self.uid_length}-digit number."
                )
        except (InvalidRoleError, InvalidIdentifierFormatError) as exc:
            return OperationResult.fail(exc, role=role, uid=steam_uid)

        with self._cursor() as (conn, cur):
            cur.execute(
                "select player_name, notes, is_active from public.player_whitelist "
                "where steam_uid = %s and whitelist_type = %s",
                (steam_uid, code),
            )
            row = cur.fetchone()
            if row and row[2]:
                return OperationResult.fail(
                    AlreadyWhitelistedError(f"UID {steam_uid} is already in the {code} whitelist."),
                    role=code,
                    uid=steam_uid,
                )
            cur.execute(
                """
                insert into public.player_whitelist
                    (steam_uid, player_name, whitelist_type, added_by, notes, is_active)
                values (%s, %s, %s, %s, %s, true)
                on conflict (steam_uid, whitelist_type) do update set
                    player_name = coalesce(excluded.player_name, public.player_whitelist.player_name),
                    notes = coalesce(excluded.notes, public.player_whitelist.notes),
                    is_active = true,
                    updated_at = now()
                """,
                (steam_uid, player_name, code, added_by, notes),
            )
            conn.commit()
        old_values = {"player_name": row[0], "notes": row[1], "is_active": bool(row[2])} if row else None
        self._audit(
            steam_uid=steam_uid,
            role=code,
            action="ADD",
            performed_by=added_by,
            old_values=old_values,
            new_values={"player_name": player_name, "notes": notes, "is_active": True},
        )
        return OperationResult.ok(f"Successfully added {steam_uid} to the {code} whitelist.", role=code, uid=steam_uid)

    def remove(self, *, steam_uid: str, role: str, removed_by: str) -> OperationResult:
        """Soft-delete: mark the entry inactive instead of deleting the row."""
        try:
            code = self._role(role)
        except InvalidRoleError as exc:
            return OperationResult.fail(exc, role=role, uid=steam_uid)

        with self._cursor() as (conn, cur):
            cur.execute(
                "update public.player_whitelist set is_active = false, updated_at = now() "
                "where steam_uid = %s and whitelist_type = %s and is_active "
                "returning player_name, notes",
                (steam_uid, code),
            )
            row = cur.fetchone()
            if not row:
                return OperationResult.fail(
                    NotWhitelistedError(f"UID {steam_uid} is not in the {code} whitelist."),
                    role=code,
                    uid=steam_uid,
                )
            conn.commit()
        self._audit(
            steam_uid=steam_uid,
            role=code,
            action="REMOVE",
            performed_by=removed_by,
            old_values={"player_name": row[0], "notes": row[1], "is_active": True},
            new_values={"is_active": False},
        )
        return OperationResult.ok(f"Successfully removed {steam_uid} from the {code} whitelist.", role=code, uid=steam_uid)

    def _audit(
        self,
        *,
        steam_uid: str,
        role: str,
        action: str,
        performed_by: str,
        old_values: Optional[dict],
        new_values: Optional[dict],
    ) -> None:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "insert into public.whitelist_audit_log "
                        "(steam_uid, whitelist_type, action, performed_by, old_values, new_values) "
                        "values (%s, %s, %s, %s, %s, %s)",
                        (
                            steam_uid,
                            role,
                            action,
                            performed_by,
                            Json(old_values) if old_values is not None else None,
                            Json(new_values) if new_values is not None else None,
                        ),
                    )
                conn.commit()
        except Exception as exc:
            logger.warning("Audit logging failed: action=%s role=%s err=%s", action, role, exc.__class__.__name__)


__all__ = ["DBWhitelistRepo", "HAVE_PSYCOPG", "SCHEMA_STATEMENTS"]
