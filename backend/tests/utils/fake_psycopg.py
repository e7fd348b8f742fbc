"""
Lightweight psycopg stand-in for unit tests.

Provides ``install_fake_psycopg`` which monkeypatches a target module so that
``psycopg.connect`` returns an in-memory whitelist database. Designed to support
the subset of SQL used by DBWhitelistRepo (upsert, soft delete, audit insert
and the list queries).
"""
from __future__ import annotations

from dataclasses import dataclass, field
import types
from typing import Any, Dict, List, Optional, Tuple


class FakeError(Exception):
    """Stands in for psycopg.Error."""


class FakeOperationalError(FakeError):
    pass


class FakeConnectionTimeout(FakeOperationalError):
    pass


class QueryCanceled(FakeOperationalError):
    """Named like psycopg.errors.QueryCanceled (raised on statement_timeout)."""


class FakeJson:
    """Minimal replacement for psycopg.types.json.Json used in tests."""

    def __init__(self, obj: Any) -> None:
        self.obj = obj


@dataclass
class _Row:
    steam_uid: str
    whitelist_type: str
    player_name: Optional[str]
    added_by: Optional[str]
    notes: Optional[str]
    is_active: bool
    seq: int


@dataclass
class FakeWhitelistDB:
    rows: Dict[Tuple[str, str], _Row] = field(default_factory=dict)
    types: Dict[str, str] = field(default_factory=dict)
    audit: List[dict] = field(default_factory=list)
    statements: List[str] = field(default_factory=list)
    commits: int = 0
    connect_error: Optional[Exception] = None
    audit_error: Optional[Exception] = None
    query_error: Optional[Exception] = None
    connect_kwargs: List[dict] = field(default_factory=list)
    _seq: int = 0

    def next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def active(self) -> List[_Row]:
        return sorted((r for r in self.rows.values() if r.is_active), key=lambda r: r.seq)


def _norm(sql: str) -> str:
    return " ".join((sql or "").lower().split())


class _FakeCursor:
    def __init__(self, db: FakeWhitelistDB) -> None:
        self._db = db
        self._row = None
        self._rows: list = []

    def execute(self, sql: str, params: tuple | list | None = None) -> None:
        db = self._db
        q = _norm(sql)
        db.statements.append(q)
        self._row, self._rows = None, []
        if q.startswith("create"):
            return
        if db.query_error is not None and q.startswith("select"):
            raise db.query_error
        if q.startswith("insert into public.whitelist_types"):
            code, desc = params
            db.types[code] = desc
        elif q.startswith("insert into public.whitelist_audit_log"):
            if db.audit_error is not None:
                raise db.audit_error
            uid, role, action, performer, old, new = params
            db.audit.append(
                {
                    "steam_uid": uid,
                    "whitelist_type": role,
                    "action": action,
                    "performed_by": performer,
                    "old_values": getattr(old, "obj", old),
                    "new_values": getattr(new, "obj", new),
                }
            )
        elif q.startswith("insert into public.player_whitelist"):
            uid, name, role, added_by, notes = params
            existing = db.rows.get((uid, role))
            if existing is None:
                db.rows[(uid, role)] = _Row(uid, role, name, added_by, notes, True, db.next_seq())
            else:
                existing.player_name = name if name is not None else existing.player_name
                existing.notes = notes if notes is not None else existing.notes
                existing.is_active = True
        elif q.startswith("select count(*) from public.player_whitelist"):
            uid, role = params
            row = db.rows.get((uid, role))
            self._row = (1 if row and row.is_active else 0,)
        elif q.startswith("select player_name, notes, is_active from public.player_whitelist"):
            uid, role = params
            row = db.rows.get((uid, role))
            self._row = (row.player_name, row.notes, row.is_active) if row else None
        elif q.startswith("update public.player_whitelist set is_active = false"):
            uid, role = params
            row = db.rows.get((uid, role))
            if row and row.is_active:
                row.is_active = False
                self._row = (row.player_name, row.notes)
        elif q.startswith("select steam_uid from public.player_whitelist"):
            (role,) = params
            self._rows = [(r.steam_uid,) for r in db.active() if r.whitelist_type == role]
        elif q.startswith("select whitelist_type, steam_uid from public.player_whitelist"):
            self._rows = [(r.whitelist_type, r.steam_uid) for r in db.active()]
        elif q.startswith("select type_code, description from public.whitelist_types"):
            self._rows = sorted(db.types.items())
        elif q.startswith("select pw.whitelist_type"):
            (uid,) = params
            self._rows = sorted(
                (r.whitelist_type, db.types.get(r.whitelist_type), r.player_name, r.added_by, r.notes)
                for r in db.active()
                if r.steam_uid == uid
            )
        else:
            raise AssertionError(f"Unexpected SQL in fake psycopg: {sql}")

    def fetchone(self):
        return self._row

    def fetchall(self):
        return list(self._rows)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _FakeConn:
    def __init__(self, db: FakeWhitelistDB) -> None:
        self._db = db

    def cursor(self):
        return _FakeCursor(self._db)

    def commit(self) -> None:
        self._db.commits += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def install_fake_psycopg(monkeypatch, target_module) -> FakeWhitelistDB:
    """
    Patch ``target_module`` so psycopg operations go against an in-memory DB.

    Returns the mutable ``FakeWhitelistDB`` acting as the backing store. Set
    ``connect_error``, ``query_error`` or ``audit_error`` on it to simulate
    outages.
    """
    db = FakeWhitelistDB()

    def fake_connect(dsn: str, **kwargs):
        db.connect_kwargs.append(kwargs)
        if db.connect_error is not None:
            raise db.connect_error
        return _FakeConn(db)

    fake_psycopg = types.SimpleNamespace(
        connect=fake_connect,
        Error=FakeError,
        OperationalError=FakeOperationalError,
        types=types.SimpleNamespace(json=types.SimpleNamespace(Json=FakeJson)),
    )

    monkeypatch.setattr(target_module, "HAVE_PSYCOPG", True, raising=False)
    monkeypatch.setattr(target_module, "psycopg", fake_psycopg, raising=False)
    monkeypatch.setattr(target_module, "Json", FakeJson, raising=False)
    return db


__all__ = [
    "FakeConnectionTimeout",
    "FakeError",
    "FakeJson",
    "FakeOperationalError",
    "FakeWhitelistDB",
    "QueryCanceled",
    "install_fake_psycopg",
]
