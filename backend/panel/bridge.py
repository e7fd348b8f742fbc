"""
Remote whitelist bridge: run the text store against a file hosted on the panel.

Behavior:
    - Each operation downloads the current remote text into a private temporary
      directory (``whitelist.sqf``) and runs a ``WhitelistStore`` on that copy,
      so every call sees fresh content.
    - After a successful mutation the rewritten text is uploaded and the result
      message is suffixed with ``(synced to panel server)``. Failed results are
      never uploaded.
    - ``close()`` (or leaving the ``with`` block) removes the temporary
      directory.

Concurrency:
    Last writer wins on the remote file; there is no locking.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging
import shutil
import tempfile

from backend.whitelist.codec import WhitelistDocument
from backend.whitelist.domain import DEFAULT_REGISTRY, DEFAULT_UID_LENGTH, RoleRegistry
from backend.whitelist.errors import OperationResult
from backend.whitelist.sources import LocalFileSource
from backend.whitelist.store import WhitelistStore

from .client import PanelClient


logger = logging.getLogger("apex.panel.bridge")

SYNC_SUFFIX = "(synced to panel server)"


class RemoteFileBridge:
    def __init__(
        self,
        client: PanelClient,
        *,
        registry: RoleRegistry = DEFAULT_REGISTRY,
        uid_length: int = DEFAULT_UID_LENGTH,
    ) -> None:
        self.client = client
        self.registry = registry
        self.uid_length = uid_length
        self._tempdir: Optional[Path] = None

    @property
    def local_path(self) -> Path:
        if self._tempdir is None:
            self._tempdir = Path(tempfile.mkdtemp(prefix="apex-whitelist-"))
        return self._tempdir / "whitelist.sqf"

    def _fresh_store(self) -> WhitelistStore:
        text = self.client.read_file()
        source = LocalFileSource(self.local_path)
        source.write(text)
        return WhitelistStore(source, registry=self.registry, uid_length=self.uid_length)

    def _sync(self, store: WhitelistStore, result: OperationResult) -> OperationResult:
        if not result.success:
            return result
        self.client.write_file(store.source.read())
        logger.info("Remote whitelist synced role=%s", result.role)
        return result.with_suffix(SYNC_SUFFIX)

    # --- Store surface ----------------------------------------------------------

    def list_uids(self, role: str) -> list[str]:
        return self._fresh_store().list_uids(role)

    def list_all(self) -> WhitelistDocument:
        return self._fresh_store().list_all()

    def staff_without_umbrella(self, document: WhitelistDocument | None = None) -> dict[str, list[str]]:
        return self._fresh_store().staff_without_umbrella(document)

    def add_uid(self, role: str, uid: str) -> OperationResult:
        store = self._fresh_store()
        return self._sync(store, store.add_uid(role, uid))

    def remove_uid(self, role: str, uid: str) -> OperationResult:
        store = self._fresh_store()
        return self._sync(store, store.remove_uid(role, uid))

    def backup(self) -> str:
        return self.client.backup_file()

    # --- Lifecycle --------------------------------------------------------------

    def close(self) -> None:
        if self._tempdir is not None:
            shutil.rmtree(self._tempdir, ignore_errors=True)
            self._tempdir = None

    def __enter__(self) -> "RemoteFileBridge":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = ["RemoteFileBridge", "SYNC_SUFFIX"]
