"""
Text sources the whitelist store reads from and writes to.

Keep these small and framework-agnostic so tests can supply simple fakes. A
source always returns and accepts the full file text; writes overwrite the
whole file (last writer wins).
"""
from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .errors import SourceUnavailableError


class WhitelistSource(Protocol):
    """Minimal interface to load and store the whitelist text.

    Implementations raise ``SourceUnavailableError`` when the text cannot be
    read or written.
    """

    def read(self) -> str: ...

    def write(self, text: str) -> None: ...


class LocalFileSource:
    """UTF-8 file on the local disk.

    Newlines are neither translated on read nor on write so untouched parts of
    the file stay byte-identical.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> str:
        if not self.path.is_file():
            raise SourceUnavailableError(f"Whitelist file not found: {self.path}")
        try:
            with self.path.open("r", encoding="utf-8", newline="") as fh:
                return fh.read()
        except UnicodeDecodeError as exc:
            raise SourceUnavailableError("Whitelist file is not valid UTF-8") from exc
        except OSError as exc:
            raise SourceUnavailableError(f"Whitelist file unreadable: {exc.__class__.__name__}") from exc

    def write(self, text: str) -> None:
        try:
            with self.path.open("w", encoding="utf-8", newline="") as fh:
                fh.write(text)
        except OSError as exc:
            raise SourceUnavailableError(f"Whitelist file not writable: {exc.__class__.__name__}") from exc

    def __repr__(self) -> str:
        return f"LocalFileSource({str(self.path)!r})"


class MemorySource:
    """In-memory source for development and tests."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.writes = 0

    def read(self) -> str:
        return self.text

    def write(self, text: str) -> None:
        self.text = text
        self.writes += 1


__all__ = ["LocalFileSource", "MemorySource", "WhitelistSource"]
