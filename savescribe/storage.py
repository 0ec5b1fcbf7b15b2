"""
savescribe.storage
==================
Minimal file-access capability consumed by the engine.

The engine never discovers files, negotiates permissions or keeps backups;
it only reads and writes bytes through a :class:`FileAccess` object so the
host application can substitute its own storage layer.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class FileAccess(Protocol):
    def exists(self, path: str) -> bool: ...
    def can_read(self, path: str) -> bool: ...
    def can_write(self, path: str) -> bool: ...
    def read_bytes(self, path: str) -> bytes: ...
    def write_bytes(self, path: str, data: bytes) -> None: ...


class LocalFileAccess:
    """:class:`FileAccess` backed by the local filesystem."""

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def can_read(self, path: str) -> bool:
        return self.exists(path) and os.access(path, os.R_OK)

    def can_write(self, path: str) -> bool:
        return self.exists(path) and os.access(path, os.W_OK)

    def read_bytes(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def write_bytes(self, path: str, data: bytes) -> None:
        """
        Replace the file contents in one step: write a sibling ``.tmp`` file
        and move it over the original so readers never see a partial file.
        """
        target = Path(path)
        tmp = target.with_name(target.name + ".tmp")
        try:
            with tmp.open("wb") as fh:
                fh.write(data)
            os.replace(tmp, target)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes → %s", len(data), target)


LOCAL = LocalFileAccess()
