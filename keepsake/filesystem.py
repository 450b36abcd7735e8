"""Filesystem collaborator for checkpoint storage.

The writer and reader never touch ``os``/``shutil`` directly; they go
through a ``FileSystem`` so the storage medium can be swapped (and stubbed
in tests). ``LocalFileSystem`` is the local-disk implementation.

Writes through ``create`` are plain overwrites: there is no fsync and no
temp file + rename. A crash mid-write can leave a truncated file behind;
recovery relies on the ``.bk`` rotation and the reader's ordered fallback.

Security:
- Created files get 0o600 permissions by default
- Parent directories are created with 0o700 permissions
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class FileSystem(Protocol):
    """Operations the checkpoint writer and reader need from storage."""

    def exists(self, path: str) -> bool: ...

    def open(self, path: str) -> BinaryIO: ...

    def create(self, path: str) -> BinaryIO: ...

    def copy(self, src: str, dst: str, overwrite: bool = True) -> None: ...

    def close(self, stream: BinaryIO) -> None: ...


class LocalFileSystem:
    """Local-disk filesystem, optionally rooted at a directory.

    Relative paths are resolved against ``root`` (or the working directory
    when no root is configured). Absolute paths are used as given.
    """

    def __init__(self, root: str | Path | None = None, file_mode: int = 0o600):
        self.root = Path(root).expanduser() if root is not None else None
        self.file_mode = file_mode

    def resolve(self, path: str | Path) -> Path:
        resolved = Path(path).expanduser()
        if self.root is not None and not resolved.is_absolute():
            resolved = self.root / resolved
        return resolved

    def exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def open(self, path: str) -> BinaryIO:
        return open(self.resolve(path), "rb")

    def create(self, path: str) -> BinaryIO:
        """Open ``path`` for writing, truncating existing content."""
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        stream = open(target, "wb")
        try:
            os.chmod(target, self.file_mode)
        except OSError:
            stream.close()
            raise
        return stream

    def copy(self, src: str, dst: str, overwrite: bool = True) -> None:
        source = self.resolve(src)
        target = self.resolve(dst)
        if target.exists() and not overwrite:
            raise FileExistsError(f"Refusing to overwrite {target}")
        target.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        shutil.copyfile(source, target)
        os.chmod(target, self.file_mode)
        logger.debug(f"Copied {source} -> {target}")

    def close(self, stream: BinaryIO) -> None:
        stream.close()
