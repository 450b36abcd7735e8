"""Checkpoint writer.

Saves a checkpoint under a base path, rotating the current primary into a
single backup slot first:

    base/graph     <- new checkpoint
    base/graph.bk  <- previous base/graph (if there was one)

The write to the primary is a plain overwrite. If it is interrupted the
primary may be truncated, but the backup still holds the previous good
checkpoint and the reader falls back to it.
"""

from __future__ import annotations

import logging

from keepsake.checkpoint import Checkpoint, backup_path, primary_path
from keepsake.codec import CheckpointCodec
from keepsake.filesystem import FileSystem

logger = logging.getLogger(__name__)


class CheckpointWriter:
    """Writes checkpoints through a FileSystem.

    Errors from the filesystem propagate unmodified; there are no retries.
    """

    def __init__(
        self,
        fs: FileSystem,
        codec: CheckpointCodec | None = None,
        log: logging.Logger | None = None,
    ):
        self.fs = fs
        self.codec = codec or CheckpointCodec()
        self.log = log or logger

    def save(self, checkpoint: Checkpoint, base_path: str) -> str:
        """Save ``checkpoint`` to ``base_path/graph``.

        Validation happens before any filesystem call, so an invalid
        checkpoint never disturbs the existing files.

        Returns:
            The primary path written

        Raises:
            ValidationFailure: If a required field is null
            OSError: From the filesystem, unmodified
        """
        checkpoint.validate(self.log)
        data = self.codec.encode(checkpoint)

        file = primary_path(base_path)
        self.log.debug(
            f"Saving checkpoint for time {checkpoint.timestamp} to file '{file}'"
        )

        if self.fs.exists(file):
            bk_file = backup_path(base_path)
            self.fs.copy(file, bk_file, overwrite=True)
            self.log.debug(f"Copied existing checkpoint file to {bk_file}")

        stream = self.fs.create(file)
        try:
            stream.write(data)
        finally:
            self.fs.close(stream)

        self.log.info(
            f"Checkpoint for time {checkpoint.timestamp} saved successfully to file '{file}'"
        )
        return file

    def to_bytes(self, checkpoint: Checkpoint) -> bytes:
        """Serialize without touching storage."""
        return self.codec.encode(checkpoint)
