"""Checkpoint data model and validation.

A checkpoint is a point-in-time snapshot of a running job: the opaque
state payload (the graph) plus the identity fields needed to rebuild the
job around it. Checkpoints are built from live state with
``Checkpoint.capture``, written by ``keepsake.writer`` and recovered by
``keepsake.reader``.

Persisted layout for a base path ``P``:

    P/graph       primary (current) checkpoint
    P/graph.bk    one-generation backup of the primary
    P             legacy flat-file primary
    P.bk          legacy flat-file backup
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol

from keepsake.errors import (
    CheckpointError,
    ErrorKind,
    Result,
    ValidationFailure,
    err,
    ok,
)

logger = logging.getLogger(__name__)

PRIMARY_NAME = "graph"
BACKUP_SUFFIX = ".bk"

# Checked in this order after the timestamp; the first null one is reported
IDENTITY_FIELDS = ("master", "job_name", "payload", "checkpoint_dir", "checkpoint_interval")


class SnapshotSource(Protocol):
    """Live process state a checkpoint is captured from."""

    master: str
    job_name: str
    home: str | None
    jars: Any
    graph: Any
    checkpoint_dir: str
    checkpoint_interval: int


@dataclass(frozen=True)
class Checkpoint:
    """A snapshot of process state plus the metadata to restore it."""

    timestamp: int  # Logical clock, milliseconds
    master: str  # Coordinator endpoint
    job_name: str
    payload: Any  # Opaque state, encoded by a PayloadCodec
    checkpoint_dir: str
    checkpoint_interval: int  # Milliseconds

    jars: tuple[str, ...] = ()
    home: str | None = None

    @classmethod
    def capture(cls, source: SnapshotSource, timestamp: int) -> Checkpoint:
        """Build a checkpoint from live state and validate it immediately."""
        checkpoint = cls(
            timestamp=timestamp,
            master=source.master,
            job_name=source.job_name,
            payload=source.graph,
            checkpoint_dir=source.checkpoint_dir,
            checkpoint_interval=source.checkpoint_interval,
            jars=tuple(source.jars or ()),
            home=source.home,
        )
        checkpoint.validate()
        return checkpoint

    def validate(self, log: logging.Logger | None = None) -> Checkpoint:
        """Raise ValidationFailure unless every required field is set."""
        result = validate(self)
        if result.is_err():
            raise ValidationFailure(result.unwrap_err())
        (log or logger).info(f"Checkpoint for time {self.timestamp} validated")
        return self


def validate(checkpoint: Checkpoint) -> Result[Checkpoint, CheckpointError]:
    """Check that the timestamp and every identity field are non-null.

    Returns:
        Ok(checkpoint) if valid, Err naming the first null field otherwise
    """
    for name in ("timestamp", *IDENTITY_FIELDS):
        if getattr(checkpoint, name, None) is None:
            return err(
                CheckpointError(
                    kind=ErrorKind.VALIDATION_FAILURE,
                    message=f"Checkpoint.{name} is null",
                    context={"field": name},
                )
            )
    return ok(checkpoint)


class Candidate(NamedTuple):
    """One recovery location."""

    role: str  # primary, primary-backup, flat, flat-backup
    path: str


def _normalize(base_path: str) -> str:
    base = str(base_path)
    return base.rstrip("/") or base


def primary_path(base_path: str) -> str:
    return posixpath.join(_normalize(base_path), PRIMARY_NAME)


def backup_path(base_path: str) -> str:
    return primary_path(base_path) + BACKUP_SUFFIX


def candidate_paths(base_path: str) -> list[Candidate]:
    """Recovery candidates for ``base_path``, most preferred first."""
    base = _normalize(base_path)
    return [
        Candidate("primary", primary_path(base)),
        Candidate("primary-backup", backup_path(base)),
        Candidate("flat", base),
        Candidate("flat-backup", base + BACKUP_SUFFIX),
    ]
