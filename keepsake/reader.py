"""Checkpoint reader.

Recovers the most recent valid checkpoint under a base path by probing a
fixed, ordered list of candidates:

1. base/graph      (primary)
2. base/graph.bk   (backup of the primary)
3. base            (legacy flat file)
4. base.bk         (legacy flat-file backup)

Each existing candidate goes through open -> decode -> validate. Any
failure along the way is recorded and the next candidate is tried; the
first candidate that passes all three stages wins. Only when every
candidate is absent or broken does the reader raise ``RecoveryExhausted``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from keepsake.checkpoint import Candidate, Checkpoint, candidate_paths, validate
from keepsake.codec import CheckpointCodec, ResolutionContext
from keepsake.errors import (
    CheckpointError,
    DecodeFailure,
    ErrorKind,
    RecoveryExhausted,
    Result,
    ValidationFailure,
    err,
    format_error,
)
from keepsake.filesystem import FileSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateAttempt:
    """Why one candidate did not produce a checkpoint."""

    role: str
    path: str
    error: CheckpointError


@dataclass(frozen=True)
class Recovery:
    """A successful recovery and the attempts that preceded it."""

    checkpoint: Checkpoint
    path: str
    role: str
    attempts: list[CandidateAttempt] = field(default_factory=list)

    @property
    def failures(self) -> list[CandidateAttempt]:
        """Attempts on candidates that existed but could not be loaded."""
        return [a for a in self.attempts if a.error.kind != ErrorKind.NOT_FOUND]


class CheckpointReader:
    """Reads checkpoints through a FileSystem with ordered fallback."""

    def __init__(
        self,
        fs: FileSystem,
        codec: CheckpointCodec | None = None,
        log: logging.Logger | None = None,
    ):
        self.fs = fs
        self.codec = codec or CheckpointCodec()
        self.log = log or logger

    def load(self, base_path: str, context: ResolutionContext | None = None) -> Checkpoint:
        """Load the most recent valid checkpoint under ``base_path``.

        Raises:
            RecoveryExhausted: If no candidate could be loaded
        """
        return self.recover(base_path, context).checkpoint

    def recover(self, base_path: str, context: ResolutionContext | None = None) -> Recovery:
        """Like ``load``, but also reports which candidate served the
        checkpoint and what went wrong with the ones before it."""
        attempts: list[CandidateAttempt] = []

        for candidate in candidate_paths(base_path):
            result = self._attempt(candidate, context)
            if result.is_ok():
                checkpoint = result.unwrap()
                self.log.info(f"Checkpoint successfully loaded from file '{candidate.path}'")
                self.log.info(f"Checkpoint was generated at time {checkpoint.timestamp}")
                return Recovery(
                    checkpoint=checkpoint,
                    path=candidate.path,
                    role=candidate.role,
                    attempts=attempts,
                )

            error = result.unwrap_err()
            if error.kind == ErrorKind.NOT_FOUND:
                self.log.warning(
                    f"Could not load checkpoint from file '{candidate.path}' as it does not exist"
                )
            else:
                self.log.error(
                    f"Error loading checkpoint from file '{candidate.path}': {format_error(error)}"
                )
            attempts.append(CandidateAttempt(role=candidate.role, path=candidate.path, error=error))

        raise RecoveryExhausted(str(base_path), attempts)

    def probe(
        self, base_path: str, context: ResolutionContext | None = None
    ) -> list[tuple[Candidate, Result[Checkpoint, CheckpointError]]]:
        """Try every candidate, without stopping at the first success.

        For diagnostics only; recovery always goes through ``recover``.
        """
        return [
            (candidate, self._attempt(candidate, context))
            for candidate in candidate_paths(base_path)
        ]

    def from_bytes(self, data: bytes, context: ResolutionContext | None = None) -> Checkpoint:
        """Decode and validate an in-memory envelope.

        Raises:
            DecodeFailure: If the bytes are not a readable envelope
            ValidationFailure: If the decoded checkpoint has a null field
        """
        decoded = self.codec.decode(data, context)
        if decoded.is_err():
            raise DecodeFailure(decoded.unwrap_err())
        validated = validate(decoded.unwrap())
        if validated.is_err():
            raise ValidationFailure(validated.unwrap_err())
        return validated.unwrap()

    def _attempt(
        self, candidate: Candidate, context: ResolutionContext | None
    ) -> Result[Checkpoint, CheckpointError]:
        path = candidate.path
        try:
            if not self.fs.exists(path):
                return err(
                    CheckpointError(
                        kind=ErrorKind.NOT_FOUND,
                        message="not present",
                        context={"path": path},
                    )
                )

            self.log.info(f"Attempting to load checkpoint from file '{path}'")
            stream = self.fs.open(path)
            try:
                data = stream.read()
            finally:
                self.fs.close(stream)
        except OSError as e:
            return err(
                CheckpointError(
                    kind=ErrorKind.IO_FAILURE,
                    message=f"Failed to read {path}: {e}",
                    context={"path": path, "error": str(e)},
                )
            )

        decoded = self.codec.decode(data, context)
        if decoded.is_err():
            return err(_at_path(decoded.unwrap_err(), path))

        validated = validate(decoded.unwrap())
        if validated.is_err():
            return err(_at_path(validated.unwrap_err(), path))
        return validated


def _at_path(error: CheckpointError, path: str) -> CheckpointError:
    return CheckpointError(
        kind=error.kind, message=error.message, context={**error.context, "path": path}
    )
