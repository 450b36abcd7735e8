"""Error types for keepsake.

Two layers:
- ``Result`` values (``Ok`` / ``Err``) carrying a structured ``CheckpointError``,
  used wherever a failure is an expected outcome (one recovery candidate
  being corrupt, a payload type that cannot be resolved).
- Exceptions, raised only at the public edges: a checkpoint that fails
  validation before save, an envelope that cannot be decoded from memory,
  and recovery exhaustion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, NoReturn, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


class ErrorKind(str, Enum):
    """Classification of checkpoint failures."""

    IO_FAILURE = "io_failure"
    DECODE_FAILURE = "decode_failure"
    VALIDATION_FAILURE = "validation_failure"
    NOT_FOUND = "not_found"
    RECOVERY_EXHAUSTED = "recovery_exhausted"


@dataclass(frozen=True)
class CheckpointError:
    """A structured failure record."""

    kind: ErrorKind
    message: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err() on Ok: {self.value!r}")


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed result."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap() on Err: {self.error!r}")

    def unwrap_err(self) -> E:
        return self.error


Result = Union[Ok[T], Err[E]]


def ok(value: T) -> Ok[T]:
    return Ok(value)


def err(error: E) -> Err[E]:
    return Err(error)


def format_error(error: CheckpointError) -> str:
    """Render an error for humans (CLI output, log lines)."""
    text = f"[{error.kind.value}] {error.message}"
    path = error.context.get("path")
    if path and str(path) not in error.message:
        text += f" ({path})"
    return text


class KeepsakeError(Exception):
    """Base class for raised keepsake errors. Carries the structured record."""

    def __init__(self, error: CheckpointError):
        super().__init__(error.message)
        self.error = error


class ValidationFailure(KeepsakeError):
    """A checkpoint is structurally present but has a null required field."""


class DecodeFailure(KeepsakeError):
    """A byte envelope could not be turned back into a checkpoint."""


class UnresolvableType(Exception):
    """A type referenced by a payload could not be resolved."""

    def __init__(self, module: str, name: str):
        super().__init__(f"Cannot resolve type {module}.{name}")
        self.module = module
        self.name = name


class RecoveryExhausted(KeepsakeError):
    """Every recovery candidate was absent or failed."""

    def __init__(self, base_path: str, attempts: list):
        self.base_path = base_path
        self.attempts = list(attempts)

        lines = [f"Could not load checkpoint from path '{base_path}'"]
        for attempt in self.attempts:
            lines.append(
                f"  {attempt.path}: [{attempt.error.kind.value}] {attempt.error.message}"
            )

        super().__init__(
            CheckpointError(
                kind=ErrorKind.RECOVERY_EXHAUSTED,
                message="\n".join(lines),
                context={
                    "path": base_path,
                    "attempts": [
                        {"path": a.path, "kind": a.error.kind.value} for a in self.attempts
                    ],
                },
            )
        )

    @property
    def nothing_found(self) -> bool:
        """True when no candidate existed at all (nothing was ever checkpointed)."""
        return all(a.error.kind == ErrorKind.NOT_FOUND for a in self.attempts)
