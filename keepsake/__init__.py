"""keepsake: durable checkpoint persistence and recovery."""

__version__ = "0.3.0"

from keepsake.checkpoint import Checkpoint
from keepsake.codec import CheckpointCodec, PickleCodec, ResolutionContext, YamlCodec
from keepsake.errors import (
    CheckpointError,
    DecodeFailure,
    ErrorKind,
    RecoveryExhausted,
    ValidationFailure,
)
from keepsake.filesystem import FileSystem, LocalFileSystem
from keepsake.reader import CheckpointReader, Recovery
from keepsake.writer import CheckpointWriter

__all__ = [
    "__version__",
    "Checkpoint",
    "CheckpointCodec",
    "CheckpointError",
    "CheckpointReader",
    "CheckpointWriter",
    "DecodeFailure",
    "ErrorKind",
    "FileSystem",
    "LocalFileSystem",
    "PickleCodec",
    "Recovery",
    "RecoveryExhausted",
    "ResolutionContext",
    "ValidationFailure",
    "YamlCodec",
]
