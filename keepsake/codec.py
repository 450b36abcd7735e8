"""Checkpoint byte envelope.

A checkpoint is serialized as a YAML document:

    format: keepsake-checkpoint
    version: 1
    timestamp: 1700000000000
    master: spark://coordinator:7077
    job_name: clickstream
    home: /opt/spark
    jars: [...]
    checkpoint_dir: /data/checkpoints/clickstream
    checkpoint_interval: 10000
    payload_sha256: 3f1c...
    payload: !!binary |
      gASV...

The payload itself is opaque to this module. Its owner supplies a
``PayloadCodec`` that turns it into bytes and back. Decoding takes an
explicit ``ResolutionContext``: types referenced by the payload are looked
up there first, and only fall back to the default import mechanism when
the context cannot resolve them (and the context is not strict).
"""

from __future__ import annotations

import hashlib
import io
import pickle
from typing import Any, Iterable, Protocol

import yaml

from keepsake.checkpoint import Checkpoint
from keepsake.errors import (
    CheckpointError,
    ErrorKind,
    Result,
    UnresolvableType,
    err,
    ok,
)


ENVELOPE_FORMAT = "keepsake-checkpoint"
ENVELOPE_VERSION = 1

ENVELOPE_KEYS = (
    "timestamp",
    "master",
    "job_name",
    "home",
    "jars",
    "checkpoint_dir",
    "checkpoint_interval",
    "payload_sha256",
    "payload",
)


class ResolutionContext:
    """Registry used to resolve type references while decoding a payload.

    Keys are ``module.qualname`` strings. A non-strict context falls back to
    importing unknown names; a strict one rejects them.
    """

    def __init__(self, types: Iterable[Any] = (), strict: bool = False):
        self.strict = strict
        self._registry: dict[str, Any] = {}
        for obj in types:
            self.register(obj)

    def register(self, obj: Any, name: str | None = None) -> Any:
        key = name or f"{obj.__module__}.{obj.__qualname__}"
        self._registry[key] = obj
        return obj

    def resolve(self, module: str, name: str) -> Any | None:
        return self._registry.get(f"{module}.{name}")

    def __contains__(self, key: str) -> bool:
        return key in self._registry

    def __len__(self) -> int:
        return len(self._registry)


class PayloadCodec(Protocol):
    """Capability the owner of a payload type supplies to encode/decode it."""

    name: str

    def encode(self, payload: Any) -> bytes: ...

    def decode(self, data: bytes, context: ResolutionContext) -> Any: ...


class _ResolvingUnpickler(pickle.Unpickler):
    def __init__(self, stream: io.BytesIO, context: ResolutionContext):
        super().__init__(stream)
        self.context = context

    def find_class(self, module: str, name: str) -> Any:
        found = self.context.resolve(module, name)
        if found is not None:
            return found
        if self.context.strict:
            raise UnresolvableType(module, name)
        try:
            return super().find_class(module, name)
        except (ImportError, AttributeError) as e:
            raise UnresolvableType(module, name) from e


class PickleCodec:
    """Arbitrary Python objects via pickle, resolved through the context."""

    name = "pickle"

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    def encode(self, payload: Any) -> bytes:
        return pickle.dumps(payload, protocol=self.protocol)

    def decode(self, data: bytes, context: ResolutionContext) -> Any:
        return _ResolvingUnpickler(io.BytesIO(data), context).load()


class YamlCodec:
    """Plain data (dicts, lists, scalars) via yaml.safe_dump.

    No type references are ever resolved, so the context is unused.
    """

    name = "yaml"

    def encode(self, payload: Any) -> bytes:
        return yaml.safe_dump(payload, default_flow_style=False, sort_keys=False).encode(
            "utf-8"
        )

    def decode(self, data: bytes, context: ResolutionContext) -> Any:
        return yaml.safe_load(data.decode("utf-8"))


PAYLOAD_CODECS = {
    PickleCodec.name: PickleCodec,
    YamlCodec.name: YamlCodec,
}


def get_payload_codec(name: str) -> PayloadCodec:
    """Look up a payload codec by name (``pickle`` or ``yaml``)."""
    try:
        return PAYLOAD_CODECS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown payload codec '{name}' (expected one of: {', '.join(PAYLOAD_CODECS)})"
        ) from None


def _decode_error(message: str, **context: Any) -> Result[Checkpoint, CheckpointError]:
    return err(CheckpointError(kind=ErrorKind.DECODE_FAILURE, message=message, context=context))


class CheckpointCodec:
    """Encodes checkpoints to the byte envelope and back."""

    def __init__(self, payload_codec: PayloadCodec | None = None):
        self.payload_codec = payload_codec or PickleCodec()

    def encode(self, checkpoint: Checkpoint) -> bytes:
        payload = None
        digest = None
        if checkpoint.payload is not None:
            payload = self.payload_codec.encode(checkpoint.payload)
            digest = hashlib.sha256(payload).hexdigest()

        envelope = {
            "format": ENVELOPE_FORMAT,
            "version": ENVELOPE_VERSION,
            "timestamp": checkpoint.timestamp,
            "master": checkpoint.master,
            "job_name": checkpoint.job_name,
            "home": checkpoint.home,
            "jars": list(checkpoint.jars),
            "checkpoint_dir": checkpoint.checkpoint_dir,
            "checkpoint_interval": checkpoint.checkpoint_interval,
            "payload_codec": self.payload_codec.name,
            "payload_sha256": digest,
            # Last, so a truncated write loses the payload before any metadata
            "payload": payload,
        }
        return yaml.safe_dump(
            envelope, default_flow_style=False, sort_keys=False, allow_unicode=True
        ).encode("utf-8")

    def decode(
        self, data: bytes, context: ResolutionContext | None = None
    ) -> Result[Checkpoint, CheckpointError]:
        """Rebuild a checkpoint from envelope bytes.

        Null fields are passed through unchanged: rejecting them is the
        validator's job.

        Args:
            data: Envelope bytes
            context: Type resolution for the payload. None means an empty,
                non-strict context (default import mechanism only).

        Returns:
            Ok(checkpoint) or Err(DECODE_FAILURE)
        """
        context = context if context is not None else ResolutionContext()

        try:
            envelope = yaml.safe_load(data.decode("utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError) as e:
            return _decode_error(f"Malformed checkpoint envelope: {e}")
        except Exception as e:
            # Constructor errors outside YAMLError: impossible dates (ValueError),
            # nesting deeper than the loader can build (RecursionError)
            return _decode_error(f"Unreadable checkpoint envelope: {e}")

        if not isinstance(envelope, dict) or envelope.get("format") != ENVELOPE_FORMAT:
            return _decode_error("Not a checkpoint envelope")

        version = envelope.get("version")
        if version != ENVELOPE_VERSION:
            return _decode_error(f"Unsupported envelope version: {version}", version=version)

        missing = [key for key in ENVELOPE_KEYS if key not in envelope]
        if missing:
            return _decode_error(
                f"Envelope missing keys: {', '.join(missing)}", missing=missing
            )

        codec_name = envelope.get("payload_codec")
        if codec_name is not None and codec_name != self.payload_codec.name:
            return _decode_error(
                f"Payload was written with codec '{codec_name}', "
                f"reader uses '{self.payload_codec.name}'",
                payload_codec=codec_name,
            )

        raw = envelope["payload"]
        payload = None
        if raw is not None:
            if not isinstance(raw, bytes):
                return _decode_error("Payload is not binary")
            if hashlib.sha256(raw).hexdigest() != envelope["payload_sha256"]:
                return _decode_error("Payload checksum mismatch")
            try:
                payload = self.payload_codec.decode(raw, context)
            except UnresolvableType as e:
                return _decode_error(str(e), module=e.module, name=e.name)
            except Exception as e:
                # Payload codecs are caller-supplied and may raise anything
                return _decode_error(f"Payload decode failed: {e}")

        jars = envelope["jars"]
        if jars is not None and not isinstance(jars, list):
            return _decode_error("'jars' must be a list")

        return ok(
            Checkpoint(
                timestamp=envelope["timestamp"],
                master=envelope["master"],
                job_name=envelope["job_name"],
                payload=payload,
                checkpoint_dir=envelope["checkpoint_dir"],
                checkpoint_interval=envelope["checkpoint_interval"],
                jars=tuple(jars or ()),
                home=envelope["home"],
            )
        )
