"""Shared fixtures for keepsake tests."""

import logging
from pathlib import Path

import pytest

from keepsake.checkpoint import Checkpoint
from keepsake.codec import CheckpointCodec
from keepsake.filesystem import LocalFileSystem
from keepsake.reader import CheckpointReader
from keepsake.writer import CheckpointWriter


def make_checkpoint(timestamp: int = 1_700_000_000_000, **overrides) -> Checkpoint:
    fields = dict(
        timestamp=timestamp,
        master="spark://coordinator:7077",
        job_name="clickstream-sessions",
        payload={"streams": ["clicks", "sessions"], "batch_duration": 2000},
        checkpoint_dir="/data/checkpoints/clickstream",
        checkpoint_interval=10_000,
        jars=("/opt/jobs/clickstream.jar",),
        home="/opt/spark",
    )
    fields.update(overrides)
    return Checkpoint(**fields)


@pytest.fixture
def sample_checkpoint() -> Checkpoint:
    return make_checkpoint()


@pytest.fixture
def base_path(tmp_path: Path) -> Path:
    return tmp_path / "checkpoints" / "clickstream"


@pytest.fixture
def fs() -> LocalFileSystem:
    return LocalFileSystem()


@pytest.fixture
def writer(fs: LocalFileSystem) -> CheckpointWriter:
    return CheckpointWriter(fs, CheckpointCodec())


@pytest.fixture
def reader(fs: LocalFileSystem) -> CheckpointReader:
    return CheckpointReader(fs, CheckpointCodec())


@pytest.fixture
def keepsake_logs(caplog):
    """Capture keepsake records at DEBUG regardless of earlier CLI runs."""
    caplog.set_level(logging.DEBUG, logger="keepsake")
    return caplog
