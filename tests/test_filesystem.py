"""Tests for keepsake.filesystem module."""

import os
import stat
from pathlib import Path

import pytest

from keepsake.filesystem import FileSystem, LocalFileSystem


class TestLocalFileSystem:
    """Tests for LocalFileSystem."""

    def test_satisfies_protocol(self):
        assert isinstance(LocalFileSystem(), FileSystem)

    def test_create_and_open(self, tmp_path: Path):
        fs = LocalFileSystem()
        path = str(tmp_path / "nested" / "deep" / "graph")

        stream = fs.create(path)
        stream.write(b"checkpoint bytes")
        fs.close(stream)

        assert fs.exists(path)
        stream = fs.open(path)
        try:
            assert stream.read() == b"checkpoint bytes"
        finally:
            fs.close(stream)
        assert stream.closed

    def test_create_truncates(self, tmp_path: Path):
        fs = LocalFileSystem()
        path = tmp_path / "graph"
        path.write_bytes(b"a much longer previous checkpoint")

        stream = fs.create(str(path))
        stream.write(b"short")
        fs.close(stream)

        assert path.read_bytes() == b"short"

    def test_create_sets_permissions(self, tmp_path: Path):
        """Created files are owner read/write only by default."""
        if os.name == "nt":
            pytest.skip("Permission test not applicable on Windows")
        fs = LocalFileSystem()
        path = tmp_path / "graph"

        fs.close(fs.create(str(path)))

        mode = path.stat().st_mode
        assert mode & stat.S_IRWXU == stat.S_IRUSR | stat.S_IWUSR
        assert mode & stat.S_IRWXG == 0
        assert mode & stat.S_IRWXO == 0

    def test_custom_file_mode(self, tmp_path: Path):
        if os.name == "nt":
            pytest.skip("Permission test not applicable on Windows")
        fs = LocalFileSystem(file_mode=0o644)
        path = tmp_path / "graph"

        fs.close(fs.create(str(path)))

        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    def test_exists_ignores_directories(self, tmp_path: Path):
        """A directory is not a checkpoint file."""
        fs = LocalFileSystem()

        assert not fs.exists(str(tmp_path))
        assert not fs.exists(str(tmp_path / "missing"))

    def test_exists_below_a_file(self, tmp_path: Path):
        """Paths under a regular file do not exist rather than erroring."""
        (tmp_path / "flat").write_bytes(b"x")

        assert not LocalFileSystem().exists(str(tmp_path / "flat" / "graph"))

    def test_open_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            LocalFileSystem().open(str(tmp_path / "missing"))

    def test_copy_overwrites(self, tmp_path: Path):
        fs = LocalFileSystem()
        (tmp_path / "graph").write_bytes(b"new")
        (tmp_path / "graph.bk").write_bytes(b"old backup")

        fs.copy(str(tmp_path / "graph"), str(tmp_path / "graph.bk"))

        assert (tmp_path / "graph.bk").read_bytes() == b"new"
        assert (tmp_path / "graph").read_bytes() == b"new"

    def test_copy_without_overwrite(self, tmp_path: Path):
        fs = LocalFileSystem()
        (tmp_path / "graph").write_bytes(b"new")
        (tmp_path / "graph.bk").write_bytes(b"old backup")

        with pytest.raises(FileExistsError):
            fs.copy(str(tmp_path / "graph"), str(tmp_path / "graph.bk"), overwrite=False)

        assert (tmp_path / "graph.bk").read_bytes() == b"old backup"

    def test_root_resolves_relative_paths(self, tmp_path: Path):
        fs = LocalFileSystem(root=tmp_path)

        fs.close(fs.create("jobs/clickstream/graph"))

        assert (tmp_path / "jobs" / "clickstream" / "graph").exists()
        assert fs.exists("jobs/clickstream/graph")

    def test_root_leaves_absolute_paths(self, tmp_path: Path):
        fs = LocalFileSystem(root=tmp_path / "elsewhere")
        absolute = tmp_path / "graph"

        assert fs.resolve(str(absolute)) == absolute
