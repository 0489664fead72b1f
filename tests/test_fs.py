"""Tests for the File resource against a real temporary directory."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from realize.errors import FileSystemError, RealizeError
from realize.fs import File, FileType
from realize.key import PathKey
from realize.reality import Reality
from realize.resource import Context

running_as_root = hasattr(os, "geteuid") and os.geteuid() == 0


@pytest.fixture
def ctx() -> Context:
    return Context()


class TestBuilder:
    """Tests for the File builder methods."""

    def test_at_defaults_to_regular_file(self) -> None:
        """Test that File.at only requires a regular file."""
        file = File.at("/etc/motd")
        assert file.file_type == FileType.FILE
        assert file.contents is None
        assert file.key() == PathKey(Path("/etc/motd"))

    def test_builders_return_new_values(self) -> None:
        """Test that builders never mutate the original value."""
        file = File.at("/srv/data")
        directory = file.is_dir()

        assert file.file_type == FileType.FILE
        assert directory.file_type == FileType.DIR
        assert file != directory
        assert file.key() == directory.key()

    def test_contains_str_encodes_utf8(self) -> None:
        """Test that string contents equal their UTF-8 bytes."""
        assert File.at("x").contains_str("héllo") == File.at("x").contains("héllo".encode())

    def test_switching_type_clears_details(self) -> None:
        """Test that a symlink turned into a file forgets its target."""
        file = File.at("x").points_to("/target").is_file()
        assert file == File.at("x")

    def test_symlink_requires_target(self) -> None:
        """Test that a symlink built without a target is rejected."""
        with pytest.raises(ValueError, match="needs a target"):
            File(Path("/srv/current"), file_type=FileType.SYMLINK)

    def test_describe(self) -> None:
        """Test descriptions of each file type."""
        assert (
            File.at("/tmp/test").contains_str("hello").describe()
            == "file '/tmp/test' with sha1 aaf4c61d"
        )
        assert File.at("/tmp/test").describe() == "file '/tmp/test'"
        assert File.at("/srv").is_dir().describe() == "directory '/srv'"
        assert (
            File.at("/srv/current").points_to("/srv/v1").describe()
            == "symlink '/srv/current' with target '/srv/v1'"
        )
        assert File.at("/tmp/old").is_absent().describe() == "absent '/tmp/old'"
        assert str(File.at("/srv").is_dir()) == "directory '/srv'"


class TestImplicitParent:
    """Tests for the implicit parent directory prerequisite."""

    def test_nested_path_declares_parents(
        self, tmp_path: Path, ctx: Context, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a/b/c yields a, a/b, a/b/c realized in that order."""
        monkeypatch.chdir(tmp_path)
        reality = Reality()
        reality.ensure(File.at("a/b/c").contains_str("deep"))

        assert [r.key() for r in reality] == [
            PathKey(Path("a")),
            PathKey(Path("a/b")),
            PathKey(Path("a/b/c")),
        ]
        assert [r.describe() for r in reality][:2] == ["directory 'a'", "directory 'a/b'"]

        assert reality.verify(ctx) is False
        reality.realize(ctx)
        assert (tmp_path / "a" / "b" / "c").read_text() == "deep"
        assert reality.verify(ctx) is True

    def test_relative_top_level_has_no_parent(self) -> None:
        """Test that the working directory itself is never declared."""
        reality = Reality()
        reality.ensure(File.at("top"))
        assert len(reality) == 1

    def test_root_has_no_parent(self) -> None:
        """Test that the chain stops at the filesystem root."""
        reality = Reality()
        reality.ensure(File.at("/"))
        assert [r.key() for r in reality] == [PathKey(Path("/"))]

    def test_conflicting_parent_keeps_first(self) -> None:
        """Test that a path declared as file and as parent directory warns."""
        reality = Reality()
        reality.ensure(File.at("a").contains_str("I am a file"))
        reality.ensure(File.at("a/b"))

        assert len(reality) == 2
        assert len(reality.conflicts) == 1
        assert reality.conflicts[0].rejected == "directory 'a'"


class TestRegularFile:
    """Tests for regular files."""

    def test_round_trip(self, tmp_path: Path, ctx: Context) -> None:
        """Test verify/realize/verify, then a content change."""
        path = tmp_path / "test"
        file = File.at(path).contains_str("hello")

        assert file.verify(ctx) is False
        file.realize(ctx)
        assert path.read_bytes() == b"hello"
        assert file.verify(ctx) is True

        changed = File.at(path).contains_str("hello2")
        assert changed.verify(ctx) is False
        changed.realize(ctx)
        assert path.read_bytes() == b"hello2"
        assert changed.verify(ctx) is True

    def test_realize_is_repeatable(self, tmp_path: Path, ctx: Context) -> None:
        """Test that realizing twice leaves the same result."""
        file = File.at(tmp_path / "twice").contains(b"\x00\x01")
        file.realize(ctx)
        file.realize(ctx)
        assert (tmp_path / "twice").read_bytes() == b"\x00\x01"

    def test_any_contents(self, tmp_path: Path, ctx: Context) -> None:
        """Test that a file without declared contents keeps what it has."""
        path = tmp_path / "keep"
        file = File.at(path)

        file.realize(ctx)
        assert path.read_bytes() == b""

        path.write_text("existing")
        file.realize(ctx)
        assert path.read_text() == "existing"
        assert file.verify(ctx) is True

    def test_directory_in_the_way(self, tmp_path: Path, ctx: Context) -> None:
        """Test a directory where a file is declared."""
        (tmp_path / "dir").mkdir()
        file = File.at(tmp_path / "dir").contains_str("x")

        assert file.verify(ctx) is False
        with pytest.raises(FileSystemError, match="Failed to write to file") as exc:
            file.realize(ctx)
        assert isinstance(exc.value.__cause__, OSError)

    def test_symlink_replaced_by_file(self, tmp_path: Path, ctx: Context) -> None:
        """Test that a symlink is replaced, not written through."""
        target = tmp_path / "target"
        target.write_text("target")
        link = tmp_path / "link"
        link.symlink_to(target)
        file = File.at(link).contains_str("own")

        assert file.verify(ctx) is False
        file.realize(ctx)

        assert not link.is_symlink()
        assert link.read_text() == "own"
        assert target.read_text() == "target"
        assert file.verify(ctx) is True

    def test_parent_is_a_file(self, tmp_path: Path, ctx: Context) -> None:
        """Test that a path below a regular file simply does not exist."""
        (tmp_path / "plain").write_text("x")
        assert File.at(tmp_path / "plain" / "child").verify(ctx) is False

    @pytest.mark.skipif(running_as_root, reason="root ignores permissions")
    def test_permission_denied(self, tmp_path: Path, ctx: Context) -> None:
        """Test that OS failures propagate as FileSystemError."""
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0o500)
        try:
            with pytest.raises(FileSystemError) as exc:
                File.at(locked / "f").contains_str("x").realize(ctx)
            assert isinstance(exc.value.__cause__, PermissionError)
        finally:
            locked.chmod(0o700)


class TestDirectory:
    """Tests for directories."""

    def test_round_trip(self, tmp_path: Path, ctx: Context) -> None:
        """Test creating a directory."""
        directory = File.at(tmp_path / "srv").is_dir()

        assert directory.verify(ctx) is False
        directory.realize(ctx)
        assert (tmp_path / "srv").is_dir()
        assert directory.verify(ctx) is True
        directory.realize(ctx)

    def test_file_is_not_a_directory(self, tmp_path: Path, ctx: Context) -> None:
        """Test a regular file where a directory is declared."""
        (tmp_path / "srv").write_text("x")
        directory = File.at(tmp_path / "srv").is_dir()

        assert directory.verify(ctx) is False
        with pytest.raises(FileSystemError, match="Failed to create directory"):
            directory.realize(ctx)


class TestSymlink:
    """Tests for symlinks."""

    def test_round_trip(self, tmp_path: Path, ctx: Context) -> None:
        """Test creating and retargeting a symlink."""
        link_path = tmp_path / "current"
        link = File.at(link_path).points_to(tmp_path / "v1")

        assert link.verify(ctx) is False
        link.realize(ctx)
        assert link_path.is_symlink()
        assert os.readlink(link_path) == str(tmp_path / "v1")
        # Dangling links are fine; only the link itself is managed
        assert link.verify(ctx) is True
        link.realize(ctx)

        retarget = File.at(link_path).points_to(tmp_path / "v2")
        assert retarget.verify(ctx) is False
        retarget.realize(ctx)
        assert os.readlink(link_path) == str(tmp_path / "v2")
        assert retarget.verify(ctx) is True

    def test_regular_file_replaced(self, tmp_path: Path, ctx: Context) -> None:
        """Test that a regular file at the link path is replaced."""
        (tmp_path / "current").write_text("x")
        link = File.at(tmp_path / "current").points_to("v1")

        assert link.verify(ctx) is False
        link.realize(ctx)
        assert link.verify(ctx) is True

    def test_link_to_directory_is_not_a_directory(self, tmp_path: Path, ctx: Context) -> None:
        """Test that symlinks are inspected, not followed."""
        (tmp_path / "real").mkdir()
        (tmp_path / "alias").symlink_to(tmp_path / "real")

        assert File.at(tmp_path / "alias").is_dir().verify(ctx) is False


class TestAbsent:
    """Tests for absent paths."""

    def test_missing_path_is_realized(self, tmp_path: Path, ctx: Context) -> None:
        """Test that absence is the converged state for absent files."""
        assert File.at(tmp_path / "gone").is_absent().verify(ctx) is True

    def test_removes_file(self, tmp_path: Path, ctx: Context) -> None:
        """Test deleting a regular file."""
        (tmp_path / "old").write_text("x")
        absent = File.at(tmp_path / "old").is_absent()

        assert absent.verify(ctx) is False
        absent.realize(ctx)
        assert not (tmp_path / "old").exists()
        assert absent.verify(ctx) is True
        absent.realize(ctx)

    def test_removes_empty_directory(self, tmp_path: Path, ctx: Context) -> None:
        """Test deleting an empty directory."""
        (tmp_path / "old").mkdir()
        absent = File.at(tmp_path / "old").is_absent()

        absent.realize(ctx)
        assert not (tmp_path / "old").exists()

    def test_removes_dangling_symlink(self, tmp_path: Path, ctx: Context) -> None:
        """Test that a dangling symlink counts as present."""
        (tmp_path / "old").symlink_to(tmp_path / "nowhere")
        absent = File.at(tmp_path / "old").is_absent()

        assert absent.verify(ctx) is False
        absent.realize(ctx)
        assert not (tmp_path / "old").is_symlink()

    def test_non_empty_directory_fails(self, tmp_path: Path, ctx: Context) -> None:
        """Test that directories are never removed recursively."""
        (tmp_path / "old").mkdir()
        (tmp_path / "old" / "keep").write_text("x")

        with pytest.raises(FileSystemError, match="Failed to delete directory"):
            File.at(tmp_path / "old").is_absent().realize(ctx)


class TestInsideReality:
    """Tests for File resources managed by a Reality."""

    def test_failure_names_the_file(self, tmp_path: Path, ctx: Context) -> None:
        """Test that the Reality wraps File errors with the file's identity."""
        (tmp_path / "old").mkdir()
        (tmp_path / "old" / "keep").write_text("x")
        reality = Reality()
        reality.ensure(File.at(tmp_path / "old").is_absent())

        with pytest.raises(RealizeError) as exc:
            reality.realize(ctx)

        assert exc.value.key == PathKey(tmp_path / "old")
        assert f"absent '{tmp_path / 'old'}'" in str(exc.value)
        assert isinstance(exc.value.__cause__, FileSystemError)
