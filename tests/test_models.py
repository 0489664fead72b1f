"""Tests for manifest models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from realize.fs import File, FileType
from realize.models import FileDeclaration, Manifest
from realize.reality import Reality


class TestFileDeclaration:
    """Tests for FileDeclaration validation and conversion."""

    def test_defaults_to_file(self) -> None:
        """Test that type defaults to a regular file."""
        declaration = FileDeclaration.model_validate({"path": "/etc/motd", "contents": "hi"})

        assert declaration.type == FileType.FILE
        assert declaration.to_resource() == File.at("/etc/motd").contains_str("hi")

    def test_file_without_contents(self) -> None:
        """Test a file whose contents are not managed."""
        declaration = FileDeclaration.model_validate({"path": "/etc/motd"})
        assert declaration.to_resource() == File.at("/etc/motd")

    def test_each_type(self) -> None:
        """Test conversion of every file type."""
        assert FileDeclaration.model_validate(
            {"path": "/srv", "type": "directory"}
        ).to_resource() == File.at("/srv").is_dir()
        assert FileDeclaration.model_validate(
            {"path": "/srv/current", "type": "symlink", "target": "v1"}
        ).to_resource() == File.at("/srv/current").points_to("v1")
        assert FileDeclaration.model_validate(
            {"path": "/tmp/old", "type": "absent"}
        ).to_resource() == File.at("/tmp/old").is_absent()

    def test_symlink_requires_target(self) -> None:
        """Test that symlinks must name a target."""
        with pytest.raises(ValidationError, match="target is required"):
            FileDeclaration.model_validate({"path": "/srv/current", "type": "symlink"})

    def test_target_only_for_symlinks(self) -> None:
        """Test that target is rejected on other types."""
        with pytest.raises(ValidationError, match="target is only allowed"):
            FileDeclaration.model_validate({"path": "/srv", "type": "directory", "target": "x"})

    def test_contents_only_for_files(self) -> None:
        """Test that contents are rejected on other types."""
        with pytest.raises(ValidationError, match="contents are only allowed"):
            FileDeclaration.model_validate({"path": "/srv", "type": "directory", "contents": "x"})

    def test_unknown_type(self) -> None:
        """Test that unknown types are rejected."""
        with pytest.raises(ValidationError):
            FileDeclaration.model_validate({"path": "/srv", "type": "socket"})

    def test_unknown_field(self) -> None:
        """Test that typos in field names are rejected."""
        with pytest.raises(ValidationError):
            FileDeclaration.model_validate({"path": "/srv", "content": "x"})

    def test_empty_path(self) -> None:
        """Test that an empty path is rejected."""
        with pytest.raises(ValidationError):
            FileDeclaration.model_validate({"path": ""})


class TestManifest:
    """Tests for Manifest as a configuration procedure."""

    def test_configure_declares_in_order(self) -> None:
        """Test that declarations keep their order after parents."""
        manifest = Manifest.model_validate(
            {
                "resources": [
                    {"path": "b", "type": "directory"},
                    {"path": "a/file", "contents": "x"},
                ]
            }
        )
        reality = Reality()
        manifest.configure(reality)

        assert [r.describe() for r in reality] == [
            "directory 'b'",
            "directory 'a'",
            "file 'a/file' with sha1 11f6ad8e",
        ]

    def test_empty_manifest(self) -> None:
        """Test that a manifest without resources declares nothing."""
        reality = Reality()
        Manifest().configure(reality)
        assert len(reality) == 0
