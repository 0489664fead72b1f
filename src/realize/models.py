"""Pydantic models for YAML declaration manifests.

These models provide:
1. Type-safe YAML parsing
2. Validation at the boundary (fail fast, fail loudly)
3. Clean transformation to resources
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, model_validator

from .fs import File, FileType
from .reality import Reality


class FileDeclaration(BaseModel):
    """One declared file, directory, symlink or absent path."""

    model_config = {"extra": "forbid"}

    path: Annotated[str, Field(min_length=1)]
    type: FileType = FileType.FILE
    contents: str | None = None
    target: str | None = None

    @model_validator(mode="after")
    def validate_type_fields(self) -> FileDeclaration:
        if self.type == FileType.SYMLINK and not self.target:
            raise ValueError("target is required when type is symlink")
        if self.type != FileType.SYMLINK and self.target is not None:
            raise ValueError(f"target is only allowed for symlinks, not {self.type.value}")
        if self.type != FileType.FILE and self.contents is not None:
            raise ValueError(f"contents are only allowed for files, not {self.type.value}")
        return self

    def to_resource(self) -> File:
        """Convert the declaration into a File resource."""
        resource = File.at(self.path)
        match self.type:
            case FileType.FILE:
                if self.contents is not None:
                    return resource.contains_str(self.contents)
                return resource.is_file()
            case FileType.DIR:
                return resource.is_dir()
            case FileType.SYMLINK if self.target is not None:
                return resource.points_to(self.target)
            case FileType.ABSENT:
                return resource.is_absent()
        raise ValueError(f"Unsupported file type: {self.type}")


class Manifest(BaseModel):
    """A list of resource declarations, applied in the order given."""

    model_config = {"extra": "ignore"}

    resources: list[FileDeclaration] = Field(default_factory=list)

    def configure(self, reality: Reality) -> None:
        """Configuration procedure declaring every resource of the manifest."""
        for declaration in self.resources:
            reality.ensure(declaration.to_resource())
