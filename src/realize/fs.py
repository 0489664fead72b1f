"""File-system related resource types.

A File is declared at a path and then narrowed with builder methods:

    File.at("/etc/motd").contains_str("hello\\n")
    File.at("/srv/data").is_dir()
    File.at("/srv/current").points_to("/srv/releases/1")
    File.at("/tmp/old").is_absent()

Every File implicitly requires its parent directory, so declaring a file
three levels deep also declares (and orders first) the two directories
above it.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from .errors import FileSystemError
from .fingerprint import sha1_bytes, sha1_stream
from .key import Key, PathKey
from .resource import Context, Ensurer, Resource

# Number of hex digits of the content digest shown in descriptions
DESCRIBE_DIGEST_LENGTH = 8


class FileType(str, Enum):
    """What should exist at a File's path."""

    ABSENT = "absent"
    FILE = "file"
    DIR = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class File(Resource):
    """A file, which can be absent, a regular file, a directory, or a symlink."""

    kind = "file"

    path: Path
    file_type: FileType = FileType.FILE
    contents: bytes | None = None
    target: Path | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        if self.target is not None:
            object.__setattr__(self, "target", Path(self.target))
        elif self.file_type == FileType.SYMLINK:
            raise ValueError(f"Symlink '{self.path}' needs a target")

    @classmethod
    def at(cls, path: str | os.PathLike[str]) -> File:
        """Start reasoning about a file at a path.

        The resulting resource only ensures the path is a regular file.
        """
        return cls(path=Path(path))

    def contains(self, contents: bytes) -> File:
        """The file should contain exactly these bytes."""
        return replace(self, file_type=FileType.FILE, contents=bytes(contents), target=None)

    def contains_str(self, contents: str) -> File:
        """The file should contain this string, encoded as UTF-8."""
        return self.contains(contents.encode("utf-8"))

    def is_file(self) -> File:
        """The file is a regular file, with any contents."""
        return replace(self, file_type=FileType.FILE, contents=None, target=None)

    def is_dir(self) -> File:
        """The file is a directory."""
        return replace(self, file_type=FileType.DIR, contents=None, target=None)

    def points_to(self, target: str | os.PathLike[str]) -> File:
        """The file is a symlink that points to the supplied path."""
        return replace(self, file_type=FileType.SYMLINK, contents=None, target=Path(target))

    def is_absent(self) -> File:
        """The file should be absent, and will be deleted if it exists."""
        return replace(self, file_type=FileType.ABSENT, contents=None, target=None)

    def key(self) -> Key:
        return PathKey(self.path)

    def implicit_ensure(self, ensurer: Ensurer) -> None:
        parent = self.path.parent
        if parent != self.path and parent != Path("."):
            ensurer.ensure(File.at(parent).is_dir())

    def realize(self, ctx: Context) -> None:
        log_extra = {"path": str(self.path)}

        match self.file_type:
            case FileType.ABSENT:
                self._remove(ctx, log_extra)
            case FileType.FILE:
                if self.path.is_symlink():
                    ctx.logger.debug("Replacing symlink with regular file", extra=log_extra)
                    try:
                        self.path.unlink()
                    except OSError as e:
                        raise FileSystemError(f"Failed to delete symlink '{self.path}'") from e
                if self.contents is not None:
                    ctx.logger.debug("Updating file contents", extra=log_extra)
                    try:
                        self.path.write_bytes(self.contents)
                    except OSError as e:
                        raise FileSystemError(f"Failed to write to file '{self.path}'") from e
                elif not self.path.is_file():
                    ctx.logger.debug("Creating empty file", extra=log_extra)
                    try:
                        # Opening a directory this way fails instead of passing silently
                        with open(self.path, "ab"):
                            pass
                    except OSError as e:
                        raise FileSystemError(f"Failed to create file '{self.path}'") from e
            case FileType.DIR:
                try:
                    self.path.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise FileSystemError(f"Failed to create directory '{self.path}'") from e
            case FileType.SYMLINK if self.target is not None:
                self._link(ctx, self.target, log_extra)

    def _remove(self, ctx: Context, log_extra: dict[str, str]) -> None:
        if self.path.is_symlink() or self.path.is_file():
            ctx.logger.debug("Deleting file", extra=log_extra)
            try:
                self.path.unlink()
            except OSError as e:
                raise FileSystemError(f"Failed to delete file '{self.path}'") from e
        elif self.path.is_dir():
            ctx.logger.debug("Deleting directory", extra=log_extra)
            try:
                self.path.rmdir()
            except OSError as e:
                raise FileSystemError(f"Failed to delete directory '{self.path}'") from e

    def _link(self, ctx: Context, target: Path, log_extra: dict[str, str]) -> None:
        try:
            if self.path.is_symlink():
                if Path(os.readlink(self.path)) == target:
                    return
                ctx.logger.debug("Replacing symlink with wrong target", extra=log_extra)
                self.path.unlink()
            elif self.path.is_file():
                ctx.logger.debug("Replacing regular file with symlink", extra=log_extra)
                self.path.unlink()
            self.path.symlink_to(target)
        except OSError as e:
            raise FileSystemError(f"Failed to create symlink '{self.path}'") from e

    def verify(self, ctx: Context) -> bool:
        log_extra = {"path": str(self.path)}

        # lstat so that symlinks are inspected rather than followed
        try:
            metadata = self.path.lstat()
        except (FileNotFoundError, NotADirectoryError):
            if self.file_type == FileType.ABSENT:
                ctx.logger.debug("File is up to date", extra=log_extra)
                return True
            ctx.logger.debug("Path does not exist", extra=log_extra)
            return False
        except OSError as e:
            raise FileSystemError(f"Failed to gather metadata about path '{self.path}'") from e

        match self.file_type:
            case FileType.ABSENT:
                ctx.logger.debug("Path exists but should be absent", extra=log_extra)
                return False
            case FileType.FILE:
                if not stat.S_ISREG(metadata.st_mode):
                    ctx.logger.debug("Path doesn't point to a regular file", extra=log_extra)
                    return False
                if self.contents is not None:
                    try:
                        with open(self.path, "rb") as f:
                            old_sha1 = sha1_stream(f)
                    except OSError as e:
                        raise FileSystemError(
                            f"Failed to compute SHA-1 digest of file '{self.path}'"
                        ) from e
                    new_sha1 = sha1_bytes(self.contents)
                    if old_sha1 != new_sha1:
                        ctx.logger.debug(
                            "File has wrong contents",
                            extra={**log_extra, "old_sha1": old_sha1, "new_sha1": new_sha1},
                        )
                        return False
            case FileType.DIR:
                if not stat.S_ISDIR(metadata.st_mode):
                    ctx.logger.debug("Path doesn't point to a directory", extra=log_extra)
                    return False
            case FileType.SYMLINK:
                if not stat.S_ISLNK(metadata.st_mode):
                    ctx.logger.debug("Path doesn't point to a symlink", extra=log_extra)
                    return False
                try:
                    old_target = Path(os.readlink(self.path))
                except OSError as e:
                    raise FileSystemError(
                        f"Failed to read link target of '{self.path}'"
                    ) from e
                if old_target != self.target:
                    ctx.logger.debug(
                        "Symlink target is wrong",
                        extra={
                            **log_extra,
                            "old_target": str(old_target),
                            "new_target": str(self.target),
                        },
                    )
                    return False

        ctx.logger.debug("File is up to date", extra=log_extra)
        return True

    def describe(self) -> str:
        description = f"{self.file_type.value} '{self.path}'"
        if self.file_type == FileType.FILE and self.contents is not None:
            digest = sha1_bytes(self.contents)[:DESCRIBE_DIGEST_LENGTH]
            description += f" with sha1 {digest}"
        elif self.file_type == FileType.SYMLINK:
            description += f" with target '{self.target}'"
        return description
