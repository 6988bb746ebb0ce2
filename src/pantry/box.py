"""The Box: uniform, path-based file operations over any backend."""

import os
from typing import BinaryIO

from .drivers.base import Driver, FileSelector, select_all
from .logging import get_logger
from .resolvers import PathResolver

logger = get_logger(__name__)


def _combine(existing: str | None, data: str) -> str:
    if existing is None:
        return data
    return f"{existing}{os.linesep}{data}"


class Box:
    """A storage backend addressed by logical paths.

    Every operation resolves the logical path through ``resolver`` and hands
    the resulting location to ``driver``. Write-type operations return that
    location. When ``publicly_visible`` is set, each written location is made
    public before it is returned.
    """

    def __init__(self, resolver: PathResolver, driver: Driver, publicly_visible: bool = False):
        self.resolver = resolver
        self.driver = driver
        self.publicly_visible = publicly_visible

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(resolver={self.resolver!r}, "
            f"driver={type(self.driver).__name__}, publicly_visible={self.publicly_visible})"
        )

    def resolve_path(self, path: str) -> str:
        """Translate a logical path into the backend location."""
        return self.resolver(path)

    def make_public(self, location: str) -> None:
        """Grant public read access to an already written location."""
        self.driver.make_public(location)

    def _written(self, location: str) -> str:
        if self.publicly_visible:
            self.make_public(location)
        return location

    def exists(self, path: str) -> bool:
        return self.driver.exists(self.resolve_path(path))

    def read(self, path: str) -> bytes:
        """Return the stored bytes. Raises NotFoundException if absent."""
        return self.driver.read(self.resolve_path(path))

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read(path).decode(encoding)

    def read_stream(self, path: str) -> BinaryIO:
        """Open a binary stream on the stored file; close it when done."""
        return self.driver.open(self.resolve_path(path))

    def write(self, path: str, content: bytes | str, encoding: str = "utf-8") -> str:
        """Create or overwrite ``path`` and return its location."""
        location = self.resolve_path(path)
        if isinstance(content, str):
            content = content.encode(encoding)
        self.driver.write(location, content)
        logger.info("Stored file", location=location, size=len(content))
        return self._written(location)

    def write_stream(self, path: str, stream: BinaryIO) -> str:
        """Like :meth:`write`, draining ``stream`` instead of holding bytes in memory."""
        location = self.resolve_path(path)
        self.driver.write_stream(location, stream)
        logger.info("Stored stream", location=location)
        return self._written(location)

    def append(self, path: str, data: str, encoding: str = "utf-8") -> str:
        """Add ``data`` on a new line after the existing content.

        This reads the whole file and writes it back, so concurrent appends
        to the same path can lose data.
        """
        location = self.resolve_path(path)
        existing = (
            self.driver.read(location).decode(encoding) if self.driver.exists(location) else None
        )
        content = _combine(existing, data).encode(encoding)
        self.driver.write(location, content)
        return self._written(location)

    def prepend(self, path: str, data: str, encoding: str = "utf-8") -> str:
        """Write ``data`` to the file in append mode.

        Despite the name the data ends up after the existing content, with no
        separator.
        """
        location = self.resolve_path(path)
        self.driver.append(location, data.encode(encoding))
        return self._written(location)

    def touch(self, path: str) -> str:
        """Update the modification time, creating an empty file if needed."""
        location = self.resolve_path(path)
        self.driver.touch(location)
        return self._written(location)

    def delete(self, path: str, *paths: str) -> None:
        """Delete one or more files. Paths that do not exist are skipped."""
        for each in (path, *paths):
            location = self.resolve_path(each)
            self.driver.delete(location)
            logger.info("Deleted file", location=location)

    def delete_recursive(self, path: str) -> None:
        """Delete a folder and everything below it."""
        location = self.resolve_path(path)
        self.driver.delete_tree(location)
        logger.info("Deleted folder", location=location)

    def copy(self, source: str, target: str, selector: FileSelector = select_all) -> None:
        """Copy a file or folder within this box.

        For folders, ``selector`` receives each file's path relative to
        ``source`` and decides whether it is copied. A publicly visible box
        makes the copies public.
        """
        self.driver.copy(
            self.resolve_path(source),
            self.resolve_path(target),
            selector,
            public=self.publicly_visible,
        )

    def move(self, source: str, target: str) -> None:
        self.driver.move(
            self.resolve_path(source), self.resolve_path(target), public=self.publicly_visible
        )
