"""Local filesystem driver."""

import os
import shutil
from pathlib import Path
from typing import BinaryIO

from ..exceptions import BackendException, NotFoundException
from ..logging import get_logger
from .base import Driver, FileSelector, select_all

logger = get_logger(__name__)

FILE_SCHEME = "file://"
CHUNK_SIZE = 64 * 1024


def location_to_path(location: str) -> Path:
    """Turn a ``file://`` location back into a filesystem path."""
    if not location.startswith(FILE_SCHEME):
        raise BackendException(f"Not a local file location: {location}")
    return Path(location[len(FILE_SCHEME) :])


class LocalDriver(Driver):
    """Reads and writes files on the local filesystem."""

    def exists(self, location: str) -> bool:
        return location_to_path(location).exists()

    def read(self, location: str) -> bytes:
        file_path = location_to_path(location)
        try:
            return file_path.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFoundException(location) from e
        except OSError as e:
            logger.error("File system error reading file", location=location, error=str(e))
            raise BackendException(f"Failed to read file: {e}") from e

    def open(self, location: str) -> BinaryIO:
        file_path = location_to_path(location)
        try:
            return file_path.open("rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFoundException(location) from e
        except OSError as e:
            logger.error("File system error opening file", location=location, error=str(e))
            raise BackendException(f"Failed to open file: {e}") from e

    def write(self, location: str, content: bytes) -> None:
        file_path = location_to_path(location)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(content)
        except OSError as e:
            logger.error("File system error writing file", location=location, error=str(e))
            raise BackendException(f"Failed to write file: {e}") from e
        logger.debug("Wrote file", location=location, size=len(content))

    def write_stream(self, location: str, stream: BinaryIO) -> None:
        file_path = location_to_path(location)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with file_path.open("wb") as f:
                shutil.copyfileobj(stream, f, CHUNK_SIZE)
        except OSError as e:
            logger.error("File system error streaming file", location=location, error=str(e))
            raise BackendException(f"Failed to write file: {e}") from e
        logger.debug("Streamed file", location=location)

    def append(self, location: str, data: bytes) -> None:
        file_path = location_to_path(location)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with file_path.open("ab") as f:
                f.write(data)
        except OSError as e:
            logger.error("File system error appending to file", location=location, error=str(e))
            raise BackendException(f"Failed to append to file: {e}") from e

    def touch(self, location: str) -> None:
        file_path = location_to_path(location)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            # Path.touch bumps mtime of an existing file without truncating it
            file_path.touch(exist_ok=True)
        except OSError as e:
            logger.error("File system error touching file", location=location, error=str(e))
            raise BackendException(f"Failed to touch file: {e}") from e

    def delete(self, location: str) -> None:
        file_path = location_to_path(location)
        try:
            if file_path.is_dir():
                file_path.rmdir()
            else:
                file_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("File system error deleting file", location=location, error=str(e))
            raise BackendException(f"Failed to delete file: {e}") from e

    def delete_tree(self, location: str) -> None:
        file_path = location_to_path(location)
        try:
            if file_path.is_dir():
                shutil.rmtree(file_path)
            else:
                file_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("File system error deleting folder", location=location, error=str(e))
            raise BackendException(f"Failed to delete folder: {e}") from e

    def copy(
        self,
        source: str,
        target: str,
        selector: FileSelector = select_all,
        public: bool = False,
    ) -> None:
        source_path = location_to_path(source)
        target_path = location_to_path(target)

        if not source_path.exists():
            raise NotFoundException(source)

        try:
            if source_path.is_file():
                if selector(source_path.name):
                    target_path.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source_path, target_path)
                return

            for root, _, files in os.walk(source_path):
                for name in files:
                    file_path = Path(root) / name
                    relative = file_path.relative_to(source_path).as_posix()
                    if not selector(relative):
                        continue
                    destination = target_path / relative
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(file_path, destination)
        except OSError as e:
            logger.error("File system error copying", source=source, target=target, error=str(e))
            raise BackendException(f"Failed to copy {source} to {target}: {e}") from e

    def move(self, source: str, target: str, public: bool = False) -> None:
        source_path = location_to_path(source)
        target_path = location_to_path(target)

        if not source_path.exists():
            raise NotFoundException(source)

        try:
            target_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(source_path, target_path)
        except OSError as e:
            logger.error("File system error moving", source=source, target=target, error=str(e))
            raise BackendException(f"Failed to move {source} to {target}: {e}") from e
