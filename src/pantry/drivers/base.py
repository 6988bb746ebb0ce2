"""Backend driver contract.

Drivers perform the actual I/O for a box. They only ever see fully resolved
locations (``file://...`` or ``s3://...``), never logical paths.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import BinaryIO

FileSelector = Callable[[str], bool]


def select_all(name: str) -> bool:
    """Default copy selector: every file of a tree is copied."""
    return True


class Driver(ABC):
    """Abstract base class for box backends."""

    @abstractmethod
    def exists(self, location: str) -> bool:
        """Check if a file exists at ``location``."""
        pass

    @abstractmethod
    def read(self, location: str) -> bytes:
        """Read the whole file.

        Raises:
            NotFoundException: If nothing is stored at ``location``
            BackendException: On any other backend failure
        """
        pass

    @abstractmethod
    def open(self, location: str) -> BinaryIO:
        """Open a binary stream on the file. The caller closes it."""
        pass

    @abstractmethod
    def write(self, location: str, content: bytes) -> None:
        """Create or overwrite the file with ``content``."""
        pass

    @abstractmethod
    def write_stream(self, location: str, stream: BinaryIO) -> None:
        """Create or overwrite the file by draining ``stream``."""
        pass

    @abstractmethod
    def append(self, location: str, data: bytes) -> None:
        """Add ``data`` at the end of the file, creating it if needed."""
        pass

    @abstractmethod
    def touch(self, location: str) -> None:
        """Bump the modification time, or create an empty file."""
        pass

    @abstractmethod
    def delete(self, location: str) -> None:
        """Delete a single file. Missing files are ignored."""
        pass

    @abstractmethod
    def delete_tree(self, location: str) -> None:
        """Delete a directory (or key prefix) and everything below it."""
        pass

    @abstractmethod
    def copy(
        self,
        source: str,
        target: str,
        selector: FileSelector = select_all,
        public: bool = False,
    ) -> None:
        """Copy a file, or the selected files of a tree, from ``source`` to ``target``.

        Copies keep the source's public visibility. With ``public`` set every
        copied file is made publicly readable.
        """
        pass

    @abstractmethod
    def move(self, source: str, target: str, public: bool = False) -> None:
        """Move a file or a tree from ``source`` to ``target``. See :meth:`copy`."""
        pass

    def make_public(self, location: str) -> None:
        """Grant public read access. Backends without visibility do nothing."""
        return None
