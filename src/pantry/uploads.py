"""Uploaded files and helpers for storing them in boxes."""

from __future__ import annotations

import io
import posixpath
import secrets
import string
from collections.abc import Callable, Iterable
from functools import cached_property
from typing import TYPE_CHECKING, BinaryIO

from .exceptions import StreamConsumedException
from .logging import get_logger
from .mime import SNIFF_SIZE, MimeDetector, default_detector

if TYPE_CHECKING:
    from .registry import BoxRegistry

logger = get_logger(__name__)

_ALPHABET = string.ascii_letters + string.digits

NameCallback = Callable[[], str | None]


def secure_random_string(length: int = 32) -> str:
    """Return a cryptographically random alphanumeric string."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class _PrefixedStream(io.RawIOBase):
    """Replays an already sniffed prefix before the rest of a stream."""

    def __init__(self, prefix: bytes, stream: BinaryIO):
        self._prefix = memoryview(prefix)
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._prefix:
            size = min(len(buffer), len(self._prefix))
            buffer[:size] = self._prefix[:size]
            self._prefix = self._prefix[size:]
            return size

        data = self._stream.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)


class UploadedFile:
    """A file uploaded with a request, ready to be stored in a box.

    The content stream can be consumed only once. The first few kilobytes are
    buffered when the MIME type is sniffed, so detection and storing share a
    single read. Storing the same upload twice works only if the stream is
    seekable; otherwise :class:`StreamConsumedException` is raised.

    Args:
        content_stream: The file content.
        content_type: The content type declared by the client.
        filename: The submitted file name.
        size: The size in bytes, as reported by the client.
        registry: Registry used to look up destination boxes.
        detector: MIME detector; defaults to :class:`~pantry.mime.FiletypeDetector`.
    """

    def __init__(
        self,
        content_stream: BinaryIO,
        content_type: str,
        filename: str,
        size: int,
        registry: BoxRegistry,
        detector: MimeDetector | None = None,
    ):
        self.content_stream = content_stream
        self.content_type = content_type
        self.filename = filename
        self.size = size
        self.registry = registry
        self.detector = detector or default_detector

        self._head: bytes | None = None
        self._consumed = False

    def __repr__(self) -> str:
        return (
            f"UploadedFile(filename={self.filename!r}, content_type={self.content_type!r}, "
            f"size={self.size})"
        )

    def _rewind(self) -> None:
        if not self.content_stream.seekable():
            raise StreamConsumedException(
                f"Upload '{self.filename}' was already read and its stream cannot be rewound"
            )
        self.content_stream.seek(0)
        self._head = None
        self._consumed = False

    def _sniffed_head(self) -> bytes:
        if self._head is None:
            self._head = self.content_stream.read(SNIFF_SIZE)
        return self._head

    def _content(self) -> BinaryIO:
        """Hand out the full content for a single store."""
        if self._consumed:
            self._rewind()
        head = self._sniffed_head()
        self._consumed = True
        # Buffered so that read(n) returns n bytes, not just the sniffed prefix
        return io.BufferedReader(_PrefixedStream(head, self.content_stream))

    @cached_property
    def detected_mime(self) -> str:
        """The MIME type detected from the file's content."""
        return self.detector.detect(self._sniffed_head())

    @cached_property
    def guessed_extension(self) -> str:
        """The extension derived from the detected MIME type.

        It is everything after the last ``/``: ``image/png`` becomes ``png``
        and ``text/plain`` becomes ``plain``. There is no lookup table, so
        ``application/vnd.api+json`` yields ``vnd.api+json``.
        """
        return self.detected_mime.rsplit("/", 1)[-1]

    def store(self, path: str, filename: str | None = None) -> str:
        """Store in the default box at ``path``, under a random name unless one is given."""
        return self.store_in(None, path, filename)

    def store_publicly(self, path: str, filename: str | None = None) -> str:
        return self.store_publicly_in(None, path, filename)

    def store_in(
        self,
        box_name: str | None,
        path: str = "",
        filename: str | None = None,
        without_guessed_extension: bool = False,
    ) -> str:
        """Store in the box ``box_name`` (the default box when None).

        The destination is ``<path>/<name>.<guessed extension>``.

        Returns:
            The location of the stored file
        """
        name = filename or secure_random_string(32)
        if not without_guessed_extension:
            name = f"{name}.{self.guessed_extension}"

        box = self.registry.box(box_name)
        location = box.write_stream(posixpath.join(path, name), self._content())
        logger.info("Stored upload", upload=self.filename, location=location)
        return location

    def store_publicly_in(
        self, box_name: str | None, path: str = "", filename: str | None = None
    ) -> str:
        """Store in ``box_name`` and make the result publicly readable."""
        location = self.store_in(box_name, path, filename)
        box = self.registry.box(box_name)
        # A publicly visible box has already made the file public while writing it
        if not box.publicly_visible:
            box.make_public(location)
        return location

    def move(self, from_box_name: str, to_box_name: str, from_path: str, to_path: str) -> str:
        """Copy ``<from_path>/<filename>`` from one box to ``<to_path>/<filename>`` in another.

        The source file is left in place.

        Returns:
            The location of the destination file
        """
        source = self.registry.box(from_box_name).read_stream(
            posixpath.join(from_path, self.filename)
        )
        try:
            return self.registry.box(to_box_name).write_stream(
                posixpath.join(to_path, self.filename), source
            )
        finally:
            source.close()


def store_all_in(
    files: Iterable[UploadedFile],
    box_name: str | None,
    path: str,
    name_callback: NameCallback | None = None,
) -> list[str]:
    """Store every file in ``box_name``, naming each with ``name_callback`` if given."""
    return [
        file.store_in(box_name, path, name_callback() if name_callback else None)
        for file in files
    ]


def store_all_publicly_in(
    files: Iterable[UploadedFile],
    box_name: str | None,
    path: str,
    name_callback: NameCallback | None = None,
) -> list[str]:
    return [
        file.store_publicly_in(box_name, path, name_callback() if name_callback else None)
        for file in files
    ]


def store_all(
    files: Iterable[UploadedFile], path: str, name_callback: NameCallback | None = None
) -> list[str]:
    """Store every file in the default box."""
    return store_all_in(files, None, path, name_callback)


def store_all_publicly(
    files: Iterable[UploadedFile], path: str, name_callback: NameCallback | None = None
) -> list[str]:
    return store_all_publicly_in(files, None, path, name_callback)
