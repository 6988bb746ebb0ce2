"""Content-type sniffing for uploaded files."""

import codecs
from typing import Protocol

import filetype

# filetype inspects at most the first 8 KiB of a file
SNIFF_SIZE = 8192

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain"


class MimeDetector(Protocol):
    def detect(self, head: bytes) -> str: ...


def _looks_like_text(head: bytes) -> bool:
    if b"\x00" in head:
        return False
    # An incremental decoder tolerates a multi-byte character cut off at the end
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(head, final=False)
    except UnicodeDecodeError:
        return False
    return True


class FiletypeDetector:
    """Detects the MIME type from magic numbers using ``filetype``.

    Anything without a known signature is ``text/plain`` when it decodes as
    UTF-8 and ``application/octet-stream`` otherwise.
    """

    def detect(self, head: bytes) -> str:
        if not head:
            return OCTET_STREAM

        kind = filetype.guess(head)
        if kind is not None:
            return kind.mime

        return TEXT_PLAIN if _looks_like_text(head) else OCTET_STREAM


default_detector = FiletypeDetector()
