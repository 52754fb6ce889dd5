"""
Content type detection by sniffing the payload.

Saved objects get the type detected from their bytes, never a type declared
by the client. Detection follows the WHATWG MIME sniffing signatures: at most
the first 512 bytes are considered, known binary signatures win, and
anything else is text when it contains no binary control bytes.
"""

from dataclasses import dataclass
from typing import Optional

SNIFF_LEN = 512
DEFAULT_BINARY = "application/octet-stream"
DEFAULT_TEXT = "text/plain; charset=utf-8"

_WHITESPACE = b"\t\n\x0c\r "
# Bytes that never appear in text (WHATWG "binary data byte")
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)

_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)


@dataclass(frozen=True)
class _Signature:
    pattern: bytes
    content_type: str
    mask: Optional[bytes] = None
    skip_whitespace: bool = False

    def matches(self, data: bytes) -> bool:
        if self.skip_whitespace:
            data = data.lstrip(_WHITESPACE)
        if len(data) < len(self.pattern):
            return False
        if self.mask is None:
            return data.startswith(self.pattern)
        return all(
            (b & m) == p for b, m, p in zip(data, self.mask, self.pattern)
        )


_SIGNATURES = (
    _Signature(b"<?xml", "text/xml; charset=utf-8", skip_whitespace=True),
    _Signature(b"%PDF-", "application/pdf"),
    _Signature(b"%!PS-Adobe-", "application/postscript"),
    # Byte order marks
    _Signature(b"\xfe\xff", "text/plain; charset=utf-16be"),
    _Signature(b"\xff\xfe", "text/plain; charset=utf-16le"),
    _Signature(b"\xef\xbb\xbf", "text/plain; charset=utf-8"),
    # Images
    _Signature(b"\x00\x00\x01\x00", "image/x-icon"),
    _Signature(b"\x00\x00\x02\x00", "image/x-icon"),
    _Signature(b"BM", "image/bmp"),
    _Signature(b"GIF87a", "image/gif"),
    _Signature(b"GIF89a", "image/gif"),
    _Signature(
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
        mask=b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
    ),
    _Signature(b"\x89PNG\r\n\x1a\n", "image/png"),
    _Signature(b"\xff\xd8\xff", "image/jpeg"),
    # Audio / video
    _Signature(b"FORM\x00\x00\x00\x00AIFF", "audio/aiff", mask=b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff"),
    _Signature(b"ID3", "audio/mpeg"),
    _Signature(b"OggS\x00", "application/ogg"),
    _Signature(b"MThd\x00\x00\x00\x06", "audio/midi"),
    _Signature(b"RIFF\x00\x00\x00\x00AVI ", "video/avi", mask=b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff"),
    _Signature(b"RIFF\x00\x00\x00\x00WAVE", "audio/wave", mask=b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff"),
    _Signature(b"\x1aE\xdf\xa3", "video/webm"),
    # Fonts
    _Signature(b"\x00\x01\x00\x00", "font/ttf"),
    _Signature(b"OTTO", "font/otf"),
    _Signature(b"ttcf", "font/collection"),
    _Signature(b"wOFF", "font/woff"),
    _Signature(b"wOF2", "font/woff2"),
    # Archives
    _Signature(b"\x1f\x8b\x08", "application/x-gzip"),
    _Signature(b"PK\x03\x04", "application/zip"),
    _Signature(b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    _Signature(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    _Signature(b"\x00asm", "application/wasm"),
)


def _is_html(data: bytes) -> bool:
    data = data.lstrip(_WHITESPACE)
    for tag in _HTML_TAGS:
        if len(data) <= len(tag):
            continue
        if data[: len(tag)].upper() != tag:
            continue
        # The tag must be terminated by a space or '>'
        if data[len(tag)] in b" >":
            return True
    return False


def _is_mp4(data: bytes) -> bool:
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if box_size % 4 != 0 or len(data) < box_size or data[4:8] != b"ftyp":
        return False
    for start in range(8, box_size, 4):
        if start == 12:
            # Skips the minor version field
            continue
        if data[start : start + 3] == b"mp4":
            return True
    return False


def detect_content_type(data: bytes) -> str:
    """Return the MIME type of data, always a valid type string."""
    head = data[:SNIFF_LEN]
    if _is_html(head):
        return "text/html; charset=utf-8"
    for signature in _SIGNATURES:
        if signature.matches(head):
            return signature.content_type
    if _is_mp4(head):
        return "video/mp4"
    if any(b in _BINARY_BYTES for b in head):
        return DEFAULT_BINARY
    return DEFAULT_TEXT
