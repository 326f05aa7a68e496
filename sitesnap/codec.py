"""Content-type classification and body decompression."""

from __future__ import annotations

import gzip
import zlib
from typing import List, Tuple

try:
    import brotli
except ImportError:  # pragma: no cover - depends on the runtime
    brotli = None

# First match wins; matched as substrings of the lower-cased content type.
EXTENSION_RULES: List[Tuple[str, str]] = [
    ("text/html", "html"),
    ("application/xhtml+xml", "html"),
    ("application/json", "json"),
    ("text/plain", "txt"),
    ("text/xml", "xml"),
    ("application/xml", "xml"),
    ("text/css", "css"),
    ("application/javascript", "js"),
    ("text/javascript", "js"),
]

DEFAULT_EXTENSION = "txt"

# gzip raises OSError (BadGzipFile) or EOFError for truncated streams
DECODER_ERRORS: Tuple[type, ...] = (OSError, EOFError, zlib.error)
if brotli is not None:
    DECODER_ERRORS += (brotli.error,)


class CodecError(RuntimeError):
    """Base class for body decoding failures."""


class UnsupportedEncoding(CodecError):
    """Raised for a Content-Encoding token with no known inverse."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unsupported content encoding: {token}")


class UnavailableCodec(CodecError):
    """Raised when a known encoding cannot be undone in this runtime."""

    def __init__(self, codec: str):
        self.codec = codec
        super().__init__(
            f"{codec} decompression is not available. "
            f"Please install the {codec} package."
        )


class CorruptBody(CodecError):
    """Raised when a body does not decode under its declared encoding."""

    def __init__(self, token: str, reason: str):
        self.token = token
        self.reason = reason
        super().__init__(f"Cannot decode {token} body: {reason}")


def extension_for(content_type: str) -> str:
    """Map a Content-Type header value to a file extension."""
    lowered = (content_type or "").lower()
    for needle, extension in EXTENSION_RULES:
        if needle in lowered:
            return extension
    return DEFAULT_EXTENSION


def split_encodings(content_encoding: str) -> List[str]:
    return [token.strip() for token in (content_encoding or "").split(",")]


def decompress(body: bytes, content_encoding: str) -> bytes:
    """
    Undo every encoding listed in a Content-Encoding header.

    Tokens are undone starting from the last one listed. Decompressor
    failures are re-raised as CorruptBody with the original error chained.

    Raises:
        UnsupportedEncoding: For tokens other than gzip, deflate, br.
        UnavailableCodec: For br when the brotli package is missing.
        CorruptBody: When the body is truncated or malformed.
    """
    for token in reversed(split_encodings(content_encoding)):
        body = _decode_token(body, token)
    return body


def _decode_token(body: bytes, token: str) -> bytes:
    name = token.lower()
    if name == "":
        return body
    try:
        if name == "gzip":
            return gzip.decompress(body)
        if name == "deflate":
            # raw deflate stream, no zlib header
            return zlib.decompress(body, -zlib.MAX_WBITS)
        if name == "br":
            if brotli is None:
                raise UnavailableCodec("brotli")
            return brotli.decompress(body)
    except DECODER_ERRORS as exc:
        raise CorruptBody(name, str(exc) or type(exc).__name__) from exc
    raise UnsupportedEncoding(token)
