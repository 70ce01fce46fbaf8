"""
RestSpy Content Decoding

Undoes the Content-Encoding of a response body so the spy log can show
readable content.
"""

import gzip
import logging
import zlib
from typing import Optional, Union

from .errors import DecodingError

logger = logging.getLogger("restspy.encoding")

Body = Union[str, bytes]


def _gunzip(data: bytes) -> bytes:
    return gzip.decompress(data)


def _inflate(data: bytes) -> bytes:
    # Servers disagree on whether "deflate" carries the zlib wrapper
    try:
        return zlib.decompress(data)
    except zlib.error:
        return zlib.decompress(data, -zlib.MAX_WBITS)


DECODERS = {
    'gzip': _gunzip,
    'x-gzip': _gunzip,
    'deflate': _inflate,
}


def decode(body: Body, content_encoding: Optional[str]) -> Body:
    """
    Decode a body according to its Content-Encoding header value.

    Codings listed in the header are undone in reverse order of application.
    Unknown codings are left in place.

    Args:
        body: Raw body as received
        content_encoding: Value of the Content-Encoding header, if any

    Returns:
        Decoded body (bytes), or the body unchanged when nothing applies

    Raises:
        DecodingError: If the payload is corrupt for its declared coding
    """
    if not content_encoding:
        return body

    codings = [c.strip().lower() for c in content_encoding.split(',') if c.strip()]
    codings = [c for c in codings if c != 'identity']
    if not codings:
        return body

    data = body.encode('utf-8') if isinstance(body, str) else body

    for coding in reversed(codings):
        decoder = DECODERS.get(coding)
        if decoder is None:
            logger.warning(f"Unsupported Content-Encoding '{coding}', leaving body encoded")
            return data
        try:
            data = decoder(data)
        except (OSError, EOFError, zlib.error) as e:
            raise DecodingError(coding, str(e)) from e

    return data
