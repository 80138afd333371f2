"""
Error taxonomy for the source decoder.

Every failure the decoder can report derives from `DecodeError`, which is a
`ValueError` so existing callers that catch `ValueError` keep working. The
extraction layer is expected to catch `DecodeError`, warn, and move on to the
next candidate server instead of surfacing the failure to the user.
"""

from __future__ import annotations


class DecodeError(ValueError):
    """Base class for all decoder failures."""


class EmptyInputError(DecodeError):
    """Raised when the ciphertext or one of the keys is empty."""


class InvalidEncodingError(DecodeError):
    """Raised when the ciphertext is not valid base64."""


class MalformedPayloadError(DecodeError):
    """
    Raised when the fully decoded text has no usable length prefix or the
    body does not parse as a source list. Almost always a stale key pair.
    """


__all__ = [
    "DecodeError",
    "EmptyInputError",
    "InvalidEncodingError",
    "MalformedPayloadError",
]
