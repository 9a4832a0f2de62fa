# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Error taxonomy for request signing.

The signing core raises these; the callout adapter turns every
``SigningError`` into an ``ABORT`` outcome.
"""


class SigningError(Exception):
    """Base exception for all signing failures."""


class ConfigurationError(SigningError):
    """A required callout property is missing or cannot be resolved."""


class InvalidRequest(SigningError):
    """The request cannot be signed as presented.

    Raised for a missing verb or message object, an unrecognized verb,
    a missing or non-absolute endpoint, and malformed paths.
    """


class CryptoUnavailable(SigningError):
    """SHA-256 or HMAC-SHA256 is not offered by the runtime."""


class EncodingError(SigningError):
    """The request body cannot be encoded in its declared charset."""


# Names used by the signer contract.
InvalidInput = InvalidRequest
UnsupportedEncoding = EncodingError
Internal = CryptoUnavailable
