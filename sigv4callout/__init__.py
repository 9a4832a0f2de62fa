# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS Signature Version 4 request signing for API gateway callouts.

The signing core (``Signer``) turns an ``UnsignedRequest`` plus
credentials and a signing context into the four authentication headers.
``SigV4Callout`` adapts it to a host gateway: it resolves properties
against the message context, signs the referenced message and writes the
headers back.
"""

from sigv4callout.callout import (
    CalloutOutcome,
    ContextDiagnosticSink,
    DiagnosticSink,
    ExecutionResult,
    LoggingDiagnosticSink,
    SigV4Callout,
)
from sigv4callout.clock import fixed_clock, utc_now
from sigv4callout.config import CalloutConfig, load_properties
from sigv4callout.errors import (
    ConfigurationError,
    CryptoUnavailable,
    EncodingError,
    InvalidRequest,
    SigningError,
)
from sigv4callout.host import (
    HostMessage,
    MessageContext,
    SimpleMessage,
    SimpleMessageContext,
)
from sigv4callout.model import (
    CanonicalRequest,
    Credentials,
    SignedHeaders,
    SigningContext,
    SigningResult,
    UnsignedRequest,
)
from sigv4callout.signing import Signer, sign


__all__ = [
    # signing
    "Signer",
    "sign",
    "fixed_clock",
    "utc_now",
    # model
    "CanonicalRequest",
    "Credentials",
    "SignedHeaders",
    "SigningContext",
    "SigningResult",
    "UnsignedRequest",
    # errors
    "ConfigurationError",
    "CryptoUnavailable",
    "EncodingError",
    "InvalidRequest",
    "SigningError",
    # callout
    "CalloutConfig",
    "CalloutOutcome",
    "ContextDiagnosticSink",
    "DiagnosticSink",
    "ExecutionResult",
    "LoggingDiagnosticSink",
    "SigV4Callout",
    "load_properties",
    # host
    "HostMessage",
    "MessageContext",
    "SimpleMessage",
    "SimpleMessageContext",
]
