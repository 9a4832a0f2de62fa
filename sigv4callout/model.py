# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Value types consumed and produced by the signer.

Requests, credentials and signing contexts are immutable; the signer never
mutates what it is given and returns fresh ``SignedHeaders``.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime


#: Output header names, in the casing written back onto host requests.
AUTHORIZATION = "Authorization"
X_AMZ_DATE = "X-Amz-Date"
X_AMZ_CONTENT_SHA256 = "X-Amz-Content-Sha256"
HOST = "Host"

OUTPUT_HEADERS = (AUTHORIZATION, X_AMZ_DATE, X_AMZ_CONTENT_SHA256, HOST)

#: Services whose canonical URI is encoded once instead of twice.
SINGLE_ENCODE_SERVICES = frozenset({"s3"})

MultiMapInput = (
    Mapping[str, str | None | Iterable[str | None]]
    | Iterable[tuple[str, str | None]]
    | None
)


def to_pairs(values: MultiMapInput) -> tuple[tuple[str, str | None], ...]:
    """Flatten a mapping or pair iterable into ordered ``(name, value)`` pairs.

    Mapping values may be a single string, ``None`` or a list of values;
    each list element becomes its own pair, in order.
    """
    if values is None:
        return ()
    if isinstance(values, Mapping):
        pairs: list[tuple[str, str | None]] = []
        for name, value in values.items():
            if value is None or isinstance(value, str):
                pairs.append((name, value))
            else:
                pairs.extend((name, v) for v in value)
        return tuple(pairs)
    return tuple((name, value) for name, value in values)


@dataclass(frozen=True)
class UnsignedRequest:
    """An HTTP request about to be signed.

    Attributes:
        method: HTTP verb, any case.
        endpoint: Absolute URL; only scheme and authority are used.
        path: Resource path, signed as presented.
        query: Ordered ``(name, value)`` pairs; ``None`` value means the
            parameter has no value.
        headers: Ordered ``(name, value)`` pairs; names repeat for
            multi-valued headers.
        body: Fully buffered body. Strings are encoded with
            ``body_charset``; ``None`` is the empty body.
        body_charset: Charset for string bodies.
    """

    method: str
    endpoint: str
    path: str = "/"
    query: tuple[tuple[str, str | None], ...] = ()
    headers: tuple[tuple[str, str | None], ...] = ()
    body: bytes | str | None = None
    body_charset: str = "utf-8"

    @classmethod
    def build(
        cls,
        method: str,
        endpoint: str,
        path: str = "/",
        *,
        query: MultiMapInput = None,
        headers: MultiMapInput = None,
        body: bytes | str | None = None,
        body_charset: str = "utf-8",
    ) -> "UnsignedRequest":
        """Build a request from mappings or pair lists."""
        return cls(
            method=method,
            endpoint=endpoint,
            path=path,
            query=to_pairs(query),
            headers=to_pairs(headers),
            body=body,
            body_charset=body_charset,
        )

    def header_values(self, name: str) -> list[str]:
        """Return all values of a header, matched case-insensitively."""
        wanted = name.lower()
        return [
            value or ""
            for header, value in self.headers
            if header.lower() == wanted
        ]


@dataclass(frozen=True)
class Credentials:
    """Long-term AWS credentials.

    The secret is excluded from ``repr()`` so it cannot leak through
    tracebacks or debug output.
    """

    # TODO: carry an STS session token and sign X-Amz-Security-Token.
    access_key_id: str
    secret_access_key: str = field(repr=False)


@dataclass(frozen=True)
class SigningContext:
    """Where the signature lives in AWS's namespace.

    Attributes:
        region: AWS region, e.g. ``us-east-1``.
        service: Signing name of the service, e.g. ``execute-api``.
        signing_time: Fixed signing instant; the signer's clock is used
            when absent.
        additional_signed_headers: Extra header names to sign on top of
            ``host``, ``content-type`` and ``x-amz-*``.
        double_encode_path: Canonical URI encoding policy. ``None`` picks
            the service default (single for ``s3``, double otherwise).
        sign_content_sha256: Whether ``x-amz-content-sha256`` is part of
            the signed headers. The header is emitted either way.
    """

    region: str
    service: str
    signing_time: datetime | None = None
    additional_signed_headers: frozenset[str] = frozenset()
    double_encode_path: bool | None = None
    sign_content_sha256: bool = True

    def should_double_encode(self) -> bool:
        """Resolve the canonical URI encoding policy for this service."""
        if self.double_encode_path is not None:
            return self.double_encode_path
        return self.service.lower() not in SINGLE_ENCODE_SERVICES


@dataclass(frozen=True)
class CanonicalRequest:
    """Normalized textual form of a request."""

    method: str
    uri: str
    query_string: str
    headers_block: str
    signed_headers: str
    payload_hash: str

    def to_string(self) -> str:
        """Render the six-line canonical request."""
        return "\n".join(
            [
                self.method,
                self.uri,
                self.query_string,
                self.headers_block,
                self.signed_headers,
                self.payload_hash,
            ]
        )


@dataclass(frozen=True)
class SignedHeaders:
    """The four authentication headers produced by signing."""

    authorization: str
    amz_date: str
    content_sha256: str
    host: str

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield ``(header-name, value)`` pairs for write-back."""
        yield AUTHORIZATION, self.authorization
        yield X_AMZ_DATE, self.amz_date
        yield X_AMZ_CONTENT_SHA256, self.content_sha256
        yield HOST, self.host

    def as_dict(self) -> dict[str, str]:
        """Return the headers as a plain dict."""
        return dict(self.items())


@dataclass(frozen=True)
class SigningResult:
    """Signed headers plus the intermediate strings that produced them."""

    headers: SignedHeaders
    canonical_request: CanonicalRequest
    string_to_sign: str
    credential_scope: str
