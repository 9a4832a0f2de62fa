# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Canonical request construction for AWS SigV4.

Builds the six-line canonical request::

    <HTTPMethod>
    <CanonicalURI>
    <CanonicalQueryString>
    <CanonicalHeaders>
    <SignedHeaders>
    <HashedPayload>

Paths are signed as presented: no percent-decoding and no collapsing of
``//``, ``.`` or ``..`` segments.  Every service except S3 encodes the
path twice.
"""

import hashlib
from collections.abc import Iterable

from sigv4callout.errors import CryptoUnavailable, EncodingError, InvalidRequest
from sigv4callout.model import CanonicalRequest


EMPTY_SHA256 = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
)

_AWS_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)

# RFC 7231 section 4 plus PATCH from RFC 5789
HTTP_METHODS = frozenset(
    {
        "GET",
        "HEAD",
        "POST",
        "PUT",
        "DELETE",
        "CONNECT",
        "OPTIONS",
        "TRACE",
        "PATCH",
    }
)

# Headers signed whenever present, besides x-amz-*
_DEFAULT_SIGNED_HEADERS = frozenset({"host", "content-type"})

_HEADER_WHITESPACE = frozenset(" \t\r\n")


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def require_sha256() -> None:
    """Fail unless hashlib offers SHA-256.

    Raises:
        CryptoUnavailable: If the runtime lacks SHA-256.
    """
    if "sha256" not in hashlib.algorithms_available:
        raise CryptoUnavailable("SHA-256 is not available in this runtime")


def sha256_hex(data: bytes) -> str:
    """Lowercase hex SHA-256 digest."""
    require_sha256()
    return hashlib.sha256(data).hexdigest()


def hash_payload(body: bytes) -> str:
    """Hash a fully buffered request body."""
    if not body:
        return EMPTY_SHA256
    return sha256_hex(body)


def encode_body(body: bytes | str | None, charset: str = "utf-8") -> bytes:
    """Turn a request body into bytes.

    Args:
        body: Raw bytes, text, or None for an empty body.
        charset: Charset used to encode text bodies.

    Returns:
        Body bytes.

    Raises:
        EncodingError: If the charset is unknown or cannot represent the
            text.
    """
    if body is None:
        return b""
    if isinstance(body, bytes | bytearray | memoryview):
        return bytes(body)
    try:
        return body.encode(charset)
    except LookupError as e:
        raise EncodingError(f"Unknown body charset: {charset!r}") from e
    except UnicodeEncodeError as e:
        raise EncodingError(
            f"Request body cannot be encoded as {charset}: {e.reason} "
            f"at position {e.start}"
        ) from e


# ---------------------------------------------------------------------------
# URI encoding (AWS-specific RFC 3986 subset)
# ---------------------------------------------------------------------------


def uri_encode(value: str, *, encode_slash: bool = True) -> str:
    """URI-encode a value using AWS's rules.

    - Unreserved characters are not encoded: A-Z, a-z, 0-9, -, _, ., ~
    - Every other UTF-8 byte becomes %XX (uppercase hex)
    - Forward slashes (/) are optionally preserved

    Args:
        value: String to encode.
        encode_slash: If True, encode '/'; if False, preserve '/'.

    Returns:
        URI-encoded string.

    Raises:
        InvalidRequest: If the value is not valid Unicode text.
    """
    try:
        raw = value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidRequest(f"Cannot URI-encode {value!r}: {e.reason}") from e

    result: list[str] = []
    for byte in raw:
        ch = chr(byte)
        if ch in _AWS_UNRESERVED or (ch == "/" and not encode_slash):
            result.append(ch)
        else:
            result.append(f"%{byte:02X}")
    return "".join(result)


# ---------------------------------------------------------------------------
# Canonical request parts
# ---------------------------------------------------------------------------


def canonical_method(method: str | None) -> str:
    """Uppercase and validate the HTTP verb.

    Raises:
        InvalidRequest: If the verb is missing or not a known HTTP method.
    """
    if not method or not method.strip():
        raise InvalidRequest("Missing HTTP verb")
    verb = method.strip().upper()
    if verb not in HTTP_METHODS:
        raise InvalidRequest(f"Unrecognized HTTP verb: {method!r}")
    return verb


def canonical_uri(path: str | None, *, double_encode: bool = True) -> str:
    """Build canonical URI from a resource path.

    The path is encoded as presented, so a pre-encoded ``%20`` becomes
    ``%2520`` after one pass.  ``double_encode`` applies the encoding a
    second time (all services except S3).

    Args:
        path: Resource path; empty means ``/``.
        double_encode: Encode twice instead of once.

    Returns:
        URI-encoded canonical path.

    Raises:
        InvalidRequest: If the path carries a query, fragment or control
            characters.
    """
    if not path:
        return "/"

    for ch in path:
        if ch in "?#":
            raise InvalidRequest(
                f"Path must not contain a query or fragment: {path!r}"
            )
        if ord(ch) < 0x20 or ord(ch) == 0x7F:
            raise InvalidRequest(f"Path contains control characters: {path!r}")

    if not path.startswith("/"):
        path = "/" + path

    single = uri_encode(path, encode_slash=False)
    if not double_encode:
        return single
    return uri_encode(single, encode_slash=False)


def canonical_query_string(params: Iterable[tuple[str, str | None]]) -> str:
    """Build canonical query string.

    Names and values are encoded once, then sorted by encoded name and
    value.  Encoded output is pure ASCII, so string order is byte order.

    Args:
        params: Ordered ``(name, value)`` pairs; a ``None`` value encodes
            as ``name=``.

    Returns:
        Canonical query string (sorted, encoded).
    """
    encoded = [
        (uri_encode(name), uri_encode(value or "")) for name, value in params
    ]
    encoded.sort()
    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_header_value(value: str) -> str:
    """Trim a header value and collapse whitespace outside quoted strings.

    Runs of spaces and tabs between tokens become a single space; text
    inside double quotes (including backslash escapes) is kept verbatim.
    """
    out: list[str] = []
    in_quotes = False
    escaped = False
    pending_space = False

    for ch in value.strip():
        if in_quotes:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_quotes = False
            out.append(ch)
            continue

        if ch in _HEADER_WHITESPACE:
            pending_space = True
            continue
        if pending_space:
            out.append(" ")
            pending_space = False
        if ch == '"':
            in_quotes = True
        out.append(ch)

    return "".join(out)


def select_signed_headers(
    headers: Iterable[tuple[str, str | None]],
    additional: Iterable[str] = (),
) -> dict[str, list[str]]:
    """Pick the headers that take part in the signature.

    ``host``, ``content-type`` and every ``x-amz-*`` header are signed when
    present; ``additional`` opts further names in.  Names are lowercased
    and values keep their order of appearance.

    Returns:
        Mapping of lowercase header name to its values.
    """
    wanted = {name.strip().lower() for name in additional}
    selected: dict[str, list[str]] = {}
    for name, value in headers:
        lname = name.strip().lower()
        if (
            lname in _DEFAULT_SIGNED_HEADERS
            or lname.startswith("x-amz-")
            or lname in wanted
        ):
            selected.setdefault(lname, []).append(value or "")
    return selected


def canonical_headers(selected: dict[str, list[str]]) -> tuple[str, str]:
    """Build the canonical headers block and signed headers list.

    Args:
        selected: Lowercase header name to values, from
            ``select_signed_headers``.

    Returns:
        Tuple of (headers block with one ``name:value\\n`` line per
        header, ``;``-joined signed header names).
    """
    names = sorted(selected)
    lines = [
        name
        + ":"
        + ",".join(canonical_header_value(v) for v in selected[name])
        + "\n"
        for name in names
    ]
    return "".join(lines), ";".join(names)


def build_canonical_request(
    *,
    method: str,
    path: str | None,
    query: Iterable[tuple[str, str | None]],
    headers: dict[str, list[str]],
    payload_hash: str,
    double_encode: bool = True,
) -> CanonicalRequest:
    """Build the canonical request.

    Args:
        method: HTTP method.
        path: Resource path.
        query: Query parameters as ordered pairs.
        headers: Headers to sign (lowercase name to values).
        payload_hash: Hex SHA-256 of the body.
        double_encode: Canonical URI encoding policy.

    Returns:
        CanonicalRequest.
    """
    headers_block, signed_headers = canonical_headers(headers)
    return CanonicalRequest(
        method=canonical_method(method),
        uri=canonical_uri(path, double_encode=double_encode),
        query_string=canonical_query_string(query),
        headers_block=headers_block,
        signed_headers=signed_headers,
        payload_hash=payload_hash,
    )
