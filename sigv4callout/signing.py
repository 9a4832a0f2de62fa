# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS SigV4 signing.

Composes the string to sign, derives the date/region/service scoped
signing key and orchestrates a full signing pass over an
``UnsignedRequest``.  The signer is pure apart from its clock: it holds no
mutable state and emits no log output, so one instance can be shared
across threads.
"""

import hashlib
import hmac
import urllib.parse
from datetime import datetime

from sigv4callout.canonical import (
    build_canonical_request,
    canonical_method,
    encode_body,
    hash_payload,
    require_sha256,
    select_signed_headers,
    sha256_hex,
)
from sigv4callout.clock import Clock, normalize_instant, utc_now
from sigv4callout.errors import InvalidRequest
from sigv4callout.model import (
    Credentials,
    SignedHeaders,
    SigningContext,
    SigningResult,
    UnsignedRequest,
)


ALGORITHM = "AWS4-HMAC-SHA256"
KEY_PREFIX = "AWS4"
SCOPE_TERMINATOR = "aws4_request"

AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

_DEFAULT_PORTS = {"http": 80, "https": 443}

# Headers the signer computes itself; stale copies on the input are dropped
_SIGNER_OWNED_HEADERS = frozenset(
    {"authorization", "x-amz-date", "x-amz-content-sha256", "host"}
)


# ---------------------------------------------------------------------------
# String to sign
# ---------------------------------------------------------------------------


def format_amz_date(instant: datetime) -> str:
    """Render an instant as ISO 8601 basic UTC (``YYYYMMDDTHHMMSSZ``)."""
    return normalize_instant(instant).strftime(AMZ_DATE_FORMAT)


def credential_scope(date: str, region: str, service: str) -> str:
    """Build the credential scope ``date/region/service/aws4_request``."""
    return f"{date}/{region}/{service}/{SCOPE_TERMINATOR}"


def build_string_to_sign(
    amz_date: str, scope: str, canonical_request: str
) -> str:
    """Build the SigV4 string to sign.

    Args:
        amz_date: ISO 8601 basic timestamp.
        scope: Credential scope (date/region/service/aws4_request).
        canonical_request: The canonical request string.

    Returns:
        String to sign.
    """
    return "\n".join(
        [
            ALGORITHM,
            amz_date,
            scope,
            sha256_hex(canonical_request.encode("utf-8")),
        ]
    )


# ---------------------------------------------------------------------------
# Signing key
# ---------------------------------------------------------------------------


def _hmac_sha256(key: bytes | bytearray, msg: str) -> bytearray:
    """HMAC-SHA256 into a buffer that can be zeroed afterwards."""
    digest = hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()
    return bytearray(digest)


def _zero(buf: bytearray) -> None:
    buf[:] = bytes(len(buf))


def derive_signing_key(
    secret_key: str, date: str, region: str, service: str
) -> bytes:
    """Derive the SigV4 signing key.

    Intermediate keys are zeroed once the next step has consumed them.

    Args:
        secret_key: AWS secret access key.
        date: Date string (YYYYMMDD).
        region: AWS region.
        service: AWS service name.

    Returns:
        The 32-byte signing key.
    """
    require_sha256()
    seed = bytearray((KEY_PREFIX + secret_key).encode("utf-8"))
    k_date = k_region = k_service = bytearray()
    try:
        k_date = _hmac_sha256(seed, date)
        k_region = _hmac_sha256(k_date, region)
        k_service = _hmac_sha256(k_region, service)
        return bytes(_hmac_sha256(k_service, SCOPE_TERMINATOR))
    finally:
        for buf in (seed, k_date, k_region, k_service):
            _zero(buf)


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    """Compute the hex-encoded SigV4 signature."""
    return hmac.new(
        signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
    ).hexdigest()


# ---------------------------------------------------------------------------
# Endpoint handling
# ---------------------------------------------------------------------------


def endpoint_authority(endpoint: str | None) -> str:
    """Derive the ``Host`` value from an endpoint URL.

    The port is kept only when it differs from the scheme's default.

    Raises:
        InvalidRequest: If the endpoint is missing, not an absolute
            http(s) URL, or has no host.
    """
    if not endpoint or not endpoint.strip():
        raise InvalidRequest("Missing endpoint")

    parts = urllib.parse.urlsplit(endpoint.strip())
    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parts.netloc:
        raise InvalidRequest(
            f"Endpoint must be an absolute http(s) URL: {endpoint!r}"
        )

    try:
        host = parts.hostname
        port = parts.port
    except ValueError as e:
        raise InvalidRequest(f"Invalid endpoint {endpoint!r}: {e}") from e
    if not host:
        raise InvalidRequest(f"Endpoint has no host: {endpoint!r}")

    if ":" in host:
        host = f"[{host}]"
    if port is None or port == _DEFAULT_PORTS[scheme]:
        return host
    return f"{host}:{port}"


# ---------------------------------------------------------------------------
# Signer
# ---------------------------------------------------------------------------


class Signer:
    """Signs ``UnsignedRequest`` values with SigV4.

    Args:
        clock: Source of the signing instant when the context does not
            pin one.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock

    def sign(
        self,
        request: UnsignedRequest,
        credentials: Credentials,
        context: SigningContext,
    ) -> SignedHeaders:
        """Sign a request and return the four authentication headers."""
        return self.sign_request(request, credentials, context).headers

    def sign_request(
        self,
        request: UnsignedRequest,
        credentials: Credentials,
        context: SigningContext,
    ) -> SigningResult:
        """Sign a request, keeping the intermediate canonical strings.

        Args:
            request: Request to sign; not modified.
            credentials: Access key pair.
            context: Region, service and signing policy.

        Returns:
            SigningResult with the headers, canonical request, string to
            sign and credential scope.

        Raises:
            InvalidRequest: Bad verb, endpoint, path or signing context.
            EncodingError: Body cannot be encoded in its charset.
            CryptoUnavailable: SHA-256 is unavailable.
        """
        require_sha256()
        _check_context(credentials, context)

        if context.signing_time is not None:
            instant = normalize_instant(context.signing_time)
        else:
            instant = normalize_instant(self._clock())
        amz_date = format_amz_date(instant)
        date = amz_date[:8]

        method = canonical_method(request.method)
        derived_host = endpoint_authority(request.endpoint)
        payload_hash = hash_payload(
            encode_body(request.body, request.body_charset)
        )

        host = derived_host
        for value in request.header_values("host"):
            if value.strip():
                host = value.strip()
                break

        headers: list[tuple[str, str | None]] = [
            (name, value)
            for name, value in request.headers
            if name.strip().lower() not in _SIGNER_OWNED_HEADERS
        ]
        headers.append(("host", host))
        if context.sign_content_sha256:
            headers.append(("x-amz-content-sha256", payload_hash))
        headers.append(("x-amz-date", amz_date))

        canonical = build_canonical_request(
            method=method,
            path=request.path,
            query=request.query,
            headers=select_signed_headers(
                headers, context.additional_signed_headers
            ),
            payload_hash=payload_hash,
            double_encode=context.should_double_encode(),
        )

        scope = credential_scope(date, context.region, context.service)
        string_to_sign = build_string_to_sign(
            amz_date, scope, canonical.to_string()
        )
        signing_key = derive_signing_key(
            credentials.secret_access_key,
            date,
            context.region,
            context.service,
        )
        signature = compute_signature(signing_key, string_to_sign)

        authorization = (
            f"{ALGORITHM} "
            f"Credential={credentials.access_key_id}/{scope}, "
            f"SignedHeaders={canonical.signed_headers}, "
            f"Signature={signature}"
        )

        return SigningResult(
            headers=SignedHeaders(
                authorization=authorization,
                amz_date=amz_date,
                content_sha256=payload_hash,
                host=host,
            ),
            canonical_request=canonical,
            string_to_sign=string_to_sign,
            credential_scope=scope,
        )


def _check_context(credentials: Credentials, context: SigningContext) -> None:
    """Reject contexts that would produce an unusable credential scope."""
    if not context.region or "/" in context.region:
        raise InvalidRequest(f"Invalid signing region: {context.region!r}")
    if not context.service or "/" in context.service:
        raise InvalidRequest(f"Invalid signing service: {context.service!r}")
    if not credentials.access_key_id:
        raise InvalidRequest("Missing access key id")
    if not credentials.secret_access_key:
        raise InvalidRequest("Missing secret access key")


def sign(
    request: UnsignedRequest,
    credentials: Credentials,
    context: SigningContext,
    *,
    clock: Clock = utc_now,
) -> SignedHeaders:
    """Sign a request with a one-off ``Signer``."""
    return Signer(clock).sign(request, credentials, context)
