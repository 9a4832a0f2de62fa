# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for canonical request construction."""

import hashlib
from unittest.mock import patch

import pytest

from sigv4callout.canonical import (
    EMPTY_SHA256,
    build_canonical_request,
    canonical_header_value,
    canonical_headers,
    canonical_method,
    canonical_query_string,
    canonical_uri,
    encode_body,
    hash_payload,
    require_sha256,
    select_signed_headers,
    uri_encode,
)
from sigv4callout.errors import CryptoUnavailable, EncodingError, InvalidRequest
from tests.vectors import GET_VANILLA_CANONICAL


# ---------------------------------------------------------------------------
# URI encoding
# ---------------------------------------------------------------------------


class TestUriEncode:
    """Tests for uri_encode."""

    def test_unreserved_chars_not_encoded(self) -> None:
        """Unreserved characters pass through unchanged."""
        assert uri_encode("abc123-_.~XYZ") == "abc123-_.~XYZ"

    def test_space_encoded_as_percent20(self) -> None:
        """Spaces are encoded as %20, not +."""
        assert uri_encode("hello world") == "hello%20world"

    def test_slash_encoded_by_default(self) -> None:
        """Forward slashes are encoded by default."""
        assert uri_encode("a/b") == "a%2Fb"

    def test_slash_preserved_when_requested(self) -> None:
        """Forward slashes preserved when encode_slash=False."""
        assert uri_encode("a/b", encode_slash=False) == "a/b"

    def test_uppercase_hex(self) -> None:
        """Hex digits in encoding are uppercase."""
        assert uri_encode("@*") == "%40%2A"

    def test_multibyte_encoded_per_byte(self) -> None:
        """Non-ASCII characters are encoded byte by byte as UTF-8."""
        assert uri_encode("ሴ") == "%E1%88%B4"

    def test_lone_surrogate_rejected(self) -> None:
        """Text that is not valid Unicode cannot be encoded."""
        with pytest.raises(InvalidRequest):
            uri_encode("a\ud800b")


# ---------------------------------------------------------------------------
# Canonical URI
# ---------------------------------------------------------------------------


class TestCanonicalUri:
    """Tests for canonical_uri."""

    def test_empty_path_becomes_slash(self) -> None:
        """Empty and missing paths return /."""
        assert canonical_uri("") == "/"
        assert canonical_uri(None) == "/"

    def test_leading_slash_added(self) -> None:
        """Relative paths gain a leading slash."""
        assert canonical_uri("foo/bar") == "/foo/bar"

    def test_no_normalization(self) -> None:
        """Dot segments and double slashes are signed as presented."""
        assert canonical_uri("/a/./b/../c") == "/a/./b/../c"
        assert canonical_uri("//a//b") == "//a//b"

    def test_space_double_encoded(self) -> None:
        """A literal space is encoded twice by default."""
        assert canonical_uri("/example space/") == "/example%2520space/"

    def test_space_single_encoded(self) -> None:
        """A literal space is encoded once when double encoding is off."""
        assert (
            canonical_uri("/example space/", double_encode=False)
            == "/example%20space/"
        )

    def test_pre_encoded_path_not_decoded(self) -> None:
        """Percent signs in the path are themselves encoded."""
        assert canonical_uri("/a%20b", double_encode=False) == "/a%2520b"
        assert canonical_uri("/a%20b") == "/a%252520b"

    def test_utf8_path(self) -> None:
        """Non-ASCII paths are double-encoded byte by byte."""
        assert canonical_uri("/ሴ") == "/%25E1%2588%25B4"

    @pytest.mark.parametrize("path", ["/a?b=1", "/a#frag", "/a\nb", "/a\x7f"])
    def test_malformed_path_rejected(self, path: str) -> None:
        """Query strings, fragments and control characters are rejected."""
        with pytest.raises(InvalidRequest):
            canonical_uri(path)


# ---------------------------------------------------------------------------
# Canonical query string
# ---------------------------------------------------------------------------


class TestCanonicalQueryString:
    """Tests for canonical_query_string."""

    def test_empty(self) -> None:
        """No parameters produce an empty string."""
        assert canonical_query_string([]) == ""

    def test_sorted_by_name(self) -> None:
        """Parameters are sorted by name."""
        params = [("Param2", "value2"), ("Param1", "value1")]
        assert canonical_query_string(params) == "Param1=value1&Param2=value2"

    def test_repeated_name_sorted_by_value(self) -> None:
        """Repeated names are ordered by value."""
        params = [("a", "2"), ("a", "1")]
        assert canonical_query_string(params) == "a=1&a=2"

    def test_byte_order(self) -> None:
        """Uppercase sorts before lowercase."""
        params = [("b", "x"), ("B", "y")]
        assert canonical_query_string(params) == "B=y&b=x"

    def test_missing_value(self) -> None:
        """A parameter without value keeps its equals sign."""
        assert canonical_query_string([("flag", None)]) == "flag="

    def test_values_encoded_once(self) -> None:
        """Reserved characters and slashes in values are encoded."""
        params = [("k", "a b=c/d"), ("k2", "%41")]
        assert canonical_query_string(params) == "k=a%20b%3Dc%2Fd&k2=%2541"


# ---------------------------------------------------------------------------
# Canonical headers
# ---------------------------------------------------------------------------


class TestCanonicalHeaderValue:
    """Tests for canonical_header_value."""

    def test_trims(self) -> None:
        """Leading and trailing whitespace is removed."""
        assert canonical_header_value("  value  ") == "value"

    def test_collapses_whitespace(self) -> None:
        """Interior runs of spaces and tabs become one space."""
        assert canonical_header_value("a   b\t\tc") == "a b c"

    def test_quoted_string_preserved(self) -> None:
        """Whitespace inside double quotes is kept."""
        assert canonical_header_value('"a   b"   c') == '"a   b" c'

    def test_escaped_quote_inside_quoted_string(self) -> None:
        """A backslash-escaped quote does not end the quoted string."""
        value = '"a \\"  b"   c'
        assert canonical_header_value(value) == '"a \\"  b" c'


class TestSelectSignedHeaders:
    """Tests for select_signed_headers."""

    def test_default_selection(self) -> None:
        """Host, Content-Type and x-amz-* are signed; others are not."""
        headers = [
            ("Host", "example.com"),
            ("Content-Type", "text/plain"),
            ("X-Amz-Target", "Svc.Op"),
            ("User-Agent", "curl"),
            ("Accept", "*/*"),
        ]
        selected = select_signed_headers(headers)
        assert selected == {
            "host": ["example.com"],
            "content-type": ["text/plain"],
            "x-amz-target": ["Svc.Op"],
        }

    def test_additional_headers(self) -> None:
        """Opted-in names are matched case-insensitively."""
        headers = [("X-Api-Key", "k"), ("Accept", "*/*")]
        selected = select_signed_headers(headers, ["x-api-KEY"])
        assert selected == {"x-api-key": ["k"]}

    def test_multi_values_keep_order(self) -> None:
        """Repeated headers keep their order of appearance."""
        headers = [("X-Amz-Meta", "b"), ("x-amz-meta", "a")]
        assert select_signed_headers(headers) == {"x-amz-meta": ["b", "a"]}


class TestCanonicalHeaders:
    """Tests for canonical_headers."""

    def test_sorted_block_and_list(self) -> None:
        """Names are sorted; each line ends with a newline."""
        block, signed = canonical_headers(
            {"x-amz-date": ["20150830T123600Z"], "host": ["example.com"]}
        )
        assert block == (
            "host:example.com\nx-amz-date:20150830T123600Z\n"
        )
        assert signed == "host;x-amz-date"

    def test_multi_values_joined(self) -> None:
        """Values are canonicalized and joined with commas."""
        block, _ = canonical_headers({"my-header1": [" value4", "value1 "]})
        assert block == "my-header1:value4,value1\n"


# ---------------------------------------------------------------------------
# Method, body and full request
# ---------------------------------------------------------------------------


class TestCanonicalMethod:
    """Tests for canonical_method."""

    def test_uppercased(self) -> None:
        """Verbs are uppercased."""
        assert canonical_method("patch") == "PATCH"

    @pytest.mark.parametrize("method", [None, "", "  ", "FETCH"])
    def test_invalid(self, method: str | None) -> None:
        """Missing and unknown verbs are rejected."""
        with pytest.raises(InvalidRequest):
            canonical_method(method)


class TestBody:
    """Tests for body encoding and hashing."""

    def test_empty_hash(self) -> None:
        """Empty bodies hash to the SHA-256 of nothing."""
        assert hash_payload(b"") == EMPTY_SHA256
        assert EMPTY_SHA256 == hashlib.sha256(b"").hexdigest()

    def test_hash(self) -> None:
        """Bodies hash to their lowercase hex SHA-256."""
        assert hash_payload(b"abc") == hashlib.sha256(b"abc").hexdigest()

    def test_none_is_empty(self) -> None:
        """A missing body is the empty byte string."""
        assert encode_body(None) == b""

    def test_bytes_unchanged(self) -> None:
        """Byte bodies ignore the charset."""
        assert encode_body(b"\xff", "ascii") == b"\xff"

    def test_text_encoded_with_charset(self) -> None:
        """Text bodies use the declared charset."""
        assert encode_body("é", "latin-1") == b"\xe9"

    def test_unknown_charset(self) -> None:
        """An unknown charset is an encoding error."""
        with pytest.raises(EncodingError, match="Unknown body charset"):
            encode_body("text", "no-such-charset")

    def test_unencodable_text(self) -> None:
        """Text outside the charset is an encoding error."""
        with pytest.raises(EncodingError):
            encode_body("ሴ", "ascii")

    def test_sha256_unavailable(self) -> None:
        """Missing SHA-256 support is reported."""
        with patch("hashlib.algorithms_available", set()):
            with pytest.raises(CryptoUnavailable):
                require_sha256()


class TestBuildCanonicalRequest:
    """Tests for build_canonical_request."""

    def test_get_vanilla(self) -> None:
        """Six lines: method, URI, query, headers, signed list, hash."""
        canonical = build_canonical_request(
            method="get",
            path="/",
            query=[],
            headers={
                "host": ["example.amazonaws.com"],
                "x-amz-date": ["20150830T123600Z"],
            },
            payload_hash=EMPTY_SHA256,
        )
        assert canonical.method == "GET"
        assert canonical.to_string() == GET_VANILLA_CANONICAL
