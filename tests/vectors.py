# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Known-answer values from the AWS SigV4 test suite.

All vectors sign with the suite's example credentials for
``us-east-1``/``service`` at 2015-08-30T12:36:00Z against
``example.amazonaws.com``.
"""

from datetime import UTC, datetime


ACCESS_KEY_ID = "AKIDEXAMPLE"
SECRET_ACCESS_KEY = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"
REGION = "us-east-1"
SERVICE = "service"
ENDPOINT = "https://example.amazonaws.com"
HOST = "example.amazonaws.com"
SIGNING_TIME = datetime(2015, 8, 30, 12, 36, 0, tzinfo=UTC)
AMZ_DATE = "20150830T123600Z"
DATE = "20150830"
SCOPE = "20150830/us-east-1/service/aws4_request"

SIGNING_KEY_HEX = (
    "938127b5336810ddb6a5d6af445fcac9e371f9ed418ed386b022aed82901be75"
)

EMPTY_HASH = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
)

# get-vanilla
GET_VANILLA_CANONICAL = (
    "GET\n"
    "/\n"
    "\n"
    "host:example.amazonaws.com\n"
    "x-amz-date:20150830T123600Z\n"
    "\n"
    "host;x-amz-date\n" + EMPTY_HASH
)
GET_VANILLA_CANONICAL_HASH = (
    "bb579772317eb040ac9ed261061d46c1f17a8133879d6129b6e1c25292927e63"
)
GET_VANILLA_SIGNATURE = (
    "5fa00fa31553b73ebf1942676e86291e8372ff2a2260956d9b8aae1d763fbf31"
)

# post-x-www-form-urlencoded
POST_FORM_BODY = "Param1=value1"
POST_FORM_BODY_HASH = (
    "9095672bbd1f56dfc5b65f3e153adc8731a4a654192329106275f4c7b24d0b6e"
)
POST_FORM_SIGNATURE = (
    "ff11897932ad3f4e8b18135d722051e5ac45fc38421b1da7b9d196a0fe09473a"
)
POST_FORM_CHARSET_SIGNATURE = (
    "1a72ec8f64bd914b0e42e42607c7fbce7fb2c7465f63e3092b3b0d39fa77a6fe"
)

# get-vanilla-query-order-key-case
GET_QUERY_ORDER_SIGNATURE = (
    "b97d918cfa904a5beff61c982a1b6f458b799221646efd99d3219ec94cdf2500"
)

# get-space (normalized variant)
GET_SPACE_SIGNATURE = (
    "446b817944c553435b35e813c261ff4e161fff982d1bacdef1c87f6785dd1662"
)

# get-header-value-order
GET_HEADER_ORDER_SIGNATURE = (
    "4308aee29786bd01288955ced08fec4107b7a775176774808d7342b80eec106b"
)

# get-utf8
GET_UTF8_SIGNATURE = (
    "697b34846207a3f72246f99d74ae1ee4fe54f44bb06730c58a0d339eb079596d"
)

# get-unreserved
UNRESERVED_PATH = (
    "/-._~0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
)
GET_UNRESERVED_SIGNATURE = (
    "07ef7494c76fa4850883e2b006601f940f8a34d404d0cfa977f52a65bbf5f24f"
)

# get-vanilla with x-amz-content-sha256 signed
GET_VANILLA_CONTENT_SHA_SIGNATURE = (
    "726c5c4879a6b4ccbbd3b24edbd6b8826d34f87450fbbf4e85546fc7ba9c1642"
)


def authorization(signed_headers: str, signature: str) -> str:
    """Expected Authorization header for the example credentials."""
    return (
        f"AWS4-HMAC-SHA256 Credential={ACCESS_KEY_ID}/{SCOPE}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )
