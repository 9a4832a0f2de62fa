# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across the test modules."""

from collections.abc import Iterator

import pytest

from sigv4callout.clock import fixed_clock
from sigv4callout.dotenv_loader import reset_dotenv_state
from sigv4callout.logging import SecretFilter
from sigv4callout.model import Credentials, SigningContext
from sigv4callout.signing import Signer
from tests.vectors import (
    ACCESS_KEY_ID,
    ENDPOINT,
    REGION,
    SECRET_ACCESS_KEY,
    SERVICE,
    SIGNING_TIME,
)


@pytest.fixture(autouse=True)
def _reset_global_state() -> Iterator[None]:
    """Isolate class-level secret registry and dotenv state per test."""
    SecretFilter.clear_secrets()
    reset_dotenv_state()
    yield
    SecretFilter.clear_secrets()
    reset_dotenv_state()


@pytest.fixture
def credentials() -> Credentials:
    """Example credentials from the AWS SigV4 test suite."""
    return Credentials(
        access_key_id=ACCESS_KEY_ID, secret_access_key=SECRET_ACCESS_KEY
    )


@pytest.fixture
def suite_context() -> SigningContext:
    """Signing context matching the AWS SigV4 test suite.

    The suite does not sign ``x-amz-content-sha256``.
    """
    return SigningContext(
        region=REGION,
        service=SERVICE,
        signing_time=SIGNING_TIME,
        sign_content_sha256=False,
    )


@pytest.fixture
def fixed_signer() -> Signer:
    """Signer whose clock is pinned to the suite's signing instant."""
    return Signer(fixed_clock(SIGNING_TIME))


@pytest.fixture
def callout_properties() -> dict[str, object]:
    """Complete callout properties for the example credentials."""
    return {
        "endpoint": ENDPOINT,
        "region": REGION,
        "service": SERVICE,
        "key": ACCESS_KEY_ID,
        "secret": SECRET_ACCESS_KEY,
        "message-variable-ref": "request",
    }
