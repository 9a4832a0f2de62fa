# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signing clock.

The signer reads the current time through a single injectable callable so
tests can pin the signing instant.
"""

from collections.abc import Callable
from datetime import UTC, datetime


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time at second resolution."""
    return datetime.now(UTC).replace(microsecond=0)


def normalize_instant(instant: datetime) -> datetime:
    """Convert an instant to aware UTC, truncated to whole seconds.

    Naive datetimes are taken to already be in UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    else:
        instant = instant.astimezone(UTC)
    return instant.replace(microsecond=0)


def fixed_clock(instant: datetime) -> Clock:
    """Build a clock that always returns ``instant``."""
    pinned = normalize_instant(instant)

    def _clock() -> datetime:
        return pinned

    return _clock
