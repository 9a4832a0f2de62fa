# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Logging setup that keeps secret access keys out of every output.

The callout registers each secret access key it resolves with
``SecretFilter``.  The filter masks those keys in log messages, their
arguments and rendered tracebacks; ``SecretFilter.redact`` applies the
same masking to captured diagnostics.

Usage:
    # In entry points (CLI, proxy addon)
    from sigv4callout.logging import configure_logging
    configure_logging(level=logging.INFO)

    # In library modules
    import logging
    logger = logging.getLogger(__name__)
    logger.warning("SigV4 signing aborted: %s", error)
"""

import logging
import re
from collections.abc import Mapping
from typing import ClassVar


REDACTED = "[REDACTED]"

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Renders tracebacks so they can be masked before any handler sees them
_TRACEBACK_FORMATTER = logging.Formatter()


class SecretFilter(logging.Filter):
    """Masks registered secrets in log records.

    The registry is class-level, so every handler carrying a
    ``SecretFilter`` masks every secret registered anywhere in the process.
    Records are modified in place and never dropped.
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is None:
            return True

        record.msg = self.redact(str(record.msg))
        if isinstance(record.args, Mapping):
            record.args = {
                key: _redact_arg(value) for key, value in record.args.items()
            }
        elif record.args:
            record.args = tuple(_redact_arg(arg) for arg in record.args)

        if record.exc_info and not record.exc_text:
            record.exc_text = _TRACEBACK_FORMATTER.formatException(
                record.exc_info
            )
        if record.exc_text:
            record.exc_text = self.redact(record.exc_text)
        return True

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Start masking ``secret``.  Empty and known secrets are ignored."""
        if not secret or secret in cls._secrets:
            return
        cls._secrets.add(secret)
        cls._rebuild_pattern()

    @classmethod
    def redact(cls, text: str) -> str:
        """Return ``text`` with every registered secret masked."""
        if cls._pattern is None:
            return text
        return cls._pattern.sub(REDACTED, text)

    @classmethod
    def clear_secrets(cls) -> None:
        """Forget all registered secrets. For testing."""
        cls._secrets.clear()
        cls._pattern = None

    @classmethod
    def _rebuild_pattern(cls) -> None:
        if not cls._secrets:
            cls._pattern = None
            return
        # Longest first so a secret containing another is fully masked
        ordered = sorted(cls._secrets, key=len, reverse=True)
        cls._pattern = re.compile("|".join(map(re.escape, ordered)))


def _redact_arg(value: object) -> object:
    if isinstance(value, str):
        return SecretFilter.redact(value)
    return value


def configure_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
    add_secret_filter: bool = True,
) -> None:
    """Route root logging to stderr with secret masking.

    Replaces any handlers already on the root logger, so calling this
    twice does not duplicate output.

    Args:
        level: Root logger level.
        format_string: Record format; a timestamped default when None.
        add_secret_filter: Attach ``SecretFilter`` to the handler.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string or _DEFAULT_FORMAT))
    if add_secret_filter:
        handler.addFilter(SecretFilter())

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
