# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Gateway callout that signs a host message with AWS SigV4.

The callout resolves its properties against the message context, reads
the message named by ``message-variable-ref`` into an ``UnsignedRequest``,
signs it, and writes back exactly four headers: ``Authorization``,
``X-Amz-Date``, ``X-Amz-Content-Sha256`` and ``Host``.  No other header is
copied back, even when the signer canonicalized it.

Failures never leave a half-signed message: all four headers are computed
before any is written.  Every ``SigningError`` is recorded on the
diagnostic sink and reported to the host as ``ExecutionResult.ABORT``.
Any other exception is recorded on the sink as well and then propagates.
"""

import logging
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from sigv4callout.config import CALLOUT_VAR_PREFIX, CalloutConfig
from sigv4callout.errors import InvalidRequest, SigningError
from sigv4callout.host import HostMessage, MessageContext
from sigv4callout.logging import SecretFilter
from sigv4callout.model import SignedHeaders, SigningResult, UnsignedRequest
from sigv4callout.signing import Signer


logger = logging.getLogger(__name__)

VERB_VAR = "verb"
PATH_VAR = "path"

_DEFAULT_CHARSET = "utf-8"


class ExecutionResult(Enum):
    """Terminal status reported to the host gateway."""

    SUCCESS = "success"
    ABORT = "abort"


@dataclass(frozen=True)
class CalloutOutcome:
    """Result of one callout execution.

    Attributes:
        result: Terminal status for the host.
        headers: Headers written back on success.
        error: The signing failure on abort.
    """

    result: ExecutionResult
    headers: SignedHeaders | None = None
    error: SigningError | None = None

    @property
    def ok(self) -> bool:
        return self.result is ExecutionResult.SUCCESS


# ---------------------------------------------------------------------------
# Diagnostic sinks
# ---------------------------------------------------------------------------


class DiagnosticSink(Protocol):
    """Receives the callout's diagnostics."""

    def info(self, message: str) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def flush(self, context: MessageContext) -> None: ...


class LoggingDiagnosticSink:
    """Forwards diagnostics to a ``logging`` logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def info(self, message: str) -> None:
        self._log.info("%s", message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._log.error("%s", message, exc_info=exc)

    def flush(self, context: MessageContext) -> None:  # noqa: ARG002
        pass


class ContextDiagnosticSink:
    """Captures diagnostics into message-context variables.

    Info lines are saved as ``<prefix>.info.stdout`` and errors, with their
    tracebacks, as ``<prefix>.info.stderr``.  Registered secrets are
    redacted before anything is saved.  One instance serves a single
    execution; ``SigV4Callout`` builds a fresh one per call.
    """

    def __init__(self, prefix: str = CALLOUT_VAR_PREFIX) -> None:
        self.prefix = prefix
        self._stdout: list[str] = []
        self._stderr: list[str] = []

    def info(self, message: str) -> None:
        self._stdout.append(message + "\n")

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._stderr.append(message + "\n")
        if exc is not None:
            self._stderr.extend(traceback.format_exception(exc))

    def flush(self, context: MessageContext) -> None:
        context.set_variable(
            f"{self.prefix}.info.stdout",
            SecretFilter.redact("".join(self._stdout)),
        )
        context.set_variable(
            f"{self.prefix}.info.stderr",
            SecretFilter.redact("".join(self._stderr)),
        )
        self._stdout.clear()
        self._stderr.clear()


# ---------------------------------------------------------------------------
# Message translation
# ---------------------------------------------------------------------------


def _content_charset(message: HostMessage) -> str:
    """Charset declared by the message's Content-Type, or UTF-8."""
    for value in message.headers("Content-Type"):
        for param in value.split(";")[1:]:
            key, _, charset = param.partition("=")
            if key.strip().lower() == "charset" and charset.strip():
                return charset.strip().strip('"')
    return _DEFAULT_CHARSET


def request_from_message(
    message: HostMessage, endpoint: str
) -> UnsignedRequest:
    """Translate a host message into an ``UnsignedRequest``.

    The message is only read.  The ``path`` variable wins over any path
    carried by ``endpoint``, which contributes scheme and authority.

    Raises:
        InvalidRequest: If the message has no verb.
    """
    verb = message.get_variable(VERB_VAR)
    if not verb:
        raise InvalidRequest("Message has no verb")
    path = message.get_variable(PATH_VAR) or ""

    headers = [
        (name, value)
        for name in message.header_names()
        for value in message.headers(name)
    ]
    query = [
        (name, value)
        for name in message.query_param_names()
        for value in message.query_params(name)
    ]

    return UnsignedRequest(
        method=str(verb),
        endpoint=endpoint,
        path=str(path),
        query=tuple(query),
        headers=tuple(headers),
        body=message.content,
        body_charset=_content_charset(message),
    )


def apply_signed_headers(message: HostMessage, headers: SignedHeaders) -> None:
    """Write the four authentication headers onto the message."""
    for name, value in headers.items():
        message.set_header(name, value)


# ---------------------------------------------------------------------------
# Callout
# ---------------------------------------------------------------------------


class SigV4Callout:
    """Signs the message referenced by ``message-variable-ref``.

    One instance may serve many messages at once: every execution gets
    its own diagnostic sink from ``sink_factory`` and returns its own
    ``CalloutOutcome``.

    Args:
        properties: Raw callout properties (see ``sigv4callout.config``).
        signer: Signer to use; a default ``Signer`` when omitted.
        sink_factory: Builds the diagnostic sink for one execution;
            ``ContextDiagnosticSink`` by default.  Pass a factory returning
            a shared sink only when that sink keeps no per-call state.
    """

    def __init__(
        self,
        properties: dict[str, object],
        *,
        signer: Signer | None = None,
        sink_factory: Callable[[], DiagnosticSink] = ContextDiagnosticSink,
    ) -> None:
        self.properties = dict(properties)
        self.signer = signer or Signer()
        self.sink_factory = sink_factory

    def execute(self, message_context: MessageContext) -> ExecutionResult:
        """Run the callout and report the host's terminal status."""
        return self.run(message_context).result

    def run(self, message_context: MessageContext) -> CalloutOutcome:
        """Run the callout and return the full outcome.

        Diagnostics are flushed to the message context before returning,
        also when an unexpected exception propagates.
        """
        sink = self.sink_factory()
        try:
            return self._sign(message_context, sink)
        except Exception as e:
            logger.exception("Unexpected error during SigV4 signing")
            sink.error(f"Unexpected {type(e).__name__}: {e}", e)
            raise
        finally:
            sink.flush(message_context)

    def _sign(
        self, message_context: MessageContext, sink: DiagnosticSink
    ) -> CalloutOutcome:
        try:
            config = CalloutConfig.from_properties(
                self.properties, message_context
            )
            SecretFilter.register_secret(config.secret)

            message = message_context.get_variable(config.message_variable_ref)
            if message is None:
                raise InvalidRequest(
                    "Could not resolve message object "
                    f'"{config.message_variable_ref}"'
                )
            if not isinstance(message, HostMessage):
                raise InvalidRequest(
                    f'Variable "{config.message_variable_ref}" '
                    "does not hold a message"
                )

            request = request_from_message(message, config.endpoint)
            result = self.signer.sign_request(
                request, config.credentials(), config.signing_context()
            )
        except SigningError as e:
            logger.warning("SigV4 signing aborted: %s", e)
            sink.error(f"{type(e).__name__}: {e}", e)
            return CalloutOutcome(ExecutionResult.ABORT, error=e)

        if config.debug:
            self._write_debug_vars(message_context, config, request, result)

        apply_signed_headers(message, result.headers)
        logger.debug(
            "Signed %s %s for %s/%s",
            request.method,
            request.path,
            config.service,
            config.region,
        )
        sink.info(
            f"Signed {request.method} {request.path or '/'} "
            f"with scope {result.credential_scope}"
        )
        return CalloutOutcome(ExecutionResult.SUCCESS, headers=result.headers)

    @staticmethod
    def _write_debug_vars(
        context: MessageContext,
        config: CalloutConfig,
        request: UnsignedRequest,
        result: SigningResult,
    ) -> None:
        """Expose signing inputs and intermediates, never the secret."""
        debug_vars = {
            "verb": request.method,
            "endpoint": config.endpoint,
            "resource": request.path,
            "region": config.region,
            "service": config.service,
            "key": config.key,
            "signed-headers": result.canonical_request.signed_headers,
            "canonical-request": result.canonical_request.to_string(),
            "string-to-sign": result.string_to_sign,
        }
        for name, value in debug_vars.items():
            context.set_variable(f"{CALLOUT_VAR_PREFIX}.{name}", value)
