# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""mitmproxy addon that SigV4-signs requests passing through the proxy.

Each request is wrapped in ``MitmproxyMessage`` and handed to
``SigV4Callout``.  Signed requests continue upstream with the four
authentication headers replaced; requests that cannot be signed are
answered by the proxy with an HTTP 500 JSON error.

When the properties carry no ``endpoint``, the request's own scheme, host
and port are used.  The wire path is percent-decoded before signing so
the signer applies the service's own encoding.  The body is signed as it
will be sent on the wire (``raw_content``, before any content-encoding is
undone).

Usage:
    mitmdump -s scripts/sigv4_addon.py
"""

import json
import logging
import urllib.parse
from pathlib import Path
from typing import Any

from mitmproxy import http

from sigv4callout.callout import (
    ExecutionResult,
    LoggingDiagnosticSink,
    SigV4Callout,
)
from sigv4callout.config import (
    ENDPOINT_PROP,
    MESSAGE_VAR_PROP,
    load_properties,
)
from sigv4callout.host import SimpleMessageContext
from sigv4callout.signing import Signer


logger = logging.getLogger(__name__)

_MESSAGE_VAR = "request"


class MitmproxyMessage:
    """``HostMessage`` view of a mitmproxy request."""

    def __init__(self, request: http.Request) -> None:
        self.request = request

    @property
    def content(self) -> bytes | None:
        return self.request.raw_content

    def get_variable(self, name: str) -> Any:
        if name == "verb":
            return self.request.method
        if name == "path":
            # The signer encodes the path itself
            return urllib.parse.unquote(self.request.path.partition("?")[0])
        return None

    def header_names(self) -> list[str]:
        return list(self.request.headers.keys())

    def headers(self, name: str) -> list[str]:
        return self.request.headers.get_all(name)

    def set_header(self, name: str, value: str) -> None:
        self.request.headers[name] = value

    def query_param_names(self) -> list[str]:
        return list(self.request.query.keys())

    def query_params(self, name: str) -> list[str]:
        return self.request.query.get_all(name)


def _request_endpoint(request: http.Request) -> str:
    """Scheme and authority of the upstream target."""
    host = request.host
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return f"{request.scheme}://{host}:{request.port}"


class SigV4Addon:
    """mitmproxy addon for SigV4 request signing.

    Args:
        properties: Callout properties; ``message-variable-ref`` is set by
            the addon.
        signer: Shared signer.
    """

    def __init__(
        self,
        properties: dict[str, Any],
        *,
        signer: Signer | None = None,
    ) -> None:
        self.properties = dict(properties)
        self.signer = signer or Signer()
        self.sink = LoggingDiagnosticSink(logger)

    @classmethod
    def from_config(cls, config_path: Path | None = None) -> "SigV4Addon":
        """Build the addon from a YAML properties file."""
        return cls(load_properties(config_path))

    def request(self, flow: http.HTTPFlow) -> None:
        """Sign the request before it is sent upstream."""
        properties = dict(self.properties)
        properties[MESSAGE_VAR_PROP] = _MESSAGE_VAR
        properties.setdefault(ENDPOINT_PROP, _request_endpoint(flow.request))

        context = SimpleMessageContext(
            {_MESSAGE_VAR: MitmproxyMessage(flow.request)}
        )
        callout = SigV4Callout(
            properties, signer=self.signer, sink_factory=lambda: self.sink
        )
        outcome = callout.run(context)

        if outcome.result is ExecutionResult.SUCCESS:
            flow.metadata["sigv4_signed"] = True
            return

        error = outcome.error
        flow.response = http.Response.make(
            500,
            json.dumps(
                {
                    "error": "sigv4_signing_failed",
                    "message": str(error) if error else "signing failed",
                }
            ),
            {"Content-Type": "application/json"},
        )
