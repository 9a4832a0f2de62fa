# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""sigv4callout CLI: multi-command entry point.

Subcommands:

* ``init``: create a stub properties file
* ``sign``: sign a request described on the command line and print the
  authentication headers
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from sigv4callout.callout import ExecutionResult, SigV4Callout
from sigv4callout.config import (
    CALLOUT_VAR_PREFIX,
    DEBUG_PROP,
    ENDPOINT_PROP,
    MESSAGE_VAR_PROP,
    REGION_PROP,
    SERVICE_PROP,
    get_config_path,
    load_properties,
)
from sigv4callout.errors import ConfigurationError
from sigv4callout.host import SimpleMessage, SimpleMessageContext
from sigv4callout.logging import configure_logging


_SUBCOMMANDS = frozenset({"init", "sign"})

_USAGE = """\
usage: sigv4callout <command> [args]

commands:
  init   Create a stub properties file
  sign   Sign a request and print its authentication headers

Run 'sigv4callout <command> --help' for command-specific help.\
"""

_DEFAULT_MESSAGE_VAR = "request"


# ── init subcommand ─────────────────────────────────────────────────


def cmd_init(argv: list[str]) -> int:
    """Create a stub properties file.

    Creates ``~/.config/sigv4callout/callout.yaml`` with a commented
    template if the file does not already exist.

    Args:
        argv: Extra arguments (currently unused).

    Returns:
        Exit code (always 0).
    """
    config_path = get_config_path()

    if config_path.exists():
        print(f"Config already exists: {config_path}")
        return 0

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STUB_CONFIG)
    print(f"Created stub config: {config_path}")
    return 0


# ── sign subcommand ─────────────────────────────────────────────────


def _parse_header(value: str) -> tuple[str, str]:
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(
            f"expected NAME:VALUE, got {value!r}"
        )
    return name.strip(), header_value.strip()


def _parse_query(value: str) -> tuple[str, str]:
    name, _, param_value = value.partition("=")
    if not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {value!r}")
    return name, param_value


def _build_sign_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sigv4callout sign",
        description="Sign a request with AWS SigV4 and print the headers.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Properties file (default: ~/.config/sigv4callout/callout.yaml)",
    )
    parser.add_argument("--endpoint", help="Override the endpoint property")
    parser.add_argument("--region", help="Override the region property")
    parser.add_argument("--service", help="Override the service property")
    parser.add_argument("-X", "--method", default="GET", help="HTTP verb")
    parser.add_argument("--path", default="/", help="Resource path")
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        type=_parse_header,
        default=[],
        metavar="NAME:VALUE",
        help="Request header (repeatable)",
    )
    parser.add_argument(
        "-q",
        "--query",
        action="append",
        type=_parse_query,
        default=[],
        metavar="NAME=VALUE",
        help="Query parameter (repeatable)",
    )
    body = parser.add_mutually_exclusive_group()
    body.add_argument("-d", "--data", help="Request body text")
    body.add_argument(
        "--data-file", type=Path, help="Read the request body from a file"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print headers as JSON"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print the canonical request and string to sign to stderr",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def cmd_sign(argv: list[str]) -> int:
    """Sign a request and print the four authentication headers.

    Args:
        argv: Command-line arguments after ``sign``.

    Returns:
        Exit code: 0 when signed, 1 when signing aborted, 2 on a
        configuration error.
    """
    args = _build_sign_parser().parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        properties = load_properties(args.config)
    except ConfigurationError as e:
        print(f"sigv4callout: {e}", file=sys.stderr)
        return 2

    overrides = {
        ENDPOINT_PROP: args.endpoint,
        REGION_PROP: args.region,
        SERVICE_PROP: args.service,
    }
    properties.update({k: v for k, v in overrides.items() if v})
    if args.debug:
        properties[DEBUG_PROP] = True
    message_var = str(properties.get(MESSAGE_VAR_PROP) or _DEFAULT_MESSAGE_VAR)
    properties[MESSAGE_VAR_PROP] = message_var

    content: str | bytes | None = args.data
    if args.data_file is not None:
        content = args.data_file.read_bytes()

    message = SimpleMessage(
        verb=args.method,
        path=args.path,
        headers=args.header,
        query=args.query,
        content=content,
    )
    context = SimpleMessageContext({message_var: message})
    outcome = SigV4Callout(properties).run(context)

    if outcome.result is not ExecutionResult.SUCCESS:
        error = outcome.error
        print(f"sigv4callout: signing failed: {error}", file=sys.stderr)
        return 2 if isinstance(error, ConfigurationError) else 1

    if args.debug:
        for name in ("canonical-request", "string-to-sign"):
            value = context.get_variable(f"{CALLOUT_VAR_PREFIX}.{name}")
            print(f"--- {name}\n{value}", file=sys.stderr)

    headers = outcome.headers
    assert headers is not None
    if args.json:
        print(json.dumps(headers.as_dict(), indent=2))
    else:
        for name, value in headers.items():
            print(f"{name}: {value}")
    return 0


# ── CLI plumbing ────────────────────────────────────────────────────


_DISPATCH: dict[str, str] = {
    "init": "cmd_init",
    "sign": "cmd_sign",
}


def cli() -> None:
    """Entry point for ``sigv4callout``.

    When no arguments are given, prints usage information.
    """
    argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        print(_USAGE)
        sys.exit(0)

    if argv[0] not in _SUBCOMMANDS:
        print(f"sigv4callout: unknown command '{argv[0]}'", file=sys.stderr)
        print(_USAGE, file=sys.stderr)
        sys.exit(2)

    command = argv[0]
    rest = argv[1:]

    # Look up handler by name so tests can mock individual commands.
    import sigv4callout.cli as _self

    handler = getattr(_self, _DISPATCH[command])
    sys.exit(handler(rest))


#: Stub configuration template written by ``sigv4callout init``.
_STUB_CONFIG = """\
# sigv4callout properties
#
# Values tagged !env are read from the environment (or a .env file next
# to this one).  {variable} references resolve against the message
# context at signing time.

endpoint: https://example.execute-api.us-east-1.amazonaws.com
region: us-east-1
service: execute-api
key: !env AWS_ACCESS_KEY_ID
secret: !env AWS_SECRET_ACCESS_KEY
message-variable-ref: request
debug: false

# Extra headers to sign besides host, content-type and x-amz-*:
# signed-headers: x-api-key,accept

# Force the canonical URI encoding (default: single for s3, double
# otherwise):
# double-encode-path: true
"""
