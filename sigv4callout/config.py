# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Callout properties and their resolution.

A callout is configured with a flat mapping of properties::

    endpoint: https://execute-api.us-east-1.amazonaws.com
    region: us-east-1
    service: execute-api
    key: !env AWS_ACCESS_KEY_ID
    secret: !env AWS_SECRET_ACCESS_KEY
    message-variable-ref: request
    debug: false

Property values may embed ``{variable}`` references which are resolved
against the gateway's message context at execution time, so one policy
can pick credentials or regions per request.

When properties come from a YAML file, ``!env VAR_NAME`` tags resolve
values from environment variables.  The default file location follows the
XDG Base Directory Specification:

    ``$XDG_CONFIG_HOME/sigv4callout/callout.yaml``
    (typically ``~/.config/sigv4callout/callout.yaml``)
"""

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_path

from sigv4callout.dotenv_loader import load_dotenv_once
from sigv4callout.errors import ConfigurationError
from sigv4callout.host import VariableSource
from sigv4callout.model import Credentials, SigningContext


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "sigv4callout"

#: Prefix of every variable the callout writes into the message context.
CALLOUT_VAR_PREFIX = "aws-signature-v4"

ENDPOINT_PROP = "endpoint"
REGION_PROP = "region"
SERVICE_PROP = "service"
KEY_PROP = "key"
SECRET_PROP = "secret"
MESSAGE_VAR_PROP = "message-variable-ref"
DEBUG_PROP = "debug"
SIGNED_HEADERS_PROP = "signed-headers"
DOUBLE_ENCODE_PATH_PROP = "double-encode-path"

REQUIRED_PROPS = (
    ENDPOINT_PROP,
    REGION_PROP,
    SERVICE_PROP,
    KEY_PROP,
    SECRET_PROP,
    MESSAGE_VAR_PROP,
)

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off"})

# {variable.name} references inside property values
_VAR_REF_RE = re.compile(r"\{([^{}\s]+)\}")


def get_config_path() -> Path:
    """Return the default properties file path.

    Returns:
        Path to ``$XDG_CONFIG_HOME/sigv4callout/callout.yaml``.
    """
    return user_config_path(_APP_NAME) / "callout.yaml"


def get_dotenv_path() -> Path:
    """Return the default ``.env`` file path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name

    def __repr__(self) -> str:
        return f"_EnvVar({self.var_name!r})"


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


def load_properties(config_path: Path | None = None) -> dict[str, Any]:
    """Load callout properties from a YAML file.

    ``!env`` tags are kept as placeholders and resolved when the callout
    reads them.  ``.env`` files are loaded first if present.

    Args:
        config_path: Path to the YAML file.  Defaults to
            ``~/.config/sigv4callout/callout.yaml`` (XDG).

    Returns:
        Mapping of property name to raw value.

    Raises:
        ConfigurationError: If the file is missing or not a mapping.
    """
    load_dotenv_once()

    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            raw = yaml.load(f, Loader=_make_loader())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Config file must be a YAML mapping: {config_path}"
        )

    logger.debug("Loaded %d callout properties from %s", len(raw), config_path)
    return {str(k): v for k, v in raw.items()}


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _coerce_bool(value: object, name: str) -> bool:
    """Coerce a value to bool, handling string representations."""
    if isinstance(value, bool):
        return value
    s = str(value).lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ConfigurationError(f"Property '{name}' is not a boolean: {value!r}")


class VarResolver:
    """Resolves property values against a message context.

    Each ``{name}`` reference in a property value is replaced with the
    string form of the context variable ``name``.  ``!env`` placeholders
    resolve from the process environment.

    Args:
        context: Variable source, usually the gateway message context.
        properties: Raw callout properties.
    """

    def __init__(
        self, context: VariableSource, properties: Mapping[str, object]
    ) -> None:
        self.context = context
        self.properties = properties

    def resolve_text(self, text: str, name: str) -> str:
        """Substitute ``{variable}`` references in ``text``.

        Raises:
            ConfigurationError: If a referenced variable is not set.
        """

        def _substitute(match: re.Match[str]) -> str:
            var = match.group(1)
            value = self.context.get_variable(var)
            if value is None:
                raise ConfigurationError(
                    f"Property '{name}' references unset variable '{var}'"
                )
            return str(value)

        return _VAR_REF_RE.sub(_substitute, text)

    def get_prop(self, name: str, *, required: bool = True) -> str | None:
        """Return a resolved property as a string.

        Blank values count as missing.  Values read through ``!env`` are
        taken verbatim; only literal values are searched for
        ``{variable}`` references.

        Raises:
            ConfigurationError: If a required property is missing or
                resolves to an empty string.
        """
        value = self.properties.get(name)
        if isinstance(value, _EnvVar):
            env_value = os.environ.get(value.var_name)
            if env_value is None and required:
                raise ConfigurationError(
                    f"Required property '{name}': environment variable "
                    f"'{value.var_name}' is not set"
                )
            resolved = (env_value or "").strip()
        elif value is None:
            if required:
                raise ConfigurationError(
                    f"Required property '{name}' is missing"
                )
            return None
        else:
            resolved = self.resolve_text(str(value), name).strip()

        if not resolved:
            if required:
                raise ConfigurationError(
                    f"Required property '{name}' is empty"
                )
            return None
        return resolved

    def get_optional_bool(self, name: str) -> bool | None:
        """Return a resolved boolean property, or None when unset."""
        raw = self.properties.get(name)
        if isinstance(raw, bool):
            return raw
        value = self.get_prop(name, required=False)
        if value is None:
            return None
        return _coerce_bool(value, name)

    def get_bool(self, name: str, *, default: bool = False) -> bool:
        """Return a resolved boolean property."""
        value = self.get_optional_bool(name)
        return default if value is None else value

    def get_list(self, name: str) -> list[str]:
        """Return a resolved list property.

        Accepts a YAML list, whose items may be literals with
        ``{variable}`` references or ``!env`` placeholders, or a single
        comma-separated string.  Blank entries are dropped.

        Raises:
            ConfigurationError: If the value is neither a list nor a string,
                or a list item is not a string.
        """
        raw = self.properties.get(name)
        if not isinstance(raw, list):
            if raw is not None and not isinstance(raw, (str, _EnvVar)):
                raise ConfigurationError(
                    f"Property '{name}' must be a list or a string, "
                    f"got {type(raw).__name__}"
                )
            value = self.get_prop(name, required=False)
            return value.split(",") if value else []

        items: list[str] = []
        for item in raw:
            if isinstance(item, _EnvVar):
                items.append(os.environ.get(item.var_name, ""))
            elif isinstance(item, str):
                items.append(self.resolve_text(item, name))
            else:
                raise ConfigurationError(
                    f"Property '{name}' items must be strings, "
                    f"got {type(item).__name__}"
                )
        return items


# ---------------------------------------------------------------------------
# Callout configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalloutConfig:
    """Resolved callout properties.

    Attributes:
        endpoint: Absolute URL; contributes scheme and authority.
        region: AWS region.
        service: AWS signing service name.
        key: Access key id.
        secret: Secret access key.  Excluded from ``repr()``.
        message_variable_ref: Context variable holding the message.
        debug: Write debug variables into the message context.
        signed_headers: Extra header names to sign.
        double_encode_path: Canonical URI policy override; ``None`` uses
            the service default.
    """

    endpoint: str
    region: str
    service: str
    key: str
    secret: str
    message_variable_ref: str
    debug: bool = False
    signed_headers: frozenset[str] = frozenset()
    double_encode_path: bool | None = None

    def __repr__(self) -> str:
        return (
            f"CalloutConfig(endpoint={self.endpoint!r}, "
            f"region={self.region!r}, service={self.service!r}, "
            f"key={self.key!r}, "
            f"message_variable_ref={self.message_variable_ref!r}, "
            f"debug={self.debug!r})"
        )

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, object], context: VariableSource
    ) -> "CalloutConfig":
        """Resolve properties against a message context.

        Args:
            properties: Raw callout properties.
            context: Gateway message context for ``{variable}`` lookups.

        Returns:
            CalloutConfig instance.

        Raises:
            ConfigurationError: If a required property is missing or a
                value cannot be resolved or coerced.
        """
        resolver = VarResolver(context, properties)
        required = {name: resolver.get_prop(name) for name in REQUIRED_PROPS}

        signed_headers = resolver.get_list(SIGNED_HEADERS_PROP)
        double_encode = resolver.get_optional_bool(DOUBLE_ENCODE_PATH_PROP)

        return cls(
            endpoint=str(required[ENDPOINT_PROP]),
            region=str(required[REGION_PROP]),
            service=str(required[SERVICE_PROP]),
            key=str(required[KEY_PROP]),
            secret=str(required[SECRET_PROP]),
            message_variable_ref=str(required[MESSAGE_VAR_PROP]),
            debug=resolver.get_bool(DEBUG_PROP, default=False),
            signed_headers=_parse_header_list(signed_headers),
            double_encode_path=double_encode,
        )

    def credentials(self) -> Credentials:
        return Credentials(
            access_key_id=self.key, secret_access_key=self.secret
        )

    def signing_context(self) -> SigningContext:
        return SigningContext(
            region=self.region,
            service=self.service,
            additional_signed_headers=self.signed_headers,
            double_encode_path=self.double_encode_path,
        )


def _parse_header_list(names: list[str]) -> frozenset[str]:
    """Normalize header names to lowercase, dropping blanks."""
    return frozenset(name.strip().lower() for name in names if name.strip())
