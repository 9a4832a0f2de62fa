# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Host runtime surface consumed by the callout.

The gateway hands the callout a message context (a variable store) and,
through one of its variables, the message to sign.  Both are described
structurally so any runtime can plug in; ``SimpleMessage`` and
``SimpleMessageContext`` are in-memory implementations used by the CLI and
tests.
"""

from typing import Any, Protocol, runtime_checkable

from sigv4callout.model import MultiMapInput, to_pairs


class VariableSource(Protocol):
    """Anything that resolves named variables."""

    def get_variable(self, name: str) -> Any: ...


@runtime_checkable
class MessageContext(Protocol):
    """Per-request variable store of the host gateway."""

    def get_variable(self, name: str) -> Any: ...

    def set_variable(self, name: str, value: object) -> None: ...


@runtime_checkable
class HostMessage(Protocol):
    """An HTTP message owned by the host runtime.

    ``get_variable("verb")`` and ``get_variable("path")`` expose the
    request line.  ``set_header`` must replace every existing value of the
    header, matching names case-insensitively.
    """

    @property
    def content(self) -> str | bytes | None: ...

    def get_variable(self, name: str) -> Any: ...

    def header_names(self) -> list[str]: ...

    def headers(self, name: str) -> list[str]: ...

    def set_header(self, name: str, value: str) -> None: ...

    def query_param_names(self) -> list[str]: ...

    def query_params(self, name: str) -> list[str]: ...


class SimpleMessage:
    """In-memory ``HostMessage``.

    Header names are case-insensitive; query parameter names are not.

    Args:
        verb: HTTP verb.
        path: Resource path without query string.
        headers: Mapping or ``(name, value)`` pairs.
        query: Mapping or ``(name, value)`` pairs.
        content: Body text or bytes.
    """

    def __init__(
        self,
        *,
        verb: str | None = "GET",
        path: str | None = "/",
        headers: MultiMapInput = None,
        query: MultiMapInput = None,
        content: str | bytes | None = None,
    ) -> None:
        self._variables: dict[str, Any] = {"verb": verb, "path": path}
        self._headers = [(k, v or "") for k, v in to_pairs(headers)]
        self._query = [(k, v or "") for k, v in to_pairs(query)]
        self._content = content

    @property
    def content(self) -> str | bytes | None:
        return self._content

    def get_variable(self, name: str) -> Any:
        return self._variables.get(name)

    def set_variable(self, name: str, value: object) -> None:
        self._variables[name] = value

    def header_names(self) -> list[str]:
        """Distinct header names in order of first appearance."""
        seen: set[str] = set()
        names: list[str] = []
        for name, _ in self._headers:
            if name.lower() not in seen:
                seen.add(name.lower())
                names.append(name)
        return names

    def headers(self, name: str) -> list[str]:
        wanted = name.lower()
        return [v for k, v in self._headers if k.lower() == wanted]

    def set_header(self, name: str, value: str) -> None:
        self.remove_header(name)
        self._headers.append((name, value))

    def remove_header(self, name: str) -> None:
        wanted = name.lower()
        self._headers = [
            (k, v) for k, v in self._headers if k.lower() != wanted
        ]

    def header_items(self) -> list[tuple[str, str]]:
        """All headers as ``(name, value)`` pairs, in order."""
        return list(self._headers)

    def query_param_names(self) -> list[str]:
        return list(dict.fromkeys(k for k, _ in self._query))

    def query_params(self, name: str) -> list[str]:
        return [v for k, v in self._query if k == name]


class SimpleMessageContext:
    """Dict-backed ``MessageContext``."""

    def __init__(self, variables: dict[str, Any] | None = None) -> None:
        self.variables: dict[str, Any] = dict(variables or {})

    def get_variable(self, name: str) -> Any:
        return self.variables.get(name)

    def set_variable(self, name: str, value: object) -> None:
        self.variables[name] = value
