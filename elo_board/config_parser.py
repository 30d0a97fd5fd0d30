"""Parsing of typed values found in configuration files and the environment."""
from __future__ import annotations
from typing import Any, Callable

from .errors import ConfigError

# Parsers for supported type tags.
_TYPE_PARSERS: dict[str, Callable[[str], Any]] = {
    "string": lambda v: v,
    "integer": int,
}


def parse_typed_value(value: Any) -> Any:
    """Parse values of the form ``"<type>=<value>"``.

    Values that are not strings, or whose prefix is not a known type tag,
    are returned unchanged so that plain strings containing ``=`` survive.
    """
    if not isinstance(value, str) or "=" not in value:
        return value
    type_tag, _, data = value.partition("=")
    parser = _TYPE_PARSERS.get(type_tag)
    if parser is None:
        return value
    try:
        return parser(data)
    except ValueError as exc:
        raise ConfigError(f"cannot parse {value!r} as {type_tag}") from exc


def parse_port(value: Any) -> int:
    """Coerce a port given as int, ``"3000"`` or ``"integer=3000"``."""
    value = parse_typed_value(value)
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid port: {value!r}") from exc
    if not 0 <= port <= 65535:
        raise ConfigError(f"port out of range: {port}")
    return port
