"""
Argument decoding for tool calls.

The model sends each tool call's arguments as a JSON-encoded string.
``decode_arguments`` parses that payload, checks it against the tool's
``ToolSpec`` and coerces declared parameters to their declared types.

Decoding is strict on omissions and type mismatches, and permissive on
additions: undeclared fields are passed through to the handler unchanged.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Mapping

from toolrelay.conversation.providers import ParameterSpec, ToolSpec

logger = logging.getLogger(__name__)


class ArgumentError(ValueError):
    """Raised when a tool call's arguments do not satisfy its spec.

    Attributes:
        field: Name of the first missing or mistyped parameter, or ``None``
            when the payload as a whole is unusable.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


def _parse_payload(raw: Any) -> dict[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        raise ArgumentError(
            f"arguments must be a JSON object, got {type(raw).__name__}"
        )
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # ValueError also covers integers past the interpreter digit limit.
        reason = getattr(exc, "msg", None) or str(exc)
        raise ArgumentError(f"arguments are not valid JSON ({reason})") from exc
    if not isinstance(payload, dict):
        raise ArgumentError(
            f"arguments must be a JSON object, got {type(payload).__name__}"
        )
    return payload


def _coerce_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ArgumentError(f"'{name}' must be a number, got boolean", field=name)
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            raise ArgumentError(
                f"'{name}' is too large to be a number", field=name
            ) from None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ArgumentError(
                f"'{name}' must be a number, got {value!r}", field=name
            ) from None
    else:
        raise ArgumentError(
            f"'{name}' must be a number, got {type(value).__name__}", field=name
        )
    if not math.isfinite(number):
        raise ArgumentError(f"'{name}' must be a finite number", field=name)
    return number


def _coerce_integer(name: str, value: Any) -> int:
    number = _coerce_number(name, value)
    if not number.is_integer():
        raise ArgumentError(f"'{name}' must be an integer, got {value!r}", field=name)
    return int(number)


def _coerce_string(name: str, value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ArgumentError(
        f"'{name}' must be a string, got {type(value).__name__}", field=name
    )


def _coerce_boolean(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ArgumentError(f"'{name}' must be a boolean, got {value!r}", field=name)


_COERCERS = {
    "number": _coerce_number,
    "integer": _coerce_integer,
    "string": _coerce_string,
    "boolean": _coerce_boolean,
}


def _coerce(name: str, param: ParameterSpec, value: Any) -> Any:
    if value is None:
        raise ArgumentError(f"'{name}' must be a {param.type}, got null", field=name)
    coercer = _COERCERS.get(param.type)
    if coercer is None:
        # Undeclared JSON types (object, array) are passed through as-is.
        coerced = value
    else:
        coerced = coercer(name, value)
    if param.enum is not None and coerced not in param.enum:
        allowed = ", ".join(repr(v) for v in param.enum)
        raise ArgumentError(
            f"'{name}' must be one of {allowed}, got {coerced!r}", field=name
        )
    return coerced


def decode_arguments(spec: ToolSpec, raw: Any) -> dict[str, Any]:
    """Validate and convert a raw argument payload for *spec*'s handler.

    Args:
        spec: The tool's declared schema.
        raw: The raw payload from the model: a JSON string, an already
            decoded mapping, or ``None``.

    Returns:
        A new dict mapping parameter names to typed values.  Undeclared
        fields are included unchanged.

    Raises:
        ArgumentError: Naming the first missing or mistyped parameter (in
            declaration order), or describing why the payload is unusable.
    """
    payload = _parse_payload(raw)

    decoded: dict[str, Any] = {}
    for name, param in spec.parameters.items():
        if name not in payload:
            if name in spec.required:
                raise ArgumentError(f"missing required parameter '{name}'", field=name)
            continue
        if payload[name] is None and name not in spec.required:
            continue
        decoded[name] = _coerce(name, param, payload[name])

    for name, value in payload.items():
        if name not in spec.parameters:
            logger.debug("Passing through undeclared argument %r for tool %r", name, spec.name)
            decoded[name] = value
    return decoded
