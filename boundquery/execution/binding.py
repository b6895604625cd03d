from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Sequence

from boundquery.execution.errors import BindError

# ==================================================
# Parameter Specification
# ==================================================

TYPE_INTEGER = "i"
TYPE_STRING = "s"
TYPE_DOUBLE = "d"
TYPE_BLOB = "b"
TYPE_TAGS = frozenset({TYPE_INTEGER, TYPE_STRING, TYPE_DOUBLE, TYPE_BLOB})


@dataclass(frozen=True)
class ParamSpec:
    """
    A type-tag string (one of ``i s d b`` per value) and the positional values.
    """

    types: str = ""
    values: tuple[Any, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, types: str, *values: Any) -> "ParamSpec":
        return cls(types=types, values=tuple(values))

    @classmethod
    def coerce(cls, params: "ParamSpec | Sequence[Any] | None") -> "ParamSpec":
        """
        Accepts a ParamSpec, None, or a flat sequence whose first item is the tag string.
        """
        if params is None:
            return cls()
        if isinstance(params, ParamSpec):
            return params
        if isinstance(params, (str, bytes)):
            raise BindError.from_message(
                operation="bind",
                message="Parameters must be a ParamSpec or a sequence like ('is', 5, 'Alice').",
            )
        items = list(params)
        if not items:
            return cls()
        types = items[0]
        if not isinstance(types, str):
            raise BindError.from_message(
                operation="bind",
                message=f"The first parameter item must be the type-tag string, got {type(types).__name__}.",
            )
        return cls(types=types, values=tuple(items[1:]))

    def __len__(self) -> int:
        return len(self.values)


# ==================================================
# Binder
# ==================================================


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        if value != value or not float(value).is_integer():
            raise ValueError(f"{value!r} is not an integral number")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"cannot bind {type(value).__name__} as an integer")


def _to_float(value: Any) -> float:
    if isinstance(value, (bool, int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f"cannot bind {type(value).__name__} as a double")


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    if isinstance(value, (bool, int, float, Decimal)):
        return str(value)
    raise TypeError(f"cannot bind {type(value).__name__} as a string")


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"cannot bind {type(value).__name__} as a blob")


_CONVERTERS: dict[str, Callable[[Any], Any]] = {
    TYPE_INTEGER: _to_int,
    TYPE_STRING: _to_str,
    TYPE_DOUBLE: _to_float,
    TYPE_BLOB: _to_bytes,
}


class ParameterBinder:
    """
    Turns a ParamSpec into the positional values handed to a prepared statement.
    """

    def validate(self, spec: ParamSpec) -> None:
        if len(spec.types) != len(spec.values):
            raise BindError.from_message(
                operation="bind",
                message=(
                    f"Type tag {spec.types!r} declares {len(spec.types)} parameter(s) "
                    f"but {len(spec.values)} value(s) were supplied."
                ),
            )
        for position, tag in enumerate(spec.types, start=1):
            if tag not in TYPE_TAGS:
                raise BindError.from_message(
                    operation="bind",
                    message=f"Unsupported type tag {tag!r} at position {position}; expected one of i, s, d, b.",
                )

    def bind(self, spec: ParamSpec) -> tuple[Any, ...]:
        self.validate(spec)
        bound: list[Any] = []
        for position, (tag, value) in enumerate(zip(spec.types, spec.values), start=1):
            if value is None:
                bound.append(None)
                continue
            try:
                bound.append(_CONVERTERS[tag](value))
            except (TypeError, ValueError, ArithmeticError, UnicodeDecodeError) as exc:
                raise BindError.from_message(
                    operation="bind",
                    message=f"Parameter {position} does not match type tag {tag!r}: {exc}",
                ) from exc
        return tuple(bound)
