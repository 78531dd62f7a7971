"""Method registry.

``build(receiver)`` walks the public methods of *receiver*, checks each one
against the calling convention and returns an immutable name → handle
mapping.  The convention:

* at most one parameter (any type msgspec can decode),
* at most two outputs, read from the return annotation: a value, an
  error (an exception class, usually ``SomeError | None``), or
  ``tuple[value, error]`` in that order.

Methods whose name starts with an underscore are ignored and carry no
restriction.
"""

from __future__ import annotations

import enum
import inspect
import logging
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping

import msgspec.inspect as mi

log = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when a public method does not follow the calling convention."""

    def __init__(self, method: str, reason: str) -> None:
        self.method = method
        self.reason = reason
        super().__init__(f"Function '{method}': {reason}")


class InputShape(enum.Enum):
    VALUE = "value"  # decode into a temporary and pass it
    INSTANCE = "instance"  # fill a fresh zero-valued record


class OutputKind(enum.Enum):
    NONE = "none"
    VALUE = "value"
    ERROR = "error"
    VALUE_AND_ERROR = "value_and_error"

    @property
    def has_value(self) -> bool:
        return self in (OutputKind.VALUE, OutputKind.VALUE_AND_ERROR)

    @property
    def has_error(self) -> bool:
        return self in (OutputKind.ERROR, OutputKind.VALUE_AND_ERROR)


@dataclass(slots=True, frozen=True)
class MethodHandle:
    """A validated receiver method, ready to be dispatched."""

    name: str
    invoke: Callable[..., Any]
    output: OutputKind
    has_input: bool = False
    input_type: Any = Any
    input_shape: InputShape | None = None
    # msgspec type info of the record for INSTANCE inputs
    record: mi.Type | None = None
    nullable: bool = False
    keyword: str | None = None


class Registry(Mapping[str, MethodHandle]):
    """Read-only mapping from method name to :class:`MethodHandle`.

    Usage::

        registry = build(MyAPI())
        payload = call(registry, "half", b"10")
    """

    def __init__(self, handles: Mapping[str, MethodHandle]) -> None:
        self._handles = types.MappingProxyType(dict(handles))
        self._names = tuple(sorted(self._handles))

    def __getitem__(self, name: str) -> MethodHandle:
        return self._handles[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._handles)

    def __repr__(self) -> str:
        return f"Registry({list(self._names)!r})"

    @property
    def names(self) -> list[str]:
        return list(self._names)


# ── Building ─────────────────────────────────────────────────────────


def build(receiver: Any) -> Registry:
    """Return the registry of *receiver*'s public methods.

    Raises ``RegistryError`` on the first method that breaks the calling
    convention; no partial registry is ever returned.
    """
    cls = type(receiver)
    handles: dict[str, MethodHandle] = {}

    for name in sorted(dir(cls)):
        if name.startswith("_"):
            continue
        attr = inspect.getattr_static(cls, name)
        if not isinstance(attr, (types.FunctionType, staticmethod, classmethod)):
            continue
        handles[name] = _make_handle(name, getattr(receiver, name))
        log.debug("registered method %r → %s", name, handles[name].output.value)

    log.debug("registry for %s: %d methods", cls.__qualname__, len(handles))
    return Registry(handles)


def _make_handle(name: str, method: Callable[..., Any]) -> MethodHandle:
    if inspect.iscoroutinefunction(method):
        raise RegistryError(name, "Coroutine functions are not supported.")
    try:
        sig = inspect.signature(method, eval_str=True)
    except (NameError, TypeError, ValueError) as exc:
        raise RegistryError(name, f"Cannot read signature: {exc}") from exc

    params = list(sig.parameters.values())
    if len(params) > 1:
        excess = ", ".join(_type_name(p.annotation) for p in params[1:])
        raise RegistryError(
            name, f"Must have 0 or 1 inputs. It has {len(params)}. Excess: {excess}"
        )

    output = _classify_output(name, sig.return_annotation)
    if not params:
        return MethodHandle(name=name, invoke=method, output=output)

    param = params[0]
    if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
        raise RegistryError(name, f"Variadic parameter '{param}' is not supported.")

    input_type = Any if param.annotation is param.empty else param.annotation
    shape, record, nullable = _classify_input(name, input_type)
    return MethodHandle(
        name=name,
        invoke=method,
        output=output,
        has_input=True,
        input_type=input_type,
        input_shape=shape,
        record=record,
        nullable=nullable,
        keyword=param.name if param.kind is param.KEYWORD_ONLY else None,
    )


def _classify_input(name: str, tp: Any) -> tuple[InputShape, mi.Type | None, bool]:
    try:
        info = mi.type_info(tp)
    except (TypeError, ValueError) as exc:
        raise RegistryError(name, f"Unsupported input type {_type_name(tp)}: {exc}") from exc

    if isinstance(info, mi.CustomType):
        raise RegistryError(name, f"Unsupported input type {_type_name(tp)}.")

    record, nullable = record_of(info)
    if record is not None:
        return InputShape.INSTANCE, record, nullable
    return InputShape.VALUE, None, False


def record_of(info: mi.Type) -> tuple[mi.Type | None, bool]:
    """Return ``(record, nullable)`` if *info* is a record or ``record | None``.

    Array-like structs travel as JSON arrays and are plain values.
    """
    if _is_record(info):
        return info, False
    if isinstance(info, mi.UnionType):
        members = [t for t in info.types if not isinstance(t, mi.NoneType)]
        if len(members) == 1 and len(info.types) == 2 and _is_record(members[0]):
            return members[0], True
    return None, False


def _is_record(info: mi.Type) -> bool:
    if isinstance(info, mi.StructType):
        return not info.array_like
    return isinstance(info, mi.DataclassType)


def _classify_output(name: str, tp: Any) -> OutputKind:
    if tp is inspect.Signature.empty:
        return OutputKind.VALUE
    if tp is None or tp is type(None):
        return OutputKind.NONE
    if _is_error_type(tp):
        return OutputKind.ERROR

    if typing.get_origin(tp) is tuple:
        outs = typing.get_args(tp)
        if Ellipsis in outs:
            # tuple[T, ...] is a plain JSON array
            return OutputKind.VALUE
        if len(outs) > 2:
            raise RegistryError(name, f"More than 2 outputs: {len(outs)}")
        if len(outs) == 2:
            if not _is_error_type(outs[1]):
                raise RegistryError(
                    name,
                    f"Second output should be an error, but found {_type_name(outs[1])}.",
                )
            return OutputKind.VALUE_AND_ERROR
        if len(outs) == 1:
            return _classify_output(name, outs[0])
        return OutputKind.NONE

    return OutputKind.VALUE


def _is_error_type(tp: Any) -> bool:
    """True for an exception class, or a union of them (``None`` allowed)."""
    origin = typing.get_origin(tp)
    if origin in (typing.Union, types.UnionType):
        members = [t for t in typing.get_args(tp) if t is not type(None)]
        return bool(members) and all(_is_error_type(t) for t in members)
    if origin is None and isinstance(tp, type):
        return issubclass(tp, BaseException)
    return False


def _type_name(tp: Any) -> str:
    if tp is inspect.Parameter.empty:
        return "Any"
    if isinstance(tp, type) and typing.get_origin(tp) is None:
        return tp.__qualname__
    return repr(tp)


__all__ = [
    "InputShape",
    "MethodHandle",
    "OutputKind",
    "Registry",
    "RegistryError",
    "build",
    "record_of",
]
