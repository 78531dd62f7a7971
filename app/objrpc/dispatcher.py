"""Per-request dispatch: decode → invoke → encode.

``call`` never raises.  Every failure (unknown function, bad argument,
an error returned or raised by the method, an unencodable result) comes
back as the ``{"error": ...}`` payload so the transport can always write
the bytes it gets.
"""

from __future__ import annotations

import logging
from typing import Any

import msgspec
import msgspec.inspect as mi
from objrpc_wire import error_payload

from objrpc.registry import InputShape, MethodHandle, OutputKind, Registry, record_of

log = logging.getLogger(__name__)

_ZERO_VALUES = (
    ((mi.BoolType,), False),
    ((mi.IntType,), 0),
    ((mi.FloatType,), 0.0),
    ((mi.StrType,), ""),
    ((mi.ListType, mi.SetType, mi.FrozenSetType, mi.VarTupleType), []),
    ((mi.DictType,), {}),
)

_JSON_KINDS = {dict: "object", list: "array", str: "str", int: "int", float: "float", bool: "bool"}


def call(registry: Registry, func_name: str, param: bytes | str = b"") -> bytes:
    """Run *func_name* with the JSON-encoded *param* and return the response body."""
    if isinstance(param, str):
        param = param.encode()

    handle = registry.get(func_name)
    if handle is None:
        return error_payload("No such function '%s'.", func_name)

    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = {}
    if handle.has_input:
        try:
            arg = _decode(handle, param)
        except Exception as exc:
            # includes errors raised by a record's __post_init__
            return error_payload("Error decoding JSON: %s", exc)
        if handle.keyword is not None:
            kwargs[handle.keyword] = arg
        else:
            args = (arg,)
    elif param:
        return error_payload("Function '%s' does not accept parameters.", func_name)

    log.debug("invoking %s", func_name)
    try:
        out = handle.invoke(*args, **kwargs)
    except Exception as exc:
        log.exception("method %s raised", func_name)
        return error_payload("%s", str(exc) or type(exc).__name__)

    if handle.output is OutputKind.VALUE_AND_ERROR:
        if not isinstance(out, tuple) or len(out) != 2:
            return error_payload(
                "Function '%s' should return a (value, error) pair, got %s.",
                func_name,
                type(out).__name__,
            )
        value, err = out
    elif handle.output is OutputKind.ERROR:
        value, err = None, out
    else:
        value, err = out, None

    if err is not None:
        return error_payload("%s", str(err) or type(err).__name__)
    if not handle.output.has_value:
        return b""

    try:
        return msgspec.json.encode(value)
    except (msgspec.EncodeError, TypeError, ValueError, OverflowError) as exc:
        return error_payload("Error encoding result: %s", exc)


# ── Decoding ─────────────────────────────────────────────────────────


def _decode(handle: MethodHandle, param: bytes) -> Any:
    if handle.input_shape is InputShape.VALUE:
        return msgspec.json.decode(param, type=handle.input_type)

    # INSTANCE: start from a zero-valued record and overlay the JSON fields.
    raw = msgspec.json.decode(param)
    if raw is None and handle.nullable:
        return None
    if not isinstance(raw, dict):
        kind = _JSON_KINDS.get(type(raw), "null")
        raise msgspec.ValidationError(f"Expected `object`, got `{kind}`")
    return msgspec.convert(_fill(handle.record, raw), type=handle.record.cls)


def _fill(info: mi.DataclassType | mi.StructType, raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay *raw* on the record's zero values, descending into record fields."""
    fields = _zero_fields(info)
    by_name = {f.encode_name: f for f in info.fields}
    for key, value in raw.items():
        field = by_name.get(key)
        record = record_of(field.type)[0] if field is not None else None
        if isinstance(value, dict) and record is not None:
            fields[key] = _fill(record, value)
        else:
            fields[key] = value
    return fields


def _zero_fields(info: mi.DataclassType | mi.StructType) -> dict[str, Any]:
    """Zero values for the required fields of a record, keyed by wire name."""
    return {f.encode_name: _zero(f.type) for f in info.fields if f.required}


def _zero(info: mi.Type) -> Any:
    record, nullable = record_of(info)
    if nullable:
        return None
    if record is not None:
        return _zero_fields(record)
    if isinstance(info, mi.UnionType):
        if any(isinstance(t, mi.NoneType) for t in info.types):
            return None
        return _zero(info.types[0])
    for kinds, value in _ZERO_VALUES:
        if isinstance(info, kinds):
            # fresh container per call
            return type(value)() if isinstance(value, (list, dict)) else value
    return None
