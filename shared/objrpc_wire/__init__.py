"""objrpc_wire — request fields and response shapes shared by server and client."""

from objrpc_wire.payload import (
    ERROR_KEY,
    FUNC_FIELD,
    FUNCS,
    PARAM_FIELD,
    CallRequest,
    ErrorPayload,
    error_payload,
    is_error,
)

__all__ = [
    "CallRequest",
    "ErrorPayload",
    "error_payload",
    "is_error",
    "ERROR_KEY",
    "FUNC_FIELD",
    "FUNCS",
    "PARAM_FIELD",
]
