"""Wire-format helpers for the object RPC endpoint.

Pure data — no I/O, no business logic.  Server and client both import
these so that the request fields and the error shape are defined once.

A response body is one of:

* a JSON value (success),
* an empty body (success of a method with no value output),
* ``{"error": "<message>"}`` (any per-call failure).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

# ── Request fields ───────────────────────────────────────────────────
FUNC_FIELD = "func"
PARAM_FIELD = "param"

# Reserved function name: lists the registered functions.
FUNCS = "funcs"

ERROR_KEY = "error"


# ── Models ───────────────────────────────────────────────────────────
@dataclass(slots=True, frozen=True)
class ErrorPayload:
    """The uniform ``{"error": ...}`` failure shape."""

    message: str

    def to_dict(self) -> dict[str, Any]:
        return {ERROR_KEY: self.message}

    def encode(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode()

    @classmethod
    def parse(cls, payload: bytes | str) -> "ErrorPayload | None":
        """Return the error carried by *payload*, or ``None`` for a success body.

        Only an object whose single key is ``error`` with a string value
        counts as a failure.
        """
        if not payload:
            return None
        try:
            raw = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        if not isinstance(raw, dict) or raw.keys() != {ERROR_KEY}:
            return None
        message = raw[ERROR_KEY]
        if not isinstance(message, str):
            return None
        return cls(message)


@dataclass(slots=True)
class CallRequest:
    """One RPC call as carried by the ``func``/``param`` form fields.

    ``param`` is the JSON-encoded argument; an empty string means the
    call carries no argument.
    """

    func: str
    param: str = ""

    def to_form(self) -> dict[str, str]:
        form = {FUNC_FIELD: self.func}
        if self.param:
            form[PARAM_FIELD] = self.param
        return form

    @property
    def param_bytes(self) -> bytes:
        return self.param.encode()

    @classmethod
    def from_fields(cls, fields: Mapping[str, str]) -> "CallRequest":
        """Build a request from form fields — raises ``ValueError`` on bad input."""
        func = fields.get(FUNC_FIELD)
        if not isinstance(func, str) or not func:
            raise ValueError(f"missing or invalid '{FUNC_FIELD}' field")
        param = fields.get(PARAM_FIELD) or ""
        return cls(func=func, param=param)


# ── Helpers ──────────────────────────────────────────────────────────
def error_payload(fmt: str, *args: Any) -> bytes:
    """Encode an error payload whose message is ``fmt % args``."""
    message = fmt % args if args else fmt
    return ErrorPayload(message).encode()


def is_error(payload: bytes | str) -> bool:
    return ErrorPayload.parse(payload) is not None
