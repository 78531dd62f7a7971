"""Example receiver — one method per calling shape.

Served by default when running ``python -m objrpc.server``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Pair:
    a: float
    b: float


class Calculator:
    """Arithmetic over RPC, with a running total shared by all callers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0.0

    # ── Value outputs ────────────────────────────────────────────────

    def echo(self, value):
        """Return *value* unchanged."""
        return value

    def half(self, i: int) -> int:
        return i // 2

    def add(self, pair: Pair) -> float:
        return pair.a + pair.b

    def accumulate(self, value: float) -> float:
        """Add *value* to the running total and return the new total."""
        with self._lock:
            self._total += value
            return self._total

    # ── Error outputs ────────────────────────────────────────────────

    def divide(self, pair: Pair) -> tuple[float, ZeroDivisionError | None]:
        if pair.b == 0:
            return 0.0, ZeroDivisionError(f"cannot divide {pair.a} by zero")
        return pair.a / pair.b, None

    def check(self, value: float) -> ValueError | None:
        """Fail unless *value* is non-negative."""
        if value < 0:
            return ValueError(f"negative value: {value}")
        return None

    # ── Void ─────────────────────────────────────────────────────────

    def reset(self) -> None:
        with self._lock:
            self._total = 0.0
        log.info("total reset")

    # Private helpers are not exposed and may take anything.
    def _scale(self, value: float, factor: float, offset: float = 0.0) -> float:
        return value * factor + offset
