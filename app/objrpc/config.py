"""Server settings, read from the environment (and ``./.env`` if present)."""

from __future__ import annotations

import importlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

ENV_PREFIX = "OBJRPC_"

# Defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8100
DEFAULT_PATH = "/api"
DEFAULT_RECEIVER = "objrpc.demo:Calculator"


@dataclass(slots=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    log_level: str = "info"
    receiver: str = DEFAULT_RECEIVER

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Settings":
        """Load settings from ``OBJRPC_*`` variables — raises ``ValueError`` on a bad port."""
        load_dotenv(env_file or Path.cwd() / ".env")
        port = os.getenv(f"{ENV_PREFIX}PORT", str(DEFAULT_PORT))
        try:
            port_num = int(port)
        except ValueError:
            raise ValueError(f"invalid {ENV_PREFIX}PORT: {port!r}") from None
        return cls(
            host=os.getenv(f"{ENV_PREFIX}HOST", DEFAULT_HOST),
            port=port_num,
            path=os.getenv(f"{ENV_PREFIX}PATH", DEFAULT_PATH),
            log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "info").lower(),
            receiver=os.getenv(f"{ENV_PREFIX}RECEIVER", DEFAULT_RECEIVER),
        )


def load_receiver(spec: str) -> Any:
    """Import ``module:attr`` and return it, instantiating it if it is a class."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"receiver must look like 'module:attr', got {spec!r}")
    obj: Any = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj() if isinstance(obj, type) else obj
