# rpcmount/config/settings.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

from rpcmount.config.default import (
    API_VERSION,
    DEFAULT_BASE_PATH,
    DEFAULT_HOST,
    DEFAULT_PORT,
    LEAST_SUPPORTED_CLIENT_VERSION,
    LOGGER_NAME,
)


# ──────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────
def configure_logging(level: str | int = "INFO") -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


# ──────────────────────────────────────────────────────────────
# Settings
# ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class RPCSettings:
    base_path: str = DEFAULT_BASE_PATH
    api_version: int = API_VERSION
    least_supported_client_version: str = LEAST_SUPPORTED_CLIENT_VERSION
    check_version: bool = True
    propagate_status: bool = True
    install_cookie_parser: bool = True
    log_level: str | int = "INFO"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    title: str = "rpcmount"

    def __post_init__(self):
        # "/rpc/" and "/rpc" mount the same endpoints
        object.__setattr__(self, "base_path", self.base_path.rstrip("/"))

    @classmethod
    def coerce(cls, settings: "RPCSettings | dict | None") -> "RPCSettings":
        """Normalize settings: accept dataclass or dict or None."""
        if settings is None:
            return cls()
        if isinstance(settings, RPCSettings):
            return settings
        if isinstance(settings, dict):
            return cls(**settings)
        raise TypeError("settings must be RPCSettings | dict | None")

    @classmethod
    def from_env(cls, prefix: str = "RPCMOUNT_", **overrides: Any) -> "RPCSettings":
        """
        Build settings from ``<prefix>HOST``, ``PORT``, ``BASE_PATH`` and
        ``LOG_LEVEL`` (a ``.env`` file is loaded first). Explicit keyword
        overrides win over the environment.
        """
        load_dotenv()

        values: dict[str, Any] = {}
        env_map = {
            "host": ("HOST", str),
            "port": ("PORT", int),
            "base_path": ("BASE_PATH", str),
            "log_level": ("LOG_LEVEL", str),
        }
        for field_name, (suffix, convert) in env_map.items():
            raw = os.getenv(f"{prefix}{suffix}")
            if raw:
                values[field_name] = convert(raw)

        values.update(overrides)
        return cls(**values)
