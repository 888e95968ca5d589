"""Chat relay configuration.

Loads settings from a single YAML file:
  * relay.settings.yaml  (non-secret configuration; the relay needs no secrets)

The file location can be overridden with the ``RELAY_SETTINGS_FILE``
environment variable, and ``PORT`` overrides ``server.port``.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("relay.settings.yaml")
SETTINGS_ENV_VAR = "RELAY_SETTINGS_FILE"
PORT_ENV_VAR = "PORT"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3000
    allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173"]
    )


class ChatSettings(BaseModel):
    """Behaviour of the presence/history core."""
    history_capacity:      int                            = 100
    duplicate_name_policy: Literal["takeover", "reject"]  = "takeover"
    send_timeout_seconds:  float                          = 5.0

    @field_validator("history_capacity")
    @classmethod
    def _capacity_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("history_capacity must be greater than 0")
        return value

    @field_validator("send_timeout_seconds")
    @classmethod
    def _timeout_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("send_timeout_seconds must be greater than 0")
        return value


class LoggingSettings(BaseModel):
    level: str = "info"


class RelayConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    chat:    ChatSettings    = Field(default_factory=ChatSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> RelayConfig:
    """Load *relay.settings.yaml* (or *settings_path*) into a RelayConfig."""
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV_VAR, SETTINGS_FILE))

    data = _load_yaml(Path(settings_path))

    port_override = os.environ.get(PORT_ENV_VAR)
    if port_override:
        data.setdefault("server", {})
        data["server"]["port"] = int(port_override)

    config = RelayConfig(**data)
    logger.info(
        "Settings loaded (server=%s:%s, history_capacity=%d, duplicate_name_policy=%s)",
        config.server.host,
        config.server.port,
        config.chat.history_capacity,
        config.chat.duplicate_name_policy,
    )
    return config


@lru_cache
def get_config() -> RelayConfig:
    """Return the process-wide configuration, loading it on first use."""
    return load_config()
