"""
Configuration for the HPCE SDK.

Uses pydantic-settings for environment variable loading. Every setting has a
default suitable for a local engine, so EngineSettings() works unconfigured.

Invariants:
    - All settings have sensible defaults for local development
    - flush_deadline_seconds unset means flushes retry forever
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

import json_log_formatter
from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class EngineSettings(BaseSettings):
    """Engine client configuration loaded from environment."""

    # Engine server instance (typically segment 0)
    host: str = Field(default="localhost", description="Engine server host")
    port: int = Field(default=3000, description="Engine server port")

    # Write buffering
    batch_size: int = Field(default=10000, gt=0, description="Operations buffered per segment before flushing")
    retry_interval_ms: int = Field(default=500, ge=0, description="Pause between bulk load retries")
    flush_deadline_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Stop retrying a flush after this long (unset = retry forever)",
    )

    # HTTP
    request_timeout: float = Field(default=30.0, gt=0, description="Per-request timeout seconds")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["text", "json"] = Field(default="text", description="Log format")

    model_config = {"env_prefix": "HPCE_"}

    @property
    def server_address(self) -> str:
        """Engine server address."""
        return f"{self.host}:{self.port}"


def setup_logging(settings: EngineSettings) -> None:
    """Configure root logging based on settings.

    Args:
        settings: Engine settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logger.debug(
        "Logging configured",
        extra={"log_level": settings.log_level, "log_format": settings.log_format},
    )
