"""Configuration for the parallel tool executor."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field

from .logger import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "PARALLEL_TOOLS_"


class ParallelConfig(BaseModel):
    """
    Tunables for batch execution.

    Attributes:
        enabled: When False every call runs serially, in input order.
        max_concurrency: Maximum number of tool calls launched together in one wave.
        serial_patterns: Glob patterns (``*``/``?``) of tool names that are always run serially,
            whatever their built-in classification is.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    max_concurrency: int = Field(default=8, ge=1)
    serial_patterns: Tuple[str, ...] = ()

    @classmethod
    def disabled(cls) -> "ParallelConfig":
        """Configuration that runs every tool call serially."""
        return cls(enabled=False)

    def with_max_concurrency(self, max_concurrency: int) -> "ParallelConfig":
        """Return a copy with a different fan-out cap.

        Raises:
            pydantic.ValidationError: If ``max_concurrency`` is lower than 1.
        """
        data = self.model_dump()
        data["max_concurrency"] = max_concurrency
        return type(self)(**data)

    @classmethod
    def from_env(cls, env_file: Optional[str | Path] = None) -> "ParallelConfig":
        """Build a configuration from ``PARALLEL_TOOLS_*`` variables.

        Values from the process environment take precedence over values read
        from ``env_file``.

        Args:
            env_file: Optional path to a dotenv file.

        Returns:
            The parsed configuration.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        values: Dict[str, Any] = {}
        if env_file is not None:
            logger.debug("Reading parallel config from '%s'.", env_file)
            values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        values.update(os.environ)

        data: Dict[str, Any] = {}
        enabled = values.get(f"{ENV_PREFIX}ENABLED")
        if enabled is not None and enabled.strip():
            data["enabled"] = enabled.strip()

        max_concurrency = values.get(f"{ENV_PREFIX}MAX_CONCURRENCY")
        if max_concurrency is not None and max_concurrency.strip():
            data["max_concurrency"] = max_concurrency.strip()

        patterns = values.get(f"{ENV_PREFIX}SERIAL_PATTERNS")
        if patterns:
            data["serial_patterns"] = tuple(p.strip() for p in patterns.split(",") if p.strip())

        return cls.model_validate(data)
