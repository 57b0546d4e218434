"""Queue configuration with explicit values, environment variables, and defaults."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..queue.manager import validate_rate
from ..utils.logging import LOG_FORMATS, LOG_LEVELS
from ..utils.logging import setup_logging as install_log_handler
from .base import EnvVars, get_config_value


@dataclass
class QueueConfig:
    """Rate limited queue configuration."""

    # === Queue ===
    max_calls_per_second: float = 1.0
    name: str = "default"
    cancel_removed: bool = False
    resolve_awaitables: bool = False

    # === Prometheus ===
    metrics_enabled: bool = False

    # === Logging ===
    log_level: str = "INFO"
    log_format: str = "text"  # json|text

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "QueueConfig":
        """
        Load configuration from overrides, environment variables, and defaults.

        Priority: overrides > Environment variables > Defaults

        Args:
            overrides: Optional dictionary of explicit values keyed by field name

        Returns:
            Validated QueueConfig instance
        """
        overrides = overrides or {}
        unknown = set(overrides) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

        config = cls()

        config.max_calls_per_second = get_config_value(
            overrides.get("max_calls_per_second"), EnvVars.MAX_CALLS_PER_SECOND,
            config.max_calls_per_second, float
        )
        config.name = get_config_value(
            overrides.get("name"), EnvVars.NAME, config.name
        )
        config.cancel_removed = get_config_value(
            overrides.get("cancel_removed"), EnvVars.CANCEL_REMOVED,
            config.cancel_removed, bool
        )
        config.resolve_awaitables = get_config_value(
            overrides.get("resolve_awaitables"), EnvVars.RESOLVE_AWAITABLES,
            config.resolve_awaitables, bool
        )
        config.metrics_enabled = get_config_value(
            overrides.get("metrics_enabled"), EnvVars.METRICS_ENABLED,
            config.metrics_enabled, bool
        )
        config.log_level = get_config_value(
            overrides.get("log_level"), EnvVars.LOG_LEVEL, config.log_level
        )
        config.log_format = get_config_value(
            overrides.get("log_format"), EnvVars.LOG_FORMAT, config.log_format
        )

        config.validate()
        return config

    def validate(self) -> None:
        """
        Check configuration values.

        Raises:
            InvalidRateError: If max_calls_per_second is not greater than zero
            ValueError: If the log level or log format is unknown
        """
        validate_rate(self.max_calls_per_second)

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level {self.log_level!r} (expected one of {', '.join(LOG_LEVELS)})"
            )
        if self.log_format.lower() not in LOG_FORMATS:
            raise ValueError(
                f"Invalid log format {self.log_format!r} (expected one of {', '.join(LOG_FORMATS)})"
            )

    @property
    def interval_seconds(self) -> float:
        """Minimum seconds between executions implied by the rate."""
        return 1.0 / float(self.max_calls_per_second)

    def setup_logging(self) -> logging.Handler:
        """Install the root log handler described by log_level and log_format."""
        return install_log_handler(self.log_level, self.log_format)

    def display(self) -> str:
        """
        Display configuration in human-readable format.

        Returns:
            Formatted configuration string
        """
        lines = [
            "Configuration:",
            "  Queue:",
            f"    Name: {self.name}",
            f"    Rate: {self.max_calls_per_second} calls/s (one every {self.interval_seconds:.3f}s)",
            f"    Removed Tasks: {'Rejected' if self.cancel_removed else 'Left pending'}",
            f"    Awaitable Results: {'Resolved' if self.resolve_awaitables else 'Returned as-is'}",
            f"    Metrics: {'Enabled' if self.metrics_enabled else 'Disabled'}",
            "  Logging:",
            f"    Level: {self.log_level}",
            f"    Format: {self.log_format}",
        ]
        return "\n".join(lines)
