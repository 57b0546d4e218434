"""Shared configuration utilities and constants.

Configuration values are resolved with the same priority everywhere:
explicit value > environment variable > default.
"""

import os
from typing import Any, Optional, TypeVar

# Type variable for config values
T = TypeVar("T")

# === Environment Variable Prefix ===

ENV_PREFIX = "RATEQUEUE_"

TRUE_VALUES = ("true", "1", "yes", "on")


class EnvVars:
    """Centralized environment variable names for consistent access."""

    # === Queue ===
    MAX_CALLS_PER_SECOND = f"{ENV_PREFIX}MAX_CALLS_PER_SECOND"
    NAME = f"{ENV_PREFIX}NAME"
    CANCEL_REMOVED = f"{ENV_PREFIX}CANCEL_REMOVED"
    RESOLVE_AWAITABLES = f"{ENV_PREFIX}RESOLVE_AWAITABLES"

    # === Metrics ===
    METRICS_ENABLED = f"{ENV_PREFIX}METRICS_ENABLED"

    # === Logging ===
    LOG_LEVEL = f"{ENV_PREFIX}LOG_LEVEL"
    LOG_FORMAT = f"{ENV_PREFIX}LOG_FORMAT"


def get_env_value(
    env_var: str,
    default: T,
    type_converter: type = str,
) -> T:
    """
    Get a value from an environment variable with type conversion.

    Args:
        env_var: Environment variable name
        default: Default value if not found
        type_converter: Type to convert to (str, int, float, bool)

    Returns:
        The environment value converted to the specified type, or the default

    Raises:
        ValueError: If the environment value cannot be converted
    """
    env_value = os.getenv(env_var)

    if env_value is not None:
        if type_converter == bool:
            return env_value.strip().lower() in TRUE_VALUES  # type: ignore
        try:
            return type_converter(env_value)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_var}: {env_value!r}") from e

    return default


def get_config_value(
    explicit: Optional[Any],
    env_var: str,
    default: T,
    type_converter: type = str,
) -> T:
    """
    Get a configuration value with priority: explicit > environment > default.

    Args:
        explicit: Explicitly provided value (highest priority)
        env_var: Environment variable name
        default: Default value (lowest priority)
        type_converter: Type to convert to (str, int, float, bool)

    Returns:
        The resolved configuration value
    """
    if explicit is not None:
        return explicit

    return get_env_value(env_var, default, type_converter)
