"""Configuration module for ratequeue.

Usage:
    from ratequeue.config import QueueConfig
    from ratequeue.config.base import EnvVars, get_config_value

All environment variables use the RATEQUEUE_ prefix.
"""

from .base import ENV_PREFIX, EnvVars, get_config_value, get_env_value
from .settings import QueueConfig

__all__ = [
    # Config classes
    "QueueConfig",
    # Environment variable utilities
    "EnvVars",
    "get_config_value",
    "get_env_value",
    # Constants
    "ENV_PREFIX",
]
