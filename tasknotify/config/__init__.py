"""Configuration management for the task notification engine."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    AppConfig,
    ChannelsConfig,
    EmailChannelConfig,
    HttpChannelConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    NotificationConfig,
    SchedulerConfig,
)

__all__ = [
    "load_config",
    "parse_app_config",
    "load_environment_config",
    "AppConfig",
    "NotificationConfig",
    "SchedulerConfig",
    "ChannelsConfig",
    "EmailChannelConfig",
    "HttpChannelConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
]
