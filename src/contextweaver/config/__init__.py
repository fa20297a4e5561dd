"""Configuration management."""

from contextweaver.config.loader import (
    ConfigError,
    ConfigValidationError,
    EnvironmentVariableError,
    expand_env_vars,
    load_config,
)
from contextweaver.config.models import (
    Config,
    LLMConfig,
    LoggingConfig,
    OrchestratorConfig,
    ServiceConfig,
    ServicesConfig,
    SessionConfig,
)

__all__ = [
    "Config",
    "ConfigError",
    "ConfigValidationError",
    "EnvironmentVariableError",
    "LLMConfig",
    "LoggingConfig",
    "OrchestratorConfig",
    "ServiceConfig",
    "ServicesConfig",
    "SessionConfig",
    "expand_env_vars",
    "load_config",
]
