"""YAML configuration loading with environment variable expansion."""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from contextweaver.config.models import (
    Config,
    LLMConfig,
    LoggingConfig,
    OrchestratorConfig,
    ServiceConfig,
    ServicesConfig,
    SessionConfig,
)


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """A configuration value is missing or invalid."""


class EnvironmentVariableError(ConfigError):
    """A referenced environment variable is not set."""


# Environment variable pattern: ${VAR_NAME}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def expand_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} in a string with environment variable values.

    Args:
        value: String to expand.

    Returns:
        Expanded string.

    Raises:
        EnvironmentVariableError: A referenced variable is not set.
    """
    if not value:
        return value

    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise EnvironmentVariableError(
                f"Environment variable '{var_name}' is not set"
            )
        return env_value

    return ENV_VAR_PATTERN.sub(replace_var, value)


def _expand_recursive(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: _expand_recursive(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _validate_required_field(data: dict[str, Any], field: str, parent: str = "") -> Any:
    """Return a required field's value.

    Raises:
        ConfigValidationError: The field is missing or null.
    """
    if field not in data or data[field] is None:
        full_path = f"{parent}.{field}" if parent else field
        raise ConfigValidationError(f"Required field '{full_path}' is missing")
    return data[field]


def _load_service(data: dict[str, Any] | None, parent: str) -> ServiceConfig | None:
    if not data:
        return None
    return ServiceConfig(
        endpoint=str(_validate_required_field(data, "endpoint", parent)).rstrip("/"),
        api_key=data.get("api_key"),
        timeout_seconds=float(data.get("timeout_seconds", 10.0)),
    )


def _load_orchestrator(data: dict[str, Any]) -> OrchestratorConfig:
    defaults = OrchestratorConfig()
    config = OrchestratorConfig(
        max_recent_messages=int(data.get("max_recent_messages", defaults.max_recent_messages)),
        max_topic_history=int(data.get("max_topic_history", defaults.max_topic_history)),
        cooldown_ms=int(data.get("cooldown_ms", defaults.cooldown_ms)),
        message_expiry_ms=int(data.get("message_expiry_ms", defaults.message_expiry_ms)),
        enable_memory_retrieval=bool(
            data.get("enable_memory_retrieval", defaults.enable_memory_retrieval)
        ),
        emotion_response_threshold=float(
            data.get("emotion_response_threshold", defaults.emotion_response_threshold)
        ),
        discard_stale_results=bool(
            data.get("discard_stale_results", defaults.discard_stale_results)
        ),
        checkpoint_interval_ms=int(
            data.get("checkpoint_interval_ms", defaults.checkpoint_interval_ms)
        ),
    )
    if config.max_recent_messages < 1:
        raise ConfigValidationError("'orchestrator.max_recent_messages' must be >= 1")
    if config.max_topic_history < 1:
        raise ConfigValidationError("'orchestrator.max_topic_history' must be >= 1")
    if not 0.0 <= config.emotion_response_threshold <= 1.0:
        raise ConfigValidationError(
            "'orchestrator.emotion_response_threshold' must be between 0 and 1"
        )
    return config


def load_config(path: str | Path) -> Config:
    """Load the configuration file.

    Args:
        path: Path to config.yaml.

    Returns:
        Config object.

    Raises:
        FileNotFoundError: The file does not exist.
        ConfigValidationError: A required field is missing or invalid.
        EnvironmentVariableError: A referenced environment variable is unset.
        yaml.YAMLError: YAML syntax error.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f) or {}

    data = _expand_recursive(raw_data)

    # SessionConfig
    session_data = _validate_required_field(data, "session")
    user_id = session_data.get("user_id")
    session = SessionConfig(
        task_description=session_data.get("task_description", ""),
        planned_duration_seconds=int(session_data.get("planned_duration_seconds", 0)),
        user_id=str(user_id) if user_id else None,
        preferred_language=session_data.get("preferred_language", "en-US"),
    )

    orchestrator = _load_orchestrator(data.get("orchestrator") or {})

    # ServicesConfig
    services_data = data.get("services") or {}
    services = ServicesConfig(
        classification=_load_service(
            services_data.get("classification"), "services.classification"
        ),
        retrieval=_load_service(services_data.get("retrieval"), "services.retrieval"),
        retrieval_limit=int(services_data.get("retrieval_limit", 5)),
    )

    # LLMConfig
    llm: dict[str, LLMConfig] = {}
    for key, llm_item in (data.get("llm") or {}).items():
        model = _validate_required_field(llm_item, "model", f"llm.{key}")
        llm[key] = LLMConfig(
            model=model,
            temperature=llm_item.get("temperature", 0.0),
            max_tokens=llm_item.get("max_tokens", 300),
            json_mode=bool(llm_item.get("json_mode", True)),
        )

    if services.classification is None and "default" not in llm:
        raise ConfigValidationError(
            "Either 'services.classification' or 'llm.default' must be configured"
        )

    # LoggingConfig (optional)
    logging_config: LoggingConfig | None = None
    logging_data = data.get("logging")
    if logging_data:
        logging_config = LoggingConfig(
            level=logging_data.get("level", "INFO"),
            format=logging_data.get(
                "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            ),
            loggers=logging_data.get("loggers"),
        )

    return Config(
        session=session,
        orchestrator=orchestrator,
        services=services,
        llm=llm,
        logging=logging_config,
    )
