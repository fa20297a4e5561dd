"""Configuration dataclasses."""

from dataclasses import dataclass


@dataclass
class SessionConfig:
    """Coaching session settings.

    Attributes:
        task_description: What the user is working on.
        planned_duration_seconds: Planned session length; 0 disables the
            wrapping-up phase.
        user_id: Identified user; memory retrieval is skipped when unset.
        preferred_language: Language tag passed along in directives.
    """

    task_description: str = ""
    planned_duration_seconds: int = 0
    user_id: str | None = None
    preferred_language: str = "en-US"


@dataclass
class OrchestratorConfig:
    """Orchestration policy settings."""

    max_recent_messages: int = 10
    max_topic_history: int = 5
    cooldown_ms: int = 15000
    message_expiry_ms: int = 60000
    enable_memory_retrieval: bool = True
    emotion_response_threshold: float = 0.6
    discard_stale_results: bool = False
    checkpoint_interval_ms: int = 60000


@dataclass
class ServiceConfig:
    """HTTP service endpoint settings."""

    endpoint: str
    api_key: str | None = None
    timeout_seconds: float = 10.0


@dataclass
class ServicesConfig:
    """External services.

    Attributes:
        classification: Topic classification service; when unset the LLM
            classifier is used.
        retrieval: Memory retrieval service; when unset memory retrieval is
            disabled.
        retrieval_limit: Maximum memories per request.
    """

    classification: ServiceConfig | None = None
    retrieval: ServiceConfig | None = None
    retrieval_limit: int = 5


@dataclass
class LLMConfig:
    """LLM settings (passed to LiteLLM acompletion)."""

    model: str
    temperature: float = 0.0
    max_tokens: int = 300
    json_mode: bool = True


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    loggers: dict[str, str] | None = None


@dataclass
class Config:
    """Application settings."""

    session: SessionConfig
    orchestrator: OrchestratorConfig
    services: ServicesConfig
    llm: dict[str, LLMConfig]
    logging: LoggingConfig | None = None
