"""
Centralized configuration with environment variable overrides.

Model settings, storage locations, the completion marker, and the HTTP
server binding are all configurable here. Nothing is hardcoded in the
driver, gateways, or dialogue service.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class ModelConfig:
    """Language model settings for the dialogue service."""

    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.3")
    timeout_seconds: float = _safe_float("LLM_TIMEOUT_SECONDS", "30.0")
    max_history_messages: int = _safe_int("LLM_MAX_HISTORY_MESSAGES", "20")


@dataclass(frozen=True)
class StorageConfig:
    """Where the configuration document and exported workbooks live."""

    data_dir: str = os.getenv("DATA_DIR", "data")
    config_filename: str = os.getenv("CONFIG_FILENAME", "warehouse-config.json")
    export_dir: str = os.getenv("EXPORT_DIR", os.path.join("data", "exports"))

    @property
    def config_path(self) -> str:
        return os.path.join(self.data_dir, self.config_filename)


@dataclass(frozen=True)
class DialogueConfig:
    """Conversation wording and the completion sentinel."""

    completion_marker: str = os.getenv("COMPLETION_MARKER", "[CONFIGURATION_COMPLETE]")
    greeting: str = os.getenv(
        "WIZARD_GREETING",
        "Hello! I'll help you design your warehouse layout. "
        "What's the height requirement for your warehouse?",
    )


@dataclass(frozen=True)
class ServerConfig:
    """HTTP binding for the API surface."""

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = _safe_int("PORT", "3001")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    model: ModelConfig = field(default_factory=ModelConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    dialogue: DialogueConfig = field(default_factory=DialogueConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "Warehouse Chat Builder")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 0.0 <= config.model.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.llm_temperature}"
        )
    if config.model.timeout_seconds <= 0:
        raise ValueError(
            f"LLM_TIMEOUT_SECONDS must be > 0, got {config.model.timeout_seconds}"
        )
    if config.model.max_history_messages < 2:
        raise ValueError(
            "LLM_MAX_HISTORY_MESSAGES must be >= 2, "
            f"got {config.model.max_history_messages}"
        )
    marker = config.dialogue.completion_marker
    if not marker.strip():
        raise ValueError("COMPLETION_MARKER must not be empty")
    if marker != marker.strip():
        raise ValueError(
            f"COMPLETION_MARKER must not start or end with whitespace, got {marker!r}"
        )
    if not 1 <= config.server.port <= 65535:
        raise ValueError(f"PORT must be between 1 and 65535, got {config.server.port}")
    if not config.storage.config_filename.strip():
        raise ValueError("CONFIG_FILENAME must not be empty")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
