"""
Configuration loader for Tax GPT.
Builds one immutable Settings object from defaults, an optional YAML file
and environment variables. Components receive it by injection.
"""

import os
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .logger import get_logger

logger = get_logger(__name__)

API_KEY_PLACEHOLDER = "your_openrouter_api_key_here"
DEFAULT_CONFIG_DIR = Path.home() / ".tax-gpt"


class ConfigurationError(Exception):
    """Raised when the assistant cannot start with the current configuration."""


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class LlmConfig(_Frozen):
    """Completion provider configuration."""
    provider: Literal["openrouter", "ollama"] = "openrouter"
    model: str = "google/gemini-3-flash-preview"
    base_url: str = "https://openrouter.ai/api/v1"
    api_key: Optional[str] = None
    ollama_host: str = "http://localhost:11434"
    temperature: float = 0.2
    max_tokens: int = Field(1500, gt=0)
    referer: str = "https://github.com/tax-gpt"
    title: str = "Tax GPT"


class RetrievalConfig(_Frozen):
    """Knowledge base chunking and retrieval limits."""
    chunk_size: int = Field(3000, gt=0)
    max_chunks: int = Field(5, gt=0)
    max_context_chars: int = Field(120000, gt=0)
    separator: str = "\n---\n"


class HistoryConfig(_Frozen):
    """Conversation history limits."""
    max_history_turns: int = Field(10, gt=0)
    prompt_history_turns: int = Field(3, ge=0)
    preview_chars: int = Field(100, gt=0)
    save_failure_policy: Literal["log", "surface"] = "log"


class PathsConfig(_Frozen):
    """Filesystem locations."""
    config_dir: Path = DEFAULT_CONFIG_DIR
    sessions_dir: Optional[Path] = None
    knowledge_base: Path = Path("knowledge-base/tax-knowledge-base.txt")
    log_file: Optional[Path] = None

    @property
    def resolved_sessions_dir(self) -> Path:
        return self.sessions_dir or self.config_dir / "sessions"

    @property
    def resolved_log_file(self) -> Path:
        return self.log_file or self.config_dir / "logs" / "tax_gpt.log"

    @property
    def resolved_knowledge_base(self) -> Path:
        """
        Knowledge base location.

        A relative path that does not exist under the working directory
        is looked up under the config dir instead.
        """
        if self.knowledge_base.is_absolute() or self.knowledge_base.exists():
            return self.knowledge_base
        return self.config_dir / self.knowledge_base


class RenderConfig(_Frozen):
    """Terminal rendering options."""
    stream_delay_ms: int = Field(4, ge=0)
    max_column_width: int = Field(35, gt=2)
    # None means "redraw in place only when writing to a terminal"
    redraw: Optional[bool] = None


class LoggingConfig(_Frozen):
    """Logging configuration."""
    level: str = "WARNING"
    to_file: bool = True


class Settings(_Frozen):
    """Main settings container."""
    llm: LlmConfig = LlmConfig()
    retrieval: RetrievalConfig = RetrievalConfig()
    history: HistoryConfig = HistoryConfig()
    paths: PathsConfig = PathsConfig()
    render: RenderConfig = RenderConfig()
    logging: LoggingConfig = LoggingConfig()


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping, returning an empty dict for an empty file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def _apply_env(config: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Overlay environment variables onto the raw configuration mapping."""
    llm = dict(config.get("llm") or {})
    paths = dict(config.get("paths") or {})

    if environ.get("MODEL"):
        llm["model"] = environ["MODEL"]
    if environ.get("OPENROUTER_API_KEY"):
        llm["api_key"] = environ["OPENROUTER_API_KEY"]
    if environ.get("TAX_GPT_PROVIDER"):
        llm["provider"] = environ["TAX_GPT_PROVIDER"]
    if environ.get("TAX_GPT_KNOWLEDGE_BASE"):
        paths["knowledge_base"] = environ["TAX_GPT_KNOWLEDGE_BASE"]

    return {**config, "llm": llm, "paths": paths}


def load_settings(
    config_path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    load_env_file: bool = True,
) -> Settings:
    """
    Build the Settings object.

    Args:
        config_path: Explicit YAML file; defaults to ~/.tax-gpt/settings.yaml if present
        environ: Environment mapping (defaults to os.environ)
        load_env_file: Whether to load a .env file first

    Returns:
        Immutable Settings
    """
    if load_env_file:
        load_dotenv()
    if environ is None:
        environ = os.environ

    config_dict: dict[str, Any] = {}
    if config_path is not None:
        yaml_path = Path(config_path)
        if not yaml_path.exists():
            raise ConfigurationError(f"Configuration file {yaml_path} not found")
        config_dict = _read_yaml(yaml_path)
        logger.debug(f"Loaded configuration from {yaml_path}")
    else:
        yaml_path = DEFAULT_CONFIG_DIR / "settings.yaml"
        if yaml_path.exists():
            try:
                config_dict = _read_yaml(yaml_path)
                logger.debug(f"Loaded configuration from {yaml_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load {yaml_path}: {e}")

    try:
        return Settings(**_apply_env(config_dict, environ))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def validate_credentials(settings: Settings) -> None:
    """
    Check that the selected provider can authenticate.

    Raises:
        ConfigurationError: OpenRouter is selected without a usable key
    """
    if settings.llm.provider != "openrouter":
        return

    key = settings.llm.api_key
    if not key or key == API_KEY_PLACEHOLDER:
        raise ConfigurationError("OPENROUTER_API_KEY not set")
