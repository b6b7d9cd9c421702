"""Configuration management for Cover Letter."""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Use tomllib on Python 3.11+, fall back to tomli for 3.10
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-4o-mini"


class ConfigError(Exception):
    """Raised when the configuration cannot start a session."""


@dataclass
class LLMConfig:
    """LLM configuration for the writing assistant.

    The model string encodes the provider using litellm conventions:
    - "openai/gpt-4o-mini" → OpenAI API
    - "anthropic/claude-3-5-haiku-20241022" → Anthropic API
    - "openrouter/openai/gpt-4o-mini" → OpenRouter
    - "ollama/qwen2.5:7b" → Ollama (native litellm support)
    - "claude-code/haiku" → Claude Code CLI subprocess (special case)
    """

    model: str = DEFAULT_MODEL
    api_base: str | None = None  # For local providers or custom endpoints
    api_key: str | None = None  # Explicit API key (litellm also reads env vars)
    timeout: float = 60.0  # Seconds before a reply is abandoned
    max_tokens: int = 1024
    temperature: float = 0.7

    @property
    def is_claude_code(self) -> bool:
        """Check if this config uses the claude-code subprocess provider."""
        return self.model.startswith("claude-code/")


@dataclass
class UIConfig:
    """Configuration for the terminal wizard."""

    start_dir: str | None = None          # File browser start (default: cwd)
    allowed_suffixes: list[str] = field(default_factory=list)  # e.g. [".txt", ".md"]; empty = any
    show_hidden: bool = False
    description_char_limit: int = 3200
    message_char_limit: int = 200


@dataclass
class Config:
    """Cover Letter configuration."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    drafts_dir: str = field(default=str(Path.home() / "cover-letters"))
    debug_logging: bool = field(default=False)  # Enable debug logging to file (opt-in)


# Config file path
CONFIG_DIR = Path.home() / ".cover-letter"
CONFIG_FILE = CONFIG_DIR / "config.toml"

# Provider prefix -> environment variable holding its key
PROVIDER_KEY_ENV = {
    "openai/": "OPENAI_API_KEY",
    "openrouter/": "OPENROUTER_API_KEY",
    "anthropic/": "ANTHROPIC_API_KEY",
}


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _read_config_file(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return None


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from environment, file, or defaults.

    Priority (highest to lowest):
    1. Environment variables (COVER_LETTER_*), including a local .env file
    2. Config file (~/.cover-letter/config.toml)
    3. Hardcoded defaults

    API keys for litellm providers are read from standard env vars
    (OPENAI_API_KEY, ANTHROPIC_API_KEY, etc.) by litellm automatically.
    """
    load_dotenv()

    config = Config()
    data = _read_config_file(config_file or CONFIG_FILE)

    if data is not None:
        llm_data = data.get("llm", {})
        config.llm = LLMConfig(
            model=llm_data.get("model", config.llm.model),
            api_base=llm_data.get("api_base"),
            timeout=float(llm_data.get("timeout", config.llm.timeout)),
            max_tokens=int(llm_data.get("max_tokens", config.llm.max_tokens)),
            temperature=float(llm_data.get("temperature", config.llm.temperature)),
        )

        ui_data = data.get("ui", {})
        if ui_data:
            config.ui = UIConfig(
                start_dir=ui_data.get("start_dir"),
                allowed_suffixes=list(ui_data.get("allowed_suffixes", [])),
                show_hidden=ui_data.get("show_hidden", False),
                description_char_limit=ui_data.get("description_char_limit", 3200),
                message_char_limit=ui_data.get("message_char_limit", 200),
            )

        config.drafts_dir = data.get("drafts_dir", config.drafts_dir)
        config.debug_logging = data.get("debug_logging", config.debug_logging)

    # Environment variables override everything
    config.llm.model = os.getenv("COVER_LETTER_LLM_MODEL", config.llm.model)
    config.llm.api_base = os.getenv("COVER_LETTER_LLM_API_BASE", config.llm.api_base)
    config.llm.api_key = os.getenv("COVER_LETTER_API_KEY", config.llm.api_key)
    timeout_env = os.getenv("COVER_LETTER_LLM_TIMEOUT")
    if timeout_env is not None:
        try:
            config.llm.timeout = float(timeout_env)
        except ValueError:
            logger.warning(f"Ignoring invalid COVER_LETTER_LLM_TIMEOUT={timeout_env!r}")
    config.ui.start_dir = os.getenv("COVER_LETTER_START_DIR", config.ui.start_dir)
    config.drafts_dir = os.getenv("COVER_LETTER_DRAFTS_DIR", config.drafts_dir)
    debug_logging_env = os.getenv("COVER_LETTER_DEBUG_LOGGING")
    if debug_logging_env is not None:
        config.debug_logging = _parse_bool(debug_logging_env)

    return config


def required_key_env(llm: LLMConfig) -> str | None:
    """Return the env var that must hold an API key for this model, if any."""
    if llm.is_claude_code or llm.api_base:
        return None
    for prefix, env_var in PROVIDER_KEY_ENV.items():
        if llm.model.startswith(prefix):
            return env_var
    return None


def require_credentials(config: Config) -> None:
    """Fail fast when the configured provider has no credential.

    Raises:
        ConfigError: if the provider's API key is missing.
    """
    if config.llm.api_key:
        return
    env_var = required_key_env(config.llm)
    if env_var is not None and not os.getenv(env_var):
        raise ConfigError(
            f"{env_var} is not set. Export it, add it to a .env file, or set "
            f"COVER_LETTER_API_KEY (model: {config.llm.model})"
        )


def save_config(config: Config, config_file: Path | None = None) -> None:
    """Save configuration to file.

    Note: API keys are never saved to the config file.
    """
    path = config_file or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "llm": {
            "model": config.llm.model,
            "timeout": config.llm.timeout,
            "max_tokens": config.llm.max_tokens,
            "temperature": config.llm.temperature,
        },
        "drafts_dir": config.drafts_dir,
        "debug_logging": config.debug_logging,
    }

    # Save api_base when set (for local/custom endpoints)
    if config.llm.api_base:
        data["llm"]["api_base"] = config.llm.api_base

    # Save UI config only if non-default
    if config.ui != UIConfig():
        ui_data: dict[str, Any] = {
            "allowed_suffixes": config.ui.allowed_suffixes,
            "show_hidden": config.ui.show_hidden,
            "description_char_limit": config.ui.description_char_limit,
            "message_char_limit": config.ui.message_char_limit,
        }
        if config.ui.start_dir:
            ui_data["start_dir"] = config.ui.start_dir
        data["ui"] = ui_data

    with open(path, "wb") as f:
        tomli_w.dump(data, f)


def get_example_configs() -> dict[str, dict[str, Any]]:
    """Get example configurations for common LLM providers."""
    return {
        "lm-studio": {
            "api_base": "http://localhost:1234/v1",
            "model": "gpt-oss-20b",
            "description": "LM Studio",
        },
        "ollama": {
            "model": "ollama/qwen2.5:7b",
            "description": "Ollama (native litellm support, no api_base needed)",
        },
        "openai": {
            "model": "openai/gpt-4o-mini",
            "description": "OpenAI API (requires OPENAI_API_KEY env var)",
        },
        "openrouter": {
            "model": "openrouter/openai/gpt-4o-mini",
            "description": "OpenRouter API (requires OPENROUTER_API_KEY env var)",
        },
        "anthropic": {
            "model": "anthropic/claude-3-5-haiku-20241022",
            "description": "Anthropic API (requires ANTHROPIC_API_KEY env var)",
        },
        "claude-code": {
            "model": "claude-code/haiku",
            "description": "Claude Code CLI (uses `claude -p`, no API key needed)",
        },
    }
