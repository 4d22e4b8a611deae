"""
Pipeline configuration with layered loading.

Configuration precedence (highest to lowest):
1. Environment variables
2. config.yml values
3. Default values defined here

The same settings object serves the orchestrator, the language-model
client and the tests, which override values through environment variables.
"""
import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import timezone, timedelta
import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from coach.core.logging import configure_logging

# Load .env file first (lowest priority, will be overridden by config.yml and env vars)
load_dotenv()

# Setup basic logging for config loading
logger = logging.getLogger(__name__)


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "config.example.yml").exists() or (parent / "pyproject.toml").exists():
            return parent
    return Path(os.getenv("COACH_ROOT", os.getcwd()))


def _load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load configuration from YAML file if it exists."""
    if not config_path.exists():
        logger.debug(f"Config file not found: {config_path}")
        return {}

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config file {config_path}: {e}")
        return {}


def _get_nested(d: Dict, *keys, default=None):
    """Safely get a nested dictionary value."""
    for key in keys:
        if isinstance(d, dict):
            d = d.get(key, default)
        else:
            return default
    return d if d is not None else default


def _env_or_yaml(env_key: str, yaml_config: Dict, *yaml_keys, default=None):
    """Get value from environment variable, falling back to YAML config, then default."""
    env_value = os.getenv(env_key)
    if env_value is not None:
        return env_value

    yaml_value = _get_nested(yaml_config, *yaml_keys)
    if yaml_value is not None:
        return yaml_value

    return default


PROJECT_ROOT = _find_project_root()


def _config_path() -> Path:
    return Path(os.getenv("COACH_CONFIG_FILE", str(PROJECT_ROOT / "config.yml")))


YAML_CONFIG = _load_yaml_config(_config_path())

# Dotted config key -> environment variable that overrides it.
# Keys not listed here are read from config.yml only.
ENV_VARS: Dict[str, str] = {
    "user.timezone_offset_hours": "COACH_TIMEZONE_OFFSET",
    "llm.base_url": "LLM_BASE_URL",
    "llm.api_key": "OPENAI_API_KEY",
    "llm.main_model": "LLM_MAIN_MODEL",
    "llm.cheap_model": "LLM_CHEAP_MODEL",
    "llm.temperature": "LLM_TEMPERATURE",
    "llm.main_max_tokens": "LLM_MAIN_MAX_TOKENS",
    "llm.cheap_max_tokens": "LLM_CHEAP_MAX_TOKENS",
    "llm.timeout_seconds": "LLM_TIMEOUT_SECONDS",
    "cache.ttl_hours": "COACH_CACHE_TTL_HOURS",
    "logging.level": "COACH_LOG_LEVEL",
    "logging.logs_path": "COACH_LOGS_PATH",
}


def _setting(key: str, default=None):
    """Value for a dotted config key: env var if it has one, then YAML, then default."""
    keys = key.split(".")
    env_key = ENV_VARS.get(key)
    if env_key is None:
        return _get_nested(YAML_CONFIG, *keys, default=default)
    return _env_or_yaml(env_key, YAML_CONFIG, *keys, default=default)


class UserConfig(BaseModel):
    """User-facing locale configuration."""
    timezone_offset_hours: int = int(_setting("user.timezone_offset_hours", default=0))

    @property
    def timezone(self):
        """Get user's timezone as a timezone object."""
        return timezone(timedelta(hours=self.timezone_offset_hours))


class LLMConfig(BaseModel):
    """Language model configuration (OpenAI-compatible endpoint)."""
    base_url: str = _setting("llm.base_url", default="https://api.openai.com/v1")
    api_key: str = _setting("llm.api_key", default="not-needed")
    main_model: str = _setting("llm.main_model", default="gpt-4o-mini")
    cheap_model: str = _setting("llm.cheap_model", default="gpt-3.5-turbo")
    temperature: float = float(_setting("llm.temperature", default=0.0))
    top_p: float = float(_setting("llm.top_p", default=0.9))
    main_max_tokens: int = int(_setting("llm.main_max_tokens", default=500))
    cheap_max_tokens: int = int(_setting("llm.cheap_max_tokens", default=300))
    timeout_seconds: float = float(_setting("llm.timeout_seconds", default=30.0))


class CacheConfig(BaseModel):
    """Response cache configuration."""
    ttl_hours: float = float(_setting("cache.ttl_hours", default=24))
    key_words: int = int(_setting("cache.key_words", default=10))


class ConversationConfig(BaseModel):
    """How much conversation history each stage looks at."""
    history_limit: int = int(_setting("conversation.history_limit", default=10))
    suggestion_turns: int = int(_setting("conversation.suggestion_turns", default=2))
    suggestion_context_window: int = int(_setting("conversation.suggestion_context_window", default=5))


class OnboardingConfig(BaseModel):
    """Onboarding extraction limits."""
    min_length: int = int(_setting("onboarding.min_length", default=20))
    max_goals: int = int(_setting("onboarding.max_goals", default=10))


class PricingConfig(BaseModel):
    """Token prices in USD per million tokens."""
    input_per_million: float = float(_setting("pricing.input_per_million", default=0.15))
    output_per_million: float = float(_setting("pricing.output_per_million", default=0.60))


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = _setting("logging.level", default="INFO")
    format: str = _setting("logging.format", default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logs_path: Optional[str] = _setting("logging.logs_path")


class Settings(BaseModel):
    """
    Pipeline settings with layered configuration.

    Configuration is loaded from (in order of precedence):
    1. Environment variables
    2. config.yml
    3. Default values
    """

    user: UserConfig = Field(default_factory=UserConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    onboarding: OnboardingConfig = Field(default_factory=OnboardingConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def user_timezone(self):
        """User timezone."""
        return self.user.timezone

    @property
    def cache_ttl_seconds(self) -> float:
        """Response cache TTL in seconds."""
        return self.cache.ttl_hours * 60 * 60

    @property
    def history_limit(self) -> int:
        """Turns of history sent with a normal response."""
        return self.conversation.history_limit

    @property
    def min_onboarding_length(self) -> int:
        return self.onboarding.min_length

    @property
    def max_goals(self) -> int:
        return self.onboarding.max_goals


# Create singleton instance
settings = Settings()
configure_logging(settings.logging.level, settings.logging.format, settings.logging.logs_path)


def get_config_source(key: str) -> str:
    """
    Get the source of a configuration value.

    Returns 'env', 'yaml', or 'default'.
    """
    env_key = ENV_VARS.get(key)
    if env_key is not None and os.getenv(env_key) is not None:
        return "env"

    keys = key.split(".")
    yaml_value = _get_nested(YAML_CONFIG, *keys)
    if yaml_value is not None:
        return "yaml"

    return "default"
