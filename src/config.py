"""Configuration module for the Vibbit classroom backend.

This module provides centralized configuration management, including the
database location, API server settings, generation provider configuration and
classroom defaults. All configuration values can be overridden via environment
variables (a local .env file is loaded first).
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_DB_PATH = "./vibbit.db"

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("PORT", "8787"))

# --- Classroom Defaults ---

DEFAULT_REQUEST_LIMIT: int = 50
DEFAULT_MAX_STUDENTS: int = 40

# --- Generation Configuration ---

# Shared by every provider so outputs stay comparable across vendors
GENERATION_TEMPERATURE: float = 0.1
GENERATION_MAX_TOKENS: int = 3072

DEFAULT_REQUEST_TIMEOUT_MS: int = 60000
DEFAULT_PROVIDER: str = "openai"

# Generic fallbacks used when no provider-specific variable is set
GENERIC_MODEL_ENV = "VIBBIT_MODEL"
GENERIC_API_KEY_ENV = "VIBBIT_API_KEY"
GENERIC_DEFAULT_MODEL = "gpt-4o-mini"

# Provider registry
LLM_PROVIDERS: Dict[str, Dict[str, Optional[str]]] = {
    "openai": {
        "display_name": "OpenAI",
        "base_url": None,
        "default_model": "gpt-4o-mini",
        "env_key": "VIBBIT_OPENAI_API_KEY",
        "model_env": "VIBBIT_OPENAI_MODEL",
    },
    "gemini": {
        "display_name": "Google Gemini",
        "base_url": "https://generativelanguage.googleapis.com/v1",
        "default_model": "gemini-2.5-flash",
        "env_key": "VIBBIT_GEMINI_API_KEY",
        "model_env": "VIBBIT_GEMINI_MODEL",
    },
    "openrouter": {
        "display_name": "OpenRouter",
        "base_url": "https://openrouter.ai/api/v1",
        "default_model": "openrouter/auto",
        "env_key": "VIBBIT_OPENROUTER_API_KEY",
        "model_env": "VIBBIT_OPENROUTER_MODEL",
    },
}


def model_for(provider: str) -> str:
    """Resolve the model name for a provider from the environment.

    Args:
        provider: Provider identifier (e.g. "openai").

    Returns:
        Provider-specific model, else VIBBIT_MODEL, else the registry default.
    """
    provider_config = LLM_PROVIDERS.get(provider)
    if provider_config:
        specific = os.getenv(provider_config["model_env"])
        if specific:
            return specific
        return os.getenv(GENERIC_MODEL_ENV) or provider_config["default_model"]
    return os.getenv(GENERIC_MODEL_ENV) or GENERIC_DEFAULT_MODEL


def api_key_for(provider: str) -> str:
    """Resolve the upstream API key for a provider from the environment."""
    provider_config = LLM_PROVIDERS.get(provider)
    if provider_config:
        specific = os.getenv(provider_config["env_key"])
        if specific:
            return specific
    return os.getenv(GENERIC_API_KEY_ENV, "")


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class Settings:
    """Process-wide settings resolved once by the entry point.

    Attributes:
        db_url: SQLAlchemy database URL for the classroom store.
        allow_origins: CORS allowed origins.
        request_timeout_ms: Deadline for a single provider call.
        server_app_token: Static secret admitting unmetered callers. Empty
            disables static-token mode and, with it, the token requirement.
        provider: Provider identifier (see LLM_PROVIDERS).
        model: Model name sent to the provider.
        api_key: Upstream credential for the provider.
        log_level: Root logging level.
    """

    db_url: str = f"sqlite:///{DEFAULT_DB_PATH}"
    allow_origins: List[str] = field(default_factory=lambda: ["*"])
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    server_app_token: str = ""
    provider: str = DEFAULT_PROVIDER
    model: str = GENERIC_DEFAULT_MODEL
    api_key: str = ""
    log_level: str = "INFO"

    @property
    def token_required(self) -> bool:
        return bool(self.server_app_token)


def load_settings() -> Settings:
    """Build Settings from the current environment.

    Returns:
        A Settings instance.
    """
    provider = os.getenv("VIBBIT_PROVIDER", DEFAULT_PROVIDER).strip().lower()
    db_path = os.getenv("VIBBIT_DB_PATH", DEFAULT_DB_PATH)
    return Settings(
        db_url=f"sqlite:///{db_path}",
        allow_origins=_split_origins(os.getenv("VIBBIT_ALLOW_ORIGIN", "*")),
        request_timeout_ms=int(
            os.getenv("VIBBIT_REQUEST_TIMEOUT_MS", str(DEFAULT_REQUEST_TIMEOUT_MS))
        ),
        server_app_token=os.getenv("SERVER_APP_TOKEN", ""),
        provider=provider,
        model=model_for(provider),
        api_key=api_key_for(provider),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
