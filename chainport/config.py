# chainport/config.py
"""
Runtime settings.

Values come from the environment (optionally seeded from a local ``.env``
file) and are read once, when :func:`get_settings` is first called.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class Settings:
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.2
    max_tokens: int = 1000
    step_timeout: float = 60.0
    openai_api_key: Optional[str] = None
    db_path: str = "chainport.db"
    log_level: str = "INFO"
    public_host: Optional[str] = None


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def load_settings() -> Settings:
    """Build a Settings instance from the current environment."""
    return Settings(
        model=os.getenv("CHAIN_MODEL", "gpt-3.5-turbo"),
        temperature=_float_env("CHAIN_TEMPERATURE", 0.2),
        max_tokens=int(_float_env("CHAIN_MAX_TOKENS", 1000)),
        step_timeout=_float_env("STEP_TIMEOUT_SECONDS", 60.0),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        db_path=os.getenv("DB_PATH", "chainport.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        public_host=os.getenv("PUBLIC_HOST") or None,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
