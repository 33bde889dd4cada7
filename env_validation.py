"""Environment variable validation and typed accessors."""

import os
import logging
from typing import Dict

logger = logging.getLogger(__name__)

ANALYSIS_PROVIDERS = {"heuristic", "llm"}


class EnvironmentError(Exception):
    """Raised when required environment variables are missing or invalid."""
    pass


def validate_environment() -> None:
    """Apply defaults and validate configuration.

    Raises EnvironmentError if validation fails.
    """
    # Nothing is strictly required; every setting has a usable default.
    required_vars: Dict[str, str] = {}

    defaults = {
        "DB_PATH": "data.db",
        "PROFILE_STORAGE_KEY": "GamifiedUserProfile",
        "ANALYSIS_PROVIDER": "heuristic",
        "ANALYSIS_URL": "http://localhost:4891/v1/chat/completions",
        "MODEL_ID": "Llama-3-8B-Instruct",
        "ANALYSIS_TIMEOUT": "120",
        "ANALYSIS_MAX_TOKENS": "2048",
        "ANALYSIS_CACHE_SIZE": "100",
        "ROADMAP_TIMEFRAME_WEEKS": "4",
    }

    # Apply defaults before validation so dependent modules see consistent values.
    for var, value in defaults.items():
        if not os.getenv(var):
            os.environ[var] = value
            logger.info("Environment variable %s not set; using default '%s'", var, value)

    missing = []
    for var, description in required_vars.items():
        if not os.getenv(var):
            missing.append(f"{var} ({description})")

    if missing:
        raise EnvironmentError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    url_vars = {"ANALYSIS_URL"}
    for var in url_vars:
        value = os.getenv(var)
        if value and not (value.startswith("http://") or value.startswith("https://")):
            raise EnvironmentError(f"Invalid URL format for {var}: {value}")

    provider = (os.getenv("ANALYSIS_PROVIDER") or "").strip().lower()
    if provider not in ANALYSIS_PROVIDERS:
        raise EnvironmentError(
            f"ANALYSIS_PROVIDER must be one of {sorted(ANALYSIS_PROVIDERS)}, got '{provider}'"
        )

    positive_ints = ("ANALYSIS_TIMEOUT", "ANALYSIS_MAX_TOKENS", "ANALYSIS_CACHE_SIZE", "ROADMAP_TIMEFRAME_WEEKS")
    for var in positive_ints:
        raw = os.getenv(var, "")
        try:
            value = int(raw)
        except ValueError:
            raise EnvironmentError(f"{var} must be an integer: {raw}")
        if value <= 0:
            raise EnvironmentError(f"{var} must be positive: {raw}")


def get_env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r; using default %s", name, raw, default)
        return default
