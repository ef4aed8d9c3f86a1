"""
Configuration Module for CEP Race.

Handles environment variables, provider endpoints and race defaults.
Values are read once at import time and passed explicitly into the coordinator.
"""

import os
import logging
from dotenv import load_dotenv
from typing import Optional

logger = logging.getLogger(__name__)

# Calculate the path to the project root so the .env file is found from any working directory.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Load environment variables from the .env file in the root directory.
dotenv_path = os.path.join(BASE_DIR, '.env')
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path)
else:
    logger.debug(f".env file not found at {dotenv_path}. Using system environment variables.")


def _get_float(name: str, default: float) -> float:
    """Reads a float variable, falling back to the default on malformed input."""
    raw: Optional[str] = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}. Using default {default}.")
        return default


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


# --- QUERY & RACE DEFAULTS ---
CEP_QUERY: str = os.getenv("CEP_QUERY", "06341650")
RACE_TIMEOUT: float = _get_float("RACE_TIMEOUT", 1.0)
RACE_POLICY: str = os.getenv("RACE_POLICY", "fail_fast").strip().lower()

# Upper bound for a single provider request; the race deadline usually cuts in first.
REQUEST_TIMEOUT: float = _get_float("REQUEST_TIMEOUT", 5.0)

# --- PROVIDER ENDPOINTS ---
BRASILAPI_URL: str = os.getenv("BRASILAPI_URL", "https://brasilapi.com.br/api/cep/v1").rstrip("/")
VIACEP_URL: str = os.getenv("VIACEP_URL", "http://viacep.com.br/ws").rstrip("/")

# --- SAFETY & SIMULATION FLAGS ---
# True = Race offline mock providers instead of the public APIs.
USE_MOCK_DATA: bool = _get_bool("USE_MOCK_DATA")

# --- LOGGING LEVEL ---
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

VALID_POLICIES = ("fail_fast", "await_all_or_success")


def get_log_level() -> str:
    """Returns LOG_LEVEL when logging knows it, INFO otherwise."""
    if isinstance(logging.getLevelName(LOG_LEVEL), int):
        return LOG_LEVEL
    logger.warning(f"Unknown LOG_LEVEL {LOG_LEVEL!r}. Falling back to INFO.")
    return "INFO"


# --- VALIDATION ---
def validate_config() -> None:
    """
    Checks configured values at startup.
    Only warns: hard validation happens when the coordinator is built.
    """
    if not RACE_TIMEOUT > 0:
        logger.warning(f"RACE_TIMEOUT must be positive, got {RACE_TIMEOUT}. Races will be rejected.")
    if not REQUEST_TIMEOUT > 0:
        logger.warning(f"REQUEST_TIMEOUT must be positive, got {REQUEST_TIMEOUT}.")
    if RACE_POLICY not in VALID_POLICIES:
        logger.warning(f"Unknown RACE_POLICY {RACE_POLICY!r}. Expected one of: {', '.join(VALID_POLICIES)}.")


# Call validation on import
validate_config()

logger.debug(f"CEP Race Config Loaded | Mock Mode: {USE_MOCK_DATA} | Timeout: {RACE_TIMEOUT}s | Policy: {RACE_POLICY}")
