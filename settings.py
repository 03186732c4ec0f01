from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default: float, *, cast=float):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    # Firestore
    firebase_project_id: str
    firebase_api_key: str
    # Overrides the public endpoint, e.g. to point at the emulator.
    firestore_base_url: str

    # Store calls
    store_timeout_seconds: float
    store_page_size: int

    # Debug
    debug_log_requests: bool


def get_settings() -> Settings:
    return Settings(
        firebase_project_id=os.getenv("FIREBASE_PROJECT_ID", "").strip(),
        firebase_api_key=os.getenv("FIREBASE_API_KEY", "").strip(),
        firestore_base_url=os.getenv("FIRESTORE_BASE_URL", "").strip().rstrip("/"),
        store_timeout_seconds=_env_number("STORE_TIMEOUT_SECONDS", 30.0),
        store_page_size=_env_number("STORE_PAGE_SIZE", 300, cast=int),
        debug_log_requests=_env_bool("DEBUG_LOG_REQUESTS", False),
    )


def load_settings(env_file: str = "local.env") -> Settings:
    """Read ``env_file`` (if present) into the environment, then build Settings."""
    load_dotenv(env_file)
    return get_settings()
