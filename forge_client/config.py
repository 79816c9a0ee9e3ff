import os
from pathlib import Path

from dotenv import load_dotenv


_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(_ENV_PATH, override=False)

_TRUTHY_VALUES = {"1", "true", "yes", "on"}


def _get_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _get_int_env(name: str, default: int) -> int:
    value = _get_env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def get_client_id() -> str | None:
    return _get_env("FORGE_CLIENT_ID")


def get_client_secret() -> str | None:
    return _get_env("FORGE_CLIENT_SECRET")


def get_host() -> str:
    """Return the APS host, e.g. for switching to a staging environment."""
    return _get_env("FORGE_HOST") or "https://developer.api.autodesk.com"


def get_redirect_uri() -> str:
    return _get_env("FORGE_REDIRECT_URI") or "http://localhost:3000/cb"


def get_region() -> str:
    return _get_env("FORGE_REGION") or "US"


def get_upload_chunk_size_mb() -> int:
    return _get_int_env("FORGE_UPLOAD_CHUNK_SIZE_MB", 100)


def get_upload_minutes_expiration() -> int:
    return _get_int_env("FORGE_UPLOAD_MINUTES_EXPIRATION", 60)


def get_upload_refresh_expired_urls() -> bool:
    value = _get_env("FORGE_UPLOAD_REFRESH_EXPIRED_URLS")
    return value is not None and value.lower() in _TRUTHY_VALUES


def get_log_level() -> str:
    return (_get_env("FORGE_LOG_LEVEL") or "INFO").upper()
