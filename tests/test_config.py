import pytest

from forge_client import config
from forge_client.services.signed_upload import load_upload_settings
from forge_client.services.upload_plan import MEGABYTE


def test_get_host_defaults_to_aps_production(monkeypatch):
    monkeypatch.delenv("FORGE_HOST", raising=False)

    assert config.get_host() == "https://developer.api.autodesk.com"


def test_load_upload_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("FORGE_UPLOAD_CHUNK_SIZE_MB", "8")
    monkeypatch.setenv("FORGE_UPLOAD_MINUTES_EXPIRATION", "15")
    monkeypatch.setenv("FORGE_UPLOAD_REFRESH_EXPIRED_URLS", "yes")

    settings = load_upload_settings()

    assert settings.chunk_size == 8 * MEGABYTE
    assert settings.minutes_expiration == 15
    assert settings.refresh_expired_urls is True


def test_load_upload_settings_defaults(monkeypatch):
    for name in (
        "FORGE_UPLOAD_CHUNK_SIZE_MB",
        "FORGE_UPLOAD_MINUTES_EXPIRATION",
        "FORGE_UPLOAD_REFRESH_EXPIRED_URLS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_upload_settings()

    assert settings.chunk_size == 100 * MEGABYTE
    assert settings.minutes_expiration == 60
    assert settings.refresh_expired_urls is False
    assert settings.max_parts_per_request == 25


def test_invalid_integer_setting_is_reported(monkeypatch):
    monkeypatch.setenv("FORGE_UPLOAD_CHUNK_SIZE_MB", "lots")

    with pytest.raises(ValueError, match="FORGE_UPLOAD_CHUNK_SIZE_MB"):
        config.get_upload_chunk_size_mb()
