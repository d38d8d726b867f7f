"""Tests for pydantic-settings configuration."""

from notes_app.config import Settings, get_settings


class TestConfig:
    def test_settings_loads_defaults(self):
        settings = Settings(JWT_SECRET="test-secret")

        assert settings.JWT_ALGORITHM == "HS256"
        assert settings.STORAGE_KEY_PREFIX == "notes"
        assert settings.SIGNED_URL_EXPIRES_IN == 900

    def test_cors_origins_split(self):
        settings = Settings(CORS_ORIGINS="http://a.test, http://b.test,,")

        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("BACKEND_URL", "https://backend.example.com")
        monkeypatch.setenv("SIGNED_URL_EXPIRES_IN", "60")

        settings = Settings()

        assert settings.BACKEND_URL == "https://backend.example.com"
        assert settings.SIGNED_URL_EXPIRES_IN == 60

    def test_get_settings_returns_cached_instance(self):
        assert get_settings() is get_settings()
