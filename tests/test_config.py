"""
Tests for environment configuration
"""
import pytest

from classmate_hub.config import Config

VALID_SECRET = "a-sufficiently-long-secret-key-for-config-tests"


@pytest.fixture
def env(monkeypatch):
    """Start every test from a minimal valid test environment"""
    for name in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "CORS_ORIGINS", "S3_BUCKET_NAME",
                 "SESSION_MAX_AGE_DAYS", "BCRYPT_ROUNDS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SECRET_KEY", VALID_SECRET)
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("STORAGE_PROVIDER", "local")
    return monkeypatch


class TestDefaults:
    def test_defaults(self, env):
        settings = Config()
        assert settings.SESSION_MAX_AGE_DAYS == 30
        assert settings.SESSION_COOKIE_NAME == "session_token"
        assert settings.BCRYPT_ROUNDS == 12
        assert settings.FRONTEND_CALLBACK_URL == f"{settings.APP_URL}/auth/callback"
        assert settings.google_oauth_enabled is False
        assert settings.secure_cookies is False
        assert settings.is_dev is False

    def test_cors_origins_extend_defaults(self, env):
        env.setenv("CORS_ORIGINS", "https://hub.example.com, https://staging.example.com ,")
        settings = Config()
        assert settings.CORS_ORIGINS == [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "https://hub.example.com",
            "https://staging.example.com",
        ]

    def test_invalid_integer_falls_back(self, env):
        env.setenv("SESSION_MAX_AGE_DAYS", "thirty")
        assert Config().SESSION_MAX_AGE_DAYS == 30

    def test_google_enabled_with_both_values(self, env):
        env.setenv("GOOGLE_CLIENT_ID", "client-id")
        env.setenv("GOOGLE_CLIENT_SECRET", "client-secret")
        assert Config().google_oauth_enabled is True


class TestValidation:
    def test_test_env_does_not_exit_on_errors(self, env):
        env.setenv("SECRET_KEY", "short")
        settings = Config()
        assert settings.SECRET_KEY == "short"

    def test_prod_exits_on_short_secret(self, env):
        env.setenv("ENV", "prod")
        env.setenv("SECRET_KEY", "short")
        with pytest.raises(SystemExit):
            Config()

    def test_prod_requires_https_and_postgres(self, env):
        env.setenv("ENV", "prod")
        with pytest.raises(SystemExit):
            Config()

    def test_valid_prod(self, env):
        env.setenv("ENV", "prod")
        env.setenv("APP_URL", "https://hub.example.com")
        env.setenv("API_BASE_URL", "https://api.hub.example.com")
        env.setenv("DATABASE_URL", "postgresql://hub:pw@db:5432/hub")
        settings = Config()
        assert settings.is_prod is True
        assert settings.secure_cookies is True

    def test_s3_requires_bucket(self, env):
        env.setenv("ENV", "staging")
        env.setenv("APP_URL", "https://hub.example.com")
        env.setenv("API_BASE_URL", "https://api.hub.example.com")
        env.setenv("DATABASE_URL", "postgresql://hub:pw@db:5432/hub")
        env.setenv("STORAGE_PROVIDER", "s3")
        with pytest.raises(SystemExit):
            Config()
