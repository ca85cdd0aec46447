"""
Central configuration module for Classmate Hub
Reads and validates environment variables with strict checks for production
"""
import os
import sys
from typing import Optional, List

from dotenv import load_dotenv

# Only load .env in development
if os.getenv("ENV", "dev").lower() == "dev":
    load_dotenv()


DEFAULT_SECRET_KEY = "your-secret-key-change-in-production-min-32-chars"


class Config:
    """Central configuration class with environment variable validation"""

    def __init__(self):
        """Read environment, then validate required variables"""
        # Environment
        self.ENV: str = os.getenv("ENV", "dev").lower()

        # Required for all environments
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "")
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "")
        self.PORT: int = int(os.getenv("PORT", "8000"))

        # Public URLs
        self.APP_URL: str = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
        self.API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000").rstrip("/")
        self.FRONTEND_CALLBACK_URL: str = os.getenv(
            "FRONTEND_CALLBACK_URL",
            f"{self.APP_URL}/auth/callback"
        )

        # CORS
        self.CORS_ORIGINS: List[str] = []

        # OAuth (optional)
        self.GOOGLE_CLIENT_ID: Optional[str] = os.getenv("GOOGLE_CLIENT_ID")
        self.GOOGLE_CLIENT_SECRET: Optional[str] = os.getenv("GOOGLE_CLIENT_SECRET")

        # Outbound email (optional - falls back to console logging)
        self.SMTP_HOST: Optional[str] = os.getenv("SMTP_HOST")
        self.SMTP_PORT: int = self._int_env("SMTP_PORT", 465)
        self.SMTP_USER: Optional[str] = os.getenv("SMTP_USER")
        self.SMTP_PASSWORD: Optional[str] = os.getenv("SMTP_PASSWORD")
        self.SMTP_FROM_ADDRESS: str = os.getenv("SMTP_FROM_ADDRESS", "noreply@example.com")

        # Image host
        self.STORAGE_PROVIDER: str = os.getenv("STORAGE_PROVIDER", "local").lower()
        self.STORAGE_PATH: str = os.getenv("STORAGE_PATH", "./storage")
        self.S3_BUCKET_NAME: Optional[str] = os.getenv("S3_BUCKET_NAME")
        self.S3_ENDPOINT_URL: Optional[str] = os.getenv("S3_ENDPOINT_URL")
        self.S3_PUBLIC_BASE_URL: Optional[str] = os.getenv("S3_PUBLIC_BASE_URL")
        self.AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")

        # Sessions and passwords
        self.SESSION_MAX_AGE_DAYS: int = self._int_env("SESSION_MAX_AGE_DAYS", 30)
        self.SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "session_token")
        self.BCRYPT_ROUNDS: int = self._int_env("BCRYPT_ROUNDS", 12)

        # Database pool
        self.DB_POOL_SIZE: int = self._int_env("DB_POOL_SIZE", 5)
        self.DB_MAX_OVERFLOW: int = self._int_env("DB_MAX_OVERFLOW", 10)
        self.DB_POOL_RECYCLE: int = self._int_env("DB_POOL_RECYCLE", 900)
        self.DB_POOL_TIMEOUT: int = self._int_env("DB_POOL_TIMEOUT", 30)

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self._load_cors_origins()
        self._validate()

    @staticmethod
    def _int_env(name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            print(f"  ⚠️  Invalid integer for {name}: {raw!r}, using {default}", file=sys.stderr)
            return default

    def _load_cors_origins(self):
        """Load CORS origins from environment variable"""
        default_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]

        cors_env = os.getenv("CORS_ORIGINS", "")
        if cors_env:
            env_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
            self.CORS_ORIGINS = default_origins + env_origins
        else:
            self.CORS_ORIGINS = default_origins

    def _validate(self):
        """Validate required configuration based on environment"""
        errors = []

        if self.ENV not in ["dev", "test", "staging", "prod"]:
            errors.append(f"Invalid ENV value: {self.ENV}. Must be 'dev', 'test', 'staging', or 'prod'")

        # SECRET_KEY signs every session token
        if not self.SECRET_KEY:
            errors.append("SECRET_KEY is required but not set")
        elif len(self.SECRET_KEY) < 32:
            errors.append(f"SECRET_KEY must be at least 32 characters (current: {len(self.SECRET_KEY)})")
        elif self.ENV in ["staging", "prod"] and self.SECRET_KEY == DEFAULT_SECRET_KEY:
            errors.append("SECRET_KEY must be changed from default value in non-dev environments")

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required but not set")

        if self.STORAGE_PROVIDER not in ["local", "s3"]:
            errors.append(f"STORAGE_PROVIDER must be 'local' or 's3' (got: {self.STORAGE_PROVIDER})")
        elif self.STORAGE_PROVIDER == "s3" and not self.S3_BUCKET_NAME:
            errors.append("S3_BUCKET_NAME is required when STORAGE_PROVIDER is 's3'")

        if bool(self.GOOGLE_CLIENT_ID) != bool(self.GOOGLE_CLIENT_SECRET):
            errors.append("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set together")

        if self.ENV in ["staging", "prod"]:
            if not self.APP_URL.startswith("https://"):
                errors.append("APP_URL must use HTTPS in staging/production")
            if not self.API_BASE_URL.startswith("https://"):
                errors.append("API_BASE_URL must use HTTPS in staging/production")
            if not self.DATABASE_URL.startswith("postgresql"):
                errors.append("DATABASE_URL must be a PostgreSQL connection string in staging/production")

        # Fail fast in staging/prod
        if errors and self.ENV in ["staging", "prod"]:
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION VALIDATION FAILED", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  ❌ {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            sys.exit(1)

        if errors and self.ENV == "dev":
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION WARNINGS (dev mode - continuing)", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  ⚠️  {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode"""
        return self.ENV == "dev"

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode"""
        return self.ENV == "prod"

    @property
    def google_oauth_enabled(self) -> bool:
        return bool(self.GOOGLE_CLIENT_ID and self.GOOGLE_CLIENT_SECRET)

    @property
    def secure_cookies(self) -> bool:
        return self.ENV in ["staging", "prod"]


# Create global config instance
config = Config()
