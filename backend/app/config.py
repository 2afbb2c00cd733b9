"""
TreeSpotter Backend - Application Configuration
================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before the app starts.

Database credentials come in the same shape the deployment has always supplied
them (DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME). A complete DATABASE_URL
overrides them, which is what the test suite and local SQLite runs use.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Production deployments MUST override
    the credentials and JWT_SECRET.
    """

    # ── Database ──────────────────────────────────────────────────────────
    db_driver: str = Field(default="postgresql+asyncpg")
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_user: str = Field(default="treespotter")
    db_password: str = Field(default="treespotter_secret")
    db_name: str = Field(default="treespotter")

    # Full SQLAlchemy URL; when set, the DB_* parts above are ignored
    database_url: Optional[str] = Field(default=None)

    db_pool_size: int = Field(default=20, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # Seconds to wait for a pooled connection before giving up
    db_pool_timeout: int = Field(default=30, ge=1, le=300)

    # Upper bound for a single statement (asyncpg command_timeout)
    db_command_timeout: int = Field(default=15, ge=1, le=300)

    # Startup connection retry: fixed delay, bounded attempts
    db_connect_attempts: int = Field(default=30, ge=1, le=1000)
    db_connect_wait: float = Field(default=2.0, ge=0, le=60)

    @property
    def sqlalchemy_url(self) -> str:
        """Returns the override URL or assembles one from the DB_* parts."""
        if self.database_url:
            return self.database_url
        return URL.create(
            drivername=self.db_driver,
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        ).render_as_string(hide_password=False)

    # ── Auth ──────────────────────────────────────────────────────────────
    jwt_secret: str = Field(default="")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_hours: int = Field(default=24, ge=1, le=24 * 30)

    # ── File Storage ──────────────────────────────────────────────────────
    # Directory uploaded tree images are written to. Stored image paths are
    # this directory joined with the generated file name.
    upload_dir: str = Field(default="uploads")

    # 10MB, same ceiling the multipart parser has always enforced
    max_file_size: int = Field(default=10_485_760, ge=1_048_576, le=52_428_800)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8080, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that security-critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises one ValueError listing them.
        """
        errors = []
        if not self.jwt_secret:
            errors.append("JWT_SECRET is not set. Tokens cannot be issued or verified.")
        elif len(self.jwt_secret) < 16:
            errors.append("JWT_SECRET is shorter than 16 characters.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


settings = Settings()
