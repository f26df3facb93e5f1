from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when the process cannot start with the supplied configuration."""


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_env: str = Field("development", description="development, test or production")
    api_title: str = Field("Department Board API")
    log_level: str = Field("INFO")

    database_url: str = Field("sqlite:///board.db")

    jwt_secret: str | None = Field(None, description="HS256 signing key; required in production")
    jwt_algorithm: str = Field("HS256")
    token_ttl_days: int = Field(7, gt=0)
    bcrypt_rounds: int = Field(12, ge=4, le=31)

    department_name: str = Field("Computer Science")

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "https://cscdepartmentboardgroup19a.netlify.app",
            "https://cscdepartmentboardgroup19.netlify.app",
            "http://localhost:3000",
            "http://localhost:5000",
        ]
    )

    upload_dir: str = Field("uploads")
    max_upload_bytes: int = Field(10 * 1024 * 1024)
    max_profile_image_bytes: int = Field(5 * 1024 * 1024)

    rate_limit_enabled: bool = Field(True)
    auth_rate_limit: str = Field("5/minute")

    seed_admin_email: str = Field("admin@cs.edu.ng")
    seed_admin_password: str | None = Field(None)

    model_config = SettingsConfigDict(env_file=(".env",), extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"


def validate_runtime_config(config: "Settings") -> None:
    """Fail fast on settings that would make the deployment unsafe."""
    if config.is_production and not config.jwt_secret:
        raise ConfigurationError("JWT_SECRET must be set in production.")
    if config.is_production and config.jwt_secret and len(config.jwt_secret) < 32:
        raise ConfigurationError("JWT_SECRET must be at least 32 characters in production.")


settings = Settings()
