"""Application settings and configuration.

This module defines all configuration options for the Nexus Campus service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_EVENT_BADGES = [
    "Team Player",
    "Leadership",
    "Innovation",
    "Problem Solver",
    "Research Excellence",
    "Community Impact",
    "Outstanding Presentation",
    "Top Contributor",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Nexus Campus", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # JWT identity settings
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Database configuration
    database_url: str = Field(default="sqlite:///./nexus.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Signed internal requests (ads component)
    ads_hmac_secret: str | None = Field(default=None, alias="ADVANCEMENT_HMAC_SECRET")
    replay_backend: str = Field(default="memory", alias="REPLAY_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Capacity-bounded claims
    claim_retries: int = Field(default=1, ge=0, alias="CLAIM_RETRIES")

    # Moderation and eligibility
    project_auto_approve: bool = Field(default=True, alias="PROJECT_AUTO_APPROVE")
    # Comma-separated; matched case-insensitively against badge definition names.
    event_required_badge_names: str = Field(
        default=",".join(_DEFAULT_EVENT_BADGES),
        alias="EVENT_REQUIRED_BADGE_NAMES",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def required_event_badges(self) -> list[str]:
        """Return the badge names a student needs before proposing events, lowercased."""
        names = self.event_required_badge_names.split(",")
        return [name.strip().lower() for name in names if name.strip()]


settings = Settings()  # type: ignore[call-arg]
