"""Application settings and configuration.

This module defines all configuration options for the Taletree service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Taletree", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Bearer tokens are issued by the external identity service; we only verify them.
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./taletree.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    # Development convenience; deployments run Alembic migrations instead.
    auto_create_tables: bool = Field(default=False, alias="AUTO_CREATE_TABLES")

    # Optimistic transaction retry policy
    tx_max_attempts: int = Field(default=5, ge=1, alias="TX_MAX_ATTEMPTS")
    tx_backoff_base_seconds: float = Field(default=0.01, ge=0, alias="TX_BACKOFF_BASE_SECONDS")
    tx_backoff_max_seconds: float = Field(default=0.2, ge=0, alias="TX_BACKOFF_MAX_SECONDS")
    tx_backoff_jitter: bool = Field(default=True, alias="TX_BACKOFF_JITTER")

    # Store paging for lazily read sequences (tree units, comment threads)
    store_page_size: int = Field(default=200, ge=1, alias="STORE_PAGE_SIZE")

    # Content limits
    unit_min_length: int = Field(default=1, ge=1, alias="UNIT_MIN_LENGTH")
    unit_max_length: int = Field(default=50_000, ge=1, alias="UNIT_MAX_LENGTH")
    comment_max_length: int = Field(default=5_000, ge=1, alias="COMMENT_MAX_LENGTH")
    comment_max_depth: int = Field(default=8, ge=0, alias="COMMENT_MAX_DEPTH")
    title_min_length: int = Field(default=0, ge=0, alias="TITLE_MIN_LENGTH")
    title_max_length: int = Field(default=150, ge=1, alias="TITLE_MAX_LENGTH")
    excerpt_length: int = Field(default=150, ge=0, alias="EXCERPT_LENGTH")
    traversal_page_limit: int = Field(default=500, ge=1, alias="TRAVERSAL_PAGE_LIMIT")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
