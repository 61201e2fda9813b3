from pydantic import Field, MongoDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """
    Application configuration settings loaded from environment variables.
    Provides validation and type casting for all settings.
    """

    service_name: str = Field(default="livedesk", alias="SERVICE_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    json_logs: bool = Field(default=False, alias="JSON_LOGS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    tracing_enabled: bool = Field(default=False, alias="TRACING_ENABLED")

    mongodb_url: MongoDsn = Field(
        default="mongodb://localhost:27017", alias="MONGODB_URL"
    )
    mongodb_database: str = Field(default="livedesk", alias="MONGO_DATABASE")

    upload_max_bytes: int = Field(
        default=50 * 1024 * 1024, alias="UPLOAD_MAX_BYTES", gt=0
    )
    package_fetch_timeout_seconds: float = Field(
        default=30.0, alias="PACKAGE_FETCH_TIMEOUT_SECONDS", gt=0
    )

    api_default_count: int = Field(default=50, alias="API_DEFAULT_COUNT", ge=1)
    api_upper_count_limit: int = Field(
        default=100, alias="API_UPPER_COUNT_LIMIT", ge=1
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )


settings = AppConfig()
