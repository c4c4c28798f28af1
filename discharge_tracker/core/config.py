from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"
    port: int = 5000
    log_level: str = "INFO"

    # Security
    secret_key: str = "changeme"  # override in .env
    access_token_expire_minutes: int = 60

    # Database
    database_url: str | None = None
    db_driver: str = "postgresql+psycopg2"
    db_user: str | None = None
    db_password: str | None = None
    db_server: str | None = None
    db_name: str | None = None

    # Redis
    redis_url: str | None = None

    # Push notifications
    push_enabled: bool = False
    fcm_server_key: str | None = None
    fcm_endpoint: str = "https://fcm.googleapis.com/fcm/send"
    push_channel_id: str = "high_importance_channel"
    push_body_max_chars: int = 300

    # SLA monitor
    display_timezone: str = "Asia/Kolkata"
    sla_scan_interval_seconds: int = 60
    sla_scan_lock_ttl_seconds: int = 120

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def sqlalchemy_database_url(self) -> str:
        """
        DATABASE_URL wins; otherwise assemble one from DB_USER / DB_PASSWORD /
        DB_SERVER / DB_NAME.
        """
        if self.database_url:
            return self.database_url
        if not (self.db_server and self.db_name):
            raise ValueError(
                "Database is not configured. Set DATABASE_URL or DB_SERVER and DB_NAME."
            )
        credentials = ""
        if self.db_user:
            credentials = self.db_user
            if self.db_password:
                credentials += f":{self.db_password}"
            credentials += "@"
        return f"{self.db_driver}://{credentials}{self.db_server}/{self.db_name}"


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()
