## app/core/config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the application
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "development"
    allowed_cors_urls: str = "http://localhost:3000"

    database_url: Optional[str] = None
    db_host: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    db_database: Optional[str] = None
    db_port: int = 3306

    log_level: str = "INFO"
    log_json: bool = False

    app_base_url: str = "http://localhost:3000"
    root_domain: str = "rooms4rentlv.com"

    # Lease signing
    signing_link_expiry_hours: int = 24
    reminder_lookback_days: int = 7
    cron_secret: Optional[str] = None
    wkhtmltopdf_path: Optional[str] = None

    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    aws_ses_sender_email: Optional[str] = None
    s3_bucket_name: Optional[str] = None
    s3_public_base_url: Optional[str] = None

    # Structured trace events
    trace_ingest_url: Optional[str] = None
    trace_timeout_seconds: float = 2.0

    @property
    def db_url(self) -> str:
        """
        Sync database URL
        """
        if self.database_url:
            return self.database_url
        if self.db_host:
            return f"mysql+pymysql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_database}"
        return "sqlite:///./leases.db"

    @property
    def signing_base_url(self) -> str:
        """
        Base URL used to build public signing links
        """
        return self.app_base_url.rstrip("/")


settings = Settings()
