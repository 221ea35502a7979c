from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations like changing user_role

    # Storage
    attachments_bucket: str = "attachments"
    attachments_prefix: str = "post-attachments"
    max_attachment_bytes: int = 10 * 1024 * 1024

    # Group workflow
    saga_compensate: bool = False  # Opt in to undoing completed steps when a multi-step write fails
    stats_max_workers: int = 8  # Fan-out width for per-post like/comment counts

    # Realtime
    realtime_queue_size: int = 100

    # App
    app_name: str = "uninote-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
