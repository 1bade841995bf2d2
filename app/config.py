from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Supabase settings (auth, postgres, object storage)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_JWKS_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_DB_URL: str = ""
    STORAGE_TIMEOUT_SECONDS: float = 30.0

    # Redis settings (job locks)
    UPSTASH_REDIS_REST_URL: str = ""
    UPSTASH_REDIS_REST_TOKEN: str = ""

    # Contact token hashing
    HASHING_SECRET: str | None = None
    CONTACT_UPLOAD_PREFIX: str = "linkedin_uploads"

    # Push gateway (Firebase Cloud Messaging HTTP v1)
    FCM_PROJECT_ID: str | None = None
    FCM_CLIENT_EMAIL: str | None = None
    FCM_PRIVATE_KEY: str | None = None
    FCM_TOKEN_URI: str = "https://oauth2.googleapis.com/token"
    FCM_BASE_URL: str = "https://fcm.googleapis.com"
    FCM_TIMEOUT_SECONDS: float = 10.0

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 3
    DB_POOL_MAX_SIZE: int = 12
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    # =================================================================
    # PIPELINE LIMITS
    # =================================================================
    RESOLVER_FIRST_DEGREE_LIMIT: int = 1000
    RESOLVER_SECOND_HOP_LIMIT: int = 200
    DEVICE_TOKEN_LOOKUP_LIMIT: int = 500
    FANOUT_MAX_CONCURRENCY: int = 50
    OVERLAP_QUERY_LIMIT: int = 1000
    REAPER_PAGE_SIZE: int = 500
    ALERT_RETENTION_DAYS: int = 30
    GRAPH_SHARD_COUNT: int = 1

    # =================================================================
    # SCHEDULES
    # =================================================================
    GRAPH_BUILD_ENABLED: bool = True
    GRAPH_BUILD_INTERVAL_HOURS: float = 6.0
    REAPER_ENABLED: bool = True
    REAPER_INTERVAL_HOURS: float = 24.0
    JOB_LOCK_TTL_SECONDS: int = 3600
    JOB_RETRY_DELAY_SECONDS: int = 300

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # derive sensible defaults if not provided
    def jwks_url(self) -> str:
        if self.SUPABASE_JWKS_URL:
            return self.SUPABASE_JWKS_URL
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/auth/v1/.well-known/jwks.json"

    def project_ref(self) -> str | None:
        """
        Extract the Supabase project ref from SUPABASE_URL host, e.g.
        https://ykvceus...supabase.co -> ykvceus...
        """
        try:
            host = urlparse(self.SUPABASE_URL).hostname or ""
            return host.split(".")[0]
        except Exception:
            return None

    def storage_base_url(self) -> str:
        return f"{self.SUPABASE_URL.rstrip('/')}/storage/v1"

    def fcm_send_url(self) -> str:
        return f"{self.FCM_BASE_URL.rstrip('/')}/v1/projects/{self.FCM_PROJECT_ID}/messages:send"

    def fcm_configured(self) -> bool:
        return bool(self.FCM_PROJECT_ID and self.FCM_CLIENT_EMAIL and self.FCM_PRIVATE_KEY)

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 2,
                    "max_size": 6,
                    "timeout": 15.0,
                }
            )

        return config

    def get_pipeline_limits(self) -> dict:
        """Page-size caps applied by the resolver, fan-out and reaper."""
        return {
            "first_degree_limit": self.RESOLVER_FIRST_DEGREE_LIMIT,
            "second_hop_limit": self.RESOLVER_SECOND_HOP_LIMIT,
            "device_token_limit": self.DEVICE_TOKEN_LOOKUP_LIMIT,
            "fanout_concurrency": self.FANOUT_MAX_CONCURRENCY,
            "reaper_page_size": self.REAPER_PAGE_SIZE,
            "alert_retention_days": self.ALERT_RETENTION_DAYS,
        }


settings = Settings()
