"""
Gold Bottom Ent. Portal — Configuration via environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """All settings read from env / .env file."""

    # Company
    company_name: str = Field(default="Gold Bottom Ent. LLC")
    company_short_name: str = Field(default="GBE")

    # Persistent store
    database_url: str = Field(
        default="sqlite:///./portal.db",
        description="SQLAlchemy URL for the key-value store",
    )
    storage_prefix: str = Field(default="gbe-", description="Prefix for every store key")
    storage_quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Total bytes the store accepts before writes fail",
    )

    # Auth
    enable_auth: bool = Field(default=True, description="Guard dashboard routes")
    site_host: str = Field(default="localhost", description="Host the portal is served from")
    private_hosts: list[str] = Field(
        default_factory=list,
        description="Extra hostnames treated as the private network",
    )
    local_auth_url: str = Field(
        default="http://localhost:3000/api/auth",
        description="Local secret verification service (private network only)",
    )
    local_session_ttl_hours: float = Field(
        default=12.0,
        description="Max age of a persisted local session token; 0 disables the check",
    )
    registration_fail_open: bool = Field(
        default=True,
        description="Grant access when the registration check cannot reach the backend",
    )
    session_header: str = Field(default="X-GBE-Session")

    # Firebase
    firebase_cred_path: str = Field(
        default="", description="Path to Firebase service account key JSON"
    )
    firebase_db_url: str = Field(
        default="https://goldbottoment-default-rtdb.firebaseio.com",
        description="Firebase RTDB URL",
    )

    # Content
    content_base_url: str = Field(default="http://localhost:3000/")
    http_timeout: float = Field(default=10.0, description="Seconds before any external call gives up")
    transition_duration: float = Field(default=0.25, description="Seconds per fade step")

    # Data layer
    activity_limit: int = Field(default=50)

    # Features
    enable_analytics: bool = Field(default=False)
    debug_mode: bool = Field(default=False)

    @property
    def session_token_key(self) -> str:
        return f"{self.storage_prefix}session-token"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
