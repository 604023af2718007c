from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./signaling.db", description="Database connection string")
    SECRET_KEY: str = Field(default="your-secret-key-change-this-in-production", description="JWT secret key used to verify principal tokens")
    ALGORITHM: str = Field(default="HS256", description="Algorithm for JWT (e.g., HS256)")
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3003", "http://localhost:3000", "http://localhost:5173"],
        description="Origins allowed to call the API from a browser",
    )
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    # Per-call serialization
    LOCK_STRIPES: int = Field(default=64, description="Number of striped locks shared by all calls")
    LOCK_TIMEOUT_SECONDS: float = Field(default=2.0, description="How long one attempt waits for a call lock")
    CONTENTION_RETRY_ATTEMPTS: int = Field(default=3, description="Attempts before contention surfaces as an error")
    CONTENTION_RETRY_DELAY_SECONDS: float = Field(default=0.05, description="Base delay between contention retries")

    # Polling / sweeping
    POLL_INTERVAL_SECONDS: float = Field(default=2.0, description="Poll interval advertised to clients")
    UNANSWERED_CALL_TIMEOUT_SECONDS: Optional[int] = Field(
        default=None,
        description="Age after which the sweeper ends unanswered calls (unset disables sweeping)",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
