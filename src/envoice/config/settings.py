"""
Pipeline configuration loaded from the environment.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_LAFACTURA_URL = "https://play.tas-la.com/facturacion.v30/"


@dataclass
class Settings:
    """Settings for the sync pipeline."""

    # Persistence
    database_url: str

    # Redis configuration
    redis_url: str
    redis_enabled: bool

    # Signing service
    lafactura_url: str

    # Timeouts (seconds) for outbound HTTP calls
    source_timeout: float
    signing_timeout: float

    # Scheduling
    sync_enabled: bool
    sync_interval_seconds: float
    account_pause_seconds: float

    # Caches
    session_ttl_seconds: int
    guard_ttl_seconds: int

    # Session acquisition retry policy
    session_max_attempts: int
    session_initial_delay: float
    session_backoff_factor: float

    log_level: str

    @classmethod
    def load_from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        lafactura_url = os.getenv("LAFACTURA_URL", DEFAULT_LAFACTURA_URL)
        if not lafactura_url.endswith("/"):
            lafactura_url += "/"

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./envoice.db"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            redis_enabled=os.getenv("REDIS_ENABLED", "false").lower() == "true",
            lafactura_url=lafactura_url,
            source_timeout=float(os.getenv("SOURCE_TIMEOUT_SECONDS", "60")),
            signing_timeout=float(os.getenv("SIGNING_TIMEOUT_SECONDS", "60")),
            sync_enabled=os.getenv("SYNC_ENABLED", "true").lower() == "true",
            sync_interval_seconds=float(os.getenv("SYNC_INTERVAL_SECONDS", "300")),
            account_pause_seconds=float(os.getenv("ACCOUNT_PAUSE_SECONDS", "1.5")),
            session_ttl_seconds=int(os.getenv("SESSION_TTL_SECONDS", "900")),
            guard_ttl_seconds=int(os.getenv("GUARD_TTL_SECONDS", "300")),
            session_max_attempts=int(os.getenv("SESSION_MAX_ATTEMPTS", "3")),
            session_initial_delay=float(os.getenv("SESSION_INITIAL_DELAY", "1.0")),
            session_backoff_factor=float(os.getenv("SESSION_BACKOFF_FACTOR", "2.0")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


# Global settings instance
settings = Settings.load_from_env()
