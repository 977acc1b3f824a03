"""
HTTP front end settings.

The API token is read from API_AUTH_TOKEN, or from the file named by
API_AUTH_TOKEN_FILE when mounted as a secret. An empty token leaves the
protected routes answering 503.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv
from loguru import logger

from envoice import __version__

load_dotenv()

DEFAULT_ALLOWED_HOSTS = "localhost,127.0.0.1"


def read_token_file(token_file: str) -> str:
    """
    Read a token from a secret file.

    Args:
        token_file: Path of the file holding the token.

    Returns:
        The stripped token, or "" when the file is missing, empty or unreadable.
    """
    path = Path(token_file)
    try:
        token = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.warning(f"API token file not found: {token_file}")
        return ""
    except OSError as exc:
        logger.error(f"Failed to read API token file {token_file}: {exc}")
        return ""
    if not token:
        logger.warning(f"API token file {token_file} is empty")
    return token


def split_hosts(value: str) -> List[str]:
    return [host.strip() for host in value.split(",") if host.strip()]


@dataclass
class ApiSettings:
    """Settings for the sync API."""

    api_token: str
    environment: str = "development"
    debug: bool = False
    allowed_hosts: List[str] = field(default_factory=lambda: split_hosts(DEFAULT_ALLOWED_HOSTS))
    host: str = "0.0.0.0"
    port: int = 8000
    api_title: str = "envoice Sync API"
    api_version: str = __version__
    api_description: str = (
        "Billing document sync between the Magaya ERP and the LaFactura.co signing service"
    )

    @classmethod
    def load_from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ApiSettings":
        env = os.environ if environ is None else environ

        token = env.get("API_AUTH_TOKEN", "")
        if not token and env.get("API_AUTH_TOKEN_FILE"):
            token = read_token_file(env["API_AUTH_TOKEN_FILE"])

        return cls(
            api_token=token,
            environment=env.get("ENVIRONMENT", "development"),
            debug=env.get("DEBUG", "false").lower() == "true",
            allowed_hosts=split_hosts(env.get("ALLOWED_HOSTS", DEFAULT_ALLOWED_HOSTS)),
            host=env.get("API_HOST", "0.0.0.0"),
            port=int(env.get("API_PORT", "8000")),
        )

    def is_production(self) -> bool:
        return self.environment == "production"


settings = ApiSettings.load_from_env()
logger.info(f"API settings loaded for environment: {settings.environment}")
