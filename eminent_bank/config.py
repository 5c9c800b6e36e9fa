"""
Configuration for the transfer service.

Values come from the environment, optionally seeded from a .env file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from eminent_bank.exceptions import ConfigurationError

IDENTITY_BACKENDS = ("local", "http")


@dataclass
class Settings:
    """Runtime settings for the service."""

    database_url: str
    sql_echo: bool = False
    identity_backend: str = "local"
    identity_base_url: Optional[str] = None
    identity_api_key: Optional[str] = None
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 60
    request_timeout: float = 10.0
    transfer_session_timeout_minutes: int = 15
    transfer_classification: str = "Customer Transfer"
    default_transfer_purpose: str = "General Transfer"
    log_level: str = "INFO"
    log_dir: Path = field(default_factory=lambda: Path("logs"))

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL not set")
        if self.identity_backend not in IDENTITY_BACKENDS:
            raise ConfigurationError(
                f"IDENTITY_BACKEND must be one of {', '.join(IDENTITY_BACKENDS)}, got {self.identity_backend!r}"
            )
        if self.identity_backend == "http" and not self.identity_base_url:
            raise ConfigurationError("IDENTITY_BASE_URL is required when IDENTITY_BACKEND=http")

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """Create settings from environment variables."""
        if load_env_file:
            load_dotenv(find_dotenv(usecwd=True), override=False)

        try:
            return cls(
                database_url=os.getenv("DATABASE_URL", ""),
                sql_echo=os.getenv("SQL_ECHO", "false").lower() == "true",
                identity_backend=os.getenv("IDENTITY_BACKEND", "local").lower(),
                identity_base_url=os.getenv("IDENTITY_BASE_URL") or None,
                identity_api_key=os.getenv("IDENTITY_API_KEY") or None,
                jwt_secret=os.getenv("JWT_SECRET", "change-me"),
                jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
                access_token_ttl_minutes=int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "60")),
                request_timeout=float(os.getenv("REQUEST_TIMEOUT", "10")),
                transfer_session_timeout_minutes=int(os.getenv("TRANSFER_SESSION_TIMEOUT_MINUTES", "15")),
                transfer_classification=os.getenv("TRANSFER_CLASSIFICATION", "Customer Transfer"),
                default_transfer_purpose=os.getenv("DEFAULT_TRANSFER_PURPOSE", "General Transfer"),
                log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
                log_dir=Path(os.getenv("LOG_DIR", "logs")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e
