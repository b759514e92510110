"""
API configuration settings.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class CountFailurePolicy(str, Enum):
    """What to do when one per-author count query fails."""
    FAIL = "fail"
    SKIP = "skip"


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Catalog API"
    api_version: str = "1.0.0"
    api_description: str = """
    Read-only endpoints over the Authors, Books and Countries tables.

    ## Authentication

    Every catalog endpoint requires a Supabase access token:

    ```
    Authorization: Bearer your_access_token
    ```

    ## Actions

    Behaviour is selected with the `action` query parameter.
    """

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Supabase Settings (empty values are allowed, see is_store_configured)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    request_timeout: float = 30.0

    # Action behaviour
    count_failure_policy: CountFailurePolicy = CountFailurePolicy.FAIL
    strict_author_actions: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"  # Ignore extra fields from .env
    }

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError("request_timeout must be between 1 and 300 seconds")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    def is_store_configured(self) -> bool:
        """Check whether both the Supabase URL and key are set."""
        return bool(self.supabase_url) and bool(self.supabase_anon_key)

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None


# Global config instance
config = APIConfig()
