"""
Library Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Invalid config is rejected when settings are constructed.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Library settings loaded from PURCHASEKIT_* environment variables."""

    # Receipt verification endpoints
    production_verify_url: str = "https://buy.itunes.apple.com/verifyReceipt"
    sandbox_verify_url: str = "https://sandbox.itunes.apple.com/verifyReceipt"
    verify_timeout_seconds: float = 30.0  # Transport timeout per verification call
    max_sandbox_redirects: int = 1  # Hops to sandbox allowed per validation

    # Local state
    flag_store_path: str = ""  # Empty = in-memory flag store
    receipt_path: str = ""  # Local receipt file for FileReceiptSource
    notification_history_size: int = 100

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console
    service_name: str = "purchasekit"
    version: str = "0.1.0"

    # Observability - Metrics
    metrics_enabled: bool = True

    model_config = SettingsConfigDict(
        env_prefix="PURCHASEKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate configuration on construction.

        A manager built from broken settings would only fail on the first
        network call, long after startup.
        """
        errors: list[str] = []

        for name in ("production_verify_url", "sandbox_verify_url"):
            url = getattr(self, name)
            if not url.startswith(("https://", "http://")):
                errors.append(f"{name.upper()} must be an http(s) URL, got: {url[:40]!r}")

        if self.verify_timeout_seconds <= 0:
            errors.append(
                f"VERIFY_TIMEOUT_SECONDS must be positive, got: {self.verify_timeout_seconds}"
            )
        if self.max_sandbox_redirects < 0:
            errors.append(
                f"MAX_SANDBOX_REDIRECTS cannot be negative, got: {self.max_sandbox_redirects}"
            )
        if self.notification_history_size <= 0:
            errors.append(
                "NOTIFICATION_HISTORY_SIZE must be positive, "
                f"got: {self.notification_history_size}"
            )

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "PURCHASEKIT CONFIGURATION ERROR",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get library settings instance."""
    return settings
