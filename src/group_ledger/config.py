"""Configuration management for group-ledger."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GROUP_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Expense store
    store_base_url: str = "http://localhost:5001"
    request_timeout: float = 30.0

    # Session credentials (sent as a cookie on every request)
    session_token: str | None = None
    session_cookie_name: str = "token"

    # Display
    currency_symbol: str = "Rs"


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Make sure your .env file defines the "
            f"GROUP_LEDGER_* variables. See .env.example for reference.\n"
            f"Error: {e}"
        ) from e
