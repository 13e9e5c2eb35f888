"""Configuration management for repodrop."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "repodrop"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # GitHub Configuration
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TIMEOUT_SECONDS: int = 30
    GITHUB_FETCH_ATTEMPTS: int = 3  # Only metadata reads are retried
    DEFAULT_BRANCH: str = "main"

    # Spreadsheet Converter Configuration
    CONVERTER_SERVICE_URL: str = ""  # Empty = convert in-process
    CONVERTER_TIMEOUT_SECONDS: int = 60

    # Upload Constraints
    MAX_UPLOAD_MB: int = 50
    DIRECTORY_BATCH_SIZE: int = 100  # Children returned per directory listing call

    # Progress ticker (cosmetic, not byte based)
    PROGRESS_INTERVAL_SECONDS: float = 0.2
    PROGRESS_STEP: int = 10
    PROGRESS_CAP: int = 90

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_UPLOAD_MB to bytes."""
        return self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def converter_enabled_remote(self) -> bool:
        """Whether conversions go through the converter service."""
        return bool(self.CONVERTER_SERVICE_URL.strip())


# Singleton settings instance
settings = Settings()
