"""Configuration management for the field exporter."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="",
    )

    # Asana Configuration
    asana_access_token: str = Field(..., description="Asana Personal Access Token")
    asana_workspace_gid: str | None = Field(
        default=None, description="Default workspace GID (prompted for when unset)"
    )
    page_size: int = Field(default=100, description="Records requested per page (Asana max 100)")

    # Discovery batching (per-resource custom field settings)
    discovery_batch_width: int = Field(
        default=5, description="Concurrent settings requests per batch"
    )
    discovery_batch_pause: float = Field(
        default=0.2, description="Seconds to wait between discovery batches"
    )

    # Last-used enrichment batching (task search is heavier upstream)
    enrichment_batch_width: int = Field(
        default=3, description="Concurrent task searches per batch"
    )
    enrichment_batch_pause: float = Field(
        default=0.25, description="Seconds to wait between enrichment batches"
    )
    include_last_used: bool = Field(
        default=False, description="Look up when each field was last used (slow)"
    )

    # Export Configuration
    export_dir: str = Field(default=".", description="Directory for CSV exports")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: json or console")

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError("page_size must be between 1 and 100")
        return v

    @field_validator("discovery_batch_width", "enrichment_batch_width")
    @classmethod
    def validate_width(cls, v: int) -> int:
        if v < 1:
            raise ValueError("batch width must be at least 1")
        return v

    @field_validator("discovery_batch_pause", "enrichment_batch_pause")
    @classmethod
    def validate_pause(cls, v: float) -> float:
        if v < 0:
            raise ValueError("batch pause cannot be negative")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
