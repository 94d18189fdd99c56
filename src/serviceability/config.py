"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DIRECTORY_FILE = Path(__file__).resolve().parent / "data" / "pincodes.csv"


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FMS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fish Market Serviceability API"
    api_prefix: str = "/api"
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )
    user_agent: str = Field(default="FishMarketApp/1.0", description="User-Agent sent to upstream pincode APIs.")
    directory_file: Path = Field(
        default=DEFAULT_DIRECTORY_FILE,
        description="CSV table backing the local pincode directory.",
    )

    # Resolver behaviour
    cache_ttl_seconds: int = Field(default=24 * 60 * 60, ge=0, description="Lifetime of a cached remote lookup.")
    rate_limit_window_seconds: float = Field(default=60.0, gt=0.0)
    batch_size: int = Field(default=10, ge=1)
    batch_pause_seconds: float = Field(default=1.0, ge=0.0)
    health_check_pincode: str = Field(default="110001", description="Pincode used when health-checking upstream sources.")

    # Delivery charges
    default_per_kg_rate: float = Field(default=90.0, ge=0.0, description="Flat per-kg rate (also the minimum charge).")

    # Serviceability denylist
    unserviceable_pincodes: tuple[str, ...] = Field(
        default=(),
        description="Pincodes that are never serviceable, whatever the upstream source says.",
    )
    unserviceable_states: tuple[str, ...] = Field(
        default=(),
        description="States (case-insensitive) that are never serviceable.",
    )
    deny_directory_unserviceable: bool = Field(
        default=True,
        description="Also deny pincodes the local directory marks as unserviceable.",
    )

    # data.gov.in open-data source
    datagov_base_url: str = "https://api.data.gov.in/resource"
    datagov_api_key: Optional[str] = Field(default=None, description="data.gov.in API key (required to enable the source).")
    datagov_resource_id: Optional[str] = Field(default=None, description="data.gov.in resource id of the pincode directory.")
    datagov_enabled: bool = True
    datagov_priority: int = 1
    datagov_rate_limit_per_minute: int = Field(default=100, ge=0)
    datagov_timeout_ms: int = Field(default=5000, ge=1)

    # postalpincode.in source
    postalpincode_base_url: str = "https://api.postalpincode.in/pincode"
    postalpincode_enabled: bool = True
    postalpincode_priority: int = 2
    postalpincode_rate_limit_per_minute: int = Field(default=1000, ge=0)
    postalpincode_timeout_ms: int = Field(default=3000, ge=1)

    @field_validator("directory_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "unserviceable_pincodes", "unserviceable_states", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        # Return empty tuple if value is None or empty
        return tuple()

    @field_validator("datagov_api_key", "datagov_resource_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class SourceConfig(BaseModel):
    """Connection and throttling settings for one upstream pincode API."""

    name: str
    kind: str = Field(..., description="Payload family: 'datagov' or 'postalpincode'.")
    base_url: str
    api_key: Optional[str] = None
    resource_id: Optional[str] = None
    enabled: bool = True
    priority: int = 1
    rate_limit_per_minute: int = Field(default=100, ge=0)
    timeout_ms: int = Field(default=5000, ge=1)

    @property
    def requires_credentials(self) -> bool:
        return self.kind == "datagov"

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def missing_credentials(self) -> list[str]:
        if not self.requires_credentials:
            return []
        missing = []
        if not self.api_key:
            missing.append("api_key")
        if not self.resource_id:
            missing.append("resource_id")
        return missing


def build_source_configs(config: Settings | None = None) -> list[SourceConfig]:
    """Build the upstream source list from settings."""
    config = config or settings
    return [
        SourceConfig(
            name="data.gov.in",
            kind="datagov",
            base_url=config.datagov_base_url,
            api_key=config.datagov_api_key,
            resource_id=config.datagov_resource_id,
            enabled=config.datagov_enabled,
            priority=config.datagov_priority,
            rate_limit_per_minute=config.datagov_rate_limit_per_minute,
            timeout_ms=config.datagov_timeout_ms,
        ),
        SourceConfig(
            name="postalpincode.in",
            kind="postalpincode",
            base_url=config.postalpincode_base_url,
            enabled=config.postalpincode_enabled,
            priority=config.postalpincode_priority,
            rate_limit_per_minute=config.postalpincode_rate_limit_per_minute,
            timeout_ms=config.postalpincode_timeout_ms,
        ),
    ]


settings = Settings()
