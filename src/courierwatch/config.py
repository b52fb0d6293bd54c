"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CW_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Courier Watch API"
    api_prefix: str = "/api"
    log_level: str = "INFO"
    data_root: Path = Field(default=Path("data"), description="Root directory for load-test reports.")

    # External map providers
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="API key sent with directions, distance-matrix and geocoding requests.",
    )
    directions_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    distance_matrix_url: str = "https://maps.googleapis.com/maps/api/distancematrix/json"
    geocode_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    provider_timeout_seconds: float = Field(default=10.0, gt=0.0)
    provider_max_retries: int = Field(default=2, ge=0)
    provider_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Device location
    location_timeout_seconds: float = Field(default=15.0, gt=0.0)

    # Store the console is centred on
    store_latitude: float = Field(default=-23.55052, ge=-90.0, le=90.0)
    store_longitude: float = Field(default=-46.633309, ge=-180.0, le=180.0)
    store_label: str = "Main store"
    store_address: str = Field(default="", description="Street address of the store, known to the offline geocoder.")

    # ETA heuristics (minutes unless noted)
    eta_base_preparation: int = Field(default=15, ge=0)
    eta_per_unique_item: int = Field(default=5, ge=0)
    eta_bulk_threshold: int = Field(default=5, ge=0)
    eta_per_bulk_unit: int = Field(default=2, ge=0)
    eta_max_preparation: int = Field(default=90, ge=1)
    eta_default_delivery: int = Field(default=20, ge=0)
    eta_buffer: int = Field(default=5, ge=0)
    eta_base_traffic_multiplier: float = Field(default=1.2, gt=0.0)
    eta_peak_traffic_multiplier: float = Field(default=1.6, gt=0.0)
    eta_peak_hours: tuple[int, ...] = Field(
        default=(11, 12, 13, 14, 18, 19, 20, 21),
        description="Local clock hours treated as lunch/dinner peaks.",
    )

    # Proximity
    nearby_radius_km: float = Field(default=15.0, gt=0.0)
    arrival_geofence_meters: float = Field(default=500.0, gt=0.0)
    hotspot_cooldown_minutes: int = Field(default=30, ge=0)

    # Live collections
    live_poll_interval_seconds: float = Field(default=2.0, gt=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:8081",
            "http://127.0.0.1:8081",
            "http://localhost:19006",
        ),
        description="Permitted web origins for the operator console (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("eta_peak_hours", mode="before")
    @classmethod
    def _parse_int_tuple_from_env(cls, value: Any) -> tuple[int, ...]:
        """Parse integer tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(int(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(int(item) for item in parsed)
            except (json.JSONDecodeError, TypeError, ValueError):
                pass
            if "," in value:
                return tuple(int(item.strip()) for item in value.split(",") if item.strip())
            if value.strip():
                try:
                    return (int(value.strip()),)
                except ValueError:
                    return tuple()
        return tuple()


settings = Settings()
