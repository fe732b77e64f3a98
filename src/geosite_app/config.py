"""Configuration management using Pydantic settings."""

from datetime import date
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from GEOSITE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GEOSITE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Geosite"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Project data (assets + shapefile layers as JSON)
    project_file: Path = Path("./data/project.json")
    project_id: str = "default"

    # Map
    default_base_layer: str = "street"  # street, satellite, terrain, topo
    default_zoom: int = 13

    # Clustering
    cluster_threshold: int = 5       # cluster only above this many markers
    cluster_radius_px: int = 50

    # Time series playback
    timeseries_interval: float = 1.0  # seconds per month
    timeseries_start: date = date(2024, 1, 1)

    # Heatmap placeholder randomness; unseeded if None
    heatmap_seed: Optional[int] = None


settings = Settings()
