"""
Central configuration loaded from environment variables with sensible defaults.
Catalog paths, the fallback location descriptor and logging all live here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

# Bundled catalogs live in data/ next to the package
_DATA_DIR = os.getenv("LOCATION_DATA_DIR", str(Path(__file__).resolve().parent.parent / "data"))
_USER_DIR = os.getenv("LOCATION_USER_DIR", str(Path.home() / ".location_registry"))


@dataclass(frozen=True)
class CatalogConfig:
    data_dir: Path = Path(_DATA_DIR)
    user_dir: Path = Path(_USER_DIR)
    # Bundled read-only catalog, gzip-compressed when the name ends in .gz
    base_catalog: Path = Path(
        os.getenv("LOCATION_BASE_CATALOG", str(Path(_DATA_DIR) / "base_locations.bin.gz"))
    )
    # Source of the bundled catalog, only needed to regenerate it
    base_catalog_text: Path = Path(
        os.getenv("LOCATION_BASE_CATALOG_TEXT", str(Path(_DATA_DIR) / "base_locations.txt"))
    )
    user_catalog: Path = Path(
        os.getenv("LOCATION_USER_CATALOG", str(Path(_USER_DIR) / "data" / "user_locations.txt"))
    )


@dataclass(frozen=True)
class LocationConfig:
    # Paris, because it's the center of the world
    last_descriptor: str = os.getenv("LOCATION_LAST_DESCRIPTOR", "Paris, France")
    default_landscape: str = os.getenv("LOCATION_DEFAULT_LANDSCAPE", "guereins")
    near_radius_degrees: float = float(os.getenv("LOCATION_NEAR_RADIUS_DEG", "1.0"))
    # Settings-store keys shared with the host application
    last_location_key: str = "init_location/last_location"
    run_once_group: str = "location_run_once"


@dataclass(frozen=True)
class Settings:
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    env: str = os.getenv("APP_ENV", "development")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
