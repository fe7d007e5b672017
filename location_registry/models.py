"""
Pydantic models for location records.
These are pure data objects, with no file or registry coupling.
"""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, Field

DEFAULT_BORTLE_SCALE_INDEX = 2

# Time zone sentinels used on bodies other than Earth
LOCAL_MEAN_SOLAR_TIME = "LMST"
LOCAL_TRUE_SOLAR_TIME = "LTST"


# ── Enums ──────────────────────────────────────────────────────────────

class Role(str, Enum):
    """Single-character location classification used by the catalogs."""
    CAPITAL = "C"
    ADMIN_CAPITAL = "B"
    REGIONAL_CAPITAL = "R"
    NORMAL = "N"
    OBSERVATORY = "O"
    LANDER = "L"
    IMPACT = "I"
    CRASH = "A"
    PLANETARY_FEATURE = "P"
    TOWN = "T"
    VILLAGE = "V"
    UNKNOWN = "X"     # also used for records synthesized from an IP lookup
    INVALID = "!"     # failed validation; callers must check before use


# ── Location record ────────────────────────────────────────────────────

class Location(BaseModel):
    """One named place on some planet."""
    name: str = ""
    state: str = ""
    country: str = ""
    role: str = Field(Role.UNKNOWN.value, min_length=1, max_length=1)
    population: int = Field(0, ge=0)
    latitude: float = 0.0
    longitude: float = 0.0
    altitude: int = 0
    bortle_scale_index: int = DEFAULT_BORTLE_SCALE_INDEX
    iana_time_zone: str = ""
    planet_name: str = "Earth"
    landscape_key: str = ""
    is_user_location: bool = False

    @property
    def location_id(self) -> str:
        """
        Key of this record in a registry.
        Always recomputed: renaming a record moves it to another key.
        """
        if not self.name:
            return f"{self.latitude:g}, {self.longitude:g}"
        return f"{self.name}, {self.country}"

    @property
    def is_valid(self) -> bool:
        return self.role != Role.INVALID.value

    @staticmethod
    def distance_degrees(long1: float, lat1: float, long2: float, lat2: float) -> float:
        """Haversine angular distance between two points, all in degrees."""
        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        dphi = phi2 - phi1
        dlambda = math.radians(long2 - long1)
        a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
        return math.degrees(2 * math.asin(min(1.0, math.sqrt(a))))

    def distance_to(self, other: Location) -> float:
        return self.distance_degrees(self.longitude, self.latitude, other.longitude, other.latitude)


def invalid_location() -> Location:
    """An empty record flagged as unparseable."""
    return Location(role=Role.INVALID.value)
