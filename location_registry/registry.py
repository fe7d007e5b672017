"""
The location registry.

Owns the identifier -> Location mapping built from the bundled base catalog
and the user catalog, answers lookups, and persists user locations.

Strategy:
  1. Load the base catalog (binary) and the user catalog (text) on top of it.
     User entries win on identifier collisions.
  2. resolve() turns a descriptor into a record: an exact identifier first,
     then "[name ]lat,long" coordinates. Failures come back as a record with
     the invalid role, never as an exception.
  3. save() / delete() change the mapping, notify subscribers, then write the
     user catalog. A failed write undoes the in-memory change.

Not thread-safe: all calls are expected from one owning thread.
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, MutableMapping, Optional, Union

import numpy as np

from location_registry.angles import format_dms, parse_angle
from location_registry.binary_catalog import generate_binary, load_binary
from location_registry.config import Settings, get_settings
from location_registry.models import Location, Role, invalid_location
from location_registry.text_catalog import (
    append_line,
    as_user_location,
    load_catalog,
    merge_locations,
    write_catalog,
)
from location_registry.timezones import TimezoneSanitizer, get_sanitizer

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
SettingsStore = MutableMapping[str, object]

# Maybe it is a coordinate set? (e.g. "GPS 25.107363,121.558807")
_COORDINATES_RE = re.compile(r"(?:(.+)\s+)?(.+),(.+)")


class LocationRegistry:
    def __init__(
        self,
        locations: Mapping[str, Location],
        user_path: PathLike,
        last_resort_descriptor: Optional[str] = None,
        sanitizer: Optional[TimezoneSanitizer] = None,
        settings_store: Optional[SettingsStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.sanitizer = sanitizer or get_sanitizer()
        self.user_path = Path(user_path)
        self.settings_store = settings_store
        self._locations: dict[str, Location] = dict(locations)
        self._subscribers: list[Callable[[], None]] = []
        self._location_listeners: list[Callable[[Location], None]] = []

        descriptor = last_resort_descriptor
        if descriptor is None:
            descriptor = self.settings.location.last_descriptor
        self._last_resort = self.resolve(descriptor)
        if not self._last_resort.is_valid:
            logger.warning("Last resort location %r could not be resolved", descriptor)

    # ── Construction ──────────────────────────────────────────────────

    @classmethod
    def from_files(
        cls,
        base_path: PathLike,
        user_path: PathLike,
        last_resort_descriptor: Optional[str] = None,
        sanitizer: Optional[TimezoneSanitizer] = None,
        settings_store: Optional[SettingsStore] = None,
        settings: Optional[Settings] = None,
    ) -> LocationRegistry:
        """
        Load the base catalog, then merge the user catalog over it.
        A base catalog named *.txt is read as text, anything else as binary.
        """
        sanitizer = sanitizer or get_sanitizer()
        if Path(base_path).suffix == ".txt":
            locations = load_catalog(base_path, False, sanitizer)
        else:
            locations = load_binary(base_path, sanitizer)
        locations.update(load_catalog(user_path, True, sanitizer))
        return cls(locations, user_path, last_resort_descriptor, sanitizer, settings_store, settings)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Location],
        user_path: PathLike,
        last_resort_descriptor: Optional[str] = None,
        sanitizer: Optional[TimezoneSanitizer] = None,
        settings_store: Optional[SettingsStore] = None,
        settings: Optional[Settings] = None,
    ) -> LocationRegistry:
        """Build a registry from an externally supplied list instead of files."""
        return cls(merge_locations(records), user_path, last_resort_descriptor,
                   sanitizer, settings_store, settings)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        settings_store: Optional[SettingsStore] = None,
    ) -> LocationRegistry:
        """
        Registry over the configured catalog paths.
        A missing binary base catalog is built from its text source first.
        """
        settings = settings or get_settings()
        catalog = settings.catalog
        base_path = catalog.base_catalog
        if not base_path.is_file() and catalog.base_catalog_text.is_file():
            try:
                generate_binary(catalog.base_catalog_text, base_path)
            except OSError as exc:
                logger.warning("Cannot write %s (%s), reading %s instead",
                               base_path, exc, catalog.base_catalog_text)
                base_path = catalog.base_catalog_text

        descriptor = settings.location.last_descriptor
        if settings_store is not None:
            descriptor = str(settings_store.get(settings.location.last_location_key, descriptor))
        return cls.from_files(
            base_path,
            catalog.user_catalog,
            descriptor,
            settings_store=settings_store,
            settings=settings,
        )

    # ── Read access ───────────────────────────────────────────────────

    @property
    def locations(self) -> Mapping[str, Location]:
        return MappingProxyType(self._locations)

    @property
    def last_resort_location(self) -> Location:
        return self._last_resort

    def get(self, location_id: str) -> Optional[Location]:
        return self._locations.get(location_id)

    def location_ids(self) -> list[str]:
        return sorted(self._locations)

    def __len__(self) -> int:
        return len(self._locations)

    def __contains__(self, location_id: object) -> bool:
        return location_id in self._locations

    # ── Resolving descriptors ─────────────────────────────────────────

    def resolve(self, descriptor: str) -> Location:
        """
        Turn a descriptor into a Location.

        Accepts an exact identifier ("Paris, France") or a coordinate pair
        with an optional leading name ("GPS 25.1,121.5"). Coordinates may be
        decimal or D°M'S" notation. Check is_valid on the result.
        """
        found = self._locations.get(descriptor)
        if found is not None:
            return found

        match = _COORDINATES_RE.fullmatch(descriptor)
        if not match:
            return invalid_location()

        name, lat_text, lon_text = match.groups()
        latitude, lat_ok = parse_angle(lat_text)
        longitude, lon_ok = parse_angle(lon_text)
        return Location(
            name=(name or "").strip(),
            latitude=latitude,
            longitude=longitude,
            planet_name="Earth",
            role=Role.UNKNOWN.value if lat_ok and lon_ok else Role.INVALID.value,
        )

    def location_from_overrides(self) -> Location:
        """
        One-shot location given on the command line.

        Reads the run-once group from the settings store (angles in radians)
        and removes it, so the override applies to a single start only.
        """
        cfg = self.settings.location
        store: SettingsStore = self.settings_store if self.settings_store is not None else {}
        prefix = cfg.run_once_group + "/"

        def value(key: str, default: object) -> object:
            return store.get(prefix + key, default)

        location = Location(
            planet_name=str(value("home_planet", "Earth")),
            landscape_key=str(value("landscape_name", cfg.default_landscape)),
        )
        try:
            lat_rad = float(value("latitude", 0.0))
            lon_rad = float(value("longitude", 0.0))
        except (TypeError, ValueError):
            location.role = Role.INVALID.value
        else:
            location.latitude, lat_ok = parse_angle(format_dms(math.degrees(lat_rad)))
            location.longitude, lon_ok = parse_angle(format_dms(math.degrees(lon_rad)))
            if not (lat_ok and lon_ok):
                location.role = Role.INVALID.value
        try:
            location.altitude = int(value("altitude", 0))
        except (TypeError, ValueError):
            location.altitude = 0

        for key in [k for k in store if k.startswith(prefix)]:
            del store[key]
        return location

    # ── Mutation ──────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Call `callback` after every change to the location list.
        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify_changed(self) -> None:
        for callback in list(self._subscribers):
            callback()

    def can_save(self, location: Location) -> bool:
        """Whether a location can be permanently added to the user locations."""
        return (
            location.is_valid
            and bool(location.name.strip())
            and bool(location.planet_name)
            and as_user_location(location).location_id not in self._locations
        )

    def save(self, location: Location) -> bool:
        """Add a location permanently to the user locations."""
        if not self.can_save(location):
            return False

        stored = as_user_location(location)
        loc_id = stored.location_id
        self._locations[loc_id] = stored
        # Observers hear about it before the file is written
        self._notify_changed()

        try:
            append_line(self.user_path, stored, self.sanitizer)
        except OSError as exc:
            logger.error("Location %r cannot be saved to %s: %s", loc_id, self.user_path, exc)
            del self._locations[loc_id]
            self._notify_changed()
            return False

        logger.info("Saved user location %r", loc_id)
        return True

    def can_delete(self, location_id: str) -> bool:
        """Base catalog locations are read-only and cannot be deleted."""
        location = self._locations.get(location_id)
        return location is not None and location.is_user_location

    def delete(self, location_id: str) -> bool:
        """Remove a user location and rewrite the user catalog."""
        if not self.can_delete(location_id):
            return False

        removed = self._locations.pop(location_id)
        self._notify_changed()

        remaining = [loc for loc in self._locations.values() if loc.is_user_location]
        try:
            write_catalog(self.user_path, remaining, self.sanitizer)
        except OSError as exc:
            logger.error("Location %r cannot be deleted from %s: %s", location_id, self.user_path, exc)
            self._locations[location_id] = removed
            self._notify_changed()
            return False

        logger.info("Deleted user location %r", location_id)
        return True

    def replace_all(self, records: Iterable[Location]) -> None:
        """Discard the current list and install `records`."""
        self._locations = merge_locations(records)
        self._notify_changed()

    # ── Queries ───────────────────────────────────────────────────────

    def find_near(
        self,
        planet: str,
        longitude: float,
        latitude: float,
        radius_degrees: float,
    ) -> dict[str, Location]:
        """All locations on `planet` within `radius_degrees` of the given point."""
        candidates = [(k, v) for k, v in self._locations.items() if v.planet_name == planet]
        if not candidates:
            return {}

        lons = np.radians(np.array([v.longitude for _, v in candidates], dtype=np.float64))
        lats = np.radians(np.array([v.latitude for _, v in candidates], dtype=np.float64))
        lon0 = math.radians(longitude)
        lat0 = math.radians(latitude)

        a = (np.sin((lats - lat0) / 2) ** 2
             + math.cos(lat0) * np.cos(lats) * np.sin((lons - lon0) / 2) ** 2)
        distances = np.degrees(2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0))))

        return {
            loc_id: loc
            for (loc_id, loc), dist in zip(candidates, distances)
            if dist <= radius_degrees
        }

    def find_in_country(self, country: str) -> dict[str, Location]:
        return {k: v for k, v in self._locations.items() if v.country == country}

    # ── External lookups (GPS, IP) ────────────────────────────────────

    def on_location_accepted(self, callback: Callable[[Location], None]) -> Callable[[], None]:
        """
        Register the host's observer-update hook, called with every location
        accepted from an external source. Returns an unsubscribe function.
        """
        self._location_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._location_listeners:
                self._location_listeners.remove(callback)

        return unsubscribe

    def accept_external_location(self, location: Location, source: str = "lookup") -> bool:
        """
        Entry point for asynchronous sources handing over a finished lookup.
        Invalid records are refused; valid ones go to the listeners and become
        the remembered last location.
        """
        if not location.is_valid:
            logger.warning("%s lookup produced an invalid location, ignored", source)
            return False

        logger.info(
            "%s location: %s (%.4f, %.4f; %s)",
            source, location.location_id, location.latitude, location.longitude,
            location.iana_time_zone or "no time zone",
        )
        for callback in list(self._location_listeners):
            callback(location)

        if self.settings_store is not None:
            key = self.settings.location.last_location_key
            self.settings_store[key] = f"{location.latitude},{location.longitude}"
        return True

    def report_lookup_error(self, source: str, message: str) -> None:
        """
        A lookup failed. The observer stays where it is: falling back to the
        last resort location here would move it somewhere unrelated.
        """
        logger.warning("%s lookup failed: %s", source, message)
