"""
Tab-separated location catalog files.

One location per line, UTF-8, '#' starts a comment line:

    name  state  country  role  population  latitude  longitude  altitude
          [bortle  [time zone  [planet  [landscape]]]]

  - country is an ISO alpha-2 code ("fr") or free text
  - population is in thousands
  - latitude / longitude carry a hemisphere suffix: 48.856600N, 2.352200E
  - lines with fewer than 8 columns are ignored

Records with the same identifier are told apart by appending their state to
the name, see merge_locations().
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from location_registry.angles import parse_angle
from location_registry.countries import country_name_to_code, normalize_country
from location_registry.models import DEFAULT_BORTLE_SCALE_INDEX, Location, Role
from location_registry.timezones import TimezoneSanitizer, UnknownTimezoneReport, get_sanitizer

logger = logging.getLogger(__name__)

MIN_FIELDS = 8

PathLike = Union[str, Path]


# ── Line codec ────────────────────────────────────────────────────────

def _parse_coordinate(text: str, negative: str, positive: str) -> tuple[float, bool]:
    s = text.strip()
    sign = 1.0
    if s and s[-1].upper() in (negative, positive):
        if s[-1].upper() == negative:
            sign = -1.0
        s = s[:-1]
    value, ok = parse_angle(s)
    return sign * value, ok


def _parse_int(text: str, default: int = 0) -> int:
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return default


def parse_line(
    line: str,
    sanitizer: Optional[TimezoneSanitizer] = None,
    report: Optional[UnknownTimezoneReport] = None,
    is_user_location: bool = False,
    raw_time_zones: bool = False,
) -> Location:
    """
    Build a Location from one catalog line.
    Unparseable coordinates yield a record with the invalid role.
    With raw_time_zones the time zone column is kept as spelled in the file.
    """
    sanitizer = sanitizer or get_sanitizer()
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < MIN_FIELDS:
        return Location(role=Role.INVALID.value)

    name = fields[0].strip()
    role = fields[3].strip()[:1].upper() or Role.UNKNOWN.value

    try:
        population = max(0, round(float(fields[4]) * 1000))
    except (ValueError, OverflowError):
        population = 0

    latitude, lat_ok = _parse_coordinate(fields[5], "S", "N")
    longitude, lon_ok = _parse_coordinate(fields[6], "W", "E")
    if not (lat_ok and lon_ok):
        role = Role.INVALID.value

    bortle = DEFAULT_BORTLE_SCALE_INDEX
    if len(fields) > 8:
        bortle = _parse_int(fields[8], DEFAULT_BORTLE_SCALE_INDEX)

    tz_name = ""
    if len(fields) > 9:
        tz_name = fields[9].strip()
        if not raw_time_zones:
            tz_name = sanitizer.for_host(tz_name, report, name)

    planet = fields[10].strip() if len(fields) > 10 else ""
    landscape = fields[11].strip() if len(fields) > 11 else ""

    return Location(
        name=name,
        state=fields[1].strip(),
        country=normalize_country(fields[2]),
        role=role,
        population=population,
        latitude=latitude,
        longitude=longitude,
        altitude=_parse_int(fields[7]),
        bortle_scale_index=bortle,
        iana_time_zone=tz_name,
        planet_name=planet or "Earth",
        landscape_key=landscape,
        is_user_location=is_user_location,
    )


def _clean(value: str) -> str:
    return value.replace("\t", " ").replace("\n", " ").strip()


def _format_thousands(population: int) -> str:
    text = f"{population / 1000:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def _catalog_time_zone(tz_name: str, sanitizer: TimezoneSanitizer) -> str:
    # Several catalog names share one host name, only use the catalog spelling
    # when it reads back as the same zone
    db_name = sanitizer.to_db_spelling(tz_name)
    if db_name != tz_name and sanitizer.for_host(db_name) != tz_name:
        return tz_name
    return db_name


def serialize_line(location: Location, sanitizer: Optional[TimezoneSanitizer] = None) -> str:
    """The catalog line a user file should contain for this location."""
    sanitizer = sanitizer or get_sanitizer()
    lat = location.latitude
    lon = location.longitude
    columns = [
        _clean(location.name),
        _clean(location.state),
        _clean(country_name_to_code(location.country)),
        location.role,
        _format_thousands(location.population),
        f"{abs(lat):.6f}{'S' if lat < 0 else 'N'}",
        f"{abs(lon):.6f}{'W' if lon < 0 else 'E'}",
        str(location.altitude),
        str(location.bortle_scale_index),
        _catalog_time_zone(location.iana_time_zone, sanitizer),
        _clean(location.planet_name),
        _clean(location.landscape_key),
    ]
    return "\t".join(columns)


def as_user_location(location: Location) -> Location:
    """
    The record a user catalog line for `location` reads back as: text fields
    cleaned, country codes expanded, flagged as a user location. Its identifier
    is the one the record has after a reload.
    """
    return location.model_copy(update={
        "name": _clean(location.name),
        "state": _clean(location.state),
        "country": normalize_country(_clean(location.country)),
        "planet_name": _clean(location.planet_name) or "Earth",
        "landscape_key": _clean(location.landscape_key),
        "is_user_location": True,
    })


# ── Merging ───────────────────────────────────────────────────────────

def _with_state_suffix(location: Location) -> Location:
    if not location.state:
        return location
    return location.model_copy(update={"name": f"{location.name} ({location.state})"})


def merge_locations(
    records: Iterable[Location],
    base: Optional[Mapping[str, Location]] = None,
) -> dict[str, Location]:
    """
    Insert records into a new mapping keyed by identifier.

    On a key collision the stored and the incoming record both get their state
    appended to the name and are re-keyed. Records without a state cannot be
    told apart and the later one wins.
    """
    merged: dict[str, Location] = dict(base or {})
    for location in records:
        loc_id = location.location_id
        existing = merged.pop(loc_id, None)
        if existing is None:
            merged[loc_id] = location
            continue
        for item in (_with_state_suffix(existing), _with_state_suffix(location)):
            merged[item.location_id] = item
    return merged


# ── Files ─────────────────────────────────────────────────────────────

def load_catalog(
    path: PathLike,
    is_user_location: bool,
    sanitizer: Optional[TimezoneSanitizer] = None,
    raw_time_zones: bool = False,
) -> dict[str, Location]:
    """
    Read a text catalog into an identifier -> Location mapping.
    A missing or unreadable file contributes nothing.
    """
    path = Path(path)
    sanitizer = sanitizer or get_sanitizer()

    if not path.is_file():
        # No user file is normal on first run
        if is_user_location:
            logger.debug("No user location file at %s", path)
        else:
            logger.warning("Failed to locate location data file: %s", path)
        return {}

    report = UnknownTimezoneReport(str(path))
    records: list[Location] = []
    try:
        with path.open("r", encoding="utf-8") as f:
            for lineno, raw in enumerate(f, 1):
                line = raw.rstrip("\r\n")
                if not line or line.startswith("#") or len(line.split("\t")) < MIN_FIELDS:
                    continue
                location = parse_line(line, sanitizer, report, is_user_location, raw_time_zones)
                if not location.is_valid:
                    logger.warning("%s:%d: unparseable coordinates, line skipped", path, lineno)
                    continue
                records.append(location)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Could not read location data file %s: %s", path, exc)
        return {}

    report.log_summary()
    result = merge_locations(records)
    logger.info("Loaded %d locations from %s", len(result), path)
    return result


def append_line(
    path: PathLike,
    location: Location,
    sanitizer: Optional[TimezoneSanitizer] = None,
) -> None:
    """Append one location to a catalog file, creating it if needed. Raises OSError."""
    path = Path(path)
    if not path.exists():
        logger.warning("Will create a new user location file: %s", path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(serialize_line(location, sanitizer) + "\n")


def write_catalog(
    path: PathLike,
    locations: Iterable[Location],
    sanitizer: Optional[TimezoneSanitizer] = None,
) -> int:
    """Rewrite a catalog file with the given locations. Raises OSError."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8") as f:
        for location in locations:
            f.write(serialize_line(location, sanitizer) + "\n")
            count += 1
    return count
