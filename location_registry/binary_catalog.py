"""
Binary location catalog codec.

The bundled base catalog ships pre-parsed in a compact versioned encoding so
startup does not pay for text parsing. All integers are big-endian.

    header   magic b"SLOC" | uint16 version | uint32 entry count
    entry    id | name | state | country | role          (strings)
             int32 population | float64 latitude | float64 longitude
             int32 altitude | int32 bortle
             time zone | planet | landscape               (strings)
             uint8 user flag
    string   uint32 byte length | UTF-8 bytes

Files whose name ends in ".gz" are gzip-compressed.
"""

from __future__ import annotations

import gzip
import io
import logging
import struct
import zlib
from pathlib import Path
from typing import Mapping, Optional, Union

from location_registry.exceptions import CatalogFormatError, CatalogVersionError
from location_registry.models import Location
from location_registry.text_catalog import load_catalog
from location_registry.timezones import TimezoneSanitizer, UnknownTimezoneReport, get_sanitizer

logger = logging.getLogger(__name__)

MAGIC = b"SLOC"
FORMAT_VERSION = 1

_HEADER = struct.Struct(">4sHI")
_NUMBERS = struct.Struct(">iddii")
_LENGTH = struct.Struct(">I")
_FLAG = struct.Struct(">B")

PathLike = Union[str, Path]


class _Writer:
    def __init__(self) -> None:
        self._buf = io.BytesIO()

    def write_string(self, value: str) -> None:
        data = value.encode("utf-8")
        self._buf.write(_LENGTH.pack(len(data)))
        self._buf.write(data)

    def write(self, fmt: struct.Struct, *values) -> None:
        self._buf.write(fmt.pack(*values))

    def getvalue(self) -> bytes:
        return self._buf.getvalue()


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._stream = io.BytesIO(data)

    def _read_exact(self, count: int) -> bytes:
        data = self._stream.read(count)
        if len(data) != count:
            raise CatalogFormatError("unexpected end of catalog data")
        return data

    def read(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self._read_exact(fmt.size))

    def read_string(self) -> str:
        (length,) = self.read(_LENGTH)
        try:
            return self._read_exact(length).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CatalogFormatError(f"invalid UTF-8 in catalog string: {exc}") from exc

    def at_end(self) -> bool:
        return self._stream.tell() == len(self._stream.getbuffer())


def encode_catalog(locations: Mapping[str, Location]) -> bytes:
    """Serialize an identifier -> Location mapping."""
    out = _Writer()
    out.write(_HEADER, MAGIC, FORMAT_VERSION, len(locations))
    for loc_id, loc in locations.items():
        out.write_string(loc_id)
        out.write_string(loc.name)
        out.write_string(loc.state)
        out.write_string(loc.country)
        out.write_string(loc.role)
        out.write(_NUMBERS, loc.population, loc.latitude, loc.longitude,
                  loc.altitude, loc.bortle_scale_index)
        out.write_string(loc.iana_time_zone)
        out.write_string(loc.planet_name)
        out.write_string(loc.landscape_key)
        out.write(_FLAG, 1 if loc.is_user_location else 0)
    return out.getvalue()


def decode_catalog(data: bytes) -> dict[str, Location]:
    """
    Parse bytes produced by encode_catalog().
    Raises CatalogVersionError for another format version and
    CatalogFormatError for anything else that does not parse.
    """
    reader = _Reader(data)
    magic, version, count = reader.read(_HEADER)
    if magic != MAGIC:
        raise CatalogFormatError(f"not a location catalog (magic {magic!r})")
    if version != FORMAT_VERSION:
        raise CatalogVersionError(version, FORMAT_VERSION)

    result: dict[str, Location] = {}
    for _ in range(count):
        loc_id = reader.read_string()
        name = reader.read_string()
        state = reader.read_string()
        country = reader.read_string()
        role = reader.read_string()
        population, latitude, longitude, altitude, bortle = reader.read(_NUMBERS)
        tz_name = reader.read_string()
        planet = reader.read_string()
        landscape = reader.read_string()
        (flag,) = reader.read(_FLAG)
        try:
            result[loc_id] = Location(
                name=name,
                state=state,
                country=country,
                role=role,
                population=population,
                latitude=latitude,
                longitude=longitude,
                altitude=altitude,
                bortle_scale_index=bortle,
                iana_time_zone=tz_name,
                planet_name=planet,
                landscape_key=landscape,
                is_user_location=bool(flag),
            )
        except ValueError as exc:
            # pydantic.ValidationError is a ValueError
            raise CatalogFormatError(f"invalid record {loc_id!r}: {exc}") from exc

    if not reader.at_end():
        raise CatalogFormatError("trailing data after last catalog entry")
    return result


def load_binary(
    path: PathLike,
    sanitizer: Optional[TimezoneSanitizer] = None,
) -> dict[str, Location]:
    """
    Load a binary catalog and revalidate its time zones against the host.
    Any failure is logged and yields an empty mapping.
    """
    path = Path(path)
    sanitizer = sanitizer or get_sanitizer()

    if not path.is_file():
        logger.warning("Failed to locate location data file: %s", path)
        return {}
    try:
        raw = path.read_bytes()
    except OSError as exc:
        logger.error("Could not open location data file %s: %s", path, exc)
        return {}

    try:
        data = gzip.decompress(raw) if path.name.endswith(".gz") else raw
        result = decode_catalog(data)
    except CatalogVersionError as exc:
        logger.error("Location data file %s rejected: %s", path, exc)
        return {}
    except (CatalogFormatError, EOFError, OSError, zlib.error) as exc:
        logger.error("Location data file %s is corrupt: %s", path, exc)
        return {}

    report = UnknownTimezoneReport(str(path))
    for loc_id, loc in result.items():
        fixed = sanitizer.for_host(loc.iana_time_zone, report, loc.name)
        if fixed != loc.iana_time_zone:
            result[loc_id] = loc.model_copy(update={"iana_time_zone": fixed})
    report.log_summary()

    logger.info("Loaded %d locations from %s", len(result), path)
    return result


def generate_binary(
    text_path: PathLike,
    out_path: PathLike,
    is_user_location: bool = False,
    sanitizer: Optional[TimezoneSanitizer] = None,
) -> int:
    """
    Regenerate a binary catalog from its text source.
    Returns the number of locations written. Raises OSError if out_path
    cannot be written.
    """
    logger.warning("Generating a locations list from %s", text_path)
    # Catalog spellings are stored, translation happens when the file is loaded
    locations = load_catalog(text_path, is_user_location, sanitizer, raw_time_zones=True)
    data = encode_catalog(locations)

    out_path = Path(out_path)
    if out_path.name.endswith(".gz"):
        data = gzip.compress(data)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    return len(locations)
