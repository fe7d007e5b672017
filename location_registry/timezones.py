"""
Time zone name sanitizing.

The catalogs store time zone names exactly as they were spelled when the data
was compiled. The host's time zone database (zoneinfo / tzdata) moves on:
some names get renamed, some are only known under an older alias, and some
platforms lack a zone entirely. Rather than rewriting stored data, names are
translated when they are loaded and translated back when they are saved.

Design:
  - One immutable table (catalog spelling -> host spelling), built once.
  - Names starting with "UTC" are never translated towards the host, and only
    the offsets listed in the table are translated back.
  - The empty name means UTC.
  - Names that cannot be resolved are collected per load pass and logged once.
"""

from __future__ import annotations

import logging
import zoneinfo
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from location_registry.models import LOCAL_MEAN_SOLAR_TIME, LOCAL_TRUE_SOLAR_TIME

logger = logging.getLogger(__name__)

SOLAR_TIME_ZONES = frozenset({LOCAL_MEAN_SOLAR_TIME, LOCAL_TRUE_SOLAR_TIME})

# Further missing names show up in the load summary; resolve them by adding here.
_KNOWN_DISCREPANCIES: tuple[tuple[str, str], ...] = (
    ("Europe/Minsk",     "UTC+03:00"),
    ("Europe/Samara",    "UTC+04:00"),
    ("America/Cancun",   "UTC-05:00"),
    ("Asia/Kamchatka",   "UTC+12:00"),
    ("Europe/Astrakhan", "UTC+04:00"),
    ("Europe/Ulyanovsk", "UTC+04:00"),
    ("Europe/Kirov",     "UTC+03:00"),
    ("Asia/Hebron",      "Asia/Jerusalem"),
    ("Asia/Gaza",        "Asia/Jerusalem"),
    ("Asia/Kolkata",     "Asia/Calcutta"),
    ("Asia/Kathmandu",   "Asia/Katmandu"),
    ("Asia/Tomsk",       "Asia/Novosibirsk"),
    ("Asia/Barnaul",     "UTC+07:00"),
    ("Asia/Ho_Chi_Minh", "Asia/Saigon"),
    ("Asia/Hovd",        "UTC+07:00"),
    ("America/Argentina/Buenos_Aires", "America/Buenos_Aires"),
    ("America/Argentina/Jujuy",        "America/Jujuy"),
    ("America/Argentina/Mendoza",      "America/Mendoza"),
    ("America/Argentina/Catamarca",    "America/Catamarca"),
    ("America/Argentina/Cordoba",      "America/Cordoba"),
    ("America/Indiana/Indianapolis",   "America/Indianapolis"),
    ("America/Kentucky/Louisville",    "America/Louisville"),
    ("America/Miquelon", "UTC-03:00"),
    ("Africa/Asmara",    "Africa/Asmera"),
    ("Atlantic/Faroe",   "Atlantic/Faeroe"),
    ("Pacific/Pohnpei",  "Pacific/Ponape"),
    ("Pacific/Norfolk",  "UTC+11:00"),
    ("Pacific/Pitcairn", "UTC-08:00"),
    ("Asia/Rangoon",     "Asia/Yangon"),
    ("",                 "UTC"),
)


def host_time_zones() -> frozenset[str]:
    """Time zone identifiers the running interpreter can resolve."""
    return frozenset(zoneinfo.available_timezones()) | {"UTC"}


class UnknownTimezoneReport:
    """Deduplicated list of time zone names a load pass could not resolve."""

    def __init__(self, source: str = "") -> None:
        self.source = source
        self._names: dict[str, int] = {}

    def add(self, tz_name: str, location_name: str = "") -> None:
        if tz_name not in self._names:
            logger.debug("Time zone for %s not found: %r", location_name, tz_name)
        self._names[tz_name] = self._names.get(tz_name, 0) + 1

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def log_summary(self) -> None:
        if not self._names:
            return
        logger.warning(
            "Summary of unknown time zones in %s: %s",
            self.source or "catalog",
            ", ".join(repr(n) for n in self._names),
        )


class TimezoneSanitizer:
    """
    Bidirectional translation between catalog and host time zone spellings.
    Instances are read-only after construction and meant to be shared.
    """

    def __init__(
        self,
        translations: Optional[Iterable[tuple[str, str]]] = None,
        host_zones: Optional[Iterable[str]] = None,
    ) -> None:
        pairs = _KNOWN_DISCREPANCIES if translations is None else tuple(translations)
        self._to_host: Mapping[str, str] = MappingProxyType(dict(pairs))
        # First catalog spelling wins for values shared by several keys
        reverse: dict[str, str] = {}
        for db_name, host_name in pairs:
            reverse.setdefault(host_name, db_name)
        self._to_db: Mapping[str, str] = MappingProxyType(reverse)
        self.host_zones: frozenset[str] = (
            host_time_zones() if host_zones is None else frozenset(host_zones)
        )

    @property
    def translations(self) -> Mapping[str, str]:
        return self._to_host

    def to_host_spelling(self, db_name: str) -> str:
        if db_name.startswith("UTC"):
            return db_name
        if db_name == "":
            return "UTC"
        return self._to_host.get(db_name, db_name)

    def to_db_spelling(self, host_name: str) -> str:
        # Offsets produced by the table map back to their catalog name, other
        # "UTC..." names are already catalog spelling.
        if host_name in self._to_db:
            return self._to_db[host_name]
        return host_name

    def is_host_known(self, tz_name: str) -> bool:
        return tz_name in self.host_zones

    @staticmethod
    def is_solar_time(tz_name: str) -> bool:
        return tz_name in SOLAR_TIME_ZONES

    def for_host(
        self,
        tz_name: str,
        report: Optional[UnknownTimezoneReport] = None,
        location_name: str = "",
    ) -> str:
        """
        Resolve a stored name to one the host knows.
        Unresolvable names are returned unchanged and added to the report.
        """
        if self.is_solar_time(tz_name) or self.is_host_known(tz_name):
            return tz_name
        fixed = self.to_host_spelling(tz_name)
        if self.is_host_known(fixed):
            return fixed
        if report is not None:
            report.add(tz_name, location_name)
        return tz_name


@lru_cache(maxsize=1)
def get_sanitizer() -> TimezoneSanitizer:
    """Process-wide sanitizer built from the host's zoneinfo database."""
    return TimezoneSanitizer()
