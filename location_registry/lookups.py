"""
Adapters turning external lookup results into Location records.

The transports (gpsd, NMEA serial, HTTP geolocation services) live with the
host application. What they hand over ends up here: a GPS fix or a decoded
geolocation JSON answer becomes one complete Location, or one error string,
which the host then passes to LocationRegistry.accept_external_location() or
LocationRegistry.report_lookup_error().
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, ValidationError

from location_registry.countries import country_code_to_name
from location_registry.models import DEFAULT_BORTLE_SCALE_INDEX, LOCAL_MEAN_SOLAR_TIME, Location, Role

logger = logging.getLogger(__name__)

# gpsd fix modes
FIX_NOT_SEEN = 0
FIX_NONE = 1
FIX_2D = 2
FIX_3D = 3


@dataclass(frozen=True)
class GpsFix:
    latitude: float
    longitude: float
    altitude: Optional[float] = None   # None or NaN without a 3D fix
    mode: int = FIX_NOT_SEEN
    online: bool = True


def location_from_gps_fix(fix: GpsFix, current_time_zone: str) -> Location:
    """
    Build a user location from a GPS fix.
    The time zone is the observer's current one: GPS users rarely cross zones.
    """
    altitude = 0
    if fix.mode >= FIX_3D and fix.altitude is not None and not math.isnan(fix.altitude):
        altitude = int(math.floor(fix.altitude))
    else:
        # 2D fixes carry no usable altitude
        logger.debug("GPS fix mode %d, altitude set to 0", fix.mode)

    name = "GPS {}{} {}{}".format(
        "W" if fix.longitude < 0 else "E", int(math.floor(abs(fix.longitude))),
        "S" if fix.latitude < 0 else "N", int(math.floor(abs(fix.latitude))),
    )
    return Location(
        name=name,
        latitude=fix.latitude,
        longitude=fix.longitude,
        altitude=altitude,
        bortle_scale_index=DEFAULT_BORTLE_SCALE_INDEX,
        iana_time_zone=current_time_zone,
        planet_name="Earth",
        is_user_location=True,
    )


def poll_gps_fix(
    read_fix: Callable[[float], Optional[GpsFix]],
    current_time_zone: str,
    max_tries: int = 10,
    wait_seconds: float = 0.75,
) -> tuple[Optional[Location], Optional[str]]:
    """
    Poll a GPS reader until a 3D fix arrives or the attempts run out.

    `read_fix(wait_seconds)` returns None when nothing arrived in time.
    A 2D fix is accepted if nothing better came. Returns (location, None) on
    success and (None, error message) otherwise.
    """
    fix: Optional[GpsFix] = None
    tries = 0
    while tries < max_tries:
        tries += 1
        try:
            sample = read_fix(wait_seconds)
        except OSError as exc:
            return None, f"GPS query: read error: {exc}"
        if sample is None:
            continue
        if not sample.online:
            # Receiver unplugged, or gpsd running without one
            return None, "GPS seems offline. No fix."
        fix = sample
        logger.debug("GPS fix %d: lat %s, long %s", fix.mode, fix.latitude, fix.longitude)
        if fix.mode >= FIX_3D:
            break

    if fix is None or fix.mode < FIX_2D:
        return None, "GPS: could not get valid position."
    if fix.mode < FIX_3D:
        logger.debug("Fix only quality %d after %d tries", fix.mode, tries)
    return location_from_gps_fix(fix, current_time_zone), None


class IpLookupAnswer(BaseModel):
    """JSON answer of a freegeoip-style IP geolocation service."""
    ip: str = ""
    city: str = ""
    region_name: str = ""
    country_name: str = ""
    country_code: str = ""
    time_zone: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = {"extra": "allow"}


def location_from_ip_answer(payload: Mapping[str, Any]) -> Location:
    """
    Build a location from an IP geolocation answer.
    Answers without coordinates produce a record with the invalid role.
    A missing time zone becomes local mean solar time.
    """
    try:
        answer = IpLookupAnswer.model_validate(dict(payload))
    except ValidationError as exc:
        logger.warning("Unusable IP lookup answer: %s", exc)
        return Location(role=Role.INVALID.value)

    if answer.latitude is None or answer.longitude is None:
        return Location(role=Role.INVALID.value)

    lat = answer.latitude
    lon = answer.longitude
    logger.debug(
        "Got location %s, %s, %s (%s, %s; %s) for IP %s",
        answer.city, answer.region_name, answer.country_name, lat, lon,
        answer.time_zone, answer.ip,
    )
    return Location(
        name=answer.city or f"{lat:g}, {lon:g}",
        state=answer.region_name or "IPregion",
        country=country_code_to_name(answer.country_code) or answer.country_name,
        role=Role.UNKNOWN.value,
        population=0,
        latitude=lat,
        longitude=lon,
        altitude=0,
        bortle_scale_index=DEFAULT_BORTLE_SCALE_INDEX,
        iana_time_zone=answer.time_zone or LOCAL_MEAN_SOLAR_TIME,
        planet_name="Earth",
        landscape_key="",
    )
