"""
Tests for GPS fix and IP geolocation adapters.
"""

from __future__ import annotations

import pytest

from location_registry.lookups import (
    FIX_2D,
    FIX_3D,
    FIX_NONE,
    GpsFix,
    location_from_gps_fix,
    location_from_ip_answer,
    poll_gps_fix,
)


def _reader(samples):
    """Reader returning the given samples in order, then nothing."""
    calls = []
    queue = list(samples)

    def read_fix(wait_seconds):
        calls.append(wait_seconds)
        if not queue:
            return None
        sample = queue.pop(0)
        if isinstance(sample, Exception):
            raise sample
        return sample

    return read_fix, calls


class TestGpsFix:
    def test_3d_fix(self):
        loc = location_from_gps_fix(GpsFix(25.107363, 121.558807, 14.7, FIX_3D), "Asia/Taipei")
        assert loc.name == "GPS E121 N25"
        assert loc.altitude == 14
        assert loc.iana_time_zone == "Asia/Taipei"
        assert loc.planet_name == "Earth"
        assert loc.is_user_location is True
        assert loc.is_valid

    def test_2d_fix_has_no_altitude(self):
        loc = location_from_gps_fix(GpsFix(-33.87, -70.6, 500.0, FIX_2D), "UTC")
        assert loc.altitude == 0
        assert loc.name == "GPS W70 S33"

    def test_nan_altitude(self):
        loc = location_from_gps_fix(GpsFix(10.0, 10.0, float("nan"), FIX_3D), "UTC")
        assert loc.altitude == 0


class TestPollGpsFix:
    def test_first_3d_fix_wins(self):
        read_fix, calls = _reader([
            None,
            GpsFix(48.0, 2.0, None, FIX_2D),
            GpsFix(48.8, 2.3, 35.0, FIX_3D),
            GpsFix(0.0, 0.0, 0.0, FIX_3D),
        ])
        loc, error = poll_gps_fix(read_fix, "Europe/Paris")
        assert error is None
        assert loc.latitude == pytest.approx(48.8)
        assert loc.altitude == 35
        assert len(calls) == 3

    def test_2d_fix_accepted_after_all_tries(self):
        read_fix, calls = _reader([GpsFix(48.0, 2.0, 100.0, FIX_2D)])
        loc, error = poll_gps_fix(read_fix, "Europe/Paris")
        assert error is None
        assert loc.altitude == 0
        assert len(calls) == 10

    def test_attempts_are_bounded(self):
        read_fix, calls = _reader([])
        loc, error = poll_gps_fix(read_fix, "UTC", max_tries=10, wait_seconds=0.5)
        assert loc is None
        assert error == "GPS: could not get valid position."
        assert calls == [0.5] * 10

    def test_no_fix_mode(self):
        read_fix, _ = _reader([GpsFix(0.0, 0.0, None, FIX_NONE)] * 3)
        loc, error = poll_gps_fix(read_fix, "UTC", max_tries=3)
        assert loc is None
        assert error == "GPS: could not get valid position."

    def test_offline_receiver(self):
        read_fix, calls = _reader([GpsFix(0.0, 0.0, None, FIX_NONE, online=False)])
        loc, error = poll_gps_fix(read_fix, "UTC")
        assert loc is None
        assert error == "GPS seems offline. No fix."
        assert len(calls) == 1

    def test_read_error(self):
        read_fix, _ = _reader([ConnectionRefusedError("gpsd not running")])
        loc, error = poll_gps_fix(read_fix, "UTC")
        assert loc is None
        assert error.startswith("GPS query: read error:")
        assert "gpsd not running" in error


class TestIpAnswer:
    ANSWER = {
        "ip": "203.0.113.7",
        "city": "Lyon",
        "region_name": "Auvergne-Rhone-Alpes",
        "country_code": "FR",
        "country_name": "France",
        "time_zone": "Europe/Paris",
        "latitude": 45.75,
        "longitude": 4.85,
        "metro_code": 0,
    }

    def test_full_answer(self):
        loc = location_from_ip_answer(self.ANSWER)
        assert loc.is_valid
        assert loc.name == "Lyon"
        assert loc.state == "Auvergne-Rhone-Alpes"
        assert loc.country == "France"
        assert loc.role == "X"
        assert loc.latitude == pytest.approx(45.75)
        assert loc.iana_time_zone == "Europe/Paris"
        assert loc.location_id == "Lyon, France"

    def test_missing_city_and_region(self):
        answer = dict(self.ANSWER, city="", region_name="")
        loc = location_from_ip_answer(answer)
        assert loc.name == "45.75, 4.85"
        assert loc.state == "IPregion"

    def test_unknown_code_uses_country_name(self):
        loc = location_from_ip_answer(dict(self.ANSWER, country_code="", country_name="Somewhere"))
        assert loc.country == "Somewhere"

    def test_no_coordinates(self):
        answer = {k: v for k, v in self.ANSWER.items() if k != "latitude"}
        assert location_from_ip_answer(answer).is_valid is False

    def test_garbage_answer(self):
        assert location_from_ip_answer({"latitude": "north", "longitude": 4.85}).is_valid is False

    def test_missing_time_zone_uses_mean_solar_time(self):
        loc = location_from_ip_answer(dict(self.ANSWER, time_zone=""))
        assert loc.iana_time_zone == "LMST"
