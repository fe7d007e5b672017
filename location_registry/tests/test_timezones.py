"""
Tests for time zone name sanitizing.
"""

from __future__ import annotations

import logging

import pytest

from location_registry.timezones import (
    TimezoneSanitizer,
    UnknownTimezoneReport,
    get_sanitizer,
    host_time_zones,
)


@pytest.fixture
def sanitizer():
    return TimezoneSanitizer(host_zones={"UTC", "Europe/Paris", "Asia/Calcutta", "Asia/Jerusalem"})


class TestToHostSpelling:
    def test_known_discrepancy(self, sanitizer):
        assert sanitizer.to_host_spelling("Europe/Minsk") == "UTC+03:00"
        assert sanitizer.to_host_spelling("Asia/Kolkata") == "Asia/Calcutta"

    def test_empty_is_utc(self, sanitizer):
        assert sanitizer.to_host_spelling("") == "UTC"

    def test_utc_offsets_unchanged(self, sanitizer):
        assert sanitizer.to_host_spelling("UTC+05:30") == "UTC+05:30"

    def test_unlisted_unchanged(self, sanitizer):
        assert sanitizer.to_host_spelling("Europe/Paris") == "Europe/Paris"


class TestToDbSpelling:
    def test_reverse_lookup(self, sanitizer):
        assert sanitizer.to_db_spelling("UTC+03:00") == "Europe/Minsk"
        assert sanitizer.to_db_spelling("Asia/Calcutta") == "Asia/Kolkata"

    def test_shared_value_maps_to_first_entry(self, sanitizer):
        assert sanitizer.to_db_spelling("Asia/Jerusalem") == "Asia/Hebron"

    def test_unlisted_unchanged(self, sanitizer):
        assert sanitizer.to_db_spelling("UTC-02:00") == "UTC-02:00"
        assert sanitizer.to_db_spelling("Europe/Paris") == "Europe/Paris"


class TestForHost:
    def test_known_name_passes(self, sanitizer):
        report = UnknownTimezoneReport()
        assert sanitizer.for_host("Europe/Paris", report) == "Europe/Paris"
        assert len(report) == 0

    def test_translated_when_host_knows_result(self, sanitizer):
        report = UnknownTimezoneReport()
        assert sanitizer.for_host("Asia/Kolkata", report) == "Asia/Calcutta"
        assert len(report) == 0

    def test_solar_time_sentinels(self, sanitizer):
        report = UnknownTimezoneReport()
        assert sanitizer.for_host("LMST", report) == "LMST"
        assert sanitizer.for_host("LTST", report) == "LTST"
        assert len(report) == 0

    def test_unresolvable_kept_and_reported(self, sanitizer):
        report = UnknownTimezoneReport()
        # Minsk translates to an offset this host does not list either
        assert sanitizer.for_host("Europe/Minsk", report, "Minsk") == "Europe/Minsk"
        assert sanitizer.for_host("Mars/Olympus", report) == "Mars/Olympus"
        assert sanitizer.for_host("Mars/Olympus", report) == "Mars/Olympus"
        assert report.names == ["Europe/Minsk", "Mars/Olympus"]

    def test_empty_resolves_to_utc(self, sanitizer):
        assert sanitizer.for_host("") == "UTC"


class TestTable:
    def test_table_is_read_only(self, sanitizer):
        with pytest.raises(TypeError):
            sanitizer.translations["Europe/Paris"] = "UTC+01:00"

    def test_custom_table(self):
        custom = TimezoneSanitizer(translations=[("Old/Name", "New/Name")], host_zones={"New/Name"})
        assert custom.to_host_spelling("Old/Name") == "New/Name"
        assert custom.to_host_spelling("Europe/Minsk") == "Europe/Minsk"

    def test_shared_instance(self):
        assert get_sanitizer() is get_sanitizer()

    def test_host_zones_include_utc(self):
        zones = host_time_zones()
        assert "UTC" in zones
        assert "Europe/Paris" in zones


class TestReport:
    def test_summary_logged_once_per_name(self, caplog):
        caplog.set_level(logging.WARNING, logger="location_registry.timezones")
        report = UnknownTimezoneReport("base.bin")
        report.add("Foo/Bar", "Somewhere")
        report.add("Foo/Bar", "Elsewhere")
        report.log_summary()
        assert len(caplog.records) == 1
        assert caplog.text.count("'Foo/Bar'") == 1
        assert "base.bin" in caplog.text

    def test_empty_report_is_silent(self, caplog):
        caplog.set_level(logging.WARNING, logger="location_registry.timezones")
        UnknownTimezoneReport().log_summary()
        assert caplog.records == []
