"""
Tests for the command line entrypoint.
"""

from __future__ import annotations

import json

import pytest

from location_registry.__main__ import main

CATALOG = (
    "# test catalog\n"
    "Paris\tIle-de-France\tfr\tC\t2138.551\t48.856600N\t2.352200E\t35\t9\tEurope/Paris\tEarth\tguereins\n"
    "London\tEngland\tgb\tC\t8961.989\t51.507400N\t0.127800W\t11\t9\tEurope/London\n"
    "Gale Crater\t\t\tP\t0\t5.400000S\t137.800000E\t-4500\t1\tLMST\tMars\n"
)


@pytest.fixture
def catalogs(tmp_path):
    text = tmp_path / "base_locations.txt"
    text.write_text(CATALOG, encoding="utf-8")
    base = tmp_path / "base_locations.bin.gz"
    user = tmp_path / "user" / "user_locations.txt"
    assert main(["generate", str(text), str(base)]) == 0
    return ["--base", str(base), "--user-catalog", str(user)], user


class TestCli:
    def test_generate_reports_count(self, capsys, catalogs):
        out = capsys.readouterr().out
        assert "Wrote 3 locations" in out

    def test_list(self, catalogs, capsys):
        options, _ = catalogs
        capsys.readouterr()
        assert main(options + ["list"]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "Gale Crater, ",
            "London, United Kingdom",
            "Paris, France",
        ]

    def test_resolve(self, catalogs, capsys):
        options, _ = catalogs
        capsys.readouterr()
        assert main(options + ["resolve", "Paris, France"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["population"] == 2138551
        assert data["landscape_key"] == "guereins"

    def test_resolve_invalid(self, catalogs, capsys):
        options, _ = catalogs
        assert main(options + ["resolve", "Atlantis"]) == 1

    def test_near_and_country(self, catalogs, capsys):
        options, _ = catalogs
        capsys.readouterr()
        assert main(options + ["near", "--lat", "48.85", "--lon", "2.35", "--radius", "1"]) == 0
        assert list(json.loads(capsys.readouterr().out)) == ["Paris, France"]
        assert main(options + ["country", "United Kingdom"]) == 0
        assert list(json.loads(capsys.readouterr().out)) == ["London, United Kingdom"]

    def test_save_then_delete(self, catalogs, capsys):
        options, user = catalogs
        save = ["save", "--name", "Backyard", "--country", "France", "--lat", "45", "--lon", "5"]
        assert main(options + save) == 0
        assert user.read_text(encoding="utf-8").startswith("Backyard\t")
        # Second save collides with the stored identifier
        assert main(options + save) == 1
        assert main(options + ["delete", "Backyard, France"]) == 0
        assert user.read_text(encoding="utf-8") == ""

    def test_base_location_not_deletable(self, catalogs):
        options, _ = catalogs
        assert main(options + ["delete", "Paris, France"]) == 1
