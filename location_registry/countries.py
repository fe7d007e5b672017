"""
Country code <-> display name conversion backed by pycountry.

Catalog files store lowercase ISO 3166-1 alpha-2 codes ("fr"), records carry
display names ("France"). Anything pycountry does not know is passed through.
"""

from __future__ import annotations

from functools import lru_cache

import pycountry


@lru_cache(maxsize=512)
def country_code_to_name(code: str) -> str:
    """Return the display name for an alpha-2 code, or "" if it is not a code."""
    code = code.strip()
    if len(code) != 2:
        return ""
    country = pycountry.countries.get(alpha_2=code.upper())
    if country is None:
        return ""
    # Prefer "Russia" over "Russian Federation" where a common name exists
    return getattr(country, "common_name", None) or country.name


@lru_cache(maxsize=512)
def country_name_to_code(name: str) -> str:
    """
    Return the lowercase alpha-2 code for a country name, or the name unchanged.
    Only names that read back from the code unchanged are encoded, so "USA" or
    an official name stays free text.
    """
    if not name:
        return ""
    try:
        country = pycountry.countries.lookup(name)
    except LookupError:
        return name
    code = country.alpha_2.lower()
    if country_code_to_name(code) != name:
        return name
    return code


def normalize_country(raw: str) -> str:
    """Catalog column -> record value: codes become names, free text stays."""
    raw = raw.strip()
    return country_code_to_name(raw) or raw
