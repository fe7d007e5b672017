"""Errors raised at the binary catalog seam."""

from __future__ import annotations


class LocationRegistryError(Exception):
    """Base class for registry errors."""


class CatalogFormatError(LocationRegistryError):
    """The binary catalog is not in a format this codec can read."""


class CatalogVersionError(CatalogFormatError):
    """The binary catalog was written by an incompatible format version."""

    def __init__(self, found: int, expected: int):
        self.found = found
        self.expected = expected
        super().__init__(f"unsupported catalog format version {found} (expected {expected})")
