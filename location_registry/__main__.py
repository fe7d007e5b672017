"""CLI entrypoint for location_registry."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from location_registry.config import Settings, get_settings
from location_registry.logging_config import setup_logging
from location_registry.models import Location
from location_registry.text_catalog import as_user_location


def main(argv: list[str] | None = None) -> int:
    setup_logging()

    parser = argparse.ArgumentParser(prog="location-registry")
    parser.add_argument("--base", help="binary base catalog (default from LOCATION_BASE_CATALOG)")
    parser.add_argument("--user-catalog", help="user catalog (default from LOCATION_USER_CATALOG)")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve_parser = sub.add_parser("resolve", help="identifier or '[name ]lat,long'")
    resolve_parser.add_argument("descriptor")

    near_parser = sub.add_parser("near")
    near_parser.add_argument("--planet", default="Earth")
    near_parser.add_argument("--lat", type=float, required=True)
    near_parser.add_argument("--lon", type=float, required=True)
    near_parser.add_argument("--radius", type=float, default=None, help="degrees")

    country_parser = sub.add_parser("country")
    country_parser.add_argument("name")

    sub.add_parser("list")

    save_parser = sub.add_parser("save")
    save_parser.add_argument("--name", required=True)
    save_parser.add_argument("--state", default="")
    save_parser.add_argument("--country", default="")
    save_parser.add_argument("--lat", type=float, required=True)
    save_parser.add_argument("--lon", type=float, required=True)
    save_parser.add_argument("--altitude", type=int, default=0)
    save_parser.add_argument("--time-zone", default="")
    save_parser.add_argument("--planet", default="Earth")
    save_parser.add_argument("--landscape", default="")

    delete_parser = sub.add_parser("delete")
    delete_parser.add_argument("location_id")

    generate_parser = sub.add_parser("generate", help="rebuild a binary catalog from text")
    generate_parser.add_argument("text_in", type=Path)
    generate_parser.add_argument("bin_out", type=Path)
    generate_parser.add_argument("--user", action="store_true", help="mark entries as user locations")

    args = parser.parse_args(argv)
    settings = _settings_for(args)

    if args.command == "generate":
        return _generate(args.text_in, args.bin_out, args.user)

    from location_registry.registry import LocationRegistry

    registry = LocationRegistry.from_settings(settings)

    if args.command == "resolve":
        location = registry.resolve(args.descriptor)
        _print_json(location.model_dump())
        return 0 if location.is_valid else 1
    if args.command == "near":
        radius = args.radius if args.radius is not None else settings.location.near_radius_degrees
        _print_mapping(registry.find_near(args.planet, args.lon, args.lat, radius))
        return 0
    if args.command == "country":
        _print_mapping(registry.find_in_country(args.name))
        return 0
    if args.command == "list":
        for loc_id in registry.location_ids():
            print(loc_id)
        return 0
    if args.command == "save":
        location = Location(
            name=args.name,
            state=args.state,
            country=args.country,
            latitude=args.lat,
            longitude=args.lon,
            altitude=args.altitude,
            iana_time_zone=args.time_zone,
            planet_name=args.planet,
            landscape_key=args.landscape,
        )
        loc_id = as_user_location(location).location_id
        if not registry.save(location):
            print(f"Cannot save {loc_id!r}", file=sys.stderr)
            return 1
        print(f"Saved {loc_id!r}")
        return 0
    if args.command == "delete":
        if not registry.delete(args.location_id):
            print(f"Cannot delete {args.location_id!r}", file=sys.stderr)
            return 1
        print(f"Deleted {args.location_id!r}")
        return 0
    return 2


def _settings_for(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    catalog = settings.catalog
    if args.base:
        catalog = replace(catalog, base_catalog=Path(args.base))
    if args.user_catalog:
        catalog = replace(catalog, user_catalog=Path(args.user_catalog))
    return replace(settings, catalog=catalog)


def _generate(text_in: Path, bin_out: Path, is_user: bool) -> int:
    from location_registry.binary_catalog import generate_binary

    count = generate_binary(text_in, bin_out, is_user_location=is_user)
    print(f"Wrote {count} locations to {bin_out}")
    return 0


def _print_mapping(locations: dict[str, Location]) -> None:
    _print_json({loc_id: loc.model_dump() for loc_id, loc in sorted(locations.items())})


def _print_json(data: object) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    sys.exit(main())
