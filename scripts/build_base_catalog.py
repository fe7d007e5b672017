from __future__ import annotations

import argparse
from pathlib import Path

from location_registry.binary_catalog import generate_binary
from location_registry.config import get_settings
from location_registry.logging_config import setup_logging


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Build the binary base location catalog.")
    parser.add_argument("--source", default=str(settings.catalog.base_catalog_text))
    parser.add_argument("--out", default=str(settings.catalog.base_catalog))
    args = parser.parse_args()

    setup_logging()
    count = generate_binary(Path(args.source), Path(args.out))
    print(f"Built {count} locations into {args.out}")


if __name__ == "__main__":
    main()
