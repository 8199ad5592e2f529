#!/usr/bin/env python3
"""Build the catalog tree (entity folders + index.json) from a repository.

Usage:
    python scripts/generate_index.py [--config config.json] \\
        [--source repository/] [--target docs/] [--base-url http://host]

The config file defaults to $CATALOG_CONFIG, then ./config.json.  When
--source and --target are both given and no config file exists, the
config file is optional.

Exit codes:
    0  — catalog generated
    1  — configuration error or missing source directory
    2  — bad arguments
"""

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path so catalog/* and models/* are importable
# when the script is invoked from any working directory.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.models.config import CatalogConfig, default_config_path, load_config  # noqa: E402
from app.utils.logging import configure_logging  # noqa: E402
from catalog.errors import CatalogError  # noqa: E402
from catalog.walker import generate_catalog  # noqa: E402


def _resolve_config(args: argparse.Namespace) -> CatalogConfig:
    """Load the config file (if any) and apply command-line overrides."""
    overrides = {
        "source_dir": Path(args.source).resolve() if args.source else None,
        "target_dir": Path(args.target).resolve() if args.target else None,
        "base_url": args.base_url,
        "log_level": args.log_level,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}

    path = default_config_path(args.config)
    if args.config is None and not path.is_file() and {"source_dir", "target_dir"} <= overrides.keys():
        return CatalogConfig(**overrides)

    return load_config(path).model_copy(update=overrides)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", "-c", metavar="PATH", help="Path to config.json.")
    parser.add_argument("--source", "-s", metavar="DIR", help="Override sourceDir.")
    parser.add_argument("--target", "-t", metavar="DIR", help="Override targetDir.")
    parser.add_argument("--base-url", metavar="URL", help="Override baseUrl.")
    parser.add_argument("--log-level", metavar="LEVEL", help="Override logLevel (DEBUG, INFO, …).")
    parser.add_argument("--json-logs", action="store_true", help="Emit log events as JSON lines.")
    args = parser.parse_args()

    # 1. Configuration
    try:
        config = _resolve_config(args)
    except CatalogError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    configure_logging(config.log_level, json_output=args.json_logs)

    # 2. Build
    try:
        summary = generate_catalog(config)
    except CatalogError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    # 3. Summary
    print(
        f"OK: {summary.entities} entities; {summary.files} files; "
        f"{summary.packages} packages; {summary.skipped} skipped → {config.target_dir}"
    )


if __name__ == "__main__":
    main()
