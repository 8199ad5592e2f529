#!/usr/bin/env python3
"""Verify a generated catalog tree against its publishing contracts.

Usage:
    python scripts/verify_catalog.py --target docs/
    python scripts/verify_catalog.py --config config.json

Checks:
  - every directory holds an index.json valid against DirectoryManifest.v1.json
  - every entity+deps.json is valid against DependencyBundle.v1.json
  - no entity.json / entity+deps.json (including bundled records) still
    carries an embedded payload or a local/generated media reference

Exit codes:
    0  — all checks passed
    1  — one or more problems found (listed on stderr)
    2  — target directory missing or bad arguments
"""

import argparse
import json
import sys
from pathlib import Path

import jsonschema

# Ensure project root is on sys.path so catalog/* and models/* are importable
# when the script is invoked from any working directory.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.models.config import default_config_path, load_config  # noqa: E402
from catalog.errors import CatalogError  # noqa: E402
from models.entity import BUNDLE_DOCUMENT, ENTITY_DOCUMENT, INDEX_DOCUMENT  # noqa: E402
from resolvers.media import find_unpublished_references  # noqa: E402

# ---------------------------------------------------------------------------
# Contract schemas — loaded once at import time relative to project root.
# ---------------------------------------------------------------------------
_CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts" / "schemas"
_SCHEMA_MANIFEST = json.loads((_CONTRACTS_DIR / "DirectoryManifest.v1.json").read_text(encoding="utf-8"))
_SCHEMA_BUNDLE = json.loads((_CONTRACTS_DIR / "DependencyBundle.v1.json").read_text(encoding="utf-8"))


def _load(path: Path, problems: list[str]) -> dict | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        problems.append(f"{path}: unreadable: {exc}")
        return None
    if not isinstance(data, dict):
        problems.append(f"{path}: not a JSON object")
        return None
    return data


def _check_references(path: Path, record: dict, problems: list[str], label: str = "") -> None:
    for location in find_unpublished_references(record):
        problems.append(f"{path}: {label}{location} is not a remote reference")


def verify_tree(target: Path) -> tuple[int, int, list[str]]:
    """Return (manifest count, entity document count, problems) for *target*."""
    problems: list[str] = []
    manifests = 0
    documents = 0

    for directory in [target, *sorted(p for p in target.rglob("*") if p.is_dir())]:
        index_path = directory / INDEX_DOCUMENT
        if index_path.is_file():
            manifest = _load(index_path, problems)
            if manifest is not None:
                manifests += 1
                try:
                    jsonschema.validate(instance=manifest, schema=_SCHEMA_MANIFEST)
                except jsonschema.ValidationError as exc:
                    problems.append(f"{index_path}: {exc.message}")
                # Every listed sub-directory carries its own manifest.
                for item in manifest.get("items", []):
                    if isinstance(item, dict) and item.get("isDirectory") is True:
                        if not (directory / str(item.get("path")) / INDEX_DOCUMENT).is_file():
                            problems.append(f"{directory / str(item.get('path'))}: missing {INDEX_DOCUMENT}")

        entity_path = directory / ENTITY_DOCUMENT
        if entity_path.is_file():
            record = _load(entity_path, problems)
            if record is not None:
                documents += 1
                _check_references(entity_path, record, problems)

        bundle_path = directory / BUNDLE_DOCUMENT
        if bundle_path.is_file():
            bundle = _load(bundle_path, problems)
            if bundle is not None:
                documents += 1
                try:
                    jsonschema.validate(instance=bundle, schema=_SCHEMA_BUNDLE)
                except jsonschema.ValidationError as exc:
                    problems.append(f"{bundle_path}: {exc.message}")
                _check_references(bundle_path, bundle, problems)
                dependencies = bundle.get("dependencies")
                if isinstance(dependencies, dict):
                    for group, records in dependencies.items():
                        for index, dep in enumerate(records if isinstance(records, list) else []):
                            if isinstance(dep, dict):
                                _check_references(bundle_path, dep, problems, f"dependencies.{group}[{index}].")

    return manifests, documents, problems


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--target", "-t", metavar="DIR", help="Generated catalog root.")
    parser.add_argument("--config", "-c", metavar="PATH", help="Read targetDir from config.json.")
    args = parser.parse_args()

    # 1. Resolve target
    if args.target:
        target = Path(args.target)
    else:
        try:
            target = load_config(default_config_path(args.config)).target_dir
        except CatalogError as exc:
            print(str(exc), file=sys.stderr)
            sys.exit(2)

    if not (target / INDEX_DOCUMENT).is_file():
        print(f"ERROR: {target / INDEX_DOCUMENT} not found.", file=sys.stderr)
        sys.exit(2)

    # 2. Verify
    manifests, documents, problems = verify_tree(target)
    if problems:
        for problem in problems:
            print(f"ERROR: {problem}", file=sys.stderr)
        sys.exit(1)

    # 3. Summary
    print(f"OK: {manifests} manifests; {documents} entity documents")


if __name__ == "__main__":
    main()
