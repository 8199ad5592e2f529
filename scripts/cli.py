#!/usr/bin/env python3
"""catalog — CLI for the catalog builder (installed as the `catalog` command).

Usage:
    catalog generate [--config PATH] [--source DIR] [--target DIR] [--base-url URL]
    catalog verify   [--config PATH] [--target DIR]

Subcommands:
    generate  Rebuild the catalog tree from the source repository.
    verify    Check a generated tree against the manifest/bundle contracts
              and the remote-only media reference rule.

Exit codes are those of the delegated script (see generate_index.py and
verify_catalog.py); 2 for unknown subcommands.
"""
import subprocess
import sys
from pathlib import Path

_SCRIPTS_DIR = Path(__file__).resolve().parent
_GENERATE_SCRIPT = _SCRIPTS_DIR / "generate_index.py"
_VERIFY_SCRIPT = _SCRIPTS_DIR / "verify_catalog.py"

_USAGE = """\
Usage:
  catalog generate [--config PATH] [--source DIR] [--target DIR] [--base-url URL]
  catalog verify   [--config PATH] [--target DIR]
"""

_SUBCOMMANDS = {
    "generate": _GENERATE_SCRIPT,
    "verify": _VERIFY_SCRIPT,
}


def run_subcommand(script: Path, argv: list[str]) -> int:
    """Run *script* with *argv* in a child interpreter and return its exit code."""
    return subprocess.run([sys.executable, str(script), *argv]).returncode


def main() -> None:
    if len(sys.argv) < 2:
        print(_USAGE, file=sys.stderr)
        sys.exit(2)

    subcmd, rest = sys.argv[1], sys.argv[2:]
    script = _SUBCOMMANDS.get(subcmd)
    if script is None:
        print(f"Unknown subcommand: {subcmd!r}\n{_USAGE}", file=sys.stderr)
        sys.exit(2)
    sys.exit(run_subcommand(script, rest))


if __name__ == "__main__":
    main()
