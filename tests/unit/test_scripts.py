"""End-to-end subprocess tests for the catalog scripts.

scripts/generate_index.py, scripts/verify_catalog.py and the scripts/cli.py
dispatcher are run as real subprocesses so stdout, stderr, and returncode are
captured naturally.
"""

import base64
import json
import os
import subprocess
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SCRIPTS = Path(__file__).resolve().parents[2] / "scripts"
GENERATE = _SCRIPTS / "generate_index.py"
VERIFY = _SCRIPTS / "verify_catalog.py"
CLI = _SCRIPTS / "cli.py"


def _run(script: Path, *args: str, cwd: Path | None = None) -> subprocess.CompletedProcess:
    """Invoke *script* as a subprocess without inheriting CATALOG_CONFIG."""
    env = {k: v for k, v in os.environ.items() if k != "CATALOG_CONFIG"}
    cmd = [sys.executable, str(script), *args]
    return subprocess.run(cmd, env=env, cwd=cwd, capture_output=True, text=True)


def _make_repository(root: Path) -> None:
    """Alice with an embedded image, one broken JSON, and one plain file."""
    persons = root / "repository" / "Persons"
    feeds = root / "repository" / "Feeds"
    persons.mkdir(parents=True)
    feeds.mkdir(parents=True)
    encoded = base64.b64encode(b"\x89PNG-alice").decode("ascii")
    (persons / "Alice.json").write_text(
        json.dumps({"spec": {"name": "Alice", "embeddedImageBase64": encoded}}), encoding="utf-8"
    )
    (feeds / "Broken.json").write_text("{not json", encoding="utf-8")
    (feeds / "logo.png").write_bytes(b"logo")


def _write_config(root: Path) -> Path:
    path = root / "config.json"
    path.write_text(
        json.dumps({"sourceDir": "repository", "targetDir": "docs", "baseUrl": "http://x/"}),
        encoding="utf-8",
    )
    return path


def _last_line(text: str) -> str:
    lines = text.strip().splitlines()
    return lines[-1] if lines else ""


# ---------------------------------------------------------------------------
# Test 1 — generate_index.py
# ---------------------------------------------------------------------------


def test_generate_with_config_prints_summary(tmp_path: Path) -> None:
    """A good config builds the tree and prints the OK summary on stdout."""
    _make_repository(tmp_path)
    config = _write_config(tmp_path)

    result = _run(GENERATE, "--config", str(config))

    assert result.returncode == 0, result.stderr
    assert _last_line(result.stdout).startswith("OK: 1 entities; 2 files; 0 packages; 1 skipped")
    assert (tmp_path / "docs" / "Persons" / "Alice" / "person.png").is_file()
    assert (tmp_path / "docs" / "index.json").is_file()


def test_generate_finds_config_in_working_directory(tmp_path: Path) -> None:
    _make_repository(tmp_path)
    _write_config(tmp_path)

    result = _run(GENERATE, cwd=tmp_path)

    assert result.returncode == 0, result.stderr
    assert (tmp_path / "docs" / "Feeds" / "index.json").is_file()


def test_generate_without_config_uses_overrides(tmp_path: Path) -> None:
    _make_repository(tmp_path)

    result = _run(
        GENERATE,
        "--source", str(tmp_path / "repository"),
        "--target", str(tmp_path / "out"),
        "--base-url", "https://cdn",
        cwd=tmp_path,
    )

    assert result.returncode == 0, result.stderr
    spec = json.loads((tmp_path / "out" / "Persons" / "Alice" / "entity.json").read_text(encoding="utf-8"))["spec"]
    assert spec["imageSource"]["url"] == "https://cdn/Persons/Alice/person.png"


def test_generate_missing_config_exits_1(tmp_path: Path) -> None:
    result = _run(GENERATE, "--config", str(tmp_path / "missing.json"))

    assert result.returncode == 1
    assert "ERROR: config file not found" in result.stderr
    assert result.stdout == ""


def test_generate_missing_source_exits_1(tmp_path: Path) -> None:
    config = _write_config(tmp_path)

    result = _run(GENERATE, "--config", str(config))

    assert result.returncode == 1
    assert "sourceDir" in result.stderr


def test_generate_logs_go_to_stderr_as_json(tmp_path: Path) -> None:
    _make_repository(tmp_path)
    config = _write_config(tmp_path)

    result = _run(GENERATE, "--config", str(config), "--json-logs")

    assert result.returncode == 0
    events = [json.loads(line) for line in result.stderr.splitlines() if line.startswith("{")]
    assert any(e["event"] == "created_index" for e in events)
    assert len(result.stdout.strip().splitlines()) == 1


# ---------------------------------------------------------------------------
# Test 2 — verify_catalog.py
# ---------------------------------------------------------------------------


def test_verify_generated_tree_passes(tmp_path: Path) -> None:
    _make_repository(tmp_path)
    config = _write_config(tmp_path)
    assert _run(GENERATE, "--config", str(config)).returncode == 0

    result = _run(VERIFY, "--target", str(tmp_path / "docs"))

    assert result.returncode == 0, result.stderr
    assert _last_line(result.stdout) == "OK: 3 manifests; 1 entity documents"


def test_verify_reports_local_reference(tmp_path: Path) -> None:
    _make_repository(tmp_path)
    config = _write_config(tmp_path)
    assert _run(GENERATE, "--config", str(config)).returncode == 0
    document = tmp_path / "docs" / "Persons" / "Alice" / "entity.json"
    record = json.loads(document.read_text(encoding="utf-8"))
    record["spec"]["imageSource"] = {"kind": "local", "url": "person.png"}
    document.write_text(json.dumps(record), encoding="utf-8")

    result = _run(VERIFY, "--config", str(config))

    assert result.returncode == 1
    assert "spec.imageSource is not a remote reference" in result.stderr


def test_verify_reports_invalid_manifest(tmp_path: Path) -> None:
    _make_repository(tmp_path)
    config = _write_config(tmp_path)
    assert _run(GENERATE, "--config", str(config)).returncode == 0
    (tmp_path / "docs" / "Feeds" / "index.json").write_text(json.dumps({"items": []}), encoding="utf-8")

    result = _run(VERIFY, "--target", str(tmp_path / "docs"))

    assert result.returncode == 1
    assert "Feeds" in result.stderr


def test_verify_missing_target_exits_2(tmp_path: Path) -> None:
    result = _run(VERIFY, "--target", str(tmp_path / "nothing"))

    assert result.returncode == 2
    assert "not found" in result.stderr


# ---------------------------------------------------------------------------
# Test 3 — cli.py dispatcher
# ---------------------------------------------------------------------------


def test_cli_generate_then_verify(tmp_path: Path) -> None:
    _make_repository(tmp_path)
    config = _write_config(tmp_path)

    generated = _run(CLI, "generate", "--config", str(config))
    verified = _run(CLI, "verify", "--config", str(config))

    assert generated.returncode == 0, generated.stderr
    assert _last_line(generated.stdout).startswith("OK:")
    assert verified.returncode == 0, verified.stderr
    assert _last_line(verified.stdout).startswith("OK:")


def test_cli_unknown_subcommand_exits_2() -> None:
    result = _run(CLI, "publish")

    assert result.returncode == 2
    assert "Unknown subcommand" in result.stderr


def test_cli_without_arguments_exits_2() -> None:
    result = _run(CLI)

    assert result.returncode == 2
    assert "Usage" in result.stderr
