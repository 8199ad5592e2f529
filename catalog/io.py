"""Whole-file JSON and copy helpers used across the pipeline."""

import json
import shutil
from pathlib import Path
from typing import Any

from app.utils.logging import get_logger

logger = get_logger("catalog.io")


def read_json_object(path: Path) -> dict | None:
    """Parse *path* as a JSON object.

    Returns ``None`` (and logs a warning) when the file cannot be read, is
    not valid JSON, or holds something other than an object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        logger.warning("json_unparsable", path=str(path), error=str(exc))
        return None
    if not isinstance(data, dict):
        logger.warning("json_not_an_object", path=str(path), type=type(data).__name__)
        return None
    return data


def write_json_document(path: Path, document: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")


def copy_file(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
