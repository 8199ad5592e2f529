"""Relative-path rules shared by the walker, the unpacker and the rewriter.

All relative paths are POSIX strings rooted at the source/target directory
(``Persons/Featured/Alice.json``); they double as URL paths under the
configured base URL once sanitized.
"""

import re
from pathlib import PurePosixPath

from models.entity import BUNDLE_DOCUMENT, ENTITY_DOCUMENT

_UNSAFE = re.compile(r"[\s/\\]+")

# Documents that sit inside their entity folder rather than standing for it.
_FOLDER_DOCUMENTS = frozenset({ENTITY_DOCUMENT, BUNDLE_DOCUMENT})


def sanitize_for_filesystem(name: str) -> str:
    """Replace every run of whitespace or path separators with a single dash."""
    return _UNSAFE.sub("-", name)


def sanitize_path(relative_path: str) -> str:
    """Sanitize each segment of a POSIX relative path."""
    return "/".join(sanitize_for_filesystem(s) for s in relative_path.split("/") if s)


def strip_json_extension(name: str) -> str:
    return re.sub(r"\.json$", "", name, flags=re.IGNORECASE)


def top_level_folder(relative_path: str) -> str:
    """``Persons/Featured/Alice.json`` → ``Persons``."""
    return relative_path.split("/", 1)[0] if relative_path else ""


def join_relative(*parts: str) -> str:
    """Join non-empty POSIX segments."""
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def published_folder(relative_path: str) -> str:
    """Return the sanitized folder that holds an entity's published files.

    * ``Persons/Alice.json``: a standalone file is promoted into its own
      folder, so its base name becomes an extra segment: ``Persons/Alice``.
    * ``Programs/Show/entity.json`` / ``Programs/Show/entity+deps.json``:
      canonical documents already live in the entity folder: ``Programs/Show``.
    * ``Persons/Bob``: a folder entity is its own folder.
    """
    rel = PurePosixPath(relative_path)
    if rel.name.lower() in _FOLDER_DOCUMENTS:
        folder = rel.parent
    elif rel.suffix.lower() == ".json":
        folder = rel.parent / strip_json_extension(rel.name)
    else:
        folder = rel

    posix = folder.as_posix()
    return "" if posix == "." else sanitize_path(posix)
