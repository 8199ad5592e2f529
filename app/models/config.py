"""Run configuration for the catalog builder.

``config.json`` uses the camelCase keys shared with the static file server
and the metadata editors::

    {
      "sourceDir": "repository",
      "targetDir": "docs",
      "baseUrl":   "http://localhost:3000"
    }

Relative directories are resolved against the folder holding the config file,
so the same file works regardless of the caller's working directory.
"""

import json
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from catalog.errors import ConfigError

# Name of the config file looked up in the working directory when neither
# --config nor CATALOG_CONFIG is given.
DEFAULT_CONFIG_FILENAME = "config.json"


class CatalogConfig(BaseModel):
    """Values threaded through a single catalog run."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    source_dir: Path
    """Root of the source repository (conceptually ``repository/``)."""

    target_dir: Path
    """Root of the generated catalog (conceptually ``docs/``)."""

    base_url: str = ""
    """Prefix for every download URL and rewritten media reference."""

    log_level: str = "INFO"

    def remote_url(self, relative_path: str) -> str:
        """Return the published URL for *relative_path* under the target root."""
        return join_url(self.base_url, relative_path)


def join_url(base_url: str, relative_path: str) -> str:
    """Join *base_url* and *relative_path* with exactly one slash."""
    return f"{base_url.rstrip('/')}/{relative_path.lstrip('/')}"


def default_config_path(explicit: str | None = None) -> Path:
    """Pick the config file: explicit arg, then ``CATALOG_CONFIG``, then CWD."""
    chosen = (
        explicit
        or os.environ.get("CATALOG_CONFIG")
        or str(Path.cwd() / DEFAULT_CONFIG_FILENAME)
    )
    return Path(chosen)


def load_config(path: Path) -> CatalogConfig:
    """Load and validate *path*, resolving directories against its folder.

    Raises:
        ConfigError: If the file is missing, not JSON, or fails validation.
    """
    if not path.is_file():
        raise ConfigError(f"ERROR: config file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"ERROR: failed to load {path}: {exc}") from exc

    try:
        config = CatalogConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"ERROR: invalid config {path}: {exc}") from exc

    anchor = path.resolve().parent
    return config.model_copy(
        update={
            "source_dir": (anchor / config.source_dir).resolve(),
            "target_dir": (anchor / config.target_dir).resolve(),
        }
    )
