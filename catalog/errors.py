"""Setup-level errors for the catalog builder.

Only configuration and source-root problems are fatal.  Per-entity and
per-media failures are logged and skipped by the walker; they never surface
as exceptions.
"""


class CatalogError(Exception):
    """Base class for errors that abort a catalog run."""


class ConfigError(CatalogError):
    """Run configuration is missing or invalid."""


class SourceNotFoundError(CatalogError):
    """The configured source repository does not exist."""
