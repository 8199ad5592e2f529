"""CatalogBuilder — turns a source repository into a publishable catalog tree.

Source entries are handled as follows (hidden entries, ``index.json`` and
``repo-metadata.json`` are skipped):

  folder with entity.json   → folder entity: <name>/entity.json + its files
  other folder              → recurse; directory stub
  Programs/**/<name>.zip    → Program package (see catalog.package)
  whats-new.json            → copied as-is (release notes)
  <name>.json               → standalone entity: <name>/entity.json;
                              copied as-is when it does not parse
  anything else             → copied as-is; stub with downloadURL

Every output directory gets an ``index.json`` once all of its children are
done, so the listing always reflects a complete set of children.  The kind of
an entity is taken from the top-level folder it lives under.

Failures of a single entry, including filesystem errors and output name
collisions, are logged and the walk moves on; only a missing source root or
an overlapping target aborts a run.
"""

import shutil
from pathlib import Path

from pydantic import BaseModel

from app.models.config import CatalogConfig
from app.utils.logging import get_logger
from catalog.digest import build_digest
from catalog.errors import ConfigError, SourceNotFoundError
from catalog.io import copy_file, read_json_object, write_json_document
from catalog.package import ensure_entity_id, unpack_program_package
from catalog.paths import (
    join_relative,
    sanitize_for_filesystem,
    sanitize_path,
    strip_json_extension,
    top_level_folder,
)
from models.entity import (
    ENTITY_DOCUMENT,
    INDEX_DOCUMENT,
    PROGRAMS_FOLDER,
    RELEASE_NOTES_DOCUMENT,
    REPO_METADATA_DOCUMENT,
    EntityKind,
    kind_for_folder,
)
from models.manifest import DirectoryItem, DirectoryManifest, EntityItem, FileItem, ManifestItem
from resolvers.media import extract_and_rewrite

# Entries never listed in a manifest.
_RESERVED_NAMES = frozenset({INDEX_DOCUMENT, REPO_METADATA_DOCUMENT})


class BuildSummary(BaseModel):
    """Counters reported at the end of a run."""

    directories: int = 0
    entities: int = 0
    packages: int = 0
    files: int = 0
    skipped: int = 0


class CatalogBuilder:
    """Walk a source tree and write the catalog for *config*.

    Usage::

        builder = CatalogBuilder(config)
        summary = builder.build()
    """

    def __init__(self, config: CatalogConfig) -> None:
        self.config = config
        self.summary = BuildSummary()
        self._log = get_logger("catalog.walker")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self) -> BuildSummary:
        """Regenerate the whole target tree from the source tree.

        Raises:
            SourceNotFoundError: If the source directory does not exist.
            ConfigError: If the target directory would overlap the source.
        """
        source = self.config.source_dir.resolve()
        target = self.config.target_dir.resolve()
        if not source.is_dir():
            raise SourceNotFoundError(f"ERROR: sourceDir (repository) not found: {source}")
        if target == source or target in source.parents or source in target.parents:
            raise ConfigError(
                f"ERROR: targetDir {target} must not overlap sourceDir {source}"
            )

        if target.exists():
            shutil.rmtree(target)
            self._log.info("removed_target", path=str(target))

        self.summary = BuildSummary()
        self.walk(source, target)
        return self.summary

    def walk(self, source_dir: Path, output_dir: Path, relative_path: str = "") -> None:
        """Process *source_dir* into *output_dir* and write its ``index.json``.

        Args:
            source_dir: Directory being read.
            output_dir: Matching output directory (created if missing).
            relative_path: Path of *source_dir* relative to the source root;
                ``""`` at the top.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        items: list[ManifestItem] = []

        for entry in sorted(source_dir.iterdir(), key=lambda p: p.name):
            if entry.name.startswith(".") or entry.name in _RESERVED_NAMES:
                continue
            entry_rel = join_relative(relative_path, entry.name)
            try:
                item = self._process_entry(entry, output_dir, entry_rel)
            except OSError as exc:
                # shutil.Error is an OSError; copy and write failures skip the entry.
                self._log.warning("entry_failed", path=str(entry), error=str(exc))
                self.summary.skipped += 1
                continue
            if item is not None:
                items.append(item)

        manifest = DirectoryManifest(info=self._read_metadata(source_dir), items=items)
        write_json_document(output_dir / INDEX_DOCUMENT, manifest.to_document())
        self.summary.directories += 1
        self._log.info("created_index", path=str(output_dir), items=len(items))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _process_entry(
        self, entry: Path, output_dir: Path, relative_path: str
    ) -> ManifestItem | None:
        if entry.is_dir():
            if (entry / ENTITY_DOCUMENT).is_file():
                return self._process_entity_folder(entry, output_dir, relative_path)
            safe_name = sanitize_for_filesystem(entry.name)
            self.walk(entry, output_dir / safe_name, relative_path)
            return DirectoryItem(name=entry.name, path=safe_name)

        suffix = entry.suffix.lower()
        if suffix == ".zip" and top_level_folder(relative_path).lower() == PROGRAMS_FOLDER:
            return self._process_package(entry, output_dir, relative_path)
        if suffix == ".json" and entry.name != RELEASE_NOTES_DOCUMENT:
            return self._process_entity_json(entry, output_dir, relative_path)
        return self._copy_opaque(entry, output_dir, relative_path)

    def _kind(self, relative_path: str) -> EntityKind:
        return kind_for_folder(top_level_folder(relative_path))

    def _publish_entity(
        self,
        record: dict,
        entity_folder: Path,
        relative_path: str,
        fallback_name: str,
    ) -> EntityItem:
        """Rewrite media, write ``entity.json`` and return the manifest entry."""
        kind = self._kind(relative_path)
        extract_and_rewrite(record, entity_folder, kind, relative_path, self.config.base_url)

        digest = build_digest(record, kind, fallback_name=fallback_name)
        ensure_entity_id(record, digest.id)

        document = entity_folder / ENTITY_DOCUMENT
        write_json_document(document, record)
        self.summary.entities += 1
        self._log.debug("wrote_entity", path=str(document), kind=kind.value)
        return EntityItem(name=str(digest.name), path=entity_folder.name, digest=digest)

    def _process_entity_folder(
        self, folder: Path, output_dir: Path, relative_path: str
    ) -> EntityItem | None:
        record = read_json_object(folder / ENTITY_DOCUMENT)
        if record is None:
            self._log.warning("entity_folder_invalid", path=str(folder))
            self.summary.skipped += 1
            return None

        entity_folder = output_dir / sanitize_for_filesystem(folder.name)
        if entity_folder.exists():
            self._log.warning(
                "entity_name_collision", path=str(folder), destination=str(entity_folder)
            )
            self.summary.skipped += 1
            return None

        # Media referenced as local/generated must sit next to the document.
        shutil.copytree(
            folder,
            entity_folder,
            ignore=shutil.ignore_patterns(ENTITY_DOCUMENT, ".*"),
        )
        return self._publish_entity(record, entity_folder, relative_path, folder.name)

    def _process_entity_json(
        self, source: Path, output_dir: Path, relative_path: str
    ) -> ManifestItem:
        record = read_json_object(source)
        if record is None:
            self._log.warning("entity_json_unparsable", path=str(source))
            self.summary.skipped += 1
            return self._copy_opaque(source, output_dir, relative_path)

        base_name = strip_json_extension(source.name)
        entity_folder = output_dir / sanitize_for_filesystem(base_name)
        if entity_folder.exists():
            self._log.warning(
                "entity_name_collision", path=str(source), destination=str(entity_folder)
            )
            self.summary.skipped += 1
            return self._copy_opaque(source, output_dir, relative_path)
        entity_folder.mkdir(parents=True, exist_ok=True)
        return self._publish_entity(record, entity_folder, relative_path, base_name)

    def _process_package(
        self, archive: Path, output_dir: Path, relative_path: str
    ) -> EntityItem | None:
        item = unpack_program_package(archive, output_dir, relative_path, self.config.base_url)
        if item is None:
            self.summary.skipped += 1
        else:
            self.summary.packages += 1
        return item

    def _copy_opaque(self, source: Path, output_dir: Path, relative_path: str) -> FileItem:
        safe_name = sanitize_for_filesystem(source.name)
        copy_file(source, output_dir / safe_name)
        self.summary.files += 1
        return FileItem(
            name=source.name,
            path=safe_name,
            download_url=self.config.remote_url(sanitize_path(relative_path)),
        )

    def _read_metadata(self, source_dir: Path) -> dict:
        path = source_dir / REPO_METADATA_DOCUMENT
        if not path.is_file():
            return {}
        return read_json_object(path) or {}


def generate_catalog(config: CatalogConfig) -> BuildSummary:
    """Build the catalog described by *config*; see :class:`CatalogBuilder`."""
    return CatalogBuilder(config).build()
