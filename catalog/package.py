"""Program package (zip) unpacking and relocation.

A package is a zip exported by the client app.  Somewhere inside it sits a
folder with the Program ``entity.json`` together with its media and the
per-kind folders of everything it references.  That folder is copied into the
catalog under a name derived from the Program, then:

1. a missing ``spec.id`` is written back into the Program document,
2. every entity document in the relocated folder is normalised so that all
   media references are remote,
3. ``entity+deps.json`` (Program + resolved dependencies) is written next to
   it from the normalised documents, so each bundled record keeps the media
   URLs of its own package folder.

The scratch extraction directory is removed on every exit path.
"""

import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from app.utils.logging import get_logger
from catalog.digest import build_digest, entity_spec
from catalog.io import read_json_object, write_json_document
from catalog.paths import join_relative, sanitize_for_filesystem
from models.entity import (
    BUNDLE_DOCUMENT,
    ENTITY_DOCUMENT,
    EntityKind,
    kind_for_package_folder,
)
from models.manifest import EntityItem
from resolvers.dependencies import build_dependency_bundle
from resolvers.media import extract_and_rewrite

logger = get_logger("catalog.package")


def _skip_folder(name: str) -> bool:
    return name.startswith(".") or name == "__MACOSX"


def find_entity_document(root: Path) -> Path | None:
    """Depth-first search for the first ``entity.json`` under *root*.

    Children are visited in name order so the result does not depend on the
    filesystem's listing order.
    """
    stack = [root]
    while stack:
        folder = stack.pop()
        candidate = folder / ENTITY_DOCUMENT
        if candidate.is_file():
            return candidate
        children = sorted(
            (p for p in folder.iterdir() if p.is_dir() and not _skip_folder(p.name)),
            reverse=True,
        )
        stack.extend(children)
    return None


def ensure_entity_id(record: dict, entity_id: object) -> None:
    """Write *entity_id* into ``record["spec"]["id"]`` if ``spec`` has no id."""
    spec = record.get("spec")
    if spec is None:
        spec = record["spec"] = {}
    if isinstance(spec, dict) and not spec.get("id"):
        spec["id"] = entity_id


def _document_kind(package_dir: Path, document: Path) -> EntityKind:
    """Kind of a document inside a relocated package.

    The root document is the Program; nested ones take the kind of their
    nearest package folder (``feed/<id>/entity.json`` → Feed).
    """
    parts = document.parent.relative_to(package_dir).parts
    for part in reversed(parts):
        kind = kind_for_package_folder(part)
        if kind is not None:
            return kind
    return EntityKind.PROGRAM if not parts else EntityKind.UNKNOWN


def rewrite_package_tree(package_dir: Path, relative_folder: str, base_url: str) -> None:
    """Normalise media references in every entity document under *package_dir*.

    Args:
        package_dir: Relocated package folder in the output tree.
        relative_folder: Its path relative to the output root
            (``Programs/MyShow``), used to build URLs.
        base_url: Prefix for rewritten URLs.
    """
    for document in sorted(package_dir.rglob(ENTITY_DOCUMENT)):
        record = read_json_object(document)
        if record is None:
            continue
        kind = _document_kind(package_dir, document)
        rel = join_relative(
            relative_folder,
            document.relative_to(package_dir).as_posix(),
        )
        extract_and_rewrite(record, document.parent, kind, rel, base_url)
        write_json_document(document, record)


def _relocate(zip_path: Path, output_parent_dir: Path) -> tuple[Path, str] | None:
    """Extract *zip_path* and copy its entity folder under *output_parent_dir*.

    Returns the destination folder and the Program display name, or ``None``.
    """
    with tempfile.TemporaryDirectory(prefix="pkg-") as scratch:
        scratch_root = Path(scratch)
        try:
            with zipfile.ZipFile(zip_path) as archive:
                archive.extractall(scratch_root)
        except (
            zipfile.BadZipFile,
            zlib.error,
            RuntimeError,
            NotImplementedError,
            EOFError,
            OSError,
        ) as exc:
            # RuntimeError: encrypted member; NotImplementedError: unsupported
            # compression; EOFError / zlib.error: truncated or corrupt data.
            logger.warning("package_unreadable", path=str(zip_path), error=str(exc))
            return None

        document = find_entity_document(scratch_root)
        if document is None:
            logger.warning("package_entity_missing", path=str(zip_path))
            return None

        record = read_json_object(document)
        if record is None:
            logger.warning("package_entity_unparsable", path=str(zip_path))
            return None

        digest = build_digest(record, EntityKind.PROGRAM)
        display_name = str(digest.name or zip_path.stem)
        destination = output_parent_dir / sanitize_for_filesystem(display_name)
        if destination.exists():
            logger.warning(
                "package_name_collision", path=str(zip_path), destination=str(destination)
            )
            return None

        output_parent_dir.mkdir(parents=True, exist_ok=True)
        shutil.copytree(document.parent, destination)
        return destination, display_name


def unpack_program_package(
    zip_path: Path,
    output_parent_dir: Path,
    relative_path: str,
    base_url: str,
) -> EntityItem | None:
    """Publish a zipped Program package and return its manifest entry.

    Args:
        zip_path: Source archive (``repository/Programs/MyShow.zip``).
        output_parent_dir: Output directory receiving the program folder.
        relative_path: Source-relative path of the archive
            (``Programs/MyShow.zip``).
        base_url: Prefix for rewritten media URLs.

    Returns:
        The entity stub for the parent manifest, or ``None`` when the archive
        is unreadable or holds no parsable ``entity.json``.
    """
    relocated = _relocate(zip_path, output_parent_dir)
    if relocated is None:
        return None
    destination, display_name = relocated

    program_path = destination / ENTITY_DOCUMENT
    program = read_json_object(program_path)
    if program is None:
        return None
    ensure_entity_id(program, build_digest(program, EntityKind.PROGRAM).id)
    write_json_document(program_path, program)

    parent_rel = PurePosixPath(relative_path).parent.as_posix()
    relative_folder = join_relative("" if parent_rel == "." else parent_rel, destination.name)
    rewrite_package_tree(destination, relative_folder, base_url)

    # Bundled records are the normalised package documents.
    program = read_json_object(program_path) or program
    bundle = build_dependency_bundle(entity_spec(program), destination)
    write_json_document(destination / BUNDLE_DOCUMENT, {**program, **bundle.to_document()})
    logger.info("wrote_dependency_bundle", path=str(destination / BUNDLE_DOCUMENT))

    digest = build_digest(program, EntityKind.PROGRAM, fallback_name=display_name)
    return EntityItem(name=display_name, path=destination.name, digest=digest)
