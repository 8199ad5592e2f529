"""Embedded-media extraction and media-reference rewriting.

After :func:`extract_and_rewrite` a record carries only ``remote`` references:

1. ``spec.embeddedImageBase64`` is decoded to ``<folder>/<imageFileName>``.
2. Otherwise a ``local`` / ``generated`` image reference is pointed at
   ``<published folder>/<its url or the default image name>``; the file is
   expected to be there already (package contents are relocated as a whole).
   A local nested ``extraData.data.imageSourceJson`` is rewritten the same way.
3. For SoundSets, every BGM element with ``embeddedSoundBase64`` is decoded
   to ``<folder>/sounds/<elementId>/<fileName>``.

Decode and write failures are logged and skipped; the record is left with
the embedded fields already removed.
"""

import base64
import binascii
import json
import posixpath
import uuid
from pathlib import Path, PurePosixPath

from app.models.config import join_url
from app.utils.logging import get_logger
from catalog.paths import published_folder, sanitize_for_filesystem
from models.entity import API_CONTENT_FAMILY, EntityKind, image_file_name
from models.media import RemoteMediaReference, is_on_disk_reference
from resolvers.image_source import decode_image_source, nested_image_data

logger = get_logger("resolvers.media")

# SoundSet arrays whose elements may carry embedded audio.
BGM_KEYS: tuple[str, ...] = ("openingBGM", "talkBGM", "newsBGM", "endingBGM", "jingleBGM")

# Extension used when an embedded sound declares no original file name.
DEFAULT_SOUND_EXTENSION = ".m4a"

SOUNDS_FOLDER = "sounds"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_and_rewrite(
    record: dict,
    output_folder: Path,
    kind: EntityKind,
    relative_path: str,
    base_url: str,
    image_file: str | None = None,
) -> None:
    """Extract embedded media from *record* and rewrite its references in place.

    Args:
        record: Entity document; only its ``spec`` is touched.
        output_folder: On-disk folder receiving extracted files.
        kind: Entity kind; decides image placement and SoundSet handling.
        relative_path: Source-relative path of the entity (standalone file,
            folder, or canonical document); see
            :func:`catalog.paths.published_folder`.
        base_url: Prefix for every rewritten URL.
        image_file: Image file name; defaults to the kind's name.
    """
    spec = record.get("spec")
    if not isinstance(spec, dict):
        return

    folder_rel = published_folder(relative_path)
    image_file = image_file or image_file_name(kind)

    extracted = False
    if "embeddedImageBase64" in spec:
        extracted = _extract_embedded_image(
            spec, output_folder, kind, folder_rel, base_url, image_file
        )

    if not extracted:
        reference = decode_image_source(spec)
        if is_on_disk_reference(reference):
            _set_image_reference(
                spec, kind, _local_url(reference, folder_rel, base_url, image_file)
            )

    # Non-API kinds may still carry a nested local reference next to imageSource.
    nested = _nested_reference(spec)
    if is_on_disk_reference(nested):
        _set_nested_reference(spec, _local_url(nested, folder_rel, base_url, image_file))

    if kind is EntityKind.SOUND_SET:
        for key in BGM_KEYS:
            elements = spec.get(key)
            if not isinstance(elements, list):
                continue
            for element in elements:
                if isinstance(element, dict) and "embeddedSoundBase64" in element:
                    _extract_embedded_sound(element, output_folder, folder_rel, base_url)


def find_unpublished_references(record: dict) -> list[str]:
    """List every embedded payload or non-remote reference left in *record*.

    Returns human-readable locations such as ``spec.imageSource`` or
    ``spec.talkBGM[2].embeddedSoundBase64``; empty when the record is clean.
    """
    spec = record.get("spec")
    if not isinstance(spec, dict):
        return []

    problems: list[str] = []
    if "embeddedImageBase64" in spec:
        problems.append("spec.embeddedImageBase64")
    if is_on_disk_reference(spec.get("imageSource")):
        problems.append("spec.imageSource")
    if is_on_disk_reference(_nested_reference(spec)):
        problems.append("spec.extraData.data.imageSourceJson")

    for key in BGM_KEYS:
        elements = spec.get(key)
        if not isinstance(elements, list):
            continue
        for index, element in enumerate(elements):
            if not isinstance(element, dict):
                continue
            if "embeddedSoundBase64" in element:
                problems.append(f"spec.{key}[{index}].embeddedSoundBase64")
            if is_on_disk_reference(element.get("soundSource")):
                problems.append(f"spec.{key}[{index}].soundSource")
    return problems


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _decode(payload: object) -> bytes:
    if not isinstance(payload, (str, bytes)):
        raise ValueError(f"expected a base64 string, got {type(payload).__name__}")
    return base64.b64decode(payload)


def _local_url(reference: dict, folder_rel: str, base_url: str, image_file: str) -> str:
    local_rel = str(reference.get("url") or image_file).lstrip("/")
    return join_url(base_url, posixpath.join(folder_rel, local_rel))


def _nested_reference(spec: dict) -> object:
    """Parsed ``extraData.data.imageSourceJson``, or ``None``."""
    data = nested_image_data(spec)
    raw = data.get("imageSourceJson") if data is not None else None
    if not isinstance(raw, str):
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


def _set_nested_reference(spec: dict, url: str) -> None:
    reference = RemoteMediaReference(url=url).model_dump()
    data = nested_image_data(spec, create=True)
    data["imageSourceJson"] = json.dumps(reference, separators=(",", ":"))


def _set_image_reference(spec: dict, kind: EntityKind, url: str) -> None:
    """Store a remote reference where *kind* keeps its image."""
    if kind in API_CONTENT_FAMILY:
        _set_nested_reference(spec, url)
        spec.pop("imageSource", None)
    else:
        spec["imageSource"] = RemoteMediaReference(url=url).model_dump()


def _extract_embedded_image(
    spec: dict,
    output_folder: Path,
    kind: EntityKind,
    folder_rel: str,
    base_url: str,
    image_file: str,
) -> bool:
    payload = spec.pop("embeddedImageBase64")
    if not payload:
        return False
    target = output_folder / image_file
    try:
        data = _decode(payload)
        output_folder.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except (binascii.Error, ValueError, OSError) as exc:
        logger.warning("embedded_image_failed", path=str(target), error=str(exc))
        return False

    logger.debug("wrote_embedded_image", path=str(target))
    _set_image_reference(
        spec, kind, join_url(base_url, posixpath.join(folder_rel, image_file))
    )
    return True


def _sound_file_name(original_name: object, element_id: str) -> str:
    if isinstance(original_name, str) and original_name.strip():
        name = PurePosixPath(original_name.replace("\\", "/")).name
        suffix = PurePosixPath(name).suffix
        stem = name[: -len(suffix)] if suffix else name
        return sanitize_for_filesystem(stem or element_id) + (suffix or DEFAULT_SOUND_EXTENSION)
    return sanitize_for_filesystem(element_id) + DEFAULT_SOUND_EXTENSION


def _extract_embedded_sound(
    element: dict, output_folder: Path, folder_rel: str, base_url: str
) -> None:
    payload = element.pop("embeddedSoundBase64")
    original_name = element.pop("embeddedSoundFileName", None)
    if not payload:
        return

    try:
        data = _decode(payload)
    except (binascii.Error, ValueError) as exc:
        logger.warning("embedded_sound_decode_failed", element_id=element.get("id"), error=str(exc))
        return

    element_id = element.get("id") or str(uuid.uuid4())
    element["id"] = element_id
    id_folder = sanitize_for_filesystem(str(element_id))
    file_name = _sound_file_name(original_name, id_folder)

    target = output_folder / SOUNDS_FOLDER / id_folder / file_name
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as exc:
        logger.warning("embedded_sound_write_failed", path=str(target), error=str(exc))
        return

    logger.debug("wrote_embedded_sound", path=str(target))
    url = join_url(base_url, posixpath.join(folder_rel, SOUNDS_FOLDER, id_folder, file_name))
    element["soundSource"] = RemoteMediaReference(url=url).model_dump()
