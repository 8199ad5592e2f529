"""Digest construction for the nine entity kinds.

:func:`build_digest` is total: any record, including an empty one or a
non-object ``spec``, yields a digest with ``entityType``, ``id`` and
``lastModified``.  Missing values follow the same ``falsy → default`` rule
the client apps apply when they read these documents.
"""

import math
import uuid
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable

from models.digest import (
    ApiContentDigest,
    BroadcastDigest,
    CatalogDigest,
    Digest,
    FeedDigest,
    GenerativeAiDigest,
    PageContentDigest,
    PersonDigest,
    ProgramDigest,
    SoundSetDigest,
    UnknownDigest,
)
from models.entity import EntityKind
from resolvers.image_source import decode_image_source


def generate_id() -> str:
    return str(uuid.uuid4())


def _now() -> int:
    return math.floor(datetime.now(timezone.utc).timestamp())


def _parse_timestamp(value: str) -> datetime | None:
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_epoch_seconds(value: Any) -> int | float:
    """Normalise a timestamp to epoch seconds.

    Numbers pass through; ISO-8601 and RFC-2822 strings are parsed (naive
    times are UTC); anything else, including unparsable strings, is "now".
    """
    if not value or isinstance(value, bool):
        return _now()
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        parsed = _parse_timestamp(value)
        if parsed is not None:
            return math.floor(parsed.timestamp())
    return _now()


def _common(spec: dict, fallback_name: str) -> dict:
    return {
        "id": spec.get("id") or generate_id(),
        "name": spec.get("name") or fallback_name,
        "last_modified": to_epoch_seconds(spec.get("lastModified")),
        "image_source": decode_image_source(spec),
    }


def _person(spec: dict, fallback_name: str) -> PersonDigest:
    return PersonDigest(
        **_common(spec, fallback_name),
        personality=spec.get("personality") or "dj",
        voice=spec.get("voice") or "",
        type=spec.get("type") or "userdefined",
    )


def _feed(spec: dict, fallback_name: str) -> FeedDigest:
    return FeedDigest(
        **_common(spec, fallback_name),
        source=spec.get("source") or "",
        url=spec.get("url") or None,
    )


def _sound_set(spec: dict, fallback_name: str) -> SoundSetDigest:
    return SoundSetDigest(
        **_common(spec, fallback_name),
        type=spec.get("type") or "userdefined",
    )


def _content_fields(spec: dict, default_content_type: str) -> dict:
    return {
        "endpoint": spec.get("endpoint") or "",
        "content_type": spec.get("contentType") or default_content_type,
        "description": spec.get("description") or None,
    }


def _generative_ai(spec: dict, fallback_name: str) -> GenerativeAiDigest:
    return GenerativeAiDigest(
        **_common(spec, fallback_name), **_content_fields(spec, "TEXT")
    )


def _page_content(spec: dict, fallback_name: str) -> PageContentDigest:
    return PageContentDigest(
        **_common(spec, fallback_name), **_content_fields(spec, "PAGE")
    )


def _api_content(spec: dict, fallback_name: str) -> ApiContentDigest:
    return ApiContentDigest(
        **_common(spec, fallback_name), **_content_fields(spec, "TEXT")
    )


def _program(spec: dict, fallback_name: str) -> ProgramDigest:
    fields = {
        "description": spec.get("description") or None,
        "program_mode": spec.get("programMode") or "Basic",
    }
    # Leave lang to the model default when absent.
    if spec.get("lang"):
        fields["lang"] = spec["lang"]
    return ProgramDigest(**_common(spec, fallback_name), **fields)


def _broadcast(spec: dict, fallback_name: str) -> BroadcastDigest:
    headline = spec.get("headline")
    headline = headline if isinstance(headline, list) else []
    common = _common(spec, fallback_name)
    # Broadcasts are named after their headlines, never after the file.
    common["name"] = (
        ", ".join(str(h) for h in headline) if headline else "Untitled Broadcast"
    )
    return BroadcastDigest(
        **common,
        program_id=spec.get("programId") or None,
        sound_set_id=spec.get("soundSetId") or None,
        headline=headline,
        estimated_time=spec.get("estimatedTime") or None,
        generated_time=to_epoch_seconds(spec.get("generatedTime")),
        status=spec.get("status") or "composing",
    )


def _catalog(spec: dict, fallback_name: str) -> CatalogDigest:
    return CatalogDigest(
        **_common(spec, fallback_name),
        endpoint=spec.get("endpoint") or "",
        description=spec.get("description") or None,
    )


def _unknown(spec: dict, fallback_name: str) -> UnknownDigest:
    return UnknownDigest(**_common(spec, fallback_name))


_DIGEST_BUILDERS: dict[EntityKind, Callable[[dict, str], Digest]] = {
    EntityKind.PERSON: _person,
    EntityKind.FEED: _feed,
    EntityKind.SOUND_SET: _sound_set,
    EntityKind.GENERATIVE_AI: _generative_ai,
    EntityKind.PAGE_CONTENT: _page_content,
    EntityKind.API_CONTENT: _api_content,
    EntityKind.PROGRAM: _program,
    EntityKind.BROADCAST: _broadcast,
    EntityKind.CATALOG: _catalog,
    EntityKind.UNKNOWN: _unknown,
}


def entity_spec(record: Any) -> dict:
    """Return the ``spec`` mapping of *record*, or an empty dict."""
    spec = record.get("spec") if isinstance(record, dict) else None
    return spec if isinstance(spec, dict) else {}


def build_digest(
    record: Any, kind: EntityKind | str, fallback_name: str = ""
) -> Digest:
    """Summarise *record* as a digest of *kind*.

    Args:
        record: Parsed entity document (``{"spec": {...}, ...}``).
        kind: Entity kind or its name; unknown names use the generic digest.
        fallback_name: Used when ``spec`` has no ``name`` (folder or file
            base name).
    """
    builder = _DIGEST_BUILDERS[EntityKind(kind)]
    return builder(entity_spec(record), fallback_name)
