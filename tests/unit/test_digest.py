"""Unit tests for digest construction.

Covers:
  1. Totality — every kind (and unknown kinds) yields entityType/id/lastModified.
  2. Kind-specific defaults (Person, Program, Broadcast, content kinds).
  3. Timestamp normalisation.
  4. Image reference resolution, including malformed imageSourceJson.
"""

import json
import time

import pytest
from structlog.testing import capture_logs

from catalog.digest import build_digest, to_epoch_seconds
from models.entity import EntityKind

_NO_IMAGE = {"kind": "bundle", "name": "no_image"}


def _dump(digest) -> dict:
    return digest.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Test 1 — Totality
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("kind", list(EntityKind) + ["Nonsense", ""])
def test_empty_record_produces_required_fields(kind) -> None:
    """An empty record of any kind still produces entityType, id and lastModified."""
    data = _dump(build_digest({}, kind))

    assert data["entityType"]
    assert data["id"]
    assert isinstance(data["lastModified"], (int, float))
    assert data["imageSource"] == _NO_IMAGE


@pytest.mark.parametrize("record", [None, [], "text", {"spec": "oops"}, {"spec": None}])
def test_malformed_records_do_not_raise(record) -> None:
    """Records without a usable spec mapping fall back to defaults."""
    digest = build_digest(record, EntityKind.PERSON, fallback_name="Fallback")

    assert digest.entity_type == "Person"
    assert digest.name == "Fallback"


def test_unknown_kind_uses_generic_digest() -> None:
    data = _dump(build_digest({"spec": {"id": "x1", "name": "Thing"}}, "Widgets"))

    assert data["entityType"] == "Unknown"
    assert data["id"] == "x1"
    assert data["name"] == "Thing"


def test_kind_name_is_case_insensitive() -> None:
    assert build_digest({}, "soundset").entity_type == "SoundSet"


def test_generated_ids_are_unique() -> None:
    first = build_digest({}, EntityKind.FEED)
    second = build_digest({}, EntityKind.FEED)
    assert first.id != second.id


# ---------------------------------------------------------------------------
# Test 2 — Kind-specific defaults
# ---------------------------------------------------------------------------


def test_person_defaults() -> None:
    """Person defaults personality to 'dj' and type to 'userdefined'."""
    data = _dump(build_digest({"spec": {"id": "p1", "name": "Alice"}}, EntityKind.PERSON))

    assert data["entityType"] == "Person"
    assert data["personality"] == "dj"
    assert data["voice"] == ""
    assert data["type"] == "userdefined"


def test_person_keeps_explicit_values() -> None:
    spec = {"id": "p1", "personality": "anchor", "voice": "alloy", "type": "predefined"}
    data = _dump(build_digest({"spec": spec}, EntityKind.PERSON))

    assert data["personality"] == "anchor"
    assert data["voice"] == "alloy"
    assert data["type"] == "predefined"


def test_program_defaults() -> None:
    """Program defaults lang to English and programMode to Basic."""
    data = _dump(build_digest({"spec": {}}, EntityKind.PROGRAM))

    assert data["lang"] == {"code": "en", "language": "english"}
    assert data["programMode"] == "Basic"
    assert data["description"] is None


def test_program_keeps_lang() -> None:
    lang = {"code": "ja", "language": "japanese"}
    data = _dump(build_digest({"spec": {"lang": lang, "programMode": "Advanced"}}, "Program"))

    assert data["lang"] == lang
    assert data["programMode"] == "Advanced"


def test_broadcast_name_joins_headlines() -> None:
    spec = {"headline": ["Rain tomorrow", "Markets up"], "programId": "prog-1"}
    data = _dump(build_digest({"spec": spec}, EntityKind.BROADCAST))

    assert data["name"] == "Rain tomorrow, Markets up"
    assert data["headline"] == ["Rain tomorrow", "Markets up"]
    assert data["programId"] == "prog-1"
    assert data["status"] == "composing"
    assert isinstance(data["generatedTime"], (int, float))


@pytest.mark.parametrize("headline", [None, [], "not a list"])
def test_broadcast_without_headlines_is_untitled(headline) -> None:
    data = _dump(build_digest({"spec": {"headline": headline}}, EntityKind.BROADCAST, "file-name"))

    assert data["name"] == "Untitled Broadcast"
    assert data["headline"] == []


@pytest.mark.parametrize(
    ("kind", "content_type"),
    [
        (EntityKind.API_CONTENT, "TEXT"),
        (EntityKind.GENERATIVE_AI, "TEXT"),
        (EntityKind.PAGE_CONTENT, "PAGE"),
    ],
)
def test_content_kind_defaults(kind, content_type) -> None:
    data = _dump(build_digest({}, kind))

    assert data["endpoint"] == ""
    assert data["contentType"] == content_type
    assert data["description"] is None


def test_feed_and_catalog_fields() -> None:
    feed = _dump(build_digest({"spec": {"source": "rss", "url": "http://feed"}}, "Feed"))
    catalog = _dump(build_digest({"spec": {"endpoint": "http://cat"}}, "Catalog"))

    assert feed["source"] == "rss"
    assert feed["url"] == "http://feed"
    assert catalog["endpoint"] == "http://cat"
    assert catalog["description"] is None


def test_name_falls_back_only_when_missing() -> None:
    named = build_digest({"spec": {"name": "Real"}}, EntityKind.FEED, fallback_name="file")
    unnamed = build_digest({"spec": {"name": ""}}, EntityKind.FEED, fallback_name="file")

    assert named.name == "Real"
    assert unnamed.name == "file"


# ---------------------------------------------------------------------------
# Test 3 — Timestamps
# ---------------------------------------------------------------------------


def test_iso_timestamp_is_converted_to_epoch_seconds() -> None:
    assert to_epoch_seconds("2024-01-01T00:00:00Z") == 1704067200
    assert to_epoch_seconds("2024-01-01T00:00:00.900Z") == 1704067200


def test_naive_timestamp_is_treated_as_utc() -> None:
    assert to_epoch_seconds("2024-01-01T00:00:00") == 1704067200


def test_rfc2822_timestamp() -> None:
    assert to_epoch_seconds("Mon, 01 Jan 2024 00:00:00 GMT") == 1704067200


def test_numeric_timestamp_passes_through() -> None:
    assert to_epoch_seconds(1700000000) == 1700000000


@pytest.mark.parametrize("value", [None, "", "yesterday-ish", True, {"a": 1}])
def test_unparsable_timestamp_defaults_to_now(value) -> None:
    before = int(time.time())
    result = to_epoch_seconds(value)
    after = int(time.time())

    assert before - 1 <= result <= after + 1


def test_last_modified_in_digest() -> None:
    spec = {"lastModified": "2024-01-01T00:00:00Z"}
    assert build_digest({"spec": spec}, EntityKind.SOUND_SET).last_modified == 1704067200


# ---------------------------------------------------------------------------
# Test 4 — Image references
# ---------------------------------------------------------------------------


def test_explicit_image_source_wins() -> None:
    ref = {"kind": "remote", "url": "http://x/a.png"}
    spec = {
        "imageSource": ref,
        "extraData": {"data": {"imageSourceJson": json.dumps({"kind": "remote", "url": "other"})}},
    }
    assert build_digest({"spec": spec}, EntityKind.PERSON).image_source == ref


def test_nested_image_source_json_is_parsed() -> None:
    ref = {"kind": "remote", "url": "http://x/api.png"}
    spec = {"extraData": {"data": {"imageSourceJson": json.dumps(ref)}}}

    assert build_digest({"spec": spec}, EntityKind.API_CONTENT).image_source == ref


def test_malformed_image_source_json_logs_and_uses_no_image() -> None:
    """A broken imageSourceJson string is reported and treated as no image."""
    spec = {"extraData": {"data": {"imageSourceJson": "{not json"}}}

    with capture_logs() as logs:
        digest = build_digest({"spec": spec}, EntityKind.CATALOG)

    assert digest.image_source == _NO_IMAGE
    assert any(e["event"] == "image_source_json_invalid" for e in logs)


def test_no_image_sentinel_is_a_fresh_dict() -> None:
    first = build_digest({}, EntityKind.FEED).image_source
    first["name"] = "changed"

    assert build_digest({}, EntityKind.FEED).image_source == _NO_IMAGE
