"""Image-reference lookup for entity specs.

Used by the digest builder and the media rewriter.  Most kinds keep their
reference in ``spec.imageSource``; the ApiContent family keeps it as a JSON
string in ``spec.extraData.data.imageSourceJson``.  When neither is usable the
``no_image`` sentinel is returned so every digest carries an image reference.
"""

import json

from app.utils.logging import get_logger
from models.media import BundleMediaReference

logger = get_logger("resolvers.image_source")


def make_no_image() -> dict:
    """Return a fresh ``{"kind": "bundle", "name": "no_image"}`` reference."""
    return BundleMediaReference().model_dump()


def nested_image_data(spec: dict, create: bool = False) -> dict | None:
    """Return ``spec.extraData.data``, optionally creating missing levels.

    Without *create*, ``None`` is returned as soon as a level is missing or
    is not a mapping.
    """
    extra = spec.get("extraData")
    if not isinstance(extra, dict):
        if not create:
            return None
        extra = spec["extraData"] = {}
    data = extra.get("data")
    if not isinstance(data, dict):
        if not create:
            return None
        data = extra["data"] = {}
    return data


def decode_image_source(spec: dict) -> object:
    """Resolve the image reference of *spec*.

    Order: explicit ``imageSource``; parsed ``extraData.data.imageSourceJson``;
    the ``no_image`` sentinel.  A malformed JSON string is logged and treated
    as no image.
    """
    explicit = spec.get("imageSource")
    if explicit:
        return explicit

    data = nested_image_data(spec)
    raw = data.get("imageSourceJson") if data is not None else None
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("image_source_json_invalid", error=str(exc))
            return make_no_image()
        if isinstance(parsed, dict):
            return parsed
        logger.warning("image_source_json_not_an_object", value=raw)

    return make_no_image()
