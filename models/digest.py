"""Pydantic models for entity digests.

A digest is the flat summary of one entity that appears in its parent
directory's ``index.json``.  There is one model per entity kind plus a generic
fallback; :data:`Digest` is the discriminated union over ``entityType``.

Values copied out of the source document are typed ``Any`` on purpose: the
builder must accept whatever a hand-edited repository contains and still
produce a digest.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _DigestBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entity_type: str
    id: Any
    """Entity id; a freshly generated UUID4 when the source has none."""

    name: Any = ""
    last_modified: int | float
    """Seconds since the epoch."""

    image_source: Any
    """Media reference; the ``bundle``/``no_image`` sentinel when absent."""


class PersonDigest(_DigestBase):
    entity_type: Literal["Person"] = "Person"
    personality: Any = "dj"
    voice: Any = ""
    type: Any = "userdefined"


class FeedDigest(_DigestBase):
    entity_type: Literal["Feed"] = "Feed"
    source: Any = ""
    url: Any = None


class SoundSetDigest(_DigestBase):
    entity_type: Literal["SoundSet"] = "SoundSet"
    type: Any = "userdefined"


class GenerativeAiDigest(_DigestBase):
    entity_type: Literal["GenerativeAi"] = "GenerativeAi"
    endpoint: Any = ""
    content_type: Any = "TEXT"
    description: Any = None


class PageContentDigest(_DigestBase):
    entity_type: Literal["PageContent"] = "PageContent"
    endpoint: Any = ""
    content_type: Any = "PAGE"
    description: Any = None


class ApiContentDigest(_DigestBase):
    entity_type: Literal["ApiContent"] = "ApiContent"
    endpoint: Any = ""
    content_type: Any = "TEXT"
    description: Any = None


class ProgramDigest(_DigestBase):
    entity_type: Literal["Program"] = "Program"
    lang: Any = Field(default_factory=lambda: {"code": "en", "language": "english"})
    description: Any = None
    program_mode: Any = "Basic"


class BroadcastDigest(_DigestBase):
    entity_type: Literal["Broadcast"] = "Broadcast"
    program_id: Any = None
    sound_set_id: Any = None
    headline: list = Field(default_factory=list)
    estimated_time: Any = None
    generated_time: int | float
    status: Any = "composing"


class CatalogDigest(_DigestBase):
    entity_type: Literal["Catalog"] = "Catalog"
    endpoint: Any = ""
    description: Any = None


class UnknownDigest(_DigestBase):
    entity_type: Literal["Unknown"] = "Unknown"


Digest = Annotated[
    Union[
        PersonDigest,
        FeedDigest,
        SoundSetDigest,
        GenerativeAiDigest,
        PageContentDigest,
        ApiContentDigest,
        ProgramDigest,
        BroadcastDigest,
        CatalogDigest,
        UnknownDigest,
    ],
    Field(discriminator="entity_type"),
]
