"""Models for the per-directory ``index.json`` listing and the Program bundle.

Wire shapes (see ``contracts/schemas/``)::

    {"info": {...}, "items": [
        {"name": "Music", "path": "Music", "isDirectory": true},
        {"name": "logo.png", "path": "logo.png", "isDirectory": false,
         "downloadURL": "http://host/Feeds/logo.png"},
        {"name": "Alice", "path": "Alice", "isDirectory": false,
         "digest": {...}}
    ]}
"""

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.digest import Digest


class _Item(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    path: str
    """Output name relative to the directory holding the manifest."""


class DirectoryItem(_Item):
    is_directory: Literal[True] = True


class FileItem(_Item):
    """An opaque file copied through unchanged."""

    is_directory: Literal[False] = False
    download_url: str = Field(alias="downloadURL")


class EntityItem(_Item):
    is_directory: Literal[False] = False
    digest: Digest


ManifestItem = Union[DirectoryItem, FileItem, EntityItem]


class DirectoryManifest(BaseModel):
    info: dict = Field(default_factory=dict)
    """Contents of the directory's ``repo-metadata.json``, or empty."""

    items: list[ManifestItem] = Field(default_factory=list)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Dependencies(BaseModel):
    """Full records referenced by a Program, grouped by kind."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    persons: list[dict] = Field(default_factory=list)
    sound_sets: list[dict] = Field(default_factory=list)
    sound_elements: list[dict] = Field(default_factory=list)
    feeds: list[dict] = Field(default_factory=list)
    api_contents: list[dict] = Field(default_factory=list)
    page_contents: list[dict] = Field(default_factory=list)
    generative_ais: list[dict] = Field(default_factory=list)


class DependencyBundle(BaseModel):
    dependencies: Dependencies = Field(default_factory=Dependencies)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
