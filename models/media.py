"""Media reference shapes written into published entity documents.

Source documents may carry references tagged ``local`` or ``generated``
(relative to the entity folder) or inline base64 payloads.  Published
documents carry only :class:`RemoteMediaReference`.  The ``bundle`` sentinel
appears in digests when an entity has no image at all.
"""

from typing import Literal

from pydantic import BaseModel

# Reference kinds that point at a file already sitting next to the document.
ON_DISK_KINDS: frozenset[str] = frozenset({"local", "generated"})


class RemoteMediaReference(BaseModel):
    """Terminal form: an absolute URL under the configured base URL."""

    kind: Literal["remote"] = "remote"
    url: str


class BundleMediaReference(BaseModel):
    """Built-in asset shipped with the client app; used as the no-image marker."""

    kind: Literal["bundle"] = "bundle"
    name: str = "no_image"


def is_on_disk_reference(reference: object) -> bool:
    """True for a ``local`` / ``generated`` reference mapping."""
    return isinstance(reference, dict) and reference.get("kind") in ON_DISK_KINDS
