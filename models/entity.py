"""Entity kinds and the on-disk names attached to them.

The kind of an entity is never stored in its document: it comes from the
top-level source folder (``Persons/…``, ``Feeds/…``) or, inside an unpacked
Program package, from the package sub-folder (``person/<id>/…``).
"""

from enum import Enum

# Canonical entity document inside every entity folder.
ENTITY_DOCUMENT = "entity.json"

# Program document merged with its resolved dependencies.
BUNDLE_DOCUMENT = "entity+deps.json"

# Per-directory listing written by the walker.
INDEX_DOCUMENT = "index.json"

# Directory metadata read into the manifest ``info`` field.
REPO_METADATA_DOCUMENT = "repo-metadata.json"

# Release notes with their own schema; copied through untouched.
RELEASE_NOTES_DOCUMENT = "whats-new.json"


class EntityKind(str, Enum):
    PERSON        = "Person"
    FEED          = "Feed"
    SOUND_SET     = "SoundSet"
    GENERATIVE_AI = "GenerativeAi"
    PAGE_CONTENT  = "PageContent"
    API_CONTENT   = "ApiContent"
    PROGRAM       = "Program"
    BROADCAST     = "Broadcast"
    CATALOG       = "Catalog"
    UNKNOWN       = "Unknown"

    @classmethod
    def _missing_(cls, value: object) -> "EntityKind":
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return cls.UNKNOWN


# Top-level source folder (lowercased) → kind.
_FOLDER_TO_KIND: dict[str, EntityKind] = {
    "persons": EntityKind.PERSON,
    "feeds": EntityKind.FEED,
    "soundsets": EntityKind.SOUND_SET,
    "generativeais": EntityKind.GENERATIVE_AI,
    "pagecontents": EntityKind.PAGE_CONTENT,
    "apicontents": EntityKind.API_CONTENT,
    "programs": EntityKind.PROGRAM,
    "broadcasts": EntityKind.BROADCAST,
    "catalogs": EntityKind.CATALOG,
}

# Kind → file name for an extracted entity image.
_KIND_TO_IMAGE_FILE: dict[EntityKind, str] = {
    EntityKind.PERSON: "person.png",
    EntityKind.FEED: "feed.png",
    EntityKind.SOUND_SET: "soundset.png",
    EntityKind.GENERATIVE_AI: "generativeai.png",
    EntityKind.PAGE_CONTENT: "pagecontent.png",
    EntityKind.API_CONTENT: "apicontent.png",
    EntityKind.PROGRAM: "program.png",
    EntityKind.BROADCAST: "broadcast.png",
    EntityKind.CATALOG: "catalog.png",
}

# Kinds that keep their image reference as a JSON string in
# ``spec.extraData.data.imageSourceJson`` instead of ``spec.imageSource``.
API_CONTENT_FAMILY: frozenset[EntityKind] = frozenset(
    {
        EntityKind.API_CONTENT,
        EntityKind.GENERATIVE_AI,
        EntityKind.PAGE_CONTENT,
        EntityKind.CATALOG,
    }
)

# Kind → sub-folder holding referenced entities inside a Program package.
PACKAGE_FOLDERS: dict[EntityKind, str] = {
    EntityKind.PERSON: "person",
    EntityKind.SOUND_SET: "soundset",
    EntityKind.FEED: "feed",
    EntityKind.API_CONTENT: "apiContent",
    EntityKind.PAGE_CONTENT: "pageContent",
    EntityKind.GENERATIVE_AI: "generativeAi",
}

# Sound elements live under soundset/<id>/soundElement/<elementId>/.
SOUND_ELEMENT_FOLDER = "soundElement"

# Top-level folder where zipped Program packages are expected.
PROGRAMS_FOLDER = "programs"


def kind_for_folder(folder_name: str) -> EntityKind:
    """Map a top-level source folder name to its entity kind."""
    return _FOLDER_TO_KIND.get(folder_name.lower(), EntityKind.UNKNOWN)


def kind_for_package_folder(folder_name: str) -> EntityKind | None:
    """Map a Program-package sub-folder to its kind; ``None`` if not one."""
    lowered = folder_name.lower()
    for kind, folder in PACKAGE_FOLDERS.items():
        if folder.lower() == lowered:
            return kind
    if lowered == SOUND_ELEMENT_FOLDER.lower():
        return EntityKind.UNKNOWN
    return None


def image_file_name(kind: EntityKind) -> str:
    return _KIND_TO_IMAGE_FILE.get(kind, "entity.png")
