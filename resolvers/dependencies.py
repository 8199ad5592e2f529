"""PackageDependencyResolver — collects everything a Program package references.

Input:  the ``spec`` of a Program and the root folder of its unpacked package.
Output: :class:`~models.manifest.DependencyBundle` with the full records of
        every referenced, non-built-in entity found inside the package.

Package layout (one folder per kind, one folder per id)::

    <package_root>/
      entity.json                      ← the Program
      person/<id>/entity.json
      soundset/<id>/entity.json
      soundset/<id>/soundElement/<elementId>/entity.json
      feed/<id>/entity.json
      apiContent/<id>/entity.json
      pageContent/<id>/entity.json
      generativeAi/<id>/entity.json

Reference sources in the Program spec:
  feedIds, apiContentIds, pageContentIds, personalityIds   (lists)
  soundSetId                                               (single)
  generatorModelId, summarizerModelId,
  translatorModelId, coverImageModelId                     (GenerativeAi ids)
  programSegments[*]                                       (tree, see below)

Each segment may carry ``generativeAiId`` and a ``source`` object with
``feedId`` / ``apiContentId`` / ``pageContentId``; segments nest through
``subSegments`` to any depth.

Ids that do not resolve (missing folder, unparsable document) and built-in
records are left out silently.  Ids are deduplicated per group, first seen
first.
"""

from pathlib import Path

from app.utils.logging import get_logger
from catalog.io import read_json_object
from filters.builtin import BuiltinEntityFilter
from models.entity import ENTITY_DOCUMENT, PACKAGE_FOLDERS, SOUND_ELEMENT_FOLDER, EntityKind
from models.manifest import Dependencies, DependencyBundle

# Program fields naming a GenerativeAi model.
_MODEL_ID_FIELDS: tuple[str, ...] = (
    "generatorModelId",
    "summarizerModelId",
    "translatorModelId",
    "coverImageModelId",
)


class _OrderedIds:
    """Insertion-ordered id set; ids are compared by their string form."""

    def __init__(self) -> None:
        self._ids: dict[str, None] = {}

    def add(self, value: object) -> None:
        if value is None or value == "" or isinstance(value, (bool, dict, list)):
            return
        self._ids.setdefault(str(value), None)

    def extend(self, values: object) -> None:
        if isinstance(values, list):
            for value in values:
                self.add(value)

    def __iter__(self):
        return iter(self._ids)


class _SegmentRefs:
    def __init__(self) -> None:
        self.feeds = _OrderedIds()
        self.api_contents = _OrderedIds()
        self.page_contents = _OrderedIds()
        self.generative_ais = _OrderedIds()


def collect_segment_refs(segments: object) -> _SegmentRefs:
    """Walk a ``programSegments`` tree depth-first with an explicit stack."""
    refs = _SegmentRefs()
    if not isinstance(segments, list):
        return refs

    stack = list(reversed(segments))
    while stack:
        segment = stack.pop()
        if not isinstance(segment, dict):
            continue
        refs.generative_ais.add(segment.get("generativeAiId"))
        source = segment.get("source")
        if isinstance(source, dict):
            refs.feeds.add(source.get("feedId"))
            refs.api_contents.add(source.get("apiContentId"))
            refs.page_contents.add(source.get("pageContentId"))
        children = segment.get("subSegments")
        if isinstance(children, list):
            stack.extend(reversed(children))
    return refs


class PackageDependencyResolver:
    """Resolve Program references against an unpacked package folder.

    Usage::

        resolver = PackageDependencyResolver(Path("docs/Programs/MyShow"))
        bundle = resolver.resolve(program_spec)

    Args:
        package_root: Folder holding the Program ``entity.json`` and the
            per-kind dependency folders.
    """

    def __init__(self, package_root: Path) -> None:
        self.package_root = package_root
        self._filter = BuiltinEntityFilter()
        self._log = get_logger("resolvers.dependencies")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, program_spec: dict) -> DependencyBundle:
        """Build the dependency bundle for *program_spec*.  Never raises."""
        segments = collect_segment_refs(program_spec.get("programSegments"))

        person_ids = _OrderedIds()
        person_ids.extend(program_spec.get("personalityIds"))

        feed_ids = _OrderedIds()
        feed_ids.extend(program_spec.get("feedIds"))
        for fid in segments.feeds:
            feed_ids.add(fid)

        api_ids = _OrderedIds()
        api_ids.extend(program_spec.get("apiContentIds"))
        for aid in segments.api_contents:
            api_ids.add(aid)

        page_ids = _OrderedIds()
        page_ids.extend(program_spec.get("pageContentIds"))
        for pid in segments.page_contents:
            page_ids.add(pid)

        model_ids = _OrderedIds()
        for field in _MODEL_ID_FIELDS:
            model_ids.add(program_spec.get(field))
        for gid in segments.generative_ais:
            model_ids.add(gid)

        sound_sets: list[dict] = []
        sound_elements: list[dict] = []
        sound_set_ids = _OrderedIds()
        sound_set_ids.add(program_spec.get("soundSetId"))
        for sid in sound_set_ids:
            sound_set = self._pick(EntityKind.SOUND_SET, sid)
            if sound_set is not None:
                sound_sets.append(sound_set)
                sound_elements.extend(self._sound_elements(sid))

        dependencies = Dependencies(
            persons=self._pick_all(EntityKind.PERSON, person_ids),
            sound_sets=sound_sets,
            sound_elements=sound_elements,
            feeds=self._pick_all(EntityKind.FEED, feed_ids),
            api_contents=self._pick_all(EntityKind.API_CONTENT, api_ids),
            page_contents=self._pick_all(EntityKind.PAGE_CONTENT, page_ids),
            generative_ais=self._pick_all(EntityKind.GENERATIVE_AI, model_ids),
        )
        self._log.info(
            "dependency_bundle_built",
            package_root=str(self.package_root),
            persons=len(dependencies.persons),
            sound_sets=len(dependencies.sound_sets),
            sound_elements=len(dependencies.sound_elements),
            feeds=len(dependencies.feeds),
            api_contents=len(dependencies.api_contents),
            page_contents=len(dependencies.page_contents),
            generative_ais=len(dependencies.generative_ais),
        )
        return DependencyBundle(dependencies=dependencies)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _pick_all(self, kind: EntityKind, ids: _OrderedIds) -> list[dict]:
        picked = (self._pick(kind, entity_id) for entity_id in ids)
        return [record for record in picked if record is not None]

    def _pick(self, kind: EntityKind, entity_id: str) -> dict | None:
        """Load ``<kind folder>/<id>/entity.json`` unless missing or built in."""
        if "/" in entity_id or "\\" in entity_id or entity_id in (".", ".."):
            self._log.warning("dependency_id_rejected", kind=kind.value, entity_id=entity_id)
            return None

        path = self.package_root / PACKAGE_FOLDERS[kind] / entity_id / ENTITY_DOCUMENT
        if not path.is_file():
            self._log.debug("dependency_not_in_package", kind=kind.value, entity_id=entity_id)
            return None

        record = read_json_object(path)
        if record is None or self._filter.is_builtin(record):
            return None
        return record

    def _sound_elements(self, sound_set_id: str) -> list[dict]:
        """Every element record of *sound_set_id*, built-in or not."""
        root = (
            self.package_root
            / PACKAGE_FOLDERS[EntityKind.SOUND_SET]
            / sound_set_id
            / SOUND_ELEMENT_FOLDER
        )
        if not root.is_dir():
            return []

        elements: list[dict] = []
        for folder in sorted(p for p in root.iterdir() if p.is_dir()):
            document = folder / ENTITY_DOCUMENT
            if not document.is_file():
                continue
            record = read_json_object(document)
            if record is not None:
                elements.append(record)
        return elements


def build_dependency_bundle(program_spec: dict, package_root: Path) -> DependencyBundle:
    """Convenience wrapper around :class:`PackageDependencyResolver`."""
    return PackageDependencyResolver(package_root).resolve(program_spec)
