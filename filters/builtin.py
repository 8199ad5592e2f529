"""Built-in entity filter for Program dependency bundles.

Entities shipped with the client app (``spec.type`` of ``predefined`` or
``preInstalled``) are already on every device, so bundles leave them out.
Exclusion is not an error: it is logged at debug level only.
"""

from app.utils.logging import get_logger

logger = get_logger("filters.builtin")

# spec.type values marking an entity as built in.
BUILTIN_ENTITY_TYPES: frozenset[str] = frozenset({"predefined", "preInstalled"})


class BuiltinEntityFilter:
    """Recognises built-in entities by their ``spec.type``."""

    builtin_types: frozenset[str] = BUILTIN_ENTITY_TYPES

    def is_builtin(self, record: dict) -> bool:
        """Return True when *record* is a built-in entity.

        Records without a ``spec`` mapping are never built in.
        """
        spec = record.get("spec")
        if not isinstance(spec, dict):
            return False
        entity_type = spec.get("type")
        if isinstance(entity_type, str) and entity_type in self.builtin_types:
            logger.debug("builtin_entity_excluded", entity_id=spec.get("id"), type=entity_type)
            return True
        return False
