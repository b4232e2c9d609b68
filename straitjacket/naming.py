# File: straitjacket/naming.py
"""
straitjacket - Naming Builder
===============================
Accumulates name overrides for one resource and finalises them into an
``IdentifierSet``.

Derivation of unset names::

    name_snake    = snake_case(name)
    envelope      = name + "AndMetadata"
    tag           = name + "Tag"
    plural        = pluralise(name)
    plural_snake  = snake_case(plural)      # the overridden plural, if any
    metadata_type = "Metadata"

Usage::

    ids = (
        NamingBuilder("Plan")
        .set("name_snake", "application_plan")
        .set("metadata", "PlanMetadata")
        .build()
    )
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from straitjacket.models import IdentifierSet, OverrideKey
from straitjacket.utils import to_plural, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.naming")

DEFAULT_METADATA: str = "Metadata"
ENVELOPE_SUFFIX: str = "AndMetadata"
TAG_SUFFIX: str = "Tag"

# Override key → IdentifierSet field
_SLOTS: Dict[str, str] = {
    OverrideKey.NAME_SNAKE.value: "name_snake",
    OverrideKey.NAME_AND_METADATA.value: "envelope",
    OverrideKey.NAME_TAG.value: "tag",
    OverrideKey.PLURAL.value: "plural",
    OverrideKey.PLURAL_SNAKE.value: "plural_snake",
    OverrideKey.METADATA.value: "metadata_type",
}


class NamingBuilder:
    """
    Mutable accumulator for the names of one resource family.

    ``set`` returns the builder itself so overrides chain; setting the same
    key twice keeps the last value.  Unknown keys are ignored.
    """

    __slots__ = ("_name", "_overrides")

    def __init__(self, name: str) -> None:
        self._name: str = name
        self._overrides: Dict[str, str] = {}

    @property
    def name(self) -> str:
        return self._name

    def get(self, key: str) -> Optional[str]:
        """Current override for *key*, or ``None`` when unset or unknown."""
        slot: Optional[str] = _SLOTS.get(key)
        if slot is None:
            return None
        return self._overrides.get(slot)

    def set(self, key: str, value: str) -> "NamingBuilder":
        """Override the name stored under *key* (see ``OverrideKey``)."""
        slot: Optional[str] = _SLOTS.get(key)
        if slot is None:
            logger.debug("unknown attribute %r for %s", key, self._name)
            return self
        self._overrides[slot] = value
        return self

    def apply(self, pairs: Iterable[Tuple[str, str]]) -> "NamingBuilder":
        """Apply ``(key, value)`` overrides in order."""
        for key, value in pairs:
            self.set(key, value)
        return self

    def build(self) -> IdentifierSet:
        """Finalise into an ``IdentifierSet``, deriving every unset name."""
        name: str = self._name
        overrides: Dict[str, str] = self._overrides

        plural: str = overrides.get("plural") or to_plural(name)

        identifiers: IdentifierSet = IdentifierSet(
            name=name,
            name_snake=overrides.get("name_snake") or to_snake_case(name),
            envelope=overrides.get("envelope") or f"{name}{ENVELOPE_SUFFIX}",
            tag=overrides.get("tag") or f"{name}{TAG_SUFFIX}",
            plural=plural,
            plural_snake=overrides.get("plural_snake") or to_snake_case(plural),
            metadata_type=overrides.get("metadata_type") or DEFAULT_METADATA,
        )
        logger.debug("Finalised identifiers: %r", identifiers)
        return identifiers

    def __repr__(self) -> str:
        return f"<NamingBuilder {self._name} overrides={self._overrides}>"


def build_identifiers(name: str, pairs: Iterable[Tuple[str, str]] = ()) -> IdentifierSet:
    """Shortcut for ``NamingBuilder(name).apply(pairs).build()``."""
    return NamingBuilder(name).apply(pairs).build()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DEFAULT_METADATA",
    "NamingBuilder",
    "build_identifiers",
]

logger.debug("straitjacket.naming loaded.")
