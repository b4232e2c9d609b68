# File: straitjacket/validators.py
"""
straitjacket - Identifier & Collision Validators
==================================================
Checks that the names of a resource family will produce importable,
unambiguous code.  The naming builder itself never fails; everything it
cannot guarantee is reported here.

Issues are collected in a ``ValidationResult`` rather than raised, so the
generator can report every problem of a module in one pass.

Usage:
    from straitjacket.validators import validate_full
    result = validate_full(identifiers, item_fields=["id", "pattern"])
    if not result:
        print(result.format_report())
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from straitjacket.models import GenerationConfig, IdentifierSet
from straitjacket.utils import is_identifier
from straitjacket.wrappers import CollectionBase, EnvelopeBase, TagBase

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Patterns & reserved names
# ---------------------------------------------------------------------------

_SNAKE_CASE_RE: re.Pattern[str] = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")

# Attributes every generated class inherits; a wire key must not shadow them.
_RESERVED_FIELD_NAMES: FrozenSet[str] = frozenset(
    name
    for base in (EnvelopeBase, TagBase, CollectionBase)
    for name in dir(base)
    if not name.startswith("__")
)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def validate_identifier_set(identifiers: IdentifierSet) -> ValidationResult:
    """
    Validate the names of one resource family:

    - type names are valid, non-keyword Python identifiers
    - wire keys are usable field names, preferably snake_case
    - generated type names are distinct from each other and from the resource
    """
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"resource": identifiers.name}

    type_names: Dict[str, str] = {
        "name": identifiers.name,
        "envelope": identifiers.envelope,
        "tag": identifiers.tag,
        "plural": identifiers.plural,
        "metadata_type": identifiers.metadata_type,
    }
    for slot, value in type_names.items():
        if not is_identifier(value):
            result.add_error(
                "INVALID_TYPE_NAME",
                f"{slot} '{value}' is not a valid Python class name.",
                {**ctx, "slot": slot},
            )

    for slot, key in (
        ("name_snake", identifiers.name_snake),
        ("plural_snake", identifiers.plural_snake),
    ):
        key_ctx: Dict[str, Any] = {**ctx, "slot": slot}
        if not is_identifier(key):
            result.add_error(
                "INVALID_WIRE_KEY",
                f"{slot} '{key}' cannot be used as a field name.",
                key_ctx,
            )
            continue

        if key.startswith("_"):
            result.add_error(
                "WIRE_KEY_PRIVATE",
                f"{slot} '{key}' starts with an underscore; pydantic treats "
                f"it as a private attribute.",
                key_ctx,
            )
        elif key in _RESERVED_FIELD_NAMES:
            result.add_error(
                "WIRE_KEY_SHADOWS_ATTRIBUTE",
                f"{slot} '{key}' shadows an attribute of the generated class.",
                key_ctx,
            )

        if not _SNAKE_CASE_RE.match(key):
            result.add_warning(
                "KEY_NOT_SNAKE_CASE",
                f"{slot} '{key}' is not snake_case. Check it matches the key "
                f"the API actually sends.",
                key_ctx,
            )

    seen: Dict[str, str] = {identifiers.name: "name"}
    for slot, value in (
        ("envelope", identifiers.envelope),
        ("tag", identifiers.tag),
        ("plural", identifiers.plural),
    ):
        if value in seen:
            result.add_error(
                "DUPLICATE_GENERATED_NAME",
                f"{slot} '{value}' is the same name as {seen[value]}.",
                {**ctx, "slot": slot, "other": seen[value]},
            )
        else:
            seen[value] = slot

    if identifiers.metadata_type in seen:
        result.add_error(
            "METADATA_NAME_CLASH",
            f"metadata_type '{identifiers.metadata_type}' is also the "
            f"{seen[identifiers.metadata_type]} of the family.",
            ctx,
        )

    logger.debug(
        "validate_identifier_set: %s, %d issue(s).", identifiers.name, len(result)
    )
    return result


def validate_field_collisions(
    identifiers: IdentifierSet,
    item_fields: Iterable[str],
    metadata_fields: Iterable[str],
) -> ValidationResult:
    """
    Reject item and metadata models that share a wire key.

    The envelope flattens both into one object, so a shared key would make
    deserialisation ambiguous.
    """
    result: ValidationResult = ValidationResult()
    shared: Set[str] = set(item_fields) & set(metadata_fields)

    if shared:
        result.add_error(
            "FIELD_COLLISION",
            f"{identifiers.name} and {identifiers.metadata_type} both declare "
            f"{', '.join(repr(k) for k in sorted(shared))}; "
            f"'{identifiers.envelope}' cannot flatten them.",
            {"resource": identifiers.name, "fields": sorted(shared)},
        )

    logger.debug(
        "validate_field_collisions: %s, %d issue(s).", identifiers.name, len(result)
    )
    return result


def validate_module_names(
    identifiers: IdentifierSet, bound_names: Iterable[str]
) -> ValidationResult:
    """Report generated names already bound in the target module."""
    result: ValidationResult = ValidationResult()
    bound: FrozenSet[str] = frozenset(bound_names)

    generated: List[str] = list(identifiers.type_names()) + list(
        identifiers.conversion_names()
    )
    for name in generated:
        if name in bound:
            result.add_error(
                "MODULE_NAME_CLASH",
                f"Generated name '{name}' for {identifiers.name} is already "
                f"defined in the module.",
                {"resource": identifiers.name, "name": name},
            )

    logger.debug(
        "validate_module_names: %s against %d name(s), %d issue(s).",
        identifiers.name,
        len(bound),
        len(result),
    )
    return result


# ---------------------------------------------------------------------------
# Aggregate entry point
# ---------------------------------------------------------------------------


def validate_full(
    identifiers: IdentifierSet,
    *,
    item_fields: Iterable[str] = (),
    metadata_fields: Optional[Iterable[str]] = None,
    bound_names: Iterable[str] = (),
    config: Optional[GenerationConfig] = None,
) -> ValidationResult:
    """
    Run every check for one resource family.

    ``metadata_fields`` is ``None`` when the metadata type is not visible to
    the caller (e.g. imported from another module); the collision check is
    then skipped with an info note.  ``config.detect_collisions=False``
    skips it unconditionally.
    """
    result: ValidationResult = ValidationResult()
    result.merge(validate_identifier_set(identifiers))

    check_collisions: bool = config is None or config.detect_collisions
    if check_collisions and metadata_fields is not None:
        result.merge(validate_field_collisions(identifiers, item_fields, metadata_fields))
    elif check_collisions:
        result.add_info(
            "METADATA_FIELDS_UNKNOWN",
            f"'{identifiers.metadata_type}' is not defined in the module; "
            f"field collisions for {identifiers.name} are checked at import time.",
            {"resource": identifiers.name},
        )

    result.merge(validate_module_names(identifiers, bound_names))

    if result.has_errors:
        logger.error(
            "Validation FAILED for %s with %d error(s).",
            identifiers.name,
            result.error_count,
        )
    else:
        logger.info("Validation PASSED for %s. %s", identifiers.name, result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_identifier_set",
    "validate_field_collisions",
    "validate_module_names",
    "validate_full",
]

logger.debug("straitjacket.validators loaded.")
