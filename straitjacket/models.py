# File: straitjacket/models.py
"""
straitjacket - Core Data Models
=================================
Pydantic V2 models shared by every stage of the pipeline:
Attribute Parsing → Naming → Validation → Wrapper Generation → Export.

``IdentifierSet`` is the contract between the naming builder and both
wrapper generators (runtime and source).  It is frozen: once a builder has
been finalised the names of a resource family never change.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

from straitjacket.utils import count_lines, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.models")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OverrideKey(str, Enum):
    """Attribute keys recognised by the naming builder."""

    NAME_SNAKE = "name_snake"
    NAME_AND_METADATA = "name_and_metadata"
    NAME_TAG = "name_tag"
    PLURAL = "plural"
    PLURAL_SNAKE = "plural_snake"
    METADATA = "metadata"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Attribute entries
# ---------------------------------------------------------------------------


class AttributeEntry(BaseModel):
    """
    One declarative attribute entry, e.g. ``plural = "Policies"``.

    ``key`` is the attribute path as written: a plain identifier, a dotted
    path (``serde.rename``), or ``None`` for a bare positional value.
    Non-literal values keep their source text and set ``is_literal=False``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: Optional[str] = Field(default=None, description="Attribute path, if any.")
    value: Any = Field(default=None, description="Literal value or source text.")
    is_literal: bool = Field(default=True, description="False for expressions.")

    @property
    def ident(self) -> Optional[str]:
        """The key when it is a single plain identifier, otherwise ``None``."""
        if self.key is not None and self.key.isidentifier():
            return self.key
        return None

    def __repr__(self) -> str:
        return f"<AttributeEntry {self.key!r} = {self.value!r}>"


# ---------------------------------------------------------------------------
# Identifier set
# ---------------------------------------------------------------------------


class IdentifierSet(BaseModel):
    """
    The seven canonical names of one resource family.

    Produced by ``NamingBuilder.build()``; consumed by the wrapper
    generators.  Uniqueness among the names is not enforced here, see
    ``straitjacket.validators.validate_identifier_set``.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., description="Base resource type name.")
    name_snake: str = Field(..., description="Singular wire key.")
    envelope: str = Field(..., description="Item + metadata type name.")
    tag: str = Field(..., description="Single-field tag type name.")
    plural: str = Field(..., description="Collection type name.")
    plural_snake: str = Field(..., description="Plural wire key.")
    metadata_type: str = Field(..., description="Caller-supplied metadata type name.")

    def type_names(self) -> Tuple[str, str, str]:
        """Generated type names in output order."""
        return (self.envelope, self.tag, self.plural)

    def conversion_names(self) -> Tuple[str, str, str]:
        """Names of the three generated conversion functions."""
        return (
            f"{self.plural_snake}_from_list",
            f"{self.plural_snake}_to_envelopes",
            f"{self.plural_snake}_to_items",
        )

    def __repr__(self) -> str:
        return (
            f"<IdentifierSet {self.name}: {self.name_snake}, {self.envelope}, "
            f"{self.tag}, {self.plural}, {self.plural_snake}, {self.metadata_type}>"
        )


# ---------------------------------------------------------------------------
# Source declarations
# ---------------------------------------------------------------------------


class ResourceDeclaration(BaseModel):
    """A decorated resource class found while scanning a source module."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Class name.")
    source: str = Field(..., description="Verbatim class source, decorator excluded.")
    field_names: List[str] = Field(
        default_factory=list, description="Annotated field names, in order."
    )
    entries: List[AttributeEntry] = Field(
        default_factory=list, description="Decorator attribute entries."
    )
    start_line: int = Field(..., ge=1, description="First line of the class (1-based).")
    end_line: int = Field(..., ge=1, description="Last line of the class (1-based).")
    decorator_lines: Tuple[int, int] = Field(
        ..., description="Inclusive 1-based line span of the consumed decorator."
    )

    @model_validator(mode="after")
    def _validate_span(self) -> "ResourceDeclaration":
        if self.end_line < self.start_line:
            raise ValueError(
                f"Class '{self.name}' ends (line {self.end_line}) before it "
                f"starts (line {self.start_line})."
            )
        return self

    def __repr__(self) -> str:
        return (
            f"<ResourceDeclaration {self.name} lines {self.start_line}-{self.end_line}, "
            f"{len(self.entries)} attribute(s)>"
        )


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Settings controlling source generation.

    A single instance (plus a source module) is all the generator needs.
    """

    model_config = _SHARED_CONFIG

    default_metadata: str = Field(
        default="Metadata",
        min_length=1,
        description="Metadata type used when a resource does not name one.",
    )
    decorator_name: str = Field(
        default="straitjacket",
        min_length=1,
        description="Decorator that marks resource classes in scanned sources.",
    )
    strip_decorator: bool = Field(
        default=True,
        description="Remove the consumed decorator from the emitted class.",
    )
    detect_collisions: bool = Field(
        default=True,
        description="Reject item/metadata field name collisions.",
    )
    strict: bool = Field(
        default=True, description="Abort generation on any validation error."
    )
    generate_docstrings: bool = Field(
        default=True, description="Add docstrings to generated classes."
    )
    emit_header: bool = Field(
        default=True, description="Prefix the output with a generated-code notice."
    )
    indent_size: int = Field(default=4, ge=2, le=8, description="Indentation width.")
    debug: bool = Field(
        default=False, description="Emit naming diagnostics on the logger."
    )


# ---------------------------------------------------------------------------
# Generation output
# ---------------------------------------------------------------------------


class GeneratedModule(BaseModel):
    """A single module produced by the generator."""

    model_config = _SHARED_CONFIG

    path: str = Field(..., min_length=1, description="Output path.")
    content: str = Field(..., description="Full module source.")
    resources: List[str] = Field(
        default_factory=list, description="Resource classes wrapped in this module."
    )
    line_count: int = Field(default=0, ge=0, description="Number of lines.")
    size_bytes: int = Field(default=0, ge=0, description="Content size in bytes.")
    checksum: Optional[str] = Field(default=None, description="SHA-256 hex digest.")

    @model_validator(mode="after")
    def _compute_metrics(self) -> "GeneratedModule":
        object.__setattr__(self, "line_count", count_lines(self.content))
        object.__setattr__(self, "size_bytes", len(self.content.encode("utf-8")))
        object.__setattr__(self, "checksum", sha256_hex(self.content))
        return self

    def __repr__(self) -> str:
        return f"<GeneratedModule {self.path} ({self.line_count} lines)>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "OverrideKey",
    "AttributeEntry",
    "IdentifierSet",
    "ResourceDeclaration",
    "GenerationConfig",
    "GeneratedModule",
]

logger.debug("straitjacket.models loaded: %d public symbols.", len(__all__))
