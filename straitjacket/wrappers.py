# File: straitjacket/wrappers.py
"""
straitjacket - Runtime Wrapper Generator
==========================================
Builds the pydantic classes that model Porta's collection envelope::

    {"<plural_snake>": [{"<name_snake>": {...item..., ...metadata...}}, ...]}

For a resource ``MappingRule`` with the default names:

- ``MappingRuleAndMetadata`` (envelope): the item plus optional metadata.
  Serialises as the item's own fields; deserialises from item *and*
  metadata fields sharing one flat object.
- ``MappingRuleTag``: a single field ``mapping_rule`` holding the envelope.
- ``MappingRules``: a single field ``mapping_rules`` holding the tags.

The base classes below carry the wire behaviour, so classes rendered as
source by ``straitjacket.templates`` subclass them too.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    Union,
    get_args,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    SerializerFunctionWrapHandler,
    ValidationError,
    create_model,
    model_serializer,
    model_validator,
)

from straitjacket.models import IdentifierSet

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.wrappers")

_WRAPPER_CONFIG: ConfigDict = ConfigDict(protected_namespaces=())

_ENVELOPE_FIELDS: FrozenSet[str] = frozenset({"item", "metadata"})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class NameCollisionError(ValueError):
    """Item and metadata models share wire keys on the flattened envelope."""

    def __init__(self, envelope: str, keys: Iterable[str]) -> None:
        self.envelope: str = envelope
        self.keys: Tuple[str, ...] = tuple(sorted(keys))
        super().__init__(
            f"Envelope '{envelope}' cannot flatten item and metadata: "
            f"both declare {', '.join(repr(k) for k in self.keys)}."
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def wire_keys(model: Type[BaseModel]) -> FrozenSet[str]:
    """Keys under which *model*'s fields appear on the wire."""
    keys: set = set()
    for field_name, info in model.model_fields.items():
        alias: Any = info.validation_alias
        if not isinstance(alias, str):
            alias = info.alias
        keys.add(alias or field_name)
    return frozenset(keys)


def _input_keys(model: Type[BaseModel]) -> FrozenSet[str]:
    """Wire keys plus plain field names (accepted with ``populate_by_name``)."""
    return wire_keys(model) | frozenset(model.model_fields)


def _single_field(model: Type[BaseModel]) -> str:
    return next(iter(model.model_fields))


# ---------------------------------------------------------------------------
# Base classes
# ---------------------------------------------------------------------------


class EnvelopeBase(BaseModel):
    """
    An item together with its optional, read-only metadata.

    Subclasses declare ``item`` and ``metadata: Optional[...] = None``.
    """

    model_config = _WRAPPER_CONFIG

    @classmethod
    def item_model(cls) -> Type[BaseModel]:
        return cls.model_fields["item"].annotation  # type: ignore[return-value]

    @classmethod
    def metadata_model(cls) -> Type[BaseModel]:
        annotation: Any = cls.model_fields["metadata"].annotation
        members: Tuple[Any, ...] = tuple(a for a in get_args(annotation) if a is not type(None))
        return members[0] if members else annotation

    @model_validator(mode="before")
    @classmethod
    def _unflatten(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data

        metadata_model: Type[BaseModel] = cls.metadata_model()
        # Already split: built from model instances, never from wire data.
        if (
            set(data) <= _ENVELOPE_FIELDS
            and isinstance(data.get("item"), cls.item_model())
            and isinstance(data.get("metadata"), (metadata_model, type(None)))
        ):
            return data

        metadata_keys: FrozenSet[str] = _input_keys(metadata_model)

        item_payload: Dict[str, Any] = {}
        metadata_payload: Dict[str, Any] = {}
        for key, value in data.items():
            if key in metadata_keys:
                metadata_payload[key] = value
            else:
                item_payload[key] = value

        metadata: Optional[BaseModel] = None
        if metadata_payload:
            try:
                metadata = metadata_model.model_validate(metadata_payload)
            except ValidationError as exc:
                logger.debug(
                    "%s: metadata left unset, %d error(s) validating %s",
                    cls.__name__,
                    exc.error_count(),
                    metadata_model.__name__,
                )

        return {"item": item_payload, "metadata": metadata}

    @model_serializer(mode="wrap")
    def _flatten(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        return handler(self)["item"]


class TagBase(BaseModel):
    """Binds an envelope to the resource's singular wire key."""

    model_config = _WRAPPER_CONFIG

    @classmethod
    def wire_key(cls) -> str:
        return _single_field(cls)

    @classmethod
    def wrap(cls, envelope: EnvelopeBase) -> "TagBase":
        return cls(**{cls.wire_key(): envelope})

    def unwrap(self) -> EnvelopeBase:
        return getattr(self, self.wire_key())


class CollectionBase(BaseModel):
    """Binds a list of tags to the resource's plural wire key."""

    model_config = _WRAPPER_CONFIG

    @classmethod
    def wire_key(cls) -> str:
        return _single_field(cls)

    def unwrap(self) -> List[TagBase]:
        return getattr(self, self.wire_key())


# ---------------------------------------------------------------------------
# Generated family
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WrapperFamily:
    """The classes generated for one resource and the conversions between them."""

    identifiers: IdentifierSet
    item: Type[BaseModel]
    metadata: Type[BaseModel]
    envelope: Type[EnvelopeBase]
    tag: Type[TagBase]
    collection: Type[CollectionBase]

    def types(self) -> Dict[str, type]:
        """Generated classes keyed by name, in output order."""
        return {
            self.identifiers.envelope: self.envelope,
            self.identifiers.tag: self.tag,
            self.identifiers.plural: self.collection,
        }

    def from_list(self, items: Iterable[BaseModel]) -> CollectionBase:
        """Wrap plain items into a collection; fresh items carry no metadata."""
        tags: List[TagBase] = [
            self.tag.wrap(self.envelope(item=item, metadata=None)) for item in items
        ]
        return self.collection(**{self.identifiers.plural_snake: tags})

    def to_envelopes(self, collection: CollectionBase) -> List[EnvelopeBase]:
        """Unwrap every tag, keeping metadata."""
        return [tag.unwrap() for tag in collection.unwrap()]

    def to_items(self, collection: CollectionBase) -> List[BaseModel]:
        """Unwrap every tag down to the bare item."""
        return [tag.unwrap().item for tag in collection.unwrap()]  # type: ignore[attr-defined]

    def parse(self, data: Union[str, bytes, Mapping[str, Any]]) -> CollectionBase:
        """Validate a collection from a JSON document or an already decoded object."""
        if isinstance(data, (str, bytes)):
            return self.collection.model_validate_json(data)
        return self.collection.model_validate(data)

    def dump(self, collection: CollectionBase) -> Dict[str, Any]:
        """JSON-compatible request body for *collection*."""
        return collection.model_dump(mode="json")

    def dumps(self, collection: CollectionBase, indent: Optional[int] = None) -> str:
        return collection.model_dump_json(indent=indent)


def generate_wrappers(
    identifiers: IdentifierSet,
    item_model: Type[BaseModel],
    metadata_model: Type[BaseModel],
    *,
    detect_collisions: bool = True,
) -> WrapperFamily:
    """
    Create the envelope, tag and collection classes for *item_model*.

    The item class is left untouched.

    Raises:
        NameCollisionError: If *detect_collisions* is set and the item and
            metadata models share wire keys.
    """
    if detect_collisions:
        shared: FrozenSet[str] = wire_keys(item_model) & wire_keys(metadata_model)
        if shared:
            raise NameCollisionError(identifiers.envelope, shared)

    module: str = item_model.__module__

    envelope: Type[EnvelopeBase] = create_model(  # type: ignore[call-overload]
        identifiers.envelope,
        __base__=EnvelopeBase,
        __module__=module,
        item=(item_model, ...),
        metadata=(Optional[metadata_model], None),
    )
    tag: Type[TagBase] = create_model(  # type: ignore[call-overload]
        identifiers.tag,
        __base__=TagBase,
        __module__=module,
        **{identifiers.name_snake: (envelope, ...)},
    )
    collection: Type[CollectionBase] = create_model(  # type: ignore[call-overload]
        identifiers.plural,
        __base__=CollectionBase,
        __module__=module,
        **{identifiers.plural_snake: (List[tag], ...)},
    )

    logger.debug(
        "Generated %s, %s, %s for %s (metadata %s).",
        identifiers.envelope,
        identifiers.tag,
        identifiers.plural,
        item_model.__name__,
        metadata_model.__name__,
    )
    return WrapperFamily(
        identifiers=identifiers,
        item=item_model,
        metadata=metadata_model,
        envelope=envelope,
        tag=tag,
        collection=collection,
    )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "NameCollisionError",
    "EnvelopeBase",
    "TagBase",
    "CollectionBase",
    "WrapperFamily",
    "generate_wrappers",
    "wire_keys",
]

logger.debug("straitjacket.wrappers loaded.")
