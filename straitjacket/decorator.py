# File: straitjacket/decorator.py
"""
straitjacket - Class Decorator
================================
Attribute-style entry point for runtime use::

    class PlanMetadata(BaseModel):
        created_at: Optional[str] = None
        links: List[Link] = []

    # Porta uses ``application_plan`` for collection items, not ``plan``.
    @straitjacket(name_snake="application_plan", metadata="PlanMetadata")
    class Plan(BaseModel):
        id: int
        name: str

After decoration the module also binds ``PlanAndMetadata``, ``PlanTag`` and
``Plans``; ``family_of(Plan)`` returns the ``WrapperFamily`` with the
conversions.

Troubleshooting:
    ``MetadataResolutionError`` means no type named like the metadata
    attribute (``Metadata`` by default) exists in the module when the
    decorator runs.  Define it above the resource or pass ``metadata=``.
    If parsing fails, check that ``name_snake`` / ``plural_snake`` match
    the keys Porta actually returns.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from straitjacket.models import IdentifierSet
from straitjacket.naming import NamingBuilder
from straitjacket.parser import entries_from_mapping, get_attributes_and_values
from straitjacket.wrappers import WrapperFamily, generate_wrappers

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.decorator")

ModelT = TypeVar("ModelT", bound=Type[BaseModel])

_REGISTRY: Dict[type, WrapperFamily] = {}


class MetadataResolutionError(LookupError):
    """The metadata type named by a resource is not defined in its module."""

    def __init__(self, resource: str, metadata: str, module: str) -> None:
        self.resource: str = resource
        self.metadata: str = metadata
        self.module: str = module
        super().__init__(
            f"Cannot find metadata type '{metadata}' for resource '{resource}' "
            f"in module '{module}'. Define it before the resource or name an "
            f"existing type with the 'metadata' attribute."
        )


def _module_namespace(cls: type) -> MutableMapping[str, Any]:
    module = sys.modules.get(cls.__module__)
    if module is None:
        raise LookupError(f"Module '{cls.__module__}' of {cls.__name__} is not loaded.")
    return vars(module)


def _resolve_metadata(
    cls: type, identifiers: IdentifierSet, namespace: MutableMapping[str, Any]
) -> Type[BaseModel]:
    candidate: Any = namespace.get(identifiers.metadata_type)
    if isinstance(candidate, type) and issubclass(candidate, BaseModel):
        return candidate
    raise MetadataResolutionError(cls.__name__, identifiers.metadata_type, cls.__module__)


def straitjacket(
    _cls: Optional[ModelT] = None, /, **attributes: Any
) -> Union[ModelT, Callable[[ModelT], ModelT]]:
    """
    Generate the collection wrappers for the decorated pydantic model.

    Usable bare (``@straitjacket``) or called (``@straitjacket(...)``).
    Recognised attributes (all strings):

    - ``name_snake``: singular key Porta uses for each item.
    - ``plural``: plural type name; a best-effort English plural otherwise.
    - ``plural_snake``: plural key Porta uses for the collection.
    - ``metadata``: name of the metadata type, resolved in the class's module.
    - ``name_and_metadata`` / ``name_tag``: names of the envelope and tag
      types, only needed to avoid clashes.

    Other attributes and non-string values are ignored.
    """
    pairs = list(get_attributes_and_values(entries_from_mapping(attributes)))

    def decorate(cls: ModelT) -> ModelT:
        if not (isinstance(cls, type) and issubclass(cls, BaseModel)):
            raise TypeError(
                f"@straitjacket applies to pydantic models, got {cls!r}."
            )

        identifiers: IdentifierSet = NamingBuilder(cls.__name__).apply(pairs).build()
        namespace: MutableMapping[str, Any] = _module_namespace(cls)
        metadata_model: Type[BaseModel] = _resolve_metadata(cls, identifiers, namespace)

        family: WrapperFamily = generate_wrappers(identifiers, cls, metadata_model)

        for name, generated in family.types().items():
            if name in namespace:
                logger.warning(
                    "%s: rebinding existing name '%s' in %s.",
                    cls.__name__,
                    name,
                    cls.__module__,
                )
            namespace[name] = generated

        _REGISTRY[cls] = family
        logger.debug("Registered wrappers for %s.%s", cls.__module__, cls.__name__)
        return cls

    if _cls is not None:
        return decorate(_cls)
    return decorate


def family_of(cls: type) -> WrapperFamily:
    """The ``WrapperFamily`` generated for a decorated class."""
    try:
        return _REGISTRY[cls]
    except KeyError:
        raise LookupError(f"{cls!r} was not decorated with @straitjacket.") from None


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MetadataResolutionError",
    "straitjacket",
    "family_of",
]

logger.debug("straitjacket.decorator loaded.")
