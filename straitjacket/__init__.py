# File: straitjacket/__init__.py
"""
straitjacket - Collection Wrappers for 3scale Porta Resources
===============================================================

Porta wraps every item of a collection in a singleton object keyed by the
resource name, wraps the list under the plural name, and merges read-only
metadata (timestamps, links) into each item::

    {"mapping_rules": [{"mapping_rule": {"id": 1, ..., "links": [...]}}]}

straitjacket derives the names of that envelope from a resource model and
generates the pydantic classes (and conversions) that read and write it.

Architecture overview::

    ┌──────────────┐     ┌────────────────────┐     ┌────────────────┐
    │  CLI / Entry │────▶│StraitjacketGenerator│────▶│ WrapperTemplate│
    │   (cli.py)   │     │   (generator.py)   │     │ (templates.py) │
    └──────────────┘     └─────────┬──────────┘     └────────────────┘
                                   │
         ┌────────────┬────────────┼────────────┐
         ▼            ▼            ▼            ▼
    ┌─────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐
    │ parser  │ │  naming  │ │validators│ │ wrappers │◀── decorator.py
    └─────────┘ └──────────┘ └──────────┘ └──────────┘

Usage::

    # At runtime
    from straitjacket import family_of, straitjacket

    @straitjacket(plural="Policies")
    class Policy(BaseModel):
        ...

    policies = family_of(Policy).parse(response.content)

    # From the command line
    straitjacket resources.py -o resources_gen.py

Set ``STRAITJACKET_DEBUG=1`` to trace naming decisions on stderr.
"""

from __future__ import annotations

__version__: str = "0.3.0"
__license__: str = "MIT"

from straitjacket.models import (
    AttributeEntry,
    GeneratedModule,
    GenerationConfig,
    IdentifierSet,
    OverrideKey,
    ResourceDeclaration,
)
from straitjacket.naming import NamingBuilder, build_identifiers
from straitjacket.parser import get_attributes_and_values, parse_attribute_args
from straitjacket.wrappers import (
    CollectionBase,
    EnvelopeBase,
    NameCollisionError,
    TagBase,
    WrapperFamily,
    generate_wrappers,
)
from straitjacket.decorator import MetadataResolutionError, family_of, straitjacket
from straitjacket.validators import ValidationResult, validate_full
from straitjacket.templates import WrapperTemplate
from straitjacket.generator import (
    GenerationReport,
    StraitjacketGenerator,
    load_config_file,
)
from straitjacket.utils import (
    Timer,
    diagnostics_requested,
    enable_diagnostics,
    to_plural,
    to_snake_case,
)

if diagnostics_requested():
    enable_diagnostics()

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Runtime
    "straitjacket",
    "family_of",
    "MetadataResolutionError",
    "generate_wrappers",
    "WrapperFamily",
    "EnvelopeBase",
    "TagBase",
    "CollectionBase",
    "NameCollisionError",
    # Naming
    "NamingBuilder",
    "build_identifiers",
    "get_attributes_and_values",
    "parse_attribute_args",
    # Models
    "AttributeEntry",
    "GeneratedModule",
    "GenerationConfig",
    "IdentifierSet",
    "OverrideKey",
    "ResourceDeclaration",
    # Validation
    "validate_full",
    "ValidationResult",
    # Source generation
    "WrapperTemplate",
    "StraitjacketGenerator",
    "GenerationReport",
    "load_config_file",
    # Utilities
    "Timer",
    "to_snake_case",
    "to_plural",
    "diagnostics_requested",
    "enable_diagnostics",
]
