"""
tests/test_decorator.py
Unit tests for straitjacket.decorator (@straitjacket runtime surface).

The resources are declared at module level: the decorator resolves the
metadata type in, and publishes the generated classes into, this module.
"""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional

import pytest
from pydantic import BaseModel

from straitjacket import straitjacket
from straitjacket.decorator import MetadataResolutionError, family_of
from straitjacket.wrappers import WrapperFamily


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class Link(BaseModel):
    rel: str
    href: str


class Metadata(BaseModel):
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    links: List[Link] = []


class MyMetadata(BaseModel):
    created_at: str
    updated_at: str
    links: List[Link]


@straitjacket(metadata="MyMetadata")
class MappingRule(BaseModel):
    id: int
    metric_id: int
    pattern: str
    http_method: str
    delta: int
    position: int
    last: bool


@straitjacket(plural="Policies", serde_rename="ignored", depth=3)
class Policy(BaseModel):
    id: int
    name: str


@straitjacket
class Backend(BaseModel):
    id: int
    private_endpoint: str


@straitjacket(name_snake="application_plan", plural_snake="plans")
class Plan(BaseModel):
    id: int
    name: str


_MODULE: Dict[str, Any] = vars(sys.modules[__name__])


# ===========================================================================
# Publication & registry
# ===========================================================================


class TestPublication:

    def test_class_returned_unchanged(self) -> None:
        assert MappingRule.__name__ == "MappingRule"
        assert list(MappingRule.model_fields) == [
            "id", "metric_id", "pattern", "http_method", "delta", "position", "last",
        ]

    def test_generated_names_bound_in_module(self) -> None:
        family = family_of(MappingRule)
        assert _MODULE["MappingRuleAndMetadata"] is family.envelope
        assert _MODULE["MappingRuleTag"] is family.tag
        assert _MODULE["MappingRules"] is family.collection

    def test_metadata_resolved_by_name(self) -> None:
        assert family_of(MappingRule).metadata is MyMetadata
        assert family_of(Policy).metadata is Metadata

    def test_overrides_applied(self) -> None:
        assert "Policies" in _MODULE
        assert family_of(Policy).identifiers.plural_snake == "policies"
        plan = family_of(Plan)
        assert plan.identifiers.name_snake == "application_plan"
        assert list(plan.collection.model_fields) == ["plans"]

    def test_bare_decorator(self) -> None:
        assert isinstance(family_of(Backend), WrapperFamily)
        assert "Backends" in _MODULE

    def test_undecorated_class(self) -> None:
        with pytest.raises(LookupError):
            family_of(Link)


# ===========================================================================
# Errors
# ===========================================================================


class TestErrors:

    def test_unknown_metadata(self) -> None:
        class Orphan(BaseModel):
            id: int

        with pytest.raises(MetadataResolutionError) as exc_info:
            straitjacket(metadata="NoSuchMetadata")(Orphan)
        assert isinstance(exc_info.value, LookupError)
        assert exc_info.value.metadata == "NoSuchMetadata"
        assert "Orphan" in str(exc_info.value)

    def test_metadata_name_must_be_a_model(self) -> None:
        class Odd(BaseModel):
            id: int

        with pytest.raises(MetadataResolutionError):
            straitjacket(metadata="pytest")(Odd)

    def test_non_model_target(self) -> None:
        with pytest.raises(TypeError):
            straitjacket()(object)

    def test_collision_propagates(self) -> None:
        class Stamped(BaseModel):
            id: int
            created_at: str

        with pytest.raises(ValueError):
            straitjacket()(Stamped)


# ===========================================================================
# Wire contract through the decorator
# ===========================================================================


class TestWireContract:

    def test_parses_porta_body(self, mapping_rules_body: Dict[str, Any]) -> None:
        rules = family_of(MappingRule)
        collection = rules.parse(mapping_rules_body)
        assert isinstance(collection, _MODULE["MappingRules"])
        items = rules.to_items(collection)
        assert [type(i) for i in items] == [MappingRule, MappingRule]
        assert [i.id for i in items] == [375841, 375842]

    def test_request_body_has_no_metadata(self) -> None:
        policies = family_of(Policy)
        body = policies.dump(policies.from_list([Policy(id=1, name="rate")]))
        assert body == {"policies": [{"policy": {"id": 1, "name": "rate"}}]}
