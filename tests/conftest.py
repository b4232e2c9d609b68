"""
tests/conftest.py
Shared fixtures for the straitjacket test suite.

No external mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import json
import pathlib
import textwrap
from typing import Any, Dict, List

import pytest
import yaml

from straitjacket.models import GenerationConfig


# ---------------------------------------------------------------------------
# Porta response bodies
# ---------------------------------------------------------------------------

_SERVICE: str = "/admin/api/services/2555417777820"


def _links(rule_id: int) -> List[Dict[str, str]]:
    return [
        {"rel": "self", "href": f"{_SERVICE}/proxy/mapping_rules/{rule_id}"},
        {"rel": "service", "href": _SERVICE},
        {"rel": "proxy", "href": f"{_SERVICE}/proxy"},
    ]


_MAPPING_RULES_BODY: Dict[str, Any] = {
    "mapping_rules": [
        {
            "mapping_rule": {
                "id": 375841,
                "metric_id": 2555418191879,
                "pattern": "/",
                "http_method": "GET",
                "delta": 1,
                "position": 1,
                "last": False,
                "created_at": "2019-03-19T09:04:35Z",
                "updated_at": "2019-03-19T09:04:39Z",
                "links": _links(375841),
            }
        },
        {
            "mapping_rule": {
                "id": 375842,
                "metric_id": 2555418191880,
                "pattern": "/",
                "http_method": "POST",
                "delta": 1,
                "position": 2,
                "last": False,
                "created_at": "2019-03-19T09:04:36Z",
                "updated_at": "2019-03-19T09:04:39Z",
                "links": _links(375842),
            }
        },
    ]
}


@pytest.fixture()
def mapping_rules_body() -> Dict[str, Any]:
    """The two-rule collection Porta returns for a proxy's mapping rules."""
    return copy.deepcopy(_MAPPING_RULES_BODY)


@pytest.fixture()
def mapping_rules_json(mapping_rules_body: Dict[str, Any]) -> str:
    return json.dumps(mapping_rules_body, indent=2)


# ---------------------------------------------------------------------------
# Source modules for the generator
# ---------------------------------------------------------------------------

RESOURCE_SOURCE: str = textwrap.dedent(
    '''\
    """Porta resources."""

    from __future__ import annotations

    from typing import List, Optional

    from pydantic import BaseModel

    from straitjacket import straitjacket


    class Link(BaseModel):
        rel: str
        href: str


    class MyMetadata(BaseModel):
        created_at: Optional[str] = None
        updated_at: Optional[str] = None
        links: List[Link] = []


    @straitjacket(metadata="MyMetadata")
    class MappingRule(BaseModel):
        id: int
        metric_id: int
        pattern: str
        http_method: str
        delta: int
        position: int
        last: bool


    @straitjacket(
        name_snake="application_plan",
        metadata="MyMetadata",
    )
    class Plan(BaseModel):
        id: int
        name: str


    DEFAULT_PAGE_SIZE = 500
    '''
)


@pytest.fixture()
def resource_source() -> str:
    """A module with two decorated resources sharing ``MyMetadata``."""
    return RESOURCE_SOURCE


@pytest.fixture()
def resource_path(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "resources.py"
    path.write_text(RESOURCE_SOURCE, encoding="utf-8")
    return path


@pytest.fixture()
def colliding_source() -> str:
    """A resource whose fields overlap with its metadata."""
    return textwrap.dedent(
        '''\
        from typing import Optional

        from pydantic import BaseModel

        from straitjacket import straitjacket


        class Metadata(BaseModel):
            created_at: Optional[str] = None


        @straitjacket
        class Account(BaseModel):
            id: int
            created_at: str
        '''
    )


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> GenerationConfig:
    return GenerationConfig()


@pytest.fixture()
def config_yaml_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """YAML config nesting its settings under a ``straitjacket`` key."""
    path = tmp_path / "straitjacket.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(
            {"straitjacket": {"default_metadata": "PortaMetadata", "strict": False}},
            fh,
            default_flow_style=False,
        )
    return path
