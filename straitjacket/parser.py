# File: straitjacket/parser.py
"""
straitjacket - Attribute Override Parser
==========================================
Turns the arguments of a ``@straitjacket(...)`` declaration into ordered
``(identifier, string)`` override pairs for the naming builder.

Only ``key = "string"`` entries with a plain identifier key survive.
Everything else (positional values, non-string literals, expressions,
dotted keys written through ``**{"a.b": ...}``) is dropped and traced at
DEBUG level: attributes meant for other tools can share the declaration.

Order is preserved and duplicate keys are passed through; the builder
resolves them with last-write-wins.
"""

from __future__ import annotations

import ast
import logging
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Tuple

from straitjacket.models import AttributeEntry

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.parser")


# ---------------------------------------------------------------------------
# Entry filtering
# ---------------------------------------------------------------------------


def get_key_value(entry: AttributeEntry) -> Optional[Tuple[str, str]]:
    """Return ``(ident, value)`` for a string-valued plain-identifier entry."""
    logger.debug("Attribute entry: %r", entry)

    if not entry.is_literal or not isinstance(entry.value, str):
        logger.debug(
            "Found non string literal value %r for path %r", entry.value, entry.key
        )
        return None

    ident: Optional[str] = entry.ident
    if ident is None:
        logger.debug(
            "Found string literal value %r but no suitable attribute name for path %r",
            entry.value,
            entry.key,
        )
        return None

    logger.debug("Found attribute %s = %s", ident, entry.value)
    return ident, entry.value


def _coerce_entry(raw: Any) -> Optional[AttributeEntry]:
    if isinstance(raw, AttributeEntry):
        return raw
    if isinstance(raw, tuple) and len(raw) == 2:
        key, value = raw
        if key is None or isinstance(key, str):
            return AttributeEntry(key=key, value=value)
    logger.debug("Unhandled attribute entry: %r", raw)
    return None


def get_attributes_and_values(entries: Iterable[Any]) -> Iterator[Tuple[str, str]]:
    """
    Lazily yield the ``(identifier, string)`` pairs found in *entries*.

    Each entry is an ``AttributeEntry`` or a ``(key, value)`` tuple; any
    other shape is skipped.
    """
    for raw in entries:
        entry: Optional[AttributeEntry] = _coerce_entry(raw)
        if entry is None:
            continue
        pair: Optional[Tuple[str, str]] = get_key_value(entry)
        if pair is not None:
            yield pair


# ---------------------------------------------------------------------------
# Entry sources
# ---------------------------------------------------------------------------


def _entry_value(node: ast.expr) -> AttributeEntry:
    """Literal value of *node* or, failing that, its source text."""
    try:
        return AttributeEntry(value=ast.literal_eval(node))
    except (ValueError, TypeError):
        return AttributeEntry(value=ast.unparse(node), is_literal=False)


def entries_from_call(call: ast.Call) -> List[AttributeEntry]:
    """
    Attribute entries for the arguments of an already parsed call.

    Positional arguments become key-less entries; ``**{...}`` dict literals
    expand into one entry per item, keeping string keys as written.
    """
    entries: List[AttributeEntry] = []

    for arg in call.args:
        entries.append(_entry_value(arg))

    for kw in call.keywords:
        if kw.arg is not None:
            value: AttributeEntry = _entry_value(kw.value)
            entries.append(value.model_copy(update={"key": kw.arg}))
            continue

        if not isinstance(kw.value, ast.Dict):
            logger.debug("Unhandled keyword expansion: **%s", ast.unparse(kw.value))
            continue

        for key_node, value_node in zip(kw.value.keys, kw.value.values):
            key: Optional[str] = None
            if isinstance(key_node, ast.Constant) and isinstance(key_node.value, str):
                key = key_node.value
            value = _entry_value(value_node)
            entries.append(value.model_copy(update={"key": key}))

    return entries


def parse_attribute_args(text: str) -> List[AttributeEntry]:
    """
    Parse call-argument text such as ``plural="Policies", metadata="PolicyMeta"``.

    Raises:
        SyntaxError: If *text* is not valid call-argument syntax.
    """
    if not text.strip():
        return []
    expression: ast.Expression = ast.parse(f"_({text})", mode="eval")
    call = expression.body
    if not isinstance(call, ast.Call):
        raise SyntaxError(f"Not an attribute argument list: {text!r}")
    return entries_from_call(call)


def entries_from_mapping(mapping: Mapping[str, Any]) -> List[AttributeEntry]:
    """Attribute entries for decorator keyword arguments, in insertion order."""
    return [AttributeEntry(key=key, value=value) for key, value in mapping.items()]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "get_key_value",
    "get_attributes_and_values",
    "entries_from_call",
    "entries_from_mapping",
    "parse_attribute_args",
]

logger.debug("straitjacket.parser loaded.")
