# File: straitjacket/templates.py
"""
straitjacket - Source Template Engine
=======================================
Renders a resource family as Python source, for projects that prefer
checked-in generated code over the runtime decorator.

The rendered classes subclass ``EnvelopeBase``, ``TagBase`` and
``CollectionBase`` from ``straitjacket.wrappers``, so generated source and
runtime-generated classes share one wire contract.

For ``MappingRule`` with the default names the rendered family is::

    class MappingRuleAndMetadata(EnvelopeBase):
        item: MappingRule
        metadata: Optional[Metadata] = None

    class MappingRuleTag(TagBase):
        mapping_rule: MappingRuleAndMetadata

    class MappingRules(CollectionBase):
        mapping_rules: List[MappingRuleTag]

    def mapping_rules_from_list(items): ...
    def mapping_rules_to_envelopes(collection): ...
    def mapping_rules_to_items(collection): ...

All string assembly uses the ``List[str]`` + ``"\\n".join()`` pattern.
"""

from __future__ import annotations

import ast
import logging
from typing import Dict, List, Sequence, Set, Tuple

from straitjacket.models import GenerationConfig, IdentifierSet, ResourceDeclaration
from straitjacket.utils import build_import_block, make_docstring

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_RUNTIME_MODULE: str = "straitjacket.wrappers"

_GENERATED_IMPORTS: Dict[str, Set[str]] = {
    "typing": {"Iterable", "List", "Optional"},
    _RUNTIME_MODULE: {"CollectionBase", "EnvelopeBase", "TagBase"},
}

_HEADER: Tuple[str, ...] = (
    "# --- straitjacket: generated wrappers -------------------------------------",
    "# The *AndMetadata, *Tag and plural classes below and their conversion",
    "# functions are regenerated from the resource classes. Do not edit them.",
)


def _leading_comments_end(lines: Sequence[str]) -> int:
    """Last line of the comment block (shebang, encoding) opening a module, or 0."""
    end: int = 0
    for number, line in enumerate(lines, start=1):
        if line.startswith("#"):
            end = number
        elif line.strip():
            break
    return end


def _preamble_end(tree: ast.Module, lines: Sequence[str]) -> int:
    """
    Last line of the opening comments, module docstring and
    ``from __future__`` imports, or 0.
    """
    end: int = _leading_comments_end(lines)
    for index, node in enumerate(tree.body):
        is_docstring: bool = (
            index == 0
            and isinstance(node, ast.Expr)
            and isinstance(node.value, ast.Constant)
            and isinstance(node.value.value, str)
        )
        is_future: bool = isinstance(node, ast.ImportFrom) and node.module == "__future__"
        if not (is_docstring or is_future):
            break
        end = max(end, node.end_lineno or node.lineno)
    return end


def _class_end_lines(tree: ast.Module) -> Dict[str, int]:
    return {
        node.name: node.end_lineno or node.lineno
        for node in tree.body
        if isinstance(node, ast.ClassDef)
    }


class WrapperTemplate:
    """
    Stateless source renderer for resource families.

    Thread-safe: no mutable instance state.
    """

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._indent: str = " " * config.indent_size
        self._double_indent: str = self._indent * 2
        logger.debug(
            "WrapperTemplate initialised (indent=%d, docstrings=%s).",
            config.indent_size,
            config.generate_docstrings,
        )

    # ===================================================================
    # Building blocks
    # ===================================================================

    def _docstring(self, text: str) -> List[str]:
        if not self._config.generate_docstrings:
            return []
        return [make_docstring(text, indent_level=1, size=self._config.indent_size), ""]

    def render_imports(self) -> str:
        """Header notice (when enabled) and the imports generated code needs."""
        lines: List[str] = []
        if self._config.emit_header:
            lines.extend(_HEADER)
        lines.append(build_import_block(_GENERATED_IMPORTS))
        return "\n".join(lines)

    def render_envelope(self, ids: IdentifierSet) -> List[str]:
        lines: List[str] = [f"class {ids.envelope}(EnvelopeBase):"]
        lines.extend(
            self._docstring(f"A {ids.name} with its read-only {ids.metadata_type}.")
        )
        lines.append(f"{self._indent}item: {ids.name}")
        lines.append(f"{self._indent}metadata: Optional[{ids.metadata_type}] = None")
        return lines

    def render_tag(self, ids: IdentifierSet) -> List[str]:
        lines: List[str] = [f"class {ids.tag}(TagBase):"]
        lines.extend(
            self._docstring(f'Wire wrapper ``{{"{ids.name_snake}": {ids.envelope}}}``.')
        )
        lines.append(f"{self._indent}{ids.name_snake}: {ids.envelope}")
        return lines

    def render_collection(self, ids: IdentifierSet) -> List[str]:
        lines: List[str] = [f"class {ids.plural}(CollectionBase):"]
        lines.extend(
            self._docstring(f'Wire wrapper ``{{"{ids.plural_snake}": [{ids.tag}, ...]}}``.')
        )
        lines.append(f"{self._indent}{ids.plural_snake}: List[{ids.tag}]")
        return lines

    def render_conversions(self, ids: IdentifierSet) -> List[str]:
        """The three list/collection conversion functions."""
        from_list, to_envelopes, to_items = ids.conversion_names()
        ind: str = self._indent
        ind2: str = self._double_indent
        lines: List[str] = []

        lines.append(f"def {from_list}(items: Iterable[{ids.name}]) -> {ids.plural}:")
        lines.extend(self._docstring(f"Wrap plain {ids.name} items; they carry no metadata."))
        lines.append(f"{ind}return {ids.plural}(")
        lines.append(f"{ind2}{ids.plural_snake}=[")
        lines.append(
            f"{ind2}{ind}{ids.tag}({ids.name_snake}="
            f"{ids.envelope}(item=item, metadata=None))"
        )
        lines.append(f"{ind2}{ind}for item in items")
        lines.append(f"{ind2}]")
        lines.append(f"{ind})")
        lines.append("")
        lines.append("")

        lines.append(
            f"def {to_envelopes}(collection: {ids.plural}) -> List[{ids.envelope}]:"
        )
        lines.extend(self._docstring(f"Unwrap every tag, keeping {ids.metadata_type}."))
        lines.append(
            f"{ind}return [tag.{ids.name_snake} for tag in collection.{ids.plural_snake}]"
        )
        lines.append("")
        lines.append("")

        lines.append(f"def {to_items}(collection: {ids.plural}) -> List[{ids.name}]:")
        lines.extend(self._docstring(f"Unwrap every tag down to the bare {ids.name}."))
        lines.append(
            f"{ind}return [tag.{ids.name_snake}.item "
            f"for tag in collection.{ids.plural_snake}]"
        )
        return lines

    def render_generated(self, ids: IdentifierSet) -> str:
        """Envelope, Tag, Collection and conversions, in that order."""
        blocks: List[List[str]] = [
            self.render_envelope(ids),
            self.render_tag(ids),
            self.render_collection(ids),
            self.render_conversions(ids),
        ]
        lines: List[str] = []
        for block in blocks:
            if lines:
                lines.extend(["", ""])
            lines.extend(block)
        return "\n".join(lines)

    # ===================================================================
    # Families & modules
    # ===================================================================

    def render_family(self, ids: IdentifierSet, declaration: ResourceDeclaration) -> str:
        """
        The item class verbatim (without its decorator) followed by the
        generated family.
        """
        lines: List[str] = [declaration.source.rstrip("\n"), "", ""]
        lines.append(self.render_generated(ids))
        logger.debug("Rendered family for %s.", ids.name)
        return "\n".join(lines) + "\n"

    def render_module(
        self,
        source: str,
        families: Sequence[Tuple[IdentifierSet, ResourceDeclaration]],
    ) -> str:
        """
        Rewrite *source* with every family inserted after its class, or
        after its metadata class when that is defined further down.

        The import block goes after the opening comments, the module
        docstring and any ``from __future__`` imports; consumed decorators
        are removed when ``strip_decorator`` is set.
        """
        source_lines: List[str] = source.splitlines()
        tree: ast.Module = ast.parse(source)
        preamble_end: int = _preamble_end(tree, source_lines)
        class_ends: Dict[str, int] = _class_end_lines(tree)

        removed: Set[int] = set()
        insert_after: Dict[int, List[str]] = {}
        for ids, declaration in families:
            if self._config.strip_decorator:
                first, last = declaration.decorator_lines
                removed.update(range(first, last + 1))
            anchor: int = max(declaration.end_line, class_ends.get(ids.metadata_type, 0))
            insert_after.setdefault(anchor, []).append(self.render_generated(ids))

        out: List[str] = []
        if preamble_end == 0:
            out.extend([self.render_imports(), "", ""])

        for number, line in enumerate(source_lines, start=1):
            if number not in removed:
                out.append(line)
            if number == preamble_end:
                out.extend(["", self.render_imports()])
            for generated in insert_after.get(number, []):
                out.extend(["", "", generated])

        logger.info(
            "Rendered module with %d famil%s, %d decorator line(s) removed.",
            len(families),
            "y" if len(families) == 1 else "ies",
            len(removed),
        )
        return "\n".join(out).rstrip("\n") + "\n"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "WrapperTemplate",
]

logger.debug("straitjacket.templates loaded.")
