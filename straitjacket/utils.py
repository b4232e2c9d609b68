# File: straitjacket/utils.py
"""
straitjacket - Utility Functions & Helpers
============================================
String transformation, file I/O and diagnostics helpers used throughout the
naming and generation pipeline.

- Case conversion and pluralisation are decorated with
  ``@lru_cache(maxsize=None)``: the same resource names are derived over and
  over while scanning a module.
- File writes go through a temporary file and an atomic rename.
"""

from __future__ import annotations

import functools
import hashlib
import keyword
import logging
import os
import re
import shutil
import sys
import tempfile
import time
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, TextIO

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_LAST_WORD_RE: re.Pattern[str] = re.compile(r"(?:[A-Z]?[a-z]+|[A-Z]+|[0-9]+)$")

_VOWELS: FrozenSet[str] = frozenset("aeiou")

# Irregular nouns, keyed by lower-case singular
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "ox": "oxen",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "criterion": "criteria",
    "hero": "heroes",
    "potato": "potatoes",
    "tomato": "tomatoes",
}

# Nouns whose plural is the singular
_UNCOUNTABLE: FrozenSet[str] = frozenset({
    "equipment", "information", "rice", "money", "species", "series",
    "fish", "sheep", "deer", "news", "metadata", "feedback", "software",
})


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("MappingRule")
        'mapping_rule'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'
        >>> to_snake_case("Plans2")
        'plans2'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


def _match_case(template: str, word: str) -> str:
    """Re-apply the casing of *template* to *word* (lower, UPPER or Title)."""
    if template.isupper() and len(template) > 1:
        return word.upper()
    if template[:1].isupper():
        return word[:1].upper() + word[1:]
    return word


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    English pluralisation of a type name.

    Only the last word of a compound name is inflected, so ``MappingRule``
    becomes ``MappingRules`` and ``SalesPerson`` becomes ``SalesPeople``.

    Examples:
        >>> to_plural("Plan")
        'Plans'
        >>> to_plural("Policy")
        'Policies'
        >>> to_plural("Status")
        'Statuses'
        >>> to_plural("Branch")
        'Branches'
    """
    if not name:
        return ""

    match: Optional[re.Match[str]] = _LAST_WORD_RE.search(name)
    if match is None:
        return name + "s"

    head: str = name[: match.start()]
    word: str = match.group(0)
    lower: str = word.lower()

    if lower in _UNCOUNTABLE:
        return name
    if lower in _IRREGULAR_PLURALS:
        return head + _match_case(word, _IRREGULAR_PLURALS[lower])

    # Rules ordered by specificity
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        suffix: str = "es"
        return head + word + (suffix.upper() if word.isupper() and len(word) > 1 else suffix)
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in _VOWELS:
        return head + word[:-1] + ("IES" if word.isupper() else "ies")
    if lower.endswith("fe"):
        return head + word[:-2] + ("VES" if word.isupper() else "ves")
    if lower.endswith(("lf", "rf")):
        return head + word[:-1] + ("VES" if word.isupper() else "ves")

    return head + word + ("S" if word.isupper() and len(word) > 1 else "s")


@functools.lru_cache(maxsize=None)
def is_identifier(name: str) -> bool:
    """True when *name* is a valid Python identifier and not a keyword."""
    return name.isidentifier() and not keyword.iskeyword(name)


# ---------------------------------------------------------------------------
# Indentation & code formatting helpers
# ---------------------------------------------------------------------------


def make_docstring(text: str, indent_level: int = 1, size: int = 4) -> str:
    """
    Create a properly formatted Python docstring.

    Single-line docstrings stay on one line; multi-line use triple-quote blocks.
    """
    prefix: str = " " * (indent_level * size)
    stripped: str = text.strip()

    if "\n" not in stripped and len(stripped) + len(prefix) + 6 <= 99:
        return f'{prefix}"""{stripped}"""'

    doc_lines: List[str] = stripped.split("\n")
    parts: List[str] = [f'{prefix}"""']
    parts.extend(f"{prefix}{line}" for line in doc_lines)
    parts.append(f'{prefix}"""')
    return "\n".join(parts)


def build_import_block(imports: Dict[str, Set[str]]) -> str:
    """
    Build a sorted, de-duplicated import block from a mapping of
    module → set of names.

    Example:
        >>> build_import_block({"typing": {"List", "Optional"}})
        'from typing import List, Optional'
    """
    lines: List[str] = []
    for module in sorted(imports.keys()):
        names: List[str] = sorted(imports[module])
        if names:
            lines.append(f"from {module} import {', '.join(names)}")
        else:
            lines.append(f"import {module}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file first then renames,
    so a reader never observes a half-written module.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")

    if atomic:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(encoded)
            shutil.move(tmp_path, str(path))
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    """Read a file and return its content as a string."""
    return path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

DIAGNOSTICS_ENV_VAR: str = "STRAITJACKET_DEBUG"

_DIAGNOSTICS_FORMAT: str = "straitjacket │ %(name)s │ %(message)s"


def diagnostics_requested(environ: Optional[Dict[str, str]] = None) -> bool:
    """True when the diagnostics switch is set in the environment."""
    env = os.environ if environ is None else environ
    return env.get(DIAGNOSTICS_ENV_VAR, "").strip().lower() in {"1", "true", "yes", "on"}


def enable_diagnostics(stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Route DEBUG records of the ``straitjacket`` logger hierarchy to *stream*.

    Calling it twice does not duplicate output.
    """
    root: logging.Logger = logging.getLogger("straitjacket")
    for existing in root.handlers:
        if getattr(existing, "_straitjacket_diagnostics", False):
            return existing

    handler: logging.StreamHandler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_DIAGNOSTICS_FORMAT))
    handler._straitjacket_diagnostics = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    return handler


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("scan") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_plural",
    "is_identifier",
    "make_docstring",
    "build_import_block",
    "ensure_directory",
    "write_file",
    "read_file",
    "sha256_hex",
    "count_lines",
    "DIAGNOSTICS_ENV_VAR",
    "diagnostics_requested",
    "enable_diagnostics",
    "Timer",
]

logger.debug("straitjacket.utils loaded: %d public symbols.", len(__all__))
