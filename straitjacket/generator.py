# File: straitjacket/generator.py
"""
straitjacket - Generation Pipeline (Orchestrator)
===================================================

Connects every phase for source generation:

    Source Module → Scan → Naming → Validation → Rendering → File Export

Workflow::

    1. Read the source module (or accept it as a string).
    2. Find top-level classes decorated with ``@straitjacket`` (bare, called,
       or attribute-qualified such as ``@sj.straitjacket(...)``).
    3. Parse each decorator's arguments into naming overrides (parser.py)
       and finalise the names (naming.py).
    4. Validate names, item/metadata collisions and module clashes
       (validators.py).
    5. Render the module with every family inserted after its class
       (templates.py).
    6. Write the result atomically, unless it is a dry run.
    7. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Unreadable input is an input error; nothing else runs.
    - Validation errors are collected and surfaced, not swallowed.  With
      ``strict`` any error aborts; otherwise offending resources are skipped.
    - Write failures are export errors.
    - The final report gives a clear pass/fail verdict.
"""

from __future__ import annotations

import ast
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

import yaml

from straitjacket.models import (
    GeneratedModule,
    GenerationConfig,
    IdentifierSet,
    ResourceDeclaration,
)
from straitjacket.naming import NamingBuilder
from straitjacket.parser import entries_from_call, get_attributes_and_values
from straitjacket.templates import WrapperTemplate
from straitjacket.utils import Timer, enable_diagnostics, read_file, write_file
from straitjacket.validators import ValidationResult, validate_full

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("straitjacket.generator")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``StraitjacketGenerator.generate_source()`` and
    ``generate_from_file()``.
    """

    success: bool = False
    source_path: str = ""
    output_path: str = ""
    written: bool = False

    # Metrics
    total_resources: int = 0
    total_lines: int = 0
    total_bytes: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    skipped_resources: List[str] = field(default_factory=list)

    identifiers: List[IdentifierSet] = field(default_factory=list)
    module: Optional[GeneratedModule] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  straitjacket: Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Source:           {self.source_path}")
        lines.append(f"  Output:           {self.output_path or '<stdout>'}")
        lines.append(f"  Resources:        {self.total_resources}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections: List[Tuple[str, List[str], str]] = [
            ("Input Errors", self.input_errors, "✗"),
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
            ("Skipped Resources", self.skipped_resources, "⊘"),
        ]
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(f"{'─'*60}")
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Config loader helpers
# ---------------------------------------------------------------------------

_CONFIG_KEYS: Tuple[str, ...] = ("straitjacket", "config", "generation_config")


def _load_json_file(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def _load_yaml_file(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc


def load_config_file(path: Path) -> GenerationConfig:
    """
    Load a ``GenerationConfig`` from a JSON or YAML file.

    The settings may sit at the top level or under a ``straitjacket``,
    ``config`` or ``generation_config`` key.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed or holds invalid settings.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Config path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        raw: Any = _load_yaml_file(path)
    elif suffix == ".json":
        raw = _load_json_file(path)
    else:
        logger.info("Unknown extension '%s', trying JSON then YAML.", suffix)
        try:
            raw = _load_json_file(path)
        except ValueError:
            raw = _load_yaml_file(path)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(
            f"Expected a mapping at top level of {path}, got {type(raw).__name__}."
        )

    for key in _CONFIG_KEYS:
        if isinstance(raw.get(key), dict):
            raw = raw[key]
            break

    try:
        return GenerationConfig.model_validate(raw)
    except ValueError as exc:
        raise ValueError(f"Config validation failed for {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# AST helpers
# ---------------------------------------------------------------------------


def _decorator_name(node: ast.expr) -> Optional[str]:
    """``straitjacket`` for ``@straitjacket``, ``@straitjacket()``, ``@sj.straitjacket(...)``."""
    target: ast.expr = node.func if isinstance(node, ast.Call) else node
    if isinstance(target, ast.Name):
        return target.id
    if isinstance(target, ast.Attribute):
        return target.attr
    return None


def _field_alias(value: Optional[ast.expr]) -> Optional[str]:
    """String ``alias``/``validation_alias`` of a ``Field(...)`` default, if any."""
    if not isinstance(value, ast.Call) or _decorator_name(value) != "Field":
        return None
    for kw in value.keywords:
        if kw.arg in ("validation_alias", "alias") and isinstance(kw.value, ast.Constant):
            if isinstance(kw.value.value, str):
                return kw.value.value
    return None


def _class_fields(node: ast.ClassDef) -> List[Tuple[str, str]]:
    """``(field name, wire key)`` for every annotated field of a model class."""
    fields: List[Tuple[str, str]] = []
    for stmt in node.body:
        if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
            continue
        name: str = stmt.target.id
        if name.startswith("_") or name == "model_config":
            continue
        annotation: str = ast.unparse(stmt.annotation)
        if annotation.startswith(("ClassVar", "typing.ClassVar")):
            continue
        fields.append((name, _field_alias(stmt.value) or name))
    return fields


def _bound_names(tree: ast.Module) -> Set[str]:
    """Names bound at the top level of a module."""
    names: Set[str] = set()
    for node in tree.body:
        if isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            names.add(node.name)
        elif isinstance(node, ast.Assign):
            for target in node.targets:
                names.update(
                    n.id for n in ast.walk(target) if isinstance(n, ast.Name)
                )
        elif isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
            names.add(node.target.id)
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                names.add(alias.asname or alias.name.split(".")[0])
    return names


# ---------------------------------------------------------------------------
# StraitjacketGenerator: pipeline orchestrator
# ---------------------------------------------------------------------------


class StraitjacketGenerator:
    """
    Pipeline orchestrator for source generation.

    Usage::

        generator = StraitjacketGenerator(GenerationConfig())
        report = generator.generate_from_file(Path("resources.py"),
                                              Path("resources_gen.py"))
        print(report.summary())

    The generator is reusable: create once, generate many modules.
    """

    def __init__(self, config: Optional[GenerationConfig] = None) -> None:
        self._config: GenerationConfig = config or GenerationConfig()
        self._template: WrapperTemplate = WrapperTemplate(self._config)
        if self._config.debug:
            enable_diagnostics()
        logger.debug(
            "StraitjacketGenerator initialised: decorator=@%s, strict=%s.",
            self._config.decorator_name,
            self._config.strict,
        )

    @property
    def config(self) -> GenerationConfig:
        return self._config

    # -----------------------------------------------------------------
    # Scanning & naming
    # -----------------------------------------------------------------

    def scan_source(
        self, source: str, filename: str = "<string>"
    ) -> List[ResourceDeclaration]:
        """
        Find top-level classes carrying the configured decorator.

        Raises:
            SyntaxError: If *source* is not valid Python.
        """
        tree: ast.Module = ast.parse(source, filename=filename)
        declarations: List[ResourceDeclaration] = []

        for node in tree.body:
            if not isinstance(node, ast.ClassDef):
                continue
            for decorator in node.decorator_list:
                if _decorator_name(decorator) != self._config.decorator_name:
                    continue
                entries = entries_from_call(decorator) if isinstance(decorator, ast.Call) else []
                declarations.append(
                    ResourceDeclaration(
                        name=node.name,
                        source=ast.get_source_segment(source, node) or "",
                        field_names=[name for name, _ in _class_fields(node)],
                        entries=entries,
                        start_line=node.lineno,
                        end_line=node.end_lineno or node.lineno,
                        decorator_lines=(
                            decorator.lineno,
                            decorator.end_lineno or decorator.lineno,
                        ),
                    )
                )
                break

        logger.info(
            "Scanned %s: %d resource class(es) decorated with @%s.",
            filename,
            len(declarations),
            self._config.decorator_name,
        )
        return declarations

    def identifiers_for(self, declaration: ResourceDeclaration) -> IdentifierSet:
        """Names for *declaration*: configured default metadata, then its overrides."""
        builder: NamingBuilder = NamingBuilder(declaration.name)
        builder.set("metadata", self._config.default_metadata)
        builder.apply(get_attributes_and_values(declaration.entries))
        return builder.build()

    # -----------------------------------------------------------------
    # Public: generate
    # -----------------------------------------------------------------

    def generate_source(
        self, source: str, filename: str = "<string>"
    ) -> GenerationReport:
        """Run scan → naming → validation → rendering over module text."""
        report: GenerationReport = GenerationReport(source_path=filename)
        return self._run_pipeline(source, filename, report, time.perf_counter())

    def generate_from_file(
        self,
        path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
        *,
        dry_run: bool = False,
    ) -> GenerationReport:
        """
        Full pipeline: read → generate → write.

        Without *output_path* (or with *dry_run*) nothing is written; the
        rendered module is available as ``report.module.content``.
        """
        pipeline_start: float = time.perf_counter()
        source_path: Path = Path(path)
        report: GenerationReport = GenerationReport(
            source_path=str(source_path),
            output_path=str(output_path) if output_path is not None else "",
        )

        with Timer("load_source") as t_load:
            try:
                source: str = read_file(source_path)
            except (OSError, UnicodeDecodeError) as exc:
                report.input_errors.append(f"Cannot read {source_path}: {exc}")
        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Load Source",
                success=not report.input_errors,
                elapsed_seconds=t_load.elapsed,
                detail=report.input_errors[0] if report.input_errors else source_path.name,
            )
        )
        if report.input_errors:
            return self._finalise_report(report, pipeline_start)

        self._run_pipeline(source, str(source_path), report, pipeline_start)

        writable: bool = output_path is not None and not dry_run
        if report.success and report.module is not None and writable:
            self._step_export(Path(output_path), report.module, report)
            return self._finalise_report(report, pipeline_start)

        if dry_run:
            logger.info("Dry run: nothing written.")
        return report

    # -----------------------------------------------------------------
    # Internal: pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        source: str,
        filename: str,
        report: GenerationReport,
        pipeline_start: float,
    ) -> GenerationReport:
        # --- Step: Scan ---
        with Timer("scan") as t_scan:
            try:
                tree: ast.Module = ast.parse(source, filename=filename)
                declarations: List[ResourceDeclaration] = self.scan_source(source, filename)
            except SyntaxError as exc:
                report.input_errors.append(
                    f"{filename}:{exc.lineno}: invalid Python: {exc.msg}"
                )
                declarations = []
        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Scan Source",
                success=not report.input_errors,
                elapsed_seconds=t_scan.elapsed,
                detail=f"{len(declarations)} resource(s)",
            )
        )
        if report.input_errors:
            return self._finalise_report(report, pipeline_start)
        if not declarations:
            report.generation_errors.append(
                f"No classes decorated with @{self._config.decorator_name} in {filename}."
            )
            return self._finalise_report(report, pipeline_start)

        # --- Step: Naming ---
        with Timer("naming") as t_naming:
            families: List[Tuple[IdentifierSet, ResourceDeclaration]] = [
                (self.identifiers_for(declaration), declaration)
                for declaration in declarations
            ]
        report.identifiers = [ids for ids, _ in families]
        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Build Identifiers",
                success=True,
                elapsed_seconds=t_naming.elapsed,
                detail=", ".join(ids.plural for ids, _ in families),
            )
        )

        # --- Step: Validation ---
        accepted: List[Tuple[IdentifierSet, ResourceDeclaration]] = self._step_validate(
            tree, families, report
        )
        if report.validation_errors:
            return self._finalise_report(report, pipeline_start)
        if not accepted:
            report.generation_errors.append("Every resource failed validation.")
            return self._finalise_report(report, pipeline_start)

        # --- Step: Rendering ---
        self._step_render(source, filename, accepted, report)
        return self._finalise_report(report, pipeline_start)

    def _step_validate(
        self,
        tree: ast.Module,
        families: List[Tuple[IdentifierSet, ResourceDeclaration]],
        report: GenerationReport,
    ) -> List[Tuple[IdentifierSet, ResourceDeclaration]]:
        """Validate every family; returns the ones without errors."""
        classes: Dict[str, ast.ClassDef] = {
            node.name: node for node in tree.body if isinstance(node, ast.ClassDef)
        }
        bound: Set[str] = _bound_names(tree)
        accepted: List[Tuple[IdentifierSet, ResourceDeclaration]] = []

        with Timer("validation") as t:
            for ids, declaration in families:
                metadata_node: Optional[ast.ClassDef] = classes.get(ids.metadata_type)
                metadata_fields: Optional[List[str]] = None
                if metadata_node is not None:
                    metadata_fields = [key for _, key in _class_fields(metadata_node)]

                result: ValidationResult = validate_full(
                    ids,
                    item_fields=[key for _, key in _class_fields(classes[declaration.name])],
                    metadata_fields=metadata_fields,
                    bound_names=bound,
                    config=self._config,
                )
                report.validation_warnings.extend(str(w) for w in result.warnings)
                if self._config.strict:
                    report.validation_errors.extend(str(e) for e in result.errors)
                else:
                    # Non-strict: the resource is skipped, its errors demoted.
                    report.validation_warnings.extend(
                        f"{declaration.name} skipped: {e}" for e in result.errors
                    )

                if result.is_valid:
                    accepted.append((ids, declaration))
                    bound.update(ids.type_names())
                    bound.update(ids.conversion_names())
                else:
                    report.skipped_resources.append(declaration.name)

        if report.validation_errors:
            detail: str = f"{len(report.validation_errors)} error(s)"
            for err in report.validation_errors:
                logger.error("  ✗ %s", err)
        elif report.validation_warnings:
            detail = f"{len(report.validation_warnings)} warning(s)"
            for warn in report.validation_warnings:
                logger.warning("  ⚠ %s", warn)
        else:
            detail = "all checks passed"

        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Validate Names",
                success=not report.validation_errors,
                elapsed_seconds=t.elapsed,
                detail=detail,
            )
        )
        return accepted

    def _step_render(
        self,
        source: str,
        filename: str,
        families: List[Tuple[IdentifierSet, ResourceDeclaration]],
        report: GenerationReport,
    ) -> None:
        with Timer("render") as t:
            content: str = self._template.render_module(source, families)
            try:
                ast.parse(content, filename=filename)
            except SyntaxError as exc:
                report.generation_errors.append(
                    f"Rendered module does not parse (line {exc.lineno}): {exc.msg}"
                )

        if not report.generation_errors:
            report.module = GeneratedModule(
                path=report.output_path or filename,
                content=content,
                resources=[ids.name for ids, _ in families],
            )
            report.total_resources = len(families)
            report.total_lines = report.module.line_count
            report.total_bytes = report.module.size_bytes

        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Render Module",
                success=not report.generation_errors,
                elapsed_seconds=t.elapsed,
                detail=f"{report.total_lines:,} lines, {len(families)} famil(ies)",
            )
        )
        logger.info(
            "Rendered %d resource famil(ies) in %.3fs.", len(families), t.elapsed
        )

    def _step_export(
        self, output_path: Path, module: GeneratedModule, report: GenerationReport
    ) -> None:
        with Timer("export") as t:
            try:
                size: int = write_file(output_path, module.content, atomic=True)
                report.written = True
            except OSError as exc:
                report.export_errors.append(f"Cannot write {output_path}: {exc}")
                size = 0

        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Export to Filesystem",
                success=report.written,
                elapsed_seconds=t.elapsed,
                detail=f"{size:,} bytes" if report.written else report.export_errors[-1],
            )
        )
        if report.written:
            logger.info("Wrote %s (%d bytes) in %.3fs.", output_path, size, t.elapsed)
        else:
            logger.error("Export failed: %s", report.export_errors[-1])

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(
        self, report: GenerationReport, pipeline_start: float
    ) -> GenerationReport:
        """Set final status and timing on the report."""
        report.total_elapsed_seconds = time.perf_counter() - pipeline_start

        has_errors: bool = bool(
            report.input_errors
            or report.validation_errors
            or report.generation_errors
            or report.export_errors
        )
        report.success = not has_errors
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "StraitjacketGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "load_config_file",
]

logger.debug("straitjacket.generator loaded.")
