"""
tests/test_generator.py
Tests for straitjacket.generator (StraitjacketGenerator, load_config_file)
and the command-line interface built on it.

Tests cover:
- Scanning source modules for decorated resource classes
- Identifier resolution with configured defaults
- The generation pipeline and its report (success and each failure kind)
- File export and dry runs
- Config file loading (YAML, JSON, nesting, errors)
- CLI exit codes and output routing
"""

from __future__ import annotations

import ast
import json
import logging
import pathlib
from typing import Iterator, List

import pytest

from straitjacket import __version__
from straitjacket.cli import (
    EXIT_EXPORT_ERROR,
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
)
from straitjacket.generator import GenerationReport, StraitjacketGenerator, load_config_file
from straitjacket.models import GenerationConfig, ResourceDeclaration


def _line_of(source: str, text: str) -> int:
    return source.splitlines().index(text) + 1


# ===========================================================================
# Scanning & naming
# ===========================================================================


class TestScanSource:

    def test_finds_decorated_classes(self, resource_source: str) -> None:
        declarations = StraitjacketGenerator().scan_source(resource_source)
        assert [d.name for d in declarations] == ["MappingRule", "Plan"]

    def test_declaration_details(self, resource_source: str) -> None:
        rule, plan = StraitjacketGenerator().scan_source(resource_source)
        assert rule.field_names == [
            "id", "metric_id", "pattern", "http_method", "delta", "position", "last",
        ]
        assert rule.source.startswith("class MappingRule(BaseModel):")
        assert [(e.key, e.value) for e in rule.entries] == [("metadata", "MyMetadata")]

        first = _line_of(resource_source, "@straitjacket(")
        assert plan.decorator_lines == (first, first + 3)
        assert plan.start_line == first + 4
        assert [e.key for e in plan.entries] == ["name_snake", "metadata"]

    def test_other_decorators_ignored(self) -> None:
        source = (
            "from dataclasses import dataclass\n\n"
            "@dataclass\nclass Point:\n    x: int\n\n"
            "@sj.straitjacket\nclass Plan(BaseModel):\n    id: int\n"
        )
        declarations = StraitjacketGenerator().scan_source(source)
        assert [d.name for d in declarations] == ["Plan"]
        assert declarations[0].entries == []

    def test_custom_decorator_name(self, resource_source: str) -> None:
        generator = StraitjacketGenerator(GenerationConfig(decorator_name="porta_resource"))
        assert generator.scan_source(resource_source) == []

    def test_syntax_error_raises(self) -> None:
        with pytest.raises(SyntaxError):
            StraitjacketGenerator().scan_source("class Broken(:\n")


class TestIdentifiersFor:

    def test_configured_default_metadata(self) -> None:
        generator = StraitjacketGenerator(GenerationConfig(default_metadata="PortaMetadata"))
        declaration = ResourceDeclaration(
            name="Backend",
            source="class Backend(BaseModel): ...",
            start_line=1,
            end_line=1,
            decorator_lines=(1, 1),
        )
        ids = generator.identifiers_for(declaration)
        assert ids.metadata_type == "PortaMetadata"
        assert ids.plural_snake == "backends"

    def test_decorator_overrides_default(self, resource_source: str) -> None:
        generator = StraitjacketGenerator(GenerationConfig(default_metadata="PortaMetadata"))
        rule, plan = generator.scan_source(resource_source)
        assert generator.identifiers_for(rule).metadata_type == "MyMetadata"
        ids = generator.identifiers_for(plan)
        assert ids.name_snake == "application_plan"
        assert ids.plural_snake == "plans"


# ===========================================================================
# Pipeline
# ===========================================================================


class TestGenerateSource:

    def test_success(self, resource_source: str) -> None:
        report = StraitjacketGenerator().generate_source(resource_source, "resources.py")
        assert report.success, report.summary()
        assert report.total_resources == 2
        assert report.module is not None
        assert report.module.resources == ["MappingRule", "Plan"]
        assert report.total_lines == report.module.line_count
        assert [ids.plural for ids in report.identifiers] == ["MappingRules", "Plans"]
        ast.parse(report.module.content)

    def test_step_metrics(self, resource_source: str) -> None:
        report = StraitjacketGenerator().generate_source(resource_source)
        assert [s.step_name for s in report.step_metrics] == [
            "Scan Source",
            "Build Identifiers",
            "Validate Names",
            "Render Module",
        ]
        assert all(s.success for s in report.step_metrics)

    def test_invalid_python_is_input_error(self) -> None:
        report = StraitjacketGenerator().generate_source("class Broken(:\n", "broken.py")
        assert not report.success
        assert report.input_errors[0].startswith("broken.py:1: invalid Python")

    def test_no_resources_is_generation_error(self) -> None:
        report = StraitjacketGenerator().generate_source("X = 1\n")
        assert not report.success
        assert "No classes decorated with @straitjacket" in report.generation_errors[0]
        assert report.module is None

    def test_collision_strict(self, colliding_source: str) -> None:
        report = StraitjacketGenerator().generate_source(colliding_source)
        assert not report.success
        assert any("FIELD_COLLISION" in e for e in report.validation_errors)
        assert report.skipped_resources == ["Account"]

    def test_collision_non_strict(self, colliding_source: str) -> None:
        report = StraitjacketGenerator(GenerationConfig(strict=False)).generate_source(
            colliding_source
        )
        assert not report.success
        assert report.validation_errors == []
        assert any(w.startswith("Account skipped: ") for w in report.validation_warnings)
        assert report.generation_errors == ["Every resource failed validation."]

    def test_collision_check_disabled(self, colliding_source: str) -> None:
        config = GenerationConfig(detect_collisions=False)
        report = StraitjacketGenerator(config).generate_source(colliding_source)
        assert report.success, report.summary()

    def test_non_strict_keeps_valid_resources(self, resource_source: str) -> None:
        source = resource_source.replace(
            "class Plan(BaseModel):", "class Plan(BaseModel):\n    created_at: str"
        )
        report = StraitjacketGenerator(GenerationConfig(strict=False)).generate_source(source)
        assert report.success, report.summary()
        assert report.skipped_resources == ["Plan"]
        assert report.module is not None
        assert "class PlanAndMetadata" not in report.module.content
        assert "class MappingRuleAndMetadata" in report.module.content

    def test_existing_name_clash(self, resource_source: str) -> None:
        source = resource_source + "\n\nclass Plans:\n    pass\n"
        report = StraitjacketGenerator().generate_source(source)
        assert any("MODULE_NAME_CLASH" in e for e in report.validation_errors)

    def test_summary_lists_problems(self, colliding_source: str) -> None:
        summary = StraitjacketGenerator().generate_source(colliding_source).summary()
        assert "FAILED" in summary
        assert "Validation Errors (1):" in summary
        assert "Skipped Resources (1):" in summary


class TestGenerateFromFile:

    def test_writes_output(self, resource_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        output = tmp_path / "out" / "resources_gen.py"
        report = StraitjacketGenerator().generate_from_file(resource_path, output)
        assert report.success, report.summary()
        assert report.written
        assert output.read_text(encoding="utf-8") == report.module.content
        assert report.step_metrics[0].step_name == "Load Source"
        assert report.step_metrics[-1].step_name == "Export to Filesystem"

    def test_dry_run_writes_nothing(
        self, resource_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        output = tmp_path / "resources_gen.py"
        report = StraitjacketGenerator().generate_from_file(resource_path, output, dry_run=True)
        assert report.success
        assert not report.written
        assert not output.exists()
        assert report.module is not None

    def test_without_output_path(self, resource_path: pathlib.Path) -> None:
        report = StraitjacketGenerator().generate_from_file(resource_path)
        assert report.success
        assert not report.written
        assert report.output_path == ""

    def test_missing_source(self, tmp_path: pathlib.Path) -> None:
        report = StraitjacketGenerator().generate_from_file(tmp_path / "absent.py")
        assert not report.success
        assert report.input_errors
        assert [s.step_name for s in report.step_metrics] == ["Load Source"]

    def test_export_failure(
        self, resource_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        report = StraitjacketGenerator().generate_from_file(resource_path, blocker / "gen.py")
        assert not report.success
        assert not report.written
        assert report.export_errors[0].startswith("Cannot write")
        assert report.step_metrics[-1].step_name == "Export to Filesystem"
        assert not report.step_metrics[-1].success

    def test_failed_generation_writes_nothing(
        self, colliding_source: str, tmp_path: pathlib.Path
    ) -> None:
        source = tmp_path / "accounts.py"
        source.write_text(colliding_source, encoding="utf-8")
        output = tmp_path / "accounts_gen.py"
        report = StraitjacketGenerator().generate_from_file(source, output)
        assert not report.success
        assert not output.exists()


# ===========================================================================
# Config files
# ===========================================================================


class TestLoadConfigFile:

    def test_yaml_nested(self, config_yaml_path: pathlib.Path) -> None:
        config = load_config_file(config_yaml_path)
        assert config.default_metadata == "PortaMetadata"
        assert config.strict is False
        assert config.strip_decorator is True

    def test_json_top_level(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "straitjacket.json"
        path.write_text(json.dumps({"indent_size": 2, "emit_header": False}), encoding="utf-8")
        config = load_config_file(path)
        assert config.indent_size == 2
        assert config.emit_header is False

    def test_unknown_extension(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "straitjacket.cfg"
        path.write_text("config:\n  decorator_name: porta\n", encoding="utf-8")
        assert load_config_file(path).decorator_name == "porta"

    def test_empty_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config_file(path) == GenerationConfig()

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_file(tmp_path / "absent.yaml")

    @pytest.mark.parametrize(
        "filename, content",
        [
            ("bad.json", "{not json"),
            ("list.yaml", "- a\n- b\n"),
            ("unknown.yaml", "colour: blue\n"),
            ("range.json", '{"indent_size": 40}'),
        ],
    )
    def test_invalid_files(self, tmp_path: pathlib.Path, filename: str, content: str) -> None:
        path = tmp_path / filename
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ValueError):
            load_config_file(path)


# ===========================================================================
# CLI
# ===========================================================================


@pytest.fixture()
def restore_logging() -> Iterator[None]:
    """The CLI replaces the package logger's handlers; put them back."""
    package_logger = logging.getLogger("straitjacket")
    handlers: List[logging.Handler] = list(package_logger.handlers)
    level, propagate = package_logger.level, package_logger.propagate
    yield
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


def _exit_code(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli_main(argv)
    return exc_info.value.code


@pytest.mark.usefixtures("restore_logging")
class TestCli:

    def test_writes_output_file(
        self, resource_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        output = tmp_path / "resources_gen.py"
        assert _exit_code([str(resource_path), "-o", str(output), "-q"]) == EXIT_SUCCESS
        assert "class MappingRules(CollectionBase):" in output.read_text(encoding="utf-8")

    def test_prints_module_to_stdout(
        self, resource_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _exit_code([str(resource_path)]) == EXIT_SUCCESS
        captured = capsys.readouterr()
        ast.parse(captured.out)
        assert "def plans_to_items(" in captured.out
        assert "Generation Report" not in captured.out

    def test_summary_with_output(
        self,
        resource_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        output = tmp_path / "resources_gen.py"
        assert _exit_code([str(resource_path), "-o", str(output)]) == EXIT_SUCCESS
        assert "Generation Report" in capsys.readouterr().out

    def test_dry_run(
        self, resource_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        output = tmp_path / "resources_gen.py"
        assert _exit_code([str(resource_path), "-o", str(output), "--dry-run", "-q"]) == 0
        assert not output.exists()

    def test_missing_source(self, tmp_path: pathlib.Path) -> None:
        assert _exit_code([str(tmp_path / "absent.py"), "-q"]) == EXIT_INPUT_ERROR

    def test_unwritable_output(
        self, resource_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        argv = [str(resource_path), "-o", str(blocker / "gen.py"), "-q"]
        assert _exit_code(argv) == EXIT_EXPORT_ERROR

    def test_missing_config(self, resource_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        argv = [str(resource_path), "--config", str(tmp_path / "absent.yaml"), "-q"]
        assert _exit_code(argv) == EXIT_INPUT_ERROR

    def test_collision_is_validation_error(
        self, colliding_source: str, tmp_path: pathlib.Path
    ) -> None:
        source = tmp_path / "accounts.py"
        source.write_text(colliding_source, encoding="utf-8")
        assert _exit_code([str(source), "-q"]) == EXIT_VALIDATION_ERROR
        assert _exit_code([str(source), "-q", "--no-strict"]) == EXIT_GENERATION_ERROR
        assert _exit_code([str(source), "-q", "--no-collision-check"]) == EXIT_SUCCESS

    def test_metadata_override(
        self, resource_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        source = resource_path.read_text(encoding="utf-8").replace(
            'metadata="MyMetadata"', 'name_tag="RuleTag"', 1
        )
        resource_path.write_text(source, encoding="utf-8")
        assert _exit_code([str(resource_path), "--metadata", "MyMetadata"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "metadata: Optional[MyMetadata] = None" in out
        assert "class RuleTag(TagBase):" in out

    def test_config_file(
        self,
        resource_path: pathlib.Path,
        config_yaml_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        argv = [str(resource_path), "--config", str(config_yaml_path), "--keep-decorator"]
        assert _exit_code(argv) == EXIT_SUCCESS
        assert "@straitjacket(metadata=" in capsys.readouterr().out

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _exit_code(["--version"]) == 0
        assert __version__ in capsys.readouterr().out


def test_report_defaults() -> None:
    report = GenerationReport()
    assert not report.success
    assert "<stdout>" in report.summary()
