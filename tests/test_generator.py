"""Integration tests for build orchestration."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, Optional

import pytest

from openapi_ts_codegen import generator
from openapi_ts_codegen.adapters import DEFAULT_REGISTRY, AdapterRegistry, NoAdapterForVersion
from openapi_ts_codegen.config import CodegenSettings
from openapi_ts_codegen.generator import (
    TemplateValidationError,
    compare_latest_dialects,
    find_latest_spec,
    run_generation,
    type_check_generated_code,
)
from openapi_ts_codegen.loader import SpecLoadError
from openapi_ts_codegen.model_types import FallbackMode
from openapi_ts_codegen.templates import MANIFEST_FILE_NAME
from openapi_ts_codegen.tooling import ToolError
from .fixture_helpers import copy_fixture, fixture_dir

_GENERATED_MODEL = (
    'import type { Meta } from "../core/Meta";\n\n'
    "export enum StateEnum {\n"
    '  ACTIVE = "active",\n'
    '  DELETING = "deleting",\n'
    "}\n"
)


@dataclass
class _FakeAdapter:
    name: str = "fake-generator"
    calls: list[tuple[Path, Path, dict[str, Any]]] = field(default_factory=list)

    def supports(self, spec_version: str) -> bool:
        return spec_version.startswith("3.")

    def generate(
        self,
        input_path: Path,
        output_dir: Path,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.calls.append((input_path, output_dir, dict(options or {})))
        models_dir = output_dir / "models"
        models_dir.mkdir(parents=True, exist_ok=True)
        (models_dir / "Directory.ts").write_text(_GENERATED_MODEL, encoding="utf-8")


def _settings(**overrides: Any) -> CodegenSettings:
    values: dict[str, Any] = {"format_code": False, "type_check": False}
    values.update(overrides)
    return CodegenSettings(**values)


def test_find_latest_spec_uses_date_in_file_name(tmp_path: Path) -> None:
    for name in (
        "workos-2024-01-15-abc123.json",
        "workos-2024-03-02-def456.json",
        "workos-2023-12-31.json",
        "workos-latest.json",
    ):
        (tmp_path / name).write_text("{}", encoding="utf-8")

    spec_path, date = find_latest_spec(tmp_path, "workos-*.json")

    assert spec_path == tmp_path / "workos-2024-03-02-def456.json"
    assert date == "2024-03-02"


def test_find_latest_spec_without_dated_files_raises(tmp_path: Path) -> None:
    (tmp_path / "workos-latest.json").write_text("{}", encoding="utf-8")
    with pytest.raises(SpecLoadError, match="No dated OpenAPI spec files"):
        find_latest_spec(tmp_path)


def test_run_generation_generates_and_postprocesses(tmp_path: Path) -> None:
    spec_path = copy_fixture("openapi_3_0_3.json", tmp_path)
    output_dir = tmp_path / "generated" / "2024-05-01"
    adapter = _FakeAdapter()

    run = run_generation(
        spec_path=spec_path,
        output_dir=output_dir,
        settings=_settings(),
        registry=AdapterRegistry(adapters=(adapter,)),
        options={"use_union_types": False},
    )

    assert run.decision.adapter is adapter
    assert run.templates is None
    assert adapter.calls == [
        (spec_path, output_dir, {"use_options": True, "use_union_types": False})
    ]
    model = (output_dir / "models" / "Directory.ts").read_text(encoding="utf-8")
    assert 'export type State = "active" | "deleting";' in model
    assert run.postprocess.changed_files == (output_dir / "models" / "Directory.ts",)

    stored = json.loads(spec_path.read_text(encoding="utf-8"))
    assert stored["x-spec-processed-checksum"] == run.checksums.processed_checksum


def test_strict_mode_fails_before_any_side_effect(tmp_path: Path) -> None:
    spec_path = copy_fixture("openapi_4_0_0.json", tmp_path)
    original = spec_path.read_text(encoding="utf-8")
    output_dir = tmp_path / "generated"

    with pytest.raises(NoAdapterForVersion):
        run_generation(
            spec_path=spec_path,
            output_dir=output_dir,
            settings=_settings(fallback_mode=FallbackMode.STRICT),
            registry=DEFAULT_REGISTRY,
        )

    assert spec_path.read_text(encoding="utf-8") == original
    assert not output_dir.exists()


def test_missing_templates_abort_unless_forced(tmp_path: Path) -> None:
    spec_path = copy_fixture("openapi_3_0_3.json", tmp_path)
    original = spec_path.read_text(encoding="utf-8")
    templates_dir = tmp_path / "templates"
    templates_dir.mkdir()
    (templates_dir / MANIFEST_FILE_NAME).write_text(
        json.dumps({"templates": [{"name": "client.hbs", "required": True}]}),
        encoding="utf-8",
    )
    adapter = _FakeAdapter()
    registry = AdapterRegistry(adapters=(adapter,))
    settings = _settings(templates_dir=templates_dir)

    with pytest.raises(TemplateValidationError) as exc_info:
        run_generation(
            spec_path=spec_path,
            output_dir=tmp_path / "out",
            settings=settings,
            registry=registry,
        )
    assert exc_info.value.missing_templates == ("client.hbs",)
    assert adapter.calls == []
    assert spec_path.read_text(encoding="utf-8") == original

    run = run_generation(
        spec_path=spec_path,
        output_dir=tmp_path / "out",
        settings=settings,
        registry=registry,
        force=True,
    )
    assert run.templates is not None
    assert run.templates.missing_templates == ("client.hbs",)
    assert len(adapter.calls) == 1
    assert adapter.calls[0][2]["templates"] == str(templates_dir)


def test_type_check_runs_after_postprocess(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    commands: list[list[str]] = []

    def _fake_run_tool(command: Sequence[str], *, description: str, cwd: Optional[Path] = None):
        del description, cwd
        commands.append(list(command))

    monkeypatch.setattr(generator, "run_tool", _fake_run_tool)
    spec_path = copy_fixture("openapi_3_0_3.json", tmp_path)
    output_dir = tmp_path / "out"

    run_generation(
        spec_path=spec_path,
        output_dir=output_dir,
        settings=_settings(type_check=True, type_check_command=("tsc", "--noEmit")),
        registry=AdapterRegistry(adapters=(_FakeAdapter(),)),
    )

    assert commands == [["tsc", "--noEmit", str(output_dir / "models" / "Directory.ts")]]


def test_type_check_failure_raises_tool_error(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _failing_run_tool(
        command: Sequence[str],
        *,
        description: str,
        cwd: Optional[Path] = None,
    ):
        del command, cwd
        raise ToolError(f"{description} failed: Type 'string' is not assignable")

    monkeypatch.setattr(generator, "run_tool", _failing_run_tool)
    (tmp_path / "index.ts").write_text("export const value: number = 'x';\n", encoding="utf-8")

    with pytest.raises(ToolError, match="type check failed"):
        type_check_generated_code(tmp_path, ("tsc", "--noEmit"))


def test_type_check_without_sources_is_skipped(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _unexpected_run_tool(*args: Any, **kwargs: Any) -> None:
        raise AssertionError("type checker should not run")

    monkeypatch.setattr(generator, "run_tool", _unexpected_run_tool)
    type_check_generated_code(tmp_path, ("tsc",))


def _write_dated(spec_dir: Path, date: str, fixture: str) -> Path:
    path = spec_dir / f"workos-{date}.json"
    path.write_text((fixture_dir() / fixture).read_text(encoding="utf-8"), encoding="utf-8")
    return path


def test_dialect_upgrade_between_latest_specs(tmp_path: Path) -> None:
    _write_dated(tmp_path, "2024-01-01", "openapi_3_0_3.json")
    latest = _write_dated(tmp_path, "2024-02-01", "openapi_3_1_0.json")

    comparison = compare_latest_dialects(tmp_path)

    assert comparison.latest_path == latest
    assert comparison.previous is not None
    assert comparison.previous.version == "3.0.3"
    assert comparison.changed is True
    assert comparison.direction == "upgrade"


def test_dialect_unchanged_and_single_spec(tmp_path: Path) -> None:
    _write_dated(tmp_path, "2024-01-01", "openapi_3_0_3.json")
    single = compare_latest_dialects(tmp_path)
    assert single.previous is None
    assert single.changed is False

    _write_dated(tmp_path, "2024-02-01", "openapi_3_0_3.json")
    assert compare_latest_dialects(tmp_path).changed is False


def test_dialect_downgrade_is_reported(tmp_path: Path) -> None:
    _write_dated(tmp_path, "2024-01-01", "openapi_3_1_0.json")
    _write_dated(tmp_path, "2024-02-01", "openapi_3_0_3.json")
    assert compare_latest_dialects(tmp_path).direction == "downgrade"


def test_dialect_check_without_dated_specs_raises(tmp_path: Path) -> None:
    with pytest.raises(SpecLoadError):
        compare_latest_dialects(tmp_path)
