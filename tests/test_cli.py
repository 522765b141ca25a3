"""Tests for the command line interface."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from openapi_ts_codegen import cli
from openapi_ts_codegen.cli import main
from openapi_ts_codegen.model_types import GenerationRun
from openapi_ts_codegen.spec_processor import stamp_checksums
from .fixture_helpers import copy_fixture, fixture_dir


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    for name in ("OPENAPI_ADAPTER_FALLBACK", "CODEGEN_ENUM_LIMIT", "CODEGEN_ENUM_UNIONS"):
        monkeypatch.delenv(name, raising=False)


def test_detect_prints_decision_record(capsys: pytest.CaptureFixture[str]) -> None:
    spec_path = fixture_dir() / "openapi_3_0_3.json"

    assert main(["detect", str(spec_path)]) == 0

    record = json.loads(capsys.readouterr().out)
    assert record["version"] == "3.0.3"
    assert record["adapterName"] == "openapi-typescript-codegen"
    assert record["explicitSupport"] is True
    assert record["fallbackMode"] == "warn"


def test_detect_strict_failure_exits_one(capsys: pytest.CaptureFixture[str]) -> None:
    spec_path = fixture_dir() / "openapi_4_0_0.json"

    assert main(["detect", str(spec_path), "--fallback", "strict"]) == 1

    assert "No generator explicitly supports OpenAPI 4.0.0" in capsys.readouterr().err


def test_detect_reads_fallback_from_environment(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("OPENAPI_ADAPTER_FALLBACK", "auto")

    assert main(["detect", str(fixture_dir() / "openapi_4_0_0.json")]) == 0

    record = json.loads(capsys.readouterr().out)
    assert record["fallbackApplied"] == "auto"
    assert record["explicitSupport"] is False


def test_verify_passes_for_stamped_spec(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    spec_path = copy_fixture("openapi_3_0_3.json", tmp_path)
    assert main(["stamp", str(spec_path)]) == 0

    assert main(["verify", str(spec_path)]) == 0
    assert "Raw checksum check: PASSED" in capsys.readouterr().out


def test_verify_exit_codes_for_drift(tmp_path: Path) -> None:
    spec_path = copy_fixture("openapi_3_0_3.json", tmp_path)
    stamp_checksums(spec_path)
    spec_path.write_text(
        spec_path.read_text(encoding="utf-8").replace("Directory Sync API", "Edited"),
        encoding="utf-8",
    )

    assert main(["verify", str(spec_path)]) == 1
    assert main(["verify", str(spec_path), "--no-fail"]) == 0
    assert main(["verify", str(spec_path), "--update"]) == 0
    assert main(["verify", str(spec_path)]) == 0


def test_verify_unreadable_spec_exits_two(tmp_path: Path) -> None:
    assert main(["verify", str(tmp_path / "missing.json")]) == 2


def test_verify_scope_flags_are_exclusive(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["verify", str(tmp_path / "spec.json"), "--raw-only", "--processed-only"])
    assert exc_info.value.code == 2


def test_verify_all_warn_only(tmp_path: Path) -> None:
    spec_dir = tmp_path / "specs"
    spec_dir.mkdir()
    spec_path = copy_fixture("openapi_3_0_3.json", spec_dir)
    stamp_checksums(spec_path)
    spec_path.write_text(spec_path.read_text(encoding="utf-8") + "\n", encoding="utf-8")

    assert main(["verify-all", "--spec-dir", str(spec_dir)]) == 1
    assert main(["verify-all", "--spec-dir", str(spec_dir), "--warn-only"]) == 0
    assert main(["verify-all", "--spec-dir", str(spec_dir), "--processed-only"]) == 0


def test_validate_templates_exit_codes(tmp_path: Path) -> None:
    templates_dir = tmp_path / "templates"
    templates_dir.mkdir()
    assert main(["validate-templates", str(templates_dir)]) == 1

    (templates_dir / "client.hbs").write_text("", encoding="utf-8")
    (templates_dir / "template_manifest.json").write_text(
        json.dumps({"templates": [{"name": "client.hbs", "required": True}]}),
        encoding="utf-8",
    )
    assert main(["validate-templates", str(templates_dir)]) == 0


def test_validate_templates_requires_a_directory() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["validate-templates"])
    assert exc_info.value.code == 2


def test_process_spec_prints_checksums(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    spec_path = copy_fixture("openapi_3_1_0.json", tmp_path)
    assert main(["process-spec", str(spec_path)]) == 0
    output = capsys.readouterr().out
    stored = json.loads(spec_path.read_text(encoding="utf-8"))
    assert f"Processed checksum: {stored['x-spec-processed-checksum']}" in output


def test_postprocess_command_uses_enum_settings(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("CODEGEN_ENUM_LIMIT", "3")
    monkeypatch.setenv("CODEGEN_ENUM_UNIONS", "branded")
    output_dir = tmp_path / "generated"
    (output_dir / "models").mkdir(parents=True)
    model = output_dir / "models" / "Role.ts"
    model.write_text('export enum Role { A = "a", B = "b", C = "c" }\n', encoding="utf-8")

    assert main(["postprocess", str(output_dir), "--no-format"]) == 0

    content = model.read_text(encoding="utf-8")
    assert 'export type Role = Branded<string, "Role">;' in content
    assert (output_dir / "core" / "branded.ts").is_file()


def test_build_uses_latest_spec_and_dated_output(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    spec_dir = tmp_path / "vendor" / "openapi"
    spec_dir.mkdir(parents=True)
    older = spec_dir / "workos-2024-01-01.json"
    newer = spec_dir / "workos-2024-02-01.json"
    older.write_text((fixture_dir() / "openapi_3_0_3.json").read_text(), encoding="utf-8")
    newer.write_text((fixture_dir() / "openapi_3_1_0.json").read_text(), encoding="utf-8")
    calls: list[dict[str, Any]] = []

    def _fake_run_generation(**kwargs: Any) -> GenerationRun:
        calls.append(kwargs)
        raise cli.ToolError("generator failed: offline")

    monkeypatch.setattr(cli, "run_generation", _fake_run_generation)

    assert main(["build", "--force"]) == 1

    assert calls[0]["spec_path"] == Path("vendor/openapi/workos-2024-02-01.json")
    assert calls[0]["output_dir"] == Path("generated/2024-02-01")
    assert calls[0]["force"] is True
    assert "Error generating code: generator failed: offline" in capsys.readouterr().err


def test_invalid_config_is_a_usage_error(tmp_path: Path) -> None:
    config_path = tmp_path / "codegen.yaml"
    config_path.write_text("unknown_key: 1\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(config_path), "detect", "spec.json"])
    assert exc_info.value.code == 2


def test_invalid_utf8_spec_exit_codes(tmp_path: Path) -> None:
    spec_path = tmp_path / "spec.json"
    spec_path.write_bytes(b'{"openapi": "3.0.3", "info": {"title": "\xff"}}')

    assert main(["verify", str(spec_path)]) == 2
    assert main(["detect", str(spec_path)]) == 1


def test_dialect_check_exit_codes(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    spec_dir = tmp_path / "specs"
    spec_dir.mkdir()
    assert main(["dialect-check", "--spec-dir", str(spec_dir)]) == 1

    older = spec_dir / "workos-2024-01-01.json"
    older.write_text((fixture_dir() / "openapi_3_0_3.json").read_text(), encoding="utf-8")
    assert main(["dialect-check", "--spec-dir", str(spec_dir)]) == 0

    newer = spec_dir / "workos-2024-02-01.json"
    newer.write_text((fixture_dir() / "openapi_3_1_0.json").read_text(), encoding="utf-8")
    summary = tmp_path / "summary.md"
    capsys.readouterr()

    assert main(["dialect-check", "--spec-dir", str(spec_dir), "--summary", str(summary)]) == 2

    assert "Dialect upgrade: 3.0.3 -> 3.1.0" in capsys.readouterr().out
    assert "**version upgrade**" in summary.read_text(encoding="utf-8")
