"""Command line interface for the OpenAPI to TypeScript codegen pipeline."""

from __future__ import annotations

import argparse
from collections.abc import Callable
import json
import logging
from pathlib import Path
import sys
from typing import Optional

from .adapters import NoAdapterForVersion
from .config import CodegenSettings, ConfigError, load_settings
from .detection import decision_record, detect_adapter
from .drift import DriftError, format_verification, verify_spec, verify_spec_directory
from .generator import (
    TemplateValidationError,
    compare_latest_dialects,
    find_latest_spec,
    run_generation,
)
from .loader import SpecLoadError
from .model_types import DialectComparison, FallbackMode, VerificationOptions
from .postprocess import default_transforms, postprocess
from .postprocess.pipeline import BRANDED_HELPER_PATH
from .spec_processor import process_spec, stamp_checksums
from .templates import TemplateManifestError, validate_templates
from .tooling import ToolError

logger = logging.getLogger(__name__)

_FALLBACK_CHOICES = [mode.value for mode in FallbackMode]


class CLIError(RuntimeError):
    """Raised when CLI arguments cannot be turned into a command."""


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="openapi-ts-codegen",
        description="Generate and post-process TypeScript clients from vendored OpenAPI specs",
    )
    parser.add_argument("--config", type=Path, help="Path to codegen.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    detect = commands.add_parser("detect", help="Print the adapter decision for a spec")
    detect.add_argument("spec", type=Path, help="Path to an OpenAPI JSON file")
    detect.add_argument("--fallback", choices=_FALLBACK_CHOICES, help="Override fallback mode")
    detect.set_defaults(handler=_cmd_detect)

    verify = commands.add_parser("verify", help="Check a spec against its stored checksums")
    verify.add_argument("spec", type=Path, help="Path to an OpenAPI JSON file")
    _add_verification_flags(verify)
    verify.add_argument(
        "--no-fail",
        action="store_true",
        help="Report drift without a failing exit code",
    )
    verify.set_defaults(handler=_cmd_verify)

    verify_all = commands.add_parser("verify-all", help="Check every vendored spec")
    verify_all.add_argument("--spec-dir", type=Path, help="Directory holding spec files")
    verify_all.add_argument("--pattern", help="Glob pattern for spec file names")
    _add_verification_flags(verify_all)
    verify_all.add_argument(
        "--warn-only",
        action="store_true",
        help="Issue warnings instead of failing on drift",
    )
    verify_all.set_defaults(handler=_cmd_verify_all)

    templates = commands.add_parser(
        "validate-templates",
        help="Check that every required template exists",
    )
    templates.add_argument("templates_dir", nargs="?", type=Path, help="Template directory")
    templates.set_defaults(handler=_cmd_validate_templates)

    process = commands.add_parser("process-spec", help="Write the processed checksum into a spec")
    process.add_argument("spec", type=Path, help="Path to an OpenAPI JSON file")
    process.set_defaults(handler=_cmd_process_spec)

    stamp = commands.add_parser("stamp", help="Write both stored checksums into specs")
    stamp.add_argument("specs", nargs="+", type=Path, help="OpenAPI JSON files")
    stamp.set_defaults(handler=_cmd_stamp)

    post = commands.add_parser("postprocess", help="Rewrite enums in a generated tree")
    post.add_argument("output_dir", type=Path, help="Generated source directory")
    post.add_argument("--no-format", action="store_true", help="Skip the formatter")
    post.set_defaults(handler=_cmd_postprocess)

    dialect = commands.add_parser(
        "dialect-check",
        help="Compare the OpenAPI dialect of the two newest dated specs",
    )
    dialect.add_argument("--spec-dir", type=Path, help="Directory holding spec files")
    dialect.add_argument("--pattern", help="Glob pattern for spec file names")
    dialect.add_argument(
        "--summary",
        type=Path,
        help="Append a Markdown note to this file when the dialect changed",
    )
    dialect.set_defaults(handler=_cmd_dialect_check)

    build = commands.add_parser("build", help="Generate, post-process and type-check a client")
    build.add_argument("--spec", type=Path, help="Spec to build; newest dated spec by default")
    build.add_argument("--output", type=Path, help="Output directory")
    build.add_argument("--fallback", choices=_FALLBACK_CHOICES, help="Override fallback mode")
    build.add_argument(
        "--force",
        action="store_true",
        help="Generate even when required templates are missing",
    )
    build.set_defaults(handler=_cmd_build)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        parser.error(str(exc))
        return 2

    handler: Callable[[argparse.Namespace, CodegenSettings], int] = args.handler
    try:
        return handler(args, settings)
    except CLIError as exc:
        parser.error(str(exc))
        return 2


def _add_verification_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--update",
        action="store_true",
        help="Rewrite stored checksums when they do not match",
    )
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--raw-only", action="store_true", help="Only check the raw checksum")
    scope.add_argument(
        "--processed-only",
        action="store_true",
        help="Only check the processed checksum",
    )


def _verification_options(
    args: argparse.Namespace,
    *,
    fail_on_mismatch: bool,
) -> VerificationOptions:
    return VerificationOptions(
        fail_on_mismatch=fail_on_mismatch,
        verify_raw_checksum=not args.processed_only,
        verify_processed_checksum=not args.raw_only,
        update_on_mismatch=bool(args.update),
    )


def _with_fallback(settings: CodegenSettings, fallback: Optional[str]) -> CodegenSettings:
    if fallback is None:
        return settings
    return settings.model_copy(update={"fallback_mode": FallbackMode(fallback)})


def _cmd_detect(args: argparse.Namespace, settings: CodegenSettings) -> int:
    settings = _with_fallback(settings, args.fallback)
    try:
        decision = detect_adapter(args.spec, settings.fallback_mode)
    except (SpecLoadError, NoAdapterForVersion) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(decision_record(args.spec, decision, settings.fallback_mode), indent=2))
    return 0


def _cmd_verify(args: argparse.Namespace, settings: CodegenSettings) -> int:
    del settings
    options = _verification_options(args, fail_on_mismatch=not args.no_fail)
    try:
        result = verify_spec(args.spec, options)
    except SpecLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except DriftError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(format_verification(result))
    return 0


def _cmd_verify_all(args: argparse.Namespace, settings: CodegenSettings) -> int:
    spec_dir = args.spec_dir or settings.spec_dir
    pattern = args.pattern or settings.spec_pattern
    options = _verification_options(args, fail_on_mismatch=not args.warn_only)
    try:
        results = verify_spec_directory(spec_dir, pattern, options)
    except SpecLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except DriftError as exc:
        for result in exc.results:
            print(format_verification(result), file=sys.stderr)
            print(file=sys.stderr)
        print(str(exc), file=sys.stderr)
        return 1

    for result in results:
        print(format_verification(result))
        print()
    print(f"Verified {len(results)} spec file(s)")
    return 0


def _cmd_validate_templates(args: argparse.Namespace, settings: CodegenSettings) -> int:
    templates_dir = args.templates_dir or settings.templates_dir
    if templates_dir is None:
        raise CLIError("No template directory given and none configured")
    try:
        result = validate_templates(templates_dir)
    except TemplateManifestError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if result.valid:
        print("All required templates are present")
        return 0
    print(f"Missing templates: {', '.join(result.missing_templates)}", file=sys.stderr)
    return 1


def _cmd_process_spec(args: argparse.Namespace, settings: CodegenSettings) -> int:
    del settings
    try:
        result = process_spec(args.spec)
    except SpecLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Raw checksum: {result.raw_checksum or '<none>'}")
    print(f"Processed checksum: {result.processed_checksum}")
    return 0


def _cmd_stamp(args: argparse.Namespace, settings: CodegenSettings) -> int:
    del settings
    for spec_path in args.specs:
        try:
            pair = stamp_checksums(spec_path)
        except SpecLoadError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        print(f"{spec_path}: raw {pair.raw_checksum} processed {pair.processed_checksum}")
    return 0


def _cmd_postprocess(args: argparse.Namespace, settings: CodegenSettings) -> int:
    output_dir: Path = args.output_dir
    if not output_dir.is_dir():
        raise CLIError(f"Output directory does not exist: {output_dir}")
    result = postprocess(
        output_dir,
        transforms=default_transforms(
            literal_limit=settings.enum_limit,
            union_mode=settings.enum_union_mode,
            branded_module=output_dir / BRANDED_HELPER_PATH,
        ),
        extensions=settings.source_extensions,
        format_code=settings.format_code and not args.no_format,
        formatter_command=settings.formatter_command,
    )
    print(
        f"Scanned {result.files_scanned} file(s), changed {len(result.changed_files)}, "
        f"failed {len(result.failed_files)}"
    )
    return 0


def _cmd_build(args: argparse.Namespace, settings: CodegenSettings) -> int:
    settings = _with_fallback(settings, args.fallback)
    try:
        spec_path, output_dir = _build_target(args, settings)
        run = run_generation(
            spec_path=spec_path,
            output_dir=output_dir,
            settings=settings,
            force=bool(args.force),
        )
    except (
        SpecLoadError,
        NoAdapterForVersion,
        TemplateValidationError,
        TemplateManifestError,
        ToolError,
    ) as exc:
        print(f"Error generating code: {exc}", file=sys.stderr)
        return 1

    print(
        f"Generated {run.output_dir} from {run.spec_path} "
        f"with {run.decision.adapter.name} (OpenAPI {run.decision.version.version})"
    )
    return 0


def _cmd_dialect_check(args: argparse.Namespace, settings: CodegenSettings) -> int:
    spec_dir = args.spec_dir or settings.spec_dir
    pattern = args.pattern or settings.spec_pattern
    try:
        comparison = compare_latest_dialects(spec_dir, pattern)
    except SpecLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    latest = comparison.latest
    print(f"Latest: {latest.dialect or 'unknown'} (version {latest.version})")
    if comparison.previous is None:
        return 0
    previous = comparison.previous
    print(f"Previous: {previous.dialect or 'unknown'} (version {previous.version})")
    if not comparison.changed:
        print("No dialect change detected")
        return 0

    print(f"Dialect {comparison.direction}: {previous.version} -> {latest.version}")
    if args.summary is not None:
        with args.summary.open("a", encoding="utf-8") as handle:
            handle.write(_dialect_summary(comparison) + "\n")
    return 2


def _dialect_summary(comparison: DialectComparison) -> str:
    previous = comparison.previous.version if comparison.previous is not None else "unknown"
    lines = [
        "## OpenAPI Dialect Change Detected",
        "",
        f"The OpenAPI dialect changed from `{previous}` to `{comparison.latest.version}`.",
    ]
    if comparison.direction == "upgrade":
        lines += [
            "",
            "This is a **version upgrade**. You may need to:",
            "- Check that a generator adapter supports the new version",
            "- Update any custom templates for compatibility",
            "- Review generated code for breaking changes",
        ]
    elif comparison.direction == "downgrade":
        lines += [
            "",
            "This is a **version downgrade**, which usually points at the spec source.",
        ]
    return "\n".join(lines)


def _build_target(args: argparse.Namespace, settings: CodegenSettings) -> tuple[Path, Path]:
    if args.spec is None:
        spec_path, date = find_latest_spec(settings.spec_dir, settings.spec_pattern)
        return spec_path, args.output or settings.output_root / date
    return args.spec, args.output or settings.output_root / args.spec.stem


if __name__ == "__main__":
    raise SystemExit(main())
