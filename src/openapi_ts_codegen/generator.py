"""High-level build orchestration: detect, stamp, generate, rewrite, check."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
from pathlib import Path
import re
from typing import Any, Optional

from .adapters import DEFAULT_REGISTRY, AdapterRegistry
from .config import CodegenSettings
from .detection import detect_adapter, extract_openapi_version
from .loader import SpecLoadError
from .model_types import DialectComparison, GenerationRun, TemplateValidationResult
from .postprocess import default_transforms, postprocess
from .postprocess.pipeline import BRANDED_HELPER_PATH
from .spec_processor import process_spec
from .templates import validate_templates
from .tooling import run_tool

logger = logging.getLogger(__name__)

_SPEC_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")

_DEFAULT_GENERATOR_OPTIONS: dict[str, Any] = {"use_options": True, "use_union_types": True}


class TemplateValidationError(RuntimeError):
    """Raised when required templates are missing and the build is not forced."""

    def __init__(self, missing_templates: tuple[str, ...]) -> None:
        self.missing_templates = missing_templates
        super().__init__(
            "Template validation failed, missing required templates: "
            f"{', '.join(missing_templates)}. Use --force to generate anyway."
        )


def find_latest_spec(spec_dir: Path, pattern: str = "*.json") -> tuple[Path, str]:
    """Return the spec with the newest ``YYYY-MM-DD`` date in its file name.

    Args:
        spec_dir (Path): Directory holding vendored specs.
        pattern (str): Glob pattern for candidate file names.

    Returns:
        tuple[Path, str]: The newest spec and the date read from its name.
    """
    dated = dated_spec_files(spec_dir, pattern)
    if not dated:
        raise SpecLoadError(f"No dated OpenAPI spec files matching {pattern} in {spec_dir}")

    path, date = dated[0]
    logger.info("Found latest spec: %s", path.name)
    return path, date


def dated_spec_files(spec_dir: Path, pattern: str = "*.json") -> list[tuple[Path, str]]:
    """Return specs with a ``YYYY-MM-DD`` date in their name, newest first.

    Specs sharing a date are ordered by file name, descending.
    """
    dated: list[tuple[str, str, Path]] = []
    for path in spec_dir.glob(pattern):
        match = _SPEC_DATE_RE.search(path.name)
        if not path.is_file() or match is None:
            continue
        dated.append((match.group(1), path.name, path))
    return [(path, date) for date, _, path in sorted(dated, reverse=True)]


def compare_latest_dialects(spec_dir: Path, pattern: str = "*.json") -> DialectComparison:
    """Compare the OpenAPI dialect of the newest dated spec with the one before it.

    A dialect change usually means the generator adapter needs attention.

    Args:
        spec_dir (Path): Directory holding vendored specs.
        pattern (str): Glob pattern for candidate file names.

    Returns:
        DialectComparison: Latest and previous version information.
    """
    dated = dated_spec_files(spec_dir, pattern)
    if not dated:
        raise SpecLoadError(f"No dated OpenAPI spec files matching {pattern} in {spec_dir}")

    latest_path, _ = dated[0]
    latest = extract_openapi_version(latest_path)
    if len(dated) == 1:
        logger.warning("Only one spec file found in %s, nothing to compare against", spec_dir)
        return DialectComparison(latest_path=latest_path, latest=latest)

    previous_path, _ = dated[1]
    previous = extract_openapi_version(previous_path)
    comparison = DialectComparison(
        latest_path=latest_path,
        latest=latest,
        previous_path=previous_path,
        previous=previous,
    )
    if comparison.changed:
        logger.warning(
            "OpenAPI dialect %s: %s -> %s",
            comparison.direction,
            previous.version,
            latest.version,
        )
    return comparison


def run_generation(
    *,
    spec_path: Path,
    output_dir: Path,
    settings: CodegenSettings,
    force: bool = False,
    registry: AdapterRegistry = DEFAULT_REGISTRY,
    options: Optional[Mapping[str, Any]] = None,
) -> GenerationRun:
    """Generate a TypeScript client from a spec and post-process it.

    Adapter selection and the template gate run before anything is written, so
    a strict-mode or template failure leaves the spec and output untouched.

    Args:
        spec_path (Path): Vendored spec to generate from.
        output_dir (Path): Directory receiving generated sources.
        settings (CodegenSettings): Resolved pipeline settings.
        force (bool): Continue when required templates are missing.
        registry (AdapterRegistry): Adapters in priority order.
        options (Optional[Mapping[str, Any]]): Extra generator options.

    Returns:
        GenerationRun: Decision, checksums and post-processing summary.
    """
    decision = detect_adapter(spec_path, settings.fallback_mode, registry=registry)
    logger.info("Using %s for OpenAPI %s", decision.adapter.name, decision.version.version)

    templates = _check_templates(settings.templates_dir, force=force)

    checksums = process_spec(spec_path)
    logger.info("Raw checksum: %s", checksums.raw_checksum or "<none>")
    logger.info("Processed checksum: %s", checksums.processed_checksum)

    output_dir.mkdir(parents=True, exist_ok=True)
    generator_options = dict(_DEFAULT_GENERATOR_OPTIONS)
    if settings.templates_dir is not None:
        generator_options["templates"] = str(settings.templates_dir)
    generator_options.update(options or {})
    logger.info("Generating code from %s to %s", spec_path, output_dir)
    decision.adapter.generate(spec_path, output_dir, generator_options)

    result = postprocess(
        output_dir,
        transforms=default_transforms(
            literal_limit=settings.enum_limit,
            union_mode=settings.enum_union_mode,
            branded_module=output_dir / BRANDED_HELPER_PATH,
        ),
        extensions=settings.source_extensions,
        format_code=settings.format_code,
        formatter_command=settings.formatter_command,
    )

    if settings.type_check:
        type_check_generated_code(
            output_dir,
            settings.type_check_command,
            extensions=settings.source_extensions,
        )

    return GenerationRun(
        spec_path=spec_path,
        output_dir=output_dir,
        decision=decision,
        checksums=checksums,
        templates=templates,
        postprocess=result,
    )


def type_check_generated_code(
    output_dir: Path,
    command: Sequence[str],
    *,
    extensions: Sequence[str] = (".ts",),
) -> None:
    """Type-check generated sources; raises ``ToolError`` on failure."""
    files = sorted(
        str(path)
        for path in output_dir.rglob("*")
        if path.is_file() and path.suffix in extensions
    )
    if not files:
        logger.warning("No generated sources to type-check in %s", output_dir)
        return
    logger.info("Running type check on %d file(s) in %s", len(files), output_dir)
    run_tool([*command, *files], description="type check")
    logger.info("Type check passed")


def _check_templates(
    templates_dir: Optional[Path],
    *,
    force: bool,
) -> Optional[TemplateValidationResult]:
    if templates_dir is None:
        return None
    result = validate_templates(templates_dir)
    if result.valid:
        return result
    if not force:
        raise TemplateValidationError(result.missing_templates)
    logger.warning(
        "Continuing with code generation despite missing templates (--force): %s",
        ", ".join(result.missing_templates),
    )
    return result
