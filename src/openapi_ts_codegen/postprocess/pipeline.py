"""Post-processing pipeline over a generated TypeScript tree."""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path
from typing import Optional, Protocol

from ..model_types import EnumUnionMode, PostprocessResult
from ..tooling import ToolError, run_tool
from .enums import (
    BRANDED_HELPER_SOURCE,
    DEFAULT_LITERAL_LIMIT,
    EnumUnionTransform,
    LargeEnumTransform,
)
from .ts_scan import ScanError

logger = logging.getLogger(__name__)

BRANDED_HELPER_PATH = Path("core") / "branded.ts"

DEFAULT_FORMATTER_COMMAND: tuple[str, ...] = ("npx", "--yes", "prettier", "--write")


class CodeTransform(Protocol):
    """A source-to-source rewrite applied to each generated file."""

    name: str

    def apply(self, source: str, path: Path) -> Optional[str]:
        """Return the rewritten source, or ``None`` when nothing changed."""
        ...


def default_transforms(
    *,
    literal_limit: int = DEFAULT_LITERAL_LIMIT,
    union_mode: EnumUnionMode = EnumUnionMode.AUTO,
    branded_module: Optional[Path] = None,
) -> tuple[CodeTransform, ...]:
    """Union rewrite for small ``*Enum`` types, then the size-gated rewrite.

    Args:
        literal_limit (int): Member count at which the size gate applies.
        union_mode (EnumUnionMode): Output shape for enums past the gate.
        branded_module (Optional[Path]): Location of the ``Branded`` helper.

    Returns:
        tuple[CodeTransform, ...]: Transforms in application order.
    """
    return (
        EnumUnionTransform(literal_limit=literal_limit),
        LargeEnumTransform(
            literal_limit=literal_limit,
            union_mode=union_mode,
            branded_module=branded_module,
        ),
    )


def postprocess(
    output_dir: Path,
    *,
    transforms: Optional[Sequence[CodeTransform]] = None,
    extensions: Sequence[str] = (".ts",),
    format_code: bool = True,
    formatter_command: Sequence[str] = DEFAULT_FORMATTER_COMMAND,
) -> PostprocessResult:
    """Apply transforms to every matching file, then format once.

    Files are visited in sorted path order and a file is written back only when
    at least one transform changed it. A transform that fails on a file is
    logged and that file is left as it was on disk.

    Args:
        output_dir (Path): Generated source tree.
        transforms (Optional[Sequence[CodeTransform]]): Transforms in order;
            :func:`default_transforms` rooted at ``output_dir`` when omitted.
        extensions (Sequence[str]): File suffixes to process.
        format_code (bool): Whether to run the formatter after changes.
        formatter_command (Sequence[str]): Formatter executable and arguments;
            the output directory is appended.

    Returns:
        PostprocessResult: Scanned, changed and failed files.
    """
    helper_path = output_dir / BRANDED_HELPER_PATH
    if transforms is None:
        transforms = default_transforms(branded_module=helper_path)

    files = _source_files(output_dir, extensions, exclude=helper_path)
    logger.info("Post-processing %d file(s) in %s", len(files), output_dir)

    changed: list[Path] = []
    failed: list[Path] = []
    needs_helper = False
    for path in files:
        try:
            updated, branded = _transform_file(path, transforms, helper_path)
            if updated is None:
                continue
            path.write_text(updated, encoding="utf-8")
        except (ScanError, OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to post-process %s: %s", path, exc)
            failed.append(path)
            continue
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Transform raised while post-processing %s", path)
            failed.append(path)
            continue
        changed.append(path)
        needs_helper = needs_helper or branded

    if needs_helper:
        write_branded_helper(helper_path)

    formatted = False
    if changed and format_code:
        formatted = format_generated_code(output_dir, formatter_command)

    logger.info("Post-processing changed %d file(s)", len(changed))
    return PostprocessResult(
        files_scanned=len(files),
        changed_files=tuple(changed),
        failed_files=tuple(failed),
        formatted=formatted,
    )


def write_branded_helper(helper_path: Path) -> None:
    """Write the module defining ``Branded<T, Tag>``."""
    helper_path.parent.mkdir(parents=True, exist_ok=True)
    helper_path.write_text(BRANDED_HELPER_SOURCE, encoding="utf-8")
    logger.debug("Wrote branded helper %s", helper_path)


def format_generated_code(output_dir: Path, command: Sequence[str]) -> bool:
    """Run the formatter over the whole tree; failures are logged, not raised."""
    try:
        run_tool([*command, str(output_dir)], description="formatter")
    except ToolError as exc:
        logger.error("Error formatting generated code: %s", exc)
        return False
    logger.info("Formatted generated code in %s", output_dir)
    return True


def _transform_file(
    path: Path,
    transforms: Sequence[CodeTransform],
    helper_path: Path,
) -> tuple[Optional[str], bool]:
    original = path.read_text(encoding="utf-8")
    current = original
    branded = False
    for transform in transforms:
        if isinstance(transform, LargeEnumTransform):
            rewrite = transform.rewrite(current, path)
            result = None if rewrite is None else rewrite.text
            if rewrite is not None and rewrite.branded:
                branded = branded or transform.branded_module == helper_path
        else:
            result = transform.apply(current, path)
        if result is not None:
            logger.debug("%s changed %s", transform.name, path)
            current = result
    if current == original:
        return None, False
    return current, branded


def _source_files(output_dir: Path, extensions: Sequence[str], *, exclude: Path) -> list[Path]:
    return sorted(
        path
        for path in output_dir.rglob("*")
        if path.is_file() and path.suffix in extensions and path != exclude
    )
