"""Drift verification between vendored specs and their stored checksums."""

from __future__ import annotations

from dataclasses import replace
import logging
from pathlib import Path
from typing import Optional

from .checksums import PROCESSED_CHECKSUM_KEY, RAW_CHECKSUM_KEY, raw_checksum
from .json_types import JSONObject
from .loader import parse_spec_text, read_spec_text
from .model_types import ChecksumPair, VerificationOptions, VerificationResult
from .spec_processor import (
    process_spec_content,
    replace_stored_checksums,
    stamp_checksums,
    write_spec_text,
)

logger = logging.getLogger(__name__)


class DriftError(RuntimeError):
    """Raised when a spec no longer matches its stored checksums."""

    def __init__(self, message: str, results: tuple[VerificationResult, ...] = ()) -> None:
        self.results = results
        super().__init__(message)


def verify_spec(
    spec_path: Path,
    options: VerificationOptions = VerificationOptions(),
) -> VerificationResult:
    """Compare a spec's stored checksums with freshly computed ones.

    Both checksums are always recomputed. A stored value that is absent is
    reported as not comparable (``None``) rather than as a mismatch. With
    ``update_on_mismatch`` the stored values are rewritten and no error is
    raised for that call.

    Args:
        spec_path (Path): Spec file to verify.
        options (VerificationOptions): Which checks run and how mismatches end.

    Returns:
        VerificationResult: Stored and current values plus per-check outcome.
    """
    text = read_spec_text(spec_path)
    document = parse_spec_text(text, spec_path)
    processed = process_spec_content(spec_path)

    result = VerificationResult(
        spec_path=spec_path,
        stored_raw_checksum=_stored_value(document, RAW_CHECKSUM_KEY),
        stored_processed_checksum=_stored_value(document, PROCESSED_CHECKSUM_KEY),
        current_raw_checksum=raw_checksum(text),
        current_processed_checksum=processed.checksum,
    )

    if options.verify_raw_checksum:
        _compare_raw(result)
    if options.verify_processed_checksum:
        _compare_processed(result)

    if not result.has_mismatch:
        logger.debug("Spec %s matches its stored checksums", spec_path)
        return result

    if options.update_on_mismatch:
        _update_stored_checksums(spec_path, text, result)
        return result

    if options.fail_on_mismatch:
        raise DriftError(_drift_message(result), (result,))

    for message in result.messages:
        logger.warning(message)
    return result


def verify_spec_directory(
    spec_dir: Path,
    pattern: str = "*.json",
    options: VerificationOptions = VerificationOptions(),
) -> list[VerificationResult]:
    """Verify every spec in ``spec_dir`` matching ``pattern``.

    All specs are checked before failing, so one drifted file does not hide the
    state of the rest.

    Args:
        spec_dir (Path): Directory holding vendored specs.
        pattern (str): Glob pattern for spec file names.
        options (VerificationOptions): Applied to every spec; with
            ``fail_on_mismatch`` a single :class:`DriftError` lists all drift.

    Returns:
        list[VerificationResult]: One result per spec, in sorted path order.
    """
    spec_paths = sorted(path for path in spec_dir.glob(pattern) if path.is_file())
    if not spec_paths:
        logger.warning("No spec files matching %s found in %s", pattern, spec_dir)
        return []

    per_spec = replace(options, fail_on_mismatch=False)
    results = [verify_spec(path, per_spec) for path in spec_paths]
    drifted = tuple(result for result in results if result.has_mismatch)
    logger.info("Verified %d spec(s), %d with drift", len(results), len(drifted))

    if drifted and options.fail_on_mismatch and not options.update_on_mismatch:
        names = ", ".join(str(result.spec_path) for result in drifted)
        raise DriftError(
            f"API specification drift detected in {len(drifted)} spec(s): {names}",
            drifted,
        )
    return results


def format_verification(result: VerificationResult) -> str:
    """Render a verification result as a human-readable report."""
    lines = [
        f"Spec file: {result.spec_path}",
        f"Raw checksum check: {_check_label(result.raw_checksum_matches)}",
        f"Processed checksum check: {_check_label(result.processed_checksum_matches)}",
        "",
        "Messages:",
        *result.messages,
    ]
    return "\n".join(lines)


def _compare_raw(result: VerificationResult) -> None:
    if result.stored_raw_checksum is None:
        result.messages.append(
            "Raw file checksum not found in the spec. Cannot verify raw file integrity."
        )
        return
    result.raw_checksum_matches = result.stored_raw_checksum == result.current_raw_checksum
    if result.raw_checksum_matches:
        result.messages.append("Raw file checksum verification passed.")
        return
    result.messages.append(
        "Raw file checksum mismatch detected!\n"
        f"  - Stored:  {result.stored_raw_checksum}\n"
        f"  - Current: {result.current_raw_checksum}\n"
        "The raw spec file has been modified since the checksum was generated."
    )


def _compare_processed(result: VerificationResult) -> None:
    if result.stored_processed_checksum is None:
        result.messages.append(
            "Processed content checksum not found in the spec. "
            "Cannot verify processed content integrity."
        )
        return
    result.processed_checksum_matches = (
        result.stored_processed_checksum == result.current_processed_checksum
    )
    if result.processed_checksum_matches:
        result.messages.append("Processed content checksum verification passed.")
        return
    result.messages.append(
        "Processed content checksum mismatch detected!\n"
        f"  - Stored:  {result.stored_processed_checksum}\n"
        f"  - Current: {result.current_processed_checksum}\n"
        "The spec has been modified in a way that affects the processed content."
    )


def _update_stored_checksums(spec_path: Path, text: str, result: VerificationResult) -> None:
    pair = ChecksumPair(
        raw_checksum=result.current_raw_checksum,
        processed_checksum=result.current_processed_checksum,
    )
    updated = replace_stored_checksums(text, pair)
    if updated is None:
        stamped = stamp_checksums(spec_path)
        result.current_raw_checksum = stamped.raw_checksum
        result.current_processed_checksum = stamped.processed_checksum
    else:
        write_spec_text(spec_path, updated)
    logger.warning("Updated stored checksums in %s", spec_path)
    result.messages.append(
        "Checksums have been updated in the spec file to match current content."
    )


def _drift_message(result: VerificationResult) -> str:
    return (
        f"API specification drift detected in {result.spec_path}!\n"
        + "\n".join(result.messages)
        + "\n\nTo resolve this issue, either:\n"
        "1. Revert changes to the API specification, or\n"
        "2. Regenerate the stored checksums:\n"
        f"   openapi-ts-codegen stamp {result.spec_path}\n"
    )


def _stored_value(document: JSONObject, key: str) -> Optional[str]:
    value = document.get(key)
    if isinstance(value, str) and value:
        return value
    return None


def _check_label(matches: Optional[bool]) -> str:
    if matches is None:
        return "Not performed"
    return "PASSED" if matches else "FAILED"
