"""Spec canonicalization and checksum stamping."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Optional

from .checksums import (
    CHECKSUM_KEYS,
    PRIOR_RAW_CHECKSUM_KEY,
    PROCESSED_CHECKSUM_KEY,
    RAW_CHECKSUM_KEY,
    checksum,
    raw_checksum,
)
from .json_types import JSONObject, MutableJSONObject
from .loader import SpecLoadError, load_spec_document, parse_spec_text, read_spec_text
from .model_types import ChecksumPair, ProcessedSpec, SpecProcessResult

logger = logging.getLogger(__name__)


def canonicalize(document: JSONObject) -> str:
    """Render a spec document in its canonical textual form.

    Stored checksum extensions are excluded, keys are sorted and the output is
    indented by two spaces. This is the step where local ``$ref`` flattening
    would be applied; today it is a pure re-serialization.

    Args:
        document (JSONObject): Parsed spec document.

    Returns:
        str: Canonical JSON text.
    """
    content = {key: value for key, value in document.items() if key not in CHECKSUM_KEYS}
    return json.dumps(content, indent=2, sort_keys=True, ensure_ascii=False)


def process_spec_content(spec_path: Path) -> ProcessedSpec:
    """Read a spec file and checksum its canonical form."""
    logger.debug("Canonicalizing spec %s", spec_path)
    document = load_spec_document(spec_path)
    content = canonicalize(document)
    return ProcessedSpec(content=content, checksum=checksum(content))


def add_processed_checksum(spec_text: str, processed_checksum: str) -> str:
    """Return spec text with ``x-spec-processed-checksum`` set."""
    document = dict(parse_spec_text(spec_text, Path("<memory>")))
    document[PROCESSED_CHECKSUM_KEY] = processed_checksum
    return serialize_spec(document)


def process_spec(spec_path: Path) -> SpecProcessResult:
    """Stamp the processed checksum into a spec file.

    The prior raw checksum is read back from ``x-spec-checksum`` (empty when
    absent) so callers can log both values.

    Args:
        spec_path (Path): Spec file to update in place.

    Returns:
        SpecProcessResult: Prior raw checksum and new processed checksum.
    """
    original_text = read_spec_text(spec_path)
    original = parse_spec_text(original_text, spec_path)
    prior = original.get(PRIOR_RAW_CHECKSUM_KEY)
    prior_raw = prior if isinstance(prior, str) else ""

    processed = process_spec_content(spec_path)
    write_spec_text(spec_path, add_processed_checksum(original_text, processed.checksum))
    logger.info("Updated %s with processed checksum %s", spec_path, processed.checksum)

    return SpecProcessResult(
        spec_path=spec_path,
        raw_checksum=prior_raw,
        processed_checksum=processed.checksum,
    )


def stamp_checksums(spec_path: Path) -> ChecksumPair:
    """Write both stored checksums so the spec verifies against itself."""
    document = load_spec_document(spec_path)
    pair = compute_stamped_checksums(document)
    stamped: MutableJSONObject = dict(document)
    stamped[RAW_CHECKSUM_KEY] = pair.raw_checksum
    stamped[PROCESSED_CHECKSUM_KEY] = pair.processed_checksum
    write_spec_text(spec_path, serialize_spec(stamped))
    logger.info(
        "Stamped %s (raw %s, processed %s)",
        spec_path,
        pair.raw_checksum,
        pair.processed_checksum,
    )
    return pair


def compute_stamped_checksums(document: JSONObject) -> ChecksumPair:
    """Checksums the document will carry once both stamps are written.

    The stamped file is serialized with :func:`serialize_spec`; stamp values are
    masked for the raw digest, so rendering them empty yields the same digest.
    """
    placeholder: MutableJSONObject = dict(document)
    placeholder[RAW_CHECKSUM_KEY] = ""
    placeholder[PROCESSED_CHECKSUM_KEY] = ""
    return ChecksumPair(
        raw_checksum=raw_checksum(serialize_spec(placeholder)),
        processed_checksum=checksum(canonicalize(document)),
    )


def serialize_spec(document: JSONObject) -> str:
    """Serialize a spec for writing back to disk, keeping key order."""
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def replace_stored_checksums(spec_text: str, pair: ChecksumPair) -> Optional[str]:
    """Swap stored checksum values in place, leaving every other byte intact.

    Returns ``None`` when either stored checksum is absent from the text.
    """
    replacements = {
        RAW_CHECKSUM_KEY: pair.raw_checksum,
        PROCESSED_CHECKSUM_KEY: pair.processed_checksum,
    }
    updated = spec_text
    for key, value in replacements.items():
        pattern = re.compile(r'("' + re.escape(key) + r'"\s*:\s*")[^"]*(")')
        updated, count = pattern.subn(
            lambda match, value=value: f"{match.group(1)}{value}{match.group(2)}",
            updated,
        )
        if count == 0:
            return None
    return updated


def write_spec_text(path: Path, content: str) -> None:
    """Write spec text back to disk."""
    try:
        path.write_text(content, encoding="utf-8", newline="")
    except OSError as exc:
        raise SpecLoadError(f"Failed to write spec file {path}: {exc}") from exc
