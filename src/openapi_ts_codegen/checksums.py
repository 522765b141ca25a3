"""Content digests for spec integrity checks."""

from __future__ import annotations

import hashlib
import re

RAW_CHECKSUM_KEY = "x-spec-content-sha"
PRIOR_RAW_CHECKSUM_KEY = "x-spec-checksum"
PROCESSED_CHECKSUM_KEY = "x-spec-processed-checksum"

CHECKSUM_KEYS: tuple[str, ...] = (
    RAW_CHECKSUM_KEY,
    PRIOR_RAW_CHECKSUM_KEY,
    PROCESSED_CHECKSUM_KEY,
)

_STORED_CHECKSUM_RE = re.compile(
    r'("(?:'
    + "|".join(re.escape(key) for key in CHECKSUM_KEYS)
    + r')"\s*:\s*")[^"]*(")'
)


def checksum(content: str) -> str:
    """Return the lowercase hex SHA-256 digest of ``content`` encoded as UTF-8."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def mask_stored_checksums(text: str) -> str:
    """Blank the values of stored checksum extensions in raw spec text.

    A digest cannot cover its own value, so the raw checksum is taken over the
    file with these values emptied. Every other byte still counts.
    """
    return _STORED_CHECKSUM_RE.sub(r"\1\2", text)


def raw_checksum(text: str) -> str:
    """Digest of the literal spec text, ignoring stored checksum values."""
    return checksum(mask_stored_checksums(text))
