"""OpenAPI version detection and adapter selection for spec files."""

from __future__ import annotations

import logging
from pathlib import Path
import re
from typing import Any, Optional

from .adapters import DEFAULT_REGISTRY, AdapterRegistry, NoAdapterForVersion
from .json_types import JSONObject
from .loader import SpecLoadError, load_spec_document
from .model_types import AdapterDecision, FallbackMode, VersionInfo

logger = logging.getLogger(__name__)

DIALECT_KEY = "x-openapi-dialect"
UNKNOWN_VERSION = "unknown"

_DIALECT_BASE_URL = "https://spec.openapis.org/dialect"
_DIALECT_VERSION_RE = re.compile(r"/([0-9]+\.[0-9]+)")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def version_from_document(document: JSONObject) -> VersionInfo:
    """Derive version information from a parsed spec document.

    An explicit ``x-openapi-dialect`` wins over the ``openapi`` and ``swagger``
    fields. Documents carrying none of them report ``"unknown"``. Major and
    minor numbers that cannot be parsed degrade to ``0``.

    Args:
        document (JSONObject): Parsed spec document.

    Returns:
        VersionInfo: Detected version triple and dialect.
    """
    dialect_value = document.get(DIALECT_KEY)
    if isinstance(dialect_value, str) and dialect_value:
        dialect = dialect_value
        match = _DIALECT_VERSION_RE.search(dialect)
        version = match.group(1) if match else UNKNOWN_VERSION
    else:
        version = _standard_version_field(document)
        if version is None:
            version = UNKNOWN_VERSION
            dialect = UNKNOWN_VERSION
        else:
            dialect = f"{_DIALECT_BASE_URL}/{version}"

    parts = version.split(".")
    return VersionInfo(
        version=version,
        major_version=_leading_int(parts[0]),
        minor_version=_leading_int(parts[1]) if len(parts) > 1 else 0,
        dialect=dialect,
    )


def extract_openapi_version(spec_path: Path) -> VersionInfo:
    """Read a spec file and detect its OpenAPI version."""
    try:
        document = load_spec_document(spec_path)
    except SpecLoadError:
        logger.error("Error extracting OpenAPI version from %s", spec_path)
        raise
    return version_from_document(document)


def detect_adapter(
    spec_path: Path,
    fallback_mode: FallbackMode = FallbackMode.WARN,
    *,
    registry: AdapterRegistry = DEFAULT_REGISTRY,
) -> AdapterDecision:
    """Detect a spec's version and select the adapter that will generate it.

    Args:
        spec_path (Path): Spec file to inspect.
        fallback_mode (FallbackMode): Policy when no adapter explicitly matches.
        registry (AdapterRegistry): Adapters in priority order.

    Returns:
        AdapterDecision: Selected adapter and whether a fallback applied.
    """
    version = extract_openapi_version(spec_path)
    try:
        return registry.select(version, fallback_mode)
    except NoAdapterForVersion as exc:
        raise NoAdapterForVersion(
            exc.version,
            (
                f"Failed to detect adapter for OpenAPI {version.version}: {exc}\n"
                f"File: {spec_path}\n"
                f"Fallback mode: {fallback_mode.value}"
            ),
        ) from exc


def decision_record(
    spec_path: Path,
    decision: AdapterDecision,
    fallback_mode: FallbackMode,
) -> dict[str, Any]:
    """Flatten an adapter decision into a JSON-serializable record."""
    return {
        "specPath": str(spec_path),
        "version": decision.version.version,
        "dialect": decision.version.dialect,
        "majorVersion": decision.version.major_version,
        "minorVersion": decision.version.minor_version,
        "adapterName": decision.adapter.name,
        "explicitSupport": decision.is_explicitly_supported,
        "fallbackApplied": (
            decision.applied_fallback.value if decision.applied_fallback is not None else None
        ),
        "fallbackMode": fallback_mode.value,
    }


def _standard_version_field(document: JSONObject) -> Optional[str]:
    for key in ("openapi", "swagger"):
        value = document.get(key)
        if value is None or value == "":
            continue
        return str(value).strip()
    return None


def _leading_int(text: str) -> int:
    match = _LEADING_INT_RE.match(text)
    return int(match.group(1)) if match else 0
