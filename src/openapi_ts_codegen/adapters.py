"""Generator adapters, the adapter registry, and fallback resolution."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
import math
from pathlib import Path
import re
from typing import Any, Optional

from .model_types import AdapterDecision, FallbackMode, GeneratorAdapter, VersionInfo
from .tooling import run_tool

logger = logging.getLogger(__name__)

_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_KNOWN_OPTION_KEYS = frozenset({"http_client", "use_options", "use_union_types"})


class NoAdapterForVersion(RuntimeError):
    """Raised in strict mode when no adapter supports a spec version."""

    def __init__(self, version: str, message: Optional[str] = None) -> None:
        self.version = version
        super().__init__(message or _strict_failure_message(version))


def parse_version_number(spec_version: str) -> float:
    """Read the leading decimal number of a version string.

    ``"3.0.3"`` reads as ``3.0``. Strings without a leading number give NaN,
    which no adapter supports.
    """
    match = _LEADING_NUMBER_RE.match(spec_version)
    if match is None:
        return math.nan
    return float(match.group(1))


class OtcGenerator:
    """Adapter for ``openapi-typescript-codegen`` (OpenAPI up to 3.0)."""

    name = "openapi-typescript-codegen"

    def supports(self, spec_version: str) -> bool:
        """Return whether the version is at most 3.0."""
        return parse_version_number(spec_version) <= 3.0

    def generate(
        self,
        input_path: Path,
        output_dir: Path,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Run the generator through ``npx``."""
        merged = {"http_client": "fetch", "use_options": True, "use_union_types": True}
        merged.update(options or {})
        command = [
            "npx",
            "--yes",
            "openapi-typescript-codegen",
            "--input",
            str(input_path),
            "--output",
            str(output_dir),
            "--client",
            str(merged["http_client"]),
        ]
        if merged.get("use_options"):
            command.append("--useOptions")
        if merged.get("use_union_types"):
            command.append("--useUnionTypes")
        command.extend(_extra_option_flags(merged))
        run_tool(command, description=self.name)


class HeyApiGenerator:
    """Adapter for ``@hey-api/openapi-ts`` (OpenAPI 3.0 and 3.1)."""

    name = "@hey-api/openapi-ts"

    def supports(self, spec_version: str) -> bool:
        """Return whether the version is within 3.0 to 3.1."""
        version = parse_version_number(spec_version)
        return 3.0 <= version < 3.2

    def generate(
        self,
        input_path: Path,
        output_dir: Path,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Run the generator through ``npx``."""
        merged: dict[str, Any] = {"http_client": "fetch"}
        merged.update(options or {})
        command = [
            "npx",
            "--yes",
            "@hey-api/openapi-ts",
            "--input",
            str(input_path),
            "--output",
            str(output_dir),
            "--client",
            f"@hey-api/client-{merged['http_client']}",
        ]
        command.extend(_extra_option_flags(merged))
        run_tool(command, description=self.name)


@dataclass(frozen=True)
class AdapterRegistry:
    """Ordered adapters; the first one that supports a version wins.

    The first registered adapter doubles as the fallback generator.
    """

    adapters: tuple[GeneratorAdapter, ...]

    def __post_init__(self) -> None:
        if not self.adapters:
            raise ValueError("AdapterRegistry requires at least one adapter")

    @property
    def fallback_adapter(self) -> GeneratorAdapter:
        """Adapter used when nothing explicitly supports a version."""
        return self.adapters[0]

    def find_explicit(self, spec_version: str) -> Optional[GeneratorAdapter]:
        """Return the first adapter that explicitly supports the version."""
        for adapter in self.adapters:
            if adapter.supports(spec_version):
                return adapter
        return None

    def select(self, version: VersionInfo, fallback_mode: FallbackMode) -> AdapterDecision:
        """Choose the adapter for a detected version.

        Args:
            version (VersionInfo): Detected spec version.
            fallback_mode (FallbackMode): Policy when no adapter matches.

        Returns:
            AdapterDecision: Selected adapter and how it was chosen.
        """
        adapter = self.find_explicit(version.version)
        if adapter is not None:
            return AdapterDecision(
                version=version,
                adapter=adapter,
                is_explicitly_supported=True,
            )
        fallback = resolve_fallback(
            version.version,
            fallback_mode,
            fallback_adapter=self.fallback_adapter,
        )
        return AdapterDecision(
            version=version,
            adapter=fallback,
            is_explicitly_supported=False,
            applied_fallback=fallback_mode,
        )


def resolve_fallback(
    spec_version: str,
    fallback_mode: FallbackMode,
    *,
    fallback_adapter: GeneratorAdapter,
) -> GeneratorAdapter:
    """Resolve an adapter for a version no adapter explicitly supports.

    Strict mode raises. Warn and auto modes pick the same adapter; only warn
    mode logs.

    Args:
        spec_version (str): Version string that had no explicit match.
        fallback_mode (FallbackMode): Active fallback policy.
        fallback_adapter (GeneratorAdapter): Adapter to fall back to.

    Returns:
        GeneratorAdapter: The fallback adapter.
    """
    if fallback_mode is FallbackMode.STRICT:
        raise NoAdapterForVersion(spec_version)

    if fallback_mode is FallbackMode.WARN:
        logger.warning(_fallback_warning(spec_version, fallback_adapter.name))
    return fallback_adapter


def _fallback_warning(spec_version: str, adapter_name: str) -> str:
    version = parse_version_number(spec_version)
    if 3.0 <= version < 4.0:
        return (
            f"OpenAPI {spec_version} is not explicitly supported by {adapter_name}.\n"
            "Using 3.0 adapter as fallback, but generation may be incomplete.\n"
            "Consider downgrading your specification to 3.0 for best results."
        )
    if version >= 4.0:
        return (
            f"OpenAPI {spec_version} is not supported by available adapters.\n"
            f"Using {adapter_name} as fallback, but generation will likely have issues.\n"
            "Consider installing a newer adapter that supports OpenAPI 4.x."
        )
    return (
        f'Unrecognized OpenAPI version format: "{spec_version}".\n'
        f"Using {adapter_name} as fallback, but generation may fail.\n"
        "Please verify your OpenAPI specification is valid."
    )


def _strict_failure_message(spec_version: str) -> str:
    return (
        f"No generator explicitly supports OpenAPI {spec_version}.\n"
        "Options:\n"
        "1. Set OPENAPI_ADAPTER_FALLBACK=warn or auto to use fallback\n"
        "2. Install an adapter that supports this version\n"
        "3. Downgrade your OpenAPI spec to version 3.0"
    )


def _extra_option_flags(options: Mapping[str, Any]) -> list[str]:
    flags: list[str] = []
    for key, value in options.items():
        if key in _KNOWN_OPTION_KEYS or value is None or value is False:
            continue
        flag = f"--{_camel_case(key)}"
        if value is True:
            flags.append(flag)
        else:
            flags.extend([flag, str(value)])
    return flags


def _camel_case(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


DEFAULT_REGISTRY = AdapterRegistry(adapters=(OtcGenerator(), HeyApiGenerator()))
