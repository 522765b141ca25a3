"""Internal datatypes shared by detection, generation, and verification."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol


class FallbackMode(str, Enum):
    """Policy applied when no adapter explicitly supports a spec version."""

    STRICT = "strict"
    WARN = "warn"
    AUTO = "auto"


class EnumUnionMode(str, Enum):
    """Output shape for enums that reach the literal limit."""

    AUTO = "auto"
    UNION = "union"
    BRANDED = "branded"


class GeneratorAdapter(Protocol):
    """A code generator bound to a range of OpenAPI versions."""

    @property
    def name(self) -> str:
        """Generator name used in logs and decision records."""
        ...

    def supports(self, spec_version: str) -> bool:
        """Return whether this generator explicitly handles ``spec_version``."""
        ...

    def generate(
        self,
        input_path: Path,
        output_dir: Path,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Generate client code for ``input_path`` into ``output_dir``."""
        ...


@dataclass(frozen=True)
class VersionInfo:
    """OpenAPI dialect and version detected from a spec document."""

    version: str
    major_version: int
    minor_version: int
    dialect: Optional[str] = None


@dataclass(frozen=True)
class AdapterDecision:
    """Outcome of adapter selection for one generation run."""

    version: VersionInfo
    adapter: GeneratorAdapter
    is_explicitly_supported: bool
    applied_fallback: Optional[FallbackMode] = None


@dataclass(frozen=True)
class ChecksumPair:
    """Raw-file and canonical-content digests of a spec."""

    raw_checksum: str
    processed_checksum: str


@dataclass(frozen=True)
class ProcessedSpec:
    """Canonical spec content and its digest."""

    content: str
    checksum: str


@dataclass(frozen=True)
class SpecProcessResult:
    """Checksums reported after processing a spec in place."""

    spec_path: Path
    raw_checksum: str
    processed_checksum: str


@dataclass(frozen=True)
class VerificationOptions:
    """Switches controlling drift verification."""

    fail_on_mismatch: bool = True
    verify_raw_checksum: bool = True
    verify_processed_checksum: bool = True
    update_on_mismatch: bool = False


@dataclass
class VerificationResult:
    """Result of comparing stored and current spec checksums.

    A ``None`` match flag means there was nothing stored to compare against.
    """

    spec_path: Path
    stored_raw_checksum: Optional[str]
    stored_processed_checksum: Optional[str]
    current_raw_checksum: str
    current_processed_checksum: str
    raw_checksum_matches: Optional[bool] = None
    processed_checksum_matches: Optional[bool] = None
    messages: list[str] = field(default_factory=list)

    @property
    def has_mismatch(self) -> bool:
        """Whether either enabled check found a mismatch."""
        return self.raw_checksum_matches is False or self.processed_checksum_matches is False


@dataclass(frozen=True)
class TemplateValidationResult:
    """Required templates missing from a template directory."""

    valid: bool
    missing_templates: tuple[str, ...]


@dataclass(frozen=True)
class EnumTransformCandidate:
    """A planned enum rewrite keyed by the enum's start offset."""

    position: int
    type_declaration: str
    enum_text: str
    import_branded: bool = False


@dataclass(frozen=True)
class PostprocessResult:
    """Summary of one post-processing pass over a generated tree."""

    files_scanned: int
    changed_files: tuple[Path, ...]
    failed_files: tuple[Path, ...]
    formatted: bool


@dataclass(frozen=True)
class GenerationRun:
    """Everything a build produced, for reporting."""

    spec_path: Path
    output_dir: Path
    decision: AdapterDecision
    checksums: SpecProcessResult
    templates: Optional[TemplateValidationResult]
    postprocess: PostprocessResult


@dataclass(frozen=True)
class DialectComparison:
    """Detected dialects of the two newest dated specs.

    ``previous`` is ``None`` when only one dated spec exists.
    """

    latest_path: Path
    latest: VersionInfo
    previous_path: Optional[Path] = None
    previous: Optional[VersionInfo] = None

    @property
    def changed(self) -> bool:
        """Whether the dialect differs from the previous spec's."""
        if self.previous is None:
            return False
        return (self.previous.dialect or "") != (self.latest.dialect or "")

    @property
    def direction(self) -> Optional[str]:
        """``upgrade``, ``downgrade`` or ``change``; ``None`` when unchanged."""
        if self.previous is None or not self.changed:
            return None
        latest = (self.latest.major_version, self.latest.minor_version)
        previous = (self.previous.major_version, self.previous.minor_version)
        if latest > previous:
            return "upgrade"
        if latest < previous:
            return "downgrade"
        return "change"
