"""OpenAPI to TypeScript codegen pipeline package."""

from __future__ import annotations

from .cli import main
from .detection import detect_adapter, extract_openapi_version
from .drift import DriftError, verify_spec
from .generator import run_generation
from .model_types import FallbackMode, GenerationRun

__all__ = [
    "DriftError",
    "FallbackMode",
    "GenerationRun",
    "detect_adapter",
    "extract_openapi_version",
    "main",
    "run_generation",
    "verify_spec",
]
