"""Codegen configuration: ``codegen.yaml`` plus environment overrides.

Environment variables are read here and nowhere else; the CLI resolves them
once and passes plain values down to the pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
import yaml

from .model_types import EnumUnionMode, FallbackMode

logger = logging.getLogger(__name__)

FALLBACK_ENV_VAR = "OPENAPI_ADAPTER_FALLBACK"
ENUM_LIMIT_ENV_VAR = "CODEGEN_ENUM_LIMIT"
ENUM_UNIONS_ENV_VAR = "CODEGEN_ENUM_UNIONS"

DEFAULT_CONFIG_FILE = "codegen.yaml"
DEFAULT_ENUM_LIMIT = 45

_DEFAULT_FORMATTER_COMMAND: tuple[str, ...] = ("npx", "--yes", "prettier", "--write")
_DEFAULT_TYPE_CHECK_COMMAND: tuple[str, ...] = (
    "npx",
    "--yes",
    "--package",
    "typescript",
    "tsc",
    "--noEmit",
    "--skipLibCheck",
    "--target",
    "ES2020",
    "--module",
    "ESNext",
    "--moduleResolution",
    "bundler",
    "--allowImportingTsExtensions",
)


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be loaded."""


class CodegenSettings(BaseModel):
    """Validated pipeline settings."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    spec_dir: Path = Path("vendor/openapi")
    spec_pattern: str = "*.json"
    output_root: Path = Path("generated")
    templates_dir: Optional[Path] = None
    fallback_mode: FallbackMode = FallbackMode.WARN
    enum_limit: int = Field(default=DEFAULT_ENUM_LIMIT, ge=1)
    enum_union_mode: EnumUnionMode = EnumUnionMode.AUTO
    source_extensions: tuple[str, ...] = (".ts",)
    format_code: bool = True
    formatter_command: tuple[str, ...] = _DEFAULT_FORMATTER_COMMAND
    type_check: bool = True
    type_check_command: tuple[str, ...] = _DEFAULT_TYPE_CHECK_COMMAND


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> CodegenSettings:
    """Load settings from YAML and apply environment overrides.

    Args:
        config_path (Optional[Path]): YAML file; ``codegen.yaml`` in the working
            directory is used when present and no path is given.
        environ (Optional[Mapping[str, str]]): Environment to read overrides from.

    Returns:
        CodegenSettings: Validated settings.
    """
    env = os.environ if environ is None else environ
    payload = _read_config_payload(config_path)

    if FALLBACK_ENV_VAR in env:
        payload["fallback_mode"] = fallback_mode_from_env(env)
    if ENUM_LIMIT_ENV_VAR in env or ENUM_UNIONS_ENV_VAR in env:
        limit, mode = enum_settings_from_env(env)
        if ENUM_LIMIT_ENV_VAR in env:
            payload["enum_limit"] = limit
        if ENUM_UNIONS_ENV_VAR in env:
            payload["enum_union_mode"] = mode

    try:
        return CodegenSettings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid codegen configuration: {exc}") from exc


def fallback_mode_from_env(environ: Optional[Mapping[str, str]] = None) -> FallbackMode:
    """Read ``OPENAPI_ADAPTER_FALLBACK``; anything unrecognised means warn."""
    env = os.environ if environ is None else environ
    value = env.get(FALLBACK_ENV_VAR, "").strip().lower()
    try:
        return FallbackMode(value)
    except ValueError:
        return FallbackMode.WARN


def enum_settings_from_env(
    environ: Optional[Mapping[str, str]] = None,
) -> tuple[int, EnumUnionMode]:
    """Read ``CODEGEN_ENUM_LIMIT`` and ``CODEGEN_ENUM_UNIONS``."""
    env = os.environ if environ is None else environ

    raw_limit = env.get(ENUM_LIMIT_ENV_VAR, str(DEFAULT_ENUM_LIMIT))
    try:
        limit = int(raw_limit)
    except ValueError:
        logger.warning(
            'Invalid %s value: "%s". Using %d instead.',
            ENUM_LIMIT_ENV_VAR,
            raw_limit,
            DEFAULT_ENUM_LIMIT,
        )
        limit = DEFAULT_ENUM_LIMIT

    raw_mode = env.get(ENUM_UNIONS_ENV_VAR, EnumUnionMode.AUTO.value)
    try:
        mode = EnumUnionMode(raw_mode)
    except ValueError:
        logger.warning(
            'Invalid %s value: "%s". Using "auto" instead.',
            ENUM_UNIONS_ENV_VAR,
            raw_mode,
        )
        mode = EnumUnionMode.AUTO
    return limit, mode


def _read_config_payload(config_path: Optional[Path]) -> dict[str, Any]:
    if config_path is None:
        default_path = Path(DEFAULT_CONFIG_FILE)
        if not default_path.is_file():
            return {}
        config_path = default_path

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML in {config_path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(
            f"Config file {config_path} must contain a mapping, got {type(payload)!r}"
        )
    return dict(payload)
