"""Template manifest validation gate."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from .model_types import TemplateValidationResult

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "template_manifest.json"

_MANIFEST_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["templates"],
    "properties": {
        "version": {"type": "string"},
        "description": {"type": "string"},
        "templates": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "required"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "description": {"type": "string"},
                    "required": {"type": "boolean"},
                },
            },
        },
    },
}


class TemplateManifestError(RuntimeError):
    """Raised when a template manifest exists but is malformed."""


def validate_templates(template_dir: Path) -> TemplateValidationResult:
    """Check that every required template in the manifest exists.

    A missing manifest is reported as the single missing template rather than
    as an error, so callers only ever inspect ``missing_templates``.

    Args:
        template_dir (Path): Directory holding ``template_manifest.json``.

    Returns:
        TemplateValidationResult: Validity and the missing template names.
    """
    manifest_path = template_dir / MANIFEST_FILE_NAME
    logger.debug("Checking for template manifest at %s", manifest_path)
    if not manifest_path.is_file():
        logger.error("Template manifest not found at %s", manifest_path)
        return TemplateValidationResult(valid=False, missing_templates=(MANIFEST_FILE_NAME,))

    manifest = _load_manifest(manifest_path)
    missing: list[str] = []
    for template in manifest["templates"]:
        if not template["required"]:
            continue
        name = template["name"]
        if (template_dir / name).exists():
            logger.debug("Template found: %s", name)
            continue
        logger.warning("Required template missing: %s", name)
        missing.append(name)

    if missing:
        logger.warning("Missing %d required templates", len(missing))
    else:
        logger.info("All required templates are available")
    return TemplateValidationResult(valid=not missing, missing_templates=tuple(missing))


def _load_manifest(manifest_path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(manifest_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise TemplateManifestError(f"Failed to read {manifest_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise TemplateManifestError(f"Failed to parse JSON in {manifest_path}: {exc}") from exc

    try:
        Draft202012Validator(_MANIFEST_SCHEMA).validate(payload)
    except ValidationError as exc:
        raise TemplateManifestError(
            f"Template manifest {manifest_path} is invalid: {exc.message}"
        ) from exc
    return payload
