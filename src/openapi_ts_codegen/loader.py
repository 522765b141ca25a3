"""Spec document loading."""

from __future__ import annotations

import json
from pathlib import Path

from .json_types import JSONObject, JSONValue


class SpecLoadError(RuntimeError):
    """Raised when a vendored spec cannot be read or parsed."""


def read_spec_text(path: Path) -> str:
    """Return the literal text of a spec file, line endings untouched."""
    try:
        return path.read_bytes().decode("utf-8")
    except OSError as exc:
        raise SpecLoadError(f"Failed to read spec file {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise SpecLoadError(f"Spec file {path} is not valid UTF-8: {exc}") from exc


def parse_spec_text(text: str, path: Path) -> JSONObject:
    """Parse spec text as a JSON object."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SpecLoadError(f"Failed to parse JSON in {path}: {exc}") from exc

    payload_value: JSONValue = payload
    if not isinstance(payload_value, dict):
        raise SpecLoadError(
            f"Spec document must deserialize to an object, got {type(payload_value)!r}"
        )
    return payload_value


def load_spec_document(path: Path) -> JSONObject:
    """Read and parse a JSON spec document."""
    return parse_spec_text(read_spec_text(path), path)
