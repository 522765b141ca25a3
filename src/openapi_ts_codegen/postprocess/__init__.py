"""Rewrites applied to generated TypeScript after the generator runs."""

from .enums import EnumUnionTransform, LargeEnumTransform, add_branded_import, apply_candidates
from .pipeline import CodeTransform, default_transforms, format_generated_code, postprocess

__all__ = [
    "CodeTransform",
    "EnumUnionTransform",
    "LargeEnumTransform",
    "add_branded_import",
    "apply_candidates",
    "default_transforms",
    "format_generated_code",
    "postprocess",
]
