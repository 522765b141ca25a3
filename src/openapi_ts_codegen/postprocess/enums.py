"""Enum rewriting transforms for generated TypeScript.

Both transforms plan their edits first as :class:`EnumTransformCandidate`
records and then apply them back to front, so an edit at a later offset never
shifts the offsets recorded for earlier enums.

Example::

    export enum StatusEnum { ACTIVE = "ACTIVE", DELETING = "DELETING" }

becomes::

    export type Status = "ACTIVE" | "DELETING";

and, for enums at or beyond the literal limit in branded mode::

    export type Status = Branded<string, "Status">;
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import ClassVar, Optional

from ..model_types import EnumTransformCandidate, EnumUnionMode
from .ts_scan import EnumDeclaration, scan_enums, scan_imports

logger = logging.getLogger(__name__)

ENUM_SUFFIX = "Enum"
BRANDED_TYPE_NAME = "Branded"
DEFAULT_BRANDED_IMPORT = "../utils/branded.ts"
DEFAULT_LITERAL_LIMIT = 45

BRANDED_HELPER_SOURCE = (
    "/**\n"
    " * Nominal string type used in place of very large literal unions.\n"
    " */\n"
    "export type Branded<T, Tag extends string> = T & { readonly __brand: Tag };\n"
)

_TYPE_MODIFIERS = ("export", "declare")


@dataclass(frozen=True)
class EnumRewrite:
    """Rewritten file text and whether it now references ``Branded``."""

    text: str
    branded: bool


def apply_candidates(source: str, candidates: Iterable[EnumTransformCandidate]) -> str:
    """Apply planned enum rewrites in descending position order.

    Each replacement declaration is inserted at the enum's start offset and the
    original enum text is then removed by searching forward from that offset.

    Args:
        source (str): Current file text.
        candidates (Iterable[EnumTransformCandidate]): Planned rewrites.

    Returns:
        str: Rewritten file text.
    """
    text = source
    for candidate in sorted(candidates, key=lambda item: item.position, reverse=True):
        position = candidate.position
        text = f"{text[:position]}{candidate.type_declaration}\n\n{text[position:]}"
        enum_index = text.find(candidate.enum_text, position)
        if enum_index >= 0:
            text = text[:enum_index] + text[enum_index + len(candidate.enum_text) :]
    return text


def add_branded_import(source: str, import_path: str = DEFAULT_BRANDED_IMPORT) -> str:
    """Import ``Branded`` once, after the last existing import."""
    imports = scan_imports(source)
    for declaration in imports:
        if (
            declaration.module_specifier is not None
            and "branded" in declaration.module_specifier
            and BRANDED_TYPE_NAME in declaration.named_imports
        ):
            return source

    statement = f'import type {{ {BRANDED_TYPE_NAME} }} from "{import_path}";'
    if not imports:
        return f"{statement}\n{source}"
    end = imports[-1].end
    return f"{source[:end]}\n{statement}{source[end:]}"


def base_type_name(enum_name: str) -> str:
    """Strip a trailing ``Enum`` suffix from an enum name."""
    if enum_name.endswith(ENUM_SUFFIX) and enum_name != ENUM_SUFFIX:
        return enum_name[: -len(ENUM_SUFFIX)]
    return enum_name


@dataclass(frozen=True)
class EnumUnionTransform:
    """Rewrite ``*Enum`` declarations into string-literal union types.

    Enums with at least ``literal_limit`` members are left for
    :class:`LargeEnumTransform`.
    """

    literal_limit: int = DEFAULT_LITERAL_LIMIT

    name: ClassVar[str] = "enum-union"

    def plan(self, declaration: EnumDeclaration) -> Optional[EnumTransformCandidate]:
        """Plan the rewrite of one enum, or return ``None`` to leave it alone."""
        if not declaration.name.endswith(ENUM_SUFFIX) or declaration.name == ENUM_SUFFIX:
            return None
        if len(declaration.members) >= self.literal_limit:
            return None
        values = _string_values(declaration)
        if not values:
            return None

        base_name = base_type_name(declaration.name)
        logger.debug("Planned enum %s -> union type %s", declaration.name, base_name)
        return EnumTransformCandidate(
            position=declaration.start,
            type_declaration=(
                f"{_type_prefix(declaration.modifiers)}type {base_name} = {' | '.join(values)};"
            ),
            enum_text=declaration.text,
        )

    def apply(self, source: str, path: Path) -> Optional[str]:
        """Return rewritten source, or ``None`` when nothing changed."""
        candidates = _plan_all(self.plan, scan_enums(source))
        if not candidates:
            return None
        logger.debug("Rewriting %d enum(s) to unions in %s", len(candidates), path)
        return apply_candidates(source, candidates)


@dataclass(frozen=True)
class LargeEnumTransform:
    """Rewrite enums with at least ``literal_limit`` members.

    ``union_mode`` picks the output: ``union`` always emits a literal union,
    ``branded`` always emits ``Branded<string, "Name">``, and ``auto`` brands
    only when the string members exceed the limit.

    When ``branded_module`` is set, the ``Branded`` import path is computed
    relative to each rewritten file; otherwise ``import_path`` is used as is.
    """

    literal_limit: int = DEFAULT_LITERAL_LIMIT
    union_mode: EnumUnionMode = EnumUnionMode.AUTO
    branded_module: Optional[Path] = None
    import_path: str = DEFAULT_BRANDED_IMPORT

    name: ClassVar[str] = "large-enum"

    def plan(self, declaration: EnumDeclaration) -> Optional[EnumTransformCandidate]:
        """Plan the rewrite of one enum, or return ``None`` to leave it alone."""
        if len(declaration.members) < self.literal_limit:
            return None
        values = _string_values(declaration)
        if not values:
            return None

        base_name = base_type_name(declaration.name)
        prefix = _type_prefix(declaration.modifiers)
        if self._use_branded(len(values)):
            logger.info(
                "Transformed large enum %s (%d members) to branded type %s",
                declaration.name,
                len(values),
                base_name,
            )
            return EnumTransformCandidate(
                position=declaration.start,
                type_declaration=(
                    f'{prefix}type {base_name} = {BRANDED_TYPE_NAME}<string, "{base_name}">;'
                ),
                enum_text=declaration.text,
                import_branded=True,
            )

        logger.info("Transformed enum %s to union type %s", declaration.name, base_name)
        return EnumTransformCandidate(
            position=declaration.start,
            type_declaration=f"{prefix}type {base_name} = {' | '.join(values)};",
            enum_text=declaration.text,
        )

    def apply(self, source: str, path: Path) -> Optional[str]:
        """Return rewritten source, or ``None`` when nothing changed."""
        rewrite = self.rewrite(source, path)
        return None if rewrite is None else rewrite.text

    def rewrite(self, source: str, path: Path) -> Optional[EnumRewrite]:
        """Rewrite ``source`` and report whether any enum was branded."""
        candidates = _plan_all(self.plan, scan_enums(source))
        if not candidates:
            return None
        text = apply_candidates(source, candidates)
        branded = any(candidate.import_branded for candidate in candidates)
        if branded:
            text = add_branded_import(text, self.import_path_for(path))
        return EnumRewrite(text=text, branded=branded)

    def import_path_for(self, path: Path) -> str:
        """Module specifier that reaches the ``Branded`` helper from ``path``."""
        if self.branded_module is None:
            return self.import_path
        relative = Path(os.path.relpath(self.branded_module, path.parent)).as_posix()
        return relative if relative.startswith(".") else f"./{relative}"

    def _use_branded(self, value_count: int) -> bool:
        if self.union_mode is EnumUnionMode.BRANDED:
            return True
        if self.union_mode is EnumUnionMode.UNION:
            return False
        return value_count > self.literal_limit


def _plan_all(
    planner: Callable[[EnumDeclaration], Optional[EnumTransformCandidate]],
    declarations: list[EnumDeclaration],
) -> list[EnumTransformCandidate]:
    candidates: list[EnumTransformCandidate] = []
    for declaration in declarations:
        candidate = planner(declaration)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def _string_values(declaration: EnumDeclaration) -> list[str]:
    values = [member.initializer for member in declaration.members if member.is_string]
    if not values:
        logger.warning(
            "Enum %s has no string values, skipping transformation", declaration.name
        )
        return []
    dropped = [member.name for member in declaration.members if not member.is_string]
    if dropped:
        logger.warning(
            "Enum %s: dropping non-string member(s) %s from the rewritten type",
            declaration.name,
            ", ".join(dropped),
        )
    return [value for value in values if value is not None]


def _type_prefix(modifiers: tuple[str, ...]) -> str:
    kept = [modifier for modifier in modifiers if modifier in _TYPE_MODIFIERS]
    return f"{' '.join(kept)} " if kept else ""
