"""Tests for the TypeScript enum and import scanner."""

from __future__ import annotations

import pytest

from openapi_ts_codegen.postprocess.ts_scan import ScanError, scan_enums, scan_imports


def test_scan_enums_reads_members_and_offsets() -> None:
    source = (
        "// generated\n"
        "export enum StatusEnum {\n"
        '  ACTIVE = "ACTIVE",\n'
        "  RETRIES = 3,\n"
        "  'QUOTED' = 'quoted',\n"
        "  BARE,\n"
        "}\n"
    )

    (declaration,) = scan_enums(source)

    assert declaration.name == "StatusEnum"
    assert declaration.modifiers == ("export",)
    assert source[declaration.start : declaration.end] == declaration.text
    assert declaration.text.startswith("export enum StatusEnum {")
    assert declaration.text.endswith("}")
    assert [(member.name, member.initializer) for member in declaration.members] == [
        ("ACTIVE", '"ACTIVE"'),
        ("RETRIES", "3"),
        ("QUOTED", "'quoted'"),
        ("BARE", None),
    ]
    assert [member.is_string for member in declaration.members] == [True, False, True, False]


def test_scan_enums_keeps_const_and_declare_modifiers() -> None:
    source = 'export declare const enum Kind { A = "a" }\nenum Plain { B = "b" }\n'
    first, second = scan_enums(source)
    assert first.modifiers == ("export", "declare", "const")
    assert second.modifiers == ()
    assert second.text == 'enum Plain { B = "b" }'


def test_scan_enums_ignores_comments_strings_and_properties() -> None:
    source = (
        "/* enum Hidden { A = 'a' } */\n"
        "const text = 'enum Quoted { B }';\n"
        "const tpl = `enum Template { ${value} }`;\n"
        "const obj = { enum: ['x'] };\n"
        "schema.enum = ['y'];\n"
        "const pattern = /enum Regex {/;\n"
    )
    assert scan_enums(source) == []


def test_scan_enums_handles_nested_braces_in_initializers() -> None:
    source = 'export enum Computed { A = "a", B = `${"b"}`, C = ("c") }\n'
    (declaration,) = scan_enums(source)
    assert [member.name for member in declaration.members] == ["A", "B", "C"]
    assert declaration.members[2].initializer == '("c")'


def test_scan_imports_finds_top_level_imports_only() -> None:
    source = (
        'import type { ApiRequestOptions } from "./ApiRequestOptions";\n'
        "import { request as __request, OpenAPI } from '../core/request';\n"
        'import "./side-effect";\n'
        "export async function load() {\n"
        '  const mod = await import("./lazy");\n'
        "  return import.meta.url;\n"
        "}\n"
    )

    imports = scan_imports(source)

    assert [item.module_specifier for item in imports] == [
        "./ApiRequestOptions",
        "../core/request",
        "./side-effect",
    ]
    assert imports[0].named_imports == ("ApiRequestOptions",)
    assert imports[1].named_imports == ("request", "OpenAPI")
    assert imports[2].named_imports == ()
    assert imports[0].text == 'import type { ApiRequestOptions } from "./ApiRequestOptions";'


def test_regex_after_block_is_not_mistaken_for_a_string() -> None:
    source = "function f() {}\n/'/.test(x);\nconst ratio = total / count / 2;\n" + (
        'export enum Status { A = "a", B = "b" }\n'
    )

    (declaration,) = scan_enums(source)

    assert declaration.name == "Status"
    assert source[declaration.start : declaration.end] == declaration.text


def test_offsets_are_character_offsets_with_non_ascii_text() -> None:
    source = '// Zürich café\nexport enum CityEnum { ZURICH = "Zürich" }\n'

    (declaration,) = scan_enums(source)

    assert declaration.text == 'export enum CityEnum { ZURICH = "Zürich" }'
    assert source[declaration.start : declaration.end] == declaration.text
    assert declaration.members[0].initializer == '"Zürich"'


def test_unterminated_string_raises() -> None:
    with pytest.raises(ScanError, match="Syntax error"):
        scan_enums('enum Broken { A = "a }\n')


def test_unbalanced_enum_body_raises() -> None:
    with pytest.raises(ScanError, match="Syntax error"):
        scan_enums('enum Broken { A = "a"\n')
