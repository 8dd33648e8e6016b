"""Tests for TypeScript type-definition extraction."""

from __future__ import annotations

import pytest

from pagemill.errors import UndefinedExportError
from pagemill.tsdoc import ReturnField, TypeField, generate_definition
from pagemill.tsdoc.jsdoc import parse_doc_comment


def _fields(entries: list[TypeField] | None) -> list[tuple[str, str, bool]]:
    return [(entry.name, entry.type, entry.optional) for entry in entries or []]


def test_interface_fields_keep_declaration_order() -> None:
    code = "export interface Point { x: number, y?: string }"

    definition = generate_definition(code, export_name="Point")

    assert definition.name == "Point"
    assert definition.is_function is False
    assert _fields(definition.entries) == [("x", "number", False), ("y", "string", True)]


def test_doc_comments_become_descriptions_and_tags() -> None:
    code = """
/** Options accepted by the client. */
export interface Options {
  /**
   * Request timeout in milliseconds.
   * @default 5000
   */
  timeout?: number
  /** @deprecated use `timeout` */
  wait: number
}
"""

    definition = generate_definition(code, export_name="Options")

    assert definition.description == "Options accepted by the client."
    timeout, wait = definition.entries or []
    assert timeout.description == "Request timeout in milliseconds."
    assert timeout.tags == {"default": "5000"}
    assert timeout.optional is True
    assert wait.tags == {"deprecated": "use `timeout`"}


def test_remarks_in_backticks_override_the_type() -> None:
    code = """
export type Config = {
  /** @remarks `"light" | "dark"` */
  theme: Theme
}
"""

    definition = generate_definition(code, export_name="Config")

    assert _fields(definition.entries) == [("theme", '"light" | "dark"', False)]


def test_extends_and_intersections_merge_fields() -> None:
    code = """
interface Base { id: string; name: string }
interface Named extends Base { name: "fixed" }
type Extra = { extra: boolean }
export type Combined = Named & Extra & { id: number }
"""

    named = generate_definition(code.replace("interface Named", "export interface Named"), export_name="Named")
    combined = generate_definition(code, export_name="Combined")

    assert _fields(named.entries) == [("name", '"fixed"', False), ("id", "string", False)]
    assert _fields(combined.entries) == [
        ("name", '"fixed"', False),
        ("id", "number", False),
        ("extra", "boolean", False),
    ]


def test_flattened_nested_objects() -> None:
    code = "export type Props = { user: { name: string; age?: number }; active?: boolean }"

    nested = generate_definition(code, export_name="Props")
    flat = generate_definition(code, export_name="Props", flattened=True)

    assert [entry.name for entry in nested.entries or []] == ["user", "active"]
    assert _fields(flat.entries) == [
        ("user.name", "string", False),
        ("user.age", "number", True),
        ("active", "boolean", True),
    ]


def test_function_signature_params_and_returns() -> None:
    code = """
/**
 * Greets someone.
 * @param name - Who to greet
 * @param times - How often
 * @returns The greeting
 */
export function greet(name: string, times = 1, ...rest: string[]): string {
  return name
}
"""

    definition = generate_definition(code, export_name="greet")

    assert definition.is_function is True
    assert definition.description == "Greets someone."
    assert definition.tags == {"returns": "The greeting"}
    (signature,) = definition.signatures or []
    assert _fields(signature.params) == [
        ("name", "string", False),
        ("times", "number", True),
        ("...rest", "string[]", False),
    ]
    assert signature.params[0].description == "Who to greet"
    assert signature.params[1].tags == {"default": "1"}
    assert signature.returns == ReturnField(type="string")


def test_overloads_produce_one_signature_each() -> None:
    code = """
export function parse(value: string): number;
export function parse(value: number): { ok: boolean };
export function parse(value: any): any { return value }
"""

    definition = generate_definition(code, export_name="parse")

    first, second = definition.signatures or []
    assert first.returns == ReturnField(type="number")
    assert isinstance(second.returns, list)
    assert _fields(second.returns) == [("ok", "boolean", False)]


def test_arrow_function_default_export() -> None:
    code = """
const handler = (event: Event): void => {}
export default handler
"""

    definition = generate_definition(code)

    assert definition.name == "handler"
    (signature,) = definition.signatures or []
    assert _fields(signature.params) == [("event", "Event", False)]
    assert signature.returns == ReturnField(type="void")


def test_missing_return_annotation_is_unknown() -> None:
    definition = generate_definition("export const noop = () => {}", export_name="noop")

    (signature,) = definition.signatures or []
    assert signature.params == []
    assert signature.returns == ReturnField(type="unknown")


def test_export_clause_aliases_are_resolved() -> None:
    code = "interface Internal { a: number }\nexport { Internal as Public }"

    definition = generate_definition(code, export_name="Public")

    assert definition.name == "Internal"
    assert _fields(definition.entries) == [("a", "number", False)]


def test_undefined_export_raises() -> None:
    with pytest.raises(UndefinedExportError) as excinfo:
        generate_definition("export type A = { a: string }", export_name="B", file_path="types.ts")

    assert 'Export "B" is not defined in "types.ts"' in str(excinfo.value)


def test_definition_serialises_to_dict() -> None:
    definition = generate_definition("export interface P { x?: number }", export_name="P", file_path="p.ts")

    assert definition.to_dict() == {
        "name": "P",
        "filePath": "p.ts",
        "entries": [{"name": "x", "type": "number", "optional": True}],
    }


def test_parse_doc_comment_handles_tags_and_fences() -> None:
    comment = parse_doc_comment(
        "/**\n * Summary.\n *\n * ```ts\n * @notATag\n * ```\n * @return value\n * @param [opt=1] - optional\n */"
    )

    assert comment.description == "Summary.\n\n```ts\n@notATag\n```"
    assert comment.tags == {"returns": "value"}
    assert comment.params == {"opt": "optional"}
