"""Document syntax tree and the markdown-it based parser for both dialects.

The tree is a fixed tagged union: every node is a `Node` whose `type` is one of
the constants below. Plain markdown (`md`) and the rich dialect (`mdx`) share
the same node set; the rich dialect adds module-scope declarations (`esm`),
component elements and `{expression}` nodes, registered as markdown-it rules.
"""

from __future__ import annotations

import ast
import re
import textwrap
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from markdown_it import MarkdownIt
from markdown_it.rules_block import StateBlock
from markdown_it.rules_core import StateCore
from markdown_it.rules_inline import StateInline
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.dollarmath import dollarmath_plugin

from ..errors import CompileError

ROOT = "root"
YAML = "yaml"
ESM = "esm"
HEADING = "heading"
PARAGRAPH = "paragraph"
TEXT = "text"
CODE = "code"
INLINE_CODE = "inlineCode"
EMPHASIS = "emphasis"
STRONG = "strong"
DELETE = "delete"
LINK = "link"
IMAGE = "image"
BREAK = "break"
THEMATIC_BREAK = "thematicBreak"
BLOCKQUOTE = "blockquote"
LIST = "list"
LIST_ITEM = "listItem"
TABLE = "table"
TABLE_ROW = "tableRow"
TABLE_CELL = "tableCell"
ELEMENT = "element"
EXPRESSION = "expression"

MODULE_SCOPE_TYPES = frozenset({YAML, ESM})

MATH_CLASS = "language-math"
MATH_INLINE_CLASS = "math-inline"
MATH_DISPLAY_CLASS = "math-display"

ATTR_STRING = "string"
ATTR_EXPRESSION = "expression"
ATTR_BOOLEAN = "boolean"
ATTR_LITERAL = "literal"
ATTR_SPREAD = "spread"


@dataclass
class Attribute:
    """A component attribute; `kind` decides how code generation emits `value`."""

    name: str
    value: Any
    kind: str = ATTR_LITERAL


@dataclass
class Node:
    """One node of the shared document syntax tree."""

    type: str
    children: List["Node"] = field(default_factory=list)
    value: str = ""
    depth: int = 0
    lang: Optional[str] = None
    meta: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
    ordered: bool = False
    attributes: List[Attribute] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    line: int = 0


def walk(node: Node) -> Iterator[Tuple[Node, Optional[Node]]]:
    """Yield `(node, parent)` pairs depth-first in document order."""
    stack: List[Tuple[Node, Optional[Node]]] = [(node, None)]
    while stack:
        current, parent = stack.pop()
        yield current, parent
        for child in reversed(current.children):
            stack.append((child, current))


def text_of(node: Node) -> str:
    """Concatenated textual content of a node (expressions excluded)."""
    if node.type in {TEXT, INLINE_CODE, CODE}:
        return node.value
    if node.type == BREAK:
        return " "
    if node.type == IMAGE:
        return node.value
    return "".join(text_of(child) for child in node.children)


_FENCE_RE = re.compile(r"^(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_HEADING_ID_RE = re.compile(r"\s*\[#([^\]]+)\]\s*$")
_ESM_RE = re.compile(r"^(import|from|export)\s")
_EXPORT_CONST_RE = re.compile(r"^export\s+const\s+(?P<name>[A-Za-z_]\w*)\s*=\s*(?P<value>.*)$", re.S)
_TAG_OPEN_RE = re.compile(r"<[A-Za-z]")
_JSX_NAME_RE = re.compile(r"[A-Za-z][\w.:-]*")
_ATTR_NAME_RE = re.compile(r"[A-Za-z_:][\w:.-]*")
_ALIGN_RE = re.compile(r"text-align:\s*(left|right|center)")

_LINE_OFFSET = "pagemill_line_offset"
_NESTED = "pagemill_nested"

_EMPHASIS_TYPES = {"em": EMPHASIS, "strong": STRONG, "s": DELETE}


@dataclass
class ParseOptions:
    """Dialect switches shared by both compilation modes."""

    rich: bool = True
    math: bool = True


def create_markdown(options: ParseOptions) -> MarkdownIt:
    """Return a markdown-it parser configured for one dialect."""
    md = MarkdownIt("commonmark", {"html": False}).enable(["table", "strikethrough"])
    md.block.ruler.before("fence", "unclosed_fence", _unclosed_fence)
    md.core.ruler.before("inline", "heading_ids", _heading_ids)
    if options.math:
        dollarmath_plugin(md, allow_digits=False, double_inline=True)
    if options.rich:
        md.block.ruler.before("table", "mdx_esm", _esm_block)
        md.block.ruler.before(
            "table", "mdx_jsx", _jsx_block, {"alt": ["paragraph", "blockquote", "list"]}
        )
        md.block.ruler.before("table", "mdx_flow_expression", _flow_expression_block)
        md.inline.ruler.after("escape", "mdx_expression", _inline_expression)
    return md


class DocumentParser:
    """Parses document bodies into a `Node` tree."""

    def __init__(self, options: ParseOptions | None = None) -> None:
        self.options = options or ParseOptions()
        self._md = create_markdown(self.options)

    def parse(self, text: str, *, line_offset: int = 0) -> Node:
        root = Node(type=ROOT, line=line_offset + 1)
        root.children = self._parse_blocks(text, line_offset, nested=False)
        return root

    def _parse_blocks(self, text: str, offset: int, *, nested: bool = True) -> List[Node]:
        tokens = self._md.parse(text, {_LINE_OFFSET: offset, _NESTED: nested})
        nodes: List[Node] = []
        for child in SyntaxTreeNode(tokens).children:
            nodes.extend(self._block(child, offset))
        return nodes

    def _parse_inline(self, text: str, line_no: int) -> List[Node]:
        tokens = self._md.parseInline(text, {_LINE_OFFSET: line_no - 1, _NESTED: True})
        (inline,) = SyntaxTreeNode(tokens).children
        return self._inline(inline.children, line_no)

    # ------------------------------------------------------------------
    # Blocks

    def _block(self, node: SyntaxTreeNode, offset: int) -> List[Node]:
        line = offset + (node.map[0] if node.map else 0) + 1
        kind = node.type

        if kind == "heading":
            heading = Node(type=HEADING, depth=int(node.tag[1:]), line=line)
            if node.meta.get("id"):
                heading.data["id"] = node.meta["id"]
            heading.children = self._inline_children(node, line)
            return [heading]
        if kind == "paragraph":
            return [Node(type=PARAGRAPH, line=line, children=self._inline_children(node, line))]
        if kind == "blockquote":
            return [Node(type=BLOCKQUOTE, line=line, children=self._blocks(node.children, offset))]
        if kind in {"bullet_list", "ordered_list"}:
            listing = Node(type=LIST, ordered=kind == "ordered_list", line=line)
            if listing.ordered:
                listing.data["start"] = int(node.attrs.get("start", 1))
            for item in node.children:
                item_line = offset + (item.map[0] if item.map else 0) + 1
                listing.children.append(
                    Node(type=LIST_ITEM, line=item_line, children=self._blocks(item.children, offset))
                )
            return [listing]
        if kind in {"fence", "code_block"}:
            return [self._code(node, line)]
        if kind in {"math_block", "math_block_label"}:
            return [
                Node(
                    type=CODE,
                    value=node.content.strip(),
                    lang="math",
                    classes=[MATH_CLASS, MATH_DISPLAY_CLASS],
                    line=line,
                )
            ]
        if kind == "hr":
            return [Node(type=THEMATIC_BREAK, line=line)]
        if kind == "table":
            return [self._table(node, offset, line)]
        if kind == "mdx_esm":
            return [Node(type=ESM, value=node.content, line=line, data=dict(node.meta))]
        if kind == "mdx_jsx":
            return self._element(node, offset, line)
        if kind == "mdx_flow_expression":
            expression = node.content
            if expression.startswith("/*") and expression.endswith("*/"):
                return [Node(type=EXPRESSION, value="", line=line, data={"comment": True})]
            _check_expression(expression, line)
            return [Node(type=EXPRESSION, value=expression, line=line)]
        if node.content:
            return [Node(type=PARAGRAPH, line=line, children=[Node(type=TEXT, value=node.content, line=line)])]
        return self._blocks(node.children, offset)

    def _blocks(self, nodes: Sequence[SyntaxTreeNode], offset: int) -> List[Node]:
        converted: List[Node] = []
        for node in nodes:
            converted.extend(self._block(node, offset))
        return converted

    def _code(self, node: SyntaxTreeNode, line: int) -> Node:
        value = node.content[:-1] if node.content.endswith("\n") else node.content
        lang, _, meta = (node.info or "").strip().partition(" ")
        code = Node(type=CODE, value=value, lang=lang or None, meta=meta.strip() or None, line=line)
        if lang == "math" and self.options.math:
            code.classes = [MATH_CLASS, MATH_DISPLAY_CLASS]
        elif lang:
            code.classes = [f"language-{lang}"]
        return code

    def _table(self, node: SyntaxTreeNode, offset: int, line: int) -> Node:
        table = Node(type=TABLE, line=line, data={"align": []})
        for section in node.children:
            header = section.type == "thead"
            for row in section.children:
                row_line = offset + (row.map[0] if row.map else 0) + 1
                table_row = Node(type=TABLE_ROW, line=row_line, data={"header": header})
                for cell in row.children:
                    if header:
                        align = _ALIGN_RE.search(str(cell.attrs.get("style", "")))
                        table.data["align"].append(align.group(1) if align else None)
                    table_row.children.append(
                        Node(type=TABLE_CELL, line=row_line, children=self._inline_children(cell, row_line))
                    )
                table.children.append(table_row)
        return table

    def _element(self, node: SyntaxTreeNode, offset: int, line: int) -> List[Node]:
        meta = node.meta
        element = Node(type=ELEMENT, name=node.info, attributes=list(meta["attributes"]), line=line)
        inner: Optional[str] = meta["inner"]
        tag_line = offset + meta["inner_line"] + 1
        if inner is not None:
            if "\n" in inner.strip("\n") or inner.startswith("\n"):
                leading = len(inner) - len(inner.lstrip("\n"))
                block = textwrap.dedent(inner.strip("\n"))
                element.children = self._parse_blocks(block, tag_line + leading - 1)
            else:
                element.children = self._parse_inline(inner.strip(), tag_line)
        nodes = [element]
        remainder = meta["remainder"]
        if remainder:
            rest_line = offset + node.map[1] if node.map else line
            nodes.append(Node(type=PARAGRAPH, line=rest_line, children=self._parse_inline(remainder, rest_line)))
        return nodes

    # ------------------------------------------------------------------
    # Inline

    def _inline_children(self, node: SyntaxTreeNode, line: int) -> List[Node]:
        if not node.children:
            return []
        return self._inline(node.children[0].children, line)

    def _inline(self, nodes: Sequence[SyntaxTreeNode], line: int) -> List[Node]:
        converted: List[Node] = []
        for node in nodes:
            item = self._inline_node(node, line)
            if item is None:
                continue
            if item.type == TEXT and converted and converted[-1].type == TEXT:
                converted[-1].value += item.value
                continue
            converted.append(item)
        return converted

    def _inline_node(self, node: SyntaxTreeNode, line: int) -> Optional[Node]:
        kind = node.type
        if kind == "softbreak":
            return Node(type=TEXT, value="\n", line=line)
        if kind == "hardbreak":
            return Node(type=BREAK, line=line)
        if kind == "code_inline":
            return Node(type=INLINE_CODE, value=node.content, line=line)
        if kind in {"math_inline", "math_inline_double"}:
            return Node(
                type=INLINE_CODE,
                value=node.content.strip() if kind == "math_inline_double" else node.content,
                lang="math",
                classes=[MATH_CLASS, MATH_INLINE_CLASS],
                line=line,
            )
        if kind in _EMPHASIS_TYPES:
            return Node(type=_EMPHASIS_TYPES[kind], line=line, children=self._inline(node.children, line))
        if kind == "link":
            title = node.attrs.get("title")
            return Node(
                type=LINK,
                url=str(node.attrs.get("href", "")),
                title=str(title) if title else None,
                line=line,
                children=self._inline(node.children, line),
            )
        if kind == "image":
            title = node.attrs.get("title")
            return Node(
                type=IMAGE,
                value=node.content,
                url=str(node.attrs.get("src", "")),
                title=str(title) if title else None,
                line=line,
            )
        if kind == "mdx_expression":
            return self._expression(node, line)
        return Node(type=TEXT, value=node.content, line=line)

    def _expression(self, node: SyntaxTreeNode, line: int) -> Optional[Node]:
        expression_line = line + node.meta["newlines"]
        if node.meta.get("error"):
            raise CompileError(node.meta["error"], line=expression_line, column=node.meta.get("column"))
        expression = node.content
        if expression.startswith("/*") and expression.endswith("*/"):
            return None
        _check_expression(expression, expression_line)
        return Node(type=EXPRESSION, value=expression, line=expression_line)


# ----------------------------------------------------------------------
# markdown-it rules


def _line_text(state: StateBlock, line: int) -> Tuple[int, str]:
    start = state.bMarks[line] + state.tShift[line]
    return start, state.src[start : state.eMarks[line]]


def _absolute_line(state: StateBlock, line: int) -> int:
    return state.env.get(_LINE_OFFSET, 0) + line + 1


def _unclosed_fence(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    if silent or state.sCount[startLine] - state.blkIndent >= 4:
        return False
    _, text = _line_text(state, startLine)
    match = _FENCE_RE.match(text)
    if match is None or (match.group("fence")[0] == "`" and "`" in match.group("info")):
        return False
    fence = match.group("fence")
    closing = re.compile(re.escape(fence[0]) + "{" + str(len(fence)) + r",}[ \t]*$")
    for line in range(startLine + 1, endLine):
        if state.sCount[line] - state.blkIndent < 4 and closing.match(_line_text(state, line)[1]):
            return False
    raise CompileError("Unclosed code fence", line=_absolute_line(state, startLine), column=1)


def _heading_ids(state: StateCore) -> None:
    for index, token in enumerate(state.tokens):
        if token.type != "heading_open" or index + 1 >= len(state.tokens):
            continue
        inline = state.tokens[index + 1]
        match = _HEADING_ID_RE.search(inline.content)
        if match:
            token.meta["id"] = match.group(1).strip()
            inline.content = inline.content[: match.start()].rstrip()


def _esm_block(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    if state.env.get(_NESTED) or state.parentType != "root" or state.tShift[startLine] != 0:
        return False
    _, text = _line_text(state, startLine)
    if not _ESM_RE.match(text):
        return False
    if silent:
        return True
    next_line = startLine + 1
    while next_line < endLine and not state.isEmpty(next_line):
        next_line += 1
    block = state.getLines(startLine, next_line, 0, False).rstrip("\n").split("\n")
    imports, exports = _module_scope(block, _absolute_line(state, startLine))
    token = state.push("mdx_esm", "", 0)
    token.content = "\n".join(block)
    token.meta = {"imports": imports, "exports": exports}
    token.map = [startLine, next_line]
    state.line = next_line
    return True


def _jsx_block(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False
    start, _ = _line_text(state, startLine)
    if not _TAG_OPEN_RE.match(state.src, start):
        return False
    if silent:
        return True
    text = state.src[start:]
    line_no = _absolute_line(state, startLine)
    name, attributes, tag_end, self_closing = _parse_tag(text, 0, line_no)
    inner: Optional[str] = None
    close_end = tag_end
    if not self_closing:
        close_start, close_end = _find_closing_tag(text, tag_end, name, line_no)
        inner = text[tag_end:close_start]
    next_line = startLine + text[:close_end].count("\n") + 1
    if next_line > endLine:
        raise CompileError(f"Expected a closing tag for `<{name}>`", line=line_no, column=1)
    token = state.push("mdx_jsx", "", 0)
    token.info = name
    token.map = [startLine, next_line]
    token.meta = {
        "attributes": attributes,
        "inner": inner,
        "inner_line": startLine + text[:tag_end].count("\n"),
        "remainder": text[close_end:].split("\n", 1)[0].strip(),
    }
    state.line = next_line
    return True


def _flow_expression_block(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False
    start, line = _line_text(state, startLine)
    if not line.startswith("{"):
        return False
    text = state.src[start:]
    end = _match_brace(text, 0)
    if end is None or text[end + 1 :].split("\n", 1)[0].strip():
        return False
    next_line = startLine + text[: end + 1].count("\n") + 1
    if next_line > endLine:
        return False
    if silent:
        return True
    token = state.push("mdx_flow_expression", "", 0)
    token.content = text[1:end].strip()
    token.map = [startLine, next_line]
    state.line = next_line
    return True


def _inline_expression(state: StateInline, silent: bool) -> bool:
    if state.src[state.pos] != "{":
        return False
    end = _match_brace(state.src, state.pos)
    if end is not None and end >= state.posMax:
        end = None
    if not silent:
        token = state.push("mdx_expression", "", 0)
        token.meta = {"newlines": state.src.count("\n", 0, state.pos)}
        if end is None:
            token.meta["error"] = "Unbalanced braces in expression"
            token.meta["column"] = state.pos + 1
        else:
            token.content = state.src[state.pos + 1 : end].strip()
    state.pos = state.posMax if end is None else end + 1
    return True


# ----------------------------------------------------------------------
# Rich-dialect helpers


def _module_scope(block: List[str], line_no: int) -> Tuple[List[str], Dict[str, str]]:
    exports: Dict[str, str] = {}
    imports: List[str] = []
    for statement_line, statement in _split_statements(block):
        current_line = line_no + statement_line
        if statement.startswith("export"):
            export = _EXPORT_CONST_RE.match(statement)
            if export is None:
                raise CompileError(
                    "Only `export const NAME = <expression>` declarations are supported",
                    line=current_line,
                    column=1,
                )
            expression = export.group("value").strip().rstrip(";")
            _check_expression(expression, current_line)
            exports[export.group("name")] = expression
            continue
        try:
            ast.parse(statement)
        except SyntaxError as exc:
            raise CompileError(
                f"Invalid import declaration: {exc.msg}",
                line=current_line + (exc.lineno or 1) - 1,
                column=exc.offset,
            ) from exc
        imports.append(statement)
    return imports, exports


def _match_brace(text: str, start: int) -> Optional[int]:
    """Return the index of the brace closing the one at `start`, honouring strings."""
    depth = 0
    quote: Optional[str] = None
    pos = start
    while pos < len(text):
        char = text[pos]
        if quote:
            if char == "\\":
                pos += 2
                continue
            if char == quote:
                quote = None
        elif char in {'"', "'"}:
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    return None


def _check_expression(expression: str, line_no: int) -> None:
    if not expression:
        return
    try:
        ast.parse(expression, mode="eval")
    except SyntaxError as exc:
        raise CompileError(
            f"Could not parse expression: {exc.msg}",
            line=line_no + (exc.lineno or 1) - 1,
            column=exc.offset,
        ) from exc


def _split_statements(block: List[str]) -> List[Tuple[int, str]]:
    """Group module-scope lines into statements (continuations are indented or bracketed)."""
    statements: List[Tuple[int, str]] = []
    current: List[str] = []
    start = 0
    depth = 0
    for number, line in enumerate(block):
        if current and depth <= 0 and _ESM_RE.match(line):
            statements.append((start, "\n".join(current)))
            current = []
        if not current:
            start = number
            depth = 0
        current.append(line)
        depth += sum(line.count(opening) for opening in "([{") - sum(line.count(closing) for closing in ")]}")
    if current:
        statements.append((start, "\n".join(current)))
    return statements


def _parse_tag(text: str, pos: int, line_no: int) -> Tuple[str, List[Attribute], int, bool]:
    """Parse `<Name attr=... >` starting at `pos`; returns name, attributes, end, self-closing."""
    match = _JSX_NAME_RE.match(text, pos + 1)
    if match is None:
        raise CompileError("Expected a component name after `<`", line=line_no, column=1)
    name = match.group(0)
    cursor = match.end()
    attributes: List[Attribute] = []
    while True:
        while cursor < len(text) and text[cursor].isspace():
            cursor += 1
        if cursor >= len(text):
            raise CompileError(f"Unclosed tag `<{name}>`", line=line_no, column=pos + 1)
        if text.startswith("/>", cursor):
            return name, attributes, cursor + 2, True
        if text[cursor] == ">":
            return name, attributes, cursor + 1, False
        attr_line = line_no + text.count("\n", pos, cursor)
        if text[cursor] == "{":
            end = _match_brace(text, cursor)
            if end is None:
                raise CompileError("Unbalanced braces in attribute", line=attr_line, column=1)
            inner = text[cursor + 1 : end].strip()
            if not inner.startswith("..."):
                raise CompileError("Expected a spread attribute `{...value}`", line=attr_line, column=1)
            _check_expression(inner[3:].strip(), attr_line)
            attributes.append(Attribute(name="...", value=inner[3:].strip(), kind=ATTR_SPREAD))
            cursor = end + 1
            continue
        attr = _ATTR_NAME_RE.match(text, cursor)
        if attr is None:
            raise CompileError(
                f"Unexpected character {text[cursor]!r} in tag `<{name}>`", line=attr_line, column=1
            )
        attr_name = attr.group(0)
        cursor = attr.end()
        while cursor < len(text) and text[cursor] in " \t":
            cursor += 1
        if cursor < len(text) and text[cursor] == "=":
            cursor += 1
            while cursor < len(text) and text[cursor] in " \t":
                cursor += 1
            if cursor < len(text) and text[cursor] in {'"', "'"}:
                quote = text[cursor]
                end = text.find(quote, cursor + 1)
                if end == -1:
                    raise CompileError("Unclosed attribute string", line=attr_line, column=1)
                attributes.append(Attribute(name=attr_name, value=text[cursor + 1 : end], kind=ATTR_STRING))
                cursor = end + 1
            elif cursor < len(text) and text[cursor] == "{":
                end = _match_brace(text, cursor)
                if end is None:
                    raise CompileError("Unbalanced braces in attribute", line=attr_line, column=1)
                expression = text[cursor + 1 : end].strip()
                _check_expression(expression, attr_line)
                attributes.append(Attribute(name=attr_name, value=expression, kind=ATTR_EXPRESSION))
                cursor = end + 1
            else:
                raise CompileError(
                    f"Expected a value for attribute `{attr_name}`", line=attr_line, column=1
                )
        else:
            attributes.append(Attribute(name=attr_name, value=True, kind=ATTR_BOOLEAN))


def _find_closing_tag(text: str, start: int, name: str, line_no: int) -> Tuple[int, int]:
    pattern = re.compile(r"<(/?)" + re.escape(name) + r"(?=[\s/>])")
    depth = 1
    cursor = start
    while True:
        match = pattern.search(text, cursor)
        if match is None:
            raise CompileError(f"Expected a closing tag for `<{name}>`", line=line_no, column=1)
        if match.group(1):
            close = text.find(">", match.end())
            if close == -1:
                raise CompileError(f"Unclosed tag `</{name}>`", line=line_no, column=1)
            depth -= 1
            if depth == 0:
                return match.start(), close + 1
            cursor = close + 1
            continue
        _, _, tag_end, self_closing = _parse_tag(text, match.start(), line_no)
        if not self_closing:
            depth += 1
        cursor = tag_end


__all__ = [
    "ATTR_BOOLEAN",
    "ATTR_EXPRESSION",
    "ATTR_LITERAL",
    "ATTR_SPREAD",
    "ATTR_STRING",
    "Attribute",
    "DocumentParser",
    "MATH_CLASS",
    "MATH_DISPLAY_CLASS",
    "MATH_INLINE_CLASS",
    "MODULE_SCOPE_TYPES",
    "Node",
    "ParseOptions",
    "create_markdown",
    "text_of",
    "walk",
]
