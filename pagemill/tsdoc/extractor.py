"""Tree-sitter powered extraction of exported TypeScript type shapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..errors import UndefinedExportError
from ..logging import get_logger
from .jsdoc import DocComment, is_doc_comment, parse_doc_comment
from .types import Returns, ReturnField, Signature, TypeDocDefinition, TypeField

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())

_MEMBER_TYPES = {"property_signature", "method_signature", "index_signature", "call_signature"}
_FUNCTION_VALUES = {"arrow_function", "function_expression", "function"}
_DECLARATION_TYPES = {
    "interface_declaration",
    "type_alias_declaration",
    "function_declaration",
    "function_signature",
    "lexical_declaration",
    "variable_declaration",
}

_ANNOTATION_TYPES = {
    "type_annotation",
    "opting_type_annotation",
    "omitting_type_annotation",
    "adding_type_annotation",
    "type_predicate_annotation",
    "asserts_annotation",
}

_LOGGER = get_logger("tsdoc")


@dataclass
class _Declaration:
    name: str
    nodes: List[Node] = field(default_factory=list)
    comments: List[Optional[str]] = field(default_factory=list)

    def add(self, node: Node, comment: Optional[str]) -> None:
        self.nodes.append(node)
        self.comments.append(comment)


@dataclass
class _Module:
    declarations: Dict[str, _Declaration] = field(default_factory=dict)
    exports: Dict[str, str] = field(default_factory=dict)
    anonymous_default: Optional[_Declaration] = None


def _text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace") if node.text is not None else ""


def _squash(text: str) -> str:
    return " ".join(text.split())


def _annotation_type(node: Optional[Node]) -> Optional[Node]:
    """Unwrap `: T` annotations to the type node itself."""
    if node is None:
        return None
    if node.type in _ANNOTATION_TYPES:
        return node.named_children[0] if node.named_children else None
    return node


class TypeDocExtractor:
    """Resolves an exported declaration to a `TypeDocDefinition`."""

    def __init__(self) -> None:
        self._parser = Parser(TYPESCRIPT)

    def generate_definition(
        self,
        code: str,
        export_name: str = "default",
        flattened: bool = False,
        file_path: Optional[str] = None,
    ) -> TypeDocDefinition:
        tree = self._parser.parse(code.encode("utf-8"))
        if tree.root_node.has_error:
            _LOGGER.warning("Source of %s contains syntax errors; results may be partial", file_path or "<inline code>")
        module = self._index(tree.root_node)
        resolver = _Resolver(module, flattened=flattened)

        declaration = resolver.exported(export_name)
        if declaration is None:
            raise UndefinedExportError(export_name, file_path)
        definition = resolver.define(declaration)
        definition.file_path = file_path
        return definition

    # ------------------------------------------------------------------
    # Indexing

    def _index(self, root: Node) -> _Module:
        module = _Module()
        pending: Optional[str] = None
        for child in root.children:
            if child.type == "comment":
                text = _text(child)
                pending = text if is_doc_comment(text) else pending
                continue
            if child.type == "export_statement":
                self._index_export(module, child, pending)
            else:
                self._index_declaration(module, child, pending)
            pending = None
        return module

    def _index_export(self, module: _Module, node: Node, comment: Optional[str]) -> None:
        is_default = any(child.type == "default" for child in node.children)
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            names = self._index_declaration(module, declaration, comment)
            if is_default:
                if names:
                    module.exports["default"] = names[0]
                else:
                    anonymous = _Declaration(name="default")
                    anonymous.add(declaration, comment)
                    module.anonymous_default = anonymous
            else:
                for name in names:
                    module.exports[name] = name
            return

        value = node.child_by_field_name("value")
        if value is not None and is_default:
            if value.type == "identifier":
                module.exports["default"] = _text(value)
            else:
                anonymous = _Declaration(name="default")
                anonymous.add(value, comment)
                module.anonymous_default = anonymous
            return

        for clause in (child for child in node.children if child.type == "export_clause"):
            for specifier in (child for child in clause.named_children if child.type == "export_specifier"):
                local = _text(specifier.child_by_field_name("name")).strip("'\"")
                alias = specifier.child_by_field_name("alias")
                module.exports[_text(alias).strip("'\"") if alias is not None else local] = local

    def _index_declaration(self, module: _Module, node: Node, comment: Optional[str]) -> List[str]:
        if node.type == "ambient_declaration":
            inner = next((child for child in node.named_children if child.type in _DECLARATION_TYPES), None)
            return self._index_declaration(module, inner, comment) if inner is not None else []
        if node.type in {"lexical_declaration", "variable_declaration"}:
            names = []
            for declarator in (child for child in node.named_children if child.type == "variable_declarator"):
                name = _text(declarator.child_by_field_name("name"))
                module.declarations.setdefault(name, _Declaration(name)).add(declarator, comment)
                names.append(name)
            return names
        if node.type not in _DECLARATION_TYPES:
            return []
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return []
        name = _text(name_node)
        module.declarations.setdefault(name, _Declaration(name)).add(node, comment)
        return [name]


class _Resolver:
    def __init__(self, module: _Module, *, flattened: bool) -> None:
        self.module = module
        self.flattened = flattened

    def exported(self, export_name: str) -> Optional[_Declaration]:
        if export_name == "default" and self.module.anonymous_default is not None:
            return self.module.anonymous_default
        local = self.module.exports.get(export_name)
        if local is None:
            return None
        declaration = self.module.declarations.get(local)
        if declaration is None:
            _LOGGER.warning("Export '%s' refers to '%s', which is not declared locally", export_name, local)
            return _Declaration(name=local)
        return declaration

    # ------------------------------------------------------------------
    # Definitions

    def define(self, declaration: _Declaration) -> TypeDocDefinition:
        if not declaration.nodes:
            return TypeDocDefinition(name=declaration.name, entries=[])

        functions = self._function_nodes(declaration)
        if functions:
            docs = [parse_doc_comment(comment) for _, comment in functions]
            head = next((doc for doc in docs if doc.description or doc.tags), docs[0])
            signatures = [self._signature(node, doc) for (node, _), doc in zip(functions, docs)]
            return TypeDocDefinition(
                name=declaration.name,
                description=head.resolved_description,
                tags=dict(head.tags),
                signatures=signatures,
            )

        node, comment = declaration.nodes[0], declaration.comments[0]
        doc = parse_doc_comment(comment)
        definition = TypeDocDefinition(
            name=declaration.name,
            description=doc.resolved_description,
            tags=dict(doc.tags),
        )
        function_type = self._function_type_of(node)
        if function_type is not None:
            definition.signatures = [self._signature(function_type, doc)]
            return definition
        entries = self._entries_of(node, set())
        if entries is None:
            _LOGGER.warning("Unable to resolve the shape of '%s'; no fields extracted", declaration.name)
            entries = []
        definition.entries = entries
        return definition

    def _function_nodes(self, declaration: _Declaration) -> List[tuple[Node, Optional[str]]]:
        pairs = list(zip(declaration.nodes, declaration.comments))
        overloads = [pair for pair in pairs if pair[0].type == "function_signature"]
        if overloads:
            return overloads
        functions = [pair for pair in pairs if pair[0].type == "function_declaration" or pair[0].type in _FUNCTION_VALUES]
        if functions:
            return functions
        for node, comment in pairs:
            if node.type == "variable_declarator":
                value = node.child_by_field_name("value")
                if value is not None and value.type in _FUNCTION_VALUES:
                    return [(value, comment)]
        return []

    def _function_type_of(self, node: Node) -> Optional[Node]:
        if node.type == "type_alias_declaration":
            value = self._unwrap(node.child_by_field_name("value"))
            return value if value is not None and value.type == "function_type" else None
        if node.type == "variable_declarator":
            annotated = self._unwrap(_annotation_type(node.child_by_field_name("type")))
            return annotated if annotated is not None and annotated.type == "function_type" else None
        return None

    # ------------------------------------------------------------------
    # Object shapes

    def _entries_of(self, node: Optional[Node], visiting: Set[str]) -> Optional[List[TypeField]]:
        """Fields of an object-shaped declaration or type node; ``None`` when not object-shaped."""
        node = self._unwrap(node)
        if node is None:
            return None
        if node.type == "interface_declaration":
            name = _text(node.child_by_field_name("name"))
            entries = self._members(node.child_by_field_name("body"), visiting | {name})
            for clause in (child for child in node.children if child.type == "extends_type_clause"):
                for base in clause.named_children:
                    inherited = self._reference(base, visiting | {name})
                    if inherited is None:
                        _LOGGER.warning("Cannot resolve base type '%s' of '%s'", _text(base), name)
                        continue
                    entries = _merge(entries, inherited, keep_existing=True)
            return entries
        if node.type == "type_alias_declaration":
            name = _text(node.child_by_field_name("name"))
            return self._entries_of(node.child_by_field_name("value"), visiting | {name})
        if node.type == "variable_declarator":
            return self._entries_of(_annotation_type(node.child_by_field_name("type")), visiting)
        if node.type in {"object_type", "interface_body"}:
            return self._members(node, visiting)
        if node.type == "intersection_type":
            merged: List[TypeField] = []
            for operand in node.named_children:
                fields = self._entries_of(operand, visiting)
                if fields is None:
                    return None
                merged = _merge(merged, fields, keep_existing=False)
            return merged
        if node.type == "type_identifier":
            return self._reference(node, visiting)
        return None

    def _reference(self, node: Node, visiting: Set[str]) -> Optional[List[TypeField]]:
        if node.type != "type_identifier":
            return None
        name = _text(node)
        if name in visiting:
            return None
        declaration = self.module.declarations.get(name)
        if declaration is None or not declaration.nodes:
            return None
        return self._entries_of(declaration.nodes[0], visiting | {name})

    def _members(self, body: Optional[Node], visiting: Set[str]) -> List[TypeField]:
        fields: List[TypeField] = []
        if body is None:
            return fields
        pending: Optional[str] = None
        for child in body.children:
            if child.type == "comment":
                text = _text(child)
                pending = text if is_doc_comment(text) else pending
                continue
            if child.type not in _MEMBER_TYPES:
                if child.is_named:
                    pending = None
                continue
            fields.extend(self._member(child, parse_doc_comment(pending), visiting))
            pending = None
        return fields

    def _member(self, node: Node, doc: DocComment, visiting: Set[str]) -> List[TypeField]:
        optional = any(child.type == "?" for child in node.children)
        if node.type == "index_signature":
            name = f"[{_text(node.child_by_field_name('name'))}: {_text(node.child_by_field_name('index_type'))}]"
            type_node = _annotation_type(node.child_by_field_name("type"))
            type_text = _squash(_text(type_node)) or "any"
        elif node.type in {"method_signature", "call_signature"}:
            name = _property_name(node.child_by_field_name("name")) if node.type == "method_signature" else "()"
            type_node = None
            returns = _annotation_type(node.child_by_field_name("return_type"))
            params = _text(node.child_by_field_name("parameters")) or "()"
            type_text = _squash(f"{params} => {_text(returns) or 'void'}")
        else:
            name = _property_name(node.child_by_field_name("name"))
            type_node = _annotation_type(node.child_by_field_name("type"))
            type_text = _squash(_text(type_node)) or "any"

        override = doc.type_override()
        field_ = TypeField(
            name=name,
            type=override or type_text,
            description=doc.resolved_description,
            optional=optional,
            tags=dict(doc.tags),
        )
        if self.flattened and override is None and type_node is not None:
            nested = self._nested_entries(type_node, visiting)
            if nested:
                return [
                    TypeField(
                        name=f"{name}.{child.name}",
                        type=child.type,
                        description=child.description,
                        optional=optional or child.optional,
                        tags=child.tags,
                    )
                    for child in nested
                ]
        return [field_]

    def _nested_entries(self, type_node: Node, visiting: Set[str]) -> Optional[List[TypeField]]:
        node = self._unwrap(type_node)
        if node is None or node.type not in {"object_type", "type_identifier", "intersection_type"}:
            return None
        return self._entries_of(node, visiting)

    # ------------------------------------------------------------------
    # Functions

    def _signature(self, node: Node, doc: DocComment) -> Signature:
        params = self._params(node.child_by_field_name("parameters"), doc)
        single = node.child_by_field_name("parameter")
        if single is not None and not params:
            name = _text(single)
            params = [TypeField(name=name, type="any", description=doc.params.get(name) or None)]
        return_node = node.child_by_field_name("return_type")
        return Signature(params=params, returns=self._returns(return_node, node.type == "function_type"))

    def _params(self, formal: Optional[Node], doc: DocComment) -> List[TypeField]:
        fields: List[TypeField] = []
        if formal is None:
            return fields
        for parameter in formal.named_children:
            if parameter.type not in {"required_parameter", "optional_parameter"}:
                continue
            pattern = parameter.child_by_field_name("pattern")
            if pattern is None or pattern.type == "this":
                continue
            name = _text(pattern)
            if pattern.type == "rest_pattern":
                name = "..." + _text(pattern.named_children[0]) if pattern.named_children else name
            lookup = name.lstrip(".")
            value = parameter.child_by_field_name("value")
            type_node = _annotation_type(parameter.child_by_field_name("type"))
            type_text = _squash(_text(type_node)) or _infer_literal_type(value)
            tags: Dict[str, str] = {}
            if value is not None:
                tags["default"] = _squash(_text(value))
            optional = parameter.type == "optional_parameter" or value is not None
            description = doc.params.get(lookup) or None
            param = TypeField(name=name, type=type_text, description=description, optional=optional, tags=tags)
            nested = self._nested_entries(type_node, set()) if self.flattened and type_node is not None else None
            if nested:
                fields.extend(
                    TypeField(
                        name=f"{name}.{child.name}",
                        type=child.type,
                        description=child.description or doc.params.get(f"{lookup}.{child.name}") or None,
                        optional=optional or child.optional,
                        tags=child.tags,
                    )
                    for child in nested
                )
            else:
                fields.append(param)
        return fields

    def _returns(self, node: Optional[Node], bare_type: bool) -> Returns:
        type_node = node if bare_type else _annotation_type(node)
        if type_node is None:
            return ReturnField(type="unknown")
        entries = self._entries_of(type_node, set())
        if entries is not None and self._unwrap(type_node).type in {"object_type", "type_identifier", "intersection_type"}:
            return entries
        return ReturnField(type=_squash(_text(type_node)))

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _unwrap(node: Optional[Node]) -> Optional[Node]:
        while node is not None and node.type == "parenthesized_type":
            node = node.named_children[0] if node.named_children else None
        return node


def _merge(existing: List[TypeField], incoming: Iterable[TypeField], *, keep_existing: bool) -> List[TypeField]:
    merged = list(existing)
    index = {item.name: position for position, item in enumerate(merged)}
    for item in incoming:
        if item.name in index:
            if not keep_existing:
                merged[index[item.name]] = item
            continue
        index[item.name] = len(merged)
        merged.append(item)
    return merged


def _property_name(node: Optional[Node]) -> str:
    text = _text(node)
    if len(text) >= 2 and text[0] in "'\"" and text[-1] == text[0]:
        return text[1:-1]
    return text


def _infer_literal_type(value: Optional[Node]) -> str:
    if value is None:
        return "any"
    if value.type == "number":
        return "number"
    if value.type in {"string", "template_string"}:
        return "string"
    if value.type in {"true", "false"}:
        return "boolean"
    return "any"


def generate_definition(
    code: str,
    export_name: str = "default",
    flattened: bool = False,
    file_path: Optional[str] = None,
) -> TypeDocDefinition:
    """Resolve `export_name` in TypeScript `code` into a fresh definition."""
    return TypeDocExtractor().generate_definition(
        code, export_name=export_name, flattened=flattened, file_path=file_path
    )


__all__ = ["TYPESCRIPT", "TypeDocExtractor", "generate_definition"]
