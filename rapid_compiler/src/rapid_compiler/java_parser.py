from typing import Optional

import tree_sitter_java
from tree_sitter import Language, Node, Parser, Tree

from rapid_compiler.src.rapid_compiler.errors import ParseError
from rapid_compiler.src.rapid_compiler.models.source_models import (
    Annotation,
    CompilationUnit,
    ImportDirective,
    MethodDecl,
    Parameter,
    Span,
    TypeDecl,
)
from rapid_compiler.src.rapid_compiler.tree_sitter_helpers import (
    COMMENT_TYPES,
    child_of_type,
    code_children,
    first_error,
    node_point,
    node_span,
    node_text,
)

TYPE_KINDS = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
}

ANNOTATION_TYPES = ("marker_annotation", "annotation")


# --- Tree-sitter language loading -------------------------------------------

def load_java_language() -> Language:
    """
    Loads the Tree-sitter Java grammar shipped by the tree-sitter-java wheel.
    """
    return Language(tree_sitter_java.language())


# --- The Parser ---------------------------------------------------------------

class JavaParser:
    """
    Turns the bytes of one compilation unit into a CompilationUnit.

    Only the declaration skeleton is modelled: package, imports, (nested)
    types and their methods. Method bodies are kept as opaque byte spans,
    the parser never looks inside a block.
    """

    def __init__(self):
        self.language = load_java_language()
        self.parser = Parser(self.language)

    def parse(self, source: bytes) -> Tree:
        return self.parser.parse(source)

    def parse_unit(self, source: bytes, path: str = "<memory>") -> CompilationUnit:
        """
        Parses a compilation unit. Raises ParseError if tree-sitter had to
        recover from anything (unterminated comment or string, unbalanced
        braces, a keyword where it does not belong).
        """
        tree = self.parse(source)
        root: Node = tree.root_node

        bad = first_error(root)
        if bad is not None:
            raise ParseError(path, bad.start_byte, self._describe_error(source, bad))

        package, package_span = self._find_package(source, root)
        imports = tuple(
            self._import(source, child)
            for child in root.children
            if child.type == "import_declaration"
        )
        types = tuple(
            self._type(source, child, package, [], ())
            for child in root.children
            if child.type in TYPE_KINDS
        )
        return CompilationUnit(
            path=path,
            source=source,
            package=package,
            package_span=package_span,
            imports=imports,
            types=types,
        )

    # -- AST helpers ----------------------------------------------------------

    def _describe_error(self, source: bytes, node: Node) -> str:
        line, col = node_point(node)
        where = f"line {line + 1}, col {col + 1}"
        if node.is_missing:
            return f"{where}: missing '{node.type}'"
        snippet = node_text(source, node).strip().splitlines()
        head = snippet[0][:40] if snippet else ""
        return f"{where}: unexpected input {head!r}"

    def _find_package(self, source: bytes, root: Node) -> tuple[Optional[str], Optional[Span]]:
        for child in root.children:
            if child.type == "package_declaration":
                name_node = child_of_type(child, "scoped_identifier", "identifier")
                if name_node is not None:
                    return node_text(source, name_node), node_span(child)
        return None, None

    def _import(self, source: bytes, node: Node) -> ImportDirective:
        name_node = child_of_type(node, "scoped_identifier", "identifier")
        return ImportDirective(
            name=node_text(source, name_node) if name_node else "",
            static=child_of_type(node, "static") is not None,
            wildcard=child_of_type(node, "asterisk") is not None,
            span=node_span(node),
        )

    def _fqcn(self, pkg: Optional[str], class_names: list[str]) -> str:
        """Builds a fully-qualified class name from package + nested classes."""
        left = pkg + "." if pkg else ""
        return left + ".".join(class_names)

    def _modifiers(self, source: bytes, decl: Node) -> tuple[tuple[str, ...], tuple[Annotation, ...]]:
        mods_node = child_of_type(decl, "modifiers")
        if mods_node is None:
            return (), ()
        keywords = tuple(node_text(source, c) for c in mods_node.children if not c.is_named)
        annotations = tuple(
            self._annotation(source, c)
            for c in mods_node.named_children
            if c.type in ANNOTATION_TYPES
        )
        return keywords, annotations

    def _annotation(self, source: bytes, node: Node) -> Annotation:
        name_node = node.child_by_field_name("name")
        name = node_text(source, name_node) if name_node else ""
        args = node.child_by_field_name("arguments")
        values = code_children(args) if args is not None else []
        if not values:
            return Annotation(name=name, span=node_span(node))

        if values[0].type == "element_value_pair":
            pairs = [
                (pair.child_by_field_name("key"), pair.child_by_field_name("value"))
                for pair in values
                if pair.type == "element_value_pair"
            ]
            named = [(node_text(source, k), v) for k, v in pairs if k is not None and v is not None]
        else:
            # single-value form, the element is implicitly called "value"
            named = [("value", values[0])]

        return Annotation(
            name=name,
            elements=tuple((key, node_text(source, value)) for key, value in named),
            items=tuple((key, self._element_items(source, value)) for key, value in named),
            span=node_span(node),
        )

    def _element_items(self, source: bytes, value: Node) -> tuple[str, ...]:
        if value.type == "element_value_array_initializer":
            return tuple(node_text(source, item) for item in code_children(value))
        return (node_text(source, value),)

    def _type_variables(self, source: bytes, params_node: Optional[Node]) -> tuple[tuple[str, str], ...]:
        """(name, first bound lexeme) for each declared type parameter."""
        if params_node is None:
            return ()
        out = []
        for tp in code_children(params_node):
            if tp.type != "type_parameter":
                continue
            name_node = child_of_type(tp, "type_identifier", "identifier")
            if name_node is None:
                continue
            bound = "Object"
            bound_node = child_of_type(tp, "type_bound")
            if bound_node is not None:
                bounds = code_children(bound_node)
                if bounds:
                    bound = node_text(source, bounds[0])
            out.append((node_text(source, name_node), bound))
        return tuple(out)

    def _members(self, body: Node) -> list[Node]:
        """Member declarations of a class, interface or enum body."""
        members = []
        for child in body.named_children:
            if child.type == "enum_body_declarations":
                members.extend(child.named_children)
            else:
                members.append(child)
        return members

    def _type(self, source: bytes, node: Node, pkg: Optional[str],
              outer_names: list[str], outer_tvars: tuple[tuple[str, str], ...]) -> TypeDecl:
        name_node = node.child_by_field_name("name")
        simple = node_text(source, name_node) if name_node else "<anonymous>"
        class_names = outer_names + [simple]
        fqcn = self._fqcn(pkg, class_names)

        modifiers, annotations = self._modifiers(source, node)
        tvars = self._type_variables(source, node.child_by_field_name("type_parameters")) + outer_tvars

        methods: list[MethodDecl] = []
        nested: list[TypeDecl] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for member in self._members(body):
                if member.type == "method_declaration":
                    methods.append(self._method(source, member, fqcn, tvars))
                elif member.type in TYPE_KINDS:
                    nested.append(self._type(source, member, pkg, class_names, tvars))

        return TypeDecl(
            name=simple,
            fqn=fqcn,
            kind=TYPE_KINDS[node.type],
            modifiers=modifiers,
            annotations=annotations,
            type_variables=tvars,
            span=node_span(node),
            methods=tuple(methods),
            nested=tuple(nested),
        )

    def _method(self, source: bytes, node: Node, fqcn: str,
                type_tvars: tuple[tuple[str, str], ...]) -> MethodDecl:
        """
        Pulls out a method's name, modifiers, annotations, signature pieces
        and the spans the synthesizer splices with.
        """
        name_node = node.child_by_field_name("name")
        type_node = node.child_by_field_name("type")
        dims_node = node.child_by_field_name("dimensions")
        body_node = node.child_by_field_name("body")
        throws_node = child_of_type(node, "throws")

        modifiers, annotations = self._modifiers(source, node)

        # The header starts at whatever follows the modifiers (type parameters or return type)
        header_start = node.start_byte
        for child in node.children:
            if child.type != "modifiers" and child.type not in COMMENT_TYPES:
                header_start = child.start_byte
                break
        header_end = body_node.start_byte if body_node is not None else node.end_byte

        return_type = node_text(source, type_node) if type_node else "void"
        if dims_node is not None:
            return_type += node_text(source, dims_node)

        line, col = node_point(node)
        return MethodDecl(
            name=node_text(source, name_node) if name_node else "<anonymous>",
            return_type=return_type,
            parameters=self._parameters(source, node.child_by_field_name("parameters")),
            throws=tuple(node_text(source, t) for t in code_children(throws_node)) if throws_node else (),
            modifiers=modifiers,
            annotations=annotations,
            type_variables=self._type_variables(source, node.child_by_field_name("type_parameters")) + type_tvars,
            enclosing=fqcn,
            span=node_span(node),
            header_span=Span(header_start, header_end),
            name_span=node_span(name_node) if name_node else Span(header_start, header_start),
            throws_span=node_span(throws_node) if throws_node else None,
            body_span=node_span(body_node) if body_node else None,
            line=line,
            col=col,
        )

    def _parameters(self, source: bytes, params_node: Optional[Node]) -> tuple[Parameter, ...]:
        if params_node is None:
            return ()
        params = []
        for p in code_children(params_node):
            if p.type == "formal_parameter":
                p_type = p.child_by_field_name("type")
                p_name = p.child_by_field_name("name")
                p_dims = p.child_by_field_name("dimensions")
                type_s = node_text(source, p_type) if p_type else "Object"
                if p_dims is not None:
                    # C-style "int a[]" is folded into the type
                    type_s += "".join(node_text(source, p_dims).split())
                params.append(Parameter(type_s, node_text(source, p_name) if p_name else "arg"))
            elif p.type == "spread_parameter":
                declarator = child_of_type(p, "variable_declarator")
                type_nodes = [
                    c for c in code_children(p)
                    if c.type not in ("modifiers", "variable_declarator")
                ]
                p_name = declarator.child_by_field_name("name") if declarator else None
                type_s = node_text(source, type_nodes[0]) if type_nodes else "Object"
                params.append(Parameter(type_s + "...", node_text(source, p_name) if p_name else "args"))
            # receiver parameters ("Foo this") carry no argument
        return tuple(params)
