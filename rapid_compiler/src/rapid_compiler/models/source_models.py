# --- Data models for a parsed compilation unit -------------------------------
from dataclasses import dataclass, field
from typing import Iterator, Optional


@dataclass(frozen=True)
class Span:
    """Half-open byte range [start, end) into the unit's source bytes."""
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class ImportDirective:
    name: str  # dotted name without the ".*" tail, e.g. "java.util"
    static: bool = False
    wildcard: bool = False  # True for "import java.util.*;"
    span: Optional[Span] = None

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class Annotation:
    """An annotation with its element/value pairs, values kept as source lexemes."""
    name: str  # as written, e.g. "Remote" or "eu.project.rapid.common.Remote"
    elements: tuple[tuple[str, str], ...] = ()  # ("value", '"x"') for single-value form
    # Same elements with array initializers split into item lexemes;
    # a non-array value becomes a one-item tuple.
    items: tuple[tuple[str, tuple[str, ...]], ...] = ()
    span: Optional[Span] = None

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def is_marker(self) -> bool:
        return not self.elements

    def element_items(self, name: str) -> Optional[tuple[str, ...]]:
        for key, values in self.items:
            if key == name:
                return values
        return None


@dataclass(frozen=True)
class Parameter:
    type: str  # type lexeme, e.g. "int", "List<String>", "String..."
    name: str

    @property
    def is_varargs(self) -> bool:
        return self.type.endswith("...")


@dataclass(frozen=True)
class MethodDecl:
    """A method declaration inside a type body."""
    name: str
    return_type: str
    parameters: tuple[Parameter, ...]
    throws: tuple[str, ...]
    modifiers: tuple[str, ...]  # keyword modifiers in source order
    annotations: tuple[Annotation, ...]
    type_variables: tuple[tuple[str, str], ...]  # (name, first bound lexeme), own then enclosing
    enclosing: str  # FQN of the enclosing type (identifier, not a pointer)
    span: Span  # whole declaration including annotations
    header_span: Span  # from type parameters / return type to the body (or ';')
    name_span: Span
    throws_span: Optional[Span]
    body_span: Optional[Span]  # None for abstract / native / interface methods
    line: int
    col: int

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_abstract(self) -> bool:
        return "abstract" in self.modifiers or self.body_span is None

    @property
    def is_native(self) -> bool:
        return "native" in self.modifiers

    @property
    def is_void(self) -> bool:
        return self.return_type == "void"

    @property
    def parameter_types(self) -> tuple[str, ...]:
        return tuple(p.type for p in self.parameters)


@dataclass(frozen=True)
class TypeDecl:
    """A class, interface or enum with its methods and nested types."""
    name: str
    fqn: str
    kind: str  # "class" | "interface" | "enum"
    modifiers: tuple[str, ...]
    annotations: tuple[Annotation, ...]
    type_variables: tuple[tuple[str, str], ...]  # own first, then enclosing types'
    span: Span
    methods: tuple[MethodDecl, ...] = ()
    nested: tuple["TypeDecl", ...] = ()

    def find_methods(self, name: str) -> list[MethodDecl]:
        return [m for m in self.methods if m.name == name]


@dataclass(frozen=True)
class CompilationUnit:
    path: str
    source: bytes
    package: Optional[str] = None
    package_span: Optional[Span] = None
    imports: tuple[ImportDirective, ...] = ()
    types: tuple[TypeDecl, ...] = field(default_factory=tuple)

    def iter_types(self) -> Iterator[TypeDecl]:
        """Yields every type declaration, outer before inner, in source order."""
        stack = list(reversed(self.types))
        while stack:
            decl = stack.pop()
            yield decl
            stack.extend(reversed(decl.nested))

    def text(self, span: Span) -> str:
        return self.source[span.start:span.end].decode("utf-8", errors="surrogateescape")
