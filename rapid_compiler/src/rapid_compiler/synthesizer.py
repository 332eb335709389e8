"""
Code synthesis for offloaded methods.

For an eligible method M the synthesizer replaces M's declaration with two
declarations:

    R  same modifiers (annotations dropped) and the same signature, its
       body asks the runtime handle whether remote execution is possible,
       tries it, and falls back to the local twin on a remote failure.
    L  the local twin: M's original header and body under the name
       LOCAL_PREFIX + name, made private.

R's throws clause is M's plus the runtime's remote-failure type. Imports
for the runtime handle and the failure type are planned once per unit and
added as a single insertion edit.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from rapid_compiler.src.rapid_compiler.config import LOCAL_PREFIX, RuntimeTarget
from rapid_compiler.src.rapid_compiler.models.source_models import (
    CompilationUnit,
    MethodDecl,
    Span,
    TypeDecl,
)


PRIMITIVE_WRAPPERS = {
    "boolean": "Boolean",
    "byte": "Byte",
    "char": "Character",
    "short": "Short",
    "int": "Integer",
    "long": "Long",
    "float": "Float",
    "double": "Double",
}

# Modifiers the private local twin keeps from the original
TWIN_MODIFIERS = ("static", "synchronized", "strictfp")


@dataclass(frozen=True)
class Edit:
    """Replace source bytes [start, end) with text."""
    start: int
    end: int
    text: str


def apply_edits(source: bytes, edits: Iterable[Edit]) -> bytes:
    """
    Applies non-overlapping edits in descending start order so that the
    offsets of the edits still to apply stay valid.
    """
    out = source
    limit = len(source)
    for edit in sorted(edits, key=lambda e: (e.start, e.end), reverse=True):
        if edit.end > limit or edit.start > edit.end:
            raise ValueError(f"overlapping or inverted edit at {edit.start}..{edit.end}")
        out = out[:edit.start] + edit.text.encode("utf-8", errors="surrogateescape") + out[edit.end:]
        limit = edit.start
    return out


def fresh_name(base: str, taken: Iterable[str]) -> str:
    """base, or base1, base2, ... whichever is first not in taken."""
    taken = set(taken)
    if base not in taken:
        return base
    n = 1
    while f"{base}{n}" in taken:
        n += 1
    return f"{base}{n}"


def erase_type(lexeme: str, type_variables: Sequence[tuple[str, str]] = ()) -> str:
    """
    Erasure of a type lexeme, usable in front of ".class".

    Type arguments are dropped, a type variable becomes the erasure of its
    first bound, and varargs count as one more array dimension:
    "List<String>" -> "List", "T[]" with T extends Number -> "Number[]",
    "String..." -> "String[]".
    """
    text = "".join(lexeme.split())
    dims = 0
    if text.endswith("..."):
        text = text[:-3]
        dims += 1

    base = []
    depth = 0
    for ch in text:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        elif depth == 0:
            base.append(ch)
    text = "".join(base)

    while text.endswith("[]"):
        text = text[:-2]
        dims += 1

    bounds: dict[str, str] = {}
    for name, bound in type_variables:
        bounds.setdefault(name, bound)
    if text in bounds:
        rest = [tv for tv in type_variables if tv[0] != text]
        text = erase_type(bounds[text], rest)

    return text + "[]" * dims


def box(type_lexeme: str, expr: str) -> str:
    wrapper = PRIMITIVE_WRAPPERS.get(type_lexeme.strip())
    return f"{wrapper}.valueOf({expr})" if wrapper else expr


# --- Imports -------------------------------------------------------------------

class ImportPlan:
    """
    Decides how generated code refers to each required type and which
    imports the unit is missing.

    A type is referenced by simple name unless another type with that simple
    name is already imported or declared in the unit, in which case its fully
    qualified name is used and nothing is imported.
    """

    def __init__(self, unit: CompilationUnit, required: Iterable[str]):
        self.references: dict[str, str] = {}
        self.missing: list[str] = []

        single = {imp.simple_name: imp.name for imp in unit.imports if not imp.static and not imp.wildcard}
        wildcards = {imp.name for imp in unit.imports if imp.wildcard and not imp.static}
        top_level = {t.name for t in unit.types}
        declared = {t.name for t in unit.iter_types()}
        planned: dict[str, str] = {}

        for fqn in required:
            if fqn in self.references:
                continue
            pkg, _, simple = fqn.rpartition(".")
            owner = single.get(simple) or planned.get(simple)
            same_package = pkg == (unit.package or "")

            if owner == fqn:
                ref = simple
            elif owner is not None:
                ref = fqn
            elif simple in declared:
                ref = simple if same_package and simple in top_level else fqn
            elif same_package or pkg == "java.lang" or pkg in wildcards:
                ref = simple
            else:
                ref = simple
                self.missing.append(fqn)
            if ref == simple:
                planned[simple] = fqn
            self.references[fqn] = ref

    def edit(self, unit: CompilationUnit) -> Optional[Edit]:
        """Insertion edit adding the missing imports, or None if nothing is missing."""
        if not self.missing:
            return None
        lines = "\n".join(f"import {name};" for name in self.missing)
        if unit.imports and unit.imports[-1].span is not None:
            pos = unit.imports[-1].span.end
            return Edit(pos, pos, "\n" + lines)
        if unit.package_span is not None:
            pos = unit.package_span.end
            return Edit(pos, pos, "\n\n" + lines)
        return Edit(0, 0, lines + "\n\n")


# --- The Synthesizer -----------------------------------------------------------

class CodeSynthesizer:
    """Produces the wrapper + local twin edit for eligible methods of one unit."""

    def __init__(self, unit: CompilationUnit, target: Optional[RuntimeTarget] = None):
        self.unit = unit
        self.target = target or RuntimeTarget()
        self.imports = ImportPlan(unit, [self.target.runtime_class, self.target.failure_class])

    @property
    def runtime_ref(self) -> str:
        return self.imports.references[self.target.runtime_class]

    @property
    def failure_ref(self) -> str:
        return self.imports.references[self.target.failure_class]

    def import_edit(self) -> Optional[Edit]:
        return self.imports.edit(self.unit)

    def synthesize(self, method: MethodDecl, type_decl: TypeDecl) -> Edit:
        """
        Returns the edit replacing the method's declaration (annotations
        included) with the dispatch wrapper followed by the local twin. Any
        comment or javadoc in front of the declaration stays in front of the
        wrapper.
        """
        if method.body_span is None or method.is_native:
            raise ValueError(f"{type_decl.fqn}.{method.name} has no body to offload")
        indent = self._indent(method)
        step = "\t" if "\t" in indent else "    "
        wrapper = self.wrapper_text(method, type_decl, indent, step)
        twin = self.local_twin_text(method)
        return Edit(method.span.start, method.span.end, f"{wrapper}\n\n{indent}{twin}")

    def _indent(self, method: MethodDecl) -> str:
        source = self.unit.source
        line_start = source.rfind(b"\n", 0, method.span.start) + 1
        prefix = source[line_start:method.span.start]
        if prefix.strip():
            return ""
        return prefix.decode("utf-8", errors="surrogateescape")

    def throws_clause(self, method: MethodDecl) -> str:
        failure = self.failure_ref
        known = {failure, self.target.failure_class, self.target.failure_class.rpartition(".")[2]}
        names = list(method.throws)
        if not any("".join(t.split()) in known for t in names):
            names.append(failure)
        return "throws " + ", ".join(names)

    def signature_text(self, method: MethodDecl) -> str:
        """Modifiers without annotations, original header, widened throws clause."""
        header_end = method.throws_span.start if method.throws_span else method.header_span.end
        header = self.unit.text(Span(method.header_span.start, header_end)).rstrip()
        parts = list(method.modifiers) + [header, self.throws_clause(method)]
        return " ".join(parts)

    def wrapper_text(self, method: MethodDecl, type_decl: TypeDecl, indent: str, step: str) -> str:
        target = self.target
        inner = indent + step
        taken = {p.name for p in method.parameters}
        runtime_var = fresh_name("runtime", taken)
        error_var = fresh_name("e", taken | {runtime_var})

        type_tokens = ", ".join(f"{erase_type(p.type, method.type_variables)}.class" for p in method.parameters)
        arguments = ", ".join(box(p.type, p.name) for p in method.parameters)
        forwarded = ", ".join(p.name for p in method.parameters)

        lines = [f"{self.signature_text(method)} {{"]
        if target.handle_accessor:
            lines.append(f"{inner}{self.runtime_ref} {runtime_var} = {self.runtime_ref}.{target.handle_accessor}();")
            handle = runtime_var
        else:
            handle = self.runtime_ref

        call = (
            f"{handle}.{target.execute_method}({type_decl.name}.class, \"{method.name}\", "
            f"new Class<?>[] {{{type_tokens}}}, new Object[] {{{arguments}}})"
        )
        lines.append(f"{inner}if ({handle}.{target.availability_method}()) {{")
        lines.append(f"{inner}{step}try {{")
        if method.is_void:
            lines.append(f"{inner}{step * 2}{call};")
            lines.append(f"{inner}{step * 2}return;")
        else:
            cast = PRIMITIVE_WRAPPERS.get(method.return_type, method.return_type)
            lines.append(f"{inner}{step * 2}return ({cast}) {call};")
        lines.append(f"{inner}{step}}} catch ({self.failure_ref} {error_var}) {{")
        lines.append(f"{inner}{step * 2}// remote execution failed, run locally")
        lines.append(f"{inner}{step}}}")
        lines.append(f"{inner}}}")

        receiver = type_decl.name if method.is_static else "this"
        fallback = f"{receiver}.{LOCAL_PREFIX}{method.name}({forwarded});"
        lines.append(f"{inner}{fallback}" if method.is_void else f"{inner}return {fallback}")
        lines.append(f"{indent}}}")
        return "\n".join(lines)

    def local_twin_text(self, method: MethodDecl) -> str:
        """The original declaration, private and renamed, annotations dropped."""
        modifiers = ["private"] + [m for m in method.modifiers if m in TWIN_MODIFIERS]
        before_name = self.unit.text(Span(method.header_span.start, method.name_span.start))
        after_name = self.unit.text(Span(method.name_span.end, method.body_span.end))
        return f"{' '.join(modifiers)} {before_name}{LOCAL_PREFIX}{method.name}{after_name}"
