"""
Tests for the generated wrapper / local twin code.

Run with: pytest rapid_compiler/tests/test_synthesizer.py -v
"""

import pytest

from rapid_compiler.src.rapid_compiler.config import RuntimeTarget
from rapid_compiler.src.rapid_compiler.rewriter import FileRewriter
from rapid_compiler.src.rapid_compiler.synthesizer import (
    CodeSynthesizer,
    Edit,
    ImportPlan,
    apply_edits,
    box,
    erase_type,
    fresh_name,
)

RUNTIME = "eu.project.rapid.ac.RemoteRuntime"
FAILURE = "eu.project.rapid.ac.RemoteExecutionException"


@pytest.fixture
def offload(rewriter):
    """Runs the in-memory transformation and returns the new source text."""
    def _offload(source: str) -> str:
        result = rewriter.transform(source.encode("utf-8"), "Test.java")
        assert result.new_source is not None
        return result.new_source.decode("utf-8")
    return _offload


class TestHelpers:

    @pytest.mark.parametrize("lexeme, expected", [
        ("int", "int"),
        ("String", "String"),
        ("List<String>", "List"),
        ("Map<String, List<Integer>>", "Map"),
        ("Map.Entry<K, V>", "Map.Entry"),
        ("int[][]", "int[][]"),
        ("String...", "String[]"),
        ("List<String>[]", "List[]"),
        ("T", "Number"),
        ("T[]", "Number[]"),
        ("U", "Comparable"),
        ("X", "Object"),
    ])
    def test_erase_type(self, lexeme, expected):
        tvars = (("T", "Number"), ("U", "Comparable<U>"), ("X", "Object"))
        assert erase_type(lexeme, tvars) == expected

    def test_box(self):
        assert box("int", "a") == "Integer.valueOf(a)"
        assert box("char", "c") == "Character.valueOf(c)"
        assert box("int[]", "xs") == "xs"
        assert box("String", "s") == "s"

    def test_fresh_name(self):
        assert fresh_name("e", {"a"}) == "e"
        assert fresh_name("e", {"e", "e1"}) == "e2"

    def test_apply_edits_rejects_overlaps(self):
        with pytest.raises(ValueError):
            apply_edits(b"0123456789", [Edit(2, 6, "x"), Edit(4, 8, "y")])

    def test_apply_edits_descending(self):
        out = apply_edits(b"0123456789", [Edit(0, 0, "<"), Edit(3, 5, "--"), Edit(8, 10, "")])
        assert out == b"<012--567"


class TestImportPlan:

    def test_missing_imports(self, parse):
        plan = ImportPlan(parse("package a;\nclass A {}\n"), [RUNTIME, FAILURE])
        assert plan.missing == [RUNTIME, FAILURE]
        assert plan.references[RUNTIME] == "RemoteRuntime"

    def test_existing_and_wildcard_imports(self, parse):
        unit = parse("import eu.project.rapid.ac.*;\nimport eu.project.rapid.ac.RemoteRuntime;\nclass A {}\n")
        plan = ImportPlan(unit, [RUNTIME, FAILURE])
        assert plan.missing == []
        assert plan.edit(unit) is None

    def test_same_package(self, parse):
        plan = ImportPlan(parse("package eu.project.rapid.ac;\nclass A {}\n"), [RUNTIME, FAILURE])
        assert plan.missing == []

    def test_conflicting_simple_name_uses_fqn(self, parse):
        plan = ImportPlan(parse("import other.RemoteRuntime;\nclass A {}\n"), [RUNTIME, FAILURE])
        assert plan.references[RUNTIME] == RUNTIME
        assert plan.missing == [FAILURE]

    def test_insert_position_without_package(self, parse):
        unit = parse("class A {}\n")
        edit = ImportPlan(unit, [RUNTIME]).edit(unit)
        assert (edit.start, edit.end) == (0, 0)
        assert edit.text == f"import {RUNTIME};\n\n"


def test_marker_remote_on_static_void_method(offload):
    source = (
        "package demo;\n"
        "\n"
        "public class Hello {\n"
        "    @Remote\n"
        "    public static void foo() {\n"
        "        System.out.println(\"x\");\n"
        "    }\n"
        "}\n"
    )
    expected = (
        "package demo;\n"
        "\n"
        "import eu.project.rapid.ac.RemoteRuntime;\n"
        "import eu.project.rapid.ac.RemoteExecutionException;\n"
        "\n"
        "public class Hello {\n"
        "    public static void foo() throws RemoteExecutionException {\n"
        "        RemoteRuntime runtime = RemoteRuntime.getInstance();\n"
        "        if (runtime.isRemoteAvailable()) {\n"
        "            try {\n"
        "                runtime.executeRemote(Hello.class, \"foo\", new Class<?>[] {}, new Object[] {});\n"
        "                return;\n"
        "            } catch (RemoteExecutionException e) {\n"
        "                // remote execution failed, run locally\n"
        "            }\n"
        "        }\n"
        "        Hello.localLocal_foo();\n"
        "    }\n"
        "\n"
        "    private static void localLocal_foo() {\n"
        "        System.out.println(\"x\");\n"
        "    }\n"
        "}\n"
    )
    assert offload(source) == expected


def test_primitive_boxing_and_return_unboxing(offload):
    out = offload(
        "import java.util.List;\n"
        "class Calc {\n"
        "    @Remote\n"
        "    public int add(int a, long b, List<String> names) {\n"
        "        return a + (int) b;\n"
        "    }\n"
        "}\n"
    )
    assert (
        "return (Integer) runtime.executeRemote(Calc.class, \"add\", "
        "new Class<?>[] {int.class, long.class, List.class}, "
        "new Object[] {Integer.valueOf(a), Long.valueOf(b), names});"
    ) in out
    assert "        return this.localLocal_add(a, b, names);\n" in out
    assert "    private int localLocal_add(int a, long b, List<String> names) {\n        return a + (int) b;\n    }" in out
    assert "import java.util.List;\nimport eu.project.rapid.ac.RemoteRuntime;\n" in out


def test_checked_exceptions_are_widened(offload):
    out = offload(
        "import java.io.IOException;\n"
        "class Store {\n"
        "    @Remote\n"
        "    public String load(String name) throws IOException {\n"
        "        return name;\n"
        "    }\n"
        "}\n"
    )
    assert "public String load(String name) throws IOException, RemoteExecutionException {" in out
    assert "private String localLocal_load(String name) throws IOException {" in out


def test_runtime_failure_is_not_listed_twice(offload):
    out = offload(
        "import java.io.IOException;\n"
        "import eu.project.rapid.ac.RemoteExecutionException;\n"
        "class Store {\n"
        "    @Remote\n"
        "    public String load(String name) throws IOException, RemoteExecutionException {\n"
        "        return name;\n"
        "    }\n"
        "}\n"
    )
    assert "load(String name) throws IOException, RemoteExecutionException {" in out
    assert "RemoteExecutionException, RemoteExecutionException" not in out
    assert out.count("import eu.project.rapid.ac.RemoteExecutionException;") == 1


def test_generic_method(offload):
    out = offload(
        "import java.util.List;\n"
        "class Util {\n"
        "    @Remote\n"
        "    public <T extends Comparable<T>> T max(List<T> items, T[] extra, String... names) {\n"
        "        return items.get(0);\n"
        "    }\n"
        "}\n"
    )
    assert "public <T extends Comparable<T>> T max(List<T> items, T[] extra, String... names) throws" in out
    assert "new Class<?>[] {List.class, Comparable[].class, String[].class}" in out
    assert "return (T) runtime.executeRemote(Util.class, \"max\"," in out
    assert "private <T extends Comparable<T>> T localLocal_max(List<T> items, T[] extra, String... names) {" in out


def test_parameters_shadowing_synthesized_locals(offload):
    out = offload(
        "class Svc {\n"
        "    @Remote\n"
        "    void call(String runtime, int e) {\n"
        "    }\n"
        "}\n"
    )
    assert "RemoteRuntime runtime1 = RemoteRuntime.getInstance();" in out
    assert "if (runtime1.isRemoteAvailable())" in out
    assert "catch (RemoteExecutionException e1)" in out
    assert "new Object[] {runtime, Integer.valueOf(e)}" in out
    assert "this.localLocal_call(runtime, e);" in out


def test_annotations_removed_javadoc_kept(offload):
    out = offload(
        "class Svc {\n"
        "    /** Does work. */\n"
        "    @Override\n"
        "    @Remote(name = \"svc\")\n"
        "    @QoS(terms = {\"cpu\"}, operators = {\">\"}, thresholds = {\"5\"})\n"
        "    public synchronized final String toString() {\n"
        "        return \"svc\";\n"
        "    }\n"
        "}\n"
    )
    assert "@" not in out
    assert "    /** Does work. */\n    public synchronized final String toString() throws" in out
    assert "    private synchronized String localLocal_toString() {" in out


def test_interface_default_method(offload):
    out = offload(
        "interface Svc {\n"
        "    @Remote\n"
        "    default int twice(int x) {\n"
        "        return 2 * x;\n"
        "    }\n"
        "}\n"
    )
    assert "    default int twice(int x) throws RemoteExecutionException {" in out
    assert "Svc.class, \"twice\"" in out
    assert "        return this.localLocal_twice(x);" in out
    assert "    private int localLocal_twice(int x) {" in out


def test_tab_indented_source(offload):
    out = offload("class T {\n\t@Remote\n\tvoid f() {\n\t}\n}\n")
    assert "\tvoid f() throws RemoteExecutionException {\n\t\tRemoteRuntime runtime" in out
    assert "\n\t\tthis.localLocal_f();\n\t}\n\n\tprivate void localLocal_f() {\n\t}\n}" in out


def test_static_runtime_operations(parse):
    unit = parse("class Svc {\n    @Remote\n    boolean ok() { return true; }\n}\n")
    synthesizer = CodeSynthesizer(unit, RuntimeTarget(
        runtime_class="org.offload.Offloader",
        handle_accessor="",
        availability_method="canOffload",
        execute_method="offload",
        failure_class="org.offload.OffloadFailure",
    ))
    type_decl = unit.types[0]
    edit = synthesizer.synthesize(type_decl.methods[0], type_decl)
    assert "if (Offloader.canOffload()) {" in edit.text
    assert "return (Boolean) Offloader.offload(Svc.class, \"ok\", new Class<?>[] {}, new Object[] {});" in edit.text
    assert "catch (OffloadFailure e)" in edit.text
    assert "Offloader runtime" not in edit.text
    assert synthesizer.imports.missing == ["org.offload.Offloader", "org.offload.OffloadFailure"]


def test_overloads_get_separate_twins(parser, catalog):
    rewriter = FileRewriter(catalog=catalog, parser=parser)
    result = rewriter.transform(
        b"class O {\n"
        b"    @Remote\n    int f(int a) { return a; }\n"
        b"    @Remote\n    int f(String s) { return 0; }\n"
        b"}\n",
        "O.java",
    )
    out = result.new_source.decode("utf-8")
    assert "private int localLocal_f(int a) { return a; }" in out
    assert "private int localLocal_f(String s) { return 0; }" in out
    assert [d.parameter_types for d in result.descriptors] == [("int",), ("String",)]
