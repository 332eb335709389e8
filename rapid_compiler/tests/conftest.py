import pytest

from rapid_compiler.src.rapid_compiler.catalog import Catalog
from rapid_compiler.src.rapid_compiler.java_parser import JavaParser
from rapid_compiler.src.rapid_compiler.rewriter import FileRewriter


@pytest.fixture(scope="session")
def parser():
    return JavaParser()


@pytest.fixture
def catalog():
    return Catalog()


@pytest.fixture
def rewriter(catalog, parser):
    return FileRewriter(catalog=catalog, parser=parser)


@pytest.fixture
def parse(parser):
    """Parses a Java source string into a CompilationUnit."""
    def _parse(source: str, path: str = "Test.java"):
        return parser.parse_unit(source.encode("utf-8"), path)
    return _parse
