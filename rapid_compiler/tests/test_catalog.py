import pytest

from rapid_compiler.src.rapid_compiler.catalog import Catalog, MethodDescriptor
from rapid_compiler.src.rapid_compiler.errors import CatalogFrozenError, DuplicateMethodError


def descriptor(cls, name, params=()):
    return MethodDescriptor(class_name=cls, method_name=name, parameter_types=params)


def test_insertion_order_is_kept():
    catalog = Catalog()
    catalog.add(descriptor("b.Second", "x"))
    catalog.add(descriptor("a.First", "z"))
    catalog.add(descriptor("b.Second", "a"))

    classes = catalog.classes()
    assert [name for name, _ in classes] == ["b.Second", "a.First"]
    assert [m.method_name for m in classes[0][1]] == ["x", "a"]
    assert len(catalog) == 3
    assert [m.method_name for m in catalog] == ["x", "a", "z"]


def test_duplicate_is_rejected():
    catalog = Catalog()
    catalog.add(descriptor("a.A", "f", ("int",)))
    with pytest.raises(DuplicateMethodError):
        catalog.add(descriptor("a.A", "f", ("int",)))
    assert len(catalog) == 1


def test_overloads_are_distinct():
    catalog = Catalog()
    catalog.add(descriptor("a.A", "f", ("int",)))
    catalog.add(descriptor("a.A", "f", ("String",)))
    assert ("a.A", "f", ("String",)) in catalog
    assert len(catalog) == 2


def test_extend_is_all_or_nothing():
    catalog = Catalog()
    catalog.add(descriptor("a.A", "g"))
    with pytest.raises(DuplicateMethodError):
        catalog.extend([descriptor("a.A", "f"), descriptor("a.A", "g")])
    assert [m.method_name for m in catalog] == ["g"]


def test_frozen_catalog_refuses_writes_until_reset():
    catalog = Catalog()
    catalog.add(descriptor("a.A", "f"))
    catalog.freeze()
    with pytest.raises(CatalogFrozenError):
        catalog.add(descriptor("a.A", "g"))

    catalog.reset()
    assert not catalog.frozen
    assert len(catalog) == 0
    catalog.add(descriptor("a.A", "f"))
    assert len(catalog) == 1
