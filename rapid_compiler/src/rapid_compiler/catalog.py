from dataclasses import dataclass
from typing import Iterable, Iterator

from rapid_compiler.src.rapid_compiler.errors import CatalogFrozenError, DuplicateMethodError


@dataclass(frozen=True)
class MethodDescriptor:
    """Offload metadata of one eligible method, as the orchestrator sees it."""
    class_name: str  # FQN of the enclosing type
    method_name: str
    parameter_types: tuple[str, ...] = ()  # only used to tell overloads apart
    remote_pairs: tuple[tuple[str, str], ...] = ()
    qos_triples: tuple[tuple[str, str, str], ...] = ()

    @property
    def key(self) -> tuple[str, str, tuple[str, ...]]:
        return (self.class_name, self.method_name, self.parameter_types)


class Catalog:
    """
    Append-only journal of MethodDescriptors, grouped by class FQN.

    Classes and methods keep their insertion order. Adding a descriptor whose
    (class, method, parameter types) key is already present raises
    DuplicateMethodError. Once frozen, the catalog refuses writes until reset.
    """

    def __init__(self):
        self._classes: dict[str, list[MethodDescriptor]] = {}
        self._keys: set[tuple] = set()
        self._frozen = False

    def __contains__(self, key) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[MethodDescriptor]:
        for methods in self._classes.values():
            yield from methods

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add(self, descriptor: MethodDescriptor):
        if self._frozen:
            raise CatalogFrozenError("catalog is frozen")
        if descriptor.key in self._keys:
            raise DuplicateMethodError(descriptor.key)
        self._keys.add(descriptor.key)
        self._classes.setdefault(descriptor.class_name, []).append(descriptor)

    def extend(self, descriptors: Iterable[MethodDescriptor]):
        """Adds all descriptors or none of them."""
        descriptors = list(descriptors)
        if self._frozen:
            raise CatalogFrozenError("catalog is frozen")
        seen = set(self._keys)
        for d in descriptors:
            if d.key in seen:
                raise DuplicateMethodError(d.key)
            seen.add(d.key)
        for d in descriptors:
            self.add(d)

    def classes(self) -> list[tuple[str, list[MethodDescriptor]]]:
        return [(name, list(methods)) for name, methods in self._classes.items()]

    def freeze(self):
        self._frozen = True

    def reset(self):
        self._classes.clear()
        self._keys.clear()
        self._frozen = False


# The per-process catalog the driver fills unless it is handed another one
default_catalog = Catalog()
