import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Optional

from rapid_compiler.src.rapid_compiler.catalog import Catalog, MethodDescriptor, default_catalog
from rapid_compiler.src.rapid_compiler.config import BACKUP_SUFFIX, LOCAL_PREFIX, RuntimeTarget
from rapid_compiler.src.rapid_compiler.errors import (
    BackupConflict,
    RewriteError,
    SourceReadError,
    WriteFailed,
)
from rapid_compiler.src.rapid_compiler.java_parser import JavaParser
from rapid_compiler.src.rapid_compiler.models.source_models import CompilationUnit, MethodDecl, TypeDecl
from rapid_compiler.src.rapid_compiler.recognizer import recognize
from rapid_compiler.src.rapid_compiler.synthesizer import CodeSynthesizer, apply_edits

logger = logging.getLogger(__name__)


@dataclass
class Transformation:
    """Outcome of rewriting source bytes in memory."""
    unit: CompilationUnit
    new_source: Optional[bytes] = None  # None when nothing was offloaded
    descriptors: list[MethodDescriptor] = field(default_factory=list)


@dataclass
class RewriteResult:
    path: str
    new_source: Optional[bytes] = None
    descriptors: list[MethodDescriptor] = field(default_factory=list)
    recovered: bool = False  # descriptors were re-read from an existing backup

    @property
    def changed(self) -> bool:
        return self.new_source is not None


def read_source(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise SourceReadError(path, e) from e


def backup_and_swap(path: str, data: bytes) -> str:
    """
    Moves path to path + ".old" and writes data to path.

    An existing backup aborts with BackupConflict before anything is touched.
    If writing fails after the move, the backup is left where it is and
    WriteFailed is raised; nothing is restored. Returns the backup path.
    """
    backup = path + BACKUP_SUFFIX
    if os.path.lexists(backup):
        raise BackupConflict(path, backup)
    try:
        os.rename(path, backup)
    except OSError as e:
        raise WriteFailed(path, None, e) from e
    try:
        with open(path, "wb") as f:
            f.write(data)
        shutil.copymode(backup, path)
    except OSError as e:
        raise WriteFailed(path, backup, e) from e
    return backup


def has_local_twin(method: MethodDecl, type_decl: TypeDecl) -> bool:
    """True if the type already declares the private copy this method would get."""
    twin = LOCAL_PREFIX + method.name
    return any(
        m.name == twin and m.parameter_types == method.parameter_types
        for m in type_decl.methods
    )


class FileRewriter:
    """
    Per-file pipeline: parse, recognize, synthesize, splice, swap, catalog.

    Per-file failures are raised as RewriteError subclasses and leave both
    the file and the catalog untouched; method-level problems are logged and
    only skip the method.
    """

    def __init__(self, catalog: Optional[Catalog] = None, target: Optional[RuntimeTarget] = None,
                 parser: Optional[JavaParser] = None):
        self.catalog = catalog if catalog is not None else default_catalog
        self.target = target or RuntimeTarget()
        self.parser = parser or JavaParser()

    def transform(self, source: bytes, origin: str = "<memory>") -> Transformation:
        """
        Rewrites source bytes without touching the filesystem or the catalog.
        Raises ParseError if the unit cannot be parsed.
        """
        unit = self.parser.parse_unit(source, origin)
        synthesizer = CodeSynthesizer(unit, self.target)

        edits = []
        descriptors: list[MethodDescriptor] = []
        seen: set[tuple] = set()
        for type_decl in unit.iter_types():
            for method in type_decl.methods:
                result = recognize(method, type_decl, origin)
                if not result.eligible:
                    continue
                where = f"{origin}: {type_decl.fqn}.{method.name}"
                if has_local_twin(method, type_decl):
                    logger.warning("%s: already offloaded (%s%s exists), skipped", where, LOCAL_PREFIX, method.name)
                    continue
                descriptor = MethodDescriptor(
                    class_name=type_decl.fqn,
                    method_name=method.name,
                    parameter_types=method.parameter_types,
                    remote_pairs=result.remote_pairs,
                    qos_triples=result.qos_triples,
                )
                if descriptor.key in self.catalog or descriptor.key in seen:
                    logger.error("%s: method is already in the catalog, skipped", where)
                    continue
                seen.add(descriptor.key)
                edits.append(synthesizer.synthesize(method, type_decl))
                descriptors.append(descriptor)
                logger.info("%s: offloading", where)

        if not edits:
            return Transformation(unit=unit)

        import_edit = synthesizer.import_edit()
        if import_edit is not None:
            edits.append(import_edit)
        return Transformation(unit=unit, new_source=apply_edits(source, edits), descriptors=descriptors)

    def rewrite(self, path: str) -> RewriteResult:
        """
        Rewrites one file in place with backup-and-swap and appends its
        descriptors to the catalog once the new bytes are written.
        """
        source = read_source(path)
        transformation = self.transform(source, path)

        if transformation.new_source is None:
            recovered = self._recover_from_backup(path, transformation.unit)
            return RewriteResult(path, descriptors=recovered, recovered=bool(recovered))

        backup = backup_and_swap(path, transformation.new_source)
        self.catalog.extend(transformation.descriptors)
        logger.info("%s: rewritten, original kept at %s", path, backup)
        return RewriteResult(path, new_source=transformation.new_source, descriptors=transformation.descriptors)

    def _recover_from_backup(self, path: str, unit: CompilationUnit) -> list[MethodDescriptor]:
        """
        For a file rewritten by an earlier run, re-enters the descriptors of
        its wrapped methods by reading their annotations from path + ".old".
        """
        wanted = {
            (t.fqn, m.name, m.parameter_types)
            for t in unit.iter_types()
            for m in t.methods
            if not m.name.startswith(LOCAL_PREFIX) and has_local_twin(m, t)
        }
        if not wanted:
            return []

        backup = path + BACKUP_SUFFIX
        if not os.path.isfile(backup):
            logger.info("%s: offloaded methods found but no %s to read their metadata from", path, backup)
            return []
        try:
            old_unit = self.parser.parse_unit(read_source(backup), backup)
        except RewriteError as e:
            logger.warning("%s: could not recover offload metadata: %s", path, e)
            return []

        descriptors = []
        for type_decl in old_unit.iter_types():
            for method in type_decl.methods:
                key = (type_decl.fqn, method.name, method.parameter_types)
                if key not in wanted or key in self.catalog:
                    continue
                result = recognize(method, type_decl, backup)
                if result.eligible:
                    descriptors.append(MethodDescriptor(
                        class_name=type_decl.fqn,
                        method_name=method.name,
                        parameter_types=method.parameter_types,
                        remote_pairs=result.remote_pairs,
                        qos_triples=result.qos_triples,
                    ))
        self.catalog.extend(descriptors)
        if descriptors:
            logger.info("%s: %d offloaded method(s) recovered from %s", path, len(descriptors), backup)
        return descriptors
