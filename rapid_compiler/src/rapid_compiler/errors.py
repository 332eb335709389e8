# --- Error types --------------------------------------------------------------
from typing import Optional


class RewriteError(Exception):
    """Base class for failures that abort the processing of one file (or the run)."""


class ParseError(RewriteError):
    """The source could not be parsed; the file is left untouched."""

    def __init__(self, file: str, offset: int, message: str):
        self.file = file
        self.offset = offset
        self.message = message
        super().__init__(f"{file}: parse error at byte {offset}: {message}")


class SourceReadError(RewriteError):
    def __init__(self, path: str, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: could not read source: {cause}")


class BackupConflict(RewriteError):
    """A backup already exists where the rewriter would create one."""

    def __init__(self, path: str, backup: Optional[str] = None):
        self.path = path
        self.backup = backup or path
        super().__init__(
            f"{path}: backup {self.backup} already exists, "
            f"maybe you already have a previous version of this file"
        )


class WriteFailed(RewriteError):
    """
    Swapping in the new bytes failed. If backup is set the original was
    already moved there and is left in place for the operator.
    """

    def __init__(self, path: str, backup: Optional[str], cause: OSError):
        self.path = path
        self.backup = backup
        self.cause = cause
        where = f"the original is preserved at {backup}" if backup else "the original is untouched"
        super().__init__(f"{path}: could not write rewritten source ({cause}); {where}")


class PathMissing(RewriteError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File or folder does not exist: {path}")


class SnapshotFailed(RewriteError):
    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Could not back up the project to {path}: {cause}")


class DuplicateMethodError(RewriteError):
    def __init__(self, key: tuple):
        self.key = key
        class_name, method_name, parameter_types = key
        super().__init__(
            f"{class_name}.{method_name}({', '.join(parameter_types)}) is already in the catalog"
        )


class CatalogFrozenError(RuntimeError):
    """Raised when the catalog is written after it was frozen for emission."""


class RecognitionError(Exception):
    """An offload annotation is malformed; only the affected method is skipped."""
