import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Optional

from rapid_compiler.src.rapid_compiler import config
from rapid_compiler.src.rapid_compiler.errors import (
    BackupConflict,
    PathMissing,
    RewriteError,
    SnapshotFailed,
)
from rapid_compiler.src.rapid_compiler.inputs.directory_scanning import is_java_file, iter_java_files
from rapid_compiler.src.rapid_compiler.rewriter import FileRewriter

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    rewritten: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    methods: int = 0
    snapshot: Optional[str] = None


def snapshot_project(project_dir: str, backup_root: Optional[str] = None) -> Optional[str]:
    """
    Copies the whole project to <backup_root>/<project-name> before anything
    is rewritten. An existing snapshot is reported as a conflict and kept;
    None is returned in that case. A failed copy raises SnapshotFailed.
    """
    root = os.path.abspath(backup_root or config.backup_root())
    project = os.path.abspath(project_dir)
    dest = os.path.join(root, os.path.basename(project.rstrip(os.sep)))

    if os.path.commonpath([project, dest]) == project:
        raise SnapshotFailed(dest, ValueError("backup folder lies inside the project"))
    if os.path.lexists(dest):
        logger.error("%s", BackupConflict(project, dest))
        return None
    try:
        os.makedirs(root, exist_ok=True)
        shutil.copytree(project, dest, symlinks=True)
    except (OSError, shutil.Error) as e:
        raise SnapshotFailed(dest, e) from e
    logger.info("Project backed up to %s", dest)
    return dest


def process_file(rewriter: FileRewriter, path: str, report: RunReport):
    """Rewrites one file; per-file failures are logged and the run goes on."""
    try:
        result = rewriter.rewrite(path)
    except RewriteError as e:
        logger.error("%s", e)
        report.failed.append(path)
        return
    if result.changed:
        report.rewritten.append(path)
    else:
        report.unchanged.append(path)
    report.methods += len(result.descriptors)


def run(path: str, rewriter: Optional[FileRewriter] = None, backup_root: Optional[str] = None) -> RunReport:
    """
    Processes a single .java file or every .java file below a directory.
    Directory runs snapshot the project first. Raises PathMissing for a path
    that does not exist and SnapshotFailed if the snapshot cannot be taken.
    """
    rewriter = rewriter or FileRewriter(target=config.RuntimeTarget.from_env())
    report = RunReport()
    logger.info("Processing: %s", path)

    if not os.path.exists(path):
        raise PathMissing(path)

    if os.path.isdir(path):
        report.snapshot = snapshot_project(path, backup_root)
        for java_file in iter_java_files(path):
            process_file(rewriter, java_file, report)
    elif is_java_file(path):
        process_file(rewriter, path, report)
    else:
        logger.warning("Given path is not a Java file: %s", path)
        report.skipped.append(path)
    return report
