"""
Project-wide constants and the runtime the generated code dispatches to.

Every value that names something in the generated Java (runtime class,
operation names, failure type) lives in RuntimeTarget so another runtime
can be targeted without touching the synthesizer. Environment variables
override the defaults:

    RAPID_RUNTIME_CLASS        fully qualified runtime handle class
    RAPID_RUNTIME_ACCESSOR     static accessor returning the handle ("" = static operations)
    RAPID_AVAILABILITY_METHOD  operation asking whether remote execution is possible
    RAPID_EXECUTE_METHOD       operation performing the remote call
    RAPID_FAILURE_CLASS        fully qualified remote-failure exception
    RAPID_BACKUP_ROOT          where project snapshots are written
    RAPID_APP_NAME             <name> of the emitted <application>
"""

import os
from dataclasses import dataclass

# Source files the rewriter looks at
JAVA_EXTENSION = ".java"

# Suffix of the per-file backup written by backup-and-swap
BACKUP_SUFFIX = ".old"

# Prefix of the private copy that keeps the original body
LOCAL_PREFIX = "localLocal_"

# Annotation simple names (package qualification is ignored)
REMOTE_ANNOTATION = "Remote"
QOS_ANNOTATION = "QoS"
QOS_ELEMENTS = ("terms", "operators", "thresholds")

# Per-user folder holding whole-project snapshots
BACKUP_DIR_NAME = ".rapid-compiler-backups"

DEFAULT_APPLICATION_NAME = "TODO"


@dataclass(frozen=True)
class RuntimeTarget:
    runtime_class: str = "eu.project.rapid.ac.RemoteRuntime"
    handle_accessor: str = "getInstance"
    availability_method: str = "isRemoteAvailable"
    execute_method: str = "executeRemote"
    failure_class: str = "eu.project.rapid.ac.RemoteExecutionException"

    @classmethod
    def from_env(cls) -> "RuntimeTarget":
        defaults = cls()
        return cls(
            runtime_class=os.environ.get("RAPID_RUNTIME_CLASS", defaults.runtime_class),
            handle_accessor=os.environ.get("RAPID_RUNTIME_ACCESSOR", defaults.handle_accessor),
            availability_method=os.environ.get("RAPID_AVAILABILITY_METHOD", defaults.availability_method),
            execute_method=os.environ.get("RAPID_EXECUTE_METHOD", defaults.execute_method),
            failure_class=os.environ.get("RAPID_FAILURE_CLASS", defaults.failure_class),
        )


def backup_root() -> str:
    """Folder for project snapshots, <home>/.rapid-compiler-backups unless overridden."""
    override = os.environ.get("RAPID_BACKUP_ROOT")
    if override:
        return override
    return os.path.join(os.path.expanduser("~"), BACKUP_DIR_NAME)


def application_name() -> str:
    return os.environ.get("RAPID_APP_NAME", DEFAULT_APPLICATION_NAME)
