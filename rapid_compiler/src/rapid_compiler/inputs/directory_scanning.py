# --- Directory scanning -------------------------------------------------------
import os
from typing import Iterator

from rapid_compiler.src.rapid_compiler.config import JAVA_EXTENSION


def is_java_file(path: str) -> bool:
    return path.endswith(JAVA_EXTENSION) and os.path.isfile(path)


def iter_java_files(root_dir: str) -> Iterator[str]:
    """
    Recursively yields all .java files under root_dir. Directories and files
    are visited in sorted order so that runs over the same tree are repeatable.
    """
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames.sort()
        for fn in sorted(filenames):
            if fn.endswith(JAVA_EXTENSION):
                yield os.path.join(dirpath, fn)
