#!/usr/bin/env python3
"""
RAPID offload compiler
----------------------
Finds Java methods annotated with @Remote (and optionally @QoS) and rewrites
them so that each call first tries remote execution through the runtime and
falls back to a private local copy of the original body. Prints the XML
descriptor of every offloaded method to stdout.

USAGE EXAMPLES
--------------
# 1) Rewrite a single file (leaves Foo.java.old next to it):
rapid-compiler src/com/acme/Foo.java

# 2) Rewrite a whole project (snapshot in ~/.rapid-compiler-backups/<project>):
rapid-compiler /path/to/java/project > rapid.xml

Restoring: rename every <file>.old back to <file>.

DEPENDENCIES
------------
    pip install tree-sitter tree-sitter-java
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from rapid_compiler.src.rapid_compiler import config
from rapid_compiler.src.rapid_compiler.catalog import Catalog
from rapid_compiler.src.rapid_compiler.driver import run
from rapid_compiler.src.rapid_compiler.errors import PathMissing, SnapshotFailed
from rapid_compiler.src.rapid_compiler.outputs.output import print_summary, to_xml
from rapid_compiler.src.rapid_compiler.rewriter import FileRewriter

logger = logging.getLogger("rapid_compiler")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rapid-compiler",
        description="Wrap @Remote Java methods with remote-execution dispatch and emit the offload descriptor.",
    )
    parser.add_argument("path", help="a .java file or the folder of a Java project")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every offloaded method")
    parser.add_argument("--raw-xml", action="store_true",
                        help="write annotation values verbatim instead of XML-escaping them")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
    )

    catalog = Catalog()
    rewriter = FileRewriter(catalog=catalog, target=config.RuntimeTarget.from_env())
    try:
        report = run(args.path, rewriter)
    except (PathMissing, SnapshotFailed) as e:
        logger.error("%s", e)
        return 1

    catalog.freeze()
    sys.stdout.write(to_xml(catalog, config.application_name(), escape=not args.raw_xml))
    print_summary(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
