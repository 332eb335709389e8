import sys
from typing import Optional, TextIO
from xml.sax.saxutils import escape as xml_escape

from rapid_compiler.src.rapid_compiler.catalog import Catalog
from rapid_compiler.src.rapid_compiler.config import DEFAULT_APPLICATION_NAME, QOS_ANNOTATION, REMOTE_ANNOTATION
from rapid_compiler.src.rapid_compiler.driver import RunReport

XML_ENTITIES = {'"': "&quot;"}


# --- XML descriptor & run summary -----------------------------------------------

def to_xml(catalog: Catalog, application_name: str = DEFAULT_APPLICATION_NAME, escape: bool = True) -> str:
    """
    Serializes the catalog to the descriptor the runtime orchestrator reads.

    Classes and methods come out in insertion order, one tab per nesting
    level, LF line endings and a final newline. With escape=False values are
    written exactly as they appear in the source.
    """
    def text(value: str) -> str:
        return xml_escape(value, XML_ENTITIES) if escape else value

    lines = ["<application>", f"\t<name>{text(application_name)}</name>"]
    for class_name, methods in catalog.classes():
        lines.append("\t<class>")
        lines.append(f"\t\t<name>{text(class_name)}</name>")
        for md in methods:
            lines.append("\t\t<method>")
            lines.append(f"\t\t\t<name>{text(md.method_name)}</name>")

            if md.remote_pairs:
                lines.append(f"\t\t\t<{REMOTE_ANNOTATION}>")
                for element, value in md.remote_pairs:
                    lines.append(f"\t\t\t\t<{element}>{text(value)}</{element}>")
                lines.append(f"\t\t\t</{REMOTE_ANNOTATION}>")
            else:
                lines.append(f"\t\t\t<{REMOTE_ANNOTATION}></{REMOTE_ANNOTATION}>")

            if md.qos_triples:
                lines.append(f"\t\t\t<{QOS_ANNOTATION}>")
                for term, operator, threshold in md.qos_triples:
                    lines.append(f"\t\t\t\t<term>{text(term)}</term>")
                    lines.append(f"\t\t\t\t<operator>{text(operator)}</operator>")
                    lines.append(f"\t\t\t\t<threshold>{text(threshold)}</threshold>")
                lines.append(f"\t\t\t</{QOS_ANNOTATION}>")
            else:
                lines.append(f"\t\t\t<{QOS_ANNOTATION}></{QOS_ANNOTATION}>")

            lines.append("\t\t</method>")
        lines.append("\t</class>")
    lines.append("</application>")
    return "\n".join(lines) + "\n"


def print_summary(report: RunReport, stream: Optional[TextIO] = None):
    """
    Human-friendly printout of what the run did.
    """
    stream = stream or sys.stderr
    print("\n=== SUMMARY ===", file=stream)
    if report.snapshot:
        print(f" - project snapshot: {report.snapshot}", file=stream)
    print(f" - files rewritten:  {len(report.rewritten)}", file=stream)
    print(f" - files unchanged:  {len(report.unchanged)}", file=stream)
    print(f" - files failed:     {len(report.failed)}", file=stream)
    if report.skipped:
        print(f" - paths skipped:    {len(report.skipped)}", file=stream)
    print(f" - methods offloaded: {report.methods}", file=stream)
    for path in report.failed:
        print(f"   failed: {path}", file=stream)
