import logging
from dataclasses import dataclass
from typing import Optional

from rapid_compiler.src.rapid_compiler.config import QOS_ANNOTATION, QOS_ELEMENTS, REMOTE_ANNOTATION
from rapid_compiler.src.rapid_compiler.errors import RecognitionError
from rapid_compiler.src.rapid_compiler.models.source_models import Annotation, MethodDecl, TypeDecl

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecognitionResult:
    eligible: bool
    remote_pairs: tuple[tuple[str, str], ...] = ()
    qos_triples: tuple[tuple[str, str, str], ...] = ()


NOT_ELIGIBLE = RecognitionResult(eligible=False)


def find_annotation(method: MethodDecl, simple_name: str, where: str = "") -> Optional[Annotation]:
    """
    First annotation on the method whose last name segment matches. A repeated
    annotation is reported and every occurrence after the first is ignored.
    """
    matches = [a for a in method.annotations if a.simple_name == simple_name]
    if len(matches) > 1:
        logger.warning("%s: @%s appears %d times, using the first one", where, simple_name, len(matches))
    return matches[0] if matches else None


def qos_triples(annotation: Annotation) -> tuple[tuple[str, str, str], ...]:
    """
    Zips the parallel terms/operators/thresholds arrays of a @QoS annotation.
    Raises RecognitionError if they are not the same length.
    """
    terms = annotation.element_items("terms") or ()
    operators = annotation.element_items("operators") or ()
    thresholds = annotation.element_items("thresholds") or ()
    if not len(terms) == len(operators) == len(thresholds):
        raise RecognitionError(
            f"@{QOS_ANNOTATION} arrays differ in length "
            f"(terms={len(terms)}, operators={len(operators)}, thresholds={len(thresholds)})"
        )
    return tuple(zip(terms, operators, thresholds))


def recognize(method: MethodDecl, type_decl: TypeDecl, origin: str = "") -> RecognitionResult:
    """
    Decides whether a method is offload-eligible and extracts its metadata.

    A method is eligible iff it carries @Remote and has a body to keep
    (not abstract, not native). @Remote element pairs are passed through in
    declaration order; @QoS arrays become (term, operator, threshold) rows.
    Every rejection is logged, nothing is raised.
    """
    where = f"{origin}: {type_decl.fqn}.{method.name}" if origin else f"{type_decl.fqn}.{method.name}"

    remote = find_annotation(method, REMOTE_ANNOTATION, where)
    qos = find_annotation(method, QOS_ANNOTATION, where)

    if remote is None:
        if qos is not None:
            logger.warning("%s: @%s without @%s, method is not offloaded", where, QOS_ANNOTATION, REMOTE_ANNOTATION)
        return NOT_ELIGIBLE

    if method.is_native or method.is_abstract:
        logger.warning("%s: @%s on an abstract or native method is ignored", where, REMOTE_ANNOTATION)
        return NOT_ELIGIBLE

    triples: tuple[tuple[str, str, str], ...] = ()
    if qos is not None:
        for key, _ in qos.items:
            if key not in QOS_ELEMENTS:
                logger.warning("%s: unknown @%s element '%s' ignored", where, QOS_ANNOTATION, key)
        try:
            triples = qos_triples(qos)
        except RecognitionError as e:
            logger.error("%s: %s, method skipped", where, e)
            return NOT_ELIGIBLE

    return RecognitionResult(eligible=True, remote_pairs=remote.elements, qos_triples=triples)
