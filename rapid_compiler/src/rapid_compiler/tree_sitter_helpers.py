# --- Tree-sitter plumbing ----------------------------------------------------
from typing import Optional

from tree_sitter import Node

from rapid_compiler.src.rapid_compiler.models.source_models import Span

COMMENT_TYPES = {"line_comment", "block_comment", "comment"}


def node_text(source_bytes: bytes, node) -> str:
    """
    Converts a node's [start_byte:end_byte] into the corresponding string.
    Tree-sitter nodes only store byte offsets, so we slice the original source.
    """
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="surrogateescape")


def node_point(node) -> tuple[int, int]:
    """
    Returns the (line, column) of a node's start in 0-based coordinates.
    """
    return (node.start_point[0], node.start_point[1])


def node_span(node) -> Span:
    return Span(node.start_byte, node.end_byte)


def code_children(node) -> list[Node]:
    """Named children with comments filtered out."""
    return [c for c in node.named_children if c.type not in COMMENT_TYPES]


def child_of_type(node, *types: str) -> Optional[Node]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def first_error(root) -> Optional[Node]:
    """
    Returns the first ERROR or MISSING node in source order, or None for a
    clean tree. Only subtrees flagged with has_error are visited.
    """
    if not root.has_error:
        return None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
    return None
