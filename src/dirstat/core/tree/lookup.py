"""Locating nodes by filesystem path."""

from __future__ import annotations

import os

from dirstat.core.tree.node import Node, NodeKind

__all__ = ["find_common_ancestor", "find_node_by_path"]


def _normalize(path: str) -> str:
    return os.path.normcase(os.path.normpath(path)).casefold()


def _is_prefix(prefix: str, path: str) -> bool:
    if path == prefix:
        return True
    if not path.startswith(prefix):
        return False
    return prefix.endswith(os.sep) or path[len(prefix)] == os.sep


def find_node_by_path(root: Node, path: str) -> Node | None:
    """Find the deepest node whose path equals or contains ``path``.

    Paths are compared case-insensitively. Descent follows the one child whose
    path is a prefix of ``path``, so the cost is proportional to depth times
    fan-out rather than tree size. Synthetic items are never returned.

    Args:
        root: Node to start from
        path: Filesystem path to look up

    Returns:
        The exact node when present, otherwise the deepest enclosing node, or
        None when ``path`` lies outside ``root`` entirely
    """
    target = _normalize(path)

    if root.kind is NodeKind.MY_COMPUTER:
        for child in root.iter_children():
            found = find_node_by_path(child, path)
            if found is not None:
                return found
        return None

    if not _is_prefix(_normalize(root.path), target):
        return None

    node = root
    while True:
        next_node: Node | None = None
        for child in node.iter_children():
            if child.kind.is_synthetic:
                continue
            child_path = _normalize(child.path)
            if child_path == target:
                return child
            if _is_prefix(child_path, target):
                next_node = child
                break
        if next_node is None:
            return node
        node = next_node


def find_common_ancestor(first: Node, second: Node) -> Node | None:
    """Return the deepest node that is an ancestor of both, or None."""
    ancestors = {id(first)}
    ancestors.update(id(node) for node in first.iter_ancestors())

    node: Node | None = second
    while node is not None:
        if id(node) in ancestors:
            return node
        node = node.parent
    return None
