"""Aggregation tree: nodes, attribute packing, mutation and lookup."""

from __future__ import annotations

from .aggregation import (
    FREE_SPACE_NAME,
    UNKNOWN_NAME,
    AggregationEngine,
    collect_extension_data,
    count_contribution,
)
from .attributes import (
    FileAttribute,
    format_attributes,
    pack_attributes,
    sort_attributes,
    unpack_attributes,
)
from .lookup import find_common_ancestor, find_node_by_path
from .node import Node, NodeKind

__all__ = [
    "FREE_SPACE_NAME",
    "UNKNOWN_NAME",
    "AggregationEngine",
    "FileAttribute",
    "Node",
    "NodeKind",
    "collect_extension_data",
    "count_contribution",
    "find_common_ancestor",
    "find_node_by_path",
    "format_attributes",
    "pack_attributes",
    "sort_attributes",
    "unpack_attributes",
]
