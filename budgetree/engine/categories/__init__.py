"""Category tree model: the two-level parent/child forest."""

from __future__ import annotations

from .tree import (
    Category,
    CategoryId,
    CategoryLabel,
    CategoryNode,
    CategoryTreeError,
    build_lookup_map,
    build_tree,
    children_of,
    children_only,
    find_by_id,
    flatten,
    group_by_parent,
    iter_categories,
    is_child,
    is_parent,
    parent_of,
    parents_only,
    renumber,
    sort_by_order,
)

__all__ = [
    "Category",
    "CategoryId",
    "CategoryLabel",
    "CategoryNode",
    "CategoryTreeError",
    "build_lookup_map",
    "build_tree",
    "children_of",
    "children_only",
    "find_by_id",
    "flatten",
    "group_by_parent",
    "is_child",
    "iter_categories",
    "is_parent",
    "parent_of",
    "parents_only",
    "renumber",
    "sort_by_order",
]
