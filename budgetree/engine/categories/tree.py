"""Two-level category forest and its lookup helpers.

Categories form a forest of exactly two levels: parents carry no
``parent_id`` and children reference exactly one active parent. The helpers
accept either a flat list of :class:`Category` records or a list of
:class:`CategoryNode` groupings and never mutate their inputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field, replace
from operator import attrgetter
from typing import TypeAlias, TypeVar

__all__ = [
    "CategoryId",
    "Category",
    "CategoryNode",
    "CategoryLabel",
    "CategoryTreeError",
    "build_tree",
    "iter_categories",
    "group_by_parent",
    "flatten",
    "find_by_id",
    "parents_only",
    "children_only",
    "parent_of",
    "children_of",
    "is_parent",
    "is_child",
    "build_lookup_map",
    "sort_by_order",
    "renumber",
]

CategoryId: TypeAlias = int | str

_Ordered = TypeVar("_Ordered")


class CategoryTreeError(ValueError):
    """Raised when a category list violates the two-level shape."""


@dataclass(frozen=True, slots=True)
class Category:
    """A spending category.

    Attributes:
      id: Store identifier.
      parent_id: ``None`` for parents, the parent's id for children.
      name: Display name.
      color: Display colour, usually a hex string.
      sort_order: Position among siblings, ascending.
      is_active: ``False`` once the category has been soft-deleted.
    """

    id: CategoryId
    parent_id: CategoryId | None = None
    name: str = ""
    color: str = "#6B7280"
    sort_order: int = 0
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class CategoryNode:
    """A parent category grouped with its children."""

    category: Category
    children: tuple[Category, ...] = field(default_factory=tuple)

    @property
    def id(self) -> CategoryId:
        return self.category.id

    def with_children(self, children: Iterable[Category]) -> CategoryNode:
        return replace(self, children=tuple(children))


@dataclass(frozen=True, slots=True)
class CategoryLabel:
    """Display information used for breadcrumb-style rendering."""

    name: str
    color: str
    parent_name: str | None = None


def is_parent(category: Category) -> bool:
    return category.parent_id is None


def is_child(category: Category) -> bool:
    return not is_parent(category)


def build_tree(categories: Iterable[Category], *, include_inactive: bool = False) -> list[CategoryNode]:
    """Group a flat category list into parent nodes.

    Args:
      categories: Parents and children in any order.
      include_inactive: Keep soft-deleted categories. Children are then
        allowed to reference inactive parents.

    Returns:
      One node per parent, parents and children sorted by ``sort_order``.

    Raises:
      CategoryTreeError: If a child references a missing or inactive parent,
        or references another child.
    """

    items = [c for c in categories if include_inactive or c.is_active]
    by_id = {c.id: c for c in items}
    children: dict[CategoryId, list[Category]] = {c.id: [] for c in items if is_parent(c)}

    for category in items:
        if is_parent(category):
            continue
        parent = by_id.get(category.parent_id)
        if parent is None:
            raise CategoryTreeError(
                f"Category {category.id!r} references missing or inactive parent {category.parent_id!r}"
            )
        if is_child(parent):
            raise CategoryTreeError(
                f"Category {category.id!r} references {parent.id!r}, which is itself a subcategory"
            )
        children[parent.id].append(category)

    return [
        CategoryNode(parent, tuple(sort_by_order(children[parent.id])))
        for parent in sort_by_order(c for c in items if is_parent(c))
    ]


def iter_categories(items: Iterable[Category | CategoryNode]) -> Iterator[Category]:
    """Yield categories from flat or grouped input without validating the shape."""

    for item in items:
        if isinstance(item, CategoryNode):
            yield item.category
            yield from item.children
        else:
            yield item


def group_by_parent(tree: Iterable[Category | CategoryNode]) -> list[CategoryNode]:
    """Group categories under their parents without validating the shape.

    Grouped input is returned as-is. Children whose parent is absent, and
    children of children, belong to no node; use :func:`build_tree` to reject
    them instead.
    """

    items = list(tree)
    if all(isinstance(item, CategoryNode) for item in items):
        return items  # type: ignore[return-value]
    categories = list(iter_categories(items))
    children: dict[CategoryId, list[Category]] = {}
    for category in categories:
        if is_child(category):
            children.setdefault(category.parent_id, []).append(category)  # type: ignore[arg-type]
    return [
        CategoryNode(parent, tuple(sort_by_order(children.get(parent.id, ()))))
        for parent in sort_by_order(c for c in categories if is_parent(c))
    ]


def flatten(tree: Iterable[Category | CategoryNode]) -> list[Category]:
    """Return every category exactly once, each parent followed by its children.

    Categories that belong to no parent come last, in input order.
    """

    items = list(tree)
    grouped = list(iter_categories(group_by_parent(items)))
    seen = {id(c) for c in grouped}
    return grouped + [c for c in iter_categories(items) if id(c) not in seen]


def find_by_id(categories: Iterable[Category | CategoryNode], category_id: CategoryId) -> Category | None:
    return next((c for c in iter_categories(categories) if c.id == category_id), None)


def parents_only(tree: Iterable[Category | CategoryNode]) -> list[Category]:
    return [c for c in iter_categories(tree) if is_parent(c)]


def children_only(tree: Iterable[Category | CategoryNode]) -> list[Category]:
    return [child for node in group_by_parent(tree) for child in node.children]


def parent_of(tree: Iterable[Category | CategoryNode], child_id: CategoryId) -> Category | None:
    """Return the parent of ``child_id``.

    ``None`` when ``child_id`` is unknown or is itself a parent.
    """

    nodes = group_by_parent(tree)
    child = find_by_id(nodes, child_id)
    if child is None or is_parent(child):
        return None
    return next((node.category for node in nodes if node.id == child.parent_id), None)


def children_of(tree: Iterable[Category | CategoryNode], parent_id: CategoryId) -> list[Category]:
    node = next((n for n in group_by_parent(tree) if n.id == parent_id), None)
    return list(node.children) if node is not None else []


def build_lookup_map(tree: Iterable[Category | CategoryNode]) -> dict[CategoryId, CategoryLabel]:
    """Map every category id to its label; children carry their parent's name."""

    lookup: dict[CategoryId, CategoryLabel] = {}
    for node in group_by_parent(tree):
        parent = node.category
        lookup[parent.id] = CategoryLabel(name=parent.name, color=parent.color)
        for child in node.children:
            lookup[child.id] = CategoryLabel(name=child.name, color=child.color, parent_name=parent.name)
    return lookup


def sort_by_order(items: Iterable[_Ordered]) -> list[_Ordered]:
    """Stable ascending sort on ``sort_order`` returning a new list."""

    return sorted(items, key=attrgetter("sort_order"))


def renumber(categories: Sequence[Category]) -> list[Category]:
    """Assign ``sort_order`` 1..n following the current list order."""

    return [replace(category, sort_order=index) for index, category in enumerate(categories, start=1)]
