"""Parent/child relations in hierarchical collections.

An item's ``parent`` may be absent, a single slug, or a list of slugs, so an
item can sit under several parents at once.
"""

from collections import deque
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from .store import PARENT, SLUG

Item = Dict[str, Any]


def parent_slugs(item: Mapping[str, Any]) -> List[str]:
    """Normalize an item's parent field to a list of slugs."""
    parent = item.get(PARENT)
    if not parent:
        return []
    if isinstance(parent, str):
        return [parent]
    return list(parent)


def is_top_level(item: Mapping[str, Any]) -> bool:
    return not parent_slugs(item)


def children(item: Mapping[str, Any], items: Iterable[Item]) -> List[Item]:
    """All items that list ``item`` among their parents."""
    return [child for child in items if item[SLUG] in parent_slugs(child)]


def ancestors(item: Mapping[str, Any], items: Sequence[Item]) -> List[Item]:
    """All ancestors of ``item``, nearest first.

    Climbs breadth-first, so with several parents the order is every direct
    parent, then every grandparent, and so on. Each ancestor appears once, and
    cyclic parent chains stop at the first repeated slug.
    """
    by_slug = {candidate[SLUG]: candidate for candidate in items}
    visited = {item[SLUG]}
    queue = deque(parent_slugs(item))
    result = []

    while queue:
        slug = queue.popleft()
        if slug in visited:
            continue
        visited.add(slug)

        parent = by_slug.get(slug)
        if parent is None:
            continue
        result.append(parent)
        queue.extend(parent_slugs(parent))

    return result


def siblings(item: Mapping[str, Any], items: Iterable[Item]) -> List[Item]:
    """Items sharing at least one parent with ``item``.

    A top-level item's siblings are the other top-level items.
    """
    own_parents = set(parent_slugs(item))
    if not own_parents:
        return [other for other in items if other[SLUG] != item[SLUG] and is_top_level(other)]

    return [
        other
        for other in items
        if other[SLUG] != item[SLUG] and own_parents.intersection(parent_slugs(other))
    ]


def build_tree(items: Sequence[Item]) -> List[Dict[str, Any]]:
    """Arrange items into ``{"item": ..., "children": [...]}`` nodes.

    Returns the top-level nodes. An item with several parents appears under
    each of them, and items whose parents are all missing are left out.
    Branches that would revisit an item already on the current path are cut.
    """
    def node(item: Item, path: frozenset) -> Dict[str, Any]:
        path = path | {item[SLUG]}
        return {
            "item": item,
            "children": [
                node(child, path)
                for child in children(item, items)
                if child[SLUG] not in path
            ],
        }

    return [node(item, frozenset()) for item in items if is_top_level(item)]
