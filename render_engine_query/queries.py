"""Named queries over the collection store.

A query is either static (a fixed list, e.g. a navigation menu) or dynamic (a
function of ``slug`` and ``current_collection``). Every collection gets a
standard set of generated queries:

- ``AllItems<Collection>``: every item
- ``Featured<Collection>``: items with ``featured: true``
- ``Related<Collection>``: items related to an item, or to a whole collection
- ``Children<Collection>``, ``Parent<Collection>``, ``Sibling<Collection>``:
  hierarchical collections only
"""

import copy
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from . import hierarchy
from .collections_config import CollectionConfig, QueryMembership
from .errors import QueryNotFoundError
from .references import aggregate_references, multi_hop, same_collection_related
from .store import ADD_TO_QUERY, LINK, SLUG, CollectionStore

logger = logging.getLogger(__name__)

Item = Dict[str, Any]


@dataclass
class QueryDefinition:
    """A named query with either static ``items`` or a ``get_items`` function."""

    name: str
    description: str = ""
    items: Optional[List[Item]] = None
    get_items: Optional[Callable[..., List[Item]]] = field(default=None, repr=False)

    @property
    def is_dynamic(self) -> bool:
        return self.get_items is not None

    def run(self, slug: Optional[str] = None, current_collection: Optional[str] = None) -> List[Item]:
        if self.get_items is not None:
            return self.get_items(slug=slug, current_collection=current_collection)
        return copy.deepcopy(self.items or [])

    @classmethod
    def from_config(cls, entry: Mapping[str, Any]) -> "QueryDefinition":
        """Build a static query from a ``{name, description, items}`` table."""
        if not entry.get("name"):
            raise ValueError(f"Query definition is missing a name: {dict(entry)}")
        return cls(
            name=entry["name"],
            description=entry.get("description", ""),
            items=[dict(item) for item in entry.get("items", [])],
        )


class QueryRegistry:
    """Looks up queries by exact name and executes them.

    Dynamic query results are memoized per ``(name, slug, current_collection)``.
    Callers always receive copies, so mutating a result never leaks into a
    later call.
    """

    def __init__(self, definitions: Iterable[QueryDefinition] = ()):
        self._definitions: Dict[str, QueryDefinition] = {}
        self._cache: Dict[Tuple[str, Optional[str], Optional[str]], List[Item]] = {}
        self.register(definitions)

    def register(self, definitions: Iterable[QueryDefinition]) -> None:
        """Add query definitions.

        Raises:
            ValueError: If a name is already registered
        """
        for definition in definitions:
            if definition.name in self._definitions:
                raise ValueError(f"Query '{definition.name}' is already registered")
            self._definitions[definition.name] = definition
        self._cache.clear()

    def get(self, name: str) -> Optional[QueryDefinition]:
        return self._definitions.get(name)

    def names(self) -> List[str]:
        return list(self._definitions)

    def __contains__(self, name: str) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def execute(
        self,
        name: str,
        slug: Optional[str] = None,
        current_collection: Optional[str] = None,
        use_cache: bool = True,
    ) -> List[Item]:
        """Run a query by name.

        Args:
            name: Registered query name
            slug: Item to resolve relations for; aggregate mode when omitted
            current_collection: Collection ``slug`` belongs to
            use_cache: Whether to reuse a memoized result (default: True)

        Returns:
            List of items (or menu nodes for static queries)

        Raises:
            QueryNotFoundError: If no query has that name
        """
        definition = self._definitions.get(name)
        if definition is None:
            raise QueryNotFoundError(name, self._definitions)

        key = (name, slug, current_collection)
        if use_cache and key in self._cache:
            return copy.deepcopy(self._cache[key])

        result = definition.run(slug=slug, current_collection=current_collection)
        self._cache[key] = result
        return copy.deepcopy(result)

    def clear_cache(self) -> None:
        self._cache.clear()


# ====== Item annotation ======


def annotate(store: CollectionStore, collection: str, item: Mapping[str, Any]) -> Item:
    """Copy an item and add its ``href`` and ``external`` flag.

    A ``link`` field (``tel:``, ``mailto:``, off-site URLs) is used as the
    href unchanged and marks the item external.
    """
    annotated = dict(item)
    link = item.get(LINK)
    if link:
        annotated["href"] = link
        annotated["external"] = True
    else:
        annotated["href"] = store.get_config(collection).item_url(item[SLUG])
        annotated["external"] = False
    return annotated


def _annotate_all(store: CollectionStore, collection: str, items: Iterable[Mapping[str, Any]]) -> List[Item]:
    return [annotate(store, collection, item) for item in items]


# ====== Generated collection queries ======


def _all_items(store, collection, slug=None, current_collection=None):
    return _annotate_all(store, collection, store.items(collection))


def _featured_items(store, collection, slug=None, current_collection=None):
    return _annotate_all(store, collection, store.featured_items(collection))


def _related_items(store, collection, slug=None, current_collection=None):
    """Items of ``collection`` related to ``slug`` or to all of ``current_collection``.

    Within one collection, relations come from shared and direct references in
    both modes, hierarchical or not. Hierarchy neighbours are what
    ``Sibling<Collection>`` is for.
    """
    if not current_collection or not store.has_collection(current_collection):
        return []

    if not slug:
        related = aggregate_references(store, current_collection, collection)
        return _annotate_all(store, collection, related)

    item = store.get_item(current_collection, slug)
    if item is None:
        return []

    if collection != current_collection:
        related = multi_hop(store, item, current_collection, collection)
    else:
        related = same_collection_related(store, item, collection)
    return _annotate_all(store, collection, related)


def _hierarchy_items(store, collection, relation, slug=None, current_collection=None):
    if not slug:
        return []
    item = store.get_item(collection, slug)
    if item is None:
        return []
    return _annotate_all(store, collection, relation(item, store.items(collection)))


def collection_queries(store: CollectionStore, config: CollectionConfig) -> List[QueryDefinition]:
    """Generate the standard queries for one collection."""
    name = config.name
    label = config.query_name

    queries = [
        QueryDefinition(
            name=f"AllItems{label}",
            description=f'All items from "{name}" collection',
            get_items=partial(_all_items, store, name),
        ),
        QueryDefinition(
            name=f"Featured{label}",
            description=f'Featured items from "{name}" collection',
            get_items=partial(_featured_items, store, name),
        ),
        QueryDefinition(
            name=f"Related{label}",
            description=(
                f'Items from "{name}" that reference or are referenced by the current item '
                "(multi-hop + same-collection)."
            ),
            get_items=partial(_related_items, store, name),
        ),
    ]

    if config.is_hierarchical:
        queries += [
            QueryDefinition(
                name=f"Children{label}",
                description=f'All direct children of the current item in "{name}".',
                get_items=partial(_hierarchy_items, store, name, hierarchy.children),
            ),
            QueryDefinition(
                name=f"Parent{label}",
                description=f'All parent ancestors of the current item in "{name}".',
                get_items=partial(_hierarchy_items, store, name, hierarchy.ancestors),
            ),
            QueryDefinition(
                name=f"Sibling{label}",
                description=f'All sibling items (same parent) in "{name}".',
                get_items=partial(_hierarchy_items, store, name, hierarchy.siblings),
            ),
        ]

    return queries


def generate_collection_queries(store: CollectionStore) -> List[QueryDefinition]:
    queries = []
    for config in store.configs():
        queries.extend(collection_queries(store, config))
    return queries


# ====== Static menu queries ======


def _menu_label(item: Mapping[str, Any], label_field: str) -> str:
    return item.get(label_field) or item.get("title", "")


def build_menu_items(
    store: CollectionStore,
    collection: str,
    label_field: str = "title",
    nested: bool = False,
) -> List[Dict[str, Any]]:
    """Turn a collection's items into menu nodes.

    Args:
        store: The collection store
        collection: Collection name
        label_field: Item field used as the node label, falling back to ``title``
        nested: Arrange nodes under their parents; only top-level nodes are returned

    Returns:
        ``{"label", "href"}`` nodes, plus ``"children"`` when nested
    """
    items = store.items(collection)
    if not nested:
        return [
            {"label": _menu_label(item, label_field), "href": annotate(store, collection, item)["href"]}
            for item in items
        ]

    def to_node(tree_node: Dict[str, Any]) -> Dict[str, Any]:
        item = tree_node["item"]
        return {
            "label": _menu_label(item, label_field),
            "href": annotate(store, collection, item)["href"],
            "children": [to_node(child) for child in tree_node["children"]],
        }

    return [to_node(tree_node) for tree_node in hierarchy.build_tree(items)]


def _add_collection_to_query(
    query_items: List[Dict[str, Any]],
    store: CollectionStore,
    config: CollectionConfig,
    membership: QueryMembership,
) -> None:
    root = None
    if config.has_page:
        root = {"label": config.title, "href": f"/{config.name}", "children": []}
        query_items.append(root)

    if not membership.add_items_to_query:
        return

    nodes = build_menu_items(
        store,
        config.name,
        membership.query_item_text,
        membership.set_children_under_parents,
    )
    if root is not None and membership.set_children_under_parents:
        root["children"] = nodes
    else:
        query_items.extend(nodes)


def build_static_queries(
    store: CollectionStore,
    base_queries: Iterable[Union[QueryDefinition, Mapping[str, Any]]] = (),
) -> List[QueryDefinition]:
    """Merge collection and item ``addToQuery`` memberships into static queries.

    Collection-level memberships are merged first, then item-level ones, in
    store order. A membership naming a query that does not exist yet creates
    it.

    Raises:
        ValueError: If a membership targets a dynamic query or a generated
            collection query
    """
    queries: Dict[str, QueryDefinition] = {}
    for entry in base_queries:
        definition = entry if isinstance(entry, QueryDefinition) else QueryDefinition.from_config(entry)
        if not definition.is_dynamic:
            definition = QueryDefinition(
                name=definition.name,
                description=definition.description,
                items=copy.deepcopy(list(definition.items or [])),
            )
        queries[definition.name] = definition

    generated = {definition.name for definition in generate_collection_queries(store)}

    def target(name: str, source: str) -> QueryDefinition:
        if name in generated:
            raise ValueError(f"{source} adds menu items to '{name}', which is a generated collection query")
        query = queries.setdefault(name, QueryDefinition(name=name, items=[]))
        if query.is_dynamic:
            raise ValueError(f"Cannot add menu items to dynamic query '{name}'")
        return query

    for config in store.configs():
        for membership in config.add_to_query:
            query = target(membership.name, f"Collection '{config.name}'")
            _add_collection_to_query(query.items, store, config, membership)

        for item in store.items(config.name):
            for entry in item.get(ADD_TO_QUERY) or []:
                membership = QueryMembership.from_config(entry)
                target(membership.name, f"Item '{config.name}/{item[SLUG]}'").items.append({
                    "label": _menu_label(item, membership.query_item_text),
                    "href": annotate(store, config.name, item)["href"],
                })

    return list(queries.values())


def build_registry(
    store: CollectionStore,
    static_queries: Iterable[Union[QueryDefinition, Mapping[str, Any]]] = (),
) -> QueryRegistry:
    """Build a registry holding static menu queries and generated collection queries."""
    registry = QueryRegistry(build_static_queries(store, static_queries))
    registry.register(generate_collection_queries(store))
    logger.debug("Registered %d queries: %s", len(registry), registry.names())
    return registry
