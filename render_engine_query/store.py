"""In-memory collection store.

The store is built once from configuration before any query or redirect is
resolved, and is read-only afterwards. Every resolver takes the store as an
argument instead of reaching for shared module state.
"""

import copy
import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .collections_config import CollectionConfig, ReferenceField
from .errors import InvalidCollectionError, ItemNotFoundError

logger = logging.getLogger(__name__)

# Item fields with a fixed meaning
SLUG = "slug"
PARENT = "parent"
FEATURED = "featured"
HAS_PAGE = "hasPage"
REDIRECT_FROM = "redirectFrom"
LINK = "link"
ADD_TO_QUERY = "addToQuery"


def _is_slug_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


class CollectionStore:
    """Read-only mapping of collection name to its config and items.

    Args:
        collections: Mapping of collection name to ``{"metadata": ..., "items": [...]}``.
            ``metadata`` may be a mapping or a ``CollectionConfig``.

    Raises:
        ValueError: If an item has no slug, a slug repeats within a
            collection, or a reference field targets an unknown collection
    """

    def __init__(self, collections: Mapping[str, Mapping[str, Any]]):
        self._configs: Dict[str, CollectionConfig] = {}
        self._items: Dict[str, List[Dict[str, Any]]] = {}
        self._index: Dict[str, Dict[str, Dict[str, Any]]] = {}

        for name, entry in collections.items():
            metadata = entry.get("metadata")
            if isinstance(metadata, CollectionConfig):
                config = metadata
            else:
                config = CollectionConfig.from_metadata(name, metadata)
            self._configs[name] = config
            self._add_items(config, entry.get("items", entry.get("data", [])))

        for name, config in list(self._configs.items()):
            if config.references is None:
                config = replace(config, references=self._discover_references(name))
                self._configs[name] = config
            for ref in config.references:
                if ref.target_collection not in self._configs:
                    raise ValueError(
                        f"Reference field '{ref.field_name}' in '{name}' points at unknown "
                        f"collection '{ref.target_collection}'"
                    )

        logger.debug(
            "Built collection store: %s",
            {name: len(items) for name, items in self._items.items()},
        )

    @classmethod
    def from_configs(
        cls,
        configs: Mapping[str, CollectionConfig],
        items_by_collection: Mapping[str, Iterable[Mapping[str, Any]]],
    ) -> "CollectionStore":
        """Build a store from parsed configs and per-collection items.

        Collections with items but no config get default metadata.
        """
        names = list(configs) + [name for name in items_by_collection if name not in configs]
        return cls({
            name: {
                "metadata": configs.get(name) or CollectionConfig(name=name),
                "items": list(items_by_collection.get(name, [])),
            }
            for name in names
        })

    def _add_items(self, config: CollectionConfig, items: Iterable[Mapping[str, Any]]) -> None:
        normalized = []
        index = {}
        for raw in items:
            slug = raw.get(SLUG)
            if not slug:
                raise ValueError(f"Item in '{config.name}' has no slug: {raw.get('title', raw)}")
            if slug in index:
                raise ValueError(f"Duplicate slug '{slug}' in collection '{config.name}'")

            item = copy.deepcopy(dict(raw))
            if item.get(HAS_PAGE) is None:
                item[HAS_PAGE] = config.items_has_page
            normalized.append(item)
            index[slug] = item

        self._items[config.name] = normalized
        self._index[config.name] = index

    def _discover_references(self, name: str) -> List[ReferenceField]:
        """Find fields named after a collection that hold slug lists."""
        found: Dict[str, ReferenceField] = {}
        for item in self._items[name]:
            for key, value in item.items():
                if key in found or key not in self._configs:
                    continue
                if _is_slug_list(value):
                    found[key] = ReferenceField(key, key)
        if found:
            logger.debug("Discovered reference fields for '%s': %s", name, sorted(found))
        return list(found.values())

    # ====== Collections ======

    def names(self) -> List[str]:
        """Collection names in configuration order."""
        return list(self._configs)

    def has_collection(self, name: Optional[str]) -> bool:
        return name in self._configs

    def _require(self, name: str) -> None:
        if name not in self._configs:
            raise InvalidCollectionError(name, self._configs)

    def get_config(self, name: str) -> CollectionConfig:
        """Get the config for a collection.

        Raises:
            InvalidCollectionError: If the collection is unknown
        """
        self._require(name)
        return self._configs[name]

    def configs(self) -> List[CollectionConfig]:
        return list(self._configs.values())

    # ====== Items ======

    def items(self, name: str) -> List[Dict[str, Any]]:
        """Get copies of every item in a collection, in order.

        Raises:
            InvalidCollectionError: If the collection is unknown
        """
        self._require(name)
        return [copy.deepcopy(item) for item in self._items[name]]

    def featured_items(self, name: str) -> List[Dict[str, Any]]:
        return [item for item in self.items(name) if item.get(FEATURED) is True]

    def get_item(self, name: str, slug: Optional[str]) -> Optional[Dict[str, Any]]:
        """Get a copy of an item, or None if the collection or slug is unknown."""
        item = self._index.get(name, {}).get(slug)
        return copy.deepcopy(item) if item is not None else None

    def has_item(self, name: str, slug: Optional[str]) -> bool:
        return slug in self._index.get(name, {})

    def require_item(self, name: str, slug: str) -> Dict[str, Any]:
        """Get an item that must exist.

        Raises:
            InvalidCollectionError: If the collection is unknown
            ItemNotFoundError: If no item has that slug
        """
        self._require(name)
        item = self.get_item(name, slug)
        if item is None:
            raise ItemNotFoundError(name, slug)
        return item

    def item_has_page(self, name: str, item: Mapping[str, Any]) -> bool:
        """Whether an item gets its own page, falling back to the collection default."""
        has_page = item.get(HAS_PAGE)
        if has_page is None:
            return self.get_config(name).items_has_page
        return bool(has_page)

    # ====== References ======

    def reference_fields(self, name: str) -> List[ReferenceField]:
        return list(self.get_config(name).references or [])

    def reference_values(self, name: str, item: Mapping[str, Any]) -> Dict[str, List[str]]:
        """Map each referenced collection to the slugs ``item`` lists for it.

        Fields that are absent or not slug lists are skipped. Two fields
        pointing at the same collection are merged in declaration order.
        """
        values: Dict[str, List[str]] = {}
        for ref in self.reference_fields(name):
            value = item.get(ref.field_name)
            if isinstance(value, str):
                value = [value]
            if not _is_slug_list(value):
                continue
            values.setdefault(ref.target_collection, []).extend(value)
        return values

    # ====== Aliases ======

    def find_collection_alias(self, alias: str) -> Optional[str]:
        """Get the canonical collection name for a legacy collection name."""
        for config in self._configs.values():
            if config.has_alias(alias):
                return config.name
        return None

    def find_item_alias(self, slug: str, collection: Optional[str] = None) -> Optional[Tuple[str, str]]:
        """Find the item that lists ``slug`` in its ``redirectFrom``.

        Args:
            slug: Legacy slug
            collection: Restrict the search to this collection; search every
                collection in order when None

        Returns:
            ``(collection, canonical_slug)`` or None
        """
        names = [collection] if collection is not None else self.names()
        for name in names:
            for item in self._items.get(name, []):
                if slug in (item.get(REDIRECT_FROM) or []):
                    return name, item[SLUG]
        return None
