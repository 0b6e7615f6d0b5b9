"""Configuration data classes for collections."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

# Metadata keys as they appear in configuration, mapped to attribute names.
# Both the camelCase spelling used in front matter and snake_case are accepted.
METADATA_ALIASES = {
    "title": "title",
    "hasPage": "has_page",
    "itemsHasPage": "items_has_page",
    "isHierarchical": "is_hierarchical",
    "redirectFrom": "redirect_from",
    "collectionSlugInItem": "collection_slug_in_item",
    "references": "references",
    "addToQuery": "add_to_query",
}


def format_collection_name(collection: str) -> str:
    """Format a collection name for use in query names.

    Example:
        >>> format_collection_name("case-studies")
        'CaseStudies'
    """
    if not collection:
        return ""
    parts = collection.replace("_", "-").split("-")
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


def _get(data: Mapping[str, Any], camel: str, default: Any = None) -> Any:
    """Read a key in camelCase, falling back to its snake_case spelling."""
    if camel in data:
        return data[camel]
    return data.get(METADATA_ALIASES.get(camel, camel), default)


@dataclass(frozen=True)
class ReferenceField:
    """An item field holding slugs of another collection's items."""

    field_name: str
    target_collection: str

    @classmethod
    def from_config(cls, entry: Mapping[str, Any]) -> "ReferenceField":
        field_name = entry.get("fieldName") or entry.get("field_name")
        target = entry.get("targetCollection") or entry.get("target_collection") or field_name
        if not field_name:
            raise ValueError(f"Reference declaration is missing a field name: {dict(entry)}")
        return cls(field_name=field_name, target_collection=target)


@dataclass(frozen=True)
class QueryMembership:
    """Adds a collection (or a single item) to a named static query."""

    name: str
    query_item_text: str = "title"
    add_items_to_query: bool = False
    set_children_under_parents: bool = False

    @classmethod
    def from_config(cls, entry: Mapping[str, Any]) -> "QueryMembership":
        if not entry.get("name"):
            raise ValueError(f"addToQuery entry is missing a name: {dict(entry)}")
        return cls(
            name=entry["name"],
            query_item_text=entry.get("queryItemText") or entry.get("query_item_text") or "title",
            add_items_to_query=bool(
                entry.get("addItemsToQuery", entry.get("add_items_to_query", False))
            ),
            set_children_under_parents=bool(
                entry.get("setChildrenUnderParents", entry.get("set_children_under_parents", False))
            ),
        )


@dataclass
class CollectionConfig:
    """Collection metadata, fixed once the store is built.

    Stores what the resolvers need:
    - Page visibility of the collection root and its items
    - Hierarchy and canonical URL shape
    - Legacy aliases and declared reference fields
    """

    name: str
    title: str = ""
    has_page: bool = True
    items_has_page: bool = True
    is_hierarchical: bool = False
    redirect_from: List[str] = field(default_factory=list)
    collection_slug_in_item: bool = True
    references: Optional[List[ReferenceField]] = None
    add_to_query: List[QueryMembership] = field(default_factory=list)

    def __post_init__(self):
        if not self.title:
            self.title = format_collection_name(self.name)

    @property
    def query_name(self) -> str:
        """Name fragment used by generated queries, e.g. ``Services``."""
        return format_collection_name(self.name)

    def has_alias(self, alias: str) -> bool:
        """Check if ``alias`` is a legacy name of this collection."""
        return alias in self.redirect_from

    def item_url(self, slug: str) -> str:
        """Canonical URL for an item of this collection."""
        if self.collection_slug_in_item:
            return f"/{self.name}/{slug}"
        return f"/{slug}"

    @classmethod
    def from_metadata(cls, name: str, metadata: Optional[Mapping[str, Any]] = None) -> "CollectionConfig":
        """Build a config from a metadata mapping.

        Args:
            name: Collection name
            metadata: Metadata as read from configuration (camelCase or snake_case keys)

        Returns:
            The collection configuration
        """
        metadata = metadata or {}
        references = _get(metadata, "references")
        return cls(
            name=name,
            title=_get(metadata, "title", "") or "",
            has_page=bool(_get(metadata, "hasPage", True)),
            items_has_page=bool(_get(metadata, "itemsHasPage", True)),
            is_hierarchical=bool(_get(metadata, "isHierarchical", False)),
            redirect_from=list(_get(metadata, "redirectFrom", None) or []),
            collection_slug_in_item=bool(_get(metadata, "collectionSlugInItem", True)),
            references=parse_references(references) if references is not None else None,
            add_to_query=[
                QueryMembership.from_config(entry)
                for entry in _get(metadata, "addToQuery", None) or []
            ],
        )


def parse_references(value: Any) -> List[ReferenceField]:
    """Parse a reference declaration.

    Accepts either a mapping of field name to target collection, or a list of
    ``{fieldName, targetCollection}`` entries (a bare string entry names a
    field that points at the collection of the same name).
    """
    if isinstance(value, Mapping):
        return [ReferenceField(field_name, target) for field_name, target in value.items()]

    fields = []
    for entry in value:
        if isinstance(entry, str):
            fields.append(ReferenceField(entry, entry))
        else:
            fields.append(ReferenceField.from_config(entry))
    return fields


def parse_collection_configs(table: Mapping[str, Mapping[str, Any]]) -> Dict[str, CollectionConfig]:
    """Parse a ``{name: metadata}`` table into configs, preserving order."""
    return {name: CollectionConfig.from_metadata(name, metadata) for name, metadata in table.items()}
