"""Collection queries, relations and redirects for render-engine sites."""

from .collections_config import CollectionConfig, QueryMembership, ReferenceField
from .errors import InvalidCollectionError, ItemNotFoundError, QueryNotFoundError
from .queries import QueryDefinition, QueryRegistry, build_registry
from .redirects import NOT_FOUND, RedirectResolver
from .store import CollectionStore
from .version import __version__

__all__ = [
    "CollectionConfig",
    "CollectionStore",
    "InvalidCollectionError",
    "ItemNotFoundError",
    "NOT_FOUND",
    "QueryDefinition",
    "QueryMembership",
    "QueryNotFoundError",
    "QueryRegistry",
    "RedirectResolver",
    "ReferenceField",
    "build_registry",
    "__version__",
]
