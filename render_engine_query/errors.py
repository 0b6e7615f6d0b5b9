"""Error kinds raised by the query and routing engine."""

from typing import Iterable


class InvalidCollectionError(ValueError):
    """Raised when a collection name is not present in the store."""

    def __init__(self, collection: str, available: Iterable[str] = ()):
        self.collection = collection
        self.available = list(available)
        super().__init__(f"Invalid collection '{collection}'. Available: {self.available}")


class QueryNotFoundError(KeyError):
    """Raised when executing a query name that was never registered."""

    def __init__(self, name: str, available: Iterable[str] = ()):
        self.name = name
        self.available = list(available)
        super().__init__(name)

    def __str__(self) -> str:
        return f"Query '{self.name}' not found. Registered: {self.available}"


class ItemNotFoundError(LookupError):
    """Raised only where a caller explicitly requires an item to exist."""

    def __init__(self, collection: str, slug: str):
        self.collection = collection
        self.slug = slug
        super().__init__(f"Item with slug '{slug}' not found in '{collection}'")
