"""Route enumeration for the page layer.

Lists every path a static build has to emit, either as a page or as a
redirect stub resolved through ``RedirectResolver``. Results are
deduplicated, keeping first-seen order.
"""

from typing import Iterable, List, Tuple, TypeVar

from .store import REDIRECT_FROM, SLUG, CollectionStore

T = TypeVar("T")


def _unique(paths: Iterable[T]) -> List[T]:
    return list(dict.fromkeys(paths))


def collection_paths(store: CollectionStore) -> List[str]:
    """Names of collections whose root has a page."""
    return [config.name for config in store.configs() if config.has_page]


def two_segment_paths(store: CollectionStore) -> List[Tuple[str, str]]:
    """``(collection, slug)`` pairs for items, item aliases and collection aliases.

    Items without a page are skipped, but their aliases are kept so old links
    still reach a redirect.
    """
    paths = []
    for config in store.configs():
        items = store.items(config.name)
        prefixes = [config.name] + list(config.redirect_from)
        for prefix in prefixes:
            for item in items:
                if store.item_has_page(config.name, item):
                    paths.append((prefix, item[SLUG]))
                for alias in item.get(REDIRECT_FROM) or []:
                    paths.append((prefix, alias))
    return _unique(paths)


def single_segment_paths(store: CollectionStore) -> List[str]:
    """Slugs for items with pages, item aliases and collection aliases."""
    paths = []
    for config in store.configs():
        for item in store.items(config.name):
            if store.item_has_page(config.name, item):
                paths.append(item[SLUG])
            paths.extend(item.get(REDIRECT_FROM) or [])
        paths.extend(config.redirect_from)
    return _unique(paths)
