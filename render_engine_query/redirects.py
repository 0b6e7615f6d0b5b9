"""Redirect and alias resolution for request paths.

Collections and items can list legacy names in ``redirectFrom``. A request
path is resolved to one of three outcomes:

- ``None``: the path is already canonical, serve it as is
- a canonical path such as ``/services/web-design``: redirect there
- ``NOT_FOUND``: nothing matches, the page layer answers with a 404
"""

import logging
from typing import Optional

from .store import CollectionStore

logger = logging.getLogger(__name__)

NOT_FOUND = "/404"


class RedirectResolver:
    """Resolves one- and two-segment request paths against the store's aliases."""

    def __init__(self, store: CollectionStore):
        self.store = store

    def resolve_two_segment(self, collection: str, slug: str) -> Optional[str]:
        """Resolve a ``/collection/slug`` request.

        Args:
            collection: First path segment
            slug: Second path segment

        Returns:
            None if no redirect is needed, the canonical target path, or NOT_FOUND
        """
        target_collection = collection
        target_slug = slug

        canonical = self.store.find_collection_alias(target_collection)
        if canonical:
            logger.info("Redirecting collection alias: /%s -> /%s", target_collection, canonical)
            target_collection = canonical

        if self.store.has_collection(target_collection):
            item_alias = self.store.find_item_alias(target_slug, target_collection)
            if item_alias:
                logger.info(
                    "Redirecting slug: /%s/%s -> /%s/%s",
                    target_collection, target_slug, *item_alias,
                )
                target_collection, target_slug = item_alias

        if not self.store.has_item(target_collection, target_slug):
            logger.warning("Item not found: /%s/%s", target_collection, target_slug)
            return NOT_FOUND

        if (target_collection, target_slug) != (collection, slug):
            return f"/{target_collection}/{target_slug}"
        return None

    def resolve_single_segment(self, slug: str) -> Optional[str]:
        """Resolve a ``/slug`` request.

        Collection aliases take precedence over item aliases, which take
        precedence over direct item matches.

        Returns:
            None if no redirect is needed, the canonical target path, or NOT_FOUND
        """
        canonical = self.store.find_collection_alias(slug)
        if canonical:
            logger.info("Redirecting collection slug: /%s -> /%s", slug, canonical)
            return f"/{canonical}"

        item_alias = self.store.find_item_alias(slug)
        if item_alias:
            collection, target_slug = item_alias
            target = self.store.get_config(collection).item_url(target_slug)
            logger.info("Redirecting item slug: /%s -> %s", slug, target)
            return target

        for config in self.store.configs():
            if not self.store.has_item(config.name, slug):
                continue
            if not config.collection_slug_in_item:
                return None
            logger.info("Direct match found: /%s -> /%s/%s", slug, config.name, slug)
            return f"/{config.name}/{slug}"

        logger.warning("No redirect found for /%s", slug)
        return NOT_FOUND

    def resolve_path(self, path: str) -> Optional[str]:
        """Resolve a request path by its number of segments.

        Paths with no segments or more than two are NOT_FOUND.
        """
        segments = [segment for segment in path.strip("/").split("/") if segment]
        if len(segments) == 1:
            return self.resolve_single_segment(segments[0])
        if len(segments) == 2:
            return self.resolve_two_segment(*segments)
        logger.warning("Unroutable path: %s", path)
        return NOT_FOUND
