"""Reference resolution between collection items.

Covers direct references (slugs an item lists for another collection),
reverse references (items of another collection that list this item), multi-hop
references bridged through a third collection, and relations between items of
the same collection.
"""

from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Set, Tuple

from .store import SLUG, CollectionStore

Item = Dict[str, Any]


class References(NamedTuple):
    """Items of one target collection related to an item."""

    direct: List[Item]
    reverse: List[Item]

    @property
    def combined(self) -> List[Item]:
        return self.direct + self.reverse


def _dedupe(collection: str, items: Iterable[Item], seen: Optional[Set[Tuple[str, str]]] = None) -> List[Item]:
    """Drop repeated items, keyed by collection and slug, keeping first-seen order."""
    seen = set() if seen is None else seen
    unique = []
    for item in items:
        key = (collection, item[SLUG])
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


def _outbound_slugs(
    store: CollectionStore,
    item: Mapping[str, Any],
    target_collection: str,
    source_collection: Optional[str],
) -> List[str]:
    if store.has_collection(source_collection):
        return store.reference_values(source_collection, item).get(target_collection, [])

    value = item.get(target_collection)
    if isinstance(value, (list, tuple)):
        return [slug for slug in value if isinstance(slug, str)]
    return []


def _references_slug(
    store: CollectionStore,
    collection: str,
    candidate: Mapping[str, Any],
    slug: str,
    pointing_at: Optional[str],
) -> bool:
    values = store.reference_values(collection, candidate)
    if pointing_at is not None:
        return slug in values.get(pointing_at, [])
    return any(slug in slugs for slugs in values.values())


def direct_and_reverse(
    store: CollectionStore,
    item: Mapping[str, Any],
    target_collection: str,
    source_collection: Optional[str] = None,
) -> References:
    """Find the items of ``target_collection`` that ``item`` references and that reference it.

    Args:
        store: The collection store
        item: The item to start from
        target_collection: Collection to look in
        source_collection: Collection ``item`` belongs to. When given, only
            reference fields pointing at it count as reverse references.

    Returns:
        References with ``direct`` in the item's listed order and ``reverse``
        in target collection order. Dangling slugs are dropped.
    """
    if not store.has_collection(target_collection):
        return References([], [])

    direct = []
    for slug in _outbound_slugs(store, item, target_collection, source_collection):
        target = store.get_item(target_collection, slug)
        if target is not None:
            direct.append(target)

    pointing_at = source_collection if store.has_collection(source_collection) else None
    reverse = [
        candidate
        for candidate in store.items(target_collection)
        if _references_slug(store, target_collection, candidate, item[SLUG], pointing_at)
    ]
    return References(direct, reverse)


def multi_hop(
    store: CollectionStore,
    item: Mapping[str, Any],
    current_collection: str,
    target_collection: str,
) -> List[Item]:
    """Collect items of ``target_collection`` related to ``item`` directly or through a bridge.

    Order is direct references, reverse references, then items reached through
    every other collection in store order. Same-collection lookups are handed
    to ``same_collection_related``.
    """
    if target_collection == current_collection:
        return same_collection_related(store, item, current_collection)

    result = list(direct_and_reverse(store, item, target_collection, current_collection).combined)

    for bridge_collection in store.names():
        if bridge_collection in (current_collection, target_collection):
            continue
        bridges = direct_and_reverse(store, item, bridge_collection, current_collection)
        for bridge in _dedupe(bridge_collection, bridges.combined):
            result.extend(direct_and_reverse(store, bridge, target_collection, bridge_collection).combined)

    return _dedupe(target_collection, result)


def extract_references(store: CollectionStore, item: Mapping[str, Any], collection: str) -> Dict[str, Set[str]]:
    """Map each collection ``item`` references to the set of referenced slugs.

    Empty reference fields are left out.
    """
    return {
        target: set(slugs)
        for target, slugs in store.reference_values(collection, item).items()
        if slugs
    }


def has_reference_intersection(refs_a: Mapping[str, Set[str]], refs_b: Mapping[str, Set[str]]) -> bool:
    """True if both maps share at least one slug under the same collection."""
    return any(refs_a[key] & refs_b[key] for key in refs_a if key in refs_b)


def same_collection_related(store: CollectionStore, item: Mapping[str, Any], collection: str) -> List[Item]:
    """Find items of the item's own collection related to it.

    Two items are related when they list a common slug for the same target
    collection, or when one references the other directly. The item itself is
    never included.
    """
    own_refs = extract_references(store, item, collection)
    shared = [
        other
        for other in store.items(collection)
        if other[SLUG] != item[SLUG]
        and has_reference_intersection(own_refs, extract_references(store, other, collection))
    ]

    self_refs = direct_and_reverse(store, item, collection, collection)
    seen = {(collection, item[SLUG])}
    return _dedupe(collection, shared + self_refs.combined, seen)


def aggregate_references(store: CollectionStore, current_collection: str, target_collection: str) -> List[Item]:
    """Union of related ``target_collection`` items over every item of ``current_collection``.

    Raises:
        InvalidCollectionError: If ``current_collection`` is unknown
    """
    result = []
    for item in store.items(current_collection):
        result.extend(multi_hop(store, item, current_collection, target_collection))
    return _dedupe(target_collection, result)


def relational_data(store: CollectionStore, collection: str, slug: str) -> Dict[str, Any]:
    """Direct and reverse references of one item, grouped by collection.

    Returns:
        ``{"item": ..., "direct": {collection: [...]}, "reverse": {collection: [...]}}``
        with empty groups left out

    Raises:
        InvalidCollectionError: If ``collection`` is unknown
        ItemNotFoundError: If no item has ``slug``
    """
    item = store.require_item(collection, slug)

    direct = {}
    for target in store.reference_values(collection, item):
        refs = direct_and_reverse(store, item, target, collection).direct
        if refs:
            direct[target] = refs

    reverse = {}
    for other in store.names():
        refs = direct_and_reverse(store, item, other, collection).reverse
        if refs:
            reverse[other] = refs

    return {"item": item, "direct": direct, "reverse": reverse}
