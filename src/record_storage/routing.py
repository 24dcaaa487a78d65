"""Splitting record keys into a collection name and a document id.

With a separator of ``/`` and a default collection of ``deepstream_docs``:

    user/i4vcg5j1-16n1qrnziuog  ->  ("user", "i4vcg5j1-16n1qrnziuog")
    bla                         ->  ("deepstream_docs", "bla")
    a/b/c                       ->  ("a", "b/c")
    /a/b/c                      ->  invalid

Only the first separator is significant; the document id keeps any further separators.
"""

from dataclasses import dataclass

from record_storage._utils.beartype import bear_enforce
from record_storage._utils.constants import DEFAULT_COLLECTION
from record_storage.errors import InvalidKeyError


@dataclass(frozen=True)
class RoutedLocation:
    """Where a key lives: the collection it is stored in and its id within that collection."""

    collection: str
    document_id: str


@bear_enforce
def route_key(key: str, *, separator: str | None, default_collection: str = DEFAULT_COLLECTION) -> RoutedLocation | None:
    """Route a key to a collection and document id.

    Args:
        key: The record key.
        separator: The character splitting the collection name from the document id. None or an empty
            string disables routing and every key lands in the default collection.
        default_collection: The collection used for keys without a separator.

    Returns:
        The routed location, or None if the key starts with the separator (the collection name would be empty).
    """
    if not separator:
        return RoutedLocation(collection=default_collection, document_id=key)

    index = key.find(separator)

    if index == -1:
        return RoutedLocation(collection=default_collection, document_id=key)

    if index == 0:
        return None

    return RoutedLocation(collection=key[:index], document_id=key[index + len(separator) :])


class KeyRouter:
    """Routes record keys using a fixed separator and default collection."""

    separator: str | None
    default_collection: str

    def __init__(self, separator: str | None = None, default_collection: str = DEFAULT_COLLECTION) -> None:
        self.separator = separator or None
        self.default_collection = default_collection

    def route(self, key: str) -> RoutedLocation | None:
        return route_key(key, separator=self.separator, default_collection=self.default_collection)

    def route_or_raise(self, key: str) -> RoutedLocation:
        """Route a key, raising InvalidKeyError instead of returning None."""
        if key == "":
            raise InvalidKeyError(key=key, reason="empty key")

        if (location := self.route(key)) is None:
            raise InvalidKeyError(key=key, reason="empty collection name")

        return location
