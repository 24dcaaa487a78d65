"""A versioned record store on top of MongoDB.

Collections, ids and performance
--------------------------------
Records are addressed by a single string key, but MongoDB is faster with smaller collections. Pass a
``split_char`` and the part of a key before the first ``split_char`` selects the collection, the rest
is the document id inside it:

    user/i4vcg5j1-16n1qrnziuog
    user/i4vcg5x9-a2wc3g9pbhmi

with ``split_char="/"`` are both stored in the ``user`` collection, which is created (and indexed on
``ds_key``) the first time a key for it is seen. Keys without the separator, or every key when no
separator is configured, go to the default collection.
"""

import asyncio
import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from importlib import metadata
from typing import Any, overload

from bson.errors import InvalidDocument
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import ConnectionFailure, PyMongoError
from pymongo.results import DeleteResult  # noqa: TC002
from typing_extensions import Self

from record_storage._utils.beartype import bear_enforce, bear_spray
from record_storage._utils.constants import DEFAULT_COLLECTION, DEFAULT_DATABASE, ROUTING_FIELD
from record_storage.codec import decode_record, encode_record
from record_storage.collection_cache import CollectionCache
from record_storage.errors import (
    BackendError,
    ConfigurationError,
    ExtraInfoType,
    SerializationError,
    StoreClosedError,
    StoreConnectionError,
    StoreSetupError,
)
from record_storage.options import StorageOptions
from record_storage.routing import KeyRouter

logger = logging.getLogger(__name__)

try:
    PACKAGE_VERSION = metadata.version("record-storage-mongodb")
except metadata.PackageNotFoundError:
    PACKAGE_VERSION = "0.0.0"


@contextmanager
def _translate_driver_errors(*, operation: str, collection: str, document_id: str | None = None) -> Iterator[None]:
    extra_info: ExtraInfoType = {"operation": operation, "collection": collection, "document_id": document_id}

    try:
        yield
    except InvalidDocument as e:
        msg = f"Failed to encode MongoDB document: {e}"
        raise SerializationError(message=msg, extra_info=extra_info) from e
    except ConnectionFailure as e:
        msg = f"Lost connection to MongoDB: {e}"
        raise StoreConnectionError(message=msg, extra_info=extra_info) from e
    except PyMongoError as e:
        msg = f"MongoDB operation failed: {e}"
        raise BackendError(message=msg, extra_info=extra_info) from e


class MongoDBRecordStore:
    """MongoDB-based versioned record store using pymongo's async client."""

    _client: AsyncMongoClient[dict[str, Any]]
    _database: AsyncDatabase[dict[str, Any]]
    _database_name: str
    _router: KeyRouter
    _collections: CollectionCache

    _setup_complete: bool
    _setup_lock: asyncio.Lock
    _closed: bool

    @overload
    def __init__(
        self,
        *,
        client: AsyncMongoClient[dict[str, Any]],
        database: str | None = None,
        default_collection: str | None = None,
        split_char: str | None = None,
    ) -> None:
        """Initialize the record store.

        Args:
            client: The MongoDB client to use.
            database: The name of the MongoDB database. Defaults to "deepstream".
            default_collection: The collection for keys without a separator. Defaults to "deepstream_docs".
            split_char: The character separating the collection name from the document id. Defaults to None.
        """

    @overload
    def __init__(
        self,
        *,
        url: str,
        database: str | None = None,
        default_collection: str | None = None,
        split_char: str | None = None,
    ) -> None:
        """Initialize the record store.

        Args:
            url: The connection string of the MongoDB deployment.
            database: The name of the MongoDB database. Defaults to "deepstream".
            default_collection: The collection for keys without a separator. Defaults to "deepstream_docs".
            split_char: The character separating the collection name from the document id. Defaults to None.
        """

    @bear_spray
    def __init__(
        self,
        *,
        client: AsyncMongoClient[dict[str, Any]] | None = None,
        url: str | None = None,
        database: str | None = None,
        default_collection: str | None = None,
        split_char: str | None = None,
    ) -> None:
        """Initialize the record store.

        The connection is not established here; it is made by `setup_once`, which every operation awaits.

        Args:
            client: The MongoDB client to use (mutually exclusive with url).
            url: The connection string of the MongoDB deployment (mutually exclusive with client).
            database: The name of the MongoDB database. Defaults to "deepstream".
            default_collection: The collection for keys without a separator. Defaults to "deepstream_docs".
            split_char: The character separating the collection name from the document id.
                        Defaults to None, which stores every key in the default collection.

        Raises:
            ConfigurationError: If neither a client nor a url is given, or the url is malformed.
        """
        if client is not None:
            self._client = client
        elif url:
            try:
                self._client = AsyncMongoClient(url)
            except PyMongoConfigurationError as e:
                msg = f"Invalid setting 'connectionString': {e}"
                raise ConfigurationError(message=msg) from e
        else:
            msg = "Missing setting 'connectionString'"
            raise ConfigurationError(message=msg)

        self._database_name = database or DEFAULT_DATABASE
        self._database = self._client[self._database_name]
        self._router = KeyRouter(separator=split_char, default_collection=default_collection or DEFAULT_COLLECTION)
        self._collections = CollectionCache(database=self._database, index_field=ROUTING_FIELD)

        self._setup_complete = False
        self._setup_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> Self:
        """Create a store from host options such as ``{"connectionString": ..., "splitChar": "/"}``."""
        parsed = StorageOptions.parse(options)

        return cls(
            url=parsed.connection_string,
            database=parsed.database,
            default_collection=parsed.default_collection,
            split_char=parsed.split_char,
        )

    @property
    def description(self) -> str:
        return f"MongoDB Storage {PACKAGE_VERSION} using db {self._database_name}"

    @property
    def router(self) -> KeyRouter:
        return self._router

    @property
    def is_ready(self) -> bool:
        return self._setup_complete and not self._closed

    async def __aenter__(self) -> Self:
        await self.setup_once()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:  # pyright: ignore[reportAny]
        await self.close()

    async def setup(self) -> None:
        """Check that the MongoDB deployment is reachable."""
        try:
            _ = await self._client.admin.command("ping")
        except PyMongoError as e:
            msg = f"Failed to connect to MongoDB: {e}"
            raise StoreConnectionError(message=msg, extra_info={"database": self._database_name}) from e

        logger.debug("Connected to MongoDB", extra={"database": self._database_name})

    async def setup_once(self) -> None:
        """Connect once; operations issued before the connection is made wait here for it."""
        self._raise_if_closed()

        if not self._setup_complete:
            async with self._setup_lock:
                if not self._setup_complete:
                    try:
                        await self.setup()
                    except Exception as e:
                        raise StoreSetupError(message=f"Failed to setup store: {e}", extra_info={"store": self.__class__.__name__}) from e
                    self._setup_complete = True

    async def when_ready(self) -> None:
        await self.setup_once()

    def _raise_if_closed(self) -> None:
        if self._closed:
            msg = "The store has been closed"
            raise StoreClosedError(message=msg, extra_info={"store": self.__class__.__name__})

    @bear_enforce
    async def set(self, key: str, version: int, value: Any) -> None:
        """Write a record, replacing any previous document stored under the key.

        The value must be a JSON object (a Mapping) or a JSON array (a non-string Sequence).

        Raises:
            InvalidKeyError: If the key cannot be routed.
            SerializationError: If the value cannot be stored.
            BackendError: If MongoDB reports a failure.
        """
        location = self._router.route_or_raise(key)
        document = encode_record(value, document_id=location.document_id, version=version)

        await self.setup_once()
        collection = self._collections.get_collection(location.collection)

        with _translate_driver_errors(operation="set", collection=location.collection, document_id=location.document_id):
            _ = await collection.replace_one(filter={ROUTING_FIELD: location.document_id}, replacement=document, upsert=True)

    @bear_enforce
    async def get(self, key: str) -> tuple[int, dict[str, Any] | list[Any] | None]:
        """Read a record as ``(version, value)``, or ``(-1, None)`` if it does not exist.

        Raises:
            InvalidKeyError: If the key cannot be routed.
            DeserializationError: If the stored document is not a record.
            BackendError: If MongoDB reports a failure.
        """
        location = self._router.route_or_raise(key)

        await self.setup_once()
        collection = self._collections.get_collection(location.collection)

        with _translate_driver_errors(operation="get", collection=location.collection, document_id=location.document_id):
            document = await collection.find_one(filter={ROUTING_FIELD: location.document_id})

        return decode_record(document)

    @bear_enforce
    async def delete(self, key: str) -> bool:
        """Delete a record. Returns True if a document was removed; deleting a missing record is not an error."""
        location = self._router.route_or_raise(key)

        await self.setup_once()
        collection = self._collections.get_collection(location.collection)

        with _translate_driver_errors(operation="delete", collection=location.collection, document_id=location.document_id):
            result: DeleteResult = await collection.delete_one(filter={ROUTING_FIELD: location.document_id})

        return bool(result.deleted_count)

    @bear_enforce
    async def delete_many(self, keys: Sequence[str]) -> int:
        """Delete several records, returning how many documents were removed.

        Every key is routed before anything is deleted, so a single invalid key deletes nothing.
        """
        if isinstance(keys, str):
            msg = "delete_many expects a sequence of keys, not a single key"
            raise TypeError(msg)

        ids_by_collection: dict[str, list[str]] = {}
        for key in keys:
            location = self._router.route_or_raise(key)
            ids_by_collection.setdefault(location.collection, []).append(location.document_id)

        if not ids_by_collection:
            return 0

        await self.setup_once()

        deleted_count = 0
        for collection_name, document_ids in ids_by_collection.items():
            collection = self._collections.get_collection(collection_name)

            with _translate_driver_errors(operation="delete_many", collection=collection_name):
                result: DeleteResult = await collection.delete_many(filter={ROUTING_FIELD: {"$in": document_ids}})

            deleted_count += result.deleted_count

        return deleted_count

    async def close(self) -> None:
        if self._closed:
            return

        self._closed = True
        await self._collections.cancel_pending_indexes()
        await self._client.close()
