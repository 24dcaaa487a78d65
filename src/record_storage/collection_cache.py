import asyncio
import logging
from typing import Any

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import InvalidName

from record_storage._utils.constants import ROUTING_FIELD
from record_storage.errors import InvalidKeyError

logger = logging.getLogger(__name__)


class CollectionCache:
    """Hands out one collection handle per collection name, creating and indexing it on first use.

    Building the routing field index runs in the background. A failed index build is logged and
    otherwise ignored: lookups still work without it, only slower.
    """

    _database: AsyncDatabase[dict[str, Any]]
    _index_field: str
    _collections_by_name: dict[str, AsyncCollection[dict[str, Any]]]
    _index_tasks: set[asyncio.Task[None]]

    def __init__(self, database: AsyncDatabase[dict[str, Any]], *, index_field: str = ROUTING_FIELD) -> None:
        self._database = database
        self._index_field = index_field
        self._collections_by_name = {}
        self._index_tasks = set()

    def __len__(self) -> int:
        return len(self._collections_by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._collections_by_name

    def collection_names(self) -> list[str]:
        return list(self._collections_by_name)

    def get_collection(self, name: str) -> AsyncCollection[dict[str, Any]]:
        if (collection := self._collections_by_name.get(name)) is not None:
            return collection

        try:
            collection = self._database.get_collection(name)
        except InvalidName as e:
            raise InvalidKeyError(key=name, reason=f"invalid collection name: {e}") from e

        self._collections_by_name[name] = collection
        self._schedule_index(name=name, collection=collection)

        logger.debug("Created collection handle", extra={"collection": name})

        return collection

    def _schedule_index(self, *, name: str, collection: AsyncCollection[dict[str, Any]]) -> None:
        task: asyncio.Task[None] = asyncio.get_running_loop().create_task(self._create_index(name=name, collection=collection))
        self._index_tasks.add(task)
        task.add_done_callback(self._index_tasks.discard)

    async def _create_index(self, *, name: str, collection: AsyncCollection[dict[str, Any]]) -> None:
        try:
            _ = await collection.create_index(keys=self._index_field)
        except Exception as e:
            logger.warning(
                "Failed to create index on MongoDB collection",
                extra={
                    "collection": name,
                    "field": self._index_field,
                    "error": str(e),
                },
            )

    async def wait_for_indexes(self) -> None:
        """Wait for every pending index build to finish."""
        if self._index_tasks:
            _ = await asyncio.gather(*self._index_tasks)

    async def cancel_pending_indexes(self) -> None:
        """Cancel index builds that have not finished, such as ones still waiting for an unreachable server."""
        pending = list(self._index_tasks)
        for task in pending:
            _ = task.cancel()

        if pending:
            _ = await asyncio.gather(*pending, return_exceptions=True)
