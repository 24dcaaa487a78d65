"""Callback-style access to a record store for hosts that expect ``(error, ...)`` completion callbacks.

    storage = CallbackRecordStorage(store=MongoDBRecordStore.from_options(options))
    storage.on_ready(lambda: print("ready"))
    storage.start()

    storage.set("user/a", 1, {"name": "Wolfram"}, lambda error: ...)
    storage.get("user/a", lambda error, version, value: ...)

Every method must be called from inside a running event loop. Each one schedules a task and returns it;
the outcome is delivered through the callback, with the error slot set to None on success. The first
operation starts connecting if `start()` has not been called yet, so ready and error listeners fire
either way. Operations issued before the store is ready wait for the connection instead of being dropped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from typing import Any

from record_storage._utils.constants import NOT_FOUND_VERSION
from record_storage.errors import BackendError
from record_storage.store import MongoDBRecordStore

logger = logging.getLogger(__name__)

WriteCallback = Callable[[Exception | None], None]
ReadCallback = Callable[[Exception | None, int, Any], None]
ReadyListener = Callable[[], None]
ErrorListener = Callable[[Exception], None]


class CallbackRecordStorage:
    """Adapts a MongoDBRecordStore to completion callbacks and ready/error listeners."""

    _store: MongoDBRecordStore
    _ready_listeners: list[ReadyListener]
    _error_listeners: list[ErrorListener]
    _tasks: set[asyncio.Task[None]]
    _start_task: asyncio.Task[None] | None

    def __init__(self, store: MongoDBRecordStore) -> None:
        self._store = store
        self._ready_listeners = []
        self._error_listeners = []
        self._tasks = set()
        self._start_task = None

    @property
    def store(self) -> MongoDBRecordStore:
        return self._store

    @property
    def description(self) -> str:
        return self._store.description

    @property
    def is_ready(self) -> bool:
        return self._store.is_ready

    def on_ready(self, listener: ReadyListener) -> None:
        """Register a listener called once the store is connected. Called immediately if it already is."""
        if self._store.is_ready:
            listener()
            return

        self._ready_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        """Register a listener called with the exception if connecting fails."""
        self._error_listeners.append(listener)

    def start(self) -> asyncio.Task[None]:
        """Begin connecting. Calling it again returns the same task."""
        if self._start_task is None:
            self._start_task = self._spawn(self._connect())

        return self._start_task

    async def when_ready(self) -> None:
        await self._store.when_ready()

    async def _connect(self) -> None:
        try:
            await self._store.when_ready()
        except Exception as e:
            logger.exception("Failed to connect record storage", extra={"description": self._store.description})
            for error_listener in self._error_listeners:
                error_listener(e)
            return

        ready_listeners, self._ready_listeners = self._ready_listeners, []
        for ready_listener in ready_listeners:
            ready_listener()

    def set(self, key: str, version: int, value: Any, callback: WriteCallback) -> asyncio.Task[None]:
        return self._spawn_operation(self._write(operation="set", call=lambda: self._store.set(key=key, version=version, value=value), callback=callback))

    def delete(self, key: str, callback: WriteCallback) -> asyncio.Task[None]:
        return self._spawn_operation(self._write(operation="delete", call=lambda: self._store.delete(key=key), callback=callback))

    def delete_bulk(self, keys: Sequence[str], callback: WriteCallback) -> asyncio.Task[None]:
        return self._spawn_operation(self._write(operation="delete_bulk", call=lambda: self._store.delete_many(keys=keys), callback=callback))

    def get(self, key: str, callback: ReadCallback) -> asyncio.Task[None]:
        return self._spawn_operation(self._read(key=key, callback=callback))

    async def _write(self, *, operation: str, call: Callable[[], Awaitable[Any]], callback: WriteCallback) -> None:
        try:
            _ = await call()
        except Exception as e:
            self._log_failure(operation=operation, error=e)
            callback(e)
            return

        callback(None)

    async def _read(self, *, key: str, callback: ReadCallback) -> None:
        try:
            version, value = await self._store.get(key=key)
        except Exception as e:
            self._log_failure(operation="get", error=e)
            callback(e, NOT_FOUND_VERSION, None)
            return

        callback(None, version, value)

    def _log_failure(self, *, operation: str, error: Exception) -> None:
        if isinstance(error, BackendError):
            logger.error("Record storage operation failed", exc_info=error, extra={"operation": operation})
        else:
            logger.debug("Record storage operation rejected", extra={"operation": operation, "error": str(error)})

    def _spawn_operation(self, coroutine: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        _ = self.start()
        return self._spawn(coroutine)

    def _spawn(self, coroutine: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task: asyncio.Task[None] = asyncio.get_running_loop().create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def close(self) -> None:
        """Wait for in-flight operations, then close the store."""
        try:
            if self._tasks:
                _ = await asyncio.gather(*self._tasks)
        finally:
            await self._store.close()
