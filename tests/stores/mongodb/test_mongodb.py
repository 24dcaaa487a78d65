import contextlib
from collections.abc import AsyncGenerator, Iterator
from time import sleep
from typing import Any

import pytest
from pymongo import MongoClient
from typing_extensions import override

from record_storage import MongoDBRecordStore, StoreSetupError
from tests.conftest import docker_container, should_skip_docker_tests
from tests.stores.base import DEFAULT_COLLECTION, SPLIT_CHAR, BaseRecordStoreTests

# MongoDB test configuration
MONGODB_HOST = "localhost"
MONGODB_HOST_PORT = 27017
MONGODB_TEST_DB = "record-storage-tests"

WAIT_FOR_MONGODB_TIMEOUT = 30

MONGODB_VERSIONS_TO_TEST = [
    "5.0",  # Older supported version
    "8.0",  # Latest stable version
]


def ping_mongodb() -> bool:
    client: MongoClient[Any] = MongoClient[Any](host=MONGODB_HOST, port=MONGODB_HOST_PORT, serverSelectionTimeoutMS=1000)
    try:
        _ = client.admin.command("ping")
    except Exception:
        return False
    finally:
        client.close()

    return True


def wait_mongodb() -> bool:
    for _ in range(WAIT_FOR_MONGODB_TIMEOUT):
        if ping_mongodb():
            return True
        sleep(1)
    return False


class MongoDBFailedToStartError(Exception):
    pass


@pytest.mark.mongodb
@pytest.mark.skipif(should_skip_docker_tests(), reason="Docker is not available")
class TestMongoDBRecordStore(BaseRecordStoreTests):
    @pytest.fixture(autouse=True, scope="session", params=MONGODB_VERSIONS_TO_TEST)
    def setup_mongodb(self, request: pytest.FixtureRequest) -> Iterator[None]:
        version = request.param

        with docker_container(f"mongodb-test-{version}", f"mongo:{version}", {str(MONGODB_HOST_PORT): MONGODB_HOST_PORT}):
            if not wait_mongodb():
                msg = f"MongoDB {version} failed to start"
                raise MongoDBFailedToStartError(msg)

            yield

    @override
    @pytest.fixture
    async def store(self, setup_mongodb: None) -> AsyncGenerator[MongoDBRecordStore, None]:
        store = MongoDBRecordStore(
            url=f"mongodb://{MONGODB_HOST}:{MONGODB_HOST_PORT}",
            database=MONGODB_TEST_DB,
            default_collection=DEFAULT_COLLECTION,
            split_char=SPLIT_CHAR,
        )

        # Ensure a clean db by dropping the test database if it exists
        with contextlib.suppress(Exception):
            _ = await store._client.drop_database(name_or_database=MONGODB_TEST_DB)  # pyright: ignore[reportPrivateUsage]

        yield store

        await store.close()

    async def test_collection_gets_routing_index(self, store: MongoDBRecordStore):
        await store.set("user/a", 1, {"a": 1})
        await store._collections.wait_for_indexes()  # pyright: ignore[reportPrivateUsage]

        collection = store._collections.get_collection("user")  # pyright: ignore[reportPrivateUsage]
        index_information = await collection.index_information()

        assert "ds_key_1" in index_information


async def test_unreachable_mongodb():
    store = MongoDBRecordStore(url="mongodb://localhost:1/?serverSelectionTimeoutMS=200", database=MONGODB_TEST_DB)

    with pytest.raises(StoreSetupError):
        await store.when_ready()

    await store.close()
