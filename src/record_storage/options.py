from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from record_storage._utils.constants import DEFAULT_COLLECTION, DEFAULT_DATABASE
from record_storage.errors import ConfigurationError

CONNECTION_STRING_NAMES = ("connection_string", "connectionString")


class StorageOptions(BaseModel):
    """Settings for a MongoDB record store.

    Accepts both snake_case names and the camelCase names used in host configuration files:

        {
            # Required. Format is mongodb://[username:password@]host1[:port1][,host2[:port2],...][/[database][?options]]
            "connectionString": "mongodb://localhost:27017",
            # Optional. Database to store records in. Defaults to "deepstream"
            "db": "deepstream",
            # Optional. Collection for keys without a splitChar. Defaults to "deepstream_docs"
            "defaultCollection": "deepstream_docs",
            # Optional. Character separating the collection name from the document id. Defaults to None (no routing)
            "splitChar": "/",
        }
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    connection_string: str = Field(min_length=1, validation_alias=AliasChoices(*CONNECTION_STRING_NAMES))
    database: str = Field(default=DEFAULT_DATABASE, min_length=1, validation_alias=AliasChoices("database", "db", "db_name"))
    default_collection: str = Field(
        default=DEFAULT_COLLECTION, min_length=1, validation_alias=AliasChoices("default_collection", "defaultCollection")
    )
    split_char: str | None = Field(default=None, validation_alias=AliasChoices("split_char", "splitChar"))

    @classmethod
    def parse(cls, options: Mapping[str, Any]) -> "StorageOptions":
        """Validate host options.

        Raises:
            ConfigurationError: If the connection string is missing or any option is invalid.
        """
        if not any(options.get(name) for name in CONNECTION_STRING_NAMES):
            msg = "Missing setting 'connectionString'"
            raise ConfigurationError(message=msg)

        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            msg = f"Invalid storage options: {e}"
            raise ConfigurationError(message=msg) from e
