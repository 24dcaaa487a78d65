"""Reserved field names and defaults shared by the router, cache, codec and store."""

DEFAULT_DATABASE = "deepstream"
DEFAULT_COLLECTION = "deepstream_docs"

# MongoDB's own primary key, never part of a record value
ID_FIELD = "_id"

# Reserved document fields. A caller value using one of these names is shadowed on write.
ROUTING_FIELD = "ds_key"
VERSION_FIELD = "ds_version"
WRAPPER_FIELD = "ds_list"

RESERVED_FIELDS = frozenset({ID_FIELD, ROUTING_FIELD, VERSION_FIELD})

# Version returned by `get` for a record that does not exist
NOT_FOUND_VERSION = -1
