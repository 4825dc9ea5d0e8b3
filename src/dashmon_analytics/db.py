"""MongoDB helpers for the report store and gold collections.

Centralizes creation of Mongo clients and the bulk upsert used when
persisting snapshot views.
"""

from __future__ import annotations

from typing import Any, Iterable
import logging

import certifi
from pymongo import MongoClient, UpdateOne
from pymongo.collection import Collection
from pymongo.database import Database

log = logging.getLogger(__name__)


def get_client(uri: str) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    TLS (with the certifi CA bundle) is only enabled for `mongodb+srv` URIs,
    so a plain local `mongodb://` server works out of the box.

    Args:
        uri: MongoDB connection URI.

    Returns:
        Configured MongoClient instance.
    """
    tls_kwargs: dict[str, Any] = {}
    if uri.startswith("mongodb+srv://"):
        tls_kwargs = {"tls": True, "tlsCAFile": certifi.where()}

    return MongoClient(
        uri,
        serverSelectionTimeoutMS=30000,
        socketTimeoutMS=30000,
        connectTimeoutMS=30000,
        **tls_kwargs,
    )


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient."""
    return client[db_name]


def bulk_upsert(
    collection: Collection[dict[str, Any]],
    docs: Iterable[dict[str, Any]],
    key_fields: list[str],
) -> int:
    """Upsert documents using `key_fields` as the selector.

    Errors from the server propagate to the caller.

    Args:
        collection: Target PyMongo collection.
        docs: Iterable of document dictionaries to upsert.
        key_fields: Document keys that identify a row.

    Returns:
        Number of upsert operations sent.
    """
    ops = [
        UpdateOne({k: d[k] for k in key_fields}, {"$set": d}, upsert=True)
        for d in docs
    ]
    if not ops:
        return 0

    collection.bulk_write(ops, ordered=False)
    log.debug("Upserted %d docs into %s", len(ops), collection.name)
    return len(ops)
