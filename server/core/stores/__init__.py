# server/core/stores/__init__.py

import logging
from fastapi import Request

from config import Settings
from core.stores.base import (
    CityRecord,
    CityStore,
    CredentialStore,
    Store,
    UserIdentity,
    normalize_username,
)


logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> Store:
    """
    Picks the backend from configuration: Mongo when MONGODB_URI is set,
    the SQLAlchemy store (SQLite file by default) otherwise.
    """
    if settings.use_mongo:
        from core.stores.mongo import MongoStore
        logger.info("Using MongoDB store (database %s)", settings.mongodb_db)
        return MongoStore.from_uri(settings.mongodb_uri, settings.mongodb_db)

    from core.stores.sql import SqlStore
    logger.info("Using SQL store at %s", settings.database_url)
    return SqlStore.from_url(settings.database_url)


def get_store(request: Request) -> Store:
    return request.app.state.store


__all__ = [
    "CityRecord",
    "CityStore",
    "CredentialStore",
    "Store",
    "UserIdentity",
    "build_store",
    "get_store",
    "normalize_username",
]
