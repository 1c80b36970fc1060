# server/core/stores/mongo.py

import logging
from datetime import datetime
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from core.errors import DuplicateUsername, InvalidInput
from core.security import get_password_hash, verify_password
from core.stores.base import (
    DUPLICATE_TOLERANCE,
    CityRecord,
    Store,
    UserIdentity,
    coordinate_key,
    normalize_username,
)


logger = logging.getLogger(__name__)


def _object_id(value: str) -> ObjectId | None:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _to_record(doc: dict) -> CityRecord:
    return CityRecord(
        id=str(doc["_id"]),
        owner_id=doc["userId"],
        name=doc["name"],
        lat=doc["lat"],
        lon=doc["lon"],
        is_favorite=bool(doc.get("isFavorite", False)),
    )


class MongoStore(Store):
    """
    Users and cities as MongoDB documents.
    Ids are ObjectId hex strings; owner ids are stored as strings.
    """
    backend = "mongo"

    def __init__(self, client: MongoClient, db_name: str):
        self.client = client
        self.db: Database = client[db_name]
        self.users = self.db["users"]
        self.cities = self.db["cities"]

    @classmethod
    def from_uri(cls, uri: str, db_name: str) -> "MongoStore":
        client = MongoClient(uri, serverSelectionTimeoutMS=3000, connectTimeoutMS=3000)
        return cls(client, db_name)

    def init(self) -> None:
        self.users.create_index([("username", ASCENDING)], unique=True)
        self.cities.create_index([("userId", ASCENDING)])
        self.cities.create_index(
            [("userId", ASCENDING), ("name", ASCENDING), ("latKey", ASCENDING), ("lonKey", ASCENDING)],
            unique=True,
            name="uq_city_owner_place",
        )

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
            return True
        except Exception:
            logger.warning("Mongo store ping failed", exc_info=True)
            return False

    def close(self) -> None:
        self.client.close()

    # -------------------------------
    # Credentials
    # -------------------------------

    def register(self, username: str, password: str) -> UserIdentity:
        normalized = normalize_username(username)
        if not normalized or not password:
            raise InvalidInput("Username and password are required")

        if self.users.find_one({"username": normalized}):
            raise DuplicateUsername()

        try:
            result = self.users.insert_one({
                "username": normalized,
                "password": get_password_hash(password),
            })
        except DuplicateKeyError:
            raise DuplicateUsername()
        return UserIdentity(id=str(result.inserted_id), username=normalized)

    def verify(self, username: str, password: str) -> UserIdentity | None:
        normalized = normalize_username(username)
        if not normalized or not password:
            return None
        user = self.users.find_one({"username": normalized})
        if not user or not verify_password(password, user["password"]):
            return None
        return UserIdentity(id=str(user["_id"]), username=user["username"])

    def get_user(self, user_id: str) -> UserIdentity | None:
        oid = _object_id(user_id)
        if oid is None:
            return None
        user = self.users.find_one({"_id": oid})
        return UserIdentity(id=str(user["_id"]), username=user["username"]) if user else None

    # -------------------------------
    # Cities
    # -------------------------------

    def list_cities(self, owner_id: str) -> list[CityRecord]:
        cursor = self.cities.find({"userId": owner_id}).sort("createdAt", ASCENDING)
        return [_to_record(doc) for doc in cursor]

    def _find_near(self, owner_id: str, name: str, lat: float, lon: float) -> dict | None:
        return self.cities.find_one({
            "userId": owner_id,
            "name": name,
            "lat": {"$gt": lat - DUPLICATE_TOLERANCE, "$lt": lat + DUPLICATE_TOLERANCE},
            "lon": {"$gt": lon - DUPLICATE_TOLERANCE, "$lt": lon + DUPLICATE_TOLERANCE},
        })

    def add_city(self, owner_id: str, name: str, lat: float, lon: float) -> tuple[CityRecord, bool]:
        existing = self._find_near(owner_id, name, lat, lon)
        if existing:
            return _to_record(existing), True

        doc = {
            "userId": owner_id,
            "name": name,
            "lat": lat,
            "lon": lon,
            "latKey": coordinate_key(lat),
            "lonKey": coordinate_key(lon),
            "isFavorite": False,
            "createdAt": datetime.now(),
        }
        try:
            result = self.cities.insert_one(doc)
        except DuplicateKeyError:
            # Lost the race against an identical insert
            existing = self._find_near(owner_id, name, lat, lon)
            if existing is None:
                raise
            return _to_record(existing), True
        doc["_id"] = result.inserted_id
        return _to_record(doc), False

    def delete_city(self, owner_id: str, city_id: str) -> bool:
        oid = _object_id(city_id)
        if oid is None:
            return False
        result = self.cities.delete_one({"_id": oid, "userId": owner_id})
        return result.deleted_count > 0

    def delete_all_cities(self, owner_id: str) -> int:
        return self.cities.delete_many({"userId": owner_id}).deleted_count

    def set_favorite(self, owner_id: str, city_id: str, value: bool) -> bool:
        oid = _object_id(city_id)
        if oid is None:
            return False
        result = self.cities.update_one(
            {"_id": oid, "userId": owner_id},
            {"$set": {"isFavorite": bool(value)}},
        )
        return result.matched_count > 0
