# server/core/stores/base.py

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


# Half-width of the lat/lon box that counts as "the same place"
DUPLICATE_TOLERANCE = 0.01

# Key buckets are half the box width, so two coordinates sharing a key
# always differ by less than DUPLICATE_TOLERANCE
KEY_BUCKETS_PER_DEGREE = 200


@dataclass(frozen=True)
class UserIdentity:
    id: str
    username: str

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username}


@dataclass
class CityRecord:
    id: str
    owner_id: str
    name: str
    lat: float
    lon: float
    is_favorite: bool = False

    def to_dict(self) -> dict:
        # is_favorite stays snake_case and 0/1 for the dashboard frontend
        return {
            "id": self.id,
            "name": self.name,
            "lat": self.lat,
            "lon": self.lon,
            "is_favorite": 1 if self.is_favorite else 0,
        }


def normalize_username(username: str | None) -> str:
    return (username or "").strip().lower()


def coordinate_key(value: float) -> int:
    """
    Buckets a coordinate into half-hundredths of a degree.
    Each key covers a half-open interval 0.005 degrees wide.
    """
    return math.floor(value * KEY_BUCKETS_PER_DEGREE)


def within_tolerance(a: float, b: float) -> bool:
    return abs(a - b) < DUPLICATE_TOLERANCE


class CredentialStore(ABC):

    @abstractmethod
    def register(self, username: str, password: str) -> UserIdentity:
        """Creates a user; raises InvalidInput or DuplicateUsername."""

    @abstractmethod
    def verify(self, username: str, password: str) -> UserIdentity | None:
        """Returns the identity on a password match, None otherwise."""

    @abstractmethod
    def get_user(self, user_id: str) -> UserIdentity | None:
        ...


class CityStore(ABC):

    @abstractmethod
    def list_cities(self, owner_id: str) -> list[CityRecord]:
        ...

    @abstractmethod
    def add_city(self, owner_id: str, name: str, lat: float, lon: float) -> tuple[CityRecord, bool]:
        """
        Returns (city, already_exists).
        A city with the same name inside the tolerance box is returned as-is.
        """

    @abstractmethod
    def delete_city(self, owner_id: str, city_id: str) -> bool:
        ...

    @abstractmethod
    def delete_all_cities(self, owner_id: str) -> int:
        ...

    @abstractmethod
    def set_favorite(self, owner_id: str, city_id: str, value: bool) -> bool:
        """True when the city exists for this owner, even if nothing changed."""


class Store(CredentialStore, CityStore):
    """
    A storage backend serving both users and cities.
    """
    backend = "unknown"

    def init(self) -> None:
        """Creates tables / indexes. Safe to call more than once."""

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass
