# server/core/stores/sql.py

import logging
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

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
from database import init_db, make_engine, make_session_factory
from models import City, User


logger = logging.getLogger(__name__)


def _to_record(city: City) -> CityRecord:
    return CityRecord(
        id=city.id,
        owner_id=city.user_id,
        name=city.name,
        lat=city.lat,
        lon=city.lon,
        is_favorite=bool(city.is_favorite),
    )


class SqlStore(Store):
    """
    Users and cities in a relational database through SQLAlchemy.
    Every operation runs in its own short-lived session.
    """
    backend = "sql"

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = make_session_factory(engine)

    @classmethod
    def from_url(cls, url: str) -> "SqlStore":
        return cls(make_engine(url))

    def init(self) -> None:
        init_db(self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("SQL store ping failed", exc_info=True)
            return False

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    # -------------------------------
    # Credentials
    # -------------------------------

    def register(self, username: str, password: str) -> UserIdentity:
        normalized = normalize_username(username)
        if not normalized or not password:
            raise InvalidInput("Username and password are required")

        with self._session() as db:
            if db.query(User).filter(User.username == normalized).first():
                raise DuplicateUsername()

            user = User(username=normalized, hashed_password=get_password_hash(password))
            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateUsername()
            return UserIdentity(id=user.id, username=user.username)

    def verify(self, username: str, password: str) -> UserIdentity | None:
        normalized = normalize_username(username)
        if not normalized or not password:
            return None
        with self._session() as db:
            user = db.query(User).filter(User.username == normalized).first()
            if not user or not verify_password(password, user.hashed_password):
                return None
            return UserIdentity(id=user.id, username=user.username)

    def get_user(self, user_id: str) -> UserIdentity | None:
        with self._session() as db:
            user = db.get(User, user_id)
            return UserIdentity(id=user.id, username=user.username) if user else None

    # -------------------------------
    # Cities
    # -------------------------------

    def list_cities(self, owner_id: str) -> list[CityRecord]:
        with self._session() as db:
            cities = (
                db.query(City)
                .filter(City.user_id == owner_id)
                .order_by(City.created_at.asc())
                .all()
            )
            return [_to_record(c) for c in cities]

    def _find_near(self, db: Session, owner_id: str, name: str, lat: float, lon: float) -> City | None:
        return (
            db.query(City)
            .filter(
                City.user_id == owner_id,
                City.name == name,
                City.lat > lat - DUPLICATE_TOLERANCE,
                City.lat < lat + DUPLICATE_TOLERANCE,
                City.lon > lon - DUPLICATE_TOLERANCE,
                City.lon < lon + DUPLICATE_TOLERANCE,
            )
            .first()
        )

    def add_city(self, owner_id: str, name: str, lat: float, lon: float) -> tuple[CityRecord, bool]:
        with self._session() as db:
            existing = self._find_near(db, owner_id, name, lat, lon)
            if existing:
                return _to_record(existing), True

            city = City(
                user_id=owner_id,
                name=name,
                lat=lat,
                lon=lon,
                lat_key=coordinate_key(lat),
                lon_key=coordinate_key(lon),
                is_favorite=False,
            )
            db.add(city)
            try:
                db.commit()
            except IntegrityError:
                # A concurrent request inserted the same place first
                db.rollback()
                existing = self._find_near(db, owner_id, name, lat, lon)
                if existing is None:
                    raise
                return _to_record(existing), True
            return _to_record(city), False

    def delete_city(self, owner_id: str, city_id: str) -> bool:
        with self._session() as db:
            deleted = db.query(City).filter(City.id == city_id, City.user_id == owner_id).delete()
            db.commit()
            return deleted > 0

    def delete_all_cities(self, owner_id: str) -> int:
        with self._session() as db:
            deleted = db.query(City).filter(City.user_id == owner_id).delete()
            db.commit()
            return deleted

    def set_favorite(self, owner_id: str, city_id: str, value: bool) -> bool:
        with self._session() as db:
            city = db.query(City).filter(City.id == city_id, City.user_id == owner_id).first()
            if city is None:
                return False
            city.is_favorite = bool(value)
            db.commit()
            return True
