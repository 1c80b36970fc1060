# server/models/city.py

import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from . import Base


# -------------------------------
# City Model
# -------------------------------

class City(Base):
    """
    A location saved to one user's dashboard.
    lat_key / lon_key hold the coordinates in hundredths of a degree and back
    the unique constraint that stops concurrent near-duplicate inserts.
    """
    __tablename__ = "cities"
    __table_args__ = (
        UniqueConstraint("user_id", "name", "lat_key", "lon_key", name="uq_city_owner_place"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)
    lat_key = Column(Integer, nullable=False)
    lon_key = Column(Integer, nullable=False)
    is_favorite = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
