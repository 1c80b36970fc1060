# server/api/cities.py

import logging
from pydantic import BaseModel, Field, field_validator
from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from core.errors import InternalError, NotFound
from core.security import get_current_user
from core.stores import Store, UserIdentity, get_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cities", tags=["cities"])


class CityCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class FavoriteRequest(BaseModel):
    is_favorite: bool = False

    @field_validator("is_favorite", mode="before")
    @classmethod
    def coerce_truthiness(cls, value):
        # null, 0, "" clear the flag; any other value sets it
        return bool(value)


# -------------------------------
# City Endpoints
# -------------------------------

@router.get("")
def list_cities(current_user: UserIdentity = Depends(get_current_user), store: Store = Depends(get_store)):
    """
    Returns every city saved by the caller.
    """
    try:
        return [city.to_dict() for city in store.list_cities(current_user.id)]
    except Exception:
        logger.exception("Fetch cities error")
        raise InternalError("Failed to fetch cities")


@router.post("")
def add_city(
    req: CityCreateRequest,
    current_user: UserIdentity = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    """
    Saves a city, or returns the already-saved one when a city with the same
    name lies within 0.01 degrees (200 with alreadyExists instead of 201).
    """
    try:
        city, already_exists = store.add_city(current_user.id, req.name, req.lat, req.lon)
    except Exception:
        logger.exception("Add city error")
        raise InternalError("Failed to add city")

    body = {**city.to_dict(), "alreadyExists": already_exists}
    code = status.HTTP_200_OK if already_exists else status.HTTP_201_CREATED
    return JSONResponse(status_code=code, content=body)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_all_cities(current_user: UserIdentity = Depends(get_current_user), store: Store = Depends(get_store)):
    try:
        deleted = store.delete_all_cities(current_user.id)
    except Exception:
        logger.exception("Delete all cities error")
        raise InternalError("Failed to delete all cities")
    logger.info("Deleted %d cities for user %s", deleted, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{city_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_city(
    city_id: str,
    current_user: UserIdentity = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    try:
        deleted = store.delete_city(current_user.id, city_id)
    except Exception:
        logger.exception("Delete city error")
        raise InternalError("Failed to delete city")
    if not deleted:
        raise NotFound("City not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{city_id}/favorite")
def set_favorite(
    city_id: str,
    req: FavoriteRequest | None = None,
    current_user: UserIdentity = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    value = req.is_favorite if req else False
    try:
        matched = store.set_favorite(current_user.id, city_id, value)
    except Exception:
        logger.exception("Favorite toggle error")
        raise InternalError("Failed to toggle favorite")
    if not matched:
        raise NotFound("City not found")
    return {"success": True}
