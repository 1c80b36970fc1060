# server/api/health.py

from fastapi import APIRouter, Depends

from core.stores import Store, get_store


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health(store: Store = Depends(get_store)):
    return {
        "status": "ok",
        "backend": store.backend,
        "storeState": "connected" if store.ping() else "disconnected",
    }
