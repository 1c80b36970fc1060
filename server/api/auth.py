# server/api/auth.py

import logging
from pydantic import BaseModel
from fastapi import APIRouter, Depends, Request, status

from core.errors import AuthenticationFailed, DashboardError, InternalError, NotFound
from core.security import get_current_user, issue_token
from core.stores import Store, UserIdentity, get_store, normalize_username


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class Credentials(BaseModel):
    username: str | None = None
    password: str | None = None


class UserOut(BaseModel):
    id: str
    username: str


class AuthResponse(BaseModel):
    token: str
    user: UserOut


def _auth_response(request: Request, identity: UserIdentity) -> dict:
    return {"token": issue_token(request, identity), "user": identity.to_dict()}


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(body: Credentials, request: Request, store: Store = Depends(get_store)):
    logger.info("Registration attempt for username: %s", normalize_username(body.username))
    try:
        identity = store.register(body.username or "", body.password or "")
        return _auth_response(request, identity)
    except DashboardError:
        raise
    except Exception:
        logger.exception("Registration error")
        raise InternalError("Internal server error during registration")


@router.post("/login", response_model=AuthResponse)
def login(body: Credentials, request: Request, store: Store = Depends(get_store)):
    try:
        identity = store.verify(body.username or "", body.password or "")
    except Exception:
        logger.exception("Login error")
        raise InternalError("Internal server error during login")

    if identity is None:
        logger.info("Failed login for username: %s", normalize_username(body.username))
        raise AuthenticationFailed("Invalid credentials")
    return _auth_response(request, identity)


@router.get("/me", response_model=UserOut)
def read_users_me(current_user: UserIdentity = Depends(get_current_user), store: Store = Depends(get_store)):
    try:
        user = store.get_user(current_user.id)
    except Exception:
        logger.exception("Fetch user error")
        raise InternalError("Failed to fetch user")
    if user is None:
        raise NotFound("User not found")
    return user.to_dict()
