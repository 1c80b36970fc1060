# server/core/security.py

from datetime import datetime, timedelta, timezone
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from core.errors import AuthenticationFailed, AuthorizationFailed
from core.stores.base import UserIdentity


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# -------------------------------
# Bearer tokens
# -------------------------------

def create_access_token(
    identity: UserIdentity,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    """
    Signs a stateless token carrying the user's id and username.
    Without expires_delta the token has no exp claim.
    """
    to_encode = {"id": identity.id, "username": identity.username}
    if expires_delta is not None:
        to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> UserIdentity:
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        raise AuthorizationFailed("Forbidden")

    user_id = payload.get("id")
    username = payload.get("username")
    if not user_id or not username:
        raise AuthorizationFailed("Forbidden")
    return UserIdentity(id=str(user_id), username=username)


def issue_token(request: Request, identity: UserIdentity) -> str:
    settings = request.app.state.settings
    minutes = settings.access_token_expire_minutes
    expires = timedelta(minutes=minutes) if minutes > 0 else None
    return create_access_token(identity, settings.resolve_secret(), settings.jwt_algorithm, expires)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UserIdentity:
    """
    Resolves the bearer token into the caller's identity.
    No token -> 401, invalid or expired token -> 403.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationFailed("Unauthorized")
    settings = request.app.state.settings
    return decode_access_token(credentials.credentials, settings.resolve_secret(), settings.jwt_algorithm)
