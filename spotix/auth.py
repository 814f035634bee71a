"""Bearer-token identity for the HTTP routes."""

from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from spotix import config
from spotix.errors import Unauthorized

bearer = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode = {"sub": user_id, "uid": user_id, "exp": expire}
    return jwt.encode(to_encode, config.AUTH_SECRET_KEY, algorithm=config.AUTH_ALGORITHM)


def parse_token(token: str) -> str:
    try:
        payload = jwt.decode(token, config.AUTH_SECRET_KEY, algorithms=[config.AUTH_ALGORITHM])
    except JWTError as exc:
        raise Unauthorized("Token expired or invalid") from exc

    user_id: str | None = payload.get("uid") or payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token")
    return user_id


def get_current_user_id(credentials: HTTPAuthorizationCredentials | None = Depends(bearer)) -> str:
    if credentials is None:
        raise Unauthorized("Missing bearer token")
    return parse_token(credentials.credentials)


def get_optional_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> str | None:
    # guests may vote without an account
    if credentials is None:
        return None
    return parse_token(credentials.credentials)
