import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from weather_records.core.config import Settings
from weather_records.core.deps import get_settings
from weather_records.core.security import decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    username: str


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    config: Settings = Depends(get_settings),
) -> CurrentUser:
    """
    Resolve the caller from the `Authorization: Bearer <token>` header.

    **Errors:**
    - 401 if no bearer token is supplied.
    - 403 if the token is malformed, tampered with or expired.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")

    try:
        claims = decode_access_token(credentials.credentials, config.jwt_secret)
        return CurrentUser(user_id=int(claims["userId"]), username=str(claims.get("username", "")))
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError) as e:
        logger.info("Rejected access token: %s", e)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")
