from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from teamcal.core.config import get_settings
from teamcal.core.security import decode_token
from teamcal.db.session import get_db
from teamcal.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        payload = decode_token(credentials.credentials)
    except ValueError:
        raise unauthorized
    if payload.get("type") != "access" or not payload.get("sub"):
        raise unauthorized

    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user:
        raise unauthorized
    return user


def get_user_timezone(current_user: User = Depends(get_current_user)) -> ZoneInfo:
    try:
        return ZoneInfo(current_user.timezone or get_settings().default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(get_settings().default_timezone)
