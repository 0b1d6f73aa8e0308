import logging

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from .config import Settings
from .database import get_db
from .errors import Forbidden, StoreUnavailable, Unauthorized
from .models import RoleEnum, User
from .security import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _session_token(request: Request, credentials, settings: Settings):
    # Bearer header wins over the session cookie
    if credentials is not None:
        if credentials.scheme.lower() != "bearer":
            raise Unauthorized("Invalid authentication scheme")
        return credentials.credentials
    return request.cookies.get(settings.cookie_name)


def authenticate(request: Request, credentials, db: Session, settings: Settings, degrade: bool) -> User:
    """
    Resolve the session to a user.

    When the store is down, `degrade` hands back an unsaved User built from
    the signed token so read routes can answer with their empty defaults;
    otherwise StoreUnavailable is raised.
    """
    # STEP 1: Find a token
    token = _session_token(request, credentials, settings)
    if not token:
        raise Unauthorized("Please login")

    # STEP 2: Decode JWT
    try:
        payload = decode_access_token(settings, token)
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Session expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid session")

    user_id = payload.get("user_id")
    if not user_id:
        raise Unauthorized("Invalid session payload")

    # STEP 3: Load user
    try:
        user = db.query(User).filter(User.id == user_id).first()
    except OperationalError as exc:
        db.rollback()
        logger.warning("Could not load user %s: %s", user_id, exc)
        if not degrade:
            raise StoreUnavailable("Database not available") from exc
        return User(id=user_id, open_id=payload.get("sub"), role=RoleEnum.USER)

    if not user:
        raise Unauthorized("User not found")

    return user


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    # Queries are GET; mutations must not run against an unverified user
    return authenticate(request, credentials, db, settings, degrade=request.method == "GET")


def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User | None:
    try:
        return authenticate(request, credentials, db, settings, degrade=False)
    except Unauthorized as exc:
        logger.debug("Anonymous request: %s", exc.detail)
        return None
    except StoreUnavailable:
        return None


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Forbidden("Admin access required")
    return current_user
