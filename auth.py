"""
Session gate: a request is authenticated when its session holds a valid,
unexpired JWT for the logged-in user.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Request

from errors import NotAuthenticated

logger = logging.getLogger(__name__)


def _settings(request: Request):
    return request.app.state.settings


def login_session(request: Request, user):
    settings = _settings(request)
    token = jwt.encode(
        {
            "username": user.username,
            "id": user.id,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.session_expiration_minutes),
        },
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    request.session["username"] = user.username
    request.session["token"] = token
    return token


def logout_session(request: Request):
    request.session.clear()


def current_username(request: Request):
    username = request.session.get("username")
    token = request.session.get("token")
    if not username or not token:
        return None

    settings = _settings(request)
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("Session for %s expired", username)
        return None
    except jwt.InvalidTokenError:
        logger.warning("Invalid session token for %s", username)
        return None

    if payload.get("username") != username:
        return None
    return username


def require_user(request: Request):
    username = current_username(request)
    if username is None:
        raise NotAuthenticated()
    return username
