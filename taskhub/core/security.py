"""Session cookie, anti-forgery tokens and output hardening."""
from __future__ import annotations

import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from starlette.requests import Request
from starlette.responses import Response

import taskhub.config as _cfg

logger = logging.getLogger(__name__)

CSRF_KEY = "csrf_token"

SECURE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class Session(dict):
    """Per-browser key/value store persisted in a signed cookie."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.modified = False

    def __setitem__(self, key: str, value: Any) -> None:
        super().__setitem__(key, value)
        self.modified = True


def load_session(request: Request) -> Session:
    raw = request.cookies.get(_cfg.SESSION_COOKIE)
    if not raw:
        return Session()
    try:
        # jwt.decode validates exp automatically
        payload = jwt.decode(raw, _cfg.SECRET_KEY, algorithms=[_cfg.ALGORITHM])
    except ExpiredSignatureError:
        logger.debug("Session cookie expired")
        return Session()
    except JWTError:
        logger.warning("Rejected tampered session cookie")
        return Session()
    return Session(payload.get("data") or {})


def store_session(response: Response, session: Session) -> None:
    if not session.modified:
        return
    # read expiry at call time so runtime overrides take effect
    expire = datetime.now(UTC) + timedelta(minutes=_cfg.SESSION_MAX_AGE_MINUTES)
    token = jwt.encode(
        {"data": dict(session), "exp": int(expire.timestamp())},
        _cfg.SECRET_KEY,
        algorithm=_cfg.ALGORITHM,
    )
    response.set_cookie(
        _cfg.SESSION_COOKIE,
        token,
        max_age=int(_cfg.SESSION_MAX_AGE_MINUTES * 60),
        httponly=True,
        samesite="lax",
    )


def generate_token(nbytes: int = 32) -> str:
    return secrets.token_hex(nbytes)


def csrf_token(session: Session) -> str:
    """Return the session's anti-forgery token, creating it on first use."""
    token = session.get(CSRF_KEY)
    if not token:
        token = generate_token()
        session[CSRF_KEY] = token
    return token


def validate_csrf_token(session: Session, token: Optional[str]) -> bool:
    expected = session.get(CSRF_KEY)
    if not expected or not token:
        return False
    return hmac.compare_digest(str(expected), str(token))

