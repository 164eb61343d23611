import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import g, request

from config import JWT_EXPIRES_HOURS, JWT_SECRET
from errors import AuthenticationRequired, AuthorizationDenied, InvalidToken
from store import db

logger = logging.getLogger(__name__)

USER_FIELDS = "id, name, email, role, bio, avatar_url, created_at"


def issue_token(user):
    """Sign a bearer token carrying the identity's id and role."""
    expires = datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRES_HOURS)
    return jwt.encode({"id": user["id"], "role": user["role"], "exp": expires}, JWT_SECRET, algorithm="HS256")


def decode_token(token):
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise InvalidToken("Token expired")
    except jwt.InvalidTokenError:
        raise InvalidToken("Invalid Token")


def _bearer_token():
    header = request.headers.get("Authorization", "").strip()
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return header


def current_user():
    """Resolve the request's bearer token to a fresh identity row.

    The role is read from the store rather than the token, so a promotion
    takes effect on the next request without signing in again.
    """
    token = _bearer_token()
    if not token:
        raise AuthenticationRequired("Access Denied: No Token Provided")
    claims = decode_token(token)
    rows = db.execute(f"SELECT {USER_FIELDS} FROM users WHERE id = ?", claims.get("id"))
    if len(rows) != 1:
        logger.info("Token presented for missing user %s", claims.get("id"))
        raise AuthenticationRequired("Access Denied: Account not found")
    return rows[0]


def login_required(f):
    """
    Decorate routes to require a valid bearer token.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user = current_user()
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """
    Decorate routes to require the admin role.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user = current_user()
        if not is_admin(g.user):
            raise AuthorizationDenied("Access Denied: Admins only.")
        return f(*args, **kwargs)
    return decorated_function


def is_admin(user):
    return user is not None and user.get("role") == "admin"


def is_club_head(user_id, club_id):
    if user_id is None or club_id is None:
        return False
    rows = db.execute(
        "SELECT 1 FROM club_members WHERE club_id = ? AND user_id = ? AND role_in_club = 'head'",
        club_id,
        user_id,
    )
    return len(rows) > 0


def require_club_head(user_id, club_id, message="Access Denied: You are not the head of this club."):
    if not is_club_head(user_id, club_id):
        raise AuthorizationDenied(message)
