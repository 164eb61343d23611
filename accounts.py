import logging
import uuid

from werkzeug.security import check_password_hash, generate_password_hash

import notifications
from auth import USER_FIELDS
from errors import AuthorizationDenied, BadRequest, NotFound
from store import db

logger = logging.getLogger(__name__)

# club_head is only ever reached through club approval
SIGNUP_ROLES = ("student", "admin")

ADMIN_EXISTS = "Register Failed: System already has an Admin. Only one allowed."
EMAIL_TAKEN = "User with this email already exists."


def register_user(name, email, password, role=None):
    """Create an identity and return its id.

    A second admin is refused before anything is written; the partial unique
    index on users.role catches the same case if two signups race.
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    role = role or "student"

    if not name:
        raise BadRequest("Name is required.")
    if not email:
        raise BadRequest("Email is required.")
    if not password:
        raise BadRequest("Password is required.")
    if role not in SIGNUP_ROLES:
        raise BadRequest("Invalid role.")

    if role == "admin":
        count = db.execute("SELECT COUNT(*) AS c FROM users WHERE role = 'admin'")[0]["c"]
        if count >= 1:
            logger.warning("Refused admin signup for %s: admin already exists", email)
            raise AuthorizationDenied(ADMIN_EXISTS)

    if db.execute("SELECT 1 FROM users WHERE email = ?", email):
        raise BadRequest(EMAIL_TAKEN)

    user_id = str(uuid.uuid4())
    try:
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, role) VALUES (?, ?, ?, ?, ?)",
            user_id,
            name,
            email,
            generate_password_hash(password),
            role,
        )
    except ValueError as e:
        if "users.role" in str(e) or "idx_users_single_admin" in str(e):
            raise AuthorizationDenied(ADMIN_EXISTS)
        raise BadRequest(EMAIL_TAKEN)

    logger.info("Registered %s user %s", role, user_id)
    notifications.send_welcome_email(name, email)
    return user_id


def authenticate(email, password):
    email = (email or "").strip().lower()
    if not email or not password:
        raise BadRequest("Email and password are required.")

    rows = db.execute("SELECT * FROM users WHERE email = ?", email)

    # Ensure email exists and password is correct
    if len(rows) != 1 or not check_password_hash(rows[0]["password_hash"], password):
        raise BadRequest("Invalid email and/or password.")

    user = rows[0]
    return {"id": user["id"], "name": user["name"], "email": user["email"], "role": user["role"]}


def get_user(user_id):
    rows = db.execute(f"SELECT {USER_FIELDS} FROM users WHERE id = ?", user_id)
    if len(rows) != 1:
        raise NotFound("Profile not found")
    return rows[0]


def update_profile(user_id, fields):
    """Self-scoped profile edit; only name, bio and avatar_url are writable."""
    updates = {key: fields[key] for key in ("name", "bio", "avatar_url") if key in fields}
    if "name" in updates and not (updates["name"] or "").strip():
        raise BadRequest("Name cannot be empty.")
    if not updates:
        return get_user(user_id)

    assignments = ", ".join(f"{key} = ?" for key in updates)
    db.execute(f"UPDATE users SET {assignments} WHERE id = ?", *updates.values(), user_id)
    return get_user(user_id)
