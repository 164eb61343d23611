import logging
import os
import re
from contextlib import contextmanager

from cs50 import SQL

from config import DATABASE_URL

logger = logging.getLogger(__name__)

# CS50's SQL refuses to open a SQLite file that does not exist yet
_sqlite_path = re.match(r"^sqlite:///(.+)$", DATABASE_URL)
if _sqlite_path and not os.path.exists(_sqlite_path.group(1)):
    open(_sqlite_path.group(1), "a").close()

db = SQL(DATABASE_URL)

# Enforce foreign keys on SQLite
if DATABASE_URL.startswith("sqlite"):
    try:
        db.execute("PRAGMA foreign_keys = ON")
    except Exception:
        logger.warning("Could not enable SQLite foreign keys")


SCHEMA = [
    "CREATE TABLE IF NOT EXISTS users ("
    "id TEXT PRIMARY KEY, "
    "name TEXT NOT NULL, "
    "email TEXT NOT NULL UNIQUE, "
    "password_hash TEXT NOT NULL, "
    "role TEXT NOT NULL DEFAULT 'student' CHECK (role IN ('student', 'club_head', 'admin')), "
    "bio TEXT, "
    "avatar_url TEXT, "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    # At most one admin row, enforced by the engine rather than a count-then-insert
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_single_admin ON users(role) WHERE role = 'admin'",
    "CREATE TABLE IF NOT EXISTS clubs ("
    "id TEXT PRIMARY KEY, "
    "name TEXT NOT NULL, "
    "category TEXT, "
    "description TEXT, "
    "faculty_advisor TEXT, "
    "whatsapp_link TEXT, "
    "created_by TEXT REFERENCES users(id), "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    "CREATE TABLE IF NOT EXISTS clubs_pending ("
    "id TEXT PRIMARY KEY, "
    "name TEXT NOT NULL, "
    "category TEXT, "
    "description TEXT, "
    "faculty_advisor TEXT, "
    "whatsapp_link TEXT, "
    "created_by TEXT NOT NULL REFERENCES users(id), "
    "status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected')), "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    "CREATE TABLE IF NOT EXISTS club_members ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "club_id TEXT NOT NULL REFERENCES clubs(id) ON DELETE CASCADE, "
    "user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE, "
    "role_in_club TEXT NOT NULL DEFAULT 'member' CHECK (role_in_club IN ('member', 'head')), "
    "joined_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP, "
    "UNIQUE(club_id, user_id))",
    "CREATE TABLE IF NOT EXISTS events ("
    "id TEXT PRIMARY KEY, "
    "title TEXT NOT NULL, "
    "description TEXT, "
    "date TEXT NOT NULL, "
    "venue TEXT, "
    "organizer_club TEXT NOT NULL REFERENCES clubs(id) ON DELETE CASCADE, "
    "whatsapp_link TEXT, "
    "banner_url TEXT, "
    "created_by TEXT REFERENCES users(id), "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    "CREATE TABLE IF NOT EXISTS events_pending ("
    "id TEXT PRIMARY KEY, "
    "title TEXT NOT NULL, "
    "description TEXT, "
    "date TEXT NOT NULL, "
    "venue TEXT, "
    "organizer_club TEXT NOT NULL REFERENCES clubs(id) ON DELETE CASCADE, "
    "whatsapp_link TEXT, "
    "banner_url TEXT, "
    "created_by TEXT NOT NULL REFERENCES users(id), "
    "status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected')), "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    "CREATE TABLE IF NOT EXISTS event_participants ("
    "id TEXT PRIMARY KEY, "
    "event_id TEXT NOT NULL REFERENCES events(id) ON DELETE CASCADE, "
    "user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE, "
    "attended INTEGER NOT NULL DEFAULT 0, "
    "registered_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP, "
    "UNIQUE(event_id, user_id))",
    "CREATE TABLE IF NOT EXISTS announcements ("
    "id TEXT PRIMARY KEY, "
    "club_id TEXT NOT NULL REFERENCES clubs(id) ON DELETE CASCADE, "
    "message TEXT NOT NULL, "
    "created_by TEXT REFERENCES users(id), "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    "CREATE TABLE IF NOT EXISTS announcements_pending ("
    "id TEXT PRIMARY KEY, "
    "club_id TEXT NOT NULL REFERENCES clubs(id) ON DELETE CASCADE, "
    "message TEXT NOT NULL, "
    "created_by TEXT NOT NULL REFERENCES users(id), "
    "status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected')), "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    "CREATE TABLE IF NOT EXISTS club_discussions ("
    "id TEXT PRIMARY KEY, "
    "club_id TEXT NOT NULL REFERENCES clubs(id) ON DELETE CASCADE, "
    "user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE, "
    "message TEXT NOT NULL, "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    "CREATE TABLE IF NOT EXISTS ai_interactions ("
    "id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "user_id TEXT, "
    "user_interest TEXT, "
    "ai_response TEXT, "
    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)",
    "CREATE INDEX IF NOT EXISTS idx_club_members_user_id ON club_members(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_events_organizer_club ON events(organizer_club)",
    "CREATE INDEX IF NOT EXISTS idx_club_discussions_club_id ON club_discussions(club_id)",
]

# Children first, so rows can be wiped without tripping foreign keys
TABLES = [
    "ai_interactions",
    "club_discussions",
    "announcements_pending",
    "announcements",
    "event_participants",
    "events_pending",
    "events",
    "club_members",
    "clubs_pending",
    "clubs",
    "users",
]


def ensure_schema():
    for statement in SCHEMA:
        db.execute(statement)


@contextmanager
def transaction():
    """Run the enclosed statements as one unit; roll back on any exception."""
    db.execute("BEGIN TRANSACTION")
    try:
        yield db
    except Exception:
        db.execute("ROLLBACK")
        raise
    db.execute("COMMIT")
