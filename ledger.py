"""Live clubs, events, memberships, registrations and discussion boards."""

import logging
import uuid

from auth import is_admin, is_club_head, require_club_head
from errors import AuthorizationDenied, BadRequest, Conflict, NotFound
from store import db, transaction
from workflow import pick_fields, validate_date

logger = logging.getLogger(__name__)

UPCOMING = "datetime(e.date) >= datetime('now')"


def _club_or_404(club_id):
    rows = db.execute("SELECT * FROM clubs WHERE id = ?", club_id)
    if len(rows) == 0:
        raise NotFound("Club not found")
    return rows[0]


def _event_or_404(event_id):
    rows = db.execute("SELECT * FROM events WHERE id = ?", event_id)
    if len(rows) == 0:
        raise NotFound("Event not found")
    return rows[0]


def _partial_update(table, row_id, updates):
    assignments = ", ".join(f"{key} = ?" for key in updates)
    db.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", *updates.values(), row_id)


# Clubs

def list_clubs():
    return db.execute(
        "SELECT c.*, (SELECT COUNT(*) FROM club_members cm WHERE cm.club_id = c.id) AS member_count "
        "FROM clubs c ORDER BY c.name ASC"
    )


def get_club(club_id):
    return _club_or_404(club_id)


def update_club(club_id, actor_id, data):
    """Club heads edit their club's descriptive fields."""
    _club_or_404(club_id)
    require_club_head(actor_id, club_id)

    updates = {
        key: pick_fields(data, (key,))[key]
        for key in ("name", "category", "description", "faculty_advisor", "whatsapp_link")
        if key in data
    }
    if "name" in updates and not updates["name"]:
        raise BadRequest("Club name cannot be empty.")
    if updates:
        _partial_update("clubs", club_id, updates)
    return _club_or_404(club_id)


def club_members(club_id):
    return db.execute(
        "SELECT p.id, p.name, p.email, p.avatar_url, cm.role_in_club, cm.joined_at "
        "FROM club_members cm JOIN users p ON cm.user_id = p.id "
        "WHERE cm.club_id = ? ORDER BY cm.role_in_club DESC, p.name ASC",
        club_id,
    )


def club_events(club_id):
    return db.execute(
        f"SELECT e.* FROM events e WHERE e.organizer_club = ? AND {UPCOMING} ORDER BY datetime(e.date) ASC",
        club_id,
    )


def club_announcements(club_id):
    return db.execute("SELECT * FROM announcements WHERE club_id = ? ORDER BY created_at DESC", club_id)


def headed_clubs(user_id):
    return db.execute(
        "SELECT c.* FROM clubs c JOIN club_members cm ON c.id = cm.club_id "
        "WHERE cm.user_id = ? AND cm.role_in_club = 'head' ORDER BY c.name ASC",
        user_id,
    )


def my_clubs(user_id):
    return db.execute(
        "SELECT c.*, cm.role_in_club AS role FROM club_members cm JOIN clubs c ON cm.club_id = c.id "
        "WHERE cm.user_id = ? ORDER BY c.name ASC",
        user_id,
    )


# Membership

def join_club(club_id, user_id):
    _club_or_404(club_id)
    existing = db.execute("SELECT 1 FROM club_members WHERE club_id = ? AND user_id = ?", club_id, user_id)
    if len(existing) > 0:
        raise Conflict("Already a member")
    try:
        db.execute(
            "INSERT INTO club_members (club_id, user_id, role_in_club) VALUES (?, ?, 'member')",
            club_id,
            user_id,
        )
    except ValueError:
        # Lost a race with a concurrent join for the same pair
        raise Conflict("Already a member")
    logger.info("User %s joined club %s", user_id, club_id)


def leave_club(club_id, user_id):
    """Idempotent: leaving a club you are not in is not an error."""
    db.execute("DELETE FROM club_members WHERE club_id = ? AND user_id = ?", club_id, user_id)


def restore_head_access(club_id, user_id):
    """Give head status back to a club's creator who still holds a membership row.

    Only the identity recorded as the club's creator may use this.
    """
    club = _club_or_404(club_id)
    if club["created_by"] != user_id:
        logger.warning("User %s tried to restore head access on club %s they did not create", user_id, club_id)
        raise AuthorizationDenied("Access Denied: Only the club's creator can restore head access.")
    count = db.execute(
        "UPDATE club_members SET role_in_club = 'head' WHERE club_id = ? AND user_id = ?",
        club_id,
        user_id,
    )
    if count == 0:
        raise NotFound("You are not a member of this club.")
    logger.info("Head access restored for %s on club %s", user_id, club_id)


# Events

def list_events():
    return db.execute(
        "SELECT e.*, c.name AS club_name, "
        "(SELECT COUNT(*) FROM event_participants ep WHERE ep.event_id = e.id) AS participant_count "
        "FROM events e LEFT JOIN clubs c ON e.organizer_club = c.id "
        f"WHERE {UPCOMING} ORDER BY datetime(e.date) ASC"
    )


def update_event(event_id, actor_id, data):
    event = _event_or_404(event_id)
    require_club_head(actor_id, event["organizer_club"], "Access Denied")

    updates = {
        key: pick_fields(data, (key,))[key]
        for key in ("title", "description", "date", "venue", "whatsapp_link", "banner_url")
        if key in data
    }
    if "title" in updates and not updates["title"]:
        raise BadRequest("Title is required.")
    if "date" in updates:
        validate_date(updates["date"])
    if updates:
        _partial_update("events", event_id, updates)
    return _event_or_404(event_id)


def delete_event(event_id, actor_id):
    event = _event_or_404(event_id)
    require_club_head(actor_id, event["organizer_club"], "Access Denied")
    with transaction():
        # Remove registrations first to keep data tidy
        db.execute("DELETE FROM event_participants WHERE event_id = ?", event_id)
        db.execute("DELETE FROM events WHERE id = ?", event_id)
    logger.info("Event %s deleted by %s", event_id, actor_id)


def my_events(user_id):
    rows = db.execute(
        "SELECT e.*, c.name AS club_name, ep.attended "
        "FROM event_participants ep "
        "JOIN events e ON ep.event_id = e.id "
        "JOIN clubs c ON e.organizer_club = c.id "
        f"WHERE ep.user_id = ? AND {UPCOMING} "
        "ORDER BY datetime(e.date) ASC",
        user_id,
    )
    for row in rows:
        row["attended"] = bool(row["attended"])
    return rows


def my_registrations(user_id):
    return db.execute("SELECT event_id FROM event_participants WHERE user_id = ?", user_id)


# Registration

def register_for_event(event_id, user_id):
    _event_or_404(event_id)
    existing = db.execute("SELECT 1 FROM event_participants WHERE event_id = ? AND user_id = ?", event_id, user_id)
    if len(existing) > 0:
        raise Conflict("Already registered")
    registration_id = str(uuid.uuid4())
    try:
        db.execute(
            "INSERT INTO event_participants (id, event_id, user_id, attended) VALUES (?, ?, ?, 0)",
            registration_id,
            event_id,
            user_id,
        )
    except ValueError:
        raise Conflict("Already registered")
    return registration_id


def unregister_from_event(event_id, user_id):
    db.execute("DELETE FROM event_participants WHERE event_id = ? AND user_id = ?", event_id, user_id)


def participants(event_id, actor_id):
    event = _event_or_404(event_id)
    require_club_head(actor_id, event["organizer_club"], "Access Denied")
    rows = db.execute(
        "SELECT ep.*, p.name, p.email "
        "FROM event_participants ep JOIN users p ON ep.user_id = p.id "
        "WHERE ep.event_id = ? ORDER BY ep.registered_at ASC",
        event_id,
    )
    for row in rows:
        row["attended"] = bool(row["attended"])
    return rows


def set_attendance(registration_id, attended, actor_id):
    """Overwrite the attended flag; any value may follow any other."""
    if not isinstance(attended, bool):
        raise BadRequest("Attended must be true or false.")
    rows = db.execute(
        "SELECT ep.id, e.organizer_club FROM event_participants ep JOIN events e ON ep.event_id = e.id WHERE ep.id = ?",
        registration_id,
    )
    if len(rows) == 0:
        raise NotFound("Registration not found")
    require_club_head(actor_id, rows[0]["organizer_club"], "Access Denied")
    db.execute("UPDATE event_participants SET attended = ? WHERE id = ?", 1 if attended else 0, registration_id)


# Announcements

def list_announcements():
    return db.execute(
        "SELECT a.*, c.name AS club_name FROM announcements a JOIN clubs c ON a.club_id = c.id "
        "ORDER BY a.created_at DESC"
    )


# Discussions

def list_discussions(club_id):
    rows = db.execute(
        "SELECT d.*, p.name AS user_name, p.avatar_url AS user_avatar "
        "FROM club_discussions d JOIN users p ON d.user_id = p.id "
        "WHERE d.club_id = ? ORDER BY d.created_at ASC",
        club_id,
    )
    for row in rows:
        row["user"] = {"name": row.pop("user_name"), "avatar_url": row.pop("user_avatar")}
    return rows


def post_discussion(club_id, user_id, message):
    _club_or_404(club_id)
    message = (message or "").strip()
    if not message:
        raise BadRequest("Message is required.")
    message_id = str(uuid.uuid4())
    db.execute(
        "INSERT INTO club_discussions (id, club_id, user_id, message) VALUES (?, ?, ?, ?)",
        message_id,
        club_id,
        user_id,
        message,
    )
    return message_id


def delete_discussion(message_id, actor):
    rows = db.execute("SELECT id, club_id, user_id FROM club_discussions WHERE id = ?", message_id)
    if len(rows) == 0:
        raise NotFound("Message not found")
    row = rows[0]
    if row["user_id"] != actor["id"] and not is_club_head(actor["id"], row["club_id"]) and not is_admin(actor):
        raise AuthorizationDenied("Access Denied: You can only delete your own messages.")
    db.execute("DELETE FROM club_discussions WHERE id = ?", message_id)


# Home

def home_summary():
    featured = db.execute("SELECT * FROM clubs ORDER BY created_at DESC LIMIT 3")
    upcoming = db.execute(
        "SELECT e.*, c.name AS club_name FROM events e JOIN clubs c ON e.organizer_club = c.id "
        f"WHERE {UPCOMING} ORDER BY datetime(e.date) ASC LIMIT 3"
    )
    counts = db.execute(
        "SELECT (SELECT COUNT(*) FROM clubs) AS clubs, "
        "(SELECT COUNT(*) FROM events) AS events, "
        "(SELECT COUNT(*) FROM users) AS members"
    )[0]
    return {"featuredClubs": featured, "upcomingEvents": upcoming, "stats": counts}
