"""Moderation queues and the approval state machine.

Every request row starts as ``pending`` and moves exactly once to
``approved`` or ``rejected``. Approval copies the request into its live table
under the same id, inside one transaction; the status change is a
compare-and-swap on ``status = 'pending'`` so a duplicate or concurrent
approval rolls back instead of producing a second live row.
"""

import logging
import uuid
from datetime import datetime

import notifications
from auth import require_club_head
from errors import BadRequest, NotFound
from store import db, transaction

logger = logging.getLogger(__name__)

CLUB_FIELDS = ("name", "category", "description", "faculty_advisor", "whatsapp_link")
EVENT_FIELDS = ("title", "description", "date", "venue", "organizer_club", "whatsapp_link", "banner_url")


def pick_fields(data, keys):
    picked = {}
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            value = value.strip()
        picked[key] = value if value not in ("", None) else None
    return picked


def validate_date(value):
    if not value:
        raise BadRequest("Date is required.")
    try:
        datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise BadRequest("Invalid date.")
    return value


# Submissions

def submit_club_request(user_id, data):
    fields = pick_fields(data, CLUB_FIELDS)
    if not fields["name"]:
        raise BadRequest("Club name is required.")

    request_id = str(uuid.uuid4())
    db.execute(
        "INSERT INTO clubs_pending (id, name, category, description, faculty_advisor, whatsapp_link, created_by, status) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, 'pending')",
        request_id,
        fields["name"],
        fields["category"],
        fields["description"],
        fields["faculty_advisor"],
        fields["whatsapp_link"],
        user_id,
    )
    logger.info("Club request %s (%s) submitted by %s", request_id, fields["name"], user_id)
    return request_id


def submit_event_request(user_id, data):
    """Club heads propose events; they only go live once an admin approves."""
    fields = pick_fields(data, EVENT_FIELDS)
    if not fields["organizer_club"]:
        raise BadRequest("Organizer club is required.")
    require_club_head(user_id, fields["organizer_club"], "Access Denied: You are not the head of the organizer club.")
    if not fields["title"]:
        raise BadRequest("Title is required.")
    validate_date(fields["date"])

    request_id = str(uuid.uuid4())
    db.execute(
        "INSERT INTO events_pending (id, title, description, date, venue, organizer_club, created_by, status, whatsapp_link, banner_url) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', ?, ?)",
        request_id,
        fields["title"],
        fields["description"],
        fields["date"],
        fields["venue"],
        fields["organizer_club"],
        user_id,
        fields["whatsapp_link"],
        fields["banner_url"],
    )
    logger.info("Event request %s submitted for club %s", request_id, fields["organizer_club"])
    return request_id


def submit_announcement_request(user_id, club_id, message):
    if not club_id:
        raise BadRequest("Club is required.")
    require_club_head(user_id, club_id)
    message = (message or "").strip()
    if not message:
        raise BadRequest("Message is required.")

    request_id = str(uuid.uuid4())
    db.execute(
        "INSERT INTO announcements_pending (id, club_id, message, created_by, status) VALUES (?, ?, ?, ?, 'pending')",
        request_id,
        club_id,
        message,
        user_id,
    )
    logger.info("Announcement request %s submitted for club %s", request_id, club_id)
    return request_id


# Queues

def pending_clubs():
    rows = db.execute(
        "SELECT cp.*, p.name AS creator_name, p.email AS creator_email "
        "FROM clubs_pending cp JOIN users p ON cp.created_by = p.id "
        "WHERE cp.status = 'pending' ORDER BY cp.created_at ASC"
    )
    for row in rows:
        row["creator"] = {"name": row.pop("creator_name"), "email": row.pop("creator_email")}
    return rows


def pending_events():
    rows = db.execute(
        "SELECT ep.*, c.name AS club_name, p.name AS creator_name, p.email AS creator_email "
        "FROM events_pending ep "
        "JOIN clubs c ON ep.organizer_club = c.id "
        "LEFT JOIN users p ON ep.created_by = p.id "
        "WHERE ep.status = 'pending' ORDER BY ep.date ASC"
    )
    for row in rows:
        row["club"] = {"name": row["club_name"]}
        row["creator"] = {"name": row.pop("creator_name"), "email": row.pop("creator_email")}
    return rows


def pending_announcements():
    return db.execute(
        "SELECT ap.*, c.name AS club_name "
        "FROM announcements_pending ap JOIN clubs c ON ap.club_id = c.id "
        "WHERE ap.status = 'pending' ORDER BY ap.created_at ASC"
    )


def my_club_requests(user_id):
    return db.execute("SELECT * FROM clubs_pending WHERE created_by = ? ORDER BY created_at DESC", user_id)


# Transitions

def _load_pending(table, request_id):
    rows = db.execute(f"SELECT * FROM {table} WHERE id = ?", request_id)
    if len(rows) != 1 or rows[0]["status"] != "pending":
        raise NotFound("Request not found")
    return rows[0]


def _close(table, request_id, status):
    """Move a request out of pending; a zero row count means someone got there first."""
    count = db.execute(f"UPDATE {table} SET status = ? WHERE id = ? AND status = 'pending'", status, request_id)
    if count != 1:
        raise NotFound("Request not found")


def approve_club(request_id):
    with transaction():
        pending = _load_pending("clubs_pending", request_id)
        creator = pending["created_by"]

        if not db.execute("SELECT 1 FROM clubs WHERE id = ?", request_id):
            db.execute(
                "INSERT INTO clubs (id, name, category, description, faculty_advisor, created_by, whatsapp_link) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                pending["id"],
                pending["name"],
                pending["category"],
                pending["description"],
                pending["faculty_advisor"],
                creator,
                pending["whatsapp_link"],
            )

        # Creator becomes the club head
        membership = db.execute(
            "SELECT role_in_club FROM club_members WHERE club_id = ? AND user_id = ?", request_id, creator
        )
        if not membership:
            db.execute(
                "INSERT INTO club_members (club_id, user_id, role_in_club) VALUES (?, ?, 'head')",
                request_id,
                creator,
            )
        elif membership[0]["role_in_club"] != "head":
            db.execute(
                "UPDATE club_members SET role_in_club = 'head' WHERE club_id = ? AND user_id = ?",
                request_id,
                creator,
            )

        # Only students are promoted; club heads stay, admins are never demoted
        db.execute("UPDATE users SET role = 'club_head' WHERE id = ? AND role = 'student'", creator)

        _close("clubs_pending", request_id, "approved")

    logger.info("Club %s (%s) approved; %s is head", request_id, pending["name"], creator)
    return pending


def reject_club(request_id):
    pending = _load_pending("clubs_pending", request_id)
    _close("clubs_pending", request_id, "rejected")
    logger.info("Club request %s rejected", request_id)
    return pending


def approve_event(request_id):
    with transaction():
        pending = _load_pending("events_pending", request_id)
        if not db.execute("SELECT 1 FROM events WHERE id = ?", request_id):
            db.execute(
                "INSERT INTO events (id, title, description, date, venue, organizer_club, whatsapp_link, banner_url, created_by) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                pending["id"],
                pending["title"],
                pending["description"],
                pending["date"],
                pending["venue"],
                pending["organizer_club"],
                pending["whatsapp_link"],
                pending["banner_url"],
                pending["created_by"],
            )
        _close("events_pending", request_id, "approved")

    logger.info("Event %s approved", request_id)
    _notify("event_approved", pending, pending["title"], pending["organizer_club"])
    return pending


def reject_event(request_id):
    pending = _load_pending("events_pending", request_id)
    _close("events_pending", request_id, "rejected")
    logger.info("Event request %s rejected", request_id)
    _notify("event_rejected", pending, pending["title"], pending["organizer_club"])
    return pending


def approve_announcement(request_id):
    with transaction():
        pending = _load_pending("announcements_pending", request_id)
        if not db.execute("SELECT 1 FROM announcements WHERE id = ?", request_id):
            db.execute(
                "INSERT INTO announcements (id, club_id, message, created_by) VALUES (?, ?, ?, ?)",
                pending["id"],
                pending["club_id"],
                pending["message"],
                pending["created_by"],
            )
        _close("announcements_pending", request_id, "approved")

    logger.info("Announcement %s approved", request_id)
    _notify("announcement_approved", pending, pending["message"], pending["club_id"])
    return pending


def reject_announcement(request_id):
    pending = _load_pending("announcements_pending", request_id)
    _close("announcements_pending", request_id, "rejected")
    logger.info("Announcement request %s rejected", request_id)
    _notify("announcement_rejected", pending, pending["message"], pending["club_id"])
    return pending


def _notify(kind, pending, item_title, club_id):
    # The transition is already committed; mail problems must not turn it into an error
    try:
        creator = db.execute("SELECT name, email FROM users WHERE id = ?", pending["created_by"])
        club = db.execute("SELECT name FROM clubs WHERE id = ?", club_id)
        if not creator:
            return
        notifications.send_moderation_email(
            kind,
            creator[0]["email"],
            creator[0]["name"],
            item_title,
            club[0]["name"] if club else None,
        )
    except Exception:
        logger.exception("Could not send %s notification for %s", kind, pending["id"])


def stats():
    def count(sql):
        return db.execute(sql)[0]["c"]

    return {
        "totalUsers": count("SELECT COUNT(*) AS c FROM users"),
        "totalClubs": count("SELECT COUNT(*) AS c FROM clubs"),
        "totalEvents": count("SELECT COUNT(*) AS c FROM events"),
        "pendingClubs": count("SELECT COUNT(*) AS c FROM clubs_pending WHERE status = 'pending'"),
        "pendingEvents": count("SELECT COUNT(*) AS c FROM events_pending WHERE status = 'pending'"),
        "pendingAnnouncements": count("SELECT COUNT(*) AS c FROM announcements_pending WHERE status = 'pending'"),
        "totalInteractions": count("SELECT COUNT(*) AS c FROM ai_interactions"),
    }
