"""
Seed script to load sample users, clubs, memberships, events, and announcements.

Everything goes through the same approval workflow the API uses, so the
demo data obeys the same rules (one admin, heads via approval, pending rows
closed as approved).

Usage:
  export DATABASE_URL="sqlite:///theclubs.db"
  python -m database.seed
"""

import logging
from datetime import datetime, timedelta

import accounts
import ledger
import workflow
from errors import Conflict
from store import db, ensure_schema

logger = logging.getLogger("seed")


def upsert_user(name: str, email: str, password: str, role: str = "student"):
    row = db.execute("SELECT id FROM users WHERE email = ?", email)
    if row:
        return row[0]["id"]
    if role == "admin":
        existing = db.execute("SELECT id FROM users WHERE role = 'admin'")
        if existing:
            logger.warning("An admin already exists; reusing it instead of creating %s", email)
            return existing[0]["id"]
    return accounts.register_user(name, email, password, role)


def upsert_club(creator_id: str, name: str, category: str, description: str, advisor: str | None):
    row = db.execute("SELECT id FROM clubs WHERE name = ?", name)
    if row:
        return row[0]["id"]
    request_id = workflow.submit_club_request(
        creator_id,
        {"name": name, "category": category, "description": description, "faculty_advisor": advisor},
    )
    workflow.approve_club(request_id)
    return request_id


def ensure_member(user_id: str, club_id: str):
    try:
        ledger.join_club(club_id, user_id)
    except Conflict:
        pass


def upsert_event(head_id: str, club_id: str, title: str, date: str, **kwargs):
    row = db.execute("SELECT id FROM events WHERE title = ? AND organizer_club = ?", title, club_id)
    if row:
        return row[0]["id"]
    request_id = workflow.submit_event_request(
        head_id,
        {
            "title": title,
            "date": date,
            "organizer_club": club_id,
            "description": kwargs.get("description"),
            "venue": kwargs.get("venue"),
        },
    )
    workflow.approve_event(request_id)
    return request_id


def ensure_registration(user_id: str, event_id: str):
    try:
        ledger.register_for_event(event_id, user_id)
    except Conflict:
        pass


def ensure_announcement(head_id: str, club_id: str, message: str):
    row = db.execute("SELECT id FROM announcements WHERE club_id = ? AND message = ?", club_id, message)
    if row:
        return row[0]["id"]
    request_id = workflow.submit_announcement_request(head_id, club_id, message)
    workflow.approve_announcement(request_id)
    return request_id


def main():
    logging.basicConfig(level=logging.INFO)
    ensure_schema()

    # Users (demo password for everyone: password123)
    admin_id = upsert_user("Admin", "admin@theclubs.edu", "password123", role="admin")
    priya_id = upsert_user("Priya Shah", "priya@theclubs.edu", "password123")
    tom_id = upsert_user("Tom Okafor", "tom@theclubs.edu", "password123")
    mei_id = upsert_user("Mei Lin", "mei@theclubs.edu", "password123")
    sam_id = upsert_user("Sam Rivera", "sam@theclubs.edu", "password123")

    # Clubs; creators become heads on approval
    robotics_id = upsert_club(priya_id, "Robotics Society", "Technology", "Build and compete with robots.", "Dr. Chen")
    chess_id = upsert_club(tom_id, "Chess Club", "Games", "Casual and competitive chess.", "Mr. Patel")
    art_id = upsert_club(admin_id, "Art Collective", "Arts", "Drawing, painting and gallery visits.", "Ms. Lopez")

    ensure_member(mei_id, robotics_id)
    ensure_member(sam_id, robotics_id)
    ensure_member(sam_id, chess_id)
    ensure_member(priya_id, art_id)

    # Events
    now = datetime.utcnow()
    events = [
        (priya_id, robotics_id, "Robotics Kickoff", 3, "Season overview and team assignments.", "Lab 201"),
        (tom_id, chess_id, "Chess Ladder Night", 5, "Match play to climb the ladder.", "Room 104"),
        (admin_id, art_id, "Gallery Visit", 8, "Field trip to the downtown gallery.", "Main entrance"),
    ]
    event_ids = []
    for head_id, club_id, title, days, description, venue in events:
        date = (now + timedelta(days=days)).strftime("%Y-%m-%dT%H:%M")
        event_ids.append(upsert_event(head_id, club_id, title, date, description=description, venue=venue))

    for eid in event_ids:
        ensure_registration(mei_id, eid)
        ensure_registration(sam_id, eid)

    # Announcements
    ensure_announcement(priya_id, robotics_id, "Welcome back! First build session is this Friday.")
    ensure_announcement(tom_id, chess_id, "Boards and clocks are in the cupboard in Room 104.")

    print("Seed complete.")
    print("Demo accounts (password: password123):")
    print("  admin@theclubs.edu (admin, Art Collective head)")
    print("  priya@theclubs.edu (Robotics Society head)")
    print("  tom@theclubs.edu (Chess Club head)")
    print("  mei@theclubs.edu, sam@theclubs.edu (students)")


if __name__ == "__main__":
    main()
