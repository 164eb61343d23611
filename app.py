import logging
from logging.handlers import RotatingFileHandler

from flask import Flask, g, jsonify, request
from flask_cors import CORS

import accounts
import ai
import ledger
import workflow
from auth import admin_required, issue_token, login_required
from config import CORS_ORIGINS, DEBUG_MODE, JWT_SECRET, LOG_FILE
from errors import BadRequest, ClubsError, ExternalServiceError
from store import ensure_schema

# Configure application
app = Flask(__name__)

app.config.update(
    SECRET_KEY=JWT_SECRET,
    DEBUG=DEBUG_MODE,
)
CORS(app, origins=CORS_ORIGINS)

# Logging (rotating file) in non-debug environments
if not DEBUG_MODE:
    handler = RotatingFileHandler(LOG_FILE, maxBytes=10240, backupCount=10)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO)

# Ensure tables exist
ensure_schema()


def _body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object.")
    return data


@app.after_request
def after_request(response):
    """Ensure responses aren't cached"""
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Expires"] = 0
    response.headers["Pragma"] = "no-cache"
    return response


@app.route("/")
def index():
    return "Club Connect API is running..."


# --- AUTH ---

@app.route("/auth/register", methods=["POST"])
def register():
    """Register user"""
    data = _body()
    user_id = accounts.register_user(data.get("name"), data.get("email"), data.get("password"), data.get("role"))
    return jsonify({"message": "User registered successfully", "userId": user_id}), 201


@app.route("/auth/login", methods=["POST"])
def login():
    """Log user in"""
    data = _body()
    user = accounts.authenticate(data.get("email"), data.get("password"))
    return jsonify({"token": issue_token(user), "user": user})


@app.route("/auth/me")
@login_required
def auth_me():
    return jsonify(g.user)


# --- USER PROFILE ---

@app.route("/users/me", methods=["GET", "PUT"])
@login_required
def my_profile():
    if request.method == "PUT":
        accounts.update_profile(g.user["id"], _body())
        return jsonify({"message": "Profile updated"})
    return jsonify(accounts.get_user(g.user["id"]))


@app.route("/users/me/clubs")
@login_required
def my_joined_clubs():
    return jsonify(ledger.my_clubs(g.user["id"]))


@app.route("/users/me/events")
@login_required
def my_events():
    return jsonify(ledger.my_events(g.user["id"]))


@app.route("/users/me/registrations")
@login_required
def my_registrations():
    return jsonify(ledger.my_registrations(g.user["id"]))


# --- CLUBS ---

@app.route("/clubs")
def clubs():
    """Show list of clubs"""
    return jsonify(ledger.list_clubs())


@app.route("/clubs/request", methods=["POST"])
@app.route("/clubs", methods=["POST"])
@login_required
def request_club():
    request_id = workflow.submit_club_request(g.user["id"], _body())
    return jsonify({"message": "Club request submitted for approval.", "id": request_id}), 201


@app.route("/clubs/my-requests")
@login_required
def my_club_requests():
    return jsonify(workflow.my_club_requests(g.user["id"]))


@app.route("/clubs/my-clubs")
@login_required
def my_headed_clubs():
    return jsonify(ledger.headed_clubs(g.user["id"]))


@app.route("/clubs/<club_id>")
def club_detail(club_id):
    return jsonify(ledger.get_club(club_id))


@app.route("/clubs/<club_id>", methods=["PUT"])
@login_required
def update_club(club_id):
    ledger.update_club(club_id, g.user["id"], _body())
    return jsonify({"message": "Club updated successfully"})


@app.route("/clubs/<club_id>/members")
def club_members(club_id):
    return jsonify(ledger.club_members(club_id))


@app.route("/clubs/<club_id>/events")
def club_events(club_id):
    return jsonify(ledger.club_events(club_id))


@app.route("/clubs/<club_id>/announcements")
def club_announcements(club_id):
    return jsonify(ledger.club_announcements(club_id))


@app.route("/clubs/<club_id>/join", methods=["POST"])
@login_required
def join_club(club_id):
    ledger.join_club(club_id, g.user["id"])
    return jsonify({"message": "Joined club successfully"})


@app.route("/clubs/<club_id>/leave", methods=["POST"])
@login_required
def leave_club(club_id):
    ledger.leave_club(club_id, g.user["id"])
    return jsonify({"message": "Left club successfully"})


@app.route("/clubs/<club_id>/restore-head", methods=["PUT"])
@login_required
def restore_head(club_id):
    ledger.restore_head_access(club_id, g.user["id"])
    return jsonify({"message": "Head access restored"})


# --- DISCUSSIONS ---

@app.route("/clubs/<club_id>/discussions", methods=["GET", "POST"])
@login_required
def discussions(club_id):
    if request.method == "POST":
        message_id = ledger.post_discussion(club_id, g.user["id"], _body().get("message"))
        return jsonify({"message": "Message posted", "id": message_id}), 201
    return jsonify(ledger.list_discussions(club_id))


@app.route("/discussions/<message_id>", methods=["DELETE"])
@login_required
def delete_discussion(message_id):
    ledger.delete_discussion(message_id, g.user)
    return jsonify({"message": "Message deleted"})


# --- ADMIN MODERATION ---

@app.route("/admin/stats")
@admin_required
def admin_stats():
    return jsonify(workflow.stats())


@app.route("/admin/clubs/pending")
@admin_required
def pending_clubs():
    return jsonify(workflow.pending_clubs())


@app.route("/admin/events/pending")
@admin_required
def pending_events():
    return jsonify(workflow.pending_events())


@app.route("/admin/announcements/pending")
@admin_required
def pending_announcements():
    return jsonify(workflow.pending_announcements())


@app.route("/admin/clubs/<request_id>/approve", methods=["POST"])
@admin_required
def approve_club(request_id):
    workflow.approve_club(request_id)
    return jsonify({"message": "Club approved"})


@app.route("/admin/clubs/<request_id>/reject", methods=["POST"])
@admin_required
def reject_club(request_id):
    workflow.reject_club(request_id)
    return jsonify({"message": "Club rejected"})


@app.route("/admin/events/<request_id>/approve", methods=["POST"])
@admin_required
def approve_event(request_id):
    workflow.approve_event(request_id)
    return jsonify({"message": "Event approved"})


@app.route("/admin/events/<request_id>/reject", methods=["POST"])
@admin_required
def reject_event(request_id):
    workflow.reject_event(request_id)
    return jsonify({"message": "Event rejected"})


@app.route("/admin/announcements/<request_id>/approve", methods=["POST"])
@admin_required
def approve_announcement(request_id):
    workflow.approve_announcement(request_id)
    return jsonify({"message": "Announcement approved"})


@app.route("/admin/announcements/<request_id>/reject", methods=["POST"])
@admin_required
def reject_announcement(request_id):
    workflow.reject_announcement(request_id)
    return jsonify({"message": "Announcement rejected"})


# --- EVENTS ---

@app.route("/events")
def events():
    """Show upcoming events"""
    return jsonify(ledger.list_events())


@app.route("/events", methods=["POST"])
@login_required
def new_event():
    """Submit an event for approval (club heads only)"""
    request_id = workflow.submit_event_request(g.user["id"], _body())
    return jsonify({"message": "Event submitted for approval", "id": request_id}), 201


@app.route("/events/<event_id>", methods=["PUT"])
@login_required
def edit_event(event_id):
    ledger.update_event(event_id, g.user["id"], _body())
    return jsonify({"message": "Event updated successfully"})


@app.route("/events/<event_id>", methods=["DELETE"])
@login_required
def delete_event(event_id):
    ledger.delete_event(event_id, g.user["id"])
    return jsonify({"message": "Event deleted successfully"})


@app.route("/events/<event_id>/register", methods=["POST"])
@login_required
def register_for_event(event_id):
    ledger.register_for_event(event_id, g.user["id"])
    return jsonify({"message": "Registered successfully"})


@app.route("/events/<event_id>/register", methods=["DELETE"])
@login_required
def unregister_from_event(event_id):
    ledger.unregister_from_event(event_id, g.user["id"])
    return jsonify({"message": "Unregistered successfully"})


@app.route("/events/<event_id>/participants")
@login_required
def event_participants(event_id):
    return jsonify(ledger.participants(event_id, g.user["id"]))


@app.route("/events/participants/<registration_id>/attendance", methods=["PUT"])
@login_required
def toggle_attendance(registration_id):
    ledger.set_attendance(registration_id, _body().get("attended"), g.user["id"])
    return jsonify({"message": "Attendance updated"})


# --- ANNOUNCEMENTS ---

@app.route("/announcements")
@login_required
def announcements():
    """Show list of announcements"""
    return jsonify(ledger.list_announcements())


@app.route("/announcements", methods=["POST"])
@login_required
def new_announcement():
    data = _body()
    request_id = workflow.submit_announcement_request(g.user["id"], data.get("club_id"), data.get("message"))
    return jsonify({"message": "Announcement submitted for approval", "id": request_id}), 201


# --- HOME ---

@app.route("/home")
def home():
    return jsonify(ledger.home_summary())


# --- AI FEATURES ---

@app.route("/ai/match", methods=["POST"])
@login_required
def ai_match():
    return jsonify(ai.match_clubs(g.user["id"], _body().get("interest")))


@app.route("/ai/poster", methods=["POST"])
@login_required
def ai_poster():
    data = _body()
    try:
        result = ai.generate_poster(data.get("eventDetails"), data.get("prompt"))
    except ExternalServiceError as e:
        app.logger.error("Creative Director Failed: %s", e)
        return jsonify({"success": False, "message": "AI Generation Failed. Please try again."}), 500
    return jsonify(result)


# Error handlers
@app.errorhandler(ClubsError)
def clubs_error(e):
    if e.status_code in (401, 403):
        app.logger.info("%s %s denied: %s", request.method, request.path, e.message)
    return jsonify({"message": e.message}), e.status_code


@app.errorhandler(404)
def not_found_error(e):
    return jsonify({"message": "Not found"}), 404


@app.errorhandler(405)
def method_not_allowed(e):
    return jsonify({"message": "Method not allowed"}), 405


@app.errorhandler(500)
def internal_error(e):
    app.logger.exception("Server error: %s", e)
    return jsonify({"message": "Server Error"}), 500


if __name__ == "__main__":
    app.run(debug=DEBUG_MODE)
