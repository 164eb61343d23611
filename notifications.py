"""Outbound email through the Resend HTTP API.

Email is best effort: a missing API key or a failed send is logged and the
caller carries on.
"""

import logging
from html import escape

import requests

import config

logger = logging.getLogger(__name__)

MODERATION_TEMPLATES = {
    "event_approved": (
        "🎉 Your Event Has Been Approved!",
        "#10b981",
        "Event Approved!",
        "Great news! Your event <strong>\"{item}\"</strong> for <strong>{club}</strong> has been approved by the admin.</p>"
        "<p>Students can now view and register for this event on the platform.",
    ),
    "event_rejected": (
        "Event Submission Update",
        "#ef4444",
        "Event Not Approved",
        "We regret to inform you that your event <strong>\"{item}\"</strong> for <strong>{club}</strong> was not approved.</p>"
        "<p>Please review the event details and feel free to submit a revised version or contact the admin for more information.",
    ),
    "announcement_approved": (
        "📢 Your Announcement Has Been Approved!",
        "#10b981",
        "Announcement Approved!",
        "Your announcement for <strong>{club}</strong> has been approved and is now visible to all club members.</p>"
        "<p><em>Message: \"{item}\"</em>",
    ),
    "announcement_rejected": (
        "Announcement Submission Update",
        "#ef4444",
        "Announcement Not Approved",
        "Your announcement for <strong>{club}</strong> was not approved.</p>"
        "<p>Please review the content and feel free to submit a revised version or contact the admin for more information.",
    ),
}


def _wrap(color, heading, name, body):
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h1 style="color: {color};">{heading}</h1>'
        f"<p>Hi {escape(name or 'there')},</p>"
        f"<p>{body}</p>"
        "<p>Best regards,<br>TheClubs Team</p>"
        "</div>"
    )


def send_email(to, subject, html):
    """Post one email to Resend. Returns True when the provider accepted it."""
    if not config.RESEND_API_KEY:
        logger.info("RESEND_API_KEY not set; skipping email '%s' to %s", subject, to)
        return False
    try:
        resp = requests.post(
            config.RESEND_URL,
            json={"from": config.MAIL_FROM, "to": [to], "subject": subject, "html": html},
            headers={"Authorization": f"Bearer {config.RESEND_API_KEY}"},
            timeout=10,
        )
    except requests.exceptions.RequestException as e:
        logger.error("Email to %s failed: %s", to, e)
        return False
    if not resp.ok:
        logger.error("Resend API error %s for %s: %s", resp.status_code, to, resp.text)
        return False
    logger.info("Email '%s' sent to %s", subject, to)
    return True


def send_welcome_email(name, email):
    html = _wrap(
        "#6366f1",
        "Welcome to TheClubs!",
        name,
        "Your account is ready. Browse clubs, join the ones you like and register for upcoming events.",
    )
    return send_email(email, "Welcome to TheClubs!", html)


def send_moderation_email(kind, to, recipient_name, item_title, club_name):
    subject, color, heading, body = MODERATION_TEMPLATES[kind]
    html = _wrap(color, heading, recipient_name, body.format(item=escape(item_title or ""), club=escape(club_name or "")))
    return send_email(to, subject, html)
