"""Club matchmaker and event poster generation.

Both call Gemini's REST API; posters additionally fetch a background image
from Pollinations. The matchmaker falls back to keyword scoring and the poster
copy to a layout built from the event details whenever the model is
unavailable or answers with something unusable. The image has no fallback.
"""

import base64
import json
import logging
import random
import re
from datetime import datetime
from urllib.parse import quote

import requests

import config
from errors import BadRequest, ExternalServiceError
from store import db

logger = logging.getLogger(__name__)

STOP_WORDS = {
    "i", "am", "and", "to", "the", "in", "of", "for", "with", "a", "an", "is", "are",
    "my", "looking", "interested", "enjoy", "like", "but",
}

MATCH_PROMPT = """Act as a Club Matchmaker for a university student.
User Interest: "{interest}"
Available Clubs: {clubs}

Task: Recommend the top 1-3 clubs that best match the user's interest.
Return ONLY a valid JSON array of objects with this structure:
[
    {{ "club_id": "id_from_list", "reason": "Why it matches" }}
]
If no strong match, pick the closest one or empty array. Do not include markdown formatting like ```json."""

POSTER_PROMPT = """Act as a World-Class Event Poster Designer & Copywriter.
Context: We need to create a stunning A3 poster for this event: "{context}".

Task:
1. Analyze the event and write CATCHY, PROFESSIONAL copy for the poster.
2. Design a visual prompt for an AI image generator (Flux) to create a perfect background.

Output ONLY a valid JSON object with this exact structure (no markdown):
{{
    "poster_content": {{
        "headline": "Short, punchy 2-5 word headline",
        "tagline": "A single engaging sentence or subtitle",
        "description": "A condensed, powerful 2-sentence summary of the event description.",
        "date_display": "Format date cleanly (e.g. 'MARCH 12TH, 2026')",
        "venue_display": "Clean venue name"
    }},
    "style_config": {{
        "accent_color_hex": "#HEX_CODE",
        "font_mood": "e.g. 'Modern', 'Serif', 'Handwritten'"
    }},
    "image_prompt": "A vivid, highly detailed description for the background art with a DARK, EMPTY CENTER area for text overlay."
}}"""


def _gemini(prompt):
    """Send one prompt to Gemini and return the first candidate's text."""
    if not config.GEMINI_API_KEY:
        raise ExternalServiceError("AI service is not configured")
    url = config.GEMINI_URL.format(model=config.GEMINI_MODEL)
    payload = {"contents": [{"parts": [{"text": prompt}]}]}
    try:
        resp = requests.post(url, params={"key": config.GEMINI_API_KEY}, json=payload, timeout=config.AI_TIMEOUT_SECONDS)
    except requests.exceptions.RequestException as e:
        raise ExternalServiceError(f"AI service request failed: {e}")
    if resp.status_code != 200:
        raise ExternalServiceError(f"AI service error ({resp.status_code})")
    try:
        return resp.json()["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError, ValueError):
        raise ExternalServiceError("AI service returned an unexpected response")


def _parse_json(text):
    # Models like to wrap JSON in markdown fences despite being told not to
    cleaned = text.replace("```json", "").replace("```", "").strip()
    return json.loads(cleaned)


def keyword_matches(interest, clubs, limit=3):
    """Deterministic local matcher: score clubs by interest keyword overlap."""
    terms = [w for w in re.split(r"[\s,.\-]+", interest.lower()) if len(w) > 2 and w not in STOP_WORDS]

    scored = []
    for club in clubs:
        name = (club.get("name") or "").lower()
        category = (club.get("category") or "").lower()
        text = f"{name} {(club.get('description') or '').lower()} {category}"
        score = 0
        for term in terms:
            if term in text:
                score += 1
                # Boost for name or category hits
                if term in name:
                    score += 2
                if term in category:
                    score += 2
        if score > 0:
            scored.append((score, club))

    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [
        {**club, "score": score, "match_reason": f"Matches {score} of your interest keywords."}
        for score, club in scored[:limit]
    ]


def match_clubs(user_id, interest):
    interest = (interest or "").strip()
    if not interest:
        raise BadRequest("Interest is required")

    clubs = db.execute("SELECT id, name, description, category FROM clubs")
    ai_text = ""
    matches = []

    if config.GEMINI_API_KEY:
        try:
            ai_text = _gemini(MATCH_PROMPT.format(interest=interest, clubs=json.dumps(clubs)))
            by_id = {club["id"]: club for club in clubs}
            for rec in _parse_json(ai_text):
                club = by_id.get(rec.get("club_id"))
                if club:
                    matches.append({**club, "match_reason": rec.get("reason")})
        except (ExternalServiceError, ValueError, TypeError, AttributeError) as e:
            logger.warning("AI generation failed (using fallback): %s", e)
            matches = []

    if not matches:
        matches = keyword_matches(interest, clubs)
        if not ai_text:
            ai_text = "Fallback: Smart Logic Match"

    _log_interaction(user_id, interest, ai_text)
    return {"matches": matches, "ai_powered": bool(config.GEMINI_API_KEY)}


def _log_interaction(user_id, interest, response_text):
    try:
        db.execute(
            "INSERT INTO ai_interactions (user_id, user_interest, ai_response) VALUES (?, ?, ?)",
            user_id,
            interest,
            response_text,
        )
    except Exception:
        logger.exception("Could not record AI interaction for %s", user_id)


def local_poster_creative(context, event_details=None):
    """Deterministic poster copy used when the model cannot be reached."""
    details = event_details or {}
    title = (details.get("title") or context).strip()
    description = (details.get("description") or "").strip()
    sentences = [s.strip() for s in re.split(r"(?<=[.!?])\s+", description) if s.strip()]
    return {
        "poster_content": {
            "headline": " ".join(title.split()[:5]).upper(),
            "tagline": sentences[0] if sentences else "Don't miss it!",
            "description": " ".join(sentences[:2]) or title,
            "date_display": _display_date(details.get("date")),
            "venue_display": details.get("venue") or "",
        },
        "style_config": {"accent_color_hex": "#6366F1", "font_mood": "Modern"},
        "image_prompt": f"Abstract vibrant background inspired by {title}, dark empty center for text overlay",
    }


def _display_date(value):
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value).strftime("%B %d, %Y").upper()
    except (TypeError, ValueError):
        return str(value)


def generate_poster(event_details=None, prompt=None):
    if event_details:
        context = (
            f"Title: {event_details.get('title')}, Desc: {event_details.get('description')}, "
            f"Date: {event_details.get('date')}, Venue: {event_details.get('venue')}"
        )
    else:
        context = (prompt or "").strip()
    if not context:
        raise BadRequest("Event details required")

    source = "AI Creative Director"
    try:
        text = _gemini(POSTER_PROMPT.format(context=context))
        creative = _parse_json(text)
        image_prompt = creative["image_prompt"]
        content = creative["poster_content"]
    except (ExternalServiceError, ValueError, KeyError, TypeError) as e:
        logger.warning("Creative direction unavailable (using local layout): %s", e)
        creative = local_poster_creative(context, event_details)
        image_prompt = creative["image_prompt"]
        content = creative["poster_content"]
        source = "Local Fallback"

    url = config.POLLINATIONS_URL + quote(image_prompt, safe="")
    params = {
        "model": "flux",
        "width": 768,
        "height": 1088,
        "enhance": "false",
        "nologo": "true",
        "seed": random.randint(0, 9998),
    }
    try:
        resp = requests.get(url, params=params, timeout=config.AI_TIMEOUT_SECONDS)
    except requests.exceptions.RequestException as e:
        raise ExternalServiceError(f"Image generation failed: {e}")
    if resp.status_code != 200:
        raise ExternalServiceError(f"Image generation error ({resp.status_code})")

    mime = resp.headers.get("Content-Type", "image/jpeg").split(";")[0]
    encoded = base64.b64encode(resp.content).decode("ascii")
    logger.info("Poster generated: %s", content.get("headline"))
    return {
        "success": True,
        "image": f"data:{mime};base64,{encoded}",
        "content": content,
        "style": creative.get("style_config"),
        "source": source,
    }
