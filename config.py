import os


# Environment-driven settings
# SQLite only: the schema and date filters use SQLite syntax
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///theclubs.db")
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")
JWT_EXPIRES_HOURS = int(os.getenv("JWT_EXPIRES_HOURS", "24"))
DEBUG_MODE = os.getenv("DEBUG", "False").lower() == "true"
LOG_FILE = os.getenv("LOG_FILE", "theclubs.log")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# External services
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-flash-latest")
GEMINI_URL = os.getenv(
    "GEMINI_URL", "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)
POLLINATIONS_URL = os.getenv("POLLINATIONS_URL", "https://image.pollinations.ai/prompt/")
AI_TIMEOUT_SECONDS = int(os.getenv("AI_TIMEOUT_SECONDS", "30"))

RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_URL = os.getenv("RESEND_URL", "https://api.resend.com/emails")
MAIL_FROM = os.getenv("MAIL_FROM", "TheClubs <onboarding@resend.dev>")
