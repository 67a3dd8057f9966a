import os

from dotenv import load_dotenv

# -------------------------------------------------------------------
# Env
# -------------------------------------------------------------------
load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-3-flash-preview")
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)

DATABASE_URL = os.getenv("DOCCHAT_DATABASE_URL", "sqlite:///docchat.db")
LOG_LEVEL = os.getenv("DOCCHAT_LOG_LEVEL", "INFO").upper()

# -------------------------------------------------------------------
# Fixed values
# -------------------------------------------------------------------
ADMIN_ID = "1"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin"

DEFAULT_INSTRUCTION = "Answer clearly."

# Document content beyond this is not sent to the model
CONTEXT_CHAR_LIMIT = 30000

# TrueType font for PDF exports; unset uses the built-in fonts
EXPORT_FONT_FILE = os.getenv("DOCCHAT_EXPORT_FONT_FILE") or None
