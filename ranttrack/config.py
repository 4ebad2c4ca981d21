import os
from dotenv import load_dotenv

# Load .env as soon as this module is imported (safe to call multiple times)
load_dotenv()

LOG_LEVEL: str = os.getenv("RANTTRACK_LOG_LEVEL", "INFO").upper()
MAX_TEXT_CHARS: int = int(os.getenv("RANTTRACK_MAX_TEXT_CHARS", "100000"))
LEXICON_PATH: str | None = os.getenv("RANTTRACK_LEXICON_PATH") or None
NEGATION_WINDOW: int = int(os.getenv("RANTTRACK_NEGATION_WINDOW", "5"))  # tokens
MISSED_DAYS_THRESHOLD: int = int(os.getenv("RANTTRACK_MISSED_DAYS_THRESHOLD", "3"))
CORS_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("RANTTRACK_CORS_ORIGINS", "*").split(",") if o.strip()
]
