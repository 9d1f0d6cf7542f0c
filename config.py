import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "thesis_supervision")

MAX_GROUP_MEMBERS = int(os.getenv("MAX_GROUP_MEMBERS", 5))
# Whether a group may submit again to a supervisor who already rejected it
ALLOW_RESUBMISSION_AFTER_REJECTION = _env_bool("ALLOW_RESUBMISSION_AFTER_REJECTION", True)

PAPER_API_URL = os.getenv("PAPER_API_URL", "http://export.arxiv.org/api/query")
PAPER_API_TIMEOUT = float(os.getenv("PAPER_API_TIMEOUT", 10))

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
PORT = int(os.getenv("PORT", 8000))
