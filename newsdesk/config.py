import os
from dotenv import load_dotenv

# Carrega variáveis do .env
load_dotenv(override=True)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


DB_PATH = os.getenv(
    "NEWSDESK_DB_PATH",
    os.path.join(os.path.dirname(__file__), "storage", "data", "newsdesk_db.json"),
)

ARTICLE_TTL_HOURS = _int_env("ARTICLE_TTL_HOURS", 24 * 7)   # 7 dias
PAGE_SIZE = _int_env("PAGE_SIZE", 10)

INGEST_INTERVAL_MINUTES = _int_env("INGEST_INTERVAL_MINUTES", 30)
PURGE_INTERVAL_MINUTES = _int_env("PURGE_INTERVAL_MINUTES", 60)
INGEST_ON_STARTUP = _bool_env("INGEST_ON_STARTUP", True)
FEED_TIMEOUT = _int_env("FEED_TIMEOUT", 10)

ADMIN_PRINCIPALS = frozenset(
    p.strip() for p in os.getenv("ADMIN_PRINCIPALS", "").split(",") if p.strip()
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
