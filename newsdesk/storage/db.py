import os
import json
import logging
import tempfile
from threading import Lock
from typing import Any, Dict

from newsdesk import config

logger = logging.getLogger(__name__)

DB_PATH = config.DB_PATH

db_lock = Lock()


def empty_db() -> Dict[str, Any]:
    return {
        "news": {},             # id -> News (json)
        "reviews": {},          # id (str) -> Review (json)
        "next_review_id": 1,
        "roles": {},            # principal -> UserRole
        "profiles": {},         # principal -> UserProfile (json)
        "live": {"is_live": False, "started_at": None},
    }


def load_db() -> Dict[str, Any]:
    """Lê o documento inteiro. Chamar sempre com db_lock adquirido."""
    if not os.path.exists(DB_PATH):
        return empty_db()
    try:
        with open(DB_PATH, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, ValueError):
        logger.warning("%s is empty or corrupted, starting from scratch", DB_PATH)
        return empty_db()
    if not isinstance(raw, dict):
        logger.warning("%s has an unexpected layout, starting from scratch", DB_PATH)
        return empty_db()
    db = empty_db()
    db.update(raw)
    return db


def save_db(db: Dict[str, Any]):
    """Grava num temporário no mesmo diretório e troca com os.replace."""
    directory = os.path.dirname(DB_PATH) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".newsdesk-", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(db, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, DB_PATH)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
