from datetime import datetime, timezone
from typing import Optional

from newsdesk.storage.db import db_lock, load_db, save_db
from newsdesk.storage.models import LiveStatus, UserProfile, UserRole


# ---------- Roles ----------

def get_role(principal: str) -> Optional[UserRole]:
    """Papel gravado para o principal (None se nunca atribuído)."""
    with db_lock:
        raw = load_db()["roles"].get(principal)
    return UserRole(raw) if raw else None


def set_role(principal: str, role: UserRole):
    with db_lock:
        db = load_db()
        db["roles"][principal] = UserRole(role).value
        save_db(db)


# ---------- Profiles ----------

def get_profile(principal: str) -> Optional[UserProfile]:
    with db_lock:
        raw = load_db()["profiles"].get(principal)
    return UserProfile(**raw) if raw else None


def save_profile(principal: str, profile: UserProfile):
    with db_lock:
        db = load_db()
        db["profiles"][principal] = profile.model_dump(mode="json")
        save_db(db)


# ---------- Live status ----------

def get_live_status() -> LiveStatus:
    with db_lock:
        raw = load_db()["live"]
    return LiveStatus(**raw)


def toggle_live_status(now: Optional[datetime] = None) -> LiveStatus:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    with db_lock:
        db = load_db()
        current = LiveStatus(**db["live"])
        if current.is_live:
            status = LiveStatus(is_live=False, started_at=None)
        else:
            status = LiveStatus(is_live=True, started_at=now)
        db["live"] = status.model_dump(mode="json")
        save_db(db)
    return status
