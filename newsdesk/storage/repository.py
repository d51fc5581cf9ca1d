import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from newsdesk import config
from newsdesk.storage.db import db_lock, load_db, save_db
from newsdesk.storage.models import News, NewsCategory, NewsIn, Review, ReviewIn


def _now(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


def expiry_for(created_at: datetime) -> datetime:
    return created_at + timedelta(hours=config.ARTICLE_TTL_HOURS)


def is_expired(news: News, now: Optional[datetime] = None) -> bool:
    # expira apenas em função de created_at + TTL
    return _now(now) > expiry_for(news.created_at)


def generate_article_id(now: Optional[datetime] = None) -> str:
    ms = int(_now(now).timestamp() * 1000)
    return f"article-{ms}-{uuid.uuid4().hex[:7]}"


def sort_news(items: Iterable[News], key: str = "created_at") -> List[News]:
    """Mais recentes primeiro, por created_at ou publication_date."""
    if key == "publication_date":
        return sorted(items, key=lambda n: (n.publication_date, n.created_at), reverse=True)
    if key != "created_at":
        raise ValueError(f"unknown sort key: {key}")
    return sorted(items, key=lambda n: n.created_at, reverse=True)


def paginate(items: List, page: int = 1, page_size: int = config.PAGE_SIZE) -> List:
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be >= 1")
    start = (page - 1) * page_size
    return items[start:start + page_size]


# ---------- News ----------

def _visible(db, now: datetime) -> List[News]:
    items = [News(**raw) for raw in db["news"].values()]
    return [n for n in items if not is_expired(n, now)]


def add_news(
    news_in: NewsIn,
    now: Optional[datetime] = None,
    source: Optional[str] = None,
    source_url: Optional[str] = None,
) -> Optional[News]:
    """Grava o artigo. Retorna None se o id já existir."""
    created = _now(now)
    news = News(
        **news_in.model_dump(exclude={"id"}),
        id=news_in.id or generate_article_id(created),
        created_at=created,
        expires_at=expiry_for(created),
        source=source,
        source_url=source_url,
    )
    with db_lock:
        db = load_db()
        if news.id in db["news"]:
            return None
        db["news"][news.id] = news.model_dump(mode="json")
        save_db(db)
    return news


def get_all_news(now: Optional[datetime] = None) -> List[News]:
    with db_lock:
        db = load_db()
    return sort_news(_visible(db, _now(now)))


def get_news_by_category(category: NewsCategory, now: Optional[datetime] = None) -> List[News]:
    return [n for n in get_all_news(now) if n.category == category]


def get_news_by_id(news_id: str, now: Optional[datetime] = None) -> Optional[News]:
    with db_lock:
        raw = load_db()["news"].get(news_id)
    if raw is None:
        return None
    news = News(**raw)
    if is_expired(news, now):
        return None
    return news


def get_news_by_source_url(url: str) -> Optional[News]:
    with db_lock:
        db = load_db()
    for raw in db["news"].values():
        if raw.get("source_url") == url:
            return News(**raw)
    return None


def known_ids() -> set:
    """Ids gravados, inclusive expirados ainda não removidos."""
    with db_lock:
        return set(load_db()["news"].keys())


def known_source_urls() -> set:
    """Inclui artigos expirados ainda não removidos."""
    with db_lock:
        db = load_db()
    return {raw["source_url"] for raw in db["news"].values() if raw.get("source_url")}


def _drop_reviews_for(db, article_ids) -> None:
    for key in [k for k, r in db["reviews"].items() if r["article_id"] in article_ids]:
        del db["reviews"][key]


def delete_news(news_id: str) -> bool:
    with db_lock:
        db = load_db()
        if news_id not in db["news"]:
            return False
        del db["news"][news_id]
        _drop_reviews_for(db, {news_id})
        save_db(db)
    return True


def purge_expired_articles(now: Optional[datetime] = None) -> int:
    now_dt = _now(now)
    with db_lock:
        db = load_db()
        expired = {
            news_id for news_id, raw in db["news"].items()
            if is_expired(News(**raw), now_dt)
        }
        if not expired:
            return 0
        for news_id in expired:
            del db["news"][news_id]
        _drop_reviews_for(db, expired)
        save_db(db)
    return len(expired)


# ---------- Reviews ----------

def add_review(
    review_in: ReviewIn, article_id: str, now: Optional[datetime] = None
) -> Optional[Review]:
    """Retorna None se o artigo não existir (ou já expirou)."""
    if not 1 <= review_in.rating <= 5:
        raise ValueError("rating must be between 1 and 5")
    now_dt = _now(now)
    with db_lock:
        db = load_db()
        raw = db["news"].get(article_id)
        if raw is None or is_expired(News(**raw), now_dt):
            return None
        review = Review(
            id=db["next_review_id"],
            article_id=article_id,
            created_at=now_dt,
            **review_in.model_dump(),
        )
        db["reviews"][str(review.id)] = review.model_dump(mode="json")
        db["next_review_id"] = review.id + 1
        save_db(db)
    return review


def _sorted_reviews(raws) -> List[Review]:
    items = [Review(**r) for r in raws]
    return sorted(items, key=lambda r: (r.created_at, r.id), reverse=True)


def get_reviews_by_article_id(article_id: str) -> List[Review]:
    with db_lock:
        db = load_db()
    return _sorted_reviews(r for r in db["reviews"].values() if r["article_id"] == article_id)


def get_all_reviews() -> List[Review]:
    with db_lock:
        db = load_db()
    return _sorted_reviews(db["reviews"].values())


def delete_review(review_id: int) -> bool:
    with db_lock:
        db = load_db()
        if str(review_id) not in db["reviews"]:
            return False
        del db["reviews"][str(review_id)]
        save_db(db)
    return True
