import time
import logging
import requests
import feedparser
from bs4 import BeautifulSoup
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from newsdesk import config
from newsdesk.storage.models import NewsCategory
from .base import BaseFeed

logger = logging.getLogger(__name__)

# ---------- HTTP session global com pool + retry ----------
_SESSION = requests.Session()
_RETRY = Retry(
    total=3,
    backoff_factor=0.3,
    status_forcelist=(429, 500, 502, 503, 504),
    allowed_methods=frozenset({"GET"}),
    raise_on_status=False,
)
_ADAPTER = HTTPAdapter(pool_connections=10, pool_maxsize=20, max_retries=_RETRY)
_SESSION.mount("https://", _ADAPTER)
_SESSION.mount("http://", _ADAPTER)
_SESSION.headers.update({"User-Agent": "newsdesk/1.0 (+https://localhost)"})

# ---------- Cache em memória com TTL curto ----------
_CACHE: Dict[str, Dict] = {}  # url -> {"expires": float_ts, "data": List[Dict]}
_CACHE_TTL_SEC = 60


def clear_cache():
    _CACHE.clear()


def html_to_text(fragment: Optional[str]) -> str:
    if not fragment:
        return ""
    text = BeautifulSoup(fragment, "html.parser").get_text(separator=" ")
    return " ".join(text.split())


def first_image(entry, *fragments: Optional[str]) -> Optional[str]:
    """media:content / media:thumbnail / enclosure; senão o primeiro <img> do HTML."""
    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            if media.get("url"):
                return media["url"]
    for enc in entry.get("enclosures") or []:
        if (enc.get("type") or "").startswith("image/") and enc.get("href"):
            return enc["href"]
    for fragment in fragments:
        if not fragment:
            continue
        img = BeautifulSoup(fragment, "html.parser").find("img", src=True)
        if img:
            return img["src"]
    return None


def _published(entry) -> Optional[datetime]:
    try:
        if entry.get("published_parsed"):
            return datetime(*entry.published_parsed[:6], tzinfo=timezone.utc)
        if entry.get("updated_parsed"):
            return datetime(*entry.updated_parsed[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None
    return None


class TeluguRssFeed(BaseFeed):
    """Um site de notícias em telugu com um feed RSS por categoria."""

    def __init__(
        self,
        key: str,
        name: str,
        urls: Dict[NewsCategory, str],
        max_items: int = 20,
        max_age_hours: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        self.key = key
        self.name = name
        self.urls = dict(urls)
        self.max_items = max_items
        self.max_age_hours = max_age_hours if max_age_hours is not None else config.ARTICLE_TTL_HOURS
        self.timeout = timeout or config.FEED_TIMEOUT

    def __repr__(self):
        return f"TeluguRssFeed({self.key!r})"

    def _download(self, url: str) -> Optional[str]:
        try:
            response = _SESSION.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Fetch failed for %s (%s): %s", self.key, url, e)
            return None
        return response.text

    def fetch_category(self, category: NewsCategory, url: str) -> List[Dict]:
        now = time.time()
        cached = _CACHE.get(url)
        if cached and cached["expires"] > now:
            return [dict(item) for item in cached["data"]]

        text = self._download(url)
        if text is None:
            return []

        feed = feedparser.parse(text)
        if feed.bozo and not feed.entries:
            logger.error("Could not parse feed %s (%s): %s", self.key, url, feed.get("bozo_exception"))
            return []

        cutoff = datetime.now(timezone.utc) - timedelta(hours=self.max_age_hours)
        news: List[Dict] = []
        for entry in feed.entries:
            title = html_to_text(entry.get("title"))
            link = entry.get("link")
            if not title or not link:
                continue

            published_dt = _published(entry)
            if published_dt and published_dt < cutoff:
                continue

            summary_html = entry.get("summary") or ""
            content_html = ""
            if entry.get("content"):
                content_html = entry.content[0].get("value") or ""

            summary = html_to_text(summary_html)
            full_content = html_to_text(content_html) or summary or title

            news.append({
                "title": title,
                "link": link,
                "summary": summary or title,
                "full_content": full_content,
                "image_url": first_image(entry, content_html, summary_html),
                "published": published_dt.isoformat() if published_dt else None,
                "category": category.value,
                "source": self.key,
                "author": self.name,
            })
            if len(news) >= self.max_items:
                break

        _CACHE[url] = {"expires": now + _CACHE_TTL_SEC, "data": news}
        return [dict(item) for item in news]

    def fetch(self) -> List[Dict]:
        items: List[Dict] = []
        for category, url in self.urls.items():
            items.extend(self.fetch_category(category, url))
        return items
