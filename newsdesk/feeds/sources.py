import os
from typing import Dict, List

from newsdesk.storage.models import NewsCategory
from .telugu import TeluguRssFeed

# key -> (nome exibido, {categoria: url})
TELUGU_SOURCES = {
    "eenadu": ("Eenadu", {
        NewsCategory.political: "https://www.eenadu.net/rss/politics-news.xml",
        NewsCategory.movie: "https://www.eenadu.net/rss/movies-news.xml",
    }),
    "sakshi": ("Sakshi", {
        NewsCategory.political: "https://www.sakshi.com/rss/politics.xml",
        NewsCategory.movie: "https://www.sakshi.com/rss/movies.xml",
    }),
    "tv9telugu": ("TV9 Telugu", {
        NewsCategory.political: "https://tv9telugu.com/politics/feed",
        NewsCategory.movie: "https://tv9telugu.com/entertainment/feed",
    }),
}


def _url_override(key: str, category: NewsCategory, default: str) -> str:
    # ex.: FEED_URL_SAKSHI_MOVIE
    return os.getenv(f"FEED_URL_{key.upper()}_{category.value.upper()}", default)


def default_feeds(max_items: int = 20) -> List[TeluguRssFeed]:
    feeds = []
    for key, (name, urls) in TELUGU_SOURCES.items():
        resolved: Dict[NewsCategory, str] = {
            cat: _url_override(key, cat, url) for cat, url in urls.items()
        }
        feeds.append(TeluguRssFeed(key, name, resolved, max_items=max_items))
    return feeds
