from .telugu import TeluguRssFeed
from .sources import TELUGU_SOURCES, default_feeds

# Se quiser, exporte também a base:
from .base import BaseFeed

__all__ = ["TeluguRssFeed", "TELUGU_SOURCES", "default_feeds", "BaseFeed"]
