import hashlib
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from threading import Lock
from typing import Dict, Iterable, List, Optional, Set

from datasketch import MinHash, MinHashLSH
from pydantic import ValidationError

from newsdesk.feeds.base import BaseFeed
from newsdesk.storage import repository
from newsdesk.storage.models import NewsIn
from newsdesk.utils.tz_utils import iso_to_local_date, today_local

logger = logging.getLogger(__name__)

_NUM_PERM = 128
_LSH_THRESHOLD = 0.8
_MAX_SOURCE_WORKERS = 4
_SUMMARY_MAX_CHARS = 300


def ingested_article_id(source: str, link: str) -> str:
    return f"{source}-{hashlib.sha1(link.encode('utf-8')).hexdigest()[:12]}"


def _truncate(text: str, limit: int = _SUMMARY_MAX_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "…"


def item_to_news_in(item: Dict) -> NewsIn:
    """Converte um item de feed no payload de artigo."""
    return NewsIn(
        id=ingested_article_id(item["source"], item["link"]),
        title=item["title"],
        summary=_truncate(item.get("summary") or item["title"]),
        full_content=item.get("full_content") or item.get("summary") or item["title"],
        category=item["category"],
        author=item.get("author") or item["source"],
        publication_date=iso_to_local_date(item.get("published")) or today_local(),
        image_url=item.get("image_url"),
    )


class NewsIngestor:
    def __init__(self, feeds: Optional[Iterable[BaseFeed]] = None):
        self.feeds: Dict[str, BaseFeed] = {}
        self.seen_links: Set[str] = set()
        self.lsh_index = MinHashLSH(threshold=_LSH_THRESHOLD, num_perm=_NUM_PERM)
        self.last_updated: Optional[int] = None
        self._next_id = 0
        self._lock = Lock()  # protege _next_id e índices entre threads
        for feed in feeds or []:
            self.add_source(feed)

    def add_source(self, feed: BaseFeed):
        self.feeds[feed.key] = feed

    def sources(self) -> List[Dict]:
        return [{"key": f.key, "name": f.name} for f in self.feeds.values()]

    def _build_minhash(self, title: str, summary: str) -> MinHash:
        # mesmo texto usado no artigo gravado (resumo truncado)
        m = MinHash(num_perm=_NUM_PERM)
        text = f"{title or ''} {_truncate(summary or '')}".strip()
        for token in text.lower().split()[:64]:
            m.update(token.encode("utf-8"))
        return m

    def _remember(self, link: str, m: MinHash):
        with self._lock:
            self.lsh_index.insert(self._next_id, m)
            self._next_id += 1
            self.seen_links.add(link)

    def _rebuild_index(self):
        """Reconstrói os índices a partir do banco; ficam limitados aos artigos ainda gravados."""
        with self._lock:
            self.seen_links = set(repository.known_source_urls())
            self.lsh_index = MinHashLSH(threshold=_LSH_THRESHOLD, num_perm=_NUM_PERM)
            self._next_id = 0
        for news in repository.get_all_news():
            if news.source_url:
                self._remember(news.source_url, self._build_minhash(news.title, news.summary))

    def _store_items(self, fetched: List[Dict], entry: Dict):
        """Grava itens novos; link e MinHash só entram nos índices depois de gravados."""
        for item in fetched:
            link = item.get("link")
            if not link:
                entry["skipped"] += 1
                continue
            m = self._build_minhash(item.get("title", ""), item.get("summary", ""))
            with self._lock:
                duplicate = link in self.seen_links or bool(self.lsh_index.query(m))
            if duplicate:
                entry["skipped"] += 1
                continue
            try:
                news_in = item_to_news_in(item)
            except ValidationError as e:
                logger.error("Invalid item from %s (%s): %s", item.get("source"), link, e)
                entry["skipped"] += 1
                continue
            stored = repository.add_news(news_in, source=item["source"], source_url=link)
            if stored is None:
                entry["skipped"] += 1
                continue
            self._remember(link, m)
            entry["added"] += 1

    def _ingest(self, keys: List[str]) -> Dict:
        report = {"status": "success", "added": 0, "skipped": 0, "sources": {}}
        if not keys:
            self.last_updated = int(time.time())
            return report

        self._rebuild_index()
        with ThreadPoolExecutor(max_workers=min(len(keys), _MAX_SOURCE_WORKERS)) as ex:
            futures = {ex.submit(self.feeds[k].fetch): k for k in keys}
            for fut in as_completed(futures):
                key = futures[fut]
                entry = {"fetched": 0, "added": 0, "skipped": 0}
                report["sources"][key] = entry
                try:
                    fetched = fut.result() or []
                    entry["fetched"] = len(fetched)
                    self._store_items(fetched, entry)
                except Exception as e:
                    logger.error("ingestion failed for source '%s': %s", key, e)
                    entry["error"] = str(e)
                report["added"] += entry["added"]
                report["skipped"] += entry["skipped"]

        self.last_updated = int(time.time())
        logger.info("ingestion finished: %d added, %d skipped", report["added"], report["skipped"])
        return report

    def fetch_and_reload_all_news(self) -> Dict:
        return self._ingest(list(self.feeds.keys()))

    def fetch_specific_source(self, key: str) -> Dict:
        if key not in self.feeds:
            raise KeyError(key)
        return self._ingest([key])
