import time
import logging
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.background import BackgroundScheduler
from contextlib import asynccontextmanager
from enum import Enum
from typing import Optional

from newsdesk import config
from newsdesk.auth.access import (
    Unauthorized,
    assign_role,
    caller_role,
    normalize_principal,
    require_admin,
    require_user,
)
from newsdesk.feeds import default_feeds
from newsdesk.ingest.news_ingestor import NewsIngestor
from newsdesk.storage import accounts, repository
from newsdesk.storage.models import NewsCategory, NewsIn, ReviewIn, UserProfile, UserRole

logging.basicConfig(level=config.LOG_LEVEL, format="[%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


class SortKey(str, Enum):
    created_at = "created_at"
    publication_date = "publication_date"


ingestor = NewsIngestor(default_feeds())

# Scheduler com configurações para evitar empilhamento de jobs
scheduler = BackgroundScheduler(
    job_defaults={
        "coalesce": True,         # junta execuções atrasadas
        "max_instances": 1,       # não roda dois iguais ao mesmo tempo
        "misfire_grace_time": 30, # 30s de tolerância
    }
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler.add_job(run_ingestion, "interval", minutes=config.INGEST_INTERVAL_MINUTES, id="ingest_news")
    scheduler.add_job(run_purge, "interval", minutes=config.PURGE_INTERVAL_MINUTES, id="purge_expired")
    scheduler.start()

    # Primeira execução imediata para aquecer dados
    if config.INGEST_ON_STARTUP:
        try:
            run_ingestion()
        except Exception as e:
            logger.warning("first ingestion failed: %s", e)

    yield
    scheduler.shutdown(wait=False)


def run_ingestion():
    return ingestor.fetch_and_reload_all_news()


def run_purge():
    removed = repository.purge_expired_articles()
    if removed:
        logger.info("purged %d expired article(s)", removed)
    return removed


# Guardas de acesso, resolvidas antes da validação do corpo
def admin_principal(x_principal: Optional[str] = Header(None)) -> str:
    return require_admin(x_principal)


def user_principal(x_principal: Optional[str] = Header(None)) -> str:
    return require_user(x_principal)


def _listing(items, page: Optional[int], page_size: int, sort: SortKey):
    items = repository.sort_news(items, key=sort.value)
    total = len(items)
    if page is not None:
        try:
            items = repository.paginate(items, page, page_size)
        except ValueError as e:
            raise HTTPException(400, str(e))
    return {"status": "success", "total": total, "data": [n.model_dump(mode="json") for n in items]}


#%% APP

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=512)


@app.exception_handler(Unauthorized)
def unauthorized_handler(request: Request, exc: Unauthorized):
    return JSONResponse({"status": "error", "error": str(exc)}, status_code=403)


@app.get("/health")
def health():
    return {"status": "ok", "ts": int(time.time())}


# ---------- News ----------

@app.get("/news")
def get_all_news(page: Optional[int] = None, page_size: int = config.PAGE_SIZE,
                 sort: SortKey = SortKey.created_at):
    return _listing(repository.get_all_news(), page, page_size, sort)


@app.get("/news/category/{category}")
def get_news_by_category(category: NewsCategory, page: Optional[int] = None,
                         page_size: int = config.PAGE_SIZE, sort: SortKey = SortKey.created_at):
    return _listing(repository.get_news_by_category(category), page, page_size, sort)


@app.post("/news/purge-expired")
def purge_expired_articles(principal: str = Depends(admin_principal)):
    removed = repository.purge_expired_articles()
    return {"status": "success", "removed": removed}


@app.get("/news/{news_id}")
def get_news_by_id(news_id: str):
    news = repository.get_news_by_id(news_id)
    if news is None:
        raise HTTPException(404, "Article not found")
    return {"status": "success", "data": news.model_dump(mode="json")}


@app.post("/news")
def add_news(payload: NewsIn, principal: str = Depends(admin_principal)):
    news = repository.add_news(payload)
    if news is None:
        raise HTTPException(409, f"Article {payload.id} already exists")
    return {"status": "success", "data": news.model_dump(mode="json")}


@app.delete("/news/{news_id}")
def delete_news(news_id: str, principal: str = Depends(admin_principal)):
    if not repository.delete_news(news_id):
        raise HTTPException(404, "Article not found")
    return {"status": "success"}


# ---------- Reviews ----------

@app.get("/news/{news_id}/reviews")
def get_reviews_by_article_id(news_id: str):
    items = repository.get_reviews_by_article_id(news_id)
    return {"status": "success", "data": [r.model_dump(mode="json") for r in items]}


@app.post("/news/{news_id}/reviews")
def add_review(news_id: str, payload: ReviewIn, principal: str = Depends(user_principal)):
    review = repository.add_review(payload, news_id)
    if review is None:
        raise HTTPException(404, "Article not found")
    return {"status": "success", "data": review.model_dump(mode="json")}


@app.get("/reviews")
def get_all_reviews():
    items = repository.get_all_reviews()
    return {"status": "success", "data": [r.model_dump(mode="json") for r in items]}


@app.delete("/reviews/{review_id}")
def delete_review(review_id: int, principal: str = Depends(admin_principal)):
    if not repository.delete_review(review_id):
        raise HTTPException(404, "Review not found")
    return {"status": "success"}


# ---------- Caller / roles ----------

@app.get("/me/role")
def get_caller_user_role(x_principal: Optional[str] = Header(None)):
    return {"status": "success", "data": caller_role(x_principal).value}


@app.get("/me/is-admin")
def is_caller_admin(x_principal: Optional[str] = Header(None)):
    return {"status": "success", "data": caller_role(x_principal) == UserRole.admin}


@app.post("/roles")
def assign_caller_user_role(user: str, role: UserRole, principal: str = Depends(admin_principal)):
    try:
        assign_role(principal, user, role)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"status": "success", "user": user, "role": role.value}


@app.get("/me/profile")
def get_caller_user_profile(x_principal: Optional[str] = Header(None)):
    principal = normalize_principal(x_principal)
    profile = accounts.get_profile(principal) if principal else None
    return {"status": "success", "data": profile.model_dump() if profile else None}


@app.put("/me/profile")
def save_caller_user_profile(payload: UserProfile, principal: str = Depends(user_principal)):
    accounts.save_profile(principal, payload)
    return {"status": "success", "data": payload.model_dump()}


# ---------- Live ----------

@app.get("/live")
def get_live_status():
    return {"status": "success", "data": accounts.get_live_status().model_dump(mode="json")}


@app.post("/live/toggle")
def toggle_live_status(principal: str = Depends(admin_principal)):
    status = accounts.toggle_live_status()
    logger.info("live status switched %s", "on" if status.is_live else "off")
    return {"status": "success", "data": status.model_dump(mode="json")}


# ---------- Ingestion ----------

@app.get("/ingest/sources")
def list_sources():
    return {"status": "success", "data": ingestor.sources(), "last_update": ingestor.last_updated}


# antes de /ingest/{source}, senão "reload" vira nome de fonte
@app.post("/ingest/reload")
def fetch_and_reload_all_news(principal: str = Depends(admin_principal)):
    return run_ingestion()


@app.post("/ingest/{source}")
def fetch_specific_source(source: str, principal: str = Depends(admin_principal)):
    try:
        return ingestor.fetch_specific_source(source)
    except KeyError:
        raise HTTPException(404, "Unknown source")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("newsdesk.api.main:app", host="0.0.0.0", port=8000, reload=True)
