import logging
import os
import random
from contextlib import asynccontextmanager

from elasticsearch import AsyncElasticsearch
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import RecommendationError
from .lib.notifier import LoggingNotifier
from .lib.store import ElasticsearchContentStore, InMemoryContentStore
from .routers import feed, health, recommendations
from .security import verify_api_key

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    es = None
    backend = os.environ.get("STORE_BACKEND", "elasticsearch")
    if backend == "memory":
        app.state.store = InMemoryContentStore()
    else:
        es = AsyncElasticsearch(
            os.environ.get("ELASTICSEARCH_URL", "http://localhost:9200"),
            api_key=os.environ.get("ELASTICSEARCH_API_KEY"),
        )
        app.state.store = ElasticsearchContentStore(es)
    app.state.notifier = LoggingNotifier()
    app.state.rng = random.Random()
    logger.info("Using %s content store", backend)
    try:
        yield
    finally:
        if es is not None:
            await es.close()


app = FastAPI(
    title="Pinfeed",
    description="Home feed, more-like-this and follow/board recommendations for a pinboard app",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(feed.router)
app.include_router(recommendations.router)


@app.exception_handler(RecommendationError)
async def recommendation_error_handler(request: Request, exc: RecommendationError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.get("/", dependencies=[Depends(verify_api_key)])
async def root():
    return {"message": "Pinfeed API"}
