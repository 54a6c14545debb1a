from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError
import logging

from shopsearch.core.config import get_settings
from shopsearch.core.lifespan import lifespan
from shopsearch.core.logging import configure_logging
from shopsearch.api.v1.routers.health import router as health_router
from shopsearch.api.v1.routers.search import router as search_router
from shopsearch.api.v1.routers.related import router as related_router

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV, e.g. ALLOWED_ORIGINS="https://shop.example.com,https://admin.example.com"
allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,                        # keep False to simplify preflight
    allow_methods=["GET", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)


# ------- Errors -------
# Only the primary document fetch lets index errors through; everything else degrades in place
@app.exception_handler(PyMongoError)
async def search_index_unavailable(request: Request, exc: PyMongoError):
    logger.error("search index unavailable path=%s err=%s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "search index unavailable"})


# ------- Routes -------
app.include_router(health_router)
app.include_router(search_router)            # search, suggestions, cache clear
app.include_router(related_router)           # related, trending, personalized
