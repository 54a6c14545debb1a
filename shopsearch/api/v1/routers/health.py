# shopsearch/api/v1/routers/health.py
import time
from fastapi import APIRouter
from shopsearch.core.config import get_settings
from shopsearch.db import mongo
from shopsearch.db.redis import get_redis  # returns Redis instance or None

router = APIRouter(tags=["health"])
START_TIME = time.time()


@router.get("/health")
async def health():
    """
    Tolerant health check:
    - ping Mongo via Motor (async); 'skipped' when MONGO_URI is not set
    - Redis 'skipped' when not configured
    """
    settings = get_settings()
    checks: dict[str, object] = {
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "version": settings.GIT_SHA,
        "uptime_seconds": int(time.time() - START_TIME),
        "search_index": settings.SEARCH_INDEX,
    }

    # --- Mongo ---
    if not settings.MONGO_URI:
        checks["mongodb"] = "skipped"
    else:
        try:
            db = mongo.get_db()
            await db.command("ping")
            checks["mongodb"] = "ok"
        except Exception as e:
            checks["mongodb"] = f"error: {e}"

    # --- Redis (optional) ---
    try:
        r = get_redis()
        if r:
            await r.ping()
            checks["redis"] = "ok"
        else:
            checks["redis"] = "skipped"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    # Redis down only degrades (cache bypass); Mongo down is an error
    status = "ok" if checks["mongodb"] in ("ok", "skipped") else "error"

    return {"status": status, "checks": checks, "timestamp": int(time.time())}
