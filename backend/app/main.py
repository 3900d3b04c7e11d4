import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from .access_routes import router as access_router
from .config import get_settings
from .errors import ScheduleServiceError
from .logging_config import configure_logging
from .schedule_routes import router as schedule_router
from .telemetry_routes import router as telemetry_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Shift Schedule Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)
app.include_router(schedule_router)
app.include_router(access_router)
app.include_router(telemetry_router)

settings_snapshot = get_settings()
logger.info("Backend starting with upstream base URL configured: %s", bool(settings_snapshot.api_base_url))
logger.info("Schedule cache TTL: %ss, config cache TTL: %ss", settings_snapshot.cache_ttl_seconds, settings_snapshot.config_cache_ttl_seconds)


@app.exception_handler(ScheduleServiceError)
async def schedule_error_handler(request: Request, exc: ScheduleServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(exc.as_payload(), status_code=exc.status_code)


@app.get("/healthz")
def health() -> Dict[str, str]:
    return {"status": "ok"}
