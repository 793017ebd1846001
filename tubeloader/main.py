import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from tubeloader import config
from tubeloader.routes import router
from tubeloader.services.google_auth import warn_if_unconfigured
from tubeloader.services.upload_service import UploadService

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app(uploads: Optional[UploadService] = None) -> FastAPI:
    warn_if_unconfigured()

    app = FastAPI(
        title=config.APP_NAME,
        version="1.0.0"
    )

    app.state.uploads = uploads or UploadService()

    app.add_middleware(
        SessionMiddleware,
        secret_key=config.SESSION_SECRET,
        max_age=config.SESSION_MAX_AGE_SECONDS,
        same_site="lax",
        https_only=config.IS_PROD,
    )

    app.add_exception_handler(StarletteHTTPException, http_error)

    # ---------------------------
    # Routes
    # ---------------------------
    app.include_router(router)

    # ---------------------------
    # Health check
    # ---------------------------
    @app.get("/", tags=["health"])
    def health():
        return {
            "status": "ok",
            "service": config.APP_NAME,
            "queue": app.state.uploads.queue_info(),
            "jobs": app.state.uploads.job_counts(),
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn

    logger.info("Server running on port %d", config.PORT)
    if config.BASE_URL:
        logger.info("Use this redirect URI in Google Cloud Console: %s/auth/google/callback", config.BASE_URL)
    uvicorn.run("tubeloader.main:app", host="0.0.0.0", port=config.PORT)
