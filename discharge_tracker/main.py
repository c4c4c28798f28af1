import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from discharge_tracker.core.config import get_settings
from discharge_tracker.core.exceptions import TrackerError
from discharge_tracker.api.v1.router import api_router
from discharge_tracker.workflows.registry import validate_registry

logger = logging.getLogger(__name__)

settings = get_settings()

# Fail fast on a step bound to a column that does not exist
validate_registry()

app = FastAPI(
    title="Discharge Tracker",
)


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    logger.info(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Database error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "code": "database_error"},
    )


@app.get("/health", tags=["health"])
async def root_health() -> dict:
    """
    Global health check endpoint.
    """
    return {"status": "ok"}


# Mount versioned API router
app.include_router(api_router, prefix=settings.api_v1_prefix)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run("discharge_tracker.main:app", host="0.0.0.0", port=settings.port)
