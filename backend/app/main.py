import logging
import os
import sys

# Add backend directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.config import settings
from app.db.db import Base, engine
from app.routes import (
    people_router,
    offers_router,
    transactions_router,
    merchants_router,
    insights_router,
)
from app.services.errors import ServiceError
from offer_engine.errors import MalformedRecordError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler - runs on startup and shutdown"""
    # Startup
    Base.metadata.create_all(bind=engine)
    logger.info("Offer tracker API started")
    yield
    # Shutdown


app = FastAPI(
    title="Offer Tracker API",
    version="0.1.0",
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# CORS middleware - MUST be added first before other middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):  # type: ignore[override]
    """Handle validation errors with HTTP 400 to maintain backward compatibility with API contract."""
    errors = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request payload.",
                "details": {"errors": jsonable_encoder(errors)}
            }
        }
    )


@app.exception_handler(ServiceError)
async def service_exception_handler(request, exc: ServiceError):  # type: ignore[override]
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.exception_handler(MalformedRecordError)
async def malformed_record_handler(request, exc: MalformedRecordError):  # type: ignore[override]
    """Stored data the engine cannot read; the request itself was fine."""
    logger.warning("Malformed record while handling %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "MALFORMED_RECORD",
                "message": str(exc),
                "details": {"field": exc.field, "reason": exc.reason},
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):  # type: ignore[override]
    """Handle general exceptions - log and return 500 error"""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "Internal server error.",
                "details": {}
            }
        }
    )


# Register routers
app.include_router(people_router)
app.include_router(offers_router)
app.include_router(transactions_router)
app.include_router(merchants_router)
app.include_router(insights_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
