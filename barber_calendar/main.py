import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import models so the appointments table is registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import LOG_LEVEL
from .database import Base, engine
from .domain.appointments.router import router as appointments_router
from .domain.appointments.router import schedule_router
from .errors import BackendError, ValidationError
from .security_headers import NoCacheHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

NO_CACHE_HEADERS_ENABLED = os.getenv("NO_CACHE_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Barber Calendar API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Report malformed bodies and query params as 400 instead of FastAPI's 422,
    so clients see one status for every rejected payload
    """
    logger.warning(f"Invalid payload for {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid payload", "detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(BackendError)
async def backend_exception_handler(request: Request, exc: BackendError):
    logger.error(f"{request.method} {request.url.path} - Backend error: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


if NO_CACHE_HEADERS_ENABLED:
    app.add_middleware(NoCacheHeadersMiddleware)
    logger.info("No-cache headers enabled")
else:
    logger.warning("No-cache headers DISABLED - polling clients may see stale data!")


# CORS Configuration
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(appointments_router)
app.include_router(schedule_router)


@app.get("/")
def root():
    return {"message": "Barber Calendar API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


def run():
    """Console entry point: serve the API with uvicorn"""
    import uvicorn

    uvicorn.run(
        "barber_calendar.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
