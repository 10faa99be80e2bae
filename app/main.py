import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import FRONTEND_URL
from .database import Base, engine
from .domain.patients.router import router as patients_router
from .domain.scheduling.exceptions import DataAccessError, SchedulingError
from .domain.scheduling.router import admin_router as admin_schedules_router
from .domain.scheduling.router import documents_router
from .domain.scheduling.router import router as schedules_router
from .routes.doctors import router as doctors_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


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
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Bloco Cirúrgico API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(SchedulingError)
async def scheduling_exception_handler(request: Request, exc: SchedulingError):
    """Map domain errors to their HTTP status with an {"error": ...} body"""
    if isinstance(exc, DataAccessError):
        logger.error(f"❌ {request.method} {request.url.path} - {type(exc).__name__}")
    else:
        logger.info(
            f"{request.method} {request.url.path} - {type(exc).__name__}: {exc.message}"
        )
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Dados inválidos", "details": jsonable_encoder(exc.errors())},
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


# CORS Configuration
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", FRONTEND_URL).split(",")
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(schedules_router)
app.include_router(admin_schedules_router)
app.include_router(documents_router)
app.include_router(patients_router)
app.include_router(doctors_router)


@app.get("/")
def root():
    return {"message": "Bloco Cirúrgico API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
