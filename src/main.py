# src/main.py
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator
import logging
import uvicorn as uv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from core.config import settings
from db.database import check_db_connection, create_tables, disconnect_db
from utils.exception_handler import setup_exception_handlers
from utils.logger import attach_file_handler, setup_logger
from routes import (
    appointments_router,
    tooth_diagnoses_router,
    treatments_router,
)

# Quiet server loggers
for log in ["watchfiles", "uvicorn.error", "uvicorn.access", "uvicorn.asgi"]:
    logging.getLogger(log).setLevel(logging.WARNING)

# Separate file handler for complete logs
if settings.ENVIRONMENT != "testing":
    attach_file_handler("app.log")

logger = setup_logger("SERVER")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create tables and verify the database before serving"""
    logger.info("Starting Dental Clinical Sync service...")

    try:
        logger.info("Initializing database...")
        await create_tables()

        if await check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed")

        logger.info("Application startup complete")
        yield

    except Exception as e:
        logger.error(f"Startup failed: {str(e)}")
        raise
    finally:
        logger.info("Closing database connection")
        await disconnect_db()
        logger.info("Shutting down application...")


app = FastAPI(
    title="Dental Clinical Sync",
    description="Keeps appointments, treatments and the tooth chart consistent",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# Exception handling
setup_exception_handlers(app)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(appointments_router, prefix=settings.API_PREFIX)
app.include_router(treatments_router, prefix=settings.API_PREFIX)
app.include_router(tooth_diagnoses_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    """Service banner"""
    return {
        "message": "Dental Clinical Sync API",
        "status": "healthy",
        "version": app.version,
    }


@app.get("/health")
async def health_check():
    """Detailed health check endpoint"""
    db_healthy = await check_db_connection()
    return {
        "status": "healthy" if db_healthy else "degraded",
        "database": "connected" if db_healthy else "disconnected",
        "environment": settings.ENVIRONMENT,
        "auto_create_tooth_diagnoses": settings.AUTO_CREATE_TOOTH_DIAGNOSES,
        "tooth_status_ordering_guard": settings.TOOTH_STATUS_ORDERING_GUARD,
    }


if __name__ == "__main__":
    watch_dirs = [
        os.path.join("core"),
        os.path.join("routes"),
        os.path.join("models"),
        os.path.join("schemas"),
        os.path.join("services"),
        os.path.join("utils"),
        os.path.join("db"),
    ]

    uv.run(
        "main:app",
        host=settings.UVICORN_HOST,
        port=settings.UVICORN_PORT,
        reload=settings.RELOAD,
        reload_dirs=watch_dirs,
        reload_excludes=["*.pyc", "*.tmp", "*.swp"],
        workers=1 if settings.RELOAD else settings.WORKERS_COUNT,
        log_level="info",
        access_log=True,
        timeout_graceful_shutdown=10,
    )
