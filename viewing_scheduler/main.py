import asyncio
import logging
from contextlib import asynccontextmanager

from arq import create_pool
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .database import Base, engine

# Import all model files so every table is registered before create_all
from . import models  # noqa: F401
from . import models_viewing  # noqa: F401
from .domain.scheduling.errors import SchedulingError
from .domain.scheduling.router import router as scheduling_router
from .services.twilio_service import TwilioMessagingGateway
from .worker import get_redis_settings

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

    app.state.messaging_gateway = TwilioMessagingGateway()
    app.state.arq_pool = None
    try:
        app.state.arq_pool = await asyncio.wait_for(
            create_pool(get_redis_settings()), timeout=20.0
        )
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - Reminders will not be scheduled: {e}")

    yield

    logger.info("Application shutting down...")
    if app.state.arq_pool is not None:
        await app.state.arq_pool.close()


app = FastAPI(title="Viewing Scheduler API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(SchedulingError)
async def scheduling_exception_handler(request: Request, exc: SchedulingError):
    """Map scheduling errors to their HTTP status with a plain detail message"""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(scheduling_router)


@app.get("/")
def root():
    return {"status": "ok", "service": "viewing-scheduler"}


@app.get("/health")
def health():
    return {"status": "healthy"}
