"""Main FastAPI application"""
import logging
import logging.config
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from motor.motor_asyncio import AsyncIOMotorClient
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import config
from routes import router as api_router
from services.database import ensure_indexes
from services.errors import ServiceError
from utils.limiter import limiter
from utils.uploads import ensure_upload_dir

# --- Unified Logging Configuration with Rich ---
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            # RichHandler renders time and level itself
            "format": "%(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "class": "rich.logging.RichHandler",
            "formatter": "default",
            "level": "DEBUG",
            "rich_tracebacks": True,
            "show_time": True,
            "show_path": False,
            "log_time_format": "%Y-%m-%d %H:%M:%S",
            "markup": False,
        },
    },
    "loggers": {
        "uvicorn": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.error": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "": {  # Root logger for our application
            "handlers": ["default"],
            "level": config.LOG_LEVEL,
            "propagate": False,
        },
    },
}

logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)

# Application state to hold the database client and database
app_state = {}


# --- Middleware for Upload Size Limit ---
class LimitUploadSizeMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.method == "POST" and request.url.path == config.UPLOAD_ENDPOINT_PATH:
            content_length_header = request.headers.get("content-length")
            if content_length_header:
                try:
                    content_length = int(content_length_header)
                    if content_length > config.MAX_UPLOAD_SIZE:
                        logger.warning(f"Upload rejected: size {content_length} exceeds limit {config.MAX_UPLOAD_SIZE}.")
                        return Response(
                            f"Maximum file upload size limit ({config.MAX_UPLOAD_SIZE / (1024*1024):.1f} MB) exceeded.",
                            status_code=413,
                        )
                except ValueError:
                    logger.warning("Upload rejected: Invalid Content-Length header.")
                    return Response("Invalid Content-Length header.", status_code=400)

        response = await call_next(request)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Connect to MongoDB
    if not config.MONGODB_URI:
        logger.error("MONGODB_URI environment variable not set! Data routes will answer 503.")
        app_state["db_client"] = None
        app_state["db"] = None
    else:
        logger.info(f"Connecting to MongoDB database {config.DB_NAME}...")
        try:
            app_state["db_client"] = AsyncIOMotorClient(config.MONGODB_URI)
            app_state["db"] = app_state["db_client"][config.DB_NAME]
            await app_state["db_client"].admin.command('ping')
            logger.info("MongoDB ping successful.")
            await ensure_indexes(app_state["db"])
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            if app_state.get("db_client"):
                app_state["db_client"].close()
            app_state["db_client"] = None
            app_state["db"] = None

    yield  # Application runs here

    # Shutdown: Close MongoDB connection
    if app_state.get("db_client"):
        logger.info("Closing MongoDB connection...")
        app_state["db_client"].close()
        logger.info("MongoDB connection closed.")


app = FastAPI(
    title="Family Expense Tracker API",
    description="Personal and family expense tracking with device-token auth and offline sync.",
    version="0.1.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# --- Error handlers ---
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed fields are a 400 in this API, not FastAPI's default 422."""
    errors = exc.errors()
    fields = sorted({".".join(str(part) for part in err.get("loc", ())[1:]) for err in errors} - {""})
    message = f"Invalid or missing fields: {', '.join(fields)}" if fields else "Invalid request"
    logger.info(f"{request.method} {request.url.path} -> 400: {message}")
    details = [{"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")} for err in errors]
    return JSONResponse(status_code=400, content={"error": message, "details": details})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --- Middleware (Order Matters) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LimitUploadSizeMiddleware)

app.include_router(api_router, prefix="/api", tags=["api"])

# Uploaded profile photos
app.mount(config.UPLOAD_URL_PREFIX, StaticFiles(directory=ensure_upload_dir()), name="uploads")


# Make app state accessible via middleware
@app.middleware("http")
async def add_app_config_to_request(request: Request, call_next):
    """Adds the database connection to the request state."""
    request.state.db_client = app_state.get("db_client")
    request.state.db = app_state.get("db")
    response = await call_next(request)
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
