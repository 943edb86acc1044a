"""
Main FastAPI application entry point.
"""
import sys
import time
import logging
import warnings
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import OperationalError

# Load environment variables
load_dotenv()

# Add project root to path
ROOT_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT_DIR))

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    force=True
)

logger = logging.getLogger(__name__)

from config import settings
from alembic_runner import run_migrations
from tables import import_all_models, create_missing_tables

# Register every model with SQLAlchemy Base before relationships resolve
import_all_models()

# Routers
from Product_module.Product_router import router as product_router
from Offer_module.Offer_router import router as offer_router
from Cart_module.Coupon_router import router as coupon_router
from Orders_module.Order_router import router as order_router
from Wallet_module.Wallet_router import router as wallet_router


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses with status codes."""

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        start_time = time.time()

        logger.info(f"-> {request.method} {request.url.path} | IP: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"{request.method} {request.url.path} | "
                f"Status: 500 (SERVER_ERROR) | "
                f"Error: {str(e)} | "
                f"Duration: {duration:.3f}s | "
                f"IP: {client_ip}"
            )
            raise

        duration = time.time() - start_time
        status_code = response.status_code
        log_message = (
            f"{request.method} {request.url.path} | "
            f"Status: {status_code} ({_status_category(status_code)}) | "
            f"Duration: {duration:.3f}s | "
            f"IP: {client_ip}"
        )
        if status_code >= 500:
            logger.error(log_message)
        elif status_code in (404, 409):
            # Business rejections (unknown order, coupon used up, ...)
            logger.warning(log_message)
        else:
            logger.info(log_message)
        return response


def _status_category(status_code: int) -> str:
    if status_code < 300:
        return "SUCCESS"
    if status_code < 400:
        return "REDIRECT"
    if status_code < 500:
        return "CLIENT_ERROR"
    return "SERVER_ERROR"


def initialize_database():
    """
    Bring the schema up to date: Alembic migrations first, then any table
    that is registered but still missing (fresh SQLite databases).
    Connection errors are logged and retried on the next startup.
    """
    try:
        logger.info("Running database migrations...")
        run_migrations()
        logger.info("Database migrations completed successfully")
    except OperationalError as e:
        logger.error(f"Failed to connect to database during migrations: {e}")
        logger.warning("Migrations will be retried on next startup")
        return

    try:
        created = create_missing_tables()
        if created:
            logger.info(f"Created {len(created)} missing table(s)")
    except OperationalError as e:
        logger.error(f"Failed to connect to database during table creation: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    logger.info("Starting application...")
    initialize_database()
    logger.info("Application started successfully")
    yield
    logger.info("Application shutdown complete")


# Initialize FastAPI app
app = FastAPI(
    title="Storefront Orders API",
    version="1.0.0",
    lifespan=lifespan
)


def _validation_response(exc, message: str) -> JSONResponse:
    """Consistent 422 body: one entry per invalid field."""
    details = []
    for err in exc.errors():
        loc = err.get("loc", [])
        details.append({
            "source": loc[0] if loc else "body",
            "field": loc[-1] if loc else None,
            "message": err.get("msg"),
            "type": err.get("type")
        })
    return JSONResponse(
        status_code=422,
        content={"status": "error", "message": message, "details": details}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {len(exc.errors())} invalid field(s)")
    return _validation_response(exc, "Request validation failed.")


@app.exception_handler(ValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    return _validation_response(exc, "Validation failed.")


# CORS configuration
if settings.ALLOWED_ORIGINS == ["*"]:
    warnings.warn("CORS is set to allow all origins. This is not recommended for production.")

# Middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

# Include routers
app.include_router(product_router)
app.include_router(offer_router)
app.include_router(coupon_router)
app.include_router(order_router)
app.include_router(wallet_router)


# API Endpoints
@app.get("/")
def root():
    """Root endpoint with API information."""
    return {
        "status": "success",
        "message": "Storefront Orders API",
        "version": "1.0.0",
        "endpoints": {
            "products": "/products",
            "offers": "/offers",
            "coupons": "/coupons",
            "orders": "/orders",
            "wallet": "/wallet"
        },
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "service": "Storefront Orders API"
    }


# Run application
if __name__ == "__main__":
    import uvicorn

    uvicorn_access_logger = logging.getLogger("uvicorn.access")
    uvicorn_access_logger.setLevel(logging.INFO)
    uvicorn_logger = logging.getLogger("uvicorn")
    uvicorn_logger.setLevel(logging.INFO)

    logger.info("Starting Storefront Orders API server on http://0.0.0.0:8030 (docs at /docs)")

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8030,
        reload=False,
        log_level="info",
        access_log=True,
        use_colors=True
    )
