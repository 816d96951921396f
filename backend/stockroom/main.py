import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from stockroom.core.config import settings
from stockroom.core.database import Base, engine
from stockroom.core.errors import AppError, ErrorKind
from stockroom.core.logging_config import setup_logging
from stockroom.core.scheduler import start_scheduler, stop_scheduler
from stockroom.api.dependencies import get_image_storage
from stockroom.api.routes import auth, categories, products, users
# Import models so their tables are registered on Base.metadata
from stockroom.models import category, product, user  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage app lifecycle events.

    Startup: refuse to run without a JWT secret, create tables, start the
    orphaned-image sweep
    Shutdown: stop the sweep
    """
    setup_logging(settings.LOG_LEVEL)
    if not settings.JWT_SECRET:
        logger.critical("JWT_SECRET is not set; refusing to start")
        raise AppError(ErrorKind.CONFIG, "JWT_SECRET is not set")

    # In production, use migrations (Alembic) instead of create_all
    Base.metadata.create_all(bind=engine)
    # Builds the storage once, creating the image directory
    get_image_storage()
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Stockroom API",
    description="Inventory management: products, categories and users",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Every error leaves the API as {"error": message, "code": kind}

HTTP_ERROR_KINDS = {
    401: ErrorKind.UNAUTHENTICATED,
    404: ErrorKind.NOT_FOUND,
}

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    headers = None
    if exc.kind in (ErrorKind.UNAUTHENTICATED, ErrorKind.TOKEN_EXPIRED):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.kind in (ErrorKind.CONFIG, ErrorKind.INTERNAL):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request data"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid value for {field}: {first.get('msg')}" if field else first.get("msg", message)
    error = AppError(ErrorKind.VALIDATION, message)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Framework errors (unknown route, wrong method, malformed body) keep their
    # status but use the same envelope
    if exc.status_code >= 500:
        kind = ErrorKind.INTERNAL
    else:
        kind = HTTP_ERROR_KINDS.get(exc.status_code, ErrorKind.VALIDATION)
    message = exc.detail if isinstance(exc.detail, str) else None
    error = AppError(kind, message)
    return JSONResponse(status_code=exc.status_code, content=error.to_dict(), headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # Always answer; never leave the client waiting on an unexpected failure
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = AppError(ErrorKind.INTERNAL)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# All routes are prefixed with /api for consistency
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(categories.router, prefix="/api")
app.include_router(products.router, prefix="/api")

# Product images are served from the upload directory, e.g.
# /uploads/products/product-<hex>.png
app.mount(
    "/uploads",
    StaticFiles(directory=Path(settings.UPLOAD_DIR), check_dir=False),
    name="uploads",
)


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {"message": "Stockroom API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}
