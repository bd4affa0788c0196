# app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status as fastapi_status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.api import api_router_v1
from app.core.config import CORS_ORIGINS, setup_logging
from app.core.exceptions import LibraryError
from app.core.rate_limiter import get_rate_limiter, rate_limit_exception_handler
from app.db.database import close_db, get_client, init_db
from app.middleware.authentication import AuthMiddleware
from app.middleware.logging import RequestLoggingMiddleware
from app.services.container import build_services


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application startup...")
    await init_db()
    app.state.services = build_services()
    logger.info("Database initialized, services ready.")
    yield
    logger.info("Application shutdown...")
    close_db()


app = FastAPI(
    title="Library Lending API",
    description="Catalogue, borrowing, reservations, late fees and member notifications.",
    version="0.1.0",
    lifespan=lifespan
)

# --- Exception handlers ---
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)


@app.exception_handler(LibraryError)
async def library_exception_handler(request: Request, exc: LibraryError):
    logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == fastapi_status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    logger.error(f"Validation Error: {exc.errors()}")
    return JSONResponse(
        status_code=fastapi_status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"detail": "Validation Error", "errors": exc.errors()}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP Exception: Status={exc.status_code}, Detail={exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled Exception: {exc}")
    return JSONResponse(
        status_code=fastapi_status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred."},
    )


# --- Middleware (last added runs first) ---
app.add_middleware(AuthMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiter state for @limiter.limit
app.state.limiter = get_rate_limiter()

app.include_router(api_router_v1)


@app.get("/")
async def read_root():
    return {"message": "Library Lending API"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/db")
async def health_db():
    client = get_client()
    if client is None:
        raise HTTPException(status_code=503, detail="Database not initialised.")
    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        logger.error(f"MongoDB ping failed: {e}")
        raise HTTPException(status_code=503, detail="MongoDB connection failed.")
    return {"status": "success", "message": "MongoDB connection is healthy."}
