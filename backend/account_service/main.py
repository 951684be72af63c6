import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from account_service.core.config import settings
from account_service.core.database import engine, Base
from account_service.core.errors import AccountError
from account_service.core.scheduler import start_scheduler, stop_scheduler
from account_service.api.routes import rpc, users

# Register every model on Base.metadata before create_all runs
import account_service.models.auth_token  # noqa: F401
import account_service.models.user  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage app lifecycle events.

    Startup: create tables, start the token purge scheduler
    Shutdown: stop the scheduler
    """
    # In production, use migrations (Alembic) instead of create_all
    Base.metadata.create_all(bind=engine)
    if settings.RUN_SCHEDULER:
        start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Account Service",
    description="User accounts, session tokens and role-gated admin operations",
    version="1.0.0",
    lifespan=lifespan
)

# Cookies are shared across subdomains, so credentials must be allowed
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError):
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {type(exc).__name__}")
    return error_response(exc.http_status, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Only the first problem is reported; field values are never echoed back
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid {location}" if location else message
    return error_response(400, message)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error_response(500, "Something went wrong")


app.include_router(users.router)
app.include_router(rpc.router)


@app.get("/healthCheck")
async def health_check():
    return {"message": "Working fine!"}


@app.get("/health")
async def health():
    """Health check endpoint - used by monitoring/deployment tools"""
    return {"status": "healthy"}
