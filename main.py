"""
Dentalogix Backend - FastAPI Application Entry Point

Dental practice backend serving the smile assessment quiz.
"""

from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from core.config import settings
from core.logging import setup_logging, log_request_middleware
from core.database import AsyncSessionLocal, init_db
from api.v1 import quiz, quiz_admin
from scripts.seed_quiz import seed_quiz

# Setup logging
logger = setup_logging()


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Dentalogix Backend application...")

    await init_db()
    logger.info("Database tables ready")

    if settings.SEED_ON_STARTUP:
        async with AsyncSessionLocal() as session:
            seeded = await seed_quiz(session)
        logger.info("Default quiz content checked", **seeded)

    yield

    logger.info("Shutting down Dentalogix Backend application...")


# Create FastAPI application
app = FastAPI(
    title="Dentalogix Backend API",
    description="Smile assessment quiz and lead capture for a dental practice",
    version=settings.VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.ENABLE_REQUEST_LOGGING:
    app.middleware("http")(log_request_middleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation exceptions."""
    errors = exc.errors()
    logger.error(
        f"Validation Exception: {errors} | "
        f"Path: {request.url.path} | "
        f"Method: {request.method} | "
        f"Client: {_client_host(request)}"
    )
    user_message = errors[0].get("msg", "Invalid input data") if errors else "Invalid input data"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": user_message,
            "detail": jsonable_encoder(errors),
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Server Exception: {exc!r} | "
        f"Path: {request.url.path} | "
        f"Method: {request.method} | "
        f"Client: {_client_host(request)}"
    )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "detail": str(exc)
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(
        f"HTTP Exception: {exc.detail} | "
        f"Path: {request.url.path} | "
        f"Method: {request.method} | "
        f"Client: {_client_host(request)}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "detail": str(exc)
        }
    )


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.APP_NAME, "version": settings.VERSION}


# Include API routers
app.include_router(quiz.router, prefix="/api/v1/quiz", tags=["Quiz"])
app.include_router(quiz_admin.router, prefix="/api/v1/admin/quiz", tags=["Quiz Admin"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
