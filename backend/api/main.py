"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import media
from db import init_db
from settings import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Create app
app = FastAPI(
    title="Restaurant Media Resolver API",
    description="API for resolving restaurant photos and video frames to places",
    version="0.1.0",
)

# CORS middleware for the mobile client
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(media.router, prefix="/media", tags=["media"])


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject malformed requests with a client error before any provider call."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    logger.info("Rejected request to %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: {location}: {message}" if location else message},
    )


@app.on_event("startup")
def startup_event():
    """Initialize database tables on startup."""
    init_db()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Restaurant Media Resolver API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
