"""
MentorBoard Backend API Server

FastAPI application for a tutoring programme: users and groups, periods,
points and experience ledgers, attendance and events with QR check-in,
syllabi, student wishes and staff weekly reports.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
import time

from mentorboard import config
from mentorboard.api.auth import require_admin
from mentorboard.api.routes import (
    attendance,
    auth,
    classrooms,
    event_types,
    events,
    leaderboard,
    periods,
    point_reasons,
    points,
    stats,
    student_reports,
    syllabus,
    users,
    weekly_reports,
    wishes,
)
from mentorboard.clock import utcnow
from mentorboard.exceptions import MentorBoardError
from mentorboard.models import User
from mentorboard.scripts.load_demo import DEFAULT_SCENARIO, load_scenario
from mentorboard.services.scheduler import start_scheduler, stop_scheduler

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting MentorBoard API server...")

    if config.SCHEDULER_ENABLED:
        start_scheduler()
        logger.info("Background scheduler started")

    yield

    # Shutdown
    logger.info("Shutting down MentorBoard API server...")
    if config.SCHEDULER_ENABLED:
        stop_scheduler()
        logger.info("Background scheduler stopped")


# Create FastAPI application
app = FastAPI(
    title="MentorBoard API",
    description="Gamified tutoring programme backend",
    version=VERSION,
    lifespan=lifespan,
    debug=config.DEBUG,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials="*" not in config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration_ms:.2f}ms"
    )

    return response


# Domain error handler
@app.exception_handler(MentorBoardError)
async def domain_exception_handler(request: Request, exc: MentorBoardError):
    """Render expected failures as {"error": message, "code": code}"""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"{exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


# Framework errors (unknown route, wrong method)
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": f"HTTP_{exc.status_code}"},
        headers=getattr(exc, "headers", None),
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    content = {"error": "Internal server error", "code": "INTERNAL_ERROR"}
    if app.debug:
        content["details"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Request validation failed",
            "code": "VALIDATION_ERROR",
            "details": jsonable_encoder(exc.errors()),
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns server status and version information.
    """
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "version": VERSION,
        "service": "mentorboard-api"
    }


# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(periods.router)
app.include_router(point_reasons.router)
app.include_router(points.router)
app.include_router(leaderboard.router)
app.include_router(attendance.router)
app.include_router(event_types.router)
app.include_router(events.router)
app.include_router(syllabus.router)
app.include_router(classrooms.router)
app.include_router(wishes.router)
app.include_router(weekly_reports.router)
app.include_router(student_reports.router)
app.include_router(stats.router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """API root endpoint"""
    return {
        "name": "MentorBoard API",
        "version": VERSION,
        "description": "Gamified tutoring programme backend",
        "docs": "/api/docs",
        "health": "/health"
    }


# Admin endpoint to load demo data
@app.post("/admin/load-demo", tags=["Admin"])
async def load_demo_data(admin: User = Depends(require_admin)):
    """Replace the database content with the bundled demo scenario"""
    logger.info(f"{admin.username} requested a demo data load")
    summary = await load_scenario(DEFAULT_SCENARIO, reset=True)
    return {"status": "success", "message": "Demo data loaded successfully", "summary": summary}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower()
    )
