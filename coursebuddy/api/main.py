"""
FastAPI application for CourseBuddy Scheduler.

Provides endpoints for:
- Course catalog fetch, refresh and search
- The planner workspace (selection, generated grid, undo/redo, drag and drop)
- The AI schedule assistant
- Saved schedules
- Login and issue reports
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from coursebuddy.config import settings
from coursebuddy.api.auth import router as auth_router
from coursebuddy.api.chat import router as chat_router
from coursebuddy.api.courses import router as courses_router
from coursebuddy.api.deps import get_db_session_factory
from coursebuddy.api.issues import router as issues_router
from coursebuddy.api.planner import router as planner_router
from coursebuddy.api.rate_limit import limiter, rate_limit_exceeded_handler
from coursebuddy.api.schedules import router as schedules_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.app_name} {settings.app_version}")
    yield
    logger.info(f"Stopping {settings.app_name}")


# Create FastAPI app
app = FastAPI(
    title="CourseBuddy Scheduler API",
    description="""
API for planning a UBC course timetable.

Features:
- Browse the course catalog of a term
- Pick sections and generate a weekly grid
- Drag blocks onto alternative sections' time slots
- Ask the AI assistant for section swaps
- Save and load named schedules
    """,
    version=settings.app_version,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(courses_router)
app.include_router(chat_router)
app.include_router(issues_router)
app.include_router(planner_router)
app.include_router(schedules_router)


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Health"])
async def root():
    """API root - health check and basic info."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check(session_factory=Depends(get_db_session_factory)):
    """Detailed health check."""
    try:
        with session_factory() as session:
            session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected",
            "default_term": settings.default_term,
        }
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Service unhealthy: {str(e)}")


def main():
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "coursebuddy.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
