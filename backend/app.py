"""
FastAPI application for the PR dashboard.

Serves org stats, changelog, leaderboard and per-user PR data as JSON.
The dashboard service is created on first use from the .env config, so
importing this module never requires credentials.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fetchers.errors import (
    AuthFailureError,
    ForbiddenError,
    GitHubAPIError,
    MalformedRequestError,
    NotFoundError,
    RetriesExhaustedError,
)
from utils.logger import setup_logger

logger = setup_logger(name="backend.app")

# Create FastAPI app
app = FastAPI(
    title="R2R Stats API",
    description="PR health, changelog and leaderboard data aggregated from GitHub search",
    version="1.0.0"
)

# Enable CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],  # Vite dev server
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_for_error(error: GitHubAPIError) -> int:
    """HTTP status returned to API clients for a failed upstream call."""
    if isinstance(error, AuthFailureError):
        return 401
    if isinstance(error, ForbiddenError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, MalformedRequestError):
        return 400
    if isinstance(error, RetriesExhaustedError) and error.is_rate_limit:
        return 429
    return 502


@app.exception_handler(GitHubAPIError)
async def github_error_handler(request: Request, exc: GitHubAPIError) -> JSONResponse:
    status = status_for_error(exc)
    detail = exc.user_message if isinstance(exc, RetriesExhaustedError) else str(exc)
    logger.warning(f"{request.method} {request.url.path} failed upstream ({status}): {exc}")
    return JSONResponse(status_code=status, content={"detail": detail})


# Import and include routes
from backend.routes import router  # noqa: E402
app.include_router(router)

logger.info("FastAPI app initialized")
