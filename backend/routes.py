"""
API routes for the PR dashboard.

Every endpoint runs one dashboard feature synchronously. FastAPI runs
plain ``def`` endpoints in its threadpool, so a slow GitHub search never
blocks the event loop.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from services.context import build_context
from services.dashboard import DashboardService
from utils.config_loader import load_config

router = APIRouter(prefix="/api", tags=["dashboard"])

_service: Optional[DashboardService] = None


def get_service() -> DashboardService:
    """Process-wide dashboard service, built from the .env config on first use."""
    global _service
    if _service is None:
        _service = DashboardService(build_context(load_config()))
    return _service


@router.get("/stats/{org}")
def org_stats(org: str, service: DashboardService = Depends(get_service)) -> Dict[str, Any]:
    """PR health (open, stale, merged, ratio) for an organization."""
    return service.org_stats(org)


@router.get("/changelog")
def changelog(
    org: Optional[str] = Query(None, description="Organization scope"),
    user: Optional[str] = Query(None, description="Author scope"),
    include_bots: bool = Query(True, description="Include PRs and commits authored by bots"),
    service: DashboardService = Depends(get_service),
) -> Dict[str, Any]:
    """Merged PRs and direct commits of the last week, grouped by repository."""
    if not org and not user:
        raise HTTPException(status_code=400, detail="Provide an org, a user, or both")
    return service.changelog(org=org, username=user, include_bots=include_bots)


@router.get("/leaderboard/{org}")
def leaderboard(org: str, service: DashboardService = Depends(get_service)) -> Dict[str, Any]:
    """Top contributors by merged PRs."""
    return service.leaderboard(org)


@router.get("/users/{username}/prs")
def user_prs(
    username: str,
    enrich: bool = Query(True, description="Attach line counts and turn status tags"),
    service: DashboardService = Depends(get_service),
) -> Dict[str, Any]:
    """Open PRs involving a user, split into incoming and outgoing."""
    return service.user_prs(username, enrich=enrich)


@router.get("/users/{username}/orgs")
def user_orgs(username: str, service: DashboardService = Depends(get_service)) -> Dict[str, List[str]]:
    """Organizations for the org selector."""
    return {"orgs": service.user_orgs(username)}


@router.delete("/cache/{family}")
def clear_cache(family: str, service: DashboardService = Depends(get_service)) -> Dict[str, Any]:
    """Drop cached entries of one family ("all" for every family)."""
    try:
        removed = service.clear_cache(family)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"family": family, "removed": removed}
