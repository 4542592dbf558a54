"""
R2R Stats API - JSON endpoints for the PR dashboard.

Provides a FastAPI backend that serves org stats, changelogs,
leaderboards and per-user PR snapshots aggregated from GitHub search.
"""
