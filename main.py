#!/usr/bin/env python3
"""
R2R Stats - Main CLI entrypoint

Aggregates GitHub pull request searches into dashboard views: org PR
health, weekly changelogs, contributor leaderboards and per-user PR
snapshots. Results are cached per feature (see storage.cache).

Usage:
    python main.py stats kubernetes                      # Org PR health
    python main.py changelog --org kubernetes --no-bots  # Last week's merged PRs
    python main.py changelog --user octocat
    python main.py leaderboard kubernetes                # Top contributors
    python main.py prs octocat                           # Incoming/outgoing PRs
    python main.py orgs octocat
    python main.py clear-cache org_stats
    python main.py serve --port 8000                     # JSON API
"""

import argparse
import json
import sys
from typing import Any

from fetchers.backoff import RetryProgress
from fetchers.errors import GitHubAPIError, RetriesExhaustedError
from services.context import build_context
from services.dashboard import DashboardService
from storage.cache import FAMILIES
from utils.config_loader import load_config
from utils.logger import setup_logger

logger = setup_logger()


def report_retry(progress: RetryProgress) -> None:
    """Status line shown while a call waits before retrying."""
    print(
        f"  ⏳ Retrying in {progress.delay_seconds:.1f}s "
        f"(attempt {progress.attempt}/{progress.max_attempts})...",
        file=sys.stderr,
    )


def print_stats(payload: dict[str, Any]) -> None:
    metrics = payload["metrics"]
    display = payload["display"]
    stale_note = " (estimated from a sample)" if metrics["stale_extrapolated"] else ""
    grade = f" - {display['grade']}" if display["grade"] else ""

    print("=" * 80)
    print(f"PR health for {payload['org']} (last {payload['window_days']} days)")
    print("=" * 80)
    print(f"Open PRs:            {metrics['open_count']}")
    print(f"Stale open PRs:      {metrics['stale_count']}{stale_note}")
    print(f"Merged in window:    {metrics['merged_in_window']}")
    print(f"Avg open age:        {display['average_open_age']}")
    print(f"Avg time to merge:   {display['average_cycle_time']}")
    print(f"Merged:stale ratio:  {display['health']}{grade}")
    share = payload["merged_share"]
    print(f"Merged vs stale:     {share['merged']}% / {share['stale']}%")
    print("")
    print(f"Stale PRs: {payload['links']['stale']}")


def print_changelog(payload: dict[str, Any]) -> None:
    scope = " / ".join(part for part in (payload.get("org"), payload.get("username")) if part)
    summary = payload["summary"]
    print("=" * 80)
    print(f"What's new in {scope} (last {payload['window_days']} days)")
    print(
        f"{summary['total_prs']} PRs across {summary['active_projects']} projects "
        f"by {summary['contributors']} contributors"
    )
    print("=" * 80)
    for project in payload["projects"]:
        print(f"\n{project['full_name']} (score {project['total_score']})")
        for pr in project["prs"]:
            print(f"  • {pr['title']} #{pr['number']} (@{pr['author']})")

    if payload["commitsFetchFailed"]:
        print("\n⚠️  Direct commits could not be loaded")
    elif payload["commits"]:
        print("\nDirect commits")
        for commit in payload["commits"]:
            print(f"  • {commit['title']} ({commit['repository']}@{commit['sha'][:7]})")


def print_leaderboard(payload: dict[str, Any]) -> None:
    print("=" * 80)
    print(f"Top contributors in {payload['org']} (last {payload['window_days']} days)")
    print(f"{payload['total_prs']} PRs merged by {payload['total_contributors']} contributors")
    print("=" * 80)
    for rank, leader in enumerate(payload["leaders"], start=1):
        print(f"{rank:>2}. {leader['login']:<30} {leader['count']}")


def print_user_prs(payload: dict[str, Any]) -> None:
    for section in ("incoming", "outgoing"):
        prs = payload[section]
        print(f"\n{section.capitalize()} ({len(prs)})")
        for pr in prs:
            tags = f" [{', '.join(pr['status_tags'])}]" if pr["status_tags"] else ""
            print(f"  • {pr['repository']}#{pr['number']} {pr['title']} ({pr['age_days']}d){tags}")


def main():
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="R2R Stats - PR health, changelogs and leaderboards from GitHub search",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Org PR health (open, stale, merged in the last 10 days)
  python main.py stats kubernetes

  # Changelog for an org without bot PRs
  python main.py changelog --org kubernetes --no-bots

  # Raw JSON instead of a summary
  python main.py leaderboard kubernetes --json
        """
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw JSON payload"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    stats_parser = subparsers.add_parser("stats", help="PR health for an organization")
    stats_parser.add_argument("org", help="Organization login (e.g., 'kubernetes')")

    changelog_parser = subparsers.add_parser("changelog", help="PRs merged in the last week")
    changelog_parser.add_argument("--org", default=None, help="Organization scope")
    changelog_parser.add_argument("--user", default=None, help="Author scope")
    changelog_parser.add_argument(
        "--no-bots",
        action="store_true",
        help="Hide PRs and commits authored by bots"
    )

    leaderboard_parser = subparsers.add_parser("leaderboard", help="Top contributors by merged PRs")
    leaderboard_parser.add_argument("org", help="Organization login")

    prs_parser = subparsers.add_parser("prs", help="Open PRs involving a user")
    prs_parser.add_argument("user", help="GitHub login")
    prs_parser.add_argument(
        "--no-enrich",
        action="store_true",
        help="Skip line counts and turn status lookups"
    )

    orgs_parser = subparsers.add_parser("orgs", help="Organizations for a user")
    orgs_parser.add_argument("user", help="GitHub login")

    clear_parser = subparsers.add_parser("clear-cache", help="Drop cached entries")
    clear_parser.add_argument(
        "family",
        choices=["all", *FAMILIES],
        help="Cache family to clear"
    )

    serve_parser = subparsers.add_parser("serve", help="Start the JSON API server")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the API server on (default: 8000)"
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )

    args = parser.parse_args()

    # Show help if no command provided
    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "serve":
        from backend.server import run
        run(host=args.host, port=args.port, reload=False)
        return

    config = load_config()
    setup_logger(config.log_level)
    service = DashboardService(build_context(config, on_retry=report_retry))

    try:
        if args.command == "stats":
            payload = service.org_stats(args.org)
            printer = print_stats
        elif args.command == "changelog":
            if not args.org and not args.user:
                logger.error("changelog needs --org, --user, or both")
                sys.exit(1)
            payload = service.changelog(org=args.org, username=args.user, include_bots=not args.no_bots)
            printer = print_changelog
        elif args.command == "leaderboard":
            payload = service.leaderboard(args.org)
            printer = print_leaderboard
        elif args.command == "prs":
            payload = service.user_prs(args.user, enrich=not args.no_enrich)
            printer = print_user_prs
        elif args.command == "orgs":
            payload = service.user_orgs(args.user)
            printer = lambda orgs: print("\n".join(orgs))  # noqa: E731
        else:  # clear-cache
            removed = service.clear_cache(args.family)
            print(f"✅ Cleared {removed} cache entries ({args.family})")
            sys.exit(0)
    except RetriesExhaustedError as e:
        logger.error(e.user_message)
        sys.exit(1)
    except GitHubAPIError as e:
        logger.error(f"GitHub request failed: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        printer(payload)
    sys.exit(0)


if __name__ == "__main__":
    main()
