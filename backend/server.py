#!/usr/bin/env python3
"""
Backend Server Entry Point

Validates the .env configuration, then serves the R2R Stats API with uvicorn.

Usage:
    python backend/server.py                       # Development mode with auto-reload
    python backend/server.py --host 0.0.0.0 --port 8080
    python backend/server.py --no-reload           # Production mode

    # Or use uvicorn directly (configuration is then loaded on first request)
    uvicorn backend.app:app --reload
"""

import argparse
import sys
from pathlib import Path

# Allow running as a script from anywhere
sys.path.insert(0, str(Path(__file__).parent.parent))

from fetchers.auth import TokenProvider  # noqa: E402
from utils.config_loader import load_config  # noqa: E402


def run(host: str = "127.0.0.1", port: int = 8000, reload: bool = True):
    """Check configuration and start uvicorn serving backend.app:app.

    Loading the config up front means a bad .env fails here with a field
    list instead of on the first API request.
    """
    config = load_config()
    token_kind = TokenProvider(config.credentials.github_token).token_kind

    print("=" * 80)
    print("R2R Stats API Server")
    print("=" * 80)
    print(f"API will be available at: http://{host}:{port}")
    print(f"API docs available at: http://{host}:{port}/docs")
    print(f"Cache backend: {config.cache.backend}")
    if token_kind == "none":
        print("⚠️  No GITHUB_TOKEN set: search is anonymous and heavily rate-limited")
    elif token_kind == "oauth":
        print("⚠️  OAuth App tokens may not show all PRs. Consider using a Personal Access Token.")
    if config.cache.backend == "memory" and reload:
        print("Note: the memory cache is dropped on every reload")
    print("")
    print("Press Ctrl+C to stop the server")
    print("=" * 80)
    print("")

    import uvicorn
    uvicorn.run(
        "backend.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=config.log_level.lower()
    )


def main():
    """Launch the FastAPI backend server."""
    parser = argparse.ArgumentParser(
        description="R2R Stats API Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python backend/server.py --host 0.0.0.0 --port 8080
  python backend/server.py --no-reload
        """
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the API server on (default: 8000)"
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload (use for production)"
    )

    args = parser.parse_args()
    run(host=args.host, port=args.port, reload=not args.no_reload)


if __name__ == "__main__":
    main()
