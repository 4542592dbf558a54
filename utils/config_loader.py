"""Configuration loader that reads from .env and validates with Pydantic."""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv
from pydantic import ValidationError

from models.config_models import CacheConfig, Config, CredentialsConfig


def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Reads from .env file in the project root and validates credentials
    and dashboard settings using Pydantic models.

    Returns:
        Config: Validated configuration object

    Raises:
        SystemExit: If configuration is invalid
    """
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    try:
        max_entry_bytes = os.getenv("CACHE_MAX_ENTRY_BYTES")
        config = Config(
            credentials=CredentialsConfig(
                github_token=os.getenv("GITHUB_TOKEN"),
                supabase_url=os.getenv("SUPABASE_URL"),
                supabase_key=os.getenv("SUPABASE_KEY"),
                database_url=os.getenv("DATABASE_URL"),
            ),
            github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            turn_api_url=os.getenv("TURN_API_URL", "https://turn.ready-to-review.dev/v1/validate"),
            cache=CacheConfig(
                backend=os.getenv("CACHE_BACKEND", "memory"),
                max_entry_bytes=int(max_entry_bytes) if max_entry_bytes else None,
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

        return config

    except (ValidationError, ValueError) as e:
        print("❌ Configuration validation failed:", file=sys.stderr)

        if isinstance(e, ValidationError):
            print("\nPlease check your .env file. Missing or invalid fields:", file=sys.stderr)
            for error in e.errors():
                field_path = " → ".join(str(x) for x in error["loc"])
                message = error["msg"]
                print(f"  • {field_path}: {message}", file=sys.stderr)
        else:
            print(f"  • {e}", file=sys.stderr)

        print("\nHint: Copy .env.example to .env and fill in your credentials.", file=sys.stderr)
        sys.exit(1)
