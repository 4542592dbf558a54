#!/usr/bin/env python3
"""
Database setup script for the Supabase cache backend.

Creates the cache table programmatically using a direct PostgreSQL
connection. Only needed with CACHE_BACKEND=supabase.

Usage:
    python setup/setup_database.py           # Create schema
    python setup/setup_database.py --verify  # Verify existing schema
    python setup/setup_database.py --drop    # Drop and recreate (DANGEROUS)
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import psycopg2  # noqa: E402
from psycopg2 import sql  # noqa: E402

from utils.config_loader import load_config  # noqa: E402
from utils.logger import setup_logger  # noqa: E402

logger = setup_logger(name="setup_database")


# One row per cache key; the value is the serialized {"data", "timestamp"} entry
CREATE_TABLE_SQL = sql.SQL("""
CREATE TABLE IF NOT EXISTS {table} (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
""")

# Prefix scans for clearing a cache family
CREATE_INDEX_SQL = sql.SQL(
    "CREATE INDEX IF NOT EXISTS {index} ON {table} (key text_pattern_ops);"
)

DROP_TABLE_SQL = sql.SQL("DROP TABLE IF EXISTS {table};")


def index_name(table_name: str) -> str:
    return f"idx_{table_name}_key_prefix"


def get_database_url(config) -> str:
    """
    Get PostgreSQL database URL.

    Uses DATABASE_URL from .env; exits with instructions when it is missing.
    """
    if config.credentials.database_url:
        return config.credentials.database_url

    logger.error("DATABASE_URL not found in .env file")
    logger.error("\nTo get your DATABASE_URL:")
    logger.error("1. Go to Supabase Dashboard → Project Settings → Database")
    logger.error("2. Find 'Connection string' under 'Connection pooling'")
    logger.error("3. Copy the 'URI' connection string")
    logger.error("4. Add to .env file: DATABASE_URL=postgresql://...")
    sys.exit(1)


def create_connection(database_url: str):
    """Create a PostgreSQL database connection."""
    try:
        conn = psycopg2.connect(database_url)
        logger.info("✓ Connected to PostgreSQL database")
        return conn
    except psycopg2.Error as e:
        logger.error(f"✗ Failed to connect to database: {e}")
        logger.error("\nMake sure:")
        logger.error("1. DATABASE_URL is correct in .env file")
        logger.error("2. Your IP is allowed in Supabase (Project Settings → Database → Connection pooling)")
        logger.error("3. Database password is correct")
        sys.exit(1)


def execute_sql(conn, statement, description: str) -> bool:
    """Execute a SQL statement and commit, rolling back on failure."""
    try:
        cursor = conn.cursor()
        cursor.execute(statement)
        conn.commit()
        cursor.close()
        logger.info(f"✓ {description}")
        return True
    except psycopg2.Error as e:
        logger.error(f"✗ {description} failed: {e}")
        conn.rollback()
        return False


def verify_schema(conn, table_name: str) -> bool:
    """Verify that the cache table and its prefix index exist."""
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_name = %s
            );
            """,
            (table_name,),
        )
        table_exists = cursor.fetchone()[0]

        if not table_exists:
            logger.error(f"✗ Table '{table_name}' does not exist")
            cursor.close()
            return False

        logger.info(f"✓ Table '{table_name}' exists")

        cursor.execute("SELECT indexname FROM pg_indexes WHERE tablename = %s;", (table_name,))
        indexes = [row[0] for row in cursor.fetchall()]
        if index_name(table_name) in indexes:
            logger.info(f"✓ Index '{index_name(table_name)}' exists")
        else:
            logger.warning(f"⚠ Index '{index_name(table_name)}' missing")

        cursor.close()
        return True

    except psycopg2.Error as e:
        logger.error(f"✗ Schema verification failed: {e}")
        return False


def create_schema(conn, table_name: str) -> bool:
    """Create the cache table and index."""
    logger.info("\n" + "="*80)
    logger.info("CREATING SCHEMA")
    logger.info("="*80 + "\n")

    table = sql.Identifier(table_name)
    if not execute_sql(conn, CREATE_TABLE_SQL.format(table=table), f"Created table '{table_name}'"):
        return False

    index_sql = CREATE_INDEX_SQL.format(index=sql.Identifier(index_name(table_name)), table=table)
    if not execute_sql(conn, index_sql, f"Created index '{index_name(table_name)}'"):
        return False

    logger.info("\n✓ Database schema created successfully!")
    return True


def drop_schema(conn, table_name: str) -> bool:
    """Drop the cache table (DANGEROUS)."""
    logger.warning("\n" + "="*80)
    logger.warning("⚠️  WARNING: DROPPING EXISTING SCHEMA")
    logger.warning("="*80)
    logger.warning(f"This will DELETE ALL cached entries in '{table_name}'!")

    response = input("\nType 'yes' to confirm: ")
    if response.lower() != 'yes':
        logger.info("Aborted.")
        return False

    if not execute_sql(conn, DROP_TABLE_SQL.format(table=sql.Identifier(table_name)), f"Dropped table '{table_name}'"):
        return False

    logger.info("✓ Schema dropped")
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Set up the Supabase cache table for r2r-stats"
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Verify existing schema without creating"
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop and recreate the table (DANGEROUS - deletes all cached entries)"
    )

    args = parser.parse_args()

    # Load configuration (exits with a field list when invalid)
    config = load_config()
    logger.info("✓ Configuration loaded")
    table_name = config.cache.table_name

    database_url = get_database_url(config)
    conn = create_connection(database_url)

    try:
        if args.verify:
            logger.info("\n" + "="*80)
            logger.info("VERIFYING SCHEMA")
            logger.info("="*80 + "\n")

            if verify_schema(conn, table_name):
                logger.info("\n✓ Schema verification successful")
                sys.exit(0)
            else:
                logger.error("\n✗ Schema verification failed")
                sys.exit(1)

        if args.drop:
            if not drop_schema(conn, table_name):
                sys.exit(1)

        if create_schema(conn, table_name):
            logger.info("\n" + "="*80)
            logger.info("NEXT STEPS")
            logger.info("="*80)
            logger.info("\n1. Verify the schema:")
            logger.info("   python setup/setup_database.py --verify")
            logger.info("\n2. Use the table for caching:")
            logger.info("   CACHE_BACKEND=supabase python main.py stats <org>")
            sys.exit(0)
        else:
            logger.error("\n✗ Schema creation failed")
            sys.exit(1)

    finally:
        conn.close()
        logger.info("\n✓ Database connection closed")


if __name__ == "__main__":
    main()
