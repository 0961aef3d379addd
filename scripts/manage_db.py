#!/usr/bin/env python
# messaging_service/scripts/manage_db.py

"""
Database management CLI for the Messaging Service.
- Creates / drops the service database
- Runs Alembic migrations
- Resets the schema straight from the models (local development only)
"""

import argparse
import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from urllib.parse import urlparse

import psycopg
from dotenv import load_dotenv
from psycopg import sql

service_dir = Path(__file__).parent.parent.absolute()

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger("manage_db")


def run_alembic(*args: str) -> None:
    command = ["alembic", *args]
    logger.info(f"--- Running: {' '.join(command)} ---")
    subprocess.run(command, check=True, cwd=service_dir)


def admin_dsn(db_url: str) -> tuple[str, str]:
    """Returns (dsn of the 'postgres' admin database, target database name)."""
    parsed = urlparse(db_url.replace("postgresql+psycopg://", "postgresql://"))
    db_name = parsed.path.lstrip("/")
    dsn = (
        f"postgresql://{parsed.username or 'postgres'}:{parsed.password or 'postgres'}"
        f"@{parsed.hostname or 'localhost'}:{parsed.port or 5432}/postgres"
    )
    return dsn, db_name


def create_db(db_url: str) -> None:
    dsn, db_name = admin_dsn(db_url)
    with psycopg.connect(dsn, autocommit=True) as conn:
        exists = conn.execute(
            "SELECT 1 FROM pg_database WHERE datname = %s", (db_name,)
        ).fetchone()
        if exists:
            logger.info(f"Database '{db_name}' already exists.")
            return
        conn.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(db_name)))
        logger.info(f"Database '{db_name}' created.")


def delete_db(db_url: str) -> None:
    dsn, db_name = admin_dsn(db_url)
    with psycopg.connect(dsn, autocommit=True) as conn:
        conn.execute(
            "SELECT pg_terminate_backend(pid) FROM pg_stat_activity WHERE datname = %s",
            (db_name,),
        )
        conn.execute(sql.SQL("DROP DATABASE IF EXISTS {}").format(sql.Identifier(db_name)))
    logger.info(f"Database '{db_name}' deleted.")


async def reset_schema() -> None:
    from messaging_service.db import dispose_engine, get_engine
    from messaging_service.models import Base

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await dispose_engine()
    logger.info("Schema dropped and recreated from models.")


def main() -> None:
    dotenv_path = service_dir / ".env.dev"
    if dotenv_path.exists():
        logger.info(f"Loading environment variables from {dotenv_path}")
        load_dotenv(dotenv_path=dotenv_path, override=True)
    else:
        logger.warning(f"{dotenv_path} not found. Relying on shell environment variables.")

    from messaging_service.config import settings

    parser = argparse.ArgumentParser(description=f"{settings.PROJECT_NAME} Database Management Tool")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init", help="Create the database and apply all migrations.")
    subparsers.add_parser("delete-db", help="Drop the database for this service.")
    subparsers.add_parser("upgrade", help="Apply all pending migrations.")
    downgrade_parser = subparsers.add_parser("downgrade", help="Downgrade migrations by a number of steps.")
    downgrade_parser.add_argument("-s", "--step", type=int, default=1)
    create_mig_parser = subparsers.add_parser("create-migration", help="Autogenerate a new migration.")
    create_mig_parser.add_argument("-m", "--message", required=True)
    subparsers.add_parser("reset", help="Drop and recreate all tables from the models.")

    args = parser.parse_args()
    db_url = str(settings.DATABASE_URL)

    if args.command == "reset" and settings.is_production():
        logger.error("Refusing to reset the schema in production.")
        sys.exit(1)

    try:
        if args.command == "init":
            create_db(db_url)
            run_alembic("upgrade", "head")
        elif args.command == "delete-db":
            delete_db(db_url)
        elif args.command == "upgrade":
            run_alembic("upgrade", "head")
        elif args.command == "downgrade":
            run_alembic("downgrade", f"-{args.step}")
        elif args.command == "create-migration":
            run_alembic("revision", "--autogenerate", "-m", args.message)
        elif args.command == "reset":
            asyncio.run(reset_schema())
    except (subprocess.CalledProcessError, psycopg.Error) as e:
        logger.error(f"Operation failed: {e}", exc_info=True)
        sys.exit(1)

    logger.info("Operation completed successfully.")


if __name__ == "__main__":
    main()
