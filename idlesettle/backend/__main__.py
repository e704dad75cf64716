"""Command line entry point: run the HTTP service or apply the PostgreSQL schema."""

from __future__ import annotations

import argparse
import sys

import structlog

from idlesettle.backend.config import load_settings
from idlesettle.backend.logging_config import configure_logging
from idlesettle.backend.store import PostgresSettlementStore, apply_schema

logger = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="idlesettle", description="Offline settlement backend")
    subcommands = parser.add_subparsers(dest="command", required=True)

    serve = subcommands.add_parser("serve", help="run the settlement HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    subcommands.add_parser("migrate", help="apply db_schema.sql to IDLESETTLE_DATABASE_URL")
    return parser.parse_args(argv)


def migrate() -> int:
    settings = load_settings()
    configure_logging(settings.log_level, settings.json_logs)
    if not settings.database_url:
        print("IDLESETTLE_DATABASE_URL is required for migration", file=sys.stderr)
        return 1
    apply_schema(PostgresSettlementStore(database_url=settings.database_url))
    logger.info("schema_applied")
    return 0


def serve(host: str | None, port: int | None) -> int:
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "idlesettle.backend.api:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "migrate":
        return migrate()
    return serve(args.host, args.port)


if __name__ == "__main__":
    raise SystemExit(main())
