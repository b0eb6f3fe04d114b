"""Command line interface for the catalog migration."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import MigrationSettings, load_environment
from .errors import ConfigurationError, MigrationError
from .extractors.mysql_reader import LegacyReader
from .loaders.sql_store import SqlTargetStore
from .models.run import MigrationRunResult, MigrationStatus
from .orchestrator import MigrationOrchestrator
from .services.reporter import timestamp_slug

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Catalog Migration - move the legacy MySQL hosting catalog to Postgres"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Run the migration")
    run_parser.add_argument("--dry-run", action="store_true", help="Map and validate without writing")
    run_parser.add_argument("--skip-images", action="store_true", help="Do not migrate hosting logos")
    run_parser.add_argument("--output-dir", help="Directory for run reports and logs")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Connection check
    test_parser = subparsers.add_parser("test-connection", help="Check both database connections")
    test_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Admin API
    serve_parser = subparsers.add_parser("serve", help="Run the admin HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    if args.command == "run":
        return run_migration(args)
    elif args.command == "test-connection":
        return test_connection(args)
    elif args.command == "serve":
        return serve(args)

    parser.print_help()
    return 1


def _add_log_file(output_dir: str) -> Path:
    """Mirror log output into ``migration-<timestamp>.log`` under the output directory."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / f"migration-{timestamp_slug()}.log"

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return log_path


def _load_settings(require_storage: bool) -> Optional[MigrationSettings]:
    load_environment()
    settings = MigrationSettings.from_env()
    try:
        settings.ensure_valid(require_storage=require_storage)
    except ConfigurationError as e:
        logger.error(str(e))
        print(f"\nConfiguration error: {e}")
        return None
    return settings


def print_summary(result: MigrationRunResult, report_path: Optional[Path] = None) -> None:
    """Print the end-of-run summary block."""
    stats = result.statistics

    print("\n" + "=" * 60)
    print("MIGRATION FAILED" if result.status == MigrationStatus.FAILED else "MIGRATION COMPLETE")
    print("=" * 60)
    print(f"Status: {result.status.value}")
    if result.dry_run:
        print("Mode: DRY RUN (no changes written)")
    print(f"References: {sum(stats.references.values())} created")
    for kind, created in stats.references.items():
        print(f"  {kind}: {created}")
    print(f"Hostings: {stats.hostings} created")
    print(f"Images: {stats.images} migrated" + (" (skipped)" if result.skipped_images else ""))
    print(f"Tariffs: {stats.tariffs} created")
    print(f"Tariff relations: {sum(stats.tariff_relations.values())} created")
    print(f"Content blocks: {stats.content_blocks} created, {stats.content_blocks_updated} updated")
    print(f"Errors: {len(result.errors)}")
    if result.duration_seconds:
        print(f"Duration: {result.duration_seconds:.2f} seconds")
    if report_path:
        print(f"Report: {report_path}")


def run_migration(args) -> int:
    """Run the full migration."""
    settings = _load_settings(require_storage=not args.skip_images)
    if settings is None:
        return 1
    if args.output_dir:
        settings.output_dir = args.output_dir

    log_path = _add_log_file(settings.output_dir)
    logger.info(f"Logging to {log_path}")

    orchestrator = MigrationOrchestrator.from_settings(
        settings,
        dry_run=args.dry_run,
        skip_images=args.skip_images,
    )

    try:
        result = orchestrator.run_migration()
    except Exception as e:
        logger.debug("Fatal migration error", exc_info=True)
        print_summary(orchestrator.result, orchestrator.reporter.last_path)
        print(f"\nFatal error: {e}")
        return 1

    print_summary(result, orchestrator.reporter.last_path)
    return 0


def test_connection(args) -> int:
    """Check that both stores are reachable."""
    settings = _load_settings(require_storage=False)
    if settings is None:
        return 1

    ok = True
    for name, factory in (("Source", LegacyReader), ("Target", SqlTargetStore)):
        store = factory.from_settings(settings)
        try:
            store.ping()
            print(f"{name} store: OK")
        except MigrationError as e:
            print(f"{name} store: FAILED ({e})")
            ok = False
        finally:
            store.close()

    return 0 if ok else 1


def serve(args) -> int:
    """Run the admin API with uvicorn."""
    import uvicorn

    uvicorn.run("catalog_migration.api.main:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
