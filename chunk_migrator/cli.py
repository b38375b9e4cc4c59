"""Command line interface for running customer migrations."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .errors import ConfigurationError
from .models.migration import LookupPolicy, MigrationConfig, RunState
from .orchestrator import MigrationOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging for command line runs."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def load_config(args: argparse.Namespace) -> MigrationConfig:
    """Build the configuration from a file or the environment, then apply CLI overrides."""
    if args.config:
        config = MigrationConfig.from_json_file(args.config)
    else:
        config = MigrationConfig.from_env()

    if args.source_url:
        config.source_url = args.source_url
    if args.seed_csv:
        config.seed_csv = args.seed_csv
    if args.target_url:
        config.target_url = args.target_url
    if args.chunk_size is not None:
        config.chunk_size = args.chunk_size
    if args.workers is not None:
        config.transform_workers = args.workers
    if args.lookup_policy:
        config.lookup_policy = LookupPolicy(args.lookup_policy)
    if args.reports_dir:
        config.reports_dir = args.reports_dir

    return config


def cmd_run(orchestrator: MigrationOrchestrator) -> int:
    """Run a migration in the foreground and print its summary."""
    handle = orchestrator.start()
    summary = orchestrator.summary(handle.run_id)
    print(json.dumps(summary, indent=2, default=str))
    return 0 if handle.state == RunState.COMPLETED else 1


def cmd_check(orchestrator: MigrationOrchestrator) -> int:
    """Validate source and target connectivity."""
    errors = orchestrator.extractor.validate_source()
    if not orchestrator.writer.store.validate_connection():
        errors.append("Target store is not reachable")

    if errors:
        for error in errors:
            print(f"ERROR: {error}")
        return 1

    rows = orchestrator.extractor.count()
    print(f"Source OK ({orchestrator.extractor.name}" + (f", {rows} rows)" if rows is not None else ")"))
    print("Target OK")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chunk-migrate",
        description="Migrate customers from a SQL database (or seed CSV) to MongoDB in chunks",
    )
    parser.add_argument("command", choices=["run", "check"], help="Command to execute")
    parser.add_argument("--config", help="Path to a JSON configuration file")
    parser.add_argument("--source-url", help="SQLAlchemy URL of the source database")
    parser.add_argument("--seed-csv", help="Read customers from this CSV file instead of the database")
    parser.add_argument("--target-url", help="MongoDB connection URL")
    parser.add_argument("--chunk-size", type=int, help="Records per chunk (default 10)")
    parser.add_argument("--workers", type=int, help="Threads used to transform a chunk")
    parser.add_argument(
        "--lookup-policy",
        choices=[p.value for p in LookupPolicy],
        help="How failed duplicate lookups are treated",
    )
    parser.add_argument("--reports-dir", help="Directory for JSON run reports")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        config = load_config(args)
        orchestrator = build_orchestrator(config)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if args.command == "check":
        return cmd_check(orchestrator)
    return cmd_run(orchestrator)


if __name__ == "__main__":
    sys.exit(main())
