"""
================================================================================
FStoMaint - Freshservice to Maintenance Database Sync
================================================================================

Main entry point for the sync tool. This module provides:

1. Command-line interface for all operations
2. Full and single-stream synchronization runs
3. Diagnostics (health check, department field definitions)
4. JSON/CSV export of the mirrored tables

Command-Line Usage:
-------------------
    # Full sync (default when no other action is given)
    python -m fssync.main
    python -m fssync.main --sync

    # Run only one stream
    python -m fssync.main --stream systems

    # Upsert one requester contact by email
    python -m fssync.main --requester-email jane@acme.example

    # Check credentials / connectivity
    python -m fssync.main --health

    # Sync, then export all tables to ./output
    python -m fssync.main --sync --export

Available Flags:
----------------
    --sync              Run all streams (customers, systems, requesters, agents)
    --stream NAME       Run a single stream
    --requester-email   Upsert one requester contact found by email
    --health            Call the Freshservice API once and print the result
    --department-fields Print the department field definitions
    --export            Export local tables to JSON and CSV (alone: export only)
    --debug             Enable debug logging
    --env-file          Path to credentials file (default: credentials.env)

Exit Codes:
-----------
    0  the requested operation succeeded
    1  configuration error, or the operation reported ok = False
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

# ---------------------------------------------------------------------------
# Dependency check: give a friendly message instead of a raw traceback
# ---------------------------------------------------------------------------
_REQUIRED = {"requests": "requests", "dotenv": "python-dotenv", "pandas": "pandas"}
_missing = []
for _mod, _pkg in _REQUIRED.items():
    try:
        __import__(_mod)
    except ImportError:
        _missing.append(_pkg)
if _missing:
    print(
        f"\n[ERROR] Missing required packages: {', '.join(_missing)}\n"
        f"        Run:  pip install -e .\n"
        f"        Or:   pip install {' '.join(_missing)}\n"
    )
    sys.exit(1)

# Import internal modules
from .config import DEFAULT_ENV_FILE, AppConfig, load_config
from .db import Database
from .fs_client import FreshserviceClient, FreshserviceClientError
from .logger import get_logger, setup_logger
from .sync_engine import STREAM_ORDER, SyncEngine


# =============================================================================
# DATA EXPORT FUNCTIONS
# =============================================================================

def export_to_csv(data: List[Dict[str, Any]], filename: str, output_dir: Path) -> Path:
    """
    Export rows to a CSV file using pandas.

    Nested values (e.g. installed_software lists) are flattened by
    json_normalize so the file opens cleanly in Excel.

    Args:
        data: List of dictionaries to export
        filename: Output filename (e.g., "system.csv")
        output_dir: Directory to save file

    Returns:
        Path to saved file
    """
    logger = get_logger("fssync.main")
    # Lazy import, only needed for --export
    import pandas as pd
    df = pd.json_normalize(data)
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / filename
    df.to_csv(filepath, index=False)
    logger.info(f"Exported {len(data)} records to {filepath}")
    return filepath


def export_tables(engine: SyncEngine, output_dir: Path) -> Path:
    """
    Write every mirrored table to one JSON file and one CSV per table.

    Returns:
        Path of the JSON file
    """
    logger = get_logger("fssync.main")
    tables = engine.snapshot_tables()
    output_dir.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    json_path = output_dir / f"fssync_export_{stamp}.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(tables, f, indent=2, ensure_ascii=False)
    logger.info(f"Exported tables to {json_path}")

    for table, rows in tables.items():
        if rows:
            export_to_csv(rows, f"{table}.csv", output_dir)

    return json_path


def print_json(data: Any):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="FStoMaint - Mirror Freshservice into the maintenance database"
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help="Path to environment file (default: credentials.env)"
    )
    parser.add_argument(
        "--sync",
        action="store_true",
        help="Run all streams in order (default action)"
    )
    parser.add_argument(
        "--stream",
        choices=STREAM_ORDER,
        help="Run a single stream"
    )
    parser.add_argument(
        "--requester-email",
        metavar="EMAIL",
        help="Upsert the requester with this primary or secondary email"
    )
    parser.add_argument(
        "--health",
        action="store_true",
        help="Check Freshservice connectivity and credentials"
    )
    parser.add_argument(
        "--department-fields",
        action="store_true",
        help="Print the Freshservice department field definitions"
    )
    parser.add_argument(
        "--export",
        action="store_true",
        help="Export local tables to JSON and CSV files"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def run(args: argparse.Namespace, config: AppConfig) -> bool:
    """
    Execute the operations selected on the command line.

    Returns:
        True when every executed operation succeeded
    """
    logger = get_logger("fssync.main")

    client = FreshserviceClient(config.freshservice)

    if args.health:
        result = client.health_check()
        print_json(result)
        return bool(result.get("ok"))

    if args.department_fields:
        try:
            print_json(client.get_department_fields())
        except FreshserviceClientError as e:
            logger.error(f"Could not read department fields: {e}")
            return False
        return True

    db = Database(config.db_path)
    try:
        engine = SyncEngine(db, client, config)
        ok = True

        has_action = args.stream or args.requester_email
        if args.requester_email:
            result = engine.sync_requester_by_email(args.requester_email)
            print_json(result)
            ok = ok and result["ok"]

        if args.stream:
            result = engine.run_single_stream(args.stream)
            print_json(result)
            ok = ok and result["ok"]

        # Full sync unless a narrower action was chosen or --export is used alone
        if args.sync or not (has_action or args.export):
            report = engine.run_full_sync()
            ok = ok and report["ok"]

        if args.export:
            export_tables(engine, config.output_dir)

        logger.info(f"Database: {db.get_stats()}")
        return ok
    finally:
        db.close()


def main(argv: Optional[List[str]] = None):
    """
    Main entry point for the fssync command.

    Parses command-line arguments, sets up logging, loads configuration and
    runs the selected operations.
    """
    args = build_parser().parse_args(argv)

    # =========================================================================
    # CONFIGURATION AND LOGGING
    # =========================================================================

    import logging
    log_level = logging.DEBUG if args.debug else logging.INFO
    # Console only until the configured log directory is known
    setup_logger(level=log_level, log_to_file=False)
    logger = get_logger("fssync.main")

    try:
        config = load_config(args.env_file)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    root_logger = logging.getLogger("fssync")
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    setup_logger(level=log_level, log_dir=config.log_dir)

    ok = run(args, config)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
