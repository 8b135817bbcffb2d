#!/usr/bin/env python3
"""
================================================================================
FStoMaint Automated Sync Script
================================================================================

Runs a full Freshservice → maintenance database synchronization, suitable for
cron or a scheduled task. Streams run in order (customers, systems,
requesters, agents); a failed stream does not stop the others.

IMPORTANT: This script INSERTS, UPDATES and DELETES rows in the local
           customer, system and contact_person tables. Rows created by hand
           (no external_id) are never touched.

Features:
---------
1. Loads credentials from credentials.env
2. Runs every stream, each in its own transaction
3. Logs all actions to console and logs/fssync.log
4. Saves the per-stream report to logs/sync_results_<timestamp>.json
5. Exits with status 1 when any stream failed

Usage:
------
    python run_sync.py
    python run_sync.py --env-file /etc/fssync/credentials.env
    python run_sync.py --stream systems
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

# =============================================================================
# CONFIGURATION
# =============================================================================

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from fssync.config import DEFAULT_ENV_FILE, load_config
from fssync.db import Database
from fssync.fs_client import FreshserviceClient
from fssync.logger import get_logger, setup_logger
from fssync.sync_engine import STREAM_ORDER, SyncEngine


# =============================================================================
# MAIN SYNC FUNCTION
# =============================================================================

def run_sync(env_file: str = DEFAULT_ENV_FILE, stream: str = None) -> dict:
    """
    Execute the Freshservice synchronization.

    Args:
        env_file: Path to the credentials file
        stream: Run only this stream instead of all of them

    Returns:
        Dictionary with "ok" and the per-stream report
    """
    try:
        config = load_config(env_file)
    except ValueError as e:
        setup_logger(log_to_file=False)
        get_logger("fssync.run_sync").error(f"Configuration error: {e}")
        return {"ok": False, "error": str(e)}

    setup_logger(log_dir=config.log_dir)
    logger = get_logger("fssync.run_sync")

    logger.info("=" * 70)
    logger.info("FSTOMAINT AUTOMATED SYNC")
    logger.info(f"Started: {datetime.now().isoformat()}")
    logger.info(f"Database: {config.db_path}")
    logger.info("=" * 70)

    started = datetime.now().isoformat()
    db = Database(config.db_path)
    try:
        engine = SyncEngine(db, FreshserviceClient(config.freshservice), config)
        if stream:
            single = engine.run_single_stream(stream)
            report = {"ok": single["ok"], "per_stream": [dict(stream=stream, **single)]}
        else:
            report = engine.run_full_sync()
        stats = db.get_stats()
    finally:
        db.close()

    report["started"] = started
    report["completed"] = datetime.now().isoformat()
    report["table_counts"] = stats

    # Save results to JSON file
    results_file = config.log_dir / f"sync_results_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
    results_file.parent.mkdir(parents=True, exist_ok=True)
    with open(results_file, "w") as f:
        json.dump(report, f, indent=2)
    logger.info(f"Results saved to: {results_file}")

    return report


# =============================================================================
# COMMAND LINE INTERFACE
# =============================================================================

def main(argv=None):
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description="FStoMaint Automated Sync - Mirror Freshservice into the maintenance database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_sync.py                     Run all streams
  python run_sync.py --stream agents     Run only the agents stream
        """
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help="Path to environment file (default: credentials.env)"
    )
    parser.add_argument(
        "--stream",
        choices=STREAM_ORDER,
        help="Run a single stream"
    )
    args = parser.parse_args(argv)

    results = run_sync(env_file=args.env_file, stream=args.stream)

    # Exit with appropriate code
    sys.exit(0 if results.get("ok") else 1)


if __name__ == "__main__":
    main()
