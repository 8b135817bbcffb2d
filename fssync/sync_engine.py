"""
================================================================================
Sync Engine: ordered run of all Freshservice streams
================================================================================

The SyncEngine drives the reconcilers in a fixed order, because systems and
contacts resolve their owner against the customer table written first:

    customers → systems → requesters → agents

Each stream runs in its own transaction. A failing stream is logged and
recorded in the report; the remaining streams still run.

After the agents stream succeeds, the names of active agents are merged into
the "technicians" setting used by the maintenance application's pickers.

Report Format:
--------------
    {
        "ok": False,
        "per_stream": [
            {"stream": "customers", "ok": True, "counts": {...}},
            {"stream": "systems", "ok": False, "error": "HTTP 500 ..."},
            ...
        ]
    }

Usage Example:
--------------
    engine = SyncEngine(db, client, config)
    report = engine.run_full_sync()
    if not report["ok"]:
        ...
"""

from typing import Any, Dict, List, Optional

from .config import AppConfig
from .cursor_store import CursorStore
from .db import Database
from .fs_client import FreshserviceClient, FreshserviceClientError
from .logger import get_logger
from .reconciler import (
    DEFAULT_BATCH_SIZE,
    AgentContactReconciler,
    CustomerReconciler,
    RequesterContactReconciler,
    StreamReconciler,
    SyncAction,
    SystemReconciler,
)
from .records import AgentRecord, RequesterRecord

logger = get_logger("fssync.sync_engine")

# Fixed execution order of a full sync
STREAM_ORDER = ("customers", "systems", "requesters", "agents")

TECHNICIANS_KEY = "technicians"


def merge_names(existing: List[str], new_names: List[str]) -> List[str]:
    """
    Union of two name lists: existing names first, new ones appended in order.

    Example:
        >>> merge_names(["Manual Tech"], ["Ann Lee", "Manual Tech"])
        ['Manual Tech', 'Ann Lee']
    """
    merged = list(existing)
    for name in new_names:
        if name and name not in merged:
            merged.append(name)
    return merged


class SyncEngine:
    """
    Run Freshservice streams against the local database.

    Attributes:
        db: Local database
        client: Freshservice client
        config: Application config (batch size, mirrored asset types)
    """

    def __init__(
        self,
        db: Database,
        client: FreshserviceClient,
        config: Optional[AppConfig] = None,
    ):
        self.db = db
        self.client = client
        self.config = config
        self.cursor_store = CursorStore(db)

    def _build_reconciler(self, stream: str) -> StreamReconciler:
        batch_size = self.config.batch_size if self.config else DEFAULT_BATCH_SIZE
        common = {"cursor_store": self.cursor_store, "batch_size": batch_size}

        if stream == "customers":
            return CustomerReconciler(self.db, self.client, **common)
        if stream == "systems":
            asset_types = self.config.system_asset_types if self.config else ["VMware Server"]
            return SystemReconciler(self.db, self.client, asset_type_names=asset_types, **common)
        if stream == "requesters":
            return RequesterContactReconciler(self.db, self.client, **common)
        if stream == "agents":
            return AgentContactReconciler(self.db, self.client, **common)
        raise ValueError(f"Unknown stream: {stream}. Expected one of {', '.join(STREAM_ORDER)}")

    # =========================================================================
    # FULL AND SINGLE-STREAM RUNS
    # =========================================================================

    def run_full_sync(self) -> Dict[str, Any]:
        """
        Run every stream in order, isolating failures.

        Returns:
            {"ok": bool, "per_stream": [{"stream", "ok", "counts" | "error"}]}
        """
        logger.info("=" * 60)
        logger.info("FRESHSERVICE SYNC STARTED")
        logger.info("=" * 60)

        per_stream = []
        for stream in STREAM_ORDER:
            entry: Dict[str, Any] = {"stream": stream}
            try:
                reconciler = self._build_reconciler(stream)
                result = reconciler.run()
                entry["ok"] = True
                entry["counts"] = result.counts()
                if stream == "agents":
                    self._update_technicians(reconciler.records)
            except Exception as e:
                logger.exception(f"[{stream}] Stream failed: {e}")
                entry["ok"] = False
                entry["error"] = str(e)
            per_stream.append(entry)

        ok = all(entry["ok"] for entry in per_stream)
        logger.info("=" * 60)
        logger.info(f"FRESHSERVICE SYNC {'COMPLETE' if ok else 'FINISHED WITH ERRORS'}")
        for entry in per_stream:
            status = "OK" if entry["ok"] else f"FAILED ({entry['error']})"
            logger.info(f"  {entry['stream']:<12} {status}")
        logger.info("=" * 60)

        return {"ok": ok, "per_stream": per_stream}

    def run_single_stream(self, stream: str) -> Dict[str, Any]:
        """
        Run one stream by name.

        Args:
            stream: "customers", "systems", "requesters" or "agents"

        Returns:
            {"ok": True, "counts": {...}} or {"ok": False, "error": "..."}

        Raises:
            ValueError: If the stream name is unknown
        """
        reconciler = self._build_reconciler(stream)
        try:
            result = reconciler.run()
        except Exception as e:
            logger.exception(f"[{stream}] Stream failed: {e}")
            return {"ok": False, "error": str(e)}

        if stream == "agents":
            self._update_technicians(reconciler.records)
        return {"ok": True, "counts": result.counts()}

    # =========================================================================
    # TECHNICIANS
    # =========================================================================

    def _update_technicians(self, agents: List[AgentRecord]):
        """Merge active agent names into settings; failures are only logged."""
        try:
            names = [a.display_name for a in agents if a.active and a.display_name]
            existing = self.db.get_setting(TECHNICIANS_KEY)
            if not isinstance(existing, list):
                existing = []
            merged = merge_names(existing, names)
            if merged != existing:
                self.db.set_setting(TECHNICIANS_KEY, merged)
                logger.info(f"Technicians updated: {len(merged) - len(existing)} added, {len(merged)} total")
        except Exception as e:
            logger.error(f"Could not update technicians list: {e}")

    # =========================================================================
    # SINGLE REQUESTER
    # =========================================================================

    def sync_requester_by_email(self, email: str) -> Dict[str, Any]:
        """
        Upsert one requester contact found by email.

        The "Ansprechpartner" filter is not applied and nothing is deleted;
        the stream cursor is left alone.

        Args:
            email: Primary or secondary email (case-insensitive)

        Returns:
            {"ok": True, "action": "create"|"update"|"unchanged", "contact": {...}}
            or {"ok": False, "message": "..."}
        """
        reconciler = RequesterContactReconciler(self.db, self.client, cursor_store=self.cursor_store)
        try:
            requesters = reconciler.fetch_records()
        except FreshserviceClientError as e:
            logger.error(f"Could not list requesters: {e}")
            return {"ok": False, "message": str(e)}

        match: Optional[RequesterRecord] = next((r for r in requesters if r.has_email(email)), None)
        if match is None:
            logger.info(f"No requester found with email {email}")
            return {"ok": False, "message": f"No requester found with email {email}"}

        snapshot = reconciler.load_snapshot()
        reconciler.prepare(snapshot)
        plan = reconciler.plan([match], snapshot, prune=False, enforce_eligibility=False)
        item = plan.items[0]

        if item.action == SyncAction.SKIP:
            message = (f"Requester {match.display_name} ({email}) could not be mapped to a customer. "
                       f"Dept IDs: {match.department_ids}, Dept Names: {match.department_names}")
            logger.warning(message)
            return {"ok": False, "message": message}

        reconciler.apply(plan)
        logger.info(f"Requester {match.display_name} ({email}): {item.action.value}")
        return {"ok": True, "action": item.action.value, "contact": item.fields}

    # =========================================================================
    # EXPORT HELPERS
    # =========================================================================

    def snapshot_tables(self) -> Dict[str, List[Dict[str, Any]]]:
        """Current rows of every mirrored table plus settings (for export)."""
        return {
            "customer": self.db.get_customers(),
            "system": self.db.get_systems(),
            "contact_person": self.db.get_contacts(),
            "settings": [{"key": k, "value": v} for k, v in self.db.get_all_settings().items()],
        }

