"""
================================================================================
Reconciler: Freshservice → local tables, one stream at a time
================================================================================

This module contains the core synchronization logic. Each entity stream
(customers, systems, requester contacts, agent contacts) is reconciled with
the same three-way diff against the current local snapshot:

1. Fetch the FULL Freshservice listing for the stream (no delta query)
2. Load the local snapshot and id map (see identity_mapper)
3. For every Freshservice record:
   - ineligible (filter, asset type, duplicate) → skipped, NOT marked seen
   - owner cannot be resolved                   → skipped, marked seen
   - unknown external id                        → CREATE (full row)
   - known external id                          → UPDATE with only the
                                                  changed fields, or UNCHANGED
4. Every local row with an external_id that was not seen → DELETE
   (rows without external_id were created by hand and are never touched)
   Extra local rows sharing one external_id are deleted too; the first wins
5. Apply inserts (batched), patches (one per row), deletes (one batch) and
   the cursor in ONE transaction

Sync Workflow:
--------------
    plan = reconciler.plan(records, snapshot)   # pure, no writes
    reconciler.apply(plan)                      # atomic

`run()` does fetch → snapshot → plan → apply and returns a StreamResult.

Usage Example:
--------------
    from fssync.reconciler import CustomerReconciler

    reconciler = CustomerReconciler(db, client)
    result = reconciler.run()
    print(result.counts())
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from .cursor_store import (
    CURSOR_AGENTS,
    CURSOR_CUSTOMERS,
    CURSOR_REQUESTERS,
    CURSOR_SYSTEMS,
    EPOCH,
    CursorStore,
)
from .db import Database, utc_now_iso
from .field_mapper import map_hardware_type, map_operating_system, map_server_application_type
from .fs_client import FreshserviceClient
from .identity_mapper import AbbreviationAllocator, CustomerIndex, EntitySnapshot
from .logger import get_logger
from .models import CONTACT_FIELDS, CUSTOMER_FIELDS, SYSTEM_FIELDS, ContactSource
from .records import (
    AgentRecord,
    ApplicationRecord,
    AssetRecord,
    AssetTypeRecord,
    DepartmentRecord,
    InstallationRecord,
    RequesterRecord,
)

logger = get_logger("fssync.reconciler")

DEFAULT_BATCH_SIZE = 250


# =============================================================================
# ENUMS AND DATA CLASSES
# =============================================================================

class SyncAction(Enum):
    """
    Outcome of classifying one Freshservice record.

    Values:
        CREATE: No local row yet, a full row is inserted
        UPDATE: Local row exists and at least one field differs
        UNCHANGED: Local row exists and matches, nothing is written
        SKIP: Record was excluded (see SkipReason)
    """
    CREATE = "create"
    UPDATE = "update"
    UNCHANGED = "unchanged"
    SKIP = "skip"


class SkipReason(Enum):
    """Why a record was skipped. Skips are never errors."""
    INELIGIBLE = "ineligible"            # business filter (requester not a contact person)
    FILTERED_TYPE = "filtered_type"      # asset type not mirrored
    DUPLICATE = "duplicate"              # same id listed twice in one run
    UNMAPPED_OWNER = "unmapped_owner"    # no local customer for the department


@dataclass
class SyncItem:
    """
    Classification of a single Freshservice record.

    Attributes:
        external_id: Freshservice id of the record
        label: Human-readable name (for logs)
        action: CREATE, UPDATE, UNCHANGED or SKIP
        local_id: Local row id (new uuid for CREATE)
        fields: Mapped values from Freshservice
        existing_fields: Current local values of the same fields (UPDATE/UNCHANGED)
        skip_reason: Set when action is SKIP
    """
    external_id: str
    label: str
    action: SyncAction
    local_id: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    existing_fields: Dict[str, Any] = field(default_factory=dict)
    skip_reason: Optional[SkipReason] = None

    def get_patch(self) -> Dict[str, Any]:
        """
        Fields whose mapped value differs from the local value.

        Comparison is by value; lists compare element by element in order,
        so a reordered software list counts as a change.
        """
        return {
            name: value
            for name, value in self.fields.items()
            if self.existing_fields.get(name) != value
        }


@dataclass
class RowPatch:
    """A queued update: only the changed fields of one local row."""
    local_id: str
    changes: Dict[str, Any]
    external_updated_at: Optional[str] = None


@dataclass
class ReconcilePlan:
    """Everything one stream will write, computed before any write happens."""
    stream: str
    fetched: int = 0
    eligible: int = 0
    inserts: List[Dict[str, Any]] = field(default_factory=list)
    updates: List[RowPatch] = field(default_factory=list)
    deletes: List[str] = field(default_factory=list)
    items: List[SyncItem] = field(default_factory=list)
    seen: Set[str] = field(default_factory=set)
    cursor: Optional[str] = None

    @property
    def skipped(self) -> List[SyncItem]:
        return [i for i in self.items if i.action == SyncAction.SKIP]

    def skip_reasons(self) -> Dict[str, SkipReason]:
        """external_id → reason for every skipped record."""
        return {i.external_id: i.skip_reason for i in self.skipped}


@dataclass
class StreamResult:
    """Counts reported for one reconciled stream."""
    stream: str
    fetched: int = 0
    eligible: int = 0
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    cursor: Optional[str] = None

    def counts(self) -> Dict[str, int]:
        return {
            "fetched": self.fetched,
            "eligible": self.eligible,
            "inserted": self.inserted,
            "updated": self.updated,
            "deleted": self.deleted,
            "skipped": self.skipped,
        }


def chunk(items: List[Any], size: int = DEFAULT_BATCH_SIZE) -> Iterable[List[Any]]:
    """Split a list into consecutive batches of at most `size` items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


# =============================================================================
# BASE RECONCILER
# =============================================================================

class StreamReconciler:
    """
    Structural reconciliation shared by all streams.

    Subclasses define the stream name, target table, cursor key, the fields
    they own and three hooks:
        fetch_records()           - typed Freshservice records
        check_eligibility(record) - SkipReason to exclude a record, or None
        map_fields(record, id)    - local field values, or SkipReason.UNMAPPED_OWNER
    """

    stream: str = ""
    table: str = ""
    cursor_key: str = ""
    fields: tuple = ()

    def __init__(
        self,
        db: Database,
        client: FreshserviceClient,
        cursor_store: Optional[CursorStore] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], str] = utc_now_iso,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        """
        Args:
            db: Local database
            client: Freshservice client (or any object with the same list_* methods)
            cursor_store: Cursor persistence (defaults to the db's settings table)
            batch_size: Rows per INSERT batch
            clock: Returns the timestamp stamped on created/updated rows
            id_factory: Returns a new local id
        """
        self.db = db
        self.client = client
        self.cursor_store = cursor_store or CursorStore(db)
        self.batch_size = batch_size
        self.clock = clock
        self.id_factory = id_factory
        self.records: List[Any] = []

    # ----- hooks ---------------------------------------------------------------

    def fetch_records(self) -> List[Any]:
        raise NotImplementedError

    def load_snapshot(self) -> EntitySnapshot:
        return EntitySnapshot.load(self.db, self.table)

    def prepare(self, snapshot: EntitySnapshot):
        """Build lookups needed by map_fields (runs after the snapshot loads)."""

    def check_eligibility(self, record: Any) -> Optional[SkipReason]:
        return None

    def map_fields(self, record: Any, local_id: str) -> Union[Dict[str, Any], SkipReason]:
        raise NotImplementedError

    def insert_extras(self) -> Dict[str, Any]:
        """Constant columns added to every inserted row."""
        return {}

    def describe(self, record: Any) -> str:
        return getattr(record, "name", None) or record.id

    # ----- algorithm -------------------------------------------------------------

    def plan(
        self,
        records: List[Any],
        snapshot: EntitySnapshot,
        prune: bool = True,
        enforce_eligibility: bool = True,
    ) -> ReconcilePlan:
        """
        Compute the three-way diff without writing anything.

        Args:
            records: Typed Freshservice records of this stream
            snapshot: Current local rows of the target table
            prune: Queue deletions for unseen rows and advance the cursor
                   (False for single-record upserts)
            enforce_eligibility: Apply the stream's business filter

        Returns:
            ReconcilePlan with inserts, patches, deletions and the new cursor
        """
        plan = ReconcilePlan(stream=self.stream, fetched=len(records))
        max_updated = self.cursor_store.get_cursor(self.cursor_key) or EPOCH
        now = self.clock()

        for record in records:
            label = self.describe(record)

            reason = self.check_eligibility(record) if enforce_eligibility else None
            if reason is None and record.id in plan.seen:
                reason = SkipReason.DUPLICATE
            if reason is not None:
                plan.items.append(SyncItem(record.id, label, SyncAction.SKIP, skip_reason=reason))
                logger.debug(f"[{self.stream}] SKIP {record.id} ({label}): {reason.value}")
                continue

            plan.eligible += 1
            plan.seen.add(record.id)
            if record.updated_at and record.updated_at > max_updated:
                max_updated = record.updated_at

            local_id = snapshot.local_id(record.id)
            is_new = local_id is None
            if is_new:
                local_id = self.id_factory()

            mapped = self.map_fields(record, local_id)
            if isinstance(mapped, SkipReason):
                plan.items.append(SyncItem(record.id, label, SyncAction.SKIP, skip_reason=mapped))
                logger.info(f"[{self.stream}] SKIP {record.id} ({label}): {mapped.value}")
                continue

            if is_new:
                row = {"id": local_id, "external_id": record.id}
                row.update(mapped)
                row.update(self.insert_extras())
                row.update({
                    "external_updated_at": record.updated_at,
                    "created_at": now,
                    "updated_at": now,
                })
                plan.inserts.append(row)
                plan.items.append(SyncItem(record.id, label, SyncAction.CREATE, local_id, mapped))
                continue

            existing = snapshot.row(local_id) or {}
            item = SyncItem(
                record.id, label, SyncAction.UNCHANGED, local_id, mapped,
                existing_fields={name: existing.get(name) for name in self.fields},
            )
            changes = item.get_patch()
            if changes:
                item.action = SyncAction.UPDATE
                plan.updates.append(RowPatch(local_id, changes, record.updated_at))
            plan.items.append(item)

        if prune:
            for row in snapshot.synced_rows():
                if row["external_id"] not in plan.seen:
                    plan.deletes.append(row["id"])
                elif snapshot.local_id(row["external_id"]) != row["id"]:
                    # Second local row for the same external id
                    logger.warning(f"[{self.stream}] Removing duplicate row {row['id']} "
                                   f"for external id {row['external_id']}")
                    plan.deletes.append(row["id"])
            plan.cursor = max_updated

        return plan

    def apply(self, plan: ReconcilePlan):
        """
        Write a plan in one transaction.

        Order: insert batches, one UPDATE per patch, one batched DELETE, cursor.
        Any failure rolls back the whole stream.
        """
        now = self.clock()
        with self.db.transaction():
            for batch in chunk(plan.inserts, self.batch_size):
                self.db.insert_many(self.table, batch)

            for patch in plan.updates:
                values = dict(patch.changes)
                values["updated_at"] = now
                values["external_updated_at"] = patch.external_updated_at
                self.db.update_row(self.table, patch.local_id, values)

            if plan.deletes:
                self.db.delete_rows(self.table, plan.deletes)

            if plan.cursor is not None:
                self.cursor_store.set_cursor(self.cursor_key, plan.cursor)

    def run(self) -> StreamResult:
        """Fetch, diff and apply this stream."""
        logger.info(f"[{self.stream}] Reconciling...")

        self.records = self.fetch_records()
        snapshot = self.load_snapshot()
        self.prepare(snapshot)

        plan = self.plan(self.records, snapshot)
        self.apply(plan)

        result = StreamResult(
            stream=self.stream,
            fetched=plan.fetched,
            eligible=plan.eligible,
            inserted=len(plan.inserts),
            updated=len(plan.updates),
            deleted=len(plan.deletes),
            skipped=len(plan.skipped),
            cursor=plan.cursor,
        )
        logger.info(f"[{self.stream}] Done: fetched={result.fetched}, eligible={result.eligible}, "
                    f"inserted={result.inserted}, updated={result.updated}, "
                    f"deleted={result.deleted}, skipped={result.skipped}")
        return result


# =============================================================================
# CUSTOMERS (Freshservice departments)
# =============================================================================

class CustomerReconciler(StreamReconciler):
    """Mirror departments into the customer table."""

    stream = "customers"
    table = "customer"
    cursor_key = CURSOR_CUSTOMERS
    fields = CUSTOMER_FIELDS

    def fetch_records(self) -> List[DepartmentRecord]:
        return [DepartmentRecord.from_api(raw) for raw in self.client.list_departments()]

    def prepare(self, snapshot: EntitySnapshot):
        self.allocator = AbbreviationAllocator(snapshot.rows.values())

    def map_fields(self, record: DepartmentRecord, local_id: str) -> Dict[str, Any]:
        return {
            "name": record.name,
            "address": record.address,
            "city": record.city,
            "postal_code": record.postal_code,
            "country": record.country,
            "business_email": record.email,
            "business_phone": record.phone,
            "website": record.website,
            "abbreviation": self.allocator.allocate(record.short_code, record.id, local_id),
            "category": record.category,
            "billing_code": record.billing_code,
            "service_manager": record.service_manager,
            "sla": record.sla,
        }


# =============================================================================
# SYSTEMS (Freshservice assets)
# =============================================================================

class SystemReconciler(StreamReconciler):
    """
    Mirror server assets into the system table.

    Only assets whose asset type name is in `asset_type_names` are mirrored.
    Installed software comes from managed applications and their
    installations.
    """

    stream = "systems"
    table = "system"
    cursor_key = CURSOR_SYSTEMS
    fields = SYSTEM_FIELDS

    def __init__(self, db, client, asset_type_names: Iterable[str] = ("VMware Server",), **kwargs):
        super().__init__(db, client, **kwargs)
        self.asset_type_names = set(asset_type_names)
        self.type_name_by_id: Dict[str, str] = {}
        self.software_by_asset: Dict[str, List[str]] = {}

    def fetch_records(self) -> List[AssetRecord]:
        assets = [AssetRecord.from_api(raw) for raw in self.client.list_assets()]
        asset_types = [AssetTypeRecord.from_api(raw) for raw in self.client.list_asset_types()]
        applications = [ApplicationRecord.from_api(raw) for raw in self.client.list_applications()]

        self.type_name_by_id = {t.id: t.name for t in asset_types}
        self.software_by_asset = self._collect_installed_software(assets, applications)
        return assets

    def _collect_installed_software(
        self,
        assets: List[AssetRecord],
        applications: List[ApplicationRecord],
    ) -> Dict[str, List[str]]:
        """
        Map asset id → names of managed applications installed on it.

        Installations reference the asset's display_id, not its id.
        """
        asset_id_by_display_id = {a.display_id: a.id for a in assets if a.display_id}
        software: Dict[str, List[str]] = {}

        for app in applications:
            if not app.is_managed:
                continue
            for raw in self.client.list_application_installations(app.id):
                installation = InstallationRecord.from_api(raw)
                asset_id = asset_id_by_display_id.get(installation.installation_machine_id)
                if not asset_id:
                    logger.warning(f"[{self.stream}] No asset for installation_machine_id "
                                   f"{installation.installation_machine_id}; skipping software '{app.name}'")
                    continue
                software.setdefault(asset_id, []).append(app.name)

        return software

    def prepare(self, snapshot: EntitySnapshot):
        self.customers = CustomerIndex.load(self.db)

    def check_eligibility(self, record: AssetRecord) -> Optional[SkipReason]:
        if self.type_name_by_id.get(record.asset_type_id) not in self.asset_type_names:
            return SkipReason.FILTERED_TYPE
        return None

    def map_fields(self, record: AssetRecord, local_id: str) -> Union[Dict[str, Any], SkipReason]:
        customer_id = self.customers.resolve(record.department_id)
        if not customer_id:
            logger.warning(f"[{self.stream}] System {record.name} (FS ID: {record.id}) belongs to an "
                           f"unknown department {record.department_id}. Skipping.")
            return SkipReason.UNMAPPED_OWNER

        return {
            "customer_id": customer_id,
            "hostname": record.name or "Unknown Host",
            "ip_address": record.ip_address,
            "description": record.description,
            "hardware_type": map_hardware_type(record.compute_type).value,
            "operating_system": map_operating_system(record.os_label).value,
            "server_application_type": map_server_application_type(record.server_role).value,
            "installed_software": list(self.software_by_asset.get(record.id, [])),
            "maintenance_interval": record.maintenance_interval,
        }


# =============================================================================
# CONTACTS (Freshservice agents and requesters)
# =============================================================================

class ContactReconciler(StreamReconciler):
    """
    Shared behaviour of the two contact streams.

    Both write contact_person, but each only loads, matches and deletes rows
    of its own `source`, so agent and requester ids never collide.
    """

    table = "contact_person"
    fields = CONTACT_FIELDS
    source: ContactSource = ContactSource.MANUAL

    def load_snapshot(self) -> EntitySnapshot:
        return EntitySnapshot.load(self.db, self.table, source=self.source.value)

    def prepare(self, snapshot: EntitySnapshot):
        self.customers = CustomerIndex.load(self.db)

    def insert_extras(self) -> Dict[str, Any]:
        return {"source": self.source.value}

    def describe(self, record: Any) -> str:
        return record.display_name or record.id


class AgentContactReconciler(ContactReconciler):
    """Mirror agents into contact_person (owner = first department)."""

    stream = "agents"
    cursor_key = CURSOR_AGENTS
    source = ContactSource.AGENT

    def fetch_records(self) -> List[AgentRecord]:
        agents = [AgentRecord.from_api(raw) for raw in self.client.list_agents()]
        logger.info(f"[{self.stream}] Agents fetched: count={len(agents)}")
        return agents

    def map_fields(self, record: AgentRecord, local_id: str) -> Union[Dict[str, Any], SkipReason]:
        primary = record.department_ids[0] if record.department_ids else None
        customer_id = self.customers.resolve(primary)
        if not customer_id:
            logger.info(f"[{self.stream}] SKIP: Agent ID={record.id} ({record.display_name}) - "
                        f"no local customer for department ids {record.department_ids}")
            return SkipReason.UNMAPPED_OWNER

        return {
            "customer_id": customer_id,
            "name": record.display_name or record.email or "",
            "email": record.email or "",
            "phone": record.work_phone or record.mobile_phone or "",
        }


class RequesterContactReconciler(ContactReconciler):
    """
    Mirror requesters flagged as "Ansprechpartner" into contact_person.

    Owner: primary department id, else the first department name matching a
    customer name.
    """

    stream = "requesters"
    cursor_key = CURSOR_REQUESTERS
    source = ContactSource.REQUESTER

    def fetch_records(self) -> List[RequesterRecord]:
        requesters = [RequesterRecord.from_api(raw) for raw in self.client.list_requesters()]
        logger.info(f"[{self.stream}] Requesters fetched: count={len(requesters)}")
        return requesters

    def check_eligibility(self, record: RequesterRecord) -> Optional[SkipReason]:
        if not record.is_contact_person:
            return SkipReason.INELIGIBLE
        return None

    def map_fields(self, record: RequesterRecord, local_id: str) -> Union[Dict[str, Any], SkipReason]:
        primary = record.department_ids[0] if record.department_ids else record.department_id
        customer_id = self.customers.resolve(primary, record.department_names)
        if not customer_id:
            logger.warning(f"[{self.stream}] SKIP: Requester ID={record.id} ({record.display_name}) could "
                           f"not be mapped to a customer. Dept IDs: {record.department_ids}, "
                           f"Dept Names: {record.department_names}")
            return SkipReason.UNMAPPED_OWNER

        return {
            "customer_id": customer_id,
            "name": record.display_name,
            "email": record.contact_email,
            "phone": record.work_phone or record.mobile_phone or "",
        }
