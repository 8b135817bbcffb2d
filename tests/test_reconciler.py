"""
Tests for reconciler.py: the per-stream diff against an in-memory database.

A fake Freshservice client serves raw API dictionaries, so the full
fetch → snapshot → plan → apply path runs without network access.
"""

import copy
import unittest
from unittest.mock import patch

from fssync.cursor_store import CURSOR_CUSTOMERS, CURSOR_REQUESTERS, CursorStore
from fssync.db import Database
from fssync.fs_client import FreshserviceClientError
from fssync.reconciler import (
    AgentContactReconciler,
    CustomerReconciler,
    RequesterContactReconciler,
    SkipReason,
    SyncAction,
    SyncItem,
    SystemReconciler,
)


# =============================================================================
# FIXTURES
# =============================================================================

VMWARE_TYPE = {"id": 3, "name": "VMware Server"}
LAPTOP_TYPE = {"id": 4, "name": "Laptop"}


class FakeFreshservice:
    """Serves fixed collections the way FreshserviceClient returns them."""

    def __init__(self):
        self.departments = []
        self.agents = []
        self.requesters = []
        self.assets = []
        self.asset_types = [VMWARE_TYPE, LAPTOP_TYPE]
        self.applications = []
        self.installations = {}
        self.installation_calls = []
        self.failing = set()

    def _serve(self, name, items):
        if name in self.failing:
            raise FreshserviceClientError(f"GET {name} failed: 500 - boom", status_code=500)
        return copy.deepcopy(items)

    def list_departments(self):
        return self._serve("departments", self.departments)

    def list_agents(self):
        return self._serve("agents", self.agents)

    def list_requesters(self):
        return self._serve("requesters", self.requesters)

    def list_assets(self):
        return self._serve("assets", self.assets)

    def list_asset_types(self):
        return self._serve("asset_types", self.asset_types)

    def list_applications(self):
        return self._serve("applications", self.applications)

    def list_application_installations(self, application_id):
        self.installation_calls.append(application_id)
        return self._serve("installations", self.installations.get(application_id, []))


def department(dept_id, name, updated_at="2024-01-01T00:00:00Z", **custom_fields):
    return {"id": dept_id, "name": name, "updated_at": updated_at, "custom_fields": custom_fields}


def asset(asset_id, display_id, name, dept_id, type_id=3, updated_at="2024-01-01T00:00:00Z", **type_fields):
    return {
        "id": asset_id,
        "display_id": display_id,
        "name": name,
        "department_id": dept_id,
        "asset_type_id": type_id,
        "updated_at": updated_at,
        "type_fields": {f"{key}_{type_id}": value for key, value in type_fields.items()},
    }


def requester(req_id, first, last, email, dept_ids=(), contact=True, updated_at="2024-01-01T00:00:00Z", **extra):
    raw = {
        "id": req_id,
        "first_name": first,
        "last_name": last,
        "primary_email": email,
        "department_ids": list(dept_ids),
        "updated_at": updated_at,
        "custom_fields": {"ansprechpartner": contact},
    }
    raw.update(extra)
    return raw


def agent(agent_id, first, last, email, dept_ids=(), updated_at="2024-01-01T00:00:00Z", **extra):
    raw = {
        "id": agent_id,
        "first_name": first,
        "last_name": last,
        "email": email,
        "department_ids": list(dept_ids),
        "updated_at": updated_at,
    }
    raw.update(extra)
    return raw


def build_plan(reconciler):
    """Everything run() does except apply()."""
    records = reconciler.fetch_records()
    snapshot = reconciler.load_snapshot()
    reconciler.prepare(snapshot)
    return reconciler.plan(records, snapshot)


class ReconcilerTestCase(unittest.TestCase):

    def setUp(self):
        self.db = Database(":memory:")
        self.fs = FakeFreshservice()

    def tearDown(self):
        self.db.close()

    def run_stream(self, reconciler_class, **kwargs):
        return reconciler_class(self.db, self.fs, **kwargs).run()

    def customer_by_external(self, external_id):
        rows = self.db.fetch_all("customer", external_id=external_id)
        return rows[0] if rows else None

    def add_manual_customer(self, row_id="manual-1", name="Walk-in Customer"):
        self.db.insert_many("customer", [{
            "id": row_id, "external_id": None, "name": name, "abbreviation": "WALKIN",
            "sla": False, "created_at": "t", "updated_at": "t",
        }])


# =============================================================================
# SYNC ITEM
# =============================================================================

class TestSyncItemPatch(unittest.TestCase):

    def test_patch_contains_only_changed_fields(self):
        item = SyncItem("1", "x", SyncAction.UPDATE,
                        fields={"city": "Hamburg", "country": "DE"},
                        existing_fields={"city": "Berlin", "country": "DE"})
        self.assertEqual(item.get_patch(), {"city": "Hamburg"})

    def test_list_order_matters(self):
        item = SyncItem("1", "x", SyncAction.UPDATE,
                        fields={"installed_software": ["B", "A"]},
                        existing_fields={"installed_software": ["A", "B"]})
        self.assertEqual(item.get_patch(), {"installed_software": ["B", "A"]})

    def test_none_and_empty_string_differ(self):
        item = SyncItem("1", "x", SyncAction.UPDATE, fields={"phone": ""}, existing_fields={"phone": None})
        self.assertEqual(item.get_patch(), {"phone": ""})


# =============================================================================
# CUSTOMERS
# =============================================================================

class TestCustomerStream(ReconcilerTestCase):

    def test_new_department_inserted_with_derived_abbreviation(self):
        self.fs.departments = [department(501, "Acme Corp", updated_at="2024-02-01T00:00:00Z")]

        result = self.run_stream(CustomerReconciler)

        customer = self.customer_by_external("501")
        self.assertEqual(result.inserted, 1)
        self.assertEqual(customer["name"], "Acme Corp")
        self.assertEqual(customer["abbreviation"], "DEPT-501")
        self.assertEqual(customer["external_updated_at"], "2024-02-01T00:00:00Z")
        self.assertEqual(CursorStore(self.db).get_cursor(CURSOR_CUSTOMERS), "2024-02-01T00:00:00Z")

    def test_short_code_used_verbatim(self):
        self.fs.departments = [department(501, "Acme Corp", kurzel="ACME")]

        self.run_stream(CustomerReconciler)

        self.assertEqual(self.customer_by_external("501")["abbreviation"], "ACME")

    def test_duplicate_short_code_falls_back(self):
        self.fs.departments = [
            department(501, "Acme Corp", kurzel="ACME"),
            department(502, "Acme Holding", kurzel="ACME"),
        ]

        self.run_stream(CustomerReconciler)

        self.assertEqual(self.customer_by_external("501")["abbreviation"], "ACME")
        self.assertEqual(self.customer_by_external("502")["abbreviation"], "DEPT-502")

    def test_reserved_prefix_short_code_does_not_block_other_department(self):
        self.fs.departments = [
            department(5, "Five", kurzel="DEPT-7"),
            department(7, "Seven"),
        ]

        result = self.run_stream(CustomerReconciler)

        self.assertEqual(result.inserted, 2)
        self.assertEqual(self.customer_by_external("5")["abbreviation"], "DEPT-5")
        self.assertEqual(self.customer_by_external("7")["abbreviation"], "DEPT-7")

    def test_fallback_held_by_manual_customer_gets_suffix(self):
        self.db.insert_many("customer", [{
            "id": "manual-1", "external_id": None, "name": "Walk-in Customer", "abbreviation": "DEPT-501",
            "sla": False, "created_at": "t", "updated_at": "t",
        }])
        self.fs.departments = [department(501, "Acme Corp")]

        self.run_stream(CustomerReconciler)

        self.assertEqual(self.customer_by_external("501")["abbreviation"], "DEPT-501-2")
        self.assertEqual(self.db.get_row("customer", "manual-1")["abbreviation"], "DEPT-501")

    def test_second_local_row_for_same_department_is_removed(self):
        for row_id, name, abbreviation in (("a", "Old", "OLD-A"), ("b", "Old", "OLD-B")):
            self.db.insert_many("customer", [{
                "id": row_id, "external_id": "501", "name": name, "abbreviation": abbreviation,
                "sla": False, "created_at": "t", "updated_at": "t",
            }])
        self.fs.departments = [department(501, "New", kurzel="OLD-A")]

        result = self.run_stream(CustomerReconciler)

        self.assertEqual(result.deleted, 1)
        rows = [(c["id"], c["name"]) for c in self.db.get_customers()]
        self.assertEqual(rows, [("a", "New")])

    def test_single_field_change_yields_single_field_patch(self):
        self.fs.departments = [department(501, "Acme Corp", ort="Berlin", land="DE")]
        self.run_stream(CustomerReconciler)
        before = self.customer_by_external("501")

        self.fs.departments = [department(501, "Acme Corp", updated_at="2024-03-01T00:00:00Z",
                                          ort="Hamburg", land="DE")]
        plan = build_plan(CustomerReconciler(self.db, self.fs))

        self.assertEqual(len(plan.updates), 1)
        self.assertEqual(plan.updates[0].local_id, before["id"])
        self.assertEqual(plan.updates[0].changes, {"city": "Hamburg"})
        self.assertEqual(plan.inserts, [])
        self.assertEqual(plan.deletes, [])

        result = self.run_stream(CustomerReconciler)
        after = self.customer_by_external("501")
        self.assertEqual(result.updated, 1)
        self.assertEqual(after["city"], "Hamburg")
        self.assertEqual(after["id"], before["id"])
        self.assertEqual(after["external_updated_at"], "2024-03-01T00:00:00Z")

    def test_second_run_is_a_no_op(self):
        self.fs.departments = [department(501, "Acme Corp", ort="Berlin", sla=True)]
        self.run_stream(CustomerReconciler)
        rows_before = self.db.get_customers()

        result = self.run_stream(CustomerReconciler)

        self.assertEqual((result.inserted, result.updated, result.deleted), (0, 0, 0))
        self.assertEqual(self.db.get_customers(), rows_before)

    def test_removed_department_deleted_manual_customer_kept(self):
        self.add_manual_customer()
        self.fs.departments = [department(501, "Acme Corp"), department(502, "Globex")]
        self.run_stream(CustomerReconciler)

        self.fs.departments = [department(501, "Acme Corp")]
        result = self.run_stream(CustomerReconciler)

        self.assertEqual(result.deleted, 1)
        self.assertIsNone(self.customer_by_external("502"))
        self.assertIsNotNone(self.db.get_row("customer", "manual-1"))

    def test_cursor_never_moves_backwards(self):
        CursorStore(self.db).set_cursor(CURSOR_CUSTOMERS, "2025-01-01T00:00:00Z")
        self.fs.departments = [department(501, "Acme Corp", updated_at="2024-06-01T00:00:00Z")]

        result = self.run_stream(CustomerReconciler)

        self.assertEqual(result.cursor, "2025-01-01T00:00:00Z")
        self.assertEqual(CursorStore(self.db).get_cursor(CURSOR_CUSTOMERS), "2025-01-01T00:00:00Z")

    def test_duplicate_listing_processed_once(self):
        self.fs.departments = [department(501, "Acme Corp"), department(501, "Acme Corp")]

        result = self.run_stream(CustomerReconciler)

        self.assertEqual(result.inserted, 1)
        self.assertEqual(result.skipped, 1)

    def test_failure_during_apply_rolls_back_everything(self):
        self.fs.departments = [department(501, "Acme Corp", ort="Berlin", updated_at="2024-01-01T00:00:00Z")]
        self.run_stream(CustomerReconciler)
        snapshot_before = self.db.get_customers()

        self.fs.departments = [
            department(501, "Acme Corp", ort="Hamburg", updated_at="2024-05-01T00:00:00Z"),
            department(502, "Globex", updated_at="2024-05-01T00:00:00Z"),
        ]
        with patch.object(self.db, "update_row", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                self.run_stream(CustomerReconciler)

        self.assertEqual(self.db.get_customers(), snapshot_before)
        self.assertEqual(CursorStore(self.db).get_cursor(CURSOR_CUSTOMERS), "2024-01-01T00:00:00Z")

    def test_fetch_failure_writes_nothing(self):
        self.fs.failing.add("departments")

        with self.assertRaises(FreshserviceClientError):
            self.run_stream(CustomerReconciler)

        self.assertEqual(self.db.get_customers(), [])
        self.assertIsNone(CursorStore(self.db).get_cursor(CURSOR_CUSTOMERS))

    def test_inserts_are_batched(self):
        self.fs.departments = [department(600 + i, f"Dept {i}") for i in range(7)]

        with patch.object(self.db, "insert_many", wraps=self.db.insert_many) as spy:
            self.run_stream(CustomerReconciler, batch_size=3)

        self.assertEqual([len(c.args[1]) for c in spy.call_args_list], [3, 3, 1])
        self.assertEqual(len(self.db.get_customers()), 7)


# =============================================================================
# SYSTEMS
# =============================================================================

class TestSystemStream(ReconcilerTestCase):

    def setUp(self):
        super().setUp()
        self.fs.departments = [department(501, "Acme Corp")]
        self.run_stream(CustomerReconciler)
        self.acme_id = self.customer_by_external("501")["id"]

    def systems(self):
        return {row["external_id"]: row for row in self.db.get_systems()}

    def test_asset_mapped_to_system(self):
        self.fs.assets = [asset(77, 12, "srv-app-01", 501,
                                computer_ip_address="10.0.0.5",
                                betriebssystem="Windows Server 2022",
                                serverrolle="Applikationsserver",
                                wartungsintervall="Monatlich",
                                compute_type="Virtual")]

        result = self.run_stream(SystemReconciler)

        system = self.systems()["77"]
        self.assertEqual(result.inserted, 1)
        self.assertEqual(system["customer_id"], self.acme_id)
        self.assertEqual(system["hostname"], "srv-app-01")
        self.assertEqual(system["ip_address"], "10.0.0.5")
        self.assertEqual(system["operating_system"], "WIN_SVR_2022")
        self.assertEqual(system["server_application_type"], "APPLICATION")
        self.assertEqual(system["hardware_type"], "VIRTUAL")
        self.assertEqual(system["maintenance_interval"], "Monatlich")
        self.assertEqual(system["installed_software"], [])

    def test_unknown_labels_and_missing_name_fall_back(self):
        self.fs.assets = [asset(78, 13, None, 501, betriebssystem="Plan 9")]

        self.run_stream(SystemReconciler)

        system = self.systems()["78"]
        self.assertEqual(system["hostname"], "Unknown Host")
        self.assertEqual(system["operating_system"], "OTHER_OS")
        self.assertEqual(system["server_application_type"], "NONE")
        self.assertEqual(system["hardware_type"], "PHYSICAL")

    def test_removed_asset_deletes_system(self):
        self.fs.assets = [asset(77, 12, "srv-a", 501), asset(79, 14, "srv-b", 501)]
        self.run_stream(SystemReconciler)

        self.fs.assets = [asset(77, 12, "srv-a", 501)]
        result = self.run_stream(SystemReconciler)

        self.assertEqual(result.deleted, 1)
        self.assertEqual(set(self.systems()), {"77"})

    def test_unknown_department_is_skipped_not_failed(self):
        self.fs.assets = [asset(77, 12, "srv-a", 501), asset(80, 15, "srv-orphan", 999)]

        reconciler = SystemReconciler(self.db, self.fs)
        plan = build_plan(reconciler)
        reconciler.apply(plan)

        self.assertEqual(plan.skip_reasons(), {"80": SkipReason.UNMAPPED_OWNER})
        self.assertEqual(set(self.systems()), {"77"})

    def test_unmapped_owner_keeps_existing_row(self):
        self.fs.departments.append(department(502, "Globex"))
        self.run_stream(CustomerReconciler)
        self.fs.assets = [asset(77, 12, "srv-a", 502)]
        self.run_stream(SystemReconciler)
        row_before = self.systems()["77"]

        # Asset moves to a department that has no local customer
        self.fs.assets = [asset(77, 12, "srv-a-renamed", 999)]
        result = self.run_stream(SystemReconciler)

        self.assertEqual((result.updated, result.deleted, result.skipped), (0, 0, 1))
        self.assertEqual(self.systems()["77"], row_before)

    def test_other_asset_types_filtered_and_excluded_from_seen(self):
        self.fs.assets = [asset(77, 12, "srv-a", 501)]
        self.run_stream(SystemReconciler)

        # Same asset re-typed as a laptop, plus an unrelated laptop
        self.fs.assets = [asset(77, 12, "srv-a", 501, type_id=4), asset(81, 16, "nb-01", 501, type_id=4)]
        reconciler = SystemReconciler(self.db, self.fs)
        plan = build_plan(reconciler)

        self.assertEqual(plan.skip_reasons(), {"77": SkipReason.FILTERED_TYPE, "81": SkipReason.FILTERED_TYPE})
        self.assertEqual(len(plan.deletes), 1)

    def test_configured_asset_types(self):
        self.fs.assets = [asset(81, 16, "nb-01", 501, type_id=4)]

        result = self.run_stream(SystemReconciler, asset_type_names=["VMware Server", "Laptop"])

        self.assertEqual(result.inserted, 1)

    def test_installed_software_from_managed_applications(self):
        self.fs.assets = [asset(77, 12, "srv-a", 501)]
        self.fs.applications = [
            {"id": 1, "name": "SQL Server", "status": "managed"},
            {"id": 2, "name": "Notepad", "status": "ignored"},
            {"id": 3, "name": "IIS", "status": "managed"},
        ]
        self.fs.installations = {
            "1": [{"installation_machine_id": 12}],
            "3": [{"installation_machine_id": 12}, {"installation_machine_id": 999}],
        }

        self.run_stream(SystemReconciler)

        self.assertEqual(self.systems()["77"]["installed_software"], ["SQL Server", "IIS"])
        self.assertEqual(self.fs.installation_calls, ["1", "3"])

    def test_reordered_software_is_an_update(self):
        self.fs.assets = [asset(77, 12, "srv-a", 501)]
        self.fs.applications = [
            {"id": 1, "name": "SQL Server", "status": "managed"},
            {"id": 3, "name": "IIS", "status": "managed"},
        ]
        self.fs.installations = {"1": [{"installation_machine_id": 12}], "3": [{"installation_machine_id": 12}]}
        self.run_stream(SystemReconciler)

        self.fs.applications.reverse()
        plan = build_plan(SystemReconciler(self.db, self.fs))

        self.assertEqual(len(plan.updates), 1)
        self.assertEqual(plan.updates[0].changes, {"installed_software": ["IIS", "SQL Server"]})

    def test_every_system_references_existing_customer(self):
        self.fs.departments.append(department(502, "Globex"))
        self.run_stream(CustomerReconciler)
        self.fs.assets = [asset(77, 12, "a", 501), asset(78, 13, "b", 502), asset(79, 14, "c", 777)]

        self.run_stream(SystemReconciler)

        customer_ids = {c["id"] for c in self.db.get_customers()}
        self.assertTrue(all(s["customer_id"] in customer_ids for s in self.db.get_systems()))
        self.assertEqual(len(self.db.get_systems()), 2)

    def test_owner_change_patches_customer_id(self):
        self.fs.departments.append(department(502, "Globex"))
        self.run_stream(CustomerReconciler)
        self.fs.assets = [asset(77, 12, "srv-a", 501)]
        self.run_stream(SystemReconciler)

        self.fs.assets = [asset(77, 12, "srv-a", 502)]
        plan = build_plan(SystemReconciler(self.db, self.fs))

        self.assertEqual(plan.updates[0].changes, {"customer_id": self.customer_by_external("502")["id"]})


# =============================================================================
# CONTACTS
# =============================================================================

class TestContactStreams(ReconcilerTestCase):

    def setUp(self):
        super().setUp()
        self.fs.departments = [department(501, "Acme Corp")]
        self.run_stream(CustomerReconciler)
        self.acme_id = self.customer_by_external("501")["id"]

    def contacts(self, source):
        return {row["external_id"]: row for row in self.db.get_contacts(source=source)}

    def test_only_flagged_requesters_are_mirrored(self):
        self.fs.requesters = [
            requester(11, "Jane", "Doe", "jane@acme.example", [501], contact=True),
            requester(12, "John", "Roe", "john@acme.example", [501], contact=False),
            requester(13, "Max", "Poe", "max@acme.example", [501], contact=None),
        ]

        reconciler = RequesterContactReconciler(self.db, self.fs)
        plan = build_plan(reconciler)
        reconciler.apply(plan)

        self.assertEqual(set(self.contacts("requester")), {"11"})
        self.assertEqual(plan.skip_reasons(), {"12": SkipReason.INELIGIBLE, "13": SkipReason.INELIGIBLE})
        contact = self.contacts("requester")["11"]
        self.assertEqual((contact["name"], contact["email"]), ("Jane Doe", "jane@acme.example"))
        self.assertEqual(contact["customer_id"], self.acme_id)

    def test_ineligible_requester_does_not_touch_agent_rows(self):
        self.fs.agents = [agent(9, "Ann", "Lee", "ann@msp.example", [501])]
        self.run_stream(AgentContactReconciler)
        agent_rows_before = self.contacts("agent")

        # Same numeric id on the requester side, not flagged
        self.fs.requesters = [requester(9, "Other", "Person", "other@acme.example", [501], contact=False)]
        result = self.run_stream(RequesterContactReconciler)

        self.assertEqual((result.inserted, result.deleted), (0, 0))
        self.assertEqual(self.contacts("requester"), {})
        self.assertEqual(self.contacts("agent"), agent_rows_before)

    def test_requester_losing_flag_is_deleted(self):
        self.fs.requesters = [requester(11, "Jane", "Doe", "jane@acme.example", [501])]
        self.run_stream(RequesterContactReconciler)

        self.fs.requesters = [requester(11, "Jane", "Doe", "jane@acme.example", [501], contact=False)]
        result = self.run_stream(RequesterContactReconciler)

        self.assertEqual(result.deleted, 1)
        self.assertEqual(self.contacts("requester"), {})

    def test_manual_contacts_never_deleted(self):
        self.db.insert_many("contact_person", [{
            "id": "manual-c", "external_id": None, "source": "manual", "customer_id": self.acme_id,
            "name": "Front Desk", "email": "", "phone": "", "created_at": "t", "updated_at": "t",
        }])
        self.fs.agents = []
        self.fs.requesters = []

        self.run_stream(AgentContactReconciler)
        self.run_stream(RequesterContactReconciler)

        self.assertIsNotNone(self.db.get_row("contact_person", "manual-c"))

    def test_requester_owner_falls_back_to_department_name(self):
        self.fs.requesters = [requester(11, "Jane", "Doe", "jane@acme.example", [999],
                                        department_names=["ACME corp"])]

        self.run_stream(RequesterContactReconciler)

        self.assertEqual(self.contacts("requester")["11"]["customer_id"], self.acme_id)

    def test_requester_without_owner_skipped(self):
        self.fs.requesters = [requester(11, "Jane", "Doe", "jane@acme.example", [999])]

        result = self.run_stream(RequesterContactReconciler)

        self.assertEqual((result.inserted, result.skipped), (0, 1))
        self.assertEqual(CursorStore(self.db).get_cursor(CURSOR_REQUESTERS), "2024-01-01T00:00:00Z")

    def test_agent_name_and_phone_fallbacks(self):
        self.fs.agents = [
            agent(9, None, None, "ops@msp.example", [501], mobile_phone_number="+49 170 1"),
            agent(10, "Bo", "Chen", "bo@msp.example", [501], work_phone_number="+49 30 2",
                  mobile_phone_number="+49 170 2"),
            agent(11, "No", "Phone", "np@msp.example", [501]),
        ]

        self.run_stream(AgentContactReconciler)

        contacts = self.contacts("agent")
        self.assertEqual((contacts["9"]["name"], contacts["9"]["phone"]), ("ops@msp.example", "+49 170 1"))
        self.assertEqual((contacts["10"]["name"], contacts["10"]["phone"]), ("Bo Chen", "+49 30 2"))
        self.assertEqual(contacts["11"]["phone"], "")

    def test_agent_owner_is_first_department_only(self):
        self.fs.agents = [agent(9, "Ann", "Lee", "ann@msp.example", [999, 501])]

        result = self.run_stream(AgentContactReconciler)

        self.assertEqual((result.inserted, result.skipped), (0, 1))

    def test_agent_update_is_minimal(self):
        self.fs.agents = [agent(9, "Ann", "Lee", "ann@msp.example", [501])]
        self.run_stream(AgentContactReconciler)

        self.fs.agents = [agent(9, "Ann", "Lee", "ann.lee@msp.example", [501])]
        plan = build_plan(AgentContactReconciler(self.db, self.fs))

        self.assertEqual(plan.updates[0].changes, {"email": "ann.lee@msp.example"})

    def test_deleting_customer_removes_its_contacts(self):
        self.fs.agents = [agent(9, "Ann", "Lee", "ann@msp.example", [501])]
        self.run_stream(AgentContactReconciler)

        self.fs.departments = []
        self.run_stream(CustomerReconciler)

        self.assertEqual(self.contacts("agent"), {})


if __name__ == "__main__":
    unittest.main()
