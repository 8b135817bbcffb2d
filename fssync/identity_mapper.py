"""
================================================================================
Identity Mapper: Freshservice IDs ↔ local IDs
================================================================================

Freshservice and the local database key the same entity independently. Before
a stream is reconciled, the mapper loads the current local table once and
builds in-memory lookups, so the per-record pass never queries the database:

1. EntitySnapshot - external_id → local id, and local id → current row
2. CustomerIndex  - owner lookups for systems and contacts:
                    department id → customer id (primary)
                    lower(customer name) → customer id (fallback)
3. AbbreviationAllocator - unique customer abbreviation per department

Abbreviation Rules:
-------------------
- The department's short code ("Kürzel") is used verbatim when present, not
  already held by a different customer and not starting with the reserved
  "DEPT-" prefix
- Otherwise "DEPT-<department id>"; a manual row already holding that code
  gets a numeric suffix appended ("DEPT-7-2")
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, Optional

from .db import Database
from .logger import get_logger

logger = get_logger("fssync.identity_mapper")

ABBREVIATION_PREFIX = "DEPT-"


# =============================================================================
# ENTITY SNAPSHOT
# =============================================================================

@dataclass
class EntitySnapshot:
    """
    The current local rows of one table, indexed two ways.

    Attributes:
        table: Local table name
        rows: local id → row dictionary
        id_by_external: external_id → local id (rows without external_id excluded)
    """
    table: str
    rows: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    id_by_external: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, table: str, rows: Iterable[Dict[str, Any]]) -> "EntitySnapshot":
        snapshot = cls(table=table)
        for row in rows:
            snapshot.rows[row["id"]] = row
            external_id = row.get("external_id")
            if not external_id:
                continue
            if external_id in snapshot.id_by_external:
                # Keep the first; the reconciler prunes the later ones
                logger.warning(f"Duplicate external_id {external_id} in {table} "
                               f"(rows {snapshot.id_by_external[external_id]}, {row['id']})")
                continue
            snapshot.id_by_external[external_id] = row["id"]
        return snapshot

    @classmethod
    def load(cls, db: Database, table: str, **filters: Any) -> "EntitySnapshot":
        """Load the full (optionally filtered) table from the database."""
        return cls.from_rows(table, db.fetch_all(table, **filters))

    def local_id(self, external_id: str) -> Optional[str]:
        return self.id_by_external.get(external_id)

    def row(self, local_id: str) -> Optional[Dict[str, Any]]:
        return self.rows.get(local_id)

    def synced_rows(self) -> Iterator[Dict[str, Any]]:
        """Rows that originate from Freshservice (external_id set)."""
        for row in self.rows.values():
            if row.get("external_id"):
                yield row


# =============================================================================
# CUSTOMER OWNER LOOKUP
# =============================================================================

class CustomerIndex:
    """
    Resolve the owning local customer of a system or contact.

    Example:
        >>> index = CustomerIndex.load(db)
        >>> index.resolve("7000123", ["Acme Corp"])
        'b3c1...'
    """

    def __init__(self, customers: Iterable[Dict[str, Any]]):
        self.by_external: Dict[str, str] = {}
        self.by_name: Dict[str, str] = {}
        for c in customers:
            if c.get("external_id"):
                self.by_external.setdefault(str(c["external_id"]), c["id"])
            if c.get("name"):
                self.by_name.setdefault(c["name"].strip().lower(), c["id"])

    @classmethod
    def load(cls, db: Database) -> "CustomerIndex":
        return cls(db.get_customers())

    def resolve(self, primary_id: Optional[str], fallback_names: Iterable[str] = ()) -> Optional[str]:
        """
        Find the local customer id.

        Args:
            primary_id: Freshservice department id (tried first)
            fallback_names: Department names, tried in order, case-insensitive;
                            the first match wins

        Returns:
            Local customer id, or None when nothing matches
        """
        if primary_id:
            customer_id = self.by_external.get(str(primary_id))
            if customer_id:
                return customer_id

        for name in fallback_names:
            if not name:
                continue
            customer_id = self.by_name.get(str(name).strip().lower())
            if customer_id:
                return customer_id

        return None


# =============================================================================
# ABBREVIATIONS
# =============================================================================

def derive_abbreviation(short_code: Optional[str], external_id: str) -> str:
    """
    Abbreviation for a department.

    Args:
        short_code: The department's "kurzel" custom field, may be None
        external_id: Freshservice department id

    Returns:
        The trimmed short code, or "DEPT-<external_id>" upper-cased

    Example:
        >>> derive_abbreviation(None, "7000123")
        'DEPT-7000123'
    """
    if short_code and short_code.strip():
        return short_code.strip()
    return f"{ABBREVIATION_PREFIX}{external_id}".upper()


class AbbreviationAllocator:
    """
    Hand out abbreviations without consulting the UNIQUE constraint.

    Knows every abbreviation currently stored and every one assigned earlier
    in the run. A short code held by another customer, or one that starts
    with the reserved DEPT- prefix, falls back to the DEPT-<id> form; if that
    is taken too, "-2", "-3", ... is appended until a free code is found.
    """

    def __init__(self, customers: Iterable[Dict[str, Any]]):
        self._owner: Dict[str, str] = {}
        for c in customers:
            if c.get("abbreviation"):
                self._owner.setdefault(c["abbreviation"], c["id"])

    def _is_free(self, code: str, local_id: str) -> bool:
        holder = self._owner.get(code)
        return holder is None or holder == local_id

    def allocate(self, short_code: Optional[str], external_id: str, local_id: str) -> str:
        """
        Abbreviation for the customer with the given local id.

        Args:
            short_code: Department short code, may be None
            external_id: Freshservice department id
            local_id: Local customer id (new uuid for inserts)
        """
        fallback = derive_abbreviation(None, external_id)
        candidate = derive_abbreviation(short_code, external_id)

        if candidate != fallback and candidate.upper().startswith(ABBREVIATION_PREFIX):
            logger.warning(f"Short code '{candidate}' of department {external_id} uses the reserved "
                           f"'{ABBREVIATION_PREFIX}' prefix; using '{fallback}'")
            candidate = fallback

        if not self._is_free(candidate, local_id) and candidate != fallback:
            logger.warning(f"Abbreviation '{candidate}' already used by customer {self._owner[candidate]}; "
                           f"department {external_id} gets '{fallback}'")
            candidate = fallback

        if not self._is_free(candidate, local_id):
            taken = candidate
            suffix = 2
            while not self._is_free(f"{taken}-{suffix}", local_id):
                suffix += 1
            candidate = f"{taken}-{suffix}"
            logger.warning(f"Abbreviation '{taken}' already used by customer {self._owner[taken]}; "
                           f"department {external_id} gets '{candidate}'")

        self._owner[candidate] = local_id
        return candidate
