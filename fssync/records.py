"""
================================================================================
Record Adapters: raw Freshservice JSON → typed records
================================================================================

Freshservice returns loosely typed JSON. Department and requester data carry a
`custom_fields` map; assets carry a `type_fields` map whose keys get a trailing
numeric suffix per account (e.g. "betriebssystem_7000123456"). Everything the
reconciler needs is pulled out here, once, into small dataclasses, so the
reconciler never touches raw dictionaries.

Custom/type field extraction accepts the plain field name or the name followed
by "_<digits>"; this is the only place where that key matching happens.

Usage Example:
--------------
    from fssync.records import AssetRecord

    asset = AssetRecord.from_api(raw_asset)
    print(asset.os_label, asset.ip_address)
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# =============================================================================
# EXTRACTION HELPERS
# =============================================================================

def extract_field(fields: Any, name: str) -> Any:
    """
    Get a custom/type field by name, tolerating the numeric key suffix.

    Args:
        fields: The custom_fields / type_fields dictionary (may be None)
        name: Field name without suffix, e.g. "betriebssystem"

    Returns:
        The first matching value, or None

    Example:
        >>> extract_field({"betriebssystem_7001": "Debian 12"}, "betriebssystem")
        'Debian 12'
    """
    if not isinstance(fields, dict):
        return None
    if name in fields:
        return fields[name]

    pattern = re.compile(rf"^{re.escape(name)}_\d+$")
    for key, value in fields.items():
        if pattern.match(str(key)):
            return value
    return None


def clean_text(value: Any) -> Optional[str]:
    """Trimmed string, or None for None / empty values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _id(value: Any) -> Optional[str]:
    """Freshservice IDs are numbers; locally they are stored as text."""
    if value is None or value == "":
        return None
    return str(value)


def _id_list(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [str(v) for v in values if v is not None]


def _str_list(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [str(v) for v in values if v]


def join_name(*parts: Optional[str]) -> str:
    """Join name parts with a space, skipping empty ones."""
    return " ".join(p.strip() for p in parts if p and p.strip())


# =============================================================================
# RECORD TYPES
# =============================================================================

@dataclass
class DepartmentRecord:
    """A Freshservice department (mirrored as a local customer)."""
    id: str
    name: str
    updated_at: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    short_code: Optional[str] = None
    category: Optional[str] = None
    billing_code: Optional[str] = None
    service_manager: Optional[str] = None
    sla: bool = False

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "DepartmentRecord":
        cf = raw.get("custom_fields") or {}
        return cls(
            id=str(raw["id"]),
            name=clean_text(raw.get("name")) or "",
            updated_at=clean_text(raw.get("updated_at")),
            address=clean_text(extract_field(cf, "strasse")),
            city=clean_text(extract_field(cf, "ort")),
            postal_code=clean_text(extract_field(cf, "plz")),
            country=clean_text(extract_field(cf, "land")),
            email=clean_text(extract_field(cf, "e_mail")),
            phone=clean_text(extract_field(cf, "telefon")),
            website=clean_text(extract_field(cf, "website")),
            short_code=clean_text(extract_field(cf, "kurzel")),
            category=clean_text(extract_field(cf, "kategorie")),
            billing_code=clean_text(extract_field(cf, "verrechnungscode")),
            service_manager=clean_text(extract_field(cf, "servicemanager")),
            # Only an explicit boolean true counts; "true" strings do not
            sla=extract_field(cf, "sla") is True,
        )


@dataclass
class AgentRecord:
    """A Freshservice agent (technician)."""
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    work_phone: Optional[str] = None
    mobile_phone: Optional[str] = None
    updated_at: Optional[str] = None
    department_ids: List[str] = field(default_factory=list)
    active: bool = True

    @property
    def display_name(self) -> str:
        return join_name(self.first_name, self.last_name)

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "AgentRecord":
        return cls(
            id=str(raw["id"]),
            first_name=clean_text(raw.get("first_name")),
            last_name=clean_text(raw.get("last_name")),
            email=clean_text(raw.get("email")),
            work_phone=clean_text(raw.get("work_phone_number")),
            mobile_phone=clean_text(raw.get("mobile_phone_number")),
            updated_at=clean_text(raw.get("updated_at")),
            department_ids=_id_list(raw.get("department_ids")),
            # Missing flag means active
            active=raw.get("active") is not False,
        )


@dataclass
class RequesterRecord:
    """A Freshservice requester (customer-side user)."""
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    primary_email: Optional[str] = None
    email: Optional[str] = None
    secondary_emails: List[str] = field(default_factory=list)
    work_phone: Optional[str] = None
    mobile_phone: Optional[str] = None
    updated_at: Optional[str] = None
    department_id: Optional[str] = None
    department_ids: List[str] = field(default_factory=list)
    department_names: List[str] = field(default_factory=list)
    is_contact_person: bool = False

    @property
    def display_name(self) -> str:
        return join_name(self.first_name, self.last_name) or self.name or self.primary_email or ""

    @property
    def contact_email(self) -> str:
        return self.primary_email or self.email or ""

    def has_email(self, email: str) -> bool:
        """Case-insensitive match against primary, plain and secondary emails."""
        wanted = email.strip().lower()
        candidates = [self.primary_email, self.email] + self.secondary_emails
        return any(c and c.lower() == wanted for c in candidates)

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "RequesterRecord":
        cf = raw.get("custom_fields") or {}
        return cls(
            id=str(raw["id"]),
            first_name=clean_text(raw.get("first_name")),
            last_name=clean_text(raw.get("last_name")),
            name=clean_text(raw.get("name")),
            primary_email=clean_text(raw.get("primary_email")),
            email=clean_text(raw.get("email")),
            secondary_emails=_str_list(raw.get("secondary_emails")),
            work_phone=clean_text(raw.get("work_phone_number")),
            mobile_phone=clean_text(raw.get("mobile_phone_number")),
            updated_at=clean_text(raw.get("updated_at")),
            department_id=_id(raw.get("department_id")),
            department_ids=_id_list(raw.get("department_ids")),
            department_names=_str_list(raw.get("department_names")),
            # "Ansprechpartner" flag: true / false / null in Freshservice
            is_contact_person=extract_field(cf, "ansprechpartner") is True,
        )


@dataclass
class AssetRecord:
    """A Freshservice asset with its type fields flattened."""
    id: str
    display_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    updated_at: Optional[str] = None
    asset_type_id: Optional[str] = None
    department_id: Optional[str] = None
    ip_address: Optional[str] = None
    os_label: Optional[str] = None
    server_role: Optional[str] = None
    maintenance_interval: Optional[str] = None
    compute_type: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "AssetRecord":
        tf = raw.get("type_fields") or {}
        return cls(
            id=str(raw["id"]),
            display_id=_id(raw.get("display_id")),
            name=clean_text(raw.get("name")),
            description=clean_text(raw.get("description")),
            updated_at=clean_text(raw.get("updated_at")),
            asset_type_id=_id(raw.get("asset_type_id")),
            department_id=_id(raw.get("department_id")),
            ip_address=clean_text(extract_field(tf, "computer_ip_address")),
            os_label=clean_text(extract_field(tf, "betriebssystem")),
            server_role=clean_text(extract_field(tf, "serverrolle")),
            maintenance_interval=clean_text(extract_field(tf, "wartungsintervall")),
            compute_type=clean_text(extract_field(tf, "compute_type")),
        )


@dataclass
class AssetTypeRecord:
    id: str
    name: str

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "AssetTypeRecord":
        return cls(id=str(raw["id"]), name=clean_text(raw.get("name")) or "")


@dataclass
class ApplicationRecord:
    id: str
    name: str
    status: Optional[str] = None

    @property
    def is_managed(self) -> bool:
        return self.status == "managed"

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "ApplicationRecord":
        return cls(
            id=str(raw["id"]),
            name=clean_text(raw.get("name")) or "",
            status=clean_text(raw.get("status")),
        )


@dataclass
class InstallationRecord:
    """One installation; installation_machine_id is the asset's display_id."""
    installation_machine_id: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "InstallationRecord":
        return cls(installation_machine_id=_id(raw.get("installation_machine_id")))
