"""
Closed enumerations and field lists of the local maintenance tables.

The local schema stores enums as their string value; the reconciler compares
and writes `.value`.
"""

from enum import Enum


class HardwareType(Enum):
    PHYSICAL = "PHYSICAL"
    VIRTUAL = "VIRTUAL"


class OperatingSystem(Enum):
    WIN_SVR_2012_R2 = "WIN_SVR_2012_R2"
    WIN_SVR_2016 = "WIN_SVR_2016"
    WIN_SVR_2019 = "WIN_SVR_2019"
    WIN_SVR_2022 = "WIN_SVR_2022"
    WIN_SVR_2025 = "WIN_SVR_2025"
    WIN_10 = "WIN_10"
    WIN_11 = "WIN_11"
    DEBIAN_10 = "DEBIAN_10"
    DEBIAN_11 = "DEBIAN_11"
    DEBIAN_12 = "DEBIAN_12"
    CENTOS_7 = "CENTOS_7"
    CENTOS_8 = "CENTOS_8"
    CENTOS_9 = "CENTOS_9"
    UBUNTU_18 = "UBUNTU_18"
    UBUNTU_20 = "UBUNTU_20"
    UBUNTU_22 = "UBUNTU_22"
    AMAZON_LINUX_2 = "AMAZON_LINUX_2"
    AMAZON_LINUX_2023 = "AMAZON_LINUX_2023"
    LINUX = "LINUX"
    MACOS = "MACOS"
    ESXI = "ESXI"
    OTHER_OS = "OTHER_OS"


class ServerApplicationType(Enum):
    EXCHANGE = "EXCHANGE"
    SQL = "SQL"
    FILE = "FILE"
    DOMAIN = "DOMAIN"
    BACKUP = "BACKUP"
    RDS = "RDS"
    APPLICATION = "APPLICATION"
    OTHER = "OTHER"
    NONE = "NONE"


class ContactSource(Enum):
    """Where a contact_person row came from."""
    AGENT = "agent"
    REQUESTER = "requester"
    MANUAL = "manual"


# Columns the reconciler owns per table. Anything else on a row (created_at,
# manual notes, ...) is never diffed.
CUSTOMER_FIELDS = (
    "name",
    "address",
    "city",
    "postal_code",
    "country",
    "business_email",
    "business_phone",
    "website",
    "abbreviation",
    "category",
    "billing_code",
    "service_manager",
    "sla",
)

SYSTEM_FIELDS = (
    "customer_id",
    "hostname",
    "ip_address",
    "description",
    "hardware_type",
    "operating_system",
    "server_application_type",
    "installed_software",
    "maintenance_interval",
)

CONTACT_FIELDS = (
    "customer_id",
    "name",
    "email",
    "phone",
)
