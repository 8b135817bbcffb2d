"""
================================================================================
Field Translators: Freshservice free text → local closed enumerations
================================================================================

Freshservice keeps operating system, server role and compute type as free text
or loosely enumerated dropdowns (partly in German). The local system table
requires closed enums for filtering and reporting, so every translation here
is TOTAL: any input, including None and non-strings, yields a valid member.

Matching Logic:
---------------
1. Normalize: str(), trim, collapse inner whitespace, upper-case
2. Look up the normalized label in a table of known variants
3. Accept the enum code itself (e.g. "WIN_SVR_2022") as a variant
4. Anything else falls back to OTHER_OS / NONE / PHYSICAL

Usage Example:
--------------
    from fssync.field_mapper import map_operating_system, map_server_application_type

    map_operating_system("Windows Server 2022")   # OperatingSystem.WIN_SVR_2022
    map_server_application_type("Sonstiges")      # ServerApplicationType.OTHER
    map_operating_system(None)                     # OperatingSystem.OTHER_OS
"""

import re
from typing import Any, Dict, Optional

from .models import HardwareType, OperatingSystem, ServerApplicationType


# =============================================================================
# VARIANT TABLES
# =============================================================================

# Normalized (upper-case, single-spaced) label -> enum member
OPERATING_SYSTEM_VARIANTS: Dict[str, OperatingSystem] = {
    # Windows Server
    "WINDOWS SERVER 2025": OperatingSystem.WIN_SVR_2025,
    "WINDOWS SERVER 2022": OperatingSystem.WIN_SVR_2022,
    "WINDOWS SERVER 2019": OperatingSystem.WIN_SVR_2019,
    "WINDOWS SERVER 2016": OperatingSystem.WIN_SVR_2016,
    "WINDOWS SERVER 2012 R2": OperatingSystem.WIN_SVR_2012_R2,
    "WINDOWS SERVER 2012R2": OperatingSystem.WIN_SVR_2012_R2,
    # Windows client
    "WINDOWS 10": OperatingSystem.WIN_10,
    "WINDOWS 11": OperatingSystem.WIN_11,
    # Debian
    "DEBIAN 10": OperatingSystem.DEBIAN_10,
    "DEBIAN 11": OperatingSystem.DEBIAN_11,
    "DEBIAN 12": OperatingSystem.DEBIAN_12,
    # CentOS
    "CENTOS 7": OperatingSystem.CENTOS_7,
    "CENTOS 8": OperatingSystem.CENTOS_8,
    "CENTOS 9": OperatingSystem.CENTOS_9,
    # Ubuntu (major and LTS point releases)
    "UBUNTU 18": OperatingSystem.UBUNTU_18,
    "UBUNTU 18.04": OperatingSystem.UBUNTU_18,
    "UBUNTU 20": OperatingSystem.UBUNTU_20,
    "UBUNTU 20.04": OperatingSystem.UBUNTU_20,
    "UBUNTU 22": OperatingSystem.UBUNTU_22,
    "UBUNTU 22.04": OperatingSystem.UBUNTU_22,
    # Amazon Linux
    "AMAZON LINUX 2": OperatingSystem.AMAZON_LINUX_2,
    "AMAZON LINUX 2023": OperatingSystem.AMAZON_LINUX_2023,
    # Unversioned Linux distributions
    "LINUX": OperatingSystem.LINUX,
    "UBUNTU": OperatingSystem.LINUX,
    "DEBIAN": OperatingSystem.LINUX,
    # Apple
    "MACOS": OperatingSystem.MACOS,
    "MAC OS": OperatingSystem.MACOS,
    # Hypervisor
    "ESXI": OperatingSystem.ESXI,
    "VMWARE ESXI": OperatingSystem.ESXI,
}

SERVER_ROLE_VARIANTS: Dict[str, ServerApplicationType] = {
    "EXCHANGE": ServerApplicationType.EXCHANGE,
    "EXCHANGE SERVER": ServerApplicationType.EXCHANGE,
    "SQL": ServerApplicationType.SQL,
    "SQL SERVER": ServerApplicationType.SQL,
    "FILE": ServerApplicationType.FILE,
    "FILE SERVER": ServerApplicationType.FILE,
    "FILESERVER": ServerApplicationType.FILE,
    "DATEISERVER": ServerApplicationType.FILE,
    "DOMAIN": ServerApplicationType.DOMAIN,
    "DOMAIN CONTROLLER": ServerApplicationType.DOMAIN,
    "DOMÄNENCONTROLLER": ServerApplicationType.DOMAIN,
    "BACKUP": ServerApplicationType.BACKUP,
    "BACKUP SERVER": ServerApplicationType.BACKUP,
    "BACKUPSERVER": ServerApplicationType.BACKUP,
    "RDS": ServerApplicationType.RDS,
    "REMOTE DESKTOP SERVER": ServerApplicationType.RDS,
    "TERMINALSERVER": ServerApplicationType.RDS,
    "APPLICATION": ServerApplicationType.APPLICATION,
    "APPLICATION SERVER": ServerApplicationType.APPLICATION,
    "APPLIKATIONSSERVER": ServerApplicationType.APPLICATION,
    "OTHER": ServerApplicationType.OTHER,
    "SONSTIGES": ServerApplicationType.OTHER,
    "NONE": ServerApplicationType.NONE,
    "KEINE": ServerApplicationType.NONE,
}


# =============================================================================
# TRANSLATION FUNCTIONS
# =============================================================================

def _normalize(value: Any) -> Optional[str]:
    """
    Normalize a raw label for table lookup.

    Returns:
        Upper-case, trimmed, single-spaced label, or None for empty input
    """
    if value is None:
        return None
    text = re.sub(r"\s+", " ", str(value)).strip().upper()
    return text or None


def map_operating_system(raw_label: Any) -> OperatingSystem:
    """
    Translate a Freshservice OS label into the OperatingSystem enum.

    Args:
        raw_label: Free-text label (e.g. "Windows Server 2022"), may be None

    Returns:
        Matching OperatingSystem member, OTHER_OS when unrecognized

    Example:
        >>> map_operating_system("debian 11")
        <OperatingSystem.DEBIAN_11: 'DEBIAN_11'>
    """
    label = _normalize(raw_label)
    if label is None:
        return OperatingSystem.OTHER_OS

    if label in OPERATING_SYSTEM_VARIANTS:
        return OPERATING_SYSTEM_VARIANTS[label]

    # Enum code stored verbatim (e.g. values entered through the local UI)
    if label in OperatingSystem.__members__:
        return OperatingSystem[label]

    return OperatingSystem.OTHER_OS


def map_server_application_type(raw_role: Any) -> ServerApplicationType:
    """
    Translate a Freshservice server role into the ServerApplicationType enum.

    Args:
        raw_role: Free-text role (e.g. "SQL Server", "Applikationsserver")

    Returns:
        Matching ServerApplicationType member, NONE when unrecognized
    """
    label = _normalize(raw_role)
    if label is None:
        return ServerApplicationType.NONE

    return SERVER_ROLE_VARIANTS.get(label, ServerApplicationType.NONE)


def map_hardware_type(compute_type: Any) -> HardwareType:
    """"Virtual" compute type → VIRTUAL, everything else → PHYSICAL."""
    if _normalize(compute_type) == "VIRTUAL":
        return HardwareType.VIRTUAL
    return HardwareType.PHYSICAL
