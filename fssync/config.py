"""
Configuration Management Module for the Freshservice sync.

This module handles all configuration settings for the application, including:
- Loading the Freshservice credentials from environment variables or .env files
- Providing dataclass-based configuration objects for type safety
- Local database location and reconciliation settings (batch size, asset types)
- Rate limit and HTTP timeout settings for the Freshservice client

The configuration uses a hierarchical structure:
- AppConfig (main config)
  └── FreshserviceConfig (Freshservice API settings)

Usage:
    from fssync.config import load_config
    config = load_config()  # Loads from credentials.env by default
    print(config.freshservice.base_url)
    print(config.db_path)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv  # Library to load .env files into environment variables


DEFAULT_ENV_FILE = "credentials.env"


# =============================================================================
# FRESHSERVICE CONFIGURATION
# =============================================================================

@dataclass
class FreshserviceConfig:
    """
    Configuration dataclass for the Freshservice API (v2).

    Freshservice authenticates with HTTP basic auth where the API key is the
    username and the password is the literal "X".

    Attributes:
        domain: Account domain, e.g. "acme.freshservice.com"
        api_key: Personal API key of the integration agent
        page_size: Records per page for list endpoints (API maximum is 100)
        request_timeout: Seconds before a single HTTP request is abandoned
        rate_limit_margin: Extra seconds added to the server's Retry-After
        min_request_interval: Minimum seconds between two requests (0 = no pacing)
    """
    domain: str             # Required: Freshservice account domain
    api_key: str            # Required: API key (basic auth username)
    page_size: int = 100
    request_timeout: float = 60.0
    rate_limit_margin: float = 1.0
    min_request_interval: float = 0.0

    @property
    def base_url(self) -> str:
        """
        Construct the v2 API base URL.

        Returns:
            Base URL with trailing slash
            Example: "https://acme.freshservice.com/api/v2/"
        """
        domain = self.domain.strip().rstrip("/")
        # Tolerate a scheme in the configured domain
        if domain.startswith("https://"):
            domain = domain[len("https://"):]
        elif domain.startswith("http://"):
            domain = domain[len("http://"):]
        return f"https://{domain}/api/v2/"


# =============================================================================
# MAIN APPLICATION CONFIGURATION
# =============================================================================

@dataclass
class AppConfig:
    """
    Main application configuration container.

    Attributes:
        freshservice: Freshservice API configuration
        db_path: SQLite file holding the local maintenance tables
        output_dir: Directory for JSON/CSV exports
        log_dir: Directory for the rotating log file
        batch_size: Rows per INSERT batch when applying a stream
        system_asset_types: Asset type names mirrored into the system table
    """
    freshservice: FreshserviceConfig

    db_path: Path = field(default_factory=lambda: Path("./data/fssync.db"))
    output_dir: Path = field(default_factory=lambda: Path("./output"))
    log_dir: Path = field(default_factory=lambda: Path("./logs"))

    # Reconciliation settings
    batch_size: int = 250
    system_asset_types: List[str] = field(default_factory=lambda: ["VMware Server"])


# =============================================================================
# CONFIGURATION LOADING FUNCTIONS
# =============================================================================

def _split_list(value: str) -> List[str]:
    """Split a comma-separated environment value into trimmed, non-empty items."""
    return [part.strip() for part in value.split(",") if part.strip()]


def load_freshservice_config(env_file: Optional[str] = None) -> FreshserviceConfig:
    """
    Load only the Freshservice configuration.

    Args:
        env_file: Optional path to .env file. Defaults to 'credentials.env'.

    Returns:
        FreshserviceConfig: Configuration for Freshservice API access

    Raises:
        ValueError: If FRESHSERVICE_DOMAIN or FRESHSERVICE_API_KEY is missing
    """
    load_dotenv(env_file or DEFAULT_ENV_FILE)

    domain = os.getenv("FRESHSERVICE_DOMAIN")
    api_key = os.getenv("FRESHSERVICE_API_KEY")

    # Fail fast - a missing key would otherwise surface as 401s mid-run
    if not domain or not api_key:
        raise ValueError(
            "Missing Freshservice credentials. "
            "Set FRESHSERVICE_DOMAIN and FRESHSERVICE_API_KEY in environment."
        )

    return FreshserviceConfig(
        domain=domain,
        api_key=api_key,
        page_size=int(os.getenv("FS_PAGE_SIZE", "100")),
        request_timeout=float(os.getenv("FS_REQUEST_TIMEOUT", "60")),
        rate_limit_margin=float(os.getenv("RATE_LIMIT_MARGIN_SECONDS", "1.0")),
        min_request_interval=float(os.getenv("FS_MIN_REQUEST_INTERVAL", "0")),
    )


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """
    Load complete application configuration from environment variables.

    The function follows this process:
    1. Load environment variables from the .env file
    2. Validate the Freshservice credentials
    3. Parse optional settings (database path, batch size, asset types)
    4. Return complete AppConfig

    Args:
        env_file: Optional path to .env file. If not provided, defaults to
                  'credentials.env' in the current working directory.

    Returns:
        AppConfig: Fully configured application configuration object

    Raises:
        ValueError: If any required environment variables are missing, or
                    SYNC_BATCH_SIZE is not positive.

    Example:
        >>> config = load_config()
        >>> print(config.freshservice.domain)
        >>> print(config.batch_size)  # 250 by default
    """
    fs_config = load_freshservice_config(env_file)

    asset_types = _split_list(os.getenv("FS_SYSTEM_ASSET_TYPES", "VMware Server"))

    batch_size = int(os.getenv("SYNC_BATCH_SIZE", "250"))
    if batch_size < 1:
        raise ValueError(f"SYNC_BATCH_SIZE must be a positive integer, got {batch_size}")

    return AppConfig(
        freshservice=fs_config,
        db_path=Path(os.getenv("DATABASE_PATH", "./data/fssync.db")),
        output_dir=Path(os.getenv("OUTPUT_DIR", "./output")),
        log_dir=Path(os.getenv("LOG_DIR", "./logs")),
        batch_size=batch_size,
        system_asset_types=asset_types or ["VMware Server"],
    )
