"""
================================================================================
Freshservice API Client
================================================================================

This module provides a read-only Python client for the Freshservice v2 API.
It handles:

1. Basic authentication with the account API key
2. Page-by-page listing of every collection the sync needs
3. Waiting out HTTP 429 rate limits and retrying the same page

Freshservice API Overview:
--------------------------
- Base URL: https://<domain>/api/v2/
- Auth: HTTP basic, username = API key, password = "X"
- Format: JSON, collections wrapped in a key named after the resource
  (e.g. {"departments": [...]})
- Pagination: ?page=N&per_page=100, an empty page marks the end
- Rate Limits: per account and minute, 429 + Retry-After when exceeded

Main Endpoints Used:
-------------------
- GET /departments                       - Customers (companies are departments)
- GET /agents                            - Technicians / internal contacts
- GET /requesters                        - End users / customer contacts
- GET /assets?include=type_fields        - Assets with their type-specific fields
- GET /asset_types                       - Asset type names
- GET /applications                      - Software applications
- GET /applications/{id}/installations   - Where an application is installed
- GET /department_fields                 - Field metadata (diagnostics)
- GET /agent_fields                      - Health check

Error Policy:
-------------
A 429 is the only condition that is retried. Every other non-2xx status,
network error or undecodable body raises FreshserviceClientError and aborts
the caller's stream.

Usage Example:
--------------
    from fssync.config import load_config
    from fssync.fs_client import FreshserviceClient

    config = load_config()
    client = FreshserviceClient(config.freshservice)

    departments = client.list_departments()
    print(f"Found {len(departments)} departments")
"""

from typing import Any, Dict, List, Optional

import requests  # HTTP library for API calls

from .config import FreshserviceConfig
from .logger import get_logger
from .rate_limiter import RateLimiter

logger = get_logger("fssync.fs_client")


# =============================================================================
# CUSTOM EXCEPTION
# =============================================================================

class FreshserviceClientError(Exception):
    """
    Exception raised for Freshservice API errors.

    This exception is raised when:
    - The API returns a non-2xx status other than 429
    - A network error occurs (connection refused, timeout, ...)
    - The response body is not valid JSON

    Example:
        >>> try:
        ...     agents = client.list_agents()
        ... except FreshserviceClientError as e:
        ...     print(f"API Error: {e}")
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# MAIN CLIENT CLASS
# =============================================================================

class FreshserviceClient:
    """
    Client for reading collections from the Freshservice v2 API.

    Attributes:
        config: FreshserviceConfig with domain, API key and paging settings
        rate_limiter: RateLimiter enforcing the 429 cooldown

    Example:
        >>> client = FreshserviceClient(config.freshservice)
        >>> assets = client.list_assets()
    """

    def __init__(self, config: FreshserviceConfig, rate_limiter: Optional[RateLimiter] = None):
        """
        Initialize the Freshservice client.

        Args:
            config: FreshserviceConfig object containing:
                    - domain: Freshservice account domain
                    - api_key: API key used for basic auth
                    - page_size / request_timeout / rate_limit_margin
            rate_limiter: Optional limiter (a default one is created otherwise)
        """
        self.config = config
        self.rate_limiter = rate_limiter or RateLimiter(
            name="Freshservice",
            min_interval=config.min_request_interval,
            safety_margin=config.rate_limit_margin,
        )

    # =========================================================================
    # PRIVATE HELPER METHODS
    # =========================================================================

    def _get_headers(self) -> Dict[str, str]:
        """Headers sent with every request (auth goes through requests' auth=)."""
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @staticmethod
    def _parse_retry_after(value: Optional[str]) -> Optional[float]:
        """
        Parse a Retry-After header given in seconds.

        Returns:
            Seconds as float, or None when absent or not numeric
        """
        if not value:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    # =========================================================================
    # CORE REQUEST METHOD
    # =========================================================================

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Any:
        """
        Make an authenticated API request.

        Loops only while the API answers 429; each 429 is turned into a
        cooldown on the rate limiter and the identical request is sent again.

        Args:
            method: HTTP method ("GET")
            endpoint: Path relative to the v2 base URL (e.g., "departments")
            **kwargs: Additional arguments passed to requests.request()

        Returns:
            Parsed JSON response from the API

        Raises:
            FreshserviceClientError: On any non-2xx status other than 429,
                on network errors, or when the body is not JSON
        """
        url = f"{self.config.base_url}{endpoint}"

        while True:
            self.rate_limiter.wait()

            try:
                resp = requests.request(
                    method,
                    url,
                    headers=self._get_headers(),
                    auth=(self.config.api_key, "X"),
                    timeout=self.config.request_timeout,
                    **kwargs,
                )
            except requests.RequestException as e:
                raise FreshserviceClientError(f"{method} {url} failed: {e}") from e

            if resp.status_code == 429:
                retry_after = self._parse_retry_after(resp.headers.get("Retry-After"))
                self.rate_limiter.on_rate_limit(retry_after)
                logger.info(f"Rate limited on {endpoint}, retrying same request...")
                continue

            self.rate_limiter.on_success()

            if not 200 <= resp.status_code < 300:
                raise FreshserviceClientError(
                    f"{method} {url} failed: {resp.status_code} - {resp.text}",
                    status_code=resp.status_code,
                )

            try:
                return resp.json()
            except ValueError as e:
                raise FreshserviceClientError(f"{method} {url} returned invalid JSON: {e}") from e

    def _get_paged(
        self,
        endpoint: str,
        collection_key: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch ALL records of a collection with automatic pagination.

        Args:
            endpoint: Collection path (e.g., "assets")
            collection_key: JSON key wrapping the list (e.g., "assets")
            params: Extra query parameters sent with every page

        Returns:
            List of all record dictionaries, in API order
        """
        records: List[Dict[str, Any]] = []
        page = 1

        while True:
            query = dict(params or {})
            query.update({"page": page, "per_page": self.config.page_size})

            data = self._make_request("GET", endpoint, params=query)

            if isinstance(data, dict):
                items = data.get(collection_key) or []
            elif isinstance(data, list):
                items = data
            else:
                raise FreshserviceClientError(
                    f"GET {endpoint} returned unexpected payload type {type(data).__name__}"
                )

            if not items:
                break

            records.extend(items)
            logger.debug(f"Fetched {endpoint} page {page}: {len(items)} records")
            page += 1

        logger.info(f"Total {collection_key} retrieved: {len(records)}")
        return records

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    def list_departments(self) -> List[Dict[str, Any]]:
        """Get all departments (mirrored as customers)."""
        return self._get_paged("departments", "departments")

    def list_agents(self) -> List[Dict[str, Any]]:
        """Get all agents."""
        return self._get_paged("agents", "agents")

    def list_requesters(self) -> List[Dict[str, Any]]:
        """Get all requesters."""
        return self._get_paged("requesters", "requesters")

    def list_assets(self) -> List[Dict[str, Any]]:
        """
        Get all assets including their type-specific fields.

        Type fields come back keyed with a trailing numeric suffix, e.g.
        "betriebssystem_7000123456"; see records.AssetRecord.
        """
        return self._get_paged("assets", "assets", params={"include": "type_fields"})

    def list_asset_types(self) -> List[Dict[str, Any]]:
        """Get all asset types (id → name)."""
        return self._get_paged("asset_types", "asset_types")

    def list_applications(self) -> List[Dict[str, Any]]:
        """Get all software applications."""
        return self._get_paged("applications", "applications")

    def list_application_installations(self, application_id: str) -> List[Dict[str, Any]]:
        """
        Get all installations of one application.

        Args:
            application_id: Freshservice application ID

        Returns:
            Installation dictionaries; installation_machine_id refers to
            the asset's display_id
        """
        return self._get_paged(f"applications/{application_id}/installations", "installations")

    def get_department_fields(self) -> List[Dict[str, Any]]:
        """Get the department field definitions (custom field names)."""
        data = self._make_request("GET", "department_fields")
        return data.get("department_fields", []) if isinstance(data, dict) else []

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def health_check(self) -> Dict[str, Any]:
        """
        Check connectivity and credentials with a cheap request.

        Never raises. Goes through the rate limiter like every other request,
        but a 429 is reported rather than retried.

        Returns:
            {"ok": bool, "status": int, "body": ...} or
            {"ok": False, "status": 0, "error": "..."} on network failure
        """
        url = f"{self.config.base_url}agent_fields"
        self.rate_limiter.wait()
        try:
            resp = requests.get(
                url,
                headers=self._get_headers(),
                auth=(self.config.api_key, "X"),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Health check failed: {e}")
            return {"ok": False, "status": 0, "error": str(e)}

        if resp.status_code == 429:
            self.rate_limiter.on_rate_limit(self._parse_retry_after(resp.headers.get("Retry-After")))
        else:
            self.rate_limiter.on_success()

        try:
            body = resp.json()
        except ValueError:
            body = resp.text

        return {"ok": resp.ok, "status": resp.status_code, "body": body}
