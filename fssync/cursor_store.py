"""
Per-stream high-water marks for the Freshservice sync.

Each stream stores the newest Freshservice `updated_at` it has processed in
the settings table as {"lastSyncedAt": "<ISO-8601>"}. The mark is reported
only; every run still lists the full collection from Freshservice.
"""

from typing import Optional

from .db import Database

EPOCH = "1970-01-01T00:00:00Z"

CURSOR_CUSTOMERS = "fs_cursor_mirror_customers"
CURSOR_SYSTEMS = "fs_cursor_systems"
CURSOR_AGENTS = "fs_cursor_agents"
CURSOR_REQUESTERS = "fs_cursor_requesters"


class CursorStore:
    """Read and write stream cursors through the settings table."""

    def __init__(self, db: Database):
        self.db = db

    def get_cursor(self, stream_key: str) -> Optional[str]:
        """
        Get the stored high-water mark.

        Returns:
            ISO-8601 timestamp, or None when the stream never completed
        """
        value = self.db.get_setting(stream_key)
        if isinstance(value, dict) and isinstance(value.get("lastSyncedAt"), str):
            return value["lastSyncedAt"]
        return None

    def set_cursor(self, stream_key: str, timestamp: str):
        """Store the high-water mark (last write wins)."""
        self.db.set_setting(stream_key, {"lastSyncedAt": timestamp})
