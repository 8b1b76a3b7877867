"""Persisted client state: recent searches and resumable form drafts."""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from sqlite_utils import Database

from ..core.config import Settings, get_settings

logger = structlog.get_logger(__name__)

STATE_TABLE = "client_state"
MIN_SEARCH_LENGTH = 2


class StateStore:
    """Key/value rows holding the JSON state a browser would keep locally."""

    def __init__(self, db_path: Optional[str] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.db_path = db_path or self.settings.state_db_path
        if self.db_path == ":memory:":
            conn = sqlite3.connect(":memory:", check_same_thread=False)
        else:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.db = Database(conn)
        self.db[STATE_TABLE].create(
            {"key": str, "value": str, "updated_at": str},
            pk="key",
            if_not_exists=True,
        )

    def _get(self, key: str) -> Any:
        rows = list(self.db[STATE_TABLE].rows_where("key = ?", [key]))
        if not rows:
            return None
        try:
            return json.loads(rows[0]["value"])
        except (TypeError, ValueError) as e:
            logger.warning("Discarding unreadable client state", key=key, error=str(e))
            return None

    def _set(self, key: str, value: Any) -> None:
        self.db[STATE_TABLE].upsert(
            {"key": key, "value": json.dumps(value), "updated_at": datetime.now(timezone.utc).isoformat()},
            pk="key",
        )
        self.db.conn.commit()

    def _delete(self, key: str) -> None:
        self.db.execute(f"DELETE FROM {STATE_TABLE} WHERE key = ?", [key])
        self.db.conn.commit()

    # Recent searches
    def recent_searches(self, owner: str = "anonymous") -> List[str]:
        value = self._get(f"recent_searches:{owner}")
        return [v for v in value if isinstance(v, str)] if isinstance(value, list) else []

    def add_recent_search(self, term: str, owner: str = "anonymous") -> List[str]:
        """Put term first, drop its earlier copy and keep the newest few."""
        term = (term or "").strip()
        current = self.recent_searches(owner)
        if len(term) < MIN_SEARCH_LENGTH:
            return current
        updated = [term] + [item for item in current if item != term]
        updated = updated[: self.settings.recent_search_limit]
        self._set(f"recent_searches:{owner}", updated)
        return updated

    def clear_recent_searches(self, owner: str = "anonymous") -> None:
        self._delete(f"recent_searches:{owner}")

    # Drafts
    def save_draft(self, key: str, data: Dict[str, Any]) -> None:
        self._set(f"draft:{key}", data)

    def load_draft(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._get(f"draft:{key}")
        return value if isinstance(value, dict) else None

    def clear_draft(self, key: str) -> None:
        self._delete(f"draft:{key}")
