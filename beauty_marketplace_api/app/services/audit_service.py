"""
Audit trail for marketplace actions.

Bookings moving through their lifecycle, catalog edits and cleanups,
provider profile changes, reviews and account changes each leave one
row in ``audit_logs``.  Writing never fails the caller; reading is
reserved to administrators at the router level.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from beauty_marketplace_api.app.core.db import dumps_json, get_connection, loads_json


logger = logging.getLogger(__name__)

# query parameter -> SQL condition
FILTERS: Tuple[Tuple[str, str], ...] = (
    ("user_id", "user_id = ?"),
    ("object_type", "object_type = ?"),
    ("object_id", "object_id = ?"),
    ("action", "action = ?"),
    ("start_date", "timestamp >= ?"),
    ("end_date", "timestamp <= ?"),
)


def _row_to_log(row) -> Dict[str, Any]:
    log = dict(row)
    log["details"] = loads_json(row["details"], row["details"])
    return log


class AuditService:
    """Writes and reads ``audit_logs`` rows."""

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Record one action.

        Errors are logged at WARNING and swallowed.

        Parameters
        ----------
        user_id : Optional[int]
            Acting user; ``None`` for guests, agents and scripts.
        action : str
            Verb such as ``"create"``, ``"confirmed"`` or ``"cleanup"``.
        object_type : str
            ``"booking"``, ``"service"``, ``"therapist"`` ...
        object_id : Optional[int]
            Primary key of the affected row, if any.
        details : Optional[dict]
            Extra data, stored as JSON.
        """
        try:
            conn = get_connection()
            try:
                conn.execute(
                    "INSERT INTO audit_logs (user_id, action, object_type, object_id, details) VALUES (?, ?, ?, ?, ?)",
                    (user_id, action, object_type, object_id, dumps_json(details) if details else None),
                )
                conn.commit()
            finally:
                conn.close()
        except Exception as e:  # noqa: BLE001
            logger.warning("Failed to write audit log %s %s %s: %s", action, object_type, object_id, e)

    @classmethod
    async def list_logs(cls, limit: int = 100, offset: int = 0, **filters: Any) -> List[Dict[str, Any]]:
        """Newest-first audit rows matching the given filters.

        Accepted filters are the keys of ``FILTERS``; ``None`` values are
        ignored.  Dates are ISO strings compared against ``timestamp``.
        """
        unknown = set(filters) - {name for name, _ in FILTERS}
        if unknown:
            raise ValueError(f"Unknown audit filter(s): {', '.join(sorted(unknown))}")

        clauses: List[str] = []
        params: List[Any] = []
        for name, condition in FILTERS:
            if filters.get(name) is not None:
                clauses.append(condition)
                params.append(filters[name])

        query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"

        conn = get_connection()
        try:
            rows = conn.execute(query, (*params, limit, offset)).fetchall()
        finally:
            conn.close()
        return [_row_to_log(row) for row in rows]
