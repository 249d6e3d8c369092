"""Alert, notification channel and delivery repositories."""

from __future__ import annotations

from typing import Any

from cuyfarm.core.repository import BaseRepository, _build_where


class AlertRepository(BaseRepository):
    """CRUD for the ``alertas`` table.

    Replaces inline raw SQL in :mod:`cuyfarm.ops.alerts` and the alert
    rules.
    """

    TABLE = "alertas"

    def list_alerts(
        self,
        *,
        alert_type: str | None = None,
        severity: str | None = None,
        read: bool | None = None,
        user_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """List alerts newest first.  Returns ``(rows, total)``."""
        clauses: list[str] = []
        if read is True:
            clauses.append("read_at IS NOT NULL")
        elif read is False:
            clauses.append("read_at IS NULL")
        where, params = _build_where(
            {"type": alert_type, "severity": severity, "user_id": user_id},
            extra_clauses=clauses,
        )
        return self.paginate(where, params, order_by="created_at DESC", limit=limit, offset=offset)

    def create_alert(self, data: dict[str, Any]) -> str:
        return self.insert(self.TABLE, data)

    def find_unread(self, alert_type: str, entity_id: str) -> dict[str, Any] | None:
        """Unread alert of *alert_type* already raised for *entity_id*."""
        return self.query_one(
            "SELECT * FROM alertas WHERE type = ? AND related_entity_id = ? AND read_at IS NULL",
            (alert_type, entity_id),
        )

    def mark_read(self, alert_id: str, read_at: str, action_taken: str | None = None) -> None:
        self.update(self.TABLE, alert_id, {"read_at": read_at, "action_taken": action_taken})

    def mark_all_read(self, read_at: str, user_id: str | None = None) -> int:
        where, params = _build_where({"user_id": user_id}, extra_clauses=["read_at IS NULL"])
        affected = self.count(where, params)
        self.execute(f"UPDATE alertas SET read_at = ? WHERE {where}", (read_at, *params))
        return affected

    def delete_alert(self, alert_id: str) -> None:
        self.execute("DELETE FROM notification_deliveries WHERE alert_id = ?", (alert_id,))
        self.delete(alert_id)

    def grouped(self, column: str) -> dict[str, int]:
        if column not in ("type", "severity"):
            raise ValueError(f"Unknown alert column: {column}")
        rows = self.query(f"SELECT {column} AS k, COUNT(*) AS total FROM alertas GROUP BY {column}")
        return {r["k"]: int(r["total"]) for r in rows}

    def delete_older_than(self, cutoff: str) -> int:
        affected = self.count("created_at < ?", (cutoff,))
        self.execute("DELETE FROM notification_deliveries WHERE alert_id IN "
                     "(SELECT id FROM alertas WHERE created_at < ?)", (cutoff,))
        self.execute("DELETE FROM alertas WHERE created_at < ?", (cutoff,))
        return affected


class ChannelRepository(BaseRepository):
    """CRUD for ``notification_channels``."""

    TABLE = "notification_channels"

    def list_channels(
        self,
        *,
        enabled: bool | None = None,
        channel_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        conds: dict[str, Any] = {"type": channel_type}
        if enabled is not None:
            conds["enabled"] = 1 if enabled else 0
        where, params = _build_where(conds)
        return self.paginate(where, params, order_by="name ASC", limit=limit, offset=offset)

    def enabled_ids(self) -> list[str]:
        return [r["id"] for r in self.query(
            "SELECT id FROM notification_channels WHERE enabled = 1 ORDER BY id"
        )]

    def create_channel(self, data: dict[str, Any]) -> str:
        return self.insert(self.TABLE, data)

    def update_channel(self, channel_id: str, updates: dict[str, Any]) -> None:
        self.update(self.TABLE, channel_id, updates)


class DeliveryRepository(BaseRepository):
    """CRUD for ``notification_deliveries``."""

    TABLE = "notification_deliveries"

    def list_deliveries(
        self,
        *,
        alert_id: str | None = None,
        channel_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        where, params = _build_where(
            {"alert_id": alert_id, "channel_id": channel_id, "status": status},
        )
        return self.paginate(where, params, order_by="created_at DESC", limit=limit, offset=offset)

    def create_delivery(self, data: dict[str, Any]) -> str:
        return self.insert(self.TABLE, data)

    def update_delivery(self, delivery_id: str, updates: dict[str, Any]) -> None:
        self.update(self.TABLE, delivery_id, updates)

    def retryable(self, max_attempts: int) -> list[dict[str, Any]]:
        """Failed deliveries that still have attempts left, oldest first."""
        return self.query(
            "SELECT * FROM notification_deliveries WHERE status = 'failed' AND attempts < ? "
            "ORDER BY created_at ASC",
            (max_attempts,),
        )

    def counts_by_status(self) -> dict[str, int]:
        rows = self.query(
            "SELECT status, COUNT(*) AS total FROM notification_deliveries GROUP BY status"
        )
        return {r["status"]: int(r["total"]) for r in rows}

    def by_channel(self) -> dict[str, dict[str, int]]:
        rows = self.query(
            "SELECT channel_id, status, COUNT(*) AS total FROM notification_deliveries "
            "GROUP BY channel_id, status"
        )
        result: dict[str, dict[str, int]] = {}
        for r in rows:
            result.setdefault(r["channel_id"], {})[r["status"]] = int(r["total"])
        return result

    def delete_older_than(self, cutoff: str) -> int:
        affected = self.count("created_at < ?", (cutoff,))
        self.execute("DELETE FROM notification_deliveries WHERE created_at < ?", (cutoff,))
        return affected
