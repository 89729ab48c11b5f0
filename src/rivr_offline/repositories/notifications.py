"""Local history of delivered flow alerts."""

from __future__ import annotations

import uuid
from typing import Any

from rivr_offline.clock import Clock, system_clock, to_datetime, to_ms
from rivr_offline.schemas import AlertPriority, FlowUnit, NotificationHistoryItem
from rivr_offline.storage.database import TABLE_NOTIFICATIONS, CacheDatabase

DEFAULT_HISTORY_LIMIT = 50


def new_notification_id() -> str:
    return uuid.uuid4().hex


class NotificationHistoryRepository:
    def __init__(self, database: CacheDatabase, clock: Clock = system_clock) -> None:
        self.db = database
        self.clock = clock

    def record(self, item: NotificationHistoryItem) -> None:
        self.db.execute(
            f"INSERT OR REPLACE INTO {TABLE_NOTIFICATIONS} "  # noqa: S608
            "(id, user_id, reach_id, notification_type, flow_value, flow_unit, category, message, "
            "delivery_status, delivery_method, triggered_by, sent_at, read_at, error_message) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                item.id,
                item.user_id,
                item.reach_id,
                item.notification_type.value,
                item.flow_value,
                item.flow_unit.value,
                item.category,
                item.message,
                item.delivery_status,
                item.delivery_method,
                item.triggered_by,
                to_ms(item.sent_at),
                to_ms(item.read_at) if item.read_at else None,
                item.error_message,
            ),
        )

    def get_history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[NotificationHistoryItem]:
        """Most recent notifications first."""
        rows = self.db.query(
            f"SELECT * FROM {TABLE_NOTIFICATIONS} WHERE user_id = ? "  # noqa: S608
            "ORDER BY sent_at DESC LIMIT ?",
            (user_id, limit),
        )
        return [_item_from_row(r) for r in rows]

    def mark_read(self, notification_id: str) -> bool:
        return (
            self.db.execute(
                f"UPDATE {TABLE_NOTIFICATIONS} SET read_at = ? WHERE id = ? AND read_at IS NULL",  # noqa: S608
                (self.clock(), notification_id),
            )
            > 0
        )

    def mark_all_read(self, user_id: str) -> int:
        return self.db.execute(
            f"UPDATE {TABLE_NOTIFICATIONS} SET read_at = ? WHERE user_id = ? AND read_at IS NULL",  # noqa: S608
            (self.clock(), user_id),
        )

    def unread_count(self, user_id: str) -> int:
        return self.db.count(TABLE_NOTIFICATIONS, "user_id = ? AND read_at IS NULL", (user_id,))

    def clear(self, user_id: str) -> int:
        return self.db.execute(f"DELETE FROM {TABLE_NOTIFICATIONS} WHERE user_id = ?", (user_id,))  # noqa: S608


def _item_from_row(row: Any) -> NotificationHistoryItem:
    return NotificationHistoryItem(
        id=row["id"],
        user_id=row["user_id"],
        reach_id=row["reach_id"],
        notification_type=AlertPriority(row["notification_type"]),
        flow_value=row["flow_value"],
        flow_unit=FlowUnit(row["flow_unit"]),
        category=row["category"],
        message=row["message"],
        delivery_status=row["delivery_status"],
        delivery_method=row["delivery_method"],
        triggered_by=row["triggered_by"],
        sent_at=to_datetime(row["sent_at"]),
        read_at=to_datetime(row["read_at"]) if row["read_at"] is not None else None,
        error_message=row["error_message"],
    )
