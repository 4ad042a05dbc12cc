"""
Wedding Manager — List Queries.

Filtering and sorting used by the guest, gift, task, dashboard and inbox
screens. All functions are pure and return new lists.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from enum import Enum

from wedding_manager.data.models import (
    Attendance,
    Gift,
    GiftCategory,
    Guest,
    Message,
    MessageType,
    TaskPriority,
    WeddingTask,
    utcnow,
)


class GuestFilter(str, Enum):
    ALL = "all"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    PENDING = "pending"


class GiftFilter(str, Enum):
    ALL = "all"
    MONEY = "money"
    ITEMS = "items"
    SERVICES = "services"


class TaskFilter(str, Enum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    URGENT = "urgent"


class MessageFilter(str, Enum):
    ALL = "all"
    UNREAD = "unread"
    RSVP = "rsvp"
    QUESTIONS = "questions"


_GUEST_STATUS = {
    GuestFilter.CONFIRMED: Attendance.YES,
    GuestFilter.DECLINED: Attendance.NO,
    GuestFilter.PENDING: Attendance.MAYBE,
}

_GIFT_CATEGORY = {
    GiftFilter.MONEY: GiftCategory.MONEY,
    GiftFilter.ITEMS: GiftCategory.ITEM,
    GiftFilter.SERVICES: GiftCategory.SERVICE,
}


_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.casefold() in haystack.casefold()


def filter_guests(
    guests: Iterable[Guest],
    search: str = "",
    status: GuestFilter = GuestFilter.ALL,
) -> list[Guest]:
    """Match on name or phone, filter by attendance, sort by name."""
    result = [
        g for g in guests
        if (not search or _contains(g.full_name, search) or _contains(g.phone, search))
        and (status is GuestFilter.ALL or g.attendance is _GUEST_STATUS[status])
    ]
    return sorted(result, key=lambda g: g.full_name)


def recent_guests(guests: Iterable[Guest], limit: int = 3) -> list[Guest]:
    return sorted(guests, key=lambda g: g.created_at, reverse=True)[:limit]


def filter_gifts(
    gifts: Iterable[Gift],
    search: str = "",
    kind: GiftFilter = GiftFilter.ALL,
) -> list[Gift]:
    """Filter by category and search text, newest first."""
    result = [
        g for g in gifts
        if (kind is GiftFilter.ALL or g.category is _GIFT_CATEGORY[kind])
        and (not search or _contains(g.guest_name, search) or _contains(g.description, search))
    ]
    return sorted(result, key=lambda g: g.received_date, reverse=True)


def _task_matches(task: WeddingTask, kind: TaskFilter, now: datetime) -> bool:
    if kind is TaskFilter.PENDING:
        return not task.is_completed
    if kind is TaskFilter.COMPLETED:
        return task.is_completed
    if kind is TaskFilter.OVERDUE:
        return task.is_overdue(now)
    if kind is TaskFilter.URGENT:
        return task.priority in (TaskPriority.HIGH, TaskPriority.URGENT)
    return True


def _task_sort_key(task: WeddingTask) -> tuple:
    # Incomplete first, then dated before undated (earliest first),
    # then highest priority first.
    return (
        task.is_completed,
        task.due_date is None,
        task.due_date or _FAR_FUTURE,
        -task.priority.rank,
    )


def filter_tasks(
    tasks: Iterable[WeddingTask],
    search: str = "",
    kind: TaskFilter = TaskFilter.ALL,
    now: datetime | None = None,
) -> list[WeddingTask]:
    now = now or utcnow()
    result = [
        t for t in tasks
        if _task_matches(t, kind, now)
        and (
            not search
            or _contains(t.title, search)
            or _contains(t.description, search)
            or _contains(t.category.display_name, search)
        )
    ]
    return sorted(result, key=_task_sort_key)


def upcoming_tasks(
    tasks: Iterable[WeddingTask],
    now: datetime | None = None,
    days: int = 7,
    limit: int = 3,
) -> list[WeddingTask]:
    """Incomplete tasks due within the next *days*, soonest first."""
    now = now or utcnow()
    horizon = now + timedelta(days=days)
    due_soon = [
        t for t in tasks
        if not t.is_completed and t.due_date is not None and now <= t.due_date <= horizon
    ]
    return sorted(due_soon, key=lambda t: t.due_date)[:limit]


def filter_messages(
    messages: Iterable[Message],
    kind: MessageFilter = MessageFilter.ALL,
) -> list[Message]:
    def matches(m: Message) -> bool:
        if kind is MessageFilter.UNREAD:
            return not m.is_read
        if kind is MessageFilter.RSVP:
            return m.type is MessageType.RSVP
        if kind is MessageFilter.QUESTIONS:
            return m.type is MessageType.QUESTION
        return True

    return sorted(
        (m for m in messages if matches(m)),
        key=lambda m: m.received_date,
        reverse=True,
    )
