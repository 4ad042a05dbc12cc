"""
Wedding Manager — Derived Statistics.

Pure projections over the store's collections. Nothing here holds state;
every value is recomputed from its inputs on each call.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wedding_manager.data.models import BudgetData, GiftData, Guest, Message, TaskData


def percentage(part: float, whole: float) -> float:
    """Return part/whole × 100, or 0 when whole is not positive.

    Not clamped: 150 spent of 100 gives 150.0.
    """
    if whole <= 0:
        return 0.0
    return part / whole * 100


@dataclass(frozen=True)
class DashboardStats:
    """Summary shown on the dashboard. Never stored."""

    total_guests: int
    confirmed_guests: int
    total_budget: float
    spent_amount: float
    completed_tasks: int
    total_tasks: int
    total_gifts: int
    total_gift_amount: float
    unread_messages: int

    @property
    def remaining_budget(self) -> float:
        return self.total_budget - self.spent_amount

    @property
    def budget_percentage(self) -> float:
        return percentage(self.spent_amount, self.total_budget)

    @property
    def task_completion_percentage(self) -> float:
        return percentage(self.completed_tasks, self.total_tasks)

    @property
    def guest_confirmation_percentage(self) -> float:
        return percentage(self.confirmed_guests, self.total_guests)


def build_dashboard_stats(
    guests: Iterable[Guest],
    budget: BudgetData | None,
    gifts: GiftData | None,
    tasks: TaskData | None,
    messages: Iterable[Message] = (),
) -> DashboardStats:
    from wedding_manager.data.models import Attendance

    guest_list = list(guests)
    return DashboardStats(
        total_guests=len(guest_list),
        confirmed_guests=sum(1 for g in guest_list if g.attendance is Attendance.YES),
        total_budget=budget.total_budget if budget else 0.0,
        spent_amount=budget.total_spent if budget else 0.0,
        completed_tasks=len(tasks.completed_tasks) if tasks else 0,
        total_tasks=len(tasks.tasks) if tasks else 0,
        total_gifts=gifts.gift_count if gifts else 0,
        total_gift_amount=gifts.total_money_received if gifts else 0.0,
        unread_messages=sum(1 for m in messages if not m.is_read),
    )


@dataclass(frozen=True)
class GuestStats:
    total: int
    confirmed: int
    declined: int
    pending: int
    total_guest_count: int  # head count including +1s


def compute_guest_stats(guests: Iterable[Guest]) -> GuestStats:
    from wedding_manager.data.models import Attendance

    guest_list = list(guests)
    return GuestStats(
        total=len(guest_list),
        confirmed=sum(1 for g in guest_list if g.attendance is Attendance.YES),
        declined=sum(1 for g in guest_list if g.attendance is Attendance.NO),
        pending=sum(1 for g in guest_list if g.attendance is Attendance.MAYBE),
        total_guest_count=sum(g.guest_count for g in guest_list),
    )
