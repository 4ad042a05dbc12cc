"""
Wedding Manager — Aggregate Data Store.

Owns every fetched collection (guests, budget, gifts, tasks) plus the
locally managed seating chart, hall layout and inbox, and derives the
dashboard summary from them.

Two write paths exist:
- Guests go through the server first; the server's copy is what lands in
  the collection.
- Budget, gift and task edits are applied to local state immediately and
  only reach the server on an explicit save_budget/save_gifts/save_tasks.
  Until then local and remote may differ, and a failed save keeps the
  local edits (no rollback). Concurrent optimistic edits from several
  callers are not guarded; route them through one event loop.

API and credential errors never escape from network operations: they are
logged and written to ``last_error`` (the newest one overwrites the previous).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from wedding_manager.core.observable import Observable
from wedding_manager.core.statistics import DashboardStats, build_dashboard_stats
from wedding_manager.data.models import (
    BudgetCategory,
    BudgetData,
    BudgetItem,
    ClientId,
    Gift,
    GiftData,
    Guest,
    HallItem,
    HallLayout,
    Message,
    SeatingChart,
    ServerId,
    TaskData,
    WeddingTable,
    WeddingTask,
    utcnow,
)
from wedding_manager.ports.credential_port import CredentialError
from wedding_manager.ports.remote_api_port import ApiError

if TYPE_CHECKING:
    from wedding_manager.ports.remote_api_port import RemoteAPI

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures recorded in last_error; anything else propagates
_REPORTED_ERRORS = (ApiError, CredentialError)


def _splice_guest(
    guests: tuple[Guest, ...],
    saved: Guest,
    replaces: ServerId | None = None,
) -> tuple[Guest, ...]:
    """Put *saved* in place of any guest sharing its id (or *replaces*).

    Keeps guest ids unique; appends when nothing matches.
    """
    targets = {saved.id} if replaces is None else {saved.id, replaces}
    result: list[Guest] = []
    placed = False
    for guest in guests:
        if guest.id in targets:
            if not placed:
                result.append(saved)
                placed = True
            continue
        result.append(guest)
    if not placed:
        result.append(saved)
    return tuple(result)


def _dedupe_guests(guests: list[Guest]) -> tuple[Guest, ...]:
    by_id: dict[ServerId, Guest] = {}
    for guest in guests:
        by_id[guest.id] = guest
    if len(by_id) != len(guests):
        logger.warning("Server returned %d duplicate guest id(s)", len(guests) - len(by_id))
    return tuple(by_id.values())


def _index_of(items: tuple, item_id: object) -> int | None:
    return next((i for i, item in enumerate(items) if item.id == item_id), None)


def _replace_at(items: tuple[T, ...], index: int, value: T) -> tuple[T, ...]:
    return items[:index] + (value,) + items[index + 1:]


def _remove_at(items: tuple[T, ...], index: int) -> tuple[T, ...]:
    return items[:index] + items[index + 1:]


class DataStore(Observable):
    """Single owner of all planning collections.

    Collections are exposed as tuples of frozen models; callers never edit
    them in place and route every change through the methods below.
    """

    def __init__(self, api: RemoteAPI) -> None:
        super().__init__()
        self._api = api

        self.guests: tuple[Guest, ...] = ()
        self.budget: BudgetData | None = None
        self.gifts: GiftData | None = None
        self.tasks: TaskData | None = None
        self.seating_chart: SeatingChart | None = None
        self.hall_layout: HallLayout | None = None
        self.messages: tuple[Message, ...] = ()

        self.loading = False
        self.last_error: str | None = None

        # completion dates cleared by toggle_task_completion, restored on re-toggle
        self._cleared_completions: dict[ClientId, datetime] = {}

    def _fail(self, context: str, exc: Exception) -> None:
        message = f"{context}: {exc}"
        logger.warning("%s", message)
        self._set(last_error=message)

    def clear_error(self) -> None:
        self._set(last_error=None)

    @property
    def dashboard_stats(self) -> DashboardStats:
        return build_dashboard_stats(
            self.guests, self.budget, self.gifts, self.tasks, self.messages,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_all(self) -> None:
        """Fetch the four remote collections concurrently.

        A failing fetch records last_error and leaves its slot as it was;
        the other fetches still complete. ``loading`` stays True until the
        slowest one is done. An unexpected exception is re-raised only after
        every fetch has finished.
        """
        self._set(loading=True, last_error=None)
        try:
            results = await asyncio.gather(
                self._load_guests(),
                self._load_budget(),
                self._load_gifts(),
                self._load_tasks(),
                return_exceptions=True,
            )
        finally:
            self._set(loading=False)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        logger.info(
            "Loaded %d guests, %d categories, %d gifts, %d tasks",
            len(self.guests),
            len(self.budget.categories) if self.budget else 0,
            len(self.gifts.gifts) if self.gifts else 0,
            len(self.tasks.tasks) if self.tasks else 0,
        )

    async def refresh(self) -> None:
        await self.load_all()

    async def _load(self, label: str, call: Callable[[], Awaitable[T]]) -> T | None:
        try:
            return await call()
        except _REPORTED_ERRORS as exc:
            self._fail(f"Failed to load {label}", exc)
            return None

    async def _load_guests(self) -> None:
        guests = await self._load("guests", self._api.load_guests)
        if guests is not None:
            self._set(guests=_dedupe_guests(list(guests)))

    async def _load_budget(self) -> None:
        budget = await self._load("budget", self._api.load_budget)
        if budget is not None:
            self._set(budget=budget)

    async def _load_gifts(self) -> None:
        gifts = await self._load("gifts", self._api.load_gifts)
        if gifts is not None:
            self._set(gifts=gifts)

    async def _load_tasks(self) -> None:
        tasks = await self._load("tasks", self._api.load_tasks)
        if tasks is not None:
            now = utcnow()
            # remembered completion dates belong to the replaced list
            self._cleared_completions.clear()
            self._set(tasks=tasks.model_copy(
                update={"tasks": tuple(t.normalized(now) for t in tasks.tasks)}
            ))

    # ------------------------------------------------------------------
    # Guests (server round trip)
    # ------------------------------------------------------------------

    async def add_guest(self, guest: Guest) -> Guest | None:
        """Create *guest* on the server and keep the server's copy."""
        try:
            saved = await self._api.add_guest(guest)
        except _REPORTED_ERRORS as exc:
            self._fail("Failed to add guest", exc)
            return None
        self._set(guests=_splice_guest(self.guests, saved))
        logger.info("Guest #%d added", saved.id)
        return saved

    async def update_guest(self, guest: Guest) -> Guest | None:
        """Send *guest* to the server and replace the local entry with its answer."""
        try:
            saved = await self._api.update_guest(guest)
        except _REPORTED_ERRORS as exc:
            self._fail("Failed to update guest", exc)
            return None
        self._set(guests=_splice_guest(self.guests, saved, replaces=guest.id))
        logger.info("Guest #%d updated", saved.id)
        return saved

    # ------------------------------------------------------------------
    # Budget (optimistic)
    # ------------------------------------------------------------------

    def _install_budget(self, **update: object) -> None:
        budget = self.budget or BudgetData()
        update["updated_at"] = utcnow()
        self._set(budget=budget.model_copy(update=update))

    def add_budget_category(self, category: BudgetCategory) -> None:
        categories = self.budget.categories if self.budget else ()
        if _index_of(categories, category.id) is not None:
            raise ValueError(f"Budget category {category.id} already exists")
        self._install_budget(categories=categories + (category.with_items(category.items),))

    def update_budget_category(self, category: BudgetCategory) -> bool:
        if self.budget is None:
            return False
        index = _index_of(self.budget.categories, category.id)
        if index is None:
            return False
        self._install_budget(
            categories=_replace_at(self.budget.categories, index, category.with_items(category.items)),
        )
        return True

    def _edit_category_items(
        self,
        category_id: ClientId,
        edit: Callable[[tuple[BudgetItem, ...]], tuple[BudgetItem, ...] | None],
    ) -> bool:
        if self.budget is None:
            return False
        index = _index_of(self.budget.categories, category_id)
        if index is None:
            return False
        category = self.budget.categories[index]
        items = edit(category.items)
        if items is None:
            return False
        self._install_budget(
            categories=_replace_at(self.budget.categories, index, category.with_items(items)),
        )
        return True

    def add_budget_item(self, category_id: ClientId, item: BudgetItem) -> bool:
        return self._edit_category_items(category_id, lambda items: items + (item,))

    def remove_budget_item(self, category_id: ClientId, item_id: ClientId) -> bool:
        def drop(items: tuple[BudgetItem, ...]) -> tuple[BudgetItem, ...] | None:
            index = _index_of(items, item_id)
            return None if index is None else _remove_at(items, index)

        return self._edit_category_items(category_id, drop)

    def set_total_budget(self, amount: float) -> None:
        if amount < 0:
            raise ValueError("Total budget cannot be negative")
        self._install_budget(total_budget=amount)

    async def save_budget(self) -> bool:
        return await self._save("budget", self.budget, self._api.save_budget)

    # ------------------------------------------------------------------
    # Gifts (optimistic)
    # ------------------------------------------------------------------

    def _install_gifts(self, gifts: tuple[Gift, ...]) -> None:
        data = self.gifts or GiftData()
        self._set(gifts=data.model_copy(update={"gifts": gifts, "updated_at": utcnow()}))

    def add_gift(self, gift: Gift) -> None:
        current = self.gifts.gifts if self.gifts else ()
        if _index_of(current, gift.id) is not None:
            raise ValueError(f"Gift {gift.id} already exists")
        self._install_gifts(current + (gift,))

    def remove_gift(self, gift_id: ClientId) -> bool:
        if self.gifts is None:
            return False
        index = _index_of(self.gifts.gifts, gift_id)
        if index is None:
            return False
        self._install_gifts(_remove_at(self.gifts.gifts, index))
        return True

    async def save_gifts(self) -> bool:
        return await self._save("gifts", self.gifts, self._api.save_gifts)

    # ------------------------------------------------------------------
    # Tasks (optimistic)
    # ------------------------------------------------------------------

    def _install_tasks(self, tasks: tuple[WeddingTask, ...]) -> None:
        data = self.tasks or TaskData()
        self._set(tasks=data.model_copy(update={"tasks": tasks, "updated_at": utcnow()}))

    def add_task(self, task: WeddingTask) -> None:
        current = self.tasks.tasks if self.tasks else ()
        if _index_of(current, task.id) is not None:
            raise ValueError(f"Task {task.id} already exists")
        self._install_tasks(current + (task.normalized(utcnow()),))

    def update_task(self, task: WeddingTask) -> bool:
        if self.tasks is None:
            return False
        index = _index_of(self.tasks.tasks, task.id)
        if index is None:
            return False
        self._cleared_completions.pop(task.id, None)
        self._install_tasks(_replace_at(self.tasks.tasks, index, task.normalized(utcnow())))
        return True

    def toggle_task_completion(self, task_id: ClientId) -> bool:
        """Flip is_completed and set/clear completed_date together.

        Toggling twice restores the previous completed_date.
        """
        if self.tasks is None:
            return False
        index = _index_of(self.tasks.tasks, task_id)
        if index is None:
            return False

        task = self.tasks.tasks[index]
        if task.is_completed:
            if task.completed_date is not None:
                self._cleared_completions[task_id] = task.completed_date
            toggled = task.model_copy(update={"is_completed": False, "completed_date": None})
        else:
            completed_at = self._cleared_completions.pop(task_id, None) or utcnow()
            toggled = task.model_copy(update={"is_completed": True, "completed_date": completed_at})

        self._install_tasks(_replace_at(self.tasks.tasks, index, toggled))
        return True

    def remove_task(self, task_id: ClientId) -> bool:
        if self.tasks is None:
            return False
        index = _index_of(self.tasks.tasks, task_id)
        if index is None:
            return False
        self._cleared_completions.pop(task_id, None)
        self._install_tasks(_remove_at(self.tasks.tasks, index))
        return True

    async def save_tasks(self) -> bool:
        return await self._save("tasks", self.tasks, self._api.save_tasks)

    # ------------------------------------------------------------------
    # Bulk save
    # ------------------------------------------------------------------

    async def _save(
        self,
        label: str,
        data: T | None,
        call: Callable[[T], Awaitable[bool]],
    ) -> bool:
        """Push a whole collection. Local state is kept whatever happens."""
        if data is None:
            logger.debug("Nothing to save for %s", label)
            return False
        try:
            ok = await call(data)
        except _REPORTED_ERRORS as exc:
            self._fail(f"Failed to save {label}", exc)
            return False
        if not ok:
            message = f"Failed to save {label}"
            logger.warning("%s: server reported failure", message)
            self._set(last_error=message)
            return False
        logger.info("Saved %s", label)
        return True

    # ------------------------------------------------------------------
    # Seating chart and hall layout (local only)
    # ------------------------------------------------------------------

    def _install_tables(self, tables: tuple[WeddingTable, ...]) -> None:
        chart = self.seating_chart or SeatingChart()
        self._set(seating_chart=chart.model_copy(update={"tables": tables, "updated_at": utcnow()}))

    def add_table(self, table: WeddingTable) -> None:
        tables = self.seating_chart.tables if self.seating_chart else ()
        if any(t.table_number == table.table_number for t in tables):
            raise ValueError(f"Table {table.table_number} already exists")
        self._install_tables(tables + (table,))

    def assign_guest_to_table(self, table_id: ClientId, guest_id: ServerId) -> None:
        """Seat a guest. A guest sits at one table at most, so this moves them."""
        tables = self.seating_chart.tables if self.seating_chart else ()
        index = _index_of(tables, table_id)
        if index is None:
            raise ValueError(f"Unknown table {table_id}")
        if _index_of(self.guests, guest_id) is None:
            raise ValueError(f"Unknown guest #{guest_id}")

        table = tables[index]
        if guest_id in table.guests:
            raise ValueError(f"Guest #{guest_id} already seated at table {table.table_number}")
        if table.is_complete:
            raise ValueError(f"Table {table.table_number} is full")

        tables = tuple(
            t.model_copy(update={"guests": tuple(g for g in t.guests if g != guest_id)})
            if guest_id in t.guests else t
            for t in tables
        )
        seated = table.model_copy(update={"guests": table.guests + (guest_id,)})
        self._install_tables(_replace_at(tables, index, seated))

    def unassign_guest(self, guest_id: ServerId) -> bool:
        if self.seating_chart is None:
            return False
        if not any(guest_id in t.guests for t in self.seating_chart.tables):
            return False
        self._install_tables(tuple(
            t.model_copy(update={"guests": tuple(g for g in t.guests if g != guest_id)})
            for t in self.seating_chart.tables
        ))
        return True

    def add_hall_item(self, item: HallItem) -> None:
        layout = self.hall_layout or HallLayout()
        self._set(hall_layout=layout.model_copy(
            update={"items": layout.items + (item,), "updated_at": utcnow()}
        ))

    # ------------------------------------------------------------------
    # Inbox (local only)
    # ------------------------------------------------------------------

    def set_messages(self, messages: list[Message]) -> None:
        self._set(messages=tuple(messages))

    def mark_message_read(self, message_id: ClientId) -> bool:
        index = _index_of(self.messages, message_id)
        if index is None:
            return False
        message = self.messages[index]
        if not message.is_read:
            self._set(messages=_replace_at(
                self.messages, index, message.model_copy(update={"is_read": True})
            ))
        return True
