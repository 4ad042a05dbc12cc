"""Tests for wedding_manager.core.data_store — loading, guest round trips,
optimistic edits, bulk saves, seating and inbox.

The RemoteAPI is an AsyncMock double.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from conftest import at
from wedding_manager.core.data_store import DataStore
from wedding_manager.data.models import (
    Attendance,
    BudgetCategory,
    BudgetData,
    BudgetItem,
    Gift,
    GiftCategory,
    GiftData,
    Guest,
    HallItem,
    HallItemType,
    ItemPosition,
    ItemSize,
    Message,
    TaskData,
    WeddingTable,
    WeddingTask,
)
from wedding_manager.ports.credential_port import CredentialError
from wedding_manager.ports.remote_api_port import ServerStatusError, TransportError


def _guest(id=0, name="Bob", attendance=Attendance.YES):
    return Guest(id=id, full_name=name, attendance=attendance, created_at=at(1))


def _stub_loads(api, tasks=None):
    api.load_guests.return_value = []
    api.load_budget.return_value = BudgetData()
    api.load_gifts.return_value = GiftData()
    api.load_tasks.return_value = tasks or TaskData()


@pytest.fixture
def store(api):
    return DataStore(api)


class TestLoadAll:
    @pytest.mark.asyncio
    async def test_fills_every_collection(self, store, api):
        api.load_guests.return_value = [_guest(1), _guest(2, "Ann")]
        api.load_budget.return_value = BudgetData(total_budget=1000)
        api.load_gifts.return_value = GiftData()
        api.load_tasks.return_value = TaskData(tasks=(WeddingTask(title="Venue"),))

        await store.load_all()

        assert [g.id for g in store.guests] == [1, 2]
        assert store.budget.total_budget == 1000
        assert store.gifts is not None
        assert store.tasks.tasks[0].title == "Venue"
        assert store.loading is False
        assert store.last_error is None

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self, store, api):
        seen = {}

        async def slow_tasks():
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            seen["loading"] = store.loading
            seen["error"] = store.last_error
            return TaskData()

        api.load_guests.side_effect = ServerStatusError(500)
        api.load_budget.return_value = BudgetData(total_budget=10)
        api.load_gifts.return_value = GiftData()
        api.load_tasks.side_effect = slow_tasks

        await store.load_all()

        assert store.guests == ()
        assert store.budget.total_budget == 10
        assert store.gifts is not None
        assert store.tasks is not None
        assert "500" in store.last_error
        assert seen["loading"] is True
        assert "guests" in seen["error"]
        assert store.loading is False

    @pytest.mark.asyncio
    async def test_failed_slot_keeps_previous_value(self, store, api):
        api.load_guests.return_value = [_guest(1)]
        api.load_budget.return_value = BudgetData()
        api.load_gifts.return_value = GiftData()
        api.load_tasks.return_value = TaskData()
        await store.load_all()

        api.load_guests.side_effect = TransportError("offline")
        await store.refresh()

        assert [g.id for g in store.guests] == [1]
        assert "offline" in store.last_error

    @pytest.mark.asyncio
    async def test_duplicate_guest_ids_collapsed(self, store, api):
        api.load_guests.return_value = [_guest(1, "Old"), _guest(1, "New")]
        api.load_budget.return_value = BudgetData()
        api.load_gifts.return_value = GiftData()
        api.load_tasks.return_value = TaskData()

        await store.load_all()

        assert [g.full_name for g in store.guests] == ["New"]

    @pytest.mark.asyncio
    async def test_loading_notifications(self, store, api):
        api.load_guests.return_value = []
        api.load_budget.return_value = BudgetData()
        api.load_gifts.return_value = GiftData()
        api.load_tasks.return_value = TaskData()
        flags = []
        store.on_change(lambda field: field == "loading" and flags.append(store.loading))

        await store.load_all()

        assert flags == [True, False]

    @pytest.mark.asyncio
    async def test_credential_failure_recorded(self, store, api):
        error = CredentialError("Cannot read credentials")
        for name in ("load_guests", "load_budget", "load_gifts", "load_tasks"):
            getattr(api, name).side_effect = error

        await store.load_all()

        assert store.loading is False
        assert "Cannot read credentials" in store.last_error
        assert store.budget is None

    @pytest.mark.asyncio
    async def test_unexpected_error_raised_after_all_fetches(self, store, api):
        finished = []

        async def slow_tasks():
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            finished.append(store.loading)
            return TaskData(tasks=(WeddingTask(title="Venue"),))

        _stub_loads(api)
        api.load_budget.side_effect = RuntimeError("bug")
        api.load_tasks.side_effect = slow_tasks

        with pytest.raises(RuntimeError):
            await store.load_all()

        assert finished == [True]
        assert store.tasks.tasks[0].title == "Venue"
        assert store.loading is False

    @pytest.mark.asyncio
    async def test_loaded_tasks_normalized(self, store, api):
        _stub_loads(api, TaskData(tasks=(
            WeddingTask(title="Venue", is_completed=True),
            WeddingTask(title="Cake", completed_date=at(2)),
        )))

        await store.load_all()

        venue, cake = store.tasks.tasks
        assert venue.completed_date is not None
        assert cake.completed_date is None


class TestGuests:
    @pytest.mark.asyncio
    async def test_add_keeps_server_copy(self, store, api):
        api.add_guest.return_value = _guest(42, "Bob Server")

        saved = await store.add_guest(_guest(0, "Bob"))

        assert saved.id == 42
        assert [(g.id, g.full_name) for g in store.guests] == [(42, "Bob Server")]

    @pytest.mark.asyncio
    async def test_update_replaces_entry(self, store, api):
        api.add_guest.return_value = _guest(42)
        await store.add_guest(_guest())
        api.update_guest.return_value = _guest(42, attendance=Attendance.NO)

        await store.update_guest(_guest(42, attendance=Attendance.NO))

        assert len(store.guests) == 1
        assert store.guests[0].attendance is Attendance.NO

    @pytest.mark.asyncio
    async def test_update_with_new_server_id_does_not_duplicate(self, store, api):
        api.add_guest.return_value = _guest(42)
        await store.add_guest(_guest())
        api.update_guest.return_value = _guest(43)

        await store.update_guest(_guest(42))

        assert [g.id for g in store.guests] == [43]

    @pytest.mark.asyncio
    async def test_failure_leaves_collection_unchanged(self, store, api):
        api.add_guest.return_value = _guest(1)
        await store.add_guest(_guest())
        api.update_guest.side_effect = TransportError("offline")

        assert await store.update_guest(_guest(1, "Changed")) is None

        assert store.guests[0].full_name == "Bob"
        assert store.last_error.startswith("Failed to update guest")

    @pytest.mark.asyncio
    async def test_add_failure(self, store, api):
        api.add_guest.side_effect = ServerStatusError(500)
        assert await store.add_guest(_guest()) is None
        assert store.guests == ()
        assert "500" in store.last_error


class TestBudget:
    def test_add_category_recomputes_actual(self, store):
        category = BudgetCategory(
            name="Venue", planned_amount=1000, actual_amount=0,
            items=(BudgetItem(name="Deposit", amount=300),),
        )
        store.add_budget_category(category)
        assert store.budget.categories[0].actual_amount == 300

    def test_duplicate_category_rejected(self, store):
        category = BudgetCategory(name="Venue")
        store.add_budget_category(category)
        with pytest.raises(ValueError):
            store.add_budget_category(category)

    def test_items_drive_actual_amount(self, store):
        category = BudgetCategory(name="Venue", planned_amount=1000)
        store.add_budget_category(category)
        item = BudgetItem(name="Deposit", amount=400)

        assert store.add_budget_item(category.id, item) is True
        assert store.budget.total_spent == 400

        assert store.remove_budget_item(category.id, item.id) is True
        assert store.budget.categories[0].actual_amount == 0

    def test_unknown_category_or_item(self, store):
        category = BudgetCategory(name="Venue")
        assert store.add_budget_item(category.id, BudgetItem(name="X", amount=1)) is False
        store.add_budget_category(category)
        assert store.remove_budget_item(category.id, category.id) is False
        assert store.update_budget_category(BudgetCategory(name="Other")) is False

    def test_update_category(self, store):
        category = BudgetCategory(name="Venue", planned_amount=1000)
        store.add_budget_category(category)
        assert store.update_budget_category(category.model_copy(update={"planned_amount": 2000})) is True
        assert store.budget.categories[0].planned_amount == 2000

    def test_total_budget(self, store):
        store.set_total_budget(5000)
        assert store.budget.total_budget == 5000
        with pytest.raises(ValueError):
            store.set_total_budget(-1)

    @pytest.mark.asyncio
    async def test_save_sends_local_state(self, store, api):
        api.save_budget.return_value = True
        store.set_total_budget(5000)

        assert await store.save_budget() is True

        sent = api.save_budget.await_args.args[0]
        assert sent.total_budget == 5000
        assert store.last_error is None

    @pytest.mark.asyncio
    async def test_failed_save_keeps_local_edits(self, store, api):
        api.save_budget.side_effect = TransportError("offline")
        store.set_total_budget(5000)

        assert await store.save_budget() is False

        assert store.budget.total_budget == 5000
        assert store.last_error.startswith("Failed to save budget")

    @pytest.mark.asyncio
    async def test_server_rejection_sets_error(self, store, api):
        api.save_budget.return_value = False
        store.set_total_budget(5000)

        assert await store.save_budget() is False
        assert store.last_error == "Failed to save budget"

    @pytest.mark.asyncio
    async def test_save_without_data(self, store, api):
        assert await store.save_budget() is False
        api.save_budget.assert_not_awaited()


class TestGifts:
    def test_add_and_remove(self, store):
        gift = Gift(guest_name="Ann", amount=100, category=GiftCategory.MONEY)
        store.add_gift(gift)
        assert store.gifts.total_money_received == 100
        with pytest.raises(ValueError):
            store.add_gift(gift)
        assert store.remove_gift(gift.id) is True
        assert store.remove_gift(gift.id) is False
        assert store.gifts.gift_count == 0

    @pytest.mark.asyncio
    async def test_save(self, store, api):
        api.save_gifts.return_value = True
        store.add_gift(Gift(guest_name="Ann", category=GiftCategory.ITEM))
        assert await store.save_gifts() is True
        api.save_gifts.assert_awaited_once()


class TestTasks:
    def test_add_normalizes_completion(self, store):
        store.add_task(WeddingTask(title="Venue", is_completed=True))
        assert store.tasks.tasks[0].completed_date is not None

    def test_toggle_twice_restores_completed_task(self, store):
        task = WeddingTask(title="Venue", is_completed=True, completed_date=at(3))
        store.add_task(task)

        store.toggle_task_completion(task.id)
        assert store.tasks.tasks[0].is_completed is False
        assert store.tasks.tasks[0].completed_date is None

        store.toggle_task_completion(task.id)
        assert store.tasks.tasks[0].is_completed is True
        assert store.tasks.tasks[0].completed_date == at(3)

    def test_toggle_twice_restores_pending_task(self, store):
        task = WeddingTask(title="Cake")
        store.add_task(task)

        store.toggle_task_completion(task.id)
        assert store.tasks.tasks[0].is_completed is True
        assert store.tasks.tasks[0].completed_date is not None

        store.toggle_task_completion(task.id)
        assert store.tasks.tasks[0].is_completed is False
        assert store.tasks.tasks[0].completed_date is None

    @pytest.mark.asyncio
    async def test_reload_forgets_cleared_completion(self, store, api):
        long_ago = datetime(2020, 1, 1, tzinfo=timezone.utc)
        task = WeddingTask(title="Venue", is_completed=True, completed_date=long_ago)
        _stub_loads(api, TaskData(tasks=(task,)))
        await store.load_all()
        store.toggle_task_completion(task.id)

        pending = task.model_copy(update={"is_completed": False, "completed_date": None})
        _stub_loads(api, TaskData(tasks=(pending,)))
        await store.load_all()
        store.toggle_task_completion(task.id)

        reloaded = store.tasks.tasks[0]
        assert reloaded.is_completed is True
        assert reloaded.completed_date is not None
        assert reloaded.completed_date != long_ago

    def test_toggle_unknown(self, store):
        assert store.toggle_task_completion(WeddingTask(title="X").id) is False

    def test_update_and_remove(self, store):
        task = WeddingTask(title="Cake")
        store.add_task(task)
        assert store.update_task(task.model_copy(update={"title": "Cake tasting"})) is True
        assert store.tasks.tasks[0].title == "Cake tasting"
        assert store.remove_task(task.id) is True
        assert store.tasks.tasks == ()
        assert store.update_task(task) is False

    def test_duplicate_rejected(self, store):
        task = WeddingTask(title="Cake")
        store.add_task(task)
        with pytest.raises(ValueError):
            store.add_task(task)

    @pytest.mark.asyncio
    async def test_save_failure(self, store, api):
        api.save_tasks.side_effect = ServerStatusError(503)
        store.add_task(WeddingTask(title="Cake"))
        assert await store.save_tasks() is False
        assert len(store.tasks.tasks) == 1
        assert "503" in store.last_error


class TestSeating:
    @pytest.fixture
    def seated_store(self, store):
        store.guests = (_guest(1, "Ann"), _guest(2, "Ben"), _guest(3, "Cat"))
        return store

    def test_assign_and_move(self, seated_store):
        t1 = WeddingTable(table_number=1, capacity=2)
        t2 = WeddingTable(table_number=2, capacity=2)
        seated_store.add_table(t1)
        seated_store.add_table(t2)

        seated_store.assign_guest_to_table(t1.id, 1)
        seated_store.assign_guest_to_table(t2.id, 1)

        tables = seated_store.seating_chart.tables
        assert tables[0].guests == ()
        assert tables[1].guests == (1,)
        assert seated_store.seating_chart.occupied_seats == 1

    def test_capacity_enforced(self, seated_store):
        table = WeddingTable(table_number=1, capacity=1)
        seated_store.add_table(table)
        seated_store.assign_guest_to_table(table.id, 1)
        with pytest.raises(ValueError):
            seated_store.assign_guest_to_table(table.id, 2)

    def test_guest_not_seated_twice(self, seated_store):
        table = WeddingTable(table_number=1, capacity=4)
        seated_store.add_table(table)
        seated_store.assign_guest_to_table(table.id, 1)
        with pytest.raises(ValueError):
            seated_store.assign_guest_to_table(table.id, 1)

    def test_unknown_guest_or_table(self, seated_store):
        table = WeddingTable(table_number=1, capacity=4)
        with pytest.raises(ValueError):
            seated_store.assign_guest_to_table(table.id, 1)
        seated_store.add_table(table)
        with pytest.raises(ValueError):
            seated_store.assign_guest_to_table(table.id, 99)

    def test_duplicate_table_number(self, seated_store):
        seated_store.add_table(WeddingTable(table_number=1, capacity=4))
        with pytest.raises(ValueError):
            seated_store.add_table(WeddingTable(table_number=1, capacity=6))

    def test_unassign(self, seated_store):
        table = WeddingTable(table_number=1, capacity=4)
        seated_store.add_table(table)
        seated_store.assign_guest_to_table(table.id, 2)
        assert seated_store.unassign_guest(2) is True
        assert seated_store.unassign_guest(2) is False
        assert seated_store.seating_chart.tables[0].guests == ()

    def test_hall_item(self, store):
        store.add_hall_item(HallItem(
            type=HallItemType.TABLE,
            position=ItemPosition(x=1, y=1),
            size=ItemSize(width=2, height=2),
        ))
        assert store.hall_layout.table_count == 1


class TestInboxAndDashboard:
    def test_mark_read(self, store):
        message = Message(sender="Dana", content="Hello")
        store.set_messages([message])
        assert store.dashboard_stats.unread_messages == 1
        assert store.mark_message_read(message.id) is True
        assert store.messages[0].is_read is True
        assert store.dashboard_stats.unread_messages == 0
        assert store.mark_message_read(Message(sender="X", content="Y").id) is False

    def test_dashboard_reflects_collections(self, store):
        store.guests = (_guest(1), _guest(2, attendance=Attendance.NO))
        store.set_total_budget(1000)
        store.add_budget_category(BudgetCategory(
            name="Venue", items=(BudgetItem(name="Deposit", amount=250),),
        ))
        store.add_task(WeddingTask(title="Venue", is_completed=True))
        store.add_task(WeddingTask(title="Cake"))

        stats = store.dashboard_stats

        assert stats.total_guests == 2
        assert stats.confirmed_guests == 1
        assert stats.spent_amount == 250
        assert stats.budget_percentage == 25
        assert stats.task_completion_percentage == 50

    def test_clear_error(self, store):
        store.last_error = "boom"
        store.clear_error()
        assert store.last_error is None
