"""
Wedding Manager — Data Models.

Wire-format models shared by the API client and the stores. Every model is
frozen: a change means building a new value with ``model_copy(update=...)``
and installing it in the owning store.

Two identifier kinds coexist:
- ``ServerId`` (int) for guests and users, assigned by the server.
  ``UNSAVED_ID`` (0) marks a guest that was never persisted.
- ``ClientId`` (UUID) for budget categories/items, gifts, tasks, tables,
  hall items and messages, generated locally and kept stable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, NewType
from uuid import UUID, uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

ServerId = NewType("ServerId", int)
ClientId = NewType("ClientId", UUID)

UNSAVED_ID = ServerId(0)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_utc(value: datetime) -> datetime:
    # Server timestamps without an offset are treated as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


def new_client_id() -> ClientId:
    return ClientId(uuid4())


class WireModel(BaseModel):
    """Base for all API payloads: frozen, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using wire field names."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class UserProfile(WireModel):
    """The signed-in account. Immutable once created by the server."""

    id: ServerId
    email: str
    name: str
    created_at: UtcDatetime | None = Field(default=None, alias="created_at")


class Session(BaseModel):
    """Authenticated identity held by the session store."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: UserProfile


class LoginRequest(WireModel):
    email: str
    password: str


class RegisterRequest(WireModel):
    email: str
    password: str
    name: str


class AuthResponse(WireModel):
    success: bool
    message: str = ""
    user: UserProfile | None = None
    token: str | None = None


class SaveResponse(WireModel):
    success: bool


# ---------------------------------------------------------------------------
# Guests
# ---------------------------------------------------------------------------


class Attendance(str, Enum):
    YES = "oui"
    NO = "non"
    MAYBE = "peut-etre"

    @property
    def display_name(self) -> str:
        return {
            Attendance.YES: "Yes",
            Attendance.NO: "No",
            Attendance.MAYBE: "Maybe",
        }[self]

    @property
    def color(self) -> str:
        return {
            Attendance.YES: "green",
            Attendance.NO: "red",
            Attendance.MAYBE: "orange",
        }[self]


class Guest(WireModel):
    """An RSVP entry. ``id`` is assigned by the server."""

    id: ServerId = UNSAVED_ID
    full_name: str = Field(alias="full_name")
    phone: str | None = None
    attendance: Attendance
    guest_count: int = Field(default=1, ge=1, alias="guests")
    message: str | None = None
    created_at: UtcDatetime = Field(default_factory=utcnow, alias="created_at")
    group: str | None = None

    @property
    def is_persisted(self) -> bool:
        return self.id != UNSAVED_ID


class GuestsResponse(WireModel):
    guests: tuple[Guest, ...] = ()


# ---------------------------------------------------------------------------
# Budget
# ---------------------------------------------------------------------------


class BudgetItem(WireModel):
    id: ClientId = Field(default_factory=new_client_id)
    name: str
    amount: float = Field(ge=0)
    is_paid: bool = False
    notes: str | None = None
    date: UtcDatetime | None = None


class BudgetCategory(WireModel):
    id: ClientId = Field(default_factory=new_client_id)
    name: str
    planned_amount: float = Field(default=0, ge=0)
    actual_amount: float = Field(default=0, ge=0)
    items: tuple[BudgetItem, ...] = ()

    @property
    def remaining_amount(self) -> float:
        return self.planned_amount - self.actual_amount

    @property
    def percentage(self) -> float:
        from wedding_manager.core.statistics import percentage

        return percentage(self.actual_amount, self.planned_amount)

    def with_items(self, items: tuple[BudgetItem, ...]) -> BudgetCategory:
        """Return a copy holding *items*, with actual_amount recomputed."""
        return self.model_copy(
            update={
                "items": tuple(items),
                "actual_amount": sum(item.amount for item in items),
            }
        )


class BudgetData(WireModel):
    categories: tuple[BudgetCategory, ...] = ()
    total_budget: float = Field(default=0, ge=0)
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _unique_category_ids(self) -> BudgetData:
        ids = [c.id for c in self.categories]
        if len(ids) != len(set(ids)):
            raise ValueError("budget category ids must be unique")
        return self

    @property
    def total_spent(self) -> float:
        return sum(c.actual_amount for c in self.categories)

    @property
    def remaining_budget(self) -> float:
        # Negative when overspent
        return self.total_budget - self.total_spent


# ---------------------------------------------------------------------------
# Gifts
# ---------------------------------------------------------------------------


class GiftCategory(str, Enum):
    MONEY = "money"
    ITEM = "item"
    SERVICE = "service"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return {
            GiftCategory.MONEY: "Money",
            GiftCategory.ITEM: "Item",
            GiftCategory.SERVICE: "Service",
            GiftCategory.OTHER: "Other",
        }[self]


class Gift(WireModel):
    id: ClientId = Field(default_factory=new_client_id)
    guest_name: str
    amount: float | None = Field(default=None, ge=0)
    description: str | None = None
    received_date: UtcDatetime = Field(default_factory=utcnow)
    category: GiftCategory
    notes: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _amount_only_for_money(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("category") not in (
            GiftCategory.MONEY,
            GiftCategory.MONEY.value,
        ):
            data = {k: v for k, v in data.items() if k != "amount"}
        return data


class GiftData(WireModel):
    gifts: tuple[Gift, ...] = ()
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @property
    def total_money_received(self) -> float:
        return sum(
            g.amount for g in self.gifts
            if g.category is GiftCategory.MONEY and g.amount is not None
        )

    @property
    def gift_count(self) -> int:
        return len(self.gifts)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def color(self) -> str:
        return {
            TaskPriority.LOW: "green",
            TaskPriority.MEDIUM: "yellow",
            TaskPriority.HIGH: "orange",
            TaskPriority.URGENT: "red",
        }[self]

    @property
    def rank(self) -> int:
        """Sort weight: urgent is highest."""
        return {
            TaskPriority.LOW: 1,
            TaskPriority.MEDIUM: 2,
            TaskPriority.HIGH: 3,
            TaskPriority.URGENT: 4,
        }[self]


class TaskCategory(str, Enum):
    VENUE = "venue"
    CATERING = "catering"
    DECORATION = "decoration"
    MUSIC = "music"
    PHOTOGRAPHY = "photography"
    TRANSPORT = "transport"
    LEGAL = "legal"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        if self is TaskCategory.LEGAL:
            return "Paperwork"
        return self.value.capitalize()


class WeddingTask(WireModel):
    id: ClientId = Field(default_factory=new_client_id)
    title: str
    description: str | None = None
    due_date: UtcDatetime | None = None
    is_completed: bool = False
    priority: TaskPriority = TaskPriority.MEDIUM
    category: TaskCategory = TaskCategory.OTHER
    assigned_to: str | None = None
    notes: str | None = None
    completed_date: UtcDatetime | None = None

    def is_overdue(self, now: datetime) -> bool:
        return (
            not self.is_completed
            and self.due_date is not None
            and self.due_date < now
        )

    def normalized(self, now: datetime) -> WeddingTask:
        """Enforce completed_date set iff is_completed."""
        if self.is_completed and self.completed_date is None:
            return self.model_copy(update={"completed_date": now})
        if not self.is_completed and self.completed_date is not None:
            return self.model_copy(update={"completed_date": None})
        return self


class TaskData(WireModel):
    tasks: tuple[WeddingTask, ...] = ()
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @property
    def completed_tasks(self) -> list[WeddingTask]:
        return [t for t in self.tasks if t.is_completed]

    @property
    def pending_tasks(self) -> list[WeddingTask]:
        return [t for t in self.tasks if not t.is_completed]

    def overdue_tasks(self, now: datetime | None = None) -> list[WeddingTask]:
        now = now or utcnow()
        return [t for t in self.tasks if t.is_overdue(now)]

    @property
    def completion_percentage(self) -> float:
        from wedding_manager.core.statistics import percentage

        return percentage(len(self.completed_tasks), len(self.tasks))


# ---------------------------------------------------------------------------
# Seating chart
# ---------------------------------------------------------------------------


class TableShape(str, Enum):
    ROUND = "round"
    RECTANGULAR = "rectangular"
    SQUARE = "square"
    OVAL = "oval"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class TablePosition(WireModel):
    x: float
    y: float
    rotation: float = 0


class WeddingTable(WireModel):
    id: ClientId = Field(default_factory=new_client_id)
    table_number: int
    capacity: int = Field(ge=1)
    shape: TableShape = TableShape.ROUND
    position: TablePosition = TablePosition(x=300, y=300)
    guests: tuple[ServerId, ...] = ()
    notes: str | None = None

    @property
    def is_complete(self) -> bool:
        return len(self.guests) == self.capacity

    @property
    def available_spots(self) -> int:
        return self.capacity - len(self.guests)


class SeatingChart(WireModel):
    tables: tuple[WeddingTable, ...] = ()
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @property
    def total_seats(self) -> int:
        return sum(t.capacity for t in self.tables)

    @property
    def occupied_seats(self) -> int:
        return sum(len(t.guests) for t in self.tables)

    @property
    def available_seats(self) -> int:
        return self.total_seats - self.occupied_seats


# ---------------------------------------------------------------------------
# Hall layout
# ---------------------------------------------------------------------------


class HallItemType(str, Enum):
    TABLE = "table"
    STAGE = "stage"
    BAR = "bar"
    DANCE_FLOOR = "dance_floor"
    ENTRANCE = "entrance"
    PHOTO_AREA = "photo_area"
    BUFFET = "buffet"
    DECORATION = "decoration"
    SPEAKER = "speaker"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").capitalize()

    @property
    def default_color(self) -> str:
        return {
            HallItemType.TABLE: "brown",
            HallItemType.STAGE: "purple",
            HallItemType.BAR: "blue",
            HallItemType.DANCE_FLOOR: "yellow",
            HallItemType.ENTRANCE: "green",
            HallItemType.PHOTO_AREA: "pink",
            HallItemType.BUFFET: "orange",
            HallItemType.DECORATION: "red",
            HallItemType.SPEAKER: "black",
            HallItemType.OTHER: "gray",
        }[self]


class ItemPosition(WireModel):
    x: float
    y: float


class ItemSize(WireModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class HallDimensions(WireModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    unit: str = "m"


class HallItem(WireModel):
    id: ClientId = Field(default_factory=new_client_id)
    type: HallItemType
    position: ItemPosition
    size: ItemSize
    label: str | None = None
    color: str | None = None
    rotation: float = 0

    @property
    def display_color(self) -> str:
        return self.color or self.type.default_color


class HallLayout(WireModel):
    items: tuple[HallItem, ...] = ()
    hall_dimensions: HallDimensions = HallDimensions(width=20, height=15)
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @property
    def table_count(self) -> int:
        return sum(1 for i in self.items if i.type is HallItemType.TABLE)


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------


class MessageType(str, Enum):
    RSVP = "rsvp"
    GENERAL = "general"
    QUESTION = "question"
    SPECIAL = "special"

    @property
    def display_name(self) -> str:
        if self is MessageType.RSVP:
            return "RSVP"
        return self.value.capitalize()


class Message(WireModel):
    id: ClientId = Field(default_factory=new_client_id)
    sender: str = Field(alias="from")
    subject: str | None = None
    content: str
    received_date: UtcDatetime = Field(default_factory=utcnow)
    is_read: bool = False
    type: MessageType = MessageType.GENERAL
    related_guest_id: ServerId | None = None
