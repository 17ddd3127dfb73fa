# safestock/schemas/inventory.py
from __future__ import annotations

import enum
from datetime import date
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class Category(str, enum.Enum):
    # Values are the labels stored in the shared remote document.
    PROTECTION = "個人防護 (PPE)"
    FIRE_SAFETY = "消防安全"
    FIRST_AID = "急救耗材"
    SIGNAGE = "標誌警告"
    TOOL = "工具設備"
    OTHER = "其他"


class ItemType(str, enum.Enum):
    EQUIPMENT = "EQUIPMENT"
    CONSUMABLE = "CONSUMABLE"


class ItemGroup(str, enum.Enum):
    INVENTORY = "INVENTORY"
    MEDICINE = "MEDICINE"


class TransactionType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


NameStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=200),
]


def _empty_str_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class WireModel(BaseModel):
    """
    Base for everything that travels inside a snapshot.

    Attributes are snake_case, JSON keys are camelCase. Unknown keys written
    by other clients are kept so pushing a pulled snapshot loses nothing.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class InventoryItem(WireModel):
    id: str
    name: str
    category: Category | str = Category.OTHER
    item_type: ItemType = ItemType.CONSUMABLE
    item_group: ItemGroup = ItemGroup.INVENTORY
    unit: str = ""
    spec: str = ""
    quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    purchase_date: date | None = None
    expiry_date: date | None = None
    description: str = ""
    last_updated: int = 0

    @field_validator("purchase_date", "expiry_date", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        return _empty_str_to_none(v)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock


class LogEntry(WireModel):
    """
    One immutable item movement.

    Name, spec and unit are copied from the item at commit time so the entry
    still reads correctly after the item is edited or deleted.
    """

    id: str
    item_id: str
    item_name: str
    spec: str = ""
    unit: str = ""
    type: TransactionType
    quantity: int = Field(gt=0)
    person: str = ""
    dept: str = ""
    reason: str = ""
    timestamp: int


class Snapshot(WireModel):
    items: list[InventoryItem]
    logs: list[LogEntry] = Field(default_factory=list)
    timestamp: int = 0

    @field_validator("logs", mode="before")
    @classmethod
    def none_logs_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls(items=[], logs=[], timestamp=0)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def find_item(self, item_id: str) -> InventoryItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class ItemCreate(ApiModel):
    """Used when adding a new item to the shared list."""

    name: NameStr
    category: Category = Category.OTHER
    item_type: ItemType = ItemType.CONSUMABLE
    item_group: ItemGroup = ItemGroup.INVENTORY
    unit: str = ""
    spec: str = ""
    quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    purchase_date: date | None = None
    expiry_date: date | None = None
    description: str = ""

    @field_validator("purchase_date", "expiry_date", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        return _empty_str_to_none(v)

    @model_validator(mode="after")
    def validate_dates_for_group(self) -> "ItemCreate":
        if self.item_group != ItemGroup.MEDICINE and (
            self.purchase_date or self.expiry_date
        ):
            raise ValueError(
                "Purchase and expiry dates are only kept for MEDICINE items"
            )
        return self


class ItemUpdate(ApiModel):
    """
    Used when editing an item (PATCH). All fields optional.

    The date/group rule needs the existing item, so it is checked by the
    transaction service against the refreshed basis.
    """

    name: NameStr | None = None
    category: Category | None = None
    item_type: ItemType | None = None
    item_group: ItemGroup | None = None
    unit: str | None = None
    spec: str | None = None
    quantity: int | None = Field(default=None, ge=0)
    min_stock: int | None = Field(default=None, ge=0)
    purchase_date: date | None = None
    expiry_date: date | None = None
    description: str | None = None

    @field_validator("purchase_date", "expiry_date", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        return _empty_str_to_none(v)
