# safestock/services/dashboard_service.py
"""
Read-only projection of the ledger for the statistics dashboard.
"""

from collections import defaultdict
from typing import Optional

from pydantic import BaseModel

from safestock.schemas.inventory import (
    InventoryItem,
    ItemGroup,
    LogEntry,
    TransactionType,
)
from safestock.utils.datetime_utils import from_ms

TOP_ITEMS_LIMIT = 8


class ItemUsage(BaseModel):
    item_id: str
    name: str
    quantity: int


class DeptUsage(BaseModel):
    dept: str
    quantity: int


class DashboardStats(BaseModel):
    year: int
    dept: Optional[str] = None
    inventory_out_quantity: int = 0
    medicine_out_quantity: int = 0
    total_out_quantity: int = 0
    inventory_item_count: int = 0
    low_stock_count: int = 0
    top_inventory_items: list[ItemUsage] = []
    medicine_items: list[ItemUsage] = []
    dept_ranking: list[DeptUsage] = []


def _out_logs_for_year(logs: list[LogEntry], year: int) -> list[LogEntry]:
    return [
        log
        for log in logs
        if log.type == TransactionType.OUT and from_ms(log.timestamp).year == year
    ]


def build_dashboard(
    items: list[InventoryItem],
    logs: list[LogEntry],
    year: int,
    dept: Optional[str] = None,
) -> DashboardStats:
    """
    Aggregate OUT movements for one calendar year.

    Movements are attributed to MEDICINE or INVENTORY by looking the item up
    in the current list; movements of deleted items count as INVENTORY. The
    department ranking always covers every department for the year.
    """
    groups = {item.id: item.item_group for item in items}
    year_logs = _out_logs_for_year(logs, year)
    filtered = [log for log in year_logs if dept is None or log.dept == dept]

    inventory_usage: dict[str, ItemUsage] = {}
    medicine_usage: dict[str, ItemUsage] = {}
    inventory_qty = 0
    medicine_qty = 0

    for log in filtered:
        if groups.get(log.item_id) == ItemGroup.MEDICINE:
            medicine_qty += log.quantity
            bucket = medicine_usage
        else:
            inventory_qty += log.quantity
            bucket = inventory_usage
        usage = bucket.setdefault(
            log.item_id, ItemUsage(item_id=log.item_id, name=log.item_name, quantity=0)
        )
        usage.quantity += log.quantity

    dept_totals: dict[str, int] = defaultdict(int)
    for log in year_logs:
        dept_totals[log.dept] += log.quantity

    top_inventory = sorted(inventory_usage.values(), key=lambda u: u.quantity, reverse=True)

    return DashboardStats(
        year=year,
        dept=dept,
        inventory_out_quantity=inventory_qty,
        medicine_out_quantity=medicine_qty,
        total_out_quantity=inventory_qty + medicine_qty,
        inventory_item_count=sum(1 for i in items if i.item_group == ItemGroup.INVENTORY),
        low_stock_count=sum(1 for i in items if i.is_low_stock),
        top_inventory_items=top_inventory[:TOP_ITEMS_LIMIT],
        medicine_items=list(medicine_usage.values()),
        dept_ranking=[
            DeptUsage(dept=name, quantity=qty)
            for name, qty in sorted(dept_totals.items(), key=lambda kv: kv[1], reverse=True)
        ],
    )
