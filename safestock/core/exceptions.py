# safestock/core/exceptions.py
"""
Domain errors raised by the services.

Endpoints convert these into HTTP responses. Transport and storage failures
are never raised through here: they become sync status changes instead.
"""


class SafeStockError(Exception):
    """Base class for inventory domain errors."""


class ItemNotFoundError(SafeStockError):
    def __init__(self, item_id: str):
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id


class BasketEntryNotFoundError(SafeStockError):
    def __init__(self, index: int):
        super().__init__(f"No basket entry at index {index}")
        self.index = index


class InvalidItemError(SafeStockError):
    """Raised when an add/edit payload breaks an item rule."""


class EmptyBasketError(SafeStockError):
    def __init__(self):
        super().__init__("Basket is empty, nothing to commit")


class CommitInProgressError(SafeStockError):
    """Another commit already holds the guard; the attempt was a no-op."""

    def __init__(self, action: str = "commit"):
        super().__init__(f"Cannot {action}: another commit is in progress")
        self.action = action
