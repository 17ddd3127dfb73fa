# safestock/utils/id_generators.py
import uuid

TRANSACTION_PREFIX = "TX"
ITEM_PREFIX = "IT"
BATCH_PREFIX = "BT"
ENTRY_PREFIX = "BE"


def _generate(prefix: str) -> str:
    """
    Generate an id in format: {prefix}-{uuid4 hex}

    Example: TX-3f2a9c0e4b1d4e6f8a7b6c5d4e3f2a1b
    """
    return f"{prefix}-{uuid.uuid4().hex}"


def generate_transaction_id() -> str:
    return _generate(TRANSACTION_PREFIX)


def generate_item_id() -> str:
    return _generate(ITEM_PREFIX)


def generate_batch_id() -> str:
    return _generate(BATCH_PREFIX)


def generate_entry_id() -> str:
    return _generate(ENTRY_PREFIX)
