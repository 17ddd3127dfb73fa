import threading
from concurrent.futures import ThreadPoolExecutor, wait

import httpx
import pytest

from safestock.core.exceptions import (
    CommitInProgressError,
    EmptyBasketError,
    InvalidItemError,
    ItemNotFoundError,
)
from safestock.schemas.inventory import (
    ItemCreate,
    ItemGroup,
    ItemType,
    ItemUpdate,
    TransactionType,
)
from safestock.schemas.sync import SyncStatus
from safestock.services.reservation_service import ReservationOutcome
from safestock.services.transaction_service import apply_movement
from safestock.utils.issuance_slip_pdf import batch_from_log
from tests.factories import make_item, make_snapshot


@pytest.fixture
def seeded(seed_hub):
    seed_hub(
        make_snapshot(
            items=[
                make_item("IT-x", name="Safety helmet", quantity=10, min_stock=5),
                make_item("IT-y", name="Ear plugs", spec="Foam", quantity=20, min_stock=2),
            ]
        )
    )


@pytest.mark.parametrize(
    "quantity,delta,mode,expected",
    [
        (10, 4, TransactionType.OUT, 6),
        (10, 10, TransactionType.OUT, 0),
        (3, 5, TransactionType.OUT, 0),
        (3, 5, TransactionType.IN, 8),
    ],
)
def test_apply_movement(quantity, delta, mode, expected):
    assert apply_movement(quantity, delta, mode) == expected


# ----------------------------------------------------------------------
# Commit
# ----------------------------------------------------------------------


def test_issue_within_stock(seeded, make_runtime, read_hub):
    runtime = make_runtime()

    assert runtime.tracker.reserve("IT-x", 4) == ReservationOutcome.ACCEPTED
    assert runtime.tracker.reserve("IT-x", 7) == ReservationOutcome.INSUFFICIENT_STOCK

    result = runtime.processor.commit(person="Chen", dept="South Team 1", reason="Site work")

    assert runtime.store.get_item("IT-x").quantity == 6
    (log,) = runtime.store.snapshot().logs
    assert log.type == TransactionType.OUT
    assert log.quantity == 4
    assert log.person == "Chen"
    assert log.dept == "South Team 1"
    assert result.basis == "remote"
    assert result.pushed is True
    assert result.sync_status == SyncStatus.SYNCED
    assert read_hub().find_item("IT-x").quantity == 6
    assert runtime.tracker.is_empty()


def test_refresh_failure_falls_back_to_local_basis(seeded, make_runtime, hub_link):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-x", 3)
    hub_link.online = False

    result = runtime.processor.commit(person="Chen")

    assert result.basis == "local"
    assert result.pushed is False
    assert runtime.synchronizer.status == SyncStatus.ERROR
    assert runtime.store.get_item("IT-x").quantity == 7
    assert len(runtime.store.snapshot().logs) == 1
    assert runtime.tracker.is_empty()


def test_restock_two_items(seeded, make_runtime):
    runtime = make_runtime()
    runtime.tracker.set_mode(TransactionType.IN)
    runtime.tracker.reserve("IT-x", 3)
    runtime.tracker.reserve("IT-y", 5)

    runtime.processor.commit()

    snapshot = runtime.store.snapshot()
    assert snapshot.find_item("IT-x").quantity == 13
    assert snapshot.find_item("IT-y").quantity == 25
    head = snapshot.logs[:2]
    assert len(snapshot.logs) == 2
    assert {log.type for log in head} == {TransactionType.IN}
    assert head[0].timestamp == head[1].timestamp
    assert [log.item_id for log in head] == ["IT-x", "IT-y"]


def test_history_survives_item_deletion(seeded, make_runtime):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-y", 2)
    runtime.processor.commit(person="Chen")

    runtime.processor.delete_item("IT-y")

    snapshot = runtime.store.snapshot()
    assert snapshot.find_item("IT-y") is None
    (log,) = snapshot.logs
    assert log.item_name == "Ear plugs"
    assert log.spec == "Foam"
    batch = batch_from_log(log)
    assert batch.entries[0].name == "Ear plugs"
    assert batch.entries[0].spec == "Foam"


def test_oversell_against_fresher_remote_clamps_to_zero(seeded, make_runtime, seed_hub):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-x", 5)
    # Another client drew the item down after the reservation was made.
    seed_hub(make_snapshot(items=[make_item("IT-x", quantity=2)]))

    runtime.processor.commit()

    assert runtime.store.get_item("IT-x").quantity == 0
    assert runtime.store.snapshot().logs[0].quantity == 5


def test_logs_are_prepended_newest_first(seeded, make_runtime):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-x", 1)
    runtime.tracker.reserve("IT-y", 1)
    runtime.processor.commit()
    first_ids = [log.id for log in runtime.store.snapshot().logs]

    runtime.tracker.reserve("IT-x", 2)
    runtime.processor.commit()

    logs = runtime.store.snapshot().logs
    assert len(logs) == 3
    assert logs[0].quantity == 2
    assert [log.id for log in logs[1:]] == first_ids
    assert logs[0].timestamp >= logs[1].timestamp


def test_back_to_back_commits_build_on_each_other(seeded, make_runtime):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-x", 3)
    runtime.processor.commit()
    runtime.tracker.reserve("IT-x", 2)
    runtime.processor.commit()

    assert runtime.store.get_item("IT-x").quantity == 5


def test_commit_defaults_person_and_department(seeded, make_runtime, settings):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-x", 1)

    result = runtime.processor.commit(person="   ")

    assert result.batch.person == settings.unnamed_person
    assert result.batch.dept == settings.departments[0]


def test_restock_always_uses_the_restock_department(seeded, make_runtime, settings):
    runtime = make_runtime()
    runtime.tracker.set_mode(TransactionType.IN)
    runtime.tracker.reserve("IT-x", 1)

    result = runtime.processor.commit(dept="South Team 2")

    assert result.batch.dept == settings.restock_department
    assert result.logs[0].dept == settings.restock_department


def test_issue_records_last_batch_restock_does_not(seeded, make_runtime):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-x", 1)
    out_result = runtime.processor.commit()

    runtime.tracker.set_mode(TransactionType.IN)
    runtime.tracker.reserve("IT-x", 1)
    runtime.processor.commit()

    assert runtime.processor.last_batch.id == out_result.batch.id
    assert runtime.processor.last_batch.mode == TransactionType.OUT


def test_empty_basket_cannot_be_committed(seeded, make_runtime):
    runtime = make_runtime()

    with pytest.raises(EmptyBasketError):
        runtime.processor.commit()
    assert not runtime.processor.in_progress


def test_reserved_item_deleted_remotely_is_logged_only(seeded, make_runtime, seed_hub):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-y", 2)
    seed_hub(make_snapshot(items=[make_item("IT-x", quantity=10)]))

    result = runtime.processor.commit()

    snapshot = runtime.store.snapshot()
    assert snapshot.find_item("IT-y") is None
    assert snapshot.find_item("IT-x").quantity == 10
    assert result.logs[0].item_name == "Ear plugs"


def test_abort_drops_the_basket(seeded, make_runtime):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-x", 2)

    runtime.processor.abort()

    assert runtime.tracker.is_empty()
    assert runtime.store.get_item("IT-x").quantity == 10


# ----------------------------------------------------------------------
# Commit guard
# ----------------------------------------------------------------------


def test_commit_while_guard_held_is_rejected(seeded, make_runtime):
    runtime = make_runtime()
    runtime.tracker.reserve("IT-x", 1)

    with runtime.processor._guard:
        with pytest.raises(CommitInProgressError):
            runtime.processor.commit()

    assert len(runtime.tracker.entries()) == 1
    assert runtime.store.get_item("IT-x").quantity == 10


class GatedLink:
    """
    Forwards to the hub, but every request first waits on `gate`. `entered`
    is set when a request reaches the transport.
    """

    def __init__(self, hub_link):
        self.gate = threading.Event()
        self.gate.set()
        self.entered = threading.Event()
        self._hub_link = hub_link
        self.client = httpx.Client(transport=httpx.MockTransport(self._handle))

    def _handle(self, request):
        self.entered.set()
        self.gate.wait(timeout=5)
        return self._hub_link._handle(request)

    def hold(self):
        self.gate.clear()
        self.entered.clear()


@pytest.fixture
def gated(hub_link):
    link = GatedLink(hub_link)
    yield link
    link.gate.set()
    link.client.close()


def test_second_commit_during_a_slow_refresh_is_a_no_op(seeded, make_runtime, gated):
    runtime = make_runtime(http_client=gated.client)
    runtime.tracker.reserve("IT-x", 2)
    gated.hold()

    with ThreadPoolExecutor(max_workers=1) as pool:
        first = pool.submit(runtime.processor.commit)
        assert gated.entered.wait(timeout=5)

        assert runtime.processor.in_progress
        with pytest.raises(CommitInProgressError):
            runtime.processor.commit()
        assert runtime.synchronizer.tick() is False

        gated.gate.set()
        result = first.result(timeout=5)

    assert result.pushed is True
    assert runtime.store.get_item("IT-x").quantity == 8
    assert len(runtime.store.snapshot().logs) == 1
    assert not runtime.processor.in_progress


def test_commit_waits_for_a_periodic_pull_in_flight(seeded, make_runtime, gated):
    runtime = make_runtime(http_client=gated.client)
    runtime.tracker.reserve("IT-x", 2)
    gated.hold()

    with ThreadPoolExecutor(max_workers=2) as pool:
        tick = pool.submit(runtime.synchronizer.tick)
        assert gated.entered.wait(timeout=5)

        commit = pool.submit(runtime.processor.commit, person="Chen")
        # Queued behind the pull, not rejected.
        done, _ = wait([commit], timeout=0.2)
        assert not done

        gated.gate.set()
        assert tick.result(timeout=5) is True
        result = commit.result(timeout=5)

    assert result.pushed is True
    assert result.basis == "remote"
    assert runtime.store.get_item("IT-x").quantity == 8
    assert runtime.tracker.is_empty()


def test_reservation_made_during_a_commit_stays_in_the_basket(seeded, make_runtime, gated):
    runtime = make_runtime(http_client=gated.client)
    runtime.tracker.reserve("IT-x", 2)
    gated.hold()

    with ThreadPoolExecutor(max_workers=1) as pool:
        first = pool.submit(runtime.processor.commit)
        assert gated.entered.wait(timeout=5)

        assert runtime.tracker.reserve("IT-x", 3).accepted

        gated.gate.set()
        result = first.result(timeout=5)

    assert [log.quantity for log in result.logs] == [2]
    assert [e.quantity for e in runtime.tracker.entries()] == [3]
    assert runtime.store.get_item("IT-x").quantity == 8

    runtime.processor.commit()
    assert runtime.store.get_item("IT-x").quantity == 5


# ----------------------------------------------------------------------
# Item add / edit / delete
# ----------------------------------------------------------------------


def test_create_item_is_pushed(seeded, make_runtime, read_hub):
    runtime = make_runtime()

    item = runtime.processor.create_item(
        ItemCreate(name="Fire blanket", item_type=ItemType.EQUIPMENT, quantity=2, min_stock=1)
    )

    assert item.id.startswith("IT-")
    assert item.last_updated > 0
    assert read_hub().find_item(item.id).name == "Fire blanket"
    assert len(runtime.store.snapshot().items) == 3


def test_create_medicine_keeps_dates(seeded, make_runtime):
    runtime = make_runtime()

    item = runtime.processor.create_item(
        ItemCreate(
            name="Saline",
            item_group=ItemGroup.MEDICINE,
            purchase_date="2024-01-10",
            expiry_date="2026-01-10",
        )
    )

    assert str(item.expiry_date) == "2026-01-10"


def test_dates_on_inventory_items_are_rejected_at_creation():
    with pytest.raises(ValueError):
        ItemCreate(name="Gloves", expiry_date="2026-01-10")


def test_update_item_changes_only_given_fields(seeded, make_runtime, read_hub):
    runtime = make_runtime()

    updated = runtime.processor.update_item("IT-x", ItemUpdate(min_stock=8))

    assert updated.min_stock == 8
    assert updated.name == "Safety helmet"
    assert updated.quantity == 10
    assert read_hub().find_item("IT-x").min_stock == 8


def test_update_inventory_item_with_dates_is_invalid(seeded, make_runtime):
    runtime = make_runtime()

    with pytest.raises(InvalidItemError):
        runtime.processor.update_item("IT-x", ItemUpdate(expiry_date="2026-01-10"))


def test_update_medicine_can_clear_expiry(seed_hub, make_runtime):
    seed_hub(
        make_snapshot(
            items=[
                make_item(
                    "IT-m",
                    item_group=ItemGroup.MEDICINE,
                    purchase_date="2024-01-10",
                    expiry_date="2026-01-10",
                )
            ]
        )
    )
    runtime = make_runtime()

    updated = runtime.processor.update_item("IT-m", ItemUpdate(expiry_date=None))

    assert updated.expiry_date is None
    assert str(updated.purchase_date) == "2024-01-10"


def test_moving_medicine_to_inventory_clears_dates(seed_hub, make_runtime):
    seed_hub(
        make_snapshot(
            items=[make_item("IT-m", item_group=ItemGroup.MEDICINE, expiry_date="2026-01-10")]
        )
    )
    runtime = make_runtime()

    updated = runtime.processor.update_item("IT-m", ItemUpdate(item_group=ItemGroup.INVENTORY))

    assert updated.expiry_date is None


def test_update_item_removed_by_another_client(seeded, make_runtime, seed_hub):
    runtime = make_runtime()
    seed_hub(make_snapshot(items=[make_item("IT-y")]))

    with pytest.raises(ItemNotFoundError):
        runtime.processor.update_item("IT-x", ItemUpdate(min_stock=1))


def test_delete_unknown_item(seeded, make_runtime):
    runtime = make_runtime()

    with pytest.raises(ItemNotFoundError):
        runtime.processor.delete_item("IT-missing")


# ----------------------------------------------------------------------
# Export / import
# ----------------------------------------------------------------------


def test_export_stamps_the_current_time(seeded, make_runtime):
    runtime = make_runtime()

    exported = runtime.processor.export_snapshot()

    assert exported.timestamp > 0
    assert [i.id for i in exported.items] == ["IT-x", "IT-y"]


def test_import_replaces_local_and_remote_without_pulling(seeded, make_runtime, hub_link, read_hub):
    runtime = make_runtime()
    hub_link.requests.clear()

    pushed = runtime.processor.import_snapshot(make_snapshot(items=[make_item("IT-imported")]))

    assert pushed is True
    assert [r.method for r in hub_link.requests] == ["POST"]
    assert [i.id for i in runtime.store.snapshot().items] == ["IT-imported"]
    assert [i.id for i in read_hub().items] == ["IT-imported"]
