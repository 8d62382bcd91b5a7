"""
Status transition and history append tests.

Validates the terminal-state guard, the shipment-first write order and
idempotent history insertion.
"""

import pytest
from datetime import datetime, timezone

from backend.app.core.exceptions import (
    InvalidTransitionError,
    PersistenceError,
    ResourceNotFoundError,
    TerminalStateViolationError,
)
from backend.app.models.shipment_enums import ShipmentStatus
from backend.app.services import shipment_store
from backend.app.services.history import HistoryOutcome, append_history, build_dedup_key
from backend.app.services.status_transition import apply_status


@pytest.mark.asyncio
async def test_apply_status_writes_shipment_and_history(db_session, make_shipment):
    await make_shipment("BCE100001", ShipmentStatus.OUT_FOR_DELIVERY)

    result = await apply_status(
        db_session, "BCE100001", ShipmentStatus.DELIVERED, "Receiver door",
        notes="Left with security", courier_ref="c-17", photo_url="pod/BCE100001.jpg",
        latitude=-6.12, longitude=106.88,
    )

    assert result.status == ShipmentStatus.DELIVERED
    assert result.previous_status == ShipmentStatus.OUT_FOR_DELIVERY
    assert result.history_outcome == HistoryOutcome.APPENDED
    assert result.warning is None

    shipment = await shipment_store.get_shipment(db_session, "BCE100001")
    assert shipment.current_status == ShipmentStatus.DELIVERED

    history = await shipment_store.list_history(db_session, "BCE100001")
    assert len(history) == 1
    assert history[0].status == ShipmentStatus.DELIVERED
    assert history[0].photo_url == "pod/BCE100001.jpg"
    assert history[0].latitude == pytest.approx(-6.12)


@pytest.mark.asyncio
async def test_delivered_shipment_rejects_every_transition(db_session, make_shipment):
    await make_shipment("BCE100002", ShipmentStatus.DELIVERED)

    for target in (ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.EXCEPTION, ShipmentStatus.CREATED):
        with pytest.raises(TerminalStateViolationError):
            await apply_status(db_session, "BCE100002", target, "Hub")

    shipment = await shipment_store.get_shipment(db_session, "BCE100002")
    assert shipment.current_status == ShipmentStatus.DELIVERED
    assert await shipment_store.count_history(db_session, "BCE100002") == 0


@pytest.mark.asyncio
async def test_cannot_move_back_to_created(db_session, make_shipment):
    await make_shipment("BCE100003", ShipmentStatus.OUT_FOR_DELIVERY)

    with pytest.raises(InvalidTransitionError):
        await apply_status(db_session, "BCE100003", ShipmentStatus.CREATED, "Hub")


@pytest.mark.asyncio
async def test_exception_reachable_from_created(db_session, make_shipment):
    await make_shipment("BCE100004", ShipmentStatus.CREATED)

    result = await apply_status(db_session, "BCE100004", "exception", "Hub", notes="Address not found")
    assert result.status == ShipmentStatus.EXCEPTION


@pytest.mark.asyncio
async def test_unknown_shipment_not_found(db_session):
    with pytest.raises(ResourceNotFoundError):
        await apply_status(db_session, "BCE404404", ShipmentStatus.DELIVERED, "Hub")


@pytest.mark.asyncio
async def test_history_failure_degrades_to_warning(db_session, make_shipment, mocker):
    """The status change stands when only the history append fails."""
    await make_shipment("BCE100005", ShipmentStatus.OUT_FOR_DELIVERY)
    mocker.patch(
        "backend.app.services.status_transition.append_history",
        side_effect=PersistenceError("history table unavailable"),
    )

    result = await apply_status(db_session, "BCE100005", ShipmentStatus.DELIVERED, "Hub")

    assert result.status == ShipmentStatus.DELIVERED
    assert result.history_outcome is None
    assert result.warning == "history table unavailable"

    shipment = await shipment_store.get_shipment(db_session, "BCE100005")
    assert shipment.current_status == ShipmentStatus.DELIVERED
    assert await shipment_store.count_history(db_session, "BCE100005") == 0


@pytest.mark.asyncio
async def test_duplicate_history_is_ignored(db_session, make_shipment):
    await make_shipment("BCE100006")

    first = await append_history(db_session, "BCE100006", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-17")
    second = await append_history(db_session, "BCE100006", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-17")

    assert first == HistoryOutcome.APPENDED
    assert second == HistoryOutcome.DUPLICATE_IGNORED
    assert await shipment_store.count_history(db_session, "BCE100006") == 1


@pytest.mark.asyncio
async def test_different_actor_is_not_a_duplicate(db_session, make_shipment):
    await make_shipment("BCE100007")

    await append_history(db_session, "BCE100007", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-17")
    outcome = await append_history(db_session, "BCE100007", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-18")

    assert outcome == HistoryOutcome.APPENDED
    assert await shipment_store.count_history(db_session, "BCE100007") == 2


@pytest.mark.asyncio
async def test_history_for_missing_shipment_is_persistence_error(db_session):
    """Foreign key failures are not mistaken for duplicates."""
    with pytest.raises(PersistenceError):
        await append_history(db_session, "BCE000000", ShipmentStatus.DELIVERED, "Hub", courier_ref="c-17")


def test_dedup_key_follows_previous_entry():
    key = build_dedup_key("BCE1", ShipmentStatus.DELIVERED, "c-17", 41)

    assert key == "BCE1|delivered|c-17|41"
    assert key != build_dedup_key("BCE1", ShipmentStatus.DELIVERED, "c-17", 42)
    assert build_dedup_key("BCE1", ShipmentStatus.DELIVERED, None, None) == "BCE1|delivered||0"


@pytest.mark.asyncio
async def test_reentered_status_is_appended(db_session, make_shipment):
    """Leaving a status and returning to it is a new event, not a retry."""
    await make_shipment("BCE100008", ShipmentStatus.CREATED, courier_ref="c-17")

    await apply_status(db_session, "BCE100008", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-17")
    await apply_status(db_session, "BCE100008", ShipmentStatus.EXCEPTION, "Hub", courier_ref="c-17")
    result = await apply_status(db_session, "BCE100008", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-17")

    assert result.history_outcome == HistoryOutcome.APPENDED
    shipment = await shipment_store.get_shipment(db_session, "BCE100008")
    latest = await shipment_store.get_latest_history_status(db_session, "BCE100008")
    assert latest == shipment.current_status == ShipmentStatus.OUT_FOR_DELIVERY
    assert await shipment_store.count_history(db_session, "BCE100008") == 3


@pytest.mark.asyncio
async def test_retry_across_clock_boundary_is_ignored(db_session, make_shipment, mocker):
    await make_shipment("BCE100009")
    clock = mocker.patch("backend.app.services.history.utcnow")

    clock.return_value = datetime(2026, 1, 5, 0, 4, 59, 900000, tzinfo=timezone.utc)
    first = await append_history(db_session, "BCE100009", ShipmentStatus.DELIVERED, "Hub", courier_ref="c-17")
    clock.return_value = datetime(2026, 1, 5, 0, 5, 0, 100000, tzinfo=timezone.utc)
    second = await append_history(db_session, "BCE100009", ShipmentStatus.DELIVERED, "Hub", courier_ref="c-17")

    assert first == HistoryOutcome.APPENDED
    assert second == HistoryOutcome.DUPLICATE_IGNORED
    assert await shipment_store.count_history(db_session, "BCE100009") == 1


@pytest.mark.asyncio
async def test_same_status_after_window_is_appended(db_session, make_shipment, mocker):
    await make_shipment("BCE100010")
    clock = mocker.patch("backend.app.services.history.utcnow")

    clock.return_value = datetime(2026, 1, 5, 10, 0, 0, tzinfo=timezone.utc)
    await append_history(db_session, "BCE100010", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-17")
    clock.return_value = datetime(2026, 1, 5, 10, 5, 1, tzinfo=timezone.utc)
    outcome = await append_history(db_session, "BCE100010", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-17")

    assert outcome == HistoryOutcome.APPENDED
    assert await shipment_store.count_history(db_session, "BCE100010") == 2


@pytest.mark.asyncio
async def test_operator_update_is_credited_to_operator(db_session, make_shipment):
    """An operator's change is recorded under the operator, not the assigned courier."""
    await make_shipment("BCE100011", ShipmentStatus.CREATED, courier_ref="c-17")
    await apply_status(db_session, "BCE100011", ShipmentStatus.OUT_FOR_DELIVERY, "Hub", courier_ref="c-17")

    result = await apply_status(
        db_session, "BCE100011", ShipmentStatus.OUT_FOR_DELIVERY, "Hub",
        actor_name="Ops Admin", actor_ref="admin-1",
    )

    assert result.history_outcome == HistoryOutcome.APPENDED
    assert result.courier_ref == "c-17"
    history = await shipment_store.list_history(db_session, "BCE100011")
    assert [h.courier_ref for h in history] == ["admin-1", "c-17"]
