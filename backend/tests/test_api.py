"""
API integration tests.

Exercises the HTTP surface end to end against the in-memory database:
scan ingestion, tracking, status updates, booking verification,
reconciliation, pricing and admin token control.
"""

import pytest

from backend.app.models.enums import UserRole
from backend.app.models.shipment_enums import ShipmentStatus
from backend.app.services import shipment_store


# --- Scan ingestion ---

@pytest.mark.asyncio
async def test_scan_creates_shipment(client, courier_headers, session_factory):
    response = await client.post("/v1/scan/ingest", json={"awb": " bce123456 "}, headers=courier_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["tracking_code"] == "BCE123456"
    assert data["status"] == "out_for_delivery"
    assert data["created"] is True
    assert data["manifest_source"] == "placeholder"
    assert data["history_status"] == "appended"

    async with session_factory() as session:
        shipment = await shipment_store.get_shipment(session, "BCE123456")
        assert shipment.courier_ref == "c-17"
        history = await shipment_store.list_history(session, "BCE123456")
        assert history[0].actor_name == "Budi"
        assert history[0].notes == "Scanned - Out for Delivery by Budi"


@pytest.mark.asyncio
async def test_scan_without_token_uses_request_courier(client, session_factory):
    response = await client.get(
        "/v1/scan/ingest",
        params={"awb": "BCE123457", "status": "delivered", "courierId": "c-30", "courierName": "Eko"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "delivered"

    async with session_factory() as session:
        shipment = await shipment_store.get_shipment(session, "BCE123457")
        assert shipment.courier_ref == "c-30"
        assert shipment.current_status == ShipmentStatus.DELIVERED


@pytest.mark.asyncio
async def test_scan_retry_reports_duplicate(client, courier_headers):
    await client.post("/v1/scan/ingest", json={"tracking_code": "BCE123458"}, headers=courier_headers)
    response = await client.post("/v1/scan/ingest", json={"tracking_code": "BCE123458"}, headers=courier_headers)

    assert response.status_code == 200
    assert response.json()["history_status"] == "duplicate_ignored"
    assert response.json()["message"] == "Updated existing shipment"


@pytest.mark.asyncio
async def test_scan_of_delivered_shipment_conflicts(client, make_shipment):
    await make_shipment("BCE123459", ShipmentStatus.DELIVERED)

    response = await client.post("/v1/scan/ingest", json={"awb_number": "BCE123459"})

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_002"
    assert response.json()["message"] == "Already delivered"


@pytest.mark.asyncio
async def test_scan_with_bad_prefix(client):
    response = await client.post("/v1/scan/ingest", json={"awb": "ZZ0001"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_FORMAT_001"


@pytest.mark.asyncio
async def test_scan_with_invalid_token_is_rejected(client):
    response = await client.post(
        "/v1/scan/ingest",
        json={"awb": "BCE123460"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


# --- Tracking and status updates ---

@pytest.mark.asyncio
async def test_tracking_lookup(client, make_shipment, add_history):
    await make_shipment("BCE200100")
    await add_history("BCE200100", ShipmentStatus.CREATED, minutes_ago=30)
    await add_history("BCE200100", ShipmentStatus.OUT_FOR_DELIVERY, minutes_ago=5)

    response = await client.get("/v1/shipments/bce200100")

    assert response.status_code == 200
    data = response.json()
    assert data["shipment"]["tracking_code"] == "BCE200100"
    assert [h["status"] for h in data["history"]] == ["out_for_delivery", "created"]


@pytest.mark.asyncio
async def test_tracking_unknown_code(client):
    response = await client.get("/v1/shipments/BCE000404")
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_courier_delivers_with_proof(client, make_shipment, actor_headers):
    await make_shipment("BCE200101", courier_ref=None)

    response = await client.post(
        "/v1/shipments/BCE200101/status",
        json={
            "status": "delivered",
            "location": "Receiver door",
            "photo_url": "pod/BCE200101.jpg",
            "latitude": -2.13,
            "longitude": 106.11,
        },
        headers=actor_headers("c-44", UserRole.COURIER, name="Sari"),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "delivered"
    assert data["previous_status"] == "out_for_delivery"
    assert data["courier_ref"] == "c-44"
    assert data["history_status"] == "appended"
    assert data["warning"] is None


@pytest.mark.asyncio
async def test_admin_update_after_courier_scan_is_recorded(client, courier_headers, admin_headers, session_factory):
    await client.post("/v1/scan/ingest", json={"awb": "BCE200105"}, headers=courier_headers)

    response = await client.post(
        "/v1/shipments/BCE200105/status",
        json={"status": "out_for_delivery", "location": "Branch desk"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["history_status"] == "appended"
    assert response.json()["courier_ref"] == "c-17"

    async with session_factory() as session:
        history = await shipment_store.list_history(session, "BCE200105")
        assert [h.courier_ref for h in history] == ["admin-1", "c-17"]
        assert history[0].actor_name == "Ops Admin"


@pytest.mark.asyncio
async def test_status_update_on_delivered_conflicts(client, make_shipment, admin_headers):
    await make_shipment("BCE200102", ShipmentStatus.DELIVERED)

    response = await client.post(
        "/v1/shipments/BCE200102/status",
        json={"status": "exception", "location": "Hub"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_001"


@pytest.mark.asyncio
async def test_status_update_requires_token(client, make_shipment):
    await make_shipment("BCE200103")

    response = await client.post("/v1/shipments/BCE200103/status", json={"status": "delivered", "location": "Hub"})

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_status_update_rejects_agent_role(client, make_shipment, actor_headers):
    await make_shipment("BCE200104")

    response = await client.post(
        "/v1/shipments/BCE200104/status",
        json={"status": "delivered", "location": "Hub"},
        headers=actor_headers("agent-3", UserRole.AGENT),
    )

    assert response.status_code == 403


# --- Booking verification ---

@pytest.mark.asyncio
async def test_branch_lists_only_own_bookings(client, make_booking, branch_headers, admin_headers):
    await make_booking("BCE900100", origin_branch="BANGKA")
    await make_booking("BCE900101", origin_branch="BELITUNG")

    own = await client.get("/v1/bookings/pending", headers=branch_headers)
    everything = await client.get("/v1/bookings/pending", headers=admin_headers)

    assert [b["tracking_code"] for b in own.json()["bookings"]] == ["BCE900100"]
    assert everything.json()["total"] == 2


@pytest.mark.asyncio
async def test_promote_booking_and_audit(client, make_booking, branch_headers, admin_headers):
    booking = await make_booking("BCE900102", weight=5, admin_fee=2000)

    response = await client.post(f"/v1/bookings/{booking.id}/promote", headers=branch_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["subtotal"] == 135000
    assert data["total"] == 137000
    assert data["settlement_status"] == "outstanding"

    again = await client.post(f"/v1/bookings/{booking.id}/promote", headers=branch_headers)
    assert again.status_code == 409

    logs = await client.get("/v1/admin/audit-logs", params={"action": "BOOKING_VERIFIED"}, headers=admin_headers)
    assert logs.json()["total"] == 1
    assert logs.json()["logs"][0]["target_ref"] == "BCE900102"
    assert logs.json()["logs"][0]["actor_ref"] == "b-1"


@pytest.mark.asyncio
async def test_promote_with_edits(client, make_booking, admin_headers):
    booking = await make_booking("BCE900103")

    response = await client.post(
        f"/v1/bookings/{booking.id}/promote",
        json={"weight": 3, "packaging_fee": 5000},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["subtotal"] == 81000
    assert response.json()["total"] == 86000


@pytest.mark.asyncio
async def test_branch_cannot_touch_other_branch(client, make_booking, branch_headers):
    booking = await make_booking("BCE900104", origin_branch="BELITUNG")

    response = await client.post(f"/v1/bookings/{booking.id}/promote", headers=branch_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_reject_booking(client, make_booking, branch_headers):
    booking = await make_booking("BCE900105")

    empty = await client.post(f"/v1/bookings/{booking.id}/reject", json={"reason": ""}, headers=branch_headers)
    assert empty.status_code == 422

    response = await client.post(
        f"/v1/bookings/{booking.id}/reject", json={"reason": "Receiver unreachable"}, headers=branch_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "Receiver unreachable"


# --- Reconciliation ---

@pytest.mark.asyncio
async def test_verify_and_fix_sync(client, make_shipment, add_history, admin_headers, session_factory):
    await make_shipment("BCE500100", ShipmentStatus.OUT_FOR_DELIVERY, age_days=10)
    await add_history("BCE500100", ShipmentStatus.DELIVERED)

    verify = await client.get("/v1/reconciliation/couriers/c-17/verify-sync", headers=admin_headers)
    assert verify.status_code == 200
    mismatches = verify.json()["mismatches"]
    assert mismatches == [{
        "tracking_code": "BCE500100",
        "shipment_status": "out_for_delivery",
        "history_status": "delivered",
    }]

    fix = await client.post("/v1/reconciliation/fix-sync", json={"mismatches": mismatches}, headers=admin_headers)
    assert fix.status_code == 200
    assert fix.json()["fixed"] == 1
    assert fix.json()["total"] == 1

    async with session_factory() as session:
        shipment = await shipment_store.get_shipment(session, "BCE500100")
        assert shipment.current_status == ShipmentStatus.DELIVERED
        assert await shipment_store.count_history(session, "BCE500100") == 1


@pytest.mark.asyncio
async def test_bulk_update_endpoint(client, make_shipment, admin_headers):
    for code in ("BCE600100", "BCE600101", "BCE600102"):
        await make_shipment(code, age_days=10)
    await make_shipment("BCE600103", age_days=1)

    response = await client.post(
        "/v1/reconciliation/bulk-update",
        json={"courier_ref": "c-17", "target_status": "delivered"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["updated_count"] == 3
    assert data["nothing_to_update"] is False
    assert data["partial_failure"] is False
    assert data["chunks"][0]["state"] == "completed"

    repeat = await client.post(
        "/v1/reconciliation/bulk-update",
        json={"courier_ref": "c-17", "target_status": "delivered"},
        headers=admin_headers,
    )
    assert repeat.json()["nothing_to_update"] is True


@pytest.mark.asyncio
async def test_stale_counts(client, make_shipment, admin_headers):
    await make_shipment("BCE600110", courier_ref="c-17", age_days=10)
    await make_shipment("BCE600111", courier_ref="c-18", age_days=10)

    response = await client.get("/v1/reconciliation/stale-counts", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"age_days": 7, "counts": {"c-17": 1, "c-18": 1}}


@pytest.mark.asyncio
async def test_reconciliation_is_admin_only(client, courier_headers, branch_headers):
    for headers in (courier_headers, branch_headers):
        response = await client.get("/v1/reconciliation/stale-counts", headers=headers)
        assert response.status_code == 403


# --- Pricing ---

@pytest.mark.asyncio
async def test_pricing_resolve(client):
    response = await client.get("/v1/pricing/resolve", params={"city": "JAKARTA UTARA", "district": "Sunter Jaya"})

    assert response.status_code == 200
    assert response.json()["price_per_weight"] == 27000
    assert response.json()["transit_surcharge"] == 0


@pytest.mark.asyncio
async def test_pricing_districts_and_quote(client):
    districts = await client.get("/v1/pricing/districts", params={"city": "DEPOK"})
    assert "Tapos" in districts.json()["districts"]

    quote = await client.post("/v1/pricing/quote", json={"city": "DEPOK", "district": "Tapos", "weight": 1.4})
    assert quote.status_code == 200
    assert quote.json()["billable_weight"] == 2
    assert quote.json()["transit_surcharge"] == 30000


# --- Admin and health ---

@pytest.mark.asyncio
async def test_revoked_actor_is_locked_out(client, make_shipment, admin_headers, courier_headers):
    await make_shipment("BCE200200")

    revoke = await client.post(
        "/v1/admin/actors/c-17/revoke-tokens", json={"reason": "Lost device"}, headers=admin_headers
    )
    assert revoke.status_code == 200
    assert revoke.json()["action"] == "ACTOR_TOKENS_REVOKED"

    blocked = await client.post(
        "/v1/shipments/BCE200200/status",
        json={"status": "delivered", "location": "Hub"},
        headers=courier_headers,
    )
    assert blocked.status_code == 401

    restore = await client.post("/v1/admin/actors/c-17/restore-tokens", json={}, headers=admin_headers)
    assert restore.status_code == 200

    allowed = await client.post(
        "/v1/shipments/BCE200200/status",
        json={"status": "delivered", "location": "Hub"},
        headers=courier_headers,
    )
    assert allowed.status_code == 200


@pytest.mark.asyncio
async def test_admin_cannot_revoke_self(client, admin_headers):
    response = await client.post("/v1/admin/actors/admin-1/revoke-tokens", json={}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_single_token_revocation(client, admin_headers, actor_token):
    token = actor_token("c-50", UserRole.COURIER)

    response = await client.post("/v1/admin/tokens/revoke", json={"token": token}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["actor_ref"] == "c-50"

    blocked = await client.get("/v1/scan/ingest", params={"awb": "BCE200201"}, headers={"Authorization": f"Bearer {token}"})
    assert blocked.status_code == 401


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "up"
