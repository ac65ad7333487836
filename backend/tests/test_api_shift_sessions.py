"""
Shift session API tests.

Every request round-trips the session through (mock) Redis.
"""

import pytest

BASE = "/v1/shift-sessions"


async def open_session(client, headers, session_id=None):
    payload = {"session_id": session_id} if session_id else None
    response = await client.post(BASE, json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["session_id"]


async def start_active_shift(client, headers):
    session_id = await open_session(client, headers)
    await client.post(f"{BASE}/{session_id}/identify", json={"employee_id": "EMP-42"}, headers=headers)
    response = await client.post(f"{BASE}/{session_id}/start", json={
        "vehicle_number": "KA01AB1234",
        "total_trips_planned": 4,
        "odometer_start": 1000,
    }, headers=headers)
    assert response.status_code == 200
    return session_id


@pytest.mark.asyncio
async def test_full_shift_flow(client, pilot_headers):
    session_id = await open_session(client, pilot_headers)

    identified = await client.post(
        f"{BASE}/{session_id}/identify", json={"employee_id": "EMP-42"}, headers=pilot_headers
    )
    assert identified.json()["current_step"] == "start-shift"

    started = await client.post(f"{BASE}/{session_id}/start", json={
        "vehicle_number": "KA01AB1234", "total_trips_planned": 4, "odometer_start": 1000
    }, headers=pilot_headers)
    assert started.json()["current_step"] == "active-shift"
    assert started.json()["shift_data"]["start_time"] is not None

    added = await client.post(f"{BASE}/{session_id}/trips", json={
        "mode": "UBER", "amount": 100, "tip": 20, "payment_mode": "Cash"
    }, headers=pilot_headers)
    assert added.status_code == 201
    trip_id = added.json()["trips"][0]["id"]

    await client.post(f"{BASE}/{session_id}/trips", json={
        "mode": "Airport", "amount": 200, "payment_mode": "UPI - QR"
    }, headers=pilot_headers)

    amended = await client.patch(
        f"{BASE}/{session_id}/trips/{trip_id}", json={"tip": 30}, headers=pilot_headers
    )
    assert amended.json()["analytics"]["total_earnings"] == 330

    ended = await client.post(f"{BASE}/{session_id}/end", json={"odometer_end": 1080}, headers=pilot_headers)
    assert ended.status_code == 200
    assert ended.json()["current_step"] == "analytics"
    assert ended.json()["is_shift_ended"] is True

    analytics = await client.get(f"{BASE}/{session_id}/analytics", headers=pilot_headers)
    assert analytics.json()["total_trips"] == 2
    assert analytics.json()["efficiency"]["utilization_rate"] == 50

    exported = await client.get(f"{BASE}/{session_id}/export", headers=pilot_headers)
    assert exported.json()["employee_id"] == "EMP-42"
    assert len(exported.json()["trips"]) == 2


@pytest.mark.asyncio
async def test_session_survives_reload(client, pilot_headers):
    session_id = await start_active_shift(client, pilot_headers)
    await client.post(f"{BASE}/{session_id}/trips", json={
        "mode": "Rapido", "amount": 80, "payment_mode": "Wallet"
    }, headers=pilot_headers)

    response = await client.get(f"{BASE}/{session_id}", headers=pilot_headers)

    assert response.status_code == 200
    assert response.json()["current_step"] == "active-shift"
    assert response.json()["analytics"]["total_earnings"] == 80


@pytest.mark.asyncio
async def test_invalid_trip_is_rejected_and_not_saved(client, pilot_headers):
    session_id = await start_active_shift(client, pilot_headers)

    response = await client.post(f"{BASE}/{session_id}/trips", json={
        "mode": "UBER", "amount": 300, "payment_mode": "Cash",
        "part_payment": {"enabled": True, "payments": [{"amount": 100, "mode": "Cash"}]},
    }, headers=pilot_headers)
    assert response.status_code == 422

    session = await client.get(f"{BASE}/{session_id}", headers=pilot_headers)
    assert session.json()["trips"] == []


@pytest.mark.asyncio
async def test_steps_cannot_be_skipped(client, pilot_headers):
    session_id = await open_session(client, pilot_headers)

    response = await client.post(f"{BASE}/{session_id}/trips", json={
        "mode": "UBER", "amount": 100, "payment_mode": "Cash"
    }, headers=pilot_headers)

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_INVALID_STATE_001"


@pytest.mark.asyncio
async def test_analytics_before_end_is_rejected(client, pilot_headers):
    session_id = await start_active_shift(client, pilot_headers)

    response = await client.get(f"{BASE}/{session_id}/analytics", headers=pilot_headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_end_odometer_regression(client, pilot_headers):
    session_id = await start_active_shift(client, pilot_headers)

    response = await client.post(f"{BASE}/{session_id}/end", json={"odometer_end": 500}, headers=pilot_headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reset_keeps_employee_and_delete_forgets(client, pilot_headers):
    session_id = await start_active_shift(client, pilot_headers)

    reset = await client.post(f"{BASE}/{session_id}/reset", headers=pilot_headers)
    assert reset.json()["employee_id"] == "EMP-42"
    assert reset.json()["current_step"] == "employee-id"

    deleted = await client.delete(f"{BASE}/{session_id}", headers=pilot_headers)
    assert deleted.status_code == 204

    missing = await client.get(f"{BASE}/{session_id}", headers=pilot_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_reopening_known_session_restores_identity(client, pilot_headers, redis):
    session_id = await open_session(client, pilot_headers)
    await client.post(f"{BASE}/{session_id}/identify", json={"employee_id": "EMP-42"}, headers=pilot_headers)
    # the snapshot is lost but the remembered identity is not
    await redis.delete(f"shift:session:{session_id}")

    reopened = await client.post(BASE, json={"session_id": session_id}, headers=pilot_headers)

    assert reopened.json()["employee_id"] == "EMP-42"


@pytest.mark.asyncio
async def test_supervisor_has_no_shift_sessions(client, supervisor_headers):
    response = await client.post(BASE, headers=supervisor_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_session(client, employee_headers):
    response = await client.get(f"{BASE}/does-not-exist", headers=employee_headers)

    assert response.status_code == 404
