"""
Analytics API tests.
"""

import pytest

BASE = "/v1/analytics"


@pytest.mark.asyncio
async def test_compute_trip_analytics(client, pilot_headers):
    payload = {
        "shift_data": {
            "vehicle_number": "KA01AB1234",
            "start_time": "2025-01-06T08:00:00",
            "end_time": "2025-01-06T10:00:00",
            "total_trips_planned": 4,
        },
        "trips": [
            {"mode": "UBER", "amount": 100, "tip": 20, "payment_mode": "Cash",
             "timestamp": "2025-01-06T09:15:00"},
            {"mode": "Airport", "amount": 200, "payment_mode": "UPI - QR",
             "timestamp": "2025-01-06T09:40:00"},
        ],
    }

    response = await client.post(f"{BASE}/trips/compute", json=payload, headers=pilot_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["total_earnings"] == 320
    assert body["payment_breakdown"] == {"cash": 120, "digital": 200, "pending": 0}
    assert body["efficiency"]["utilization_rate"] == 50
    assert body["hourly_earnings"] == [{"hour": 9, "earnings": 320, "trips": 2}]


@pytest.mark.asyncio
async def test_compute_rejects_unknown_payment_mode(client, pilot_headers):
    payload = {
        "shift_data": {"total_trips_planned": 1},
        "trips": [{"mode": "UBER", "amount": 10, "payment_mode": "Crypto"}],
    }

    response = await client.post(f"{BASE}/trips/compute", json=payload, headers=pilot_headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_deployment_summary(client, registry, supervisor_headers):
    deployments = "/v1/vehicle-deployment/deployments"
    out = await client.post(f"{deployments}/check-out", json={
        "registration_number": "KA01AB1234",
        "pilot_id": "P-1",
        "purpose": "Office",
        "out_data": {"odometer": 100, "supervisor_name": "Ravi"},
    }, headers=supervisor_headers)
    await client.post(
        f"{deployments}/{out.json()['deployment_id']}/check-in",
        json={"in_data": {"return_odometer": 130, "in_supervisor_name": "Asha"}},
        headers=supervisor_headers
    )
    await client.post(f"{deployments}/check-out", json={
        "registration_number": "KA05MN4321",
        "pilot_id": "P-2",
        "purpose": "Pilot",
        "out_data": {"odometer": 5, "supervisor_name": "Ravi"},
    }, headers=supervisor_headers)

    response = await client.get(f"{BASE}/deployments/summary", headers=supervisor_headers)

    assert response.status_code == 200
    summary = response.json()["summary"]
    assert summary["total_deployments"] == 2
    assert summary["completed_deployments"] == 1
    assert summary["in_progress_deployments"] == 1
    assert summary["total_kms"] == 30
    utilization = response.json()["vehicle_utilization"]
    assert [u["vehicle_registration"] for u in utilization] == ["KA01AB1234", "KA05MN4321"]

    office_only = await client.get(
        f"{BASE}/deployments/summary", params={"purpose": "Office"}, headers=supervisor_headers
    )
    assert office_only.json()["summary"]["total_deployments"] == 1


@pytest.mark.asyncio
async def test_employee_cannot_read_analytics(client, employee_headers):
    response = await client.get(f"{BASE}/deployments/summary", headers=employee_headers)

    assert response.status_code == 403
