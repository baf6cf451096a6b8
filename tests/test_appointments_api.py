"""
API tests for scheduling endpoints.

Coverage:
- Booking, 409 conflict body, acknowledgment
- Business scoping and 404s
- Edit / status / move / duplicate / delete
- Batch toolbar actions
- Slot grid, day load, quick reschedule
- Templates CRUD
- Health check
"""

import uuid
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from appointment_core.db.enums import AppointmentStatus
from appointment_core.main import app


def _prefix(business) -> str:
    return f"/businesses/{business.id}"


# =============================================================================
# Booking
# =============================================================================

@pytest.mark.asyncio
async def test_create_appointment(client, business, contact):
    response = await client.post(
        f"{_prefix(business)}/appointments",
        json={
            "scheduled_at": "2030-03-04T09:00:00",
            "duration_minutes": 45,
            "contact_id": str(contact.id),
            "service_type": "Cut",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["count"] == 1
    assert data["conflicts"] == []
    appt = data["appointments"][0]
    assert appt["status"] == "pending"
    assert appt["scheduled_end"] == "2030-03-04T09:45:00"
    assert appt["contact"]["name"] == "Jordan Lee"


@pytest.mark.asyncio
async def test_create_conflict_returns_409_with_conflicts(client, business, contact, make_appointment):
    existing = make_appointment(datetime(2030, 3, 4, 10, 30), 30, AppointmentStatus.CONFIRMED)
    payload = {
        "scheduled_at": "2030-03-04T10:00:00",
        "duration_minutes": 60,
        "contact_id": str(contact.id),
    }

    response = await client.post(f"{_prefix(business)}/appointments", json=payload)

    assert response.status_code == 409
    body = response.json()
    assert [c["id"] for c in body["conflicts"]] == [str(existing.id)]
    assert body["conflicts"][0]["contact_name"] == "Jordan Lee"

    response = await client.post(
        f"{_prefix(business)}/appointments", json={**payload, "acknowledge_conflicts": True}
    )
    assert response.status_code == 201
    assert len(response.json()["conflicts"]) == 1


@pytest.mark.asyncio
async def test_create_recurring_series(client, business, contact):
    response = await client.post(
        f"{_prefix(business)}/appointments",
        json={
            "scheduled_at": "2030-03-01T10:00:00",
            "contact_id": str(contact.id),
            "recurrence_pattern": "monthly",
            "recurrence_end_date": "2030-05-01",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["count"] == 3
    parent_id = data["appointments"][0]["id"]
    assert [a["recurrence_parent_id"] for a in data["appointments"][1:]] == [parent_id, parent_id]


@pytest.mark.asyncio
async def test_create_with_new_contact(client, business):
    response = await client.post(
        f"{_prefix(business)}/appointments",
        json={
            "scheduled_at": "2030-03-04T09:00:00",
            "new_contact_phone": "+15555550123",
            "new_contact_name": "Sam Park",
        },
    )

    assert response.status_code == 201
    assert response.json()["appointments"][0]["contact"]["phone_number"] == "+15555550123"


@pytest.mark.asyncio
async def test_create_without_contact_is_400(client, business):
    response = await client.post(
        f"{_prefix(business)}/appointments", json={"scheduled_at": "2030-03-04T09:00:00"}
    )
    assert response.status_code == 400
    assert "contact" in response.json()["detail"]


@pytest.mark.asyncio
async def test_booking_past_midnight_is_400(client, business, contact):
    response = await client.post(
        f"{_prefix(business)}/appointments",
        json={
            "scheduled_at": "2030-03-04T23:30:00",
            "duration_minutes": 60,
            "contact_id": str(contact.id),
        },
    )
    assert response.status_code == 400
    assert "midnight" in response.json()["detail"]


@pytest.mark.asyncio
async def test_recurring_without_end_date_is_400(client, business, contact):
    response = await client.post(
        f"{_prefix(business)}/appointments",
        json={
            "scheduled_at": "2030-03-04T09:00:00",
            "contact_id": str(contact.id),
            "recurrence_pattern": "weekly",
        },
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_offset_aware_time_converted_to_business_time(client, business, contact):
    response = await client.post(
        f"{_prefix(business)}/appointments",
        json={"scheduled_at": "2030-03-04T18:00:00Z", "contact_id": str(contact.id)},
    )

    assert response.status_code == 201
    # America/Los_Angeles is UTC-8 before DST starts
    assert response.json()["appointments"][0]["scheduled_at"] == "2030-03-04T10:00:00"


@pytest.mark.asyncio
async def test_conflict_check_endpoint(client, business, make_appointment):
    existing = make_appointment(datetime(2030, 3, 4, 10), 60)

    response = await client.post(
        f"{_prefix(business)}/appointments/conflicts",
        json={"scheduled_at": "2030-03-04T10:30:00", "duration_minutes": 30},
    )
    assert response.json()["has_conflicts"] is True

    response = await client.post(
        f"{_prefix(business)}/appointments/conflicts",
        json={
            "scheduled_at": "2030-03-04T10:30:00",
            "duration_minutes": 30,
            "exclude_appointment_id": str(existing.id),
        },
    )
    assert response.json() == {"has_conflicts": False, "conflicts": []}


# =============================================================================
# Scoping
# =============================================================================

@pytest.mark.asyncio
async def test_unknown_business_is_404(client):
    response = await client.get(f"/businesses/{uuid.uuid4()}/appointments")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_other_business_cannot_read_appointment(client, other_business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 9))
    response = await client.get(f"{_prefix(other_business)}/appointments/{appt.id}")
    assert response.status_code == 404


# =============================================================================
# Edit / status / move / duplicate / delete
# =============================================================================

@pytest.mark.asyncio
async def test_list_and_status_counts(client, business, make_appointment):
    make_appointment(datetime(2030, 3, 4, 9))
    make_appointment(datetime(2030, 3, 5, 9), status=AppointmentStatus.CONFIRMED)
    make_appointment(datetime(2030, 3, 6, 9), status=AppointmentStatus.CANCELLED)

    response = await client.get(
        f"{_prefix(business)}/appointments",
        params={"date_start": "2030-03-04", "date_end": "2030-03-05", "per_page": 1},
    )
    data = response.json()
    assert data["total"] == 2
    assert data["pages"] == 2
    assert data["items"][0]["scheduled_at"] == "2030-03-04T09:00:00"

    response = await client.get(f"{_prefix(business)}/appointments/status-counts")
    assert response.json() == {"pending": 1, "confirmed": 1, "completed": 0, "cancelled": 1}


@pytest.mark.asyncio
async def test_list_filters_by_status_and_rejects_inverted_window(client, business, make_appointment):
    make_appointment(datetime(2030, 3, 4, 9))
    confirmed = make_appointment(datetime(2030, 3, 5, 9), status=AppointmentStatus.CONFIRMED)

    response = await client.get(f"{_prefix(business)}/appointments", params={"status": "confirmed"})
    assert [item["id"] for item in response.json()["items"]] == [str(confirmed.id)]

    response = await client.get(
        f"{_prefix(business)}/appointments",
        params={"date_start": "2030-03-05", "date_end": "2030-03-04"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_conflict_and_acknowledge(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 9), 60)
    make_appointment(datetime(2030, 3, 4, 10), 60)
    url = f"{_prefix(business)}/appointments/{appt.id}"

    response = await client.patch(url, json={"duration_minutes": 90})
    assert response.status_code == 409

    response = await client.patch(url, json={"duration_minutes": 90, "acknowledge_conflicts": True})
    assert response.status_code == 200
    assert response.json()["appointment"]["duration_minutes"] == 90


@pytest.mark.asyncio
async def test_status_change(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 9))
    response = await client.post(
        f"{_prefix(business)}/appointments/{appt.id}/status", json={"status": "completed"}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"


@pytest.mark.asyncio
async def test_invalid_status_is_422(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 9))
    response = await client.post(
        f"{_prefix(business)}/appointments/{appt.id}/status", json={"status": "archived"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_move_keeps_time_of_day(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 14, 30), 45)
    response = await client.post(
        f"{_prefix(business)}/appointments/{appt.id}/move", json={"day": "2030-03-10"}
    )
    assert response.status_code == 200
    assert response.json()["appointment"]["scheduled_at"] == "2030-03-10T14:30:00"


@pytest.mark.asyncio
async def test_duplicate_to_given_day(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 14), 45, AppointmentStatus.CONFIRMED)
    response = await client.post(
        f"{_prefix(business)}/appointments/{appt.id}/duplicate",
        json={"day": "2030-03-07", "time": "16:00"},
    )
    assert response.status_code == 201
    copy = response.json()["appointments"][0]
    assert copy["id"] != str(appt.id)
    assert copy["scheduled_at"] == "2030-03-07T16:00:00"
    assert copy["status"] == "pending"
    assert copy["duration_minutes"] == 45


@pytest.mark.asyncio
async def test_duplicate_rejects_malformed_time(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 14))
    response = await client.post(
        f"{_prefix(business)}/appointments/{appt.id}/duplicate", json={"time": "4pm"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_appointment(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 9))
    url = f"{_prefix(business)}/appointments/{appt.id}"

    assert (await client.delete(url)).status_code == 204
    assert (await client.get(url)).status_code == 404
    assert (await client.delete(url)).status_code == 404


# =============================================================================
# Batch
# =============================================================================

@pytest.mark.asyncio
async def test_batch_confirm_only_touches_own_business(
    client, db, business, other_business, make_appointment
):
    mine = make_appointment(datetime(2030, 3, 4, 9))
    theirs = make_appointment(datetime(2030, 3, 4, 9), business_id=other_business.id, contact_id=None)

    response = await client.post(
        f"{_prefix(business)}/appointments/batch",
        json={"ids": [str(mine.id), str(theirs.id)], "action": "confirm"},
    )

    assert response.status_code == 200
    assert response.json() == {"action": "confirm", "requested": 2, "affected": 1}
    db.refresh(theirs)
    assert theirs.status == AppointmentStatus.PENDING.value


@pytest.mark.asyncio
async def test_batch_delete_and_empty_selection(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 4, 9))

    response = await client.post(
        f"{_prefix(business)}/appointments/batch", json={"ids": [], "action": "cancel"}
    )
    assert response.json()["affected"] == 0

    response = await client.post(
        f"{_prefix(business)}/appointments/batch", json={"ids": [str(appt.id)], "action": "delete"}
    )
    assert response.json()["affected"] == 1


# =============================================================================
# Slots / day load / reschedule
# =============================================================================

@pytest.mark.asyncio
async def test_slot_grid(client, business, make_appointment):
    make_appointment(datetime(2030, 3, 4, 10), 60)
    make_appointment(datetime(2030, 3, 4, 13), 30)

    response = await client.get(
        f"{_prefix(business)}/slots", params={"day": "2030-03-04", "duration": 60}
    )

    assert response.status_code == 200
    slots = {s["time"]: s for s in response.json()["slots"]}
    assert len(slots) == 28
    assert slots["10:00"]["status"] == "busy"
    assert slots["10:30"]["status"] == "busy"
    assert slots["11:00"]["status"] == "available"
    # a 30 minute booking cannot fill a 60 minute candidate
    assert slots["12:30"]["status"] == "partial"
    assert slots["12:30"]["requires_confirmation"] is True
    assert slots["13:30"]["status"] == "available"


@pytest.mark.asyncio
async def test_day_load(client, business, make_appointment):
    make_appointment(datetime(2030, 3, 4, 9), 120)
    make_appointment(datetime(2030, 3, 4, 13), 90)

    response = await client.get(f"{_prefix(business)}/day-load", params={"day": "2030-03-04"})

    data = response.json()
    assert data["total_minutes"] == 210
    assert data["level"] == "medium"
    assert data["busy_minutes_by_hour"]["9"] == 60
    assert data["busy_minutes_by_hour"]["14"] == 30
    assert len(data["bars"]) == 2


@pytest.mark.asyncio
async def test_reschedule_grid_and_apply(client, business, make_appointment):
    appt = make_appointment(datetime(2030, 3, 5, 9), 60)
    make_appointment(datetime(2030, 3, 6, 15), 60)

    response = await client.get(f"{_prefix(business)}/appointments/{appt.id}/reschedule-grid")
    grid = response.json()
    assert len(grid["days"]) == 5
    assert all(len(day["cells"]) == 27 for day in grid["days"])
    assert grid["can_page_back"] is False
    assert (grid["previous_offset"], grid["next_offset"]) == (0, 5)

    url = f"{_prefix(business)}/appointments/{appt.id}/reschedule"
    response = await client.post(url, json={"day": "2030-03-06", "time": "15:30"})
    assert response.status_code == 409

    response = await client.post(url, json={"day": "2030-03-06", "time": "16:00"})
    assert response.status_code == 200
    assert response.json()["scheduled_at"] == "2030-03-06T16:00:00"
    assert response.json()["duration_minutes"] == 60


# =============================================================================
# Templates
# =============================================================================

@pytest.mark.asyncio
async def test_template_crud(client, business):
    base = f"{_prefix(business)}/templates"

    response = await client.post(base, json={"name": "Color", "duration_minutes": 90, "auto_confirm": True})
    assert response.status_code == 201
    template = response.json()
    assert template["default_recurrence_pattern"] == "none"

    response = await client.patch(f"{base}/{template['id']}", json={"duration_minutes": 75})
    assert response.json()["duration_minutes"] == 75

    response = await client.post(f"{base}/{template['id']}/toggle-active")
    assert response.json()["is_active"] is False

    response = await client.get(base, params={"active_only": True})
    assert response.json() == []

    assert (await client.delete(f"{base}/{template['id']}")).status_code == 204
    assert (await client.get(f"{base}/{template['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_booking_with_inactive_template_is_404(client, business, contact):
    base = f"{_prefix(business)}/templates"
    template = (await client.post(base, json={"name": "Old", "is_active": False})).json()

    response = await client.post(
        f"{_prefix(business)}/appointments",
        json={
            "scheduled_at": "2030-03-04T09:00:00",
            "contact_id": str(contact.id),
            "template_id": template["id"],
        },
    )
    assert response.status_code == 404


# =============================================================================
# Health
# =============================================================================

@pytest.mark.asyncio
async def test_health():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        response = await c.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
