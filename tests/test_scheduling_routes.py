"""Tests for the /scheduling API routes."""

from .conftest import NEXT_MONDAY


def booking_payload(professional_id, start="10:00", end="11:00", **extra):
    payload = {
        "resource_id": professional_id,
        "date": NEXT_MONDAY.isoformat(),
        "start_time": start,
        "end_time": end,
        "client_ref": "client-1",
        "service_ref": "haircut",
    }
    payload.update(extra)
    return payload


class TestSlotsRoute:
    """GET /scheduling/resources/{id}/slots"""

    def test_hourly_slots(self, client, professional_id):
        response = client.get(
            f"/scheduling/resources/{professional_id}/slots",
            params={"date": NEXT_MONDAY.isoformat(), "granularity": 60},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["granularity"] == 60
        assert data["step"] == 60
        assert [s["start_time"] for s in data["slots"]] == [
            "09:00", "10:00", "11:00", "12:00", "14:00", "15:00", "16:00",
        ]
        assert data["slots"][0] == {
            "resource_id": professional_id,
            "date": "2026-10-26",
            "start_time": "09:00",
            "end_time": "10:00",
        }

    def test_default_granularity(self, client, professional_id):
        response = client.get(
            f"/scheduling/resources/{professional_id}/slots", params={"date": NEXT_MONDAY.isoformat()}
        )
        assert response.json()["granularity"] == 30
        assert len(response.json()["slots"]) == 14

    def test_unknown_professional(self, client):
        response = client.get("/scheduling/resources/999/slots", params={"date": NEXT_MONDAY.isoformat()})
        assert response.status_code == 404

    def test_bad_date(self, client, professional_id):
        response = client.get(f"/scheduling/resources/{professional_id}/slots", params={"date": "tomorrow"})
        assert response.status_code == 400


class TestBookingRoute:
    """POST /scheduling/bookings"""

    def test_create(self, client, professional_id):
        response = client.post("/scheduling/bookings", json=booking_payload(professional_id, "9:00", "10:00"))
        assert response.status_code == 201
        data = response.json()
        assert data["appointment_id"] > 0
        assert data["start_time"] == "09:00"
        assert data["status"] == "booked"

    def test_conflict(self, client, professional_id):
        client.post("/scheduling/bookings", json=booking_payload(professional_id))
        response = client.post("/scheduling/bookings", json=booking_payload(professional_id, "10:30", "11:30"))
        assert response.status_code == 409

    def test_invalid_range(self, client, professional_id):
        response = client.post("/scheduling/bookings", json=booking_payload(professional_id, "11:00", "10:00"))
        assert response.status_code == 400

    def test_unknown_professional_is_bad_request(self, client):
        response = client.post("/scheduling/bookings", json=booking_payload(999))
        assert response.status_code == 400

    def test_blank_client_ref(self, client, professional_id):
        response = client.post("/scheduling/bookings", json=booking_payload(professional_id, client_ref="  "))
        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["body", "client_ref"]

    def test_blank_service_ref(self, client, professional_id):
        response = client.post("/scheduling/bookings", json=booking_payload(professional_id, service_ref=""))
        assert response.status_code == 422


class TestBlockAndStatusRoutes:
    """POST /scheduling/blocks and PATCH /scheduling/appointments/{id}/status"""

    def test_block(self, client, professional_id):
        response = client.post(
            "/scheduling/blocks",
            json={
                "resource_id": professional_id,
                "date": NEXT_MONDAY.isoformat(),
                "start_time": "15:00",
                "end_time": "17:00",
                "reason": "dentist",
            },
        )
        assert response.status_code == 201
        assert response.json()["block_id"] > 0

        slots = client.get(
            f"/scheduling/resources/{professional_id}/slots",
            params={"date": NEXT_MONDAY.isoformat(), "granularity": 60},
        ).json()["slots"]
        assert [s["start_time"] for s in slots][-1] == "14:00"

    def test_cancel_then_rebook(self, client, professional_id):
        appointment_id = client.post("/scheduling/bookings", json=booking_payload(professional_id)).json()[
            "appointment_id"
        ]
        response = client.patch(f"/scheduling/appointments/{appointment_id}/status", json={"status": "cancelled"})
        assert response.status_code == 200
        assert response.json() == {"appointment_id": appointment_id, "old_status": "booked", "status": "cancelled"}

        assert client.post("/scheduling/bookings", json=booking_payload(professional_id)).status_code == 201

    def test_status_missing_appointment(self, client):
        response = client.patch("/scheduling/appointments/4242/status", json={"status": "confirmed"})
        assert response.status_code == 404

    def test_reopen_cancelled_rejected(self, client, professional_id):
        appointment_id = client.post("/scheduling/bookings", json=booking_payload(professional_id)).json()[
            "appointment_id"
        ]
        client.patch(f"/scheduling/appointments/{appointment_id}/status", json={"status": "cancelled"})
        response = client.patch(f"/scheduling/appointments/{appointment_id}/status", json={"status": "confirmed"})
        assert response.status_code == 400


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
