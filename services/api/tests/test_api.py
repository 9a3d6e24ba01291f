"""HTTP API tests."""

from datetime import timedelta
from uuid import uuid4

from sqlalchemy import select

from app.core.timeutils import utcnow
from app.models import ActivityLog

from tests.factories import add_event, add_tap, auth_headers


class TestTapEndpoints:
    """Public ingestion."""

    async def test_ingest_tap(self, client, card):
        response = await client.post(
            "/api/v1/taps",
            json={
                "cardId": str(card.id),
                "sessionId": "s-1",
                "userAgent": "iPhone",
                "geo": {"latitude": 14.55, "longitude": 121.02, "city": "Makati"},
                "actions": [{"type": "card_view"}],
            },
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["cardId"] == str(card.id)
        assert body["sessionId"] == "s-1"
        assert body["ip"] == "203.0.113.7"
        assert body["eventId"] is None
        assert body["actions"][0]["type"] == "card_view"

    async def test_ingest_tap_unknown_card(self, client):
        response = await client.post("/api/v1/taps", json={"cardId": str(uuid4())})

        assert response.status_code == 400
        assert "Unknown card" in response.json()["detail"]

    async def test_ingest_tap_invalid_payload(self, client, card):
        response = await client.post(
            "/api/v1/taps",
            json={"cardId": str(card.id), "geo": {"latitude": 123}},
        )

        assert response.status_code == 422

    async def test_ingest_action_appends_then_creates(self, client, card):
        await client.post("/api/v1/taps", json={"cardId": str(card.id), "sessionId": "s-1"})

        appended = await client.post(
            "/api/v1/taps/action",
            json={
                "cardId": str(card.id),
                "sessionId": "s-1",
                "actions": [{"type": "gallery_item_click", "label": "Portfolio", "mediaId": "img-1"}],
            },
        )
        created = await client.post(
            "/api/v1/taps/action",
            json={"cardId": str(card.id), "sessionId": "s-2", "actions": [{"type": "card_view"}]},
        )

        assert appended.status_code == 200
        assert appended.json()["actions"][0]["mediaId"] == "img-1"
        assert created.status_code == 201

    async def test_ingest_action_requires_actions(self, client, card):
        response = await client.post(
            "/api/v1/taps/action",
            json={"cardId": str(card.id), "sessionId": "s-1", "actions": []},
        )

        assert response.status_code == 422

    async def test_map_points_requires_admin(self, client, owner_headers):
        assert (await client.get("/api/v1/taps/map-points")).status_code == 401
        assert (await client.get("/api/v1/taps/map-points", headers=owner_headers)).status_code == 403

    async def test_map_points(self, client, session, card, admin_headers):
        await add_tap(session, card, geo={"latitude": 14.55, "longitude": 121.02})

        response = await client.get("/api/v1/taps/map-points", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()[0]["type"] == "auto"
        assert response.json()[0]["lng"] == 121.02


class TestDashboardEndpoints:
    """Owner and admin dashboards."""

    async def test_requires_auth(self, client):
        response = await client.get("/api/v1/dashboard/stats")

        assert response.status_code == 401

    async def test_invalid_token(self, client):
        response = await client.get(
            "/api/v1/dashboard/stats",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    async def test_token_cookie(self, client, session, card, owner_id):
        await add_tap(session, card)
        token = auth_headers(owner_id)["Authorization"].split(" ", 1)[1]
        client.cookies.set("tapcard_token", token)

        response = await client.get("/api/v1/dashboard/stats")

        assert response.status_code == 200
        assert response.json() == {"activeCards": 1, "totalTaps": 1, "tapsToday": 1}

    async def test_analytics(self, client, session, card, owner_headers):
        await add_tap(session, card, timestamp=utcnow() - timedelta(minutes=1), actions=["save_contact_click"])

        response = await client.get(
            "/api/v1/dashboard/analytics",
            params={"period": "30d"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["period"] == "30d"
        assert body["overview"]["periodTaps"] == 1
        assert body["overview"]["conversionRate"] == 100.0

    async def test_analytics_foreign_card(self, client, other_card, owner_headers):
        response = await client.get(
            "/api/v1/dashboard/analytics",
            params={"card_id": str(other_card.id)},
            headers=owner_headers,
        )

        assert response.status_code == 404

    async def test_admin_analytics(self, client, session, card, other_card, admin_headers, owner_headers):
        await add_tap(session, card, timestamp=utcnow() - timedelta(minutes=1))
        await add_tap(session, other_card, timestamp=utcnow() - timedelta(minutes=1))

        forbidden = await client.get("/api/v1/dashboard/admin-analytics", headers=owner_headers)
        response = await client.get("/api/v1/dashboard/admin-analytics", headers=admin_headers)

        assert forbidden.status_code == 403
        assert response.status_code == 200
        assert response.json()["overview"]["periodTaps"] == 2

    async def test_breakdown(self, client, session, card, owner_headers):
        await add_tap(session, card, timestamp=utcnow() - timedelta(minutes=1), user_agent="Android")

        response = await client.get(
            "/api/v1/dashboard/analytics/breakdown/device",
            headers=owner_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["dimension"] == "device"
        assert body["items"] == [{"key": "Mobile", "count": 1, "percentage": 100.0, "attributes": None}]

    async def test_breakdown_unknown_dimension(self, client, owner_headers):
        response = await client.get(
            "/api/v1/dashboard/analytics/breakdown/weather",
            headers=owner_headers,
        )

        assert response.status_code == 422

    async def test_activity(self, client, session, card, owner_headers):
        await add_tap(session, card, actions=["card_view", "bio_expanded"])

        response = await client.get("/api/v1/dashboard/activity", headers=owner_headers)

        assert response.status_code == 200
        assert response.json()[0]["title"] == "Bio expanded: Juan's Card"
        assert response.json()[0]["cardLabel"] == "Juan's Card"

    async def test_leaderboards(self, client, session, card, admin_headers):
        await add_tap(session, card, geo={"city": "Makati"})

        cards = await client.get("/api/v1/dashboard/analytics/top-cards", headers=admin_headers)
        cities = await client.get("/api/v1/dashboard/analytics/top-cities", headers=admin_headers)

        assert cards.json() == [
            {"cardId": str(card.id), "label": "Juan's Card", "userId": str(card.user_id), "taps": 1}
        ]
        assert cities.json() == [{"city": "Makati", "taps": 1}]


class TestEventEndpoints:
    """Event creation and analytics."""

    def _event_body(self, card_id, start, end) -> dict:
        return {
            "cardId": str(card_id),
            "name": "Manila Expo",
            "location": {
                "name": "SMX Convention Center",
                "city": "Pasay",
                "province": "Metro Manila",
                "country": "Philippines",
                "coordinates": {"latitude": 14.5353, "longitude": 120.9826},
            },
            "dateTime": {"start": start, "end": end, "timezone": "Asia/Manila"},
        }

    async def test_create_event(self, client, card, owner_headers):
        response = await client.post(
            "/api/v1/events",
            json=self._event_body(card.id, "2030-05-01T09:00:00+08:00", "2030-05-01T17:00:00+08:00"),
            headers=owner_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "active"
        assert body["dateTime"]["start"].startswith("2030-05-01T01:00:00")
        assert body["location"]["coordinates"]["latitude"] == 14.5353

    async def test_naive_times_are_local_to_event(self, client, card, owner_headers):
        response = await client.post(
            "/api/v1/events",
            json=self._event_body(card.id, "2030-05-01T09:00:00", "2030-05-01T17:00:00"),
            headers=owner_headers,
        )

        assert response.json()["dateTime"]["end"].startswith("2030-05-01T09:00:00")

    async def test_end_before_start(self, client, card, owner_headers):
        response = await client.post(
            "/api/v1/events",
            json=self._event_body(card.id, "2030-05-01T17:00:00+08:00", "2030-05-01T09:00:00+08:00"),
            headers=owner_headers,
        )

        assert response.status_code == 400

    async def test_overlapping_event(self, client, card, owner_headers):
        first = await client.post(
            "/api/v1/events",
            json=self._event_body(card.id, "2030-05-01T09:00:00+08:00", "2030-05-01T17:00:00+08:00"),
            headers=owner_headers,
        )
        second = await client.post(
            "/api/v1/events",
            json=self._event_body(card.id, "2030-05-01T16:00:00+08:00", "2030-05-01T20:00:00+08:00"),
            headers=owner_headers,
        )
        adjacent = await client.post(
            "/api/v1/events",
            json=self._event_body(card.id, "2030-05-01T17:00:00+08:00", "2030-05-01T20:00:00+08:00"),
            headers=owner_headers,
        )

        assert first.status_code == 201
        assert second.status_code == 400
        assert "overlaps" in second.json()["detail"]
        assert adjacent.status_code == 201

    async def test_foreign_card(self, client, other_card, owner_headers):
        response = await client.post(
            "/api/v1/events",
            json=self._event_body(other_card.id, "2030-05-01T09:00:00+08:00", "2030-05-01T17:00:00+08:00"),
            headers=owner_headers,
        )

        assert response.status_code == 404

    async def test_event_is_audited(self, client, session, card, owner_headers):
        response = await client.post(
            "/api/v1/events",
            json=self._event_body(card.id, "2030-05-01T09:00:00+08:00", "2030-05-01T17:00:00+08:00"),
            headers=owner_headers,
        )

        entries = (await session.execute(select(ActivityLog))).scalars().all()
        assert [e.action for e in entries] == ["Event Create"]
        assert str(entries[0].target_id) == response.json()["id"]

    async def test_event_analytics(self, client, session, card, owner_headers):
        event = await add_event(session, card)
        await add_tap(
            session,
            card,
            timestamp=event.start_at + timedelta(minutes=5),
            event_id=event.id,
            geo={"method": "event_location", "city": "Manila"},
        )

        response = await client.get(f"/api/v1/events/{event.id}/analytics", headers=owner_headers)

        assert response.status_code == 200
        analytics = response.json()["analytics"]
        assert analytics["totalTaps"] == 1
        assert analytics["eventEffectiveness"] == 100
        assert analytics["breakdown"]["atEventPercent"] == 100

    async def test_event_analytics_not_found(self, client, owner_headers):
        response = await client.get(f"/api/v1/events/{uuid4()}/analytics", headers=owner_headers)

        assert response.status_code == 404


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
