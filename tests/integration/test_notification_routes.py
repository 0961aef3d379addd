"""
Integration tests for the notification feed, badge counts and the internal
endpoint other services use to raise notifications.
"""

import uuid

import pytest

from messaging_service.schemas.realtime import RealtimeEventType, user_notifications_topic

from tests.fixtures.messaging import make_conversation, make_message, make_notification
from tests.utils.auth import USER_A, USER_B, auth_headers, service_headers

API = "/api/v1"


def _notification_payload(user_id, **overrides):
    payload = {
        "user_id": str(user_id),
        "notification_type": "permit_expiring",
        "title": "Electrical permit expires Friday",
        "message": "Renew before the rough-in inspection.",
        "severity": "high",
        "action_required": True,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_list_notifications(client, db_session, directory):
    project = directory.add_project(uuid.uuid4(), "Riverside Duplex")
    await make_notification(db_session, USER_A, title="older")
    await make_notification(db_session, USER_A, title="newer", project_id=project.id)
    await make_notification(db_session, USER_B, title="not mine")

    response = await client.get(f"{API}/notifications", headers=auth_headers(USER_A))

    assert response.status_code == 200
    data = response.json()
    assert [n["title"] for n in data] == ["newer", "older"]
    assert data[0]["project"]["name"] == "Riverside Duplex"
    assert data[1]["project"] is None


@pytest.mark.asyncio
async def test_mark_all_notifications_read(client, db_session):
    await make_notification(db_session, USER_A, title="one")
    await make_notification(db_session, USER_A, title="two")

    response = await client.patch(f"{API}/notifications", headers=auth_headers(USER_A))

    assert response.status_code == 200
    assert response.json() == {"success": True, "updated": 2}

    unread = await client.get(
        f"{API}/notifications", params={"unread_only": "true"}, headers=auth_headers(USER_A)
    )
    assert unread.json() == []


@pytest.mark.asyncio
async def test_mark_one_notification_read(client, db_session):
    notification = await make_notification(db_session, USER_A)

    response = await client.patch(
        f"{API}/notifications/{notification.id}", headers=auth_headers(USER_A)
    )
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["read_at"] is not None

    foreign = await client.patch(
        f"{API}/notifications/{notification.id}", headers=auth_headers(USER_B)
    )
    assert foreign.status_code == 404
    assert foreign.json()["code"] == "notification_not_found"


@pytest.mark.asyncio
async def test_unread_count(client, db_session):
    conversation = await make_conversation(db_session, USER_B, [USER_A])
    await make_message(db_session, conversation, USER_B, "ready for inspection")
    await make_notification(db_session, USER_A)
    await make_notification(db_session, USER_A, title="second")

    response = await client.get(f"{API}/notifications/unread-count", headers=auth_headers(USER_A))

    assert response.status_code == 200
    assert response.json() == {"messages": 1, "notifications": 2, "total": 3}


@pytest.mark.asyncio
async def test_service_raises_notification(client, channel):
    inbox = await channel.subscribe([user_notifications_topic(USER_A)])

    response = await client.post(
        f"{API}/internal/notifications",
        json=_notification_payload(USER_A),
        headers=service_headers(),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == str(USER_A)
    assert data["notification_type"] == "permit_expiring"
    assert data["severity"] == "high"
    assert data["is_read"] is False

    event = await inbox.get()
    assert event.event == RealtimeEventType.NOTIFICATION_CREATED
    assert str(event.row_id) == data["id"]

    feed = await client.get(f"{API}/notifications", headers=auth_headers(USER_A))
    assert [n["id"] for n in feed.json()] == [data["id"]]


@pytest.mark.asyncio
async def test_internal_endpoint_rejects_user_tokens(client):
    response = await client.post(
        f"{API}/internal/notifications",
        json=_notification_payload(USER_A),
        headers=auth_headers(USER_B),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


@pytest.mark.asyncio
async def test_internal_endpoint_validates_payload(client):
    response = await client.post(
        f"{API}/internal/notifications",
        json=_notification_payload(USER_A, notification_type="not_a_type"),
        headers=service_headers(),
    )

    assert response.status_code == 422
