"""회의 API 테스트"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from app.models.invitation import EmailResult
from app.schemas.common import ServiceResult

TEST_USER_ID = "user_host_123"


@pytest.mark.asyncio
async def test_requires_token(async_client):
    """토큰 없으면 401"""
    response = await async_client.get("/api/meetings/get")

    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_invalid_token(async_client):
    response = await async_client.get(
        "/api/meetings/get", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_save_meeting_missing_fields(async_client, auth_headers):
    """필수 필드 누락 시 400 + missingFields"""
    response = await async_client.post(
        "/api/meetings/save",
        json={"meetingId": "m1", "title": "Weekly"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "VALIDATION_ERROR"
    assert set(detail["missingFields"]) == {"hostId", "hostName", "startTime", "endTime"}


@pytest.mark.asyncio
async def test_save_meeting(async_client, auth_headers, mock_db):
    response = await async_client.post(
        "/api/meetings/save",
        json={
            "meetingId": "m1",
            "hostId": TEST_USER_ID,
            "hostName": "Host User",
            "title": "Weekly",
            "startTime": "2025-01-01T10:00:00Z",
            "endTime": "2025-01-01T11:00:00Z",
            "guests": ["guest@example.com"],
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["meetingId"] == "m1"
    assert body["meetingUrl"].endswith("/meeting/m1")
    mock_db.meetings.insert_one.assert_awaited_once()


@pytest.mark.asyncio
async def test_save_meeting_keeps_zero_notification_time(async_client, auth_headers, mock_db):
    """notificationTime 0 (시작 시 알림)은 기본값으로 바뀌지 않음"""
    response = await async_client.post(
        "/api/meetings/save",
        json={
            "meetingId": "m1",
            "hostId": TEST_USER_ID,
            "hostName": "Host User",
            "title": "Weekly",
            "startTime": "2025-01-01T10:00:00Z",
            "endTime": "2025-01-01T11:00:00Z",
            "notificationTime": 0,
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert mock_db.meetings.insert_one.await_args.args[0]["notificationTime"] == 0


@pytest.mark.asyncio
async def test_get_meetings_annotated(async_client, auth_headers, mock_db, make_cursor):
    start = datetime.now(timezone.utc) + timedelta(days=3, hours=1)
    mock_db.meetings.find.return_value = make_cursor(
        [{"_id": "oid", "meetingId": "m1", "hostId": TEST_USER_ID, "startTime": start}]
    )

    response = await async_client.get(
        "/api/meetings/get", params={"filter": "upcoming", "limit": 5}, headers=auth_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["filter"] == "upcoming"
    assert body["userId"] == TEST_USER_ID
    meeting = body["meetings"][0]
    assert meeting["isHost"] is True
    assert meeting["isUpcoming"] is True
    assert meeting["timeUntilStart"] == 3


@pytest.mark.asyncio
async def test_get_meetings_invalid_filter(async_client, auth_headers):
    response = await async_client.get(
        "/api/meetings/get", params={"filter": "someday"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["detail"]["invalidFields"] == ["filter"]


@pytest.mark.asyncio
async def test_schedule_with_failed_invitation(
    async_client, auth_headers, mock_email_service, mock_db
):
    """초대 일부 실패: 201 + 통계 + 경고"""
    mock_email_service.verify_config = AsyncMock(return_value=ServiceResult.ok())
    mock_email_service.send_bulk_invitations = AsyncMock(
        return_value=[
            EmailResult(success=True, guest_email="a@x.com", message_id="<1@wismeet>"),
            EmailResult(success=False, guest_email="b@x.com", error="rejected"),
        ]
    )

    response = await async_client.post(
        "/api/meetings/schedule",
        json={
            "title": "Kickoff",
            "startTime": "2025-01-01T10:00:00Z",
            "endTime": "2025-01-01T11:00:00Z",
            "guests": ["a@x.com", "b@x.com"],
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "scheduled"
    assert body["invitations"] == {
        "total": 2,
        "successful": 1,
        "failed": 1,
        "successRate": "50.0%",
    }
    assert body["warning"]
    saved = mock_db.meetings.insert_one.await_args.args[0]
    assert saved["hostId"] == TEST_USER_ID
    assert saved["hostName"] == "Host User"


@pytest.mark.asyncio
async def test_send_invitations_email_not_configured(async_client, auth_headers, mock_email_service):
    mock_email_service.verify_config = AsyncMock(return_value=ServiceResult.fail("auth failed"))

    response = await async_client.post(
        "/api/meetings/send-invitations",
        json={
            "meetingId": "m1",
            "title": "Kickoff",
            "startTime": "2025-01-01T10:00:00Z",
            "guestEmails": ["a@x.com"],
            "hostName": "Host User",
        },
        headers=auth_headers,
    )

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "EMAIL_NOT_CONFIGURED"


@pytest.mark.asyncio
async def test_send_invitations_empty_guest_list(async_client, auth_headers):
    response = await async_client.post(
        "/api/meetings/send-invitations",
        json={
            "meetingId": "m1",
            "title": "Kickoff",
            "startTime": "2025-01-01T10:00:00Z",
            "guestEmails": [],
            "hostName": "Host User",
        },
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"]["missingFields"] == ["guestEmails"]


@pytest.mark.asyncio
async def test_invitation_history_requires_meeting_id(async_client, auth_headers):
    response = await async_client.get("/api/meetings/send-invitations", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"]["missingFields"] == ["meetingId"]


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_not_found(self, async_client, auth_headers):
        response = await async_client.patch(
            "/api/meetings/m1/status", json={"status": "completed"}, headers=auth_headers
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_only_host(self, async_client, auth_headers, mock_db):
        mock_db.meetings.find_one.return_value = {"meetingId": "m1", "hostId": "someone_else"}

        response = await async_client.patch(
            "/api/meetings/m1/status", json={"status": "completed"}, headers=auth_headers
        )

        assert response.status_code == 403
        mock_db.meetings.update_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_host_updates(self, async_client, auth_headers, mock_db):
        mock_db.meetings.find_one.return_value = {"meetingId": "m1", "hostId": TEST_USER_ID}

        response = await async_client.patch(
            "/api/meetings/m1/status", json={"status": "cancelled"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
