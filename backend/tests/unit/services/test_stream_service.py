"""Stream 서비스 테스트 (httpx MockTransport)"""

import json
from datetime import datetime, timezone

import httpx
import pytest
from jose import jwt

from app.services.stream_service import (
    ChannelSetupError,
    StreamAPIError,
    StreamChatService,
    StreamNotConfiguredError,
    StreamVideoService,
)


class Recorder:
    """요청 기록 + 경로별 응답"""

    def __init__(self, routes: dict[tuple[str, str], httpx.Response] | None = None):
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes.get(
            (request.method, request.url.path), httpx.Response(200, json={})
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def body_of(request: httpx.Request) -> dict:
    return json.loads(request.content)


class TestStreamChatService:
    def test_user_token_claims(self, test_settings):
        service = StreamChatService(test_settings)

        token = service.create_user_token("user_1")

        assert jwt.decode(token, "test-stream-secret", algorithms=["HS256"]) == {"user_id": "user_1"}

    def test_user_token_requires_configuration(self, test_settings):
        settings = test_settings.model_copy(update={"stream_secret_key": ""})

        with pytest.raises(StreamNotConfiguredError):
            StreamChatService(settings).create_user_token("user_1")

    @pytest.mark.asyncio
    async def test_request_carries_server_auth(self, test_settings):
        recorder = Recorder()
        service = StreamChatService(test_settings, transport=recorder.transport)

        await service.add_members("messaging", "meeting_1", ["user_1"])

        request = recorder.requests[0]
        assert request.url.path == "/channels/messaging/meeting_1"
        assert request.url.params["api_key"] == "test-stream-key"
        assert request.headers["stream-auth-type"] == "jwt"
        claims = jwt.decode(request.headers["Authorization"], "test-stream-secret", algorithms=["HS256"])
        assert claims == {"server": True}
        assert body_of(request) == {"add_members": [{"user_id": "user_1"}]}
        await service.disconnect()

    @pytest.mark.asyncio
    async def test_ensure_user_creates_when_missing(self, test_settings):
        recorder = Recorder(
            {
                ("GET", "/users"): httpx.Response(200, json={"users": []}),
                ("POST", "/users"): httpx.Response(
                    200, json={"users": {"user_1": {"id": "user_1", "name": "user_1"}}}
                ),
            }
        )
        service = StreamChatService(test_settings, transport=recorder.transport)

        user = await service.ensure_user("user_1")

        assert user == {"id": "user_1", "name": "user_1"}
        assert body_of(recorder.requests[1]) == {"users": {"user_1": {"id": "user_1", "name": "user_1"}}}
        await service.disconnect()

    @pytest.mark.asyncio
    async def test_ensure_users_collects_errors(self, test_settings):
        """한 사용자 실패가 나머지를 막지 않음"""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"users": []})
            if "bad" in body_of(request)["users"]:
                return httpx.Response(400, json={"message": "invalid id"})
            return httpx.Response(200, json={"users": {}})

        service = StreamChatService(test_settings, transport=httpx.MockTransport(handler))

        users, errors = await service.ensure_users([{"userId": "good"}, {"userId": "bad"}])

        assert [u["id"] for u in users] == ["good"]
        assert errors[0]["userId"] == "bad"
        assert "invalid id" in errors[0]["error"]
        await service.disconnect()

    @pytest.mark.asyncio
    async def test_join_channel_falls_back_to_create(self, test_settings):
        recorder = Recorder(
            {
                ("POST", "/channels/messaging/meeting_1"): httpx.Response(404, json={"message": "not found"}),
                ("POST", "/channels/messaging/meeting_1/query"): httpx.Response(403, json={"message": "denied"}),
                ("POST", "/channels/team/meeting_1/query"): httpx.Response(
                    201, json={"channel": {"id": "meeting_1", "type": "team"}}
                ),
            }
        )
        service = StreamChatService(test_settings, transport=recorder.transport)

        channel_type, created = await service.join_channel("user_1", "meeting_1")

        assert (channel_type, created) == ("team", True)
        data = body_of(recorder.requests[-1])["data"]
        assert data == {"name": "Meeting meeting_1", "members": ["user_1"], "created_by_id": "user_1"}
        await service.disconnect()

    @pytest.mark.asyncio
    async def test_channel_setup_reports_last_error(self, test_settings):
        service = StreamChatService(
            test_settings,
            transport=httpx.MockTransport(
                lambda request: httpx.Response(500, json={"message": request.url.path})
            ),
        )

        with pytest.raises(ChannelSetupError, match="livestream"):
            await service.get_or_create_channel("meeting_1", "user_1")
        await service.disconnect()

    @pytest.mark.asyncio
    async def test_query_members(self, test_settings):
        recorder = Recorder(
            {
                ("GET", "/members"): httpx.Response(
                    200, json={"members": [{"user_id": "a"}, {"user_id": "b"}, {}]}
                )
            }
        )
        service = StreamChatService(test_settings, transport=recorder.transport)

        assert await service.query_members("messaging", "meeting_1") == ["a", "b"]
        payload = json.loads(recorder.requests[0].url.params["payload"])
        assert payload["id"] == "meeting_1"
        await service.disconnect()


class TestStreamVideoService:
    BASE = "/api/v2/video/call/default"

    @pytest.mark.asyncio
    async def test_get_or_create_call(self, test_settings):
        recorder = Recorder(
            {
                ("POST", f"{self.BASE}/meeting_1"): httpx.Response(
                    201, json={"call": {"id": "meeting_1"}, "created": True}
                )
            }
        )
        service = StreamVideoService(test_settings, transport=recorder.transport)

        call = await service.get_or_create_call(
            "meeting_1",
            created_by_id="host_1",
            starts_at=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
            description="Kickoff",
            custom={"host": "Host"},
        )

        assert call == {"id": "meeting_1"}
        data = body_of(recorder.requests[0])["data"]
        assert data["created_by_id"] == "host_1"
        assert data["members"] == [{"user_id": "host_1", "role": "host"}]
        assert data["custom"] == {"host": "Host", "description": "Kickoff"}
        assert data["starts_at"] == "2025-01-01T10:00:00+00:00"
        await service.disconnect()

    @pytest.mark.asyncio
    async def test_get_participants_deduplicates(self, test_settings):
        participants = [{"user": {"id": "a"}}, {"user": {"id": "b"}}, {"user": {"id": "a"}}, {}]
        recorder = Recorder(
            {
                ("GET", f"{self.BASE}/meeting_1"): httpx.Response(
                    200, json={"call": {"session": {"participants": participants}}}
                )
            }
        )
        service = StreamVideoService(test_settings, transport=recorder.transport)

        assert await service.get_participants("meeting_1") == ["a", "b"]
        await service.disconnect()

    @pytest.mark.asyncio
    async def test_error_status_raises(self, test_settings):
        recorder = Recorder(
            {
                ("POST", f"{self.BASE}/meeting_1/stop_recording"): httpx.Response(
                    400, json={"message": "no active recording"}
                )
            }
        )
        service = StreamVideoService(test_settings, transport=recorder.transport)

        with pytest.raises(StreamAPIError) as exc_info:
            await service.stop_recording("meeting_1")

        assert exc_info.value.status_code == 400
        assert "no active recording" in str(exc_info.value)
        await service.disconnect()

    @pytest.mark.asyncio
    async def test_query_upcoming_calls(self, test_settings):
        recorder = Recorder(
            {
                ("POST", "/api/v2/video/calls"): httpx.Response(
                    200, json={"calls": [{"call": {"id": "c1"}}, {"call": {"id": "c2"}}]}
                )
            }
        )
        service = StreamVideoService(test_settings, transport=recorder.transport)
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)

        calls = await service.query_calls("user_1", "upcoming", now=now)

        assert [c["id"] for c in calls] == ["c1", "c2"]
        body = body_of(recorder.requests[0])
        assert body["filter_conditions"]["starts_at"] == {"$gt": now.isoformat()}
        assert body["filter_conditions"]["ended_at"] == {"$exists": False}
        assert body["sort"] == [{"field": "starts_at", "direction": 1}]
        await service.disconnect()

    def test_join_metadata(self):
        metadata = StreamVideoService.join_metadata("Guest", camera_enabled=False)

        assert metadata == {
            "name": "Guest",
            "custom": {"initialCameraEnabled": False, "initialMicEnabled": True},
        }

    @pytest.mark.asyncio
    async def test_not_configured(self, test_settings):
        settings = test_settings.model_copy(update={"stream_api_key": ""})
        service = StreamVideoService(settings)

        with pytest.raises(StreamNotConfiguredError):
            await service.get_call("meeting_1")
