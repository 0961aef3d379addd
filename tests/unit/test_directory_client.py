"""
Unit tests for the profile/project directory client.
"""

import uuid

import httpx
import pytest

from messaging_service.clients.directory_client import DirectoryClient

from tests.utils.auth import USER_A, USER_B

PROFILES_URL = "http://auth.test/api/v1/profiles"
PROJECTS_URL = "http://projects.test/api/v1/projects"


def _client(handler) -> DirectoryClient:
    return DirectoryClient(PROFILES_URL, PROJECTS_URL, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_profiles_are_fetched_in_one_batch():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json=[
                {"id": str(USER_A), "full_name": "Alice Foreman", "role": "ignored"},
                {"id": str(USER_B), "full_name": "Bob Carpenter"},
            ],
        )

    profiles = await _client(handler).get_profiles([USER_B, USER_A, USER_B])

    assert len(requests) == 1
    assert requests[0].url.path == "/api/v1/profiles"
    assert set(requests[0].url.params["ids"].split(",")) == {str(USER_A), str(USER_B)}
    assert profiles[USER_A].full_name == "Alice Foreman"
    assert profiles[USER_B].email is None


@pytest.mark.asyncio
async def test_empty_lookup_makes_no_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = _client(handler)

    assert await client.get_profiles([]) == {}
    assert await client.get_projects([None, None]) == {}


@pytest.mark.asyncio
async def test_projects_lookup():
    project_id = uuid.uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/projects"
        return httpx.Response(200, json=[{"id": str(project_id), "name": "Riverside Duplex"}])

    projects = await _client(handler).get_projects([project_id, None])

    assert projects[project_id].name == "Riverside Duplex"


@pytest.mark.asyncio
async def test_error_status_yields_empty_result():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "boom"})

    assert await _client(handler).get_profiles([USER_A]) == {}


@pytest.mark.asyncio
async def test_unreachable_directory_yields_empty_result():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert await _client(handler).get_profiles([USER_A]) == {}


@pytest.mark.asyncio
async def test_malformed_payload_yields_empty_result():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"full_name": "no id"}])

    assert await _client(handler).get_profiles([USER_A]) == {}
