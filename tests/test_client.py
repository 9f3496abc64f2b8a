"""
GitHub Client Test Suite.

Covers result wrapping of successful, failed and malformed API responses.
"""

import json
from typing import List
from unittest.mock import Mock

import pytest
import requests
from github import GithubException

from miners.client import API_VERSION, GitHubClient
from miners.models import Organization


@pytest.fixture
def client():
    """Client with its PyGithub requester replaced by a mock."""
    github_client = GitHubClient("test-token", "https://github.example.com/api/v3/")
    github_client._requester = Mock()
    return github_client


def test_base_url_is_normalized(client):
    assert client.base_url == "https://github.example.com/api/v3"


@pytest.mark.asyncio
async def test_get_parses_into_requested_shape(client):
    client._requester.requestJsonAndCheck.return_value = (
        {},
        [{"login": "acme", "id": 7, "url": "ignored"}],
    )

    result = await client.get("user/orgs", List[Organization], {"page": 1})

    assert result.ok
    assert result.value == [Organization(login="acme", id=7)]
    verb, path, params, headers = client._requester.requestJsonAndCheck.call_args.args
    assert verb == "GET"
    assert path == "/user/orgs"
    assert params == {"page": 1}
    assert headers["X-GitHub-Api-Version"] == API_VERSION


@pytest.mark.asyncio
async def test_get_wraps_api_errors(client):
    client._requester.requestJsonAndCheck.side_effect = GithubException(
        404, {"message": "Not Found" + "x" * 500}
    )

    result = await client.get("orgs/missing/repos", List[Organization])

    assert not result.ok
    assert result.value is None
    assert result.error.startswith("API Error: 404 - ")
    assert len(result.error) <= len("API Error: 404 - ") + 200


@pytest.mark.asyncio
async def test_get_wraps_transport_errors(client):
    client._requester.requestJsonAndCheck.side_effect = requests.ConnectionError(
        "connection refused"
    )

    result = await client.get("user/orgs", List[Organization])

    assert result.error == "Request failed: connection refused"


@pytest.mark.asyncio
async def test_get_reports_parse_errors(client):
    client._requester.requestJsonAndCheck.return_value = ({}, [{"login": "acme"}])

    result = await client.get("user/orgs", List[Organization])

    assert not result.ok
    assert result.error.startswith("Parse Error:")


@pytest.mark.asyncio
async def test_get_raw_returns_body(client):
    client._requester.requestJson.return_value = (200, {}, '{"Python": 10}')

    result = await client.get_raw("repos/acme/app/languages")

    assert result.ok
    assert result.value == '{"Python": 10}'


@pytest.mark.asyncio
async def test_get_raw_rejects_non_success_status(client):
    client._requester.requestJson.return_value = (502, {}, "Bad Gateway")

    result = await client.get_raw("repos/acme/app/languages")

    assert result.error == "API Error: 502 - Bad Gateway"


@pytest.mark.asyncio
async def test_get_reports_malformed_json_as_parse_error(client):
    client._requester.requestJsonAndCheck.side_effect = json.JSONDecodeError(
        "Expecting property name enclosed in double quotes",
        '{"login": "acme", truncated',
        18,
    )

    result = await client.get("user/orgs", List[Organization])

    assert not result.ok
    assert result.value is None
    assert result.error.startswith("Parse Error: Expecting property name")


@pytest.mark.asyncio
async def test_get_raw_returns_malformed_body_unparsed(client):
    client._requester.requestJson.return_value = (200, {}, '{"Python": ')

    result = await client.get_raw("repos/acme/app/languages")

    assert result.ok
    assert result.value == '{"Python": '


@pytest.mark.asyncio
async def test_get_raw_wraps_api_errors(client):
    client._requester.requestJson.side_effect = GithubException(
        401, {"message": "Bad credentials"}
    )

    result = await client.get_raw("repos/acme/app/languages")

    assert not result.ok
    assert result.error.startswith("API Error: 401 - ")
    assert "Bad credentials" in result.error


@pytest.mark.asyncio
async def test_get_raw_wraps_transport_errors(client):
    client._requester.requestJson.side_effect = requests.Timeout("read timed out")

    result = await client.get_raw("repos/acme/app/languages")

    assert result.error == "Request failed: read timed out"
