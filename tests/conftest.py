import json
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from pydantic import TypeAdapter

from miners.client import ApiResult
from miners.models import RepositoryData


class StubGitHubClient:
    """In-memory stand-in for GitHubClient serving canned API payloads."""

    def __init__(
        self,
        repos_by_org: Dict[str, List[str]],
        commit_dates: Optional[Dict[str, str]] = None,
        pull_requests: Optional[Dict[str, List[dict]]] = None,
    ):
        self.repos_by_org = repos_by_org
        self.commit_dates = commit_dates or {}
        self.pull_requests = pull_requests or {}
        self.calls: List[str] = []

    @staticmethod
    def _page(items: list, params: dict) -> list:
        per_page = params.get("per_page", 30)
        page = params.get("page", 1)
        return items[(page - 1) * per_page : page * per_page]

    def _payload(self, endpoint: str, params: dict):
        if endpoint in ("user/orgs", "organizations"):
            orgs = [
                {"login": login, "id": index}
                for index, login in enumerate(self.repos_by_org, start=1)
            ]
            return self._page(orgs, params)

        parts = endpoint.split("/")
        if parts[0] == "orgs":
            repos = [
                {"name": name, "private": False}
                for name in self.repos_by_org[parts[1]]
            ]
            return self._page(repos, params)

        repo = parts[2]
        resource = parts[3]
        if resource == "teams":
            return [{"name": "Developers", "id": 1, "slug": "developers", "permission": "push"}]
        if resource == "collaborators":
            return [
                {
                    "login": "jdoe",
                    "ldap_dn": "CN=Doe\\, Jane,OU=Users,DC=example,DC=com",
                    "role_name": "admin",
                    "permissions": {"admin": True, "push": True, "pull": True},
                }
            ]
        if resource == "commits":
            date = self.commit_dates.get(repo)
            if date is None:
                return []
            return [{"sha": "abc123", "commit": {"author": {"date": date}}}]
        if resource == "pulls":
            return self._page(self.pull_requests.get(repo, []), params)
        raise AssertionError(f"unexpected endpoint {endpoint}")

    async def get(self, endpoint, shape, params=None):
        self.calls.append(endpoint)
        payload = self._payload(endpoint, params or {})
        return ApiResult.success(TypeAdapter(shape).validate_python(payload))

    async def get_raw(self, endpoint, params=None):
        self.calls.append(endpoint)
        return ApiResult.success(json.dumps({"Python": 1200, "Shell": 30}))


def iso_days_ago(days: int, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return (now - timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def stub_client_class():
    return StubGitHubClient


@pytest.fixture
def make_record():
    """Factory for inventory records."""

    def _make(
        repository: str = "repo",
        last_accessed: str = "N/A",
        organization: str = "acme",
        collaborators: str = "Developers[push]",
        active_prs: int = 0,
        prs_2w: int = 0,
        prs_1m: int = 0,
    ) -> RepositoryData:
        return RepositoryData(
            organization=organization,
            repository=repository,
            visibility="private",
            collaborators=collaborators,
            languages="Python",
            last_accessed=last_accessed,
            active_prs=active_prs,
            prs_2w=prs_2w,
            prs_1m=prs_1m,
        )

    return _make
