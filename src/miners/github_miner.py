"""
GitHub Repository Inventory Mining Module.

This module handles the extraction of organization, repository, collaborator,
language, commit and pull request data from the GitHub REST API, and merges
the per-repository results into flat inventory records.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple, Type, TypeVar

from config import logger
from miners.base import RepositoryMiner, RepositoryMiningError
from miners.client import ApiResult, GitHubClient
from miners.models import (
    Collaborator,
    Commit,
    Organization,
    PullRequest,
    Repository,
    RepositoryData,
    Team,
)

T = TypeVar("T")

PAGE_SIZE = 100
ORGANIZATION_CAP = 100
NOT_AVAILABLE = "N/A"
COMMIT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S UTC"
STALE_PR_DAYS_2W = 14
STALE_PR_DAYS_1M = 30


def format_collaborator_name(collaborator: Collaborator) -> str:
    """
    Build a display name from a collaborator's LDAP distinguished name.

    ``CN=Smith\\, Jane,OU=Users,...`` with role ``push`` becomes
    ``Jane Smith[push]``. Collaborators without a usable DN are shown by login.

    Args:
        collaborator (Collaborator): Direct collaborator

    Returns:
        str: Display name
    """
    role_name = collaborator.role_name or "unknown"
    ldap_dn = collaborator.ldap_dn
    if not ldap_dn:
        return collaborator.login

    cn_start = ldap_dn.find("CN=")
    if cn_start < 0:
        return collaborator.login

    after_cn = ldap_dn[cn_start + 3 :]
    cn_end = after_cn.find(",OU=")
    cn_value = after_cn[:cn_end] if cn_end > 0 else after_cn

    # The comma inside the CN value is escaped in the DN
    parts = cn_value.split("\\, ")
    if len(parts) == 2:
        last_name, first_name = parts[0].strip(), parts[1].strip()
        return f"{first_name} {last_name}[{role_name}]"
    return f"{cn_value}[{role_name}]"


def count_pull_requests(
    pull_requests: List[PullRequest], now: Optional[datetime] = None
) -> Tuple[int, int, int]:
    """
    Count open pull requests and those older than two weeks and one month.

    Args:
        pull_requests (List[PullRequest]): Open pull requests
        now (Optional[datetime]): Reference time, defaults to current UTC time

    Returns:
        Tuple[int, int, int]: (active, older than 14 days, older than 30 days)
    """
    now = now or datetime.now(timezone.utc)
    two_weeks_ago = now - timedelta(days=STALE_PR_DAYS_2W)
    one_month_ago = now - timedelta(days=STALE_PR_DAYS_1M)

    active = len(pull_requests)
    prs_2w = sum(1 for pr in pull_requests if pr.created_at < two_weeks_ago)
    prs_1m = sum(1 for pr in pull_requests if pr.created_at < one_month_ago)
    return active, prs_2w, prs_1m


def _join_or_na(values: Iterable[str]) -> str:
    joined = ", ".join(values)
    return joined or NOT_AVAILABLE


class GitHubMiner(RepositoryMiner):
    """
    GitHubMiner collects inventory data through a GitHubClient.

    List endpoints are paginated 100 items per page; a page shorter than
    that ends the listing.
    """

    def __init__(
        self, client: GitHubClient, excluded_users: Optional[Iterable[str]] = None
    ):
        """Initialize the miner.

        Args:
            client (GitHubClient): API client.
            excluded_users (Optional[Iterable[str]]): Logins hidden from the
                collaborator column.
        """
        self.client = client
        self.excluded_users = {login.lower() for login in excluded_users or ()}

    async def _paginate(
        self,
        endpoint: str,
        item_shape: Type[T],
        params: Optional[dict] = None,
        cap: Optional[int] = None,
    ) -> Tuple[List[T], Optional[str]]:
        """
        Fetch pages of a list endpoint until a short page, an error or the cap.

        Args:
            endpoint (str): List endpoint.
            item_shape (Type[T]): Model of a single item.
            params (Optional[dict]): Extra query parameters.
            cap (Optional[int]): Stop once this many items were collected.

        Returns:
            Tuple[List[T], Optional[str]]: Items collected so far and the
                error that stopped the listing, if any.
        """
        items: List[T] = []
        page = 1
        while True:
            result = await self.client.get(
                endpoint,
                List[item_shape],
                {**(params or {}), "per_page": PAGE_SIZE, "page": page},
            )
            if not result.ok:
                return items, result.error

            items.extend(result.value)
            if len(result.value) < PAGE_SIZE:
                break
            if cap is not None and len(items) >= cap:
                break
            page += 1
        return items, None

    async def _fetch_organization_list(
        self, endpoint: str, fetch_all: bool
    ) -> List[Organization]:
        # Fetch one past the cap so exactly 100 organizations is not reported as truncated
        cap = None if fetch_all else ORGANIZATION_CAP + 1
        orgs, error = await self._paginate(endpoint, Organization, cap=cap)
        if error:
            logger.error(
                {
                    "message": "Error fetching organizations",
                    "endpoint": endpoint,
                    "fetched": len(orgs),
                    "error": error,
                }
            )

        if cap is not None and len(orgs) > ORGANIZATION_CAP:
            logger.warning(
                {
                    "message": f"Organization list capped at {ORGANIZATION_CAP}. "
                    "Use --fetch-all to get all organizations.",
                    "fetched": len(orgs),
                }
            )
            return orgs[:ORGANIZATION_CAP]
        return orgs

    async def fetch_organizations(self, fetch_all: bool = False) -> List[Organization]:
        """
        List the organizations of the authenticated user.

        Args:
            fetch_all (bool): Disable the 100 organization cap.

        Returns:
            List[Organization]: Organizations, possibly partial on error.
        """
        logger.info({"message": "Fetching organizations"})
        return await self._fetch_organization_list("user/orgs", fetch_all)

    async def fetch_all_organizations(
        self, fetch_all: bool = False
    ) -> List[Organization]:
        """
        List every organization on the server. Requires admin rights.

        Args:
            fetch_all (bool): Disable the 100 organization cap.

        Returns:
            List[Organization]: Organizations, possibly partial on error.
        """
        logger.info({"message": "Fetching all organizations (requires admin)"})
        return await self._fetch_organization_list("organizations", fetch_all)

    async def fetch_repositories(self, org_login: str) -> List[Repository]:
        repos, error = await self._paginate(f"orgs/{org_login}/repos", Repository)
        if error:
            logger.debug(
                {
                    "message": "Repository listing stopped early",
                    "organization": org_login,
                    "fetched": len(repos),
                    "error": error,
                }
            )
        return repos

    async def fetch_pull_requests(self, owner: str, repo: str) -> List[PullRequest]:
        prs, error = await self._paginate(
            f"repos/{owner}/{repo}/pulls", PullRequest, {"state": "open"}
        )
        if error:
            logger.debug(
                {
                    "message": "Pull request listing stopped early",
                    "repository": f"{owner}/{repo}",
                    "fetched": len(prs),
                    "error": error,
                }
            )
        return prs

    async def fetch_languages(self, owner: str, repo: str) -> str:
        """
        Get the repository languages as a comma-joined string.

        Returns:
            str: Language names in API order, or "N/A".
        """
        result = await self.client.get_raw(f"repos/{owner}/{repo}/languages")
        if not result.ok:
            logger.debug(
                {
                    "message": "Failed to fetch languages",
                    "repository": f"{owner}/{repo}",
                    "error": result.error,
                }
            )
            return NOT_AVAILABLE

        try:
            languages = json.loads(result.value)
        except ValueError:
            return NOT_AVAILABLE
        if not isinstance(languages, dict):
            return NOT_AVAILABLE
        return _join_or_na(languages.keys())

    async def fetch_teams(self, owner: str, repo: str) -> ApiResult[List[Team]]:
        result = await self.client.get(
            f"repos/{owner}/{repo}/teams", List[Team], {"per_page": PAGE_SIZE}
        )
        if not result.ok:
            logger.error(
                {
                    "message": "Error fetching teams",
                    "repository": f"{owner}/{repo}",
                    "error": result.error,
                }
            )
        return result

    async def fetch_direct_collaborators(
        self, owner: str, repo: str
    ) -> ApiResult[List[Collaborator]]:
        result = await self.client.get(
            f"repos/{owner}/{repo}/collaborators",
            List[Collaborator],
            {"affiliation": "direct", "per_page": PAGE_SIZE},
        )
        if not result.ok:
            logger.error(
                {
                    "message": "Error fetching direct collaborators",
                    "repository": f"{owner}/{repo}",
                    "error": result.error,
                }
            )
        return result

    async def fetch_collaborators(self, owner: str, repo: str) -> ApiResult[str]:
        """
        Build the collaborator column from teams and direct collaborators.

        Teams are shown as ``name[permission]``, direct collaborators by
        display name and role. Both lists are fetched concurrently.

        Returns:
            ApiResult[str]: Comma-joined collaborators or "N/A", or the first
                error if either fetch failed.
        """
        teams, direct = await asyncio.gather(
            self.fetch_teams(owner, repo),
            self.fetch_direct_collaborators(owner, repo),
        )
        if not teams.ok:
            return ApiResult.failure(f"Failed to fetch teams: {teams.error}")
        if not direct.ok:
            return ApiResult.failure(
                f"Failed to fetch direct collaborators: {direct.error}"
            )

        team_names = [f"{team.name}[{team.permission}]" for team in teams.value]
        collaborator_names = [
            format_collaborator_name(collaborator)
            for collaborator in direct.value
            if collaborator.login.lower() not in self.excluded_users
        ]
        return ApiResult.success(_join_or_na(team_names + collaborator_names))

    async def fetch_last_commit_date(self, owner: str, repo: str) -> str:
        """
        Get the author date of the most recent commit.

        Returns:
            str: ``YYYY-MM-DD HH:MM:SS UTC`` or "N/A".
        """
        result = await self.client.get(
            f"repos/{owner}/{repo}/commits", List[Commit], {"per_page": 1}
        )
        if not result.ok:
            logger.debug(
                {
                    "message": "Failed to fetch last commit",
                    "repository": f"{owner}/{repo}",
                    "error": result.error,
                }
            )
            return NOT_AVAILABLE
        if not result.value:
            return NOT_AVAILABLE

        author = result.value[0].commit.author
        if author is None or author.date is None:
            return NOT_AVAILABLE
        return author.date.astimezone(timezone.utc).strftime(COMMIT_DATE_FORMAT)

    async def fetch_pull_request_counts(
        self, owner: str, repo: str
    ) -> Tuple[int, int, int]:
        prs = await self.fetch_pull_requests(owner, repo)
        return count_pull_requests(prs)

    async def mine_repository(self, org_login: str, repo: Repository) -> RepositoryData:
        """
        Collect and merge all inventory data for a repository.

        Languages, collaborators and the last commit date are fetched
        concurrently, then pull request counts.

        Args:
            org_login (str): Owning organization login.
            repo (Repository): Repository to mine.

        Returns:
            RepositoryData: Inventory record.

        Raises:
            RepositoryMiningError: If the collaborator column cannot be built.
        """
        logger.info(
            {"message": "Processing repository", "repository": f"{org_login}/{repo.name}"}
        )

        languages, collaborators, last_accessed = await asyncio.gather(
            self.fetch_languages(org_login, repo.name),
            self.fetch_collaborators(org_login, repo.name),
            self.fetch_last_commit_date(org_login, repo.name),
        )
        if not collaborators.ok:
            raise RepositoryMiningError(collaborators.error)

        active_prs, prs_2w, prs_1m = await self.fetch_pull_request_counts(
            org_login, repo.name
        )

        return RepositoryData(
            organization=org_login,
            repository=repo.name,
            visibility=repo.visibility_label,
            collaborators=collaborators.value,
            languages=languages,
            last_accessed=last_accessed,
            active_prs=active_prs,
            prs_2w=prs_2w,
            prs_1m=prs_1m,
        )
