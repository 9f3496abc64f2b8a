"""
Abstract Base Class for Repository Miners.

Defines the interface the repository processor relies on. Implementations
wrap a specific hosting API.
"""

from abc import ABC, abstractmethod
from typing import List

from miners.models import Repository, RepositoryData


class RepositoryMiningError(Exception):
    """Raised when a repository cannot be turned into an inventory record."""


class RepositoryMiner(ABC):
    """
    Abstract base class for repository miners.

    Implementations should handle:
    - Listing the repositories of an organization
    - Collecting per-repository details
    - Merging them into a single inventory record
    """

    @abstractmethod
    async def fetch_repositories(self, org_login: str) -> List[Repository]:
        """
        List all repositories of an organization.

        Args:
            org_login (str): Organization login

        Returns:
            List[Repository]: Repositories in API order
        """
        pass

    @abstractmethod
    async def mine_repository(self, org_login: str, repo: Repository) -> RepositoryData:
        """
        Collect all inventory data for a repository.

        Args:
            org_login (str): Owning organization login
            repo (Repository): Repository to mine

        Returns:
            RepositoryData: Inventory record

        Raises:
            RepositoryMiningError: If required data cannot be collected
        """
        pass
