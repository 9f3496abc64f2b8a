"""
Organization Processing Module.

Drives the per-organization loop of the inventory run: lists the
organization's repositories, mines them one at a time under a repository
limit shared by all organization tasks, and hands completed records to the
reporter in batches.
"""

import asyncio
from typing import List, Optional

from config import logger
from miners.base import RepositoryMiner, RepositoryMiningError
from miners.models import Organization, RepositoryData
from report.reporter import Reporter

BATCH_SIZE = 10


class RepositoryCounter:
    """
    Repository limit shared across concurrently processed organizations.

    Attributes:
        limit (Optional[int]): Maximum number of repositories, None for no limit.
        count (int): Repositories admitted so far.
    """

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit
        self.count = 0
        self._lock = asyncio.Lock()

    async def try_acquire(self) -> bool:
        """
        Admit one more repository if the limit allows it.

        Returns:
            bool: True if the caller may process another repository.
        """
        if self.limit is None:
            return True
        async with self._lock:
            if self.count >= self.limit:
                return False
            self.count += 1
            return True


class RepositoryProcessor:
    """
    Coordinates inventory collection for organizations.

    Attributes:
        miner (RepositoryMiner): Source of repository lists and records.
        reporter (Reporter): Sink for completed records.
        counter (RepositoryCounter): Shared repository limit.
    """

    def __init__(
        self,
        miner: RepositoryMiner,
        reporter: Reporter,
        counter: RepositoryCounter,
        batch_size: int = BATCH_SIZE,
    ):
        self.miner = miner
        self.reporter = reporter
        self.counter = counter
        self.batch_size = batch_size

    async def process_organization(self, org: Organization) -> int:
        """
        Mine and report every repository of an organization.

        Repositories are processed in list order. Processing stops once the
        shared limit is reached; a repository that fails to mine is logged and
        skipped.

        Args:
            org (Organization): Organization to process.

        Returns:
            int: Number of records reported for this organization.
        """
        logger.info(
            {"message": "Started processing organization", "organization": org.login}
        )

        repos = await self.miner.fetch_repositories(org.login)
        batch: List[RepositoryData] = []
        reported = 0

        for repo in repos:
            if not await self.counter.try_acquire():
                logger.info(
                    {
                        "message": f"Global limit of {self.counter.limit} "
                        "repositories reached. Stopping.",
                        "organization": org.login,
                    }
                )
                break

            try:
                data = await self.miner.mine_repository(org.login, repo)
            except RepositoryMiningError as e:
                logger.error(
                    {
                        "message": "Failed to process repository",
                        "repository": f"{org.login}/{repo.name}",
                        "error": str(e),
                    }
                )
                continue

            batch.append(data)
            if len(batch) >= self.batch_size:
                await self.reporter.report_batch(batch, org.login)
                reported += len(batch)
                batch = []

        if batch:
            await self.reporter.report_batch(batch, org.login)
            reported += len(batch)

        logger.info(
            {
                "message": "Completed processing organization",
                "organization": org.login,
                "repositories": reported,
            }
        )
        return reported
