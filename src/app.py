"""
Main Application Entry Point.

This module serves as the command-line entry point of the repository
inventory tool. It orchestrates the inventory workflow, including:
- Command-line and environment configuration
- Organization enumeration
- Concurrent per-organization repository processing
- Streaming report output and table framing
"""

import argparse
import asyncio
import sys
from typing import List, Optional, TextIO

from pydantic import ValidationError

from config import InventoryConfig, Settings, find_ssl_cert, logger
from miners.client import GitHubClient
from miners.github_miner import GitHubMiner
from processing.repository_processor import RepositoryCounter, RepositoryProcessor
from report.reporter import Reporter


def positive_int(value: str) -> int:
    """argparse type accepting strictly positive integers."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("--count must be a positive integer")
    if number <= 0:
        raise argparse.ArgumentTypeError("--count must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-inventory",
        description="GitHub repository inventory tool.",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=["table", "json", "csv"],
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--fetch-all",
        action="store_true",
        help="Fetch all organizations instead of the first 100",
    )
    parser.add_argument(
        "--all-orgs",
        action="store_true",
        help="Enumerate all organizations on the server (requires admin)",
    )
    parser.add_argument(
        "--search-repos",
        action="store_true",
        help="Search all repositories (currently has no effect)",
    )
    parser.add_argument(
        "--output",
        "-o",
        dest="output_file",
        metavar="PATH",
        help="Base path for per-bucket report files under results/",
    )
    parser.add_argument(
        "--count",
        dest="max_count",
        type=positive_int,
        metavar="N",
        help="Maximum number of repositories across all organizations",
    )
    return parser


def build_config(args: argparse.Namespace, settings: Settings) -> InventoryConfig:
    """Merge parsed arguments and environment settings into a run configuration."""
    return InventoryConfig(
        token=settings.github_token,
        base_url=settings.api_base_url,
        ssl_cert_path=find_ssl_cert(settings),
        output_format=args.output_format,
        output_file=args.output_file,
        fetch_all=args.fetch_all,
        all_orgs=args.all_orgs,
        search_repos=args.search_repos,
        max_count=args.max_count,
        excluded_users=frozenset(settings.excluded_users),
    )


async def main(
    config: InventoryConfig,
    client: Optional[GitHubClient] = None,
    stream: Optional[TextIO] = None,
) -> int:
    """
    Execute the inventory workflow.

    Performs the following steps:
    1. Fetches the organization list
    2. Processes all organizations concurrently
    3. Streams records to the reporter as they complete

    Args:
        config (InventoryConfig): Run configuration.
        client (Optional[GitHubClient]): API client, built from config if omitted.
        stream (Optional[TextIO]): Output stream without an output file.

    Returns:
        int: Number of repositories reported.
    """
    logger.info({"message": "Connecting", "base_url": config.base_url})

    client = client or GitHubClient.from_config(config)
    miner = GitHubMiner(client, config.excluded_users)

    if config.all_orgs:
        orgs = await miner.fetch_all_organizations(config.fetch_all)
    else:
        orgs = await miner.fetch_organizations(config.fetch_all)
    logger.info({"message": f"Found {len(orgs)} organization(s)."})

    framed = config.output_format == "table" and not config.output_file

    with Reporter(config.output_format, config.output_file, stream) as reporter:
        if framed:
            reporter.write_table_header()

        processor = RepositoryProcessor(
            miner, reporter, RepositoryCounter(config.max_count)
        )
        results = await asyncio.gather(
            *(processor.process_organization(org) for org in orgs)
        )

        if framed:
            reporter.write_table_footer()

    logger.info({"message": "Processing complete.", "repositories": sum(results)})
    return sum(results)


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, load settings and run the inventory."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings()
    except ValidationError:
        logger.error("Error: GITHUB_TOKEN environment variable not set")
        return 1

    asyncio.run(main(build_config(args, settings)))
    return 0


if __name__ == "__main__":
    sys.exit(run())
