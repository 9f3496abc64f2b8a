"""
GitHub REST API Client Module.

Thin asynchronous wrapper around PyGithub's requester. Every call returns an
ApiResult instead of raising, so fetchers can substitute defaults for failed
calls without aborting the run.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Type, TypeVar

import requests
from github import Auth, Github, GithubException
from pydantic import TypeAdapter, ValidationError

from config import InventoryConfig

T = TypeVar("T")

API_VERSION = "2022-11-28"
REQUEST_TIMEOUT_SECONDS = 30
USER_AGENT = "repo-inventory"
ERROR_BODY_LIMIT = 200


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Outcome of an API call: either a value or an error message."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ApiResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "ApiResult[T]":
        return cls(error=error)


class GitHubClient:
    """
    Authenticated GET client for a GitHub-compatible REST API.

    Requests carry a bearer token, the API version header and a fixed
    30 second timeout. No retries are performed.
    """

    def __init__(
        self,
        token: str,
        base_url: str,
        ssl_cert_path: Optional[str] = None,
    ):
        """Initialize the client.

        Args:
            token (str): GitHub API token.
            base_url (str): REST API base URL.
            ssl_cert_path (Optional[str]): CA bundle used to verify the server.
        """
        self.base_url = base_url.rstrip("/")
        self.github = Github(
            auth=Auth.Token(token),
            base_url=self.base_url,
            timeout=REQUEST_TIMEOUT_SECONDS,
            user_agent=USER_AGENT,
            verify=ssl_cert_path or True,
            retry=None,
            seconds_between_requests=0,
        )
        self._requester = self.github.requester
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    @classmethod
    def from_config(cls, config: InventoryConfig) -> "GitHubClient":
        return cls(
            config.token.get_secret_value(),
            config.base_url,
            config.ssl_cert_path,
        )

    @staticmethod
    def _path(endpoint: str) -> str:
        return "/" + endpoint.lstrip("/")

    async def get(
        self,
        endpoint: str,
        shape: Type[T],
        params: Optional[Dict[str, Any]] = None,
    ) -> ApiResult[T]:
        """
        GET an endpoint and validate the JSON body into the requested shape.

        Args:
            endpoint (str): Path relative to the API base URL.
            shape (Type[T]): Pydantic model or typing construct to validate into.
            params (Optional[Dict[str, Any]]): Query parameters.

        Returns:
            ApiResult[T]: Parsed data, or an API, parse or transport error.
        """
        try:
            _, data = await asyncio.to_thread(
                self._requester.requestJsonAndCheck,
                "GET",
                self._path(endpoint),
                params,
                self._headers,
            )
        except GithubException as e:
            return ApiResult.failure(
                f"API Error: {e.status} - {str(e.data)[:ERROR_BODY_LIMIT]}"
            )
        except requests.RequestException as e:
            return ApiResult.failure(f"Request failed: {e}")
        except ValueError as e:
            # PyGithub decodes bodies that look like JSON and raises on malformed ones
            return ApiResult.failure(f"Parse Error: {str(e)[:ERROR_BODY_LIMIT]}")

        try:
            return ApiResult.success(TypeAdapter(shape).validate_python(data))
        except ValidationError as e:
            return ApiResult.failure(f"Parse Error: {str(e)[:ERROR_BODY_LIMIT]}")

    async def get_raw(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> ApiResult[str]:
        """
        GET an endpoint and return the response body unparsed.

        Args:
            endpoint (str): Path relative to the API base URL.
            params (Optional[Dict[str, Any]]): Query parameters.

        Returns:
            ApiResult[str]: Response body, or an API or transport error.
        """
        try:
            status, _, body = await asyncio.to_thread(
                self._requester.requestJson,
                "GET",
                self._path(endpoint),
                params,
                self._headers,
            )
        except GithubException as e:
            return ApiResult.failure(
                f"API Error: {e.status} - {str(e.data)[:ERROR_BODY_LIMIT]}"
            )
        except requests.RequestException as e:
            return ApiResult.failure(f"Request failed: {e}")

        if not 200 <= status < 300:
            return ApiResult.failure(
                f"API Error: {status} - {(body or '')[:ERROR_BODY_LIMIT]}"
            )
        return ApiResult.success(body or "")
