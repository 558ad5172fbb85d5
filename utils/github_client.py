#!/usr/bin/env python3
"""GitHub REST API client for ref comparisons, pull requests, releases and tags.

Configuration (base URL, token, timeout, user agent) is passed in explicitly or
read once from ``Config`` at construction time; there is no shared header state.
Anonymous access works for public repositories, at the lower rate limit.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Any, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from configs.config import Config
from utils.metrics import Timer, incr

# Set up logging
logger = logging.getLogger(__name__)


class GithubApiError(Exception):
    """Base class for GitHub API failures, with a typed code for friendly handling."""

    code = "UNKNOWN"

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class NotFoundError(GithubApiError):
    """Raised when the owner, repository or ref does not exist."""

    code = "NOT_FOUND"


class RateLimitError(GithubApiError):
    """Raised when the request quota is exhausted."""

    code = "RATE_LIMIT"

    def __init__(self, message: str, status: Optional[int] = None, body: str = "",
                 reset_at: Optional[datetime] = None) -> None:
        super().__init__(message, status=status, body=body)
        self.reset_at = reset_at


class UpstreamError(GithubApiError):
    """Raised on any other non-success response or transport failure."""

    code = "UPSTREAM"


class GithubAuthError(UpstreamError):
    """Raised when GitHub rejects the configured token."""

    code = "UNAUTHORIZED"


def _parse_reset_at(headers) -> Optional[datetime]:
    reset = headers.get("x-ratelimit-reset")
    if reset:
        try:
            return datetime.fromtimestamp(int(reset), tz=timezone.utc)
        except (TypeError, ValueError):
            pass
    retry_after = headers.get("retry-after")
    if retry_after:
        try:
            return datetime.now(timezone.utc) + timedelta(seconds=int(retry_after))
        except (TypeError, ValueError):
            pass
    return None


class GithubClient:
    """Thin GitHub REST client with typed errors."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize GitHub client.

        Args:
            token: GitHub Personal Access Token (defaults to Config.GITHUB_TOKEN; optional)
            base_url: API root (defaults to Config.GITHUB_API_URL)
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            session: Pre-built session, mainly for tests
        """
        github_config = Config.get_github_config()
        self.token = token or github_config["token"]
        self.base_url = (base_url or github_config["base_url"]).rstrip("/")
        self.timeout_s = timeout_s or github_config["timeout_s"]

        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": github_config["user_agent"],
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"

        if session is None:
            session = requests.Session()
            # Only server errors are retried; 403/429 must surface as rate limits, Retry-After included
            retry_strategy = Retry(
                total=github_config["retries"],
                status_forcelist=[500, 502, 503, 504],
                backoff_factor=1,
                allowed_methods=["HEAD", "GET", "OPTIONS"],
                raise_on_status=False,
                respect_retry_after_header=False,
            )
            session.mount("https://", HTTPAdapter(max_retries=retry_strategy))
        session.headers.update(headers)
        self.session = session

        logger.info(f"GitHub client initialized ({'authenticated' if self.token else 'anonymous'})")

    def __enter__(self) -> "GithubClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None, *, op: str = "get") -> Any:
        """GET a path under the API root and return decoded JSON.

        Raises:
            NotFoundError: HTTP 404
            RateLimitError: quota exhausted (403/429 with no remaining requests)
            GithubAuthError: HTTP 401
            UpstreamError: any other failure
        """
        url = f"{self.base_url}{path}"
        try:
            logger.debug(f"GET {url} params={params}")
            with Timer("github.request", op=op):
                response = self.session.get(url, params=params, timeout=self.timeout_s)
        except requests.RequestException as e:
            incr("github.failure", op=op, code="NETWORK")
            raise UpstreamError(f"Request to GitHub failed: {e}") from e

        status = response.status_code
        if 200 <= status < 300:
            try:
                return response.json()
            except ValueError as e:
                raise UpstreamError(f"GitHub returned invalid JSON for {path}", status=status) from e

        body = (response.text or "")[:500]
        incr("github.failure", op=op, status=status)
        remaining = response.headers.get("x-ratelimit-remaining")
        if status == 429 or (status == 403 and remaining == "0"):
            reset_at = _parse_reset_at(response.headers)
            at = reset_at.isoformat() if reset_at else "unknown"
            raise RateLimitError(f"GitHub rate limit hit. Resets at {at}.", status=status, body=body, reset_at=reset_at)
        if status == 404:
            raise NotFoundError("GitHub 404 - check that the repo and refs exist.", status=status, body=body)
        if status == 401:
            raise GithubAuthError("Invalid GitHub token or insufficient permissions", status=status, body=body)
        raise UpstreamError(f"GitHub API {status}: {body}", status=status, body=body)

    def compare(self, owner: str, repo: str, base: str, head: str) -> Dict[str, Any]:
        """Compare two refs.

        Args:
            owner: Repository owner
            repo: Repository name
            base: Starting ref (tag, branch or SHA)
            head: Ending ref

        Returns:
            Compare payload with ``commits`` and ``total_commits``
        """
        logger.info(f"Comparing {owner}/{repo} {base}...{head}")
        path = f"/repos/{owner}/{repo}/compare/{quote(base, safe='')}...{quote(head, safe='')}"
        return self._get(path, op="compare")

    def get_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        """Fetch pull request metadata.

        Args:
            owner: Repository owner
            repo: Repository name
            number: Pull request number

        Returns:
            Pull request metadata dictionary
        """
        logger.debug(f"Fetching PR metadata: {owner}/{repo}#{number}")
        return self._get(f"/repos/{owner}/{repo}/pulls/{number}", op="pull")

    def list_releases(self, owner: str, repo: str, per_page: int = 20) -> List[Dict[str, Any]]:
        """List the most recent releases, newest first."""
        logger.debug(f"Listing releases: {owner}/{repo}")
        data = self._get(f"/repos/{owner}/{repo}/releases", params={"per_page": per_page}, op="releases")
        return data if isinstance(data, list) else []

    def list_tags(self, owner: str, repo: str, per_page: int = 20) -> List[Dict[str, Any]]:
        """List the most recent tags."""
        logger.debug(f"Listing tags: {owner}/{repo}")
        data = self._get(f"/repos/{owner}/{repo}/tags", params={"per_page": per_page}, op="tags")
        return data if isinstance(data, list) else []

    def close(self) -> None:
        """Close the GitHub client session."""
        if self.session:
            self.session.close()
            logger.debug("GitHub client session closed")
