#!/usr/bin/env python3
"""Ref comparison: the commits and merged pull requests between two Git refs.

``RefComparator`` is the port the changelog pipeline depends on;
``GithubRefComparator`` implements it over the GitHub REST API.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .change_models import (
    CommitRecord, CompareResult, PullRequestRecord, RawChange,
    extract_first_line, extract_pr_numbers, safe_extract,
)
from .github_client import GithubApiError, GithubClient, RateLimitError
from utils.metrics import Timer, incr
from configs.config import Config

# Set up logging
logger = logging.getLogger(__name__)


class RefComparator:
    """Produces the raw change records between two refs."""

    def compare(self, owner: str, repo: str, from_ref: str, to_ref: str = "HEAD") -> CompareResult:
        raise NotImplementedError


class GithubRefComparator(RefComparator):
    """Compares refs with the GitHub compare endpoint and resolves referenced pull requests."""

    def __init__(self, client: Optional[GithubClient] = None, batch_size: Optional[int] = None):
        """Initialize the comparator.

        Args:
            client: GitHub client. If None, creates a new one from Config.
            batch_size: Concurrent PR lookups per batch (defaults to Config.PR_BATCH_SIZE)
        """
        self.client = client or GithubClient()
        self.batch_size = max(1, int(batch_size or Config.PR_BATCH_SIZE))

    def compare(self, owner: str, repo: str, from_ref: str, to_ref: str = "HEAD") -> CompareResult:
        """Fetch the changes between ``from_ref`` and ``to_ref``.

        Args:
            owner: Repository owner
            repo: Repository name
            from_ref: Starting ref (tag, branch or SHA)
            to_ref: Ending ref, ``HEAD`` when empty

        Returns:
            CompareResult with PR records when any referenced PR is merged,
            otherwise non-merge commit records

        Raises:
            ValueError: If owner, repo or from_ref is blank
            NotFoundError, RateLimitError, UpstreamError: From the compare call
        """
        for name, value in (("owner", owner), ("repo", repo), ("from_ref", from_ref)):
            if not value or not str(value).strip():
                raise ValueError(f"{name} must be a non-empty string")
        to_ref = to_ref or "HEAD"

        with Timer("compare.fetch", repo=f"{owner}/{repo}"):
            payload = self.client.compare(owner, repo, from_ref, to_ref)

        commits = self._normalize_commits(payload.get("commits") or [])
        total_commits = payload.get("total_commits")
        if not isinstance(total_commits, int) or total_commits < 0:
            total_commits = len(commits)
        logger.info(f"{owner}/{repo} {from_ref}...{to_ref}: {total_commits} commits")

        pr_refs = extract_pr_numbers(c.message for c in commits)
        prs = self._resolve_pull_requests(owner, repo, list(pr_refs))

        if prs:
            changes = [
                RawChange(
                    pr_number=pr.number,
                    title=pr.title,
                    author=pr.author,
                    author_login=pr.author,
                    labels=pr.labels,
                    position=pr_refs[pr.number],
                )
                for pr in prs
            ]
            changes.sort(key=lambda c: c.position)
        else:
            changes = [
                RawChange(
                    sha=c.sha,
                    title=c.first_line,
                    author=c.author_login or c.author_name,
                    author_login=c.author_login,
                    position=index,
                )
                for index, c in enumerate(commits)
                if c.first_line and not c.is_merge
            ]

        incr("compare.changes", value=len(changes), source="prs" if prs else "commits")
        return CompareResult(raw_changes=changes, total_commits=total_commits, pr_count=len(prs))

    def _normalize_commits(self, items: Sequence[Dict[str, Any]]) -> List[CommitRecord]:
        commits: List[CommitRecord] = []
        for item in items:
            try:
                commits.append(
                    CommitRecord(
                        sha=item.get("sha", ""),
                        message=safe_extract(item, "commit", "message", default="") or "",
                        author_login=safe_extract(item, "author", "login"),
                        author_name=safe_extract(item, "commit", "author", "name", default=None) or "Unknown",
                    )
                )
            except (ValidationError, AttributeError) as e:
                logger.warning(f"Skipping malformed commit entry: {e}")
        return commits

    def _resolve_pull_requests(self, owner: str, repo: str, numbers: List[int]) -> List[PullRequestRecord]:
        """Look up merged PRs in bounded concurrent batches; failed lookups are dropped."""
        resolved: List[PullRequestRecord] = []
        if not numbers:
            return resolved
        logger.info(f"Resolving {len(numbers)} referenced pull requests in batches of {self.batch_size}")
        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for start in range(0, len(numbers), self.batch_size):
                batch = numbers[start:start + self.batch_size]
                futures = [(n, pool.submit(self._fetch_merged_pr, owner, repo, n)) for n in batch]
                rate_limited = False
                for number, future in futures:
                    try:
                        pr = future.result()
                    except RateLimitError as e:
                        logger.warning(f"Rate limited while resolving PR #{number}: {e}")
                        rate_limited = True
                        continue
                    except (GithubApiError, ValidationError, AttributeError, TypeError) as e:
                        logger.debug(f"Dropping PR #{number}: {e}")
                        incr("compare.pr_dropped")
                        continue
                    if pr is not None:
                        resolved.append(pr)
                if rate_limited:
                    logger.warning("Skipping remaining pull request lookups after rate limit")
                    break
        return resolved

    def _fetch_merged_pr(self, owner: str, repo: str, number: int) -> Optional[PullRequestRecord]:
        data = self.client.get_pull_request(owner, repo, number)
        labels = [label.get("name") for label in data.get("labels") or [] if isinstance(label, dict) and label.get("name")]
        pr = PullRequestRecord(
            number=number,
            title=extract_first_line(data.get("title") or ""),
            author=safe_extract(data, "user", "login", default=None) or "unknown",
            labels=labels,
            body=(data.get("body") or "")[:300],
            merged_at=data.get("merged_at"),
        )
        return pr if pr.merged else None

    def close(self) -> None:
        """Close the underlying client."""
        self.client.close()
