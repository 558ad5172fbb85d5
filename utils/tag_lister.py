#!/usr/bin/env python3
"""Release and tag listing, rendered for a user choosing a changelog range."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .change_models import ReleaseEntry, safe_extract
from .github_client import GithubApiError, GithubClient, RateLimitError
from configs.config import Config

# Set up logging
logger = logging.getLogger(__name__)


def _dedupe(entries: Sequence[ReleaseEntry]) -> List[ReleaseEntry]:
    seen = set()
    out: List[ReleaseEntry] = []
    for entry in entries:
        if entry.tag_name in seen:
            continue
        seen.add(entry.tag_name)
        out.append(entry)
    return out


def release_entries(items: Sequence[Dict[str, Any]]) -> List[ReleaseEntry]:
    """Validate raw release payloads; malformed items are skipped."""
    entries: List[ReleaseEntry] = []
    for item in items:
        try:
            published = item.get("published_at") or ""
            entries.append(
                ReleaseEntry(
                    tag_name=item.get("tag_name") or "",
                    display_name=item.get("name") or None,
                    date=published.split("T")[0] or None,
                    prerelease=bool(item.get("prerelease", False)),
                )
            )
        except (ValidationError, AttributeError, TypeError) as e:
            logger.warning(f"Skipping malformed release entry: {e}")
    return _dedupe(entries)


def tag_entries(items: Sequence[Dict[str, Any]]) -> List[ReleaseEntry]:
    """Validate raw tag payloads; malformed items are skipped."""
    entries: List[ReleaseEntry] = []
    for item in items:
        try:
            sha = safe_extract(item, "commit", "sha", default=None)
            entries.append(ReleaseEntry(tag_name=item.get("name") or "", short_sha=sha))
        except (ValidationError, AttributeError, TypeError) as e:
            logger.warning(f"Skipping malformed tag entry: {e}")
    return _dedupe(entries)


def release_line(entry: ReleaseEntry) -> str:
    name = f' "{entry.display_name}"' if entry.display_name and entry.display_name != entry.tag_name else ""
    date = f" - {entry.date}" if entry.date else ""
    pre = " _(pre-release)_" if entry.prerelease else ""
    return f"- **{entry.tag_name}**{name}{date}{pre}"


def tag_line(entry: ReleaseEntry) -> str:
    sha = f" ({entry.short_sha})" if entry.short_sha else ""
    return f"- **{entry.tag_name}**{sha}"


def suggestion_line(entries: Sequence[ReleaseEntry]) -> Optional[str]:
    """Propose the second-most-recent to most-recent entry as a range."""
    if len(entries) < 2:
        return None
    return f"To generate a changelog, pick two tags. Example: from {entries[1].tag_name} to {entries[0].tag_name}."


def render_listing(owner: str, repo: str, entries: Sequence[ReleaseEntry], *, releases: bool) -> str:
    if not entries:
        return f"No tags or releases found for {owner}/{repo}. You can still use branch names or commit SHAs."
    heading = "Releases" if releases else "Tags"
    lines = [f"**{heading} for {owner}/{repo}:**", ""]
    lines.extend(release_line(e) if releases else tag_line(e) for e in entries)
    suggestion = suggestion_line(entries)
    if suggestion:
        lines.append("")
        lines.append(suggestion)
    return "\n".join(lines)


class TagLister:
    """Lists releases (falling back to tags) and never raises to the caller."""

    def __init__(self, client: Optional[GithubClient] = None, per_page: Optional[int] = None):
        self.client = client or GithubClient()
        self.per_page = int(per_page or Config.TAGS_PER_PAGE)

    def list_tags(self, owner: str, repo: str) -> str:
        """Markdown listing of the repository's releases or tags.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            Markdown text; a plain message when nothing is found or GitHub fails
        """
        try:
            releases = release_entries(self.client.list_releases(owner, repo, per_page=self.per_page))
        except GithubApiError as e:
            logger.warning(f"Releases unavailable for {owner}/{repo}, falling back to tags: {e}")
            releases = []
        if releases:
            return render_listing(owner, repo, releases, releases=True)

        try:
            tags = tag_entries(self.client.list_tags(owner, repo, per_page=self.per_page))
        except RateLimitError as e:
            reset = e.reset_at.isoformat() if e.reset_at else "unknown"
            return f"Could not fetch tags for {owner}/{repo}: GitHub rate limit hit (resets at {reset})."
        except GithubApiError as e:
            logger.warning(f"Tags unavailable for {owner}/{repo}: {e}")
            return f"Could not fetch tags for {owner}/{repo}. Check the repo exists and is public."
        return render_listing(owner, repo, tags, releases=False)
