#!/usr/bin/env python3
"""Pydantic models for changelog data structures.

This module defines the data models used for representing commits, merged
pull requests, their categorized form, and release/tag listings.
"""

import re
from typing import Dict, Iterable, List, Literal, Optional, Tuple
from pydantic import BaseModel, Field, field_validator, model_validator


# Type aliases for better readability
Category = Literal[
    "breaking",
    "features",
    "fixes",
    "performance",
    "docs",
    "other",
]

# Fixed render order
CATEGORIES: Tuple[str, ...] = ("breaking", "features", "fixes", "performance", "docs", "other")

_PR_REF_RE = re.compile(r"#(\d+)")


class RawChange(BaseModel):
    """One unit of history: a commit or a merged pull request."""

    sha: Optional[str] = Field(None, description="Commit SHA (commit-sourced records)")
    pr_number: Optional[int] = Field(None, description="Pull request number (PR-sourced records)")
    title: str = Field(..., description="Commit first line or PR title, as written")
    author: Optional[str] = Field(None, description="Display handle for the rendered line")
    author_login: Optional[str] = Field(None, description="GitHub login used for the contributor list")
    labels: List[str] = Field(default_factory=list, description="PR labels")
    position: int = Field(0, description="Index of the first commit that produced this record")

    model_config = {"extra": "ignore", "frozen": True}

    @model_validator(mode="after")
    def _has_identity(self) -> "RawChange":
        if not self.sha and self.pr_number is None:
            raise ValueError("RawChange needs a sha or a pr_number")
        return self

    @property
    def is_pull_request(self) -> bool:
        return self.pr_number is not None


class CategorizedChange(RawChange):
    """A RawChange annotated with its category and display title."""

    category: Category = Field("other", description="Changelog section")
    clean_title: str = Field(..., min_length=1, description="Normalized display title")


class CommitRecord(BaseModel):
    """Commit entry from the compare endpoint, reduced to what the changelog needs."""

    sha: str = Field(..., min_length=1, description="Commit SHA")
    message: str = Field("", description="Full commit message")
    author_login: Optional[str] = Field(None, description="GitHub login of the author")
    author_name: str = Field("Unknown", description="Git author name")

    model_config = {"extra": "ignore"}

    @property
    def first_line(self) -> str:
        return extract_first_line(self.message)

    @property
    def is_merge(self) -> bool:
        return self.first_line.startswith("Merge ")


class PullRequestRecord(BaseModel):
    """Pull request payload fields used to build changelog entries."""

    number: int = Field(..., description="Pull request number")
    title: str = Field(..., description="Pull request title")
    author: str = Field("unknown", description="Pull request author login")
    labels: List[str] = Field(default_factory=list, description="Label names")
    body: str = Field("", description="Pull request body, truncated")
    merged_at: Optional[str] = Field(None, description="Merge timestamp, None when not merged")

    model_config = {"extra": "ignore"}

    @property
    def merged(self) -> bool:
        return bool(self.merged_at)


class CompareResult(BaseModel):
    """Normalized output of a ref comparison."""

    raw_changes: List[RawChange] = Field(default_factory=list)
    total_commits: int = Field(0, ge=0)
    pr_count: int = Field(0, ge=0)


class ReleaseEntry(BaseModel):
    """A release or tag, as listed by the repository."""

    tag_name: str = Field(..., min_length=1, description="Tag name")
    display_name: Optional[str] = Field(None, description="Release name")
    date: Optional[str] = Field(None, description="Publication date (YYYY-MM-DD)")
    prerelease: bool = Field(False, description="Whether the release is flagged pre-release")
    short_sha: Optional[str] = Field(None, description="Abbreviated commit SHA (tags only)")

    model_config = {"extra": "ignore"}

    @field_validator("tag_name")
    @classmethod
    def _strip_tag(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("tag_name must not be blank")
        return value

    @field_validator("short_sha", mode="before")
    @classmethod
    def _abbreviate_sha(cls, value):
        # Tag payloads carry the full SHA; anything but a string is dropped
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()[:7]


class TitleClassification(BaseModel):
    """One classified change title returned by the language model."""

    title: str = Field(..., description="The change title exactly as given")
    category: Category = Field(..., description="One of: breaking, features, fixes, performance, docs, other")


class ClassificationBatch(BaseModel):
    """Structured output model for the refinement pass."""

    items: List[TitleClassification] = Field(default_factory=list, description="One entry per input title")


def extract_first_line(message: str) -> str:
    """Extract the first line of a commit message.

    Args:
        message: Full commit message

    Returns:
        First line of the message, stripped of whitespace
    """
    if not message:
        return ""

    lines = message.splitlines()
    return lines[0].strip() if lines else ""


def extract_pr_numbers(messages: Iterable[str]) -> Dict[int, int]:
    """Map every ``#<digits>`` reference to the index of the first message containing it.

    Insertion order follows first appearance.
    """
    seen: Dict[int, int] = {}
    for index, message in enumerate(messages):
        for match in _PR_REF_RE.finditer(message or ""):
            number = int(match.group(1))
            if number not in seen:
                seen[number] = index
    return seen


def contributors_of(changes: Iterable[RawChange]) -> List[str]:
    """Unique contributor logins, sorted case-insensitively."""
    logins = {c.author_login for c in changes if c.author_login}
    return sorted(logins, key=lambda s: (s.casefold(), s))


def safe_extract(data: Dict, *keys, default=None):
    """Safely extract nested dictionary values.

    Args:
        data: Dictionary to extract from
        *keys: Sequence of keys to traverse
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default

    Example:
        safe_extract(commit, "commit", "author", "name", default="Unknown")
    """
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current
