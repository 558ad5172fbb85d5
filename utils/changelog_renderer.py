#!/usr/bin/env python3
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from utils.change_models import CATEGORIES, CategorizedChange, contributors_of

SECTIONS: Tuple[Tuple[str, str, str], ...] = (
	("breaking", "⚠️", "Breaking Changes"),
	("features", "✨", "New Features"),
	("fixes", "\U0001f41b", "Bug Fixes"),
	("performance", "⚡", "Performance"),
	("docs", "\U0001f4da", "Documentation"),
	("other", "\U0001f527", "Other Changes"),
)

EMPTY_PLACEHOLDER = "_No categorized changes found._"


def _plural(n: int, word: str) -> str:
	return f"{n} {word}" if n == 1 else f"{n} {word}s"


def _group(changes: Sequence[CategorizedChange]) -> Dict[str, List[CategorizedChange]]:
	grouped: Dict[str, List[CategorizedChange]] = {c: [] for c in CATEGORIES}
	for change in changes:
		grouped[change.category].append(change)
	return grouped


def change_line(owner: str, repo: str, change: CategorizedChange) -> str:
	pr = ""
	if change.pr_number is not None:
		pr = f" ([#{change.pr_number}](https://github.com/{owner}/{repo}/pull/{change.pr_number}))"
	by = f" by @{change.author}" if change.author else ""
	return f"- {change.clean_title}{pr}{by}"


def render_changelog(
	owner: str,
	repo: str,
	from_ref: str,
	to_ref: str,
	categorized: Sequence[CategorizedChange],
	total_commits: int,
) -> str:
	"""Render categorized changes as a markdown changelog.

	Sections follow the fixed category order and keep the order entries were
	supplied in; empty sections are left out. Pure: same inputs, same text.
	"""
	title = "Unreleased" if to_ref == "HEAD" else to_ref
	lines: List[str] = [
		f"# Changelog: {owner}/{repo}",
		"",
		f"## {title} (from {from_ref})",
		"",
	]

	grouped = _group(categorized)
	has_entries = False
	for key, emoji, heading in SECTIONS:
		items = grouped[key]
		if not items:
			continue
		has_entries = True
		lines.append(f"### {emoji} {heading}")
		lines.append("")
		lines.extend(change_line(owner, repo, it) for it in items)
		lines.append("")

	if not has_entries:
		lines.append(EMPTY_PLACEHOLDER)
		lines.append("")

	lines.append("---")
	lines.append("")
	lines.append(
		f"**Full Changelog**: [{from_ref}...{to_ref}](https://github.com/{owner}/{repo}/compare/{from_ref}...{to_ref})"
	)
	contributors = contributors_of(categorized)
	if contributors:
		lines.append(f"**Contributors**: {', '.join('@' + c for c in contributors)}")
	pr_count = sum(1 for c in categorized if c.is_pull_request)
	stats = f"**Stats**: {_plural(total_commits, 'commit')}"
	if pr_count:
		stats += f", {_plural(pr_count, 'pull request')}"
	lines.append(stats)
	return "\n".join(lines)
