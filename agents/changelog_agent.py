#!/usr/bin/env python3
"""Changelog agent: categorized markdown changelogs between two Git refs.

The two tool operations, ``generate_changelog`` and ``list_tags``, always
return text; GitHub failures are turned into user-facing messages.
"""

import logging
import os
import re
import sys
from typing import Optional, Tuple

from dotenv import load_dotenv
from langsmith.run_helpers import traceable

# Load environment variables from .env file before Config is imported
load_dotenv()

from utils.categorizer import categorize_changes, needs_refinement, refine_categories
from utils.change_classifier import ChangeClassifier
from utils.changelog_renderer import render_changelog
from utils.github_client import GithubClient, NotFoundError, RateLimitError, GithubApiError
from utils.metrics import Timer, incr
from utils.ref_comparator import GithubRefComparator, RefComparator
from utils.tag_lister import TagLister

# Set up logging
logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^(?:https?://github\.com/)?([\w.-]+)/([\w.-]+?)(?:\.git)?/?$")


def parse_repo_slug(value: str) -> Tuple[str, str]:
	"""Split ``owner/repo`` or a GitHub URL into (owner, repo).

	Raises:
		ValueError: If the value is neither form
	"""
	m = _SLUG_RE.match((value or "").strip())
	if not m:
		raise ValueError(f"Not a GitHub repository: {value!r} (expected owner/repo or https://github.com/owner/repo)")
	return m.group(1), m.group(2)


def failure_message(owner: str, repo: str, from_ref: str, to_ref: str, error: Exception) -> str:
	"""User-facing text for a failed changelog generation."""
	header = f"Failed to generate changelog for {owner}/{repo} ({from_ref}...{to_ref})."
	if isinstance(error, NotFoundError):
		return (
			f"{header}\n\nGitHub returned 404. Likely causes:\n"
			f"- The repository {owner}/{repo} does not exist or is private (check the spelling)\n"
			f"- The ref `{from_ref}` or `{to_ref}` does not exist (try listing tags, or use a branch name or SHA)"
		)
	if isinstance(error, RateLimitError):
		reset = error.reset_at.isoformat() if error.reset_at else "unknown"
		return (
			f"{header}\n\nGitHub rate limit hit. Resets at {reset}.\n"
			"Set GITHUB_TOKEN to raise the limit, or retry after the reset time."
		)
	if isinstance(error, GithubApiError):
		status = f" (HTTP {error.status})" if error.status else ""
		return (
			f"{header}\n\nGitHub API error{status}: {error}\n"
			"Check that the repository and refs exist, then retry."
		)
	return f"{header}\n\n{error}"


class ChangelogAgent:
	"""Agent exposing the changelog tools."""

	def __init__(
		self,
		client: Optional[GithubClient] = None,
		comparator: Optional[RefComparator] = None,
		classifier: Optional[ChangeClassifier] = None,
		tag_lister: Optional[TagLister] = None,
		refine: bool = True,
	):
		"""Initialize the changelog agent.

		Args:
			client: Shared GitHub client. If None, one is created from Config.
			comparator: Ref comparator. Defaults to the GitHub REST comparator.
			classifier: Title classifier for the refinement pass. Defaults to the Bedrock classifier.
			tag_lister: Tag lister. Defaults to one over the shared client.
			refine: Whether the LLM refinement pass may run at all
		"""
		self._client = client
		if comparator is None or tag_lister is None:
			self._client = client or GithubClient()
		self.comparator = comparator or GithubRefComparator(self._client)
		self.tag_lister = tag_lister or TagLister(self._client)
		self.classifier = (classifier or ChangeClassifier()) if refine else None
		logger.info("Changelog agent initialized")

	@traceable(name="generate_changelog")
	def generate_changelog(self, owner: str, repo: str, from_ref: str, to_ref: str = "HEAD") -> str:
		"""Generate a categorized markdown changelog; never raises.

		Args:
			owner: Repository owner (user or organization)
			repo: Repository name
			from_ref: Starting ref (tag, branch or SHA)
			to_ref: Ending ref (defaults to HEAD)

		Returns:
			The changelog, or a failure message listing likely causes
		"""
		to_ref = to_ref or "HEAD"
		logger.info(f"Generating changelog for {owner}/{repo} {from_ref}...{to_ref}")
		try:
			with Timer("changelog.generate", repo=f"{owner}/{repo}"):
				result = self.comparator.compare(owner, repo, from_ref, to_ref)
				categorized = self._categorize(result.raw_changes)
				markdown = render_changelog(owner, repo, from_ref, to_ref, categorized, result.total_commits)
		except (GithubApiError, ValueError) as e:
			incr("changelog.failure", code=getattr(e, "code", "INVALID_INPUT"))
			logger.error(f"Changelog generation failed for {owner}/{repo}: {e}")
			return failure_message(owner, repo, from_ref, to_ref, e)
		except Exception as e:
			# Wrap unexpected errors
			incr("changelog.failure", code="UNKNOWN")
			logger.exception(f"Unexpected error generating changelog for {owner}/{repo}")
			return failure_message(owner, repo, from_ref, to_ref, e)

		logger.info(
			f"✓ Changelog for {owner}/{repo}: {len(categorized)} entries, "
			f"{result.total_commits} commits, {result.pr_count} pull requests"
		)
		return markdown

	@traceable(name="categorize")
	def _categorize(self, raw_changes):
		categorized = categorize_changes(raw_changes)
		if self.classifier is not None and needs_refinement(categorized):
			logger.info("Most entries uncategorized, running refinement pass")
			categorized = refine_categories(categorized, self.classifier)
		return categorized

	@traceable(name="list_tags")
	def list_tags(self, owner: str, repo: str) -> str:
		"""List releases or tags for the repository; never raises."""
		logger.info(f"Listing tags for {owner}/{repo}")
		return self.tag_lister.list_tags(owner, repo)

	def close(self) -> None:
		"""Close the agent and cleanup resources."""
		if self._client:
			self._client.close()
		logger.info("Changelog agent closed")


def _resolve_repo(args) -> Tuple[str, str]:
	if args.owner:
		return args.owner, args.repo
	return parse_repo_slug(args.repo)


def main():
	"""CLI entry point for the changelog agent."""
	import argparse
	from configs.config import Config

	parser = argparse.ArgumentParser(
		description="Changelogger - categorized changelogs from GitHub repositories",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  python -m agents.changelog_agent tags --repo pallets/flask
  python -m agents.changelog_agent generate --owner pallets --repo flask --from 3.0.0 --to 3.0.1
  python -m agents.changelog_agent generate --repo https://github.com/psf/requests --from v2.31.0
		"""
	)
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
	sub = parser.add_subparsers(dest="command", required=True)

	gen = sub.add_parser("generate", help="Generate a changelog between two refs")
	gen.add_argument("--owner", required=False, help="Repository owner (omit when --repo is owner/repo or a URL)")
	gen.add_argument("--repo", required=True, help="Repository name, owner/repo, or GitHub URL")
	gen.add_argument("--from", dest="from_ref", required=True, help="Starting ref (tag, branch or SHA)")
	gen.add_argument("--to", dest="to_ref", default="HEAD", help="Ending ref (default: HEAD)")
	gen.add_argument("--no-refine", dest="refine", action="store_false", help="Skip the LLM categorization pass")

	tags = sub.add_parser("tags", help="List releases or tags")
	tags.add_argument("--owner", required=False)
	tags.add_argument("--repo", required=True)

	args = parser.parse_args()

	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)

	# Suppress verbose logs from libraries unless in debug mode
	if not args.verbose:
		for name in ("utils.github_client", "utils.ref_comparator", "utils.tag_lister", "urllib3", "botocore"):
			logging.getLogger(name).setLevel(logging.WARNING)

	langsmith = Config.get_langsmith_config()
	if langsmith["api_key"]:
		os.environ.setdefault("LANGSMITH_TRACING", "true")
		os.environ.setdefault("LANGSMITH_PROJECT", langsmith["project"])
		os.environ.setdefault("LANGSMITH_ENDPOINT", langsmith["endpoint"])

	agent = None
	try:
		owner, repo = _resolve_repo(args)
		if args.command == "generate":
			agent = ChangelogAgent(refine=args.refine)
			print(agent.generate_changelog(owner, repo, args.from_ref, args.to_ref))
		else:
			agent = ChangelogAgent(refine=False)
			print(agent.list_tags(owner, repo))
		sys.exit(0)

	except ValueError as e:
		print(f"Error: {e}", file=sys.stderr)
		sys.exit(2)

	except KeyboardInterrupt:
		print("\nOperation cancelled by user", file=sys.stderr)
		sys.exit(1)

	except Exception as e:
		# Unexpected error
		print(f"Unexpected error: {e}", file=sys.stderr)
		if args.verbose:
			logger.exception("Detailed error information:")
		else:
			print("Use --verbose for more details", file=sys.stderr)
		sys.exit(1)

	finally:
		if agent:
			agent.close()


if __name__ == "__main__":
	main()
