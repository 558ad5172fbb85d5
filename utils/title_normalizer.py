#!/usr/bin/env python3
from __future__ import annotations

import re

_PREFIX_RE = re.compile(
	r"^(?:feat|fix|docs?|perf|refactor|chore|ci|build|test|style|breaking)(?:\([^)]*\))?[:\s!]+",
	re.IGNORECASE,
)
_PR_SUFFIX_RE = re.compile(r"\s*\(#\d+\)\s*$")


def _capitalize(s: str) -> str:
	return s[:1].upper() + s[1:]


def _strip_once(s: str) -> str:
	s = _PREFIX_RE.sub("", s)
	s = _PR_SUFFIX_RE.sub("", s)
	return s.strip()


def normalize_title(raw: str) -> str:
	"""Display form of a commit or PR title.

	Drops a leading conventional-commit token (``feat(scope)!:``) and a trailing
	``(#123)`` back-reference, then upper-cases the first character. Repeated
	until stable, so ``normalize_title(normalize_title(x)) == normalize_title(x)``.
	A title made only of noise keeps its original text.
	"""
	original = (raw or "").strip()
	current = original
	# Capitalizing can expand a character (U+FB01 becomes "FI") into a new prefix
	while True:
		next_title = _capitalize(_strip_once(current))
		if not next_title:
			return _capitalize(original)
		if next_title == current:
			return current
		current = next_title
