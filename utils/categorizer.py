#!/usr/bin/env python3
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from utils.change_models import CATEGORIES, Category, CategorizedChange, RawChange
from utils.metrics import incr
from utils.title_normalizer import normalize_title
from utils.wrap import with_watchdog
from configs.config import Config

logger = logging.getLogger(__name__)

# (category, label keywords, title pattern); evaluated in order, first match wins
_RULES: Tuple[Tuple[str, Tuple[str, ...], "re.Pattern[str]"], ...] = (
	("breaking", ("breaking",), re.compile(r"^breaking[\s(:!]", re.IGNORECASE)),
	("features", ("feature", "enhancement", "feat"), re.compile(r"^feat[\s(:]", re.IGNORECASE)),
	("fixes", ("bug", "fix", "hotfix"), re.compile(r"^fix[\s(:]", re.IGNORECASE)),
	("performance", ("perf", "performance"), re.compile(r"^perf[\s(:]", re.IGNORECASE)),
	("docs", ("doc", "documentation"), re.compile(r"^docs?[\s(:]", re.IGNORECASE)),
)

_UNTITLED = "Untitled change"


class TitleClassifier(Protocol):
	def classify(self, titles: Sequence[str]) -> Dict[str, Category]:
		...


def categorize(title: str, labels: Sequence[str]) -> Category:
	"""Rule-based category for a change title and its labels."""
	lowered = [str(label).lower() for label in labels or []]
	for category, keywords, pattern in _RULES:
		if any(k in label for label in lowered for k in keywords):
			return category  # type: ignore[return-value]
		if pattern.match(title or ""):
			return category  # type: ignore[return-value]
	return "other"


def categorize_changes(changes: Sequence[RawChange]) -> List[CategorizedChange]:
	out: List[CategorizedChange] = []
	for change in changes:
		out.append(
			CategorizedChange(
				**change.model_dump(),
				category=categorize(change.title, change.labels),
				clean_title=normalize_title(change.title) or _UNTITLED,
			)
		)
	return out


def needs_refinement(changes: Sequence[CategorizedChange], *, other_ratio: Optional[float] = None,
					 min_entries: Optional[int] = None) -> bool:
	"""True when too many entries ended up in ``other`` for the rules to be trusted."""
	cfg = Config.get_refine_config()
	ratio = cfg["other_ratio"] if other_ratio is None else other_ratio
	minimum = cfg["min_entries"] if min_entries is None else min_entries
	total = len(changes)
	other = sum(1 for c in changes if c.category == "other")
	return total > minimum and other > total * ratio


def refine_categories(changes: List[CategorizedChange], classifier: Optional[TitleClassifier]) -> List[CategorizedChange]:
	"""Re-classify ``other`` entries with the language model.

	Best-effort: any failure leaves the rule-based categories untouched.
	Only entries currently in ``other`` can move.
	"""
	cfg = Config.get_refine_config()
	if classifier is None or not cfg["enabled"]:
		return changes
	titles = list(dict.fromkeys(c.clean_title for c in changes if c.category == "other"))
	if not titles:
		return changes
	try:
		mapping = with_watchdog(
			lambda: classifier.classify(titles),
			max_runtime_s=cfg["max_runtime_s"],
			on_timeout=lambda: incr("refine.timeout"),
		)
		lookup = {str(title).strip().casefold(): category for title, category in mapping.items()}
	except Exception as e:  # noqa: BLE001
		logger.warning(f"Category refinement failed, keeping rule-based categories: {e}")
		incr("refine.failure", error=type(e).__name__)
		return changes

	refined: List[CategorizedChange] = []
	moved = 0
	for change in changes:
		new_category = lookup.get(change.clean_title.strip().casefold()) if change.category == "other" else None
		if new_category in CATEGORIES and new_category != "other":
			refined.append(change.model_copy(update={"category": new_category}))
			moved += 1
		else:
			refined.append(change)
	logger.info(f"Category refinement moved {moved}/{len(titles)} entries out of 'other'")
	incr("refine.moved", value=moved)
	return refined
