import pytest

from configs.config import Config
from utils.categorizer import categorize, categorize_changes, needs_refinement, refine_categories
from utils.change_models import CATEGORIES, RawChange


def _raw(title, labels=(), n=1, login="dev"):
    return RawChange(pr_number=n, title=title, labels=list(labels), author=login, author_login=login, position=n)


@pytest.mark.parametrize("title,labels,expected", [
    ("breaking: remove legacy API", ["enhancement"], "breaking"),
    ("feat: add wishlist", [], "features"),
    ("Add wishlist", ["Enhancement"], "features"),
    ("fix(cart): null pointer", [], "fixes"),
    ("Crash on start", ["type: bug"], "fixes"),
    ("perf: faster parsing", [], "performance"),
    ("docs: typo", [], "docs"),
    ("doc(readme): typo", [], "docs"),
    ("Update README", ["Documentation"], "docs"),
    ("chore: bump deps", [], "other"),
    ("feature flags", [], "other"),
    ("BREAKING(api): rename", [], "breaking"),
    ("Something", ["BREAKING CHANGE"], "breaking"),
])
def test_categorize(title, labels, expected):
    assert categorize(title, labels) == expected


def test_label_rules_take_precedence_in_category_order():
    # fixes label, but breaking title wins because breaking is checked first
    assert categorize("breaking: drop endpoint", ["bug"]) == "breaking"
    # feature label beats a fix-prefixed title
    assert categorize("fix: small thing", ["feature"]) == "features"


def test_partition_is_complete():
    raws = [
        _raw("feat: a", n=1), _raw("fix: b", n=2), _raw("perf: c", n=3),
        _raw("docs: d", n=4), _raw("breaking: e", n=5), _raw("chore: f", n=6),
        _raw("misc", n=7),
    ]
    out = categorize_changes(raws)
    assert len(out) == len(raws)
    assert [c.pr_number for c in out] == [r.pr_number for r in raws]
    assert all(c.category in CATEGORIES for c in out)
    assert out[0].clean_title == "A"


def _other_batch(total, others):
    raws = [_raw(f"chore: task {i}", n=i) for i in range(others)]
    raws += [_raw(f"feat: thing {i}", n=100 + i) for i in range(total - others)]
    return categorize_changes(raws)


def test_refinement_threshold():
    assert needs_refinement(_other_batch(10, 7)) is True
    assert needs_refinement(_other_batch(10, 5)) is False
    assert needs_refinement(_other_batch(5, 5)) is False


class FakeClassifier:
    def __init__(self, answer=None, error=None):
        self.answer = answer or {}
        self.error = error
        self.calls = []

    def classify(self, titles):
        self.calls.append(list(titles))
        if self.error:
            raise self.error
        return self.answer


def test_refine_only_moves_other_entries():
    changes = categorize_changes([
        _raw("feat: keep me", n=1),
        _raw("Speed up cold start", n=2),
        _raw("Misc cleanup", n=3),
    ])
    classifier = FakeClassifier({"Speed up cold start": "performance", "Keep me": "fixes", "misc cleanup": "other"})
    refined = refine_categories(changes, classifier)
    assert classifier.calls == [["Speed up cold start", "Misc cleanup"]]
    assert [c.category for c in refined] == ["features", "performance", "other"]


def test_refine_failure_keeps_original():
    changes = categorize_changes([_raw("Misc", n=1)])
    refined = refine_categories(changes, FakeClassifier(error=RuntimeError("timeout")))
    assert refined == changes


def test_refine_ignores_unknown_categories():
    changes = categorize_changes([_raw("Misc", n=1)])
    refined = refine_categories(changes, FakeClassifier({"Misc": "nonsense"}))
    assert refined[0].category == "other"


def test_refine_disabled(monkeypatch):
    monkeypatch.setattr(Config, "REFINE_ENABLED", False)
    classifier = FakeClassifier({"Misc": "fixes"})
    changes = categorize_changes([_raw("Misc", n=1)])
    assert refine_categories(changes, classifier) == changes
    assert classifier.calls == []
