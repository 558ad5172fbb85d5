from utils.categorizer import categorize_changes
from utils.change_models import CategorizedChange, RawChange
from utils.changelog_renderer import EMPTY_PLACEHOLDER, SECTIONS, render_changelog


def _pr(number, title, login, labels=()):
    return RawChange(pr_number=number, title=title, author=login, author_login=login, labels=list(labels), position=number)


def _entry(category, title, n, login=None):
    return CategorizedChange(pr_number=n, title=title, clean_title=title, category=category,
                             author=login, author_login=login, position=n)


def test_empty_input_renders_placeholder_without_sections():
    md = render_changelog("acme", "shop", "v1.0.0", "v1.1.0", [], 0)
    assert EMPTY_PLACEHOLDER in md
    assert "### " not in md
    assert "**Contributors**" not in md
    assert md.endswith("**Stats**: 0 commits")


def test_sections_follow_fixed_order_regardless_of_input_order():
    entries = [
        _entry("other", "Tidy", 1),
        _entry("docs", "Guide", 2),
        _entry("breaking", "Drop v1", 3),
        _entry("fixes", "Crash", 4),
    ]
    md = render_changelog("acme", "shop", "v1", "v2", entries, 4)
    headers = [line for line in md.splitlines() if line.startswith("### ")]
    assert headers == [
        "### ⚠️ Breaking Changes",
        "### \U0001f41b Bug Fixes",
        "### \U0001f4da Documentation",
        "### \U0001f527 Other Changes",
    ]
    assert "New Features" not in md
    assert "Performance" not in md


def test_every_section_has_a_label():
    assert [key for key, _, _ in SECTIONS] == ["breaking", "features", "fixes", "performance", "docs", "other"]


def test_within_section_order_is_preserved():
    entries = [_entry("fixes", "Zeta", 1), _entry("fixes", "Alpha", 2)]
    md = render_changelog("acme", "shop", "v1", "v2", entries, 2)
    assert md.index("- Zeta") < md.index("- Alpha")


def test_contributors_sorted_case_insensitively():
    entries = [_entry("other", "a", 1, "zack"), _entry("other", "b", 2, "Alice"), _entry("other", "c", 3, "bob"),
               _entry("other", "d", 4, "bob")]
    md = render_changelog("acme", "shop", "v1", "v2", entries, 4)
    assert "**Contributors**: @Alice, @bob, @zack" in md


def test_head_renders_as_unreleased():
    md = render_changelog("acme", "shop", "v1.0.0", "HEAD", [], 0)
    assert "## Unreleased (from v1.0.0)" in md
    assert "[v1.0.0...HEAD](https://github.com/acme/shop/compare/v1.0.0...HEAD)" in md


def test_commit_entries_have_no_pr_link_or_pr_count():
    entry = CategorizedChange(sha="abc1234", title="fix: x", clean_title="X", category="fixes",
                              author="Jane Doe", author_login=None)
    md = render_changelog("acme", "shop", "v1", "v2", [entry], 1)
    assert "- X by @Jane Doe" in md
    assert "/pull/" not in md
    assert md.endswith("**Stats**: 1 commit")


def test_end_to_end_two_pull_requests():
    raws = [
        _pr(10, "fix: null pointer on empty cart", "dev1", ["bug"]),
        _pr(11, "feat: add wishlist", "dev2", ["feature"]),
    ]
    md = render_changelog("acme", "shop", "v1.0.0", "v1.1.0", categorize_changes(raws), 5)
    features = md.index("### ✨ New Features")
    fixes = md.index("### \U0001f41b Bug Fixes")
    assert features < fixes
    assert "- Add wishlist ([#11](https://github.com/acme/shop/pull/11)) by @dev2" in md[features:fixes]
    assert "- Null pointer on empty cart ([#10](https://github.com/acme/shop/pull/10)) by @dev1" in md[fixes:]
    assert "**Contributors**: @dev1, @dev2" in md
    assert "**Stats**: 5 commits, 2 pull requests" in md
    assert md.startswith("# Changelog: acme/shop\n\n## v1.1.0 (from v1.0.0)")
