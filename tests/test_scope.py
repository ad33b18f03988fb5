import pytest

from site_mirror.crawler.scope import ScopePolicy


@pytest.fixture()
def policy():
    return ScopePolicy(set())


def test_accepts_descendant_of_origin_directory(policy):
    assert policy.accept("https://a.com/x/y", "https://a.com/x/")


def test_rejects_sibling_outside_origin_directory(policy):
    assert not policy.accept("https://a.com/z", "https://a.com/x/")


def test_rejects_parent_directory(policy):
    assert not policy.accept("https://a.com/", "https://a.com/x/y/")


def test_accepts_other_host(policy):
    assert policy.accept("https://other.com/anything", "https://a.com/x/")


def test_origin_without_trailing_slash_scopes_to_itself(policy):
    assert not policy.accept("https://a.com/z", "https://a.com/docs")
    assert not policy.accept("https://a.com/docsx", "https://a.com/docs")
    assert policy.accept("https://a.com/docs/intro", "https://a.com/docs")


def test_origin_file_scopes_to_its_directory(policy):
    assert policy.accept("https://a.com/x/other.html", "https://a.com/x/page.html")
    assert not policy.accept("https://a.com/y/other.html", "https://a.com/x/page.html")


def test_scope_is_relative_to_discovering_page_not_seed(policy):
    assert policy.accept("https://a.com/x/y/", "https://a.com/x/")
    # discovered deeper, the same-host scope narrows to that page
    assert not policy.accept("https://a.com/x/z", "https://a.com/x/y/")
    assert policy.accept("https://a.com/x/y/z", "https://a.com/x/y/")


def test_accepted_url_is_rejected_afterwards(policy):
    assert policy.accept("https://a.com/x/y", "https://a.com/x/")
    assert not policy.accept("https://a.com/x/y", "https://a.com/x/")
    # same URL found from a different page, with a fragment
    assert not policy.accept("https://a.com/x/y#section", "https://other.com/")


def test_rejects_visited_url(policy):
    policy.mark_visited("https://a.com/x/done")
    assert not policy.accept("https://a.com/x/done", "https://a.com/x/")


def test_normalization_makes_host_case_insensitive(policy):
    assert policy.accept("https://A.COM/x/page", "https://a.com/x/")
    assert not policy.accept("https://a.com/x/page", "https://a.com/x/")


@pytest.mark.parametrize("candidate", [
    "javascript:void(0)",
    "mailto:someone@a.com",
    "tel:+123",
    "ftp://a.com/x/file",
    "/x/relative",
    "http://[::1",
    "",
])
def test_rejects_invalid_or_non_navigable(policy, candidate):
    assert not policy.accept(candidate, "https://a.com/x/")


def test_rejects_same_page_fragment_anchor(policy):
    assert not policy.accept("https://a.com/x/#top", "https://a.com/x/")


def test_fragment_on_other_page_is_accepted_without_fragment(policy):
    assert policy.accept("https://a.com/x/y#top", "https://a.com/x/")
    assert "https://a.com/x/y" in policy.visited


def test_shares_visited_set_by_reference():
    visited = set()
    policy = ScopePolicy(visited)
    policy.accept("https://b.com/", "https://a.com/")
    assert visited == {"https://b.com/"}
