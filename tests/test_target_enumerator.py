import pytest

from conftest import make_item

from gitee_collector.application.target_enumerator import TargetEnumerator, owner_and_repo, parse_repo_url
from gitee_collector.domain.errors import InvalidTargetError


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://gitee.com/openharmony/docs", ("openharmony", "docs")),
        ("https://gitee.com/openharmony/docs/", ("openharmony", "docs")),
        ("https://gitee.com/openharmony/docs/tree/master", None),
        ("https://gitee.com/openharmony", None),
        ("http://gitee.com/openharmony/docs", None),
        ("https://github.com/openharmony/docs", None),
        ("", None),
    ],
)
def test_parse_repo_url(url, expected) -> None:
    assert parse_repo_url(url) == expected


def test_owner_and_repo_rejects_non_gitee_urls() -> None:
    with pytest.raises(InvalidTargetError, match="invalid repository url"):
        owner_and_repo("https://github.com/cncf/landscape")


def test_enumerate_dedups_and_sorts() -> None:
    items = [
        make_item("b", "https://gitee.com/zeta/app", "https://gitee.com/alpha/lib"),
        make_item("a", "https://gitee.com/alpha/lib"),
        make_item("c", "https://github.com/alpha/lib"),
    ]

    targets, ohpm_urls = TargetEnumerator().enumerate(items)

    assert targets == ["https://gitee.com/alpha/lib", "https://gitee.com/zeta/app"]
    assert ohpm_urls == {}


def test_enumerate_collects_ohpm_urls_by_target() -> None:
    items = [
        make_item("kit", "https://gitee.com/o/kit", "https://github.com/o/kit", ohpm_url="https://ohpm.example/kit"),
        make_item("plain", "https://gitee.com/o/plain"),
    ]

    targets, ohpm_urls = TargetEnumerator().enumerate(items)

    assert targets == ["https://gitee.com/o/kit", "https://gitee.com/o/plain"]
    assert ohpm_urls == {"https://gitee.com/o/kit": "https://ohpm.example/kit"}


def test_enumerate_empty_catalog() -> None:
    assert TargetEnumerator().enumerate([]) == ([], {})


def test_enumerate_merges_trailing_slash_variants() -> None:
    items = [
        make_item("a", "https://gitee.com/o/a/", ohpm_url="https://ohpm.example/a"),
        make_item("b", "https://gitee.com/o/a"),
    ]

    targets, ohpm_urls = TargetEnumerator().enumerate(items)

    assert targets == ["https://gitee.com/o/a"]
    assert ohpm_urls == {"https://gitee.com/o/a": "https://ohpm.example/a"}
