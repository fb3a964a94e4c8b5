from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from usability_server.issue_priority import (  # noqa: E402
    PRIORITY_CRITICAL,
    PRIORITY_MAJOR,
    PRIORITY_MINOR,
    Issue,
    categorize_issues,
    classify_issue,
    parse_issues,
    priority_emoji,
)


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("🔴 결제 버튼이 보이지 않음", PRIORITY_CRITICAL),
        ("CRITICAL: 로그인 불가", PRIORITY_CRITICAL),
        ("🟡 로딩이 느림", PRIORITY_MAJOR),
        ("Major friction in checkout", PRIORITY_MAJOR),
        ("🟢 아이콘 간격", PRIORITY_MINOR),
        ("그냥 메모", PRIORITY_MINOR),
        ("", PRIORITY_MINOR),
        ("🟡 major, but 🔴 critical too", PRIORITY_CRITICAL),
    ],
)
def test_classify_issue_is_total(line, expected):
    assert classify_issue(line) == expected


def test_categorize_issues_groups_and_preserves_order():
    issues = [
        Issue("a", PRIORITY_CRITICAL),
        Issue("b", PRIORITY_MAJOR),
        Issue("c", PRIORITY_CRITICAL),
        Issue("d", PRIORITY_MINOR),
    ]

    categorized = categorize_issues(issues)

    assert {key: [issue.text for issue in value] for key, value in categorized.items()} == {
        PRIORITY_CRITICAL: ["a", "c"],
        PRIORITY_MAJOR: ["b"],
        PRIORITY_MINOR: ["d"],
    }


def test_categorize_issues_always_has_every_priority():
    assert categorize_issues([]) == {PRIORITY_CRITICAL: [], PRIORITY_MAJOR: [], PRIORITY_MINOR: []}


def test_priority_emoji():
    assert priority_emoji(PRIORITY_CRITICAL) == "🔴"
    assert priority_emoji(PRIORITY_MAJOR) == "🟡"
    assert priority_emoji(PRIORITY_MINOR) == "🟢"
    assert priority_emoji("OTHER") == "🟢"


def test_parse_issues_reads_marked_lines_only():
    text = (
        "- 🔴 **Critical**: 결제 버튼이 보이지 않음\n"
        "  설명 줄은 무시됩니다\n"
        "2. 🟡 Major: 검색 결과 로딩이 느림\n"
        "* minor 아이콘 간격이 좁음\n"
    )

    issues = parse_issues(text)

    assert [(issue.text, issue.priority) for issue in issues] == [
        ("🔴 Critical: 결제 버튼이 보이지 않음", PRIORITY_CRITICAL),
        ("🟡 Major: 검색 결과 로딩이 느림", PRIORITY_MAJOR),
        ("minor 아이콘 간격이 좁음", PRIORITY_MINOR),
    ]
    assert issues[0].to_dict() == {
        "text": "🔴 Critical: 결제 버튼이 보이지 않음",
        "priority": PRIORITY_CRITICAL,
        "emoji": "🔴",
    }


def test_parse_issues_handles_empty_text():
    assert parse_issues("") == []
