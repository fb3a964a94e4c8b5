from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable

PRIORITY_CRITICAL = "CRITICAL"
PRIORITY_MAJOR = "MAJOR"
PRIORITY_MINOR = "MINOR"
PRIORITY_ORDER = {
    PRIORITY_CRITICAL: 3,
    PRIORITY_MAJOR: 2,
    PRIORITY_MINOR: 1,
}
PRIORITY_EMOJI = {
    PRIORITY_CRITICAL: "🔴",
    PRIORITY_MAJOR: "🟡",
    PRIORITY_MINOR: "🟢",
}

_ISSUE_MARKERS = ("🔴", "🟡", "🟢")
_ISSUE_KEYWORDS = ("critical", "major", "minor")
_LIST_MARKER_PATTERN = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


@dataclass(frozen=True)
class Issue:
    text: str
    priority: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "priority": self.priority,
            "emoji": PRIORITY_EMOJI[self.priority],
        }


def classify_issue(line: str) -> str:
    lowered = (line or "").lower()
    if "🔴" in lowered or "critical" in lowered:
        return PRIORITY_CRITICAL
    if "🟡" in lowered or "major" in lowered:
        return PRIORITY_MAJOR
    return PRIORITY_MINOR


def priority_emoji(priority: str) -> str:
    return PRIORITY_EMOJI.get(priority, PRIORITY_EMOJI[PRIORITY_MINOR])


def categorize_issues(issues: Iterable[Issue]) -> dict[str, list[Issue]]:
    categorized: dict[str, list[Issue]] = {
        PRIORITY_CRITICAL: [],
        PRIORITY_MAJOR: [],
        PRIORITY_MINOR: [],
    }
    for issue in issues:
        categorized.setdefault(issue.priority, []).append(issue)
    return categorized


def parse_issues(text: str) -> list[Issue]:
    if not text:
        return []

    issues: list[Issue] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        lowered = stripped.lower()
        if not any(marker in stripped for marker in _ISSUE_MARKERS) and not any(
            keyword in lowered for keyword in _ISSUE_KEYWORDS
        ):
            continue
        issue_text = _LIST_MARKER_PATTERN.sub("", stripped).replace("**", "").strip()
        if not issue_text:
            continue
        issues.append(Issue(text=issue_text, priority=classify_issue(stripped)))
    return issues
