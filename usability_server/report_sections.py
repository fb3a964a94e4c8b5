from __future__ import annotations

import re

SECTION_VISUAL_VERIFICATION = "visual_verification"
SECTION_FIRST_IMPRESSION = "first_impression"
SECTION_OBSERVATION = "observation"
SECTION_THOUGHT = "thought"
SECTION_JOURNEY_ACTIONS = "journey_actions"
SECTION_ISSUES = "issues"
SECTION_SUMMARY = "summary"

# One canonical vocabulary for every report shape (holistic journey and
# single-frame). A spelling only counts when it opens a line.
SECTION_HEADERS: dict[str, tuple[str, ...]] = {
    SECTION_VISUAL_VERIFICATION: (
        "Visual Verification",
        "시각 검증",
        "시각적 확인",
        "화면 확인",
    ),
    SECTION_FIRST_IMPRESSION: (
        "First Impression",
        "First Impressions",
        "첫인상",
        "첫 인상",
        "첫 마디",
    ),
    SECTION_OBSERVATION: (
        "Observation",
        "Observations",
        "Journey Observation",
        "관찰",
        "여정 관찰",
    ),
    SECTION_THOUGHT: (
        "Thought",
        "Thoughts",
        "UX Insights",
        "사고",
        "UX 인사이트",
    ),
    SECTION_JOURNEY_ACTIONS: (
        "Journey Actions",
        "Actions",
        "Action",
        "여정 분석",
        "여정 행동",
        "행동 분석",
        "행동",
        "동작",
    ),
    SECTION_ISSUES: (
        "Issues",
        "UX Issues",
        "Usability Issues",
        "Issue",
        "문제점",
        "이슈",
        "UX 이슈",
    ),
    SECTION_SUMMARY: (
        "Summary",
        "요약",
        "종합",
        "종합 요약",
    ),
}
SECTION_NAMES = tuple(SECTION_HEADERS.keys())


def _normalize_spelling(value: str) -> str:
    return re.sub(r"\s+", "", value).lower()


def _spelling_pattern(spelling: str) -> str:
    return r"[ \t]*".join(re.escape(part) for part in spelling.split())


_SPELLING_TO_SECTION: dict[str, str] = {
    _normalize_spelling(spelling): name
    for name, spellings in SECTION_HEADERS.items()
    for spelling in spellings
}

_ALL_SPELLINGS = sorted(
    {spelling for spellings in SECTION_HEADERS.values() for spelling in spellings},
    key=len,
    reverse=True,
)

_HEADER_PATTERN = re.compile(
    r"^[ \t]*(?:#{1,6}[ \t]*)?(?:[-*•>][ \t]+)?(?:\d+[.)][ \t]*)?(?:\*\*|__)?[ \t]*"
    r"(?P<name>" + "|".join(_spelling_pattern(item) for item in _ALL_SPELLINGS) + r")(?!\w)"
    r"(?:[ \t]*\((?P<alias>[^)\n]*)\))?"
    r"[ \t]*(?:\*\*|__)?[ \t]*(?P<colon>[:：])?[ \t]*(?:\*\*|__)?",
    flags=re.IGNORECASE | re.MULTILINE,
)

# [^\S\n] is any whitespace but a newline, NBSP and U+3000 included.
_BOLD_PATTERN = re.compile(r"\*\*[:：]?[^\S\n]*")
_LEADING_MARKER_PATTERN = re.compile(r"^[^\S\n]*(?:[-:：][^\S\n]*)+", flags=re.MULTILINE)


def find_section_headers(report: str) -> list[tuple[str, int, int]]:
    """Return ``(section_name, header_start, content_start)`` for every header in document order."""
    headers: list[tuple[str, int, int]] = []
    for match in _HEADER_PATTERN.finditer(report):
        section_name = _SPELLING_TO_SECTION.get(_normalize_spelling(match.group("name")))
        if section_name is None:
            continue
        if not match.group("colon"):
            line_end = report.find("\n", match.end())
            rest_of_line = report[match.end() : line_end if line_end >= 0 else len(report)]
            if rest_of_line.strip():
                continue
        headers.append((section_name, match.start(), match.end()))
    return headers


def extract_sections(report: str) -> dict[str, str]:
    """Split a model report into its named sections.

    Every name in ``SECTION_NAMES`` is present in the result; a section whose
    header never appears maps to an empty string. Only the first header of a
    section opens it, while any later header (duplicates included) closes the
    section that precedes it.
    """
    if not isinstance(report, str):
        raise TypeError("report must be a string")

    sections = {name: "" for name in SECTION_NAMES}
    headers = find_section_headers(report)
    seen: set[str] = set()
    for index, (section_name, _, content_start) in enumerate(headers):
        if section_name in seen:
            continue
        seen.add(section_name)
        content_end = headers[index + 1][1] if index + 1 < len(headers) else len(report)
        sections[section_name] = report[content_start:content_end].strip()
    return sections


def first_header_offset(report: str) -> int | None:
    headers = find_section_headers(report)
    if not headers:
        return None
    return headers[0][1]


def clean_markdown(text: str) -> str:
    if not text:
        return ""
    cleaned = _BOLD_PATTERN.sub("", text)
    cleaned = _LEADING_MARKER_PATTERN.sub("", cleaned)
    return cleaned.strip()
