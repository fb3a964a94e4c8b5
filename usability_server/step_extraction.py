from __future__ import annotations

import logging
import re
from typing import Callable, Iterable

from .report_sections import clean_markdown

logger = logging.getLogger(__name__)

FINISH_ACTION = "FINISH"
ACTION_FUNCTION_NAMES = ("tap", "swipe", "text", "long_press")
PROXIMITY_WINDOW_CHARS = 400

# A parenthesized argument list may carry quoted strings containing ")".
FUNCTION_CALL_PATTERN = re.compile(
    r"\b(?P<name>tap|swipe|text|long_press)\s*\((?P<args>(?:\"[^\"]*\"|[^)\"])+)\)",
    flags=re.IGNORECASE,
)

_LINE_PREFIX = r"^[ \t]*(?:[-*•>]|\d+[.)])?[ \t]*(?:\*\*)?[ \t]*"
_INLINE_PREFIX = r"(?<!\w)(?:\*\*)?[ \t]*"
_HEADER_LABEL = (
    r"(?:[ \t]*\([^)\n]*\))?[ \t]*(?:\*\*)?[ \t]*"
    r"(?:(?:Action|행동|동작)[ \t]*(?:\*\*)?)?[ \t]*"
)
# A header opening a line may omit its colon; one inside a line needs it.
_ANY_STEP_NUMBER = r"(?:Step[ \t]*\d+|(?<!\d)\d+[ \t]*단계)(?!\d)"
_ANY_STEP_HEADER = (
    rf"(?:{_LINE_PREFIX}{_ANY_STEP_NUMBER}|{_INLINE_PREFIX}{_ANY_STEP_NUMBER}{_HEADER_LABEL}[:：])"
)
_ANY_STEP_MENTION = re.compile(
    r"(?:\bStep\s*\d+|(?<!\d)\d+\s*단계)",
    flags=re.IGNORECASE,
)

Strategy = Callable[[], "str | None"]


def _step_header_pattern(step_number: int) -> re.Pattern[str]:
    number = rf"(?:Step[ \t]*{step_number}|(?<!\d){step_number}[ \t]*단계)(?!\d)"
    return re.compile(
        rf"(?:{_LINE_PREFIX}{number}{_HEADER_LABEL}[:：]?|{_INLINE_PREFIX}{number}{_HEADER_LABEL}[:：])"
        + r"[ \t]*(?:\*\*)?"
        + r"(?P<body>.*?)"
        + rf"(?={_ANY_STEP_HEADER}|\Z)",
        flags=re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )


def _step_mention_pattern(step_number: int) -> re.Pattern[str]:
    return re.compile(
        rf"(?:\bStep\s*{step_number}|(?<!\d){step_number}\s*(?:단계|번째))(?!\d)",
        flags=re.IGNORECASE,
    )


def first_success(strategies: Iterable[tuple[str, Strategy]]) -> tuple[str | None, str | None]:
    """Run named strategies in order and return the first non-empty result with its name."""
    for name, strategy in strategies:
        result = strategy()
        if result:
            return name, result
    return None, None


def capture_step_block(section_text: str, step_number: int) -> str | None:
    if not section_text:
        return None
    match = _step_header_pattern(step_number).search(section_text)
    if not match:
        return None
    body = match.group("body").strip()
    return body or None


def find_call_near_step(
    report: str,
    step_number: int,
    *,
    function_names: Iterable[str] = ACTION_FUNCTION_NAMES,
    numeric_only: bool = False,
) -> str | None:
    """Return the first function call that follows a mention of ``step_number``.

    The search window behind each mention ends at the next step mention or
    after ``PROXIMITY_WINDOW_CHARS`` characters, whichever comes first.
    """
    if not report:
        return None
    allowed = {name.lower() for name in function_names}
    for mention in _step_mention_pattern(step_number).finditer(report):
        window_end = min(len(report), mention.end() + PROXIMITY_WINDOW_CHARS)
        next_mention = _ANY_STEP_MENTION.search(report, mention.end(), window_end)
        if next_mention:
            window_end = next_mention.start()
        for call in FUNCTION_CALL_PATTERN.finditer(report, mention.end(), window_end):
            if call.group("name").lower() not in allowed:
                continue
            if numeric_only and not re.match(r"\s*\d", call.group("args")):
                continue
            return call.group(0).strip()
    return None


def find_all_calls(report: str) -> list[str]:
    if not report:
        return []
    return [match.group(0).strip() for match in FUNCTION_CALL_PATTERN.finditer(report)]


def action_strategies(
    section_text: str,
    full_report: str,
    step_number: int,
) -> list[tuple[str, Strategy]]:
    def _ordinal() -> str | None:
        calls = find_all_calls(full_report)
        if len(calls) >= step_number:
            return calls[step_number - 1]
        return None

    return [
        ("structured_step", lambda: capture_step_block(section_text, step_number)),
        ("proximity_call", lambda: find_call_near_step(full_report, step_number)),
        ("ordinal_call", _ordinal),
    ]


def extract_step_action(section_text: str, full_report: str, step_number: int) -> str:
    strategy_name, action = first_success(
        action_strategies(section_text or "", full_report or "", step_number)
    )
    if action is None:
        logger.warning("No action found for step %s; defaulting to %s", step_number, FINISH_ACTION)
        return FINISH_ACTION
    logger.debug("Step %s action resolved by %s: %s", step_number, strategy_name, action)
    return action


def extract_step_text(section_text: str, step_number: int) -> str:
    block = capture_step_block(section_text or "", step_number)
    if block is None:
        return ""
    return clean_markdown(block)
