from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from .step_extraction import FINISH_ACTION, find_call_near_step

logger = logging.getLogger(__name__)

ACTION_TAP = "tap"
ACTION_TEXT = "text"
ACTION_LONG_PRESS = "long_press"
ACTION_SWIPE = "swipe"
ACTION_FINISH = "finish"
ACTION_UNKNOWN = "unknown"
VALID_ACTION_KINDS = {
    ACTION_TAP,
    ACTION_TEXT,
    ACTION_LONG_PRESS,
    ACTION_SWIPE,
    ACTION_FINISH,
    ACTION_UNKNOWN,
}
TERMINAL_ACTION_KINDS = {ACTION_FINISH, ACTION_UNKNOWN}

VALID_DIRECTIONS = {"up", "down", "left", "right"}
VALID_DISTANCES = {"low", "medium", "high"}
DEFAULT_SWIPE_DISTANCE = "medium"
DISTANCE_ALIASES = {
    "short": "low",
    "low": "low",
    "medium": "medium",
    "long": "high",
    "high": "high",
}

_TAP_PATTERN = re.compile(r"\b(?P<name>long_press|tap)\s*\((?P<args>[^)]*)\)", flags=re.IGNORECASE)
_SWIPE_PATTERN = re.compile(r"\bswipe\s*\((?P<args>[^)]*)\)", flags=re.IGNORECASE)
_TEXT_PATTERN = re.compile(r"\btext\s*\((?P<args>(?:\"[^\"]*\"|[^)\"])*)\)", flags=re.IGNORECASE)
_LEADING_INT_PATTERN = re.compile(r"^\s*[\"']?\s*(?P<value>[+-]?\d+)")
_QUOTED_PATTERN = re.compile(r"\"(?P<value>[^\"]*)\"")


@dataclass(frozen=True)
class ActionRecord:
    kind: str
    raw: str
    element_index: int | None = None
    text_input: str | None = None
    direction: str | None = None
    distance: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_ACTION_KINDS

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "element_index": self.element_index,
            "text_input": self.text_input,
            "direction": self.direction,
            "distance": self.distance,
            "raw": self.raw,
        }


def parse_action(
    raw: str,
    *,
    report: str | None = None,
    step_number: int | None = None,
) -> ActionRecord:
    """Interpret one action string from a model report.

    Content problems never raise: anything that cannot be read as an action
    call comes back as an ``unknown`` record holding the raw text. When a
    ``tap``/``long_press``/``text`` call names its target with a label instead
    of a number, ``report`` is searched near ``step_number``'s marker for a
    numeric variant of the same call.
    """
    if raw is None:
        raise TypeError("raw action must be a string")
    raw = str(raw)

    if FINISH_ACTION in raw:
        return ActionRecord(kind=ACTION_FINISH, raw=raw)

    tap_match = _TAP_PATTERN.search(raw)
    if tap_match:
        kind = tap_match.group("name").lower()
        element_index = _leading_int(tap_match.group("args"))
        if element_index is None:
            element_index = _rescan_element_index(kind, report=report, step_number=step_number)
        if element_index is None or element_index <= 0:
            logger.info("Unreadable %s target in action %r", kind, raw)
            return ActionRecord(kind=ACTION_UNKNOWN, raw=raw)
        return ActionRecord(kind=kind, raw=raw, element_index=element_index)

    swipe_match = _SWIPE_PATTERN.search(raw)
    if swipe_match:
        return _parse_swipe(raw, swipe_match.group("args"))

    text_match = _TEXT_PATTERN.search(raw)
    if text_match:
        return _parse_text(raw, text_match.group("args"), report=report, step_number=step_number)

    logger.info("Unrecognized action %r", raw)
    return ActionRecord(kind=ACTION_UNKNOWN, raw=raw)


def _parse_swipe(raw: str, args: str) -> ActionRecord:
    parts = args.split(",")
    if len(parts) < 2:
        return ActionRecord(kind=ACTION_UNKNOWN, raw=raw)

    element_index = _leading_int(parts[0])
    if element_index is None or element_index <= 0:
        return ActionRecord(kind=ACTION_UNKNOWN, raw=raw)

    direction = _strip_quotes(parts[1]).lower()
    if direction not in VALID_DIRECTIONS:
        logger.info("Invalid swipe direction %r in action %r", direction, raw)
        return ActionRecord(kind=ACTION_UNKNOWN, raw=raw)

    distance = DEFAULT_SWIPE_DISTANCE
    if len(parts) >= 3:
        distance = DISTANCE_ALIASES.get(_strip_quotes(parts[2]).lower(), DEFAULT_SWIPE_DISTANCE)

    return ActionRecord(
        kind=ACTION_SWIPE,
        raw=raw,
        element_index=element_index,
        direction=direction,
        distance=distance,
    )


def _parse_text(
    raw: str,
    args: str,
    *,
    report: str | None,
    step_number: int | None,
) -> ActionRecord:
    quoted = _QUOTED_PATTERN.search(args)
    if quoted:
        text_input = quoted.group("value")
    else:
        text_input = _strip_quotes(args)

    element_index = _leading_int(args) if not args.lstrip().startswith('"') else None
    if element_index is None and not re.search(r"\d", args):
        element_index = _rescan_element_index(ACTION_TEXT, report=report, step_number=step_number)
    if element_index is not None and element_index <= 0:
        element_index = None

    return ActionRecord(
        kind=ACTION_TEXT,
        raw=raw,
        element_index=element_index,
        text_input=text_input,
    )


def _rescan_element_index(
    function_name: str,
    *,
    report: str | None,
    step_number: int | None,
) -> int | None:
    if not report or step_number is None:
        return None
    call = find_call_near_step(
        report,
        step_number,
        function_names=(function_name,),
        numeric_only=True,
    )
    if call is None:
        return None
    args_match = re.search(r"\((?P<args>.*)\)", call, flags=re.DOTALL)
    if not args_match:
        return None
    element_index = _leading_int(args_match.group("args"))
    if element_index is not None:
        logger.debug("Recovered %s target %s for step %s from report", function_name, element_index, step_number)
    return element_index


def _leading_int(value: str) -> int | None:
    match = _LEADING_INT_PATTERN.match(value or "")
    if not match:
        return None
    try:
        return int(match.group("value"))
    except ValueError:
        return None


def _strip_quotes(value: str) -> str:
    return value.strip().strip("\"'").strip()
