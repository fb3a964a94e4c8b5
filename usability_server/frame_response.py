from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .gaze_path import parse_gaze_path
from .journey_actions import ActionRecord, parse_action
from .report_sections import (
    SECTION_FIRST_IMPRESSION,
    SECTION_JOURNEY_ACTIONS,
    SECTION_OBSERVATION,
    SECTION_SUMMARY,
    SECTION_THOUGHT,
    clean_markdown,
    extract_sections,
    first_header_offset,
)
from .step_extraction import FINISH_ACTION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameResponse:
    first_impression: str
    observation: str
    thought: str
    action_text: str
    action: ActionRecord
    summary: str
    gaze_path: tuple[int, ...]
    fully_parsed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_impression": self.first_impression,
            "observation": self.observation,
            "thought": self.thought,
            "action_text": self.action_text,
            "action": self.action.to_dict(),
            "summary": self.summary,
            "gaze_path": list(self.gaze_path),
            "fully_parsed": self.fully_parsed,
        }


def parse_frame_response(text: str) -> FrameResponse:
    """Parse a single-frame ``Observation / Thought / Action / Summary`` answer."""
    if not isinstance(text, str):
        raise TypeError("response must be a string")

    processed = text.replace("\\n", "\n").strip()
    sections = extract_sections(processed)

    first_impression = sections[SECTION_FIRST_IMPRESSION]
    if not first_impression:
        offset = first_header_offset(processed)
        if offset:
            first_impression = processed[:offset].strip()

    observation = sections[SECTION_OBSERVATION]
    thought = sections[SECTION_THOUGHT]
    action_text = clean_markdown(sections[SECTION_JOURNEY_ACTIONS])
    summary = sections[SECTION_SUMMARY].strip().strip('"').strip()

    if not (observation and thought and action_text and summary):
        logger.warning("Frame response is missing sections; treating it as a plain observation")
        observation = text.strip()
        return FrameResponse(
            first_impression="",
            observation=observation,
            thought="",
            action_text=FINISH_ACTION,
            action=parse_action(FINISH_ACTION),
            summary="",
            gaze_path=parse_gaze_path(observation),
            fully_parsed=False,
        )

    return FrameResponse(
        first_impression=clean_markdown(first_impression),
        observation=observation,
        thought=thought,
        action_text=action_text,
        action=parse_action(action_text),
        summary=summary,
        gaze_path=parse_gaze_path(observation),
        fully_parsed=True,
    )
