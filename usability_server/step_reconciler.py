from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .gaze_path import parse_gaze_path
from .issue_priority import Issue, categorize_issues, parse_issues
from .journey_actions import ActionRecord, parse_action
from .report_sections import (
    SECTION_FIRST_IMPRESSION,
    SECTION_ISSUES,
    SECTION_JOURNEY_ACTIONS,
    SECTION_OBSERVATION,
    SECTION_SUMMARY,
    SECTION_THOUGHT,
    SECTION_VISUAL_VERIFICATION,
    clean_markdown,
    extract_sections,
)
from .step_extraction import extract_step_action, extract_step_text

logger = logging.getLogger(__name__)

_SCORE_PATTERNS = (
    re.compile(r"(?P<value>\d+(?:\.\d+)?)\s*/\s*10(?!\d)"),
    re.compile(r"(?:score|점수)\s*(?:\([^)\n]*\))?\s*[:：]?\s*(?P<value>\d+(?:\.\d+)?)", flags=re.IGNORECASE),
    re.compile(r"(?P<value>\d+(?:\.\d+)?)\s*점(?![가-힣])"),
)


@dataclass(frozen=True)
class StepResult:
    step: int
    action: ActionRecord
    observation: str = ""
    thought: str = ""
    gaze_path: tuple[int, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "action": self.action.to_dict(),
            "observation": self.observation,
            "thought": self.thought,
            "gaze_path": list(self.gaze_path),
        }


@dataclass(frozen=True)
class JourneyReport:
    steps: list[StepResult]
    sections: dict[str, str]
    issues: list[Issue] = field(default_factory=list)
    usability_score: float | None = None

    @property
    def issues_by_priority(self) -> dict[str, list[Issue]]:
        return categorize_issues(self.issues)

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps": [step.to_dict() for step in self.steps],
            "first_impression": clean_markdown(self.sections.get(SECTION_FIRST_IMPRESSION, "")),
            "visual_verification": clean_markdown(self.sections.get(SECTION_VISUAL_VERIFICATION, "")),
            "thought": self.sections.get(SECTION_THOUGHT, ""),
            "summary": self.sections.get(SECTION_SUMMARY, ""),
            "usability_score": self.usability_score,
            "issues": [issue.to_dict() for issue in self.issues],
            "issues_by_priority": {
                priority: [issue.to_dict() for issue in items]
                for priority, items in self.issues_by_priority.items()
            },
        }


def reconcile_steps(report: str, step_count: int) -> list[StepResult]:
    """Build exactly ``step_count`` step results from a raw journey report."""
    return _reconcile(report, step_count, extract_sections(_require_report(report)))


def analyze_report(report: str, step_count: int) -> JourneyReport:
    sections = extract_sections(_require_report(report))
    steps = _reconcile(report, step_count, sections)

    issues_source = sections[SECTION_ISSUES] or report
    issues = parse_issues(issues_source)

    score = extract_usability_score(sections[SECTION_SUMMARY])
    if score is None:
        score = extract_usability_score(report)

    return JourneyReport(
        steps=steps,
        sections=sections,
        issues=issues,
        usability_score=score,
    )


def extract_usability_score(text: str) -> float | None:
    if not text:
        return None
    for pattern in _SCORE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        try:
            value = float(match.group("value"))
        except ValueError:
            continue
        return max(1.0, min(10.0, value))
    return None


def _reconcile(report: str, step_count: int, sections: dict[str, str]) -> list[StepResult]:
    if isinstance(step_count, bool) or not isinstance(step_count, int):
        raise TypeError("step_count must be an integer")
    if step_count < 0:
        raise ValueError("step_count must not be negative")

    actions_section = sections[SECTION_JOURNEY_ACTIONS]
    observation_section = sections[SECTION_OBSERVATION]
    thought_section = sections[SECTION_THOUGHT]

    results: list[StepResult] = []
    for step_number in range(1, step_count + 1):
        raw_action = extract_step_action(actions_section, report, step_number)
        action = parse_action(clean_markdown(raw_action), report=report, step_number=step_number)
        observation = extract_step_text(observation_section, step_number)
        results.append(
            StepResult(
                step=step_number,
                action=action,
                observation=observation,
                thought=extract_step_text(thought_section, step_number),
                gaze_path=parse_gaze_path(observation),
            )
        )

    logger.debug(
        "Reconciled %s steps (actions section %s)",
        step_count,
        "found" if actions_section else "missing",
    )
    return results


def _require_report(report: Any) -> str:
    if not isinstance(report, str):
        raise TypeError("report must be a string")
    return report
