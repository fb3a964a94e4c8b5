from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Sequence

from .gaze_path import BoundingBox, UIElement

LEVEL_LOW = "LOW"
LEVEL_MEDIUM = "MEDIUM"
LEVEL_HIGH = "HIGH"

LEVEL_EMOJI = {
    LEVEL_LOW: "🟢",
    LEVEL_MEDIUM: "🟡",
    LEVEL_HIGH: "🔴",
}

MIN_SCORE = 1
MAX_SCORE = 10

# (low, high) per metric: above low adds 1 point, above high adds 2.
THRESHOLDS: dict[str, tuple[int, int]] = {
    "element_count": (15, 40),
    "interactive_element_count": (5, 15),
    "text_density": (100, 300),
    "color_variety": (5, 12),
    "hierarchy_depth": (3, 6),
}

INTERACTIVE_ELEMENT_TYPES = frozenset({"INSTANCE", "COMPONENT", "COMPONENT_SET"})
_INTERACTIVE_NAME_PATTERN = re.compile(
    r"button|btn|link|tab|input|toggle|checkbox|버튼|링크|탭|입력|토글",
    flags=re.IGNORECASE,
)

DEFAULT_RECOMMENDATION = "인지 부하가 적절한 수준입니다."


@dataclass(frozen=True)
class CognitiveLoadMetrics:
    element_count: int = 0
    interactive_element_count: int = 0
    text_density: int = 0
    color_variety: int = 0
    hierarchy_depth: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class CognitiveLoadResult:
    score: int
    level: str
    metrics: CognitiveLoadMetrics
    recommendations: list[str] = field(default_factory=list)

    @property
    def emoji(self) -> str:
        return cognitive_load_emoji(self.level)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level,
            "emoji": self.emoji,
            "metrics": self.metrics.to_dict(),
            "recommendations": list(self.recommendations),
        }


def _recommendation(metric: str, value: int) -> str:
    if metric == "element_count":
        return f"요소 수({value}개)가 많습니다. {THRESHOLDS[metric][0]}개 이하로 줄이는 것이 좋습니다."
    if metric == "interactive_element_count":
        return f"상호작용 요소({value}개)가 많아 선택 장애를 유발할 수 있습니다."
    if metric == "text_density":
        return "텍스트가 너무 밀집되어 있습니다. 요약하거나 단계별로 나누세요."
    if metric == "color_variety":
        return f"색상 종류({value}개)가 많습니다. 브랜드 팔레트를 단순화하세요."
    return f"정보 깊이({value}단계)가 깊습니다. 플랫한 구조를 고려하세요."


def calculate_cognitive_load(metrics: CognitiveLoadMetrics) -> CognitiveLoadResult:
    """Score UI complexity from 1 (simple) to 10 (overwhelming)."""
    score = MIN_SCORE
    recommendations: list[str] = []
    for metric, (low, high) in THRESHOLDS.items():
        value = getattr(metrics, metric)
        if value > high:
            score += 2
            recommendations.append(_recommendation(metric, value))
        elif value > low:
            score += 1

    score = max(MIN_SCORE, min(MAX_SCORE, score))
    if score <= 3:
        level = LEVEL_LOW
    elif score <= 6:
        level = LEVEL_MEDIUM
    else:
        level = LEVEL_HIGH

    return CognitiveLoadResult(
        score=score,
        level=level,
        metrics=metrics,
        recommendations=recommendations or [DEFAULT_RECOMMENDATION],
    )


def cognitive_load_emoji(level: str) -> str:
    return LEVEL_EMOJI.get(level, "")


def is_interactive(element: UIElement) -> bool:
    return element.type.upper() in INTERACTIVE_ELEMENT_TYPES or bool(
        _INTERACTIVE_NAME_PATTERN.search(element.name)
    )


def hierarchy_depth(elements: Sequence[UIElement]) -> int:
    """Return the deepest chain of bounding boxes nested inside one another."""
    ordered = sorted(elements, key=lambda element: _area(element.bbox), reverse=True)
    depths: list[int] = []
    for index, element in enumerate(ordered):
        parents = [
            depths[parent_index]
            for parent_index in range(index)
            if _strictly_contains(ordered[parent_index].bbox, element.bbox)
        ]
        depths.append(1 + max(parents, default=0))
    return max(depths, default=0)


def metrics_from_elements(
    elements: Sequence[UIElement],
    *,
    text_content: str = "",
    colors: Iterable[str] = (),
) -> CognitiveLoadMetrics:
    """Derive load metrics from a frame's labeled elements and optional text and color samples.

    ``text_density`` counts whitespace-separated words, and ``color_variety``
    counts distinct color values case-insensitively.
    """
    return CognitiveLoadMetrics(
        element_count=len(elements),
        interactive_element_count=sum(1 for element in elements if is_interactive(element)),
        text_density=len(text_content.split()) if text_content else 0,
        color_variety=len({color.strip().upper() for color in colors if color and color.strip()}),
        hierarchy_depth=hierarchy_depth(elements),
    )


def _area(bbox: BoundingBox) -> float:
    return max(bbox.width, 0.0) * max(bbox.height, 0.0)


def _strictly_contains(outer: BoundingBox, inner: BoundingBox) -> bool:
    if _area(outer) <= _area(inner):
        return False
    return (
        outer.x <= inner.x
        and outer.y <= inner.y
        and outer.x + outer.width >= inner.x + inner.width
        and outer.y + outer.height >= inner.y + inner.height
    )
