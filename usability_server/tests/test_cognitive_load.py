from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from usability_server.cognitive_load import (  # noqa: E402
    DEFAULT_RECOMMENDATION,
    LEVEL_HIGH,
    LEVEL_LOW,
    LEVEL_MEDIUM,
    CognitiveLoadMetrics,
    calculate_cognitive_load,
    cognitive_load_emoji,
    hierarchy_depth,
    is_interactive,
    metrics_from_elements,
)
from usability_server.gaze_path import BoundingBox, UIElement  # noqa: E402


def _element(name: str, x: float, y: float, width: float, height: float, *, kind: str = "FRAME") -> UIElement:
    return UIElement(id=name, type=kind, name=name, bbox=BoundingBox(x, y, width, height))


def test_simple_screen_has_low_load_and_default_recommendation():
    result = calculate_cognitive_load(CognitiveLoadMetrics(element_count=8, interactive_element_count=3))

    assert (result.score, result.level) == (1, LEVEL_LOW)
    assert result.recommendations == [DEFAULT_RECOMMENDATION]


def test_each_metric_adds_one_above_low_and_two_above_high():
    moderate = CognitiveLoadMetrics(
        element_count=16,
        interactive_element_count=6,
        text_density=101,
        color_variety=6,
        hierarchy_depth=4,
    )
    heavy = CognitiveLoadMetrics(
        element_count=41,
        interactive_element_count=16,
        text_density=301,
        color_variety=13,
        hierarchy_depth=7,
    )

    assert calculate_cognitive_load(moderate).score == 6
    assert calculate_cognitive_load(moderate).level == LEVEL_MEDIUM
    heavy_result = calculate_cognitive_load(heavy)
    assert (heavy_result.score, heavy_result.level) == (10, LEVEL_HIGH)
    assert heavy_result.recommendations == [
        "요소 수(41개)가 많습니다. 15개 이하로 줄이는 것이 좋습니다.",
        "상호작용 요소(16개)가 많아 선택 장애를 유발할 수 있습니다.",
        "텍스트가 너무 밀집되어 있습니다. 요약하거나 단계별로 나누세요.",
        "색상 종류(13개)가 많습니다. 브랜드 팔레트를 단순화하세요.",
        "정보 깊이(7단계)가 깊습니다. 플랫한 구조를 고려하세요.",
    ]


def test_thresholds_are_exclusive():
    result = calculate_cognitive_load(CognitiveLoadMetrics(element_count=15, hierarchy_depth=6))

    assert result.score == 2


@pytest.mark.parametrize(("level", "emoji"), [(LEVEL_LOW, "🟢"), (LEVEL_MEDIUM, "🟡"), (LEVEL_HIGH, "🔴"), ("?", "")])
def test_cognitive_load_emoji(level, emoji):
    assert cognitive_load_emoji(level) == emoji


def test_interactive_elements_by_type_or_name():
    assert is_interactive(_element("Card", 0, 0, 10, 10, kind="INSTANCE"))
    assert is_interactive(_element("확인 버튼", 0, 0, 10, 10))
    assert not is_interactive(_element("Hero image", 0, 0, 10, 10))


def test_hierarchy_depth_follows_nested_bounding_boxes():
    page = _element("Page", 0, 0, 400, 800)
    card = _element("Card", 10, 10, 200, 200)
    button = _element("Button", 20, 20, 50, 20)
    footer = _element("Footer", 0, 700, 400, 100)

    assert hierarchy_depth([]) == 0
    assert hierarchy_depth([footer, card]) == 1
    assert hierarchy_depth([button, footer, card, page]) == 3


def test_metrics_from_elements_counts_words_and_distinct_colors():
    elements = [_element("Search input", 0, 0, 300, 40), _element("Banner", 0, 50, 300, 100)]

    metrics = metrics_from_elements(elements, text_content="오늘의 추천 상품", colors=["#ffffff", "#FFFFFF", "#000000", ""])

    assert metrics.to_dict() == {
        "element_count": 2,
        "interactive_element_count": 1,
        "text_density": 3,
        "color_variety": 2,
        "hierarchy_depth": 1,
    }
