from __future__ import annotations

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from usability_server.issue_priority import PRIORITY_CRITICAL, PRIORITY_MAJOR, PRIORITY_MINOR  # noqa: E402
from usability_server.journey_actions import (  # noqa: E402
    ACTION_FINISH,
    ACTION_LONG_PRESS,
    ACTION_SWIPE,
    ACTION_TAP,
    ACTION_TEXT,
)
from usability_server.step_reconciler import (  # noqa: E402
    analyze_report,
    extract_usability_score,
    reconcile_steps,
)

HOLISTIC_REPORT = """첫인상 (First Impression): "생각보다 깔끔하네요."

관찰 (Observation):
- Step 1: [1] 로고를 먼저 보고, [4] 메인 이미지로 이동한 후, [5] CTA 버튼에 주목합니다.
- Step 2: [2] 검색창이 바로 보입니다.
- Step 3: [3] 결과 목록을 훑어봅니다.

사고 (Thought):
- Step 1: 시작하기 버튼을 누르면 될 것 같다.
- Step 2: 검색어를 입력해보자.
- Step 3: 원하는 결과를 찾았다.

여정 분석 (Journey Actions):
- **Step 1 Action:** tap(5)
- **Step 2 Action:** text("검색어")
- **Step 3 Action:** FINISH

문제점 (Issues):
- 🔴 Critical: 결제 버튼이 보이지 않음
- 🟡 Major: 검색 결과 로딩이 느림
- 🟢 Minor: 아이콘 간격이 좁음

요약 (Summary): 사용성 점수 7/10. 검색 흐름은 무난합니다.
"""


@pytest.mark.parametrize("step_count", [0, 1, 2, 5, 12])
@pytest.mark.parametrize(
    "report",
    ["", HOLISTIC_REPORT, "tap(1) tap(2)", "Step 1 Action: swipe(3, up)", "관찰:\n- Step 7: [7]"],
)
def test_reconcile_steps_returns_exactly_step_count_results(report, step_count):
    steps = reconcile_steps(report, step_count)

    assert [step.step for step in steps] == list(range(1, step_count + 1))


def test_three_step_scenario_without_section_headers():
    report = '- Step 1 Action: tap(3)\n- Step 2 Action: text("검색어")\n- Step 3 Action: FINISH'

    steps = reconcile_steps(report, 3)

    assert [step.action.raw for step in steps] == ["tap(3)", 'text("검색어")', "FINISH"]
    assert (steps[0].action.kind, steps[0].action.element_index) == (ACTION_TAP, 3)
    assert (steps[1].action.kind, steps[1].action.text_input) == (ACTION_TEXT, "검색어")
    assert steps[2].action.kind == ACTION_FINISH


def test_step_list_on_a_single_line_keeps_each_action_with_its_step():
    report = "여정 분석 (Journey Actions):\nStep 1 Action: tap(3) → Step 2 Action: FINISH\n"

    steps = reconcile_steps(report, 2)

    assert [step.action.kind for step in steps] == [ACTION_TAP, ACTION_FINISH]
    assert steps[0].action.element_index == 3


def test_holistic_report_fills_every_step_field():
    steps = reconcile_steps(HOLISTIC_REPORT, 3)

    assert steps[0].action.kind == ACTION_TAP
    assert steps[0].action.element_index == 5
    assert steps[0].observation.startswith("[1] 로고를 먼저 보고")
    assert steps[0].gaze_path == (1, 4, 5)
    assert steps[0].thought == "시작하기 버튼을 누르면 될 것 같다."
    assert steps[1].action.text_input == "검색어"
    assert steps[1].gaze_path == (2,)
    assert steps[2].action.kind == ACTION_FINISH


def test_headerless_report_uses_ordinal_calls_then_finish():
    report = '먼저 tap(2)를 누르고 swipe(4, "down", "medium") 한 뒤 long_press(7)'

    steps = reconcile_steps(report, 4)

    assert [step.action.kind for step in steps] == [ACTION_TAP, ACTION_SWIPE, ACTION_LONG_PRESS, ACTION_FINISH]
    assert steps[1].action.direction == "down"
    assert all(step.observation == "" and step.thought == "" for step in steps)


def test_headerless_report_with_too_few_calls_defaults_to_finish():
    steps = reconcile_steps("tap(1) 하나뿐입니다", 3)

    assert [step.action.kind for step in steps] == [ACTION_TAP, ACTION_FINISH, ACTION_FINISH]


def test_label_argument_is_recovered_from_the_report():
    report = "여정 분석:\n- Step 1 Action: tap(상세 보기)\n\n설명: Step 1 에서는 결국 tap(8) 을 눌렀습니다."

    steps = reconcile_steps(report, 1)

    assert steps[0].action.kind == ACTION_TAP
    assert steps[0].action.element_index == 8


def test_invalid_inputs_are_the_only_fatal_conditions():
    with pytest.raises(ValueError):
        reconcile_steps(HOLISTIC_REPORT, -1)
    with pytest.raises(TypeError):
        reconcile_steps(None, 1)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        reconcile_steps(HOLISTIC_REPORT, True)  # type: ignore[arg-type]


def test_analyze_report_aggregates_issues_and_score():
    journey = analyze_report(HOLISTIC_REPORT, 3)

    assert len(journey.steps) == 3
    assert journey.usability_score == 7.0
    assert [issue.priority for issue in journey.issues] == [PRIORITY_CRITICAL, PRIORITY_MAJOR, PRIORITY_MINOR]
    assert [issue.text for issue in journey.issues_by_priority[PRIORITY_MAJOR]] == ["🟡 Major: 검색 결과 로딩이 느림"]

    payload = journey.to_dict()
    assert payload["first_impression"] == '"생각보다 깔끔하네요."'
    assert payload["summary"].startswith("사용성 점수 7/10")
    assert payload["steps"][0]["gaze_path"] == [1, 4, 5]
    assert set(payload["issues_by_priority"]) == {PRIORITY_CRITICAL, PRIORITY_MAJOR, PRIORITY_MINOR}


def test_analyze_report_falls_back_to_whole_report_for_issues_and_score():
    journey = analyze_report("전반적으로 괜찮음.\n🔴 버튼이 작음\n점수: 11", 0)

    assert [issue.text for issue in journey.issues] == ["🔴 버튼이 작음"]
    assert journey.usability_score == 10.0
    assert journey.steps == []


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("사용성 점수: 6/10", 6.0),
        ("Score (1-10): 8", 8.0),
        ("전체적으로 5점 정도", 5.0),
        ("0/10", 1.0),
        ("점수 없음", None),
        ("", None),
    ],
)
def test_extract_usability_score(text, expected):
    assert extract_usability_score(text) == expected
