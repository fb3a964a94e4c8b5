from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class FocusOption:
    id: str
    label: str
    description: str
    prompt_addition: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "label": self.label, "description": self.description}


FOCUS_OPTIONS: tuple[FocusOption, ...] = (
    FocusOption(
        id="accessibility",
        label="접근성",
        description="WCAG 기준 접근성 검사",
        prompt_addition=(
            "접근성 분석:\n"
            "- 색상 대비가 4.5:1 이상인지 확인\n"
            "- 터치 타겟 크기가 44x44px 이상인지 확인\n"
            "- 텍스트 크기가 충분히 큰지 확인\n"
            "- 스크린 리더 사용자를 위한 대체 텍스트 존재 여부"
        ),
    ),
    FocusOption(
        id="structure",
        label="정보 구조",
        description="정보 계층과 네비게이션 분석",
        prompt_addition=(
            "정보 구조 분석:\n"
            "- 정보 계층이 명확한지 확인\n"
            "- 네비게이션 패턴이 일관적인지 확인\n"
            "- 사용자가 현재 위치를 알 수 있는지 확인\n"
            "- 주요 기능에 3클릭 이내로 도달 가능한지 확인"
        ),
    ),
    FocusOption(
        id="visual",
        label="시각 디자인",
        description="시각적 일관성과 미적 요소 분석",
        prompt_addition=(
            "시각 디자인 분석:\n"
            "- 색상 사용이 일관적인지 확인\n"
            "- 타이포그래피 계층이 명확한지 확인\n"
            "- 여백과 정렬이 적절한지 확인\n"
            "- 시각적 노이즈가 없는지 확인"
        ),
    ),
    FocusOption(
        id="interaction",
        label="마이크로인터랙션",
        description="피드백과 전환 애니메이션 분석",
        prompt_addition=(
            "마이크로인터랙션 분석:\n"
            "- 버튼 탭 피드백이 즉각적인지 확인\n"
            "- 로딩 상태가 명확히 표시되는지 확인\n"
            "- 전환 애니메이션이 자연스러운지 확인\n"
            "- 사용자 입력에 대한 실시간 피드백 존재 여부"
        ),
    ),
    FocusOption(
        id="error",
        label="에러 처리",
        description="에러 메시지와 복구 전략 분석",
        prompt_addition=(
            "에러 처리 분석:\n"
            "- 에러 메시지가 사용자 친화적인지 확인\n"
            "- 에러 발생 시 해결 방법이 제시되는지 확인\n"
            "- 빈 상태(Empty State)가 적절히 처리되는지 확인\n"
            "- 실수 방지를 위한 확인 단계가 있는지 확인"
        ),
    ),
)
FOCUS_OPTIONS_BY_ID = {option.id: option for option in FOCUS_OPTIONS}
DEFAULT_FOCUS_AREAS = ("accessibility", "structure")

FRAME_PROMPT_TEMPLATE = (
    "You are an agent that is trained to complete certain tasks on a smartphone. Please respond in Korean. "
    "You will be given a screenshot of a smartphone app. The interactive UI elements on the screenshot are "
    "labeled with numeric tags starting from 1.\n\n"
    "You can call the following functions to interact with those labeled elements:\n\n"
    "1. tap(element: int)\n"
    "Taps the UI element labeled with the given number, e.g. tap(5).\n\n"
    "2. text(text_input: str)\n"
    "Inserts text into the focused input field. text_input must be wrapped with double quotation marks, "
    'e.g. text("Hello, world!"). Only callable when a keyboard is visible.\n\n'
    "3. long_press(element: int)\n"
    "Long presses the UI element labeled with the given number, e.g. long_press(5).\n\n"
    "4. swipe(element: int, direction: str, dist: str)\n"
    'Swipes the UI element, usually a scroll view or slide bar. "direction" is one of "up", "down", '
    '"left", "right" and "dist" is one of "low", "medium", "high"; both wrapped with double quotation '
    'marks, e.g. swipe(21, "up", "medium").\n\n'
    "The task you need to complete is to {task_description}{persona_clause}. "
    "Your past actions to proceed with this task are summarized as follows: {last_action}\n"
    "Given the labeled screenshot, think and call the function needed to proceed with the task. "
    "Your output should include these parts in the given format:\n"
    "Observation: <Describe what you observe in Korean, citing elements as [n] in the order you look at them>\n"
    "Thought: <What is the next step to complete the task, in Korean>\n"
    "Action: <The function call with the correct parameters. Output FINISH if the task is completed or "
    "nothing can be done. Output nothing else in this field.>\n"
    "Summary: <Summarize your past actions along with the latest action in one or two Korean sentences, "
    "without numeric tags>\n"
    "You can only take one action at a time, so directly call the function."
)


def build_focus_prompt_section(focus_areas: Iterable[str] | None) -> str:
    additions = [
        FOCUS_OPTIONS_BY_ID[focus_id].prompt_addition
        for focus_id in (focus_areas or [])
        if focus_id in FOCUS_OPTIONS_BY_ID
    ]
    if not additions:
        return ""
    return "추가 분석 관점:\n" + "\n\n".join(additions)


def build_frame_prompt(
    task_description: str,
    persona_description: str | None = None,
    *,
    last_action: str | None = None,
) -> str:
    persona_clause = f" as a person who is {persona_description.strip()}" if persona_description else ""
    return FRAME_PROMPT_TEMPLATE.format(
        task_description=task_description.strip(),
        persona_clause=persona_clause,
        last_action=(last_action or "None").strip(),
    )


def build_journey_prompt(
    task_description: str,
    frame_count: int,
    persona_description: str | None = None,
    *,
    focus_areas: Iterable[str] | None = None,
    custom_instructions: str | None = None,
) -> str:
    if frame_count < 1:
        raise ValueError("frame_count must be at least 1")

    if persona_description:
        persona_context = (
            "⚠️ 중요: 이 분석은 반드시 아래 페르소나의 관점에서 수행되어야 합니다.\n"
            f'PERSONA: "{persona_description.strip()}"\n'
            "- 이 페르소나의 기술 수준, 배경, 목표를 고려하세요\n"
            '- "이 사용자라면 어떻게 느끼고 행동할까?"를 항상 생각하세요\n'
            "- 페르소나 특성에 맞는 pain point와 개선점을 도출하세요"
        )
    else:
        persona_context = "PERSONA: 일반 사용자 (기본값)"

    lines = [
        "You are a professional UX researcher conducting persona-based usability evaluation.",
        f"You are evaluating a user journey flow consisting of {frame_count} screens.",
        "Each screen has interactive elements labeled with numeric tags (1, 2, 3...).",
        "",
        f'TASK: "{task_description.strip()}"',
        persona_context,
        "",
        "Evaluate the flow FROM THE PERSONA'S PERSPECTIVE for usability issues, consistency, and friction points.",
        "",
        "RESPONSE FORMAT (MUST BE IN KOREAN):",
        "첫인상 (First Impression): [페르소나가 첫 화면을 보고 한 첫 마디]",
        "",
        "관찰 (Observation):",
        "- Step 1: [첫 번째 화면에서 페르소나가 주목하는 요소를 시선이 가는 순서대로 [n] 형식으로 언급]",
        "- Step 2: [두 번째 화면에 대한 반응과 기대]",
        f"... ({frame_count}개 모든 단계)",
        "",
        "사고 (Thought): [페르소나 특성을 고려한 흐름 분석]",
        "",
        "여정 분석 (Journey Actions):",
        '- Step 1 Action: [tap(n) | text("...") | swipe(n, "dir", "dist") | long_press(n) | FINISH]',
        "- Step 2 Action: [상응하는 동작]",
        f"... ({frame_count}개 모든 단계)",
        "",
        "문제점 (Issues):",
        "- 🔴 Critical: [작업 완료를 막는 문제]",
        "- 🟡 Major: [상당한 불편을 주는 문제]",
        "- 🟢 Minor: [사소한 개선점]",
        "",
        "요약 (Summary): [페르소나 기준 사용성 점수(1-10)를 N/10 형식으로 쓰고 핵심 개선 제안]",
    ]

    focus_section = build_focus_prompt_section(focus_areas)
    if focus_section:
        lines.extend(["", focus_section])
    if custom_instructions and custom_instructions.strip():
        lines.extend(["", "추가 지시사항:", custom_instructions.strip()])

    lines.extend(
        [
            "",
            "주의: 모든 분석은 지정된 페르소나의 관점에서 이루어져야 합니다. "
            "한국어로 응답하되, Step n Action은 함수 형식을 유지하세요.",
        ]
    )
    return "\n".join(lines)
