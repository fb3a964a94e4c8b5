from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .accessibility import Color, analyze_accessibility
from .cognitive_load import calculate_cognitive_load, metrics_from_elements
from .frame_response import parse_frame_response
from .gaze_path import (
    UIElement,
    build_gaze_segments,
    element_at,
    project_to_coordinates,
)
from .journey_actions import ActionRecord
from .journey_prompts import FOCUS_OPTIONS_BY_ID, build_frame_prompt, build_journey_prompt
from .step_reconciler import StepResult, analyze_report
from .vision_providers import (
    PROVIDER_ROUTES,
    VisionModelConfig,
    VisionProviderError,
    build_default_configs,
    build_provider,
    default_provider_route,
)

logger = logging.getLogger(__name__)

MAX_FRAMES = 20


class JourneyAnalysisError(RuntimeError):
    pass


class JourneyExecutionError(JourneyAnalysisError):
    pass


@dataclass
class FrameInput:
    name: str
    image_base64: str | None = None
    elements: list[UIElement] = field(default_factory=list)
    origin_x: float = 0.0
    origin_y: float = 0.0
    text_sizes: list[float] = field(default_factory=list)
    color_pairs: list[tuple[Color, Color]] = field(default_factory=list)
    text_content: str = ""

    @classmethod
    def from_dict(cls, payload: dict[str, Any], *, position: int = 0) -> "FrameInput":
        if not isinstance(payload, dict):
            raise JourneyAnalysisError(f"frames[{position}] must be an object")
        raw_elements = _optional_list(payload, "elements", position)
        return cls(
            name=_clean_optional_str(payload.get("name")) or f"Frame {position + 1}",
            image_base64=_clean_optional_str(payload.get("image_base64")),
            elements=[UIElement.from_dict(item) for item in raw_elements if isinstance(item, dict)],
            origin_x=_as_number(payload.get("origin_x")),
            origin_y=_as_number(payload.get("origin_y")),
            text_sizes=[
                _as_number(item)
                for item in _optional_list(payload, "text_sizes", position)
                if _as_number(item) > 0
            ],
            color_pairs=_parse_color_pairs(_optional_list(payload, "color_pairs", position), position),
            text_content=_clean_optional_str(payload.get("text_content")) or "",
        )

    def inspect(self) -> dict[str, Any]:
        """Run the model-free accessibility and cognitive load checks on this frame."""
        colors = [color.to_hex() for pair in self.color_pairs for color in pair]
        accessibility = analyze_accessibility(
            self.elements,
            color_pairs=self.color_pairs,
            text_sizes=self.text_sizes,
        )
        load = calculate_cognitive_load(
            metrics_from_elements(self.elements, text_content=self.text_content, colors=colors)
        )
        return {"accessibility": accessibility.to_dict(), "cognitive_load": load.to_dict()}


def parse_frames(frames_payload: Sequence[Any] | None, *, require_images: bool) -> list[FrameInput]:
    if not frames_payload:
        raise JourneyAnalysisError("At least one frame is required.")
    if len(frames_payload) > MAX_FRAMES:
        raise JourneyAnalysisError(f"At most {MAX_FRAMES} frames can be analyzed at once.")

    frames = [FrameInput.from_dict(item, position=index) for index, item in enumerate(frames_payload)]
    if require_images:
        missing = [frame.name for frame in frames if not frame.image_base64]
        if missing:
            raise JourneyAnalysisError(f"Frames are missing image data: {', '.join(missing)}")
    return frames


def build_step_payload(step: StepResult, frame: FrameInput | None) -> dict[str, Any]:
    """Attach renderer geometry (gaze, action target) and frame checks to a parsed step."""
    payload = step.to_dict()
    if frame is None:
        payload.update(
            {
                "frame_name": None,
                "gaze_points": [],
                "gaze_segments": [],
                "target_element": None,
                "accessibility": None,
                "cognitive_load": None,
            }
        )
        return payload

    points = project_to_coordinates(step.gaze_path, frame.elements, frame.origin_x, frame.origin_y)
    target = _target_element(step.action, frame.elements)
    payload.update(
        {
            "frame_name": frame.name,
            "gaze_points": [point.to_dict() for point in points],
            "gaze_segments": [segment.to_dict() for segment in build_gaze_segments(points)],
            "target_element": target.to_dict() if target else None,
            **frame.inspect(),
        }
    )
    return payload


class JourneyAnalysisService:
    def __init__(
        self,
        *,
        configs: dict[str, VisionModelConfig] | None = None,
        provider_factory: Callable[[VisionModelConfig], Any] | None = None,
    ) -> None:
        self.configs = configs or build_default_configs()
        self.provider_factory = provider_factory or build_provider

    def list_providers(self) -> dict[str, Any]:
        providers_payload = [
            self.configs[route].availability() for route in PROVIDER_ROUTES if route in self.configs
        ]

        default_provider = default_provider_route()
        default_config = self.configs.get(default_provider)
        if default_config is None or not default_config.configured:
            for route in PROVIDER_ROUTES:
                config = self.configs.get(route)
                if config and config.configured:
                    default_provider = route
                    break

        return {
            "providers": providers_payload,
            "default_provider": default_provider,
        }

    def analyze_journey(
        self,
        *,
        frames_payload: Sequence[Any] | None,
        task_description: str,
        persona_description: str | None = None,
        focus_areas: list[str] | None = None,
        custom_instructions: str | None = None,
        provider_payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        task = _require_task(task_description)
        frames = parse_frames(frames_payload, require_images=True)
        unknown_focus = [item for item in focus_areas or [] if item not in FOCUS_OPTIONS_BY_ID]
        if unknown_focus:
            raise JourneyAnalysisError(f"Unknown focus areas: {', '.join(unknown_focus)}")

        config = self._resolve_config(provider_payload)
        prompt = build_journey_prompt(
            task,
            len(frames),
            _clean_optional_str(persona_description),
            focus_areas=focus_areas,
            custom_instructions=_clean_optional_str(custom_instructions),
        )

        logger.info("Analyzing journey of %s frame(s) with %s", len(frames), config.route)
        report_text = self._run_provider(
            config,
            prompt=prompt,
            images=[frame.image_base64 for frame in frames if frame.image_base64],
        )

        result = self._build_journey_result(report_text, frames)
        result["provider"] = {"route": config.route, "model": config.model}
        return result

    def analyze_frame(
        self,
        *,
        frame_payload: dict[str, Any] | None,
        task_description: str,
        persona_description: str | None = None,
        last_action: str | None = None,
        provider_payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        task = _require_task(task_description)
        frame = parse_frames([frame_payload] if frame_payload is not None else [], require_images=True)[0]
        config = self._resolve_config(provider_payload)
        prompt = build_frame_prompt(
            task,
            _clean_optional_str(persona_description),
            last_action=_clean_optional_str(last_action),
        )

        logger.info("Analyzing frame %s with %s", frame.name, config.route)
        response_text = self._run_provider(config, prompt=prompt, images=[frame.image_base64 or ""])
        parsed = parse_frame_response(response_text)

        points = project_to_coordinates(parsed.gaze_path, frame.elements, frame.origin_x, frame.origin_y)
        target = _target_element(parsed.action, frame.elements)
        payload = parsed.to_dict()
        payload.update(
            {
                "frame_name": frame.name,
                "gaze_points": [point.to_dict() for point in points],
                "gaze_segments": [segment.to_dict() for segment in build_gaze_segments(points)],
                "target_element": target.to_dict() if target else None,
                **frame.inspect(),
                "raw_response": response_text,
                "provider": {"route": config.route, "model": config.model},
            }
        )
        return payload

    def inspect_frame(self, *, frame_payload: dict[str, Any] | None) -> dict[str, Any]:
        frame = parse_frames([frame_payload] if frame_payload is not None else [], require_images=False)[0]
        logger.info("Inspecting frame %s with %s element(s)", frame.name, len(frame.elements))
        return {"frame_name": frame.name, **frame.inspect()}

    def parse_report(
        self,
        *,
        report: str,
        frames_payload: Sequence[Any] | None = None,
        step_count: int | None = None,
    ) -> dict[str, Any]:
        if not isinstance(report, str):
            raise JourneyAnalysisError("report must be a string")
        if frames_payload:
            frames = parse_frames(frames_payload, require_images=False)
            return self._build_journey_result(report, frames)
        if step_count is None:
            raise JourneyAnalysisError("Either frames or step_count is required.")
        if isinstance(step_count, bool) or not isinstance(step_count, int) or step_count < 0:
            raise JourneyAnalysisError("step_count must be a non-negative integer")
        return self._build_journey_result(report, [None] * step_count)

    def _build_journey_result(self, report_text: str, frames: Sequence[FrameInput | None]) -> dict[str, Any]:
        try:
            journey = analyze_report(report_text, len(frames))
        except (TypeError, ValueError) as exc:
            raise JourneyAnalysisError(str(exc)) from exc

        payload = journey.to_dict()
        payload["steps"] = [build_step_payload(step, frame) for step, frame in zip(journey.steps, frames)]
        payload["raw_report"] = report_text
        return payload

    def _resolve_config(self, provider_payload: dict[str, Any] | None) -> VisionModelConfig:
        provider_payload = provider_payload or {}
        route_requested = str(provider_payload.get("route") or default_provider_route()).strip().lower()
        if route_requested not in self.configs:
            raise JourneyAnalysisError(f"provider.route must be one of: {', '.join(PROVIDER_ROUTES)}")

        config = self.configs[route_requested].with_overrides(
            model=_clean_optional_str(provider_payload.get("model_override")),
            api_key=_clean_optional_str(provider_payload.get("api_key_override")),
            base_url=_clean_optional_str(provider_payload.get("base_url_override")),
        )
        if not config.configured:
            raise JourneyAnalysisError(
                f"Provider '{route_requested}' is not configured. Check environment variables."
            )
        return config

    def _run_provider(self, config: VisionModelConfig, *, prompt: str, images: list[str]) -> str:
        try:
            provider = self.provider_factory(config)
            result = provider.analyze(prompt=prompt, images=images)
        except VisionProviderError as exc:
            logger.warning("Vision provider %s failed: %s", config.route, exc)
            raise JourneyExecutionError(str(exc)) from exc

        text = result.text if isinstance(result.text, str) else ""
        if not text.strip():
            raise JourneyExecutionError(f"{config.route} returned an empty response.")
        return text


def _target_element(action: ActionRecord, elements: Sequence[UIElement]) -> UIElement | None:
    if action.is_terminal:
        return None
    return element_at(elements, action.element_index)


def _require_task(task_description: Any) -> str:
    task = _clean_optional_str(task_description)
    if task is None:
        raise JourneyAnalysisError("task_description is required.")
    return task


def _clean_optional_str(raw_value: Any) -> str | None:
    if not isinstance(raw_value, str):
        return None
    value = raw_value.strip()
    return value if value else None


def _as_number(raw_value: Any) -> float:
    if isinstance(raw_value, bool):
        return 0.0
    if isinstance(raw_value, (int, float)):
        return float(raw_value)
    return 0.0


def _optional_list(payload: dict[str, Any], key: str, position: int) -> list[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise JourneyAnalysisError(f"frames[{position}].{key} must be a list")
    return value


def _parse_color_pairs(raw_pairs: list[Any], position: int) -> list[tuple[Color, Color]]:
    pairs: list[tuple[Color, Color]] = []
    for index, item in enumerate(raw_pairs):
        if not isinstance(item, dict):
            raise JourneyAnalysisError(f"frames[{position}].color_pairs[{index}] must be an object")
        try:
            pairs.append((Color.from_value(item.get("foreground")), Color.from_value(item.get("background"))))
        except ValueError as exc:
            raise JourneyAnalysisError(f"frames[{position}].color_pairs[{index}]: {exc}") from exc
    return pairs
