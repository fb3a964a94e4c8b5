from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from .gaze_path import UIElement

# WCAG 2.1 thresholds. AA applies to body text, AAA is the enhanced level.
CONTRAST_AA = 4.5
CONTRAST_AAA = 7.0
MIN_TOUCH_TARGET = 44.0
MIN_TEXT_SIZE = 12.0
RECOMMENDED_TEXT_SIZE = 16.0

CONTRAST_PENALTY = 10
TOUCH_TARGET_PENALTY = 5
TEXT_SIZE_PENALTY = 5

_HEX_COLOR_PATTERN = re.compile(r"^#?(?P<hex>[0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class Color:
    """An sRGB color with channels in ``0..1``, the way Figma paints store them."""

    r: float
    g: float
    b: float

    @classmethod
    def from_value(cls, value: Any) -> "Color":
        if isinstance(value, str):
            match = _HEX_COLOR_PATTERN.match(value.strip())
            if not match:
                raise ValueError(f"Unreadable color {value!r}; expected #RRGGBB")
            digits = match.group("hex")
            return cls(*(int(digits[offset : offset + 2], 16) / 255 for offset in (0, 2, 4)))
        if isinstance(value, dict):
            channels = []
            for key in ("r", "g", "b"):
                channel = value.get(key)
                if isinstance(channel, bool) or not isinstance(channel, (int, float)):
                    raise ValueError(f"Color channel {key!r} must be a number")
                channels.append(min(1.0, max(0.0, float(channel))))
            return cls(*channels)
        raise ValueError("Color must be a #RRGGBB string or an {r, g, b} object")

    def to_hex(self) -> str:
        return "#" + "".join(f"{round(channel * 255):02X}" for channel in (self.r, self.g, self.b))

    def luminance(self) -> float:
        def _linear(channel: float) -> float:
            if channel <= 0.03928:
                return channel / 12.92
            return ((channel + 0.055) / 1.055) ** 2.4

        return 0.2126 * _linear(self.r) + 0.7152 * _linear(self.g) + 0.0722 * _linear(self.b)


@dataclass(frozen=True)
class ColorContrastResult:
    ratio: float
    passes_aa: bool
    passes_aaa: bool
    foreground: str
    background: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "ratio": self.ratio,
            "passes": {"AA": self.passes_aa, "AAA": self.passes_aaa},
            "foreground": self.foreground,
            "background": self.background,
        }


@dataclass(frozen=True)
class TouchTargetResult:
    width: float
    height: float
    passes: bool
    recommendation: str
    element_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "element_id": self.element_id,
            "width": self.width,
            "height": self.height,
            "passes": self.passes,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class TextSizeResult:
    size: float
    passes: bool
    recommendation: str

    def to_dict(self) -> dict[str, Any]:
        return {"size": self.size, "passes": self.passes, "recommendation": self.recommendation}


@dataclass
class AccessibilityReport:
    color_contrast: list[ColorContrastResult] = field(default_factory=list)
    touch_targets: list[TouchTargetResult] = field(default_factory=list)
    text_sizes: list[TextSizeResult] = field(default_factory=list)
    score: int = 100
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "color_contrast": [item.to_dict() for item in self.color_contrast],
            "touch_targets": [item.to_dict() for item in self.touch_targets],
            "text_sizes": [item.to_dict() for item in self.text_sizes],
            "score": self.score,
            "issues": list(self.issues),
        }


def contrast_ratio(foreground: Color, background: Color) -> float:
    """Return the WCAG contrast ratio, from 1.0 (identical) up to 21.0 (black on white)."""
    lighter, darker = sorted((foreground.luminance(), background.luminance()), reverse=True)
    return (lighter + 0.05) / (darker + 0.05)


def check_color_contrast(foreground: Color, background: Color) -> ColorContrastResult:
    ratio = contrast_ratio(foreground, background)
    return ColorContrastResult(
        ratio=round(ratio, 2),
        passes_aa=ratio >= CONTRAST_AA,
        passes_aaa=ratio >= CONTRAST_AAA,
        foreground=foreground.to_hex(),
        background=background.to_hex(),
    )


def check_touch_target(width: float, height: float, *, element_id: str | None = None) -> TouchTargetResult:
    passes = width >= MIN_TOUCH_TARGET and height >= MIN_TOUCH_TARGET
    if passes:
        recommendation = "터치 타겟 크기가 적절합니다."
    else:
        size = f"{MIN_TOUCH_TARGET:g}"
        recommendation = f"터치 타겟이 너무 작습니다. 최소 {size}x{size}px 권장"
    return TouchTargetResult(
        width=width,
        height=height,
        passes=passes,
        recommendation=recommendation,
        element_id=element_id,
    )


def check_text_size(font_size: float) -> TextSizeResult:
    if font_size >= RECOMMENDED_TEXT_SIZE:
        recommendation = "텍스트 크기가 적절합니다."
    elif font_size >= MIN_TEXT_SIZE:
        recommendation = f"권장 크기({RECOMMENDED_TEXT_SIZE:g}px)보다 작습니다."
    else:
        recommendation = f"최소 크기({MIN_TEXT_SIZE:g}px) 미만입니다. 가독성이 떨어질 수 있습니다."
    return TextSizeResult(size=font_size, passes=font_size >= MIN_TEXT_SIZE, recommendation=recommendation)


def calculate_accessibility_score(
    color_contrast: Iterable[ColorContrastResult] = (),
    touch_targets: Iterable[TouchTargetResult] = (),
    text_sizes: Iterable[TextSizeResult] = (),
) -> int:
    """Start from 100 and deduct per failed check, clamped to ``0..100``."""
    score = 100
    score -= CONTRAST_PENALTY * sum(1 for item in color_contrast if not item.passes_aa)
    score -= TOUCH_TARGET_PENALTY * sum(1 for item in touch_targets if not item.passes)
    score -= TEXT_SIZE_PENALTY * sum(1 for item in text_sizes if not item.passes)
    return max(0, min(100, score))


def analyze_accessibility(
    elements: Sequence[UIElement],
    *,
    color_pairs: Iterable[tuple[Color, Color]] = (),
    text_sizes: Iterable[float] = (),
) -> AccessibilityReport:
    """Check every labeled element as a touch target, plus any sampled colors and font sizes.

    Elements without geometry (zero width or height) are skipped. Issue lines
    use the ``[n]`` element labels the model sees.
    """
    report = AccessibilityReport()
    for label, element in enumerate(elements, start=1):
        if element.bbox.width <= 0 or element.bbox.height <= 0:
            continue
        result = check_touch_target(element.bbox.width, element.bbox.height, element_id=element.id or None)
        report.touch_targets.append(result)
        if not result.passes:
            report.issues.append(f"[{label}] {element.name or element.type}: {result.recommendation}")

    for foreground, background in color_pairs:
        result = check_color_contrast(foreground, background)
        report.color_contrast.append(result)
        if not result.passes_aa:
            report.issues.append(
                f"{result.foreground} / {result.background}: 대비 {result.ratio:g}:1 (최소 {CONTRAST_AA:g}:1)"
            )

    for font_size in text_sizes:
        result = check_text_size(float(font_size))
        report.text_sizes.append(result)
        if not result.passes:
            report.issues.append(f"{result.size:g}px: {result.recommendation}")

    report.score = calculate_accessibility_score(report.color_contrast, report.touch_targets, report.text_sizes)
    return report
