from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

GAZE_REFERENCE_PATTERN = re.compile(r"\[\s*(\d+)\s*\]")

GAZE_CURVE_OFFSET = 30.0
GAZE_MIN_THICKNESS = 2.0
GAZE_MAX_THICKNESS = 4.0
GAZE_THICKNESS_DISTANCE = 320.0


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class UIElement:
    id: str
    type: str
    name: str
    bbox: BoundingBox

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "UIElement":
        bbox = payload.get("bbox") if isinstance(payload.get("bbox"), dict) else {}
        return cls(
            id=str(payload.get("id") or ""),
            type=str(payload.get("type") or ""),
            name=str(payload.get("name") or ""),
            bbox=BoundingBox(
                x=_as_float(bbox.get("x")),
                y=_as_float(bbox.get("y")),
                width=_as_float(bbox.get("width")),
                height=_as_float(bbox.get("height")),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "name": self.name, "bbox": self.bbox.to_dict()}


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class GazeSegment:
    start: Point
    end: Point
    control: Point
    thickness: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.start.to_dict(),
            "to": self.end.to_dict(),
            "control": self.control.to_dict(),
            "thickness": self.thickness,
        }


def parse_gaze_path(observation: str | None) -> tuple[int, ...]:
    """Ordered element references (``[1] ... [4]``) from an observation.

    Back-to-back repeats of the same element collapse into one entry; a later
    return to an element is kept.
    """
    if not observation:
        return ()

    path: list[int] = []
    for match in GAZE_REFERENCE_PATTERN.finditer(observation):
        value = int(match.group(1))
        if value <= 0:
            continue
        if path and path[-1] == value:
            continue
        path.append(value)
    return tuple(path)


def element_at(elements: Sequence[UIElement], index: int | None) -> UIElement | None:
    if index is None or index <= 0 or index > len(elements):
        return None
    return elements[index - 1]


def project_to_coordinates(
    indices: Iterable[int],
    elements: Sequence[UIElement],
    origin_x: float,
    origin_y: float,
) -> list[Point]:
    points: list[Point] = []
    for index in indices:
        element = element_at(elements, index)
        if element is None:
            continue
        center_x, center_y = element.bbox.center
        points.append(Point(x=center_x + (origin_x or 0), y=center_y + (origin_y or 0)))
    return points


def gaze_thickness(
    start: Point,
    end: Point,
    *,
    min_thickness: float = GAZE_MIN_THICKNESS,
    max_thickness: float = GAZE_MAX_THICKNESS,
) -> float:
    distance = math.hypot(end.x - start.x, end.y - start.y)
    ratio = min(1.0, max(0.0, distance / GAZE_THICKNESS_DISTANCE))
    return min_thickness + (max_thickness - min_thickness) * ratio


def build_gaze_segments(points: Sequence[Point]) -> list[GazeSegment]:
    segments: list[GazeSegment] = []
    for start, end in zip(points, points[1:]):
        dx = end.x - start.x
        dy = end.y - start.y
        length = math.hypot(dx, dy) or 1.0
        normal_x = -dy / length
        normal_y = dx / length
        control = Point(
            x=(start.x + end.x) / 2 + normal_x * GAZE_CURVE_OFFSET,
            y=(start.y + end.y) / 2 + normal_y * GAZE_CURVE_OFFSET,
        )
        segments.append(
            GazeSegment(start=start, end=end, control=control, thickness=gaze_thickness(start, end))
        )
    return segments


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(parsed):
        return 0.0
    return parsed
