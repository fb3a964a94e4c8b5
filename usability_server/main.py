from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .journey_analysis import (
    JourneyAnalysisError,
    JourneyAnalysisService,
    JourneyExecutionError,
)
from .journey_prompts import DEFAULT_FOCUS_AREAS, FOCUS_OPTIONS

journey_service = JourneyAnalysisService()

app = FastAPI(title="Usability Journey Service", version="0.1.0")
# Figma plugin iframes send requests from a null origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class ProviderBody(BaseModel):
    route: str | None = None
    model_override: str | None = None
    api_key_override: str | None = None
    base_url_override: str | None = None


class FrameBody(BaseModel):
    name: str | None = None
    image_base64: str | None = None
    elements: list[dict[str, Any]] = Field(default_factory=list)
    origin_x: float = 0.0
    origin_y: float = 0.0
    text_sizes: list[float] = Field(default_factory=list)
    color_pairs: list[dict[str, Any]] = Field(default_factory=list)
    text_content: str | None = None


class JourneyAnalyzeBody(BaseModel):
    frames: list[FrameBody]
    task_description: str
    persona_description: str | None = None
    focus_areas: list[str] = Field(default_factory=lambda: list(DEFAULT_FOCUS_AREAS))
    custom_instructions: str | None = None
    provider: ProviderBody | None = None


class JourneyParseBody(BaseModel):
    report: str
    frames: list[FrameBody] | None = None
    step_count: int | None = None


class FrameInspectBody(BaseModel):
    frame: FrameBody


class FrameAnalyzeBody(BaseModel):
    frame: FrameBody
    task_description: str
    persona_description: str | None = None
    last_action: str | None = None
    provider: ProviderBody | None = None


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/vision/providers")
def list_vision_providers() -> dict:
    return journey_service.list_providers()


@app.get("/api/prompts/focus-options")
def list_focus_options() -> dict:
    return {
        "options": [option.to_dict() for option in FOCUS_OPTIONS],
        "default_focus_areas": list(DEFAULT_FOCUS_AREAS),
    }


@app.post("/api/journeys/analyze")
def analyze_journey(body: JourneyAnalyzeBody) -> dict:
    try:
        return journey_service.analyze_journey(
            frames_payload=[frame.model_dump() for frame in body.frames],
            task_description=body.task_description,
            persona_description=body.persona_description,
            focus_areas=body.focus_areas,
            custom_instructions=body.custom_instructions,
            provider_payload=body.provider.model_dump() if body.provider else None,
        )
    except JourneyExecutionError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except JourneyAnalysisError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.post("/api/journeys/parse")
def parse_journey_report(body: JourneyParseBody) -> dict:
    try:
        return journey_service.parse_report(
            report=body.report,
            frames_payload=[frame.model_dump() for frame in body.frames] if body.frames else None,
            step_count=body.step_count,
        )
    except JourneyAnalysisError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.post("/api/frames/analyze")
def analyze_frame(body: FrameAnalyzeBody) -> dict:
    try:
        return journey_service.analyze_frame(
            frame_payload=body.frame.model_dump(),
            task_description=body.task_description,
            persona_description=body.persona_description,
            last_action=body.last_action,
            provider_payload=body.provider.model_dump() if body.provider else None,
        )
    except JourneyExecutionError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except JourneyAnalysisError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.post("/api/frames/inspect")
def inspect_frame(body: FrameInspectBody) -> dict:
    try:
        return journey_service.inspect_frame(frame_payload=body.frame.model_dump())
    except JourneyAnalysisError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
