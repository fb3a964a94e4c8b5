from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import re
from dataclasses import dataclass, replace
from typing import Any

import httpx

logger = logging.getLogger(__name__)

PROVIDER_ROUTES = ("gemini", "openai", "claude")
DEFAULT_PROVIDER_ROUTE = "gemini"

_ROUTE_DEFAULTS: dict[str, dict[str, Any]] = {
    "gemini": {
        "label": "Gemini",
        "base_url": "https://generativelanguage.googleapis.com/v1beta/models",
        "model": "gemini-3-flash-preview",
        "temperature": 1.0,
        "max_tokens": 8192,
    },
    "openai": {
        "label": "OpenAI",
        "base_url": "https://api.openai.com/v1",
        "model": "",
        "temperature": 0.0,
        "max_tokens": 4096,
    },
    "claude": {
        "label": "Claude",
        "base_url": "https://api.anthropic.com",
        "model": "",
        "temperature": 0.0,
        "max_tokens": 4096,
    },
}


class VisionProviderError(RuntimeError):
    pass


@dataclass(frozen=True)
class VisionModelConfig:
    route: str
    model: str
    api_key: str
    base_url: str
    temperature: float
    max_tokens: int
    timeout_seconds: float

    @classmethod
    def from_env(cls, route: str = DEFAULT_PROVIDER_ROUTE) -> "VisionModelConfig":
        route = str(route or "").strip().lower()
        if route not in _ROUTE_DEFAULTS:
            raise VisionProviderError(f"Unknown vision provider route: {route!r}")
        defaults = _ROUTE_DEFAULTS[route]
        prefix = f"VISION_{route.upper()}_"

        max_tokens = _parse_optional_int(os.getenv(f"{prefix}MAX_TOKENS"))
        temperature = _parse_optional_float(os.getenv(f"{prefix}TEMPERATURE"))
        return cls(
            route=route,
            model=os.getenv(f"{prefix}MODEL", defaults["model"]).strip(),
            api_key=os.getenv(f"{prefix}API_KEY", "").strip(),
            base_url=os.getenv(f"{prefix}BASE_URL", defaults["base_url"]).strip().rstrip("/"),
            temperature=temperature if temperature is not None else defaults["temperature"],
            max_tokens=max_tokens if max_tokens and max_tokens > 0 else defaults["max_tokens"],
            timeout_seconds=_parse_timeout_seconds(
                os.getenv("VISION_REQUEST_TIMEOUT_SECONDS"),
                fallback=90.0,
            ),
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.model)

    def with_overrides(
        self,
        *,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> "VisionModelConfig":
        updates: dict[str, Any] = {}
        if model:
            updates["model"] = model.strip()
        if api_key:
            updates["api_key"] = api_key.strip()
        if base_url:
            updates["base_url"] = base_url.strip().rstrip("/")
        if not updates:
            return self
        return replace(self, **updates)

    def availability(self) -> dict[str, Any]:
        return {
            "id": self.route,
            "label": _ROUTE_DEFAULTS[self.route]["label"],
            "configured": self.configured,
            "default_model": self.model,
            "base_url": self.base_url,
        }


@dataclass
class VisionProviderResult:
    text: str
    raw_response: Any
    model_used: str
    base_url_used: str
    request_metadata: dict[str, Any]


class _BaseVisionProvider:
    route_id: str = ""

    def __init__(self, config: VisionModelConfig) -> None:
        self.config = config

    def analyze(self, *, prompt: str, images: list[str]) -> VisionProviderResult:
        if not images:
            raise VisionProviderError(f"At least one image is required for {self.route_id} vision analysis.")
        if not self.config.api_key:
            raise VisionProviderError(
                f"{self.route_id} provider is not configured (missing VISION_{self.route_id.upper()}_API_KEY)."
            )
        if not self.config.model:
            raise VisionProviderError(f"{self.route_id} provider is not configured (missing model).")
        if not self.config.base_url.startswith("http"):
            raise VisionProviderError(f"Invalid {self.route_id} base URL.")

        encoded_images = [_normalize_image(image) for image in images]
        url, headers, request_payload = self._build_request(prompt=prompt, images=encoded_images)

        logger.info(
            "Requesting %s model %s with %s image(s)",
            self.route_id,
            self.config.model,
            len(encoded_images),
        )
        response = _post_json(
            url=url,
            headers=headers,
            request_payload=request_payload,
            timeout_seconds=self.config.timeout_seconds,
        )
        if response.status_code >= 400:
            detail = _extract_error_detail(response)
            raise VisionProviderError(f"{self.route_id} request failed ({response.status_code}): {detail}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise VisionProviderError(f"{self.route_id} response was not valid JSON: {exc}") from exc

        return VisionProviderResult(
            text=self._extract_text(payload),
            raw_response=payload,
            model_used=self.config.model,
            base_url_used=self.config.base_url,
            request_metadata={
                "provider": self.route_id,
                "endpoint": url,
                "model": self.config.model,
                "image_count": len(encoded_images),
            },
        )

    def _build_request(
        self,
        *,
        prompt: str,
        images: list[tuple[str, str]],
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        raise NotImplementedError

    def _extract_text(self, payload: Any) -> str:
        raise NotImplementedError


class GeminiVisionProvider(_BaseVisionProvider):
    route_id = "gemini"

    def _build_request(self, *, prompt, images):
        parts: list[dict[str, Any]] = [{"text": prompt}]
        for media_type, data in images:
            parts.append({"inline_data": {"mime_type": media_type, "data": data}})
        request_payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "maxOutputTokens": self.config.max_tokens,
            },
        }
        url = f"{self.config.base_url}/{self.config.model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.api_key,
        }
        return url, headers, request_payload

    def _extract_text(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise VisionProviderError("Invalid Gemini response payload.")
        if payload.get("error"):
            raise VisionProviderError(f"Gemini returned an error: {_error_message(payload['error'])}")
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            raise VisionProviderError("Gemini response does not contain candidates.")
        content = candidates[0].get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        chunks: list[str] = []
        if isinstance(parts, list):
            for item in parts:
                if isinstance(item, dict) and isinstance(item.get("text"), str) and not item.get("thought"):
                    chunks.append(item["text"])
        if not chunks:
            raise VisionProviderError("Gemini response did not include text content.")
        return "\n".join(chunks)


class OpenAIVisionProvider(_BaseVisionProvider):
    route_id = "openai"

    def _build_request(self, *, prompt, images):
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for media_type, data in images:
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{media_type};base64,{data}"},
                }
            )
        request_payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": content}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        return _build_chat_completions_url(self.config.base_url), headers, request_payload

    def _extract_text(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise VisionProviderError("Invalid OpenAI response payload.")
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise VisionProviderError("OpenAI response does not contain choices.")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise VisionProviderError("OpenAI response missing message payload.")

        content = message.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            chunks = [
                item["text"]
                for item in content
                if isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str)
            ]
            if chunks:
                return "\n".join(chunks)
        raise VisionProviderError("OpenAI response did not include text content.")


class ClaudeVisionProvider(_BaseVisionProvider):
    route_id = "claude"

    def _build_request(self, *, prompt, images):
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for media_type, data in images:
            content.append(
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": media_type, "data": data},
                }
            )
        request_payload = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [{"role": "user", "content": content}],
        }
        base_url = self.config.base_url
        endpoint = f"{base_url}/messages" if base_url.endswith("/v1") else f"{base_url}/v1/messages"
        headers = {
            "x-api-key": self.config.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        return endpoint, headers, request_payload

    def _extract_text(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise VisionProviderError("Invalid Claude response payload.")
        content = payload.get("content")
        if not isinstance(content, list):
            raise VisionProviderError("Claude response missing content array.")
        chunks = [
            item["text"]
            for item in content
            if isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str)
        ]
        if not chunks:
            raise VisionProviderError("Claude response did not include text content.")
        return "\n".join(chunks)


_PROVIDER_CLASSES: dict[str, type[_BaseVisionProvider]] = {
    "gemini": GeminiVisionProvider,
    "openai": OpenAIVisionProvider,
    "claude": ClaudeVisionProvider,
}


def build_provider(config: VisionModelConfig) -> _BaseVisionProvider:
    provider_class = _PROVIDER_CLASSES.get(config.route)
    if provider_class is None:
        raise VisionProviderError(f"Unknown vision provider route: {config.route!r}")
    return provider_class(config)


def build_default_configs() -> dict[str, VisionModelConfig]:
    return {route: VisionModelConfig.from_env(route) for route in PROVIDER_ROUTES}


def default_provider_route() -> str:
    route = os.getenv("VISION_DEFAULT_PROVIDER", DEFAULT_PROVIDER_ROUTE).strip().lower()
    return route if route in PROVIDER_ROUTES else DEFAULT_PROVIDER_ROUTE


def _post_json(
    *,
    url: str,
    headers: dict[str, str],
    request_payload: dict[str, Any],
    timeout_seconds: float,
) -> httpx.Response:
    normalized_headers = dict(headers)
    normalized_headers.setdefault("Accept", "application/json")
    normalized_headers.setdefault("User-Agent", "UsabilityTester/1.0")
    try:
        response = httpx.post(
            url,
            headers=normalized_headers,
            json=request_payload,
            timeout=timeout_seconds,
        )
    except httpx.HTTPError as exc:
        raise VisionProviderError(f"HTTP request failed: {exc}") from exc
    return response


def _normalize_image(image: str) -> tuple[str, str]:
    """Accept raw base64 or a data URL and return ``(media_type, base64_data)``."""
    if not isinstance(image, str) or not image.strip():
        raise VisionProviderError("Image payload must be a non-empty base64 string.")

    media_type = "image/png"
    data = image.strip()
    match = re.match(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(?P<data>.+)$", data, flags=re.DOTALL)
    if match:
        media_type = match.group(1).lower()
        data = match.group("data")
    data = re.sub(r"\s+", "", data)

    try:
        decoded = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise VisionProviderError("Image payload contains invalid base64 data.") from exc
    if not decoded:
        raise VisionProviderError("Image payload was empty.")
    if not match:
        media_type = _sniff_media_type(decoded)
    return media_type, data


def _sniff_media_type(data: bytes) -> str:
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"RIFF") and data[8:12] == b"WEBP":
        return "image/webp"
    if data.startswith(b"GIF8"):
        return "image/gif"
    return "image/png"


def _error_message(error: Any) -> str:
    if isinstance(error, str):
        return error
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return json.dumps(error)


def _extract_error_detail(response: Any) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        if payload.get("error"):
            message = _error_message(payload["error"])
            if message:
                return message
        detail = payload.get("detail")
        if isinstance(detail, str) and detail:
            return detail
    body = response.text.strip()
    return body[:300] if body else "Unknown provider error"


def _build_chat_completions_url(base_url: str) -> str:
    normalized = base_url.strip().rstrip("/")
    if normalized.endswith("/chat/completions"):
        return normalized
    return f"{normalized}/chat/completions"


def _parse_timeout_seconds(raw_value: str | None, *, fallback: float) -> float:
    if raw_value is None:
        return fallback
    try:
        parsed = float(raw_value)
    except ValueError:
        return fallback
    if parsed <= 0:
        return fallback
    return parsed


def _parse_optional_int(raw_value: str | None) -> int | None:
    if raw_value is None:
        return None
    try:
        parsed = int(raw_value)
    except ValueError:
        return None
    return parsed


def _parse_optional_float(raw_value: str | None) -> float | None:
    if raw_value is None:
        return None
    try:
        parsed = float(raw_value)
    except ValueError:
        return None
    return parsed
