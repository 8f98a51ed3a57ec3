from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence
import httpx

from iknoweverything.config import Settings, get_settings
from iknoweverything.core.errors import ConfigurationError, UpstreamError
from iknoweverything.schemas.chat import ChatFile, HistoryMessage, ModelInfo

logger = logging.getLogger(__name__)

IMAGE_ONLY_PROMPT = "Please analyze this image."
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class GeminiProvider:
    id = "gemini"

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings or get_settings()
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    async def list_models(self) -> List[ModelInfo]:
        return [
            ModelInfo(id=self.settings.gemini_model, name=self.settings.gemini_model, context_length=1_000_000),
        ]

    def _current_turn_parts(self, message: str, files: Sequence[ChatFile]) -> List[Dict[str, Any]]:
        parts: List[Dict[str, Any]] = [{"text": message if message else IMAGE_ONLY_PROMPT}]
        for f in files:
            if not f.is_image:
                continue
            parts.append({"inlineData": {"mimeType": f.type, "data": f.base64_data}})
        return parts

    def build_payload(self, history: Sequence[HistoryMessage], message: str, files: Sequence[ChatFile]) -> Dict[str, Any]:
        # Gemini roles: "user" and "model"
        contents: List[Dict[str, Any]] = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
            for m in history
        ]
        contents.append({"role": "user", "parts": self._current_turn_parts(message, files)})
        return {
            "system_instruction": {"parts": [{"text": self.settings.system_instruction}]},
            "contents": contents,
            "generationConfig": {
                "maxOutputTokens": self.settings.gemini_max_output_tokens,
                "temperature": self.settings.gemini_temperature,
            },
        }

    @staticmethod
    def extract_text(obj: Dict[str, Any]) -> str:
        candidates = obj.get("candidates") or []
        if not candidates:
            feedback = obj.get("promptFeedback") or {}
            reason = feedback.get("blockReason")
            raise UpstreamError(f"Google Gemini returned no candidates{f' ({reason})' if reason else ''}")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text:
            raise UpstreamError("Google Gemini returned an empty response")
        return text

    async def generate(self, history: Sequence[HistoryMessage], message: str, files: Sequence[ChatFile]) -> str:
        api_key = self.settings.gemini_api_key
        if not api_key:
            raise ConfigurationError("Google Gemini API key not found")

        url = f"{self.settings.gemini_base_url.rstrip('/')}/models/{self.settings.gemini_model}:generateContent"
        headers = {"Content-Type": "application/json", "x-goog-api-key": api_key}
        payload = self.build_payload(history, message, files)
        logger.info("Sending request to Google Gemini with %d messages", len(payload["contents"]))

        t = self.settings.gemini_timeout_seconds
        timeout = httpx.Timeout(connect=10.0, read=t, write=30.0, pool=10.0)
        max_attempts = max(1, self.settings.gemini_max_attempts)
        backoff = self.settings.gemini_backoff_seconds
        async with httpx.AsyncClient(timeout=timeout, trust_env=True, transport=self._transport) as client:
            for attempt in range(1, max_attempts + 1):
                try:
                    resp = await client.post(url, json=payload, headers=headers)
                except httpx.TransportError as e:
                    if attempt < max_attempts:
                        logger.warning("Gemini transport error (attempt %d/%d): %s", attempt, max_attempts, e)
                        await asyncio.sleep(backoff)
                        backoff *= 2
                        continue
                    raise UpstreamError(f"Google Gemini API request failed: {e}") from e

                if resp.status_code in RETRYABLE_STATUS and attempt < max_attempts:
                    logger.warning("Gemini returned %d (attempt %d/%d), retrying", resp.status_code, attempt, max_attempts)
                    await asyncio.sleep(backoff)
                    backoff *= 2
                    continue
                if resp.is_error:
                    raise UpstreamError(f"Google Gemini API error: {resp.status_code} {resp.text}")

                try:
                    obj = resp.json()
                except ValueError as e:
                    raise UpstreamError("Google Gemini returned invalid JSON") from e
                return self.extract_text(obj)

        # Unreachable: the loop either returns or raises
        raise UpstreamError("Google Gemini API request failed")
