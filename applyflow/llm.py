"""OpenAI-compatible chat client shared by scoring, generation and query building."""
from __future__ import annotations

import json
from typing import Any

import openai
from openai import AsyncOpenAI

from applyflow.config import Settings
from applyflow.errors import ProviderError
from applyflow.log import get_logger

log = get_logger(__name__)


def clamp_text(text: str, limit: int) -> str:
    t = (text or "").strip()
    return t[:limit] if len(t) > limit else t


def friendly_error(exc: BaseException) -> str:
    msg = str(getattr(exc, "message", "") or exc)
    status = getattr(exc, "status_code", None)
    body = getattr(exc, "body", None)
    extra = f" | {json.dumps(body, default=str)[:400]}" if body else ""
    if status:
        return f"OpenAI error {status}: {msg}{extra}"
    return f"OpenAI error: {msg}{extra}"


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Parse a JSON object, tolerating prose or code fences around it."""
    raw = (text or "").strip()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        start = raw.find("{")
        end = raw.rfind("}") + 1
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(raw[start:end])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


class LLMClient:
    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        settings.require("openai_api_key")
        client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)
        return cls(client, settings.openai_model)

    async def complete(self, system: str, user: str, *, json_mode: bool = True) -> str:
        kwargs: dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system.strip()},
                    {"role": "user", "content": user},
                ],
                **kwargs,
            )
        except openai.APIError as exc:
            raise ProviderError(friendly_error(exc), status=getattr(exc, "status_code", None)) from exc
        if not resp.choices:
            return ""
        return (resp.choices[0].message.content or "").strip()
