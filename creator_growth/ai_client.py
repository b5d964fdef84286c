import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
import openai
from openai import AsyncOpenAI

from .config import AIProviderConfig
from .errors import AdapterError
from .models import ChatTurn

logger = logging.getLogger(__name__)


def extract_json_payload(text: str) -> str:
    """Cut the span from the first '{' to the last '}' out of provider text.

    Models like to wrap JSON in prose or markdown fences. When there is no
    such span the text comes back untouched so validation fails loudly.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return text
    return text[start:end + 1]


class AIClient:
    """Prompt in, candidate JSON text out. Subclasses talk to one provider."""

    def __init__(self, config: AIProviderConfig):
        self.config = config

    async def generate(
        self,
        prompt: str,
        history: Sequence[ChatTurn] = (),
        system: Optional[str] = None,
    ) -> str:
        raise NotImplementedError

    async def complete_json(
        self,
        prompt: str,
        history: Sequence[ChatTurn] = (),
        system: Optional[str] = None,
    ) -> str:
        return extract_json_payload(await self.generate(prompt, history, system))


class OpenAICompatibleClient(AIClient):
    """Any chat-completions endpoint speaking the OpenAI protocol (Chutes, OpenRouter, OpenAI...)."""

    def __init__(self, config: AIProviderConfig, client: Optional[AsyncOpenAI] = None):
        super().__init__(config)
        # the SDK refuses to build without a key; an unset key surfaces as a 401 at call time
        self.client = client or AsyncOpenAI(api_key=config.api_key or "unset", base_url=config.endpoint)

    async def generate(self, prompt, history=(), system=None) -> str:
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages += [{"role": turn.role, "content": turn.content} for turn in history]
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except openai.APIError as exc:
            logger.warning("AI provider call failed: %s", exc)
            raise AdapterError(f"AI provider call failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise AdapterError("No response from AI provider")
        return content


def flatten_conversation(prompt: str, history: Sequence[ChatTurn], system: Optional[str]) -> str:
    """Render a chat as plain text for providers without a messages API."""
    if not history and not system:
        return prompt
    parts = []
    if system:
        parts.append(system)
    for turn in history:
        speaker = "User" if turn.role == "user" else "Assistant"
        parts.append(f"{speaker}: {turn.content}")
    parts.append(prompt)
    return "\n\n".join(parts)


def _generated_text(body: Any) -> Optional[str]:
    # Inference API answers with [{"generated_text": ...}], some deployments with a bare object
    if isinstance(body, list) and body:
        body = body[0]
    if isinstance(body, dict):
        text = body.get("generated_text")
        if isinstance(text, str):
            return text
    return None


class HuggingFaceInferenceClient(AIClient):
    """Hosted text-generation inference endpoint (``inputs`` / ``generated_text``)."""

    def __init__(self, config: AIProviderConfig, http: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.http = http

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        if self.http is not None:
            return await self.http.post(self.config.endpoint, json=payload, headers=headers)
        async with httpx.AsyncClient(timeout=None) as http:
            return await http.post(self.config.endpoint, json=payload, headers=headers)

    async def generate(self, prompt, history=(), system=None) -> str:
        payload = {
            "inputs": flatten_conversation(prompt, history, system),
            "parameters": {
                "max_new_tokens": self.config.max_tokens,
                "temperature": self.config.temperature,
                "return_full_text": False,
            },
        }
        try:
            response = await self._post(payload)
        except httpx.HTTPError as exc:
            logger.warning("AI provider unreachable: %s", exc)
            raise AdapterError(f"AI provider unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            raise AdapterError(f"AI provider error: {body['error']}")
        if response.is_error:
            raise AdapterError(f"AI provider returned status {response.status_code}")

        text = _generated_text(body)
        if not text or not text.strip():
            raise AdapterError("No response from AI provider")
        return text


def build_ai_client(config: AIProviderConfig) -> AIClient:
    if config.provider == "huggingface":
        return HuggingFaceInferenceClient(config)
    return OpenAICompatibleClient(config)
