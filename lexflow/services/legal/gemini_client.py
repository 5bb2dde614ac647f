"""
LexFlow - Gemini Client
Thin async wrapper over the Gemini `generateContent` REST endpoint.

Handles request assembly, tool (function) declarations, safety settings,
bounded retries for transient failures and response parsing. Prompting and
the tool-call loop live in the analysis client.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from lexflow.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_ONLY_HIGH"},
]

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class ModelConfigurationError(Exception):
    """The model client cannot be used as configured (e.g. no API key)."""


class ModelAPIError(Exception):
    """The model API answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, ModelAPIError) and exc.status_code in RETRYABLE_STATUS_CODES


@dataclass
class ToolCall:
    """A function call requested by the model."""
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GenerationResult:
    text: str
    total_tokens: int = 0
    tool_calls: List[ToolCall] = field(default_factory=list)
    # The model's own turn, echoed verbatim in follow-up requests
    model_parts: List[Dict[str, Any]] = field(default_factory=list)
    finish_reason: Optional[str] = None


def user_turn(text: str) -> Dict[str, Any]:
    return {"role": "user", "parts": [{"text": text}]}


def model_turn(parts: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"role": "model", "parts": list(parts)}


def function_response_turn(responses: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build the user turn answering the model's tool calls.

    Args:
        responses: [{"name": ..., "response": {...}}] in call order
    """
    return {
        "role": "user",
        "parts": [
            {"functionResponse": {"name": r["name"], "response": r["response"]}}
            for r in responses
        ],
    }


def parse_generation(payload: Dict[str, Any]) -> GenerationResult:
    """Extract text, tool calls and token usage from a generateContent response."""
    candidates = payload.get("candidates") or []
    parts: List[Dict[str, Any]] = []
    finish_reason = None
    if candidates:
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        finish_reason = candidate.get("finishReason")

    texts = []
    tool_calls = []
    for part in parts:
        if part.get("thought"):
            continue
        if "text" in part:
            texts.append(part["text"])
        call = part.get("functionCall")
        if call:
            tool_calls.append(ToolCall(name=call.get("name", ""), args=dict(call.get("args") or {})))

    usage = payload.get("usageMetadata") or {}
    return GenerationResult(
        text="".join(texts),
        total_tokens=int(usage.get("totalTokenCount") or 0),
        tool_calls=tool_calls,
        model_parts=parts,
        finish_reason=finish_reason,
    )


class GeminiClient:
    """
    Gemini REST client.

    Usage:
        client = GeminiClient(api_key="...", model="gemini-2.5-flash")
        result = await client.generate([user_turn("Hello")])
        print(result.text, result.total_tokens)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        max_attempts: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or ""
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self._transport = transport
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=10)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GeminiClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.model_timeout,
            max_attempts=settings.model_max_retries,
        )

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_request(
        self,
        contents: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 8192,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
                "candidateCount": 1,
            },
            "safetySettings": SAFETY_SETTINGS,
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if tools:
            body["tools"] = [{"functionDeclarations": tools}]
        return body

    async def generate(
        self,
        contents: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 8192,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> GenerationResult:
        """
        Run one generateContent request.

        Raises:
            ModelConfigurationError: no API key configured
            ModelAPIError: non-success response (after retries for transient codes)
            httpx.TransportError: network failure that outlived the retries
        """
        if not self.is_available:
            raise ModelConfigurationError("Gemini API key not configured (set GEMINI_API_KEY)")

        body = self.build_request(contents, system_instruction, temperature, max_tokens, tools)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                if attempt_number > 1:
                    logger.warning(f"Retrying Gemini request (attempt {attempt_number}/{self.max_attempts})")
                payload = await self._post(body)

        result = parse_generation(payload)
        logger.debug(
            f"Gemini {self.model}: {result.total_tokens} tokens, "
            f"{len(result.tool_calls)} tool calls, finish={result.finish_reason}"
        )
        return result

    async def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.endpoint,
                json=body,
                headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
            )
        if not response.is_success:
            raise ModelAPIError(
                f"Gemini API error {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )
        return response.json()
