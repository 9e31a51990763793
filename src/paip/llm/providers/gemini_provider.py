"""Google Gemini REST provider."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict

import requests
import urllib3

from ...prompts import compose_prompt
from ..types import ErrorKind, GenerationRequest, GenerationResult, ProviderError

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"
READ_CHUNK_SIZE = 8192

_AUTH_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}
_AUTH_REASONS = {"API_KEY_INVALID", "API_KEY_EXPIRED"}


def build_payload(request: GenerationRequest) -> Dict[str, Any]:
    params = request.params
    payload: Dict[str, Any] = {
        "contents": [
            {"role": "user", "parts": [{"text": compose_prompt(request.instruction, request.body)}]}
        ],
    }
    if params.system_instruction:
        payload["system_instruction"] = {"parts": [{"text": params.system_instruction}]}

    generation: Dict[str, Any] = {}
    for key, value in (
        ("temperature", params.temperature),
        ("topP", params.top_p),
        ("topK", params.top_k),
        ("maxOutputTokens", params.max_output_tokens),
    ):
        if value is not None:
            generation[key] = value

    thinking: Dict[str, Any] = {}
    if params.thinking_budget is not None:
        thinking["thinkingBudget"] = params.thinking_budget
    if params.thinking_level:
        thinking["thinkingLevel"] = params.thinking_level
    if thinking:
        generation["thinkingConfig"] = thinking

    if generation:
        payload["generationConfig"] = generation
    return payload


def _error_details(data: Any) -> tuple[str, str, set[str]]:
    """(status, message, reasons) from a Gemini error envelope, if any."""
    if not isinstance(data, dict) or not isinstance(data.get("error"), dict):
        return "", "", set()
    error = data["error"]
    reasons = {
        str(d.get("reason"))
        for d in error.get("details") or []
        if isinstance(d, dict) and d.get("reason")
    }
    return str(error.get("status") or ""), str(error.get("message") or ""), reasons


def classify_http_error(status_code: int, data: Any) -> ProviderError:
    status, message, reasons = _error_details(data)
    detail = message or f"HTTP {status_code}"
    if status_code in (401, 403) or status in _AUTH_STATUSES or reasons & _AUTH_REASONS:
        return ProviderError(ErrorKind.AUTH, f"gemini rejected the API key: {detail}")
    if status_code == 400 and "api key" in message.lower():
        return ProviderError(ErrorKind.AUTH, f"gemini rejected the API key: {detail}")
    if status_code == 429 or status == "RESOURCE_EXHAUSTED":
        return ProviderError(ErrorKind.RATE_LIMITED, f"gemini quota or rate limit exceeded: {detail}")
    return ProviderError(ErrorKind.BACKEND, f"gemini API error {status_code}: {detail}")


def extract_text(data: Any) -> str:
    if not isinstance(data, dict):
        raise ProviderError(ErrorKind.MALFORMED, "gemini response is not a JSON object")
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = data.get("promptFeedback") or {}
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        suffix = f" (prompt blocked: {reason})" if reason else ""
        raise ProviderError(ErrorKind.MALFORMED, f"gemini response has no candidates{suffix}")

    first = candidates[0] if isinstance(candidates[0], dict) else {}
    content = first.get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    texts = [
        part["text"]
        for part in parts or []
        if isinstance(part, dict) and isinstance(part.get("text"), str) and not part.get("thought")
    ]
    if not texts:
        finish = first.get("finishReason")
        suffix = f" (finish reason: {finish})" if finish else ""
        raise ProviderError(ErrorKind.MALFORMED, f"gemini response contains no text{suffix}")
    return "".join(texts)


def _timeout_error(timeout_ms: int) -> ProviderError:
    return ProviderError(ErrorKind.TIMEOUT, f"gemini did not respond within {timeout_ms} ms")


def _read_body(res: requests.Response, deadline: float, timeout_ms: int) -> bytes:
    """Reads the streamed body, giving up once the total deadline has passed.

    `requests` timeouts bound each socket wait, not the whole call. read1
    returns whatever has arrived, so the deadline is checked between reads.
    """
    chunks = []
    try:
        while True:
            if time.monotonic() > deadline:
                raise _timeout_error(timeout_ms)
            chunk = res.raw.read1(READ_CHUNK_SIZE, decode_content=True)
            if not chunk:
                break
            chunks.append(chunk)
    except urllib3.exceptions.ReadTimeoutError as exc:
        raise _timeout_error(timeout_ms) from exc
    except (urllib3.exceptions.HTTPError, OSError) as exc:
        if time.monotonic() > deadline:
            raise _timeout_error(timeout_ms) from exc
        raise ProviderError(ErrorKind.NETWORK, f"gemini response interrupted: {exc}") from exc
    if time.monotonic() > deadline:
        raise _timeout_error(timeout_ms)
    return b"".join(chunks)


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_base: str = API_BASE) -> None:
        self._api_base = api_base.rstrip("/")

    def generate(self, request: GenerationRequest) -> GenerationResult:
        try:
            return self._generate(request)
        except ProviderError as exc:
            logger.debug("gemini request failed: %s", exc)
            return GenerationResult.from_error(exc)

    def _generate(self, request: GenerationRequest) -> GenerationResult:
        params = request.params
        model = params.model or DEFAULT_MODEL
        url = f"{self._api_base}/models/{model}:generateContent"
        headers = {"x-goog-api-key": params.api_key, "Content-Type": "application/json"}
        payload = build_payload(request)

        logger.debug("POST %s (timeout=%.1fs)", url, params.timeout_seconds)
        start = time.perf_counter()
        deadline = time.monotonic() + params.timeout_seconds
        try:
            res = requests.post(
                url, json=payload, headers=headers, timeout=params.timeout_seconds, stream=True
            )
        except requests.Timeout as exc:
            raise _timeout_error(params.timeout_ms) from exc
        except requests.ConnectionError as exc:
            raise ProviderError(ErrorKind.NETWORK, f"could not reach gemini: {exc}") from exc
        except requests.RequestException as exc:
            raise ProviderError(ErrorKind.NETWORK, f"gemini request failed: {exc}") from exc
        try:
            body = _read_body(res, deadline, params.timeout_ms)
        finally:
            res.close()
        latency_ms = int((time.perf_counter() - start) * 1000)

        try:
            data = json.loads(body)
        except ValueError:
            data = None

        if not res.ok:
            raise classify_http_error(res.status_code, data)
        if data is None:
            raise ProviderError(ErrorKind.MALFORMED, "gemini returned a body that is not JSON")

        text = extract_text(data)
        usage = data.get("usageMetadata") or {}
        return GenerationResult.success(
            text,
            provider=self.name,
            model=model,
            tokens_in=int(usage.get("promptTokenCount", 0) or 0),
            tokens_out=int(usage.get("candidatesTokenCount", 0) or 0),
            latency_ms=latency_ms,
        )
