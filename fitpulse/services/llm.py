import json
import logging
import os
import time
from typing import Any, Optional, Protocol, Tuple

import httpx

logger = logging.getLogger("uvicorn.error")

LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_CONNECT_TIMEOUT_SECONDS = float(os.getenv("LLM_CONNECT_TIMEOUT_SECONDS", "10"))
LLM_WRITE_TIMEOUT_SECONDS = float(os.getenv("LLM_WRITE_TIMEOUT_SECONDS", "30"))
LLM_POOL_TIMEOUT_SECONDS = float(os.getenv("LLM_POOL_TIMEOUT_SECONDS", "60"))
LLM_RETRY_COUNT = int(os.getenv("LLM_RETRY_COUNT", "1"))
LLM_RETRY_BACKOFF_SECONDS = float(os.getenv("LLM_RETRY_BACKOFF_SECONDS", "0.75"))
LLM_MAX_TOKENS_UTILITY = int(os.getenv("LLM_MAX_TOKENS_UTILITY", "500"))
LLM_MAX_TOKENS_REASONING = int(os.getenv("LLM_MAX_TOKENS_REASONING", "2000"))

UTILITY_TASK_TYPES = {
    "utility",
    "food_analysis",
    "chat",
}


def _http_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=LLM_CONNECT_TIMEOUT_SECONDS,
        read=LLM_TIMEOUT_SECONDS,
        write=LLM_WRITE_TIMEOUT_SECONDS,
        pool=LLM_POOL_TIMEOUT_SECONDS,
    )


def _max_output_tokens(task_type: str) -> int:
    normalized = (task_type or "").strip().lower()
    if normalized in UTILITY_TASK_TYPES:
        return LLM_MAX_TOKENS_UTILITY
    return LLM_MAX_TOKENS_REASONING


class LLMRequestError(RuntimeError):
    def __init__(self, provider: str, model: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code


class LLMNotConfiguredError(RuntimeError):
    pass


def parse_llm_json(raw_text: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw_text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            parsed = json.loads(raw_text[start : end + 1])
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
    raise ValueError("Invalid JSON response from LLM")


def _resolve_model_config() -> Tuple[str, str, str, str]:
    provider = os.getenv("DEFAULT_AI_PROVIDER", "openai").strip().lower()
    model = os.getenv("DEFAULT_AI_MODEL", "").strip()
    utility_model = os.getenv("DEFAULT_UTILITY_MODEL", "").strip()
    if provider == "openai":
        key = os.getenv("OPENAI_API_KEY", "").strip()
        model = model or "gpt-4.1-mini"
    elif provider == "gemini":
        key = os.getenv("GEMINI_API_KEY", "").strip()
        model = model or "gemini-2.0-flash"
    else:
        key = ""

    # "default_key" is the placeholder some deployments ship with.
    if provider and model and key and key != "default_key":
        return provider, model, utility_model or model, key
    raise LLMNotConfiguredError("AI provider is not configured")


def select_model_for_task(model: str, utility_model: str, task_type: str) -> str:
    if (task_type or "").strip().lower() in UTILITY_TASK_TYPES:
        return utility_model
    return model


def _openai_request(
    model: str, api_key: str, prompt: str, system_instruction: str, max_output_tokens: int
) -> str:
    payload = {
        "model": model,
        "response_format": {"type": "json_object"},
        "messages": [
            {"role": "system", "content": system_instruction or "Always respond with valid JSON."},
            {"role": "user", "content": prompt},
        ],
        "max_completion_tokens": max_output_tokens,
    }
    attempts = max(1, LLM_RETRY_COUNT + 1)
    last_error = "unknown error"
    for idx in range(attempts):
        try:
            response = httpx.post(
                "https://api.openai.com/v1/chat/completions",
                headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
                json=payload,
                timeout=_http_timeout(),
            )
            response.raise_for_status()
            data = response.json()
            text = str(data["choices"][0]["message"].get("content", "") or "").strip()
            if not text:
                raise ValueError("OpenAI chat completion returned empty content")
            return text
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code if exc.response is not None else None
            detail = ""
            if exc.response is not None:
                detail = (exc.response.text or "").strip()[:220]
            # Client errors will not improve on retry.
            if status is not None and status < 500 and status != 429:
                raise LLMRequestError(
                    provider="openai",
                    model=model,
                    status_code=status,
                    message=f"OpenAI request failed (status={status}): {detail or 'no response body'}",
                ) from exc
            last_error = f"status={status}"
        except httpx.ReadTimeout:
            last_error = "read timeout"
        except (httpx.HTTPError, ValueError, KeyError, IndexError) as exc:
            last_error = str(exc)[:220]
        if idx < attempts - 1:
            logger.warning("llm_retry provider=openai model=%s attempt=%s error=%s", model, idx + 1, last_error)
            time.sleep(LLM_RETRY_BACKOFF_SECONDS * (idx + 1))
    raise LLMRequestError(provider="openai", model=model, message=f"OpenAI request failed: {last_error}")


def _gemini_request(
    model: str, api_key: str, prompt: str, system_instruction: str, max_output_tokens: int
) -> str:
    url = f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={api_key}"
    body: dict[str, Any] = {
        "generationConfig": {
            "responseMimeType": "application/json",
            "temperature": 0.3,
            "maxOutputTokens": max_output_tokens,
        },
        "contents": [{"parts": [{"text": prompt}]}],
    }
    if system_instruction:
        body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
    try:
        response = httpx.post(
            url,
            headers={"Content-Type": "application/json"},
            json=body,
            timeout=_http_timeout(),
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code if exc.response is not None else None
        detail = ""
        if exc.response is not None:
            detail = (exc.response.text or "").strip()[:220]
        raise LLMRequestError(
            provider="gemini",
            model=model,
            status_code=status,
            message=f"Gemini request failed (status={status}): {detail or 'no response body'}",
        ) from exc
    except httpx.HTTPError as exc:
        raise LLMRequestError(provider="gemini", model=model, message=f"Gemini request failed: {exc}") from exc
    data = response.json()
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LLMRequestError(provider="gemini", model=model, message="Gemini returned no candidates") from exc


class LLMClient(Protocol):
    def generate_json(
        self, prompt: str, system_instruction: str = "", task_type: str = "reasoning"
    ) -> dict[str, Any]:
        ...


class RealLLMClient:
    def generate_json(
        self, prompt: str, system_instruction: str = "", task_type: str = "reasoning"
    ) -> dict[str, Any]:
        provider, model, utility_model, api_key = _resolve_model_config()
        chosen = select_model_for_task(model, utility_model, task_type)
        max_output_tokens = _max_output_tokens(task_type)
        if provider == "openai":
            raw = _openai_request(chosen, api_key, prompt, system_instruction, max_output_tokens)
        elif provider == "gemini":
            raw = _gemini_request(chosen, api_key, prompt, system_instruction, max_output_tokens)
        else:
            raise LLMNotConfiguredError("Unsupported AI provider")
        return parse_llm_json(raw)


def get_llm_client() -> LLMClient:
    return RealLLMClient()
