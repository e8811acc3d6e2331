"""Centralized OpenAI client for structured (JSON) generation.

Every LLM-backed service MUST go through `call_openai_json()`.
This ensures:
  - Model, temperature, timeout, and token limits are read from env.
  - JSON response format is enforced via response_format.
  - A caller-chosen number of retries (default 1), then return None.
  - Consistent logging across all LLM callers.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants: all read from environment with safe defaults
# ---------------------------------------------------------------------------
_OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def get_openai_key() -> str:
    """Read OPENAI_API_KEY from the environment. Raises EnvironmentError if missing."""
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        logger.warning("[OPENAI] API key missing (OPENAI_API_KEY)")
        raise EnvironmentError("OPENAI_API_KEY environment variable not set")
    return key


def get_openai_model() -> str:
    """Read OPENAI_MODEL from the environment (default: gpt-4.1)."""
    return os.getenv("OPENAI_MODEL", "gpt-4.1").strip()


def _get_temperature() -> float:
    return _env_float("OPENAI_TEMPERATURE", 0.7)


def _get_timeout() -> float:
    return _env_float("OPENAI_REQUEST_TIMEOUT", 60.0)


def _get_default_max_tokens() -> int:
    return _env_int("OPENAI_MAX_COMPLETION_TOKENS", 4000)


# ---------------------------------------------------------------------------
# JSON sanitizer: extracts valid JSON from LLM output
# ---------------------------------------------------------------------------
def sanitize_json(raw: str) -> str:
    """Extract a JSON object from raw LLM output.

    Handles:
      - Markdown fences (```json ... ```)
      - Leading/trailing whitespace and BOM
      - Prose before/after JSON
      - Trailing commas before } or ]

    Raises ValueError if no JSON object is found.
    """
    text = raw.strip().lstrip("\ufeff")

    if text.startswith("```"):
        parts = text.split("```")
        text = parts[1] if len(parts) >= 3 else text[3:]

    text = text.strip()
    if text.lower().startswith("json"):
        text = text[4:].strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ValueError("LLM did not return a JSON object")
    text = text[start : end + 1]

    return re.sub(r",\s*([}\]])", r"\1", text)


def build_payload(
    *,
    model: str,
    messages: List[Dict[str, str]],
    max_completion_tokens: int,
    temperature: float,
) -> Dict[str, Any]:
    """Build a chat completions payload with JSON-object output enforced."""
    return {
        "model": model,
        "messages": messages,
        "max_tokens": max_completion_tokens,
        "temperature": temperature,
        "response_format": {"type": "json_object"},
    }


def _parse_completion(data: Dict[str, Any]) -> Dict[str, Any]:
    """Pull the message content out of a completion and parse it as JSON.

    Raises ValueError on empty content or unparsable JSON.
    """
    usage = data.get("usage")
    if usage:
        logger.info(
            "[OPENAI] Tokens used: prompt=%s, completion=%s, total=%s",
            usage.get("prompt_tokens", "?"),
            usage.get("completion_tokens", "?"),
            usage.get("total_tokens", "?"),
        )

    try:
        raw_content = (data["choices"][0]["message"]["content"] or "").strip()
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError(f"Unexpected completion shape: {exc}") from exc
    if not raw_content:
        raise ValueError("Empty response content")

    try:
        return json.loads(sanitize_json(raw_content))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from exc


async def call_openai_json(
    *,
    messages: List[Dict[str, str]],
    max_completion_tokens: int = 0,
    temperature: Optional[float] = None,
    max_retries: int = 1,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Call OpenAI chat completions and return the parsed JSON object, or None.

    Parameters
    ----------
    messages : list[dict]
        The messages array (system + user).
    max_completion_tokens : int
        Token limit for the response. 0 = use env default.
    temperature : float, optional
        Override sampling temperature (default: from env).
    max_retries : int
        Extra attempts after the first one. 0 = exactly one call.
    api_key, model : str, optional
        Overrides for the env configuration.

    Returns
    -------
    dict or None
        Parsed JSON content, or None once every attempt failed.
    """
    if api_key is None:
        api_key = get_openai_key()
    if model is None:
        model = get_openai_model()
    if max_completion_tokens <= 0:
        max_completion_tokens = _get_default_max_tokens()
    if temperature is None:
        temperature = _get_temperature()

    timeout = _get_timeout()
    attempts = max(0, max_retries) + 1

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    payload = build_payload(
        model=model,
        messages=messages,
        max_completion_tokens=max_completion_tokens,
        temperature=temperature,
    )

    for attempt in range(1, attempts + 1):
        t0 = time.time()
        try:
            print(f"🧠 [OPENAI] Calling {model} (attempt {attempt}/{attempts})")
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(_OPENAI_API_URL, headers=headers, json=payload)
            duration = time.time() - t0
            print(f"📦 [OPENAI] HTTP {response.status_code} ({duration:.1f}s)")

            if response.status_code != 200:
                logger.warning("[OPENAI] Error response: %s", response.text[:400])
                continue

            parsed = _parse_completion(response.json())
            print("🧠 [OPENAI] Success")
            return parsed

        except ValueError as exc:
            logger.warning("[OPENAI] Unusable output (attempt %d/%d): %s", attempt, attempts, exc)
        except httpx.TimeoutException:
            logger.warning("[OPENAI] Timeout after %.1fs (attempt %d/%d)", time.time() - t0, attempt, attempts)
        except httpx.HTTPError as exc:
            logger.error("[OPENAI] Transport error: %s", exc)
            return None

    return None
