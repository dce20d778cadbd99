from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from openai import OpenAI, OpenAIError

from ..config import get_settings
from ..errors import NoResponseError

logger = logging.getLogger(__name__)

OPENAI_RESPONSES_URL = "https://api.openai.com/v1/responses"


def json_schema_format(name: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    """Responses API `text` parameter requesting strict structured output."""
    return {"format": {"type": "json_schema", "name": name, "strict": True, "schema": schema}}


def call_openai_responses(
    *,
    model: str,
    system_prompt: str,
    user_prompt: str,
    max_output_tokens: int,
    top_p: float | None = None,
    reasoning_effort: str | None = None,
    text_format: Optional[Dict[str, Any]] = None,
) -> str:
    """Call the OpenAI Responses API and return the combined text output.

    Any failure to obtain usable text (missing key, transport error, incomplete
    or empty output) raises `NoResponseError`.
    """
    settings = get_settings()
    if not settings.openai_api_key:
        logger.error("OpenAI API key not configured")
        raise NoResponseError("OpenAI not configured")

    response_payload: Dict[str, Any] = {
        "model": model,
        "input": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "max_output_tokens": max_output_tokens,
    }
    if top_p is not None:
        response_payload["top_p"] = top_p
    if reasoning_effort:
        response_payload["reasoning"] = {"effort": reasoning_effort}
    if text_format:
        response_payload["text"] = text_format

    client = OpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.openai_request_timeout_seconds,
        max_retries=0,
    )
    responses_client = getattr(client, "responses", None)
    if responses_client and hasattr(responses_client, "create"):
        try:
            response = responses_client.create(**response_payload)
        except OpenAIError as exc:
            logger.error("OpenAI Responses API call failed: %s", exc)
            raise NoResponseError() from exc
        return _completed_text(response, getattr(response, "status", "completed"))

    logger.warning("OpenAI client missing Responses API; falling back to HTTP call")
    try:
        resp = httpx.post(
            OPENAI_RESPONSES_URL,
            json=response_payload,
            headers={
                "Authorization": f"Bearer {settings.openai_api_key}",
                "Content-Type": "application/json",
            },
            timeout=settings.openai_request_timeout_seconds,
        )
    except httpx.TimeoutException as exc:
        logger.error("HTTP timeout calling OpenAI Responses API after %ss", settings.openai_request_timeout_seconds)
        raise NoResponseError("Timed out while waiting for the meal plan model") from exc
    except httpx.HTTPError as exc:  # pragma: no cover - network failure path
        logger.error("HTTP error calling OpenAI Responses API: %s", exc)
        raise NoResponseError() from exc

    if resp.status_code >= 400:
        logger.error("OpenAI Responses REST API returned %s: %s", resp.status_code, resp.text)
        raise NoResponseError()

    payload = resp.json()
    return _completed_text(payload, payload.get("status", "completed"))


def _completed_text(response: Any, response_status: Optional[str]) -> str:
    if response_status and response_status != "completed":
        if isinstance(response, dict):
            reason = (response.get("incomplete_details") or {}).get("reason", "unknown")
        else:
            reason = getattr(getattr(response, "incomplete_details", None), "reason", "unknown")
        logger.error("OpenAI Responses API returned %s status: %s", response_status, reason)
        raise NoResponseError()
    text = _extract_response_text(response)
    if not text:
        logger.error("OpenAI Responses API returned empty output")
        raise NoResponseError()
    return text


def _extract_response_text(response: Any) -> str:
    chunks: list[str] = []
    output = getattr(response, "output", None)
    if output is None and isinstance(response, dict):
        output = response.get("output")
    for block in output or []:
        block_content = getattr(block, "content", None)
        if block_content is None and isinstance(block, dict):
            block_content = block.get("content")
        for content in block_content or []:
            part_text = getattr(content, "text", None)
            if part_text is None and isinstance(content, dict):
                part_text = content.get("text")
            if part_text:
                chunks.append(part_text)
    return "".join(chunks).strip()
