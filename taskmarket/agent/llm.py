"""
Agent LLM: OpenAI chat completions, plain and with tool calling.
"""

import json
import logging
from typing import Any

from openai import OpenAI

from taskmarket.core.config import (
    AGENT_MAX_TOKENS,
    AGENT_MODEL,
    LLM_API_TIMEOUT,
    LLM_TEMPERATURE,
    OPENAI_API_KEY,
)

logger = logging.getLogger(__name__)


def _client() -> OpenAI:
    return OpenAI(api_key=OPENAI_API_KEY, timeout=LLM_API_TIMEOUT)


def chat(
    messages: list[dict[str, Any]],
    model: str = AGENT_MODEL,
    temperature: float = LLM_TEMPERATURE,
) -> str:
    """
    Call OpenAI chat completions. Returns generated text ("" when OPENAI_API_KEY
    is not set or the model answered with nothing). API errors propagate.
    """
    if not OPENAI_API_KEY:
        logger.warning("[llm:chat] no OPENAI_API_KEY")
        return ""
    prompt_len = sum(len(str(m.get("content") or "")) for m in messages)
    logger.info("[llm:chat] IN  model=%s messages=%d prompt_len=%d", model, len(messages), prompt_len)
    response = _client().chat.completions.create(
        model=model,
        messages=messages,
        temperature=temperature,
    )
    msg = response.choices[0].message if response.choices else None
    if not msg or not getattr(msg, "content", None):
        return ""
    out = (msg.content or "").strip()
    logger.info("[llm:chat] OUT response_len=%d", len(out))
    return out


def ask(prompt: str, model: str = AGENT_MODEL, temperature: float = LLM_TEMPERATURE) -> str:
    """Single user-message completion."""
    return chat([{"role": "user", "content": prompt}], model=model, temperature=temperature)


def chat_with_tools(
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]],
    model: str = AGENT_MODEL,
    max_tokens: int = AGENT_MAX_TOKENS,
) -> tuple[str | None, list[dict[str, Any]] | None]:
    """
    Call OpenAI chat with tools. Used by the autonomous task agent.
    Returns (content, tool_calls). If tool_calls is non-empty, caller should execute
    them and call again with tool results; if content is set and no tool_calls, that's the final answer.
    Returns (None, None) without OPENAI_API_KEY.
    """
    if not OPENAI_API_KEY:
        logger.warning("[llm] chat_with_tools requires OPENAI_API_KEY")
        return None, None
    response = _client().chat.completions.create(
        model=model,
        messages=messages,
        tools=tools,
        max_tokens=max_tokens,
        temperature=LLM_TEMPERATURE,
    )
    msg = response.choices[0].message if response.choices else None
    if not msg:
        return None, None
    content = (getattr(msg, "content", None) or "").strip() or None
    raw_tool_calls = getattr(msg, "tool_calls", None) or []
    tool_calls = []
    for tc in raw_tool_calls:
        fid = getattr(tc, "id", None) or ""
        fn = getattr(tc, "function", None)
        if not fn:
            continue
        fname = getattr(fn, "name", None) or ""
        fargs = getattr(fn, "arguments", None) or "{}"
        try:
            args = json.loads(fargs) if isinstance(fargs, str) else fargs
        except json.JSONDecodeError:
            args = {}
        tool_calls.append({"id": fid, "name": fname, "arguments": args})
    if tool_calls:
        logger.info("[llm:chat_with_tools] OUT tool_calls=%s", [t["name"] for t in tool_calls])
    if content:
        logger.info("[llm:chat_with_tools] OUT content_len=%d", len(content))
    return content, tool_calls if tool_calls else None
