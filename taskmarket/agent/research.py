"""
Research clients used by the fulfillment pipeline: URL fetch, Perplexity, Tavily.

Every function is best-effort: a missing key, non-2xx answer or network error
returns None (logged) instead of raising. Each accepts an optional HTTP client
(e.g. the x402 PaidClient) so calls can be routed through paid HTTP.
"""

import logging
from typing import Any

import httpx

from taskmarket.core.config import (
    PERPLEXITY_API_KEY,
    PERPLEXITY_CHAT_URL,
    PERPLEXITY_MODEL,
    RESEARCH_API_TIMEOUT,
    TAVILY_API_KEY,
    TAVILY_SEARCH_URL,
    TOOLS_HTTP_TIMEOUT,
    URL_TEXT_MAX,
)
from taskmarket.services.text_processing import html_to_text

logger = logging.getLogger(__name__)

PERPLEXITY_SYSTEM_PROMPT = "Return concise bullet points with sources if possible."
TAVILY_MAX_RESULTS = 5


def _request(client: Any, method: str, url: str, timeout: float, **kwargs: Any) -> httpx.Response:
    """Send through the given client, or a short-lived httpx.Client when None."""
    if client is not None:
        return client.request(method, url, **kwargs)
    with httpx.Client(timeout=timeout, follow_redirects=True) as c:
        return c.request(method, url, **kwargs)


def fetch_url_text(url: str, client: Any = None) -> str | None:
    """Fetch a page and return its readable text (max URL_TEXT_MAX chars), or None."""
    url = (url or "").strip()
    if not url:
        return None
    logger.info("[research:fetch_url_text] IN  url=%s", url)
    try:
        response = _request(client, "GET", url, TOOLS_HTTP_TIMEOUT)
    except Exception as e:
        logger.warning("[research:fetch_url_text] request failed: %s", e)
        return None
    if not response.is_success:
        logger.warning("[research:fetch_url_text] status=%s", response.status_code)
        return None
    text = html_to_text(response.text, max_chars=URL_TEXT_MAX)
    logger.info("[research:fetch_url_text] OUT text_len=%d", len(text))
    return text


def ask_perplexity(prompt: str, client: Any = None) -> str | None:
    """Ask Perplexity for concise, evidence-backed bullets. None without a key or on failure."""
    if not PERPLEXITY_API_KEY:
        logger.info("[research:ask_perplexity] no PERPLEXITY_API_KEY")
        return None
    payload = {
        "model": PERPLEXITY_MODEL,
        "messages": [
            {"role": "system", "content": PERPLEXITY_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "temperature": 0.1,
    }
    headers = {"Authorization": f"Bearer {PERPLEXITY_API_KEY}", "Content-Type": "application/json"}
    logger.info("[research:ask_perplexity] IN  prompt_len=%d", len(prompt or ""))
    try:
        response = _request(client, "POST", PERPLEXITY_CHAT_URL, RESEARCH_API_TIMEOUT, json=payload, headers=headers)
        if not response.is_success:
            logger.warning("[research:ask_perplexity] status=%s body=%s", response.status_code, response.text[:200])
            return None
        data = response.json()
    except Exception as e:
        logger.warning("[research:ask_perplexity] request failed: %s", e)
        return None
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    content = str((message.get("content") if isinstance(message, dict) else None) or "").strip()
    logger.info("[research:ask_perplexity] OUT content_len=%d", len(content))
    return content or None


def format_tavily(data: dict[str, Any]) -> str:
    """Answer first, then '- title (url)' for up to TAVILY_MAX_RESULTS sources."""
    answer = str(data.get("answer") or "").strip()
    results = data.get("results")
    sources = ""
    if isinstance(results, list):
        sources = "\n".join(
            f"- {r.get('title')} ({r.get('url')})" for r in results[:TAVILY_MAX_RESULTS] if isinstance(r, dict)
        )
    return "\n".join(p for p in (answer, sources) if p)


def ask_tavily(prompt: str, client: Any = None) -> str | None:
    """Search Tavily for web results and a summarized answer. None without a key or on failure."""
    if not TAVILY_API_KEY:
        logger.info("[research:ask_tavily] no TAVILY_API_KEY")
        return None
    payload = {
        "api_key": TAVILY_API_KEY,
        "query": prompt,
        "search_depth": "advanced",
        "max_results": TAVILY_MAX_RESULTS,
        "include_answer": True,
        "include_images": False,
        "include_raw_content": False,
    }
    logger.info("[research:ask_tavily] IN  query_len=%d", len(prompt or ""))
    try:
        response = _request(client, "POST", TAVILY_SEARCH_URL, RESEARCH_API_TIMEOUT, json=payload)
        if not response.is_success:
            logger.warning("[research:ask_tavily] status=%s body=%s", response.status_code, response.text[:200])
            return None
        data = response.json()
    except Exception as e:
        logger.warning("[research:ask_tavily] request failed: %s", e)
        return None
    if not isinstance(data, dict):
        logger.warning("[research:ask_tavily] unexpected body type=%s", type(data).__name__)
        return None
    out = format_tavily(data)
    logger.info("[research:ask_tavily] OUT len=%d", len(out))
    return out or None
