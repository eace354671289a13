"""
Task fulfillment: LangGraph pipeline and autonomous tool-calling agent.

Pipeline: fetch_url_text (only with a source URL) → research_perplexity →
research_tavily → x402_demo → synthesize. Each stage is timed, logged and
non-fatal; a failing stage leaves its part empty and the next stage runs.
Agent: OpenAI tool-calling loop over the same tools (see agent/tools.py).
"""

import json
import logging
import time
from typing import Any, Literal, TypedDict

from langgraph.graph import END, StateGraph

from taskmarket.agent.llm import ask, chat_with_tools
from taskmarket.agent.tools import AGENT_TOOLS, TaskToolkit
from taskmarket.core.config import MAX_AGENTIC_ROUNDS
from taskmarket.core.errors import PaymentError
from taskmarket.payments.x402 import get_paid_client

logger = logging.getLogger(__name__)

AGENT_KICKOFF = "Proceed with the task as instructed."


class PipelineState(TypedDict):
    task_id: str
    instructions: str
    source_url: str
    research_query: str
    parts: dict  # url_text / perplexity / tavily
    final: str


def _ms_since(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def open_paid_client() -> Any:
    """x402 paid client, or None when paid HTTP is not configured."""
    try:
        return get_paid_client()
    except PaymentError as e:
        logger.warning("[graph] paid HTTP unavailable: %s", e.message)
    except Exception as e:
        logger.warning("[graph] paid HTTP setup failed: %s", e)
    return None


def synthesize_final(instructions: str, context: dict[str, str]) -> str:
    """Final answer from the gathered context. Empty string without a key or on failure."""
    prompt = "\n".join([
        instructions,
        "",
        "Context:",
        f"URL Text:\n{context['url_text']}" if context.get("url_text") else "(no url text)",
        f"Perplexity:\n{context['perplexity']}" if context.get("perplexity") else "(no perplexity)",
        f"Tavily:\n{context['tavily']}" if context.get("tavily") else "(no tavily)",
        "",
        "Write a concise final answer with bullets and 1–2 line summary.",
    ])
    try:
        return ask(prompt)
    except Exception as e:
        logger.error("[graph:synthesize_final] failed: %s", e)
        return ""


def build_pipeline(toolkit: TaskToolkit):
    """
    Build and compile the fulfillment graph for one task.
    (fetch_url_text if URL) → research_perplexity → research_tavily → x402_demo → synthesize → END.
    """

    def _fetch_url_text(state: PipelineState) -> dict:
        start = time.monotonic()
        parts = dict(state.get("parts") or {})
        try:
            result = toolkit.fetch_url(state["source_url"])
            parts["url_text"] = result.get("text") or ""
            logger.info("[graph:fetch_url_text] ok ms=%d len=%d", _ms_since(start), len(parts["url_text"]))
        except Exception as e:
            logger.error("[graph:fetch_url_text] error: %s", e)
        return {"parts": parts}

    def _research_perplexity(state: PipelineState) -> dict:
        start = time.monotonic()
        parts = dict(state.get("parts") or {})
        try:
            result = toolkit.perplexity(state["research_query"])
            parts["perplexity"] = result.get("text") or ""
            logger.info("[graph:research_perplexity] ok ms=%d len=%d", _ms_since(start), len(parts["perplexity"]))
        except Exception as e:
            logger.error("[graph:research_perplexity] error: %s", e)
        return {"parts": parts}

    def _research_tavily(state: PipelineState) -> dict:
        start = time.monotonic()
        parts = dict(state.get("parts") or {})
        try:
            result = toolkit.tavily(state["research_query"])
            parts["tavily"] = result.get("text") or ""
            logger.info("[graph:research_tavily] ok ms=%d len=%d", _ms_since(start), len(parts["tavily"]))
        except Exception as e:
            logger.error("[graph:research_tavily] error: %s", e)
        return {"parts": parts}

    def _x402_demo(state: PipelineState) -> dict:
        try:
            toolkit.x402_demo()
        except Exception as e:
            logger.warning("[graph:x402_demo] error: %s", e)
        return {}

    def _synthesize(state: PipelineState) -> dict:
        start = time.monotonic()
        final = synthesize_final(state.get("instructions") or "", state.get("parts") or {})
        logger.info("[graph:synthesize] done ms=%d final_len=%d", _ms_since(start), len(final))
        return {"final": final}

    def _route_entry(state: PipelineState) -> Literal["fetch_url_text", "research_perplexity"]:
        return "fetch_url_text" if state.get("source_url") else "research_perplexity"

    graph = StateGraph(PipelineState)
    graph.add_node("fetch_url_text", _fetch_url_text)
    graph.add_node("research_perplexity", _research_perplexity)
    graph.add_node("research_tavily", _research_tavily)
    graph.add_node("x402_demo", _x402_demo)
    graph.add_node("synthesize", _synthesize)

    graph.set_conditional_entry_point(_route_entry)
    graph.add_edge("fetch_url_text", "research_perplexity")
    graph.add_edge("research_perplexity", "research_tavily")
    graph.add_edge("research_tavily", "x402_demo")
    graph.add_edge("x402_demo", "synthesize")
    graph.add_edge("synthesize", END)
    return graph.compile()


def run_task_pipeline(
    task_id: str,
    instructions: str,
    source_url: str | None,
    research_query: str,
    paid_client: Any = None,
) -> dict[str, Any]:
    """
    Run the deterministic fulfillment pipeline. Returns {"final": str, "parts": {...}}.
    parts holds url_text / perplexity / tavily for the stages that ran.
    """
    logger.info("[run_task_pipeline] START task_id=%s has_url=%s", task_id, bool(source_url))
    start = time.monotonic()
    owns_client = paid_client is None
    client = open_paid_client() if owns_client else paid_client
    try:
        initial: PipelineState = {
            "task_id": task_id,
            "instructions": instructions,
            "source_url": (source_url or "").strip(),
            "research_query": research_query,
            "parts": {},
            "final": "",
        }
        final_state = build_pipeline(TaskToolkit(task_id, client)).invoke(initial)
    finally:
        if owns_client and client is not None:
            client.close()
    final = (final_state.get("final") or "").strip()
    logger.info("[run_task_pipeline] END task_id=%s total_ms=%d final_len=%d", task_id, _ms_since(start), len(final))
    return {"final": final, "parts": final_state.get("parts") or {}}


def run_task_agent(task_id: str, instructions: str, paid_client: Any = None) -> dict[str, Any]:
    """
    Run the autonomous agent: the model decides which tools to call, in the
    order the instructions prescribe. Returns {"final": str, "tools_used": [...]}.
    """
    logger.info("[run_task_agent] START task_id=%s", task_id)
    owns_client = paid_client is None
    client = open_paid_client() if owns_client else paid_client
    toolkit = TaskToolkit(task_id, client)
    messages: list[dict[str, Any]] = [
        {"role": "system", "content": instructions},
        {"role": "user", "content": AGENT_KICKOFF},
    ]
    tools_used: list[str] = []
    final = ""
    try:
        for _ in range(MAX_AGENTIC_ROUNDS):
            content, tool_calls = chat_with_tools(messages, AGENT_TOOLS)
            if not tool_calls:
                final = (content or "").strip()
                break
            messages.append({
                "role": "assistant",
                "content": content or "",
                "tool_calls": [
                    {"id": tc["id"], "type": "function", "function": {"name": tc["name"], "arguments": json.dumps(tc.get("arguments") or {})}}
                    for tc in tool_calls
                ],
            })
            for tc in tool_calls:
                result = toolkit.execute(tc.get("name", ""), tc.get("arguments") or {})
                tools_used.append(tc.get("name", ""))
                messages.append({"role": "tool", "tool_call_id": tc.get("id", ""), "content": result})
        else:
            logger.warning("[run_task_agent] round limit reached task_id=%s", task_id)
    finally:
        if owns_client and client is not None:
            client.close()
    logger.info("[run_task_agent] END task_id=%s tools_used=%s final_len=%d", task_id, tools_used, len(final))
    return {"final": final, "tools_used": tools_used}


def run_x402_demo_once(task_id: str, paid_client: Any = None) -> dict[str, Any]:
    """One recorded x402 demo call. Never raises."""
    owns_client = paid_client is None
    client = open_paid_client() if owns_client else paid_client
    try:
        result = TaskToolkit(task_id, client).x402_demo()
    except Exception as e:
        logger.warning("[run_x402_demo_once] failed task_id=%s: %s", task_id, e)
        return {"ok": False}
    finally:
        if owns_client and client is not None:
            client.close()
    return {"ok": bool(result.get("ok"))}
