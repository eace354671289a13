"""
Agent tools: definitions and execution for the task agent.

Tools: fetch_url_text_url, fetch_url_text (no-arg guard), research_perplexity,
research_tavily, x402_demo_call. Every call is recorded as a tool_runs row for
the task; recording problems are logged and never fail the tool.
"""

import json
import logging
from typing import Any

from taskmarket.agent.research import ask_perplexity, ask_tavily, fetch_url_text
from taskmarket.core.config import X402_DEMO_URL
from taskmarket.payments.x402 import x402_demo_call
from taskmarket.services.task_store import record_tool_run

logger = logging.getLogger(__name__)

# tool_runs.tool values
DOC_PARSER = "DOC_PARSER"
PERPLEXITY = "PERPLEXITY"
TAVILY = "TAVILY"
OPENAI = "OPENAI"

# OpenAI function-calling format: list of tool definitions
AGENT_TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "fetch_url_text_url",
            "description": "Fetch a URL and extract readable text content for grounding.",
            "parameters": {
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Absolute http(s) URL to fetch"},
                },
                "required": ["url"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "fetch_url_text",
            "description": "If no URL is provided, returns ok:false. Prefer fetch_url_text_url({ url }) when a URL exists.",
            "parameters": {"type": "object", "properties": {}},
        },
    },
    {
        "type": "function",
        "function": {
            "name": "research_perplexity",
            "description": "Query Perplexity for concise, evidence-backed bullets for a topic.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Research topic or question (at least 2 characters)"},
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "research_tavily",
            "description": "Search Tavily for web results and summarized answer.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Web search query (at least 2 characters)"},
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "x402_demo_call",
            "description": "Demonstrate a real x402-paid HTTP call to a demo endpoint.",
            "parameters": {"type": "object", "properties": {}},
        },
    },
]


def _is_http_url(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


class TaskToolkit:
    """Tool runners bound to one task and one (optional) x402 paid client."""

    def __init__(self, task_id: str, paid_client: Any = None) -> None:
        self.task_id = task_id
        self.paid_client = paid_client

    def record(self, tool: str, input: dict[str, Any], output: dict[str, Any], success: bool) -> None:
        try:
            record_tool_run(self.task_id, tool, input, output, success)
        except Exception as e:
            logger.error("[tools] tool run log failed task_id=%s tool=%s: %s", self.task_id, tool, e)

    def fetch_url(self, url: str) -> dict[str, Any]:
        try:
            text = fetch_url_text(url, self.paid_client)
        except Exception as e:
            self.record(DOC_PARSER, {"url": url}, {"ok": False, "error": str(e)}, False)
            return {"ok": False, "error": str(e) or "failed"}
        self.record(DOC_PARSER, {"url": url}, {"ok": bool(text), "length": len(text or "")}, bool(text))
        return {"ok": bool(text), "text": text or ""}

    def no_url(self) -> dict[str, Any]:
        self.record(DOC_PARSER, {"url": None, "tag": "no_url"}, {"ok": False, "error": "No URL provided"}, False)
        return {"ok": False, "error": "No URL provided"}

    def _research(self, tool: str, fn, query: str) -> dict[str, Any]:
        try:
            out = fn(query, self.paid_client)
        except Exception as e:
            self.record(tool, {"query": query}, {"ok": False, "error": str(e)}, False)
            return {"ok": False, "error": str(e) or "failed"}
        self.record(tool, {"query": query}, {"ok": bool(out)}, bool(out))
        return {"ok": bool(out), "text": out or ""}

    def perplexity(self, query: str) -> dict[str, Any]:
        return self._research(PERPLEXITY, ask_perplexity, query)

    def tavily(self, query: str) -> dict[str, Any]:
        return self._research(TAVILY, ask_tavily, query)

    def x402_demo(self) -> dict[str, Any]:
        result = x402_demo_call(self.paid_client)
        output = {"ok": result.get("ok", False)}
        if "status" in result:
            output["status"] = result["status"]
        if "error" in result:
            output["error"] = result["error"]
        self.record(DOC_PARSER, {"url": X402_DEMO_URL, "tag": "x402_demo"}, output, bool(result.get("ok")))
        return result

    def execute(self, name: str, arguments: dict[str, Any]) -> str:
        """
        Execute a tool by name with the given arguments. Returns a JSON string result for the LLM.
        """
        args = arguments or {}
        logger.info("[tools] execute_tool task_id=%s name=%r arguments=%r", self.task_id, name, args)

        if name == "fetch_url_text_url":
            url = str(args.get("url") or "").strip()
            if not _is_http_url(url):
                return json.dumps({"ok": False, "error": "A valid http(s) url is required"})
            return json.dumps(self.fetch_url(url))

        if name == "fetch_url_text":
            return json.dumps(self.no_url())

        if name in ("research_perplexity", "research_tavily"):
            query = str(args.get("query") or "").strip()
            if len(query) < 2:
                return json.dumps({"ok": False, "error": "query must be at least 2 characters"})
            result = self.perplexity(query) if name == "research_perplexity" else self.tavily(query)
            return json.dumps(result)

        if name == "x402_demo_call":
            return json.dumps(self.x402_demo())

        return json.dumps({"ok": False, "error": f"Unknown tool: {name}"})
