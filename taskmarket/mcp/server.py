"""
Minimal MCP-style tool server: exposes the agent's research tools (URL text,
Perplexity, Tavily) as a standardized tool interface for external agents.
Calls are not tied to a task, so nothing is written to tool_runs.
"""

import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from taskmarket.agent.research import ask_perplexity, ask_tavily, fetch_url_text

logger = logging.getLogger(__name__)

# MCP tool schema for discovery / documentation
tools = [
    {
        "name": "fetch_url_text",
        "description": "Fetch a web page and return its readable text (capped at 6000 chars)",
        "input_schema": {"url": "string (http or https)"},
    },
    {
        "name": "research_perplexity",
        "description": "Ask Perplexity for concise bullet points with sources",
        "input_schema": {"query": "string"},
    },
    {
        "name": "research_tavily",
        "description": "Search the web with Tavily; returns an answer and top result snippets",
        "input_schema": {"query": "string"},
    },
]

mcp_router = APIRouter(tags=["mcp"])


class FetchUrlRequest(BaseModel):
    """Request body for MCP tool fetch_url_text."""
    url: str = ""


class ResearchRequest(BaseModel):
    """Request body for the research tools."""
    query: str = ""


@mcp_router.get("/tools", summary="MCP tool discovery")
def mcp_list_tools() -> dict[str, list[dict[str, Any]]]:
    return {"tools": tools}


@mcp_router.post(
    "/tools/fetch_url_text",
    summary="MCP tool: fetch_url_text",
    description="This endpoint acts as an MCP tool server, allowing external agents to read a web page through a standardized interface.",
)
def mcp_fetch_url_text(body: FetchUrlRequest) -> dict[str, Any]:
    """Returns {"text": ...}; text is null for a blank/non-http URL or a failed fetch."""
    logger.info("MCP tool called: fetch_url_text")
    url = (body.url or "").strip()
    if not url.lower().startswith(("http://", "https://")):
        return {"text": None}
    return {"text": fetch_url_text(url)}


@mcp_router.post(
    "/tools/research_perplexity",
    summary="MCP tool: research_perplexity",
    description="Ask Perplexity for concise bullet points with sources.",
)
def mcp_research_perplexity(body: ResearchRequest) -> dict[str, Any]:
    logger.info("MCP tool called: research_perplexity")
    query = (body.query or "").strip()
    if not query:
        return {"result": None}
    return {"result": ask_perplexity(query)}


@mcp_router.post(
    "/tools/research_tavily",
    summary="MCP tool: research_tavily",
    description="Search the web with Tavily (answer plus top results).",
)
def mcp_research_tavily(body: ResearchRequest) -> dict[str, Any]:
    logger.info("MCP tool called: research_tavily")
    query = (body.query or "").strip()
    if not query:
        return {"result": None}
    return {"result": ask_tavily(query)}
