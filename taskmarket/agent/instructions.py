"""
Prompts for the task agent: task prompt, strict tool-order instructions,
task-type classification.
"""

import logging
from typing import Any

from taskmarket.agent.llm import ask, chat
from taskmarket.core.config import OPENAI_API_KEY

logger = logging.getLogger(__name__)

CLASSIFY_MAX_CHARS = 2000
DATA_EXTRACTION_KEYWORDS = ("extract", "json", "fields", "table", "columns", "key-value")

_INSTRUCTIONS_SYSTEM = "You write precise system instructions for an agent that must call tools in a strict order."


def short_label(text: str, max_len: int = 60) -> str:
    t = (text or "").strip()
    if len(t) <= max_len:
        return t
    return t[:max_len] + "…"


def task_label(task: dict[str, Any]) -> str:
    full = task.get("title") or task.get("description") or task.get("input_text") or f"Task {task.get('id')}"
    return short_label(full)


def research_query(task: dict[str, Any]) -> str:
    """What the research stages search for: the most specific text the task has."""
    for key in ("title", "description", "input_text", "source_url"):
        value = (task.get(key) or "").strip()
        if value:
            return value[:500]
    return f"{task.get('type', 'SUMMARIZATION').lower()} task"


def build_prompt(task: dict[str, Any], attachment_text: str = "") -> str:
    lines = [
        "You are AgenX, an autonomous AI agent that completes micro-tasks.",
        "Follow output format rules:",
        "- SUMMARIZATION: 3–5 sentence summary.",
        "- CAPTIONS: 3–5 caption options, one per line.",
        "- DATA_EXTRACTION: concise JSON with key fields.",
        "Be concise. If a URL is provided you may summarize based on its content if available.",
        "",
        f"TaskType: {task.get('type')}",
    ]
    if task.get("title"):
        lines.append(f"Title: {task['title']}")
    if task.get("description"):
        lines.append(f"Description: {task['description']}")
    if task.get("source_url"):
        lines.append(f"SourceURL: {task['source_url']}")
    if task.get("input_text"):
        lines.append(f"InputText: {task['input_text']}")
    if attachment_text:
        lines.append(f"Attachment:\n{attachment_text}")
    return "\n".join(lines)


def _type_note(task_type: str | None) -> str:
    if task_type == "DATA_EXTRACTION":
        return "Task type: DATA_EXTRACTION. Prefer structured bullets and key fields."
    if task_type == "CAPTIONS":
        return "Task type: CAPTIONS. Produce short, human-friendly captions."
    return "Task type: SUMMARIZATION. Produce concise bullets."


def build_dynamic_instructions(task: dict[str, Any], attachment_text: str = "") -> str:
    """Deterministic strict tool-order policy; used when the model cannot write one."""
    order: list[str] = []
    if task.get("source_url"):
        order.append("- If a sourceUrl exists, first call fetch_url_text_url({ url }) to ground on-page text.")
    order.append("- Then call research_perplexity({ query }) for concise bullets.")
    order.append("- Then call research_tavily({ query }) to corroborate and get links.")
    order.append("- Optionally call x402_demo_call() once to demonstrate paid HTTP.")
    order.append("- Finally, synthesize bullets + a 1–2 line summary.")
    return "\n".join([
        "You are AgenX. Use tools in this strict order and keep answers concise.",
        _type_note(task.get("type")),
        "Policy (strict tool order):",
        "\n".join(order),
        "",
        build_prompt(task, attachment_text),
    ])


def _numbered_steps(has_url: bool) -> str:
    steps = []
    if has_url:
        steps.append("fetch_url_text_url({ url })")
    steps += [
        "research_perplexity",
        "research_tavily",
        "optional x402_demo_call",
        "synthesize final answer (bullets + 1–2 lines)",
    ]
    return " ".join(f"{i}) {s}" for i, s in enumerate(steps, 1))


def generate_instructions(task: dict[str, Any], attachment_text: str = "") -> str:
    """
    Ask the model to write agent instructions that enforce the tool order.
    Falls back to build_dynamic_instructions on any failure.
    """
    try:
        if not OPENAI_API_KEY:
            raise RuntimeError("OPENAI_API_KEY missing")
        user = "\n".join([
            "Write concise instructions for AgenX based on this task. Enforce this strict tool order:",
            _numbered_steps(bool(task.get("source_url"))),
            "Adapt tone to task.type (SUMMARIZATION, DATA_EXTRACTION, CAPTIONS). Keep under 12 lines. No extra commentary.",
            "",
            build_prompt(task, attachment_text),
        ])
        text = chat([
            {"role": "system", "content": _INSTRUCTIONS_SYSTEM},
            {"role": "user", "content": user},
        ])
        if text:
            return text
        raise RuntimeError("no instructions")
    except Exception as e:
        logger.error("[instructions:generate_instructions] fallback: %s", e)
        return build_dynamic_instructions(task, attachment_text)


def classify_task_type(prompt: str) -> str:
    """SUMMARIZATION or DATA_EXTRACTION: model label when available, keyword match otherwise."""
    text = (prompt or "")[:CLASSIFY_MAX_CHARS]
    if OPENAI_API_KEY and text:
        msg = "\n".join([
            "Classify the following task into one of these labels strictly: SUMMARIZATION or DATA_EXTRACTION.",
            "Return only the label. No extra words.",
            "---",
            text,
        ])
        try:
            out = ask(msg, temperature=0).strip().upper()
            logger.info("[instructions:classify_task_type] llm_label=%r", out)
            return "DATA_EXTRACTION" if out == "DATA_EXTRACTION" else "SUMMARIZATION"
        except Exception as e:
            logger.warning("[instructions:classify_task_type] llm failed, using keywords: %s", e)
    lowered = text.lower()
    return "DATA_EXTRACTION" if any(k in lowered for k in DATA_EXTRACTION_KEYWORDS) else "SUMMARIZATION"
