"""
Text processing for agent inputs: attachment cleaning and HTML → readable text.

Noisy input (markup, duplicate lines, mixed unicode) wastes the model's context
and degrades answers, so everything the agent reads passes through here.
"""

import re
import unicodedata

_SCRIPT_RE = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """
    Normalize and clean raw document text.

    NFKC-normalizes, strips each line, drops consecutive duplicate lines and
    collapses runs of blank lines to one.
    """
    if not text or not text.strip():
        return ""
    text = unicodedata.normalize("NFKC", text)
    lines = [line.strip() for line in text.splitlines()]
    deduped: list[str] = []
    for line in lines:
        if deduped and deduped[-1] == line:
            continue
        deduped.append(line)
    result: list[str] = []
    for line in deduped:
        if line == "":
            if result and result[-1] != "":
                result.append("")
        else:
            result.append(line)
    return "\n".join(result).strip()


def html_to_text(html: str, max_chars: int | None = None) -> str:
    """
    Strip <script>/<style> blocks and all tags, collapse whitespace to single
    spaces, and optionally cap the result at max_chars.
    """
    if not html:
        return ""
    text = _SCRIPT_RE.sub(" ", html)
    text = _STYLE_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    text = _WS_RE.sub(" ", text).strip()
    if max_chars is not None:
        text = text[:max_chars]
    return text
