"""
Security Utilities
==================

Scene descriptions come from a model's reading of user-supplied scripts, so
they are cleaned before being forwarded as generation prompts. API keys ride
in query strings on every Google call and must never reach logs or job errors.
"""

import re
import logging
from typing import List, Pattern, Tuple

logger = logging.getLogger(__name__)


# Chat-template markers and override phrases stripped from prompts
_PROMPT_INJECTION = re.compile(
    r"ignore (?:all )?previous instructions"
    r"|disregard (?:the )?above"
    r"|\[/?INST\]"
    r"|<\|im_(?:start|end)\|>"
    r"|<</?SYS>>",
    re.IGNORECASE,
)

_SECRETS: List[Tuple[Pattern, str]] = [
    (re.compile(r"Bearer\s+[A-Za-z0-9_\-.]+", re.IGNORECASE), "Bearer ***REDACTED***"),
    (re.compile(r"AIza[A-Za-z0-9_\-]{35}"), "AIza***REDACTED***"),
    (re.compile(r"([?&]key=)[^&\s\"']+", re.IGNORECASE), r"\1***REDACTED***"),
    (re.compile(r"(x-goog-api-key['\"]?\s*[:=]\s*['\"]?)[A-Za-z0-9_\-]+", re.IGNORECASE), r"\1***REDACTED***"),
    (re.compile(r"api[_-]?key['\"]?\s*[:=]\s*['\"]?[A-Za-z0-9_\-]+", re.IGNORECASE), "api_key: ***REDACTED***"),
    (re.compile(r"\b(GOOGLE_API_KEY|GEMINI_API_KEY)=\S+"), r"\1=***REDACTED***"),
]


def sanitize_prompt(prompt: str, max_length: int = 2000) -> str:
    """
    Clean a scene description before it is used as a generation prompt.

    Drops non-printable characters (newlines and tabs survive), removes
    prompt-injection markers and cuts the text to ``max_length``.
    """
    if not prompt:
        return ""

    cleaned = "".join(ch for ch in prompt if ch.isprintable() or ch in "\n\t")
    cleaned = _PROMPT_INJECTION.sub("", cleaned)

    if len(cleaned) > max_length:
        logger.warning(f"Scene prompt truncated from {len(cleaned)} to {max_length} characters")
        cleaned = cleaned[:max_length]

    return cleaned.strip()


def redact_api_key(text: str) -> str:
    """Mask API keys and bearer tokens in URLs, headers and response bodies."""
    if not text:
        return text

    for pattern, replacement in _SECRETS:
        text = pattern.sub(replacement, text)
    return text
