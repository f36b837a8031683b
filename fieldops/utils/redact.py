"""Secret redaction utility: strip tokens/PII from logs."""

from __future__ import annotations

import re

_PATTERNS = [
    (re.compile(r"AIza[0-9A-Za-z_\-]{35}"), "[GOOGLE_API_KEY]"),
    (re.compile(r"ya29\.[0-9A-Za-z_\-\.]+"), "[GOOGLE_ACCESS_TOKEN]"),
    (re.compile(r"sk-[A-Za-z0-9_\-]{20,}"), "[LLM_API_KEY]"),
    (re.compile(r"Bearer\s+[A-Za-z0-9_\-\.]+"), "Bearer [REDACTED]"),
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "[EMAIL]"),
]


def redact(text: str) -> str:
    for pattern, replacement in _PATTERNS:
        text = pattern.sub(replacement, text)
    return text
