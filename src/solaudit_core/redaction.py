from __future__ import annotations

import re

# Tool output and deploy scripts routinely echo RPC keys, mnemonics and raw
# private keys; hide them while keeping the surrounding text readable.
# Bare 32-byte hex values are storage slots, hashes and role ids, not secrets.
_KEYED_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"(?i)(api[_-]?key|token|secret|password|private[_-]?key|mnemonic|\bpk)\s*[:=]\s*"
        r"(\"[^\"]*\"|'[^']*'|[^\s,;]+)"
    ),
    re.compile(r"(?i)\b(bearer)\s+([a-z0-9\-\._~\+\/]+=*)"),
]

_RPC_KEY_PATTERN = re.compile(
    r"(?i)(https?://[a-z0-9.-]*(?:infura\.io|alchemy\.com|alchemyapi\.io)/v\d+/)([a-z0-9_-]{16,})"
)


def redact(text: str) -> str:
    """Redact likely secrets from a string (best-effort, non-destructive)."""
    redacted = text
    for pat in _KEYED_PATTERNS:
        redacted = pat.sub(lambda m: f"{m.group(1)} [REDACTED]", redacted)
    return _RPC_KEY_PATTERN.sub(lambda m: f"{m.group(1)}[REDACTED]", redacted)
