"""Pattern-based redaction of sensitive content in chat text.

Inbound text is redacted and the turn continues. Outbound text is redacted,
and if anything flagged survives redaction the whole response is replaced
with ``SAFE_FALLBACK_MESSAGE``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence

from toyotron.log import get_logger

logger = get_logger(__name__)

SAFE_FALLBACK_MESSAGE = (
    "I apologize, but I cannot provide that information. "
    "How can I help you find the perfect Toyota vehicle?"
)


@dataclass(frozen=True)
class SensitivePattern:
    category: str
    pattern: re.Pattern[str]
    replacement: str


DEFAULT_PATTERNS: tuple[SensitivePattern, ...] = (
    SensitivePattern(
        "private_key",
        re.compile(
            r"-----BEGIN [A-Z ]*PRIVATE KEY-----[\s\S]+?-----END [A-Z ]*PRIVATE KEY-----"
        ),
        "[REDACTED_PRIVATE_KEY]",
    ),
    SensitivePattern(
        "credential",
        re.compile(r"\b(?:password|passwd|pwd|passcode)\s*[:=]\s*\S+", re.IGNORECASE),
        "[REDACTED_CREDENTIAL]",
    ),
    SensitivePattern(
        "api_key",
        re.compile(
            r"\b(?:sk-[A-Za-z0-9_\-]{16,}|nvapi-[A-Za-z0-9_\-]{16,}|AKIA[0-9A-Z]{16})\b"
            r"|\bBearer\s+[A-Za-z0-9\-._~+/]{20,}=*"
        ),
        "[REDACTED_API_KEY]",
    ),
    SensitivePattern(
        "credit_card",
        re.compile(r"\b\d{4}[ -]?\d{4}[ -]?\d{4}[ -]?\d{1,7}\b"),
        "[REDACTED_CARD]",
    ),
    SensitivePattern("ssn", re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "[REDACTED_SSN]"),
    SensitivePattern(
        "bank_account",
        re.compile(
            r"\b(?:account|acct|routing)(?:\s*(?:number|no\.?|num|#))?\s*[:#]?\s*\d{6,17}\b",
            re.IGNORECASE,
        ),
        "[REDACTED_ACCOUNT]",
    ),
    SensitivePattern(
        "email",
        re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b"),
        "[REDACTED_EMAIL]",
    ),
    SensitivePattern(
        "phone",
        re.compile(r"(?<!\d)(?:\+?1[ .\-]?)?\(?\d{3}\)?[ .\-]?\d{3}[ .\-]\d{4}(?!\d)"),
        "[REDACTED_PHONE]",
    ),
)

# Flagged but never redacted on their own: a key header without its footer
DETECT_ONLY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----"),
)


@dataclass
class SanitizationResult:
    sanitized: str
    removed: list[str] = field(default_factory=list)

    @property
    def redacted(self) -> bool:
        return bool(self.removed)


class GuardrailFilter:
    def __init__(
        self,
        patterns: Sequence[SensitivePattern] = DEFAULT_PATTERNS,
        detect_only: Sequence[re.Pattern[str]] = DETECT_ONLY_PATTERNS,
    ):
        self._patterns = tuple(patterns)
        self._detect_only = tuple(detect_only)

    def sanitize(self, text: str) -> SanitizationResult:
        """One redaction pass over every pattern, in order."""
        removed: list[str] = []
        for item in self._patterns:
            text, count = item.pattern.subn(item.replacement, text)
            removed.extend([item.category] * count)
        return SanitizationResult(sanitized=text, removed=removed)

    def contains_sensitive_data(self, text: str) -> bool:
        return any(p.pattern.search(text) for p in self._patterns) or any(
            p.search(text) for p in self._detect_only
        )

    def sanitize_input(self, text: str) -> str:
        result = self.sanitize(text)
        if result.redacted:
            logger.warning("guardrail_input_redacted", categories=sorted(set(result.removed)))
        return result.sanitized

    def sanitize_output(self, text: str) -> str:
        result = self.sanitize(text)
        if result.redacted:
            logger.warning("guardrail_output_redacted", categories=sorted(set(result.removed)))
        if self.contains_sensitive_data(result.sanitized):
            logger.error("guardrail_output_replaced")
            return SAFE_FALLBACK_MESSAGE
        return result.sanitized
