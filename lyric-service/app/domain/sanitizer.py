# lyric-service/app/domain/sanitizer.py
"""
Input validation and prompt injection screening for questions.

Every rejection carries the same message so callers cannot probe which rule
fired. The pattern list is a deny-list: misses are accepted, false positives on
ordinary emotional phrasing are not.
"""
import re
import unicodedata
from typing import List, Pattern

from app.domain.models import MAX_QUESTION_LENGTH, GENERIC_INPUT_ERROR, ValidationResult

_WHITESPACE_RUN = re.compile(r"\s+")

# Tested against NFKC-normalized, lowercased, whitespace-collapsed text.
INJECTION_PATTERNS: List[Pattern[str]] = [
    # ignore previous/prior/above instructions
    re.compile(r"ign[o0]re\s+(all\s+)?(previous|prior|above|earlier)\s+(instructions?|prompts?)", re.IGNORECASE),
    # disregard previous/system prompt
    re.compile(r"disregard\s+(previous|prior|system|all)\s+(instructions?|prompts?|checks?)", re.IGNORECASE),
    # you are now in developer/admin mode
    re.compile(r"you\s+are\s+now\s+(in\s+)?(developer|admin|debug|god|root)\s*mode", re.IGNORECASE),
    re.compile(r"byp[a@]ss\s+(safety|security|content)\s+(checks?|filters?)", re.IGNORECASE),
    re.compile(r"reveal\s+(hidden|system|internal|your|the)\s+(system\s+)?(prompt|data|instructions?)", re.IGNORECASE),
    re.compile(r"roleplay\s+as\s+(system|admin|developer|root)", re.IGNORECASE),
    re.compile(r"output\s+your\s+(system\s+)?(prompt|instructions?)", re.IGNORECASE),
    re.compile(r"act\s+as\s+(an?\s+)?(system|admin|developer|root|god)\b", re.IGNORECASE),
    # obfuscated spellings
    re.compile(r"pr[o0]mpt\s*inj[e3]ct", re.IGNORECASE),
    re.compile(r"j[a@4]i[l1]br[e3][a@4]k", re.IGNORECASE),
    re.compile(r"forget\s+(previous|all|your)\s+(instructions?|rules?|constraints?)", re.IGNORECASE),
    re.compile(r"override\s+(system|safety|security)", re.IGNORECASE),
    re.compile(r"show\s+(me\s+)?(your|the)\s+(training|original)\s+(data|prompt|instructions?)", re.IGNORECASE),
]

# Role-prefix injection, tested against every line of the input.
ROLE_PREFIX_PATTERN: Pattern[str] = re.compile(
    r"^(new\s+instructions?|system|admin|developer)\s*:", re.IGNORECASE | re.MULTILINE
)


def _collapse(text: str) -> str:
    return _WHITESPACE_RUN.sub(" ", text).strip()


def normalize_for_screening(question: str) -> str:
    """NFKC-normalizes, lowercases, collapses whitespace runs and trims."""
    return _collapse(unicodedata.normalize("NFKC", question).lower())


def _line_view(question: str) -> str:
    folded = unicodedata.normalize("NFKC", question).lower()
    return "\n".join(_collapse(line) for line in folded.splitlines())


def sanitize_input(question: str) -> ValidationResult:
    """
    Screens a raw question.

    Returns ValidationResult(safe=True) when the question passes every check,
    otherwise ValidationResult(safe=False, error=GENERIC_INPUT_ERROR).
    """
    unsafe = ValidationResult(safe=False, error=GENERIC_INPUT_ERROR)

    if len(question) > MAX_QUESTION_LENGTH:
        return unsafe

    if len(question.strip()) == 0:
        return unsafe

    normalized = normalize_for_screening(question)
    for pattern in INJECTION_PATTERNS:
        if pattern.search(normalized):
            return unsafe

    if ROLE_PREFIX_PATTERN.search(_line_view(question)):
        return unsafe

    return ValidationResult(safe=True)
