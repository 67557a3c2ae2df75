"""Deterministic tokenization, term normalization and lexical scoring."""

from collections import Counter
import re

_TOKEN_RE = re.compile(r"[a-z0-9]+")
_WS_RE = re.compile(r"\s+")
_TERM_STRIP_RE = re.compile(r"[^a-z0-9\s]")
_TAG_RE = re.compile(r"[^a-z0-9]")
_DIGITS_RE = re.compile(r"^\d+$")

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "be", "been", "have",
        "has", "had", "do", "does", "did", "will", "would", "could", "should",
        "may", "might", "must", "can", "this", "that", "these", "those",
    }
)


def normalize_whitespace(text: str | None) -> str:
    """Collapse whitespace to single spaces."""
    if text is None:
        return ""
    return _WS_RE.sub(" ", text.replace("\n", " ").replace("\t", " ")).strip()


def tokenize(text: str | None) -> tuple[str, ...]:
    """Tokenize text deterministically (lowercase alnum tokens)."""
    normalized = normalize_whitespace(text).lower()
    return tuple(_TOKEN_RE.findall(normalized))


def normalize_term(term: str) -> str:
    """Lowercase and drop punctuation; inner whitespace survives."""
    return normalize_whitespace(_TERM_STRIP_RE.sub("", term.lower()))


def normalize_tag(value: str) -> str:
    """Tag form used for category and concept keys: ``Science Fiction`` -> ``science_fiction``."""
    return _TAG_RE.sub("_", value.lower())


def is_valid_term(term: str, min_length: int = 2) -> bool:
    return (
        bool(term)
        and len(term) >= min_length
        and term not in STOP_WORDS
        and not _DIGITS_RE.match(term)
    )


def content_terms(text: str | None, min_length: int = 2, limit: int = 20) -> list[str]:
    """Significant words of free text, in order of appearance."""
    if not text:
        return []
    words = [w for w in tokenize(text) if len(w) >= min_length and w not in STOP_WORDS]
    return words[:limit]


def keyword_overlap_score(query: str, candidate: str) -> float:
    """Compute deterministic F1-style token overlap in [0, 1]."""
    q_tokens = tokenize(query)
    c_tokens = tokenize(candidate)

    if not q_tokens or not c_tokens:
        return 0.0

    q_counter = Counter(q_tokens)
    c_counter = Counter(c_tokens)
    overlap = sum(
        min(q_counter[t], c_counter[t]) for t in (q_counter.keys() & c_counter.keys())
    )

    if overlap == 0:
        return 0.0

    precision = overlap / len(c_tokens)
    recall = overlap / len(q_tokens)
    denom = precision + recall
    if denom == 0:
        return 0.0

    score = 2.0 * precision * recall / denom
    if score < 0:
        return 0.0
    if score > 1:
        return 1.0
    return score
