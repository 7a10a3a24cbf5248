"""Small helpers shared across the bridge."""

from difflib import SequenceMatcher

from .consts import BODY_EXCERPT_LENGTH


def excerpt(text: str, limit: int = BODY_EXCERPT_LENGTH) -> str:
    """Trim a response body for error context and logs."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... ({len(text)} chars)"


def suggest_similar_strings(
    target: str,
    candidates: set[str] | list[str],
    threshold: float = 0.6,
    max_results: int = 3,
) -> list[str]:
    """Suggest names close to an unknown one, best match first.

    Args:
        target: Name the caller asked for.
        candidates: Known names.
        threshold: Minimum similarity ratio (0.0 to 1.0).
        max_results: Maximum number of suggestions to return.
    """
    scored = [
        (candidate, SequenceMatcher(None, target.lower(), candidate.lower()).ratio())
        for candidate in candidates
    ]
    scored = [item for item in scored if item[1] >= threshold]
    scored.sort(key=lambda item: item[1], reverse=True)
    return [name for name, _ in scored[:max_results]]
