"""
Similarity helpers shared by the scoring components.
"""

import math
import re
from collections.abc import Iterable

_CHECK_SIZE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(k|m|million|thousand)?")


def cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
    if len(vec_a) != len(vec_b):
        return 0.0

    dot = sum(a * b for a, b in zip(vec_a, vec_b))
    norm_a = math.sqrt(sum(a * a for a in vec_a))
    norm_b = math.sqrt(sum(b * b for b in vec_b))
    magnitude = norm_a * norm_b
    return 0.0 if magnitude == 0 else dot / magnitude


def lowered_set(values: Iterable[str | None]) -> set[str]:
    return {value.strip().lower() for value in values if value and value.strip()}


def jaccard_similarity(left: Iterable[str], right: Iterable[str]) -> float:
    set_a = lowered_set(left)
    set_b = lowered_set(right)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def mutually_contains(value: str, other: str) -> bool:
    """Case-insensitive substring match in either direction."""
    value_lower = value.lower()
    other_lower = other.lower()
    if not value_lower or not other_lower:
        return False
    return value_lower in other_lower or other_lower in value_lower


def matches_any(value: str, items: Iterable[str | None]) -> bool:
    return any(mutually_contains(value, item) for item in items if item)


def parse_check_size(value: str) -> float | None:
    """Parse a check size phrase such as "$5,000,000", "500k" or "2 million"."""
    cleaned = value.replace("$", "").replace(",", "").lower()
    match = _CHECK_SIZE_PATTERN.search(cleaned)
    if not match:
        return None

    number = float(match.group(1))
    suffix = match.group(2)
    if suffix in ("k", "thousand"):
        number *= 1_000
    elif suffix in ("m", "million"):
        number *= 1_000_000
    return number


def check_size_fit(
    conv_min: float | None,
    conv_max: float | None,
    contact_min: float | None,
    contact_max: float | None,
) -> float:
    """How well the conversation's funding range sits inside a contact's check range."""
    if conv_min is None and conv_max is None:
        return 0.0
    if contact_min is None and contact_max is None:
        return 0.0

    c_min = conv_min if conv_min is not None else conv_max
    c_max = conv_max if conv_max is not None else conv_min
    t_min = contact_min if contact_min is not None else contact_max
    t_max = contact_max if contact_max is not None else contact_min

    if t_min <= c_min and c_max <= t_max:
        return 1.0

    overlap_start = max(c_min, t_min)
    overlap_end = min(c_max, t_max)
    if overlap_start <= overlap_end:
        conv_length = (c_max - c_min) or 1
        return min(0.5 + 0.5 * ((overlap_end - overlap_start) / conv_length), 1.0)

    # Disjoint ranges decay with the gap, capped well below a real overlap
    gap = min(abs(c_min - t_max), abs(t_min - c_max))
    scale = max(c_max, t_max) or 1
    return min(math.exp(-3 * gap / scale), 0.3)
