"""Token estimation and greedy packing into the context budget."""

import math
from typing import Iterable

from ..memory.models import Memory
from .models import FitResult

# Roughly four characters per token for English text
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count: ``ceil(len(text) / 4)``."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_memory_tokens(memories: Iterable[Memory]) -> int:
    return sum(estimate_tokens(m.content) for m in memories)


def fit_to_context_window(memories: list[Memory], max_tokens: int) -> FitResult:
    """Take the longest rank-order prefix that fits ``max_tokens``.

    Packing stops at the first memory that would overflow the budget, even
    if a later one is small enough to fit. This keeps the selection a
    prefix of the ranking at the cost of some unused budget.
    """
    selected: list[Memory] = []
    total_tokens = 0

    for memory in memories:
        cost = estimate_tokens(memory.content)
        if total_tokens + cost > max_tokens:
            return FitResult(memories=selected, total_tokens=total_tokens, truncated=True)
        selected.append(memory)
        total_tokens += cost

    return FitResult(memories=selected, total_tokens=total_tokens, truncated=False)
