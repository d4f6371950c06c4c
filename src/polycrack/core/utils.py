from __future__ import annotations

import math
from collections import Counter
from typing import Iterable


def shannon_entropy(s: str) -> float:
    """Shannon entropy in bits/char."""
    if not s:
        return 0.0
    counts = Counter(s)
    n = len(s)
    ent = 0.0
    for c in counts.values():
        p = c / n
        ent -= p * math.log2(p)
    return ent


def index_of_coincidence(s: str) -> float:
    """
    Sum c(c-1) / n(n-1) over symbol counts. Callers filter to their alphabet first.
    Returns 0.0 for sequences shorter than 2.
    """
    n = len(s)
    if n < 2:
        return 0.0
    counts = Counter(s)
    num = sum(c * (c - 1) for c in counts.values())
    return num / (n * (n - 1))


def columns(s: str, period: int) -> list[str]:
    """Interleaved subsequences: column j holds the symbols at positions = j (mod period)."""
    if period <= 0:
        raise ValueError("Period must be positive.")
    return [s[j::period] for j in range(period)]


def minimal_period(key: str) -> int:
    """
    Length of the shortest block whose repetition reproduces the key exactly.
    Example: CYBERCYBER -> 5, LEMON -> 5, AAAA -> 1
    """
    n = len(key)
    for p in range(1, n // 2 + 1):
        if n % p != 0:
            continue
        if key[:p] * (n // p) == key:
            return p
    return n


def reduce_repeating_key(key: str) -> str:
    """If a key is a perfect repetition of a shorter pattern, reduce it."""
    return key[: minimal_period(key)] if key else key


def smallest_shift_period(segment: str) -> int:
    """
    Smallest p with segment[i] == segment[i + p] for every valid i.
    Unlike minimal_period, p does not have to divide the length, so a fragment
    that wraps around its key part-way (LEMONLEM) still reports 5.
    """
    n = len(segment)
    for p in range(1, n):
        if all(segment[i] == segment[i + p] for i in range(n - p)):
            return p
    return n


def chunked(seq: Iterable, size: int):
    buf = []
    for x in seq:
        buf.append(x)
        if len(buf) == size:
            yield buf
            buf = []
    if buf:
        yield buf
