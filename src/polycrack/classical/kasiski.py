from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Callable, Optional

from polycrack.core.alphabet import DEFAULT_ALPHABET, Alphabet
from polycrack.core.errors import InsufficientCiphertext
from polycrack.core.features import ioc_scan
from polycrack.core.results import KeyLengthCandidate
from polycrack.core.utils import chunked

from .common import AlphabetLike

logger = logging.getLogger(__name__)

MIN_KEY_LENGTH = 2
MAX_KEY_LENGTH = 30
SEED_LENGTH = 3
MIN_CIPHERTEXT_LENGTH = 50

# checkpoint(done, total) is called between chunks; it may raise to abort the scan
Checkpoint = Callable[[int, int], None]


def factors_in_range(number: int, lo: int, hi: int) -> set[int]:
    """Every integer factor f of `number` with lo <= f <= hi (number itself included)."""
    found: set[int] = set()
    if number <= 0:
        return found
    for i in range(1, math.isqrt(number) + 1):
        if number % i:
            continue
        for f in (i, number // i):
            if lo <= f <= hi:
                found.add(f)
    return found


def repeated_sequences(
    az: str,
    seed_length: int,
    *,
    chunk_size: int = 512,
    checkpoint: Optional[Checkpoint] = None,
) -> dict[str, list[int]]:
    """Offsets of every seed-length substring that occurs more than once."""
    positions: dict[str, list[int]] = defaultdict(list)
    starts = range(max(0, len(az) - seed_length + 1))
    total = len(starts)
    done = 0
    for chunk in chunked(starts, chunk_size):
        for i in chunk:
            positions[az[i : i + seed_length]].append(i)
        done += len(chunk)
        if checkpoint is not None:
            checkpoint(done, total)
    return {seq: offs for seq, offs in positions.items() if len(offs) > 1}


def kasiski_votes(
    repeats: dict[str, list[int]],
    min_key_length: int = MIN_KEY_LENGTH,
    max_key_length: int = MAX_KEY_LENGTH,
) -> dict[int, int]:
    """
    For every repeated sequence, take the pairwise distances between its offsets
    and vote once for each factor of each distance within the key-length bounds.
    """
    votes: dict[int, int] = defaultdict(int)
    for offsets in repeats.values():
        for a_idx in range(len(offsets)):
            for b_idx in range(a_idx + 1, len(offsets)):
                d = offsets[b_idx] - offsets[a_idx]
                for f in factors_in_range(d, min_key_length, max_key_length):
                    votes[f] += 1
    return dict(votes)


def ioc_periods(
    az: str,
    alphabet: Alphabet,
    min_key_length: int = MIN_KEY_LENGTH,
    max_key_length: int = MAX_KEY_LENGTH,
) -> list[tuple[int, float]]:
    """Average column IoC per period, best first (ties keep ascending period)."""
    return ioc_scan(az, alphabet, min_len=min_key_length, max_len=max_key_length)


class KeyLengthEstimator:
    """
    Most probable repeating-key periods for a ciphertext.

    Kasiski examination first: repeated seed n-grams, pairwise distances, factor
    votes restricted to [min_key_length, max_key_length], ranked by support with
    smaller periods winning ties. If that yields nothing, fall back to the period
    whose interleaved columns have the highest average index of coincidence.
    """

    def __init__(
        self,
        *,
        min_key_length: int = MIN_KEY_LENGTH,
        max_key_length: int = MAX_KEY_LENGTH,
        seed_length: int = SEED_LENGTH,
        min_ciphertext_length: int = MIN_CIPHERTEXT_LENGTH,
        top_n: int = 3,
        chunk_size: int = 512,
    ):
        if min_key_length < 1 or max_key_length < min_key_length:
            raise ValueError("Key length bounds must satisfy 1 <= min <= max.")
        if seed_length < 2:
            raise ValueError("Seed length must be at least 2.")
        self.min_key_length = min_key_length
        self.max_key_length = max_key_length
        self.seed_length = seed_length
        self.min_ciphertext_length = min_ciphertext_length
        self.top_n = max(1, top_n)
        self.chunk_size = max(1, chunk_size)

    def check_length(self, az: str) -> None:
        if len(az) < self.min_ciphertext_length:
            raise InsufficientCiphertext(
                f"Ciphertext has {len(az)} alphabet symbols; "
                f"at least {self.min_ciphertext_length} are needed for period detection."
            )

    def _scan(self, az: str, checkpoint: Optional[Checkpoint]) -> dict[str, list[int]]:
        return repeated_sequences(
            az, self.seed_length, chunk_size=self.chunk_size, checkpoint=checkpoint
        )

    def estimate(
        self,
        ciphertext: str,
        alphabet: AlphabetLike = DEFAULT_ALPHABET,
        *,
        checkpoint: Optional[Checkpoint] = None,
    ) -> list[KeyLengthCandidate]:
        alpha = Alphabet.coerce(alphabet)
        az = alpha.filter(ciphertext)
        self.check_length(az)

        repeats = self._scan(az, checkpoint)
        votes = kasiski_votes(repeats, self.min_key_length, self.max_key_length)
        logger.debug("Kasiski: %d repeated %d-grams, %d factors voted", len(repeats), self.seed_length, len(votes))

        if votes:
            ranked = sorted(votes.items(), key=lambda kv: (-kv[1], kv[0]))
            return [
                KeyLengthCandidate(period=p, score=float(v), method="kasiski")
                for p, v in ranked[: self.top_n]
            ]

        logger.debug("Kasiski found no usable repeats; falling back to index of coincidence")
        scan = ioc_periods(az, alpha, self.min_key_length, self.max_key_length)
        return [KeyLengthCandidate(period=p, score=v, method="ioc") for p, v in scan[: self.top_n]]
