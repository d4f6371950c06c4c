from __future__ import annotations

import concurrent.futures
import logging
from collections import Counter
from typing import Callable, Optional

from polycrack.core.alphabet import DEFAULT_ALPHABET, Alphabet
from polycrack.core.errors import EmptyInput
from polycrack.core.features import FrequencyTable
from polycrack.core.languages import get_language
from polycrack.core.results import KeyCandidate
from polycrack.core.utils import columns

from .common import AlphabetLike

logger = logging.getLogger(__name__)


def split_columns(ciphertext: str, period: int, alphabet: AlphabetLike = DEFAULT_ALPHABET) -> list[str]:
    """Column j holds the ciphertext symbols at positions = j (mod period)."""
    alpha = Alphabet.coerce(alphabet)
    return columns(alpha.filter(ciphertext), period)


class ColumnFrequencyAnalyzer:
    """
    Caesar-shift recovery per column by correlating observed frequencies with a
    reference distribution:

        score(s) = sum over sym of observed(sym) * reference[alphabet[(index(sym) - s) mod m]]

    The shift with the highest score (smallest on ties) is the key symbol alphabet[s].
    """

    def __init__(self, reference: Optional[FrequencyTable] = None, *, workers: int = 1):
        self.reference = reference if reference is not None else get_language("english").frequencies
        self.workers = max(1, workers)

    def shift_scores(self, sequence: str, alphabet: AlphabetLike = DEFAULT_ALPHABET) -> list[float]:
        alpha = Alphabet.coerce(alphabet)
        col = alpha.filter(sequence)
        m = len(alpha)
        ref = self.reference.as_vector(alpha)
        if not col:
            return [0.0] * m

        n = len(col)
        observed = [(alpha.index(sym), c / n) for sym, c in Counter(col).items()]
        return [sum(freq * ref[(idx - s) % m] for idx, freq in observed) for s in range(m)]

    def analyze_column(self, sequence: str, alphabet: AlphabetLike = DEFAULT_ALPHABET) -> str:
        """Best key symbol for one column."""
        alpha = Alphabet.coerce(alphabet)
        scores = self.shift_scores(sequence, alpha)
        best = max(range(len(scores)), key=lambda s: (scores[s], -s))
        return alpha.symbol(best)

    def recover_key(
        self,
        ciphertext: str,
        period: int,
        alphabet: AlphabetLike = DEFAULT_ALPHABET,
        *,
        checkpoint: Optional[Callable[[int, int], None]] = None,
    ) -> KeyCandidate:
        """Concatenate the per-column winners, in column order, into a key of length `period`."""
        alpha = Alphabet.coerce(alphabet)
        cols = split_columns(ciphertext, period, alpha)
        if not any(cols):
            raise EmptyInput("Ciphertext has no alphabet symbols to analyze.")

        if self.workers > 1 and period > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as ex:
                symbols = list(ex.map(lambda col: self.analyze_column(col, alpha), cols))
            if checkpoint is not None:
                checkpoint(period, period)
        else:
            symbols = []
            for j, col in enumerate(cols):
                symbols.append(self.analyze_column(col, alpha))
                if checkpoint is not None:
                    checkpoint(j + 1, period)

        key = "".join(symbols)
        logger.debug("Frequency analysis period=%d -> %s", period, key)
        return KeyCandidate(key=key, source="frequency", period=period)
