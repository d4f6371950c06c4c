from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional, Union

from .alphabet import DEFAULT_ALPHABET, Alphabet
from .errors import NoValidKey
from .features import FrequencyTable
from .languages import Language, get_language
from .results import KeyCandidate, ScoredCandidate
from .utils import minimal_period

logger = logging.getLogger(__name__)

WORD_WEIGHT = 10.0
PARSIMONY_WEIGHT = 5.0
# Substring matching of very short words is mostly noise
MIN_SUBSTRING_WORD = 3

_TOKEN_SPLIT_RE = re.compile(r"\s+")


def frequency_fit(text: str, reference: FrequencyTable, alphabet: Alphabet) -> float:
    """
    Sum over the alphabet of (1 - |observed - reference|).
    Maximum is |alphabet|, reached when the distributions coincide.
    """
    observed = FrequencyTable.observed(text, alphabet)
    return sum(1.0 - abs(observed[ch] - reference[ch]) for ch in alphabet.symbols)


def _substring_hits(text: str, words: Iterable[str]) -> list[tuple[int, int]]:
    spans = []
    for w in words:
        if len(w) < MIN_SUBSTRING_WORD:
            continue
        start = text.find(w)
        while start != -1:
            spans.append((start, start + len(w)))
            start = text.find(w, start + 1)
    return spans


def dictionary_matches(text: str, words: Iterable[str]) -> tuple[int, float]:
    """
    (number of dictionary hits, share of text symbols covered by a hit).

    Whitespace-separated text is matched token by token. Text without separators
    (the usual output of transform) is searched for dictionary words as substrings.
    """
    if not text:
        return 0, 0.0
    words = set(words)

    if _TOKEN_SPLIT_RE.search(text.strip()):
        tokens = [t for t in _TOKEN_SPLIT_RE.split(text) if t]
        hits = [t for t in tokens if t in words]
        covered = sum(len(t) for t in hits)
        total = sum(len(t) for t in tokens)
        return len(hits), (covered / total if total else 0.0)

    spans = _substring_hits(text, words)
    mask = bytearray(len(text))
    for a, b in spans:
        mask[a:b] = b"\x01" * (b - a)
    return len(spans), sum(mask) / len(text)


def _length_confidence_scale(n_symbols: int) -> float:
    """
    Downscale confidence for short texts where frequency statistics are noisy.
    Reaches 1.0 at ~100 symbols, never below 0.25.
    """
    if n_symbols <= 0:
        return 0.25
    return max(0.25, min(1.0, n_symbols / 100.0))


class KeyScorer:
    """
    Decrypts with a key hypothesis and scores the plaintext:

      frequency fit + word_weight * dictionary hits + parsimony_weight / minimal period

    Known-plaintext words, when given, are a hard filter: every one of them must
    appear in the decryption or the candidate is marked invalid.
    """

    def __init__(
        self,
        language: Union[str, Language, None] = None,
        *,
        word_weight: float = WORD_WEIGHT,
        parsimony_weight: float = PARSIMONY_WEIGHT,
    ):
        if language is None or isinstance(language, str):
            language = get_language(language or "english")
        self.language = language
        self.word_weight = word_weight
        self.parsimony_weight = parsimony_weight

    @property
    def reference(self) -> FrequencyTable:
        return self.language.frequencies

    def confidence(self, plaintext: str, fit: float, coverage: float, alphabet: Alphabet) -> float:
        """
        Normalized composite in [0, 1]: 60% frequency agreement (1 - total deviation),
        40% dictionary coverage, scaled down for short texts.
        """
        deviation = len(alphabet) - fit
        fit_component = max(0.0, min(1.0, 1.0 - deviation))
        conf = 0.6 * fit_component + 0.4 * coverage
        conf *= _length_confidence_scale(len(plaintext))
        return max(0.0, min(1.0, conf))

    def score(
        self,
        ciphertext: str,
        candidate: KeyCandidate,
        alphabet: Union[str, Alphabet] = DEFAULT_ALPHABET,
        known_words: Optional[Iterable[str]] = None,
    ) -> ScoredCandidate:
        # deferred: polycrack.classical imports from polycrack.core
        from polycrack.classical.vigenere import decrypt

        alpha = Alphabet.coerce(alphabet)
        plaintext = decrypt(ciphertext, candidate.key, alpha)

        required = [w for w in (alpha.filter(k) for k in (known_words or ())) if w]
        valid = all(w in plaintext for w in required)

        fit = frequency_fit(plaintext, self.reference, alpha)
        hits, coverage = dictionary_matches(plaintext, self.language.words)
        period = minimal_period(alpha.filter(candidate.key))
        parsimony = self.parsimony_weight / period

        total = fit + self.word_weight * hits + parsimony
        return ScoredCandidate(
            candidate=candidate,
            plaintext=plaintext,
            score=total,
            confidence=self.confidence(plaintext, fit, coverage, alpha),
            valid=valid,
            components={
                "frequency_fit": fit,
                "dictionary_hits": float(hits),
                "coverage": coverage,
                "parsimony": parsimony,
                "minimal_period": float(period),
            },
        )

    def rank(
        self,
        ciphertext: str,
        candidates: Iterable[KeyCandidate],
        alphabet: Union[str, Alphabet] = DEFAULT_ALPHABET,
        known_words: Optional[Iterable[str]] = None,
        *,
        checkpoint: Optional[Callable[[int, int], None]] = None,
    ) -> list[ScoredCandidate]:
        """
        Score every candidate, drop those failing the hard filter, and sort:
        score descending, then shorter key, then lexicographically smallest key.
        """
        alpha = Alphabet.coerce(alphabet)
        pool = list(candidates)
        words = list(known_words or ())

        scored: list[ScoredCandidate] = []
        for i, cand in enumerate(pool):
            s = self.score(ciphertext, cand, alpha, words)
            if s.valid:
                scored.append(s)
            if checkpoint is not None:
                checkpoint(i + 1, len(pool))

        if not scored:
            raise NoValidKey(
                f"None of the {len(pool)} key candidates survived validation."
                if pool
                else "No key candidates to validate."
            )

        scored.sort()
        logger.debug("Ranked %d/%d candidates; best key=%s score=%.2f", len(scored), len(pool), scored[0].key, scored[0].score)
        return scored

    def select(
        self,
        ciphertext: str,
        candidates: Iterable[KeyCandidate],
        alphabet: Union[str, Alphabet] = DEFAULT_ALPHABET,
        known_words: Optional[Iterable[str]] = None,
    ) -> ScoredCandidate:
        return self.rank(ciphertext, candidates, alphabet, known_words)[0]
