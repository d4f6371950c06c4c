from __future__ import annotations

import logging
from typing import Iterable, Optional

from polycrack.core.alphabet import DEFAULT_ALPHABET, Alphabet
from polycrack.core.errors import EmptyInput, NoValidWords
from polycrack.core.results import KeyCandidate, ScoredCandidate
from polycrack.core.scoring import KeyScorer
from polycrack.core.utils import smallest_shift_period

from .common import AlphabetLike, difference
from .vigenere import WILDCARD

logger = logging.getLogger(__name__)


def key_segment(cipher_window: str, known: str, alphabet: Alphabet) -> Optional[str]:
    """
    Key symbols implied by aligning `known` plaintext under `cipher_window`.
    None if any aligned symbol is outside the alphabet.
    """
    if len(cipher_window) != len(known):
        return None
    out = []
    for c, p in zip(cipher_window, known):
        if c not in alphabet or p not in alphabet:
            return None
        out.append(difference(c, p, alphabet))
    return "".join(out)


def derive_key(
    ciphertext: str,
    plaintext: str,
    alphabet: AlphabetLike = DEFAULT_ALPHABET,
    *,
    offset: int = 0,
    wildcard: str = WILDCARD,
) -> str:
    """
    Key stream implied by plaintext placed at `offset` of the ciphertext. Positions
    where either symbol is outside the alphabet (or the ciphertext runs out) come
    back as the wildcard, so the result can be fed to reveal().
    """
    alpha = Alphabet.coerce(alphabet)
    cipher = alpha.normalize(ciphertext or "")
    known = alpha.normalize(plaintext or "")
    if not cipher or not known:
        raise EmptyInput("Both ciphertext and known plaintext are required.")
    if offset < 0:
        raise ValueError("Offset must be non-negative.")

    out = []
    for i, p in enumerate(known):
        j = offset + i
        c = cipher[j] if j < len(cipher) else ""
        if c and c in alpha and p in alpha:
            out.append(difference(c, p, alpha))
        else:
            out.append(wildcard)
    return "".join(out)


def _phase_aligned(segment: str, start: int, period: int) -> str:
    """
    Key of length `period` such that key[(start + i) % period] == segment[i].
    """
    return "".join(segment[(j - start) % period] for j in range(period))


class CandidateKeyGenerator:
    """
    Known-plaintext attack: slide each known word across the ciphertext, derive the
    key segment implied at every offset, and turn it into a repeating-key hypothesis.
    """

    def __init__(self, *, cross_validate: bool = True):
        self.cross_validate = cross_validate

    def generate(
        self,
        ciphertext: str,
        known_words: Iterable[str],
        alphabet: AlphabetLike = DEFAULT_ALPHABET,
    ) -> set[KeyCandidate]:
        alpha = Alphabet.coerce(alphabet)
        words = []
        for w in known_words or ():
            fw = alpha.filter(w)
            if fw and fw not in words:
                words.append(fw)
        if not words:
            raise NoValidWords("No known-plaintext fragment has any alphabet symbols.")

        # windows are taken over the case-normalized text so that a window straddling
        # an out-of-alphabet symbol is rejected; offsets are then re-expressed in
        # filtered coordinates, which is what transform() works on
        cipher = alpha.normalize(ciphertext or "")
        filtered_pos = []
        count = 0
        for ch in cipher:
            filtered_pos.append(count)
            if ch in alpha:
                count += 1

        by_key: dict[str, KeyCandidate] = {}
        for word in words:
            w = len(word)
            for start in range(len(cipher) - w + 1):
                seg = key_segment(cipher[start : start + w], word, alpha)
                if seg is None:
                    continue
                period = smallest_shift_period(seg)
                f = filtered_pos[start]
                key = _phase_aligned(seg, f, period)
                if key not in by_key:
                    by_key[key] = KeyCandidate(
                        key=key,
                        source="known_plaintext",
                        offset=f,
                        word=word,
                        period=period,
                    )

        candidates = list(by_key.values())
        if self.cross_validate and len(words) > 1:
            candidates = self._merge(candidates)

        logger.debug("Known plaintext: %d words -> %d key candidates", len(words), len(candidates))
        return set(candidates)

    @staticmethod
    def _merge(candidates: list[KeyCandidate]) -> list[KeyCandidate]:
        """
        When keys derived from different words agree on a common prefix (one key is a
        prefix of the other), keep only the longer key, crediting it with the support.
        """
        ordered = sorted(candidates, key=lambda c: (-len(c.key), c.key))
        kept: list[KeyCandidate] = []
        for cand in ordered:
            absorbed = False
            for i, longer in enumerate(kept):
                if longer.word != cand.word and longer.key.startswith(cand.key):
                    kept[i] = KeyCandidate(
                        key=longer.key,
                        source="merged",
                        offset=longer.offset,
                        word=longer.word,
                        period=longer.period,
                        support=longer.support + cand.support,
                    )
                    absorbed = True
                    break
            if not absorbed:
                kept.append(cand)
        return kept


def crack_with_known_words(
    ciphertext: str,
    known_words: Iterable[str],
    alphabet: AlphabetLike = DEFAULT_ALPHABET,
    scorer: Optional[KeyScorer] = None,
) -> list[ScoredCandidate]:
    """Generate known-plaintext candidates and rank them; raises NoValidKey if none survive."""
    alpha = Alphabet.coerce(alphabet)
    words = list(known_words)
    scorer = scorer or KeyScorer()
    candidates = CandidateKeyGenerator().generate(ciphertext, words, alpha)
    return scorer.rank(ciphertext, sorted(candidates, key=lambda c: (len(c.key), c.key)), alpha, words)
