from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Union

from .alphabet import DEFAULT_ALPHABET, Alphabet
from .results import TextFeatures
from .utils import columns, index_of_coincidence, shannon_entropy


@dataclass(frozen=True)
class FrequencyTable:
    """
    Symbol -> relative frequency. Observed tables sum to 1 over the counted symbols;
    reference tables are per-language constants (see core.languages).
    """

    freqs: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    def observed(cls, text: str, alphabet: Union[str, Alphabet] = DEFAULT_ALPHABET) -> "FrequencyTable":
        alpha = Alphabet.coerce(alphabet)
        counted = alpha.filter(text)
        if not counted:
            return cls({ch: 0.0 for ch in alpha.symbols})
        counts = Counter(counted)
        n = len(counted)
        return cls({ch: counts.get(ch, 0) / n for ch in alpha.symbols})

    def get(self, ch: str, default: float = 0.0) -> float:
        return self.freqs.get(ch, default)

    def __getitem__(self, ch: str) -> float:
        return self.freqs.get(ch, 0.0)

    def __iter__(self) -> Iterator[str]:
        return iter(self.freqs)

    def __len__(self) -> int:
        return len(self.freqs)

    def as_vector(self, alphabet: Alphabet) -> list[float]:
        """Frequencies in alphabet order; symbols missing from the table count as 0."""
        return [self.freqs.get(ch, 0.0) for ch in alphabet.symbols]

    def most_common(self, n: int | None = None) -> list[tuple[str, float]]:
        ranked = sorted(self.freqs.items(), key=lambda kv: kv[1], reverse=True)
        return ranked if n is None else ranked[:n]


def ioc_scan(
    text: str,
    alphabet: Union[str, Alphabet] = DEFAULT_ALPHABET,
    *,
    min_len: int = 1,
    max_len: int = 20,
) -> list[tuple[int, float]]:
    """
    Average index of coincidence over the k interleaved columns, for each k.
    Sorted best first; the sort is stable so equal values keep ascending k.
    Lengths whose columns would hold fewer than 2 symbols are skipped.
    """
    alpha = Alphabet.coerce(alphabet)
    az = alpha.filter(text)
    if len(az) < 2:
        return []

    scores = []
    for k in range(max(1, min_len), min(max_len, len(az) // 2) + 1):
        cols = columns(az, k)
        avg = sum(index_of_coincidence(col) for col in cols) / k
        scores.append((k, avg))

    return sorted(scores, key=lambda x: x[1], reverse=True)


def analyze_text(text: str, alphabet: Union[str, Alphabet] = DEFAULT_ALPHABET) -> dict:
    """
    Returns a dict of features describing how the text sits against an alphabet:
    coverage, entropy and IoC of the in-alphabet part.
    """
    alpha = Alphabet.coerce(alphabet)
    n = len(text)
    if n == 0:
        feats = TextFeatures(
            length=0,
            alphabet_symbols=0,
            unique_symbols=0,
            coverage=0.0,
            entropy=0.0,
            ioc=0.0,
        )
        return feats.to_dict()

    counted = alpha.filter(text)
    feats = TextFeatures(
        length=n,
        alphabet_symbols=len(counted),
        unique_symbols=len(set(counted)),
        coverage=len(counted) / n,
        entropy=shannon_entropy(counted),
        ioc=index_of_coincidence(counted),
    )
    return feats.to_dict()
