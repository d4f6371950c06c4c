from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class KeyLengthCandidate:
    period: int
    # Kasiski: number of corroborating distance factors. IoC fallback: average IoC.
    score: float
    method: str = "kasiski"

    def to_dict(self) -> dict[str, Any]:
        return {"period": self.period, "score": self.score, "method": self.method}


@dataclass(frozen=True)
class KeyCandidate:
    key: str
    # "frequency", "known_plaintext", "merged" or "reduced"
    source: str = "frequency"
    offset: Optional[int] = None
    word: Optional[str] = None
    period: Optional[int] = None
    support: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "source": self.source,
            "offset": self.offset,
            "word": self.word,
            "period": self.period,
            "support": self.support,
        }


@dataclass(frozen=True, order=True)
class ScoredCandidate:
    # sort_index comes first so dataclass ordering uses it automatically
    sort_index: tuple[float, int, str] = field(init=False, repr=False)

    candidate: KeyCandidate = field(compare=False)
    plaintext: str = field(default="", compare=False)

    # Higher is better
    score: float = field(default=0.0, compare=False)
    confidence: float = field(default=0.0, compare=False)

    # False when a known-plaintext hard filter rejected the candidate
    valid: bool = field(default=True, compare=False)

    # Breakdown of the composite score, for transparency / debugging
    components: dict[str, float] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        # dataclass(order=True) sorts ascending; we want score descending,
        # then shorter keys, then the lexicographically smallest key.
        key = self.candidate.key
        object.__setattr__(self, "sort_index", (-self.score, len(key), key))

    @property
    def key(self) -> str:
        return self.candidate.key

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "plaintext": self.plaintext,
            "score": self.score,
            "confidence": self.confidence,
            "valid": self.valid,
            "components": dict(self.components),
            "candidate": self.candidate.to_dict(),
        }


@dataclass(frozen=True)
class AnalysisResult:
    key: str
    confidence: float
    decrypted_text: str
    period: int
    score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "confidence": self.confidence,
            "decrypted_text": self.decrypted_text,
            "period": self.period,
            "score": self.score,
        }


@dataclass(frozen=True)
class TextFeatures:
    length: int
    alphabet_symbols: int  # how many symbols of the text are in the alphabet
    unique_symbols: int
    coverage: float
    entropy: float
    ioc: float  # index of coincidence over in-alphabet symbols (0 if too short)

    def to_dict(self) -> dict[str, Any]:
        return {
            "length": self.length,
            "alphabet_symbols": self.alphabet_symbols,
            "unique_symbols": self.unique_symbols,
            "coverage": self.coverage,
            "entropy": self.entropy,
            "ioc": self.ioc,
        }
