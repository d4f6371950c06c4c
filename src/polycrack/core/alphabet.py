from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .errors import InvalidAlphabet

LATIN_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
MIN_ALPHABET_LENGTH = 10


@dataclass(frozen=True)
class Alphabet:
    """
    Ordered set of distinct symbols; the modulus for all cipher arithmetic.

    Input text is normalized to the alphabet's case convention:
      - every cased symbol upper-case -> input is upper-cased
      - every cased symbol lower-case -> input is lower-cased
      - mixed (or no cased symbols)   -> input is left alone
    """

    symbols: str
    _index: dict[str, int] = field(init=False, repr=False, compare=False)
    _case: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        symbols = self.symbols
        if not isinstance(symbols, str):
            raise InvalidAlphabet("Alphabet must be a string of symbols.")

        seen: set[str] = set()
        dupes: list[str] = []
        for ch in symbols:
            if ch in seen and ch not in dupes:
                dupes.append(ch)
            seen.add(ch)
        if dupes:
            raise InvalidAlphabet(f"Alphabet has duplicate symbols: {''.join(dupes)!r}")
        if len(symbols) < MIN_ALPHABET_LENGTH:
            raise InvalidAlphabet(
                f"Alphabet needs at least {MIN_ALPHABET_LENGTH} symbols, got {len(symbols)}."
            )

        cased = [ch for ch in symbols if ch.upper() != ch.lower()]
        if cased and all(ch.isupper() for ch in cased):
            case = "upper"
        elif cased and all(ch.islower() for ch in cased):
            case = "lower"
        else:
            case = "mixed"

        object.__setattr__(self, "_index", {ch: i for i, ch in enumerate(symbols)})
        object.__setattr__(self, "_case", case)

    @classmethod
    def coerce(cls, value: Union[str, "Alphabet"]) -> "Alphabet":
        if isinstance(value, Alphabet):
            return value
        return cls(value)

    def __len__(self) -> int:
        return len(self.symbols)

    def __contains__(self, ch: object) -> bool:
        return ch in self._index

    def __str__(self) -> str:
        return self.symbols

    def index(self, ch: str) -> int:
        """Index of a symbol; raises KeyError for symbols outside the alphabet."""
        return self._index[ch]

    def symbol(self, idx: int) -> str:
        return self.symbols[idx % len(self.symbols)]

    def normalize(self, text: str) -> str:
        """
        Map each character to the alphabet's case. Characters whose case mapping
        is not a single character ('ß' -> 'SS') are left as they are, so the
        result always has the same length as `text`.
        """
        if self._case == "upper":
            convert = str.upper
        elif self._case == "lower":
            convert = str.lower
        else:
            return text
        out = []
        for ch in text:
            mapped = convert(ch)
            out.append(mapped if len(mapped) == 1 else ch)
        return "".join(out)

    def filter(self, text: str) -> str:
        """Case-normalize and drop every symbol that is not in the alphabet."""
        return "".join(ch for ch in self.normalize(text) if ch in self._index)


DEFAULT_ALPHABET = Alphabet(LATIN_ALPHABET)
