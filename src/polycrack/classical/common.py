from __future__ import annotations

from typing import Union

from polycrack.core.alphabet import Alphabet
from polycrack.core.errors import EmptyInput

AlphabetLike = Union[str, Alphabet]


def norm_key(key: str, alphabet: Alphabet) -> str:
    """Case-normalize and keep only alphabet symbols; raises EmptyInput if nothing is left."""
    k = alphabet.filter(key or "")
    if not k:
        raise EmptyInput("Key must contain at least one alphabet symbol.")
    return k


def key_shifts(key: str, alphabet: Alphabet) -> list[int]:
    return [alphabet.index(ch) for ch in norm_key(key, alphabet)]


def shift_symbol(ch: str, shift: int, alphabet: Alphabet) -> str:
    """Shift one alphabet symbol by 'shift' (can be negative)."""
    return alphabet.symbol(alphabet.index(ch) + shift)


def difference(cipher_ch: str, plain_ch: str, alphabet: Alphabet) -> str:
    """Key symbol that maps plain_ch onto cipher_ch."""
    return alphabet.symbol(alphabet.index(cipher_ch) - alphabet.index(plain_ch))
