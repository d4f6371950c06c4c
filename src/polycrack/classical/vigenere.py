from __future__ import annotations

from enum import Enum
from typing import Union

from polycrack.core.alphabet import DEFAULT_ALPHABET, Alphabet
from polycrack.core.errors import EmptyInput

from .common import AlphabetLike, key_shifts, shift_symbol

WILDCARD = "?"


class Direction(str, Enum):
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


def _sign(direction: Union[str, Direction]) -> int:
    try:
        d = Direction(direction)
    except ValueError as e:
        raise ValueError(f"Direction must be 'encrypt' or 'decrypt', got {direction!r}.") from e
    return 1 if d is Direction.ENCRYPT else -1


def expand_key(key: str, length: int) -> str:
    """Repeat the key and truncate it to exactly `length` symbols."""
    if not key:
        raise EmptyInput("Cannot expand an empty key.")
    if length <= 0:
        return ""
    reps = -(-length // len(key))
    return (key * reps)[:length]


def transform(
    text: str,
    key: str,
    direction: Union[str, Direction],
    alphabet: AlphabetLike = DEFAULT_ALPHABET,
) -> str:
    """
    Repeating-key substitution over an alphabet.

    Text and key are case-normalized to the alphabet and symbols outside it are
    dropped before processing, so the output only ever holds alphabet symbols.
    Encrypt adds the key index modulo |alphabet|, decrypt subtracts it.
    """
    alpha = Alphabet.coerce(alphabet)
    sign = _sign(direction)

    t = alpha.filter(text or "")
    if not t:
        raise EmptyInput("Text has no alphabet symbols to transform.")
    shifts = key_shifts(key, alpha)

    m = len(alpha)
    period = len(shifts)
    symbols = alpha.symbols
    return "".join(
        symbols[(alpha.index(ch) + sign * shifts[i % period]) % m] for i, ch in enumerate(t)
    )


def encrypt(text: str, key: str, alphabet: AlphabetLike = DEFAULT_ALPHABET) -> str:
    return transform(text, key, Direction.ENCRYPT, alphabet)


def decrypt(text: str, key: str, alphabet: AlphabetLike = DEFAULT_ALPHABET) -> str:
    return transform(text, key, Direction.DECRYPT, alphabet)


def transform_preserving(
    text: str,
    key: str,
    direction: Union[str, Direction],
    alphabet: AlphabetLike = DEFAULT_ALPHABET,
) -> str:
    """
    Same arithmetic as transform(), but symbols outside the alphabet pass through
    unchanged and do not advance the key. Letter case of the input is kept.
    """
    alpha = Alphabet.coerce(alphabet)
    sign = _sign(direction)
    shifts = key_shifts(key, alpha)

    out = []
    j = 0
    for ch in text or "":
        norm = alpha.normalize(ch)
        if norm in alpha:
            shifted = shift_symbol(norm, sign * shifts[j % len(shifts)], alpha)
            if norm != ch:
                # restore the caller's case
                shifted = shifted.lower() if ch.islower() else shifted.upper()
            out.append(shifted)
            j += 1
        else:
            out.append(ch)
    return "".join(out)


def reveal(
    ciphertext: str,
    partial_key: str,
    alphabet: AlphabetLike = DEFAULT_ALPHABET,
    wildcard: str = WILDCARD,
) -> str:
    """
    Decrypt with a partially known key. Key positions holding the wildcard (or any
    symbol outside the alphabet) are unknown, and decrypt to the wildcard marker.
    """
    alpha = Alphabet.coerce(alphabet)
    c = alpha.filter(ciphertext or "")
    if not c:
        raise EmptyInput("Text has no alphabet symbols to transform.")
    k = alpha.normalize(partial_key or "")
    if not k:
        raise EmptyInput("Key must not be empty.")

    out = []
    for i, ch in enumerate(c):
        kc = k[i % len(k)]
        if kc == wildcard or kc not in alpha:
            out.append(wildcard)
        else:
            out.append(shift_symbol(ch, -alpha.index(kc), alpha))
    return "".join(out)
