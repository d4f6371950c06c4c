from __future__ import annotations

from .vigenere import Direction, decrypt, encrypt, transform

__all__ = ["Direction", "decrypt", "encrypt", "transform"]
