from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ALPHABET = "InvalidAlphabet"
    EMPTY_INPUT = "EmptyInput"
    INSUFFICIENT_CIPHERTEXT = "InsufficientCiphertext"
    NO_VALID_WORDS = "NoValidWords"
    NO_VALID_KEY = "NoValidKey"
    ANALYSIS_IN_PROGRESS = "AnalysisInProgress"
    ANALYSIS_TIMED_OUT = "AnalysisTimedOut"
    INTERNAL = "Internal"


class CipherError(ValueError):
    """Base for every failure the core reports. `kind` is the protocol-level tag."""

    kind: ErrorKind = ErrorKind.INTERNAL


class InvalidAlphabet(CipherError):
    kind = ErrorKind.INVALID_ALPHABET


class EmptyInput(CipherError):
    kind = ErrorKind.EMPTY_INPUT


class InsufficientCiphertext(CipherError):
    kind = ErrorKind.INSUFFICIENT_CIPHERTEXT


class NoValidWords(CipherError):
    kind = ErrorKind.NO_VALID_WORDS


class NoValidKey(CipherError):
    kind = ErrorKind.NO_VALID_KEY


class AnalysisInProgress(CipherError):
    kind = ErrorKind.ANALYSIS_IN_PROGRESS


class AnalysisTimedOut(CipherError):
    kind = ErrorKind.ANALYSIS_TIMED_OUT


class AnalysisCancelled(Exception):
    """Raised at a suspension point once a Terminate has been observed. Not an error."""


_BY_KIND = {
    cls.kind: cls
    for cls in (
        InvalidAlphabet,
        EmptyInput,
        InsufficientCiphertext,
        NoValidWords,
        NoValidKey,
        AnalysisInProgress,
        AnalysisTimedOut,
    )
}


def error_for(kind: ErrorKind) -> type[CipherError]:
    """Exception class for a protocol error kind (CipherError for anything unmapped)."""
    return _BY_KIND.get(ErrorKind(kind), CipherError)
