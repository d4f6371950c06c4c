"""
Request/response protocol between a caller and the AnalysisOrchestrator.

Requests flow into the worker (Analyze, Terminate); responses flow out
(Progress, Result, Error, Cancelled). Each run ends with exactly one of
Result, Error or Cancelled, and nothing for that run follows it. Responses
carry the run_id of the Analyze request they answer.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

from .errors import ErrorKind
from .results import AnalysisResult


@dataclass(frozen=True)
class Analyze:
    ciphertext: str
    alphabet: Optional[str] = None
    known_words: Tuple[str, ...] = ()
    request_id: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "analyze",
            "ciphertext": self.ciphertext,
            "alphabet": self.alphabet,
            "known_words": list(self.known_words),
            "request_id": self.request_id,
        }


@dataclass(frozen=True)
class Terminate:
    def to_dict(self) -> dict[str, Any]:
        return {"type": "terminate"}


@dataclass(frozen=True)
class Progress:
    run_id: int
    stage: str
    percent: int
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "progress",
            "run_id": self.run_id,
            "stage": self.stage,
            "percent": self.percent,
            "message": self.message,
        }


@dataclass(frozen=True)
class Result:
    run_id: int
    key: str
    confidence: float
    decrypted_text: str
    period: int = 0
    score: float = 0.0

    @classmethod
    def from_analysis(cls, run_id: int, result: AnalysisResult) -> "Result":
        return cls(
            run_id=run_id,
            key=result.key,
            confidence=result.confidence,
            decrypted_text=result.decrypted_text,
            period=result.period,
            score=result.score,
        )

    def to_result(self) -> AnalysisResult:
        return AnalysisResult(
            key=self.key,
            confidence=self.confidence,
            decrypted_text=self.decrypted_text,
            period=self.period,
            score=self.score,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "result",
            "run_id": self.run_id,
            "key": self.key,
            "confidence": self.confidence,
            "decrypted_text": self.decrypted_text,
            "period": self.period,
            "score": self.score,
        }


@dataclass(frozen=True)
class Error:
    run_id: int
    kind: ErrorKind
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "error",
            "run_id": self.run_id,
            "kind": self.kind.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class Cancelled:
    run_id: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": "cancelled", "run_id": self.run_id}


Request = Union[Analyze, Terminate]
Response = Union[Progress, Result, Error, Cancelled]


def is_terminal(message: Response) -> bool:
    return isinstance(message, (Result, Error, Cancelled))


def request_from_dict(data: Mapping[str, Any]) -> Request:
    """Parse a serialized request. Raises ValueError on unknown or malformed messages."""
    kind = str(data.get("type", "")).lower()
    if kind == "terminate":
        return Terminate()
    if kind == "analyze":
        ciphertext = data.get("ciphertext")
        if not isinstance(ciphertext, str):
            raise ValueError("Analyze requires a string 'ciphertext'.")
        alphabet = data.get("alphabet")
        if alphabet is not None and not isinstance(alphabet, str):
            raise ValueError("Analyze 'alphabet' must be a string.")
        words = data.get("known_words") or ()
        return Analyze(
            ciphertext=ciphertext,
            alphabet=alphabet,
            known_words=tuple(str(w) for w in words),
            request_id=int(data.get("request_id", 0)),
        )
    raise ValueError(f"Unknown request type {data.get('type')!r}.")
