from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .alphabet import Alphabet
from .languages import get_language

# camelCase names accepted alongside the snake_case field names
_ALIASES = {
    "alphabet": "alphabet",
    "minKeyLength": "min_key_length",
    "maxKeyLength": "max_key_length",
    "seedSequenceLength": "seed_sequence_length",
    "analysisTimeoutMs": "analysis_timeout_ms",
    "referenceLanguage": "reference_language",
    "minCiphertextLength": "min_ciphertext_length",
    "topCandidates": "top_candidates",
    "columnWorkers": "column_workers",
}


@dataclass(frozen=True)
class AnalysisConfig:
    # None -> the reference language's own alphabet
    alphabet: Optional[str] = None
    min_key_length: int = 2
    max_key_length: int = 30
    seed_sequence_length: int = 3
    analysis_timeout_ms: int = 30000
    reference_language: str = "english"
    min_ciphertext_length: int = 50
    top_candidates: int = 3
    column_workers: int = 1

    def __post_init__(self) -> None:
        if not (1 <= self.min_key_length <= self.max_key_length):
            raise ValueError("minKeyLength/maxKeyLength must satisfy 1 <= min <= max.")
        if not (3 <= self.seed_sequence_length <= 4):
            raise ValueError("seedSequenceLength must be 3 or 4.")
        if self.analysis_timeout_ms <= 0:
            raise ValueError("analysisTimeoutMs must be positive.")
        if self.min_ciphertext_length < 1:
            raise ValueError("minCiphertextLength must be positive.")
        if self.top_candidates < 1:
            raise ValueError("topCandidates must be at least 1.")
        if self.column_workers < 1:
            raise ValueError("columnWorkers must be at least 1.")
        # fail early on unknown languages
        get_language(self.reference_language)

    @property
    def timeout_seconds(self) -> float:
        return self.analysis_timeout_ms / 1000.0

    def resolved_alphabet(self) -> Alphabet:
        if self.alphabet:
            return Alphabet(self.alphabet)
        return get_language(self.reference_language).alphabet

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalysisConfig":
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for raw_key, value in data.items():
            name = _ALIASES.get(raw_key, raw_key)
            if name not in known:
                raise ValueError(f"Unknown config option '{raw_key}'.")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AnalysisConfig":
        """Load options from a JSON object file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Config file must contain a JSON object.")
        return cls.from_mapping(data)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
