from .alphabet import Alphabet, DEFAULT_ALPHABET
from .config import AnalysisConfig
from .errors import CipherError, ErrorKind
from .features import FrequencyTable, analyze_text, ioc_scan
from .results import AnalysisResult, KeyCandidate, KeyLengthCandidate, ScoredCandidate
from .scoring import KeyScorer

__all__ = [
    "Alphabet",
    "DEFAULT_ALPHABET",
    "AnalysisConfig",
    "CipherError",
    "ErrorKind",
    "FrequencyTable",
    "analyze_text",
    "ioc_scan",
    "AnalysisResult",
    "KeyCandidate",
    "KeyLengthCandidate",
    "ScoredCandidate",
    "KeyScorer",
]
