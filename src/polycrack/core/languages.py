from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Iterable, Union

from .alphabet import LATIN_ALPHABET, Alphabet
from .features import FrequencyTable

logger = logging.getLogger(__name__)

# Typical English letter frequencies.
_ENGLISH_FREQ = {
    "A": 0.08167, "B": 0.01492, "C": 0.02782, "D": 0.04253, "E": 0.12702, "F": 0.02228,
    "G": 0.02015, "H": 0.06094, "I": 0.06966, "J": 0.00153, "K": 0.00772, "L": 0.04025,
    "M": 0.02406, "N": 0.06749, "O": 0.07507, "P": 0.01929, "Q": 0.00095, "R": 0.05987,
    "S": 0.06327, "T": 0.09056, "U": 0.02758, "V": 0.00978, "W": 0.02360, "X": 0.00150,
    "Y": 0.01974, "Z": 0.00074,
}

_ENGLISH_WORDS_FALLBACK = frozenset({
    "THE", "AND", "THAT", "HAVE", "FOR", "NOT", "WITH", "YOU", "THIS", "BUT",
    "HIS", "FROM", "THEY", "WILL", "WOULD", "THERE", "THEIR", "WHAT", "ABOUT",
    "WHICH", "WHEN", "CAN", "YOUR", "SOME", "COULD", "THEM", "SEE", "LIKE",
    "THEN", "OTHER", "WERE", "TIME", "LOOK", "TWO", "MORE", "WAY",
    "CAME", "THAN", "ITS", "OVER", "ONLY", "AFTER", "MANY", "ANY", "MAKE",
    "BACK", "THROUGH", "YEARS", "WHERE", "MUCH", "BEFORE", "DOWN", "SHOULD",
    "BECAUSE", "EVEN", "THOSE", "PEOPLE", "WELL", "MIGHT", "STILL", "OWN",
    "JUST", "STATE", "HERE", "BOTH", "BETWEEN", "NEED", "EACH", "THESE",
    "MOST", "WHILE", "AGAIN", "SUCH", "FEW", "DURING", "UNDER",
    "PLACE", "WITHOUT", "NORTH", "EAST", "CLOCK", "UNTIL", "BERLIN",
    "ARE", "WAS", "ONE", "ALL", "HAS", "HAD", "OUT", "WHO", "BEEN", "INTO",
    "UPON", "SAID", "THEREFORE", "GOVERNMENT", "AMONG", "SHALL", "OUR", "MEN",
    "A", "I", "TO", "OF", "IN", "IS", "IT", "ON", "AS", "BE", "OR", "AT", "BY",
    "WE", "DO", "IF", "AN", "GO", "HE", "ME", "MY", "NO", "SO", "UP", "US",
})

RUSSIAN_ALPHABET = "АБВГДЕЁЖЗИЙКЛМНОПРСТУФХЦЧШЩЪЫЬЭЮЯ"

_RUSSIAN_FREQ = {
    "О": 0.10983, "Е": 0.08483, "А": 0.07998, "И": 0.07367, "Н": 0.06700, "Т": 0.06318,
    "С": 0.05473, "Р": 0.04746, "В": 0.04533, "Л": 0.04343, "К": 0.03486, "М": 0.03203,
    "Д": 0.02977, "П": 0.02804, "У": 0.02615, "Я": 0.02001, "Ы": 0.01898, "Ь": 0.01735,
    "Г": 0.01687, "З": 0.01641, "Б": 0.01592, "Ч": 0.01450, "Й": 0.01208, "Х": 0.00966,
    "Ж": 0.00940, "Ш": 0.00718, "Ю": 0.00639, "Ц": 0.00486, "Щ": 0.00361, "Э": 0.00331,
    "Ф": 0.00267, "Ъ": 0.00037, "Ё": 0.00013,
}

_RUSSIAN_WORDS_FALLBACK = frozenset({
    "И", "В", "НЕ", "НА", "Я", "БЫТЬ", "ОН", "С", "ЧТО", "А", "ПО", "ЭТО", "ОНА",
    "ЭТОТ", "К", "НО", "ОНИ", "МЫ", "КАК", "ИЗ", "У", "КОТОРЫЙ", "ТО", "ЗА", "СВОЙ",
    "ВЕСЬ", "ГОД", "ОТ", "ТАК", "О", "ДЛЯ", "ТЫ", "ЖЕ", "ВСЕ", "ТОТ", "МОЧЬ", "ВЫ",
    "ЧЕЛОВЕК", "ТАКОЙ", "ЕГО", "СКАЗАТЬ", "ТОЛЬКО", "ИЛИ", "ЕЩЕ", "БЫ", "СЕБЯ",
    "ОДИН", "КАКОЙ", "КОГДА", "УЖЕ", "ДО", "ВРЕМЯ", "ЕСЛИ", "САМ", "НЕТ", "ДА",
    "БЫЛ", "БЫЛО", "БЫЛА", "ОЧЕНЬ", "ГДЕ", "ЕСТЬ", "ЧТОБЫ", "ТЕПЕРЬ", "ТОЖЕ",
    "ДЕЛО", "ЖИЗНЬ", "ДЕНЬ", "РУКА", "РАЗ", "ГЛАЗ", "ПОСЛЕ", "ДОМ", "СЛОВО",
})



def _parse_words(raw: str, alphabet: Alphabet) -> set[str]:
    words = set()
    for line in raw.splitlines():
        w = line.strip()
        if not w or w.startswith("#"):
            continue
        w = alphabet.filter(w)
        if w:
            words.add(w)
    return words


def _packaged_words(filename: str, alphabet: Alphabet, fallback: frozenset) -> frozenset:
    """Word list shipped in polycrack.data, or the inline fallback if it cannot be read."""
    try:
        raw = resources.files("polycrack.data").joinpath(filename).read_text(encoding="utf-8")
    except (ModuleNotFoundError, OSError) as e:
        logger.warning("Word list %s unavailable (%s); using the built-in list", filename, e)
        return fallback
    return frozenset(_parse_words(raw, alphabet) | fallback)


@dataclass(frozen=True)
class Language:
    name: str
    alphabet: Alphabet
    frequencies: FrequencyTable
    words: frozenset

    def with_words(self, extra: Iterable[str]) -> "Language":
        merged = set(self.words)
        merged.update(self.alphabet.filter(w) for w in extra)
        merged.discard("")
        return Language(self.name, self.alphabet, self.frequencies, frozenset(merged))


_LATIN = Alphabet(LATIN_ALPHABET)
_CYRILLIC = Alphabet(RUSSIAN_ALPHABET)

_LANGUAGES = {
    "english": Language(
        name="english",
        alphabet=_LATIN,
        frequencies=FrequencyTable(_ENGLISH_FREQ),
        words=_packaged_words("english_words.txt", _LATIN, _ENGLISH_WORDS_FALLBACK),
    ),
    "russian": Language(
        name="russian",
        alphabet=_CYRILLIC,
        frequencies=FrequencyTable(_RUSSIAN_FREQ),
        words=_packaged_words("russian_words.txt", _CYRILLIC, _RUSSIAN_WORDS_FALLBACK),
    ),
}


def available_languages() -> list[str]:
    return sorted(_LANGUAGES)


def get_language(name: str = "english") -> Language:
    key = (name or "").lower().strip()
    if key not in _LANGUAGES:
        raise ValueError(f"Unknown language '{name}'. Available: {', '.join(available_languages())}")
    return _LANGUAGES[key]


def load_words(path: Union[str, Path]) -> set[str]:
    """
    Read a word list (one word per line). Blank lines and lines starting with '#'
    are skipped; words are upper-cased.
    """
    raw = Path(path).read_text(encoding="utf-8")
    words = set()
    for line in raw.splitlines():
        w = line.strip()
        if not w or w.startswith("#"):
            continue
        words.add(w.upper())
    logger.debug("Loaded %d words from %s", len(words), path)
    return words
