import json

import pytest

from polycrack.core.alphabet import DEFAULT_ALPHABET, Alphabet
from polycrack.core.config import AnalysisConfig
from polycrack.core.errors import (
    AnalysisTimedOut,
    CipherError,
    ErrorKind,
    InvalidAlphabet,
    NoValidKey,
    error_for,
)
from polycrack.core.features import FrequencyTable, analyze_text, ioc_scan
from polycrack.core.languages import available_languages, get_language, load_words
from polycrack.core.utils import index_of_coincidence, minimal_period, reduce_repeating_key, smallest_shift_period


# ── Alphabet ─────────────────────────────────────────────────────────────────
def test_alphabet_bijection():
    alpha = Alphabet("ABCDEFGHIJ")
    assert len(alpha) == 10
    assert alpha.index("C") == 2
    assert alpha.symbol(2) == "C"
    assert alpha.symbol(12) == "C"
    assert "J" in alpha and "K" not in alpha


def test_alphabet_rejects_duplicates_and_short():
    with pytest.raises(InvalidAlphabet) as exc:
        Alphabet("AABCDEFGHIJK")
    assert exc.value.kind is ErrorKind.INVALID_ALPHABET
    with pytest.raises(InvalidAlphabet):
        Alphabet("ABC")


def test_alphabet_filter_normalizes_case():
    assert DEFAULT_ALPHABET.filter("Hello, World 42!") == "HELLOWORLD"
    assert Alphabet("abcdefghijklmnopqrstuvwxyz").filter("ABC def") == "abcdef"
    mixed = Alphabet("ABCDEabcde")
    assert mixed.filter("AaFf") == "Aa"


def test_alphabet_coerce_and_equality():
    assert Alphabet.coerce("ABCDEFGHIJ") == Alphabet("ABCDEFGHIJ")
    assert Alphabet.coerce(DEFAULT_ALPHABET) is DEFAULT_ALPHABET


# ── Utilities ────────────────────────────────────────────────────────────────
def test_minimal_period():
    assert minimal_period("CYBERCYBER") == 5
    assert minimal_period("LEMON") == 5
    assert minimal_period("AAAA") == 1
    assert minimal_period("ABAB") == 2
    assert reduce_repeating_key("LEMONLEMON") == "LEMON"
    assert reduce_repeating_key("LEMONLEMO") == "LEMONLEMO"


def test_smallest_shift_period_allows_wraparound():
    assert smallest_shift_period("LEMONL") == 5
    assert smallest_shift_period("LEMONLEM") == 5
    assert smallest_shift_period("LEMON") == 5
    assert smallest_shift_period("AB") == 2


def test_index_of_coincidence():
    assert index_of_coincidence("") == 0.0
    assert index_of_coincidence("AAAA") == 1.0
    assert index_of_coincidence("ABCD") == 0.0


# ── Features ─────────────────────────────────────────────────────────────────
def test_observed_frequency_table_sums_to_one():
    table = FrequencyTable.observed("AAB c!", DEFAULT_ALPHABET)
    assert table["A"] == pytest.approx(0.5)
    assert table["C"] == pytest.approx(0.25)
    assert sum(table.freqs.values()) == pytest.approx(1.0)
    assert table.most_common(1) == [("A", 0.5)]


def test_ioc_scan_peaks_at_true_period(sample_letters):
    from polycrack.classical.vigenere import encrypt

    ct = encrypt(sample_letters, "LEMON")
    best = [k for k, _ in ioc_scan(ct, max_len=12)[:3]]
    assert 5 in best or 10 in best


def test_analyze_text_features():
    info = analyze_text("ABAB 12")
    assert info["length"] == 7
    assert info["alphabet_symbols"] == 4
    assert info["unique_symbols"] == 2
    assert info["coverage"] == pytest.approx(4 / 7)
    assert analyze_text("")["length"] == 0


# ── Languages ────────────────────────────────────────────────────────────────
def test_languages():
    assert available_languages() == ["english", "russian"]
    en = get_language("English")
    assert len(en.alphabet) == 26
    assert sum(en.frequencies.freqs.values()) == pytest.approx(1.0, abs=0.01)
    ru = get_language("russian")
    assert len(ru.alphabet) == 33
    with pytest.raises(ValueError):
        get_language("klingon")


def test_load_words(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("# comment\nvigenere\n\nkasiski\n", encoding="utf-8")
    assert load_words(path) == {"VIGENERE", "KASISKI"}
    lang = get_language("english").with_words(load_words(path))
    assert "KASISKI" in lang.words


# ── Config ───────────────────────────────────────────────────────────────────
def test_config_defaults():
    cfg = AnalysisConfig()
    assert (cfg.min_key_length, cfg.max_key_length) == (2, 30)
    assert cfg.seed_sequence_length == 3
    assert cfg.timeout_seconds == 30.0
    assert cfg.resolved_alphabet() == DEFAULT_ALPHABET


def test_config_accepts_camel_case():
    cfg = AnalysisConfig.from_mapping(
        {"minKeyLength": 3, "maxKeyLength": 12, "seedSequenceLength": 4, "analysisTimeoutMs": 60000}
    )
    assert cfg.min_key_length == 3
    assert cfg.max_key_length == 12
    assert cfg.seed_sequence_length == 4
    assert cfg.timeout_seconds == 60.0


def test_config_language_picks_alphabet():
    cfg = AnalysisConfig(reference_language="russian")
    assert len(cfg.resolved_alphabet()) == 33


@pytest.mark.parametrize(
    "data",
    [
        {"bogus": 1},
        {"minKeyLength": 5, "maxKeyLength": 2},
        {"seedSequenceLength": 7},
        {"analysisTimeoutMs": 0},
        {"referenceLanguage": "klingon"},
    ],
)
def test_config_rejects_bad_options(data):
    with pytest.raises(ValueError):
        AnalysisConfig.from_mapping(data)


def test_config_from_file(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"alphabet": "0123456789", "topCandidates": 5}), encoding="utf-8")
    cfg = AnalysisConfig.from_file(path)
    assert cfg.top_candidates == 5
    assert cfg.resolved_alphabet().symbols == "0123456789"


# ── Errors ───────────────────────────────────────────────────────────────────
def test_errors_are_value_errors_with_kinds():
    assert issubclass(CipherError, ValueError)
    assert error_for(ErrorKind.NO_VALID_KEY) is NoValidKey
    assert error_for("AnalysisTimedOut") is AnalysisTimedOut
    assert error_for(ErrorKind.INTERNAL) is CipherError


def test_normalize_keeps_length():
    assert DEFAULT_ALPHABET.normalize("straße") == "STRAßE"
    assert DEFAULT_ALPHABET.filter("straße") == "STRAE"


def test_packaged_word_lists_extend_builtin_words():
    en = get_language("english")
    assert {"THE", "GOVERNMENT", "HAPPINESS", "TOGETHER"} <= en.words
    assert "ЧТОБЫ" in get_language("russian").words
