import pytest

from polycrack.classical.known_plaintext import (
    CandidateKeyGenerator,
    crack_with_known_words,
    derive_key,
    key_segment,
)
from polycrack.classical.vigenere import decrypt, encrypt
from polycrack.core.alphabet import DEFAULT_ALPHABET
from polycrack.core.errors import NoValidKey, NoValidWords
from polycrack.core.results import KeyCandidate


def test_key_segment():
    assert key_segment("LXFOPV", "ATTACK", DEFAULT_ALPHABET) == "LEMONL"
    assert key_segment("LX FOP", "ATTACK", DEFAULT_ALPHABET) is None
    assert key_segment("LX", "ATT", DEFAULT_ALPHABET) is None


def test_derive_key():
    assert derive_key("LXFOPVEFRNHR", "ATTACK") == "LEMONL"
    assert derive_key("LXFOPVEFRNHR", "dawn", offset=8) == "ONLE"
    assert derive_key("LXFOPVEFRNHR", "DAWNS", offset=8) == "ONLE?"
    assert derive_key("LXFOPV", "AT-ACK") == "LE?ONL"
    with pytest.raises(ValueError):
        derive_key("LXFOPV", "AT", offset=-1)


def test_generate_finds_true_key():
    cands = CandidateKeyGenerator().generate("LXFOPVEFRNHR", ["ATTACK"])
    lemon = [c for c in cands if c.key == "LEMON"]
    assert len(lemon) == 1
    assert lemon[0].offset == 0
    assert lemon[0].word == "ATTACK"
    assert lemon[0].source == "known_plaintext"


def test_keys_are_phase_aligned():
    ct = "LXFOPV EFRNHR"
    cands = CandidateKeyGenerator().generate(ct, ["DAWN"])
    at_eight = [c for c in cands if c.offset == 8]
    assert [c.key for c in at_eight] == ["ONLE"]
    assert decrypt(ct, "ONLE")[8:12] == "DAWN"


def test_windows_do_not_straddle_foreign_symbols():
    cands = CandidateKeyGenerator().generate("LXFOPV EFRNHR", ["DAWN"])
    assert cands
    assert all(c.offset not in (4, 5) for c in cands)


def test_no_valid_words():
    with pytest.raises(NoValidWords):
        CandidateKeyGenerator().generate("LXFOPVEFRNHR", ["123", "", "--"])


def test_merge_keeps_longer_key():
    merged = CandidateKeyGenerator._merge(
        [
            KeyCandidate("LEM", source="known_plaintext", word="ATT"),
            KeyCandidate("LEMON", source="known_plaintext", word="ATTACK"),
            KeyCandidate("XYZ", source="known_plaintext", word="ATT"),
        ]
    )
    by_key = {c.key: c for c in merged}
    assert set(by_key) == {"LEMON", "XYZ"}
    assert by_key["LEMON"].source == "merged"
    assert by_key["LEMON"].support == 2


def test_merge_ignores_same_word():
    merged = CandidateKeyGenerator._merge(
        [KeyCandidate("LEM", word="ATT"), KeyCandidate("LEMON", word="ATT")]
    )
    assert {c.key for c in merged} == {"LEM", "LEMON"}


def test_crack_with_known_words(sample_letters):
    plain = sample_letters[:400]
    ranked = crack_with_known_words(encrypt(plain, "LEMON"), ["necessary"])
    assert ranked[0].key == "LEMON"
    assert ranked[0].plaintext == plain
    assert all("NECESSARY" in r.plaintext for r in ranked)


def test_crack_with_impossible_word():
    # a word longer than the ciphertext yields no window at all
    with pytest.raises(NoValidKey):
        crack_with_known_words("LXFOPVEFRNHR", ["ATTACKATDAWNNOW"])
