import pytest

from polycrack.classical.kasiski import (
    KeyLengthEstimator,
    factors_in_range,
    kasiski_votes,
    repeated_sequences,
)
from polycrack.classical.vigenere import encrypt
from polycrack.core.alphabet import Alphabet
from polycrack.core.errors import ErrorKind, InsufficientCiphertext


def test_factors_in_range():
    assert factors_in_range(30, 2, 30) == {2, 3, 5, 6, 10, 15, 30}
    assert factors_in_range(7, 2, 30) == {7}
    assert factors_in_range(36, 4, 9) == {4, 6, 9}
    assert factors_in_range(1, 2, 30) == set()
    assert factors_in_range(0, 2, 30) == set()


def test_repeated_sequences():
    assert repeated_sequences("ABCXABCYABC", 3) == {"ABC": [0, 4, 8]}
    assert repeated_sequences("ABCDEFG", 3) == {}


def test_votes_use_pairwise_distances():
    # distances 10, 25 and 15
    votes = kasiski_votes({"ABC": [0, 10, 25]}, 2, 30)
    assert votes[5] == 3
    assert votes[2] == 1 and votes[3] == 1
    assert votes[10] == 1 and votes[15] == 1 and votes[25] == 1


def test_kasiski_finds_period(sample_letters):
    ct = encrypt(sample_letters, "LEMON")
    candidates = KeyLengthEstimator().estimate(ct)
    assert len(candidates) == 3
    assert all(c.method == "kasiski" for c in candidates)
    assert any(c.period % 5 == 0 for c in candidates)
    scores = [c.score for c in candidates]
    assert scores == sorted(scores, reverse=True)


def test_candidates_stay_within_bounds(sample_letters):
    ct = encrypt(sample_letters, "CRYPTO")
    est = KeyLengthEstimator(min_key_length=4, max_key_length=8, top_n=5)
    for c in est.estimate(ct):
        assert 4 <= c.period <= 8


def test_short_ciphertext_rejected():
    with pytest.raises(InsufficientCiphertext) as exc:
        KeyLengthEstimator().estimate("A" * 49)
    assert exc.value.kind is ErrorKind.INSUFFICIENT_CIPHERTEXT


def test_ioc_fallback_without_repeats():
    # every symbol occurs once, so no n-gram repeats and every column IoC is zero
    alpha = Alphabet("0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwx")
    candidates = KeyLengthEstimator().estimate(alpha.symbols, alpha)
    assert [c.method for c in candidates] == ["ioc"] * 3
    assert [c.period for c in candidates] == [2, 3, 4]


def test_checkpoint_reports_progress(sample_letters):
    calls = []
    KeyLengthEstimator(chunk_size=100).estimate(
        encrypt(sample_letters, "LEMON"), checkpoint=lambda done, total: calls.append((done, total))
    )
    assert len(calls) > 1
    assert calls[-1][0] == calls[-1][1]
    assert [d for d, _ in calls] == sorted(d for d, _ in calls)


def test_checkpoint_can_abort(sample_letters):
    class Stop(Exception):
        pass

    def checkpoint(done, total):
        raise Stop

    with pytest.raises(Stop):
        KeyLengthEstimator().estimate(encrypt(sample_letters, "LEMON"), checkpoint=checkpoint)
