import json

from typer.testing import CliRunner

from polycrack.classical.vigenere import encrypt
from polycrack.cli import app

runner = CliRunner()


def test_encrypt_decrypt():
    result = runner.invoke(app, ["encrypt", "attack at dawn", "--key", "LEMON"])
    assert result.exit_code == 0
    assert result.output.strip() == "LXFOPVEFRNHR"

    result = runner.invoke(app, ["decrypt", "LXFOPVEFRNHR", "-k", "LEMON"])
    assert result.output.strip() == "ATTACKATDAWN"


def test_keep_format():
    result = runner.invoke(app, ["encrypt", "Attack at dawn!", "-k", "LEMON", "--keep-format"])
    assert result.output.strip() == "Lxfopv ef rnhr!"


def test_partial_key_decrypt():
    result = runner.invoke(app, ["decrypt", "LXFOPVEFRNHR", "-k", "LE?ON"])
    assert result.output.strip() == "AT?ACKA?DAWN"


def test_findkey():
    result = runner.invoke(app, ["findkey", "LXFOPVEFRNHR", "DAWN", "--offset", "8"])
    assert result.exit_code == 0
    assert result.output.strip() == "ONLE"


def test_bad_alphabet_is_usage_error():
    result = runner.invoke(app, ["encrypt", "HELLO", "-k", "KEY", "-a", "ABC"])
    assert result.exit_code == 2


def test_periods(sample_letters):
    result = runner.invoke(app, ["periods", encrypt(sample_letters, "LEMON")])
    assert result.exit_code == 0
    assert "kasiski" in result.output
    assert runner.invoke(app, ["periods", "SHORT"]).exit_code == 2


def test_known(sample_letters):
    ct = encrypt(sample_letters[:400], "LEMON")
    result = runner.invoke(app, ["known", ct, "-w", "NECESSARY", "--top", "1"])
    assert result.exit_code == 0
    assert "key=LEMON" in result.output


def test_crack(sample_letters):
    result = runner.invoke(app, ["crack", encrypt(sample_letters, "LEMON")])
    assert result.exit_code == 0
    assert "key=LEMON" in result.output
    assert sample_letters in result.output


def test_crack_json(sample_letters):
    result = runner.invoke(app, ["crack", encrypt(sample_letters, "LEMON"), "--json"])
    assert result.exit_code == 0
    lines = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
    assert lines[-1]["type"] == "result"
    assert lines[-1]["key"] == "LEMON"
    assert {m["type"] for m in lines[:-1]} == {"progress"}


def test_crack_short_text_fails():
    result = runner.invoke(app, ["crack", "SHORT"])
    assert result.exit_code == 1
    assert "InsufficientCiphertext" in result.output


def test_analyze_command():
    result = runner.invoke(app, ["analyze", "HELLO WORLD", "--freqs", "--iocmax", "4"])
    assert result.exit_code == 0
    assert "alphabet_symbols: 10" in result.output
    assert "Top IoC candidates" in result.output
