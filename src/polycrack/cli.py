from __future__ import annotations

import json
import logging
from typing import List, Optional

import typer

from polycrack.classical.kasiski import KeyLengthEstimator
from polycrack.classical.known_plaintext import crack_with_known_words, derive_key
from polycrack.classical.vigenere import Direction, reveal, transform, transform_preserving
from polycrack.core.alphabet import Alphabet
from polycrack.core.config import AnalysisConfig
from polycrack.core.errors import AnalysisCancelled, CipherError
from polycrack.core.features import FrequencyTable, analyze_text, ioc_scan
from polycrack.core.languages import get_language, load_words
from polycrack.core.messages import Progress, Response
from polycrack.core.orchestrator import AnalysisOrchestrator
from polycrack.core.scoring import KeyScorer

app = typer.Typer(help="polycrack: repeating-key polyalphabetic cipher tools + cryptanalysis.")


class _Options:
    config: AnalysisConfig = AnalysisConfig()
    words_file: Optional[str] = None


_opts = _Options()


@app.callback()
def _init(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log analysis stages to stderr."),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Reference language (english, russian)."),
    config: Optional[str] = typer.Option(None, "--config", help="JSON file with analysis options."),
    words: Optional[str] = typer.Option(None, "--words", help="Extra dictionary file, one word per line."),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        cfg = AnalysisConfig.from_file(config) if config else AnalysisConfig()
        if language:
            data = cfg.to_dict()
            data["reference_language"] = language
            cfg = AnalysisConfig.from_mapping(data)
    except (OSError, ValueError) as e:
        raise typer.BadParameter(str(e))
    _opts.config = cfg
    _opts.words_file = words


def _alphabet(value: Optional[str]) -> Alphabet:
    try:
        return Alphabet(value) if value else _opts.config.resolved_alphabet()
    except CipherError as e:
        raise typer.BadParameter(str(e))


def _scorer() -> KeyScorer:
    language = get_language(_opts.config.reference_language)
    if _opts.words_file:
        language = language.with_words(load_words(_opts.words_file))
    return KeyScorer(language)


def _alphabet_option():
    return typer.Option(None, "--alphabet", "-a", help="Cipher alphabet (default: the language's letters).")


def _run_transform(direction: Direction, text: str, key: str, alphabet: Optional[str], keep_format: bool) -> str:
    alpha = _alphabet(alphabet)
    try:
        if keep_format:
            return transform_preserving(text, key, direction, alpha)
        return transform(text, key, direction, alpha)
    except CipherError as e:
        raise typer.BadParameter(str(e))


@app.command()
def encrypt(
    text: str = typer.Argument(..., help="Plaintext to encrypt."),
    key: str = typer.Option(..., "--key", "-k"),
    alphabet: Optional[str] = _alphabet_option(),
    keep_format: bool = typer.Option(False, "--keep-format", help="Keep spaces/punctuation and letter case."),
):
    """Encrypt with a repeating key."""
    typer.echo(_run_transform(Direction.ENCRYPT, text, key, alphabet, keep_format))


@app.command()
def decrypt(
    text: str = typer.Argument(..., help="Ciphertext to decrypt."),
    key: str = typer.Option(..., "--key", "-k", help="Key; '?' marks unknown key positions."),
    alphabet: Optional[str] = _alphabet_option(),
    keep_format: bool = typer.Option(False, "--keep-format", help="Keep spaces/punctuation and letter case."),
):
    """Decrypt when you already have the key (or part of it)."""
    if "?" in key:
        try:
            typer.echo(reveal(text, key, _alphabet(alphabet)))
        except CipherError as e:
            raise typer.BadParameter(str(e))
        return
    typer.echo(_run_transform(Direction.DECRYPT, text, key, alphabet, keep_format))


@app.command()
def analyze(
    text: str,
    alphabet: Optional[str] = _alphabet_option(),
    iocmax: int = typer.Option(0, help="If >0, show IoC scan up to this key length."),
    freqs: bool = typer.Option(False, "--freqs", help="Show the observed symbol frequencies."),
):
    """Text statistics against the alphabet."""
    alpha = _alphabet(alphabet)
    info = analyze_text(text, alpha)
    for k, v in info.items():
        typer.echo(f"{k}: {v}")

    if iocmax > 0:
        typer.echo("\nTop IoC candidates:")
        for klen, val in ioc_scan(text, alpha, max_len=iocmax)[:10]:
            typer.echo(f"  k={klen:2d}  avg_ioc={val:.5f}")

    if freqs:
        typer.echo("\nFrequencies:")
        for ch, f in FrequencyTable.observed(text, alpha).most_common():
            typer.echo(f"  {ch}  {f:.4f}")


@app.command()
def periods(
    text: str,
    alphabet: Optional[str] = _alphabet_option(),
    top: int = typer.Option(3, "--top", "-t"),
):
    """Most probable key lengths (Kasiski, IoC fallback)."""
    cfg = _opts.config
    estimator = KeyLengthEstimator(
        min_key_length=cfg.min_key_length,
        max_key_length=cfg.max_key_length,
        seed_length=cfg.seed_sequence_length,
        min_ciphertext_length=cfg.min_ciphertext_length,
        top_n=top,
    )
    try:
        candidates = estimator.estimate(text, _alphabet(alphabet))
    except CipherError as e:
        raise typer.BadParameter(str(e))
    for c in candidates:
        typer.echo(f"  period={c.period:2d}  score={c.score:.4f}  ({c.method})")


@app.command()
def findkey(
    ciphertext: str,
    plaintext: str,
    offset: int = typer.Option(0, "--offset", "-o", help="Where the plaintext starts in the ciphertext."),
    alphabet: Optional[str] = _alphabet_option(),
):
    """Key symbols implied by a known plaintext at a fixed offset ('?' = unknown)."""
    try:
        typer.echo(derive_key(ciphertext, plaintext, _alphabet(alphabet), offset=offset))
    except (CipherError, ValueError) as e:
        raise typer.BadParameter(str(e))


@app.command()
def known(
    ciphertext: str,
    word: List[str] = typer.Option(..., "--word", "-w", help="Known plaintext fragment. Can repeat."),
    alphabet: Optional[str] = _alphabet_option(),
    top: int = typer.Option(5, "--top", "-t"),
):
    """Known-plaintext attack: derive keys from fragments and rank them."""
    try:
        ranked = crack_with_known_words(ciphertext, word, _alphabet(alphabet), _scorer())
    except CipherError as e:
        raise typer.BadParameter(str(e))

    for i, r in enumerate(ranked[:top], start=1):
        typer.echo(f"#{i}  key={r.key}  score={r.score:.2f}  conf={r.confidence:.2f}  source={r.candidate.source}")
        typer.echo(r.plaintext)
        typer.echo("-" * 60)


@app.command()
def crack(
    text: str = typer.Argument(...),
    alphabet: Optional[str] = _alphabet_option(),
    word: Optional[List[str]] = typer.Option(None, "--word", "-w", help="Known plaintext fragment(s); must appear."),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Give up after this many milliseconds."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw message stream as JSON lines."),
):
    """Recover the key from ciphertext alone (Kasiski -> frequency analysis -> refinement)."""
    cfg = _opts.config
    if timeout_ms is not None:
        data = cfg.to_dict()
        data["analysis_timeout_ms"] = timeout_ms
        try:
            cfg = AnalysisConfig.from_mapping(data)
        except ValueError as e:
            raise typer.BadParameter(str(e))

    def emit(msg: Response) -> None:
        typer.echo(json.dumps(msg.to_dict(), ensure_ascii=False))

    with AnalysisOrchestrator(cfg, scorer=_scorer()) as orch:
        if as_json:
            try:
                orch.run(text, alphabet, word or (), on_message=emit)
            except (AnalysisCancelled, CipherError):
                raise typer.Exit(code=1)
            return

        def show(p: Progress) -> None:
            if p.message:
                typer.echo(f"[{p.percent:3d}%] {p.stage}: {p.message}", err=True)

        try:
            result = orch.run(text, alphabet, word or (), on_progress=show)
        except AnalysisCancelled as e:
            typer.echo(str(e))
            raise typer.Exit(code=1)
        except CipherError as e:
            typer.echo(f"{e.kind.value}: {e}")
            raise typer.Exit(code=1)

    typer.echo(f"key={result.key}  period={result.period}  conf={result.confidence:.2f}  score={result.score:.2f}")
    typer.echo(result.decrypted_text)


def main():
    app()


if __name__ == "__main__":
    main()
