from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional

from polycrack.classical.columns import ColumnFrequencyAnalyzer
from polycrack.classical.kasiski import KeyLengthEstimator
from polycrack.classical.known_plaintext import CandidateKeyGenerator

from .alphabet import Alphabet
from .config import AnalysisConfig
from .errors import (
    AnalysisCancelled,
    AnalysisTimedOut,
    CipherError,
    ErrorKind,
    InsufficientCiphertext,
    NoValidKey,
    error_for,
)
from .languages import get_language
from .messages import (
    Analyze,
    Cancelled,
    Error,
    Progress,
    Request,
    Response,
    Result,
    Terminate,
    is_terminal,
)
from .results import AnalysisResult, KeyCandidate
from .scoring import KeyScorer
from .utils import reduce_repeating_key

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    IDLE = "idle"
    KEY_LENGTH_ESTIMATION = "key_length_estimation"
    FREQUENCY_ANALYSIS = "frequency_analysis"
    REFINEMENT = "refinement"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# Overall percent range owned by each working stage (40% / 40% / 20%).
_STAGE_SPAN = {
    Stage.KEY_LENGTH_ESTIMATION: (0, 40),
    Stage.FREQUENCY_ANALYSIS: (40, 80),
    Stage.REFINEMENT: (80, 100),
}

_SHUTDOWN = object()


@dataclass
class OrchestratorState:
    """Everything one run owns. Created per Analyze and touched only by the worker thread."""

    run_id: int
    stage: Stage = Stage.IDLE
    cancelled: bool = False
    last_percent: int = -1
    result: Optional[AnalysisResult] = None
    started: float = field(default_factory=time.monotonic)


class AnalysisOrchestrator:
    """
    Runs Kasiski/IoC key-length estimation, per-column frequency analysis and
    candidate refinement on a dedicated worker thread.

    The caller talks to the worker only through messages: Analyze/Terminate go
    in via send(), Progress/Result/Error/Cancelled come out via receive().
    One analysis at a time; an Analyze that arrives while a run is active is
    answered with Error(AnalysisInProgress) and otherwise ignored.

    Usage::

        with AnalysisOrchestrator() as orch:
            result = orch.run(ciphertext, on_progress=print)
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        *,
        estimator: Optional[KeyLengthEstimator] = None,
        analyzer: Optional[ColumnFrequencyAnalyzer] = None,
        scorer: Optional[KeyScorer] = None,
        generator: Optional[CandidateKeyGenerator] = None,
    ):
        self.config = config or AnalysisConfig()
        language = get_language(self.config.reference_language)

        self.estimator = estimator or KeyLengthEstimator(
            min_key_length=self.config.min_key_length,
            max_key_length=self.config.max_key_length,
            seed_length=self.config.seed_sequence_length,
            min_ciphertext_length=self.config.min_ciphertext_length,
            top_n=self.config.top_candidates,
        )
        self.analyzer = analyzer or ColumnFrequencyAnalyzer(
            language.frequencies, workers=self.config.column_workers
        )
        self.scorer = scorer or KeyScorer(language)
        self.generator = generator or CandidateKeyGenerator()

        self._inbox: queue.Queue = queue.Queue()
        # held while a request is queued and while a run publishes its terminal message
        self._handoff = threading.Lock()
        self._outbox: queue.Queue = queue.Queue()
        self._ids = itertools.count(1)
        self._closed = False
        self._shutdown_pending = False

        self._thread = threading.Thread(target=self._serve, name="polycrack-orchestrator", daemon=True)
        self._thread.start()

    # ------------------------------------------------------------------ #
    #  Caller side
    # ------------------------------------------------------------------ #

    def __enter__(self) -> "AnalysisOrchestrator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def send(self, request: Request) -> Optional[int]:
        """Queue a request for the worker. Returns the run id for Analyze requests."""
        if self._closed:
            raise RuntimeError("Orchestrator is closed.")
        if isinstance(request, Analyze):
            if not request.request_id:
                request = replace(request, request_id=next(self._ids))
            with self._handoff:
                self._inbox.put(request)
            return request.request_id
        if isinstance(request, Terminate):
            with self._handoff:
                self._inbox.put(request)
            return None
        raise TypeError(f"Unsupported request: {request!r}")

    def analyze(
        self,
        ciphertext: str,
        alphabet: Optional[str] = None,
        known_words: Iterable[str] = (),
    ) -> int:
        return self.send(Analyze(ciphertext=ciphertext, alphabet=alphabet, known_words=tuple(known_words)))

    def terminate(self) -> None:
        self.send(Terminate())

    def receive(self, timeout: Optional[float] = None) -> Response:
        """Next response message; raises queue.Empty if none arrives within `timeout`."""
        return self._outbox.get(timeout=timeout)

    def messages(self, run_id: Optional[int] = None, timeout: Optional[float] = None) -> Iterator[Response]:
        """
        Yield responses until the terminal message of `run_id` (or of any run when
        run_id is None). `timeout` bounds the wait for each message.
        """
        while True:
            msg = self.receive(timeout=timeout)
            yield msg
            if is_terminal(msg) and (run_id is None or msg.run_id == run_id):
                return

    def run(
        self,
        ciphertext: str,
        alphabet: Optional[str] = None,
        known_words: Iterable[str] = (),
        *,
        timeout: Optional[float] = None,
        on_progress: Optional[Callable[[Progress], None]] = None,
        on_message: Optional[Callable[[Response], None]] = None,
    ) -> AnalysisResult:
        """
        Blocking convenience: analyze, forward progress, and return the result.

        `on_message` sees every response of this run, terminal one included.
        The timeout (default: analysis_timeout_ms) is armed here, on the caller's
        side: when it expires a Terminate is sent, the worker's acknowledgement is
        awaited, an Error(AnalysisTimedOut) goes to `on_message` and
        AnalysisTimedOut is raised.
        Errors come back as the matching CipherError; a cancelled run raises
        AnalysisCancelled.
        """
        limit = self.config.timeout_seconds if timeout is None else timeout
        run_id = self.analyze(ciphertext, alphabet, known_words)
        deadline = time.monotonic() + limit

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._abandon(run_id, limit, on_message)
            try:
                msg = self.receive(timeout=remaining)
            except queue.Empty:
                self._abandon(run_id, limit, on_message)

            if getattr(msg, "run_id", None) != run_id:
                continue
            if on_message is not None:
                on_message(msg)
            if isinstance(msg, Progress):
                if on_progress is not None:
                    on_progress(msg)
            elif isinstance(msg, Result):
                return msg.to_result()
            elif isinstance(msg, Error):
                raise error_for(msg.kind)(msg.message)
            elif isinstance(msg, Cancelled):
                raise AnalysisCancelled(f"Analysis {run_id} was cancelled.")

    def _abandon(
        self, run_id: int, limit: float, on_message: Optional[Callable[[Response], None]] = None
    ) -> None:
        self.terminate()
        try:
            for _ in self.messages(run_id, timeout=5.0):
                pass
        except queue.Empty:
            logger.warning("Run %d did not acknowledge Terminate", run_id)
        reason = f"No result within {limit:.1f}s; analysis terminated."
        if on_message is not None:
            on_message(Error(run_id, ErrorKind.ANALYSIS_TIMED_OUT, reason))
        raise AnalysisTimedOut(reason)

    def close(self, timeout: float = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._inbox.put(_SHUTDOWN)
        self._thread.join(timeout)

    # ------------------------------------------------------------------ #
    #  Worker side
    # ------------------------------------------------------------------ #

    def _serve(self) -> None:
        while not self._shutdown_pending:
            request = self._inbox.get()
            if request is _SHUTDOWN:
                break
            if isinstance(request, Analyze):
                self._run(request)
            elif isinstance(request, Terminate):
                logger.debug("Terminate received with no analysis in flight")

    def _emit(self, message: Response) -> None:
        self._outbox.put(message)

    def _run(self, request: Analyze) -> None:
        state = OrchestratorState(run_id=request.request_id)
        terminal: Response
        try:
            state.result = self._pipeline(request, state)
        except AnalysisCancelled:
            state.stage = Stage.CANCELLED
            terminal = Cancelled(state.run_id)
        except CipherError as e:
            state.stage = Stage.FAILED
            terminal = Error(state.run_id, e.kind, str(e))
        except Exception as e:
            logger.exception("Analysis %d failed unexpectedly", state.run_id)
            state.stage = Stage.FAILED
            terminal = Error(state.run_id, ErrorKind.INTERNAL, repr(e))
        else:
            state.stage = Stage.COMPLETED
            terminal = Result.from_analysis(state.run_id, state.result)

        # requests queued after the last suspension point still saw this run in flight
        with self._handoff:
            self._drain(state)
            self._emit(terminal)
        logger.debug(
            "Run %d ended %s after %.2fs", state.run_id, state.stage.value, time.monotonic() - state.started
        )

    def _pipeline(self, request: Analyze, state: OrchestratorState) -> AnalysisResult:
        alphabet = Alphabet(request.alphabet) if request.alphabet else self.config.resolved_alphabet()
        text = alphabet.filter(request.ciphertext or "")
        if len(text) < self.config.min_ciphertext_length:
            raise InsufficientCiphertext(
                f"Ciphertext has {len(text)} alphabet symbols; "
                f"at least {self.config.min_ciphertext_length} are required."
            )

        self._enter(state, Stage.KEY_LENGTH_ESTIMATION, "Kasiski examination")
        lengths = self.estimator.estimate(text, alphabet, checkpoint=self._checkpoint(state))
        if not lengths:
            raise NoValidKey("No key length candidates could be estimated.")
        self._progress(state, 100, "Key length candidates: " + ", ".join(str(c.period) for c in lengths))

        self._enter(state, Stage.FREQUENCY_ANALYSIS, "Frequency analysis")
        hypotheses: list[KeyCandidate] = []
        for i, cand in enumerate(lengths):
            step = self._checkpoint(state, base=i, parts=len(lengths))
            hypothesis = self.analyzer.recover_key(text, cand.period, alphabet, checkpoint=step)
            hypotheses.append(hypothesis)
            self._progress(
                state, 100 * (i + 1) / len(lengths), f"Potential key (period {cand.period}): {hypothesis.key}"
            )

        self._enter(state, Stage.REFINEMENT, "Scoring key candidates")
        pool = self._refinement_pool(text, hypotheses, request.known_words, alphabet)
        ranked = self.scorer.rank(
            text, pool, alphabet, request.known_words, checkpoint=self._checkpoint(state)
        )
        best = ranked[0]
        self._progress(state, 100, f"Best key: {best.key}")

        return AnalysisResult(
            key=best.key,
            confidence=best.confidence,
            decrypted_text=best.plaintext,
            period=len(best.key),
            score=best.score,
        )

    def _refinement_pool(
        self,
        text: str,
        hypotheses: list[KeyCandidate],
        known_words: Iterable[str],
        alphabet: Alphabet,
    ) -> list[KeyCandidate]:
        pool: dict[str, KeyCandidate] = {}
        for hyp in hypotheses:
            pool.setdefault(hyp.key, hyp)
            reduced = reduce_repeating_key(hyp.key)
            if reduced != hyp.key:
                pool.setdefault(reduced, KeyCandidate(key=reduced, source="reduced", period=len(reduced)))

        words = [w for w in known_words if w]
        if words:
            extra = self.generator.generate(text, words, alphabet)
            for cand in sorted(extra, key=lambda c: (len(c.key), c.key)):
                pool.setdefault(cand.key, cand)

        logger.debug("Refinement pool: %d candidates", len(pool))
        return list(pool.values())

    # -- suspension points ------------------------------------------------

    def _poll(self, state: OrchestratorState) -> None:
        """Drain the inbox, then abort the run if a Terminate has been seen."""
        self._drain(state)
        if state.cancelled:
            raise AnalysisCancelled(f"Analysis {state.run_id} cancelled during {state.stage.value}.")
        # let the host threads run
        time.sleep(0)

    def _drain(self, state: OrchestratorState) -> None:
        """
        Take every pending request: Terminate (and shutdown) mark the run cancelled,
        Analyze is answered with AnalysisInProgress.
        """
        while True:
            try:
                request = self._inbox.get_nowait()
            except queue.Empty:
                break
            if request is _SHUTDOWN:
                self._shutdown_pending = True
                state.cancelled = True
            elif isinstance(request, Terminate):
                state.cancelled = True
            elif isinstance(request, Analyze):
                self._emit(
                    Error(
                        request.request_id,
                        ErrorKind.ANALYSIS_IN_PROGRESS,
                        f"Analysis {state.run_id} is still running.",
                    )
                )

    def _checkpoint(self, state: OrchestratorState, base: int = 0, parts: int = 1) -> Callable[[int, int], None]:
        def checkpoint(done: int, total: int) -> None:
            self._poll(state)
            frac = (base + (done / total if total else 1.0)) / parts
            self._progress(state, 100 * frac)

        return checkpoint

    def _enter(self, state: OrchestratorState, stage: Stage, message: str) -> None:
        self._poll(state)
        state.stage = stage
        logger.debug("Run %d: %s", state.run_id, stage.value)
        self._progress(state, 0, message)

    def _progress(self, state: OrchestratorState, stage_percent: float, message: str = "") -> None:
        lo, hi = _STAGE_SPAN[state.stage]
        stage_percent = max(0.0, min(100.0, stage_percent))
        overall = max(int(lo + (hi - lo) * stage_percent / 100.0), state.last_percent)
        if overall == state.last_percent and not message:
            return
        state.last_percent = overall
        self._emit(Progress(state.run_id, state.stage.value, overall, message))
