"""TrimJob — runs one trim request through validation, encode and cleanup."""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from cliptrim.engine import ProgressStream, TranscodeEngine, get_engine
from cliptrim.errors import TrimError, ValidationError
from cliptrim.manifest import EncodeSettings, TrimSettings
from cliptrim.models import TimeWindow, TrimRequest, build_download_name
from cliptrim.strategies import EncodeAttempt, StagedNames, chain_for, run_chain
from cliptrim.validator import validate

logger = logging.getLogger(__name__)


class TrimState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    PREPARING = "preparing"
    STAGING = "staging"
    ATTEMPTING = "attempting"
    FINALIZING = "finalizing"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({TrimState.DONE, TrimState.FAILED})


@dataclass
class TrimResult:
    artifact: bytes
    filename: str
    attempt_label: str
    window: TimeWindow


@dataclass
class TrimStatus:
    """One update pushed to the UI."""

    job_id: str
    state: TrimState
    text: str
    progress: float = 0.0
    # True while an attempt runs and the engine has not reported a usable ratio
    indeterminate: bool = False
    attempt_label: str | None = None
    attempt_index: int | None = None
    result: TrimResult | None = None
    error: TrimError | None = None

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class TrimJob:
    """A single trim of a single request.

    ``run()`` blocks until the job is DONE or FAILED and returns the terminal
    status; every phase change and progress tick is also pushed to
    *on_status*. Engine-phase failures never escape ``run()``.
    """

    def __init__(
        self,
        request: TrimRequest,
        source: bytes,
        engine: TranscodeEngine | None = None,
        settings: TrimSettings | None = None,
        encode: EncodeSettings | None = None,
        on_status: Callable[[TrimStatus], None] | None = None,
    ):
        self.id = uuid.uuid4().hex[:12]
        self.request = request
        self.settings = settings or TrimSettings()
        self.encode = encode or EncodeSettings()
        self.state = TrimState.IDLE
        self.current_attempt_index: int | None = None
        self.current_attempt: EncodeAttempt | None = None
        self.progress = 0.0
        self.result: TrimResult | None = None
        self.error: TrimError | None = None
        self._source = source
        self._engine = engine
        self._on_status = on_status
        self._text = ""
        self._stream: ProgressStream | None = None
        self._indeterminate = False

    # --- status plumbing ---

    def _emit(self) -> TrimStatus:
        status = TrimStatus(
            job_id=self.id,
            state=self.state,
            text=self._text,
            progress=self.progress,
            indeterminate=self.state is TrimState.ATTEMPTING and self._indeterminate,
            attempt_label=self.current_attempt.label if self.current_attempt else None,
            attempt_index=self.current_attempt_index,
            result=self.result,
            error=self.error,
        )
        if self._on_status:
            try:
                self._on_status(status)
            except Exception:
                logger.exception("Status callback failed for trim job %s", self.id)
        return status

    def _enter(self, state: TrimState, text: str) -> TrimStatus:
        self.state = state
        self._text = text
        return self._emit()

    def _set_text(self, text: str) -> None:
        self._text = text
        self._emit()

    def _on_attempt(self, index: int, attempt: EncodeAttempt) -> None:
        self.current_attempt_index = index
        self.current_attempt = attempt
        self.progress = 0.0
        self._indeterminate = True
        self._enter(TrimState.ATTEMPTING, attempt.status_text)

    def _on_progress(self, ratio: float) -> None:
        if self.state is not TrimState.ATTEMPTING:
            return
        self.progress = min(1.0, max(0.0, ratio))
        self._indeterminate = self._stream is not None and self._stream.indeterminate
        self._emit()

    def _fail(self, error: TrimError) -> TrimStatus:
        self.error = error
        if isinstance(error, ValidationError):
            logger.info("Trim job %s rejected: %s", self.id, error)
        else:
            logger.error("Trim job %s failed: %s", self.id, error)
        return self._enter(TrimState.FAILED, error.user_message)

    # --- the state machine ---

    def run(self) -> TrimStatus:
        if self.state is not TrimState.IDLE:
            raise RuntimeError(f"trim job {self.id} has already run")

        media = self.request.media
        logger.info("Trim job %s: %s %s", self.id, media.name, self.request.window)

        self._enter(TrimState.VALIDATING, "Validating...")
        try:
            window = validate(self.request, self.settings)
        except ValidationError as e:
            return self._fail(e)
        self.request = self.request.with_window(window)

        engine = self._engine or get_engine()
        self._enter(TrimState.PREPARING, "Starting engine...")
        try:
            handle = engine.acquire(
                on_status=self._set_text, timeout=self.settings.acquire_timeout
            )
        except TrimError as e:
            return self._fail(e)

        names = StagedNames.for_job(self.id, media.extension)
        try:
            self._process(engine, handle, names)
        except TrimError as e:
            self.error = e
        except Exception as e:
            logger.exception("Trim job %s failed unexpectedly", self.id)
            self.error = TrimError(str(e))
        finally:
            try:
                self._enter(TrimState.CLEANUP, "Cleaning up...")
                engine.purge(handle, names.all())
            finally:
                handle.release()

        if self.error is not None:
            return self._fail(self.error)

        assert self.result is not None
        self.progress = 1.0
        logger.info(
            "Trim job %s done via %s (%d bytes)",
            self.id, self.result.attempt_label, len(self.result.artifact),
        )
        return self._enter(TrimState.DONE, "Done")

    def _process(self, engine: TranscodeEngine, handle, names: StagedNames) -> None:
        self._enter(TrimState.STAGING, "Preparing file...")
        engine.stage_input(handle, self._source, names.input)

        self._stream = engine.progress_stream(handle)
        self._stream.subscribe(self._on_progress)

        def run_one(attempt: EncodeAttempt) -> None:
            engine.run_attempt(handle, attempt, self.request, names, self.encode)

        winner = run_chain(
            chain_for(self.request.media.extension), run_one, on_attempt=self._on_attempt
        )

        self._enter(TrimState.FINALIZING, "Building file...")
        data = engine.fetch_output(handle, names.output)
        self.result = TrimResult(
            artifact=data,
            filename=build_download_name(self.request.media.name),
            attempt_label=winner.label,
            window=self.request.window,
        )
