"""TranscodeEngine — owns the backend and serializes access to it.

There is one engine per process (see ``get_engine``). The backend is loaded
lazily on the first ``acquire`` and kept for the life of the process; a failed
load is not cached, so the next job retries it. A job holds the engine through
an ``EngineHandle`` from staging until cleanup, and a second job waits for the
handle to be released.
"""

import logging
import math
import subprocess
import threading
from typing import Any, Callable, Iterable

from cliptrim.backend import Backend, FFmpegBackend
from cliptrim.errors import EncodeError, EngineBusyError, EngineInitError, EngineIOError
from cliptrim.manifest import EncodeSettings
from cliptrim.models import TrimRequest
from cliptrim.strategies import EncodeAttempt, StagedNames

logger = logging.getLogger(__name__)

LOADING_TEXT = "Loading ffmpeg..."


def _coerce_ratio(value: Any) -> float | None:
    """Clamp a reported ratio to [0,1]; None for values that mean nothing."""
    try:
        ratio = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(ratio):
        return None
    return min(1.0, max(0.0, ratio))


class ProgressStream:
    """Progress for the attempt currently running on the engine.

    Each attempt opens with ``begin()``, which resets the value to 0 and hands
    out a token. Events are only applied while their token is the active one,
    so a late event from a finished attempt never shows up in the next.
    """

    def __init__(self) -> None:
        self._listeners: list[Callable[[float], None]] = []
        self._token = 0
        self._active: int | None = None
        self.value = 0.0
        self.indeterminate = True

    def subscribe(self, listener: Callable[[float], None]) -> None:
        self._listeners.append(listener)

    def clear(self) -> None:
        self._listeners = []
        self._active = None

    def begin(self) -> int:
        self._token += 1
        self._active = self._token
        self.value = 0.0
        self.indeterminate = True
        self._emit(0.0)
        return self._token

    def end(self, token: int) -> None:
        if self._active == token:
            self._active = None

    def callback_for(self, token: int) -> Callable[[Any], None]:
        def cb(value: Any) -> None:
            self.push(token, value)
        return cb

    def push(self, token: int, value: Any) -> None:
        if token != self._active:
            return
        ratio = _coerce_ratio(value)
        if ratio is None:
            return
        self.value = ratio
        self.indeterminate = False
        self._emit(ratio)

    def _emit(self, ratio: float) -> None:
        for listener in list(self._listeners):
            listener(ratio)


class EngineHandle:
    """A lease on the engine. Release it (or use it as a context manager)."""

    def __init__(self, engine: "TranscodeEngine", native: Any):
        self._engine = engine
        self.native = native
        self.released = False

    def release(self) -> None:
        if not self.released:
            self.released = True
            self._engine._release(self)

    def __enter__(self) -> "EngineHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


def _describe(exc: Exception) -> str:
    if isinstance(exc, subprocess.CalledProcessError):
        stderr = exc.stderr if isinstance(exc.stderr, str) else (exc.stderr or b"").decode(errors="replace")
        lines = [ln for ln in stderr.splitlines() if ln.strip()]
        if lines:
            return lines[-1]
    return str(exc)


class TranscodeEngine:
    def __init__(self, backend: Backend):
        self._backend = backend
        self._native: Any = None
        self._busy = threading.Lock()
        self._active: EngineHandle | None = None
        self._progress = ProgressStream()

    @property
    def loaded(self) -> bool:
        return self._native is not None

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def acquire(
        self,
        on_status: Callable[[str], None] | None = None,
        timeout: float | None = None,
    ) -> EngineHandle:
        """Wait for the engine, loading the backend on first use.

        With a *timeout*, raises EngineBusyError if the engine is not free in
        time. Raises EngineInitError if the backend cannot be loaded.
        """
        if timeout is None:
            self._busy.acquire()
        elif not self._busy.acquire(timeout=max(0.0, timeout)):
            raise EngineBusyError(f"engine still busy after {timeout}s")

        try:
            native = self._ensure_loaded(on_status)
        except BaseException:
            self._busy.release()
            raise

        handle = EngineHandle(self, native)
        self._active = handle
        return handle

    def _ensure_loaded(self, on_status: Callable[[str], None] | None) -> Any:
        if self._native is None:
            if on_status:
                on_status(LOADING_TEXT)
            logger.info("Loading transcoding backend")
            try:
                self._native = self._backend.load()
            except Exception as e:
                raise EngineInitError(f"backend failed to load: {e}") from e
        return self._native

    def _release(self, handle: EngineHandle) -> None:
        if self._active is not handle:
            return
        self._progress.clear()
        self._active = None
        self._busy.release()

    def _check(self, handle: EngineHandle) -> None:
        if handle.released or handle is not self._active:
            raise EngineIOError("engine handle is no longer active")

    def stage_input(self, handle: EngineHandle, data: bytes, name: str) -> None:
        self._check(handle)
        try:
            self._backend.write_file(handle.native, name, data)
        except Exception as e:
            raise EngineIOError(f"could not stage {name}: {e}") from e

    def progress_stream(self, handle: EngineHandle) -> ProgressStream:
        self._check(handle)
        return self._progress

    def run_attempt(
        self,
        handle: EngineHandle,
        attempt: EncodeAttempt,
        request: TrimRequest,
        names: StagedNames,
        settings: EncodeSettings,
    ) -> None:
        self._check(handle)
        args = attempt.build_command(request, names, settings)
        logger.info("Running encode attempt %s", attempt.label)
        logger.debug("Attempt %s args: %s", attempt.label, args)

        token = self._progress.begin()
        self._backend.on_progress(handle.native, self._progress.callback_for(token))
        try:
            self._backend.exec(handle.native, args)
        except Exception as e:
            raise EncodeError(attempt.label, _describe(e)) from e
        finally:
            self._progress.end(token)
            self._backend.on_progress(handle.native, None)

    def fetch_output(self, handle: EngineHandle, name: str) -> bytes:
        self._check(handle)
        try:
            data = self._backend.read_file(handle.native, name)
        except Exception as e:
            raise EngineIOError(f"could not read {name}: {e}") from e
        if not data:
            raise EngineIOError(f"{name} is empty")
        return bytes(data)

    def purge(self, handle: EngineHandle, names: Iterable[str]) -> None:
        """Delete *names* from the namespace. Never raises."""
        if handle.released or handle is not self._active:
            logger.warning("Skipping purge of %s: handle no longer active", list(names))
            return
        for name in names:
            try:
                self._backend.delete_file(handle.native, name)
            except Exception as e:
                logger.warning("Could not delete %s from engine namespace: %s", name, e)


_engine: TranscodeEngine | None = None
_engine_lock = threading.Lock()


def get_engine(backend: Backend | None = None) -> TranscodeEngine:
    """Return the process-wide engine, creating it on first call.

    *backend* is only used when the engine does not exist yet.
    """
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = TranscodeEngine(backend or FFmpegBackend())
        return _engine
