"""Shared test fixtures."""

from pathlib import Path

import pytest

from cliptrim.engine import TranscodeEngine

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeBackend:
    """In-memory stand-in for the ffmpeg backend.

    ``fail_codecs`` names the video codecs (``copy`` for stream copy) whose
    exec fails;
    ``progress`` is the list of raw values reported during each exec.
    """

    def __init__(self, fail_codecs=(), progress=(0.5,), load_error=None):
        self.fail_codecs = set(fail_codecs)
        self.progress = list(progress)
        self.load_error = load_error
        self.loads = 0
        self.files: dict[str, bytes] = {}
        self.execs: list[list[str]] = []
        self.deleted: list[str] = []
        self.callback = None
        self.write_error = None
        self.read_error = None
        self.delete_error = None

    def load(self):
        self.loads += 1
        if self.load_error is not None:
            raise self.load_error
        return "handle"

    def write_file(self, handle, name, data):
        if self.write_error is not None:
            raise self.write_error
        self.files[name] = data

    def exec(self, handle, args):
        self.execs.append(list(args))
        for value in self.progress:
            if self.callback:
                self.callback(value)
        codec = args[args.index("-c:v") + 1] if "-c:v" in args else "copy"
        if codec in self.fail_codecs:
            raise RuntimeError(f"{codec} failed")
        self.files[args[-1]] = f"mp4:{codec}".encode()

    def read_file(self, handle, name):
        if self.read_error is not None:
            raise self.read_error
        return self.files[name]

    def delete_file(self, handle, name):
        self.deleted.append(name)
        if self.delete_error is not None:
            raise self.delete_error
        self.files.pop(name, None)

    def on_progress(self, handle, callback):
        self.callback = callback

    def codecs_run(self) -> list[str]:
        return [a[a.index("-c:v") + 1] if "-c:v" in a else "copy" for a in self.execs]


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def engine(backend) -> TranscodeEngine:
    return TranscodeEngine(backend)


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"
