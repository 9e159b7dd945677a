"""
Unit tests for worker provisioning.

HTTP calls are mocked so no network connection is needed.
"""

import gc
import logging
import threading
import weakref
from pathlib import Path
from unittest.mock import MagicMock
from urllib.error import URLError

import pytest

from pdfharvest.exceptions import LibraryMissingError
from pdfharvest.extractors.data_types import DocumentSource
from pdfharvest.extractors.pdf_extractor import extract_text
from pdfharvest.settings import HarvestSettings
from pdfharvest.tests.fake_engine import FakeEngine
from pdfharvest.worker import WorkerProvisioner, get_default_provisioner

WORKER_URL = "https://cdn.example.invalid/pdf.js/3.4.120/pdf.worker.min.js"


def _make_mock_response(data: bytes, status: int = 200) -> MagicMock:
    """Create a mock HTTP response."""
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.getcode.return_value = status
    mock_response.read.return_value = data
    return mock_response


class CountingRequest:
    """Request function that counts calls and can block until released."""

    def __init__(self, response=None, error: Exception | None = None, block: bool = False):
        self.response = response
        self.error = error
        self.calls = 0
        self.started = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()
        self._lock = threading.Lock()

    def __call__(self, request, timeout):
        with self._lock:
            self.calls += 1
        self.started.set()
        self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def engine():
    return FakeEngine(worker_src=None)


class TestPreconditions:
    def test_missing_engine_raises(self, tmp_path):
        provisioner = WorkerProvisioner(None, cache_dir=tmp_path)
        with pytest.raises(LibraryMissingError):
            provisioner.ensure_ready()

    def test_configured_worker_is_left_alone(self, tmp_path):
        engine = FakeEngine(worker_src="https://elsewhere.invalid/worker.js")
        request = CountingRequest(_make_mock_response(b"script"))

        provisioner = WorkerProvisioner(engine, cache_dir=tmp_path, request_func=request)
        provisioner.ensure_ready()

        assert request.calls == 0
        assert engine.worker_options.worker_src == "https://elsewhere.invalid/worker.js"
        assert provisioner.is_ready


class TestInlining:
    def test_worker_script_is_cached_locally(self, engine, tmp_path):
        request = CountingRequest(_make_mock_response(b"self.onmessage = null;"))

        provisioner = WorkerProvisioner(
            engine, worker_source=WORKER_URL, cache_dir=tmp_path, request_func=request
        )
        provisioner.ensure_ready()

        cached = tmp_path / "pdf.worker.min.js"
        assert request.calls == 1
        assert cached.read_bytes() == b"self.onmessage = null;"
        assert engine.worker_options.worker_src == cached.resolve().as_uri()
        assert provisioner.local_worker_url == cached.resolve().as_uri()

    def test_request_targets_worker_source(self, engine, tmp_path):
        seen = {}

        def mock_request(request, timeout):
            seen["url"] = request.full_url
            seen["timeout"] = timeout
            return _make_mock_response(b"script")

        provisioner = WorkerProvisioner(
            engine,
            worker_source=WORKER_URL,
            cache_dir=tmp_path,
            request_func=mock_request,
            timeout=2.5,
        )
        provisioner.ensure_ready()

        assert seen == {"url": WORKER_URL, "timeout": 2.5}

    def test_repeated_calls_fetch_once(self, engine, tmp_path):
        request = CountingRequest(_make_mock_response(b"script"))
        provisioner = WorkerProvisioner(engine, cache_dir=tmp_path, request_func=request)

        for _ in range(5):
            provisioner.ensure_ready()

        assert request.calls == 1

    def test_concurrent_callers_share_one_attempt(self, engine, tmp_path):
        request = CountingRequest(_make_mock_response(b"script"), block=True)
        provisioner = WorkerProvisioner(engine, cache_dir=tmp_path, request_func=request)
        errors: list[BaseException] = []

        def call():
            try:
                provisioner.ensure_ready()
            except BaseException as exc:
                errors.append(exc)

        first = threading.Thread(target=call)
        first.start()
        assert request.started.wait(timeout=5)

        others = [threading.Thread(target=call) for _ in range(8)]
        for thread in others:
            thread.start()
        request.release.set()
        for thread in [first, *others]:
            thread.join(timeout=5)

        assert errors == []
        assert request.calls == 1
        assert engine.worker_options.worker_src == provisioner.local_worker_url


class TestFallback:
    def test_network_error_falls_back_to_remote_url(self, engine, tmp_path, caplog):
        request = CountingRequest(error=URLError("connection refused"))
        provisioner = WorkerProvisioner(
            engine, worker_source=WORKER_URL, cache_dir=tmp_path, request_func=request
        )

        with caplog.at_level(logging.WARNING):
            provisioner.ensure_ready()

        assert engine.worker_options.worker_src == WORKER_URL
        assert provisioner.local_worker_url is None
        assert "falling back to remote worker" in caplog.text

    def test_error_status_falls_back_to_remote_url(self, engine, tmp_path):
        request = CountingRequest(_make_mock_response(b"Not Found", status=404))
        provisioner = WorkerProvisioner(
            engine, worker_source=WORKER_URL, cache_dir=tmp_path, request_func=request
        )

        provisioner.ensure_ready()

        assert engine.worker_options.worker_src == WORKER_URL
        assert not (tmp_path / "pdf.worker.min.js").exists()

    def test_fetch_failure_prefers_previously_cached_script(self, engine, tmp_path):
        cached = tmp_path / "pdf.worker.min.js"
        cached.write_bytes(b"cached worker")
        request = CountingRequest(error=URLError("offline"))
        provisioner = WorkerProvisioner(
            engine, worker_source=WORKER_URL, cache_dir=tmp_path, request_func=request
        )

        provisioner.ensure_ready()

        assert request.calls == 1
        assert engine.worker_options.worker_src == cached.resolve().as_uri()

    def test_no_request_function_skips_inlining(self, engine, tmp_path):
        provisioner = WorkerProvisioner(
            engine, worker_source=WORKER_URL, cache_dir=tmp_path, request_func=None
        )

        provisioner.ensure_ready()

        assert engine.worker_options.worker_src == WORKER_URL

    def test_unwritable_cache_dir_skips_inlining(self, engine, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        request = CountingRequest(_make_mock_response(b"script"))
        provisioner = WorkerProvisioner(
            engine,
            worker_source=WORKER_URL,
            cache_dir=blocker / "cache",
            request_func=request,
        )

        provisioner.ensure_ready()

        assert request.calls == 0
        assert engine.worker_options.worker_src == WORKER_URL


def test_provisioner_uses_settings(engine, tmp_path):
    settings = HarvestSettings(worker_source=WORKER_URL, cache_dir=tmp_path, fetch_timeout=4.0)

    provisioner = WorkerProvisioner(engine, settings=settings, request_func=None)

    assert provisioner.worker_source == WORKER_URL
    assert provisioner.cache_dir == Path(tmp_path)
    assert provisioner.timeout == 4.0


def test_default_provisioner_is_shared_per_engine(engine):
    first = get_default_provisioner(engine)
    second = get_default_provisioner(engine)
    other = get_default_provisioner(FakeEngine())

    assert first is second
    assert first is not other


def test_default_provisioner_is_released_with_engine():
    engines = [FakeEngine() for _ in range(20)]
    for engine in engines:
        extract_text(DocumentSource.from_bytes(b"%PDF", name="a.pdf"), engine=engine)
    refs = [weakref.ref(engine) for engine in engines]
    provisioner_refs = [weakref.ref(get_default_provisioner(engine)) for engine in engines]

    del engine, engines
    gc.collect()

    assert all(ref() is None for ref in refs)
    assert all(ref() is None for ref in provisioner_refs)


def test_engine_without_attribute_support_gets_fresh_provisioner():
    class SlottedEngine:
        __slots__ = ("worker_options", "disable_worker")

        def __init__(self):
            self.worker_options = FakeEngine().worker_options
            self.disable_worker = False

    engine = SlottedEngine()

    provisioner = get_default_provisioner(engine)

    assert provisioner.engine is engine
