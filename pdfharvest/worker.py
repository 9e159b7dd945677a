"""
Worker Provisioning
===================

Makes sure the PDF engine knows where its background worker script lives
before any document is opened.

The preferred path "inlines" the worker: the script is downloaded once and
written to a local cache file, and the engine is pointed at that file's
``file://`` URI. When inlining is not possible (no request function, cache
directory not writable) or fails (network error, non-success status), the
engine is pointed at a previously cached copy if one exists on disk, else at
the remote URL. The worker location is never left unset.

A provisioner performs at most one provisioning attempt. The first caller of
``ensure_ready`` runs it; concurrent callers block on the same pending
future and observe the same outcome.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import urllib.request
from concurrent.futures import Future
from pathlib import Path, PurePosixPath
from typing import Any, Callable
from urllib.parse import urlparse

from pdfharvest.engine.base import PdfEngine
from pdfharvest.exceptions import LibraryMissingError, WorkerProvisioningError
from pdfharvest.settings import DEFAULT_SETTINGS, HarvestSettings

logger = logging.getLogger(__name__)

RequestFunc = Callable[..., Any]

_FALLBACK_SCRIPT_NAME = "pdf.worker.js"


def _default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "pdfharvest"


def _script_name(worker_source: str) -> str:
    name = PurePosixPath(urlparse(worker_source).path).name
    return name or _FALLBACK_SCRIPT_NAME


class WorkerProvisioner:
    """Configures ``engine.worker_options.worker_src`` exactly once."""

    def __init__(
        self,
        engine: PdfEngine | None,
        *,
        worker_source: str | None = None,
        cache_dir: str | Path | None = None,
        request_func: RequestFunc | None = urllib.request.urlopen,
        timeout: float | None = None,
        settings: HarvestSettings = DEFAULT_SETTINGS,
    ):
        self.engine = engine
        self.worker_source = worker_source or settings.worker_source
        cache_dir = cache_dir if cache_dir is not None else settings.cache_dir
        self.cache_dir = Path(cache_dir) if cache_dir else _default_cache_dir()
        self.timeout = timeout if timeout is not None else settings.fetch_timeout
        self._request_func = request_func
        self._lock = threading.Lock()
        self._pending: Future | None = None
        self._local_url: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.engine is not None and bool(self.engine.worker_options.worker_src)

    @property
    def local_worker_url(self) -> str | None:
        """``file://`` URI of the inlined worker script, once written."""
        return self._local_url

    @property
    def cached_script_path(self) -> Path:
        return self.cache_dir / _script_name(self.worker_source)

    def ensure_ready(self) -> None:
        """
        Make sure the engine has a worker location configured.

        Idempotent and safe to call from several threads.

        :raises LibraryMissingError: no engine is available
        """
        if self.engine is None:
            raise LibraryMissingError()
        if self.engine.worker_options.worker_src:
            return

        with self._lock:
            pending = self._pending
            is_owner = pending is None
            if is_owner:
                pending = self._pending = Future()

        if not is_owner:
            pending.result()
            return

        try:
            self._provision()
        except BaseException as exc:
            pending.set_exception(exc)
            raise
        pending.set_result(None)

    def _provision(self) -> None:
        if self._can_inline():
            try:
                self._local_url = self._inline_worker()
                self.engine.worker_options.worker_src = self._local_url
                logger.debug("Using inlined PDF worker [%s]", self._local_url)
                return
            except Exception as exc:
                logger.warning(
                    "Unable to inline PDF worker, falling back to remote worker: %s",
                    exc,
                )
        else:
            logger.debug("Worker inlining not supported in this environment")

        self.engine.worker_options.worker_src = (
            self._cached_local_url() or self.worker_source
        )
        logger.debug(
            "Using PDF worker [%s]", self.engine.worker_options.worker_src
        )

    def _can_inline(self) -> bool:
        if not callable(self._request_func):
            return False
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(self.cache_dir, os.W_OK)

    def _fetch_worker_script(self) -> bytes:
        request = urllib.request.Request(self.worker_source, method="GET")
        response = self._request_func(request, timeout=self.timeout)
        try:
            status = getattr(response, "status", None) or response.getcode()
            if status is not None and not 200 <= int(status) < 300:
                raise WorkerProvisioningError(f"HTTP {status}")
            return response.read()
        finally:
            close = getattr(response, "close", None)
            if callable(close):
                close()

    def _inline_worker(self) -> str:
        script = self._fetch_worker_script()
        if not script:
            raise WorkerProvisioningError("Empty worker script")

        target = self.cached_script_path
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(script)
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        return target.resolve().as_uri()

    def _cached_local_url(self) -> str | None:
        if self._local_url:
            return self._local_url
        path = self.cached_script_path
        try:
            if path.is_file() and path.stat().st_size > 0:
                return path.resolve().as_uri()
        except OSError:
            return None
        return None


_PROVISIONER_ATTR = "_pdfharvest_provisioner"
_default_lock = threading.Lock()


def get_default_provisioner(
    engine: PdfEngine, settings: HarvestSettings = DEFAULT_SETTINGS
) -> WorkerProvisioner:
    """
    Return the shared provisioner for ``engine``, creating it on first use.

    The provisioner is stored on the engine, so it is released together
    with the engine. Engines that do not accept new attributes get a fresh
    provisioner per call.
    """
    with _default_lock:
        provisioner = getattr(engine, _PROVISIONER_ATTR, None)
        if provisioner is None or provisioner.engine is not engine:
            provisioner = WorkerProvisioner(engine, settings=settings)
            try:
                setattr(engine, _PROVISIONER_ATTR, provisioner)
            except AttributeError:
                logger.debug("Engine %r cannot hold a default provisioner", engine)
        return provisioner

