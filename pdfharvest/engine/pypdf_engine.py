"""
pypdf Engine Binding
====================

Adapts the pypdf library (https://pypdf.readthedocs.io/) to the engine
protocol used by the extractor.

Worker Model
------------
pypdf has no worker script of its own. The binding models the worker as a
single background thread that owns parsing. Starting the worker requires a
configured ``worker_options.worker_src``:

    - unset: start fails with "Setting up fake worker failed"
    - ``file://`` location that cannot be read: start fails with
      "Cannot load script at ..."
    - ``http(s)://`` location: accepted as a remote worker

With ``disable_worker`` set, all parsing happens in the calling thread.

Text Items
----------
pypdf's ``extract_text(visitor_text=...)`` callback is used to capture each
text run in content stream order. Each run becomes one ``TextItem``.

Known Limitations
-----------------
- Scanned PDFs (image-only) yield no text items (no OCR)
- Password-protected PDFs are only opened when the empty password works
"""

import io
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import urlparse
from urllib.request import url2pathname

from pypdf import PdfReader

from pdfharvest.engine.base import (
    DocumentMetadata,
    TextContent,
    TextItem,
    WorkerOptions,
)
from pdfharvest.exceptions import DocumentEncryptedError, WorkerInitFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _load_worker_script(worker_src: Optional[str]) -> None:
    """Validate that the configured worker location can be loaded."""
    if not worker_src:
        raise WorkerInitFailedError(
            "Setting up fake worker failed: No worker_src specified"
        )
    parsed = urlparse(worker_src)
    if parsed.scheme in ("http", "https"):
        return
    if parsed.scheme == "file":
        script_path = Path(url2pathname(parsed.path))
    elif parsed.scheme == "":
        script_path = Path(worker_src)
    else:
        raise WorkerInitFailedError(f"Cannot load script at {worker_src}")
    if not script_path.is_file():
        raise WorkerInitFailedError(f"Cannot load script at {worker_src}")


class PypdfPage:
    def __init__(self, session: "PypdfDocumentSession", page_number: int):
        self._session = session
        self.page_number = page_number

    def get_text_content(self) -> TextContent:
        return self._session.run(self._extract_items)

    def _extract_items(self) -> TextContent:
        page = self._session.reader.pages[self.page_number - 1]
        items: list[TextItem] = []

        def visitor(
            text: str,
            _cm: Any,
            _tm: Any,
            _font_dict: Any,
            _font_size: Any,
        ) -> None:
            if text:
                items.append(TextItem(str=text))

        page.extract_text(visitor_text=visitor)
        return TextContent(items=items)


class PypdfDocumentSession:
    def __init__(self, reader: PdfReader, stream: io.BytesIO, run: Callable):
        self.reader = reader
        self._stream = stream
        self._run = run

    @property
    def num_pages(self) -> int:
        return len(self.reader.pages)

    def run(self, func: Callable[[], T]) -> T:
        return self._run(func)

    def get_page(self, page_number: int) -> PypdfPage:
        if page_number < 1 or page_number > self.num_pages:
            raise IndexError(
                f"Page number {page_number} out of range "
                f"(document has {self.num_pages} pages)"
            )
        return PypdfPage(self, page_number)

    def get_metadata(self) -> DocumentMetadata:
        return self.run(self._read_metadata)

    def _read_metadata(self) -> DocumentMetadata:
        info = {}
        raw = self.reader.metadata
        if raw:
            for key in raw:
                info[str(key).lstrip("/")] = str(raw[key])
        return DocumentMetadata(info=info)

    def cleanup(self) -> None:
        self._stream.close()


class PypdfEngine:
    """PDF engine backed by pypdf, with an optional single-thread worker."""

    def __init__(self):
        self.worker_options = WorkerOptions()
        self.disable_worker = False
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def _worker(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                _load_worker_script(self.worker_options.worker_src)
                try:
                    self._executor = ThreadPoolExecutor(
                        max_workers=1, thread_name_prefix="pdfharvest-worker"
                    )
                except RuntimeError as exc:
                    raise WorkerInitFailedError(
                        f"Setting up fake worker failed: {exc}", cause=exc
                    ) from exc
                logger.debug(
                    "Started PDF worker from [%s]", self.worker_options.worker_src
                )
            return self._executor

    def _runner(self) -> Callable[[Callable[[], T]], T]:
        if self.disable_worker:
            return lambda func: func()
        executor = self._worker()
        return lambda func: executor.submit(func).result()

    def get_document(self, data: bytes) -> PypdfDocumentSession:
        run = self._runner()
        stream = io.BytesIO(data)
        reader = run(lambda: _open_reader(stream))
        return PypdfDocumentSession(reader, stream, run)

    def destroy(self) -> None:
        """Shut down the background worker, if one was started."""
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None


def _open_reader(stream: io.BytesIO) -> PdfReader:
    stream.seek(0)
    reader = PdfReader(stream)
    if reader.is_encrypted:
        try:
            decrypt_result = reader.decrypt("")
        except Exception:
            decrypt_result = 0
        if decrypt_result == 0:
            stream.close()
            raise DocumentEncryptedError(message="PDF is encrypted or password-protected")
    logger.debug("Opened PDF with %d pages", len(reader.pages))
    return reader
