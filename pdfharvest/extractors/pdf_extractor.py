"""
PDF Text Extractor
==================

Extracts normalized per-page text and basic metadata from PDF files. All
actual PDF parsing is delegated to a PDF engine (pypdf by default, see
``pdfharvest.engine``); this module only orchestrates it.

Extraction Steps
----------------
1. Resolve the engine and make sure its worker is provisioned
2. Read the source's bytes and open a document session
3. Walk pages 1..N strictly in order, one at a time
4. Read metadata (title, author), falling back to the file name
5. Release the session

Failure Handling
----------------
- Engine missing: ``LibraryMissingError``
- Worker could not start: retried once with the worker disabled
- Document cannot be opened: ``DocumentOpenFailedError``
- A page fails: recorded on that page's ``PageResult.error``, extraction
  continues with the next page
- Metadata fails: empty metadata is used

Progress
--------
``on_progress`` receives ``round(page / total * 100)`` after every page,
successful or not. Values never decrease and the last one is exactly 100.
``iter_extraction`` exposes the same information as ``ProgressEvent``
objects followed by the final ``DocumentResult``.

Usage
-----
    >>> from pdfharvest.extractors.data_types import DocumentSource
    >>> from pdfharvest.extractors.pdf_extractor import extract_text
    >>>
    >>> result = extract_text(DocumentSource.from_path("report.pdf"))
    >>> print(result.title, result.total_pages)
"""

import io
import logging
import math
import re
from pathlib import Path
from typing import Any, Callable, Generator, Optional

from pdfharvest.engine import load_default_engine
from pdfharvest.engine.base import DocumentMetadata, DocumentSession, PdfEngine
from pdfharvest.exceptions import (
    DocumentOpenFailedError,
    WorkerInitFailedError,
)
from pdfharvest.extractors.data_types import (
    DocumentResult,
    DocumentSource,
    PageResult,
    ProgressEvent,
    SourceInterface,
)
from pdfharvest.settings import DEFAULT_SETTINGS, HarvestSettings
from pdfharvest.worker import WorkerProvisioner, get_default_provisioner

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Engine error messages that mean the background worker never came up.
WORKER_INIT_FAILURE_PATTERNS = (
    re.compile(r"Setting up fake worker failed", re.IGNORECASE),
    re.compile(r"Cannot load script", re.IGNORECASE),
)
_WHITESPACE_RE = re.compile(r"\s+")
_PDF_SUFFIX_RE = re.compile(r"\.pdf$", re.IGNORECASE)
UNKNOWN_PARSING_ERROR = "Unknown parsing error"


def is_worker_init_failure(error: BaseException) -> bool:
    """True if ``error`` says the engine's background worker failed to start."""
    if isinstance(error, WorkerInitFailedError):
        return True
    message = str(error)
    return any(pattern.search(message) for pattern in WORKER_INIT_FAILURE_PATTERNS)


def normalize_page_text(fragments: list[str]) -> str:
    """Join text runs with single spaces, collapse whitespace and trim."""
    return _WHITESPACE_RE.sub(" ", " ".join(fragments)).strip()


def progress_percent(page_number: int, total_pages: int) -> int:
    # round half up, the way the percentages are documented
    return int(math.floor(page_number / total_pages * 100 + 0.5))


def title_from_filename(name: str) -> str:
    return _PDF_SUFFIX_RE.sub("", name or "")


def iter_extraction(
    source: SourceInterface,
    *,
    engine: Optional[PdfEngine] = None,
    provisioner: Optional[WorkerProvisioner] = None,
    settings: HarvestSettings = DEFAULT_SETTINGS,
) -> Generator[ProgressEvent | DocumentResult, Any, None]:
    """
    Extract a document step by step.

    Yields one ``ProgressEvent`` per page, in page order, and finally the
    ``DocumentResult``. The session is released when the generator finishes
    or is closed early.

    Raises:
        LibraryMissingError: No PDF engine is available.
        DocumentOpenFailedError: The document could not be opened.
    """
    if engine is None:
        engine = load_default_engine()
    if provisioner is None:
        provisioner = get_default_provisioner(engine, settings)
    provisioner.ensure_ready()

    data = source.read_bytes()
    session = _open_session(engine, data, source.name)
    try:
        total_pages = session.num_pages
        logger.debug("Parsing PDF [%s] with %d pages", source.name, total_pages)

        pages: list[PageResult] = []
        for page_number in range(1, total_pages + 1):
            pages.append(_extract_page(session, page_number))
            yield ProgressEvent(
                percent=progress_percent(page_number, total_pages),
                page=page_number,
                total_pages=total_pages,
            )

        metadata = _read_metadata(session)
        info = metadata.info or {}

        title = info.get("Title")
        if not isinstance(title, str) or not title:
            title = title_from_filename(source.name)
        author = info.get("Author") or settings.unknown_author

        failed = sum(1 for page in pages if page.error is not None)
        logger.info(
            "Extracted PDF [%s]: %d pages, %d failed", source.name, total_pages, failed
        )
        result = DocumentResult(
            title=title,
            author=str(author),
            total_pages=total_pages,
            pages=pages,
            raw_size=source.size,
            last_modified=source.last_modified,
        )
    finally:
        session.cleanup()

    yield result


def extract_text(
    source: SourceInterface,
    *,
    on_progress: Optional[ProgressCallback] = None,
    engine: Optional[PdfEngine] = None,
    provisioner: Optional[WorkerProvisioner] = None,
    settings: HarvestSettings = DEFAULT_SETTINGS,
) -> DocumentResult:
    """
    Extract normalized text from every page of a PDF.

    Args:
        source: Input handle with ``name``, ``size``, ``last_modified`` and
            ``read_bytes()``, e.g. a ``DocumentSource``.
        on_progress: Optional callback receiving an integer percentage
            after each page.
        engine: PDF engine to use. Defaults to the shared pypdf engine.
        provisioner: Worker provisioner for ``engine``. Defaults to the
            shared provisioner of that engine.
        settings: Worker source, cache directory and author placeholder.

    Returns:
        DocumentResult with one PageResult per page.

    Raises:
        LibraryMissingError: No PDF engine is available.
        DocumentOpenFailedError: The document could not be opened.
    """
    result = None
    for event in iter_extraction(
        source, engine=engine, provisioner=provisioner, settings=settings
    ):
        if isinstance(event, ProgressEvent):
            if on_progress is not None:
                on_progress(event.percent)
        else:
            result = event
    return result


def extract_file(
    path: str | Path,
    *,
    on_progress: Optional[ProgressCallback] = None,
    engine: Optional[PdfEngine] = None,
    settings: HarvestSettings = DEFAULT_SETTINGS,
) -> DocumentResult:
    """Extract a PDF from the filesystem."""
    return extract_text(
        DocumentSource.from_path(path),
        on_progress=on_progress,
        engine=engine,
        settings=settings,
    )


def read_pdf(
    file_like: io.BytesIO, path: str | None = None
) -> Generator[DocumentResult, Any, None]:
    """
    Extract text from a PDF given as a file-like object.

    Args:
        file_like: a loaded binary of the pdf file as file-like object
        path: Optional file path; its name is used for the title fallback.

    Yields:
        A single DocumentResult.
    """
    name = Path(path).name if path else None
    yield extract_text(DocumentSource.from_file_like(file_like, name=name))


def _open_session(engine: PdfEngine, data: bytes, name: str) -> DocumentSession:
    try:
        return engine.get_document(data)
    except DocumentOpenFailedError:
        raise
    except Exception as exc:
        if not is_worker_init_failure(exc):
            raise DocumentOpenFailedError(name, cause=exc) from exc
        logger.warning(
            "PDF worker failed to initialize, retrying without worker thread: %s", exc
        )
        if isinstance(getattr(engine, "disable_worker", None), bool):
            engine.disable_worker = True

    try:
        return engine.get_document(data)
    except DocumentOpenFailedError:
        raise
    except Exception as exc:
        raise DocumentOpenFailedError(name, cause=exc) from exc


def _extract_page(session: DocumentSession, page_number: int) -> PageResult:
    index = page_number - 1
    try:
        page = session.get_page(page_number)
        content = page.get_text_content()
        fragments = [str(getattr(item, "str", "") or "") for item in content.items]
        text = normalize_page_text(fragments)
        return PageResult(index=index, text=text, has_text_content=bool(text))
    except Exception as exc:
        logger.warning("Failed to parse page %d: %s", page_number, exc)
        return PageResult(
            index=index,
            text="",
            has_text_content=False,
            error=str(exc) or UNKNOWN_PARSING_ERROR,
        )


def _read_metadata(session: DocumentSession) -> DocumentMetadata:
    try:
        metadata = session.get_metadata()
    except Exception as exc:
        logger.warning("Failed to read PDF metadata: %s", exc)
        return DocumentMetadata()
    return metadata if metadata is not None else DocumentMetadata()
