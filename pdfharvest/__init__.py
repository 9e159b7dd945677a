"""
pdfharvest: Text extraction on top of an external PDF engine.

Opens PDF documents through a PDF engine (pypdf by default), walks their
pages in order and returns normalized per-page text with basic metadata.
Page and metadata failures are recorded on the result instead of aborting
the extraction. A small heuristic picks table-like lines from the text.
"""

from pathlib import Path
from typing import Any, Generator

from pdfharvest.exceptions import (
    DocumentEncryptedError,
    DocumentOpenFailedError,
    ExtractionError,
    LibraryMissingError,
)
from pdfharvest.extractors.data_types import (
    DocumentResult,
    DocumentSource,
    PageResult,
    ProgressEvent,
    TableCandidate,
)
from pdfharvest.extractors.pdf_extractor import (
    extract_file,
    extract_text,
    is_worker_init_failure,
    iter_extraction,
    read_pdf,
)
from pdfharvest.extractors.table_harvester import harvest_tables
from pdfharvest.settings import HarvestSettings
from pdfharvest.worker import WorkerProvisioner

__version__ = "0.1.0"


def read_file(path: str | Path) -> Generator[DocumentResult, Any, None]:
    """
    Read and extract text from a PDF file.

    Args:
        path: Path to the file to read.

    Yields:
        A single DocumentResult.

    Raises:
        FileNotFoundError: If the file does not exist.
        LibraryMissingError: If pypdf is not installed.
        DocumentOpenFailedError: If the file is not a readable PDF.

    Example:
        >>> import pdfharvest
        >>> for result in pdfharvest.read_file("report.pdf"):
        ...     print(result.get_full_text())
    """
    yield extract_file(path)


__all__ = [
    # Version
    "__version__",
    # Main functions
    "read_file",
    "read_pdf",
    "extract_text",
    "extract_file",
    "iter_extraction",
    "harvest_tables",
    "is_worker_init_failure",
    # Types
    "DocumentResult",
    "DocumentSource",
    "PageResult",
    "ProgressEvent",
    "TableCandidate",
    "HarvestSettings",
    "WorkerProvisioner",
    # Errors
    "ExtractionError",
    "LibraryMissingError",
    "DocumentOpenFailedError",
    "DocumentEncryptedError",
]
