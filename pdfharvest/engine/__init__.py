import logging

from pdfharvest.engine.base import (
    DocumentMetadata,
    DocumentSession,
    PdfEngine,
    PdfPageProxy,
    TextContent,
    TextItem,
    WorkerOptions,
)
from pdfharvest.exceptions import LibraryMissingError

logger = logging.getLogger(__name__)

_default_engine: PdfEngine | None = None


def load_default_engine() -> PdfEngine:
    """
    Return the process-wide pypdf engine, importing pypdf on first use.

    :raises LibraryMissingError: pypdf is not installed
    """
    global _default_engine
    if _default_engine is None:
        try:
            from pdfharvest.engine.pypdf_engine import PypdfEngine
        except ImportError as exc:
            raise LibraryMissingError(
                "PDF engine library not loaded: pypdf is not installed", cause=exc
            ) from exc
        _default_engine = PypdfEngine()
        logger.debug("Loaded default PDF engine: %s", type(_default_engine).__name__)
    return _default_engine


__all__ = [
    "DocumentMetadata",
    "DocumentSession",
    "PdfEngine",
    "PdfPageProxy",
    "TextContent",
    "TextItem",
    "WorkerOptions",
    "load_default_engine",
]
