"""
Engine Protocols
================

The PDF engine is an external collaborator: it owns tokenization, font
decoding and content stream interpretation. This module describes the
surface the extractor relies on, so that any binding (pypdf, or an
in-memory fake in tests) can be plugged in.

Contract
--------
- ``engine.worker_options.worker_src``: global slot for the worker script
  location. ``None`` means not configured.
- ``engine.disable_worker``: when true, documents are parsed in the calling
  thread instead of a background worker.
- ``engine.get_document(data)``: opens a session from raw bytes.
- ``session.num_pages`` / ``session.get_page(n)`` (1-based) /
  ``session.get_metadata()`` / ``session.cleanup()``.
- ``page.get_text_content().items``: ordered text runs, each with ``str``.
"""

import typing
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class WorkerOptions:
    worker_src: Optional[str] = None


@dataclass(frozen=True)
class TextItem:
    # Named after the engine contract; shadows the builtin only as an attribute.
    str: typing.Any = ""


@dataclass
class TextContent:
    items: List[TextItem] = field(default_factory=list)


@dataclass
class DocumentMetadata:
    info: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


class PdfPageProxy(Protocol):
    def get_text_content(self) -> TextContent: ...


class DocumentSession(Protocol):
    @property
    def num_pages(self) -> int: ...

    def get_page(self, page_number: int) -> PdfPageProxy: ...

    def get_metadata(self) -> DocumentMetadata: ...

    def cleanup(self) -> None: ...


class PdfEngine(Protocol):
    worker_options: WorkerOptions
    disable_worker: bool

    def get_document(self, data: bytes) -> DocumentSession: ...
