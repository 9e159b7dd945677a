"""In-memory PDF engine used to drive the extractor in tests."""

from pdfharvest.engine.base import (
    DocumentMetadata,
    TextContent,
    TextItem,
    WorkerOptions,
)


class FakePage:
    def __init__(self, items: list[str] | None = None, error: Exception | None = None):
        self.items = items or []
        self.error = error

    def get_text_content(self) -> TextContent:
        if self.error is not None:
            raise self.error
        return TextContent(items=[TextItem(str=item) for item in self.items])


class FakeSession:
    def __init__(
        self,
        pages: list,
        metadata: DocumentMetadata | None = None,
        metadata_error: Exception | None = None,
    ):
        self.pages = pages
        self.metadata = metadata if metadata is not None else DocumentMetadata()
        self.metadata_error = metadata_error
        self.requested_pages: list[int] = []
        self.cleaned_up = False

    @property
    def num_pages(self) -> int:
        return len(self.pages)

    def get_page(self, page_number: int):
        self.requested_pages.append(page_number)
        page = self.pages[page_number - 1]
        if isinstance(page, Exception):
            raise page
        return page

    def get_metadata(self) -> DocumentMetadata:
        if self.metadata_error is not None:
            raise self.metadata_error
        return self.metadata

    def cleanup(self) -> None:
        self.cleaned_up = True


class FakeEngine:
    def __init__(
        self,
        session: FakeSession | None = None,
        open_errors: list[Exception] | None = None,
        worker_src: str | None = "https://example.invalid/pdf.worker.min.js",
    ):
        self.worker_options = WorkerOptions(worker_src=worker_src)
        self.disable_worker = False
        self.session = session if session is not None else FakeSession([])
        self.open_errors = list(open_errors or [])
        # (data, disable_worker) per get_document call
        self.open_calls: list[tuple[bytes, bool]] = []

    def get_document(self, data: bytes) -> FakeSession:
        self.open_calls.append((data, self.disable_worker))
        if self.open_errors:
            raise self.open_errors.pop(0)
        return self.session
