import os
import typing
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol


class SourceInterface(Protocol):
    """A byte-bearing input handle accepted by the text extractor."""

    name: str
    size: int
    last_modified: Optional[float]

    def read_bytes(self) -> bytes:
        """Returns the full byte content of the source."""
        ...


@dataclass
class DocumentSource(SourceInterface):
    """
    In-memory input handle for a PDF file.

    ``last_modified`` is a POSIX timestamp in seconds, or ``None`` when the
    source has no modification time (e.g. raw bytes).
    """

    name: str = ""
    size: int = 0
    last_modified: Optional[float] = None
    data: bytes = b""

    def read_bytes(self) -> bytes:
        return self.data

    @classmethod
    def from_bytes(
        cls,
        data: bytes | bytearray,
        name: str = "document.pdf",
        last_modified: Optional[float] = None,
    ) -> "DocumentSource":
        data = bytes(data)
        return cls(name=name, size=len(data), last_modified=last_modified, data=data)

    @classmethod
    def from_file_like(
        cls, file_like: typing.BinaryIO, name: str | None = None
    ) -> "DocumentSource":
        """Read a binary file-like object from the start."""
        file_like.seek(0)
        data = file_like.read()
        if name is None:
            name = os.path.basename(getattr(file_like, "name", "") or "document.pdf")
        return cls.from_bytes(data, name=name)

    @classmethod
    def from_path(cls, path: str | Path) -> "DocumentSource":
        p = Path(path)
        stat = p.stat()
        with open(p, "rb") as f:
            data = f.read()
        return cls(
            name=p.name,
            size=stat.st_size,
            last_modified=stat.st_mtime,
            data=data,
        )


@dataclass(frozen=True)
class PageResult:
    # zero-based position of the page in the document
    index: int
    text: str = ""
    has_text_content: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TableCandidate:
    page: int
    content: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after each page while a document is being extracted."""

    percent: int
    page: int
    total_pages: int


@dataclass
class DocumentResult:
    title: str = ""
    author: str = ""
    total_pages: int = 0
    pages: List[PageResult] = field(default_factory=list)
    raw_size: int = 0
    last_modified: Optional[float] = None

    def iterator(self) -> typing.Iterator[str]:
        """Yields the normalized text of each page in page order."""
        for page in self.pages:
            yield page.text

    def iterate_pages(self) -> typing.Iterator[PageResult]:
        yield from self.pages

    def get_full_text(self) -> str:
        return "\n".join(self.iterator())

    def failed_pages(self) -> List[PageResult]:
        """Pages whose text could not be retrieved."""
        return [page for page in self.pages if page.error is not None]

    def to_dict(self) -> dict:
        return asdict(self)

