"""
Heuristic for surfacing table-like lines from extracted page text.

This is a line filter, not a layout analyzer: page text is split on
sentence ends and newlines, and lines that contain a digit together with a
``:`` or ``,`` are kept as candidates. Abbreviations such as "Fig. 2" are
split like any other sentence end.
"""

import re
import typing
from typing import Any, Iterable, List, Mapping

from pdfharvest.extractors.data_types import TableCandidate

# zero-width split after a period (the period stays on the left) or on newlines
_LINE_SPLIT_RE = re.compile(r"(?<=\.)\s+|\n+")
_DIGIT_RE = re.compile(r"\d")
_SEPARATOR_RE = re.compile(r"[:,]")


def split_candidate_lines(text: str) -> List[str]:
    return _LINE_SPLIT_RE.split(text)


def is_table_candidate_line(line: str) -> bool:
    """A line looks like a labeled numeric row."""
    return bool(_DIGIT_RE.search(line)) and bool(_SEPARATOR_RE.search(line))


def _page_fields(page: Any) -> typing.Optional[tuple[int, str, bool]]:
    if isinstance(page, Mapping):
        has_text = page.get("has_text_content", page.get("hasTextContent"))
        fields = page.get("index"), page.get("text"), has_text
    else:
        try:
            fields = page.index, page.text, page.has_text_content
        except AttributeError:
            return None
    index = fields[0]
    if not isinstance(index, int) or isinstance(index, bool):
        return None
    return fields


def harvest_tables(pages: Iterable[Any]) -> List[TableCandidate]:
    """
    Return candidate table rows from extracted pages, in page and line order.

    Accepts ``PageResult`` objects or mappings with the same keys. Pages
    without text content, and entries missing the expected fields or
    carrying a non-integer index, yield nothing. Input that is not iterable
    yields no candidates.
    """
    try:
        page_iter = iter(pages or [])
    except TypeError:
        return []

    candidates: List[TableCandidate] = []
    for page in page_iter:
        page_fields = _page_fields(page)
        if page_fields is None:
            continue
        index, text, has_text_content = page_fields
        if not has_text_content or not isinstance(text, str) or not text:
            continue
        for line in split_candidate_lines(text):
            if is_table_candidate_line(line):
                candidates.append(TableCandidate(page=index, content=line))
    return candidates
