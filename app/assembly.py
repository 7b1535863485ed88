"""Rebuild readable text from analysis result pages.

``assemble`` is a pure, order-preserving fold: pages in fetch order, blocks
in delivery order, nothing reordered or deduplicated. Table cells are
buffered per row and written tab-separated; a blank line separates a table
from the line that follows it.
"""

from typing import List, Sequence

from app.models import Block, BlockType, ResultPage


class _TextAccumulator:
    def __init__(self) -> None:
        self.parts: List[str] = []
        self.row: List[str] = []
        self.in_table = False

    def flush_row(self) -> None:
        if self.row:
            self.parts.append("\t".join(self.row) + "\n")
            self.row = []

    def feed(self, block: Block) -> None:
        if block.kind == BlockType.TABLE:
            self.flush_row()
            self.in_table = True
        elif block.kind == BlockType.CELL:
            if not self.in_table:
                return
            self.row.append(block.text or "")
            # The last column of a row closes it.
            if block.column_index is not None and block.column_index == block.column_span:
                self.flush_row()
        elif block.kind == BlockType.LINE:
            if self.in_table:
                self.flush_row()
                self.parts.append("\n")
                self.in_table = False
            self.parts.append((block.text or "") + "\n")
        # WORD text is already carried by its enclosing LINE.

    def result(self) -> str:
        self.flush_row()
        return "".join(self.parts)


def assemble(pages: Sequence[ResultPage]) -> str:
    accumulator = _TextAccumulator()
    for page in pages:
        for block in page.blocks:
            accumulator.feed(block)
    return accumulator.result()


def page_count(pages: Sequence[ResultPage]) -> int:
    """Document page count as reported by the provider, else one per result page."""

    reported = [page.document_pages for page in pages if page.document_pages]
    return max(reported) if reported else len(pages)
