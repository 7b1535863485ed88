"""Unit tests for result assembly."""

import unittest

from app.assembly import assemble, page_count
from app.models import Block, BlockType, ResultPage


def _line(text):
    return Block(kind=BlockType.LINE, text=text)


def _cell(row, column, span, text):
    return Block(kind=BlockType.CELL, text=text, row_index=row, column_index=column, column_span=span)


TABLE = Block(kind=BlockType.TABLE)


class TestAssemble(unittest.TestCase):
    def test_lines_across_pages_keep_fetch_order(self) -> None:
        pages = [
            ResultPage(blocks=[_line("A"), _line("B")], next_token="t1"),
            ResultPage(blocks=[_line("C")]),
        ]

        self.assertEqual(assemble(pages), "A\nB\nC\n")

    def test_lines_only_equal_line_texts_joined_by_newline(self) -> None:
        texts = ["Hemoglobin 13.5 g/dL", "WBC 6.2", "Platelets 250", "Glucose 92 mg/dL"]
        pages = [ResultPage(blocks=[_line(t) for t in texts[:2]]), ResultPage(blocks=[_line(t) for t in texts[2:]])]

        self.assertEqual(assemble(pages), "\n".join(texts) + "\n")

    def test_table_followed_by_line(self) -> None:
        page = ResultPage(blocks=[TABLE, _cell(1, 1, 2, "x"), _cell(1, 2, 2, "y"), _line("done")])

        self.assertEqual(assemble([page]), "x\ty\n\ndone\n")

    def test_rows_flush_on_last_column(self) -> None:
        page = ResultPage(
            blocks=[
                _line("Lipid panel"),
                TABLE,
                _cell(1, 1, 3, "Test"),
                _cell(1, 2, 3, "Result"),
                _cell(1, 3, 3, "Range"),
                _cell(2, 1, 3, "LDL"),
                _cell(2, 2, 3, "96"),
                _cell(2, 3, 3, "<100"),
                _line("Reviewed"),
            ]
        )

        self.assertEqual(
            assemble([page]),
            "Lipid panel\nTest\tResult\tRange\nLDL\t96\t<100\n\nReviewed\n",
        )

    def test_row_cell_counts_match_cells_between_flushes(self) -> None:
        page = ResultPage(
            blocks=[TABLE, _cell(1, 1, 2, "a"), _cell(1, 2, 2, "b"), _cell(2, 1, 4, "c"), _cell(2, 4, 4, "d")]
            + [_cell(3, 1, 3, "e"), _cell(3, 2, 3, "f"), _cell(3, 3, 3, "g")]
        )

        rows = assemble([page]).splitlines()

        self.assertEqual([len(row.split("\t")) for row in rows], [2, 2, 3])

    def test_pending_row_flushed_at_end(self) -> None:
        page = ResultPage(blocks=[TABLE, _cell(1, 1, 3, "a"), _cell(1, 2, 3, "b")])

        self.assertEqual(assemble([page]), "a\tb\n")

    def test_new_table_flushes_pending_row(self) -> None:
        page = ResultPage(blocks=[TABLE, _cell(1, 1, 2, "a"), TABLE, _cell(1, 1, 1, "b"), _line("end")])

        self.assertEqual(assemble([page]), "a\nb\n\nend\n")

    def test_empty_line_still_emits_separator(self) -> None:
        page = ResultPage(blocks=[_line("first"), Block(kind=BlockType.LINE), _line(""), _line("last")])

        self.assertEqual(assemble([page]), "first\n\n\nlast\n")

    def test_empty_cell_keeps_its_position(self) -> None:
        page = ResultPage(blocks=[TABLE, _cell(1, 1, 3, "a"), _cell(1, 2, 3, None), _cell(1, 3, 3, "c")])

        self.assertEqual(assemble([page]), "a\t\tc\n")

    def test_words_and_stray_cells_do_not_add_text(self) -> None:
        page = ResultPage(
            blocks=[
                _cell(1, 1, 1, "orphan"),
                _line("Sodium 140"),
                Block(kind=BlockType.WORD, text="Sodium"),
                Block(kind=BlockType.WORD, text="140"),
            ]
        )

        self.assertEqual(assemble([page]), "Sodium 140\n")

    def test_is_deterministic(self) -> None:
        pages = [ResultPage(blocks=[_line("A"), TABLE, _cell(1, 1, 1, "x"), _line("B")])]

        self.assertEqual(assemble(pages), assemble(pages))

    def test_no_pages(self) -> None:
        self.assertEqual(assemble([]), "")


class TestPageCount(unittest.TestCase):
    def test_prefers_provider_page_count(self) -> None:
        pages = [ResultPage(document_pages=3), ResultPage(document_pages=3)]

        self.assertEqual(page_count(pages), 3)

    def test_falls_back_to_result_pages(self) -> None:
        self.assertEqual(page_count([ResultPage(), ResultPage()]), 2)


if __name__ == "__main__":
    unittest.main()
