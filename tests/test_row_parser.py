from __future__ import annotations

import io
import unittest

from app.errors import MalformedInputError
from app.parsers.row_parser import iter_rows


class TestRowParser(unittest.TestCase):
    def test_yields_header_keyed_records_in_order(self) -> None:
        content = b"latitude,longitude,lead\n10,20,5\n11,21,6\n"

        rows = list(iter_rows(io.BytesIO(content)))

        self.assertEqual(
            rows,
            [
                {"latitude": "10", "longitude": "20", "lead": "5"},
                {"latitude": "11", "longitude": "21", "lead": "6"},
            ],
        )

    def test_strips_bom_and_header_whitespace(self) -> None:
        content = "\ufeff latitude , longitude\n1,2\n".encode("utf-8")

        rows = list(iter_rows(io.BytesIO(content)))

        self.assertEqual(rows, [{"latitude": "1", "longitude": "2"}])

    def test_missing_cells_are_none_and_extra_cells_dropped(self) -> None:
        content = b"a,b,c\n1\n1,2,3,4\n"

        rows = list(iter_rows(io.BytesIO(content)))

        self.assertEqual(rows[0], {"a": "1", "b": None, "c": None})
        self.assertEqual(rows[1], {"a": "1", "b": "2", "c": "3"})

    def test_blank_lines_are_skipped(self) -> None:
        content = b"a,b\n\n1,2\n\n"

        rows = list(iter_rows(io.BytesIO(content)))

        self.assertEqual(rows, [{"a": "1", "b": "2"}])

    def test_empty_stream_yields_nothing(self) -> None:
        self.assertEqual(list(iter_rows(io.BytesIO(b""))), [])

    def test_undecodable_stream_raises_malformed_input(self) -> None:
        content = b"a,b\n\xff\xfe\xfa,1\n"

        with self.assertRaises(MalformedInputError):
            list(iter_rows(io.BytesIO(content)))

    def test_nul_byte_raises_malformed_input(self) -> None:
        content = b"a,b\n1,\x002\n"

        with self.assertRaises(MalformedInputError):
            list(iter_rows(io.BytesIO(content)))

    def test_unknown_encoding_raises_malformed_input(self) -> None:
        with self.assertRaises(MalformedInputError):
            list(iter_rows(io.BytesIO(b"a\n1\n"), encoding="not-a-codec"))

    def test_caller_keeps_ownership_of_stream(self) -> None:
        stream = io.BytesIO(b"a\n1\n")

        list(iter_rows(stream))

        self.assertFalse(stream.closed)

    def test_is_lazy(self) -> None:
        stream = io.BytesIO(b"a\n1\n2\n")

        rows = iter_rows(stream)
        first = next(rows)

        self.assertEqual(first, {"a": "1"})
        rows.close()
