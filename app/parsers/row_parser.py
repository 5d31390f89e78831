"""
app/parsers/row_parser.py

Streaming CSV row parser. Decodes a binary stream and yields one
header-keyed record per data line, in file order. Semantic checks are left
to the sample validator; the only failure here is an undecodable stream.
"""

from __future__ import annotations

import codecs
import csv
import io
from collections.abc import Iterator
from typing import BinaryIO

from app.errors import MalformedInputError

Record = dict[str, str | None]


def _text_encoding(encoding: str) -> str:
    try:
        name = codecs.lookup(encoding).name
    except LookupError as exc:
        raise MalformedInputError(f"Unsupported text encoding: {encoding!r}.") from exc
    # utf-8-sig strips a leading BOM and is otherwise identical to utf-8.
    return "utf-8-sig" if name == "utf-8" else name


def _reject_nul(cells: list[str], line_number: int) -> None:
    if any("\x00" in cell for cell in cells):
        raise MalformedInputError(
            "Invalid CSV format: line contains NUL.",
            context={"line": line_number},
        )


def iter_rows(stream: BinaryIO, encoding: str = "utf-8") -> Iterator[Record]:
    """
    Lazily yield records from a CSV byte stream.

    Header names are whitespace-stripped, cells past the header are dropped
    and missing trailing cells map to ``None``. The binary stream stays
    open and owned by the caller.
    """

    text_encoding = _text_encoding(encoding)
    text_stream: io.TextIOWrapper | None = None
    try:
        text_stream = io.TextIOWrapper(stream, encoding=text_encoding, newline="")
        reader = csv.reader(text_stream)
        header = next(reader, None)
        if header is None:
            return
        _reject_nul(header, 1)
        columns = [name.strip() for name in header]

        for cells in reader:
            if not cells:
                continue
            _reject_nul(cells, reader.line_num)
            record: Record = {}
            for index, column in enumerate(columns):
                record[column] = cells[index] if index < len(cells) else None
            yield record
    except UnicodeDecodeError as exc:
        raise MalformedInputError(f"CSV must be {encoding} encoded.") from exc
    except csv.Error as exc:
        raise MalformedInputError(f"Invalid CSV format: {exc}") from exc
    finally:
        if text_stream is not None:
            try:
                text_stream.detach()
            except ValueError:
                # Caller already closed the underlying stream.
                pass

