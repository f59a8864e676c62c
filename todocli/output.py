"""Table and CSV writers for command output, and small filesystem helpers."""

from __future__ import annotations

import os
import sys
from typing import Iterable, TextIO


class TableWriter:
    """Writes records as tab-separated cells aligned into columns.

    Columns are laid out in blocks of consecutive lines the way an elastic
    tabstop writer does it: a column is as wide as its widest cell plus the
    padding, and the last cell of each line is never padded.
    """

    def __init__(self, stream: TextIO | None = None, *, padding: int = 1, min_width: int = 0) -> None:
        self._stream = stream
        self._padding = padding
        self._min_width = min_width
        self._lines: list[list[str]] = []

    def write(self, record: Iterable[str]) -> None:
        """Buffer one record; it is written on flush."""
        text = "\t".join(record)
        self._lines.extend(line.split("\t") for line in text.split("\n"))

    def flush(self) -> None:
        """Lay out and write every buffered record."""
        out: list[str] = []
        self._format(out, 0, len(self._lines), [])
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write("".join(out))
        stream.flush()
        self._lines.clear()

    def _format(self, out: list[str], line0: int, line1: int, widths: list[int]) -> None:
        column = len(widths)
        current = line0
        while current < line1:
            if column >= len(self._lines[current]) - 1:
                current += 1
                continue
            self._write_lines(out, line0, current, widths)
            line0 = current
            width = self._min_width
            while current < line1 and column < len(self._lines[current]) - 1:
                width = max(width, len(self._lines[current][column]) + self._padding)
                current += 1
            self._format(out, line0, current, widths + [width])
            line0 = current
        self._write_lines(out, line0, line1, widths)

    def _write_lines(self, out: list[str], line0: int, line1: int, widths: list[int]) -> None:
        for cells in self._lines[line0:line1]:
            for index, cell in enumerate(cells):
                out.append(cell)
                if index < len(widths):
                    out.append(" " * (widths[index] - len(cell)))
            out.append("\n")


def _needs_quotes(field: str) -> bool:
    if field == "":
        return False
    if field == "\\.":
        return True
    if any(ch in field for ch in ',"\r\n'):
        return True
    return field[0].isspace()


def _quote(field: str) -> str:
    if not _needs_quotes(field):
        return field
    return '"' + field.replace('"', '""') + '"'


class CsvWriter:
    """Writes records as comma-separated values, quoting only where needed."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._pending: list[str] = []

    def write(self, record: Iterable[str]) -> None:
        """Buffer one record; it is written on flush."""
        self._pending.append(",".join(_quote(field) for field in record) + "\n")

    def flush(self) -> None:
        """Write every buffered record."""
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write("".join(self._pending))
        stream.flush()
        self._pending.clear()


def exists(path: str | os.PathLike) -> bool:
    """Whether path exists; errors other than absence count as existing."""
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError:
        return True
    return True


def assure_exists(file_path: str | os.PathLike) -> None:
    """Create the directory that is to hold file_path, if it is missing."""
    directory = os.path.dirname(os.fspath(file_path)) or "."
    if exists(directory):
        return
    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as err:
        raise OSError(f"Couldn't create path: {directory}") from err