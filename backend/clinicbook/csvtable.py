"""Flat CSV file <-> list of field rows."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Sequence

from .errors import StorageIOError


def _ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


class CsvTable:
    """One CSV file: a fixed header line followed by one record per line.

    Fields containing a comma, a double quote or a line break are written
    quoted with inner quotes doubled. Both write paths quote the same way so
    a row read back equals the row written, except that surrounding
    whitespace is stripped from every value on read.
    """

    def __init__(self, path: Path, header: Sequence[str]) -> None:
        self.path = Path(path)
        self.header = list(header)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> list[list[str]]:
        try:
            with self.path.open("r", newline="", encoding="utf-8") as handle:
                reader = csv.reader(handle, skipinitialspace=True)
                next(reader, None)
                return [
                    [value.strip() for value in row]
                    for row in reader
                    if row
                ]
        except OSError as error:
            raise StorageIOError(self.path, error) from error

    def append_row(self, fields: Sequence[str]) -> None:
        try:
            _ensure_directory(self.path.parent)
            needs_header = not self.path.exists() or self.path.stat().st_size == 0
            needs_newline = not needs_header and not self._ends_with_newline()
            with self.path.open("a", newline="", encoding="utf-8") as handle:
                writer = csv.writer(handle, lineterminator="\n")
                if needs_header:
                    writer.writerow(self.header)
                elif needs_newline:
                    handle.write("\n")
                writer.writerow(fields)
        except OSError as error:
            raise StorageIOError(self.path, error) from error

    def write_all(self, rows: Iterable[Sequence[str]]) -> None:
        try:
            _ensure_directory(self.path.parent)
            with self.path.open("w", newline="", encoding="utf-8") as handle:
                writer = csv.writer(handle, lineterminator="\n")
                writer.writerow(self.header)
                writer.writerows(rows)
        except OSError as error:
            raise StorageIOError(self.path, error) from error

    def _ends_with_newline(self) -> bool:
        with self.path.open("rb") as handle:
            handle.seek(-1, 2)
            return handle.read(1) in (b"\n", b"\r")
