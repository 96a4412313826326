import pytest

from clinicbook.csvtable import CsvTable
from clinicbook.errors import StorageIOError

HEADER = ["id", "name", "notes"]


def test_write_all_then_read_round_trips_quoted_fields(tmp_path):
    table = CsvTable(tmp_path / "rows.csv", HEADER)
    rows = [
        ["P001", "Ann", "plain"],
        ["P002", "Hughes, Ann", 'said "hello"'],
        ["P003", "", "two\nlines"],
        ["P004", 'a,"b",c', ""],
    ]
    table.write_all(rows)

    assert table.read() == rows


def test_write_all_quotes_only_fields_that_need_it(tmp_path):
    table = CsvTable(tmp_path / "rows.csv", HEADER)
    table.write_all([["P001", "Hughes, Ann", 'said "hi"']])

    lines = table.path.read_text().splitlines()
    assert lines[0] == "id,name,notes"
    assert lines[1] == 'P001,"Hughes, Ann","said ""hi"""'


def test_append_row_escapes_commas_and_quotes(tmp_path):
    # Appends use the same quoting as full rewrites, so free text survives.
    table = CsvTable(tmp_path / "rows.csv", HEADER)
    table.write_all([["P001", "Ann", ""]])
    table.append_row(["P002", "Baker, Tom", 'note "x", y'])

    assert table.read() == [["P001", "Ann", ""], ["P002", "Baker, Tom", 'note "x", y']]
    assert len(table.path.read_text().splitlines()) == 3


def test_append_row_writes_header_for_new_file(tmp_path):
    table = CsvTable(tmp_path / "nested" / "rows.csv", HEADER)
    table.append_row(["P001", "Ann", "first"])

    assert table.path.read_text().splitlines()[0] == "id,name,notes"
    assert table.read() == [["P001", "Ann", "first"]]


def test_read_strips_whitespace_and_skips_blank_lines(tmp_path):
    path = tmp_path / "rows.csv"
    path.write_text('id,name,notes\nP001, "Smith, Jo" ,  x \n\nP002,Ann,\n')

    rows = CsvTable(path, HEADER).read()

    assert rows == [["P001", "Smith, Jo", "x"], ["P002", "Ann", ""]]


def test_read_missing_file_raises_storage_error(tmp_path):
    table = CsvTable(tmp_path / "absent.csv", HEADER)

    with pytest.raises(StorageIOError) as excinfo:
        table.read()
    assert excinfo.value.path == table.path


def test_write_failure_raises_storage_error(tmp_path):
    target = tmp_path / "rows.csv"
    target.mkdir()
    table = CsvTable(target, HEADER)

    with pytest.raises(StorageIOError):
        table.write_all([["P001", "Ann", ""]])
    with pytest.raises(StorageIOError):
        table.append_row(["P001", "Ann", ""])


def test_append_row_after_file_without_trailing_newline(tmp_path):
    path = tmp_path / "rows.csv"
    path.write_text("id,name,notes\nP001,Ann,first")
    table = CsvTable(path, HEADER)

    table.append_row(["P002", "Tom", "second"])

    assert path.read_text().splitlines() == ["id,name,notes", "P001,Ann,first", "P002,Tom,second"]
    assert table.read() == [["P001", "Ann", "first"], ["P002", "Tom", "second"]]


def test_read_drops_surrounding_whitespace_from_written_values(tmp_path):
    table = CsvTable(tmp_path / "rows.csv", HEADER)
    table.write_all([["X1", "  padded  ", " inner  space "]])

    assert table.read() == [["X1", "padded", "inner  space"]]
