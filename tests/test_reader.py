"""
Typed SQL templates for asyncpg and other drivers.
"""

import io
import unittest
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from asyncpg_template import (
    ColumnCountMismatchError,
    ReadError,
    SQLType,
    UnsupportedColumnTypeError,
    compile,
    null_default,
    read_mapping,
    read_row,
    read_rows,
    read_value,
)
from asyncpg_template.reader import make_reader
from asyncpg_template.types import is_primitive

FIND_BY_DEPT = "SELECT ^string name, ^int age, ^date joined FROM emp WHERE dept_id=^int $dept-id"


class Record(tuple):
    "Result row that reports column labels, like `asyncpg.Record`."

    def keys(self) -> list[str]:
        return ["name", "age", "joined"]


class TestReadRow(unittest.TestCase):
    def test_typed(self) -> None:
        template = compile(FIND_BY_DEPT)
        self.assertEqual(
            read_row(("Joe Walker", 42, date(2020, 1, 2)), template),
            ("Joe Walker", 42, date(2020, 1, 2)),
        )
        self.assertEqual(
            read_row(("Joe Walker", 42, datetime(2020, 1, 2, 3, 4, 5)), template),
            ("Joe Walker", 42, date(2020, 1, 2)),
        )

    def test_null(self) -> None:
        template = compile(FIND_BY_DEPT)
        self.assertEqual(read_row((None, None, None), template), (None, 0, None))
        self.assertEqual(
            read_row((None,) * 6, ["boolean", "byte", "int", "long", "double", "float"]),
            (False, 0, 0, 0, 0.0, 0.0),
        )

    def test_null_default(self) -> None:
        for data_type in SQLType:
            value = make_reader(data_type)(None, None)
            if is_primitive(data_type):
                self.assertEqual(value, null_default(data_type))
                self.assertIs(type(value), type(null_default(data_type)))
            else:
                self.assertIsNone(value)

    def test_conversion(self) -> None:
        uid = UUID("12345678-1234-5678-1234-567812345678")
        self.assertEqual(
            read_row(
                (1, 2.0, Decimal("3"), 4, "12345678-1234-5678-1234-567812345678", date(2020, 1, 2), (1, 2), memoryview(b"x")),
                ["boolean", "long", "int", SQLType.DOUBLE, "uuid", "timestamp", "array", "byte-array"],
            ),
            (True, 2, 3, 4.0, uid, datetime(2020, 1, 2), [1, 2], b"x"),
        )
        self.assertEqual(read_row((io.StringIO("text"), io.BytesIO(b"data")), ["clob", "blob"]), ("text", b"data"))
        self.assertEqual(read_row((datetime(2020, 1, 2, 3, 4, 5),), ["time"]), (time(3, 4, 5),))

    def test_untyped(self) -> None:
        when = datetime(2020, 1, 2, 3, 4, 5)
        self.assertEqual(read_row((1, "x", None, bytearray(b"x"))), (1, "x", None, b"x"))
        self.assertEqual(read_row((when, when), column_types=["date", "timestamp"]), (when.date(), when))
        self.assertEqual(read_row((when.date(),), column_types=["timestamptz"]), (datetime(2020, 1, 2),))
        self.assertEqual(read_row((io.StringIO("text"),)), ("text",))

    def test_object(self) -> None:
        value = {"key": "value"}
        self.assertIs(read_row((value,), [SQLType.OBJECT])[0], value)

    def test_column_count(self) -> None:
        template = compile(FIND_BY_DEPT)
        with self.assertRaises(ColumnCountMismatchError) as cm:
            read_row(("Joe Walker", 42), template)
        self.assertEqual(cm.exception.expected, 3)
        self.assertEqual(cm.exception.actual, 2)
        self.assertIsInstance(cm.exception, ReadError)

        with self.assertRaises(ColumnCountMismatchError):
            read_row((1, 2), column_types=["int4"])

    def test_partial_annotation(self) -> None:
        template = compile("SELECT ^string name, age FROM emp")
        self.assertEqual(template.result_types, (SQLType.STRING,))
        with self.assertRaises(ColumnCountMismatchError):
            read_row(("Joe Walker", 42), template)

    def test_unsupported(self) -> None:
        template = compile(FIND_BY_DEPT)
        with self.assertRaises(UnsupportedColumnTypeError) as cm:
            read_row(("Joe Walker", "42", None), template)
        self.assertEqual(cm.exception.index, 2)
        self.assertIs(cm.exception.data_type, SQLType.INTEGER)
        self.assertEqual(cm.exception.value, "42")

        for value, data_type in [(2**40, "int"), (1.5, "long"), (float("inf"), "long"), (True, "int"), (200, "byte"), ("x", "date")]:
            with self.subTest(value=value, data_type=data_type):
                with self.assertRaises(UnsupportedColumnTypeError):
                    read_row((value,), [data_type])

    def test_invalid_types(self) -> None:
        with self.assertRaises(TypeError):
            read_row((1,), 42)
        with self.assertRaises(TypeError):
            read_row((1,), "int")

    def test_timezones(self) -> None:
        tz = timezone(timedelta(hours=2))
        row = read_row(
            (datetime(2020, 1, 2, 3, 4, 5), time(3, 4, 5), datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc), None),
            ["timestamp", "time", "timestamp", "timestamp"],
            timezones=[tz, tz, tz, tz],
        )
        self.assertEqual(row, (datetime(2020, 1, 2, 3, 4, 5, tzinfo=tz), time(3, 4, 5, tzinfo=tz), datetime(2020, 1, 2, 5, 4, 5, tzinfo=tz), None))
        self.assertIs(row[2].tzinfo, tz)

        # an aware timestamp read as a date takes the calendar day in the column time zone
        self.assertEqual(read_row((datetime(2020, 1, 2, 23, 0, tzinfo=timezone.utc),), ["date"], timezones=[tz]), (date(2020, 1, 3),))
        self.assertEqual(read_row((datetime(2020, 1, 2, 23, 0, tzinfo=timezone.utc),), ["date"]), (date(2020, 1, 2),))

        self.assertEqual(read_row((datetime(2020, 1, 2), 1), timezones=[tz, None]), (datetime(2020, 1, 2, tzinfo=tz), 1))
        self.assertEqual(read_row((datetime(2020, 1, 2), 1), ["timestamp", "int"], timezones=[None, tz]), (datetime(2020, 1, 2), 1))

        with self.assertRaises(ColumnCountMismatchError):
            read_row((datetime(2020, 1, 2), 1), timezones=[tz])
        with self.assertRaises(TypeError):
            read_row((datetime(2020, 1, 2),), timezones=[42])

class TestReadHelpers(unittest.TestCase):
    def test_read_rows(self) -> None:
        template = compile(FIND_BY_DEPT)
        rows = [("Joe Walker", 42, date(2020, 1, 2)), ("Jane Doe", None, None)]
        self.assertEqual(
            read_rows(rows, template),
            [("Joe Walker", 42, date(2020, 1, 2)), ("Jane Doe", 0, None)],
        )
        self.assertEqual(read_rows([], template), [])

    def test_read_value(self) -> None:
        self.assertEqual(read_value((None,), ["long"]), 0)
        self.assertEqual(read_value((5, "x")), 5)

    def test_read_mapping(self) -> None:
        template = compile(FIND_BY_DEPT)
        self.assertEqual(
            read_mapping(Record(("Joe Walker", None, date(2020, 1, 2))), template),
            {"name": "Joe Walker", "age": 0, "joined": date(2020, 1, 2)},
        )
        self.assertEqual(read_mapping((1, 2), keys=["a", "b"]), {"a": 1, "b": 2})
        with self.assertRaises(TypeError):
            read_mapping((1, 2))
        with self.assertRaises(ColumnCountMismatchError):
            read_mapping((1, 2), keys=["a"])


if __name__ == "__main__":
    unittest.main()
