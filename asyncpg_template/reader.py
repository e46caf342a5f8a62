"""
Extracts typed values from result rows according to declared result column types.
"""

import math
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from functools import lru_cache
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from .errors import ColumnCountMismatchError, ReadError, UnsupportedColumnTypeError
from .types import SQLType, as_result_type

# driver column type names that identify timestamp and date columns
TIMESTAMP_TYPE_NAMES = frozenset(["timestamp", "timestamptz", "timestamp without time zone", "timestamp with time zone", "datetime"])
DATE_TYPE_NAMES = frozenset(["date"])

Reader = Callable[[Any, str | None], Any]

# time zone of a date, time or timestamp column, as a `tzinfo` or an IANA time zone name
TimeZone = tzinfo | str | None


def _materialize(value: Any) -> Any:
    read = getattr(value, "read", None)
    if callable(read):
        return read()
    return value


def _normalize(value: Any, column_type: str | None) -> Any:
    """
    Reads a column without a declared type.

    Large objects are materialized into `str` or `bytes`, and date/timestamp ambiguities are resolved by inspecting
    the driver column type.
    """

    match value:
        case None:
            return None
        case bytearray() | memoryview():
            return bytes(value)
        case datetime():
            if column_type in DATE_TYPE_NAMES:
                return value.date()
            return value
        case date():
            if column_type in TIMESTAMP_TYPE_NAMES:
                return datetime.combine(value, time())
            return value
        case _:
            return _materialize(value)


def _as_tzinfo(tz: TimeZone) -> tzinfo | None:
    if tz is None or isinstance(tz, tzinfo):
        return tz
    if isinstance(tz, str):
        return ZoneInfo(tz)
    raise TypeError(f"expected: a tzinfo or a time zone name; got: {tz!r}")


def _localize(value: Any, tz: tzinfo) -> Any:
    """
    Interprets a date/time value in a time zone.

    Naive values are taken as wall clock time in the time zone, and aware values are converted to it.
    """

    match value:
        case datetime():
            if value.tzinfo is None:
                return value.replace(tzinfo=tz)
            return value.astimezone(tz)
        case time():
            if value.tzinfo is None:
                return value.replace(tzinfo=tz)
            return value
        case _:
            return value


# column types whose values are read in the time zone given for the column
_ZONED_TYPES = frozenset([SQLType.DATE, SQLType.TIME, SQLType.TIMESTAMP])



def _reject(value: Any) -> Any:
    raise TypeError(f"unexpected {type(value).__name__} value")


def _read_boolean(value: Any, column_type: str | None) -> bool:
    match value:
        case None:
            return False
        case bool():
            return value
        case int():
            return value != 0
        case _:
            return _reject(value)


def _integer_reader(data_type: SQLType, valid: range | None) -> Reader:
    def read(value: Any, column_type: str | None) -> int:
        match value:
            case None:
                return 0
            case bool():
                return _reject(value)
            case int():
                result = value
            case float() | Decimal():
                if not math.isfinite(value) or value != int(value):
                    return _reject(value)
                result = int(value)
            case _:
                return _reject(value)
        if valid is not None and result not in valid:
            raise ValueError(f"value {result} out of range for {data_type}")
        return result

    return read


def _read_float(value: Any, column_type: str | None) -> float:
    match value:
        case None:
            return 0.0
        case bool():
            return _reject(value)
        case float() | int() | Decimal():
            return float(value)
        case _:
            return _reject(value)


def _read_decimal(value: Any, column_type: str | None) -> Decimal | None:
    match value:
        case None:
            return None
        case bool():
            return _reject(value)
        case Decimal() | int():
            return Decimal(value)
        case float():
            return Decimal(str(value))
        case _:
            return _reject(value)


def _read_string(value: Any, column_type: str | None) -> str | None:
    if value is None:
        return None
    value = _materialize(value)
    if not isinstance(value, str):
        return _reject(value)
    return value


def _read_bytes(value: Any, column_type: str | None) -> bytes | None:
    if value is None:
        return None
    value = _materialize(value)
    if not isinstance(value, (bytes, bytearray, memoryview)):
        return _reject(value)
    return bytes(value)


def _read_date(value: Any, column_type: str | None) -> date | None:
    match value:
        case None:
            return None
        case datetime():
            return value.date()
        case date():
            return value
        case _:
            return _reject(value)


def _read_time(value: Any, column_type: str | None) -> time | None:
    match value:
        case None:
            return None
        case datetime():
            return value.timetz()
        case time():
            return value
        case _:
            return _reject(value)


def _read_timestamp(value: Any, column_type: str | None) -> datetime | None:
    match value:
        case None:
            return None
        case datetime():
            return value
        case date():
            return datetime.combine(value, time())
        case _:
            return _reject(value)


def _read_uuid(value: Any, column_type: str | None) -> UUID | None:
    match value:
        case None:
            return None
        case UUID():
            return value
        case str():
            return UUID(value)
        case _:
            return _reject(value)


def _read_array(value: Any, column_type: str | None) -> list[Any] | None:
    match value:
        case None:
            return None
        case list() | tuple():
            return list(value)
        case _:
            return _reject(value)


def _read_object(value: Any, column_type: str | None) -> Any:
    return value


_readers: dict[SQLType, Reader] = {
    SQLType.DYNAMIC: _normalize,
    SQLType.BOOLEAN: _read_boolean,
    SQLType.BYTE: _integer_reader(SQLType.BYTE, range(-(2**7), 2**7)),
    SQLType.BYTE_ARRAY: _read_bytes,
    SQLType.DATE: _read_date,
    SQLType.DOUBLE: _read_float,
    SQLType.FLOAT: _read_float,
    SQLType.INTEGER: _integer_reader(SQLType.INTEGER, range(-(2**31), 2**31)),
    SQLType.LONG: _integer_reader(SQLType.LONG, range(-(2**63), 2**63)),
    SQLType.NSTRING: _read_string,
    SQLType.OBJECT: _read_object,
    SQLType.STRING: _read_string,
    SQLType.TIME: _read_time,
    SQLType.TIMESTAMP: _read_timestamp,
    SQLType.DECIMAL: _read_decimal,
    SQLType.UUID: _read_uuid,
    SQLType.ARRAY: _read_array,
    SQLType.BLOB: _read_bytes,
    SQLType.CLOB: _read_string,
}


def make_reader(data_type: SQLType) -> Reader:
    "Returns the accessor for a result column type."

    return _readers[data_type]


@lru_cache(maxsize=256)
def _reading_plan(data_types: tuple[SQLType, ...]) -> tuple[Reader, ...]:
    return tuple(make_reader(data_type) for data_type in data_types)


def _resolve(template_or_types: Any) -> tuple[tuple[SQLType, ...], tuple[Reader, ...]]:
    if template_or_types is None:
        return (), ()
    if isinstance(template_or_types, Sequence) and not isinstance(template_or_types, str):
        data_types = tuple(as_result_type(t) for t in template_or_types)
        return data_types, _reading_plan(data_types)
    if hasattr(template_or_types, "readers"):
        return template_or_types.result_types, template_or_types.readers
    raise TypeError(f"expected: a compiled template or a sequence of result types; got: {template_or_types!r}")


def _read(
    values: Sequence[Any],
    data_types: Sequence[SQLType],
    readers: Sequence[Reader],
    column_types: Sequence[str | None] | None,
    timezones: Sequence[TimeZone] | None,
) -> tuple[Any, ...]:
    if column_types is None:
        column_types = (None,) * len(values)
    elif len(column_types) != len(values):
        raise ColumnCountMismatchError(len(column_types), len(values))

    if timezones is None:
        zones: Sequence[tzinfo | None] = (None,) * len(values)
    elif len(timezones) != len(values):
        raise ColumnCountMismatchError(len(timezones), len(values))
    else:
        zones = [_as_tzinfo(tz) for tz in timezones]

    if not data_types:
        return tuple(
            _normalize(value, column_type) if tz is None else _localize(_normalize(value, column_type), tz)
            for value, column_type, tz in zip(values, column_types, zones)
        )

    if len(values) != len(data_types):
        raise ColumnCountMismatchError(len(data_types), len(values))

    row: list[Any] = []
    for index, (value, column_type, data_type, read, tz) in enumerate(zip(values, column_types, data_types, readers, zones), start=1):
        try:
            if tz is not None and data_type in _ZONED_TYPES:
                row.append(_localize(read(_localize(value, tz), column_type), tz))
            else:
                row.append(read(value, column_type))
        except ReadError:
            raise
        except (TypeError, ValueError) as e:
            raise UnsupportedColumnTypeError(index, data_type, value) from e
    return tuple(row)


def read_row(
    row: Sequence[Any],
    template_or_types: Any = None,
    *,
    column_types: Sequence[str | None] | None = None,
    timezones: Sequence[TimeZone] | None = None,
) -> tuple[Any, ...]:
    """
    Reads one result row into a tuple of typed values.

    :param row: Result row that supports `len()` and integer indexing, e.g. an `asyncpg.Record` or a DB-API tuple.
    :param template_or_types: Compiled template, a sequence of result column types, or `None` if columns are untyped.
    :param column_types: Driver type names of result columns, used to resolve date/timestamp ambiguities.
    :param timezones: Time zone per result column (or `None` for a column), in which date, time and timestamp values
        are interpreted. Naive values take the time zone, aware values are converted to it.
    """

    data_types, readers = _resolve(template_or_types)
    values = [row[i] for i in range(len(row))]
    return _read(values, data_types, readers, column_types, timezones)


def read_rows(
    rows: Iterable[Sequence[Any]],
    template_or_types: Any = None,
    *,
    column_types: Sequence[str | None] | None = None,
    timezones: Sequence[TimeZone] | None = None,
) -> list[tuple[Any, ...]]:
    "Reads each row with `read_row`."

    data_types, readers = _resolve(template_or_types)
    return [_read([row[i] for i in range(len(row))], data_types, readers, column_types, timezones) for row in rows]


def read_value(
    row: Sequence[Any],
    template_or_types: Any = None,
    *,
    column_types: Sequence[str | None] | None = None,
    timezones: Sequence[TimeZone] | None = None,
) -> Any:
    "Reads the first column of a row."

    return read_row(row, template_or_types, column_types=column_types, timezones=timezones)[0]


def read_mapping(
    row: Sequence[Any],
    template_or_types: Any = None,
    *,
    keys: Sequence[str] | None = None,
    column_types: Sequence[str | None] | None = None,
    timezones: Sequence[TimeZone] | None = None,
) -> dict[str, Any]:
    """
    Reads a row into a dictionary keyed by column labels.

    :param keys: Column labels. Defaults to the keys the row reports, e.g. `asyncpg.Record.keys()`.
    """

    if keys is None:
        row_keys = getattr(row, "keys", None)
        if not callable(row_keys):
            raise TypeError(f"expected: column labels for a row of type {type(row).__name__}")
        keys = list(row_keys())
    values = read_row(row, template_or_types, column_types=column_types, timezones=timezones)
    if len(keys) != len(values):
        raise ColumnCountMismatchError(len(keys), len(values))
    return dict(zip(keys, values))
