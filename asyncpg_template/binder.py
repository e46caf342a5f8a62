"""
Writes parameter values into a prepared statement according to a compiled template.
"""

import typing
from collections.abc import Callable, Collection, Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from .errors import ArityMismatchError, BindError, MissingParamError, ParamTypeMismatchError
from .types import SQLType

if typing.TYPE_CHECKING:
    from .compiler import CompiledTemplate, ParamSpec

# range of values that fit a 1-, 4- and 8-byte signed integer
BYTE_RANGE = range(-(2**7), 2**7)
INT_RANGE = range(-(2**31), 2**31)
LONG_RANGE = range(-(2**63), 2**63)


class Statement(Protocol):
    """
    Driver statement that accepts parameter values by 1-based placeholder index.

    Setters raise `TypeError` or `ValueError` when the value has the wrong native representation.
    """

    def set_null(self, index: int) -> None: ...
    def set_bool(self, index: int, value: Any) -> None: ...
    def set_byte(self, index: int, value: Any) -> None: ...
    def set_int(self, index: int, value: Any) -> None: ...
    def set_long(self, index: int, value: Any) -> None: ...
    def set_float(self, index: int, value: Any) -> None: ...
    def set_double(self, index: int, value: Any) -> None: ...
    def set_decimal(self, index: int, value: Any) -> None: ...
    def set_str(self, index: int, value: Any) -> None: ...
    def set_nstr(self, index: int, value: Any) -> None: ...
    def set_bytes(self, index: int, value: Any) -> None: ...
    def set_date(self, index: int, value: Any) -> None: ...
    def set_time(self, index: int, value: Any) -> None: ...
    def set_datetime(self, index: int, value: Any) -> None: ...
    def set_uuid(self, index: int, value: Any) -> None: ...
    def set_array(self, index: int, value: Any) -> None: ...
    def set_object(self, index: int, value: Any) -> None: ...


def _expect(value: Any, data_type: type[Any] | tuple[type[Any], ...], label: str) -> None:
    if not isinstance(value, data_type) or (isinstance(value, bool) and data_type is not bool):
        raise TypeError(f"expected: {label}; got: {type(value).__name__}")


def _check_range(value: int, valid: range, label: str) -> None:
    if value not in valid:
        raise ValueError(f"value {value} out of range for {label}")


class ParameterBuffer:
    """
    Statement that collects parameter values in placeholder order, to be passed to a driver as positional arguments.

    Setters check the native representation of values the way a driver would.
    """

    sql: str
    values: dict[int, Any]

    def __init__(self, sql: str = "") -> None:
        self.sql = sql
        self.values = {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.sql!r}, {self.args!r})"

    @property
    def args(self) -> list[Any]:
        "Parameter values ordered by placeholder index."

        args: list[Any] = []
        for index in range(1, len(self.values) + 1):
            if index not in self.values:
                raise ValueError(f"SQL param #{index} has not been set")
            args.append(self.values[index])
        return args

    def clear(self) -> None:
        self.values.clear()

    def _set(self, index: int, value: Any) -> None:
        if index < 1:
            raise IndexError(f"expected: 1-based SQL param index; got: {index}")
        self.values[index] = value

    def set_null(self, index: int) -> None:
        self._set(index, None)

    def set_bool(self, index: int, value: Any) -> None:
        _expect(value, bool, "bool")
        self._set(index, value)

    def set_byte(self, index: int, value: Any) -> None:
        _expect(value, int, "int")
        _check_range(value, BYTE_RANGE, "byte")
        self._set(index, value)

    def set_int(self, index: int, value: Any) -> None:
        _expect(value, int, "int")
        _check_range(value, INT_RANGE, "integer")
        self._set(index, value)

    def set_long(self, index: int, value: Any) -> None:
        _expect(value, int, "int")
        _check_range(value, LONG_RANGE, "long")
        self._set(index, value)

    def set_float(self, index: int, value: Any) -> None:
        _expect(value, (float, int), "float")
        self._set(index, float(value))

    def set_double(self, index: int, value: Any) -> None:
        _expect(value, (float, int), "float")
        self._set(index, float(value))

    def set_decimal(self, index: int, value: Any) -> None:
        _expect(value, (Decimal, int), "Decimal")
        self._set(index, Decimal(value))

    def set_str(self, index: int, value: Any) -> None:
        _expect(value, str, "str")
        self._set(index, value)

    def set_nstr(self, index: int, value: Any) -> None:
        _expect(value, str, "str")
        self._set(index, value)

    def set_bytes(self, index: int, value: Any) -> None:
        _expect(value, (bytes, bytearray, memoryview), "bytes")
        self._set(index, bytes(value))

    def set_date(self, index: int, value: Any) -> None:
        if isinstance(value, datetime):
            raise TypeError("expected: date; got: datetime")
        _expect(value, date, "date")
        self._set(index, value)

    def set_time(self, index: int, value: Any) -> None:
        _expect(value, time, "time")
        self._set(index, value)

    def set_datetime(self, index: int, value: Any) -> None:
        _expect(value, datetime, "datetime")
        self._set(index, value)

    def set_uuid(self, index: int, value: Any) -> None:
        if isinstance(value, str):
            value = UUID(value)
        _expect(value, UUID, "UUID")
        self._set(index, value)

    def set_array(self, index: int, value: Any) -> None:
        _expect(value, (list, tuple), "list")
        self._set(index, list(value))

    def set_object(self, index: int, value: Any) -> None:
        self._set(index, value)


Setter = Callable[[Statement, int, Any], None]


def _materialize(value: Any) -> Any:
    "Reads a stream (e.g. a file object) into memory."

    read = getattr(value, "read", None)
    if callable(read):
        return read()
    return value


def _set_dynamic(statement: Statement, index: int, value: Any) -> None:
    "Picks a setter by the runtime type of the value."

    match value:
        case None:
            statement.set_null(index)
        case bool():
            statement.set_bool(index, value)
        case int():
            if value in INT_RANGE:
                statement.set_int(index, value)
            else:
                statement.set_long(index, value)
        case float():
            statement.set_double(index, value)
        case Decimal():
            statement.set_decimal(index, value)
        case str():
            statement.set_str(index, value)
        case bytes() | bytearray() | memoryview():
            statement.set_bytes(index, value)
        case datetime():
            statement.set_datetime(index, value)
        case date():
            statement.set_date(index, value)
        case time():
            statement.set_time(index, value)
        case UUID():
            statement.set_uuid(index, value)
        case list() | tuple():
            statement.set_array(index, value)
        case _:
            statement.set_object(index, value)


def _nullable(name: str) -> Setter:
    def setter(statement: Statement, index: int, value: Any) -> None:
        if value is None:
            statement.set_null(index)
        else:
            getattr(statement, name)(index, value)

    setter.__name__ = f"_{name}"
    return setter


def _streaming(name: str) -> Setter:
    def setter(statement: Statement, index: int, value: Any) -> None:
        if value is None:
            statement.set_null(index)
        else:
            getattr(statement, name)(index, _materialize(value))

    setter.__name__ = f"_{name}_stream"
    return setter


_setters: dict[SQLType, Setter] = {
    SQLType.DYNAMIC: _set_dynamic,
    SQLType.BOOLEAN: _nullable("set_bool"),
    SQLType.BYTE: _nullable("set_byte"),
    SQLType.BYTE_ARRAY: _nullable("set_bytes"),
    SQLType.DATE: _nullable("set_date"),
    SQLType.DOUBLE: _nullable("set_double"),
    SQLType.FLOAT: _nullable("set_float"),
    SQLType.INTEGER: _nullable("set_int"),
    SQLType.LONG: _nullable("set_long"),
    SQLType.NSTRING: _nullable("set_nstr"),
    SQLType.OBJECT: _nullable("set_object"),
    SQLType.STRING: _nullable("set_str"),
    SQLType.TIME: _nullable("set_time"),
    SQLType.TIMESTAMP: _nullable("set_datetime"),
    SQLType.DECIMAL: _nullable("set_decimal"),
    SQLType.UUID: _nullable("set_uuid"),
    SQLType.ARRAY: _nullable("set_array"),
    SQLType.BLOB: _streaming("set_bytes"),
    SQLType.CLOB: _streaming("set_str"),
}


def make_setter(data_type: SQLType) -> Setter:
    "Returns the setter for a single-value type."

    return _setters[data_type]


def lookup(params: Mapping[str, Any] | Sequence[Any] | None, spec: "ParamSpec", position: int, count: int) -> Any:
    """
    Looks up the value of a parameter by key or by position.

    :param params: Parameter values as a mapping of keys to values or as a sequence.
    :param spec: Descriptor of the parameter to look up.
    :param position: Zero-based position of the parameter in the template.
    :param count: Number of parameters in the template.
    """

    if params is None:
        params = ()
    if isinstance(params, Mapping):
        if spec.key not in params:
            raise MissingParamError(spec.key)
        return params[spec.key]
    if isinstance(params, Sequence) and not isinstance(params, (str, bytes, bytearray)):
        if len(params) != count:
            raise ArityMismatchError(count, len(params))
        return params[position]
    raise ArityMismatchError(count, None, f"expected: SQL params as a mapping or a sequence; got: {type(params).__name__}")


def multi_values(spec: "ParamSpec", index: int, value: Any) -> Collection[Any]:
    "Verifies that the value of a multi-value parameter is a collection of values."

    if isinstance(value, (str, bytes, bytearray, memoryview, Mapping)) or not isinstance(value, Collection):
        raise ParamTypeMismatchError(index, spec.key, spec.data_type, f"expected: a sequence of values; got: {type(value).__name__}")
    return value


def _apply(setter: Setter, statement: Statement, index: int, spec: "ParamSpec", value: Any) -> None:
    try:
        setter(statement, index, value)
    except BindError:
        raise
    except (TypeError, ValueError) as e:
        raise ParamTypeMismatchError(index, spec.key, spec.data_type, str(e)) from e


def bind(statement: Statement, template: "CompiledTemplate", params: Mapping[str, Any] | Sequence[Any] | None) -> None:
    """
    Sets parameter values on a statement in the order parameters are declared in the template.

    A multi-value parameter sets one placeholder per element, at consecutive indices. On error, parameters bound
    earlier remain set.

    :param statement: Statement prepared with SQL text returned by `template.render(params)`.
    :param template: Compiled template.
    :param params: Parameter values as a mapping of keys to values or as a sequence.
    """

    count = len(template.params)
    if isinstance(params, Sequence) and not isinstance(params, (str, bytes, bytearray)) and len(params) != count:
        raise ArityMismatchError(count, len(params))

    index = 1
    for position, (spec, setter) in enumerate(zip(template.params, template.setters)):
        value = lookup(params, spec, position, count)
        if spec.multi:
            for item in multi_values(spec, index, value):
                _apply(setter, statement, index, spec, item)
                index += 1
        else:
            _apply(setter, statement, index, spec, value)
            index += 1


def bind_positional(statement: Statement, values: Sequence[Any]) -> None:
    "Sets values on a statement whose SQL has no named parameters, picking setters by the runtime type of values."

    for index, value in enumerate(values, start=1):
        try:
            _set_dynamic(statement, index, value)
        except (TypeError, ValueError) as e:
            raise ParamTypeMismatchError(index, None, SQLType.DYNAMIC, str(e)) from e


def bind_args(template: "CompiledTemplate", params: Mapping[str, Any] | Sequence[Any] | None = None) -> tuple[str, list[Any]]:
    "Renders SQL text and collects parameter values as positional driver arguments."

    sql = template.render(params)
    buffer = ParameterBuffer(sql)
    bind(buffer, template, params)
    return sql, buffer.args
