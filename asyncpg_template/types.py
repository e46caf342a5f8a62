"""
Catalog of value types that may annotate template parameters and result columns.

Each single-value tag has a token (the text after the type marker, e.g. `^int`), and most have a multi-value
counterpart written in plural form (e.g. `^ints`) whose runtime value is a sequence expanded into one placeholder
per element.
"""

import enum
from typing import Any

from .errors import UnknownTypeError


class SQLType(enum.Enum):
    "Canonical single-value type tag."

    DYNAMIC = "nil"
    BOOLEAN = "boolean"
    BYTE = "byte"
    BYTE_ARRAY = "byte-array"
    DATE = "date"
    DOUBLE = "double"
    FLOAT = "float"
    INTEGER = "integer"
    LONG = "long"
    NSTRING = "nstring"
    OBJECT = "object"
    STRING = "string"
    TIME = "time"
    TIMESTAMP = "timestamp"
    DECIMAL = "decimal"
    UUID = "uuid"
    ARRAY = "array"
    BLOB = "blob"
    CLOB = "clob"

    def __str__(self) -> str:
        return self.value


class MultiType(enum.Enum):
    "Multi-value type tag, i.e. a sequence of values of a single-value type."

    BOOLEANS = "booleans"
    BYTES = "bytes"
    BYTE_ARRAYS = "byte-arrays"
    DATES = "dates"
    DOUBLES = "doubles"
    FLOATS = "floats"
    INTEGERS = "integers"
    LONGS = "longs"
    NSTRINGS = "nstrings"
    OBJECTS = "objects"
    STRINGS = "strings"
    TIMES = "times"
    TIMESTAMPS = "timestamps"
    DECIMALS = "decimals"
    UUIDS = "uuids"

    def __str__(self) -> str:
        return self.value


ParamType = SQLType | MultiType

# token that stands for the explicit default type (written as a doubled type marker)
DEFAULT_TYPE_TOKEN = "nil"

_multi_to_single: dict[MultiType, SQLType] = {
    MultiType.BOOLEANS: SQLType.BOOLEAN,
    MultiType.BYTES: SQLType.BYTE,
    MultiType.BYTE_ARRAYS: SQLType.BYTE_ARRAY,
    MultiType.DATES: SQLType.DATE,
    MultiType.DOUBLES: SQLType.DOUBLE,
    MultiType.FLOATS: SQLType.FLOAT,
    MultiType.INTEGERS: SQLType.INTEGER,
    MultiType.LONGS: SQLType.LONG,
    MultiType.NSTRINGS: SQLType.NSTRING,
    MultiType.OBJECTS: SQLType.OBJECT,
    MultiType.STRINGS: SQLType.STRING,
    MultiType.TIMES: SQLType.TIME,
    MultiType.TIMESTAMPS: SQLType.TIMESTAMP,
    MultiType.DECIMALS: SQLType.DECIMAL,
    MultiType.UUIDS: SQLType.UUID,
}

# maps type tokens (including aliases) to single-value types
_single_tokens: dict[str, SQLType] = {
    **{t.value: t for t in SQLType},
    "bool": SQLType.BOOLEAN,
    "int": SQLType.INTEGER,
}

# maps type tokens (including aliases) to multi-value types
_multi_tokens: dict[str, MultiType] = {
    **{t.value: t for t in MultiType},
    "bools": MultiType.BOOLEANS,
    "ints": MultiType.INTEGERS,
}

# value substituted for SQL NULL when the target type cannot represent an absent value
_null_defaults: dict[SQLType, Any] = {
    SQLType.BOOLEAN: False,
    SQLType.BYTE: 0,
    SQLType.DOUBLE: 0.0,
    SQLType.FLOAT: 0.0,
    SQLType.INTEGER: 0,
    SQLType.LONG: 0,
}


def _supported(tokens: list[str]) -> str:
    return "either of " + ", ".join(sorted(tokens))


def resolve_param_type(token: str, template: str | None = None) -> ParamType:
    """
    Resolves a parameter type token to a single-value or a multi-value type tag.

    :param token: Type token without the type marker, e.g. `int` or `strings`.
    :param template: Template text the token was found in, used in error messages.
    """

    single = _single_tokens.get(token)
    if single is not None:
        return single
    multi = _multi_tokens.get(token)
    if multi is not None:
        return multi
    raise UnknownTypeError(token, "a param type " + _supported([*_single_tokens, *_multi_tokens]), template=template)


def resolve_result_type(token: str, template: str | None = None) -> SQLType:
    """
    Resolves a result column type token to a single-value type tag.

    Multi-value tokens are rejected because a column holds a single value.
    """

    single = _single_tokens.get(token)
    if single is None:
        raise UnknownTypeError(token, "a result type " + _supported(list(_single_tokens)), template=template)
    return single


def is_multi(tag: ParamType) -> bool:
    return isinstance(tag, MultiType)


def element_type(tag: MultiType) -> SQLType:
    "Returns the element type of a multi-value type."

    return _multi_to_single[tag]


def is_primitive(tag: SQLType) -> bool:
    "True if SQL NULL is read as a fixed default value for this type."

    return tag in _null_defaults


def null_default(tag: SQLType) -> Any:
    "Value that stands for SQL NULL when read into a column of the given type."

    return _null_defaults.get(tag)


def as_param_type(value: ParamType | str) -> ParamType:
    "Accepts a type tag or a type token."

    if isinstance(value, (SQLType, MultiType)):
        return value
    if isinstance(value, str):
        return resolve_param_type(value)
    raise TypeError(f"expected: a param type tag or token; got: {value!r}")


def as_result_type(value: SQLType | str) -> SQLType:
    "Accepts a single-value type tag or a type token."

    if isinstance(value, SQLType):
        return value
    if isinstance(value, str):
        return resolve_result_type(value)
    raise TypeError(f"expected: a result type tag or token; got: {value!r}")
