"""
Compiles annotated SQL templates into driver-ready SQL text with parameter and result column descriptors.
"""

import enum
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from io import StringIO
from typing import Any

from . import binder, reader
from .errors import ArityMismatchError
from .lexer import DEFAULT_ESCAPE_CHAR, DEFAULT_PARAM_CHAR, DEFAULT_TYPE_CHAR, Literal, Param, ResultType, tokenize
from .types import DEFAULT_TYPE_TOKEN, MultiType, ParamType, SQLType, as_param_type, as_result_type, element_type, resolve_param_type, resolve_result_type

logger = logging.getLogger(__name__)


class PlaceholderStyle(enum.Enum):
    "Placeholder syntax expected by the driver."

    QMARK = "qmark"  # `?`, e.g. sqlite3 or JDBC-style drivers
    NUMERIC = "numeric"  # `$1`, e.g. asyncpg
    FORMAT = "format"  # `%s`, e.g. psycopg

    def __str__(self) -> str:
        return self.value

    def literal(self, fragment: str) -> str:
        "Literal SQL text as the driver expects it around placeholders."

        if self is PlaceholderStyle.FORMAT:
            return fragment.replace("%", "%%")
        return fragment

    def placeholder(self, ordinal: int) -> str:
        "Placeholder for the parameter with the given 1-based ordinal."

        match self:
            case PlaceholderStyle.QMARK:
                return "?"
            case PlaceholderStyle.NUMERIC:
                return f"${ordinal}"
            case PlaceholderStyle.FORMAT:
                return "%s"


# type policies permitted for parameters and result columns that carry no type
DEFAULT_TYPE_POLICIES = (SQLType.DYNAMIC, SQLType.OBJECT)


@dataclass(frozen=True)
class ParamSpec:
    "Parameter descriptor: the key that looks up the value, and its declared type."

    key: str
    data_type: ParamType

    @property
    def multi(self) -> bool:
        return isinstance(self.data_type, MultiType)

    @property
    def element_type(self) -> SQLType:
        if isinstance(self.data_type, MultiType):
            return element_type(self.data_type)
        return self.data_type


@dataclass(frozen=True)
class CompiledTemplate:
    """
    Immutable result of parsing and type resolution, shared across executions of a statement.

    Equality and hashing consider only the descriptive fields, so compiling the same template twice yields equal
    objects.
    """

    name: str | None
    fragments: tuple[str, ...]
    params: tuple[ParamSpec, ...]
    result_types: tuple[SQLType, ...]
    placeholder: PlaceholderStyle
    sql_text: str
    requires_dynamic_sql: bool

    # one setter per parameter (the element setter for a multi-value parameter)
    setters: tuple[binder.Setter, ...] = field(compare=False, repr=False)

    # one accessor per result column
    readers: tuple[reader.Reader, ...] = field(compare=False, repr=False)

    @property
    def param_keys(self) -> tuple[str, ...]:
        return tuple(p.key for p in self.params)

    @property
    def param_types(self) -> tuple[ParamType, ...]:
        return tuple(p.data_type for p in self.params)

    def render(self, params: Mapping[str, Any] | Sequence[Any] | None = None) -> str:
        """
        Returns the SQL text to prepare for the given parameter values.

        Static templates always return `sql_text`. Templates with multi-value parameters expand each such parameter
        into as many placeholders as there are values.
        """

        if not self.requires_dynamic_sql:
            return self.sql_text

        buf = StringIO()
        ordinal = 1
        for position, (fragment, spec) in enumerate(zip(self.fragments, self.params)):
            buf.write(self.placeholder.literal(fragment))
            if spec.multi:
                count = len(binder.multi_values(spec, position + 1, binder.lookup(params, spec, position, len(self.params))))
                if count < 1:
                    raise ArityMismatchError(1, 0, f"multi-value param `{spec.key}` expects at least one value")
                buf.write(", ".join(self.placeholder.placeholder(k) for k in range(ordinal, ordinal + count)))
                ordinal += count
            else:
                buf.write(self.placeholder.placeholder(ordinal))
                ordinal += 1
        buf.write(self.placeholder.literal(self.fragments[-1]))
        return buf.getvalue()

    def __str__(self) -> str:
        return self.sql_text


def _join(fragments: Sequence[str], count: int, placeholder: PlaceholderStyle) -> str:
    buf = StringIO()
    for ordinal in range(1, count + 1):
        buf.write(placeholder.literal(fragments[ordinal - 1]))
        buf.write(placeholder.placeholder(ordinal))
    buf.write(placeholder.literal(fragments[-1]))
    return buf.getvalue()


def _override_param_types(
    specs: list[ParamSpec],
    overrides: Mapping[str, ParamType | str] | Sequence[ParamType | str],
) -> list[ParamSpec]:
    if isinstance(overrides, Mapping):
        keys = {spec.key for spec in specs}
        unknown = [key for key in overrides if key not in keys]
        if unknown:
            raise ValueError(f"expected: param type overrides for declared keys {sorted(keys)}; got: {unknown}")
        return [ParamSpec(spec.key, as_param_type(overrides[spec.key])) if spec.key in overrides else spec for spec in specs]

    if isinstance(overrides, (str, bytes)) or len(overrides) != len(specs):
        raise ValueError(f"expected: {len(specs)} param type overrides; got: {overrides!r}")
    return [ParamSpec(spec.key, as_param_type(data_type)) for spec, data_type in zip(specs, overrides)]


def _override_result_types(declared: list[SQLType], overrides: Sequence[SQLType | str]) -> list[SQLType]:
    if isinstance(overrides, (str, bytes)):
        raise ValueError(f"expected: a sequence of result type overrides; got: {overrides!r}")
    if declared and len(overrides) != len(declared):
        # a partial annotation would leave some columns without a committed type
        raise ValueError(f"expected: {len(declared)} result type overrides to match annotated columns; got: {len(overrides)}")
    return [as_result_type(data_type) for data_type in overrides]


def compile(
    text: str,
    *,
    name: str | None = None,
    escape_char: str = DEFAULT_ESCAPE_CHAR,
    param_char: str = DEFAULT_PARAM_CHAR,
    type_char: str = DEFAULT_TYPE_CHAR,
    placeholder: PlaceholderStyle = PlaceholderStyle.QMARK,
    param_types: Mapping[str, ParamType | str] | Sequence[ParamType | str] | None = None,
    result_types: Sequence[SQLType | str] | None = None,
    default_type: SQLType = SQLType.DYNAMIC,
) -> CompiledTemplate:
    """
    Parses an annotated SQL template and resolves its parameter and result column types.

    :param text: SQL template with `$name` parameters and `^type` hints.
    :param name: Name to identify the template in diagnostics.
    :param escape_char: Escape character.
    :param param_char: Character that introduces a named parameter.
    :param type_char: Character that introduces a type hint.
    :param placeholder: Placeholder syntax of the target driver.
    :param param_types: Types that replace inferred parameter types, by position or by key.
    :param result_types: Types that replace inferred result column types.
    :param default_type: Type of parameters and columns that have no type hint or use `^^`. `SQLType.DYNAMIC`
        (the default) picks a setter by the runtime type of each value and normalizes column values read without
        a declared type. `SQLType.OBJECT` passes values through to and from the driver untouched.
    """

    if default_type not in DEFAULT_TYPE_POLICIES:
        raise ValueError(f"expected: default type either of {', '.join(str(t) for t in DEFAULT_TYPE_POLICIES)}; got: {default_type!r}")
    if not isinstance(placeholder, PlaceholderStyle):
        placeholder = PlaceholderStyle(placeholder)

    tokens = tokenize(text, escape_char=escape_char, param_char=param_char, type_char=type_char)

    fragments: list[str] = []
    specs: list[ParamSpec] = []
    columns: list[SQLType] = []
    literal = StringIO()
    for token in tokens:
        match token:
            case Literal(text=fragment):
                literal.write(fragment)
            case Param(name=key, type_token=type_token):
                fragments.append(literal.getvalue())
                literal = StringIO()
                if type_token is None or type_token == DEFAULT_TYPE_TOKEN:
                    data_type: ParamType = default_type
                else:
                    data_type = resolve_param_type(type_token, text)
                specs.append(ParamSpec(key, data_type))
            case ResultType(type_token=type_token):
                if type_token == DEFAULT_TYPE_TOKEN:
                    columns.append(default_type)
                else:
                    columns.append(resolve_result_type(type_token, text))
    fragments.append(literal.getvalue())

    if param_types is not None:
        specs = _override_param_types(specs, param_types)
    if result_types is not None:
        columns = _override_result_types(columns, result_types)

    template = CompiledTemplate(
        name=name,
        fragments=tuple(fragments),
        params=tuple(specs),
        result_types=tuple(columns),
        placeholder=placeholder,
        sql_text=_join(fragments, len(specs), placeholder),
        requires_dynamic_sql=any(spec.multi for spec in specs),
        setters=tuple(binder.make_setter(spec.element_type) for spec in specs),
        readers=tuple(reader.make_reader(data_type) for data_type in columns),
    )
    logger.debug(
        "compiled SQL template %s with %d params and %d result columns%s",
        name or repr(text),
        len(specs),
        len(columns),
        " (dynamic SQL)" if template.requires_dynamic_sql else "",
    )
    return template


# number of compiled templates kept by `compile_cached`
DEFAULT_CACHE_SIZE = 1024


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return frozenset(value.items())
    if isinstance(value, Sequence) and not isinstance(value, str):
        return tuple(value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, frozenset):
        return dict(value)
    return value


@lru_cache(maxsize=DEFAULT_CACHE_SIZE)
def _compile_frozen(text: str, options: tuple[tuple[str, Any], ...]) -> CompiledTemplate:
    logger.debug("SQL template cache miss for %r", text)
    return compile(text, **{name: _thaw(value) for name, value in options})


def compile_cached(text: str, **options: Any) -> CompiledTemplate:
    """
    Compiles a template, reusing an earlier result for the same text and options.

    The least recently used templates are evicted beyond `DEFAULT_CACHE_SIZE` entries. Compilation is deterministic,
    so threads that race on the same key produce equal templates and either may be kept.
    """

    return _compile_frozen(text, tuple(sorted((name, _freeze(value)) for name, value in options.items())))


def clear_cache() -> None:
    _compile_frozen.cache_clear()
