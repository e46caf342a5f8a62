"""
Typed SQL templates for asyncpg and other drivers.

Templates are ordinary SQL with named parameters (`$name`) and type hints (`^type`):

    SELECT ^string name, ^int salary FROM emp WHERE dept = ^string $dept AND level IN (^ints $levels)

A template compiles once into driver-ready SQL text, an ordered list of parameter descriptors and a list of result
column types, which drive binding parameter values and reading result rows.
"""

__version__ = "0.1.0"
__author__ = "Levente Hunyadi"
__copyright__ = "Copyright 2025, Levente Hunyadi"
__license__ = "MIT"
__maintainer__ = "Levente Hunyadi"
__status__ = "Production"

from .binder import ParameterBuffer, Statement, bind, bind_args, bind_positional
from .compiler import CompiledTemplate, ParamSpec, PlaceholderStyle, clear_cache, compile, compile_cached
from .errors import (
    ArityMismatchError,
    BindError,
    ColumnCountMismatchError,
    MalformedTemplateError,
    MissingParamError,
    ParamTypeMismatchError,
    ReadError,
    TemplateError,
    UnknownTypeError,
    UnsupportedColumnTypeError,
)
from .lexer import Literal, Param, ResultType, Token, tokenize
from .reader import read_mapping, read_row, read_rows, read_value
from .statement import SQLStatement, sql
from .types import MultiType, SQLType, element_type, is_multi, null_default, resolve_param_type, resolve_result_type

__all__ = [
    "ArityMismatchError",
    "BindError",
    "ColumnCountMismatchError",
    "CompiledTemplate",
    "Literal",
    "MalformedTemplateError",
    "MissingParamError",
    "MultiType",
    "Param",
    "ParamSpec",
    "ParamTypeMismatchError",
    "ParameterBuffer",
    "PlaceholderStyle",
    "ReadError",
    "ResultType",
    "SQLStatement",
    "SQLType",
    "Statement",
    "TemplateError",
    "Token",
    "UnknownTypeError",
    "UnsupportedColumnTypeError",
    "bind",
    "bind_args",
    "bind_positional",
    "clear_cache",
    "compile",
    "compile_cached",
    "element_type",
    "is_multi",
    "null_default",
    "read_mapping",
    "read_row",
    "read_rows",
    "read_value",
    "resolve_param_type",
    "resolve_result_type",
    "sql",
    "tokenize",
]
