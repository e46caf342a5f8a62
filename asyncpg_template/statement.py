"""
Runs compiled templates on an asyncpg connection.
"""

import logging
import typing
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeAlias

import asyncpg
from asyncpg.prepared_stmt import PreparedStatement

from .binder import bind_args
from .compiler import CompiledTemplate, PlaceholderStyle, compile_cached
from .errors import ColumnCountMismatchError
from .reader import read_mapping, read_row, read_rows
from .types import SQLType

logger = logging.getLogger(__name__)

Connection: TypeAlias = asyncpg.Connection | asyncpg.pool.PoolConnectionProxy
Params: TypeAlias = Mapping[str, Any] | Sequence[Any] | None

# maps result column types to PostgreSQL internal type names they can represent
_type_to_names: dict[SQLType, frozenset[str]] = {
    SQLType.BOOLEAN: frozenset(["bool"]),
    SQLType.BYTE: frozenset(["int2"]),
    SQLType.INTEGER: frozenset(["int2", "int4"]),
    SQLType.LONG: frozenset(["int2", "int4", "int8"]),
    SQLType.FLOAT: frozenset(["float4"]),
    SQLType.DOUBLE: frozenset(["float4", "float8"]),
    SQLType.DECIMAL: frozenset(["numeric"]),
    SQLType.STRING: frozenset(["bpchar", "varchar", "text", "name", "json", "jsonb"]),
    SQLType.NSTRING: frozenset(["bpchar", "varchar", "text", "name"]),
    SQLType.CLOB: frozenset(["text", "varchar", "json", "jsonb"]),
    SQLType.BYTE_ARRAY: frozenset(["bytea"]),
    SQLType.BLOB: frozenset(["bytea"]),
    SQLType.DATE: frozenset(["date", "timestamp", "timestamptz"]),
    SQLType.TIME: frozenset(["time", "timetz"]),
    SQLType.TIMESTAMP: frozenset(["timestamp", "timestamptz", "date"]),
    SQLType.UUID: frozenset(["uuid"]),
}


def check_data_type(name: str, kind: str, data_type: SQLType) -> bool:
    """
    Verifies if the declared result column type can represent the PostgreSQL source type.
    """

    if data_type is SQLType.DYNAMIC or data_type is SQLType.OBJECT:
        return True
    if data_type is SQLType.ARRAY:
        return kind == "array"

    names = _type_to_names.get(data_type)
    return names is not None and name in names


class SQLStatement:
    """
    Binds parameters to a compiled template, runs it on a connection, and reads the resultset with declared types.

    Connections are owned by the caller.
    """

    template: CompiledTemplate

    def __init__(self, template: CompiledTemplate) -> None:
        if template.placeholder is not PlaceholderStyle.NUMERIC:
            raise ValueError(f"expected: template compiled with {PlaceholderStyle.NUMERIC} placeholders; got: {template.placeholder}")
        self.template = template

    def __str__(self) -> str:
        return str(self.template)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.template.name or self.template.sql_text!r})"

    async def _prepare(self, connection: Connection, query: str) -> PreparedStatement:
        stmt = await connection.prepare(query)

        if self.template.result_types:
            attributes = stmt.get_attributes()
            if len(attributes) != len(self.template.result_types):
                raise ColumnCountMismatchError(len(self.template.result_types), len(attributes))
            for attr, data_type in zip(attributes, self.template.result_types):
                if not check_data_type(attr.type.name, attr.type.kind, data_type):
                    raise TypeError(f"expected: {data_type} in column `{attr.name}`; got: `{attr.type.kind}` of `{attr.type.name}`")

        return stmt

    @staticmethod
    def _column_types(stmt: PreparedStatement) -> list[str | None]:
        return [attr.type.name for attr in stmt.get_attributes()]

    async def execute(self, connection: Connection, params: Params = None) -> None:
        query, args = bind_args(self.template, params)
        logger.debug("executing %s", self.template.name or query)
        await connection.execute(query, *args)

    async def executemany(self, connection: Connection, params: Iterable[Params]) -> None:
        if self.template.requires_dynamic_sql:
            # placeholder count may differ between parameter sets
            for item in params:
                await self.execute(connection, item)
            return

        stmt = await self._prepare(connection, self.template.sql_text)
        await stmt.executemany([bind_args(self.template, item)[1] for item in params])

    async def fetch(self, connection: Connection, params: Params = None) -> list[tuple[Any, ...]]:
        query, args = bind_args(self.template, params)
        stmt = await self._prepare(connection, query)
        rows = await stmt.fetch(*args)
        return read_rows(rows, self.template, column_types=self._column_types(stmt))

    async def fetchmany(self, connection: Connection, params: Iterable[Params]) -> list[tuple[Any, ...]]:
        "Runs the statement for each parameter set, and concatenates the resultsets."

        if self.template.requires_dynamic_sql:
            resultset: list[tuple[Any, ...]] = []
            for item in params:
                resultset.extend(await self.fetch(connection, item))
            return resultset

        stmt = await self._prepare(connection, self.template.sql_text)
        rows = await stmt.fetchmany([bind_args(self.template, item)[1] for item in params])  # type: ignore[arg-type, call-arg]
        rows = typing.cast(list[asyncpg.Record], rows)
        return read_rows(rows, self.template, column_types=self._column_types(stmt))

    async def fetchrow(self, connection: Connection, params: Params = None) -> tuple[Any, ...] | None:
        query, args = bind_args(self.template, params)
        stmt = await self._prepare(connection, query)
        row = await stmt.fetchrow(*args)
        if row is None:
            return None
        return read_row(row, self.template, column_types=self._column_types(stmt))

    async def fetchval(self, connection: Connection, params: Params = None) -> Any:
        row = await self.fetchrow(connection, params)
        if row is None:
            return None
        return row[0]

    async def fetchmap(self, connection: Connection, params: Params = None) -> list[dict[str, Any]]:
        query, args = bind_args(self.template, params)
        stmt = await self._prepare(connection, query)
        rows = await stmt.fetch(*args)
        column_types = self._column_types(stmt)
        return [read_mapping(row, self.template, column_types=column_types) for row in rows]


def sql(stmt: str, **options: Any) -> SQLStatement:
    """
    Creates a SQL statement for asyncpg from an annotated SQL template.

    :param stmt: SQL template with `$name` parameters and `^type` hints.
    :param options: Compile options such as `name`, `param_types`, `result_types` or `default_type`.
    """

    if "placeholder" in options:
        raise ValueError(f"expected: compile options without `placeholder`, asyncpg uses {PlaceholderStyle.NUMERIC} placeholders; got: {options['placeholder']}")

    return SQLStatement(compile_cached(stmt, placeholder=PlaceholderStyle.NUMERIC, **options))
