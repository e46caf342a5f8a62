"""
Exceptions raised when compiling templates, binding parameters and reading rows.
"""

from typing import Any


class TemplateError(Exception):
    """Base exception class from which all template exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


# parse-time errors


class MalformedTemplateError(TemplateError, ValueError):
    """
    Raised when the template text cannot be tokenized.

    :param template: The full template text.
    :param fragment: The text preceding (and including) the offending character.
    :param position: Zero-based character offset of the problem in the template.
    """

    template: str
    fragment: str
    position: int

    def __init__(self, reason: str, *, template: str, fragment: str, position: int) -> None:
        self.template = template
        self.fragment = fragment
        self.position = position
        super().__init__(detail=f"{reason} at position {position}: {fragment!r}")


class UnknownTypeError(TemplateError, ValueError):
    """Raised when a type token is not in the type catalog."""

    token: str
    template: str | None

    def __init__(self, token: str, expected: str, *, template: str | None = None) -> None:
        self.token = token
        self.template = template
        message = f"expected: {expected}; got: {token!r}"
        if template is not None:
            message = f"{message} in SQL template: {template!r}"
        super().__init__(detail=message)


# bind-time errors


class BindError(TemplateError):
    """Raised when parameter values do not satisfy a compiled template."""


class MissingParamError(BindError, KeyError):
    """Raised when a mapping of parameter values lacks a declared key."""

    key: str

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(detail=f"no value found for parameter key `{key}`")

    def __str__(self) -> str:
        # `KeyError` would otherwise quote the message
        return self.detail


class ParamTypeMismatchError(BindError, TypeError):
    """Raised when the driver rejects a value for the declared parameter type."""

    index: int
    key: str | None
    data_type: Any

    def __init__(self, index: int, key: str | None, data_type: Any, reason: str) -> None:
        self.index = index
        self.key = key
        self.data_type = data_type
        label = f"#{index}" if key is None else f"#{index} (`{key}`)"
        super().__init__(detail=f"error setting SQL param {label} as {data_type}: {reason}")


class ArityMismatchError(BindError, TypeError):
    """Raised when the shape or size of parameter values is wrong."""

    expected: int
    actual: int | None

    def __init__(self, expected: int, actual: int | None, reason: str = "") -> None:
        self.expected = expected
        self.actual = actual
        message = reason or f"expected: {expected} params; got: {actual}"
        super().__init__(detail=message)


# read-time errors


class ReadError(TemplateError):
    """Raised when a result row does not match declared result types."""


class ColumnCountMismatchError(ReadError, ValueError):
    expected: int
    actual: int

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(detail=f"expected: {expected} columns in result row; got: {actual}")


class UnsupportedColumnTypeError(ReadError, TypeError):
    index: int
    data_type: Any
    value: Any

    def __init__(self, index: int, data_type: Any, value: Any) -> None:
        self.index = index
        self.data_type = data_type
        self.value = value
        super().__init__(detail=f"expected: {data_type} in column #{index}; got: {type(value).__name__} value {value!r}")
