"""
Splits an annotated SQL template into literal text, named parameters and result column type hints.

Syntax:

* `$name` introduces a named parameter,
* `^type` immediately before a parameter or a result column supplies its type (`^int $id`, `^string name`),
  and `^type` immediately after a parameter name does the same (`$id^int`),
* `^^` stands for the explicit default type,
* `\\` escapes the following character,
* `--` starts a comment that lasts until the end of the line,
* single and double quotes delimit string literals and quoted identifiers, which are passed through as-is.
"""

import enum
from dataclasses import dataclass

from .errors import MalformedTemplateError
from .types import DEFAULT_TYPE_TOKEN

DEFAULT_ESCAPE_CHAR = "\\"
DEFAULT_PARAM_CHAR = "$"
DEFAULT_TYPE_CHAR = "^"

# number of characters to show before an offending character in error messages
_FRAGMENT_CONTEXT = 40


@dataclass(frozen=True)
class Literal:
    "Literal SQL text passed through to the driver."

    text: str


@dataclass(frozen=True)
class Param:
    "Named parameter with an optional type token."

    name: str
    type_token: str | None = None


@dataclass(frozen=True)
class ResultType:
    "Type token of the next result column in declaration order."

    type_token: str


Token = Literal | Param | ResultType


class _Mode(enum.Enum):
    PLAIN = enum.auto()
    DOUBLE_QUOTE = enum.auto()
    SINGLE_QUOTE = enum.auto()
    LINE_COMMENT = enum.auto()
    ESCAPE = enum.auto()
    PARAM_NAME = enum.auto()
    PARAM_TYPE = enum.auto()
    TYPE_TOKEN = enum.auto()


def _is_name_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_name_part(ch: str) -> bool:
    # hyphens are allowed for names such as `$dept-id`
    return ch.isalnum() or ch == "_" or ch == "-"


def check_delimiters(escape_char: str, param_char: str, type_char: str) -> None:
    "Verifies that special characters are single, distinct and cannot be confused with SQL text."

    chars = (escape_char, param_char, type_char)
    for ch in chars:
        if not isinstance(ch, str) or len(ch) != 1:
            raise ValueError(f"expected: a single character as delimiter; got: {ch!r}")
        if ch.isspace() or _is_name_part(ch) or ch in "'\"":
            raise ValueError(f"expected: a delimiter that is not whitespace, a quote or an identifier character; got: {ch!r}")
    if len(set(chars)) != len(chars):
        raise ValueError(f"expected: distinct escape, param and type characters; got: {chars!r}")


def tokenize(
    text: str,
    *,
    escape_char: str = DEFAULT_ESCAPE_CHAR,
    param_char: str = DEFAULT_PARAM_CHAR,
    type_char: str = DEFAULT_TYPE_CHAR,
) -> tuple[Token, ...]:
    """
    Tokenizes an annotated SQL template in a single forward pass.

    :param text: SQL template text.
    :param escape_char: Character that makes the next character lose its special meaning.
    :param param_char: Character that introduces a named parameter.
    :param type_char: Character that introduces a type token.
    :returns: Literal, parameter and result type tokens in order of appearance.
    """

    check_delimiters(escape_char, param_char, type_char)

    tokens: list[Token] = []
    buf: list[str] = []  # literal text since the last flush
    name: list[str] = []  # parameter name in progress
    hint: list[str] = []  # type token in progress
    hint_done = False  # type token is the `^^` shorthand and must not continue
    param_hint: str | None = None  # type token preceding the parameter in progress
    pending_hint: str | None = None  # finished type token waiting to learn whether a parameter follows
    gap = ""  # whitespace that terminated the pending type token
    gap_droppable = False  # literal text before the pending type token ends in whitespace
    last_dash = False  # previous literal character was a hyphen outside quotes
    mode = _Mode.PLAIN

    def fail(reason: str, position: int) -> MalformedTemplateError:
        start = max(0, position - _FRAGMENT_CONTEXT)
        return MalformedTemplateError(reason, template=text, fragment=text[start : position + 1], position=position)

    def flush() -> None:
        if buf:
            tokens.append(Literal("".join(buf)))
            buf.clear()

    def ends_in_whitespace() -> bool:
        if buf:
            return buf[-1].isspace()
        if not tokens:
            return True
        last = tokens[-1]
        return isinstance(last, Literal) and last.text[-1:].isspace()

    def finish_param(type_token: str | None) -> None:
        nonlocal param_hint
        tokens.append(Param("".join(name), type_token))
        name.clear()
        param_hint = None

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]

        match mode:
            case _Mode.PLAIN:
                if pending_hint is not None:
                    if ch == param_char:
                        # type token belongs to the parameter that follows
                        param_hint = pending_hint
                        pending_hint = None
                        gap = ""
                        mode = _Mode.PARAM_NAME
                        i += 1
                        continue

                    if ch == type_char:
                        raise fail(f"type `{pending_hint}` cannot be followed by another type", i)
                    tokens.append(ResultType(pending_hint))
                    pending_hint = None
                    if gap and not gap_droppable:
                        buf.append(gap)
                    gap = ""

                if ch == escape_char:
                    mode = _Mode.ESCAPE
                    last_dash = False
                elif ch == param_char:
                    flush()
                    mode = _Mode.PARAM_NAME
                    last_dash = False
                elif ch == type_char:
                    gap_droppable = ends_in_whitespace()
                    flush()
                    hint.clear()
                    hint_done = False
                    mode = _Mode.TYPE_TOKEN
                    last_dash = False
                else:
                    buf.append(ch)
                    if ch == '"':
                        mode = _Mode.DOUBLE_QUOTE
                    elif ch == "'":
                        mode = _Mode.SINGLE_QUOTE
                    elif ch == "-" and last_dash:
                        mode = _Mode.LINE_COMMENT
                    last_dash = ch == "-" and mode is _Mode.PLAIN

            case _Mode.ESCAPE:
                buf.append(ch)
                mode = _Mode.PLAIN
                last_dash = ch == "-"

            case _Mode.DOUBLE_QUOTE:
                buf.append(ch)
                if ch == '"':
                    mode = _Mode.PLAIN

            case _Mode.SINGLE_QUOTE:
                buf.append(ch)
                if ch == "'":
                    mode = _Mode.PLAIN

            case _Mode.LINE_COMMENT:
                buf.append(ch)
                if ch == "\n":
                    mode = _Mode.PLAIN
                    last_dash = False

            case _Mode.PARAM_NAME:
                if (_is_name_start(ch) if not name else _is_name_part(ch)):
                    name.append(ch)
                elif not name:
                    raise fail(f"expected: a parameter name after `{param_char}`; got: {ch!r}", i)
                elif ch == type_char:
                    if param_hint is not None:
                        raise fail(f"parameter `{''.join(name)}` already has type `{param_hint}`", i)
                    hint.clear()
                    hint_done = False
                    mode = _Mode.PARAM_TYPE
                elif ch in (escape_char, param_char, '"', "'"):
                    raise fail(f"named parameter `{''.join(name)}` cannot precede special character {ch!r}", i)
                else:
                    finish_param(param_hint)
                    mode = _Mode.PLAIN
                    continue  # process current character as plain text

            case _Mode.PARAM_TYPE:
                if not hint_done and (_is_name_start(ch) if not hint else _is_name_part(ch)):
                    hint.append(ch)
                elif not hint and ch == type_char:
                    hint.append(DEFAULT_TYPE_TOKEN)
                    hint_done = True
                elif not hint:
                    raise fail(f"expected: a type after `{type_char}`; got: {ch!r}", i)
                elif hint_done and _is_name_part(ch):
                    raise fail(f"expected: no type name after `{type_char}{type_char}`; got: {ch!r}", i)
                elif ch == type_char:
                    raise fail(f"type `{''.join(hint)}` cannot be followed by another type", i)
                else:
                    finish_param("".join(hint))
                    mode = _Mode.PLAIN
                    continue  # process current character as plain text

            case _Mode.TYPE_TOKEN:
                if not hint_done and (_is_name_start(ch) if not hint else _is_name_part(ch)):
                    hint.append(ch)
                elif not hint and ch == type_char:
                    hint.append(DEFAULT_TYPE_TOKEN)
                    hint_done = True
                elif not hint:
                    raise fail(f"expected: a type after `{type_char}`; got: {ch!r}", i)
                elif hint_done and _is_name_part(ch):
                    raise fail(f"expected: no type name after `{type_char}{type_char}`; got: {ch!r}", i)
                elif ch == type_char:
                    raise fail(f"type `{''.join(hint)}` cannot be followed by another type", i)
                elif ch.isspace():
                    # whitespace ends the type token and is not part of the literal text
                    pending_hint = "".join(hint)
                    gap = ch
                    mode = _Mode.PLAIN
                else:
                    pending_hint = "".join(hint)
                    gap = ""
                    mode = _Mode.PLAIN
                    continue  # process current character as plain text

        i += 1

    # verify that the final state is sane and complete any unfinished parameter
    end = max(0, n - 1)
    match mode:
        case _Mode.DOUBLE_QUOTE:
            raise fail("SQL cannot end with an incomplete double-quoted token", end)
        case _Mode.SINGLE_QUOTE:
            raise fail("SQL cannot end with an incomplete single-quoted token", end)
        case _Mode.ESCAPE:
            raise fail(f"SQL cannot end with a dangling escape character {escape_char!r}", end)
        case _Mode.TYPE_TOKEN:
            raise fail("SQL cannot end with a type hint", end)
        case _Mode.PARAM_NAME:
            if not name:
                raise fail(f"expected: a parameter name after `{param_char}`", end)
            finish_param(param_hint)
        case _Mode.PARAM_TYPE:
            if not hint:
                raise fail(f"expected: a type after `{type_char}`", end)
            finish_param("".join(hint))
        case _:
            pass
    if pending_hint is not None:
        raise fail("SQL cannot end with a type hint", end)

    flush()
    return tuple(tokens)
