"""
SQL text generation for record types.

Statements are rendered with ``@Name`` placeholders, one per record field,
and translated to SQLAlchemy's ``:Name`` bind style right before execution:

    record type → field names → column names → INSERT/SELECT/UPDATE/DELETE
                                                (``@Name`` placeholders)
                → bind_named_placeholders() → ``sa.text()``

Table names and key fields are interpolated as raw text. They are neither
quoted nor validated here; only values are bound as parameters.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum, auto

from dbrecords.naming import to_snake_case
from dbrecords.schema import columns_by_field

__all__ = [
    'to_snake_case',
    'insert_command',
    'select_command',
    'update_command',
    'delete_command',
    'bind_named_placeholders',
]

logger = logging.getLogger(__name__)


def insert_command(record_type: type, table: str) -> str:
    """INSERT every field of `record_type` into `table`.

    Columns and placeholders come from the same sorted field list, so the
    column at each position receives the value of the field it was named
    after.
    """
    pairs = columns_by_field(record_type)
    columns = ', '.join(column for _, column in pairs)
    placeholders = ', '.join(f'@{field}' for field, _ in pairs)
    return f'INSERT INTO {table} ({columns}) VALUES ({placeholders})'


def select_command(table: str, key_field: str) -> str:
    """SELECT the row of `table` identified by `key_field`.

    >>> select_command('users', 'Id')
    'SELECT * FROM users WHERE id = @Id'
    """
    return f'SELECT * FROM {table} WHERE {to_snake_case(key_field)} = @{key_field}'


def update_command(record_type: type, table: str, key_field: str) -> str:
    """UPDATE every column of the row identified by `key_field`.
    """
    assignments = ', '.join(f'{column} = @{field}'
                            for field, column in columns_by_field(record_type))
    key_column = to_snake_case(key_field)
    return f'UPDATE {table} SET {assignments} WHERE {key_column} = @{key_field}'


def delete_command(table: str, key_field: str) -> str:
    """DELETE the row of `table` identified by `key_field`.

    >>> delete_command('users', 'UserName')
    'DELETE FROM users WHERE user_name = @UserName'
    """
    return f'DELETE FROM {table} WHERE {to_snake_case(key_field)} = @{key_field}'


# =============================================================================
# Placeholder translation
# =============================================================================


class TokenType(Enum):
    """Token types identified while scanning SQL for placeholders."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENTIFIER = auto()
    NAMED_PH = auto()           # @Name


@dataclass(slots=True)
class Token:
    """Token from SQL scanning."""
    type: TokenType
    text: str
    start: int
    end: int
    name: str | None = None


# `@@` and `@>` are postgres operators, not placeholders
_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*')
    |(?P<quoted>"(?:[^"]|"")*")
    |(?<!@)@(?P<pname>[A-Za-z_]\w*)
""", re.VERBOSE)

# Colons that sa.text() would otherwise read as a bind parameter; the same
# pattern sa.text() binds with, so `\:name` is always unescaped again
_BARE_COLON = re.compile(r'(?<![:\w$\\]):([\w$]+)(?![:\w$])')


def tokenize_sql(sql: str) -> list[Token]:
    """Split SQL into text, literal and placeholder tokens in one pass.
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('quoted'):
            ttype = TokenType.QUOTED_IDENTIFIER
        else:
            ttype = TokenType.NAMED_PH

        tokens.append(Token(ttype, match.group(0), start, end, match.group('pname')))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def bind_named_placeholders(sql: str) -> str:
    """Rewrite ``@Name`` placeholders into SQLAlchemy ``:Name`` binds.

    Placeholders inside string literals and quoted identifiers are kept
    verbatim. Existing colons that ``sa.text()`` would mistake for binds are
    escaped. A placeholder directly followed by a ``::`` cast is wrapped in
    parentheses.

    >>> bind_named_placeholders('SELECT * FROM users WHERE id = @Id')
    'SELECT * FROM users WHERE id = :Id'
    >>> bind_named_placeholders("SELECT '@Id' WHERE a = @A::int")
    "SELECT '@Id' WHERE a = (:A)::int"
    """
    parts = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.NAMED_PH:
            if sql.startswith('::', token.end):
                parts.append(f'(:{token.name})')
            else:
                parts.append(f':{token.name}')
        else:
            parts.append(_BARE_COLON.sub(r'\\:\1', token.text))
    return ''.join(parts)
