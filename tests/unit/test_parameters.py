"""
Tests for translating @Name placeholders into SQLAlchemy bind parameters.
"""
import pytest
import sqlalchemy as sa
from dbrecords.sql import TokenType, bind_named_placeholders, tokenize_sql


def test_simple_placeholder():
    assert bind_named_placeholders('SELECT * FROM users WHERE id = @Id') == \
        'SELECT * FROM users WHERE id = :Id'


def test_multiple_placeholders():
    sql = 'UPDATE users SET user_name = @UserName WHERE id = @Id'
    assert bind_named_placeholders(sql) == \
        'UPDATE users SET user_name = :UserName WHERE id = :Id'


def test_placeholder_in_string_literal_untouched():
    sql = "SELECT * FROM users WHERE email = 'a@Example' AND id = @Id"
    assert bind_named_placeholders(sql) == \
        "SELECT * FROM users WHERE email = 'a@Example' AND id = :Id"


def test_placeholder_in_quoted_identifier_untouched():
    sql = 'SELECT "@Odd" FROM users WHERE id = @Id'
    assert bind_named_placeholders(sql) == 'SELECT "@Odd" FROM users WHERE id = :Id'


def test_escaped_quote_inside_literal():
    sql = "SELECT 'it''s @Here' WHERE id = @Id"
    assert bind_named_placeholders(sql) == "SELECT 'it''s @Here' WHERE id = :Id"


def test_postgres_operators_kept():
    """Test @@ and @> operators are not read as placeholders"""
    sql = "SELECT * FROM docs WHERE tags @> @Tags AND body @@ to_tsquery('x')"
    assert bind_named_placeholders(sql) == \
        "SELECT * FROM docs WHERE tags @> :Tags AND body @@ to_tsquery('x')"


def test_cast_after_placeholder():
    assert bind_named_placeholders('SELECT @Id::int') == 'SELECT (:Id)::int'


def test_bare_colons_escaped():
    sql = "SELECT created_at::date, ':text' FROM users WHERE x = :raw"
    assert bind_named_placeholders(sql) == \
        "SELECT created_at::date, '\\:text' FROM users WHERE x = \\:raw"


def test_literal_with_chained_colons_kept_verbatim():
    """Test colons sa.text() would not bind are left alone, even inside literals"""
    sql = "INSERT INTO notes (id, body) VALUES (@Id, 'a :b:c')"
    assert bind_named_placeholders(sql) == \
        "INSERT INTO notes (id, body) VALUES (:Id, 'a :b:c')"


def test_escaped_colons_unescaped_by_sqlalchemy():
    sql = "SELECT 'x :y', 'a :b:c', '$:z' WHERE id = @Id"
    clause = sa.text(bind_named_placeholders(sql))
    assert set(clause._bindparams) == {'Id'}
    compiled = str(clause.compile())
    assert "'x :y'" in compiled
    assert "'a :b:c'" in compiled
    assert "'$:z'" in compiled


def test_translated_text_binds_expected_names():
    sql = "SELECT * FROM users WHERE user_name = @UserName AND note = ':raw'"
    clause = sa.text(bind_named_placeholders(sql))
    assert set(clause._bindparams) == {'UserName'}


def test_tokenize_sql_types():
    tokens = tokenize_sql("SELECT 'x' FROM \"t\" WHERE id = @Id")
    types = [t.type for t in tokens]
    assert types == [
        TokenType.SQL_TEXT,
        TokenType.STRING_LITERAL,
        TokenType.SQL_TEXT,
        TokenType.QUOTED_IDENTIFIER,
        TokenType.SQL_TEXT,
        TokenType.NAMED_PH,
    ]
    assert tokens[-1].name == 'Id'


def test_no_placeholders():
    assert bind_named_placeholders('SELECT 1') == 'SELECT 1'


if __name__ == '__main__':
    pytest.main([__file__])
