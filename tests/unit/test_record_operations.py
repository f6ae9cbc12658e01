"""
Tests for record operations against a mock engine.

The mock records every statement with its bound parameters, so these tests
check the SQL each operation sends, how results become records, and that
connections are released on every path.
"""
import datetime

import pytest
import sqlalchemy as sa
from dbrecords import CreationError, DeletionError, UpdateError, ValidationError
from dbrecords import ZeroRowsAffected, create_record, load_record
from dbrecords.exceptions import DbConnectionError

from tests.fixtures.records import Account, User, UserName, make_user

CREATED = datetime.datetime(2024, 3, 1, 12, 30, 15, 250000)


def account_row(id=1, name='alice'):
    return {'id': id, 'user_name': name, 'created_at': CREATED}


class TestCreate:

    async def test_insert_statement_and_params(self, mock_store):
        store = mock_store()
        await store.create('accounts', Account(Id=1, UserName='alice', CreatedAt=CREATED))

        [(sql, params)] = store.engine.statements
        assert sql == ('INSERT INTO accounts (created_at, id, user_name) '
                       'VALUES (:CreatedAt, :Id, :UserName)')
        assert params == {'CreatedAt': CREATED, 'Id': 1, 'UserName': 'alice'}
        assert store.engine.transactions == 1

    async def test_optional_fields_bound_as_null(self, mock_store):
        store = mock_store()
        await store.create('users', make_user())

        _, params = store.engine.statements[0]
        assert params['Email'] is None
        assert params['Avatar'] is None
        assert params['LoginCount'] is None

    async def test_sqlite_params_are_text(self, mock_store):
        store = mock_store(dialect='sqlite')
        await store.create('users', make_user())

        _, params = store.engine.statements[0]
        assert params['CreatedAt'] == '2024-03-01T12:30:15.250000'

    async def test_zero_rows_raises(self, mock_store):
        store = mock_store(rowcount=0)
        with pytest.raises(CreationError) as exc_info:
            await create_record(store, 'users', make_user())

        assert exc_info.value.table == 'users'
        assert exc_info.value.sql.startswith('INSERT INTO users')
        assert isinstance(exc_info.value, ZeroRowsAffected)


class TestLoad:

    async def test_select_by_key(self, mock_store):
        store = mock_store(rows=[account_row()])
        account = await store.load(Account, 'accounts', 'Id', 1)

        assert account == Account(Id=1, UserName='alice', CreatedAt=CREATED)
        [(sql, params)] = store.engine.statements
        assert sql == 'SELECT * FROM accounts WHERE id = :Id'
        assert params == {'Id': 1}
        assert store.engine.transactions == 0

    async def test_missing_row_returns_none(self, mock_store):
        store = mock_store(rows=[])
        assert await load_record(store, Account, 'accounts', 'Id', 99) is None

    async def test_more_than_one_row_is_an_error(self, mock_store):
        store = mock_store(rows=[account_row(1, 'a'), account_row(1, 'b')])
        with pytest.raises(ValidationError, match='at most one row'):
            await store.load(Account, 'accounts', 'Id', 1)


class TestUpdate:

    async def test_update_statement(self, mock_store):
        store = mock_store()
        await store.update('accounts', 'Id', Account(Id=2, UserName='bob', CreatedAt=CREATED))

        [(sql, params)] = store.engine.statements
        assert sql == ('UPDATE accounts SET created_at = :CreatedAt, id = :Id, '
                       'user_name = :UserName WHERE id = :Id')
        assert params['UserName'] == 'bob'

    async def test_zero_rows_raises(self, mock_store):
        store = mock_store(rowcount=0)
        with pytest.raises(UpdateError) as exc_info:
            await store.update('users', 'Id', make_user())
        assert exc_info.value.table == 'users'


class TestDelete:

    async def test_delete_statement(self, mock_store):
        store = mock_store()
        await store.delete('accounts', 'UserName', 'alice')

        [(sql, params)] = store.engine.statements
        assert sql == 'DELETE FROM accounts WHERE user_name = :UserName'
        assert params == {'UserName': 'alice'}

    async def test_zero_rows_raises(self, mock_store):
        store = mock_store(rowcount=0)
        with pytest.raises(DeletionError):
            await store.delete('users', 'Id', 1)

    async def test_multiple_rows_deleted(self, mock_store):
        store = mock_store(rowcount=3)
        await store.delete('users', 'UserName', 'alice')


class TestQueries:

    async def test_query_single_with_params(self, mock_store):
        store = mock_store(rows=[{'user_name': 'alice'}])
        result = await store.query_single(
            UserName, 'SELECT user_name FROM users WHERE id = @Id', {'Id': 1})

        assert result == UserName(UserName='alice')
        assert store.engine.statements == [
            ('SELECT user_name FROM users WHERE id = :Id', {'Id': 1})]

    async def test_query_many(self, mock_store):
        store = mock_store(rows=[account_row(1, 'a'), account_row(2, 'b')])
        accounts = await store.query_many(Account, 'SELECT * FROM accounts')

        assert [a.UserName for a in accounts] == ['a', 'b']
        assert store.engine.statements == [('SELECT * FROM accounts', {})]

    async def test_query_many_empty(self, mock_store):
        store = mock_store(rows=[])
        assert await store.query_many(User, 'SELECT * FROM users') == []

    async def test_execute_returns_rowcount(self, mock_store):
        store = mock_store(rowcount=4)
        count = await store.execute('UPDATE users SET login_count = 0')
        assert count == 4


class TestConnectionRelease:

    @pytest.mark.parametrize('rows', [[], [account_row()], [account_row(), account_row()]])
    async def test_reads_release_connection(self, mock_store, rows):
        store = mock_store(rows=rows)
        try:
            await store.load(Account, 'accounts', 'Id', 1)
        except ValidationError:
            pass
        assert store.engine.acquired == store.engine.released == 1

    async def test_zero_row_write_releases_connection(self, mock_store):
        store = mock_store(rowcount=0)
        with pytest.raises(DeletionError):
            await store.delete('users', 'Id', 1)
        assert store.engine.acquired == store.engine.released == 1

    async def test_driver_error_releases_connection(self, mock_store):
        error = sa.exc.OperationalError('SELECT 1', {}, Exception('connection lost'))
        store = mock_store(error=error)

        with pytest.raises(DbConnectionError):
            await store.create('users', make_user())
        with pytest.raises(DbConnectionError):
            await store.load(User, 'users', 'Id', 1)

        assert store.engine.acquired == store.engine.released == 2


if __name__ == '__main__':
    pytest.main([__file__])
