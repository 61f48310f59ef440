import enum
import functools
import logging
import typing

from smallsqlite import db as md_db
from smallsqlite.exc import NoSuchTableError
from smallsqlite.orm import inspection as md_inspection, query as md_query
from smallsqlite.orm.schema import table as md_table

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    NOT_READY = 0
    READY = 1
    CLOSED = 2


# decorators
def enforce_open(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if self._state is not SessionState.READY:
            raise RuntimeError("Session is not ready or closed")
        else:
            return func(self, *args, **kwargs)

    return wrapper


class SessionBase(object):
    """
    A superclass for session-like objects.

    Sessions are bound to a :class:`.DatabaseInterface` instance which they use to execute
    statements. There are no transactions: every statement is committed as soon as it runs.
    """

    def __init__(self, bind: 'md_db.DatabaseInterface'):
        """
        :param bind: The :class:`.DatabaseInterface` instance we are bound to.
        """
        self.bind = bind

        #: The current state for the session.
        self._state = SessionState.NOT_READY

    def __enter__(self) -> 'SessionBase':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def start(self) -> 'SessionBase':
        """
        Starts the session.

        This **must** be called before using the session.

        .. note::
            When using ``with``, this is automatically called.
        """
        if self._state is not SessionState.NOT_READY:
            raise RuntimeError("Session must not be ready or closed")

        if not self.bind.connected:
            raise RuntimeError("The database interface is not connected")

        self._state = SessionState.READY
        return self

    @enforce_open
    def close(self):
        """
        Closes the current session.
        """
        self._state = SessionState.CLOSED

    @enforce_open
    def fetch(self, sql: str, params: typing.Sequence[typing.Any] = None):
        """
        Fetches a single row.
        """
        with self.cursor(sql, params) as cur:
            return cur.fetch_row()

    @enforce_open
    def execute(self, sql: str, params: typing.Sequence[typing.Any] = None) -> int:
        """
        Executes SQL inside the current session.

        This is part of the **low-level API.**

        :param sql: The SQL to execute.
        :param params: The positional parameters to use inside the query.
        :return: The number of rows changed.
        """
        return self.bind.connector.execute(sql, params)

    @enforce_open
    def cursor(self, sql: str, params: typing.Sequence[typing.Any] = None):
        """
        Executes SQL inside the current session, and returns a new :class:`.BaseResultSet`.

        :param sql: The SQL to execute.
        :param params: The positional parameters to use inside the query.
        """
        return self.bind.connector.cursor(sql, params)


class Session(SessionBase):
    """
    Sessions act as a temporary window into the database. They are responsible for creating
    queries, inserting and updating rows, etc.

    .. code-block:: python3

        # get a session from our db interface
        with db.get_session() as sess:
            user = sess.find_one(User, 1)
    """

    # Query builders
    @property
    def select(self) -> 'md_query.SelectQuery':
        """
        Creates a new SELECT query that can be built upon.

        :return: A new :class:`.SelectQuery`.
        """
        return md_query.SelectQuery(self)

    @enforce_open
    def insert_now(self, row: 'md_table.Table') -> 'md_table.Table':
        """
        Inserts a row NOW, then stores the generated ID on it.

        :param row: The :class:`.Table` instance to insert.
        :return: The row, with primary key included.
        """
        sql, params = row._get_insert_sql(self.bind.emit_param)
        self.execute(sql, params)

        # load the generated id
        lquery = "SELECT {};".format(self.bind.dialect.lastval_method)
        value = self.fetch(lquery)[0]
        row.store_column_value(row.table.get_column("id"), value)
        logger.debug("Inserted {} with id {}".format(row.table.__tablename__, value))
        return row

    @enforce_open
    def update_now(self, row: 'md_table.Table') -> 'md_table.Table':
        """
        Updates a row NOW.

        Every column is written. Updating a row that does not exist in the database does nothing.

        :param row: The :class:`.Table` instance to update.
        :return: The :class:`.Table` instance that was updated.
        """
        sql, params = row._get_update_sql(self.bind.emit_param)
        if sql is None and params is None:
            return row

        self.execute(sql, params)
        return row

    @enforce_open
    def delete_now(self, row: 'md_table.Table') -> 'md_table.Table':
        """
        Deletes a row NOW.

        The ID of the row is left as it is. Deleting a row that does not exist does nothing.
        """
        sql, params = row._get_delete_sql(self.bind.emit_param)
        self.execute(sql, params)
        return row

    def add(self, row: 'md_table.Table') -> 'md_table.Table':
        """
        Saves a row. This will emit an INSERT for rows that were never saved, and an UPDATE for
        the others.

        :param row: The :class:`.Table` instance object to save.
        :return: The :class:`.Table` instance with primary key filled in.
        """
        # it already existed, so emit a UPDATE
        if md_inspection.is_persisted(row):
            return self.update_now(row)
        # otherwise, emit an INSERT
        else:
            return self.insert_now(row)

    def remove(self, row: 'md_table.Table') -> 'md_table.Table':
        """
        Removes a row from the database.

        :param row: The :class:`.Table` instance to remove.
        """
        return self.delete_now(row)

    @enforce_open
    def run_select_query(self, query: 'md_query.SelectQuery') -> 'md_query.FindResult':
        """
        Executes a select query, decoding every row.

        If the table does not exist, this returns no rows instead of raising.

        :param query: The :class:`.SelectQuery` to use.
        :return: A :class:`.FindResult` for this query.
        """
        sql, params = query.generate_sql()
        try:
            cur = self.cursor(sql, params)
        except NoSuchTableError as e:
            logger.warning("Select on {} returned no rows: {}".format(query.table, e))
            return md_query.FindResult(0, [])

        with cur:
            rows = [query.map_columns(record) for record in cur]

        return md_query.FindResult(len(rows), rows)

    @enforce_open
    def run_count_query(self, query: 'md_query.SelectQuery') -> 'md_query.FindResult':
        """
        Executes the count form of a select query.

        If the table does not exist, this counts zero rows instead of raising.

        :param query: The :class:`.SelectQuery` to use.
        :return: A :class:`.FindResult` with the count, and no rows.
        """
        sql, params = query.generate_count_sql()
        try:
            record = self.fetch(sql, params)
        except NoSuchTableError as e:
            logger.warning("Count on {} returned no rows: {}".format(query.table, e))
            return md_query.FindResult(0, [])

        return md_query.FindResult(record["total"], [])

    def _prepare_query(self, table, query: 'md_query.SelectQuery' = None,
                       **kwargs) -> 'md_query.SelectQuery':
        if query is None:
            query = md_query.SelectQuery.build(table, **kwargs)
        elif kwargs:
            raise TypeError("Cannot pass both a query and query arguments")
        elif query.table is None:
            query.from_(table)
        elif query.table is not table:
            raise ValueError("Query is for table {}, not {}".format(query.table, table))

        query.session = self
        return query

    def find(self, table, query: 'md_query.SelectQuery' = None, *,
             count_only: bool = False, **kwargs) -> 'md_query.FindResult':
        """
        Finds rows of a table.

        :param table: The :class:`.Table` to find rows of.
        :param query: The :class:`.SelectQuery` to filter, order and page with, if any.
        :param count_only: If True, only count the rows matched by the filter.
        :param kwargs: Arguments to build the query with, instead of passing one. \
            See :meth:`.SelectQuery.build`.
        :return: A :class:`.FindResult`.
        """
        query = self._prepare_query(table, query, **kwargs)
        if count_only:
            return self.run_count_query(query)

        return self.run_select_query(query)

    def find_one(self, table, id_: int) -> 'typing.Union[md_table.Table, None]':
        """
        Finds the row with the specified ID.

        :return: The row, or None if there is no such row.
        """
        result = self.find(table, where='"id" = ?', params=(id_,))
        if result.rows:
            return result.rows[0]

        return None

    def find_many(self, table, query: 'md_query.SelectQuery' = None,
                  **kwargs) -> 'typing.List[md_table.Table]':
        """
        Finds the rows matching a query.

        .. code-block:: python3

            sess.find_many(User, where="age > ?", params=(15,), order_by=("age", "desc"))

        :return: The list of rows, in database order unless an order is given.
        """
        return self.find(table, query, **kwargs).rows

    def count(self, table) -> int:
        """
        Counts every row of a table.
        """
        return self.find(table, count_only=True).count

    def count_by(self, table, query: 'md_query.SelectQuery' = None, **kwargs) -> int:
        """
        Counts the rows matching a query's filter.
        """
        return self.find(table, query, count_only=True, **kwargs).count
