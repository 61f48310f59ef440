"""
The base implementation of a backend. This provides some ABC classes.
"""
import collections.abc
import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from urllib.parse import ParseResult, parse_qs


class BaseDialect:
    """
    The base class for a SQL dialect describer.

    This class signifies what features the SQL dialect can use, and how the schema of a table is
    read back from the database server.

    Every method raises NotImplementedError unless a dialect overrides it.
    """

    @property
    def lastval_method(self) -> str:
        """
        The last value method for a dialect. For example, in SQLite3 this is last_insert_rowid().
        """
        raise NotImplementedError

    def get_column_sql(self, table_name: str) -> str:
        """
        :param table_name: The name of the table to introspect.
        :return: The SQL used to list the live columns of a table.
        """
        raise NotImplementedError

    def transform_rows_to_columns(self, *rows, table_name: str):
        """
        Transforms the rows returned from :meth:`.BaseDialect.get_column_sql` into
        :class:`.Column` objects.
        """
        raise NotImplementedError


class BaseResultSet(collections.abc.Iterator, ABC):
    """
    The base class for a result set. This represents the results from a database query, as a
    lazy iterable of :class:`.DictRow`.

    Children classes must implement:

        - :attr:`.BaseResultSet.keys`
        - :attr:`.BaseResultSet.fetch_row`
        - :attr:`.BaseResultSet.fetch_many`
        - :attr:`.BaseResultSet.close`
    """

    @property
    @abstractmethod
    def keys(self) -> typing.Iterable[str]:
        """
        :return: An iterable of keys that this query contained.
        """

    @abstractmethod
    def fetch_row(self) -> typing.Mapping[str, typing.Any]:
        """
        Fetches the **next row** in this query.

        This should return None if the row could not be fetched.
        """

    @abstractmethod
    def fetch_many(self, n: int) -> typing.List[typing.Mapping[str, typing.Any]]:
        """
        Fetches the **next N rows** in this query.

        :param n: The number of rows to fetch.
        """

    @abstractmethod
    def close(self):
        """
        Closes this result set.
        """

    def flatten(self) -> typing.List[typing.Mapping[str, typing.Any]]:
        """
        Fetches every remaining row into a list.
        """
        return list(self)

    def __next__(self):
        res = self.fetch_row()
        if res is None:
            raise StopIteration

        return res

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class BaseConnector(ABC):
    """
    The base class for a connector. This should be used for all connector classes as the parent
    class.

    Children classes must implement:

        - :meth:`.BaseConnector.connect`
        - :meth:`.BaseConnector.close`
        - :meth:`.BaseConnector.emit_param`
        - :meth:`.BaseConnector.execute`
        - :meth:`.BaseConnector.cursor`
    """

    def __init__(self, dsn: ParseResult):
        """
        :param dsn: The :class:`urllib.parse.ParseResult` created from parsing a DSN.
        """
        self._parse_result = dsn
        self.dsn = dsn.geturl()
        self.db = dsn.path[1:]
        self.params = {k: v[0] for k, v in parse_qs(dsn.query).items()}

    @abstractmethod
    def connect(self, **kwargs) -> 'BaseConnector':
        """
        Connects the current connector to the database. This is called automatically by the
        :class:`.DatabaseInterface`.

        :return: The original BaseConnector instance.
        """

    @abstractmethod
    def close(self):
        """
        Closes the current Connector.
        """

    @abstractmethod
    def emit_param(self) -> str:
        """
        Emits a positional parameter that can be used as a substitute during a query.

        :return: A string that represents the substitute to be placed in the query.
        """

    @abstractmethod
    def execute(self, sql: str, params: typing.Sequence[typing.Any] = None):
        """
        Executes SQL on the current connection, discarding any rows.

        :param sql: The SQL statement to execute.
        :param params: Any parameters to pass to the query.
        """

    @abstractmethod
    def cursor(self, sql: str, params: typing.Sequence[typing.Any] = None) -> 'BaseResultSet':
        """
        Executes SQL and returns a database cursor for the rows.

        :param sql: The SQL statement to execute.
        :param params: Any parameters to pass to the query.
        :return: The :class:`.BaseResultSet` returned from the query.
        """


class DictRow(OrderedDict):
    """
    Represents a row returned from a base result set, in dict form.

    This class allows for accessing both via key and index.
    """
    def __getitem__(self, item):
        if isinstance(item, int):
            try:
                return list(self.values())[item]
            except IndexError:
                raise KeyError(item)

        return super().__getitem__(item)
