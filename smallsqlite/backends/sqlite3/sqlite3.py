"""
A backend using the stdlib sqlite3 driver.
"""
import contextlib
import logging
import sqlite3
import typing

from smallsqlite import exc
from smallsqlite.backends.base import BaseConnector, BaseResultSet, DictRow

logger = logging.getLogger(__name__)

#: Connection parameters that need converting from their DSN string form.
_PARAM_CONVERTERS = {
    "timeout": float,
    "detect_types": int,
    "uri": lambda v: v.lower() in ("1", "true", "yes"),
}


@contextlib.contextmanager
def _translate_errors(sql: str):
    """
    Re-raises driver errors as :mod:`smallsqlite.exc` exceptions, keeping the driver error as the
    cause.
    """
    try:
        yield
    except sqlite3.IntegrityError as e:
        raise exc.IntegrityError(str(e)) from e
    except sqlite3.OperationalError as e:
        message = str(e)
        if message.startswith("no such table"):
            raise exc.NoSuchTableError(message) from e
        raise exc.OperationalError(message) from e
    except sqlite3.DatabaseError as e:
        raise exc.DatabaseException("{} (while executing {!r})".format(e, sql)) from e


class Sqlite3Connector(BaseConnector):
    """
    A connector powered by sqlite3.

    A single connection is opened in autocommit mode; every statement is its own transaction.
    """

    def __init__(self, parsed):
        super().__init__(parsed)

        #: The sqlite3 connection.
        self.connection = None  # type: sqlite3.Connection

    def _connection_args(self) -> dict:
        args = {}
        for key, value in self.params.items():
            converter = _PARAM_CONVERTERS.get(key)
            args[key] = converter(value) if converter is not None else value

        return args

    def connect(self, **kwargs) -> 'Sqlite3Connector':
        """
        Opens the database file.

        :param kwargs: Extra arguments for :func:`sqlite3.connect`, overriding the DSN params.
        """
        args = self._connection_args()
        args.update(kwargs)
        logger.debug("Opening sqlite3 database {}".format(self.db))
        with _translate_errors("<connect>"):
            conn = sqlite3.connect(self.db, isolation_level=None, **args)
        # this allows dict-like access
        conn.row_factory = sqlite3.Row
        self.connection = conn
        return self

    def close(self):
        """
        Closes this connector.
        """
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def emit_param(self) -> str:
        return "?"

    def _raw_cursor(self, sql: str, params: typing.Sequence[typing.Any] = None) -> sqlite3.Cursor:
        if self.connection is None:
            raise exc.OperationalError("Connector is not connected")

        logger.debug("Executing {} with {}".format(sql, params))
        with _translate_errors(sql):
            if params is None:
                return self.connection.execute(sql)
            return self.connection.execute(sql, tuple(params))

    def execute(self, sql: str, params: typing.Sequence[typing.Any] = None) -> int:
        """
        Executes SQL, returning the number of rows modified.
        """
        cur = self._raw_cursor(sql, params)
        try:
            return cur.rowcount
        finally:
            cur.close()

    def cursor(self, sql: str, params: typing.Sequence[typing.Any] = None) \
            -> 'Sqlite3ResultSet':
        """
        Gets a cursor for the specified SQL.
        """
        return Sqlite3ResultSet(self._raw_cursor(sql, params))


class Sqlite3ResultSet(BaseResultSet):
    """
    A result set for a sqlite3 database.
    """

    def __init__(self, cursor: sqlite3.Cursor):
        self.cursor = cursor

    @property
    def keys(self) -> typing.Iterable[str]:
        if self.cursor.description is None:
            return []

        return [d[0] for d in self.cursor.description]

    def close(self):
        self.cursor.close()

    def fetch_many(self, n: int) -> typing.List[typing.Mapping[str, typing.Any]]:
        """
        Fetches many rows.
        """
        with _translate_errors("<fetch>"):
            rows = self.cursor.fetchmany(size=n)

        return [DictRow(r) for r in rows if r is not None]

    def fetch_row(self) -> typing.Mapping[str, typing.Any]:
        """
        Fetches one row.
        """
        with _translate_errors("<fetch>"):
            row = self.cursor.fetchone()

        return DictRow(row) if row is not None else None


CONNECTOR_TYPE = Sqlite3Connector
