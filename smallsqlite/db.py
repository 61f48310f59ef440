"""
The main Database object. This is the "database interface" to the actual database file.
"""
import importlib
import logging
import typing
from urllib.parse import ParseResult, urlparse

from smallsqlite.backends.base import BaseConnector, BaseDialect
from smallsqlite.exc import UnsupportedOperationException
from smallsqlite.orm import query as md_query, session as md_session
from smallsqlite.orm.ddl import ddlsession as md_ddlsession
from smallsqlite.orm.schema import table as md_table

# sentinels
NO_CONNECTOR = object()

#: The scheme used for DSNs given as a plain file path.
DEFAULT_SCHEME = "sqlite3"

logger = logging.getLogger("smallsqlite")


def _normalize_dsn(dsn: str) -> str:
    # a bare path (or :memory:) is a sqlite3 database file
    if "://" not in dsn:
        return "{}:///{}".format(DEFAULT_SCHEME, dsn)

    return dsn


class DatabaseInterface(object):
    """
    The "database interface" to your database. This provides the actual connection to the
    database, and the schema synchronisation of the tables bound to it.

    Creating a new database object is simple:

    .. code-block:: python3

        Table = table_base()

        class User(Table):
            name = ""
            active = False
            age = 0

        # pass the DSN and tables in the constructor
        db = DatabaseInterface("sqlite3:///users.db", tables=[User])
        # connecting creates or extends the tables
        db.connect()

        user = db.save(User(name="alice", age=30))

    """

    def __init__(self, dsn: str = None, tables: typing.Iterable = (), *,
                 type_defaults: typing.Mapping = None):
        """
        :param dsn:
            The Data Source Name to connect to, e.g. ``sqlite3:///path/to/file.db``. A plain
            path is also accepted.

        :param tables:
            The :class:`.Table` classes (or a :class:`.TableMetadata`) to bind to this interface.

        :param type_defaults:
            A mapping of column type -> default value, for columns declared without a default.
        """
        self._dsn = dsn

        #: The current connector instance.
        self.connector = None  # type: BaseConnector

        #: The current Dialect instance.
        self.dialect = None  # type: BaseDialect

        #: The tables bound to this interface, in registration order.
        self.tables = []  # type: typing.List[typing.Type[md_table.Table]]

        self._type_defaults = type_defaults

        if isinstance(tables, (md_table.TableMetadata, md_table.TableMeta)):
            self.bind_tables(tables, type_defaults=type_defaults)
        else:
            for tbl in tables:
                self.bind_tables(tbl, type_defaults=type_defaults)

    def __enter__(self):
        if not self.connected:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def connected(self):
        """
        Checks if this DB is connected.
        """
        return self.connector is not None

    def bind_tables(self, md: 'typing.Union[md_table.TableMetadata, md_table.TableMeta]', *,
                    type_defaults: typing.Mapping = None):
        """
        Binds tables to this DB instance.

        Binding a :class:`.TableMetadata` binds every table registered in it. Binding a single
        table binds its metadata, but only that table is synchronised.

        :param md: The metadata or table to bind.
        :param type_defaults: A mapping of column type -> default value.
        """
        if isinstance(md, md_table.TableMeta):
            tables = [md]
            md = md.metadata
        else:
            tables = list(md.tables.values())

        if type_defaults is None:
            type_defaults = self._type_defaults

        md.bind = self
        md.setup_tables(type_defaults)

        for tbl in tables:
            if tbl not in self.tables:
                self.tables.append(tbl)

        if self.connected:
            self.sync_tables(tables)

        return md

    def connect(self, dsn: str = None, **kwargs) -> BaseConnector:
        """
        Connects the interface to the database, and synchronises the schema of every bound
        table.

        :param dsn: The Data Source Name to connect to, if it was not specified in the constructor.
        :return: The :class:`~.BaseConnector` established.
        """
        if dsn is not None:
            self._dsn = dsn

        if self._dsn is None:
            raise RuntimeError("No DSN was given")

        parsed_dsn = urlparse(_normalize_dsn(self._dsn))  # type: ParseResult
        # db type must always exist
        # the connector doesn't have to exist, however
        # if so we use a sentinel value
        schemes = parsed_dsn.scheme.split("+")
        db_type = schemes[0]
        try:
            db_connector = schemes[1]
        except IndexError:
            db_connector = NO_CONNECTOR

        import_path = "smallsqlite.backends.{}".format(db_type)
        try:
            package = importlib.import_module(import_path)
        except ImportError:
            raise UnsupportedOperationException("No backend for {}".format(db_type)) from None

        if db_connector is not NO_CONNECTOR:
            mod_path = ".".join([import_path, db_connector])
        else:
            mod_path = ".".join([import_path, package.DEFAULT_CONNECTOR])

        self.dialect = getattr(package, "{}Dialect".format(db_type.title()))()

        logger.debug("Loading connector {}".format(mod_path))

        connector_mod = importlib.import_module(mod_path)
        connector_ins = connector_mod.CONNECTOR_TYPE(parsed_dsn)  # type: BaseConnector
        self.connector = connector_ins
        try:
            self.connector.connect(**kwargs)
            self.sync_tables()
        except Exception:
            # drop the connector and re-raise in the event that it fails
            self.connector.close()
            self.connector = None
            raise

        return self.connector

    def sync_tables(self, tables: typing.Iterable = None) -> 'typing.Dict[str, list]':
        """
        Creates or extends the tables in the database, in registration order.

        :param tables: The tables to synchronise. Defaults to every bound table.
        :return: A dict of table name -> list of columns that were added.
        """
        if tables is None:
            tables = self.tables

        added = {}
        with self.get_ddl_session() as sess:
            for tbl in tables:
                logger.debug("Synchronising table {}".format(tbl.__tablename__))
                added[tbl.__tablename__] = sess.sync_table(tbl)

        return added

    def emit_param(self) -> str:
        """
        Emits a param in the format that the DB driver specifies.

        :return: A str representing the emitted param.
        """
        return self.connector.emit_param()

    def get_session(self) -> 'md_session.Session':
        """
        Gets a new :class:`.Session` bound to this instance.
        """
        return md_session.Session(self)

    def get_ddl_session(self) -> 'md_ddlsession.DDLSession':
        """
        Gets a new :class:`.DDLSession` bound to this instance.
        """
        return md_ddlsession.DDLSession(self)

    def close(self):
        """
        Closes the current database interface.
        """
        if self.connector is not None:
            self.connector.close()
            self.connector = None

    # shortcuts, each using a new session
    def save(self, row: 'md_table.Table') -> 'md_table.Table':
        """
        Saves a row. See :meth:`.Session.add`.
        """
        with self.get_session() as sess:
            return sess.add(row)

    def delete(self, row: 'md_table.Table') -> 'md_table.Table':
        """
        Deletes a row. See :meth:`.Session.remove`.
        """
        with self.get_session() as sess:
            return sess.remove(row)

    def find(self, table, query: 'md_query.SelectQuery' = None, **kwargs) -> 'md_query.FindResult':
        """
        Finds rows of a table. See :meth:`.Session.find`.
        """
        with self.get_session() as sess:
            return sess.find(table, query, **kwargs)

    def find_one(self, table, id_: int):
        """
        Finds a row by ID. See :meth:`.Session.find_one`.
        """
        with self.get_session() as sess:
            return sess.find_one(table, id_)

    def find_many(self, table, query: 'md_query.SelectQuery' = None, **kwargs) -> list:
        """
        Finds the rows matching a query. See :meth:`.Session.find_many`.
        """
        with self.get_session() as sess:
            return sess.find_many(table, query, **kwargs)

    def count(self, table) -> int:
        """
        Counts the rows of a table. See :meth:`.Session.count`.
        """
        with self.get_session() as sess:
            return sess.count(table)

    def count_by(self, table, query: 'md_query.SelectQuery' = None, **kwargs) -> int:
        """
        Counts the rows matching a query. See :meth:`.Session.count_by`.
        """
        with self.get_session() as sess:
            return sess.count_by(table, query, **kwargs)


def open_database(dsn: str, *tables, type_defaults: typing.Mapping = None) -> DatabaseInterface:
    """
    Opens a database, and creates or extends the tables for the given tables.

    .. code-block:: python3

        db = open_database("users.db", User, Post, type_defaults={"integer": 0})

    Type defaults only apply to columns declared without a default, such as ``Column(Integer)``;
    fields inferred from a default value always keep that value.

    :param dsn: The DSN or path of the database.
    :param tables: The :class:`.Table` classes to use.
    :param type_defaults: A mapping of column type -> default value.
    :return: A connected :class:`.DatabaseInterface`.
    """
    iface = DatabaseInterface(dsn, tables, type_defaults=type_defaults)
    iface.connect()
    return iface
