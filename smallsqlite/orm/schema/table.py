"""
Table objects.
"""

import io
import logging
import typing
from collections import OrderedDict

from smallsqlite import db as md_db
from smallsqlite.exc import NoSuchColumnError, SchemaError
from smallsqlite.meta import typeproperty
from smallsqlite.orm import query as md_query
from smallsqlite.orm.schema import column as md_column, types as md_types
from smallsqlite.orm.schema.decorators import enforce_bound

logger = logging.getLogger(__name__)

#: The value of the ``id`` column for rows that have never been saved.
UNSAVED_ID = -1

#: Python types that become columns when used as a default in a table body.
_INFERRED_TYPES = (bool, str, int, float)


class TableMetadata(object):
    """
    The root class for table metadata.
    This stores a registry of tables, in definition order, and the per-type defaults used for
    columns declared without a default.

    .. code-block:: python3

        meta = TableMetadata()
        Table = table_base(meta=meta)

    """

    def __init__(self):
        #: A registry of table name -> table object for this metadata.
        self.tables = OrderedDict()

        #: The DB object bound to this metadata.
        self.bind = None  # type: md_db.DatabaseInterface

        #: A mapping of column type class -> default value.
        self.type_defaults = md_types.build_type_defaults()

    def register_table(self, tbl: 'TableMeta') -> 'TableMeta':
        """
        Registers a new table object.

        :param tbl: The table to register.
        """
        if tbl.__tablename__ in self.tables and self.tables[tbl.__tablename__] is not tbl:
            raise SchemaError("A table named '{}' is already registered"
                              .format(tbl.__tablename__))

        tbl.metadata = self
        self.tables[tbl.__tablename__] = tbl
        return tbl

    def get_table(self, table_name: str) -> 'typing.Type[Table]':
        """
        Gets a table from the current metadata.

        :param table_name: The name of the table to get.
        :return: A :class:`.Table` object.
        """
        try:
            return self.tables[table_name]
        except KeyError:
            # we can load this from the name instead
            for table in self.tables.values():
                if table.__name__ == table_name:
                    return table
            else:
                return None

    def setup_tables(self, type_defaults: typing.Mapping = None):
        """
        Sets up the tables for usage in the ORM.

        :param type_defaults: A mapping of column type -> default value, overriding the built-in \
            defaults of ``False``, ``""`` and ``-1``.
        """
        self.type_defaults = md_types.build_type_defaults(type_defaults)

    def get_type_default(self, type_: 'md_types.ColumnType') -> typing.Any:
        """
        Gets the default value for columns of a type that were declared without a default.
        """
        type_class = type(type_) if isinstance(type_, md_types.ColumnType) else type_
        for klass in type_class.__mro__:
            if klass in self.type_defaults:
                return self.type_defaults[klass]

        return type_class.default_value


def _make_id_column() -> 'md_column.Column':
    return md_column.Column(md_types.Integer, primary_key=True, autoincrement=True,
                            nullable=False, default=UNSAVED_ID)


class TableMeta(type):
    """
    The metaclass for a table object. This represents the "type" of a table class.
    """

    def __prepare__(*args, **kwargs):
        # this is required so that columns are ordered.
        return OrderedDict()

    def __new__(mcs, name: str, bases: tuple, class_body: dict,
                register: bool = True, *args, **kwargs):
        # usually a cloned class
        # so we just skip it directly
        if register is False:
            return type.__new__(mcs, name, bases, class_body)

        # inherited columns come first, then the ones in this body, in order
        columns = OrderedDict()
        columns["id"] = _make_id_column()
        for base in reversed(bases):
            for col_name, column in getattr(base, "_columns", {}).items():
                if col_name == "id":
                    continue
                columns[col_name] = md_column.Column(column.type.create_default(),
                                                     nullable=column.nullable,
                                                     default=column.default)

        for col_name, value in class_body.copy().items():
            if isinstance(value, md_column.Column):
                column = value
            elif col_name.startswith("_") or not isinstance(value, _INFERRED_TYPES):
                continue
            else:
                column = md_column.Column(md_types.infer_type(value), default=value)

            if col_name == "id":
                raise SchemaError("Table {} cannot declare the reserved column 'id'".format(name))
            # row attributes would hide the column
            if col_name in ("metadata", "table") or hasattr(Table, col_name):
                raise SchemaError("Column name '{}' on table {} is reserved"
                                  .format(col_name, name))

            columns[col_name] = column
            # nuke the attribute, so row lookups go through the column
            class_body.pop(col_name)

        class_body["_columns"] = columns

        try:
            table_name = kwargs["table_name"]
        except KeyError:
            table_name = name.lower()
        class_body["__tablename__"] = md_column.check_identifier(table_name, "table")

        return type.__new__(mcs, name, bases, class_body)

    def __init__(self, tblname: str, tblbases: tuple, class_body: dict, register: bool = True,
                 *args, **kwargs):
        """
        Creates a new Table instance.

        :param register: Should this table be registered in the TableMetadata?
        :param table_name: The name for this table.
        """
        # create the new type object
        super().__init__(tblname, tblbases, class_body)

        if register is False:
            return
        elif not hasattr(self, "metadata"):
            raise TypeError("Table {} has been created but has no metadata - did you subclass Table"
                            " directly instead of a clone?".format(tblname))

        # the columns were removed from the body, so names are set here
        for name, value in self._columns.items():
            value.__set_name__(self, name)

        #: A dict of columns for this table.
        self._columns = self._columns  # type: typing.Dict[str, md_column.Column]

        logger.debug("Registered new table {}".format(tblname))
        self.metadata.register_table(self)

    def __getattr__(self, item):
        if item.startswith("_"):
            raise AttributeError("'{}' object has no attribute {}".format(self.__name__, item))

        col = self.get_column(item)
        if col is not None:
            return col

        raise AttributeError("'{}' object has no attribute {}".format(self.__name__, item))

    def __repr__(self):
        try:
            return "<Table object='{}' name='{}'>".format(self.__name__, self.__tablename__)
        except AttributeError:
            return super().__repr__()

    def _internal_from_row(cls, values: typing.Mapping[str, typing.Any]) -> 'Table':
        """
        Decodes a result row into a new row object.

        Every key of the result row must be a column on this table, and every value must load
        with the column type. Columns missing from the result keep their defaults.

        :param values: A mapping of column name -> raw value.
        """
        obb = cls()  # type: Table
        for name, value in values.items():
            column = cls._columns.get(name)
            if column is None:
                raise NoSuchColumnError("Result column '{}' is not a column of table {}"
                                        .format(name, cls.__tablename__))

            if value is None:
                if not column.nullable:
                    raise md_types.ColumnValidationError(
                        "Column {} of table {} cannot be NULL".format(name, cls.__tablename__)
                    )
            else:
                value = column.type.on_load(value)

            obb.store_column_value(column, value)

        return obb


class Table(metaclass=TableMeta, register=False):
    """
    The "base" class for all tables. This class is not actually directly used; instead
    :meth:`.table_base` should be called to get a fresh clone.
    """

    def __init__(self, **kwargs):
        #: The actual table that this object is an instance of.
        self.table = type(self)  # type: TableMeta

        #: A mapping of Column -> Current value for this row.
        self._values = {}

        if kwargs:
            self._init_row(**kwargs)

    # Class properties
    @typeproperty
    @classmethod
    def columns(cls) -> 'typing.List[md_column.Column]':
        """
        :return: A list of :class:`.Column` this Table has.
        """
        return list(cls.iter_columns())

    @typeproperty
    @classmethod
    def __quoted_name__(cls) -> str:
        """
        :return: The quoted name of this table.
        """
        return '"{}"'.format(cls.__tablename__)

    # Class methods
    @classmethod
    @enforce_bound
    def sync(cls) -> 'typing.List[md_column.Column]':
        """
        Creates this table in the database if needed, and adds any columns it is missing.

        :return: The list of :class:`.Column` that were added.
        """
        with cls.metadata.bind.get_ddl_session() as sess:
            return sess.sync_table(cls)

    @classmethod
    @enforce_bound
    def drop(cls, *, if_exists: bool = True):
        """
        Drops this table, or a table with the same name, from the database.

        :param if_exists: If we should only attempt to drop tables that exist.
        """
        with cls.metadata.bind.get_ddl_session() as sess:
            sess.drop_table(cls.__tablename__, if_exists=if_exists)

    @classmethod
    @enforce_bound
    def find_one(cls, id_: int) -> 'typing.Union[Table, None]':
        """
        Finds the row with the specified ID, or None.
        """
        return cls.metadata.bind.find_one(cls, id_)

    @classmethod
    @enforce_bound
    def find_many(cls, query: 'md_query.SelectQuery' = None, **kwargs) -> 'typing.List[Table]':
        """
        Finds the rows matching a query. See :meth:`.Session.find_many`.
        """
        return cls.metadata.bind.find_many(cls, query, **kwargs)

    @classmethod
    @enforce_bound
    def count(cls) -> int:
        """
        Counts the rows in this table.
        """
        return cls.metadata.bind.count(cls)

    @classmethod
    @enforce_bound
    def count_by(cls, query: 'md_query.SelectQuery' = None, **kwargs) -> int:
        """
        Counts the rows matching a query. See :meth:`.Session.count_by`.
        """
        return cls.metadata.bind.count_by(cls, query, **kwargs)

    @classmethod
    def iter_columns(cls) -> 'typing.Generator[md_column.Column, None, None]':
        """
        :return: A generator that yields :class:`.Column` objects for this table.
        """
        for col in cls._columns.values():
            yield col

    @classmethod
    def get_column(cls, column_name: str) -> 'typing.Union[md_column.Column, None]':
        """
        Gets a column by name.

        :param column_name: The column name to lookup.
        :return: The :class:`.Column` associated with that name, or None if no column was found.
        """
        return cls._columns.get(column_name)

    # Row methods
    @enforce_bound
    def save(self) -> 'Table':
        """
        Saves this row. See :meth:`.Session.add`.
        """
        return self.metadata.bind.save(self)

    @enforce_bound
    def delete(self) -> 'Table':
        """
        Deletes this row. See :meth:`.Session.remove`.
        """
        return self.metadata.bind.delete(self)

    def _init_row(self, **values):
        """
        Initializes the rows for this table, setting the values of the object.

        :param values: The values to pass into this column.
        """
        for name, value in values.items():
            column = self.table.get_column(name)
            if column is None:
                raise TypeError("Unexpected row parameter: '{}'".format(name))

            self._values[column] = value

        return self

    def __repr__(self):
        gen = ("{}={!r}".format(col.name, self.get_column_value(col)) for col in self.table.columns)
        return "<{} {}>".format(self.table.__name__, " ".join(gen))

    def __eq__(self, other):
        if not isinstance(other, Table):
            return NotImplemented

        if other.table != self.table:
            raise ValueError("Rows to compare must be on the same table")

        if self is other:
            return True

        # two unsaved rows are never the same row
        if self.primary_key == UNSAVED_ID:
            return False

        return self.primary_key == other.primary_key

    def __setattr__(self, key, value):
        # ensure we're not doing anything until we get _values
        try:
            object.__getattribute__(self, "_values")
        except AttributeError:
            return super().__setattr__(key, value)

        # if it's in our __dict__, it's probably not a column
        # so bypass the column check and set it directly
        if key in self.__dict__:
            return super().__setattr__(key, value)

        col = self.table.get_column(key)
        if col is None:
            return super().__setattr__(key, value)

        # call on_set for the column
        return col.type.on_set(self, value)

    def __getattr__(self, item: str):
        if item.startswith("_"):
            raise AttributeError(item)

        return self._resolve_item(item)

    __hash__ = object.__hash__

    @property
    def primary_key(self) -> int:
        """
        Gets the primary key (the ``id`` column) for this row.
        """
        return self.get_column_value(self.table.get_column("id"))

    # sql generation methods
    def _get_insert_sql(self, emitter: typing.Callable[[], str]) \
            -> typing.Tuple[str, typing.List[typing.Any]]:
        """
        Gets the INSERT into statement SQL for this row.

        Every column except the primary key is inserted, in table order.
        """
        q = io.StringIO()
        q.write("INSERT INTO {} ".format(self.__quoted_name__))
        params = []
        column_names = []
        sql_params = []

        for column in self.table.iter_columns():
            if column.primary_key:
                continue

            column_names.append(column.quoted_name)
            sql_params.append(emitter())
            params.append(self.get_column_value(column))

        if column_names:
            q.write("({}) ".format(", ".join(column_names)))
            q.write("VALUES ({})".format(", ".join(sql_params)))
        else:
            q.write("DEFAULT VALUES")

        q.write(";")
        return q.getvalue(), params

    def _get_update_sql(self, emitter: typing.Callable[[], str]) \
            -> typing.Tuple[str, typing.List[typing.Any]]:
        """
        Gets the UPDATE statement SQL for this row.

        Every column except the primary key is set, in table order.
        """
        params = []
        sets = []

        for column in self.table.iter_columns():
            if column.primary_key:
                continue

            sets.append("{} = {}".format(column.quoted_name, emitter()))
            params.append(self.get_column_value(column))

        if not sets:
            return None, None

        id_column = self.table.get_column("id")
        params.append(self.primary_key)
        sql = "UPDATE {} SET {} WHERE {} = {};".format(self.__quoted_name__, ", ".join(sets),
                                                      id_column.quoted_name, emitter())
        return sql, params

    def _get_delete_sql(self, emitter: typing.Callable[[], str]) \
            -> typing.Tuple[str, typing.List[typing.Any]]:
        """
        Gets the DELETE sql for this row.
        """
        id_column = self.table.get_column("id")
        sql = "DELETE FROM {} WHERE {} = {};".format(self.__quoted_name__, id_column.quoted_name,
                                                    emitter())
        return sql, [self.primary_key]

    # value loading methods
    def _resolve_item(self, name: str):
        """
        Resolves a column value on this row.

        :param name: The name to resolve.
        :return: The object returned, if applicable.
        """
        col = self.table.get_column(name)
        if col is None:
            raise AttributeError("{} was not a function or attribute on the associated table, "
                                 "and was not a column".format(name)) from None

        return col.type.on_get(self)

    def get_column_value(self, column: 'md_column.Column') -> typing.Any:
        """
        Gets the value from the specified column in this row.

        .. warning::

            This method should not be used by user code; it is for types to interface with only.

        :param column: The column.
        """
        if column.table != self.table:
            raise ValueError("Column table must match row table")

        try:
            return self._values[column]
        except KeyError:
            return column.get_default()

    def store_column_value(self, column: 'md_column.Column', value: typing.Any):
        """
        Updates the value of a column in this row.

        .. warning::

            This method should not be used by user code; it is for types to interface with only.

        :param column: The column to store.
        :param value: The value to store in the column.
        """
        self._values[column] = value
        return self

    def to_dict(self) -> dict:
        """
        Converts this row to a dict, indexed by column name.
        """
        return OrderedDict((col.name, self.get_column_value(col)) for col in self.table.columns)


def table_base(name: str = "Table", meta: 'TableMetadata' = None):
    """
    Gets a new base object to use for OO-style tables.
    This object is the parent of all tables created in the object-oriented style; it holds the
    :class:`.TableMetadata` that every subclass is registered in.

    To use this object, you call this function to create the new object, and subclass it in your
    table classes:

    .. code-block:: python3

        Table = table_base()

        class User(Table):
            name = ""
            active = False
            age = 0

    Binding the base object to the database object is essential for querying:

    .. code-block:: python3

        db = DatabaseInterface("sqlite3:///users.db")
        db.bind_tables(Table.metadata)
        db.connect()

        user = User.find_one(1)

    :param name: The name of the new class to produce. By default, it is ``Table``.
    :param meta: The :class:`.TableMetadata` to use as metadata.
    :return: A new Table class that can be used for OO tables.
    """
    if meta is None:
        meta = TableMetadata()

    # This is the best way of cloning the Table object, instead of using `type()`.
    # It is directly calling the metaclass.
    clone = TableMeta.__new__(TableMeta, name, (Table,), {"metadata": meta}, register=False)
    return clone
