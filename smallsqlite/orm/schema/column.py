import logging
import re
import typing

from cached_property import cached_property

from smallsqlite.exc import SchemaError
from smallsqlite.orm import operators as md_operators
from smallsqlite.orm.schema import table as md_table, types as md_types
from smallsqlite.sentinels import NO_DEFAULT

logger = logging.getLogger(__name__)

#: Identifiers are emitted inside double quotes, so only this subset is accepted.
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def check_identifier(name: str, kind: str = "identifier") -> str:
    """
    Checks that a table or column name is safe to emit into SQL.

    :param name: The name to check.
    :param kind: What the name is for, used in the error message.
    :return: The name, unchanged.
    """
    if not isinstance(name, str) or _IDENTIFIER.match(name) is None:
        raise SchemaError("Invalid {} name {!r}".format(kind, name))

    return name


class Column(object):
    """
    Represents a column in a table in a database.

    Columns are normally created implicitly, from default values in a table body:

    .. code-block:: python3

        class User(Table):
            name = ""       # String
            active = False  # Boolean
            age = 0         # Integer

    They can also be declared explicitly:

    .. code-block:: python3

        class User(Table):
            age = Column(Integer, default=18)

    The ``id`` column is always added by the table itself.
    """

    def __init__(self, type_: 'typing.Union[md_types.ColumnType, typing.Type[md_types.ColumnType]]',
                 *,
                 primary_key: bool = False,
                 nullable: bool = None,
                 default: typing.Any = NO_DEFAULT,
                 autoincrement: bool = False):
        """
        :param type_:
            The :class:`.ColumnType` that represents the type of this column.

        :param primary_key:
            Is this column the table's Primary Key?

        :param nullable:
            Can this column be NULL? If not provided, this is decided by the type.

        :param default:
            The default for this column. This is used for new rows, and in the DEFAULT clause of
            the column definition. If not provided, the type default of the table metadata is used.

        :param autoincrement:
            Should this column auto-increment?
        """
        #: The name of the column.
        #: This can be manually set, or automatically set when set on a table.
        self.name = None  # type: str

        #: The :class:`.Table` this Column is associated with, or the name of the table for
        #: columns read back from the database.
        self.table = None

        #: The :class:`.ColumnType` that represents the type of this column.
        self.type = type_  # type: md_types.ColumnType
        if not isinstance(self.type, md_types.ColumnType):
            # assume we need to create the "default" type
            self.type = self.type.create_default()  # type: md_types.ColumnType
        # update our own object on the column
        self.type.column = self

        #: The default for this column.
        self.default = default

        #: If this Column is a primary key.
        self.primary_key = primary_key

        #: If this Column is nullable.
        if nullable is None:
            nullable = self.type.nullable and not primary_key
        self.nullable = nullable

        #: If this Column is to autoincrement.
        self.autoincrement = autoincrement

    def __repr__(self):
        return "<Column table={} name={} type={}>".format(self.table_name, self.name,
                                                          self.type.sql())

    def __set_name__(self, owner, name):
        """
        Called to update the table and the name of this Column.

        :param owner: The :class:`.Table` this Column is on.
        :param name: The str name of this column.
        """
        logger.debug("Column created with name {} on {}".format(name, owner))
        self.name = check_identifier(name, "column")
        self.table = owner

    @classmethod
    def with_name(cls, name: str, *args, table=None, **kwargs) -> 'Column':
        """
        Creates this column with a name already set, for columns not declared on a table body.

        :param name: The name of this column.
        :param table: The table (or table name) this column belongs to, if any.
        """
        col = cls(*args, **kwargs)
        col.name = check_identifier(name, "column")
        col.table = table
        return col

    @property
    def table_name(self) -> str:
        """
        :return: The name of the table this column is on, or None.
        """
        if self.table is None or isinstance(self.table, str):
            return self.table

        return self.table.__tablename__

    def get_default(self) -> typing.Any:
        """
        Gets the effective default of this column.

        This is the declared default if there is one, or the type default of the table's
        metadata.
        """
        if self.default is not NO_DEFAULT:
            return self.default

        metadata = getattr(self.table, "metadata", None)
        if metadata is not None:
            return metadata.get_type_default(self.type)

        return self.type.default_value

    def get_ddl_sql(self) -> str:
        """
        Gets the column definition used in CREATE TABLE and ALTER TABLE ... ADD COLUMN.
        """
        parts = [self.quoted_name, self.type.sql()]
        if self.primary_key:
            parts.append("PRIMARY KEY")
            if self.autoincrement:
                parts.append("AUTOINCREMENT")

        if not self.nullable:
            parts.append("NOT NULL")

        if not self.primary_key:
            default = self.get_default()
            if default is not None:
                parts.append("DEFAULT {}".format(self.type.sql_literal(default)))

        return " ".join(parts)

    def asc(self) -> 'md_operators.AscSorter':
        """
        Returns the ascending sorter operator for this column.
        """
        return md_operators.AscSorter(self)

    def desc(self) -> 'md_operators.DescSorter':
        """
        Returns the descending sorter operator for this column.
        """
        return md_operators.DescSorter(self)

    @cached_property
    def quoted_name(self) -> str:
        """
        Gets the quoted name for this column.

        This returns the column name in "column" format.
        """
        return r'"{}"'.format(self.name)
