"""
Column types, and the mapping from Python default values to column types.

Only three semantic types exist: :class:`.Boolean`, :class:`.String` and :class:`.Integer`.
"""
import abc
import typing

from smallsqlite.exc import DatabaseException, SchemaError
from smallsqlite.orm.schema import column as md_column, table as md_table


class ColumnValidationError(DatabaseException):
    """
    Raised when a column fails validation.
    """


class ColumnType(abc.ABC):
    """
    Implements some underlying mechanisms for a :class:`.Column`.

    The only method that is required to be implemented on children is :meth:`.ColumnType.sql` -
    which is used in CREATE TABLE and ALTER TABLE declarations. Children also provide
    :meth:`.ColumnType.sql_literal`, to render a default value inside DDL, and
    :meth:`.ColumnType.on_load`, which decodes a raw value read from the database.

    The ColumnType is responsible for moving values between the row's internal storage and user
    code, through :meth:`.ColumnType.on_set` and :meth:`.ColumnType.on_get`.
    """
    __slots__ = ("column",)

    #: The default value given to columns of this type that do not declare one.
    default_value = None  # type: typing.Any

    #: If columns of this type are nullable, unless overridden on the column.
    nullable = True

    def __init__(self):
        #: The column this type object is associated with.
        self.column = None  # type: md_column.Column

    def __repr__(self):
        return "<{}>".format(type(self).__name__)

    @abc.abstractmethod
    def sql(self) -> str:
        """
        :return: The str SQL name of this type.
        """

    def sql_literal(self, value: typing.Any) -> str:
        """
        Renders a value as a SQL literal, for use in a DEFAULT clause.
        """
        if value is None:
            return "NULL"

        raise SchemaError("Cannot use {!r} as a default for type {}"
                          .format(value, type(self).__name__))

    def on_load(self, value: typing.Any) -> typing.Any:
        """
        Decodes a value read from the database.

        :param value: The raw value from the result row.
        :return: The value to store on the row.
        """
        return value

    def on_set(self, row: 'md_table.Table', value: typing.Any):
        """
        Called when a value is a set on this column.

        :param row: The row this value is being set on.
        :param value: The value being set.
        """
        row.store_column_value(self.column, value)

    def on_get(self, row: 'md_table.Table') -> typing.Any:
        """
        Called when a value is retrieved from this column.

        :param row: The row that is being retrieved.
        :return: The value of the row's internal storage.
        """
        return row.get_column_value(self.column)

    @classmethod
    def create_default(cls) -> 'ColumnType':
        """
        Creates the default object for this type in the event that a type is passed to a column,
        instead of an instance.
        """
        return cls()

    def _load_error(self, value):
        name = self.column.name if self.column is not None else "?"
        return ColumnValidationError("Value {!r} for column {} cannot be loaded as {}"
                                     .format(value, name, type(self).__name__))


class String(ColumnType):
    """
    Represents a VARCHAR type.

    String columns are the only nullable columns.
    """
    default_value = ""
    nullable = True

    def sql(self):
        return "VARCHAR"

    def sql_literal(self, value):
        if isinstance(value, str):
            return "'{}'".format(value.replace("'", "''"))

        return super().sql_literal(value)

    def on_load(self, value):
        if value is None or isinstance(value, str):
            return value

        raise self._load_error(value)


class Boolean(ColumnType):
    """
    Represents a BOOLEAN type.

    SQLite has no real boolean storage; values are kept as 0 and 1.
    """
    default_value = False
    nullable = False

    def sql(self):
        return "BOOLEAN"

    def sql_literal(self, value):
        if isinstance(value, (bool, int)) and value in (0, 1):
            return "1" if value else "0"

        return super().sql_literal(value)

    def on_load(self, value):
        if isinstance(value, bool):
            return value

        if isinstance(value, int) and value in (0, 1):
            return bool(value)

        raise self._load_error(value)


class Integer(ColumnType):
    """
    Represents an INTEGER type.

    .. note::
        Values are not checked on assignment. A float default (``ratio = 0.5``) also makes an
        Integer column, declared with ``DEFAULT 0.5``. SQLite stores a float that converts
        losslessly (``2.0``) as the integer ``2``, and any other float (``2.5``) as a REAL, which
        is loaded back unchanged.
    """
    default_value = -1
    nullable = False

    def sql(self):
        return "INTEGER"

    def sql_literal(self, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)

        return super().sql_literal(value)

    def on_load(self, value):
        if isinstance(value, (int, float)):
            return value

        raise self._load_error(value)


#: The built-in per-type defaults.
DEFAULT_VALUES = {
    Boolean: Boolean.default_value,
    String: String.default_value,
    Integer: Integer.default_value,
}

_TYPE_NAMES = {
    "boolean": Boolean,
    "bool": Boolean,
    "string": String,
    "str": String,
    "varchar": String,
    "integer": Integer,
    "int": Integer,
}


def infer_type(default: typing.Any) -> 'typing.Type[ColumnType]':
    """
    Infers the column type from a default value.

    ``bool`` is checked before ``int``, since booleans are integers in Python. Every other number,
    ``float`` included, becomes an :class:`.Integer`.

    :param default: The default value declared on a table.
    :return: The :class:`.ColumnType` subclass for the value.
    """
    if isinstance(default, bool):
        return Boolean
    if isinstance(default, str):
        return String
    if isinstance(default, (int, float)):
        return Integer

    raise SchemaError("Cannot infer a column type from {!r}".format(default))


def resolve_type(key: 'typing.Union[str, ColumnType, typing.Type[ColumnType]]') \
        -> 'typing.Type[ColumnType]':
    """
    Resolves a type name, type instance or type class into a :class:`.ColumnType` subclass.
    """
    if isinstance(key, str):
        try:
            return _TYPE_NAMES[key.lower()]
        except KeyError:
            raise SchemaError("Unknown column type {}".format(key)) from None

    if isinstance(key, ColumnType):
        return type(key)

    if isinstance(key, type) and issubclass(key, ColumnType):
        return key

    raise SchemaError("Unknown column type {!r}".format(key))


def build_type_defaults(overrides: typing.Mapping = None) -> 'typing.Dict[type, typing.Any]':
    """
    Builds a mapping of type class -> default value, applying any user overrides.

    :param overrides: A mapping of type (name, instance or class) to default value.
    """
    defaults = dict(DEFAULT_VALUES)
    if overrides:
        for key, value in overrides.items():
            type_ = resolve_type(key)
            if value is None:
                if not type_.nullable:
                    raise SchemaError("Type {} cannot default to NULL".format(type_.__name__))
            elif infer_type(value) is not type_:
                raise SchemaError("Default {!r} is not valid for type {}"
                                  .format(value, type_.__name__))
            defaults[type_] = value

    return defaults
