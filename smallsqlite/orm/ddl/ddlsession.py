"""
Contains the DDL session object.
"""

import io
import logging
import typing

from smallsqlite.exc import SchemaError
from smallsqlite.orm.schema import column as md_column, table as md_table
from smallsqlite.orm.session import SessionBase, enforce_open

logger = logging.getLogger(__name__)


class DDLSession(SessionBase):
    """
    A session for executing DDL statements in.
    """

    @enforce_open
    def create_table(self, table_name: str, *columns: 'md_column.Column',
                     if_not_exists: bool = True):
        """
        Creates a table in this database.

        :param table_name: The name of the table.
        :param columns: The columns to add to the table, in order.
        :param if_not_exists: Should this do nothing if the table already exists?
        """
        md_column.check_identifier(table_name, "table")
        sql = io.StringIO()
        sql.write("CREATE TABLE ")
        if if_not_exists:
            sql.write("IF NOT EXISTS ")

        sql.write('"{}"'.format(table_name))

        column_fields = []
        for i in columns:
            if not isinstance(i, md_column.Column):
                raise TypeError("Cannot create a table with a {}".format(type(i)))
            column_fields.append(i.get_ddl_sql())

        # this uses spacing to prettify the generated SQL a bit
        sql.write(" (\n    ")
        sql.write(",\n    ".join(column_fields))
        sql.write("\n);")

        return self.execute(sql.getvalue())

    @enforce_open
    def drop_table(self, table_name: str, *, if_exists: bool = True):
        """
        Drops a table.

        :param table_name: The name of the table to drop.
        :param if_exists: Should we should only attempt to drop tables that exist?
        """
        md_column.check_identifier(table_name, "table")
        base = io.StringIO()
        base.write("DROP TABLE ")
        if if_exists:
            base.write("IF EXISTS ")
        base.write('"{}"'.format(table_name))
        base.write(";")

        return self.execute(base.getvalue())

    @enforce_open
    def add_column(self, table_name: str, column: 'md_column.Column'):
        """
        Adds a column to a table.

        The primary key can never be added this way; it is always created with the table.

        :param table_name: The name of the table to add the column to.
        :param column: The column object to add to the table.
        """
        md_column.check_identifier(table_name, "table")
        if column.primary_key:
            raise SchemaError("Cannot add primary key column {} to existing table {}"
                              .format(column.name, table_name))

        base = 'ALTER TABLE "{}" ADD COLUMN {};'.format(table_name, column.get_ddl_sql())
        return self.execute(base)

    @enforce_open
    def get_columns(self, table_name: str) -> 'typing.List[md_column.Column]':
        """
        Gets a :class:`.Column` for each column in the specified table, as it currently exists in
        the database.

        These columns don't point to a :class:`.Table`, since there might not be one; their
        ``table`` is the table name. A table that does not exist has no columns.

        :param table_name: The table to get columns from.
        """
        md_column.check_identifier(table_name, "table")
        sql = self.bind.dialect.get_column_sql(table_name)
        with self.cursor(sql) as cur:
            records = cur.flatten()

        return list(self.bind.dialect.transform_rows_to_columns(*records, table_name=table_name))

    @enforce_open
    def get_column_names(self, table_name: str) -> typing.List[str]:
        """
        Gets the names of the columns in the specified table, as it currently exists in the
        database.

        Unlike :meth:`.DDLSession.get_columns`, the columns are not decoded, so columns of types
        this library does not know (or with names it would not declare) are still listed.
        """
        md_column.check_identifier(table_name, "table")
        sql = self.bind.dialect.get_column_sql(table_name)
        with self.cursor(sql) as cur:
            return [record["name"] for record in cur]

    @enforce_open
    def sync_table(self, table: 'typing.Type[md_table.Table]') -> 'typing.List[md_column.Column]':
        """
        Ensures a table exists with every column of a :class:`.Table`.

        The table is created if it does not exist. Then, any column of the table that the
        database does not have is added, in table order. Columns are never removed or changed;
        columns in the database that the table no longer has are left alone.

        :param table: The :class:`.Table` to synchronise.
        :return: The list of columns that were added.
        """
        table_name = table.__tablename__
        self.create_table(table_name, *table.iter_columns(), if_not_exists=True)

        live_names = self.get_column_names(table_name)
        missing = [column for column in table.iter_columns() if column.name not in live_names]
        for column in missing:
            logger.debug("Adding column {} to table {}".format(column.name, table_name))
            self.add_column(table_name, column)

        stale = [name for name in live_names if table.get_column(name) is None]
        if stale:
            logger.debug("Table {} has columns no longer declared: {}".format(table_name,
                                                                              ", ".join(stale)))

        return missing
