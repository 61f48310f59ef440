"""
SQLite3 backends.

.. autosummary::
    :toctree:

    sqlite3
"""
from smallsqlite.backends.base import BaseDialect
from smallsqlite.exc import DatabaseException
from smallsqlite.orm.schema import column as md_column, types as md_types
from smallsqlite.sentinels import NO_DEFAULT

DEFAULT_CONNECTOR = "sqlite3"


def _parse_default(real_type: 'md_types.ColumnType', dflt_value: str):
    """
    Turns the text of a DEFAULT clause, as stored by SQLite, back into a Python value.
    """
    if dflt_value is None:
        return NO_DEFAULT

    if dflt_value.upper() == "NULL":
        return None

    if isinstance(real_type, md_types.String):
        if len(dflt_value) >= 2 and dflt_value[0] == dflt_value[-1] and dflt_value[0] in "'\"":
            quote = dflt_value[0]
            return dflt_value[1:-1].replace(quote * 2, quote)
        return dflt_value

    if isinstance(real_type, md_types.Boolean):
        lowered = dflt_value.lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        return bool(int(dflt_value))

    try:
        return int(dflt_value)
    except ValueError:
        return float(dflt_value)


class Sqlite3Dialect(BaseDialect):
    """
    The dialect for SQLite3.
    """

    @property
    def lastval_method(self):
        return "last_insert_rowid()"

    def get_column_sql(self, table_name: str) -> str:
        return 'PRAGMA table_info("{}")'.format(table_name)

    def transform_rows_to_columns(self, *rows, table_name: str):
        for row in rows:
            column_name = row["name"]
            primary_key = bool(row["pk"])
            nullable = not row["notnull"]
            sql_type = row["type"].upper()

            if sql_type == "INTEGER":
                real_type = md_types.Integer()
            elif sql_type == "BOOLEAN":
                real_type = md_types.Boolean()
            elif sql_type == "TEXT" or sql_type.startswith("VARCHAR"):
                real_type = md_types.String()
            else:
                raise DatabaseException("Cannot parse type {}".format(row["type"]))

            yield md_column.Column.with_name(
                name=column_name,
                type_=real_type,
                table=table_name,
                nullable=nullable,
                default=_parse_default(real_type, row["dflt_value"]),
                primary_key=primary_key,
                autoincrement=primary_key,
            )
