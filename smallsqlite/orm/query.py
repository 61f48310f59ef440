"""
Classes for query objects.
"""
import collections
import typing

from smallsqlite.exc import NoSuchColumnError
from smallsqlite.orm import operators as md_operators, session as md_session
from smallsqlite.orm.schema import column as md_column, table as md_table


class FindResult(collections.namedtuple("FindResult", "count rows")):
    """
    The result of a find: the number of rows, and the rows themselves.

    For count-only finds, ``rows`` is always empty and ``count`` is the count from the database.
    """
    __slots__ = ()


def _check_non_negative(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError("{} must be a non-negative integer, not {!r}".format(name, value))

    return value


class SelectQuery(object):
    """
    Represents a SELECT query, which fetches rows of one table from the database.

    A query is made of an optional filter, an optional ordering, an optional row limit and an
    optional row offset:

    .. code-block:: python3

        query = SelectQuery(table=User)
        query.where("age > ?", 15).order_by("age", "desc").limit(10).offset(20)

        users = db.find_many(User, query)

    Queries can also be created from a session, which allows them to be run directly:

    .. code-block:: python3

        with db.get_session() as sess:
            user = sess.select(User).where("name = ?", "alice").first()

    """

    def __init__(self, session: 'md_session.Session' = None, table=None):
        #: The :class:`.Session` this query runs in, if any.
        self.session = session

        #: The table being queried.
        self.table = None

        #: A list of conditions to fulfil.
        self.conditions = []

        #: The limit on the number of rows returned from this query.
        self.row_limit = None

        #: The offset to start fetching rows from.
        self.row_offset = None

        #: The column to order by.
        self.orderer = None  # type: md_operators.Sorter

        if table is not None:
            self.from_(table)

    def __call__(self, table):
        return self.from_(table)

    def __iter__(self):
        return iter(self.session.run_select_query(self).rows)

    def __repr__(self):
        return "<SelectQuery table={} conditions={} order={} limit={} offset={}>".format(
            self.table, self.conditions, self.orderer, self.row_limit, self.row_offset
        )

    @classmethod
    def build(cls, table, *, where: str = None, params: typing.Sequence[typing.Any] = (),
              order_by=None, limit: int = None, offset: int = None,
              session: 'md_session.Session' = None) -> 'SelectQuery':
        """
        Builds a query from keyword arguments.

        :param table: The table to select from.
        :param where: A SQL fragment to filter with, using ``?`` placeholders.
        :param params: The values for the placeholders of ``where``.
        :param order_by: A column name, a :class:`.Column`, a sorter, or a two item \
            ``(column, direction)`` tuple.
        :param limit: The maximum number of rows to return.
        :param offset: The number of rows to skip.
        """
        query = cls(session, table=table)
        if where is not None:
            query.where(where, *params)
        elif params:
            raise ValueError("params were given without a where clause")

        if order_by is not None:
            if isinstance(order_by, tuple):
                query.order_by(*order_by)
            else:
                query.order_by(order_by)

        if limit is not None:
            query.limit(limit)

        if offset is not None:
            query.offset(offset)

        return query

    def from_(self, tbl) -> 'SelectQuery':
        """
        Sets the table this query is selecting from.

        :param tbl: The :class:`.Table` object to select.
        :return: This query.
        """
        self.table = tbl
        return self

    def where(self, condition: 'typing.Union[str, md_operators.BaseOperator]',
              *params: typing.Any) -> 'SelectQuery':
        """
        Adds a WHERE clause to the query. Multiple clauses are joined with AND.

        .. warning::
            Fragments are emitted into the query as-is. Pass values as parameters, never inside
            the fragment itself.

        :param condition: A SQL fragment with ``?`` placeholders, or an operator.
        :param params: The values for the placeholders.
        :return: This query.
        """
        if isinstance(condition, md_operators.BaseOperator):
            if params:
                raise TypeError("Parameters cannot be passed with an operator")
        else:
            condition = md_operators.Raw(condition, *params)

        self.conditions.append(condition)
        return self

    def order_by(self, column, direction: str = "asc") -> 'SelectQuery':
        """
        Sets the order by clause for this query.

        The column must be a column of the table being queried; its name is never taken from
        user input directly.

        :param column: The column name, :class:`.Column` or sorter to order by.
        :param direction: ``asc`` or ``desc``. Ignored if a sorter is passed.
        :return: This query.
        """
        if self.table is None:
            raise RuntimeError("Cannot order a query before setting its table")

        if isinstance(column, md_operators.Sorter):
            sorter = column
            column = sorter.column
        else:
            sorter = None

        if isinstance(column, md_column.Column):
            name = column.name
        else:
            name = column

        real_column = self.table.get_column(name)
        if real_column is None:
            raise NoSuchColumnError("Cannot order by '{}': no such column on {}"
                                    .format(name, self.table.__tablename__))

        if sorter is None or sorter.column is not real_column:
            sort_order = sorter.sort_order if sorter is not None else direction
            sorter = md_operators.sorter_for(real_column, sort_order)

        self.orderer = sorter
        return self

    def limit(self, row_limit: int) -> 'SelectQuery':
        """
        Sets a limit of the number of rows that can be returned from this query.

        :param row_limit: The maximum number of rows to return.
        :return: This query.
        """
        self.row_limit = _check_non_negative("limit", row_limit)
        return self

    def offset(self, offset: int) -> 'SelectQuery':
        """
        Sets the offset of rows to start returning results from.

        :param offset: The row offset.
        :return: This query.
        """
        self.row_offset = _check_non_negative("offset", offset)
        return self

    def _get_where_sql(self) -> typing.Tuple[str, typing.List[typing.Any]]:
        if not self.conditions:
            return "", []

        if len(self.conditions) == 1:
            response = self.conditions[0].generate_sql()
        else:
            response = md_operators.And(*self.conditions).generate_sql()

        return " WHERE {}".format(response.sql), response.parameters

    def generate_sql(self) -> typing.Tuple[str, typing.Union[typing.List[typing.Any], None]]:
        """
        Generates the SQL for this query.

        :return: A two item tuple, the SQL to use and the list of params to pass, or None if \
            there are no params.
        """
        if self.table is None:
            raise RuntimeError("Cannot generate SQL for a query without a table")

        # stale columns left over from removed fields are never selected
        column_names = ", ".join(column.quoted_name for column in self.table.iter_columns())
        fmt = "SELECT {} FROM {}".format(column_names, self.table.__quoted_name__)

        where, params = self._get_where_sql()
        fmt += where

        if self.orderer is not None:
            fmt += " ORDER BY {}".format(self.orderer.generate_sql().sql)

        if self.row_limit is not None:
            fmt += " LIMIT {}".format(self.row_limit)
        elif self.row_offset is not None:
            # sqlite3 needs a LIMIT before any OFFSET
            fmt += " LIMIT -1"

        if self.row_offset is not None:
            fmt += " OFFSET {}".format(self.row_offset)

        return fmt, params or None

    def generate_count_sql(self) -> typing.Tuple[str, typing.Union[typing.List[typing.Any], None]]:
        """
        Generates the SQL to count the rows matched by this query's filter.

        Ordering, limit and offset do not apply to a count.
        """
        if self.table is None:
            raise RuntimeError("Cannot generate SQL for a query without a table")

        where, params = self._get_where_sql()
        fmt = "SELECT COUNT(*) AS total FROM {}{}".format(self.table.__quoted_name__, where)
        return fmt, params or None

    # "fetch" methods
    def first(self) -> 'md_table.Table':
        """
        Gets the first result that matches from this query.

        :return: A :class:`.Table` instance representing the first item, or None if no item matched.
        """
        rows = self.session.run_select_query(self).rows
        if rows:
            return rows[0]

    def all(self) -> 'typing.List[md_table.Table]':
        """
        Gets all results that match from this query.
        """
        return self.session.run_select_query(self).rows

    def count(self) -> int:
        """
        Counts the rows that match this query's filter.
        """
        return self.session.run_count_query(self).count

    def run(self) -> FindResult:
        return self.session.run_select_query(self)

    # ORM methods
    def map_columns(self, results: typing.Mapping[str, typing.Any]) -> 'md_table.Table':
        """
        Maps columns in a result row to a :class:`.Table` instance object.

        :param results: A single row of results from the query cursor.
        :return: A new :class:`.Table` instance that represents the row returned.
        """
        return self.table._internal_from_row(results)
