"""
Classes for operators used when building queries.
"""
import abc
import typing

from smallsqlite.orm.schema import column as md_column


class OperatorResponse:
    """
    A storage class for the generated SQL from an operator.
    """
    __slots__ = ("sql", "parameters")

    def __init__(self, sql: str, parameters: list = None):
        """
        :param sql: The generated SQL for this operator.
        :param parameters: A list of positional parameters to bind for this response.
        """
        self.sql = sql
        self.parameters = parameters
        if self.parameters is None:
            self.parameters = []


class BaseOperator(abc.ABC):
    """
    The base operator class.
    """

    @abc.abstractmethod
    def generate_sql(self) -> OperatorResponse:
        """
        Generates the SQL for an operator.

        :return: A :class:`.OperatorResponse` representing the result.
        """

    def __and__(self, other: 'BaseOperator'):
        if not isinstance(other, BaseOperator):
            return NotImplemented

        return And(self, other)


class Raw(BaseOperator):
    """
    A caller-supplied SQL fragment, with ``?`` placeholders for its values.

    .. warning::
        The fragment is emitted as-is; it is neither parsed nor validated. Values must always be
        passed as parameters rather than formatted into the fragment.

    .. code-block:: python3

        query.where("age > ? AND active = ?", 15, True)
    """

    def __init__(self, fragment: str, *params: typing.Any):
        self.fragment = fragment
        self.params = list(params)

    def __repr__(self):
        return "<Raw {!r} params={!r}>".format(self.fragment, self.params)

    def generate_sql(self):
        return OperatorResponse(self.fragment, list(self.params))


class And(BaseOperator):
    """
    Represents an AND operator in a query.

    This will join multiple other :class:`.BaseOperator` objects together.
    """

    def __init__(self, *ops: 'BaseOperator'):
        self.operators = list(ops)

    def generate_sql(self):
        final = []
        vals = []
        for op in self.operators:
            response = op.generate_sql()
            final.append("({})".format(response.sql))
            vals.extend(response.parameters)

        return OperatorResponse(" AND ".join(final), vals)


class Sorter(BaseOperator, metaclass=abc.ABCMeta):
    """
    A generic sorter operator, for use in ORDER BY.
    """

    def __init__(self, column: 'md_column.Column'):
        self.column = column

    def __repr__(self):
        return "<{} column={}>".format(type(self).__name__, self.column.name)

    @property
    @abc.abstractmethod
    def sort_order(self):
        """
        The sort order for this row; ASC or DESC.
        """
        pass

    def generate_sql(self):
        return OperatorResponse("{} {}".format(self.column.quoted_name, self.sort_order))


class AscSorter(Sorter):
    sort_order = "ASC"


class DescSorter(Sorter):
    sort_order = "DESC"


def sorter_for(column: 'md_column.Column', direction: str = "asc") -> Sorter:
    """
    Gets the sorter for a column and a direction name (``asc`` or ``desc``, in any case).
    """
    lowered = direction.lower()
    if lowered == "asc":
        return AscSorter(column)
    elif lowered == "desc":
        return DescSorter(column)

    raise ValueError("Unknown sort direction {!r}".format(direction))
