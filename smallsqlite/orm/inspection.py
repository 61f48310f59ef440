"""
Inspection module - contains utilities for inspecting Table objects and Row objects.
"""

from smallsqlite.orm.schema import table as md_table


def get_pk(row: 'md_table.Table', as_tuple: bool = True):
    """
    Gets the primary key for a Table row.

    :param row: The :class:`.Table` instance to extract the PK from.
    :param as_tuple: Should this PK always be returned as a tuple?
    """
    pk = row.primary_key
    if as_tuple and not isinstance(pk, tuple):
        return pk,

    return pk


def is_persisted(row: 'md_table.Table') -> bool:
    """
    Checks if a row has been saved before, i.e. it has an ID from the database.

    .. note::
        Deleting a row does not reset its ID, so a deleted row still counts as persisted.

    :param row: The :class:`.Table` instance to inspect.
    """
    return row.primary_key != md_table.UNSAVED_ID

