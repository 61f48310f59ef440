"""
Main package for smallsqlite - a small ORM for SQLite3 that builds its tables from the defaults
declared on model classes.

.. currentmodule:: smallsqlite

.. autosummary::
    :toctree:

    db
    orm
    backends

    exc
    meta
"""

__licence__ = "MIT"
__status__ = "Development"

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version(__name__)
except PackageNotFoundError:
    # package is not installed
    pass

from smallsqlite.backends.base import BaseConnector, BaseDialect, BaseResultSet
# import helpers
from smallsqlite.db import DatabaseInterface, open_database
from smallsqlite.exc import *
from smallsqlite.orm.inspection import get_pk, is_persisted
from smallsqlite.orm.operators import AscSorter, DescSorter
from smallsqlite.orm.query import FindResult, SelectQuery
# orm
from smallsqlite.orm.schema.column import Column
from smallsqlite.orm.schema.table import Table, TableMetadata, table_base
from smallsqlite.orm.schema.types import Boolean, ColumnType, ColumnValidationError, Integer, \
    String, infer_type
from smallsqlite.orm.session import Session
