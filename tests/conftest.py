"""
py.test configuration
"""
import os

import pytest

from smallsqlite import DatabaseInterface
from smallsqlite.orm.schema.table import Table, table_base


@pytest.fixture()
def dsn(tmp_path) -> str:
    # a fresh database file per test, unless one is forced from the environment
    return os.environ.get("SMALLSQLITE_DSN") or "sqlite3:///{}".format(tmp_path / "test.db")


@pytest.fixture()
def db(dsn: str) -> DatabaseInterface:
    iface = DatabaseInterface(dsn)
    iface.connect()
    yield iface
    iface.close()


@pytest.fixture()
def user_table(db: DatabaseInterface) -> Table:
    class User(table_base()):
        name = ""
        active = False
        age = 0

    db.bind_tables(User.metadata)
    return User
