"""
Tests for DDL sessions, and the schema synchronisation of tables.
"""
import pytest

from smallsqlite import DatabaseInterface
from smallsqlite.exc import NoSuchTableError, SchemaError
from smallsqlite.orm.schema.column import Column
from smallsqlite.orm.schema.table import table_base
from smallsqlite.orm.schema.types import Boolean, Integer, String

table_name = "test"


def _test_columns():
    return (
        Column.with_name("id", Integer(), primary_key=True, autoincrement=True),
        Column.with_name("name", String(), default=""),
        Column.with_name("balance", Integer(), default=0),
    )


def _live_column_names(db: DatabaseInterface, name: str = table_name):
    with db.get_ddl_session() as sess:
        return [column.name for column in sess.get_columns(name)]


def test_column_ddl():
    assert Column.with_name("flag", Boolean(), default=False).get_ddl_sql() == \
        '"flag" BOOLEAN NOT NULL DEFAULT 0'
    assert Column.with_name("title", String(), default="it's").get_ddl_sql() == \
        '"title" VARCHAR DEFAULT \'it\'\'s\''
    assert Column.with_name("n", Integer, default=-1).get_ddl_sql() == \
        '"n" INTEGER NOT NULL DEFAULT -1'
    assert Column.with_name("id", Integer, primary_key=True, autoincrement=True).get_ddl_sql() == \
        '"id" INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL'


def test_create_table(db: DatabaseInterface):
    with db.get_ddl_session() as sess:
        sess.create_table(table_name, *_test_columns())
        # creating it again does nothing
        sess.create_table(table_name, *_test_columns())

    with db.get_session() as sess:
        assert sess.fetch('SELECT * FROM "test";') is None

    assert _live_column_names(db) == ["id", "name", "balance"]


def test_create_table_bad_name(db: DatabaseInterface):
    with db.get_ddl_session() as sess:
        with pytest.raises(SchemaError):
            sess.create_table('bad"name', *_test_columns())


def test_bad_column_name():
    with pytest.raises(SchemaError):
        Column.with_name("bad name", Integer())


def test_get_columns(db: DatabaseInterface):
    with db.get_ddl_session() as sess:
        sess.create_table(table_name, *_test_columns())
        columns = {column.name: column for column in sess.get_columns(table_name)}

    assert isinstance(columns["id"].type, Integer)
    assert columns["id"].primary_key
    assert columns["id"].table_name == table_name

    assert isinstance(columns["name"].type, String)
    assert columns["name"].nullable
    assert columns["name"].default == ""

    assert isinstance(columns["balance"].type, Integer)
    assert not columns["balance"].nullable
    assert columns["balance"].default == 0


def test_get_columns_missing_table(db: DatabaseInterface):
    with db.get_ddl_session() as sess:
        assert sess.get_columns("nothing_here") == []


def test_add_column(db: DatabaseInterface):
    with db.get_ddl_session() as sess:
        sess.create_table(table_name, *_test_columns())

    with db.get_session() as sess:
        sess.execute('INSERT INTO "test" ("name") VALUES (?);', ["existing"])

    with db.get_ddl_session() as sess:
        sess.add_column(table_name, Column.with_name("age", Integer(), default=7))

    assert _live_column_names(db) == ["id", "name", "balance", "age"]

    # existing rows get the default
    with db.get_session() as sess:
        row = sess.fetch('SELECT "age" FROM "test";')

    assert row["age"] == 7


def test_add_primary_key(db: DatabaseInterface):
    with db.get_ddl_session() as sess:
        sess.create_table(table_name, *_test_columns())
        with pytest.raises(SchemaError):
            sess.add_column(table_name, Column.with_name("other_id", Integer(), primary_key=True))


def test_drop_table(db: DatabaseInterface):
    with db.get_ddl_session() as sess:
        sess.create_table(table_name, *_test_columns())
        sess.drop_table(table_name)
        # dropping it again does nothing
        sess.drop_table(table_name)

    with db.get_session() as sess:
        with pytest.raises(NoSuchTableError):
            sess.fetch('SELECT * FROM "test";')


def test_sync_creates_table(db: DatabaseInterface):
    class Item(table_base()):
        label = ""
        quantity = 0
        in_stock = True

    db.bind_tables(Item.metadata)
    assert _live_column_names(db, "item") == ["id", "label", "quantity", "in_stock"]


def test_sync_is_idempotent(db: DatabaseInterface, user_table):
    with db.get_ddl_session() as sess:
        before = [(c.name, c.type.sql(), c.default) for c in sess.get_columns("user")]
        assert sess.sync_table(user_table) == []
        after = [(c.name, c.type.sql(), c.default) for c in sess.get_columns("user")]

    assert before == after


def test_sync_adds_missing_columns(db: DatabaseInterface):
    class Note(table_base()):
        text = ""

    db.bind_tables(Note.metadata)
    db.save(Note(text="hello"))

    class NewNote(table_base(), table_name="note"):
        text = ""
        pinned = True
        priority = 3

    added = db.sync_tables([NewNote])
    assert [column.name for column in added["note"]] == ["pinned", "priority"]
    assert _live_column_names(db, "note") == ["id", "text", "pinned", "priority"]

    # the old row gets the new defaults
    db.bind_tables(NewNote.metadata)
    rows = db.find_many(NewNote)
    assert len(rows) == 1
    assert rows[0].text == "hello"
    assert rows[0].pinned is True
    assert rows[0].priority == 3


def test_sync_keeps_stale_columns(db: DatabaseInterface):
    class Note(table_base()):
        text = ""
        extra = 5

    db.bind_tables(Note.metadata)
    db.save(Note(text="hello"))

    class NewNote(table_base(), table_name="note"):
        text = ""

    db.bind_tables(NewNote.metadata)
    assert _live_column_names(db, "note") == ["id", "text", "extra"]

    # the stale column is never read back
    rows = db.find_many(NewNote)
    assert len(rows) == 1
    assert rows[0].to_dict() == {"id": rows[0].id, "text": "hello"}

    # and new rows get the stale column's database default
    db.save(NewNote(text="again"))
    with db.get_session() as sess:
        row = sess.fetch('SELECT "extra" FROM "note" WHERE "text" = ?;', ["again"])

    assert row["extra"] == 5


def test_sync_ignores_unknown_stale_columns(db: DatabaseInterface):
    with db.get_session() as sess:
        sess.execute('CREATE TABLE "note" ("id" INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL, '
                     '"text" VARCHAR, "created" undefined, "score" REAL, "odd name" VARCHAR);')
        sess.execute('INSERT INTO "note" ("text", "score") VALUES (?, ?);', ["kept", 1.5])

    class Note(table_base()):
        text = ""
        pinned = False

    added = db.sync_tables([Note])
    assert [column.name for column in added["note"]] == ["pinned"]

    with db.get_ddl_session() as sess:
        assert sess.get_column_names("note") == ["id", "text", "created", "score", "odd name",
                                                 "pinned"]

    db.bind_tables(Note.metadata)
    rows = db.find_many(Note)
    assert [(row.text, row.pinned) for row in rows] == [("kept", False)]


def test_table_sync_and_drop(db: DatabaseInterface, user_table):
    assert user_table.sync() == []
    user_table.drop()

    assert _live_column_names(db, "user") == []

    added = user_table.sync()
    assert [column.name for column in added] == []
    assert _live_column_names(db, "user") == ["id", "name", "active", "age"]
