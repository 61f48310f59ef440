"""
Tests for sessions, and select queries.
"""
import logging

import pytest

from smallsqlite import DatabaseInterface, FindResult, SelectQuery, is_persisted, table_base
from smallsqlite.exc import NoSuchColumnError, NoSuchTableError
from smallsqlite.orm.operators import Raw
from smallsqlite.orm.schema.table import UNSAVED_ID
from smallsqlite.orm.schema.types import ColumnValidationError


def _add_users(db: DatabaseInterface, user_table, *ages: int):
    return [db.save(user_table(name="user{}".format(age), age=age)) for age in ages]


def test_insert(db: DatabaseInterface, user_table):
    user = user_table(name="alice", age=30)
    assert not is_persisted(user)

    assert db.save(user) is user
    assert is_persisted(user)
    assert db.count(user_table) == 1


def test_insert_ids_increase(db: DatabaseInterface, user_table):
    first, second = _add_users(db, user_table, 1, 2)
    assert first.id >= 1
    assert second.id > first.id


def test_find_one(db: DatabaseInterface, user_table):
    user = db.save(user_table(name="alice", active=True, age=30))

    found = db.find_one(user_table, user.id)
    assert found is not user
    assert found == user
    assert found.to_dict() == user.to_dict()
    assert found.active is True


def test_find_one_missing(db: DatabaseInterface, user_table):
    assert db.find_one(user_table, 12345) is None


def test_update(db: DatabaseInterface, user_table):
    user = db.save(user_table(name="alice", age=30))
    old_id = user.id

    user.age = 31
    db.save(user)

    assert user.id == old_id
    assert db.count(user_table) == 1
    found = db.find_one(user_table, old_id)
    assert found.age == 31
    assert found.name == "alice"


def test_update_missing_row(db: DatabaseInterface, user_table):
    ghost = user_table(id=999, name="ghost")
    db.save(ghost)

    assert ghost.id == 999
    assert db.count(user_table) == 0


def test_delete(db: DatabaseInterface, user_table):
    user, other = _add_users(db, user_table, 1, 2)
    old_id = user.id

    db.delete(user)
    assert db.find_one(user_table, old_id) is None
    assert db.count(user_table) == 1
    # the in-memory id is kept
    assert user.id == old_id

    # deleting again does nothing
    db.delete(user)
    assert db.count(user_table) == 1


def test_delete_unsaved(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 1)
    row = db.delete(user_table())

    assert row.id == UNSAVED_ID
    assert db.count(user_table) == 1


def test_find_many_filter(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 10, 20, 30)

    rows = db.find_many(user_table, where="age > ?", params=(15,))
    assert sorted(row.age for row in rows) == [20, 30]
    assert db.find_many(user_table, where="age > ?", params=(100,)) == []


@pytest.mark.parametrize("order_by, expected", [
    ("age", [10, 20, 30]),
    (("age", "asc"), [10, 20, 30]),
    (("age", "desc"), [30, 20, 10]),
    (("age", "DESC"), [30, 20, 10]),
])
def test_find_many_order(db: DatabaseInterface, user_table, order_by, expected):
    _add_users(db, user_table, 20, 10, 30)
    assert [row.age for row in db.find_many(user_table, order_by=order_by)] == expected


def test_order_by_column(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 20, 10, 30)

    rows = db.find_many(user_table, order_by=user_table.age.desc())
    assert [row.age for row in rows] == [30, 20, 10]

    rows = db.find_many(user_table, order_by=user_table.age)
    assert [row.age for row in rows] == [10, 20, 30]


@pytest.mark.parametrize("limit, offset", [
    (2, 0),
    (2, 4),
    (10, 2),
    (3, 5),
    (0, 0),
    (5, 7),
])
def test_pagination(db: DatabaseInterface, user_table, limit: int, offset: int):
    _add_users(db, user_table, 0, 1, 2, 3, 4)

    rows = db.find_many(user_table, order_by="age", limit=limit, offset=offset)
    expected = max(0, min(limit, 5 - offset))
    assert len(rows) == expected
    assert [row.age for row in rows] == list(range(offset, offset + expected))


def test_offset_without_limit(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 0, 1, 2, 3, 4)

    rows = db.find_many(user_table, order_by="age", offset=3)
    assert [row.age for row in rows] == [3, 4]


def test_find(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 10, 20, 30)

    result = db.find(user_table, where="age < ?", params=(25,))
    assert isinstance(result, FindResult)
    assert result.count == 2
    assert len(result.rows) == 2

    result = db.find(user_table, count_only=True)
    assert result == FindResult(3, [])


def test_count(db: DatabaseInterface, user_table):
    assert db.count(user_table) == 0
    _add_users(db, user_table, 10, 20, 30)

    assert db.count(user_table) == 3
    assert db.count_by(user_table, where="age > ?", params=(15,)) == 2
    # ordering and paging do not apply to counts
    assert db.count_by(user_table, where="age > ?", params=(15,), limit=1) == 2


def test_query_object(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 10, 20, 30)

    query = SelectQuery(table=user_table).where("age > ?", 5).where("age < ?", 25)
    assert [row.age for row in db.find_many(user_table, query.order_by("age"))] == [10, 20]
    assert db.count_by(user_table, query) == 2


def test_query_without_table(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 10)

    query = SelectQuery().where("age = ?", 10)
    assert len(db.find_many(user_table, query)) == 1


def test_query_other_table(db: DatabaseInterface, user_table):
    class Other(table_base()):
        label = ""

    with pytest.raises(ValueError):
        db.find_many(user_table, SelectQuery(table=Other))


def test_query_and_kwargs(db: DatabaseInterface, user_table):
    with pytest.raises(TypeError):
        db.find_many(user_table, SelectQuery(table=user_table), limit=1)


def test_order_by_unknown_column(db: DatabaseInterface, user_table):
    with pytest.raises(NoSuchColumnError):
        db.find_many(user_table, order_by="nickname")

    with pytest.raises(NoSuchColumnError):
        db.find_many(user_table, order_by='age; DROP TABLE "user"')


def test_order_by_bad_direction(db: DatabaseInterface, user_table):
    with pytest.raises(ValueError):
        db.find_many(user_table, order_by=("age", "sideways"))


@pytest.mark.parametrize("kwargs", [
    {"limit": -1},
    {"offset": -3},
    {"limit": True},
    {"limit": 1.5},
    {"params": (1,)},
])
def test_bad_query_arguments(db: DatabaseInterface, user_table, kwargs: dict):
    with pytest.raises(ValueError):
        db.find_many(user_table, **kwargs)


def test_generate_sql(user_table):
    sql, params = SelectQuery(table=user_table).generate_sql()
    assert sql == 'SELECT "id", "name", "active", "age" FROM "user"'
    assert params is None

    query = SelectQuery(table=user_table).where("age > ?", 15).order_by("age", "desc")
    sql, params = query.limit(2).offset(1).generate_sql()
    assert sql == 'SELECT "id", "name", "active", "age" FROM "user" WHERE age > ? ' \
                  'ORDER BY "age" DESC LIMIT 2 OFFSET 1'
    assert params == [15]

    sql, params = SelectQuery(table=user_table).offset(3).generate_sql()
    assert sql.endswith(" LIMIT -1 OFFSET 3")


def test_generate_sql_multiple_conditions(user_table):
    query = SelectQuery(table=user_table).where("age > ?", 5).where("active = ?", True)
    sql, params = query.generate_sql()
    assert sql.endswith(" WHERE (age > ?) AND (active = ?)")
    assert params == [5, True]


def test_generate_count_sql(user_table):
    sql, params = SelectQuery(table=user_table).order_by("age").limit(1).generate_count_sql()
    assert sql == 'SELECT COUNT(*) AS total FROM "user"'
    assert params is None

    sql, params = SelectQuery(table=user_table).where("age > ?", 15).generate_count_sql()
    assert sql == 'SELECT COUNT(*) AS total FROM "user" WHERE age > ?'
    assert params == [15]


def test_row_sql(user_table):
    row = user_table(name="a", active=True, age=3)

    sql, params = row._get_insert_sql(lambda: "?")
    assert sql == 'INSERT INTO "user" ("name", "active", "age") VALUES (?, ?, ?);'
    assert params == ["a", True, 3]

    row.id = 7
    sql, params = row._get_update_sql(lambda: "?")
    assert sql == 'UPDATE "user" SET "name" = ?, "active" = ?, "age" = ? WHERE "id" = ?;'
    assert params == ["a", True, 3, 7]

    sql, params = row._get_delete_sql(lambda: "?")
    assert sql == 'DELETE FROM "user" WHERE "id" = ?;'
    assert params == [7]


def test_session_select(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 10, 20, 30)

    with db.get_session() as sess:
        assert sess.select(user_table).where("name = ?", "user20").first().age == 20
        assert sess.select(user_table).where("name = ?", "nobody").first() is None
        assert len(sess.select(user_table).all()) == 3
        assert sess.select(user_table).where("age >= ?", 20).count() == 2
        assert [row.age for row in sess.select(user_table).order_by("age", "desc")] == \
            [30, 20, 10]


def test_missing_table(db: DatabaseInterface, caplog):
    class Ghost(table_base()):
        name = ""

    db.bind_tables(Ghost.metadata)
    Ghost.drop()

    with caplog.at_level(logging.WARNING, logger="smallsqlite.orm.session"):
        assert db.find_many(Ghost) == []
        assert db.find(Ghost) == FindResult(0, [])
        assert db.find_one(Ghost, 1) is None
        assert db.count(Ghost) == 0
        assert db.count_by(Ghost, where="name = ?", params=("x",)) == 0

    assert "no such table" in caplog.text

    # writes still fail
    with pytest.raises(NoSuchTableError):
        db.save(Ghost(name="boo"))


def test_table_methods(db: DatabaseInterface, user_table):
    user = user_table(name="alice", age=30).save()
    user_table(name="bob", age=20).save()

    assert user_table.count() == 2
    assert user_table.count_by(where="age > ?", params=(25,)) == 1
    assert user_table.find_one(user.id).name == "alice"
    assert [row.name for row in user_table.find_many(order_by="age")] == ["bob", "alice"]

    user.delete()
    assert user_table.count() == 1


def test_float_in_integer_column(db: DatabaseInterface, user_table):
    lossless = db.save(user_table(name="lossless", age=2.0))
    fractional = db.save(user_table(name="fractional", age=2.5))

    found = db.find_one(user_table, lossless.id)
    assert found.age == 2
    assert isinstance(found.age, int)

    assert db.find_one(user_table, fractional.id).age == 2.5


def test_float_default_saved(db: DatabaseInterface):
    class Reading(table_base()):
        label = ""
        ratio = 0.5

    db.bind_tables(Reading.metadata)
    row = Reading(label="a")
    row.ratio = 3
    db.save(row)
    untouched = db.save(Reading(label="b"))

    assert db.find_one(Reading, row.id).ratio == 3
    assert db.find_one(Reading, untouched.id).ratio == 0.5


def test_nullable_string(db: DatabaseInterface, user_table):
    user = db.save(user_table(name=None))
    assert db.find_one(user_table, user.id).name is None


def test_iterate_missing_table(db: DatabaseInterface):
    class Ghost(table_base()):
        name = ""

    db.bind_tables(Ghost.metadata)
    Ghost.drop()

    with db.get_session() as sess:
        assert sess.select(Ghost).all() == []
        assert list(sess.select(Ghost)) == []


def test_iterate_decode_error(db: DatabaseInterface, user_table):
    with db.get_session() as sess:
        sess.execute('INSERT INTO "user" ("name", "active", "age") VALUES (?, ?, ?);',
                     ["broken", 1, "not a number"])

        with pytest.raises(ColumnValidationError):
            list(sess.select(user_table))

        # the session can still be used afterwards
        assert sess.select(user_table).count() == 1


def test_query_run(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 10, 20)

    with db.get_session() as sess:
        query = SelectQuery(sess)(user_table)
        assert query.table is user_table

        result = query.where("age > ?", 15).run()

    assert result.count == 1
    assert result.rows[0].age == 20


def test_query_operators(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 10, 20, 30)

    condition = Raw("age > ?", 15) & Raw("age < ?", 25)
    sql, params = SelectQuery(table=user_table).where(condition).generate_sql()
    assert sql.endswith(" WHERE (age > ?) AND (age < ?)")
    assert params == [15, 25]

    query = SelectQuery(table=user_table).where(condition)
    assert [row.age for row in db.find_many(user_table, query)] == [20]

    with pytest.raises(TypeError):
        SelectQuery(table=user_table).where(condition, 1)


def test_order_by_asc_sorter(db: DatabaseInterface, user_table):
    _add_users(db, user_table, 20, 10, 30)

    sorter = user_table.age.asc()
    assert sorter.generate_sql().sql == '"age" ASC'
    assert [row.age for row in db.find_many(user_table, order_by=sorter)] == [10, 20, 30]
