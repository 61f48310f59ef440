"""
SQL driver backends for smallsqlite.

.. currentmodule:: smallsqlite.backends

.. autosummary::
    :toctree:

    sqlite3

"""
