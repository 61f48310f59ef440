"""
The core code for the ORM.

.. currentmodule:: smallsqlite.orm

.. autosummary::
    :toctree:

    schema
    ddl

    query
    session

    inspection
    operators

"""
