"""
Code for ORM schema objects.

.. currentmodule:: smallsqlite.orm.schema

.. autosummary::
    :toctree:

    table
    column

    types
    decorators

"""
