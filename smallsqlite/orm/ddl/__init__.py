"""
DDL (schema changing) support.

.. currentmodule:: smallsqlite.orm.ddl

.. autosummary::
    :toctree:

    ddlsession
"""
