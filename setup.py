import sys
from pathlib import Path

from setuptools import setup

if sys.version_info[0:2] < (3, 8):
    raise RuntimeError("This package requires Python 3.8+.")

setup(
    name="smallsqlite",
    version="0.1.0",
    packages=[
        "smallsqlite",
        "smallsqlite.orm",
        "smallsqlite.orm.schema",
        "smallsqlite.orm.ddl",
        "smallsqlite.backends",
        # sqlite3 backend
        "smallsqlite.backends.sqlite3"
    ],
    license="MIT",
    description="A small SQLite3 ORM that builds tables from model defaults",
    long_description=Path(__file__).with_name("README.rst").read_text(encoding="utf-8"),
    install_requires=[
        "cached_property>=1.3.0",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov"
        ]
    },
    python_requires=">=3.8",
)
