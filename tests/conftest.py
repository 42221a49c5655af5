"""
Shared pytest fixtures for filesystem database tests.
"""

import os
import tempfile

import pytest

from fsdb.engine.atomic_writer import AtomicWriter
from fsdb.engine.codec import Codec
from fsdb.engine.database import Database
from fsdb.engine.path_mapper import PathMapper


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def db(temp_dir):
    """Provide a Database rooted inside the temporary directory."""
    return Database.open(os.path.join(temp_dir, "testdb"))


@pytest.fixture
def bucket(db):
    """Provide a fresh bucket."""
    return db.bucket("testbucket")


@pytest.fixture
def mapper():
    return PathMapper()


@pytest.fixture
def codec():
    return Codec()


@pytest.fixture
def writer(mapper):
    return AtomicWriter(mapper)


@pytest.fixture
def sample_values():
    """Provide values covering every encodable kind."""
    return [
        None,
        True,
        False,
        0,
        -1,
        2**63 - 1,
        -(2**63),
        2**64 - 1,
        1.5,
        -0.25,
        "",
        "text",
        "ünïcödé ✓",
        b"",
        b"\x00\xffbytes",
        [],
        [1, "two", 3.0, None],
        (),
        (1, (2, 3), [4]),
        {},
        {"n": 1},
        {"nested": {"list": [1, 2, {"deep": (True, None)}]}},
        {1: "int key", (1, 2): "tuple key", b"raw": "bytes key"},
    ]
