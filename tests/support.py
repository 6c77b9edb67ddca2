import os
import tempfile
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.models.people import metadata as core_metadata
from app.services.person_store import SqlPersonStore


class TempDatabaseTestCase(unittest.TestCase):
    """Fresh SQLite database with the person tables for every test."""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self._db_path = os.path.join(self._tmpdir.name, "test_school_qr.db")
        self._engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
        )
        core_metadata.create_all(self._engine)
        self._SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        self.store = SqlPersonStore(self._SessionLocal)

    def tearDown(self):
        self._engine.dispose()
        self._tmpdir.cleanup()


class CountingStore:
    """In-memory person store that records every lookup."""

    def __init__(self, records=()):
        self._records = {r.ref: r for r in records}
        self.lookups = []

    def find_person(self, ref):
        self.lookups.append(ref)
        return self._records.get(ref)
