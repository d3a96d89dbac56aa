import pytest

from studybloom.db import init_db


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_studybloom.db")
    return db_path


@pytest.fixture
def ready_db(tmp_db):
    """A temporary database with all tables created."""
    init_db(tmp_db)
    return tmp_db
