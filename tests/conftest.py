"""Shared test fixtures."""

import pytest

from bulkcopy import create_service


@pytest.fixture
def db_service(tmp_path):
    """Provide a fresh SQLite DatabaseService for each test."""
    db_path = tmp_path / "test.db"
    service = create_service(f"sqlite:///{db_path}")
    service.connect()
    yield service
    service.close()


@pytest.fixture
def write_csv(tmp_path):
    """Write raw CSV text to a file and return its path."""

    def _write(content: str, name: str = "data.csv"):
        csv_file = tmp_path / name
        csv_file.write_text(content, encoding="utf-8", newline="")
        return csv_file

    return _write
