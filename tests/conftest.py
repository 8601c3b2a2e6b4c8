"""Shared test fixtures."""

from pathlib import Path

import pytest

from reconcile.matching import StudentMatcher
from reconcile.reader import read_roster


DATA_DIR = Path(__file__).resolve().parent.parent / 'data'


@pytest.fixture(scope='session')
def data_dir() -> Path:
    """Path to the data directory."""
    return DATA_DIR


@pytest.fixture(scope='session')
def roster():
    """All students from roster.csv."""
    return read_roster(DATA_DIR / 'roster.csv')


@pytest.fixture
def matcher(roster) -> StudentMatcher:
    """A matcher indexed on the sample roster."""
    return StudentMatcher(roster)
