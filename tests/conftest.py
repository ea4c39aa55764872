"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from brackets.models import Participant


def make_participants(*names, seeds=None):
    """Participants with id == name, optionally seeded."""
    seeds = seeds or [None] * len(names)
    return [Participant(name, name, seed) for name, seed in zip(names, seeds)]


def numbered_participants(count):
    return [Participant(f"p{i}", f"Team {i:02d}") for i in range(1, count + 1)]


@pytest.fixture
def four_teams():
    return make_participants('A', 'B', 'C', 'D')


@pytest.fixture
def client():
    """Create a Flask test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the service at a temporary data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, 'NOTIFIERS', [])
    return str(data_dir)
