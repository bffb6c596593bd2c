from datetime import datetime, timezone

import pytest

from codescore.engine import ReviewEngine
from codescore.languages import LANGUAGES


@pytest.fixture
def engine() -> ReviewEngine:
    return ReviewEngine(languages=dict(LANGUAGES))


@pytest.fixture
def fixed_ids():
    """Deterministic id and clock for Review records."""
    return {
        "id_factory": lambda: "0" * 32,
        "clock": lambda: datetime(2024, 1, 1, tzinfo=timezone.utc),
    }


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep user-level language skills and .env files out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr("pathlib.Path.home", classmethod(lambda cls: home))
    monkeypatch.chdir(tmp_path)
    return home
